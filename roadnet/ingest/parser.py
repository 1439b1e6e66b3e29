"""
OSM document parser

Parses OSM XML (.osm) and Overpass JSON documents into RawNode and RawWay
records. Matching is tolerant: unknown tags are ignored and malformed
elements are skipped. Only a broken document root is an error.
"""

import json
import math
import re
import xml.etree.ElementTree as ET
from typing import Any, Dict, Iterable, Optional, Tuple
from loguru import logger

from ..errors import OSMParseError
from .models import ParsedOSM, RawNode, RawWay

NODE_TAG_KEYS = ("ele", "name", "place", "amenity")
WAY_TAG_KEYS = ("highway", "name", "ref", "maxspeed", "lanes", "surface")

_NUMBER_PATTERN = re.compile(r"^\s*(-?\d+(?:\.\d+)?)")


def parse_elevation(value: Optional[str]) -> Optional[float]:
    """Parse an OSM ele tag ("120", "120.5", "120 m"); None if not numeric"""
    if value is None:
        return None
    match = _NUMBER_PATTERN.match(value)
    if not match:
        return None
    return float(match.group(1))


class OSMDocumentParser:
    """Parses OSM interchange documents"""

    @staticmethod
    def parse(text: str) -> ParsedOSM:
        """
        Parse an OSM document, detecting XML or Overpass JSON

        Args:
            text: Full document text

        Returns:
            ParsedOSM with nodes and ways in document order

        Raises:
            OSMParseError: If the document root is missing or malformed
        """
        stripped = text.lstrip() if text else ""
        if not stripped:
            raise OSMParseError("Input document is empty")
        if stripped[0] in "{[":
            return OSMDocumentParser.parse_json(stripped)
        return OSMDocumentParser.parse_xml(stripped)

    @staticmethod
    def parse_xml(text: str) -> ParsedOSM:
        try:
            root = ET.fromstring(text)
        except ET.ParseError as e:
            raise OSMParseError(f"Malformed OSM XML: {e}") from e

        if root.tag != "osm":
            raise OSMParseError(f"Expected <osm> document root, found <{root.tag}>")

        result = ParsedOSM()
        skipped = 0
        for element in root:
            if element.tag == "node":
                node = OSMDocumentParser._xml_node(element)
                if node is None:
                    skipped += 1
                else:
                    result.nodes.append(node)
            elif element.tag == "way":
                way = OSMDocumentParser._xml_way(element)
                if way is None:
                    skipped += 1
                else:
                    result.ways.append(way)

        if skipped:
            logger.debug(f"Skipped {skipped} malformed OSM elements")
        return result

    @staticmethod
    def parse_json(text: str) -> ParsedOSM:
        """Parse Overpass JSON ('out body' format)"""
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise OSMParseError(f"Malformed Overpass JSON: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("elements"), list):
            raise OSMParseError("Overpass JSON document has no 'elements' list")

        result = ParsedOSM()
        for element in data["elements"]:
            if not isinstance(element, dict):
                continue
            tags = element.get("tags") or {}
            if element.get("type") == "node":
                node = OSMDocumentParser._build_node(
                    element.get("id"), element.get("lat"), element.get("lon"), tags
                )
                if node is not None:
                    result.nodes.append(node)
            elif element.get("type") == "way":
                way = OSMDocumentParser._build_way(element.get("id"), element.get("nodes", []), tags)
                if way is not None:
                    result.ways.append(way)
        return result

    @staticmethod
    def _xml_tags(element: ET.Element, keys: Tuple[str, ...]) -> Dict[str, str]:
        tags = {}
        for tag in element.iter("tag"):
            key = tag.get("k")
            if key in keys and tag.get("v") is not None:
                tags[key] = tag.get("v")
        return tags

    @staticmethod
    def _xml_node(element: ET.Element) -> Optional[RawNode]:
        return OSMDocumentParser._build_node(
            element.get("id"),
            element.get("lat"),
            element.get("lon"),
            OSMDocumentParser._xml_tags(element, NODE_TAG_KEYS),
        )

    @staticmethod
    def _xml_way(element: ET.Element) -> Optional[RawWay]:
        refs = [nd.get("ref") for nd in element.iter("nd")]
        return OSMDocumentParser._build_way(
            element.get("id"), refs, OSMDocumentParser._xml_tags(element, WAY_TAG_KEYS)
        )

    @staticmethod
    def _build_node(raw_id: Any, raw_lat: Any, raw_lon: Any, tags: Dict[str, str]) -> Optional[RawNode]:
        try:
            node_id = int(raw_id)
            lat = float(raw_lat)
            lon = float(raw_lon)
        except (TypeError, ValueError):
            return None
        if not (math.isfinite(lat) and math.isfinite(lon)):
            return None

        return RawNode(
            id=node_id,
            lat=lat,
            lon=lon,
            ele=parse_elevation(tags.get("ele")),
            name=tags.get("name"),
            place=tags.get("place"),
            amenity=tags.get("amenity"),
        )

    @staticmethod
    def _build_way(raw_id: Any, raw_refs: Iterable[Any], tags: Dict[str, str]) -> Optional[RawWay]:
        try:
            way_id = int(raw_id)
        except (TypeError, ValueError):
            return None

        refs = []
        for ref in raw_refs:
            try:
                refs.append(int(ref))
            except (TypeError, ValueError):
                continue

        return RawWay(
            id=way_id,
            node_refs=tuple(refs),
            highway=tags.get("highway"),
            name=tags.get("name"),
            ref=tags.get("ref"),
            maxspeed=tags.get("maxspeed"),
            lanes=tags.get("lanes"),
            surface=tags.get("surface"),
        )
