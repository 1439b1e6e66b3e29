"""
Loading the processed dataset at runtime
"""

import json
from typing import Any, Dict

from pydantic import ValidationError
from loguru import logger

from .errors import InputError
from .models import POIsDocument, RoadsDocument


def _read_json(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError as e:
        raise InputError(f"Dataset file not found: {path}") from e
    except (OSError, json.JSONDecodeError) as e:
        raise InputError(f"Cannot read dataset file {path}: {e}") from e


def load_roads(path: str) -> RoadsDocument:
    """Load and validate roads.json"""
    try:
        document = RoadsDocument.model_validate(_read_json(path))
    except ValidationError as e:
        raise InputError(f"Invalid roads document {path}: {e}") from e
    logger.info(f"Loaded {len(document.roads)} roads from {path}")
    return document


def load_pois(path: str) -> POIsDocument:
    """Load and validate pois.json"""
    try:
        document = POIsDocument.model_validate(_read_json(path))
    except ValidationError as e:
        raise InputError(f"Invalid POIs document {path}: {e}") from e
    logger.info(f"Loaded {len(document.pois)} POIs from {path}")
    return document
