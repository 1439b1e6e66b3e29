"""
Region downloader

Fetches raw OSM XML for one of the configured named regions from Overpass
and stores it where the processing command looks for input.
"""

import os
import tempfile
from typing import Optional

from dotenv import load_dotenv
from loguru import logger

from ..config import Region, RoadnetConfig, get_config
from ..errors import ConfigError
from .api_client import OverpassAPIClient
from .roads import HIGHWAY_CLASSES


def apply_env_overrides(config: RoadnetConfig) -> None:
    """Apply ROADNET_* overrides from the environment or a .env file"""
    load_dotenv(override=False)
    mirrors = os.getenv("ROADNET_OVERPASS_MIRRORS", "")
    if mirrors.strip():
        config.api.overpass_mirrors = [m.strip() for m in mirrors.split(",") if m.strip()]
        logger.debug(f"Overpass mirrors from environment: {config.api.overpass_mirrors}")
    user_agent = os.getenv("ROADNET_USER_AGENT", "")
    if user_agent.strip():
        config.api.user_agent = user_agent.strip()


def build_region_query(region: Region, timeout: int) -> str:
    """Overpass QL for roads, places, fuel stations and elevation-tagged nodes"""
    bbox = region.as_overpass_bbox()
    highway_pattern = "|".join(sorted(HIGHWAY_CLASSES))
    return f"""
[out:xml][timeout:{timeout}];
(
  way["highway"~"^({highway_pattern})$"]({bbox});
  node["place"~"^(city|town)$"]({bbox});
  node["amenity"="fuel"]({bbox});
  node["ele"]({bbox});
);
(._;>;);
out body qt;
""".strip()


class RegionDownloader:
    """Downloads a named region to <output_dir>/<region>.osm"""

    def __init__(self, config: Optional[RoadnetConfig] = None, client: Optional[OverpassAPIClient] = None):
        self.config = config or get_config()
        self.client = client or OverpassAPIClient(self.config.api)

    def get_region(self, name: str) -> Region:
        try:
            return self.config.regions[name]
        except KeyError:
            known = ", ".join(sorted(self.config.regions))
            raise ConfigError(f"Unknown region '{name}'. Known regions: {known}") from None

    def download(self, region_name: str, output_dir: Optional[str] = None) -> str:
        """
        Download a region and write it atomically

        Returns:
            Path of the written .osm file

        Raises:
            ConfigError: Unknown region
            DownloadError: Every mirror failed
        """
        region = self.get_region(region_name)
        output_dir = output_dir or self.config.ingest.input_dir

        logger.info(f"Downloading region '{region.name}' "
                    f"(S {region.south}, W {region.west}, N {region.north}, E {region.east})")
        body = self.client.query(build_region_query(region, self.client.timeout))

        os.makedirs(output_dir, exist_ok=True)
        output_path = os.path.join(output_dir, f"{region.name}.osm")
        fd, temp_path = tempfile.mkstemp(dir=output_dir, prefix=".roadnet-", suffix=".osm.tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(body)
        except Exception:
            os.unlink(temp_path)
            raise
        os.replace(temp_path, output_path)

        logger.info(f"Saved {len(body) / (1024 * 1024):.1f} MB to {output_path}")
        return output_path
