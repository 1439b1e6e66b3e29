"""
Overpass API client

Handles communication with the Overpass API including:
- Rate limiting
- Retry logic per mirror
- Failover across mirrors in configured order
"""

import time
import requests
from typing import List, Optional
from loguru import logger

from ..config import APIConfig, get_config
from ..errors import DownloadError


class OverpassAPIClient:
    """Client for interacting with Overpass API mirrors"""

    def __init__(self, api_config: Optional[APIConfig] = None, mirrors: Optional[List[str]] = None):
        self.config = api_config or get_config().api
        self.mirrors = list(mirrors or self.config.overpass_mirrors)
        self.timeout = self.config.overpass_timeout
        self._last_request_time = 0.0
        self._min_request_interval = 2.0

    def _rate_limit(self):
        """Ensure we don't exceed rate limits"""
        elapsed = time.time() - self._last_request_time
        if elapsed < self._min_request_interval:
            time.sleep(self._min_request_interval - elapsed)
        self._last_request_time = time.time()

    def query(self, query: str) -> str:
        """
        Execute an Overpass QL query, trying each mirror in order

        Args:
            query: Overpass QL query string

        Returns:
            Raw response body (OSM XML for [out:xml] queries)

        Raises:
            DownloadError: If every mirror failed
        """
        failures = []
        for url in self.mirrors:
            try:
                return self._query_mirror(url, query)
            except RuntimeError as e:
                logger.warning(f"Overpass mirror {url} failed: {e}")
                failures.append(f"{url}: {e}")

        logger.error(f"All {len(self.mirrors)} Overpass mirrors failed")
        raise DownloadError("All Overpass mirrors failed:\n" + "\n".join(f"  - {f}" for f in failures))

    def _query_mirror(self, url: str, query: str) -> str:
        """Query one mirror with retries; raises RuntimeError when it gives up"""
        headers = {
            "User-Agent": self.config.user_agent,
            "Content-Type": "application/x-www-form-urlencoded"
        }
        max_retries = self.config.max_retries
        retry_delay = self.config.retry_delay

        for attempt in range(max_retries):
            self._rate_limit()
            try:
                response = requests.post(
                    url,
                    data={"data": query},
                    headers=headers,
                    timeout=self.timeout
                )
                response.raise_for_status()
                return response.text
            except requests.exceptions.Timeout as e:
                if attempt < max_retries - 1:
                    wait_time = retry_delay * (attempt + 1)
                    logger.warning(f"Overpass timeout (attempt {attempt + 1}/{max_retries}). Retrying in {wait_time}s...")
                    time.sleep(wait_time)
                else:
                    raise RuntimeError(f"timeout after {max_retries} attempts") from e
            except requests.exceptions.HTTPError as e:
                status = e.response.status_code if e.response is not None else None
                if status in (429, 504) and attempt < max_retries - 1:
                    wait_time = retry_delay * (attempt + 1)
                    logger.warning(f"Overpass {status} (attempt {attempt + 1}/{max_retries}). Retrying in {wait_time}s...")
                    time.sleep(wait_time)
                else:
                    raise RuntimeError(f"HTTP error {status}") from e
            except requests.exceptions.RequestException as e:
                if attempt < max_retries - 1:
                    logger.warning(f"Overpass request failed (attempt {attempt + 1}): {e}")
                    time.sleep(retry_delay * (attempt + 1))
                else:
                    raise RuntimeError(f"request failed after {max_retries} attempts: {e}") from e

        raise RuntimeError("no attempts made")
