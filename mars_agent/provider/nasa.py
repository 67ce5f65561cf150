"""NASA Mars Rover Photos API client."""

import time
from typing import Any, Dict, Optional

import requests

from .. import __version__
from ..logger import get_logger

_log = get_logger(__name__)

NASA_API_BASE = "https://api.nasa.gov/"


class NasaClient:
    """Thin JSON client over a shared ``requests.Session``."""

    TIMEOUT = 30
    _RETRYABLE_STATUS = {429, 500, 502, 503}

    def __init__(self, api_key: str, base_url: str = NASA_API_BASE,
                 session: Optional[requests.Session] = None, max_retries: int = 2):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/") + "/"
        self.max_retries = max_retries
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": f"mars-photos-tool/{__version__}"})

    def _request_with_retry(self, path: str, params: Dict[str, Any]) -> requests.Response:
        """GET with exponential backoff on transient errors."""
        url = self.base_url + path
        query = dict(params, api_key=self.api_key)
        last_exc: Optional[Exception] = None
        for attempt in range(1 + self.max_retries):
            try:
                resp = self._session.get(url, params=query, timeout=self.TIMEOUT)
                if resp.status_code not in self._RETRYABLE_STATUS or attempt == self.max_retries:
                    resp.raise_for_status()
                    return resp
            except (requests.ConnectionError, requests.Timeout) as e:
                last_exc = e
                if attempt == self.max_retries:
                    raise
            _log.info("Retrying %s (attempt %d)", path, attempt + 1)
            time.sleep(2 ** attempt)  # 1s → 2s → 4s
        raise last_exc

    def get_json(self, path: str, **params) -> Any:
        return self._request_with_retry(path, params).json()

    def get_rovers(self) -> Any:
        return self.get_json("mars-photos/api/v1/rovers")

    def get_rover_photos(self, rover_name: str, earth_date: str) -> Any:
        return self.get_json(
            f"mars-photos/api/v1/rovers/{rover_name.lower()}/photos",
            earth_date=earth_date,
        )
