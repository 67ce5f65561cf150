"""The three tools served by the provider."""

import json
from datetime import date
from typing import Callable, Optional

import requests

from .nasa import NasaClient
from .tool_decorator import tool


def format_date(day: date) -> str:
    """``YYYY-M-D`` without zero padding, the format the photo API accepts."""
    return f"{day.year}-{day.month}-{day.day}"


def _pretty(data) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


class MarsPhotosTools:
    """Mars rover tools backed by NASA's Mars Photos API."""

    def __init__(self, client: NasaClient, today: Optional[Callable[[], date]] = None):
        self.client = client
        self._today = today or date.today

    @tool("get-rovers",
          description="Returns a list of all available Mars rovers from NASA's Mars Photos API")
    def get_rovers(self) -> str:
        try:
            return _pretty(self.client.get_rovers())
        except (requests.RequestException, ValueError) as e:
            return f"Error retrieving rovers: {e}"

    @tool("get-current-date",
          description="Returns the current date in YYYY-M-D format for reference when requesting rover photos")
    def get_current_date(self) -> str:
        return format_date(self._today())

    @tool("get-rover-photo",
          description=("Returns available photos for a given date by rover name. "
                       "Parameters: roverName (string), earthDate (string in YYYY-M-D format)"),
          aliases={"rover_name": "roverName", "earth_date": "earthDate"})
    def get_rover_photo(self, rover_name: str, earth_date: str) -> str:
        """
        Args:
            rover_name: Rover name, e.g. curiosity
            earth_date: Earth date in YYYY-M-D format
        """
        try:
            return _pretty(self.client.get_rover_photos(rover_name, earth_date))
        except (requests.RequestException, ValueError) as e:
            return f"Error retrieving rover photos: {e}"
