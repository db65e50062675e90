"""Hacker News story source for Intel Feed."""

import requests

from .config import HackerNewsConfig
from .errors import DecodeError, NetworkError
from .logging_config import create_execution_logger
from .models import Story


class StorySource:
    """Fetches top story IDs and story details from the Hacker News API."""

    def __init__(
        self,
        config: HackerNewsConfig | None = None,
        execution_id: str | None = None,
    ):
        """Initialize StorySource with configuration.

        Args:
            config: Story API configuration
            execution_id: Execution ID for logging context
        """
        self.config = config or HackerNewsConfig()
        self.logger = create_execution_logger("story_source", execution_id)
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": self.config.user_agent})

        self.logger.info(
            "StorySource initialized",
            base_url=self.config.base_url,
            timeout=self.config.timeout,
        )

    def list_top_story_ids(self) -> list[int]:
        """Fetch the ordered list of top story IDs.

        Returns:
            Story IDs in ranking order

        Raises:
            NetworkError: If the request fails
            DecodeError: If the body is not a JSON array of integers
        """
        data = self._get_json(f"{self.config.base_url}/topstories.json")

        if not isinstance(data, list) or not all(
            isinstance(story_id, int) and not isinstance(story_id, bool)
            for story_id in data
        ):
            raise DecodeError("Top stories response is not a list of integer IDs")

        self.logger.debug("Fetched top story IDs", metrics={"count": len(data)})
        return data

    def fetch_story(self, story_id: int) -> Story:
        """Fetch the title and URL of a single story.

        A ``null`` body (deleted or unknown item) yields an empty story, and a
        missing ``url`` field (text posts) yields an empty URL.

        Args:
            story_id: Hacker News item ID

        Returns:
            Story with title, URL and ID

        Raises:
            NetworkError: If the request fails
            DecodeError: If the body is not a JSON object
        """
        data = self._get_json(f"{self.config.base_url}/item/{story_id}.json")

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise DecodeError(f"Story {story_id} response is not a JSON object")

        title = data.get("title") or ""
        url = data.get("url") or ""
        if not isinstance(title, str) or not isinstance(url, str):
            raise DecodeError(f"Story {story_id} has non-string title or url")

        return Story(title=title, url=url, id=story_id)

    def _get_json(self, url: str):
        """GET a URL and decode its JSON body."""
        try:
            response = self.session.get(url, timeout=self.config.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            self.logger.warning(f"Failed to fetch {url}: {e}", error=str(e))
            raise NetworkError(f"Failed to fetch {url}: {e}") from e

        try:
            return response.json()
        except ValueError as e:
            self.logger.warning(f"Invalid JSON from {url}: {e}", error=str(e))
            raise DecodeError(f"Invalid JSON from {url}: {e}") from e
