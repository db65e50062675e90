"""Deduplication module for Intel Feed."""

from .logging_config import create_execution_logger


class SeenStories:
    """Tracks story IDs that have already been shown in the feed.

    The set lives in memory for the process lifetime and is never evicted,
    so it grows by one ID per displayed story.
    """

    def __init__(self, execution_id: str | None = None):
        """Initialize an empty set of seen story IDs.

        Args:
            execution_id: Execution ID for logging context
        """
        self._ids: set[int] = set()
        self.logger = create_execution_logger("poll_loop", execution_id)

    def is_duplicate(self, story_id: int) -> bool:
        """Check if a story ID has already been shown.

        Args:
            story_id: The story ID to check

        Returns:
            True if the story was marked seen, False otherwise
        """
        return story_id in self._ids

    def mark_seen(self, story_id: int) -> None:
        """Record a story ID as shown."""
        self._ids.add(story_id)
        self.logger.debug("Marked story seen", story_id=story_id)

    def __len__(self) -> int:
        return len(self._ids)
