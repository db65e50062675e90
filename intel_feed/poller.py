"""Background poll loop that drives the Intel Feed pipeline."""

import threading
from enum import Enum
from typing import Any

from .classify import RelevanceClassifier
from .config import FeedConfig
from .dedup import SeenStories
from .errors import ClassifierError, DecodeError, NetworkError
from .feed import ANALYSIS_UNAVAILABLE_SUMMARY, FeedBuffer, format_error, format_insight
from .logging_config import create_execution_logger
from .models import Insight, Story
from .stories import StorySource

UNKNOWN_PRIORITY = "Unknown"
UNRATED_PRIORITY = "Unrated"


class PollState(Enum):
    """States of the poll loop."""

    IDLE = "idle"
    FETCHING = "fetching"


class PollLoop:
    """Fetches new stories, classifies them and inserts them into the feed.

    The loop is the only writer of the feed buffer and the seen-story set.
    """

    def __init__(
        self,
        source: StorySource,
        classifier: RelevanceClassifier | None,
        buffer: FeedBuffer,
        config: FeedConfig | None = None,
        seen: SeenStories | None = None,
        execution_id: str | None = None,
    ):
        """Initialize the poll loop with its collaborators.

        Args:
            source: Story source used for both HTTP calls
            classifier: Relevance classifier, or None to skip classification
            buffer: Feed buffer receiving formatted entries
            config: Feed and poll loop configuration
            seen: Set of story IDs already shown
            execution_id: Execution ID for logging context
        """
        self.source = source
        self.classifier = classifier
        self.buffer = buffer
        self.config = config or FeedConfig()
        self.seen = seen if seen is not None else SeenStories(execution_id)
        self.logger = create_execution_logger("poll_loop", execution_id)
        self.state = PollState.IDLE

    def run(self, stop_event: threading.Event) -> None:
        """Run cycles separated by a fixed delay until ``stop_event`` is set."""
        self.logger.info(
            "Poll loop started",
            metrics={"poll_interval_seconds": self.config.poll_interval_seconds},
        )
        while not stop_event.is_set():
            try:
                self.run_cycle()
            except Exception as e:
                self.state = PollState.IDLE
                self.logger.error(f"Unexpected error in poll cycle: {e}", error=str(e))
                self.buffer.insert_front(format_error(e))

            stop_event.wait(self.config.poll_interval_seconds)

        self.logger.info("Poll loop stopped")

    def run_cycle(self) -> dict[str, Any]:
        """Run one fetch, classify and insert cycle.

        Returns:
            Metrics for the cycle
        """
        self.state = PollState.FETCHING
        metrics: dict[str, Any] = {
            "stories_fetched": 0,
            "stories_skipped": 0,
            "entries_added": 0,
            "errors": [],
        }

        try:
            story_ids = self.source.list_top_story_ids()
        except (NetworkError, DecodeError) as e:
            self.logger.error(f"Failed to fetch top stories: {e}", error=str(e))
            metrics["errors"].append(str(e))
            self.buffer.insert_front(format_error(e))
            metrics["entries_added"] += 1
        else:
            stories = self.collect_new_stories(story_ids, metrics)
            for story in stories:
                insight = self.analyze(story, metrics)
                self.buffer.insert_front(format_insight(insight))
                metrics["entries_added"] += 1
                self.logger.log_story_processing(story.title, "added")

        self.logger.log_metrics(metrics)
        self.state = PollState.IDLE
        return metrics

    def collect_new_stories(
        self, story_ids: list[int], metrics: dict[str, Any]
    ) -> list[Story]:
        """Fetch the first unseen stories, skipping IDs that fail to load."""
        stories: list[Story] = []
        for story_id in story_ids:
            if len(stories) >= self.config.stories_per_cycle:
                break
            if self.seen.is_duplicate(story_id):
                continue

            try:
                story = self.source.fetch_story(story_id)
            except (NetworkError, DecodeError) as e:
                self.logger.warning(
                    f"Skipping story {story_id}: {e}",
                    story_id=story_id,
                    error=str(e),
                )
                metrics["stories_skipped"] += 1
                continue

            stories.append(story)
            self.seen.mark_seen(story_id)
            metrics["stories_fetched"] += 1

        return stories

    def analyze(self, story: Story, metrics: dict[str, Any]) -> Insight:
        """Classify a story, substituting a placeholder when that fails."""
        if self.classifier is None or not self.config.classify_enabled:
            return Insight(
                title=story.title, url=story.url, summary="", priority=UNRATED_PRIORITY
            )

        try:
            return self.classifier.classify(story)
        except ClassifierError as e:
            metrics["errors"].append(str(e))
            self.logger.log_story_processing(story.title, "classification_failed", False)
            return Insight(
                title=story.title,
                url=story.url,
                summary=ANALYSIS_UNAVAILABLE_SUMMARY,
                priority=UNKNOWN_PRIORITY,
            )
