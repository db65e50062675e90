"""Unit tests for the poll loop, including end-to-end feed scenarios."""

import subprocess
from unittest.mock import Mock, patch

from intel_feed.classify import RelevanceClassifier
from intel_feed.config import FeedConfig
from intel_feed.dedup import SeenStories
from intel_feed.errors import ClassifierError, NetworkError
from intel_feed.feed import ANALYSIS_UNAVAILABLE_SUMMARY, FeedBuffer, format_insight
from intel_feed.models import Insight, Story
from intel_feed.poller import PollLoop, PollState
from intel_feed.stories import StorySource


def make_source(story_ids, stories):
    """Build a mock source; ``stories`` maps IDs to a Story or an exception."""
    source = Mock(spec=StorySource)
    source.list_top_story_ids.return_value = story_ids

    def fetch_story(story_id):
        result = stories[story_id]
        if isinstance(result, Exception):
            raise result
        return result

    source.fetch_story.side_effect = fetch_story
    return source


class TestPollLoopUnit:
    """Unit tests for PollLoop."""

    def test_new_story_classified_and_inserted_at_front(self):
        """IDs [101, 102], story 101 rated High by the model."""
        source = make_source(
            [101, 102],
            {101: Story(title="A", url="u1", id=101), 102: Story("B", "u2", 102)},
        )
        buffer = FeedBuffer()
        buffer.insert_front("older entry")
        loop = PollLoop(source, RelevanceClassifier(), buffer)

        with patch("intel_feed.classify.subprocess.run") as mock_run:
            mock_run.return_value = Mock(stdout="High\nLooks urgent")
            metrics = loop.run_cycle()

        entries = buffer.entries()
        assert len(entries) == 2
        assert entries[0] == format_insight(
            Insight(title="A", url="u1", summary="Looks urgent", priority="High")
        )
        assert "Priority: High" in entries[0]
        source.fetch_story.assert_called_once_with(101)
        assert metrics["entries_added"] == 1
        assert loop.state is PollState.IDLE

    def test_failed_story_fetch_skipped_without_entry(self):
        """A network error for the only ID inserts nothing and does not raise."""
        source = make_source([101], {101: NetworkError("connection reset")})
        buffer = FeedBuffer()
        seen = SeenStories()
        classifier = Mock(spec=RelevanceClassifier)
        loop = PollLoop(source, classifier, buffer, seen=seen)

        metrics = loop.run_cycle()

        assert len(buffer) == 0
        assert metrics["stories_skipped"] == 1
        assert seen.is_duplicate(101) is False
        classifier.classify.assert_not_called()

    def test_failed_story_fetch_falls_through_to_next_id(self):
        source = make_source(
            [101, 102],
            {101: NetworkError("timeout"), 102: Story(title="B", url="u2", id=102)},
        )
        classifier = Mock(spec=RelevanceClassifier)
        classifier.classify.return_value = Insight("B", "u2", "Fine", "Low")
        buffer = FeedBuffer()
        loop = PollLoop(source, classifier, buffer)

        loop.run_cycle()

        assert len(buffer) == 1
        assert "[green]B[/]" in buffer.entries()[0]

    def test_loop_continues_after_fixed_delay(self):
        source = make_source([101], {101: NetworkError("down")})
        loop = PollLoop(
            source,
            Mock(spec=RelevanceClassifier),
            FeedBuffer(),
            FeedConfig(poll_interval_seconds=5.0),
        )
        stop_event = Mock()
        stop_event.is_set.side_effect = [False, False, True]

        loop.run(stop_event)

        assert source.list_top_story_ids.call_count == 2
        assert stop_event.wait.call_count == 2
        stop_event.wait.assert_called_with(5.0)

    def test_classifier_failure_inserts_placeholder(self):
        """A non-zero exit from the model shows the unavailable placeholder."""
        source = make_source([101], {101: Story(title="A", url="u1", id=101)})
        buffer = FeedBuffer()
        loop = PollLoop(source, RelevanceClassifier(), buffer)

        with patch("intel_feed.classify.subprocess.run") as mock_run:
            mock_run.side_effect = subprocess.CalledProcessError(1, ["ollama"])
            metrics = loop.run_cycle()

        entry = buffer.entries()[0]
        assert f"[red]{ANALYSIS_UNAVAILABLE_SUMMARY}[/]" in entry
        assert "Priority: Unknown" in entry
        assert "[green]A[/]" in entry
        assert len(metrics["errors"]) == 1

    def test_top_stories_failure_inserts_error_entry(self):
        source = Mock(spec=StorySource)
        source.list_top_story_ids.side_effect = NetworkError("no route to host")
        buffer = FeedBuffer()
        loop = PollLoop(source, Mock(spec=RelevanceClassifier), buffer)

        loop.run_cycle()

        assert buffer.entries() == ("[red]Error: no route to host[/]",)
        source.fetch_story.assert_not_called()

    def test_seen_stories_not_repeated(self):
        source = make_source(
            [101, 102],
            {101: Story("A", "u1", 101), 102: Story("B", "u2", 102)},
        )
        classifier = Mock(spec=RelevanceClassifier)
        classifier.classify.side_effect = lambda story: Insight(
            story.title, story.url, "s", "Low"
        )
        buffer = FeedBuffer()
        loop = PollLoop(source, classifier, buffer)

        loop.run_cycle()
        loop.run_cycle()
        loop.run_cycle()

        assert [call.args[0] for call in source.fetch_story.call_args_list] == [
            101,
            102,
        ]
        assert len(buffer) == 2
        assert "[green]B[/]" in buffer.entries()[0]

    def test_stories_per_cycle_limit(self):
        source = make_source(
            [1, 2, 3], {i: Story(f"T{i}", f"u{i}", i) for i in (1, 2, 3)}
        )
        classifier = Mock(spec=RelevanceClassifier)
        classifier.classify.side_effect = lambda story: Insight(
            story.title, story.url, "s", "Low"
        )
        buffer = FeedBuffer()
        loop = PollLoop(source, classifier, buffer, FeedConfig(stories_per_cycle=2))

        loop.run_cycle()

        assert len(buffer) == 2
        assert "[green]T2[/]" in buffer.entries()[0]

    def test_classification_disabled(self):
        source = make_source([101], {101: Story("A", "u1", 101)})
        buffer = FeedBuffer()
        loop = PollLoop(source, None, buffer)

        loop.run_cycle()

        assert "Priority: Unrated" in buffer.entries()[0]

    def test_unexpected_error_shown_and_loop_continues(self):
        source = Mock(spec=StorySource)
        source.list_top_story_ids.side_effect = RuntimeError("bug")
        buffer = FeedBuffer()
        loop = PollLoop(source, Mock(spec=RelevanceClassifier), buffer)
        stop_event = Mock()
        stop_event.is_set.side_effect = [False, False, True]

        loop.run(stop_event)

        assert buffer.entries() == (
            "[red]Error: bug[/]",
            "[red]Error: bug[/]",
        )
        assert loop.state is PollState.IDLE

    def test_classifier_error_type_is_caught(self):
        source = make_source([101], {101: Story("A", "u1", 101)})
        classifier = Mock(spec=RelevanceClassifier)
        classifier.classify.side_effect = ClassifierError("boom")
        buffer = FeedBuffer()

        PollLoop(source, classifier, buffer).run_cycle()

        assert ANALYSIS_UNAVAILABLE_SUMMARY in buffer.entries()[0]
