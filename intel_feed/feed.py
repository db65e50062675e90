"""Feed buffer and entry formatting for Intel Feed."""

import threading
from collections.abc import Callable

from rich.markup import escape

from .classify import INVALID_RESPONSE_SUMMARY
from .models import Insight

ANALYSIS_UNAVAILABLE_SUMMARY = "Analysis not available"
PLACEHOLDER_SUMMARIES = (ANALYSIS_UNAVAILABLE_SUMMARY, INVALID_RESPONSE_SUMMARY)

# Newest entry first, brightest to faded out
FADE_LEVELS = (
    "[white]",
    "[grey70]",
    "[grey50]",
    "[grey30]",
    "[black]",
)
RESET = "[/]"
# Neutral style for fields that are shown as-is
PLAIN = "[none]"


def escape_field(text: str) -> str:
    """Escape user text for a position directly followed by a markup tag.

    ``rich.markup.escape`` only escapes tags closed within its input and
    leaves a trailing backslash run short, so a field ending in ``\\``
    would escape the tag after it. Every field is closed by a tag, so an
    unclosed ``[`` in one field can never pair with a ``]`` in the next.
    """
    stripped = text.rstrip("\\")
    trailing = len(text) - len(stripped)
    return escape(stripped) + "\\" * (2 * trailing)


def format_insight(insight: Insight) -> str:
    """Format an insight as a feed entry in rich console markup.

    User-supplied text is escaped and each field is wrapped in its own
    style, so brackets in titles, URLs or model output are shown literally.
    """
    style = "[red]" if insight.summary in PLACEHOLDER_SUMMARIES else PLAIN

    return (
        f"[yellow]Priority: {escape_field(insight.priority)}{RESET}\n"
        f"[green]{escape_field(insight.title)}{RESET}\n"
        f"{PLAIN}{escape_field(insight.url)}{RESET}\n"
        f"{style}{escape_field(insight.summary)}{RESET}"
    )


def format_error(error: Exception | str) -> str:
    """Format an error as a red feed entry."""
    return f"[red]Error: {escape_field(str(error))}{RESET}"


class FeedBuffer:
    """Bounded, most-recent-first list of formatted feed entries."""

    def __init__(
        self,
        max_entries: int = 20,
        on_change: Callable[[], None] | None = None,
    ):
        """Initialize an empty buffer.

        Args:
            max_entries: Maximum number of entries kept
            on_change: Called after every insert, outside the lock
        """
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self.on_change = on_change
        self._entries: list[str] = []
        self._lock = threading.Lock()

    def insert_front(self, entry: str) -> None:
        """Prepend an entry, dropping the oldest ones beyond capacity."""
        with self._lock:
            self._entries.insert(0, entry)
            del self._entries[self.max_entries :]

        if self.on_change:
            self.on_change()

    def entries(self) -> tuple[str, ...]:
        """Return a snapshot of the entries, newest first."""
        with self._lock:
            return tuple(self._entries)

    def render(self) -> str:
        """Render all entries with a fade based on their position.

        The fade bucket of entry ``i`` out of ``n`` is
        ``i * (len(FADE_LEVELS) - 1) // n``, relative to the current length
        rather than to ``max_entries``.
        """
        entries = self.entries()
        total = len(entries)
        if total == 0:
            return ""

        formatted = []
        for i, entry in enumerate(entries):
            fade_index = i * (len(FADE_LEVELS) - 1) // total
            formatted.append(FADE_LEVELS[fade_index] + entry + RESET)

        return "\n\n".join(formatted)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
