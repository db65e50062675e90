"""Entry point that wires the Intel Feed components together."""

import threading
from datetime import UTC, datetime

from rich.console import Console
from rich.markup import escape

from .classify import RelevanceClassifier
from .config import Config
from .dedup import SeenStories
from .errors import TerminalError
from .feed import FeedBuffer
from .logging_config import create_execution_logger, setup_structured_logging
from .poller import PollLoop
from .stories import StorySource
from .tui import TerminalRenderer


def main() -> int:
    """Run the feed until the user quits.

    Returns:
        Process exit status
    """
    console = Console()
    try:
        config = Config()
    except ValueError as e:
        console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        return 2

    try:
        setup_structured_logging(config.log_level, config.log_file)
    except OSError as e:
        console.print(
            f"[red]Configuration error:[/red] cannot open log file "
            f"{escape(config.log_file)}: {escape(str(e))}"
        )
        return 2

    execution_id = f"run_{datetime.now(UTC).strftime('%Y%m%d_%H%M%S_%f')}"
    main_logger = create_execution_logger("main", execution_id)
    main_logger.info("Configuration initialized")

    feed_config = config.get_feed_config()
    buffer = FeedBuffer(max_entries=feed_config.max_entries)
    renderer = TerminalRenderer(buffer, feed_config.title, console, execution_id)
    buffer.on_change = renderer.request_redraw

    classifier = None
    if feed_config.classify_enabled:
        classifier = RelevanceClassifier(config.get_ollama_config(), execution_id)

    poll_loop = PollLoop(
        StorySource(config.get_hacker_news_config(), execution_id),
        classifier,
        buffer,
        feed_config,
        SeenStories(execution_id),
        execution_id,
    )

    stop_event = threading.Event()
    poller = threading.Thread(
        target=poll_loop.run, args=(stop_event,), name="intel-feed-poll", daemon=True
    )

    try:
        poller.start()
        renderer.run(stop_event)
    except TerminalError as e:
        main_logger.error(f"Terminal initialisation failed: {e}", error=str(e))
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        return 1
    except KeyboardInterrupt:
        main_logger.info("Interrupted")
    finally:
        stop_event.set()

    main_logger.info("Stopped")
    return 0
