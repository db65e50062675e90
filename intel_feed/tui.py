"""Full-screen terminal pane for the Intel Feed."""

import os
import queue
import re
import select
import sys
import termios
import threading
import tty

from rich.console import Console
from rich.errors import MarkupError
from rich.live import Live
from rich.panel import Panel
from rich.text import Text

from .errors import TerminalError
from .feed import FeedBuffer
from .logging_config import create_execution_logger

# Input events
UP = "UP"
DOWN = "DOWN"
PGUP = "PGUP"
PGDN = "PGDN"
HOME = "HOME"
END = "END"
WHEEL_UP = "WHEEL_UP"
WHEEL_DOWN = "WHEEL_DOWN"
QUIT = "QUIT"

WHEEL_STEP = 3

# xterm button reporting with SGR extended coordinates
MOUSE_ON = "\x1b[?1000h\x1b[?1006h"
MOUSE_OFF = "\x1b[?1006l\x1b[?1000l"

SGR_MOUSE_RE = re.compile(r"\x1b\[<(\d+);(\d+);(\d+)([Mm])")
CSI_RE = re.compile(r"\x1b\[([0-9;]*)([A-Za-z~])")
SS3_RE = re.compile(r"\x1bO([A-DHF])")
INCOMPLETE_RE = re.compile(r"\x1b(O|\[<?[0-9;]*)?")

CSI_KEYS = {
    "A": UP,
    "B": DOWN,
    "H": HOME,
    "F": END,
    "1~": HOME,
    "7~": HOME,
    "4~": END,
    "8~": END,
    "5~": PGUP,
    "6~": PGDN,
}
SS3_KEYS = {"A": UP, "B": DOWN, "H": HOME, "F": END}
WHEEL_BUTTONS = {64: WHEEL_UP, 65: WHEEL_DOWN}


def decode_input(data: str) -> tuple[list[str], str]:
    """Decode raw terminal input into scroll and quit events.

    Returns:
        The decoded events and any trailing incomplete escape sequence,
        which should be prepended to the next read
    """
    events: list[str] = []
    i = 0
    while i < len(data):
        char = data[i]
        if char == "\x03":
            events.append(QUIT)
            i += 1
            continue
        if char != "\x1b":
            i += 1
            continue

        match = SGR_MOUSE_RE.match(data, i)
        if match:
            button = int(match.group(1))
            if match.group(4) == "M" and button in WHEEL_BUTTONS:
                events.append(WHEEL_BUTTONS[button])
            i = match.end()
            continue

        rest = data[i:]
        if rest.startswith("\x1b[M"):
            # Legacy X10 report: ESC [ M followed by three bytes
            if len(rest) < 6:
                return events, rest
            button = ord(rest[3]) - 32
            if button in WHEEL_BUTTONS:
                events.append(WHEEL_BUTTONS[button])
            i += 6
            continue

        match = CSI_RE.match(data, i)
        if match:
            key = CSI_KEYS.get(match.group(2)) or CSI_KEYS.get(
                match.group(1).split(";")[0] + match.group(2)
            )
            if key:
                events.append(key)
            i = match.end()
            continue

        match = SS3_RE.match(data, i)
        if match:
            events.append(SS3_KEYS[match.group(1)])
            i = match.end()
            continue

        if INCOMPLETE_RE.fullmatch(rest):
            return events, rest
        i += 1

    return events, ""


def input_worker(
    fd: int,
    event_queue: "queue.Queue[str]",
    stop_event: threading.Event,
) -> None:
    """Read terminal input and queue decoded events until stopped."""
    pending = ""
    while not stop_event.is_set():
        ready, _, _ = select.select([fd], [], [], 0.2)
        if not ready:
            continue
        data = os.read(fd, 64)
        if not data:
            continue
        events, pending = decode_input(pending + data.decode("utf-8", errors="ignore"))
        for event in events:
            event_queue.put(event)


class TerminalRenderer:
    """Shows the feed buffer in a bordered, scrollable, mouse-enabled pane."""

    def __init__(
        self,
        buffer: FeedBuffer,
        title: str,
        console: Console | None = None,
        execution_id: str | None = None,
    ):
        self.buffer = buffer
        self.title = title
        self.console = console or Console()
        self.logger = create_execution_logger("terminal", execution_id)
        self.scroll_offset = 0
        self.events: "queue.Queue[str]" = queue.Queue()
        self._dirty = threading.Event()

    def request_redraw(self) -> None:
        """Schedule a redraw; safe to call from any thread."""
        self._dirty.set()

    def visible_height(self, height: int) -> int:
        return max(1, height - 2)

    def build_view(self, width: int, height: int) -> Panel:
        """Build the panel for the current buffer and scroll position."""
        rendered = self.buffer.render()
        try:
            text = Text.from_markup(rendered)
        except MarkupError as e:
            self.logger.error(f"Failed to render feed markup: {e}", error=str(e))
            text = Text(rendered)
        lines = text.wrap(self.console, max(1, width - 4))
        visible = self.visible_height(height)

        max_offset = max(0, len(lines) - visible)
        self.scroll_offset = min(max(0, self.scroll_offset), max_offset)

        window = lines[self.scroll_offset : self.scroll_offset + visible]
        return Panel(
            Text("\n").join(window),
            title=self.title,
            border_style="cyan",
            height=height,
        )

    def scroll(self, event: str, height: int) -> None:
        """Apply a scroll event to the offset; clamped on the next build."""
        page = self.visible_height(height)
        if event == UP:
            self.scroll_offset -= 1
        elif event == DOWN:
            self.scroll_offset += 1
        elif event == WHEEL_UP:
            self.scroll_offset -= WHEEL_STEP
        elif event == WHEEL_DOWN:
            self.scroll_offset += WHEEL_STEP
        elif event == PGUP:
            self.scroll_offset -= page
        elif event == PGDN:
            self.scroll_offset += page
        elif event == HOME:
            self.scroll_offset = 0
        elif event == END:
            self.scroll_offset = sys.maxsize
        self.scroll_offset = max(0, self.scroll_offset)

    def _open_terminal(self) -> tuple[int, list]:
        if not sys.stdin.isatty() or not self.console.is_terminal:
            raise TerminalError("Intel Feed needs an interactive terminal")
        try:
            fd = sys.stdin.fileno()
            old_settings = termios.tcgetattr(fd)
            tty.setcbreak(fd)
        except (termios.error, OSError, ValueError) as e:
            raise TerminalError(f"Failed to initialise terminal: {e}") from e
        return fd, old_settings

    def run(self, stop_event: threading.Event) -> None:
        """Run the UI loop until quit is requested or ``stop_event`` is set.

        Raises:
            TerminalError: If stdin/stdout is not a usable terminal
        """
        fd, old_settings = self._open_terminal()
        worker = threading.Thread(
            target=input_worker,
            args=(fd, self.events, stop_event),
            name="intel-feed-input",
            daemon=True,
        )

        self.console.file.write(MOUSE_ON)
        self.console.file.flush()
        self.logger.info("Terminal initialised")
        try:
            worker.start()
            size = self.console.size
            with Live(
                self.build_view(size.width, size.height),
                console=self.console,
                auto_refresh=False,
                screen=True,
            ) as live:
                while not stop_event.is_set():
                    redraw = self._dirty.wait(0.1)
                    self._dirty.clear()

                    size = self.console.size
                    while True:
                        try:
                            event = self.events.get_nowait()
                        except queue.Empty:
                            break
                        if event == QUIT:
                            stop_event.set()
                            break
                        self.scroll(event, size.height)
                        redraw = True

                    if redraw and not stop_event.is_set():
                        live.update(
                            self.build_view(size.width, size.height), refresh=True
                        )
        finally:
            stop_event.set()
            self.console.file.write(MOUSE_OFF)
            self.console.file.flush()
            termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)
            if worker.is_alive():
                worker.join(timeout=1)
            self.logger.info("Terminal restored")
