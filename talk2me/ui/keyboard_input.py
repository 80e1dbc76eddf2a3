"""Line-based keyboard commands for manual turn control."""

import threading
from typing import Optional, Callable
import logging

logger = logging.getLogger(__name__)


class LineInputHandler:
    """Reads commands from stdin on a background thread.

    Every line is reduced to its first character (an empty line becomes " ")
    and handed to the callback, which returns False to stop reading.
    """

    def __init__(self, callback: Callable[[str], bool], prompt: str = "> ",
                 read_line: Callable[[str], str] = input):
        """Initialize input handler.

        Args:
            callback: Function that takes a key and returns True to continue, False to quit
            prompt: Prompt shown before each line
            read_line: Line reader, input() unless replaced
        """
        self.callback = callback
        self.prompt = prompt
        self.read_line = read_line
        self.running = False
        self.thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Start the input handler."""
        if self.running:
            return

        self.running = True
        self.thread = threading.Thread(target=self._input_loop, daemon=True)
        self.thread.name = "LineInputThread"
        self.thread.start()
        logger.info("Line input handler started")

    def stop(self) -> None:
        """Stop the input handler."""
        # input() cannot be interrupted, the daemon thread exits with the process
        self.running = False
        logger.info("Line input handler stopped")

    def _input_loop(self) -> None:
        while self.running:
            try:
                user_input = self.read_line(self.prompt).strip().lower()
            except (EOFError, KeyboardInterrupt):
                break

            key = user_input[0] if user_input else " "
            logger.debug(f"Command key: '{key}'")
            if not self.callback(key):
                break
        self.running = False
        logger.info("Line input loop ended")
