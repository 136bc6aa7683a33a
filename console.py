"""
console.py

The local display surface shared by every thread of the process.

Handlers, the acceptor and the operator's own input loop all write to the
same terminal. Each write goes through one lock so lines coming from
different threads never interleave halfway.
"""

import sys
import threading

PROMPT = "> "
CLEAR_SCREEN = "\033[2J\033[H"


class Console:
    """A line-oriented, thread-safe wrapper around an output stream."""
    def __init__(self, out=None):
        self.out = out if out is not None else sys.stdout
        self._lock = threading.Lock()

    def write(self, text=""):
        """Writes one line."""
        with self._lock:
            self.out.write(f"{text}\n")
            self.out.flush()

    def prompt(self):
        """Writes the input prompt without a line break."""
        with self._lock:
            self.out.write(PROMPT)
            self.out.flush()

    def clear(self):
        """Clears the terminal screen."""
        with self._lock:
            self.out.write(CLEAR_SCREEN)
            self.out.flush()


class HostConsole:
    """
    The server operator, seen as the issuer of commands.

    It answers to the same `reply` interface as a remote Session, so the
    command dispatcher can treat both callers alike; only the host may run
    the administrative commands.
    """
    is_host = True

    def __init__(self, console):
        self.console = console

    def reply(self, text):
        self.console.write(text)
