"""Remote-control command relay: a last-write-wins mailbox."""

import threading
from typing import Optional


class CommandMailbox:
    """Holds at most one pending command.

    ``post`` overwrites whatever is pending; ``take`` returns it and clears
    the slot, so each command is delivered at most once.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._command: Optional[str] = None

    def post(self, command: Optional[str]) -> None:
        with self._lock:
            self._command = command

    def take(self) -> Optional[str]:
        with self._lock:
            command, self._command = self._command, None
        return command

    def peek(self) -> Optional[str]:
        with self._lock:
            return self._command
