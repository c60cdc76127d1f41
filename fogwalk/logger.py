"""Event log for Fog of Walk."""

import json
from collections import deque
from datetime import datetime
from typing import Optional, Callable

from .config import CONFIG


class Logger:
    """Human-readable trace of engine decisions.

    Lines go to stdout, an optional log file and an optional callback
    (the debug GUI). The most recent entries are kept for UI snapshots.
    """

    def __init__(self, log_path: Optional[str] = None, callback: Optional[Callable] = None,
                 echo: bool = True, max_entries: Optional[int] = None):
        self.log_path = log_path
        self.callback = callback
        self.echo = echo
        if max_entries is None:
            max_entries = CONFIG["event_log_size"]
        self.entries: deque = deque(maxlen=max_entries)
        self.file = None
        if log_path:
            self.file = open(log_path, "a")
            self._write_header()

    def _write_header(self):
        if self.file:
            self.file.write(f"\n{'='*60}\n")
            self.file.write(f"Fog of Walk Log - {datetime.now().isoformat()}\n")
            self.file.write(f"{'='*60}\n\n")
            self.file.flush()

    def log(self, message: str, data: Optional[dict] = None):
        """Log a message with optional structured data"""
        timestamp = datetime.now().isoformat()
        line = f"[{timestamp}] {message}"
        if data:
            line += f" | {json.dumps(data, default=str)}"
        self.entries.append({"timestamp": timestamp, "message": message, "data": data})
        if self.echo:
            print(line)
        if self.file:
            self.file.write(line + "\n")
            self.file.flush()
        if self.callback:
            self.callback(message, data)

    def messages(self) -> list[str]:
        return [e["message"] for e in self.entries]

    def clear(self):
        self.entries.clear()

    def close(self):
        if self.file:
            self.file.close()
            self.file = None
