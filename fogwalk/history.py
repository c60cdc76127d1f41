"""Game state persistence in SQLite."""

import json
import sqlite3
from datetime import datetime
from typing import Optional

from .config import CONFIG
from .models import GameState


class GameStore:
    """Stores the game state as one JSON document under a fixed key"""

    def __init__(self, db_path: Optional[str] = None, key: Optional[str] = None):
        self.key = key or CONFIG["app_state_key"]
        self.conn = sqlite3.connect(db_path or CONFIG["db_path"], check_same_thread=False)
        self._init_schema()

    def _init_schema(self):
        """Create database tables"""
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS app_state (
                key TEXT PRIMARY KEY,
                document TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
        self.conn.commit()

    def load_raw(self) -> Optional[dict]:
        cursor = self.conn.execute(
            "SELECT document FROM app_state WHERE key = ?", (self.key,)
        )
        row = cursor.fetchone()
        if not row:
            return None
        try:
            return json.loads(row[0])
        except json.JSONDecodeError:
            print(f"Saved state under {self.key} is unreadable, starting fresh")
            return None

    def load(self) -> GameState:
        """Saved state with defaults for anything missing"""
        return GameState.from_dict(self.load_raw())

    def save(self, state: GameState):
        """Write the whole state document"""
        now = datetime.now().isoformat()
        self.conn.execute("""
            INSERT INTO app_state (key, document, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                document = excluded.document,
                updated_at = excluded.updated_at
        """, (self.key, json.dumps(state.to_dict()), now))
        self.conn.commit()

    def reset(self) -> bool:
        """Erase the saved state. Returns True if there was one."""
        cursor = self.conn.execute("DELETE FROM app_state WHERE key = ?", (self.key,))
        self.conn.commit()
        return cursor.rowcount > 0

    def close(self):
        self.conn.close()
