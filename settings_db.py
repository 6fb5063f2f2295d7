"""Persisted defaults for update-repos (last root, name prefix)."""
from __future__ import annotations

import os
import sqlite3
from pathlib import Path
from typing import Optional

SETTINGS_ENV = "UPDATE_REPOS_SETTINGS"
ROOT_KEY = "root_directory"
PREFIX_KEY = "name_prefix"


def default_settings_path() -> Path:
    override = os.environ.get(SETTINGS_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".update-repos" / "settings.db"


class SettingsDB:
    """Key/value settings stored in SQLite."""

    def __init__(self, db_path: Path | None = None) -> None:
        """Open (and create if needed) the settings database.

        Args:
            db_path: Path to database file. Defaults to $UPDATE_REPOS_SETTINGS
                or ~/.update-repos/settings.db
        """
        self.db_path = db_path or default_settings_path()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                "CREATE TABLE IF NOT EXISTS settings (key TEXT PRIMARY KEY, value TEXT NOT NULL)"
            )

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        with sqlite3.connect(self.db_path) as conn:
            row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
        return row[0] if row else default

    def set(self, key: str, value: str) -> None:
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                "INSERT INTO settings (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, value),
            )

    def get_root(self) -> Optional[Path]:
        value = self.get(ROOT_KEY)
        return Path(value) if value else None

    def set_root(self, path: Path) -> None:
        self.set(ROOT_KEY, str(path))

    def get_prefix(self) -> Optional[str]:
        return self.get(PREFIX_KEY)

    def set_prefix(self, prefix: str) -> None:
        self.set(PREFIX_KEY, prefix)
