# db/settings_store.py

import json
import logging
from pathlib import Path

from db.database import write_json

logger = logging.getLogger("agenda.settings")


# One year ahead; larger windows overflow date arithmetic
MAX_DIAS_ESCOPO = 366

DEFAULT_SETTINGS = {
    "diasEscopo": 1,
    "senhaAdmin": "admin",
    "ocultarIgnorados": True,
}


class SettingsStore:
    """
    Admin settings kept in a single JSON file.

    Reads never fail: a missing, empty or corrupt file is replaced by the
    defaults, and a file missing any recognized key is completed with them.
    Writes are a shallow merge over the current content (last write wins).
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def get(self) -> dict:
        try:
            content = self.path.read_text(encoding="utf-8")
            if not content.strip():
                raise ValueError("empty settings file")
            current = json.loads(content)
            if not isinstance(current, dict):
                raise ValueError("settings file is not a JSON object")
        except (OSError, ValueError) as e:
            logger.warning(f"Recreating default settings at {self.path} ({e})")
            defaults = dict(DEFAULT_SETTINGS)
            write_json(self.path, defaults)
            return defaults

        missing = [k for k in DEFAULT_SETTINGS if k not in current]
        if missing:
            logger.info(f"Filling missing settings keys: {', '.join(missing)}")
            current = {**DEFAULT_SETTINGS, **current}
            write_json(self.path, current)

        return current

    def save(self, partial: dict) -> dict:
        updated = {**self.get(), **partial}
        write_json(self.path, updated)
        return updated

    def dias_escopo(self) -> int:
        try:
            days = int(self.get().get("diasEscopo") or 1)
        except (TypeError, ValueError, OverflowError):
            return 1
        return min(max(days, 1), MAX_DIAS_ESCOPO)
