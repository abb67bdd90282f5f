# auth_store.py

import json
from pathlib import Path

from db.database import delete_file, read_json, write_json


class TokenStore:
    """
    On-disk store for the operator's Google token (authorized-user JSON).
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> dict | None:
        """
        None when no token was saved yet.
        ValueError when the file is unreadable or not a JSON object.
        """
        info = read_json(self.path)
        if info is None:
            return None
        if not isinstance(info, dict):
            raise ValueError("token file is not a JSON object")
        return info

    def save(self, credentials) -> None:
        # Credentials.to_json() already drops empty fields
        write_json(self.path, json.loads(credentials.to_json()))

    def delete(self) -> bool:
        return delete_file(self.path)
