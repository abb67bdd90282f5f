# db/database.py

import json
from pathlib import Path


# Every persisted file is one human-readable JSON document.
# There is no cache: each call goes to disk, so hand edits apply on the next request.

def read_json(path: Path):
    """
    Returns the decoded document, or None when the file does not exist.
    Raises ValueError (json.JSONDecodeError) on malformed content.
    """
    path = Path(path)
    if not path.exists():
        return None

    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def write_json(path: Path, data) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


def delete_file(path: Path) -> bool:
    path = Path(path)
    try:
        path.unlink()
        return True
    except FileNotFoundError:
        return False
