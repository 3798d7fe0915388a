"""
DualSolver — Local JSON storage for the project, settings and history.

Data is persisted in ``<project>/data/dualsolver.json``.
"""

import json
import os
import time
import uuid
from datetime import datetime

from dualsolver.project import Project

_DATA_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "data")
_DATA_FILE = os.path.join(_DATA_DIR, "dualsolver.json")

_HISTORY_LIMIT = 100

# ── Default settings ────────────────────────────────────────────────────
DEFAULT_SETTINGS = {
    "theme": "dark",
    "display_precision": 6,    # significant digits in the variable list
    "show_graph": True,        # show the convergence graph after a solve
}


def _ensure_dir() -> None:
    os.makedirs(_DATA_DIR, exist_ok=True)


def _empty_db() -> dict:
    return {
        "settings": dict(DEFAULT_SETTINGS),
        "project": Project().to_dict(),
        "history": [],
    }


def _load_db() -> dict:
    _ensure_dir()
    if os.path.exists(_DATA_FILE):
        try:
            with open(_DATA_FILE, "r", encoding="utf-8") as f:
                db = json.load(f)
        except (json.JSONDecodeError, OSError):
            return _empty_db()
        if isinstance(db, dict):
            merged = _empty_db()
            merged.update(db)
            return merged
    return _empty_db()


def _save_db(db: dict) -> None:
    _ensure_dir()
    with open(_DATA_FILE, "w", encoding="utf-8") as f:
        json.dump(db, f, indent=2, ensure_ascii=False)


# ── Settings ─────────────────────────────────────────────────────────────

def get_settings() -> dict:
    """Return the settings merged over the defaults."""
    merged = dict(DEFAULT_SETTINGS)
    merged.update(_load_db().get("settings", {}))
    return merged


def save_settings(settings: dict) -> None:
    db = _load_db()
    db["settings"] = settings
    _save_db(db)


# ── Project ──────────────────────────────────────────────────────────────

def load_project() -> Project:
    """Return the saved project, or an empty one if none is stored."""
    data = _load_db().get("project")
    if not data:
        return Project()
    try:
        return Project.from_dict(data)
    except (TypeError, ValueError):
        return Project()


def save_project(project: Project) -> None:
    db = _load_db()
    db["project"] = project.to_dict()
    _save_db(db)


def export_project(project: Project, path: str) -> None:
    """Write *project* to an arbitrary JSON file."""
    with open(path, "w", encoding="utf-8") as f:
        json.dump(project.to_dict(), f, indent=2, ensure_ascii=False)


def import_project(path: str) -> Project:
    """Read a project previously written by ``export_project``.

    Raises ValueError if the file is not a valid project.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Not a project file: {e}") from e
    if not isinstance(data, dict) or "sourceCode" not in data:
        raise ValueError("Not a project file: 'sourceCode' is missing.")
    try:
        return Project.from_dict(data)
    except TypeError as e:
        raise ValueError(f"Not a project file: {e}") from e


# ── History ──────────────────────────────────────────────────────────────

def add_history(source_code: str, ok: bool, message: str) -> str:
    """Record a calculation (newest first).  Returns the record id."""
    db = _load_db()
    record = {
        "id": uuid.uuid4().hex,
        "source_code": source_code,
        "ok": ok,
        "message": message,
        "timestamp": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        "epoch": time.time(),
    }
    db["history"].insert(0, record)
    db["history"] = db["history"][:_HISTORY_LIMIT]
    _save_db(db)
    return record["id"]


def get_history() -> list[dict]:
    return _load_db().get("history", [])


def delete_history_item(record_id: str) -> None:
    db = _load_db()
    db["history"] = [r for r in db["history"] if r.get("id") != record_id]
    _save_db(db)


def clear_history() -> None:
    db = _load_db()
    db["history"] = []
    _save_db(db)


def clear_all_data() -> None:
    """Reset settings, project and history."""
    _save_db(_empty_db())
