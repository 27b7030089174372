"""Project-relative path resolution for config and preference files."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, Optional

ROOT_MARKERS = ("config.yaml", "pyproject.toml", ".git")


def _walk_up(start: Path) -> Iterable[Path]:
    yield start
    yield from start.parents


def find_project_root(start: Optional[Path] = None) -> Path:
    """Directory holding config.yaml (or pyproject/.git); MAPRATES_ROOT wins when set."""
    override = os.getenv("MAPRATES_ROOT")
    if override:
        root = Path(override).expanduser().resolve()
        if root.is_dir():
            return root

    origins = [Path(start).resolve()] if start is not None else []
    origins += [Path.cwd(), Path(__file__).resolve().parent]
    for origin in origins:
        for directory in _walk_up(origin):
            if any((directory / marker).exists() for marker in ROOT_MARKERS):
                return directory
    return Path.cwd()


def resolve_project_path(path_str: str, root: Optional[Path] = None) -> Path:
    """Absolute paths pass through; relative ones are anchored at the project root."""
    path = Path(path_str).expanduser()
    if path.is_absolute():
        return path
    return ((root or find_project_root()) / path).resolve()
