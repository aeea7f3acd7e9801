"""
Environment + project-root helpers.

Problems this module solves:
- Developers keep local knobs (log level, config path) in a repo-local `.env` file.
- The CLI and the simulator API are started from different working directories, so
  relative coin/track file paths must resolve against one stable root.

This module provides:
- `load_dotenv_if_present()`: one-time `.env` loading (never overrides existing env vars)
- `get_project_root()`: find the repo root (marker files, falling back to the CWD)
- `resolve_project_path()`: resolve relative paths against the project root
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv


_ROOT_MARKERS = (".env", ".git", "pyproject.toml")


def _is_project_root(path: Path) -> bool:
    return any((path / marker).exists() for marker in _ROOT_MARKERS)


@lru_cache
def get_project_root() -> Path:
    """Return the directory relative coin/track paths resolve against (cached).

    Order: `COINHUNT_PROJECT_ROOT`, the directory of `COINHUNT_ENV_FILE`, the nearest
    parent of the CWD holding `.env`, `.git` or `pyproject.toml`, then the CWD itself.
    """
    explicit_root = os.getenv("COINHUNT_PROJECT_ROOT")
    if explicit_root:
        return Path(explicit_root).expanduser().resolve()

    env_file = os.getenv("COINHUNT_ENV_FILE")
    if env_file:
        return Path(env_file).expanduser().resolve().parent

    cwd = Path.cwd().resolve()
    return next((p for p in (cwd, *cwd.parents) if _is_project_root(p)), cwd)


@lru_cache
def load_dotenv_if_present() -> Path | None:
    """Load `.env` once if present; returns the loaded env path (or None)."""
    explicit = os.getenv("COINHUNT_ENV_FILE")
    env_path = Path(explicit).expanduser().resolve() if explicit else get_project_root() / ".env"
    if not env_path.is_file():
        return None
    load_dotenv(dotenv_path=env_path, override=False)
    return env_path


def resolve_project_path(path: str | Path) -> Path:
    """Resolve a possibly-relative path against the project root."""
    p = Path(path).expanduser()
    if p.is_absolute():
        return p
    return (get_project_root() / p).resolve()
