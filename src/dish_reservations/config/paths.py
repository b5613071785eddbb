from __future__ import annotations

from pathlib import Path


def repo_root() -> Path:
    # .../src/dish_reservations/config/paths.py -> repo root is 3 parents up
    return Path(__file__).resolve().parents[3]


def env_file_path() -> Path:
    """
    Returns the .env file to read settings from.

    - A .env in the current working directory wins (CI jobs run from a checkout).
    - Otherwise the one at the repo root.
    """
    local = Path.cwd() / ".env"
    if local.is_file():
        return local
    return repo_root() / ".env"


def artifacts_path(directory: str | Path) -> Path:
    """Resolves the artifacts directory relative to the working directory."""
    p = Path(directory)
    if not p.is_absolute():
        p = Path.cwd() / p
    return p
