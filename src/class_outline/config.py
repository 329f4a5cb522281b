"""Configuration constants for class-outline."""

import os
from pathlib import Path

# API key location for the REST store. First file found is used.
API_KEY_FILES: list[Path] = [
    Path("~/.config/class-outline-api-key.txt").expanduser(),
    Path("~/.config/secret/class-outline-api-key.txt").expanduser(),
]

# Directory with the local database. First directory which is found is used.
DATA_DIRECTORIES: list[Path] = [
    Path("~/.local/share/class-outline").expanduser(),
    Path("~/.class-outline").expanduser(),
]

DATABASE_FILENAME = "outline.db"

# Table exposed by the PostgREST endpoint.
REST_TABLE = "class_nodes"

# Seconds before a REST request is abandoned.
REST_TIMEOUT = 10.0

BACKENDS = ("sqlite", "rest")


def resolve_data_directory() -> Path:
    """Return the data directory from the environment or the first existing default."""
    env = os.environ.get("CLASS_OUTLINE_DATA_DIR")
    if env:
        return Path(env).expanduser()
    for candidate in DATA_DIRECTORIES:
        if candidate.is_dir():
            return candidate
    return DATA_DIRECTORIES[0]


def resolve_backend() -> str:
    backend = os.environ.get("CLASS_OUTLINE_BACKEND", "sqlite").lower()
    if backend not in BACKENDS:
        msg = f"Unknown CLASS_OUTLINE_BACKEND {backend!r}, expected one of {BACKENDS!r}"
        raise RuntimeError(msg)
    return backend


def resolve_rest_url() -> str:
    url = os.environ.get("CLASS_OUTLINE_REST_URL")
    if not url:
        msg = "CLASS_OUTLINE_REST_URL is not set"
        raise RuntimeError(msg)
    return url.rstrip("/")


def resolve_api_key() -> str:
    """Return the REST API key from the environment or the first key file found."""
    env = os.environ.get("CLASS_OUTLINE_API_KEY")
    if env:
        return env.strip()
    for key_path in API_KEY_FILES:
        try:
            return key_path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            pass
    msg = f"Cannot find class-outline API key, was looking at {API_KEY_FILES!r}"
    raise RuntimeError(msg)
