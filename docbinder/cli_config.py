"""Locate and load the .env file used by the CLI entrypoints."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

CONFIG_DIR = Path.home() / ".config" / "docbinder"
CONFIG_ENV_FILE = CONFIG_DIR / ".env"
EXAMPLE_ENV_FILE = Path(__file__).parent.parent / ".env.example"


def load_config(
    *,
    config_dir: Path,
    config_env_file: Path,
    cwd: Path,
    load_env: Callable[[Path], bool],
    copy_file: Callable[[Path, Path], str],
    example_file: Optional[Path] = None,
) -> Optional[Path]:
    """Load the first .env found and return its path.

    Search order:
    1. .env in the current working directory
    2. ``config_env_file`` (``~/.config/docbinder/.env`` for the CLI)

    When neither exists the bundled .env.example is copied to
    ``config_env_file`` as a starting point. Returns None when nothing was
    loaded.
    """
    for candidate in (cwd / ".env", config_env_file):
        if candidate.is_file():
            load_env(candidate)
            return candidate

    example = example_file or EXAMPLE_ENV_FILE
    if not example.is_file():
        return None

    try:
        config_dir.mkdir(parents=True, exist_ok=True)
        copy_file(example, config_env_file)
    except OSError as exc:
        logging.debug("Could not create %s: %s", config_env_file, exc)
        return None

    logging.info(
        "Created config file at %s from .env.example. "
        "Edit it to set GEMINI_API_KEY and fetch strategies.",
        config_env_file,
    )
    load_env(config_env_file)
    return config_env_file
