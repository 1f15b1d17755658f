""" Project metadata read from pyproject.toml """

import logging
from pathlib import Path
from typing import Dict

import tomlkit

logger = logging.getLogger(__name__)

DEFAULT_PROJECT = "tankstats"
DEFAULT_VERSION = "0.0.0"


def find_pyproject(start: Path = None) -> Path:
    """ Walk up from the starting directory until a pyproject.toml is found """
    start = start or Path(__file__).resolve().parent
    for p in [start, *start.parents]:
        candidate = p / "pyproject.toml"
        if candidate.exists():
            return candidate
    return Path("pyproject.toml")


def load(path: Path = None) -> Dict:
    path = path or find_pyproject()
    try:
        return tomlkit.parse(path.read_text())
    except FileNotFoundError:
        logger.debug(f"pyproject.toml not found at {path}")
        return {}


_meta = load().get("project", {})

project: str = str(_meta.get("name", DEFAULT_PROJECT))
version: str = str(_meta.get("version", DEFAULT_VERSION))
