"""Fingerprint index mapping request parameters to page artifacts."""

import json
import logging
from collections.abc import Mapping
from pathlib import Path

from tp_sync.storage.artifacts import read_json, write_json

logger = logging.getLogger(__name__)

INDEX_FILE = "index.json"
OWNERS_FILE = ".index-views.json"


def fingerprint(params: Mapping[str, str]) -> str:
    """Canonical key for a parameter set: sorted ``key=value`` pairs joined by ``&``."""
    return "&".join(f"{key}={params[key]}" for key in sorted(params))


def merge_index(carried: Mapping[str, str], fresh: Mapping[str, str]) -> dict[str, str]:
    """Combine carried-forward and newly produced entries; new entries win."""
    merged = dict(carried)
    merged.update(fresh)
    return merged


class IndexStore:
    """Load and save the ``index.json`` of an output directory.

    A sidecar file records the page each component was produced for, so
    pages sharing a directory keep each other's entries.
    """

    def __init__(self, filename: str = INDEX_FILE, owners_filename: str = OWNERS_FILE):
        self.filename = filename
        self.owners_filename = owners_filename

    def path_for(self, output_dir: Path) -> Path:
        return Path(output_dir) / self.filename

    async def load(self, output_dir: Path) -> dict[str, str]:
        """Previous index of ``output_dir``; empty if missing or unreadable."""
        path = self.path_for(output_dir)
        if not path.exists():
            return {}
        try:
            data = await read_json(path)
        except (OSError, json.JSONDecodeError):
            logger.warning("Ignoring unreadable index %s", path)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed index %s", path)
            return {}
        return {str(k): str(v) for k, v in data.items()}

    async def save(self, output_dir: Path, mapping: Mapping[str, str]) -> Path:
        """Replace the index of ``output_dir`` with ``mapping``."""
        path = self.path_for(output_dir)
        await write_json(path, dict(mapping))
        logger.debug("Wrote %d index entries to %s", len(mapping), path)
        return path

    async def load_owners(self, output_dir: Path) -> dict[str, str]:
        """Which page of ``output_dir`` each indexed component belongs to."""
        path = Path(output_dir) / self.owners_filename
        if not path.exists():
            return {}
        try:
            data = await read_json(path)
        except (OSError, json.JSONDecodeError):
            logger.warning("Ignoring unreadable view owners %s", path)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items()}

    async def save_owners(self, output_dir: Path, owners: Mapping[str, str]) -> None:
        await write_json(Path(output_dir) / self.owners_filename, dict(owners))
