"""Decide whether a view's stored pages are still current."""

import logging
import re
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

logger = logging.getLogger(__name__)


class Staleness(str, Enum):
    REFRESH = "refresh"
    REUSE = "reuse"


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; values without offset are local time."""
    parsed = datetime.fromisoformat(value.strip())
    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed


def check_staleness(last_modified: str | None, artifact: Path) -> Staleness:
    """Compare the remote modification time with the first page on disk.

    The stored pages are reused unless the remote document is strictly
    newer than the artifact.
    """
    if not artifact.exists():
        return Staleness.REFRESH
    if not last_modified:
        return Staleness.REFRESH
    try:
        remote_time = parse_timestamp(last_modified)
    except ValueError:
        logger.debug("Unparseable lastModified %r", last_modified)
        return Staleness.REFRESH

    local_time = datetime.fromtimestamp(artifact.stat().st_mtime, tz=timezone.utc)
    if remote_time > local_time:
        return Staleness.REFRESH
    return Staleness.REUSE


def carry_forward(old_index: dict[str, str], component: str) -> dict[str, str]:
    """Entries of a previous index that point at pages of ``component``."""
    pattern = re.compile(rf"{re.escape(component)}-\d+\.json")
    return {key: name for key, name in old_index.items() if pattern.fullmatch(name)}
