"""Local file writes for artifacts, indexes and downloads."""

import json
import uuid
from pathlib import Path
from typing import Any

import aiofiles  # type: ignore[import-untyped]
import aiofiles.os  # type: ignore[import-untyped]


async def write_atomic(path: Path, data: str | bytes) -> None:
    """Write ``data`` to ``path`` through a temporary file and a rename.

    Readers either see the previous file or the complete new one.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
    try:
        if isinstance(data, bytes):
            async with aiofiles.open(tmp, "wb") as f:
                await f.write(data)
        else:
            async with aiofiles.open(tmp, "w", encoding="utf-8") as f:
                await f.write(data)
        await aiofiles.os.replace(tmp, path)
    except BaseException:
        if tmp.exists():
            tmp.unlink()
        raise


async def write_json(path: Path, data: Any) -> None:
    """Serialize ``data`` with a 4-space indent and write it atomically."""
    await write_atomic(path, json.dumps(data, indent=4, ensure_ascii=False))


async def read_json(path: Path) -> Any:
    async with aiofiles.open(path, encoding="utf-8") as f:
        return json.loads(await f.read())


async def append_line(path: Path, line: str) -> None:
    """Append one line to a text file, creating it if needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    async with aiofiles.open(path, "a", encoding="utf-8") as f:
        await f.write(line.rstrip("\n") + "\n")
