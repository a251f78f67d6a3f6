"""Pluggable secondary indexing of freshly produced pages."""

import asyncio
import json
import logging
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from typing import Any

from bs4 import BeautifulSoup, CData, NavigableString, Tag
from pydantic import BaseModel

from tp_sync.config import IndexerConfig
from tp_sync.storage.artifacts import append_line, read_json

logger = logging.getLogger(__name__)

SECONDARY_INDEX_FILE = "index.jsonl"


class IndexContext(BaseModel):
    """Where the page handed to an indexer lives."""

    output_dir: Path
    base_dir: Path
    component: str
    page_number: int
    filename: str

    @property
    def url_path(self) -> str:
        """Site-absolute URL of the output directory."""
        try:
            relative = self.output_dir.resolve().relative_to(self.base_dir.resolve())
        except ValueError:
            return "/"
        parts = relative.as_posix()
        return "/" if parts == "." else f"/{parts}/"


IndexRecord = dict[str, Any]
Indexer = Callable[[BeautifulSoup, dict, IndexContext], IndexRecord | list[IndexRecord] | None]


def extract_plain_text(node: Tag, exclude: str = "style,script") -> str:
    """Text content of ``node`` without the elements matching ``exclude``."""
    content: list[str] = []
    _collect_text(node, content, exclude)
    return "".join(content)


def _collect_text(node: Tag, content: list[str], exclude: str) -> None:
    for child in node.children:
        if isinstance(child, Tag):
            if not child.css.match(exclude):
                _collect_text(child, content, exclude)
        elif type(child) in (NavigableString, CData):
            content.append(str(child))


class SelectorIndexer:
    """Index the text of all elements matching a CSS selector list."""

    def __init__(
        self,
        selectors: str,
        tag: str | None = None,
        allow_html: bool = False,
        exclude: str = "style,script",
    ):
        self.selectors = selectors
        self.tag = tag
        self.allow_html = allow_html
        self.exclude = exclude

    @classmethod
    def from_config(cls, config: IndexerConfig) -> "SelectorIndexer":
        return cls(config.selectors, config.tag, config.allow_html, config.exclude)

    def __call__(
        self, fragment: BeautifulSoup, page: dict, context: IndexContext
    ) -> IndexRecord | None:
        matches = fragment.select(self.selectors)
        if not matches:
            return None
        if self.allow_html:
            parts = [str(elem) for elem in matches]
        else:
            parts = [" ".join(extract_plain_text(elem, self.exclude).split()) for elem in matches]
        text = " ".join(part for part in parts if part)
        if not text:
            return None

        record: IndexRecord = {
            "url": context.url_path,
            "file": context.filename,
            "component": context.component,
            "page": context.page_number,
            "content": text,
        }
        if page.get("id"):
            record["id"] = page["id"]
        if self.tag:
            record["tag"] = self.tag
        return record


class SecondaryIndex:
    """Append records produced by per-component indexers to ``index.jsonl``."""

    def __init__(self, indexers: Mapping[str, Indexer]):
        self.indexers = dict(indexers)
        self._lock = asyncio.Lock()

    def __bool__(self) -> bool:
        return bool(self.indexers)

    async def run(
        self, output_dir: Path, base_dir: Path, components: Iterable[str] | None = None
    ) -> int:
        """Index the stored pages of each configured component; returns records written.

        With ``components`` given, only those components are indexed.
        """
        selected = None if components is None else set(components)
        index_file = Path(base_dir) / SECONDARY_INDEX_FILE
        written = 0
        logger.debug("Indexing files in %s", output_dir)
        for component, indexer in self.indexers.items():
            if selected is not None and component not in selected:
                continue
            page_number = 1
            while True:
                filename = f"{component}-{page_number}.json"
                page_file = Path(output_dir) / filename
                if not page_file.exists():
                    break
                page = await read_json(page_file)
                fragment = BeautifulSoup(page.get("content") or "", "html.parser")
                context = IndexContext(
                    output_dir=Path(output_dir),
                    base_dir=Path(base_dir),
                    component=component,
                    page_number=page_number,
                    filename=filename,
                )
                entries = indexer(fragment, page, context)
                if entries is None:
                    entries = []
                elif not isinstance(entries, list):
                    entries = [entries]
                async with self._lock:
                    for entry in entries:
                        await append_line(index_file, json.dumps(entry, ensure_ascii=False))
                written += len(entries)
                page_number += 1
        return written
