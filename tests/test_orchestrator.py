"""Tests for the synchronizer entry points."""

import asyncio
import json

from rich.console import Console

from tp_sync.orchestrator import CATALOG_FILE, Synchronizer
from tp_sync.transform import PageContext

from .conftest import parts_handler

VIEW_PAGE = """<html><body>
<pb-document id="doc" path="works/{n}.xml"></pb-document>
<pb-view id="main" src="doc"></pb-view>
</body></html>"""


def serve_document(remote, n: int) -> None:
    remote.json(f"/api/document/works/{n}.xml/meta", {"lastModified": "2024-01-01"})
    remote.route(
        f"/api/parts/works/{n}.xml/json", parts_handler([{"content": f"<p>doc {n}</p>"}])
    )


async def test_fetch_is_cached(synchronizer, remote):
    remote.text("/api/version", "1.0")

    assert await synchronizer.fetch("api/version") == "1.0"
    assert await synchronizer.fetch("api/version") == "1.0"

    assert len(remote.requests) == 1


async def test_failed_fetch_returns_empty_text(synchronizer, remote):
    assert await synchronizer.fetch("api/missing") == ""
    assert await synchronizer.fetch("api/missing") == ""
    assert len(remote.requests) == 2


async def test_sync_site_transforms_every_page(synchronizer, remote, site_dir):
    for n in (1, 2):
        serve_document(remote, n)
        page_dir = site_dir / f"doc{n}"
        page_dir.mkdir()
        (page_dir / "index.html").write_text(VIEW_PAGE.format(n=n))
    (site_dir / "plain.html").write_text("<html><body>static</body></html>")
    (site_dir / "collections").mkdir()
    (site_dir / "collections" / "1.html").write_text(VIEW_PAGE.format(n=9))

    result = await synchronizer.sync_site(site_dir)

    assert result.errors == []
    assert len(result.pages) == 2
    assert result.views_refreshed == 2
    for n in (1, 2):
        stored = json.loads((site_dir / f"doc{n}" / "main-1.json").read_text())
        assert stored["content"] == f"<p>doc {n}</p>"
    assert not remote.requests_to("/api/document/works/9.xml")


async def test_page_errors_are_collected(synchronizer, remote, site_dir):
    serve_document(remote, 1)
    (site_dir / "good.html").write_text(VIEW_PAGE.format(n=1))
    (site_dir / "bad.html").write_text(VIEW_PAGE.format(n=2))

    result = await synchronizer.sync_site(site_dir)

    assert len(result.errors) == 1
    page, message = result.errors[0]
    assert page.endswith("bad.html")
    assert "works/2.xml" in message
    assert (site_dir / "main-1.json").exists()


async def test_collections_write_catalog(remote, config, site_dir):
    remote.text(
        "/api/collection/",
        '<div class="document"><a href="a.xml">A</a></div>',
        headers={"pb-total": "1"},
    )
    remote.json("/api/document/a.xml/meta", {"odd": "dta.odd", "template": "letter.html"})
    config.collections = True

    async with Synchronizer(config, Console(quiet=True), transport=remote.transport) as sync:
        result = await sync.sync_site(site_dir)

    assert result.documents == 1
    catalog = json.loads((site_dir / CATALOG_FILE).read_text())
    assert catalog == {
        "letter": [{"path": "a.xml", "odd": "dta", "view": "div", "template": "letter"}]
    }
    assert (site_dir / "collections" / "1.html").exists()


async def test_cached_catalog_skips_crawl(remote, config, site_dir):
    remote.text("/api/collection/", '<div class="document"><a href="a.xml">A</a></div>')
    config.collections = True

    async with Synchronizer(config, Console(quiet=True), transport=remote.transport) as sync:
        first = await sync.fetch_collections(site_dir)
        requests = len(remote.requests)
        second = await sync.fetch_collections(site_dir)
        assert len(remote.requests) == requests

        (site_dir / "collections" / "1.html").unlink()
        third = await sync.fetch_collections(site_dir)
        assert len(remote.requests) > requests

    assert first == second == third


async def test_collections_off_by_default(synchronizer, remote, site_dir):
    assert await synchronizer.fetch_collections(site_dir) == {}
    await synchronizer.sync_site(site_dir)
    assert not (site_dir / CATALOG_FILE).exists()
    assert remote.requests == []


async def test_disabled_does_nothing(remote, config, site_dir):
    config.disabled = True
    config.collections = True
    (site_dir / "index.html").write_text(VIEW_PAGE.format(n=1))

    async with Synchronizer(config, Console(quiet=True), transport=remote.transport) as sync:
        assert await sync.fetch("api/version") == ""
        assert await sync.fetch_collections(site_dir) == {}
        result = await sync.sync_site(site_dir)

    assert result.pages == []
    assert remote.requests == []


async def test_summary_prints(synchronizer, remote, site_dir):
    serve_document(remote, 1)
    (site_dir / "index.html").write_text(VIEW_PAGE.format(n=1))
    console = Console(record=True, width=100)
    synchronizer.console = console

    result = await synchronizer.sync_site(site_dir)
    synchronizer.print_summary(result)

    output = console.export_text()
    assert "Synchronization complete" in output
    assert "Views refreshed" in output


async def test_add_transform_goes_through_the_queue(synchronizer, remote, site_dir):
    jobs = []
    for n in (1, 2, 3):
        serve_document(remote, n)
        context = PageContext(output_path=site_dir / f"doc{n}" / "index.html", base_dir=site_dir)
        jobs.append(synchronizer.add_transform(VIEW_PAGE.format(n=n), context))

    results = await asyncio.gather(*jobs)

    assert results == [VIEW_PAGE.format(n=n) for n in (1, 2, 3)]
    assert synchronizer.queue.completed == 3
    assert synchronizer.queue.peak_active <= synchronizer.config.concurrency
    assert synchronizer.result.views_refreshed == 3
