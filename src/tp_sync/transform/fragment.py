"""Link and image rewriting for fetched document fragments."""

from bs4 import BeautifulSoup
from pydantic import BaseModel

from tp_sync.utils.url_utils import (
    is_local_reference,
    is_remote_url,
    make_absolute,
    to_site_path,
)


class TransformedFragment(BaseModel):
    """A rewritten fragment and the element ids found inside it."""

    content: str
    ids: list[str] = []


def parse_fragment(content: str) -> BeautifulSoup:
    """Parse fragment markup without wrapping it in html/body elements."""
    return BeautifulSoup(content, "html.parser")


def transform_fragment(
    content: str, base_uri: str, remote: str, images: list[str]
) -> TransformedFragment:
    """Rewrite links pointing back into the remote to root-relative paths.

    Image sources are appended to ``images`` for a later download; nothing
    is fetched here.
    """
    soup = parse_fragment(content)

    for img in soup.select("img[src]"):
        images.append(str(img["src"]))

    for link in soup.select("a[href]"):
        href = str(link["href"])
        if is_local_reference(href):
            continue
        absolute = make_absolute(base_uri, href)
        if is_remote_url(absolute, remote):
            link["href"] = to_site_path(absolute, remote)

    ids: list[str] = []
    seen: set[str] = set()
    for elem in soup.select("[id]"):
        elem_id = str(elem["id"])
        if elem_id not in seen:
            seen.add(elem_id)
            ids.append(elem_id)

    return TransformedFragment(content=str(soup), ids=ids)
