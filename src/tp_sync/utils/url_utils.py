"""URL manipulation utilities."""

from pathlib import Path
from urllib.parse import unquote, urljoin, urlparse

from tp_sync.errors import UnsafePathError

_UNTOUCHED_SCHEMES = ("#", "mailto:", "tel:", "javascript:", "data:")


def is_remote_url(url: str, remote: str) -> bool:
    """Check whether an absolute URL lies under the remote base URL."""
    return url.startswith(remote)


def make_absolute(base_url: str, href: str) -> str:
    """Convert a potentially relative URL to absolute."""
    return urljoin(base_url, href)


def is_local_reference(href: str) -> bool:
    """In-page anchors and non-HTTP schemes are never rewritten."""
    return href.strip().lower().startswith(_UNTOUCHED_SCHEMES)


def to_site_path(url: str, remote: str) -> str:
    """Site-absolute path of a URL under ``remote``, relative to the remote base.

    Query and fragment are kept: ``<remote>doc?id=3`` becomes ``/doc?id=3``.
    """
    return "/" + url[len(remote):] if url.startswith(remote) else url


def download_target(src: str, remote: str, output_root: Path) -> Path:
    """Local path for a downloaded resource referenced as ``src``.

    Relative references keep their own path below ``output_root``; absolute
    ones under the remote are made relative to the remote base first.
    """
    parsed = urlparse(src)
    if parsed.scheme or parsed.netloc:
        path = src[len(remote):] if src.startswith(remote) else parsed.path
        path = urlparse(path).path
    else:
        path = parsed.path
    relative = unquote(path).lstrip("/")
    if not relative:
        raise UnsafePathError(f"No file name in {src!r}")

    root = Path(output_root).resolve()
    target = (root / relative).resolve()
    if not target.is_relative_to(root):
        raise UnsafePathError(f"{src!r} resolves outside of {root}")
    return target
