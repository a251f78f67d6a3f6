"""View references and the request parameters derived from them."""

from bs4 import Tag
from pydantic import BaseModel, Field

from tp_sync.errors import InvalidParameterError
from tp_sync.fetcher.remote_api import DocumentMeta

RESERVED_KEYS = frozenset({"odd", "view", "xpath", "id", "root"})
USER_PREFIX = "user."

DOCUMENT_ATTRIBUTES = ("view", "odd")
VIEW_ATTRIBUTES = ("view", "odd", "xpath")


class ViewReference(BaseModel):
    """One ``pb-view`` element of a page and the document it displays."""

    id: str
    source_id: str
    document_path: str
    parameters: dict[str, str] = Field(default_factory=dict)


def validate_key(key: str) -> str:
    if key in RESERVED_KEYS:
        return key
    if key.startswith(USER_PREFIX) and len(key) > len(USER_PREFIX):
        return key
    raise InvalidParameterError(f"Unsupported view parameter: {key!r}")


class ParameterBuilder:
    """Assemble the request parameters of a view.

    Later steps override earlier ones: document metadata, then attributes
    of the document declaration, then attributes of the view, then user
    parameters.
    """

    def __init__(self):
        self._params: dict[str, str] = {}

    def set(self, key: str, value: str) -> "ParameterBuilder":
        self._params[validate_key(key)] = str(value)
        return self

    def from_meta(self, meta: DocumentMeta) -> "ParameterBuilder":
        if meta.odd:
            self.set("odd", meta.odd)
        if meta.view:
            self.set("view", meta.view)
        return self

    def from_attributes(self, element: Tag, names: tuple[str, ...]) -> "ParameterBuilder":
        """Copy the given attributes; an ``odd`` attribute names the ODD without suffix."""
        for name in names:
            value = element.get(name)
            if value is None:
                continue
            value = str(value)
            self.set(name, f"{value}.odd" if name == "odd" else value)
        return self

    def from_user_params(self, element: Tag) -> "ParameterBuilder":
        """Add ``<pb-param name="..." value="...">`` children as ``user.<name>``."""
        for param in element.find_all("pb-param"):
            name = param.get("name")
            if not name:
                continue
            self.set(f"{USER_PREFIX}{name}", str(param.get("value", "")))
        return self

    def build(self) -> dict[str, str]:
        return dict(self._params)
