"""Top-level HTML node extraction for page content."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from html.parser import HTMLParser


@dataclass(frozen=True)
class MarkupNode:
    """A direct child of the document root with its flattened text."""

    tag: str
    text: str = ""
    attributes: dict[str, str] = field(default_factory=dict)


# Any callable turning markup into its top-level nodes can stand in for the default parser.
MarkupParser = Callable[[str], Sequence[MarkupNode]]

_VOID_TAGS = frozenset(
    {"area", "base", "br", "col", "embed", "hr", "img", "input", "link", "meta", "source", "wbr"}
)

# Start tags that implicitly close an open <p>
_CLOSES_P = frozenset(
    {
        "address", "article", "aside", "blockquote", "div", "dl", "fieldset", "figure",
        "footer", "form", "h1", "h2", "h3", "h4", "h5", "h6", "header", "hr", "main",
        "nav", "ol", "p", "pre", "section", "table", "ul",
    }
)  # fmt: skip


class _TopLevelCollector(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.nodes: list[MarkupNode] = []
        self._tag: str | None = None
        self._attrs: dict[str, str] = {}
        self._text: list[str] = []
        self._depth = 0

    def _open(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        self._tag = tag
        self._attrs = {name: value or "" for name, value in attrs}
        self._text = []
        self._depth = 1

    def _finish(self) -> None:
        if self._tag is not None:
            self.nodes.append(MarkupNode(self._tag, "".join(self._text), self._attrs))
        self._tag = None
        self._attrs = {}
        self._text = []
        self._depth = 0

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if self._depth and self._tag == "p" and tag in _CLOSES_P:
            self._finish()

        if self._depth == 0:
            if tag in _VOID_TAGS:
                self.nodes.append(MarkupNode(tag, "", {n: v or "" for n, v in attrs}))
            else:
                self._open(tag, attrs)
            return

        if tag not in _VOID_TAGS:
            self._depth += 1

    def handle_endtag(self, tag: str) -> None:
        if tag in _VOID_TAGS or self._depth == 0:
            return
        self._depth -= 1
        if self._depth == 0:
            self._finish()

    def handle_data(self, data: str) -> None:
        # Bare text between top-level elements carries no block type
        if self._depth:
            self._text.append(data)

    def close(self) -> None:
        super().close()
        self._finish()


def parse_top_level_nodes(markup: str) -> list[MarkupNode]:
    """Parse an HTML fragment and return only its direct children, in order."""
    collector = _TopLevelCollector()
    collector.feed(markup)
    collector.close()
    return collector.nodes
