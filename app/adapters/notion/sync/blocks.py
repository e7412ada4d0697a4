"""Convert game descriptions into Notion blocks."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from app.adapters.notion.sync.constants import (
    CALLOUT_EMOJI,
    MAX_BLOCKS,
    MAX_TEXT_LENGTH,
    PROVENANCE_NOTICE,
)
from app.adapters.notion.sync.markup import parse_top_level_nodes

if TYPE_CHECKING:
    from app.adapters.notion.sync.markup import MarkupNode, MarkupParser

Block = dict[str, Any]

_HEADING_TAGS = frozenset({"h1", "h2"})


def _rich_text(content: str) -> list[dict[str, Any]]:
    return [{"type": "text", "text": {"content": content[:MAX_TEXT_LENGTH]}}]


def callout_block(text: str = PROVENANCE_NOTICE) -> Block:
    return {
        "object": "block",
        "type": "callout",
        "callout": {
            "rich_text": _rich_text(text),
            "icon": {"type": "emoji", "emoji": CALLOUT_EMOJI},
        },
    }


def heading_block(text: str) -> Block:
    return {"object": "block", "type": "heading_2", "heading_2": {"rich_text": _rich_text(text)}}


def paragraph_block(text: str) -> Block:
    return {"object": "block", "type": "paragraph", "paragraph": {"rich_text": _rich_text(text)}}


def image_block(url: str) -> Block:
    return {
        "object": "block",
        "type": "image",
        "image": {"type": "external", "external": {"url": url}},
    }


def _node_to_block(node: MarkupNode) -> Block | None:
    if node.tag in _HEADING_TAGS:
        text = node.text.strip()
        return heading_block(text) if text else None
    if node.tag == "img":
        src = node.attributes.get("src")
        return image_block(src) if src else None
    if node.tag == "p":
        text = node.text.strip()
        return paragraph_block(text) if text else None
    return None


def html_to_blocks(
    html: str | None,
    *,
    parser: MarkupParser = parse_top_level_nodes,
    max_blocks: int = MAX_BLOCKS,
) -> list[Block]:
    """Build the page body: a provenance callout followed by description blocks.

    Only top-level h1/h2, img and p nodes are converted; everything else is
    dropped. The callout counts toward ``max_blocks``.
    """
    blocks: list[Block] = [callout_block()]
    if not html:
        return blocks

    for node in parser(html):
        if len(blocks) >= max_blocks:
            break
        block = _node_to_block(node)
        if block is not None:
            blocks.append(block)

    return blocks
