"""
Gemtext parsing and conversion.

Gemtext is the line-oriented markup served over the Gemini protocol. Every
line maps to exactly one node, except preformatted blocks which span from one
``` toggle line to the next. This module parses a document into nodes and
renders nodes as Markdown for publishing.
"""
import re
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict

PREFORMAT_TOGGLE = "```"
LINK_PREFIX = "=>"
MAX_HEADING_LEVEL = 3

_WHITESPACE = re.compile(r"\s+")


class _Node(BaseModel):
    model_config = ConfigDict(frozen=True)


class TextNode(_Node):
    kind: Literal["text"] = "text"
    text: str


class BlankNode(_Node):
    kind: Literal["blank"] = "blank"


class LinkNode(_Node):
    kind: Literal["link"] = "link"
    to: str
    text: Optional[str] = None


class HeadingNode(_Node):
    kind: Literal["heading"] = "heading"
    level: int
    text: str


class ListItemNode(_Node):
    kind: Literal["list_item"] = "list_item"
    text: str


class QuoteNode(_Node):
    kind: Literal["quote"] = "quote"
    text: str


class PreformattedNode(_Node):
    kind: Literal["preformatted"] = "preformatted"
    text: str
    alt_text: Optional[str] = None


Node = Union[
    TextNode,
    BlankNode,
    LinkNode,
    HeadingNode,
    ListItemNode,
    QuoteNode,
    PreformattedNode,
]


def _parse_link(line: str) -> LinkNode:
    rest = line[len(LINK_PREFIX):].strip()
    parts = _WHITESPACE.split(rest, maxsplit=1)
    to = parts[0]
    text = parts[1].strip() if len(parts) > 1 and parts[1].strip() else None
    return LinkNode(to=to, text=text)


def _parse_heading(line: str) -> HeadingNode:
    level = len(line) - len(line.lstrip("#"))
    level = min(level, MAX_HEADING_LEVEL)
    return HeadingNode(level=level, text=line[level:].lstrip("#").strip())


def parse_line(line: str) -> Node:
    """Parse a single non-preformatted gemtext line."""
    if line.startswith(LINK_PREFIX):
        return _parse_link(line)
    if line.startswith("#"):
        return _parse_heading(line)
    if line.startswith("* "):
        return ListItemNode(text=line[2:].strip())
    if line.startswith(">"):
        return QuoteNode(text=line[1:].strip())
    if not line.strip():
        return BlankNode()
    return TextNode(text=line)


def parse(text: str) -> List[Node]:
    """
    Parse a gemtext document into a list of nodes.

    An unterminated preformatted block runs to the end of the document.

    Args:
        text: Gemtext source

    Returns:
        List[Node]: Nodes in document order
    """
    nodes: List[Node] = []
    preformatted: Optional[List[str]] = None
    alt_text: Optional[str] = None

    for line in text.splitlines():
        if line.startswith(PREFORMAT_TOGGLE):
            if preformatted is None:
                preformatted = []
                alt_text = line[len(PREFORMAT_TOGGLE):].strip() or None
            else:
                nodes.append(PreformattedNode(text="\n".join(preformatted), alt_text=alt_text))
                preformatted = None
                alt_text = None
            continue

        if preformatted is not None:
            preformatted.append(line)
        else:
            nodes.append(parse_line(line))

    if preformatted is not None:
        nodes.append(PreformattedNode(text="\n".join(preformatted), alt_text=alt_text))

    return nodes


def find_title(nodes: List[Node]) -> Optional[str]:
    """Return the text of the first level-1 heading, if any."""
    for node in nodes:
        if isinstance(node, HeadingNode) and node.level == 1:
            return node.text
    return None


def _escape(text: str) -> str:
    # Angle brackets would otherwise be read as inline HTML.
    return text.replace("<", "&lt;").replace(">", "&gt;")


def node_to_markdown(node: Node) -> str:
    """Render one node as Markdown (without trailing newline)."""
    if isinstance(node, TextNode):
        return _escape(node.text)
    if isinstance(node, BlankNode):
        return ""
    if isinstance(node, LinkNode):
        if node.text:
            return f"[{_escape(node.text)}]({node.to})"
        return f"<{node.to}>"
    if isinstance(node, HeadingNode):
        return f"{'#' * node.level} {_escape(node.text)}"
    if isinstance(node, ListItemNode):
        return f"- {_escape(node.text)}"
    if isinstance(node, QuoteNode):
        return f"> {_escape(node.text)}"
    if isinstance(node, PreformattedNode):
        return f"```{node.alt_text or ''}\n{node.text}\n```"
    raise TypeError(f"Unknown gemtext node: {node!r}")


def to_markdown(nodes: List[Node]) -> str:
    """Render a parsed gemtext document as Markdown."""
    lines: List[str] = []
    previous: Optional[Node] = None
    for node in nodes:
        # Consecutive gemtext links are separate lines; Markdown would
        # join them into one paragraph.
        if isinstance(node, LinkNode) and isinstance(previous, LinkNode):
            lines.append("")
        lines.append(node_to_markdown(node))
        previous = node
    return "\n".join(lines) + "\n" if lines else ""
