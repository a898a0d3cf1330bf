"""Render the assistant's lightweight markup into block nodes.

The assistant is asked to use `### ` headings, `* ` bullet lines and
`**bold**` spans. This parser turns such text into a list of heading,
list and paragraph blocks with inline bold spans, independent of any UI
framework.
"""

import re
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List

BOLD_PATTERN = re.compile(r"(\*\*.*?\*\*)")


@dataclass(frozen=True)
class Span:
    text: str
    bold: bool = False


@dataclass
class Block:
    """One rendered block.

    `spans` holds the inline content of headings and paragraphs; `items`
    holds one span list per bullet for lists.
    """

    kind: str
    level: int = 0
    spans: List[Span] = field(default_factory=list)
    items: List[List[Span]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def parse_inline(line: str) -> List[Span]:
    """Split a line into plain and bold spans."""
    spans = []
    for segment in BOLD_PATTERN.split(line):
        if not segment:
            continue
        if len(segment) >= 4 and segment.startswith("**") and segment.endswith("**"):
            spans.append(Span(segment[2:-2], bold=True))
        else:
            spans.append(Span(segment))
    return spans


def parse_markup(content: str) -> List[Block]:
    """Parse assistant text into heading, list and paragraph blocks."""
    blocks: List[Block] = []
    list_items: List[List[Span]] = []

    def flush_list() -> None:
        if list_items:
            blocks.append(Block(kind="list", items=list(list_items)))
            list_items.clear()

    for raw_line in (content or "").split("\n"):
        line = raw_line.strip()
        if line.startswith("* "):
            list_items.append(parse_inline(line[2:]))
            continue
        flush_list()
        if line.startswith("### "):
            blocks.append(Block(kind="heading", level=3, spans=parse_inline(line[4:])))
        elif line.startswith("## "):
            blocks.append(Block(kind="heading", level=2, spans=parse_inline(line[3:])))
        elif line:
            blocks.append(Block(kind="paragraph", spans=parse_inline(line)))

    flush_list()
    return blocks
