"""
Fenced block syntax and document rewriting.

Blocks look like::

    ```graphviz:flow {layout=neato, dpi=300}
    digraph { a -> b }
    ```

The tag before the colon selects the processor, the name after it must be
word characters or hyphens, and the optional braces hold a flat
``key=value`` list.
"""

import re
from collections.abc import Iterable

from .base import ProcessorBlock

NAME_PATTERN = r"[\w-]+"


def fence_pattern(tag: str) -> re.Pattern[str]:
    """Regex matching a complete fence for ``tag`` (groups: name, params, body)."""
    return re.compile(
        rf"```{re.escape(tag)}:({NAME_PATTERN})(?:[ \t]*\{{([^}}\n]*)\}})?[ \t]*\n(?:(.*?)\n)??```",
        re.DOTALL,
    )


def marker_pattern(tag: str) -> re.Pattern[str]:
    """Regex matching only the opening of a fence, for quick checks."""
    return re.compile(rf"```{re.escape(tag)}:{NAME_PATTERN}")


def parse_params(text: str | None) -> dict[str, str]:
    """
    Parse ``key=value, key2=value2`` into a dict.

    Whitespace around keys and values is ignored, entries without ``=``
    are skipped and later keys win.
    """
    params: dict[str, str] = {}
    if not text:
        return params
    for entry in text.split(","):
        key, sep, value = entry.partition("=")
        key = key.strip()
        if sep and key:
            params[key] = value.strip()
    return params


def detect_fenced_blocks(content: str, tag: str) -> list[ProcessorBlock]:
    """All fences for ``tag`` in document order."""
    blocks = []
    for match in fence_pattern(tag).finditer(content):
        raw_params = match.group(2)
        blocks.append(
            ProcessorBlock(
                name=match.group(1),
                content=match.group(3) or "",
                start_index=match.start(),
                end_index=match.end(),
                metadata=parse_params(raw_params),
                attributes=f"{{{raw_params.strip()}}}" if raw_params is not None else "",
            )
        )
    return blocks


def block_text(content: str, block: ProcessorBlock) -> str:
    """The original fence of ``block`` exactly as written."""
    return content[block.start_index : block.end_index]


def rewrite_blocks(content: str, replacements: Iterable[tuple[ProcessorBlock, str]]) -> str:
    """
    Build a new document with each block's fence replaced.

    The output is assembled from slices of the original between block
    boundaries, so replacements of any length in any order never shift
    the position of other blocks.

    Raises:
        ValueError: If two blocks overlap
    """
    ordered = sorted(replacements, key=lambda item: item[0].start_index)
    parts = []
    cursor = 0
    for block, replacement in ordered:
        if block.start_index < cursor:
            raise ValueError(f"Overlapping blocks at offset {block.start_index}")
        parts.append(content[cursor : block.start_index])
        parts.append(replacement)
        cursor = block.end_index
    parts.append(content[cursor:])
    return "".join(parts)
