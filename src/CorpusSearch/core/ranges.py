"""Compact range encoding for text id sets.

`[1, 2, 3, 7, 9, 10]` encodes as `"1-3,7,9-10"`. Saved searches and
collections store text ids this way to keep payloads small when thousands of
contiguous ids are selected. Decoding returns the sorted, de-duplicated ids.
"""

from __future__ import annotations

import re
from typing import Final, Iterable

_RANGE_STRING_RE: Final = re.compile(r"^\d+(-\d+)?(,\d+(-\d+)?)*$")


def compress_to_ranges(ids: Iterable[int]) -> str:
    """Encode ids as comma-separated values with consecutive runs collapsed."""
    ordered = sorted({int(item) for item in ids})
    if not ordered:
        return ""

    parts: list[str] = []
    run_start = prev = ordered[0]
    for current in ordered[1:]:
        if current == prev + 1:
            prev = current
            continue
        parts.append(_format_run(run_start, prev))
        run_start = prev = current
    parts.append(_format_run(run_start, prev))
    return ",".join(parts)


def decompress_ranges(value: str) -> list[int]:
    """Decode a range string back into sorted unique ids.

    Args:
        value: Range string such as `"1-3,7"`. Blank input decodes to `[]`.

    Returns:
        Sorted list of ids.

    Raises:
        ValueError: If a part is not a number or an ascending `start-end` pair.
    """
    text = (value or "").strip()
    if not text:
        return []

    ids: set[int] = set()
    for raw_part in text.split(","):
        part = raw_part.strip()
        if "-" in part:
            start_text, _, end_text = part.partition("-")
            start, end = _parse_id(start_text, part), _parse_id(end_text, part)
            if start > end:
                raise ValueError(f"Range start is after its end: {part!r}")
            ids.update(range(start, end + 1))
        else:
            ids.add(_parse_id(part, part))
    return sorted(ids)


def should_compress(ids: Iterable[int]) -> bool:
    """Return True when the range form is no longer than the plain list."""
    items = [int(item) for item in ids]
    if not items:
        return False
    plain = ",".join(str(item) for item in items)
    return len(compress_to_ranges(items)) <= len(plain)


def encode_text_ids(ids: Iterable[int]) -> str:
    """Encode ids in whichever of the plain and range forms is shorter."""
    items = [int(item) for item in ids]
    if should_compress(items):
        return compress_to_ranges(items)
    return ",".join(str(item) for item in items)


def is_valid_range_string(value: str) -> bool:
    if not value:
        return False
    return _RANGE_STRING_RE.match(value) is not None


def _format_run(start: int, end: int) -> str:
    return str(start) if start == end else f"{start}-{end}"


def _parse_id(text: str, part: str) -> int:
    stripped = text.strip()
    if not stripped.isdigit():
        raise ValueError(f"Invalid text id range part: {part!r}")
    return int(stripped)
