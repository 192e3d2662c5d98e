"""Search term normalization for the Arabic corpus index.

One normalization policy applies to every search mode:

- leading/trailing whitespace is dropped and internal whitespace runs collapse
  to a single space;
- letters are matched as typed (no hamza/alif/yaa folding);
- `*` and `?` are the only wildcard markers.

Root terms are rewritten into the shape the root index stores: weak and glide
letters become the `#` placeholder and every character is followed by a `.`
separator, so `قول` becomes `ق.#.ل.`.
"""

from __future__ import annotations

import re
from typing import Final

WILDCARD_MARKERS: Final = ("*", "?")
ROOT_PLACEHOLDER: Final = "#"
ROOT_SEPARATOR: Final = "."

_WEAK_LETTERS_RE: Final = re.compile("[أئؤءيىاو]")
_WS_RE: Final = re.compile(r"\s+")


def normalize_term(term: str) -> str:
    """Trim a term and collapse its internal whitespace."""
    return _WS_RE.sub(" ", term or "").strip()


def split_words(term: str) -> list[str]:
    """Split a normalized term into words."""
    normalized = normalize_term(term)
    return normalized.split(" ") if normalized else []


def has_wildcard(term: str) -> bool:
    return any(marker in term for marker in WILDCARD_MARKERS)


def root_pattern(term: str) -> str:
    """Rewrite a consonantal root into the root-index pattern.

    Args:
        term: Root as typed by the user. Whitespace is ignored.

    Returns:
        Separator-joined pattern with a trailing separator, or an empty
        string when the term is blank.
    """
    compact = _WS_RE.sub("", term or "")
    if not compact:
        return ""
    masked = _WEAK_LETTERS_RE.sub(ROOT_PLACEHOLDER, compact)
    return ROOT_SEPARATOR.join(masked) + ROOT_SEPARATOR
