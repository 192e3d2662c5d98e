from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import ClassVar, Final, Iterable, Literal, Mapping, Sequence, Union

SearchIn = Literal["tok", "root"]
GroupTag = Literal["AND", "OR"]

TOKEN: Final = "tok"
ROOT: Final = "root"

_SEARCH_IN: Final[frozenset[str]] = frozenset({TOKEN, ROOT})
_GROUPS: Final[frozenset[str]] = frozenset({"AND", "OR"})


@dataclass(frozen=True, slots=True)
class SearchField:
    """One search term and the way it should be matched.

    Attributes:
        term: Raw user term. May be a single word or a phrase and may contain
            `*` / `?` wildcard markers.
        search_in: `tok` matches surface tokens, `root` matches the
            consonantal root index.
        definite: Match through the definite-article-aware token variant.
        proclitic: Match through the proclitic-aware token variant.
        group: AND/OR membership in advanced searches.

    Root fields never carry the token modifiers: `definite` and `proclitic`
    are forced to False whatever the caller passed.
    """

    term: str
    search_in: SearchIn = TOKEN
    definite: bool = False
    proclitic: bool = False
    group: GroupTag | None = None

    def __post_init__(self) -> None:
        if self.search_in not in _SEARCH_IN:
            raise ValueError(f"search_in must be one of {sorted(_SEARCH_IN)}: {self.search_in!r}")
        if self.group is not None and self.group not in _GROUPS:
            raise ValueError(f"group must be AND or OR: {self.group!r}")
        if self.search_in == ROOT:
            object.__setattr__(self, "definite", False)
            object.__setattr__(self, "proclitic", False)

    @property
    def is_root(self) -> bool:
        return self.search_in == ROOT


def _as_text_ids(value: Iterable[int]) -> tuple[int, ...]:
    return tuple(int(item) for item in value)


@dataclass(frozen=True, slots=True)
class SimpleSearch:
    """Single-term search."""

    field: SearchField
    selected_texts: tuple[int, ...] = ()

    mode: ClassVar[str] = "simple"

    def __post_init__(self) -> None:
        object.__setattr__(self, "selected_texts", _as_text_ids(self.selected_texts))


@dataclass(frozen=True, slots=True)
class AdvancedSearch:
    """Conjunction of AND terms plus (optionally) any one of the OR terms."""

    and_fields: tuple[SearchField, ...]
    or_fields: tuple[SearchField, ...] = ()
    selected_texts: tuple[int, ...] = ()

    mode: ClassVar[str] = "advanced"

    def __post_init__(self) -> None:
        object.__setattr__(self, "and_fields", tuple(self.and_fields))
        object.__setattr__(self, "or_fields", tuple(self.or_fields))
        object.__setattr__(self, "selected_texts", _as_text_ids(self.selected_texts))


@dataclass(frozen=True, slots=True)
class ProximitySearch:
    """Two terms within `slop` tokens of each other, in either order."""

    first_term: SearchField
    second_term: SearchField
    slop: int = 5
    selected_texts: tuple[int, ...] = ()

    mode: ClassVar[str] = "proximity"

    def __post_init__(self) -> None:
        object.__setattr__(self, "slop", int(self.slop))
        object.__setattr__(self, "selected_texts", _as_text_ids(self.selected_texts))


SearchConfig = Union[SimpleSearch, AdvancedSearch, ProximitySearch]

SEARCH_MODES: Final[tuple[str, ...]] = (SimpleSearch.mode, AdvancedSearch.mode, ProximitySearch.mode)


def with_selected_texts(config: SearchConfig, text_ids: Iterable[int]) -> SearchConfig:
    """Return a copy of `config` restricted to `text_ids` (empty means whole corpus)."""
    return replace(config, selected_texts=_as_text_ids(text_ids))


@dataclass(frozen=True, slots=True)
class SearchResult:
    """One hit returned by the search backend.

    Attributes:
        text_id: Document id of the text the page belongs to.
        vol: Volume number as stored in the index.
        page_num: Page number inside the volume.
        page_id: Unique page id.
        uri: Source URI of the page.
        highlights: Matched field name -> highlighted fragments. Empty when
            the hit has nothing highlightable.
        score: Backend relevance score if provided.
    """

    text_id: int
    vol: int | str | None
    page_num: int | None
    page_id: int | None
    uri: str
    highlights: Mapping[str, Sequence[str]] = field(default_factory=dict)
    score: float | None = None

    def __post_init__(self) -> None:
        frozen = {name: tuple(fragments) for name, fragments in self.highlights.items()}
        object.__setattr__(self, "highlights", MappingProxyType(frozen))


@dataclass(frozen=True, slots=True)
class SearchPage:
    """A batch of hits plus the backend's total hit count."""

    results: tuple[SearchResult, ...]
    total_results: int
    took: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "results", tuple(self.results))
