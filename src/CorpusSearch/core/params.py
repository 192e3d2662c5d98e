"""Search link parameters.

Converts a search config to and from the flat string parameters used in
shareable search links and saved-search records.

Parameter layout
- all modes: `type`, optional `page` (omitted for page 1), optional
  `text_ids` (plain or range encoded, whichever is shorter)
- simple:    `t`, `in`, `d`, `p`
- advanced:  `and_terms` / `or_terms` as `term:searchIn,...` plus per-term
             `and_{i}_d`, `and_{i}_p`, `or_{i}_d`, `or_{i}_p`
- proximity: `t1`, `t2` as `term:searchIn`, `t1_d`, `t1_p`, `t2_d`, `t2_p`,
             `slop`
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Iterable, Mapping

from CorpusSearch.core.models import (
    TOKEN,
    AdvancedSearch,
    ProximitySearch,
    SearchConfig,
    SearchField,
    SimpleSearch,
)
from CorpusSearch.core.ranges import decompress_ranges, encode_text_ids

DEFAULT_SLOP: Final = 5
TERM_LIST_SEPARATOR: Final = ","


@dataclass(frozen=True, slots=True)
class ParsedSearchParams:
    """Search config, page and text restriction decoded from link parameters."""

    config: SearchConfig
    page: int
    text_ids: tuple[int, ...]


def parse_term_spec(value: str) -> tuple[str, str]:
    """Split `term:searchIn` into its parts; the mode defaults to `tok`."""
    term, sep, search_in = value.rpartition(":")
    if not sep:
        return value, TOKEN
    if search_in not in ("tok", "root"):
        # The colon belongs to the term itself.
        return value, TOKEN
    return term, search_in


def build_search_params(config: SearchConfig, selected_texts: Iterable[int] = (), page: int = 1) -> dict[str, str]:
    """Encode a search config as link parameters.

    Args:
        config: Search config.
        selected_texts: Text restriction; empty means the whole corpus.
        page: 1-based result page.

    Returns:
        Flat parameter mapping in insertion order.

    Raises:
        ValueError: If the config type is unsupported or an advanced term
            contains the term list separator.
    """
    params: dict[str, str] = {"type": config.mode}

    if isinstance(config, SimpleSearch):
        params["t"] = config.field.term
        params["in"] = config.field.search_in
        params["d"] = _flag(config.field.definite)
        params["p"] = _flag(config.field.proclitic)
    elif isinstance(config, AdvancedSearch):
        for prefix, fields in (("and", config.and_fields), ("or", config.or_fields)):
            if not fields:
                continue
            specs = []
            for idx, search_field in enumerate(fields):
                params[f"{prefix}_{idx}_d"] = _flag(search_field.definite)
                params[f"{prefix}_{idx}_p"] = _flag(search_field.proclitic)
                if TERM_LIST_SEPARATOR in search_field.term:
                    raise ValueError(f"{prefix} term {idx + 1} must not contain {TERM_LIST_SEPARATOR!r}")
                specs.append(f"{search_field.term}:{search_field.search_in}")
            params[f"{prefix}_terms"] = TERM_LIST_SEPARATOR.join(specs)
    elif isinstance(config, ProximitySearch):
        for key, search_field in (("t1", config.first_term), ("t2", config.second_term)):
            params[key] = f"{search_field.term}:{search_field.search_in}"
            params[f"{key}_d"] = _flag(search_field.definite)
            params[f"{key}_p"] = _flag(search_field.proclitic)
        params["slop"] = str(config.slop)
    else:
        raise ValueError(f"Unsupported search config: {type(config).__name__}")

    if page != 1:
        params["page"] = str(page)

    text_ids = list(selected_texts)
    if text_ids:
        params["text_ids"] = encode_text_ids(text_ids)
    return params


def parse_search_params(params: Mapping[str, str]) -> ParsedSearchParams:
    """Decode link parameters into a search config.

    Args:
        params: Parameter mapping (e.g. a parsed query string).

    Returns:
        Decoded config (restricted to the decoded text ids), page and ids.

    Raises:
        ValueError: If `type` is missing or unknown, or a number is malformed.
    """
    search_type = (params.get("type") or "").strip().lower()
    text_ids = tuple(_parse_text_ids(params.get("text_ids") or ""))

    config: SearchConfig
    if search_type == SimpleSearch.mode:
        config = SimpleSearch(
            field=SearchField(
                term=params.get("t") or "",
                search_in=_search_in(params.get("in")),
                definite=_is_true(params.get("d")),
                proclitic=_is_true(params.get("p")),
            ),
            selected_texts=text_ids,
        )
    elif search_type == AdvancedSearch.mode:
        config = AdvancedSearch(
            and_fields=tuple(_parse_group(params, "and", "AND")),
            or_fields=tuple(_parse_group(params, "or", "OR")),
            selected_texts=text_ids,
        )
    elif search_type == ProximitySearch.mode:
        config = ProximitySearch(
            first_term=_parse_proximity_term(params, "t1"),
            second_term=_parse_proximity_term(params, "t2"),
            slop=int(params.get("slop") or DEFAULT_SLOP),
            selected_texts=text_ids,
        )
    else:
        raise ValueError(f"Unsupported search type: {search_type or '<missing>'}")

    return ParsedSearchParams(config=config, page=int(params.get("page") or 1), text_ids=text_ids)


def _parse_group(params: Mapping[str, str], prefix: str, group: str) -> list[SearchField]:
    raw = params.get(f"{prefix}_terms") or ""
    fields: list[SearchField] = []
    for idx, spec in enumerate(item for item in raw.split(TERM_LIST_SEPARATOR) if item):
        term, search_in = parse_term_spec(spec)
        fields.append(
            SearchField(
                term=term,
                search_in=search_in,
                definite=_is_true(params.get(f"{prefix}_{idx}_d")),
                proclitic=_is_true(params.get(f"{prefix}_{idx}_p")),
                group=group,
            )
        )
    return fields


def _parse_proximity_term(params: Mapping[str, str], key: str) -> SearchField:
    term, search_in = parse_term_spec(params.get(key) or "")
    return SearchField(
        term=term,
        search_in=search_in,
        definite=_is_true(params.get(f"{key}_d")),
        proclitic=_is_true(params.get(f"{key}_p")),
    )


def _parse_text_ids(value: str) -> list[int]:
    if "-" in value:
        return decompress_ranges(value)
    return [int(item) for item in value.split(",") if item.strip()]


def _search_in(value: str | None) -> str:
    return "root" if value == "root" else TOKEN


def _flag(value: bool) -> str:
    return "true" if value else "false"


def _is_true(value: str | None) -> bool:
    return value == "true"
