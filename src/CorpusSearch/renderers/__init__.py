"""Plain output renderers for CLI search results."""

from __future__ import annotations

from CorpusSearch.renderers.console import render_text
from CorpusSearch.renderers.json import render_json

__all__ = ["render_text", "render_json"]
