"""Smoke test for CorpusSearch CLI.

Run:
  python test/smoke_test.py

This script patches the OpenSearch HTTP client to avoid network access and
validates that the CLI can run a simple search against the default config and
render at least one result.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from unittest.mock import patch

from click.testing import CliRunner


REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = REPO_ROOT / "src"
sys.path.insert(0, str(SRC_DIR))


SMOKE_RESPONSE = {
    "took": 4,
    "timed_out": False,
    "hits": {
        "total": {"value": 1, "relation": "eq"},
        "max_score": None,
        "hits": [
            {
                "_index": "pages",
                "_id": "700",
                "_score": None,
                "_source": {"text_id": 7, "vol": 2, "page_num": 14, "page_id": 700, "uri": "corpus/7/2/14"},
                "highlight": {"page_content": ['طلب <span class="highlight">العلم</span> فريضة']},
                "sort": ["corpus/7/2/14"],
            }
        ],
    },
}


def main() -> int:
    from CorpusSearch.cli import cli

    os.chdir(REPO_ROOT)
    runner = CliRunner()
    with patch(
        "CorpusSearch.sources.opensearch.client.OpenSearchApiClient.search",
        return_value=SMOKE_RESPONSE,
    ):
        result = runner.invoke(cli, ["search", "simple", "العلم"], catch_exceptions=False)

    output = result.output
    assert result.exit_code == 0, output
    assert "1. text 7  vol 2  p. 14" in output, output
    assert "[العلم]" in output, output
    return 0


def test_smoke() -> None:
    assert main() == 0


if __name__ == "__main__":
    raise SystemExit(main())
