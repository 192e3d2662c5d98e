"""Tests for layered config parsing and validation."""

import os
import sys
import unittest
from copy import deepcopy
from pathlib import Path
from unittest.mock import patch

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from CorpusSearch.config import load_config_with_defaults, merge_config_dicts, parse_config_dict


def _base_raw_config() -> dict:
    return {
        "log": {"level": "info", "to_file": False, "dir": "log"},
        "opensearch": {
            "base_url": "https://search.example.org:9200",
            "index": "pages",
            "user_env": "CS_TEST_USER",
            "password_env": "CS_TEST_PASSWORD",
            "timeout": 30,
            "verify_tls": True,
            "max_result_window": 10000,
        },
        "search": {
            "results_per_fetch": 200,
            "items_per_page": 20,
            "highlight": {
                "fragment_size": 150,
                "phrase_limit": 150,
                "number_of_fragments": 100,
                "pre_tag": '<span class="highlight">',
                "post_tag": "</span>",
                "boundary_locale": "ar",
            },
        },
    }


class TestConfigLayering(unittest.TestCase):
    def test_parse_success_nested_access(self) -> None:
        cfg = parse_config_dict(_base_raw_config())

        self.assertEqual(cfg.runtime.level, "INFO")
        self.assertEqual(cfg.backend.index, "pages")
        self.assertEqual(cfg.backend.timeout, 30.0)
        self.assertEqual(cfg.search.results_per_fetch, 200)
        self.assertEqual(cfg.search.query_settings().fragment_size, 150)

    def test_credentials_come_from_environment(self) -> None:
        with patch.dict(os.environ, {"CS_TEST_USER": " reader ", "CS_TEST_PASSWORD": "secret"}):
            cfg = parse_config_dict(_base_raw_config())

        self.assertEqual(cfg.backend.user, "reader")
        self.assertEqual(cfg.backend.password, "secret")

    def test_missing_section_error_contains_key(self) -> None:
        raw = _base_raw_config()
        del raw["opensearch"]
        with self.assertRaisesRegex(ValueError, "opensearch"):
            parse_config_dict(raw)

    def test_missing_value_error_contains_key(self) -> None:
        raw = _base_raw_config()
        del raw["search"]["highlight"]["pre_tag"]
        with self.assertRaisesRegex(ValueError, "search\\.highlight\\.pre_tag"):
            parse_config_dict(raw)

    def test_type_error_contains_key(self) -> None:
        raw = _base_raw_config()
        raw["search"]["items_per_page"] = "20"
        with self.assertRaisesRegex(TypeError, "search\\.items_per_page"):
            parse_config_dict(raw)

    def test_bool_is_not_an_integer(self) -> None:
        raw = _base_raw_config()
        raw["opensearch"]["max_result_window"] = True
        with self.assertRaisesRegex(TypeError, "opensearch\\.max_result_window"):
            parse_config_dict(raw)

    def test_batch_must_be_whole_pages(self) -> None:
        raw = _base_raw_config()
        raw["search"]["results_per_fetch"] = 210
        with self.assertRaisesRegex(ValueError, "search\\.results_per_fetch"):
            parse_config_dict(raw)

    def test_batch_must_fit_result_window(self) -> None:
        raw = _base_raw_config()
        raw["opensearch"]["max_result_window"] = 100
        with self.assertRaisesRegex(ValueError, "max_result_window"):
            parse_config_dict(raw)

    def test_unknown_log_level_error_contains_key(self) -> None:
        raw = _base_raw_config()
        raw["log"]["level"] = "LOUD"
        with self.assertRaisesRegex(ValueError, "log\\.level"):
            parse_config_dict(raw)

    def test_base_url_must_be_http(self) -> None:
        raw = _base_raw_config()
        raw["opensearch"]["base_url"] = "search.example.org"
        with self.assertRaisesRegex(ValueError, "opensearch\\.base_url"):
            parse_config_dict(raw)

    def test_merge_overrides_nested_keys_only(self) -> None:
        base = _base_raw_config()
        snapshot = deepcopy(base)

        merged = merge_config_dicts(base, {"search": {"highlight": {"fragment_size": 80}}})

        self.assertEqual(merged["search"]["highlight"]["fragment_size"], 80)
        self.assertEqual(merged["search"]["highlight"]["phrase_limit"], 150)
        self.assertEqual(merged["search"]["items_per_page"], 20)
        self.assertEqual(base, snapshot)

    def test_override_file_is_layered_over_defaults(self) -> None:
        cfg = load_config_with_defaults(
            REPO_ROOT / "config" / "test" / "basic.yml",
            default_path=REPO_ROOT / "config" / "default.yml",
        )

        self.assertEqual(cfg.runtime.level, "DEBUG")
        self.assertEqual(cfg.backend.base_url, "http://opensearch.test:9200")
        self.assertEqual(cfg.backend.max_result_window, 10000)
        self.assertEqual(cfg.search.results_per_fetch, 40)
        self.assertEqual(cfg.search.pre_tag, '<span class="highlight">')


if __name__ == "__main__":
    unittest.main()
