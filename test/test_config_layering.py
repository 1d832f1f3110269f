"""Tests for layered config parsing and validation."""

import os
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from ArchiveCore.config import load_config_with_defaults, merge_config_dicts, parse_config_dict
from ArchiveCore.config.app import parse_yaml


def _base_raw_config() -> dict:
    return {
        "log": {"level": "info", "to_file": False, "dir": "log"},
        "storage": {"backend": "sqlite", "db_path": "database/archive.db"},
        "remote": {"base_url": "http://localhost:3000/api", "token_env": "ARCHIVE_API_TOKEN", "timeout": 30},
        "browser": {"debounce_ms": 300, "max_results": 200},
        "search": {"page_size": 10},
    }


_OVERRIDE_YAML = """
storage:
  backend: remote
browser:
  debounce_ms: 50
"""


class TestConfigLayering(unittest.TestCase):
    def test_parse_success_nested_access(self) -> None:
        cfg = parse_config_dict(_base_raw_config())
        self.assertEqual(cfg.runtime.level, "INFO")
        self.assertEqual(cfg.storage.backend, "sqlite")
        self.assertEqual(cfg.browser.debounce_delay, 0.3)
        self.assertEqual(cfg.search.page_size, 10)
        self.assertEqual(cfg.remote.timeout, 30.0)

    def test_optional_sections_default(self) -> None:
        raw = _base_raw_config()
        for key in ("remote", "browser", "search"):
            del raw[key]
        cfg = parse_config_dict(raw)
        self.assertEqual((cfg.browser.debounce_ms, cfg.browser.max_results), (300, 200))
        self.assertEqual(cfg.remote.base_url, "")

    def test_missing_required_section(self) -> None:
        raw = _base_raw_config()
        del raw["storage"]
        with self.assertRaisesRegex(ValueError, "storage"):
            parse_config_dict(raw)

    def test_unknown_backend_error_contains_key(self) -> None:
        raw = _base_raw_config()
        raw["storage"]["backend"] = "postgres"
        with self.assertRaisesRegex(ValueError, "storage\\.backend"):
            parse_config_dict(raw)

    def test_remote_backend_requires_base_url(self) -> None:
        raw = _base_raw_config()
        raw["storage"]["backend"] = "remote"
        raw["remote"]["base_url"] = "  "
        with self.assertRaisesRegex(ValueError, "remote\\.base_url"):
            parse_config_dict(raw)

    def test_remote_base_url_scheme(self) -> None:
        raw = _base_raw_config()
        raw["remote"]["base_url"] = "localhost:3000"
        with self.assertRaisesRegex(ValueError, "remote\\.base_url"):
            parse_config_dict(raw)

    def test_type_error_contains_key(self) -> None:
        raw = _base_raw_config()
        raw["browser"]["max_results"] = "200"
        with self.assertRaisesRegex(TypeError, "browser\\.max_results"):
            parse_config_dict(raw)

    def test_page_size_must_be_positive(self) -> None:
        raw = _base_raw_config()
        raw["search"]["page_size"] = 0
        with self.assertRaisesRegex(ValueError, "search\\.page_size"):
            parse_config_dict(raw)

    def test_token_read_from_environment(self) -> None:
        cfg = parse_config_dict(_base_raw_config())
        with patch.dict(os.environ, {"ARCHIVE_API_TOKEN": "abc"}, clear=False):
            self.assertEqual(cfg.remote.token(), "abc")
        with patch.dict(os.environ, {}, clear=True):
            self.assertIsNone(cfg.remote.token())

    def test_merge_is_deep(self) -> None:
        merged = merge_config_dicts(_base_raw_config(), parse_yaml(_OVERRIDE_YAML))
        self.assertEqual(merged["storage"], {"backend": "remote", "db_path": "database/archive.db"})
        self.assertEqual(merged["browser"], {"debounce_ms": 50, "max_results": 200})

    def test_yaml_root_must_be_mapping(self) -> None:
        with self.assertRaises(ValueError):
            parse_yaml("- a\n- b\n")

    def test_override_file_on_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            override = Path(tmpdir) / "custom.yml"
            override.write_text(_OVERRIDE_YAML, encoding="utf-8")
            cfg = load_config_with_defaults(override, default_path=REPO_ROOT / "config" / "default.yml")
        self.assertEqual(cfg.storage.backend, "remote")
        self.assertEqual(cfg.browser.debounce_ms, 50)
        self.assertEqual(cfg.remote.token_env, "ARCHIVE_API_TOKEN")

    def test_default_file_alone(self) -> None:
        default_path = REPO_ROOT / "config" / "default.yml"
        cfg = load_config_with_defaults(default_path, default_path=default_path)
        self.assertEqual(cfg.storage.db_path, "database/archive.db")


if __name__ == "__main__":
    unittest.main()
