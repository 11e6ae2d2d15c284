import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from gdvm.config import (
    DEFAULT_RELEASES_URL,
    DEFAULT_TIMEOUT_S,
    Config,
    config_path,
    load_config,
    redact_token,
    save_config,
)
from gdvm.errors import GdvmError


class TestConfigFile(unittest.TestCase):
    def test_missing_file_gives_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            cfg = load_config(Path(td) / "config.json")
        self.assertEqual(cfg, Config())
        self.assertEqual(cfg.releases_url, DEFAULT_RELEASES_URL)

    def test_round_trip_ignores_unknown_keys(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "nested" / "config.json"
            save_config(Config(timeout_s=5.0, godot_root_directory="~/engines"), path)
            raw = json.loads(path.read_text(encoding="utf-8"))
            raw["something_else"] = 1
            path.write_text(json.dumps(raw), encoding="utf-8")

            cfg = load_config(path)

        self.assertEqual(cfg.timeout_s, 5.0)
        self.assertEqual(cfg.godot_root, Path("~/engines").expanduser())

    def test_values_of_the_wrong_type_fall_back_to_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "config.json"
            path.write_text(
                json.dumps({"timeout_s": "x", "verbose": "yes", "cache_directory": 5, "github_token": "t"}),
                encoding="utf-8",
            )
            with self.assertLogs("gdvm.config", level="WARNING") as logs:
                cfg = load_config(path)

        self.assertEqual(cfg.timeout_s, DEFAULT_TIMEOUT_S)
        self.assertFalse(cfg.verbose)
        self.assertIsNone(cfg.cache_directory)
        self.assertEqual(cfg.github_token, "t")
        self.assertEqual(len(logs.output), 3)

    def test_integer_timeout_is_accepted(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "config.json"
            path.write_text(json.dumps({"timeout_s": 12}), encoding="utf-8")
            self.assertEqual(load_config(path).timeout_s, 12.0)

    def test_malformed_json_is_a_gdvm_error(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "config.json"
            path.write_text("{not json", encoding="utf-8")
            with self.assertRaises(GdvmError):
                load_config(path)

    def test_relative_directories_become_absolute(self) -> None:
        cfg = Config(godot_root_directory="engines", bin_directory="./bin")
        self.assertTrue(cfg.godot_root.is_absolute())
        self.assertEqual(cfg.godot_root, Path.cwd() / "engines")
        self.assertEqual(cfg.bin_root, Path.cwd() / "bin")

    def test_env_points_at_config_file(self) -> None:
        with patch.dict(os.environ, {"GDVM_CONFIG_PATH": "/tmp/gdvm-test.json"}):
            self.assertEqual(config_path(), Path("/tmp/gdvm-test.json"))

    def test_default_directories_are_distinct(self) -> None:
        cfg = Config()
        paths = {cfg.godot_root, cfg.build_templates_root, cfg.cache_root, cfg.bin_root}
        self.assertEqual(len(paths), 4)
        self.assertEqual(cfg.godot_root.parent, cfg.bin_root.parent)

    def test_redact_token(self) -> None:
        self.assertIsNone(redact_token(None))
        self.assertEqual(redact_token("ghp_abcdefghijklmnop"), "ghp_ab...mnop")


if __name__ == "__main__":
    unittest.main()
