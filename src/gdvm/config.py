from __future__ import annotations

import json
import logging
import os
import stat
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from platformdirs import user_cache_path, user_config_path, user_data_path

from .errors import GdvmError

logger = logging.getLogger(__name__)

APP_NAME = "gdvm"
DEFAULT_RELEASES_URL = "https://api.github.com/repos/godotengine/godot-builds/releases"
DEFAULT_TIMEOUT_S = 30.0


@dataclass(frozen=True)
class Config:
    releases_url: str = DEFAULT_RELEASES_URL
    github_token: str | None = None  # only used to lift GitHub API rate limits
    timeout_s: float = DEFAULT_TIMEOUT_S
    verbose: bool = False
    godot_root_directory: str | None = None
    build_templates_root_directory: str | None = None
    cache_directory: str | None = None
    bin_directory: str | None = None

    @property
    def data_root(self) -> Path:
        return user_data_path(APP_NAME)

    @property
    def godot_root(self) -> Path:
        return _dir_or(self.godot_root_directory, self.data_root / "godot")

    @property
    def build_templates_root(self) -> Path:
        return _dir_or(self.build_templates_root_directory, self.data_root / "build-templates")

    @property
    def cache_root(self) -> Path:
        return _dir_or(self.cache_directory, user_cache_path(APP_NAME))

    @property
    def bin_root(self) -> Path:
        return _dir_or(self.bin_directory, self.data_root / "bin")


def _dir_or(value: str | None, default: Path) -> Path:
    # Relative values resolve against the current working directory.
    return Path(value).expanduser().absolute() if value else default


def config_path(path_override: str | Path | None = None) -> Path:
    if path_override is not None:
        return Path(path_override).expanduser()
    if env := os.getenv("GDVM_CONFIG_PATH"):
        return Path(env).expanduser()
    return user_config_path(APP_NAME) / "config.json"


def _valid(key: str, value: Any) -> bool:
    if key == "timeout_s":
        return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0
    if key == "verbose":
        return isinstance(value, bool)
    if key == "releases_url":
        return isinstance(value, str) and bool(value)
    return value is None or isinstance(value, str)


def load_config(path_override: str | Path | None = None) -> Config:
    path = config_path(path_override)
    if not path.exists():
        return Config()

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise GdvmError(f"Cannot read config file {path}: {e}") from e
    if not isinstance(raw, dict):
        return Config()

    allowed = {f.name for f in Config.__dataclass_fields__.values()}  # type: ignore[attr-defined]
    filtered: dict[str, Any] = {}
    for k, v in raw.items():
        if k not in allowed:
            continue
        if not _valid(k, v):
            logger.warning("Ignoring invalid value for %r in %s: %r", k, path, v)
            continue
        filtered[k] = float(v) if k == "timeout_s" else v
    return Config(**filtered)  # type: ignore[arg-type]


def save_config(cfg: Config, path_override: str | Path | None = None) -> Path:
    path = config_path(path_override)
    path.parent.mkdir(parents=True, exist_ok=True)

    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(asdict(cfg), indent=2, sort_keys=True) + "\n", encoding="utf-8")
    tmp.replace(path)

    # Best-effort permissions hardening (the file may hold a GitHub token).
    try:
        os.chmod(path, stat.S_IRUSR | stat.S_IWUSR)
    except OSError:
        pass

    return path


def redact_token(token: str | None) -> str | None:
    if not token:
        return token
    if len(token) <= 10:
        return token[:2] + "..." + token[-2:]
    return token[:6] + "..." + token[-4:]
