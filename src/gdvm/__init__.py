from ._version import __version__
from .app import App
from .config import Config, load_config
from .errors import (
    AmbiguousExecutableError,
    GdvmError,
    InvalidSpecError,
    NotFoundError,
    UnrecognizedError,
)
from .semver import Semver, VersionSpec, build_spec, parse

__all__ = [
    "AmbiguousExecutableError",
    "App",
    "Config",
    "GdvmError",
    "InvalidSpecError",
    "NotFoundError",
    "Semver",
    "UnrecognizedError",
    "VersionSpec",
    "__version__",
    "build_spec",
    "load_config",
    "parse",
]
