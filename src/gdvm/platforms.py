"""
Per operating system knowledge: which upstream asset to pick, where the
executable sits inside an installed version, and how the ``godot`` link in the
bin directory is published.

``current_platform()`` picks one ``Platform`` at startup; nothing else in the
package looks at ``sys.platform``.
"""

from __future__ import annotations

import logging
import os
import platform as _platform
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Protocol

from .errors import AmbiguousExecutableError, ExecutableNotFoundError, GdvmError
from .semver import PRODUCT_NAME

logger = logging.getLogger(__name__)

LINK_NAME = "godot"


class Locator(Protocol):
    def locate(self, install_dir: Path) -> Path:
        ...


class LinkPublisher(Protocol):
    def link_path(self, bin_dir: Path) -> Path:
        ...

    def publish(self, executable: Path, bin_dir: Path) -> Path:
        ...

    def read(self, bin_dir: Path) -> Path | None:
        ...


def _locate_single(install_dir: Path, match: Callable[[Path], bool]) -> Path:
    if not install_dir.is_dir():
        raise ExecutableNotFoundError(f"Install directory does not exist: {install_dir}")
    found = sorted(p for p in install_dir.rglob("*") if match(p))
    if not found:
        raise ExecutableNotFoundError(f"No {PRODUCT_NAME} executable found in {install_dir}")
    if len(found) > 1:
        listing = ", ".join(str(p.relative_to(install_dir)) for p in found)
        raise AmbiguousExecutableError(f"Multiple {PRODUCT_NAME} executables found in {install_dir}: {listing}")
    logger.debug("Located executable: %s", found[0])
    return found[0]


@dataclass(frozen=True)
class FilenameLocator:
    """Matches regular files by name; console builds never match."""

    pattern: re.Pattern[str]

    def locate(self, install_dir: Path) -> Path:
        def _match(p: Path) -> bool:
            name = p.name
            return "console" not in name.lower() and bool(self.pattern.fullmatch(name)) and p.is_file()

        return _locate_single(install_dir, _match)


@dataclass(frozen=True)
class AppBundleLocator:
    """Finds ``Godot*.app`` bundles and returns the binary inside."""

    def locate(self, install_dir: Path) -> Path:
        def _match(p: Path) -> bool:
            return p.is_dir() and p.suffix == ".app" and p.name.startswith(PRODUCT_NAME)

        bundle = _locate_single(install_dir, _match)
        executable = bundle / "Contents" / "MacOS" / PRODUCT_NAME
        if not executable.is_file():
            raise ExecutableNotFoundError(f"{bundle} has no {executable.relative_to(bundle)}")
        return executable


class SymlinkPublisher:
    def link_path(self, bin_dir: Path) -> Path:
        return bin_dir / LINK_NAME

    def publish(self, executable: Path, bin_dir: Path) -> Path:
        link = self.link_path(bin_dir)
        bin_dir.mkdir(parents=True, exist_ok=True)
        tmp = bin_dir / f".{LINK_NAME}.{os.getpid()}.tmp"
        if tmp.is_symlink() or tmp.exists():
            tmp.unlink()
        os.symlink(executable.absolute(), tmp)
        # rename(2) swaps the link atomically for anyone running it.
        os.replace(tmp, link)
        return link

    def read(self, bin_dir: Path) -> Path | None:
        link = self.link_path(bin_dir)
        if not link.is_symlink():
            return None
        return Path(os.readlink(link))


class CmdShimPublisher:
    """Windows: a ``godot.cmd`` shim, since symlinks need elevated rights there."""

    def link_path(self, bin_dir: Path) -> Path:
        return bin_dir / f"{LINK_NAME}.cmd"

    def publish(self, executable: Path, bin_dir: Path) -> Path:
        link = self.link_path(bin_dir)
        bin_dir.mkdir(parents=True, exist_ok=True)
        tmp = link.with_suffix(link.suffix + ".tmp")
        tmp.write_text(f'@echo off\r\n"{executable.absolute()}" %*\r\n', encoding="utf-8")
        tmp.replace(link)
        return link

    def read(self, bin_dir: Path) -> Path | None:
        link = self.link_path(bin_dir)
        if not link.is_file():
            return None
        m = re.search(r'^"([^"]+)" %\*', link.read_text(encoding="utf-8"), re.MULTILINE)
        return Path(m.group(1)) if m else None


@dataclass(frozen=True)
class Platform:
    name: str
    asset_suffix: str  # regex for what follows "<remote_name>_" in an asset filename
    locator: Locator
    publisher: LinkPublisher


LINUX_X86_64 = Platform(
    name="linux-x86_64",
    asset_suffix=r"(linux[._]x86_64|x11[._]64)\.zip",
    locator=FilenameLocator(re.compile(rf"{PRODUCT_NAME}_v.*\.(x86_64|64)")),
    publisher=SymlinkPublisher(),
)
LINUX_ARM64 = Platform(
    name="linux-arm64",
    asset_suffix=r"linux[._]arm64\.zip",
    locator=FilenameLocator(re.compile(rf"{PRODUCT_NAME}_v.*\.arm64")),
    publisher=SymlinkPublisher(),
)
WINDOWS_X86_64 = Platform(
    name="windows-x86_64",
    asset_suffix=r"win64(\.exe)?\.zip",
    locator=FilenameLocator(re.compile(rf"{PRODUCT_NAME}_v.*\.exe")),
    publisher=CmdShimPublisher(),
)
WINDOWS_ARM64 = Platform(
    name="windows-arm64",
    asset_suffix=r"windows_arm64(\.exe)?\.zip",
    locator=FilenameLocator(re.compile(rf"{PRODUCT_NAME}_v.*\.exe")),
    publisher=CmdShimPublisher(),
)
MACOS = Platform(
    name="macos",
    asset_suffix=r"(macos|osx)\.universal\.zip",
    locator=AppBundleLocator(),
    publisher=SymlinkPublisher(),
)

_PLATFORMS: dict[tuple[str, str], Platform] = {
    ("linux", "x86_64"): LINUX_X86_64,
    ("linux", "amd64"): LINUX_X86_64,
    ("linux", "aarch64"): LINUX_ARM64,
    ("linux", "arm64"): LINUX_ARM64,
    ("windows", "amd64"): WINDOWS_X86_64,
    ("windows", "x86_64"): WINDOWS_X86_64,
    ("windows", "arm64"): WINDOWS_ARM64,
    ("darwin", "x86_64"): MACOS,
    ("darwin", "arm64"): MACOS,
}


def current_platform() -> Platform:
    family = "windows" if sys.platform.startswith("win") else sys.platform
    if family.startswith("linux"):
        family = "linux"
    machine = _platform.machine().lower()
    try:
        return _PLATFORMS[(family, machine)]
    except KeyError as e:
        raise GdvmError(f"Unsupported platform: {sys.platform} ({machine})") from e
