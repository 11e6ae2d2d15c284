"""
Version requests and resolved versions.

A ``VersionSpec`` is what the user typed: ``4``, ``4.2`` or ``4.2.1.1`` plus a
release such as ``stable`` or ``beta3`` and a mono flag. A ``Semver`` is the
same request bound to one upstream release; it renders to the upstream naming
scheme (``Godot_v4.2.1-stable_mono``) and to a local directory name
(``4.2.1.stable.mono``) that ``parse`` turns back into an equal ``Semver``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

from .errors import InvalidSpecError, UnrecognizedError

PRODUCT_NAME = "Godot"
MAX_COMPONENTS = 4
MONO_MARKER = "mono"


class Channel(str, Enum):
    DEV = "dev"
    ALPHA = "alpha"
    BETA = "beta"
    RC = "rc"
    STABLE = "stable"


_CHANNELS = "|".join(c.value for c in Channel)
_RELEASE_RE = re.compile(rf"^({_CHANNELS})(\d*)$")
_NUM = r"0|[1-9]\d*"
_NUMBERS = rf"({_NUM})\.({_NUM})(?:\.({_NUM}))?(?:\.({_NUM}))?"
_LOCAL_NAME_RE = re.compile(rf"^{_NUMBERS}\.({_CHANNELS})({_NUM})?(\.{MONO_MARKER})?$")
_TAG_RE = re.compile(rf"^{_NUMBERS}-({_CHANNELS})(\d*)$")


@dataclass(frozen=True)
class Version:
    major: int | None = None
    minor: int | None = None
    patch: int | None = None
    build: int | None = None

    @property
    def components(self) -> tuple[int | None, int | None, int | None, int | None]:
        return (self.major, self.minor, self.patch, self.build)

    @property
    def complete(self) -> bool:
        return all(c is not None for c in self.components)

    def filled(self) -> "Version":
        return Version(*(0 if c is None else c for c in self.components))

    def sort_key(self) -> tuple[int, int, int, int]:
        major, minor, patch, build = self.filled().components
        return (major, minor, patch, build)  # type: ignore[return-value]

    @property
    def upstream(self) -> str:
        # Upstream drops trailing zero components: 4.2 rather than 4.2.0.0.
        major, minor, patch, build = self.sort_key()
        parts = [major, minor]
        if patch or build:
            parts.append(patch)
        if build:
            parts.append(build)
        return ".".join(str(p) for p in parts)

    def __str__(self) -> str:
        return ".".join(str(c) for c in self.components if c is not None)


@dataclass(frozen=True)
class Release:
    channel: Channel = Channel.STABLE
    number: int | None = None

    def matches(self, other: "Release") -> bool:
        """Whether ``other`` satisfies this release when it is used as a filter."""
        if self.channel != other.channel:
            return False
        return self.number is None or self.number == other.number

    def __str__(self) -> str:
        return self.channel.value if self.number is None else f"{self.channel.value}{self.number}"


@dataclass(frozen=True)
class VersionSpec:
    version: Version
    release: Release = field(default_factory=Release)
    mono: bool = False

    def __str__(self) -> str:
        return _join(str(self.version), self.release, self.mono)


@dataclass(frozen=True)
class Semver:
    version: Version
    release: Release
    mono: bool = False

    @property
    def tag(self) -> str:
        return f"{self.version.upstream}-{self.release}"

    @property
    def remote_name(self) -> str:
        """Prefix shared by every upstream asset of this release and mono flavour."""
        name = f"{PRODUCT_NAME}_v{self.tag}"
        return f"{name}_{MONO_MARKER}" if self.mono else name

    @property
    def local_name(self) -> str:
        return _join(self.version.upstream, self.release, self.mono)

    def __str__(self) -> str:
        return self.local_name


@dataclass(frozen=True)
class Ok:
    semver: Semver


@dataclass(frozen=True)
class Skip:
    name: str
    reason: str


ParseResult = Ok | Skip


def _join(version: str, release: Release, mono: bool) -> str:
    out = f"{version}.{release}"
    return f"{out}.{MONO_MARKER}" if mono else out


def _release_from(channel: str, number: str | None, *, source: str, error: type[Exception]) -> Release:
    ch = Channel(channel)
    if ch is Channel.STABLE and number:
        raise error(f"Invalid release {source!r}: stable releases do not carry a number.")
    return Release(channel=ch, number=int(number) if number else None)


def _version_from(groups: tuple[str | None, ...]) -> Version:
    return Version(*(None if g is None else int(g) for g in groups))


def parse_release(value: str) -> Release:
    raw = (value or "").strip().lower()
    m = _RELEASE_RE.match(raw)
    if not m:
        raise InvalidSpecError(
            f"Invalid release {value!r}. Expected one of {', '.join(c.value for c in Channel)} "
            "with an optional number (e.g. beta3, rc1, stable)."
        )
    return _release_from(m.group(1), m.group(2), source=value, error=InvalidSpecError)


def build_spec(version: str, release: str = "stable", mono: bool = False) -> VersionSpec:
    raw = (version or "").strip()
    if not raw:
        raise InvalidSpecError("Empty version. Expected x.x.x.x, x.x.x or x.x.")
    parts = raw.split(".")
    if len(parts) > MAX_COMPONENTS:
        raise InvalidSpecError(f"Invalid version {version!r}: at most {MAX_COMPONENTS} components are allowed.")
    if any(not (p.isascii() and p.isdigit()) for p in parts):
        raise InvalidSpecError(f"Invalid version {version!r}: components must be numbers.")
    nums: list[int | None] = [int(p) for p in parts]
    nums.extend([None] * (MAX_COMPONENTS - len(nums)))
    return VersionSpec(version=Version(*nums), release=parse_release(release), mono=bool(mono))


def parse(name: str) -> Semver:
    """Parse an install directory name (``Semver.local_name``) back into a ``Semver``."""
    m = _LOCAL_NAME_RE.match(name)
    if not m:
        raise UnrecognizedError(f"{name!r} is not a {PRODUCT_NAME} version directory name")
    release = _release_from(m.group(5), m.group(6), source=name, error=UnrecognizedError)
    semver = Semver(version=_version_from(m.group(1, 2, 3, 4)).filled(), release=release, mono=m.group(7) is not None)
    # Only the canonical spelling is addressable by later commands.
    if semver.local_name != name:
        raise UnrecognizedError(f"{name!r} is not in canonical form (expected {semver.local_name!r})")
    return semver


def try_parse(name: str) -> ParseResult:
    try:
        return Ok(parse(name))
    except UnrecognizedError as e:
        return Skip(name=name, reason=str(e))


def parse_tag(tag: str) -> tuple[Version, Release]:
    """Parse an upstream release tag such as ``4.2.1-stable`` or ``4.3-beta2``."""
    m = _TAG_RE.match(tag.strip())
    if not m:
        raise UnrecognizedError(f"Unrecognized release tag: {tag!r}")
    release = _release_from(m.group(5), m.group(6), source=tag, error=UnrecognizedError)
    return _version_from(m.group(1, 2, 3, 4)).filled(), release
