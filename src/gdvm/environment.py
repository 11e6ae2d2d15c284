from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Protocol, TypeVar

from .errors import NotFoundError, UnrecognizedError
from .platforms import Platform
from .semver import Release, Semver, Version, VersionSpec, parse_tag

logger = logging.getLogger(__name__)

T = TypeVar("T")

BUILD_TEMPLATES_SUFFIX = r"export_templates\.tpz"


class CatalogClient(Protocol):
    def list_releases(self) -> list[dict[str, Any]]:
        ...


@dataclass(frozen=True)
class Asset:
    name: str
    download_url: str


@dataclass(frozen=True)
class UpstreamRelease:
    version: Version
    release: Release
    assets: tuple[Asset, ...]

    def semver(self, mono: bool) -> Semver:
        return Semver(version=self.version, release=self.release, mono=mono)


def _parse_release_obj(obj: dict[str, Any]) -> UpstreamRelease | None:
    tag = obj.get("tag_name")
    if not isinstance(tag, str):
        return None
    try:
        version, release = parse_tag(tag)
    except UnrecognizedError as e:
        logger.debug("Skipping release: %s", e)
        return None

    assets: list[Asset] = []
    raw_assets = obj.get("assets")
    for a in raw_assets if isinstance(raw_assets, list) else []:
        if not isinstance(a, dict):
            continue
        name = a.get("name")
        url = a.get("browser_download_url")
        if isinstance(name, str) and isinstance(url, str) and name and url:
            assets.append(Asset(name=name, download_url=url))
    return UpstreamRelease(version=version, release=release, assets=tuple(assets))


class ReleaseCatalog:
    """Upstream releases, fetched on first use and kept for the rest of the command."""

    def __init__(self, client: CatalogClient) -> None:
        self._client = client
        self._releases: list[UpstreamRelease] | None = None

    def releases(self) -> list[UpstreamRelease]:
        if self._releases is None:
            parsed = (_parse_release_obj(obj) for obj in self._client.list_releases())
            self._releases = [r for r in parsed if r is not None]
        return list(self._releases)


def select(
    spec: VersionSpec,
    candidates: Iterable[T],
    *,
    version: Callable[[T], Version],
    release: Callable[[T], Release],
) -> T | None:
    """
    Pick the candidate that best satisfies ``spec``.

    Candidates must be on the requested channel (and number, when given) and
    agree with every version component ``spec`` sets. The remaining
    components are maximised, most significant first; the channel number
    breaks what is left of a tie.
    """
    wanted = spec.version.components
    survivors: list[T] = []
    for c in candidates:
        if not spec.release.matches(release(c)):
            continue
        have = version(c).components
        if any(w is not None and w != h for w, h in zip(wanted, have)):
            continue
        survivors.append(c)

    if not survivors:
        return None
    return max(survivors, key=lambda c: (version(c).sort_key(), release(c).number or 0))


@dataclass(frozen=True)
class AssetKind:
    """Which asset of a release an artifact service wants."""

    suffix: str

    def matches(self, asset_name: str, semver: Semver) -> bool:
        return re.fullmatch(re.escape(semver.remote_name + "_") + self.suffix, asset_name) is not None


class Environment:
    def __init__(self, catalog: ReleaseCatalog, platform: Platform) -> None:
        self.catalog = catalog
        self.platform = platform

    @property
    def godot_assets(self) -> AssetKind:
        return AssetKind(self.platform.asset_suffix)

    @property
    def build_templates_assets(self) -> AssetKind:
        return AssetKind(BUILD_TEMPLATES_SUFFIX)

    def fetch_release(self, spec: VersionSpec) -> UpstreamRelease:
        found = select(spec, self.catalog.releases(), version=lambda r: r.version, release=lambda r: r.release)
        if found is None:
            raise NotFoundError(f"No release matches {spec}")
        return found

    def fetch_asset(self, spec: VersionSpec, kind: AssetKind) -> tuple[Semver, Asset]:
        upstream = self.fetch_release(spec)
        semver = upstream.semver(spec.mono)
        for asset in upstream.assets:
            if kind.matches(asset.name, semver):
                logger.debug("Resolved %s to %s (%s)", spec, semver, asset.name)
                return semver, asset
        raise NotFoundError(f"Release {semver.tag} has no asset for {semver.remote_name} on {self.platform.name}")

    def available(self, release: Release | None = None) -> list[UpstreamRelease]:
        releases = self.catalog.releases()
        if release is None:
            return releases
        return [r for r in releases if release.matches(r.release)]
