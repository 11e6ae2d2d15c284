from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Callable, Protocol

from . import archiving
from .config import Config
from .environment import AssetKind, Environment, select
from .errors import ArchiveError, FilesystemError, NotFoundError
from .semver import Release, Semver, Skip, VersionSpec, try_parse
from .utils import does_exist, print_table

logger = logging.getLogger(__name__)

GODOT_FOLDER = "godot"
BUILD_TEMPLATES_FOLDER = "build-templates"


class Transport(Protocol):
    def download(self, url: str, dest: Path) -> None:
        ...


def _remove(path: Path) -> None:
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.is_dir():
        shutil.rmtree(path)


class ArtifactService:
    """
    Download, install, uninstall and list one kind of versioned artifact.

    Archives are cached under ``<cache>/<folder>/<asset filename>`` and
    installed into ``<install_root>/<semver.local_name>``. Whether a version is
    installed is decided by the presence of its directory alone. Extraction
    errors remove the partial directory, but a process killed mid-extraction
    leaves one behind that the next run reports as installed;
    ``install(..., force=True)`` reinstalls, and only replaces the existing
    directory once the archive has been downloaded.
    """

    label = ""
    noun = ""
    folder = ""
    collapse_root = False

    def __init__(
        self,
        *,
        environment: Environment,
        transport: Transport,
        config: Config,
        extract: Callable[[Path, Path], None] = archiving.extract,
    ) -> None:
        self.environment = environment
        self.transport = transport
        self.config = config
        self._extract = extract

    @property
    def install_root(self) -> Path:
        raise NotImplementedError

    @property
    def assets(self) -> AssetKind:
        raise NotImplementedError

    def target_directory(self, semver: Semver) -> Path:
        return self.install_root / semver.local_name

    def archive_path(self, asset_name: str) -> Path:
        return self.config.cache_root / self.folder / asset_name

    def _report_not_found(self, spec: VersionSpec) -> None:
        print(f"{self.label} '{spec}' not found. Use 'gdvm versions list' to see available versions.")

    def _download(self, url: str, archive_path: Path) -> None:
        logger.debug("Downloading from: %s", url)
        logger.debug("Downloading to: %s", archive_path)
        try:
            self.transport.download(url, archive_path)
        except OSError as e:
            raise FilesystemError(f"download failed, cannot write {archive_path}: {e}") from e

    def download(self, spec: VersionSpec) -> None:
        logger.debug("Attempting to download '%s' %s...", spec, self.noun)
        try:
            semver, asset = self.environment.fetch_asset(spec, self.assets)
        except NotFoundError as e:
            logger.debug("%s", e)
            self._report_not_found(spec)
            return

        archive_path = self.archive_path(asset.name)
        if does_exist(archive_path):
            print(f"{self.label} '{semver}' already downloaded")
            return

        try:
            self._download(asset.download_url, archive_path)
        except NotFoundError as e:
            logger.debug("%s", e)
            self._report_not_found(spec)
            return

        print(f"{self.label} '{semver}' downloaded")

    def install(self, spec: VersionSpec, *, force: bool = False) -> None:
        logger.debug("Attempting to install '%s' %s...", spec, self.noun)
        try:
            semver, asset = self.environment.fetch_asset(spec, self.assets)
        except NotFoundError as e:
            logger.debug("%s", e)
            self._report_not_found(spec)
            return

        target = self.target_directory(semver)
        archive_path = self.archive_path(asset.name)

        if not force and does_exist(target):
            print(f"{self.label} '{semver}' already installed")
            return

        # An existing install is only touched once the archive is on disk.
        if not does_exist(archive_path):
            try:
                self._download(asset.download_url, archive_path)
            except NotFoundError as e:
                logger.debug("%s", e)
                self._report_not_found(spec)
                return

        try:
            self.install_root.mkdir(parents=True, exist_ok=True)
            _remove(target)
        except OSError as e:
            raise FilesystemError(f"cannot prepare directory {target}: {e}") from e

        logger.debug("Unzipping from: %s", archive_path)
        logger.debug("Unzipping to: %s", target)
        try:
            self._extract(archive_path, target)
            if self.collapse_root:
                archiving.collapse_single_root(target)
        except ArchiveError:
            self._discard(target)
            # Drop the cached archive so the next install fetches it again.
            self._discard(archive_path)
            raise
        except OSError as e:
            self._discard(target)
            raise FilesystemError(f"unzip failed for {archive_path}: {e}") from e

        print(f"{self.label} '{semver}' installed")

    def _discard(self, path: Path) -> None:
        try:
            _remove(path)
        except OSError as e:
            logger.warning("Could not remove %s: %s", path, e)

    def uninstall(self, spec: VersionSpec, *, log_missing: bool = True) -> None:
        logger.debug("Attempting to uninstall '%s' %s...", spec, self.noun)
        try:
            semver = self.environment.fetch_release(spec).semver(spec.mono)
        except NotFoundError as e:
            logger.debug("%s", e)
            if log_missing:
                print(f"{self.label} '{spec}' not found")
            return

        target = self.target_directory(semver)
        if not does_exist(target):
            if log_missing:
                print(f"{self.label} '{semver}' not found")
            return

        logger.debug("Removing directory: %s", target)
        try:
            shutil.rmtree(target)
        except OSError as e:
            raise FilesystemError(f"cannot remove directory {target}: {e}") from e

        print(f"{self.label} '{semver}' uninstalled")

    def installed(self) -> list[Semver]:
        try:
            entries = [e for e in self.install_root.iterdir() if e.is_dir()]
        except FileNotFoundError:
            return []
        except OSError as e:
            raise FilesystemError(f"cannot read {self.noun} root directory {self.install_root}: {e}") from e

        found: list[Semver] = []
        for result in (try_parse(e.name) for e in entries):
            if isinstance(result, Skip):
                logger.debug("Failed to recognize version: %s", result.reason)
                continue
            found.append(result.semver)
        return found

    def list(self) -> None:
        semvers = self.installed()
        if not semvers:
            print(f"No {self.noun} versions installed")
            return

        rows = [["Version", "Release", "Mono?"]]
        for s in semvers:
            rows.append([s.version.upstream, str(s.release), "yes" if s.mono else "no"])
        print_table(rows)


class GodotService(ArtifactService):
    label = "Godot"
    noun = "godot"
    folder = GODOT_FOLDER

    @property
    def install_root(self) -> Path:
        return self.config.godot_root

    @property
    def assets(self) -> AssetKind:
        return self.environment.godot_assets

    def use(self, spec: VersionSpec) -> None:
        """Point the ``godot`` link at the best installed match for ``spec``. Works offline."""
        candidates = [s for s in self.installed() if s.mono == spec.mono]
        semver = select(spec, candidates, version=lambda s: s.version, release=lambda s: s.release)
        if semver is None:
            print(f"Godot '{spec}' is not installed. Use 'gdvm godot install' first.")
            return

        platform = self.environment.platform
        executable = platform.locator.locate(self.target_directory(semver))
        try:
            link = platform.publisher.publish(executable, self.config.bin_root)
        except OSError as e:
            raise FilesystemError(f"cannot update link in {self.config.bin_root}: {e}") from e

        logger.debug("Linked %s -> %s", link, executable)
        print(f"Now using Godot '{semver}'")

    def current(self) -> Path | None:
        return self.environment.platform.publisher.read(self.config.bin_root)


class BuildTemplatesService(ArtifactService):
    label = "Build templates"
    noun = "build templates"
    folder = BUILD_TEMPLATES_FOLDER
    # Upstream .tpz archives wrap everything in a "templates/" directory.
    collapse_root = True

    @property
    def install_root(self) -> Path:
        return self.config.build_templates_root

    @property
    def assets(self) -> AssetKind:
        return self.environment.build_templates_assets


class VersionsService:
    """Remote listing of what upstream publishes."""

    def __init__(self, environment: Environment) -> None:
        self.environment = environment

    def list(self, release: Release | None = None) -> None:
        releases = self.environment.available(release)
        if not releases:
            print("No versions available")
            return

        kind = self.environment.godot_assets
        rows = [["Version", "Release", "Mono?"]]
        for r in releases:
            mono_semver = r.semver(True)
            has_mono = any(kind.matches(a.name, mono_semver) for a in r.assets)
            rows.append([r.version.upstream, str(r.release), "yes" if has_mono else "no"])
        print_table(rows)
