from __future__ import annotations

import os
import shutil
import stat
import zipfile
import zlib
from pathlib import Path

from .errors import ArchiveError


def extract(archive_path: Path, dest: Path) -> None:
    """Extract a zip (or ``.tpz``, which is a zip) archive into ``dest``."""
    dest.mkdir(parents=True, exist_ok=True)
    base = dest.resolve()
    try:
        zf = zipfile.ZipFile(archive_path, "r")
    except zipfile.BadZipFile as e:
        raise ArchiveError(f"Not a valid archive: {archive_path}") from e

    try:
        with zf:
            _extract_members(zf, dest, base)
    except (zipfile.BadZipFile, zlib.error, EOFError) as e:
        raise ArchiveError(f"Corrupt archive {archive_path}: {e}") from e


def _extract_members(zf: zipfile.ZipFile, dest: Path, base: Path) -> None:
    for info in zf.infolist():
        name = info.filename
        if not name:
            continue
        if name.startswith("/"):
            raise ArchiveError(f"Archive contains an absolute path entry: {name!r}")
        target = (dest / name).resolve()
        if not str(target).startswith(str(base) + os.sep) and target != base:
            raise ArchiveError(f"Archive contains an invalid path entry: {name!r}")

        if info.is_dir():
            target.mkdir(parents=True, exist_ok=True)
            continue

        target.parent.mkdir(parents=True, exist_ok=True)
        with zf.open(info, "r") as src, target.open("wb") as out:
            shutil.copyfileobj(src, out)

        # Zip files made on unix keep the mode in the high 16 bits.
        mode = (info.external_attr >> 16) & 0o777
        if mode & stat.S_IXUSR:
            target.chmod(target.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


def collapse_single_root(dest: Path) -> None:
    """If ``dest`` holds nothing but one directory, move that directory's contents up into ``dest``."""
    children = list(dest.iterdir())
    if len(children) != 1 or not children[0].is_dir():
        return
    inner = children[0]
    staging = dest / (inner.name + ".gdvm-collapse")
    inner.rename(staging)
    for child in staging.iterdir():
        shutil.move(str(child), str(dest / child.name))
    staging.rmdir()
