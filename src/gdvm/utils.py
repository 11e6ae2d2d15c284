from __future__ import annotations

from pathlib import Path

from .errors import FilesystemError


def does_exist(path: Path) -> bool:
    try:
        return path.exists()
    except OSError as e:
        raise FilesystemError(f"failed to check existence of {path}: {e}") from e


def print_table(rows: list[list[str]]) -> None:
    if not rows:
        return
    widths = [0] * len(rows[0])
    for r in rows:
        for i, c in enumerate(r):
            widths[i] = max(widths[i], len(c))
    for r in rows:
        line = "  ".join(c.ljust(widths[i]) for i, c in enumerate(r))
        print(line.rstrip())
