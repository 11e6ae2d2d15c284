from __future__ import annotations


class GdvmError(RuntimeError):
    pass


class InvalidSpecError(GdvmError):
    pass


class NotFoundError(GdvmError):
    """Nothing upstream or on disk matched. Callers may treat this as a normal outcome."""


class ExecutableNotFoundError(NotFoundError):
    pass


class AmbiguousExecutableError(GdvmError):
    pass


class UnrecognizedError(GdvmError):
    pass


class FilesystemError(GdvmError):
    pass


class ArchiveError(GdvmError):
    pass


class GithubHTTPError(GdvmError):
    # Must stay mutable: contextlib assigns __traceback__ to errors raised
    # inside httpx stream() blocks.
    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"HTTP {status_code}: {body}")
        self.status_code = status_code
        self.body = body
