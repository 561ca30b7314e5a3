"""
scriptfs error module - script-level exceptions and the binding error taxonomy
"""

import errno
import os
from typing import List, Tuple, Optional, Union

PathText = Union[str, "os.PathLike[str]", None]

# Type alias for stack trace
Stack = List[Tuple[str, str]]


class ScriptException(Exception):
    """Script-level exception with stack trace support"""

    def __init__(self, msg: str, stack_trace: Optional[Stack] = None):
        self.msg = msg
        self.stack_trace = stack_trace or []
        super().__init__(self.format_message())

    def headline(self) -> str:
        return self.msg

    def format_message(self) -> str:
        if not self.stack_trace:
            return self.headline()

        trace_str = ""
        for identifier, position in self.stack_trace:
            trace_str += f"\n{identifier} at {position}"

        return f"{self.headline()}{trace_str}"

    def push_frame(self, identifier: str, position: str) -> None:
        """Record one more evaluation frame and refresh the message"""
        self.stack_trace.append((identifier, position))
        self.args = (self.format_message(),)


class BindingError(ScriptException):
    """Failure raised by a filesystem binding.

    ``kind`` is the taxonomy name scripts see; ``operation`` is the script
    name of the failing primitive and ``path`` the offending path, if any.
    """

    kind = "BindingError"

    def __init__(
        self,
        msg: str,
        *,
        operation: Optional[str] = None,
        path: PathText = None,
        stack_trace: Optional[Stack] = None,
    ):
        self.operation = operation
        self.path = os.fspath(path) if path is not None else None
        super().__init__(msg, stack_trace)

    def headline(self) -> str:
        if self.operation:
            return f"{self.operation}: {self.msg}"
        return self.msg

    def to_payload(self) -> dict:
        payload = {"kind": self.kind, "message": self.format_message()}
        if self.operation:
            payload["operation"] = self.operation
        if self.path is not None:
            payload["path"] = self.path
        return payload


class ConversionError(BindingError):
    """An argument could not be interpreted as a path or string"""

    kind = "ConversionError"


class NotFoundError(BindingError):
    """Target path does not exist"""

    kind = "NotFoundError"


class TypeMismatchError(BindingError):
    """Path exists but is the wrong kind (file vs directory)"""

    kind = "TypeMismatchError"


class PermissionDeniedError(BindingError):
    """The OS denied the operation"""

    kind = "PermissionError"


class PolicyViolationError(PermissionDeniedError):
    """The serve-mode runtime policy denied the operation"""


class FilesystemIOError(BindingError):
    """Any other OS-level failure"""

    kind = "IOError"


def error_from_os_error(
    exc: OSError, operation: str, path: PathText = None
) -> BindingError:
    """Map an ``OSError`` onto the binding error taxonomy.

    The caller is expected to ``raise ... from exc`` so the original error
    stays available as ``__cause__``.
    """
    target = path if path is not None else exc.filename
    detail = exc.strerror or str(exc)

    if isinstance(exc, FileNotFoundError):
        return NotFoundError(f"no such file or directory: {target}", operation=operation, path=target)
    if isinstance(exc, NotADirectoryError):
        return TypeMismatchError(f"not a directory: {target}", operation=operation, path=target)
    if isinstance(exc, IsADirectoryError):
        return TypeMismatchError(f"is a directory: {target}", operation=operation, path=target)
    if isinstance(exc, PermissionError):
        return PermissionDeniedError(f"permission denied: {target}", operation=operation, path=target)
    if isinstance(exc, FileExistsError):
        return FilesystemIOError(f"already exists: {target}", operation=operation, path=target)
    if exc.errno == errno.ENOTEMPTY:
        return FilesystemIOError(f"directory not empty: {target}", operation=operation, path=target)
    return FilesystemIOError(f"{detail}: {target}", operation=operation, path=target)
