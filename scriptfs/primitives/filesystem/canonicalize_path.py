"""Canonical absolute path primitive."""

from __future__ import annotations

from scriptfs.error_msg import FilesystemIOError, error_from_os_error
from scriptfs.primitives.api import AritySpec, PrimitiveSpec
from scriptfs.primitives.filesystem._paths import path_argument

OPERATION = "canonicalize-path"


def execute(**kwargs) -> str:
    """Return the absolute path with every symlink resolved; the path must exist."""
    path = path_argument(kwargs, 0, OPERATION)
    try:
        return str(path.resolve(strict=True))
    except OSError as exc:
        raise error_from_os_error(exc, OPERATION, path) from exc
    except RuntimeError as exc:
        # Older interpreters report symlink loops as RuntimeError.
        raise FilesystemIOError(
            f"symlink loop: {path}", operation=OPERATION, path=path
        ) from exc


KERNEL = execute
PRIMITIVE_SPEC = PrimitiveSpec(
    name=OPERATION,
    namespace="filesystem",
    kind="query",
    arity=AritySpec.fixed(1),
    kernel_name=f"filesystem.{OPERATION}",
    description="Absolute, symlink-free form of an existing path",
)
