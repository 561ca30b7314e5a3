"""Directory listing primitive."""

from __future__ import annotations

import os

from scriptfs.error_msg import error_from_os_error
from scriptfs.primitives.api import AritySpec, PrimitiveSpec
from scriptfs.primitives.filesystem._paths import path_argument

OPERATION = "read-dir"


def execute(**kwargs) -> list[str]:
    """List the entries of a directory as paths joined onto the argument.

    Order is whatever the OS enumerates; nothing is sorted. A missing path
    raises NotFoundError, a file raises TypeMismatchError.
    """
    path = path_argument(kwargs, 0, OPERATION)
    try:
        with os.scandir(path) as iterator:
            return [entry.path for entry in iterator]
    except OSError as exc:
        raise error_from_os_error(exc, OPERATION, path) from exc


KERNEL = execute
PRIMITIVE_SPEC = PrimitiveSpec(
    name=OPERATION,
    namespace="filesystem",
    kind="query",
    arity=AritySpec.fixed(1),
    kernel_name=f"filesystem.{OPERATION}",
    description="List directory entries in OS order",
)
