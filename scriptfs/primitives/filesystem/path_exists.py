"""Path existence primitive."""

from __future__ import annotations

import os

from scriptfs.primitives.api import AritySpec, PrimitiveSpec
from scriptfs.primitives.filesystem._paths import path_argument

OPERATION = "path-exists?"


def execute(**kwargs) -> bool:
    """True when the path exists; a dangling symlink counts as missing."""
    return os.path.exists(path_argument(kwargs, 0, OPERATION))


KERNEL = execute
PRIMITIVE_SPEC = PrimitiveSpec(
    name=OPERATION,
    namespace="filesystem",
    kind="query",
    arity=AritySpec.fixed(1),
    kernel_name=f"filesystem.{OPERATION}",
    description="Whether a path exists",
)
