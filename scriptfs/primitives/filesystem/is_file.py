"""Regular file test primitive."""

from __future__ import annotations

import os

from scriptfs.primitives.api import AritySpec, PrimitiveSpec
from scriptfs.primitives.filesystem._paths import path_argument

OPERATION = "is-file?"


def execute(**kwargs) -> bool:
    return os.path.isfile(path_argument(kwargs, 0, OPERATION))


KERNEL = execute
PRIMITIVE_SPEC = PrimitiveSpec(
    name=OPERATION,
    namespace="filesystem",
    kind="query",
    arity=AritySpec.fixed(1),
    kernel_name=f"filesystem.{OPERATION}",
    description="Whether a path is an existing regular file",
)
