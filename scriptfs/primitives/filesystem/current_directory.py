"""Process working directory primitive."""

from __future__ import annotations

import os

from scriptfs.error_msg import error_from_os_error
from scriptfs.primitives.api import AritySpec, PrimitiveSpec

OPERATION = "current-directory"


def execute(**kwargs) -> str:
    # Read at call time; the working directory is process-wide state.
    try:
        return os.getcwd()
    except OSError as exc:
        raise error_from_os_error(exc, OPERATION, ".") from exc


KERNEL = execute
PRIMITIVE_SPEC = PrimitiveSpec(
    name=OPERATION,
    namespace="filesystem",
    kind="query",
    arity=AritySpec.fixed(0),
    kernel_name=f"filesystem.{OPERATION}",
    description="Absolute path of the process working directory",
)
