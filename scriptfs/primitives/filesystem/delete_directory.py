"""Empty directory removal primitive."""

from __future__ import annotations

import logging
import os

from scriptfs.error_msg import error_from_os_error
from scriptfs.primitives.api import AritySpec, PrimitiveSpec
from scriptfs.primitives.filesystem._paths import path_argument

logger = logging.getLogger(__name__)

OPERATION = "delete-directory!"


def execute(**kwargs) -> None:
    """Remove an empty directory.

    Non-empty directories are refused (IOError); use
    `delete-directory-recursively!` to remove a whole tree.
    """
    path = path_argument(kwargs, 0, OPERATION)
    logger.debug("%s %s", OPERATION, path)
    try:
        os.rmdir(path)
    except OSError as exc:
        raise error_from_os_error(exc, OPERATION, path) from exc


KERNEL = execute
PRIMITIVE_SPEC = PrimitiveSpec(
    name=OPERATION,
    namespace="filesystem",
    kind="effect",
    arity=AritySpec.fixed(1),
    kernel_name=f"filesystem.{OPERATION}",
    description="Delete an empty directory",
)
