"""Directory creation primitive (creates missing ancestors)."""

from __future__ import annotations

import logging
import os

from scriptfs.error_msg import TypeMismatchError, error_from_os_error
from scriptfs.primitives.api import AritySpec, PrimitiveSpec
from scriptfs.primitives.filesystem._paths import path_argument

logger = logging.getLogger(__name__)

OPERATION = "create-directory!"


def execute(**kwargs) -> None:
    """Create a directory and all missing parents; an existing directory is left as is."""
    path = path_argument(kwargs, 0, OPERATION)
    logger.debug("%s %s", OPERATION, path)
    try:
        os.makedirs(path, exist_ok=True)
    except FileExistsError as exc:
        raise TypeMismatchError(
            f"path exists and is not a directory: {exc.filename or path}",
            operation=OPERATION,
            path=path,
        ) from exc
    except OSError as exc:
        raise error_from_os_error(exc, OPERATION, path) from exc


KERNEL = execute
PRIMITIVE_SPEC = PrimitiveSpec(
    name=OPERATION,
    namespace="filesystem",
    kind="effect",
    arity=AritySpec.fixed(1),
    kernel_name=f"filesystem.{OPERATION}",
    description="Create a directory, including missing ancestors",
)
