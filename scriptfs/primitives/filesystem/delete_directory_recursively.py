"""Recursive directory removal primitive."""

from __future__ import annotations

import logging
import os

from scriptfs.error_msg import NotFoundError, TypeMismatchError, error_from_os_error
from scriptfs.primitives.api import AritySpec, PrimitiveSpec
from scriptfs.primitives.filesystem._paths import path_argument

logger = logging.getLogger(__name__)

OPERATION = "delete-directory-recursively!"


def _remove_tree(root: str) -> None:
    # Post-order walk on an explicit stack; tree depth is not bounded by the
    # interpreter stack. A directory is removed once its entries are gone.
    pending: list[tuple[str, bool]] = [(root, False)]
    while pending:
        current, emptied = pending.pop()
        if emptied:
            os.rmdir(current)
            continue

        pending.append((current, True))
        with os.scandir(current) as iterator:
            entries = list(iterator)
        for entry in entries:
            if entry.is_dir(follow_symlinks=False):
                pending.append((entry.path, False))
            else:
                os.unlink(entry.path)


def execute(**kwargs) -> None:
    """Remove a directory and everything below it.

    The target must be a real directory: a symlink to a directory is a
    type mismatch. Symlinks inside the tree are removed, never followed.
    A failure part-way leaves the remaining entries in place.
    """
    path = path_argument(kwargs, 0, OPERATION)
    if not os.path.lexists(path):
        raise NotFoundError(f"directory not found: {path}", operation=OPERATION, path=path)
    if os.path.islink(path) or not os.path.isdir(path):
        raise TypeMismatchError(f"not a directory: {path}", operation=OPERATION, path=path)

    logger.debug("%s %s", OPERATION, path)
    try:
        _remove_tree(os.fspath(path))
    except OSError as exc:
        raise error_from_os_error(exc, OPERATION, exc.filename or path) from exc


KERNEL = execute
PRIMITIVE_SPEC = PrimitiveSpec(
    name=OPERATION,
    namespace="filesystem",
    kind="effect",
    arity=AritySpec.fixed(1),
    kernel_name=f"filesystem.{OPERATION}",
    description="Delete a directory tree",
)
