"""Recursive directory copy primitive."""

from __future__ import annotations

from pathlib import Path
import logging
import os
import shutil

from scriptfs.error_msg import (
    FilesystemIOError,
    NotFoundError,
    TypeMismatchError,
    error_from_os_error,
)
from scriptfs.primitives.api import AritySpec, PrimitiveSpec
from scriptfs.primitives.filesystem._paths import path_argument

logger = logging.getLogger(__name__)

OPERATION = "copy-directory-recursively!"


def _directory_is_empty(path: Path) -> bool:
    with os.scandir(path) as iterator:
        return next(iterator, None) is None


def _copy_tree(source: Path, destination: Path) -> None:
    # Iterative walk; tree depth is not bounded by the interpreter stack.
    # Each listing is materialised so its scandir handle is closed before
    # the subdirectories are visited.
    pending = [(source, destination)]
    while pending:
        current_source, current_destination = pending.pop()
        with os.scandir(current_source) as iterator:
            entries = list(iterator)

        for entry in entries:
            target = current_destination / entry.name
            if entry.is_dir(follow_symlinks=False):
                target.mkdir()
                pending.append((Path(entry.path), target))
            else:
                shutil.copy(entry.path, target, follow_symlinks=False)


def execute(**kwargs) -> None:
    """Copy a directory tree from source to destination.

    Positional arguments:
    - `0` (required): source directory, must exist
    - `1` (required): destination, must be absent or an empty directory

    Directories are created before their children are copied. File contents
    and permission bits are copied; symlinks are recreated, not followed.
    A failure part-way leaves the partial copy on disk.
    """
    source = path_argument(kwargs, 0, OPERATION)
    destination = path_argument(kwargs, 1, OPERATION)

    try:
        if not source.exists():
            raise NotFoundError(
                f"source directory not found: {source}", operation=OPERATION, path=source
            )
        if not source.is_dir():
            raise TypeMismatchError(
                f"source is not a directory: {source}", operation=OPERATION, path=source
            )
        if destination.exists() or destination.is_symlink():
            if not destination.is_dir():
                raise TypeMismatchError(
                    f"destination exists and is not a directory: {destination}",
                    operation=OPERATION,
                    path=destination,
                )
            if not _directory_is_empty(destination):
                raise FilesystemIOError(
                    f"destination exists and is not empty: {destination}",
                    operation=OPERATION,
                    path=destination,
                )

        real_source = Path(os.path.realpath(source))
        real_destination = Path(os.path.realpath(destination))
        if real_destination == real_source or real_source in real_destination.parents:
            raise FilesystemIOError(
                f"cannot copy {source} into itself ({destination})",
                operation=OPERATION,
                path=destination,
            )

        logger.debug("%s %s -> %s", OPERATION, source, destination)
        destination.mkdir(parents=True, exist_ok=True)
        _copy_tree(source, destination)
    except OSError as exc:
        raise error_from_os_error(exc, OPERATION, exc.filename or source) from exc


KERNEL = execute
PRIMITIVE_SPEC = PrimitiveSpec(
    name=OPERATION,
    namespace="filesystem",
    kind="effect",
    arity=AritySpec.fixed(2),
    kernel_name=f"filesystem.{OPERATION}",
    description="Copy a directory tree into an absent or empty destination",
)
