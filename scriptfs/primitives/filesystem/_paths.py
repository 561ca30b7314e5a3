"""Argument helpers shared by the filesystem primitives."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from scriptfs.error_msg import ConversionError
from scriptfs.policy import enforce_path_policy
from scriptfs.value_model import coerce_path


def path_argument(kwargs: dict[str, Any], index: int, operation: str) -> Path:
    """Return positional argument ``index`` as a policy-checked path."""
    key = str(index)
    if key not in kwargs:
        raise ConversionError(
            f"missing path argument at position {index}", operation=operation
        )
    path = coerce_path(kwargs[key], operation=operation)
    enforce_path_policy(path, operation=operation)
    return path
