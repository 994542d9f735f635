"""Conversion between host arrays and the engine's flat sequences."""

import logging
from collections.abc import Sequence
from enum import Enum
from typing import Any

import numpy as np
import torch

from .errors import ElementTypeError

logger = logging.getLogger(__name__)


class ElementType(Enum):
    """Numeric element kind of a packed container."""

    INT32 = "int32"
    UINT32 = "uint32"
    INT64 = "int64"
    UINT64 = "uint64"
    FLOAT64 = "float64"

    @classmethod
    def from_name(cls, name: "str | ElementType") -> "ElementType":
        if isinstance(name, ElementType):
            return name
        try:
            return cls(str(name).lower())
        except ValueError as e:
            raise ElementTypeError(f"Unsupported element type: {name!r}") from e

    @property
    def dtype(self) -> np.dtype:
        return np.dtype(self.value)

    @property
    def is_integer(self) -> bool:
        return self is not ElementType.FLOAT64

    @property
    def is_signed(self) -> bool:
        return self in (ElementType.INT32, ElementType.INT64, ElementType.FLOAT64)


def normalize(value: Any) -> np.ndarray:
    """Scalar or array-like input as a flat array, without type conversion."""
    if torch.is_tensor(value):
        value = value.detach().cpu().numpy()
    return np.asarray(value).reshape(-1)


def pack(value: Any, element_type: ElementType) -> np.ndarray:
    """
    Normalize a host value into a contiguous 1-D array of ``element_type``.

    Scalars become one-element arrays; lists, tuples, numpy arrays and torch
    tensors are flattened in row-major order.

    Args:
        value: Scalar or array-like input
        element_type: Target element type

    Returns:
        Contiguous numpy array with ``element_type.dtype``

    Raises:
        ElementTypeError: If values are not representable in ``element_type``
    """
    source = normalize(value)
    if source.dtype.kind not in "biuf":
        raise ElementTypeError(f"Cannot pack values of dtype {source.dtype}")

    target = element_type.dtype
    if element_type.is_integer:
        if source.dtype.kind == "f" and not np.all(np.isfinite(source)):
            raise ElementTypeError("Cannot pack non-finite values into an integer container")
        if source.dtype.kind == "f" and not np.all(source == np.trunc(source)):
            raise ElementTypeError(f"Fractional values do not fit {element_type.value}")
        if source.size:
            info = np.iinfo(target)
            low, high = source.min(), source.max()
            if int(low) < info.min or int(high) > info.max:
                raise ElementTypeError(
                    f"Values in [{low}, {high}] do not fit {element_type.value}"
                )
    return np.ascontiguousarray(source.astype(target))


def to_native(array: np.ndarray) -> list:
    """Engine-facing sequence with the same order and element count."""
    return array.tolist()


def from_native(values: Sequence, element_type: ElementType) -> np.ndarray:
    """
    Build a host array from an engine sequence.

    Floating point sequences decoded into integer containers are rounded to
    the nearest integer first and clamped to the element type's range, so
    approximation error around zero cannot wrap an unsigned value.
    """
    array = np.asarray(values)
    if element_type.is_integer and array.dtype.kind == "f":
        info = np.iinfo(element_type.dtype)
        array = np.clip(np.rint(array), info.min, info.max)
    return np.ascontiguousarray(array.astype(element_type.dtype))


def resize(array: np.ndarray, size: int) -> np.ndarray:
    """Truncate (or zero-pad) ``array`` to exactly ``size`` elements."""
    if size <= len(array):
        return array[:size].copy()
    padded = np.zeros(size, dtype=array.dtype)
    padded[: len(array)] = array
    return padded


def _format(value: Any, precision: int) -> str:
    if isinstance(value, (float, np.floating)):
        return f"{value:.{precision}f}"
    return str(value)


def print_vector(array: Any, print_size: int = 4, precision: int = 5) -> str:
    """
    Render a bounded preview of a vector.

    Shows the first and last ``print_size`` elements when the vector is longer
    than ``2 * print_size``.
    """
    values = np.asarray(array).reshape(-1).tolist()
    n = len(values)
    if n <= 2 * print_size:
        body = ", ".join(_format(v, precision) for v in values)
    else:
        head = ", ".join(_format(v, precision) for v in values[:print_size])
        tail = ", ".join(_format(v, precision) for v in values[-print_size:])
        body = f"{head}, ..., {tail}"
    return f"[ {body} ] (size={n})"


def print_matrix(array: Any, row_size: int, print_size: int = 5) -> str:
    """
    Render the first and last rows of a vector viewed as a row-major matrix.

    Args:
        array: Flat vector
        row_size: Number of elements per row
        print_size: Elements shown from each end of a row
    """
    if row_size <= 0:
        raise ValueError(f"row_size must be positive, got {row_size}")
    values = np.asarray(array).reshape(-1).tolist()
    rows = [values[i : i + row_size] for i in range(0, len(values), row_size)]
    if len(rows) > 2:
        rows = [rows[0], rows[-1]]

    lines = []
    for row in rows:
        if len(row) <= 2 * print_size:
            body = ", ".join(str(v) for v in row)
        else:
            head = ", ".join(str(v) for v in row[:print_size])
            tail = ", ".join(str(v) for v in row[-print_size:])
            body = f"{head}, ..., {tail}"
        lines.append(f"[ {body} ]")
    return "\n".join(lines)
