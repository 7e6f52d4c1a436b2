"""
Raw model output tensors as handed over by a model runner.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Tuple

import numpy as np

# numpy dtype name -> encoding name understood by TensorView
_ENCODING_BY_DTYPE = {
    "float32": "float32",
    "float16": "float16",
    "float64": "float64",
}


@dataclass(frozen=True)
class RawTensor:
    """
    One raw output tensor of the detector.

    Attributes:
        buffer: Flat numeric data (numpy array or any buffer-protocol object).
        shape: Dimension sizes.
        strides: Per-dimension strides, in elements (not bytes).
        encoding: Scalar encoding name ("float32", "float16" or "float64").
    """
    buffer: Any
    shape: Tuple[int, ...]
    strides: Tuple[int, ...]
    encoding: str = "float32"

    @property
    def count(self) -> int:
        """Total number of logical elements."""
        return int(np.prod(self.shape)) if self.shape else 0

    @classmethod
    def from_array(cls, arr: np.ndarray) -> "RawTensor":
        """
        Adapter: wrap a numpy array, deriving element strides from it.

        Non-contiguous arrays (e.g. transposed views) are kept as they are; the
        flat buffer is the array's base memory and the strides describe it.
        """
        arr = np.asarray(arr)
        encoding = _ENCODING_BY_DTYPE.get(arr.dtype.name, arr.dtype.name)
        itemsize = arr.dtype.itemsize
        if any(s < 0 or s % itemsize for s in arr.strides):
            arr = np.ascontiguousarray(arr)
        strides = tuple(s // itemsize for s in arr.strides)
        # Smallest flat buffer covering every addressed element.
        span = 1 + sum((n - 1) * s for n, s in zip(arr.shape, strides)) if arr.size else 0
        flat = np.lib.stride_tricks.as_strided(
            arr, shape=(span,), strides=(itemsize,), writeable=False
        )
        return cls(buffer=flat, shape=tuple(arr.shape), strides=strides, encoding=encoding)
