"""
Layout-agnostic read access to raw detector output tensors.

Detector heads arrive as flat buffers with shape/stride metadata. Depending on
the exporter the channel axis is outermost or innermost and the batch axis may
be missing. TensorView hides that:

- [1, C, H, W]  channel-major, 4D
- [1, H, W, C]  channel-minor, 4D
- [C, H, W]     channel-major, 3D
- [H, W, C]     channel-minor, 3D

The layout and scalar encoding are chosen once, at construction.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional, Tuple

import numpy as np

from models.tensor import RawTensor


class ScalarEncoding(Enum):
    FLOAT32 = "float32"
    FLOAT16 = "float16"
    FLOAT64 = "float64"

    @property
    def dtype(self) -> np.dtype:
        return np.dtype(self.value)


class TensorLayout(Enum):
    CHANNEL_MAJOR_4D = "nchw"
    CHANNEL_MINOR_4D = "nhwc"
    CHANNEL_MAJOR_3D = "chw"
    CHANNEL_MINOR_3D = "hwc"

    @property
    def rank(self) -> int:
        return len(self.value)

    @property
    def axes(self) -> Tuple[int, int, int]:
        """Positions of the (row, col, channel) axes in the shape."""
        return (self.value.index("h"), self.value.index("w"), self.value.index("c"))


# Candidate layouts per rank, in detection order.
_LAYOUTS_BY_RANK = {
    4: (TensorLayout.CHANNEL_MAJOR_4D, TensorLayout.CHANNEL_MINOR_4D),
    3: (TensorLayout.CHANNEL_MAJOR_3D, TensorLayout.CHANNEL_MINOR_3D),
}


def detect_layout(shape: Tuple[int, ...], channels: int) -> Optional[TensorLayout]:
    """Pick the layout whose channel axis matches `channels`, if any."""
    for layout in _LAYOUTS_BY_RANK.get(len(shape), ()):
        if shape[layout.axes[2]] == channels:
            return layout
    return None


class TensorView:
    """
    Read-only (row, col, channel) accessor over one detector head.

    Use TensorView.create(); it returns None for tensors it cannot interpret.
    """

    def __init__(
        self,
        data: np.ndarray,
        layout: TensorLayout,
        encoding: ScalarEncoding,
        grid_h: int,
        grid_w: int,
        channels: int,
        strides: Tuple[int, int, int],
    ):
        self._data = data
        self.layout = layout
        self.encoding = encoding
        self.grid_h = grid_h
        self.grid_w = grid_w
        self.channels = channels
        self._row_stride, self._col_stride, self._channel_stride = strides

    @classmethod
    def create(cls, tensor: RawTensor, expected_channels: int) -> Optional["TensorView"]:
        """
        Build a view over `tensor`, or return None when it is not a head we can read.

        Fails (None) when the rank is not 3 or 4, no axis equals
        `expected_channels`, the encoding is unknown, or the strides would
        address memory outside the buffer.
        """
        shape = tuple(int(n) for n in tensor.shape)
        strides = tuple(int(s) for s in tensor.strides)

        try:
            encoding = ScalarEncoding(tensor.encoding)
        except ValueError:
            logging.debug(f"Tensor rejected: unsupported encoding {tensor.encoding!r}")
            return None

        if len(shape) not in _LAYOUTS_BY_RANK or len(strides) != len(shape):
            logging.debug(f"Tensor rejected: shape={shape} strides={strides}")
            return None

        layout = detect_layout(shape, expected_channels)
        if layout is None:
            logging.debug(f"Tensor rejected: no axis of {shape} has {expected_channels} channels")
            return None

        data = _flat_data(tensor.buffer, encoding)
        if data is None:
            logging.debug(f"Tensor rejected: buffer does not hold {encoding.value} data")
            return None

        if any(s < 0 for s in strides) or any(n <= 0 for n in shape):
            logging.debug(f"Tensor rejected: shape={shape} strides={strides}")
            return None
        last = sum((n - 1) * s for n, s in zip(shape, strides))
        if last >= data.size:
            logging.debug(f"Tensor rejected: strides address {last + 1} elements, buffer has {data.size}")
            return None

        row_axis, col_axis, ch_axis = layout.axes
        return cls(
            data=data,
            layout=layout,
            encoding=encoding,
            grid_h=shape[row_axis],
            grid_w=shape[col_axis],
            channels=shape[ch_axis],
            strides=(strides[row_axis], strides[col_axis], strides[ch_axis]),
        )

    @property
    def grid_size(self) -> Tuple[int, int]:
        """Return (height, width) of the head's grid."""
        return (self.grid_h, self.grid_w)

    def read(self, row: int, col: int, channel: int) -> float:
        """Value at a grid cell/channel as a float32-precision Python float."""
        idx = row * self._row_stride + col * self._col_stride + channel * self._channel_stride
        return float(np.float32(self._data[idx]))

    def grid(self) -> np.ndarray:
        """Copy of the whole head as a (H, W, C) float32 array."""
        item = self._data.itemsize
        hwc = np.lib.stride_tricks.as_strided(
            self._data,
            shape=(self.grid_h, self.grid_w, self.channels),
            strides=(self._row_stride * item, self._col_stride * item, self._channel_stride * item),
            writeable=False,
        )
        return hwc.astype(np.float32)


def _flat_data(buffer, encoding: ScalarEncoding) -> Optional[np.ndarray]:
    if isinstance(buffer, np.ndarray):
        if buffer.dtype != encoding.dtype:
            return None
        # Strides refer to the buffer's memory order, so a reshape must not copy.
        if buffer.ndim != 1:
            if not buffer.flags.c_contiguous:
                return None
            buffer = buffer.reshape(-1)
        elif buffer.strides[0] != buffer.itemsize:
            return None
        return buffer
    try:
        return np.frombuffer(buffer, dtype=encoding.dtype)
    except (TypeError, ValueError):
        return None
