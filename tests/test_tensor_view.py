"""
Tests for layout-agnostic tensor access.
"""

import numpy as np
import pytest

from inference.tensor_view import ScalarEncoding, TensorLayout, TensorView, detect_layout
from models.tensor import RawTensor


def _logical(grid=13, channels=255, seed=0):
    rng = np.random.default_rng(seed)
    return rng.standard_normal((channels, grid, grid)).astype(np.float32)


class TestLayoutDetection:
    def test_channel_major_4d(self):
        assert detect_layout((1, 255, 13, 13), 255) is TensorLayout.CHANNEL_MAJOR_4D

    def test_channel_minor_4d(self):
        assert detect_layout((1, 13, 13, 255), 255) is TensorLayout.CHANNEL_MINOR_4D

    def test_3d_layouts(self):
        assert detect_layout((255, 26, 26), 255) is TensorLayout.CHANNEL_MAJOR_3D
        assert detect_layout((26, 26, 255), 255) is TensorLayout.CHANNEL_MINOR_3D

    def test_no_channel_axis(self):
        assert detect_layout((1, 75, 13, 13), 255) is None


class TestTensorViewCreate:
    def test_reads_match_across_layouts(self):
        logical = _logical()
        nchw = TensorView.create(RawTensor.from_array(logical[None]), 255)
        nhwc = TensorView.create(
            RawTensor.from_array(np.ascontiguousarray(logical.transpose(1, 2, 0))[None]), 255
        )
        chw = TensorView.create(RawTensor.from_array(logical), 255)
        hwc = TensorView.create(RawTensor.from_array(np.ascontiguousarray(logical.transpose(1, 2, 0))), 255)

        assert nchw.layout is TensorLayout.CHANNEL_MAJOR_4D
        assert nhwc.layout is TensorLayout.CHANNEL_MINOR_4D
        assert chw.layout is TensorLayout.CHANNEL_MAJOR_3D
        assert hwc.layout is TensorLayout.CHANNEL_MINOR_3D

        for row, col, ch in [(0, 0, 0), (3, 7, 100), (12, 12, 254), (5, 0, 84)]:
            expected = float(logical[ch, row, col])
            assert nchw.read(row, col, ch) == expected
            assert nhwc.read(row, col, ch) == expected
            assert chw.read(row, col, ch) == expected
            assert hwc.read(row, col, ch) == expected

    def test_grid_shape_and_values(self):
        logical = _logical(grid=26)
        view = TensorView.create(RawTensor.from_array(logical[None]), 255)

        grid = view.grid()
        assert grid.shape == (26, 26, 255)
        assert grid.dtype == np.float32
        np.testing.assert_array_equal(grid, logical.transpose(1, 2, 0))
        assert view.grid_size == (26, 26)

    def test_non_contiguous_array(self):
        """A transposed numpy view keeps its memory order; strides describe it."""
        stored = np.ascontiguousarray(_logical().transpose(1, 2, 0))[None]  # NHWC memory
        logical_view = stored.transpose(0, 3, 1, 2)                          # NCHW shape

        view = TensorView.create(RawTensor.from_array(logical_view), 255)

        assert view.layout is TensorLayout.CHANNEL_MAJOR_4D
        assert view.read(2, 9, 200) == float(stored[0, 2, 9, 200])

    def test_float16_is_widened(self):
        logical = _logical().astype(np.float16)
        view = TensorView.create(RawTensor.from_array(logical[None]), 255)

        assert view.encoding is ScalarEncoding.FLOAT16
        value = view.read(1, 2, 3)
        assert isinstance(value, float)
        assert value == float(np.float32(logical[3, 1, 2]))

    def test_float64_is_narrowed(self):
        logical = _logical().astype(np.float64) + 1e-12
        view = TensorView.create(RawTensor.from_array(logical[None]), 255)

        assert view.encoding is ScalarEncoding.FLOAT64
        assert view.read(4, 4, 4) == float(np.float32(logical[4, 4, 4]))
        assert view.grid().dtype == np.float32

    def test_bytes_buffer(self):
        logical = _logical()
        raw = RawTensor(
            buffer=logical.tobytes(),
            shape=(1, 255, 13, 13),
            strides=(255 * 169, 169, 13, 1),
            encoding="float32",
        )
        view = TensorView.create(raw, 255)

        assert view is not None
        assert view.read(6, 5, 42) == float(logical[42, 6, 5])


class TestTensorViewRejects:
    def test_rank_two(self):
        raw = RawTensor.from_array(np.zeros((255, 13), dtype=np.float32))
        assert TensorView.create(raw, 255) is None

    def test_rank_five(self):
        raw = RawTensor.from_array(np.zeros((1, 1, 255, 13, 13), dtype=np.float32))
        assert TensorView.create(raw, 255) is None

    def test_no_matching_channel_axis(self):
        raw = RawTensor.from_array(np.zeros((1, 256, 13, 13), dtype=np.float32))
        assert TensorView.create(raw, 255) is None

    def test_unknown_encoding(self):
        raw = RawTensor.from_array(np.zeros((1, 255, 13, 13), dtype=np.int8))
        assert TensorView.create(raw, 255) is None

    def test_buffer_too_small(self):
        raw = RawTensor(
            buffer=np.zeros(100, dtype=np.float32),
            shape=(1, 255, 13, 13),
            strides=(255 * 169, 169, 13, 1),
        )
        assert TensorView.create(raw, 255) is None

    def test_encoding_mismatch_with_array_buffer(self):
        raw = RawTensor(
            buffer=np.zeros(255 * 169, dtype=np.float64),
            shape=(1, 255, 13, 13),
            strides=(255 * 169, 169, 13, 1),
            encoding="float32",
        )
        assert TensorView.create(raw, 255) is None


class TestRawTensor:
    def test_from_array_strides_in_elements(self):
        raw = RawTensor.from_array(np.zeros((1, 255, 13, 13), dtype=np.float32))
        assert raw.shape == (1, 255, 13, 13)
        assert raw.strides == (255 * 169, 169, 13, 1)
        assert raw.encoding == "float32"
        assert raw.count == 255 * 169

    @pytest.mark.parametrize("dtype,name", [(np.float16, "float16"), (np.float64, "float64")])
    def test_encoding_names(self, dtype, name):
        assert RawTensor.from_array(np.zeros((2, 2), dtype=dtype)).encoding == name
