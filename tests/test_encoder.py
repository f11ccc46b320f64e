"""
Tests for the tensor encoder.
"""

import time

import numpy as np
import pytest

from models.config import PreprocessConfig, DEFAULT_CHANNEL_MEANS
from models.frame import Frame
from preprocess.encoder import (
    ResizePolicy,
    TensorEncoder,
    encode,
    letterbox_geometry,
    stretch_geometry,
)

from conftest import make_rgba

MEANS = DEFAULT_CHANNEL_MEANS


def _frame(pixels):
    return Frame.from_rgba(pixels, timestamp=time.time())


def _expected(values, mean):
    return np.float32(values) - np.float32(mean)


class TestNoInput:
    def test_empty_frame(self):
        assert encode(Frame.empty(0.0), (256, 256), MEANS) is None

    @pytest.mark.parametrize("shape", [(0, 10, 4), (10, 0, 4), (0, 0, 4)])
    def test_zero_sized_pixels(self, shape):
        frame = Frame(pixels=np.zeros(shape, dtype=np.uint8), width=shape[1], height=shape[0], timestamp=0.0)
        assert encode(frame, (256, 256), MEANS) is None

    def test_zero_dimension_metadata(self):
        frame = Frame(pixels=make_rgba(4, 4), width=0, height=4, timestamp=0.0)
        assert encode(frame, (256, 256), MEANS) is None

    def test_none_frame(self):
        assert encode(None, (256, 256), MEANS) is None


class TestLayout:
    def test_shape_and_dtype(self, rgba_frame):
        tensor = encode(rgba_frame, (256, 256), MEANS)
        assert tensor.shape == (1, 3, 256, 256)
        assert tensor.data.dtype == np.float32
        assert tensor.data.flags["C_CONTIGUOUS"]

    def test_channel_block_byte_count(self, rgba_frame):
        tensor = encode(rgba_frame, (300, 200), MEANS, resize_policy=ResizePolicy.STRETCH)
        for c in range(3):
            assert tensor.channel(c).nbytes == 200 * 300 * 4
        assert tensor.data.nbytes == 3 * 200 * 300 * 4

    def test_planar_bgr_mean_subtracted_exactly(self):
        pixels = np.zeros((2, 3, 4), dtype=np.uint8)
        pixels[..., 0] = np.arange(6).reshape(2, 3)        # R
        pixels[..., 1] = np.arange(6).reshape(2, 3) + 100  # G
        pixels[..., 2] = np.arange(6).reshape(2, 3) + 200  # B
        pixels[..., 3] = 7

        tensor = encode(_frame(pixels), (3, 2), MEANS, resize_policy=ResizePolicy.STRETCH)

        np.testing.assert_array_equal(tensor.channel(0), _expected(pixels[..., 2], MEANS[0]))
        np.testing.assert_array_equal(tensor.channel(1), _expected(pixels[..., 1], MEANS[1]))
        np.testing.assert_array_equal(tensor.channel(2), _expected(pixels[..., 0], MEANS[2]))

    def test_flat_layout_is_channel_blocks(self):
        pixels = make_rgba(2, 2, rgb=(1, 2, 3))
        tensor = encode(_frame(pixels), (2, 2), [0, 0, 0], resize_policy=ResizePolicy.STRETCH)
        flat = tensor.data.reshape(-1)
        # B block, then G block, then R block
        np.testing.assert_array_equal(flat, [3, 3, 3, 3, 2, 2, 2, 2, 1, 1, 1, 1])

    def test_rgb_channel_order(self):
        pixels = make_rgba(2, 2, rgb=(1, 2, 3))
        tensor = encode(_frame(pixels), (2, 2), [0, 0, 0], resize_policy=ResizePolicy.STRETCH, channel_order="RGB")
        assert tensor.channel(0)[0, 0] == 1
        assert tensor.channel(2)[0, 0] == 3
        assert tensor.channel_order == "RGB"

    def test_no_clipping_of_negative_values(self):
        pixels = make_rgba(2, 2, rgb=(0, 0, 0))
        tensor = encode(_frame(pixels), (2, 2), MEANS, resize_policy=ResizePolicy.STRETCH)
        assert tensor.channel(0)[0, 0] == pytest.approx(-MEANS[0])

    def test_alpha_ignored(self):
        a = make_rgba(2, 2)
        b = a.copy()
        b[..., 3] = 0
        ta = encode(_frame(a), (2, 2), MEANS, resize_policy=ResizePolicy.STRETCH)
        tb = encode(_frame(b), (2, 2), MEANS, resize_policy=ResizePolicy.STRETCH)
        np.testing.assert_array_equal(ta.data, tb.data)

    def test_channel_scale(self):
        pixels = make_rgba(2, 2, rgb=(10, 10, 10))
        tensor = encode(_frame(pixels), (2, 2), [0, 0, 0], resize_policy=ResizePolicy.STRETCH, channel_scale=2.0)
        assert tensor.channel(0)[0, 0] == pytest.approx(5.0)

    def test_invalid_channel_order(self, rgba_frame):
        with pytest.raises(ValueError):
            encode(rgba_frame, (256, 256), MEANS, channel_order="BGX")

    def test_fresh_buffer_each_call(self, rgba_frame):
        a = encode(rgba_frame, (64, 64), MEANS)
        b = encode(rgba_frame, (64, 64), MEANS)
        assert not np.shares_memory(a.data, b.data)


class TestResizePolicy:
    def test_letterbox_geometry_landscape(self):
        geo = letterbox_geometry((640, 480), (256, 256))
        assert geo.scaled_size == (256, 192)
        assert geo.offset == (0, 32)

    def test_letterbox_geometry_portrait(self):
        geo = letterbox_geometry((480, 640), (256, 256))
        assert geo.scaled_size == (192, 256)
        assert geo.offset == (32, 0)

    def test_letterbox_geometry_odd_padding_rounds_down(self):
        geo = letterbox_geometry((10, 7), (10, 10))
        assert geo.scaled_size == (10, 7)
        assert geo.offset == (0, 1)

    def test_stretch_geometry(self):
        geo = stretch_geometry((640, 480), (256, 256))
        assert geo.is_identity

    def test_letterbox_pads_with_zero_before_mean(self):
        pixels = make_rgba(4, 2, rgb=(50, 60, 70))
        tensor = encode(_frame(pixels), (4, 4), MEANS, resize_policy=ResizePolicy.LETTERBOX)
        blue = tensor.channel(0)
        # Rows 0 and 3 are padding, rows 1-2 hold the image.
        np.testing.assert_array_equal(blue[0], _expected([0] * 4, MEANS[0]))
        np.testing.assert_array_equal(blue[3], _expected([0] * 4, MEANS[0]))
        np.testing.assert_array_equal(blue[1], _expected([70] * 4, MEANS[0]))
        np.testing.assert_array_equal(blue[2], _expected([70] * 4, MEANS[0]))
        assert tensor.geometry.offset == (0, 1)

    def test_stretch_fills_whole_tensor(self):
        pixels = make_rgba(8, 4, rgb=(50, 60, 70))
        tensor = encode(_frame(pixels), (4, 4), MEANS, resize_policy=ResizePolicy.STRETCH)
        np.testing.assert_array_equal(tensor.channel(0), np.full((4, 4), _expected(70, MEANS[0])))

    def test_policy_from_string(self, rgba_frame):
        tensor = encode(rgba_frame, (32, 32), MEANS, resize_policy="stretch")
        assert tensor.geometry.is_identity

    def test_unknown_policy(self, rgba_frame):
        with pytest.raises(ValueError):
            encode(rgba_frame, (32, 32), MEANS, resize_policy="crop")


class TestTensorEncoder:
    def test_uses_config(self, rgba_frame):
        encoder = TensorEncoder(PreprocessConfig(target_size=[128, 96], resize_policy="stretch"))
        tensor = encoder.encode(rgba_frame)
        assert tensor.shape == (1, 3, 96, 128)
        assert encoder.resize_policy is ResizePolicy.STRETCH

    def test_no_input(self):
        encoder = TensorEncoder(PreprocessConfig())
        assert encoder.encode(Frame.empty(0.0)) is None

    def test_rejects_bad_channel_order_at_construction(self):
        with pytest.raises(ValueError):
            TensorEncoder(PreprocessConfig(channel_order="RRB"))
