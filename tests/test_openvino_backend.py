"""
Tests for the OpenVINO model handle, with the runtime objects faked.
"""

import numpy as np
import pytest

from inference.errors import BindingNotFound, ModelNotReady
from inference.invoker import validate_bindings
from inference.openvino_backend import OpenVinoModelHandle, load_and_compile


class FakePort:
    def __init__(self, name, shape):
        self._name = name
        self.shape = shape

    def get_any_name(self):
        return self._name


class FakeTensor:
    def __init__(self, data):
        self.data = data


class FakeCompiled:
    def __init__(self):
        self.inputs = [FakePort("data", (1, 3, 256, 256))]
        self.outputs = [FakePort("detection_out", (1, 1, 200, 7))]


class FakeRequest:
    def __init__(self):
        self.inputs = None
        self.buffer = np.zeros((1, 1, 200, 7), dtype=np.float32)

    def infer(self, inputs):
        self.inputs = inputs
        self.buffer[0, 0, 0, 2] = 0.75

    def get_tensor(self, port):
        return FakeTensor(self.buffer)


@pytest.fixture
def handle():
    return OpenVinoModelHandle(FakeCompiled(), FakeRequest(), model_path="face.xml")


class TestOpenVinoModelHandle:
    def test_names_and_shapes(self, handle):
        assert handle.is_ready
        assert handle.input_names == ["data"]
        assert handle.output_names == ["detection_out"]
        assert handle.input_shape("data") == (1, 3, 256, 256)
        assert validate_bindings(handle, None) == ("data", "detection_out")

    def test_unknown_input_shape(self, handle):
        with pytest.raises(BindingNotFound):
            handle.input_shape("image")

    def test_infer_binds_by_port_and_copies_output(self, handle):
        tensor = np.zeros((1, 3, 256, 256), dtype=np.float32)
        outputs = handle.infer({"data": tensor})

        port, bound = next(iter(handle._request.inputs.items()))
        assert port.get_any_name() == "data"
        assert bound is tensor
        assert outputs["detection_out"][0, 0, 0, 2] == pytest.approx(0.75)
        # The request's buffer is reused by the next call.
        assert not np.shares_memory(outputs["detection_out"], handle._request.buffer)

    def test_describe(self, handle):
        info = handle.describe()
        assert info["device"] == "CPU"
        assert info["outputs"] == {"detection_out": [1, 1, 200, 7]}

    def test_not_ready_without_request(self):
        assert not OpenVinoModelHandle(FakeCompiled(), None).is_ready


class TestLoadAndCompile:
    def test_missing_file(self, tmp_path):
        with pytest.raises(ModelNotReady, match="doesn't exist"):
            load_and_compile(str(tmp_path / "missing.xml"))
