import importlib.util
import sys
import unittest
from unittest import mock

import numpy as np

from keysolver.domain import Device, DeviceNotSupportedError
from keysolver.infrastructure.backend import CupyBackend, get_backend, load_cupy


def _cuda_available() -> bool:
    """
    Best-effort CUDA availability check.
    Only True if CuPy imports and sees at least one device.
    """
    if importlib.util.find_spec("cupy") is None:
        return False
    try:
        import cupy

        return cupy.cuda.runtime.getDeviceCount() > 0
    except Exception:
        return False


class TestCupyBackendUnavailable(unittest.TestCase):
    def setUp(self):
        load_cupy.cache_clear()

    def tearDown(self):
        load_cupy.cache_clear()

    def test_missing_cupy_raises_device_not_supported(self):
        with mock.patch.dict(sys.modules, {"cupy": None}):
            with self.assertRaises(DeviceNotSupportedError) as cm:
                get_backend(Device("cuda:0"))
        self.assertEqual(cm.exception.device, "cuda")

    def test_cpu_device_rejected(self):
        with self.assertRaises(DeviceNotSupportedError):
            CupyBackend(Device("cpu"))


@unittest.skipUnless(_cuda_available(), "CuPy / CUDA device not available")
class TestCupyBackendKernels(unittest.TestCase):
    def setUp(self):
        self.b = get_backend(Device("cuda:0"))

    def test_dispatch(self):
        self.assertIsInstance(self.b, CupyBackend)
        self.assertEqual(self.b.name, "cupy")

    def test_round_trip_is_exact(self):
        host = np.random.default_rng(0).normal(size=(3, 4)).astype(np.float32)
        out = self.b.to_host(self.b.from_host(host))
        self.assertIsInstance(out, np.ndarray)
        np.testing.assert_array_equal(out, host)

    def test_kernels_match_numpy(self):
        x_h = np.array([1.0, -2.0, 0.0, 4.0], dtype=np.float32)
        y_h = np.array([0.5, 0.5, 0.5, 0.5], dtype=np.float32)
        x = self.b.from_host(x_h)
        y = self.b.from_host(y_h)
        self.b.axpby(2.0, x, 3.0, y)
        np.testing.assert_allclose(self.b.to_host(y), 2.0 * x_h + 3.0 * y_h, rtol=1e-6)
        out = self.b.zeros_like(x)
        self.b.sign(x, out)
        np.testing.assert_array_equal(self.b.to_host(out), np.sign(x_h))


if __name__ == "__main__":
    unittest.main()
