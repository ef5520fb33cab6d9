import unittest

import numpy as np

from keysolver.domain import Device, DeviceNotSupportedError
from keysolver.infrastructure.backend import NumpyBackend, get_backend


class TestNumpyBackendAllocation(unittest.TestCase):
    def setUp(self):
        self.b = NumpyBackend()

    def test_identity(self):
        self.assertEqual(self.b.name, "numpy")
        self.assertEqual(self.b.device, Device("cpu"))
        self.assertIs(self.b.array_module, np)

    def test_zeros_uses_float32(self):
        z = self.b.zeros((2, 3))
        self.assertEqual(z.shape, (2, 3))
        self.assertEqual(z.dtype, np.float32)
        self.assertFalse(z.any())

    def test_from_host_copies(self):
        host = np.arange(4, dtype=np.float64)
        buf = self.b.from_host(host)
        host[0] = 100.0
        self.assertEqual(buf[0], 0.0)
        self.assertEqual(buf.dtype, np.float32)

    def test_to_host_copies(self):
        buf = self.b.from_host([1.0, 2.0])
        out = self.b.to_host(buf)
        out[0] = -1.0
        self.assertEqual(buf[0], 1.0)

    def test_non_floating_dtype_rejected(self):
        with self.assertRaises(ValueError):
            NumpyBackend(dtype=np.int32)


class TestNumpyBackendKernels(unittest.TestCase):
    def setUp(self):
        self.b = NumpyBackend(dtype=np.float64)
        self.x = self.b.from_host([1.0, -2.0, 0.0, 4.0])
        self.y = self.b.from_host([0.5, 0.5, 0.5, 0.5])

    def test_axpy(self):
        self.b.axpy(2.0, self.x, self.y)
        np.testing.assert_allclose(self.y, [2.5, -3.5, 0.5, 8.5])

    def test_axpby(self):
        self.b.axpby(2.0, self.x, 3.0, self.y)
        np.testing.assert_allclose(self.y, [3.5, -2.5, 1.5, 9.5])

    def test_axpby_aliasing(self):
        self.b.axpby(1.0, self.x, 2.0, self.x)
        np.testing.assert_allclose(self.x, [3.0, -6.0, 0.0, 12.0])

    def test_scale_add_mul_div(self):
        out = self.b.zeros_like(self.x)
        self.b.scale(0.5, self.x, out)
        np.testing.assert_allclose(out, [0.5, -1.0, 0.0, 2.0])
        self.b.add(self.x, self.y, out)
        np.testing.assert_allclose(out, [1.5, -1.5, 0.5, 4.5])
        self.b.mul(self.x, self.y, out)
        np.testing.assert_allclose(out, [0.5, -1.0, 0.0, 2.0])
        self.b.div(self.x, self.y, out)
        np.testing.assert_allclose(out, [2.0, -4.0, 0.0, 8.0])

    def test_powx_and_sign(self):
        out = self.b.zeros_like(self.x)
        self.b.powx(self.x, 2.0, out)
        np.testing.assert_allclose(out, [1.0, 4.0, 0.0, 16.0])
        self.b.sign(self.x, out)
        np.testing.assert_array_equal(out, [1.0, -1.0, 0.0, 1.0])

    def test_add_scalar_set_copy(self):
        self.b.add_scalar(1.0, self.y)
        np.testing.assert_allclose(self.y, [1.5] * 4)
        self.b.set(7.0, self.y)
        np.testing.assert_allclose(self.y, [7.0] * 4)
        self.b.copy(self.x, self.y)
        np.testing.assert_array_equal(self.y, self.x)
        self.assertIsNot(self.y, self.x)

    def test_kernels_write_in_place(self):
        y_id = id(self.y)
        self.b.axpy(1.0, self.x, self.y)
        self.assertEqual(id(self.y), y_id)


class TestGetBackend(unittest.TestCase):
    def test_cpu_dispatch(self):
        self.assertIsInstance(get_backend(Device("cpu")), NumpyBackend)
        self.assertIsInstance(get_backend("cpu"), NumpyBackend)

    def test_invalid_device_string(self):
        with self.assertRaises(ValueError):
            get_backend("tpu:0")


if __name__ == "__main__":
    unittest.main()
