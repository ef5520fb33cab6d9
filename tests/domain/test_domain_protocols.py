import unittest

from keysolver.domain import INet, INumericBackend, IParameter, NetOutput
from keysolver.infrastructure.backend import NumpyBackend
from keysolver.infrastructure.net import LinearRegressionNet


class TestDomainProtocols(unittest.TestCase):
    def setUp(self):
        self.backend = NumpyBackend()
        self.net = LinearRegressionNet("toy", self.backend, input_dim=3, batch_size=4)

    def test_numpy_backend_conforms_to_inumericbackend(self):
        self.assertIsInstance(self.backend, INumericBackend)

    def test_linear_regression_net_conforms_to_inet(self):
        self.assertIsInstance(self.net, INet)

    def test_parameters_conform_to_iparameter(self):
        for p in self.net.parameters():
            self.assertIsInstance(p, IParameter)

    def test_net_output_defaults_to_zero_loss_weight(self):
        out = NetOutput(name="acc", values=(0.5,))
        self.assertEqual(out.loss_weight, 0.0)


if __name__ == "__main__":
    unittest.main()
