import json
import os
import tempfile
import unittest

import numpy as np

from keysolver.domain import NetState, Phase, SolverConfigError
from keysolver.infrastructure.backend import NumpyBackend
from keysolver.infrastructure.net import (
    LinearRegressionNet,
    NetParameter,
    load_net_parameter,
    net_from_param,
    register_net,
    registered_nets,
)


class TestNetParameter(unittest.TestCase):
    def test_from_dict_and_back(self):
        d = {
            "type": "LinearRegression",
            "name": "toy",
            "config": {"input_dim": 3},
            "state": {"phase": "test", "level": 1, "stages": ["a"]},
        }
        param = NetParameter.from_dict(d)
        self.assertEqual(param.type, "LinearRegression")
        self.assertEqual(param.state, NetState(phase=Phase.TEST, level=1, stages=("a",)))
        self.assertEqual(NetParameter.from_dict(param.to_dict()), param)

    def test_display_name_defaults_to_type(self):
        self.assertEqual(NetParameter(type="LinearRegression").display_name, "LinearRegression")
        self.assertEqual(NetParameter(type="LinearRegression", name="n").display_name, "n")

    def test_missing_type(self):
        with self.assertRaises(SolverConfigError) as ctx:
            NetParameter.from_dict({"name": "x"})
        self.assertEqual(ctx.exception.field, "type")

    def test_load_from_file(self):
        with tempfile.TemporaryDirectory() as d:
            path = os.path.join(d, "net.json")
            with open(path, "w", encoding="utf-8") as f:
                json.dump({"type": "LinearRegression", "config": {"input_dim": 2}}, f)
            param = load_net_parameter(path)
        self.assertEqual(param.config, {"input_dim": 2})

    def test_load_missing_file(self):
        with self.assertRaises(SolverConfigError):
            load_net_parameter("/nonexistent/net.json")


class TestNetFromParam(unittest.TestCase):
    def test_builtin_is_registered(self):
        self.assertIn("LinearRegression", registered_nets())

    def test_instantiates_registered_net(self):
        param = NetParameter(type="LinearRegression", name="toy", config={"input_dim": 3})
        state = NetState(phase=Phase.TRAIN)
        net = net_from_param(param, NumpyBackend(), state=state, seed=5)
        self.assertIsInstance(net, LinearRegressionNet)
        self.assertEqual(net.name, "toy")
        self.assertEqual(net.state, state)

    def test_seed_makes_construction_reproducible(self):
        param = NetParameter(type="LinearRegression", config={"input_dim": 3})
        a = net_from_param(param, NumpyBackend(), seed=11)
        b = net_from_param(param, NumpyBackend(), seed=11)
        np.testing.assert_array_equal(a.parameters()[0].data, b.parameters()[0].data)

    def test_unknown_type(self):
        with self.assertRaises(SolverConfigError) as ctx:
            net_from_param(NetParameter(type="Nope"), NumpyBackend())
        self.assertEqual(ctx.exception.field, "type")
        self.assertIn("LinearRegression", str(ctx.exception))

    def test_bad_config_becomes_config_error(self):
        param = NetParameter(type="LinearRegression", config={"input_dim": 3, "bogus": 1})
        with self.assertRaises(SolverConfigError):
            net_from_param(param, NumpyBackend())
        param = NetParameter(type="LinearRegression", config={"input_dim": -1})
        with self.assertRaises(SolverConfigError):
            net_from_param(param, NumpyBackend())

    def test_register_custom_net(self):
        @register_net("__UnitTestLinear__")
        class UnitTestLinear(LinearRegressionNet):
            pass

        net = net_from_param(
            NetParameter(type="__UnitTestLinear__", config={"input_dim": 2}), NumpyBackend()
        )
        self.assertIsInstance(net, UnitTestLinear)


if __name__ == "__main__":
    unittest.main()
