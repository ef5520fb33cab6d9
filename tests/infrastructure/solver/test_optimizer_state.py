import unittest

import numpy as np

from keysolver.domain import SolverStateError, UpdateRuleKind
from keysolver.infrastructure.backend import NumpyBackend
from keysolver.infrastructure.net import Parameter
from keysolver.infrastructure.solver import OptimizerState


def _params(backend):
    shapes = [(2, 3), (2,)]
    return [
        Parameter(f"p{i}", backend.zeros(s), backend.zeros(s)) for i, s in enumerate(shapes)
    ]


class TestOptimizerState(unittest.TestCase):
    def setUp(self):
        self.b = NumpyBackend()

    def test_one_slot_per_parameter(self):
        state = OptimizerState(self.b, "SGD", _params(self.b))
        self.assertEqual(len(state), 2)
        self.assertIs(state.kind, UpdateRuleKind.SGD)
        self.assertEqual(state.shapes, [(2, 3), (2,)])
        self.assertEqual(state.history_shapes(), [(2, 3), (2,)])
        for entry, shape in zip(state, state.shapes):
            self.assertEqual(len(entry.history), 1)
            self.assertEqual(entry.history[0].shape, shape)
            self.assertEqual(entry.update.shape, shape)
            self.assertEqual(entry.temp.shape, shape)
            self.assertFalse(entry.history[0].any())

    def test_adadelta_histories_are_slot_major(self):
        state = OptimizerState(self.b, UpdateRuleKind.ADADELTA, _params(self.b))
        self.assertEqual(state.history_shapes(), [(2, 3), (2,), (2, 3), (2,)])
        hs = state.histories()
        self.assertIs(hs[0], state[0].history[0])
        self.assertIs(hs[1], state[1].history[0])
        self.assertIs(hs[2], state[0].history[1])
        self.assertIs(hs[3], state[1].history[1])

    def test_load_histories(self):
        state = OptimizerState(self.b, "SGD", _params(self.b))
        arrays = [np.full((2, 3), 1.5), np.full((2,), -2.0)]
        state.load_histories(arrays)
        host = state.histories_to_host()
        np.testing.assert_array_equal(host[0], arrays[0])
        np.testing.assert_array_equal(host[1], arrays[1])
        self.assertEqual(host[0].dtype, np.float32)

    def test_load_histories_count_mismatch(self):
        state = OptimizerState(self.b, "SGD", _params(self.b))
        with self.assertRaises(SolverStateError) as ctx:
            state.load_histories([np.zeros((2, 3))] * 3)
        self.assertIn("Incorrect length of history blobs", str(ctx.exception))

    def test_load_histories_shape_mismatch_leaves_state_untouched(self):
        state = OptimizerState(self.b, "SGD", _params(self.b))
        with self.assertRaises(SolverStateError):
            state.load_histories([np.ones((2, 3)), np.ones((3,))])
        for h in state.histories():
            self.assertFalse(h.any())


if __name__ == "__main__":
    unittest.main()
