import unittest

import numpy as np

from keysolver.domain import RegularizationType, SolverConfigError, UpdateRuleKind
from keysolver.infrastructure.backend import NumpyBackend
from keysolver.infrastructure.net import Parameter
from keysolver.infrastructure.solver import OptimizerState, UpdateRule


def _param(data, grad, **kwargs):
    data = np.array(data, dtype=np.float64)
    return Parameter("p", data, np.array(grad, dtype=np.float64), **kwargs)


class _RuleCase(unittest.TestCase):
    def setUp(self):
        self.b = NumpyBackend(dtype=np.float64)
        self.g = np.array([1.0, -2.0, 0.5])

    def _step(self, rule, p, state, rate, grad=None):
        p.diff[...] = self.g if grad is None else grad
        rule.apply(self.b, [p], state, rate)
        return p.diff.copy()

    def _setup(self, kind, **kwargs):
        rule = UpdateRule(kind=kind, **kwargs)
        p = _param([0.5, 0.5, -1.0], self.g)
        state = OptimizerState(self.b, rule.kind, [p])
        return rule, p, state


class TestUpdateRuleVariants(_RuleCase):
    def test_sgd_momentum(self):
        rule, p, state = self._setup("SGD", momentum=0.9)
        np.testing.assert_allclose(self._step(rule, p, state, 0.1), 0.1 * self.g)
        np.testing.assert_allclose(self._step(rule, p, state, 0.1), 0.19 * self.g)
        np.testing.assert_allclose(state[0].history[0], 0.19 * self.g)

    def test_nesterov(self):
        rule, p, state = self._setup("NESTEROV", momentum=0.9)
        np.testing.assert_allclose(self._step(rule, p, state, 0.1), 0.19 * self.g)
        # h_prev = 0.1 g, h = 0.19 g -> 1.9 * 0.19 g - 0.9 * 0.1 g
        np.testing.assert_allclose(self._step(rule, p, state, 0.1), 0.271 * self.g)

    def test_adagrad(self):
        rule, p, state = self._setup("ADAGRAD", delta=1e-8)
        g = self.g
        np.testing.assert_allclose(
            self._step(rule, p, state, 0.1), 0.1 * g / (np.abs(g) + 1e-8)
        )
        np.testing.assert_allclose(
            self._step(rule, p, state, 0.1), 0.1 * g / (np.sqrt(2.0) * np.abs(g) + 1e-8)
        )
        np.testing.assert_allclose(state[0].history[0], 2.0 * g * g)

    def test_adagrad_steps_shrink_under_constant_gradient(self):
        rule, p, state = self._setup("ADAGRAD")
        steps = [np.abs(self._step(rule, p, state, 0.1)) for _ in range(5)]
        for prev, cur in zip(steps, steps[1:]):
            self.assertTrue(np.all(cur < prev))

    def test_adagrad_history_never_decreases(self):
        rng = np.random.default_rng(7)
        rule, p, state = self._setup("ADAGRAD", weight_decay=0.01)
        prev = state[0].history[0].copy()
        for _ in range(50):
            self._step(rule, p, state, 0.1, grad=rng.normal(scale=2.0, size=3))
            p.data -= p.diff
            cur = state[0].history[0]
            self.assertTrue(np.all(cur >= prev))
            prev = cur.copy()
        self.assertTrue(np.all(prev > 0.0))

    def test_rmsprop(self):
        rule, p, state = self._setup("RMSPROP", rms_decay=0.9, delta=1e-8)
        g = self.g
        h = 0.1 * g * g
        np.testing.assert_allclose(self._step(rule, p, state, 0.01), 0.01 * g / (np.sqrt(h) + 1e-8))
        h = 0.1 * g * g + 0.9 * h
        np.testing.assert_allclose(self._step(rule, p, state, 0.01), 0.01 * g / (np.sqrt(h) + 1e-8))

    def test_adadelta(self):
        rule, p, state = self._setup("ADADELTA", momentum=0.9, delta=1e-6)
        self.assertEqual(len(state[0].history), 2)
        g = self.g
        h = np.zeros(3)
        h2 = np.zeros(3)
        for _ in range(3):
            h = 0.1 * g * g + 0.9 * h
            s = g * np.sqrt((h2 + 1e-6) / (h + 1e-6))
            h2 = 0.1 * s * s + 0.9 * h2
            np.testing.assert_allclose(self._step(rule, p, state, 1.0), s, rtol=1e-12)
        np.testing.assert_allclose(state[0].history[0], h)
        np.testing.assert_allclose(state[0].history[1], h2)

    def test_adadelta_rate_scales_final_step_only(self):
        rule, p, state = self._setup("ADADELTA", momentum=0.9, delta=1e-6)
        ref_rule, ref_p, ref_state = self._setup("ADADELTA", momentum=0.9, delta=1e-6)
        for _ in range(2):
            scaled = self._step(rule, p, state, 0.5)
            unit = self._step(ref_rule, ref_p, ref_state, 1.0)
            np.testing.assert_allclose(scaled, 0.5 * unit)
        np.testing.assert_allclose(state[0].history[1], ref_state[0].history[1])

    def test_lr_mult_scales_step(self):
        rule = UpdateRule(kind="SGD")
        p = _param([0.0, 0.0], [1.0, 1.0], lr_mult=2.0)
        frozen = _param([0.0, 0.0], [1.0, 1.0], lr_mult=0.0)
        state = OptimizerState(self.b, rule.kind, [p, frozen])
        rule.apply(self.b, [p, frozen], state, 0.1)
        np.testing.assert_allclose(p.diff, [0.2, 0.2])
        np.testing.assert_allclose(frozen.diff, [0.0, 0.0])


class TestRegularization(_RuleCase):
    def test_l2(self):
        rule, p, state = self._setup("SGD", weight_decay=0.1)
        data = p.data.copy()
        np.testing.assert_allclose(self._step(rule, p, state, 1.0), self.g + 0.1 * data)

    def test_l1(self):
        rule, p, state = self._setup("SGD", weight_decay=0.1, regularization_type="L1")
        self.assertIs(rule.regularization_type, RegularizationType.L1)
        data = p.data.copy()
        np.testing.assert_allclose(self._step(rule, p, state, 1.0), self.g + 0.1 * np.sign(data))

    def test_decay_mult(self):
        rule = UpdateRule(kind="SGD", weight_decay=0.1)
        p = _param([1.0, 1.0], [0.0, 0.0], decay_mult=0.0)
        state = OptimizerState(self.b, rule.kind, [p])
        rule.apply(self.b, [p], state, 1.0)
        np.testing.assert_allclose(p.diff, [0.0, 0.0])

    def test_accumulation_scales_rate_and_decay(self):
        rule, p, state = self._setup("SGD", weight_decay=0.01, update_interval=2)
        data = p.data.copy()
        # rate / 2 applied to (g + 2 * weight_decay * data)
        np.testing.assert_allclose(
            self._step(rule, p, state, 0.1), 0.05 * (self.g + 0.02 * data)
        )


class TestUpdateRuleValidation(unittest.TestCase):
    def test_invalid_coefficients(self):
        with self.assertRaises(SolverConfigError):
            UpdateRule(delta=0.0)
        with self.assertRaises(SolverConfigError):
            UpdateRule(rms_decay=1.5)
        with self.assertRaises(SolverConfigError):
            UpdateRule(weight_decay=-1.0)
        with self.assertRaises(SolverConfigError):
            UpdateRule(update_interval=0)
        with self.assertRaises(SolverConfigError) as ctx:
            UpdateRule(kind="LBFGS")
        self.assertEqual(ctx.exception.field, "solver_type")

    def test_kind_parsed_case_insensitively(self):
        self.assertIs(UpdateRule(kind="rmsprop").kind, UpdateRuleKind.RMSPROP)

    def test_state_length_mismatch(self):
        b = NumpyBackend(dtype=np.float64)
        rule = UpdateRule()
        p = _param([1.0], [1.0])
        state = OptimizerState(b, rule.kind, [p, p])
        with self.assertRaises(SolverConfigError):
            rule.apply(b, [p], state, 0.1)


if __name__ == "__main__":
    unittest.main()
