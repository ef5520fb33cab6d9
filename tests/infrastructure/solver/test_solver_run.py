import glob
import os
import tempfile
import unittest

import numpy as np

from keysolver.domain import NetOutput, Phase, RunContext, SolverStatus
from keysolver.infrastructure.net import LinearRegressionNet, NetParameter, register_net
from keysolver.infrastructure.solver import EvaluationResult, Solver, SolverConfig


def _net(batch_size=8, num_samples=32):
    return NetParameter(
        type="LinearRegression",
        name="toy",
        config={"input_dim": 3, "batch_size": batch_size, "num_samples": num_samples},
    )


def _ctx():
    return RunContext(phase=Phase.TEST)


@register_net("__VectorThenWeightedLoss__")
class VectorThenWeightedLoss(LinearRegressionNet):
    """A three-value metric output followed by a loss output with weight 2."""

    def _forward(self, ctx, backward):
        loss, outputs = super()._forward(ctx, backward)
        mae = outputs[1].values[0]
        return 2.0 * loss, [
            NetOutput(name="vec", values=(mae, mae, mae), loss_weight=0.0),
            NetOutput(name="loss", values=(loss,), loss_weight=2.0),
        ]


class _RunCase(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.prefix = os.path.join(self._tmp.name, "toy")

    def tearDown(self):
        self._tmp.cleanup()

    def _config(self, **kwargs):
        cfg = dict(net_param=_net(), base_lr=0.1, random_seed=1, snapshot_prefix=self.prefix)
        cfg.update(kwargs)
        return SolverConfig(**cfg)


class TestSolveSchedule(_RunCase):
    def _scenario(self, test_initialization):
        solver = Solver(
            self._config(
                max_iter=10,
                snapshot=5,
                test_interval=5,
                test_iter=[1],
                test_initialization=test_initialization,
            )
        )
        history = solver.solve()
        return solver, history

    def test_snapshots_and_evaluations(self):
        solver, history = self._scenario(test_initialization=False)
        self.assertIs(solver.status, SolverStatus.COMPLETED)
        self.assertEqual(solver.iter, 10)
        states = sorted(glob.glob(self.prefix + "_iter_*.ksmodel.solverstate"))
        self.assertEqual(
            [os.path.basename(s) for s in states],
            ["toy_iter_10.ksmodel.solverstate", "toy_iter_5.ksmodel.solverstate"],
        )
        self.assertEqual(history.evaluated_iterations(0), [5, 10])

    def test_test_initialization_evaluates_iteration_zero(self):
        _, history = self._scenario(test_initialization=True)
        self.assertEqual(history.evaluated_iterations(0), [0, 5, 10])

    def test_no_final_snapshot_when_suppressed(self):
        Solver(self._config(max_iter=3, snapshot_after_train=False)).solve()
        self.assertEqual(glob.glob(self.prefix + "*"), [])

    def test_zero_iterations(self):
        solver = Solver(self._config(max_iter=0, snapshot_after_train=False))
        solver.solve()
        self.assertEqual(solver.iter, 0)
        self.assertIs(solver.status, SolverStatus.COMPLETED)

    def test_training_reduces_loss(self):
        solver = Solver(
            self._config(
                net_param=_net(batch_size=32),
                max_iter=200,
                momentum=0.9,
                base_lr=0.05,
                snapshot_after_train=False,
            )
        )
        before, _ = solver.net.forward_only(_ctx())
        solver.solve()
        after, _ = solver.net.forward_only(_ctx())
        self.assertLess(after, before * 0.1)

    def test_each_update_rule_trains(self):
        for kind, kw in (
            ("SGD", {"momentum": 0.9}),
            ("NESTEROV", {"momentum": 0.9}),
            ("ADAGRAD", {"base_lr": 0.5}),
            ("RMSPROP", {"base_lr": 0.05, "rms_decay": 0.9}),
            ("ADADELTA", {"base_lr": 1.0, "momentum": 0.95, "delta": 1e-4}),
        ):
            with self.subTest(kind=kind):
                solver = Solver(
                    self._config(
                        net_param=_net(batch_size=32),
                        max_iter=300,
                        solver_type=kind,
                        snapshot_after_train=False,
                        **kw,
                    )
                )
                before, _ = solver.net.forward_only(_ctx())
                solver.solve()
                after, _ = solver.net.forward_only(_ctx())
                self.assertLess(after, before)


class TestGradientAccumulation(_RunCase):
    def test_accumulated_run_matches_large_batch(self):
        large = Solver(
            self._config(
                net_param=_net(batch_size=8, num_samples=8),
                max_iter=20,
                momentum=0.9,
                snapshot_after_train=False,
            )
        )
        accumulated = Solver(
            self._config(
                net_param=_net(batch_size=4, num_samples=8),
                max_iter=20,
                momentum=0.9,
                update_interval=2,
                snapshot_after_train=False,
            )
        )
        large.solve()
        accumulated.solve()
        for p, q in zip(accumulated.net.parameters(), large.net.parameters()):
            np.testing.assert_allclose(p.data, q.data, rtol=1e-4, atol=1e-6)


class TestEvaluation(_RunCase):
    def test_standalone_test(self):
        solver = Solver(
            self._config(test_iter=[3], test_interval=1, test_compute_loss=True)
        )
        result = solver.test(0)
        self.assertIs(solver.status, SolverStatus.READY)
        self.assertIsInstance(result, EvaluationResult)
        self.assertEqual(result.iteration, 0)
        self.assertEqual([s.name for s in result.scores], ["loss", "mae"])
        self.assertEqual(result.scores[0].loss_weight, 1.0)
        self.assertEqual(result.scores[1].loss_weight, 0.0)
        self.assertAlmostEqual(result.loss, result.scores[0].value, places=5)
        self.assertEqual(set(result.metrics()), {"loss", "mae"})
        self.assertEqual(solver.history.evaluations, [result])

    def test_loss_not_computed_by_default(self):
        solver = Solver(self._config(test_iter=[1], test_interval=1))
        self.assertIsNone(solver.test(0).loss)

    def test_test_uses_current_train_parameters(self):
        solver = Solver(self._config(test_iter=[1], test_interval=1))
        solver.net.parameters()[0].data[...] = 0.5
        solver.test(0)
        np.testing.assert_array_equal(solver.test_nets[0].parameters()[0].data, 0.5)

    def test_out_of_range(self):
        solver = Solver(self._config(test_iter=[1], test_interval=1))
        with self.assertRaises(IndexError):
            solver.test(1)

    def test_evaluation_logs(self):
        solver = Solver(self._config(test_iter=[2], test_interval=1, test_compute_loss=True))
        with self.assertLogs("keysolver", level="INFO") as cm:
            solver.test_all()
        joined = "\n".join(cm.output)
        self.assertIn("Iteration 0, Testing net (#0)", joined)
        self.assertIn("Test loss:", joined)
        self.assertIn("Test net output #0: loss =", joined)
        self.assertIn("(* 1 = ", joined)
        self.assertIn("Test net output #1: mae =", joined)

    def test_each_score_uses_its_own_output_weight(self):
        net = NetParameter(
            type="__VectorThenWeightedLoss__",
            name="vec",
            config={"input_dim": 3, "batch_size": 8, "num_samples": 32},
        )
        solver = Solver(
            self._config(net_param=net, test_iter=[2], test_interval=1, test_compute_loss=True)
        )
        with self.assertLogs("keysolver", level="INFO") as cm:
            result = solver.test(0)
        self.assertEqual([s.index for s in result.scores], [0, 1, 2, 3])
        self.assertEqual([s.name for s in result.scores], ["vec", "vec", "vec", "loss"])
        self.assertEqual([s.loss_weight for s in result.scores], [0.0, 0.0, 0.0, 2.0])
        self.assertAlmostEqual(result.loss, 2.0 * result.scores[3].value, places=10)
        joined = "\n".join(cm.output)
        self.assertIn("Test net output #3: loss = ", joined)
        self.assertIn("(* 2 = ", joined)


class TestDisplay(_RunCase):
    def test_display_logs_and_history(self):
        solver = Solver(self._config(max_iter=5, display=2, average_loss=2, snapshot_after_train=False))
        with self.assertLogs("keysolver", level="INFO") as cm:
            history = solver.solve()
        joined = "\n".join(cm.output)
        self.assertIn("Iteration 0, loss = ", joined)
        self.assertIn("Iteration 0, lr = 0.1", joined)
        self.assertIn("Train net output #0: loss = ", joined)
        self.assertIn("Train net output #1: mae = ", joined)
        self.assertIn("Optimization Done.", joined)
        self.assertEqual(history.iteration, [0, 2, 4])
        self.assertEqual(set(history.last()), {"smoothed_loss", "lr", "loss", "mae"})
        self.assertEqual(history.history["lr"], [0.1, 0.1, 0.1])

    def test_final_display_shows_final_forward_loss(self):
        solver = Solver(
            self._config(
                net_param=_net(batch_size=32),
                max_iter=10,
                display=10,
                average_loss=10,
                snapshot_after_train=False,
            )
        )
        with self.assertLogs("keysolver", level="INFO") as cm:
            solver.solve()
        final = [line for line in cm.output if "Iteration 10, loss = " in line]
        self.assertEqual(len(final), 1)

        loss, _ = solver.net.forward_only(RunContext(phase=Phase.TRAIN))
        self.assertTrue(final[0].endswith(f"Iteration 10, loss = {loss:g}"))
        self.assertNotEqual(f"{loss:g}", f"{solver.history.history['smoothed_loss'][0]:g}")

    def test_debug_info_logs_parameters(self):
        solver = Solver(
            self._config(max_iter=1, display=1, debug_info=True, snapshot_after_train=False)
        )
        with self.assertLogs("keysolver", level="INFO") as cm:
            solver.solve()
        self.assertIn("[Backward] Net toy, param #0 (fc.weight)", "\n".join(cm.output))

    def test_solve_twice_restarts(self):
        solver = Solver(self._config(max_iter=3, snapshot_after_train=False))
        solver.solve()
        solver.solve()
        self.assertEqual(solver.iter, 3)
        self.assertIs(solver.status, SolverStatus.COMPLETED)


if __name__ == "__main__":
    unittest.main()
