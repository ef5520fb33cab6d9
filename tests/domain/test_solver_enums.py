import unittest

from keysolver.domain import (
    LrPolicy,
    RegularizationType,
    SolverConfigError,
    SolverStatus,
    UpdateRuleKind,
)


class TestUpdateRuleKind(unittest.TestCase):
    def test_history_slots(self):
        self.assertEqual(UpdateRuleKind.ADADELTA.history_slots, 2)
        for kind in (
            UpdateRuleKind.SGD,
            UpdateRuleKind.NESTEROV,
            UpdateRuleKind.ADAGRAD,
            UpdateRuleKind.RMSPROP,
        ):
            self.assertEqual(kind.history_slots, 1)

    def test_parse(self):
        self.assertIs(UpdateRuleKind.parse("adagrad"), UpdateRuleKind.ADAGRAD)
        self.assertIs(UpdateRuleKind.parse(UpdateRuleKind.SGD), UpdateRuleKind.SGD)

    def test_parse_unknown_reports_field(self):
        with self.assertRaises(SolverConfigError) as cm:
            UpdateRuleKind.parse("ADAM")
        self.assertEqual(cm.exception.field, "solver_type")


class TestOtherEnums(unittest.TestCase):
    def test_lr_policy_parse(self):
        self.assertIs(LrPolicy.parse("STEP"), LrPolicy.STEP)
        with self.assertRaises(SolverConfigError):
            LrPolicy.parse("poly")

    def test_regularization_parse(self):
        self.assertIs(RegularizationType.parse("l1"), RegularizationType.L1)
        with self.assertRaises(SolverConfigError):
            RegularizationType.parse("L3")

    def test_status_values(self):
        self.assertEqual(SolverStatus.UNINITIALIZED.value, "uninitialized")
        self.assertEqual(SolverStatus.COMPLETED.value, "completed")


if __name__ == "__main__":
    unittest.main()
