# *************************************************************************
# SPDX-License-Identifier: Apache-2.0
# Licensed under the Apache License, Version 2.0.
# See the LICENSE file in the project root for the full license text.
# *************************************************************************
"""
Unit tests for the backtrackable clause state: overlay, active-clause stack and queries.
"""
import contextlib
import io
import random
import unittest

import numpy as np
from pysat.formula import CNF

from py_dpll.formula import (Formula, FormulaError, AssignmentError,
                             Status, VarState, VAR_UNDEF)
from generate_dataset.gen_cnf_buckets import generate_random_problem


def snapshot(formula: Formula):
    return (formula.activeClauses(),
            tuple(formula.status(c) for c in range(formula.nClauses())),
            formula.assignment(),
            formula.depth())


class TestScenarios(unittest.TestCase):
    def test_two_clause_formula_becomes_empty(self):
        f = Formula(2, 2, [[1, 2], [-1, -2]])
        f.setVar(1, True)
        self.assertEqual(f.status(0), (Status.SATISFYING, Status.UNASSIGNED))
        self.assertEqual(f.status(1), (Status.FALSIFIED, Status.UNASSIGNED))
        self.assertEqual(f.activeClauses(), (1,))
        self.assertFalse(f.isEmpty())
        self.assertFalse(f.hasEmptyClause())

        f.setVar(2, False)
        self.assertEqual(f.status(1), (Status.FALSIFIED, Status.SATISFYING))
        self.assertTrue(f.isEmpty())
        self.assertFalse(f.hasEmptyClause())
        self.assertEqual(f.model(), [1, -2])

    def test_unit_conflict(self):
        f = Formula(1, 2, [[1], [-1]])
        self.assertFalse(f.hasEmptyClause())
        f.setVar(1, True)
        self.assertEqual(f.activeClauses(), (1,))
        self.assertTrue(f.isEmptyClause(1))
        self.assertFalse(f.isEmptyClause(0))
        self.assertTrue(f.hasEmptyClause())

    def test_zero_length_clause_is_empty_before_any_assignment(self):
        f = Formula(2, 2, [[1, 2], []])
        self.assertTrue(f.isEmptyClause(1))
        self.assertTrue(f.hasEmptyClause())
        f.setVar(1, True)
        self.assertEqual(f.activeClauses(), (1,))
        self.assertTrue(f.hasEmptyClause())

    def test_full_backtrack_restores_initial_state(self):
        f = Formula(3, 4, [[1, -2], [2, 3], [-1, -3], [1, 2, 3]])
        initial = snapshot(f)
        order = [(2, False), (1, True), (3, False)]
        for v, val in order:
            f.setVar(v, val)
        for v, _ in reversed(order):
            f.unset(v)
        self.assertEqual(snapshot(f), initial)
        self.assertEqual(f.activeClauses(), (0, 1, 2, 3))
        for c in range(f.nClauses()):
            self.assertTrue(all(s == Status.UNASSIGNED for s in f.status(c)))


class TestOverlay(unittest.TestCase):
    def test_unset_clears_marks_of_clause_removed_earlier(self):
        f = Formula(2, 1, [[1, 2]])
        f.setVar(2, False)
        self.assertEqual(f.status(0), (Status.UNASSIGNED, Status.FALSIFIED))
        f.setVar(1, True)
        self.assertTrue(f.isEmpty())
        f.unset(1)
        self.assertEqual(f.status(0), (Status.UNASSIGNED, Status.FALSIFIED))
        self.assertEqual(f.activeClauses(), (0,))
        f.unset(2)
        self.assertEqual(f.status(0), (Status.UNASSIGNED, Status.UNASSIGNED))

    def test_repeated_literal_marks_every_position(self):
        f = Formula(2, 2, [[1, 2, 1], [-1, 2, -1]])
        f.setVar(1, True)
        self.assertEqual(f.status(0), (Status.SATISFYING, Status.UNASSIGNED, Status.SATISFYING))
        self.assertEqual(f.status(1), (Status.FALSIFIED, Status.UNASSIGNED, Status.FALSIFIED))

    def test_adjacent_satisfied_clauses_are_all_removed(self):
        f = Formula(2, 5, [[1], [1, 2], [2], [-1, 1], [-2]])
        f.setVar(1, True)
        self.assertEqual(f.activeClauses(), (2, 4))
        f.setVar(2, True)
        self.assertEqual(f.activeClauses(), (4,))
        self.assertTrue(f.hasEmptyClause())

    def test_frames_do_not_alias(self):
        f = Formula(2, 2, [[1], [2]])
        f.setVar(1, True)
        self.assertEqual(f.clause_stack[0], [0, 1])
        self.assertEqual(f.clause_stack[1], [1])
        self.assertIsNot(f.clause_stack[0], f.clause_stack[1])

    def test_value_lit(self):
        f = Formula(2, 1, [[1, -2]])
        self.assertEqual(f.value_lit(-1), VarState.UNASSIGNED)
        f.setVar(1, False)
        self.assertEqual(f.value_lit(1), VarState.FALSE)
        self.assertEqual(f.value_lit(-1), VarState.TRUE)
        self.assertEqual(f.value_var(1), VarState.FALSE)


    def test_print_assignment(self):
        f = Formula(3, 1, [[1, 2, 3]])
        f.setVar(1, True)
        f.setVar(3, False)
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            f.print_assignment()
        self.assertEqual(out.getvalue(), "2 0 1\n")


class TestSelectBranchVar(unittest.TestCase):
    def test_lowest_unassigned(self):
        f = Formula(4, 1, [[1, 2, 3, 4]])
        self.assertEqual(f.selectBranchVar(), 1)
        f.setVar(2, True)
        self.assertEqual(f.selectBranchVar(), 1)
        f.setVar(1, False)
        self.assertEqual(f.selectBranchVar(), 3)
        f.setVar(3, False)
        f.setVar(4, False)
        self.assertEqual(f.selectBranchVar(), VAR_UNDEF)

    def test_no_variables(self):
        f = Formula(0, 0, [])
        self.assertEqual(f.selectBranchVar(), VAR_UNDEF)
        self.assertTrue(f.isEmpty())
        self.assertFalse(f.hasEmptyClause())


class TestContractViolations(unittest.TestCase):
    def setUp(self):
        self.f = Formula(3, 2, [[1, 2], [-2, 3]])

    def test_reassignment(self):
        self.f.setVar(1, True)
        before = snapshot(self.f)
        with self.assertRaises(AssignmentError):
            self.f.setVar(1, False)
        self.assertEqual(snapshot(self.f), before)

    def test_unset_unassigned(self):
        with self.assertRaises(AssignmentError):
            self.f.unset(1)
        self.assertEqual(self.f.depth(), 0)

    def test_unset_out_of_order(self):
        self.f.setVar(1, True)
        self.f.setVar(2, True)
        before = snapshot(self.f)
        with self.assertRaises(AssignmentError):
            self.f.unset(1)
        self.assertEqual(snapshot(self.f), before)

    def test_variable_out_of_range(self):
        for v in (0, 4, -1, True):
            with self.subTest(v=v):
                with self.assertRaises(AssignmentError):
                    self.f.setVar(v, True)

    def test_clause_index_out_of_range(self):
        with self.assertRaises(IndexError):
            self.f.isEmptyClause(2)
        with self.assertRaises(IndexError):
            self.f.isEmptyClause(-1)


class TestConstruction(unittest.TestCase):
    def test_bad_inputs(self):
        cases = {
            "count mismatch": (2, 3, [[1], [2]]),
            "zero literal": (2, 1, [[1, 0, 2]]),
            "out of range": (2, 1, [[3]]),
            "negative out of range": (2, 1, [[-3]]),
            "not an int": (2, 1, [["1"]]),
            "negative size": (-1, 0, []),
            "string variable count": ("3", 0, []),
            "float clause count": (3, 1.0, [[1]]),
        }
        for label, (nvar, nclauses, clauses) in cases.items():
            with self.subTest(label):
                with self.assertRaises(FormulaError):
                    Formula(nvar, nclauses, clauses)

    def test_reject_empty_clause(self):
        with self.assertRaises(FormulaError):
            Formula(1, 2, [[1], []], allow_empty_clauses=False)

    def test_from_cnf(self):
        f = Formula.from_cnf(CNF(from_clauses=[[1, -3], [2]]), name="small")
        self.assertEqual(f.nVars(), 3)
        self.assertEqual(f.nClauses(), 2)
        self.assertEqual(f.clause(0), (1, -3))
        self.assertEqual(f.name, "small")

    def test_text_forms(self):
        f = Formula(2, 2, [[1, -2], [2]], name="t")
        self.assertEqual(str(f), "1\t-2\t\n2\t\n")
        out = io.StringIO()
        f.toDimacs(out)
        self.assertEqual(out.getvalue(), "c t\np cnf 2 2\n1 -2 0\n2 0\n")


class TestProperties(unittest.TestCase):
    """Random walks obeying stack discipline over random formulas."""

    def setUp(self):
        self.rng = np.random.default_rng(7)
        self.py_rng = random.Random(7)

    def check_queries(self, f: Formula):
        rows = [f.status(c) for c in range(f.nClauses())]
        every_satisfied = all(Status.SATISFYING in row for row in rows)
        some_falsified = any(all(s == Status.FALSIFIED for s in row) for row in rows)
        self.assertEqual(f.isEmpty(), every_satisfied)
        self.assertEqual(f.hasEmptyClause(), some_falsified)

        assignment = f.assignment()
        unassigned = [v for v, val in enumerate(assignment, start=1) if val == VarState.UNASSIGNED]
        self.assertEqual(f.selectBranchVar(), unassigned[0] if unassigned else VAR_UNDEF)
        self.assertEqual(f.depth(), f.nVars() - len(unassigned))
        self.assertEqual(f.nAssigns(), f.depth())

        for c, lits in enumerate(f.form):
            for k, lit in enumerate(lits):
                val = f.value_lit(lit)
                if val == VarState.UNASSIGNED:
                    self.assertEqual(rows[c][k], Status.UNASSIGNED)

    def test_random_walk_round_trip(self):
        for trial in range(30):
            nvar = int(self.rng.integers(3, 8))
            clauses = generate_random_problem(nvar, int(self.rng.integers(1, 20)), 3, self.rng)
            f = Formula(nvar, len(clauses), clauses)
            history = []
            for _ in range(40):
                free = [v for v in range(1, nvar + 1) if f.value_var(v) == VarState.UNASSIGNED]
                if history and (not free or self.py_rng.random() < 0.4):
                    v, before = history.pop()
                    f.unset(v)
                    with self.subTest(trial=trial, var=v):
                        self.assertEqual(snapshot(f), before)
                else:
                    v = self.py_rng.choice(free)
                    history.append((v, snapshot(f)))
                    f.setVar(v, self.py_rng.random() < 0.5)
                self.check_queries(f)


if __name__ == '__main__':
    unittest.main()
