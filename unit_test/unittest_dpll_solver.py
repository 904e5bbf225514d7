# *************************************************************************
# SPDX-License-Identifier: Apache-2.0
# Licensed under the Apache License, Version 2.0.
# See the LICENSE file in the project root for the full license text.
# *************************************************************************
"""
Unit tests for the DPLL search driver, checked against brute force and pysat's MiniSat.
"""
import itertools
import unittest

import numpy as np
from pysat.solvers import Minisat22

from py_dpll.formula import Formula
from py_dpll.dpll import DPLLSolver, Lbool
from generate_dataset.gen_cnf_buckets import generate_sat_problem, generate_random_problem


def brute_force_sat(nvar, clauses) -> bool:
    for values in itertools.product((False, True), repeat=nvar):
        if all(any(values[abs(l) - 1] == (l > 0) for l in clause) for clause in clauses):
            return True
    return False


class TestDPLLSolver(unittest.TestCase):
    def setUp(self):
        self.rng = np.random.default_rng(2024)

    def assert_model_satisfies(self, model, clauses):
        for clause in clauses:
            self.assertTrue(
                any(model[abs(l) - 1] == (Lbool.TRUE if l > 0 else Lbool.FALSE) for l in clause),
                f"clause {clause} not satisfied by {model}")

    def test_satisfiable_formula(self):
        clauses = [[1, 2], [-1, -2]]
        solver = DPLLSolver(Formula(2, 2, clauses))
        self.assertEqual(solver.solve_(), Lbool.TRUE)
        self.assertEqual(solver.model, [Lbool.TRUE, Lbool.FALSE])
        self.assertEqual(solver.trace, "D 1 L 1 D 2 L 2 BT -2 L 2")
        self.assertEqual(solver.decisions, 2)
        self.assertEqual(solver.conflicts, 1)
        self.assertEqual(solver.backtracks, 1)

    def test_unsatisfiable_unit_pair(self):
        f = Formula(1, 2, [[1], [-1]])
        solver = DPLLSolver(f)
        self.assertEqual(solver.solve_(), Lbool.FALSE)
        self.assertEqual(solver.trace, "D 1 L 1 BT -1 L 1")
        self.assertEqual(solver.conflicts, 2)
        self.assertEqual(solver.backtracks, 1)
        self.assertEqual(solver.model, [])
        self.assertEqual(f.depth(), 0)
        self.assertEqual(f.activeClauses(), (0, 1))

    def test_all_sign_combinations_unsat(self):
        clauses = [list(c) for c in itertools.product((1, -1), (2, -2), (3, -3))]
        f = Formula(3, len(clauses), clauses)
        solver = DPLLSolver(f)
        self.assertEqual(solver.solve_(), Lbool.FALSE)
        self.assertEqual(f.depth(), 0)
        self.assertEqual(f.activeClauses(), tuple(range(8)))
        self.assertFalse(f.hasEmptyClause())

    def test_empty_clause_is_unsat_without_decisions(self):
        solver = DPLLSolver(Formula(2, 2, [[1, 2], []]))
        self.assertEqual(solver.solve_(), Lbool.FALSE)
        self.assertEqual(solver.decisions, 0)

    def test_empty_formula_is_sat(self):
        solver = DPLLSolver(Formula(2, 0, []))
        self.assertEqual(solver.solve_(), Lbool.TRUE)
        self.assertEqual(solver.model, [Lbool.UNDEF, Lbool.UNDEF])
        self.assertEqual(solver.decisions, 0)

    def test_first_phase_false(self):
        solver = DPLLSolver(Formula(2, 2, [[1, 2], [-1, -2]]))
        solver.first_phase = False
        self.assertEqual(solver.solve_(), Lbool.TRUE)
        self.assertEqual(solver.model, [Lbool.FALSE, Lbool.TRUE])
        self.assertEqual(solver.trace, "D -1 L 1 D -2 L 2 BT 2 L 2")

    def test_conflict_budget(self):
        f = Formula(2, 1, [[1, 2]])
        solver = DPLLSolver(f)
        solver.conflict_budget = 0
        self.assertEqual(solver.solve_(), Lbool.UNDEF)
        self.assertEqual(solver.decisions, 0)
        self.assertEqual(f.depth(), 0)

    def test_time_budget(self):
        f = Formula(2, 1, [[1, 2]])
        solver = DPLLSolver(f)
        solver.time_budget = 0
        self.assertEqual(solver.solve_(), Lbool.UNDEF)
        self.assertEqual(solver.decisions, 0)
        self.assertEqual(f.depth(), 0)
        self.assertEqual(solver.model, [])

    def test_conflict_budget_leaves_formula_backtracked(self):
        clauses = [list(c) for c in itertools.product((1, -1), (2, -2), (3, -3))]
        f = Formula(4, len(clauses), clauses)
        solver = DPLLSolver(f)
        solver.conflict_budget = 3
        self.assertEqual(solver.solve_(), Lbool.UNDEF)
        self.assertGreaterEqual(solver.conflicts, 3)
        self.assertEqual(f.depth(), 0)

    def test_planted_problems_are_solved(self):
        for trial in range(20):
            nvar = int(self.rng.integers(5, 12))
            clauses = generate_sat_problem(nvar, int(round(4.2 * nvar)), 3, self.rng)
            solver = DPLLSolver(Formula(nvar, len(clauses), clauses))
            with self.subTest(trial=trial):
                self.assertEqual(solver.solve_(), Lbool.TRUE)
                self.assert_model_satisfies(solver.model, clauses)

    def test_random_problems_match_brute_force(self):
        for trial in range(40):
            nvar = int(self.rng.integers(3, 9))
            clauses = generate_random_problem(nvar, int(self.rng.integers(1, 6 * nvar)), 3, self.rng)
            solver = DPLLSolver(Formula(nvar, len(clauses), clauses))
            result = solver.solve_()
            with self.subTest(trial=trial):
                self.assertEqual(result == Lbool.TRUE, brute_force_sat(nvar, clauses))
                if result == Lbool.TRUE:
                    self.assert_model_satisfies(solver.model, clauses)

    def test_random_problems_match_minisat(self):
        for trial in range(20):
            nvar = int(self.rng.integers(10, 20))
            clauses = generate_random_problem(nvar, int(round(4.3 * nvar)), 3, self.rng)
            solver = DPLLSolver(Formula(nvar, len(clauses), clauses))
            with Minisat22(bootstrap_with=clauses) as reference:
                expected = reference.solve()
            with self.subTest(trial=trial):
                self.assertEqual(solver.solve_() == Lbool.TRUE, expected)


if __name__ == '__main__':
    unittest.main()
