# *************************************************************************
# SPDX-License-Identifier: Apache-2.0
# Licensed under the Apache License, Version 2.0.
# See the LICENSE file in the project root for the full license text.
# *************************************************************************
"""
Unit tests for the trace helpers, file utilities, batch runner and random generator.
"""
import contextlib
import io
import json
import os
import tempfile
import unittest
from pathlib import Path

import numpy as np

from py_dpll.dpll import DPLLSolver, Lbool
from py_dpll.formula import Formula
from py_dpll.run_dpll import parse_dimacs
from py_dpll import run_batch
from utils.keytrace_utils import convert_keytrace_to_str, extract_numbers_in_order, get_key_trace
from utils.utils import (get_cnf_files, save_dicts_to_json, read_sat_problems_lines,
                         cnf_line_2_CNF_class, cnf_line_2_formula)
from py_dpll.formula import FormulaError
from generate_dataset.gen_cnf_buckets import (generate_sat_problem, generate_random_problem,
                                              adjust_clauses_to_include_unused_vars,
                                              to_dimacs_like_format, write_bucket)


class TestKeyTrace(unittest.TestCase):
    def test_convert(self):
        events = [('D', 1, 1), ('D', 2, 2), ('BT', -2, 2), ('X', 5, 0)]
        self.assertEqual(convert_keytrace_to_str(events), "D 1 L 1 D 2 L 2 BT -2 L 2")

    def test_extract_numbers(self):
        self.assertEqual(extract_numbers_in_order("D 1 L 1 D -3 L 2 BT 3 L 2"), [1, -3, 3])

    def test_key_trace_drops_replaced_levels(self):
        trace = "D 1 L 1 D 2 L 2 D 3 L 3 BT -3 L 3 BT -2 L 2 D 3 L 3"
        self.assertEqual(get_key_trace(trace), "D 1 L 1 BT -2 L 2 D 3 L 3")
        self.assertEqual(get_key_trace(""), "")

    def test_key_trace_rejects_garbage(self):
        for trace in ("A 1", "D 1 X 1", "D 1 L"):
            with self.subTest(trace=trace):
                with self.assertRaises(ValueError):
                    get_key_trace(trace)

    def test_key_trace_of_solver_run(self):
        solver = DPLLSolver(Formula(2, 2, [[1, 2], [-1, -2]]))
        self.assertEqual(solver.solve_(), Lbool.TRUE)
        self.assertEqual(get_key_trace(solver.trace), "D 1 L 1 BT -2 L 2")


class TestFileUtils(unittest.TestCase):
    def setUp(self):
        self.tmp_dir = tempfile.TemporaryDirectory()
        self.root = self.tmp_dir.name

    def tearDown(self):
        self.tmp_dir.cleanup()

    def test_cnf_line_round_trip_through_file(self):
        line = "1 -2 0 2 3 0 -3 0"
        cnf = cnf_line_2_CNF_class(line)
        self.assertEqual(cnf.clauses, [[1, -2], [2, 3], [-3]])
        path = os.path.join(self.root, "p.cnf")
        cnf.to_file(path)
        f = parse_dimacs(path)
        self.assertEqual([f.clause(c) for c in range(f.nClauses())], [(1, -2), (2, 3), (-3,)])

    def test_cnf_line_2_formula(self):
        f = cnf_line_2_formula("1 2 0 -1 -2 0", name="line")
        self.assertEqual((f.nVars(), f.nClauses(), f.name), (2, 2, "line"))

    def test_lone_zero_is_kept_as_empty_clause(self):
        cnf = cnf_line_2_CNF_class("1 0 0")
        self.assertEqual(cnf.clauses, [[1], []])
        f = cnf_line_2_formula("1 0 0")
        self.assertEqual(f.nClauses(), 2)
        self.assertTrue(f.hasEmptyClause())
        self.assertEqual(DPLLSolver(f).solve_(), Lbool.FALSE)
        with self.assertRaises(FormulaError):
            cnf_line_2_formula("1 0 0", allow_empty_clauses=False)

    def test_get_cnf_files_and_read_lines(self):
        for name in ("b.cnf", "a.cnf.gz", "notes.txt"):
            Path(self.root, name).write_text("")
        self.assertEqual([os.path.basename(p) for p in get_cnf_files(self.root)], ["a.cnf.gz", "b.cnf"])

        problems = Path(self.root, "problems.txt")
        problems.write_text("1 0\n\n  -1 2 0  \n")
        self.assertEqual(read_sat_problems_lines(str(problems)), ["1 0", "-1 2 0"])

    def test_save_dicts_to_json(self):
        path = os.path.join(self.root, "out.json")
        save_dicts_to_json([{"result": "SAT"}], path)
        with open(path) as fh:
            self.assertEqual(json.load(fh), [{"result": "SAT"}])


class TestRunBatch(unittest.TestCase):
    def setUp(self):
        self.tmp_dir = tempfile.TemporaryDirectory()
        self.root = self.tmp_dir.name

    def tearDown(self):
        self.tmp_dir.cleanup()

    def test_txt_mode(self):
        txt = Path(self.root, "bucket.txt")
        txt.write_text("1 2 0 -1 -2 0\n1 0 -1 0\n1 0 0\n")
        save = os.path.join(self.root, "out", "res.json")
        with contextlib.redirect_stdout(io.StringIO()), contextlib.redirect_stderr(io.StringIO()):
            run_batch.main(["--mode", "txt", "--txt-file", str(txt), "--save-path", save])
        with open(save) as fh:
            records = json.load(fh)
        self.assertEqual([r["result"] for r in records], ["SAT", "UNSAT", "UNSAT"])
        self.assertEqual(records[2]["n_c"], 2)
        self.assertEqual(records[2]["decisions"], 0)
        self.assertEqual(records[0]["name"], "bucket.txt:0")
        self.assertEqual(records[1]["key_trace"], "D 1 L 1 BT -1 L 1")

    def test_folder_mode(self):
        Path(self.root, "a.cnf").write_text("p cnf 1 1\n1 0\n")
        Path(self.root, "b.cnf").write_text("p cnf 1 2\n1 0\n-1 0\n")
        records = run_batch.process_single_folder(self.root)
        self.assertEqual([r["result"] for r in records], ["SAT", "UNSAT"])
        self.assertEqual(records[0]["n_c"], 1)


class TestGenerator(unittest.TestCase):
    def setUp(self):
        self.rng = np.random.default_rng(11)

    def test_planted_problem_shape(self):
        clauses = generate_sat_problem(10, 42, 3, self.rng)
        self.assertEqual(len(clauses), 42)
        for clause in clauses:
            self.assertEqual(len({abs(l) for l in clause}), 3)
            self.assertTrue(all(1 <= abs(l) <= 10 for l in clause))
        solver = DPLLSolver(Formula(10, 42, clauses))
        self.assertEqual(solver.solve_(), Lbool.TRUE)

    def test_random_problem_shape(self):
        clauses = generate_random_problem(5, 7, 2, self.rng)
        self.assertEqual(len(clauses), 7)
        self.assertTrue(all(len(c) == 2 and abs(c[0]) != abs(c[1]) for c in clauses))

    def test_clause_size_too_large(self):
        with self.assertRaises(ValueError):
            generate_sat_problem(2, 3, 3, self.rng)

    def test_to_dimacs_like_format(self):
        self.assertEqual(to_dimacs_like_format([[1, -3], [2]]), "1 -3 0 2 0")

    def test_write_bucket(self):
        with contextlib.redirect_stderr(io.StringIO()):
            fname = write_bucket(5, 8, 6, 4.0, 4.5, 3, Path(self.tmp_dir_name()), seed=3)
        lines = read_sat_problems_lines(str(fname))
        self.assertEqual(len(lines), 6)
        for line in lines:
            self.assertEqual(DPLLSolver(cnf_line_2_formula(line)).solve_(), Lbool.TRUE)

    def test_every_variable_occurs(self):
        clauses = generate_sat_problem(12, 13, 3, self.rng)
        self.assertEqual({abs(l) for c in clauses for l in c}, set(range(1, 13)))
        self.assertTrue(all(len({abs(l) for l in c}) == 3 for c in clauses))
        self.assertEqual(DPLLSolver(Formula(12, 13, clauses)).solve_(), Lbool.TRUE)

        clauses = generate_random_problem(12, 13, 3, self.rng, cover_all_vars=True)
        self.assertEqual({abs(l) for c in clauses for l in c}, set(range(1, 13)))

    def test_coverage_keeps_planted_assignment(self):
        assignment = [True, False, True, False]
        clauses = [[1, -2], [1, 3]]
        adjust_clauses_to_include_unused_vars(clauses, 4, self.rng, assignment)
        self.assertIn(-4, [l for c in clauses for l in c])
        for clause in clauses:
            self.assertTrue(any(assignment[abs(l) - 1] == (l > 0) for l in clause))

    def test_coverage_impossible(self):
        with self.assertRaises(RuntimeError):
            generate_sat_problem(7, 1, 3, self.rng)

    def test_bucket_line_reports_generated_variable_count(self):
        with contextlib.redirect_stderr(io.StringIO()):
            fname = write_bucket(5, 8, 6, 4.0, 4.5, 3, Path(self.tmp_dir_name()), planted=False, seed=5)
        for line in read_sat_problems_lines(str(fname)):
            f = cnf_line_2_formula(line)
            self.assertTrue(5 <= f.nVars() <= 8)
            used = {abs(l) for c in range(f.nClauses()) for l in f.clause(c)}
            self.assertEqual(used, set(range(1, f.nVars() + 1)))

    def tmp_dir_name(self) -> str:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        return tmp.name


if __name__ == '__main__':
    unittest.main()
