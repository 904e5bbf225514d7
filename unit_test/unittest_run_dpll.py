# *************************************************************************
# SPDX-License-Identifier: Apache-2.0
# Licensed under the Apache License, Version 2.0.
# See the LICENSE file in the project root for the full license text.
# *************************************************************************
"""
Unit tests for the DIMACS loader and the command line entry point.
"""
import contextlib
import gzip
import io
import os
import tempfile
import unittest

from py_dpll.formula import Status
from py_dpll.run_dpll import DimacsParseError, parse_dimacs, parse_dimacs_lines, main


EXAMPLE = """c example
c two comment lines
p cnf 3 3
1 -2 0
2 3
 -1 0
-3 0
"""


class TestParseDimacs(unittest.TestCase):
    def test_parse_lines(self):
        f = parse_dimacs_lines(EXAMPLE.splitlines(), name="example")
        self.assertEqual(f.nVars(), 3)
        self.assertEqual(f.nClauses(), 3)
        self.assertEqual(f.clause(1), (2, 3, -1))
        self.assertEqual(f.clause(2), (-3,))
        self.assertEqual(f.activeClauses(), (0, 1, 2))
        self.assertEqual(f.name, "example")

    def test_lone_zero_is_empty_clause(self):
        f = parse_dimacs_lines(["p cnf 1 2", "1 0", "0"])
        self.assertEqual(f.clause(1), ())
        self.assertTrue(f.hasEmptyClause())

    def test_missing_final_zero_and_percent_trailer(self):
        f = parse_dimacs_lines(["p cnf 2 2", "1 2 0", "-1", "%", "0", ""])
        self.assertEqual(f.clause(1), (-1,))
        self.assertEqual(f.status(1), (Status.UNASSIGNED,))

    def test_errors(self):
        cases = {
            "missing header": ["1 2 0"],
            "no header at all": ["c only comments"],
            "bad header": ["p dnf 2 1", "1 0"],
            "short header": ["p cnf 2", "1 0"],
            "non-numeric header": ["p cnf two 1", "1 0"],
            "duplicate header": ["p cnf 2 1", "p cnf 2 1", "1 0"],
            "too many clauses": ["p cnf 2 1", "1 0", "2 0"],
            "too few clauses": ["p cnf 2 3", "1 0", "2 0"],
            "literal out of range": ["p cnf 2 1", "1 3 0"],
            "bad token": ["p cnf 2 1", "1 x 0"],
        }
        for label, lines in cases.items():
            with self.subTest(label):
                with self.assertRaises(DimacsParseError):
                    parse_dimacs_lines(lines)

    def test_error_carries_line_number(self):
        with self.assertRaises(DimacsParseError) as cm:
            parse_dimacs_lines(["c", "p cnf 2 1", "1 -5 0"])
        self.assertEqual(cm.exception.lineno, 3)
        self.assertIn("line 3", str(cm.exception))

    def test_max_clause_len(self):
        lines = ["p cnf 4 1", "1 2 3 4 0"]
        with self.assertRaises(DimacsParseError):
            parse_dimacs_lines(lines, max_clause_len=3)
        self.assertEqual(parse_dimacs_lines(lines, max_clause_len=4).clause(0), (1, 2, 3, 4))

    def test_reject_empty_clauses(self):
        with self.assertRaises(DimacsParseError):
            parse_dimacs_lines(["p cnf 1 2", "1 0", "0"], allow_empty_clauses=False)


class TestDimacsFiles(unittest.TestCase):
    def setUp(self):
        self.tmp_dir = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.tmp_dir.cleanup()

    def write(self, name: str, text: str) -> str:
        path = os.path.join(self.tmp_dir.name, name)
        open_fn = gzip.open if name.endswith('.gz') else open
        with open_fn(path, 'wt', encoding='utf-8') as fh:
            fh.write(text)
        return path

    def test_plain_and_gzip(self):
        for name in ("example.cnf", "example.cnf.gz"):
            with self.subTest(name=name):
                f = parse_dimacs(self.write(name, EXAMPLE))
                self.assertEqual(f.nClauses(), 3)
                self.assertTrue(f.name.endswith(name))

    def run_main(self, *argv):
        out = io.StringIO()
        err = io.StringIO()
        with contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
            with self.assertRaises(SystemExit) as cm:
                main(list(argv))
        return cm.exception.code, out.getvalue(), err.getvalue()

    def test_main_sat(self):
        cnf = self.write("sat.cnf", "p cnf 2 2\n1 2 0\n-1 -2 0\n")
        result = os.path.join(self.tmp_dir.name, "result.txt")
        code, out, _ = self.run_main("-i", cnf, "-o", result)
        self.assertEqual(code, 10)
        self.assertIn("SATISFIABLE", out)
        self.assertIn("decisions", out)
        with open(result) as fh:
            self.assertEqual(fh.read(), "SAT\n1 -2 0\n")

    def test_main_unsat(self):
        cnf = self.write("unsat.cnf", "p cnf 1 2\n1 0\n-1 0\n")
        result = os.path.join(self.tmp_dir.name, "result.txt")
        code, out, _ = self.run_main("-i", cnf, "-o", result, "--verbosity", "0")
        self.assertEqual(code, 20)
        self.assertEqual(out, "UNSATISFIABLE\n")
        with open(result) as fh:
            self.assertEqual(fh.read(), "UNSAT\n")

    def test_main_budget(self):
        cnf = self.write("open.cnf", "p cnf 2 1\n1 2 0\n")
        code, out, _ = self.run_main("-i", cnf, "-o", "-", "--verbosity", "0", "--conflict-budget", "0")
        self.assertEqual(code, 0)
        self.assertEqual(out, "INDETERMINATE\nINDET\n")

    def test_main_parse_error(self):
        cnf = self.write("bad.cnf", "p cnf 1 2\n1 0\n")
        code, _, err = self.run_main("-i", cnf)
        self.assertEqual(code, 1)
        self.assertIn("PARSE ERROR!", err)

    def test_main_missing_file(self):
        code, _, err = self.run_main("-i", os.path.join(self.tmp_dir.name, "nope.cnf"))
        self.assertEqual(code, 1)
        self.assertIn("PARSE ERROR!", err)


if __name__ == '__main__':
    unittest.main()
