# *************************************************************************
# SPDX-License-Identifier: Apache-2.0
# Licensed under the Apache License, Version 2.0.
# See the LICENSE file in the project root for the full license text.
# *************************************************************************
"""
Load a DIMACS CNF file and solve it with the DPLL search.

Example:
    python -m py_dpll.run_dpll -i ./dataset/example.cnf -o -
"""
import sys
import gzip
import time
import psutil
import argparse

from typing import Iterable, Optional

from py_dpll.formula import Formula, FormulaError
from py_dpll.dpll import DPLLSolver, Lbool


class DimacsParseError(ValueError):
    """Raised when a DIMACS description is malformed or inconsistent."""

    def __init__(self, message: str, lineno: Optional[int] = None):
        if lineno is not None:
            message = f"line {lineno}: {message}"
        super().__init__(message)
        self.lineno = lineno


def parse_dimacs_lines(lines: Iterable[str], name: Optional[str] = None,
                       allow_empty_clauses: bool = True,
                       max_clause_len: Optional[int] = None) -> Formula:
    """
    Reads DIMACS text line by line:
    - Skips blank lines and 'c' comments, stops at a '%' line.
    - The 'p cnf <vars> <clauses>' line must come before the first clause.
    - Clauses may span several lines and end with '0'; a lone '0' is an empty clause.
    - A trailing clause without its terminating '0' is still kept.

    Raises:
        DimacsParseError: on a bad problem line, bad literal or count mismatch.
    """
    nvar = None
    nclauses = None
    clauses = []
    lits = []
    lineno = 0

    for lineno, line in enumerate(lines, start=1):
        line = line.strip()
        if not line or line[0] in ('c', 'C'):
            continue
        if line[0] == '%':
            break

        if line[0] == 'p':
            if nvar is not None:
                raise DimacsParseError("duplicate problem line", lineno)
            parts = line.split()
            if len(parts) != 4 or parts[0] != 'p' or parts[1] != 'cnf':
                raise DimacsParseError(f"bad problem line '{line}'", lineno)
            try:
                nvar = int(parts[2])
                nclauses = int(parts[3])
            except ValueError:
                raise DimacsParseError(f"bad problem line '{line}'", lineno) from None
            if nvar < 0 or nclauses < 0:
                raise DimacsParseError(f"negative counts in problem line '{line}'", lineno)
            continue

        if nvar is None:
            raise DimacsParseError("clause before problem line", lineno)

        for lit_str in line.split():
            try:
                lit_val = int(lit_str)
            except ValueError:
                raise DimacsParseError(f"bad literal '{lit_str}'", lineno) from None
            if lit_val == 0:
                clauses.append(lits)
                lits = []
                continue
            if abs(lit_val) > nvar:
                raise DimacsParseError(f"literal {lit_val} out of range for {nvar} variables", lineno)
            lits.append(lit_val)
            if max_clause_len is not None and len(lits) > max_clause_len:
                raise DimacsParseError(f"clause longer than {max_clause_len} literals", lineno)

    if lits:
        clauses.append(lits)
    if nvar is None:
        raise DimacsParseError("missing problem line")
    if len(clauses) != nclauses:
        raise DimacsParseError(f"header declares {nclauses} clauses, found {len(clauses)}")

    try:
        return Formula(nvar, nclauses, clauses, name=name, allow_empty_clauses=allow_empty_clauses)
    except FormulaError as e:
        raise DimacsParseError(str(e)) from e


def parse_dimacs(filename: str, allow_empty_clauses: bool = True,
                 max_clause_len: Optional[int] = None) -> Formula:
    """Reads a .cnf or .cnf.gz file into a Formula."""
    open_fn = gzip.open if filename.endswith('.gz') else open
    with open_fn(filename, 'rt', encoding='utf-8') as f:
        return parse_dimacs_lines(f, name=filename, allow_empty_clauses=allow_empty_clauses,
                                  max_clause_len=max_clause_len)


def print_stats(S, start_time):
    cpu_time = time.process_time() - start_time

    process = psutil.Process()
    mem_used = process.memory_info().rss / (1024 * 1024)  # in MB

    decisions_per_sec = S.decisions / cpu_time if cpu_time > 0 else 0
    conflicts_per_sec = S.conflicts / cpu_time if cpu_time > 0 else 0

    print("decisions             : {:<14} ({:.0f} /sec)".format(S.decisions, decisions_per_sec))
    print("conflicts             : {:<14} ({:.0f} /sec)".format(S.conflicts, conflicts_per_sec))
    print("backtracks            : {}".format(S.backtracks))
    print("max depth             : {}".format(S.max_depth))
    print("Memory used           : {:.2f} MB".format(mem_used))
    print("CPU time              : {:.3f} s".format(cpu_time))


def model_to_dimacs(model) -> str:
    """Lbool model -> 'v1 -v2 ... 0', unassigned variables written negative."""
    lits = [str(i + 1) if val == Lbool.TRUE else str(-(i + 1)) for i, val in enumerate(model)]
    return " ".join(lits + ["0"])


def write_result(output_file: str, result: int, model) -> None:
    if result == Lbool.TRUE:
        text = "SAT\n" + model_to_dimacs(model) + "\n"
    elif result == Lbool.FALSE:
        text = "UNSAT\n"
    else:
        text = "INDET\n"
    if output_file == '-':
        sys.stdout.write(text)
    else:
        with open(output_file, 'w') as rf:
            rf.write(text)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Solve a DIMACS CNF with the backtracking DPLL solver."
    )
    parser.add_argument("-i", "--input_file", required=True,
                        help="Path to input CNF file (.cnf or .cnf.gz).")
    parser.add_argument("-o", "--output_file", default=None,
                        help="Path to write result (SAT/UNSAT + model). Use '-' for stdout.")
    parser.add_argument("--verbosity", type=int, default=1, help="0 = quiet, 1 = statistics.")
    parser.add_argument("--conflict-budget", type=int, default=-1,
                        help="Stop after this many conflicts (-1 = no limit).")
    parser.add_argument("--time-budget", type=float, default=-1,
                        help="Stop after this many seconds (-1 = no limit).")
    parser.add_argument("--max-clause-len", type=int, default=None,
                        help="Reject clauses longer than this (e.g. 3 for 3-SAT).")
    parser.add_argument("--reject-empty-clauses", action="store_true",
                        help="Treat a zero-length clause as a parse error.")
    parser.add_argument("--first-phase", choices=["true", "false"], default="true",
                        help="Value tried first on every decision.")
    return parser


def main(argv=None):
    args = build_arg_parser().parse_args(argv)

    start_time = time.process_time()

    try:
        formula = parse_dimacs(args.input_file,
                               allow_empty_clauses=not args.reject_empty_clauses,
                               max_clause_len=args.max_clause_len)
    except (OSError, DimacsParseError) as e:
        print(f"PARSE ERROR! {e}", file=sys.stderr)
        sys.exit(1)

    S = DPLLSolver(formula)
    S.verbosity = args.verbosity
    S.conflict_budget = args.conflict_budget
    S.time_budget = args.time_budget
    S.first_phase = args.first_phase == "true"

    result = S.solve_()

    if args.verbosity >= 1:
        print_stats(S, start_time)

    if result == Lbool.TRUE:
        print("SATISFIABLE")
        exit_code = 10
    elif result == Lbool.FALSE:
        print("UNSATISFIABLE")
        exit_code = 20
    else:
        print("INDETERMINATE")
        exit_code = 0

    if args.output_file:
        write_result(args.output_file, result, S.model)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
