# *************************************************************************
# SPDX-License-Identifier: Apache-2.0
# Licensed under the Apache License, Version 2.0.
# See the LICENSE file in the project root for the full license text.
# *************************************************************************
"""
Run the DPLL solver over CNF instances from a TXT list or a folder of .cnf files, and save per-instance stats to JSON.
"""
import argparse
import os
from pathlib import Path

from typing import Dict, List
from tqdm import tqdm

from py_dpll.formula import Formula
from py_dpll.dpll import DPLLSolver, Lbool
from py_dpll.run_dpll import parse_dimacs
from utils.utils import get_cnf_files, read_sat_problems_lines, cnf_line_2_formula, save_dicts_to_json


RESULT_NAMES = {Lbool.TRUE: "SAT", Lbool.FALSE: "UNSAT", Lbool.UNDEF: "INDET"}


def process_single_sat_problem(formula: Formula, conflict_budget: int = -1, time_budget: float = -1) -> Dict:
    """
    Solve one formula and collect its statistics.

    Args:
        formula: The problem to solve.
        conflict_budget: Conflicts before giving up (-1 = none).
        time_budget: Seconds before giving up (-1 = none).

    Returns:
        Record dict with the result, search counters and the key trace.
    """
    solver = DPLLSolver(formula)
    solver.verbosity = 0
    solver.conflict_budget = conflict_budget
    solver.time_budget = time_budget
    result = solver.solve_()
    return {
        "name": formula.name,
        "n_v": formula.nVars(),
        "n_c": formula.nClauses(),
        "result": RESULT_NAMES[result],
        "decisions": solver.decisions,
        "conflicts": solver.conflicts,
        "backtracks": solver.backtracks,
        "max_depth": solver.max_depth,
        "time_s": solver.solve_time,
        "key_trace": solver.trace,
    }


def process_txt_file(problems_file: str, conflict_budget: int = -1, time_budget: float = -1) -> List[Dict]:
    """Solve every one-line problem of a TXT file."""
    problems = read_sat_problems_lines(problems_file)
    results = []
    for index, problem_line in tqdm(enumerate(problems), total=len(problems), desc=Path(problems_file).name):
        formula = cnf_line_2_formula(problem_line, name=f"{Path(problems_file).name}:{index}")
        results.append(process_single_sat_problem(formula, conflict_budget, time_budget))
    return results


def process_single_folder(folder_name: str, conflict_budget: int = -1, time_budget: float = -1) -> List[Dict]:
    """Solve every .cnf file of a folder."""
    results = []
    for cnf_path in tqdm(get_cnf_files(folder_name), desc=folder_name):
        formula = parse_dimacs(cnf_path)
        results.append(process_single_sat_problem(formula, conflict_budget, time_budget))
    return results


def ensure_parent_dir(path: str) -> None:
    """Create parent directory for a file path, if needed."""
    parent = os.path.dirname(os.path.abspath(path))
    if parent:
        os.makedirs(parent, exist_ok=True)


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        description="Run the DPLL solver over CNF instances from a TXT file or a folder of .cnf files."
    )
    p.add_argument(
        "--mode", choices=["txt", "folder"], required=True,
        help="txt: read one-line problems from a text file; folder: solve every .cnf file in a folder."
    )
    p.add_argument("--txt-file", type=str, help="Path to the input TXT file (required for --mode txt).")
    p.add_argument("--folder", type=str, help="Path to the folder of .cnf files (required for --mode folder).")
    p.add_argument("--save-path", type=str, default="./output/dpll/results.json",
                   help="JSON output file path.")
    p.add_argument("--conflict-budget", type=int, default=-1)
    p.add_argument("--time-budget", type=float, default=-1)
    return p


def main(argv=None):
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    if args.mode == "txt":
        if not args.txt_file:
            parser.error("--txt-file is required when --mode txt")
        results = process_txt_file(args.txt_file, args.conflict_budget, args.time_budget)
    else:
        if not args.folder:
            parser.error("--folder is required when --mode folder")
        results = process_single_folder(args.folder, args.conflict_budget, args.time_budget)

    ensure_parent_dir(args.save_path)
    save_dicts_to_json(results, args.save_path)
    print(f'Results saved to {args.save_path}')


if __name__ == '__main__':
    main()
