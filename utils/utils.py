"""
This file includes some general help functions.
"""
import os
import json

from typing import List
from pysat.formula import CNF

from py_dpll.formula import Formula


def get_cnf_files(folder_path: str) -> List[str]:
    """Returns a sorted list of .cnf and .cnf.gz files in the specified folder."""
    return sorted(
        os.path.join(folder_path, f)
        for f in os.listdir(folder_path)
        if f.endswith('.cnf') or f.endswith('.cnf.gz')
    )


def save_dicts_to_json(results: list, output_filename: str) -> None:
    """
    Saves the results to a JSON file.

    Args:
        results (list): The results to save.
        output_filename (str): The filename for the output JSON file.
    """
    with open(output_filename, 'w') as json_file:
        json.dump(results, json_file, indent=4)


def read_sat_problems_lines(filename: str) -> List[str]:
    """
    Reads SAT problems from a file, each line is a problem in CNF format, e.g., "-1 0 5 1 -2 0".

    Args:
        filename (str): Path to the file containing SAT problems.

    Returns:
        list: A list of SAT problems, one per line.
    """
    with open(filename, 'r') as file:
        problems = file.readlines()
    return [line.strip() for line in problems if line.strip()]


def cnf_line_2_CNF_class(problem_line: str) -> CNF:
    """
    Parses a problem string into a CNF object.

    Args:
        problem_line (str): The problem string where clauses are divided by '0'.

    Returns:
        CNF object representing the SAT problem. A lone '0' is kept as an
        empty clause.
    """
    cnf = CNF()
    tokens = problem_line.strip().split()
    clause = []
    for token in tokens:
        if token == '0':
            cnf.append(clause)
            clause = []
        else:
            literal = int(token)
            clause.append(literal)

    if clause:
        cnf.append(clause)
    return cnf


def cnf_line_2_formula(problem_line: str, name: str = None, allow_empty_clauses: bool = True) -> Formula:
    """One-line DIMACS-lite problem -> Formula."""
    return Formula.from_cnf(cnf_line_2_CNF_class(problem_line), name=name,
                            allow_empty_clauses=allow_empty_clauses)
