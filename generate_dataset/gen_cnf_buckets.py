# *************************************************************************
# SPDX-License-Identifier: Apache-2.0
# Licensed under the Apache License, Version 2.0.
# See the LICENSE file in the project root for the full license text.
# *************************************************************************
"""
Generate random k-SAT formulas in variable-count buckets and write each CNF on one line
(DIMACS-lite: integers with trailing 0 per clause).

Example:
    # One bucket 5-15 with 500 planted-satisfiable items
    python -m generate_dataset.gen_cnf_buckets \
        --vars-min 5 --vars-max 15 --samples 500 --out-dir ./dataset/bench_raw/
"""
import argparse
from pathlib import Path
from typing import List, Optional

import numpy as np
from tqdm import trange


LITERAL_MAKES_CLAUSE_TRUE_PROB = 0.5


def generate_random_assignment(num_vars: int, rng: np.random.Generator) -> List[bool]:
    """
    Generate a random boolean assignment for variables 1..N.

    Returns:
        List where entry i is the value of variable i + 1.
    """
    return [bool(v) for v in rng.integers(0, 2, size=num_vars)]


def generate_sat_clause_from_assignment(
        assignment: List[bool],
        clause_size: int,
        rng: np.random.Generator
) -> List[int]:
    """
    Create one clause over distinct variables that the assignment satisfies.

    Each literal agrees with the assignment with probability
    LITERAL_MAKES_CLAUSE_TRUE_PROB; the last literal is forced to agree when
    none did before it.
    """
    chosen = rng.choice(len(assignment), size=clause_size, replace=False) + 1
    clause = []
    clause_is_true = False
    for i, v in enumerate(chosen):
        v = int(v)
        make_true = rng.random() < LITERAL_MAKES_CLAUSE_TRUE_PROB
        is_last = (i == clause_size - 1)
        if make_true or (is_last and not clause_is_true):
            clause.append(v if assignment[v - 1] else -v)
            clause_is_true = True
        else:
            clause.append(-v if assignment[v - 1] else v)
    return clause


def adjust_clauses_to_include_unused_vars(
        clauses: List[List[int]],
        num_vars: int,
        rng: np.random.Generator,
        assignment: Optional[List[bool]] = None
) -> None:
    """
    Ensure every variable 1..num_vars appears at least once by patching clauses in place.

    A literal whose variable occurs elsewhere too is swapped for the unused
    variable. With an assignment the new literal agrees with it, so a planted
    formula stays satisfied; without one its sign is random.

    Raises:
        RuntimeError: when no clause can give up a literal.
    """
    used_var_count = {}
    for clause in clauses:
        for lit in clause:
            used_var_count[abs(lit)] = used_var_count.get(abs(lit), 0) + 1

    for v in range(1, num_vars + 1):
        if v in used_var_count:
            continue
        candidates = [(ci, k) for ci, clause in enumerate(clauses)
                      for k, lit in enumerate(clause) if used_var_count[abs(lit)] > 1]
        if not candidates:
            raise RuntimeError("No clause found to safely replace a variable with an unused variable.")

        ci, k = candidates[int(rng.integers(len(candidates)))]
        used_var_count[abs(clauses[ci][k])] -= 1
        if assignment is not None:
            positive = assignment[v - 1]
        else:
            positive = bool(rng.integers(0, 2))
        clauses[ci][k] = v if positive else -v
        used_var_count[v] = 1


def generate_sat_problem(
        num_vars: int,
        num_clauses: int,
        clause_size: int,
        rng: Optional[np.random.Generator] = None
) -> List[List[int]]:
    """
    Generate a CNF satisfied by a hidden random assignment.

    Args:
        num_vars: Number of variables.
        num_clauses: Number of clauses.
        clause_size: Literals per clause (e.g., 3 for 3-SAT).
        rng: Random generator, a fresh default one when omitted.

    Returns:
        List of clauses (each a list of signed ints).
    """
    if clause_size > num_vars:
        raise ValueError(f"clause_size {clause_size} exceeds num_vars {num_vars}")
    rng = rng if rng is not None else np.random.default_rng()
    assignment = generate_random_assignment(num_vars, rng)
    clauses = [generate_sat_clause_from_assignment(assignment, clause_size, rng)
               for _ in range(num_clauses)]
    adjust_clauses_to_include_unused_vars(clauses, num_vars, rng, assignment)
    return clauses


def generate_random_problem(
        num_vars: int,
        num_clauses: int,
        clause_size: int,
        rng: Optional[np.random.Generator] = None,
        cover_all_vars: bool = False
) -> List[List[int]]:
    """Uniform random k-SAT, with no satisfiability guarantee."""
    if clause_size > num_vars:
        raise ValueError(f"clause_size {clause_size} exceeds num_vars {num_vars}")
    rng = rng if rng is not None else np.random.default_rng()
    clauses = []
    for _ in range(num_clauses):
        chosen = rng.choice(num_vars, size=clause_size, replace=False) + 1
        signs = rng.integers(0, 2, size=clause_size)
        clauses.append([int(v) if s else -int(v) for v, s in zip(chosen, signs)])
    if cover_all_vars:
        adjust_clauses_to_include_unused_vars(clauses, num_vars, rng)
    return clauses


def to_dimacs_like_format(clauses: List[List[int]]) -> str:
    """
    Convert clauses like [[1, -3], [2]] to '1 -3 0 2 0' form in a single line.
    """
    return " ".join(" ".join(str(lit) for lit in clause + [0]) for clause in clauses)


def write_bucket(
        vars_min: int,
        vars_max: int,
        samples: int,
        ratio_min: float,
        ratio_max: float,
        clause_size: int,
        out_dir: Path,
        planted: bool = True,
        seed: int = 42,
) -> Path:
    """
    Write a bucket of random CNFs to a text file (one CNF per line).

    Args:
        vars_min: Inclusive lower bound on #vars.
        vars_max: Inclusive upper bound on #vars.
        samples: Number of CNFs to generate.
        ratio_min: Min clause/var ratio.
        ratio_max: Max clause/var ratio.
        clause_size: Literals per clause.
        out_dir: Output folder for the bucket file.
        planted: Generate satisfiable formulas from a hidden assignment.
        seed: Seed of the random generator.

    Returns:
        Path of the written bucket file.
    """
    rng = np.random.default_rng(seed)
    out_dir.mkdir(parents=True, exist_ok=True)
    kind = "sat" if planted else "rand"
    fname = out_dir / f"{kind}_{vars_min}_{vars_max}.txt"
    with fname.open("w") as fh:
        desc = f"[{fname.name}] {samples:,} formulas"
        for _ in trange(samples, desc=desc):
            n_vars = int(rng.integers(vars_min, vars_max + 1))
            ratio = rng.uniform(ratio_min, ratio_max)
            n_clauses = max(1, int(round(ratio * n_vars)))
            if planted:
                clauses = generate_sat_problem(n_vars, n_clauses, clause_size, rng)
            else:
                clauses = generate_random_problem(n_vars, n_clauses, clause_size, rng, cover_all_vars=True)
            fh.write(to_dimacs_like_format(clauses) + "\n")
    return fname


def parse_args(argv=None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Generate bucketed k-SAT benchmark formulas")
    ap.add_argument("--vars-min", type=int, required=True)
    ap.add_argument("--vars-max", type=int, required=True)
    ap.add_argument("--samples", type=int, required=True)
    ap.add_argument("--ratio-min", type=float, default=4.1)
    ap.add_argument("--ratio-max", type=float, default=4.4)
    ap.add_argument("--clause-size", type=int, default=3)
    ap.add_argument("--random", action="store_true",
                    help="Uniform random formulas instead of planted satisfiable ones.")
    ap.add_argument("--seed", type=int, default=42)
    ap.add_argument("--out-dir", type=Path, required=True)
    return ap.parse_args(argv)


def main(argv=None) -> None:
    args = parse_args(argv)
    fname = write_bucket(
        vars_min=args.vars_min,
        vars_max=args.vars_max,
        samples=args.samples,
        ratio_min=args.ratio_min,
        ratio_max=args.ratio_max,
        clause_size=args.clause_size,
        out_dir=args.out_dir,
        planted=not args.random,
        seed=args.seed,
    )
    print(f"Wrote {fname}")


if __name__ == "__main__":
    main()
