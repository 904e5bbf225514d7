# *************************************************************************
# SPDX-License-Identifier: Apache-2.0
# Licensed under the Apache License, Version 2.0.
# See the LICENSE file in the project root for the full license text.
# *************************************************************************
"""
Backtrackable CNF formula state for a DPLL search.

The formula keeps two arrays of identical shape:
    form     - the static literals of every clause (never mutated),
    clauses  - the per-literal status overlay (UNASSIGNED / FALSIFIED / SATISFYING).

Next to them sits a stack of active-clause frames. Every setVar pushes a copy of
the top frame and removes the clauses the new value satisfies; unset pops the
frame again, so backtracking restores the previous active set without
recomputing it.
"""
from typing import Iterable, List, Optional, Sequence, Tuple


class VarState:
    UNASSIGNED = 0
    FALSE = 1
    TRUE = 2


class Status:
    UNASSIGNED = 0
    FALSIFIED = 1
    SATISFYING = 2


VAR_UNDEF = -1


class FormulaError(ValueError):
    """Raised when clause data cannot form a consistent formula."""


class AssignmentError(RuntimeError):
    """Raised when setVar/unset are called out of stack discipline."""


def var_state(val: bool) -> int:
    return VarState.TRUE if val else VarState.FALSE


class Formula:
    """
    CNF problem with assignment/unassignment support for backtracking.

    Variables are 1-based. Literals are signed ints, ``-v`` is the negation of ``v``.
    """

    def __init__(self, nvar: int, nclauses: int, clauses: Iterable[Sequence[int]],
                 name: Optional[str] = None, allow_empty_clauses: bool = True):
        self.name = name
        for count in (nvar, nclauses):
            if isinstance(count, bool) or not isinstance(count, int):
                raise FormulaError(f"Problem size {count!r} is not an integer.")
        if nvar < 0 or nclauses < 0:
            raise FormulaError(f"Negative problem size: {nvar} variables, {nclauses} clauses.")

        form = []
        for index, clause in enumerate(clauses):
            lits = tuple(clause)
            for lit in lits:
                if isinstance(lit, bool) or not isinstance(lit, int):
                    raise FormulaError(f"Clause {index}: literal {lit!r} is not an integer.")
                if lit == 0:
                    raise FormulaError(f"Clause {index}: literal 0 inside a clause.")
                if abs(lit) > nvar:
                    raise FormulaError(f"Clause {index}: literal {lit} out of range for {nvar} variables.")
            if not lits and not allow_empty_clauses:
                raise FormulaError(f"Clause {index} is empty.")
            form.append(lits)

        if len(form) != nclauses:
            raise FormulaError(f"Expected {nclauses} clauses, got {len(form)}.")

        self.nvar = nvar
        self.nclauses = nclauses
        self.form: Tuple[Tuple[int, ...], ...] = tuple(form)
        self.initBacktrack()

    @classmethod
    def from_cnf(cls, cnf, name: Optional[str] = None, allow_empty_clauses: bool = True) -> 'Formula':
        """
        Build a formula from a ``pysat.formula.CNF`` object.

        Args:
            cnf: CNF with ``nv`` and ``clauses`` attributes.
            name: Optional problem name.
            allow_empty_clauses: Reject zero-length clauses when False.
        """
        return cls(cnf.nv, len(cnf.clauses), cnf.clauses, name=name,
                   allow_empty_clauses=allow_empty_clauses)

    def initBacktrack(self):
        """Reset assignment, overlay and clause stack to the unassigned state."""
        self.vars: List[int] = [VarState.UNASSIGNED] * self.nvar
        self.clauses: List[List[int]] = [[Status.UNASSIGNED] * len(c) for c in self.form]
        self.clause_stack: List[List[int]] = [list(range(self.nclauses))]
        self.trail: List[int] = []

    def nVars(self) -> int:
        return self.nvar

    def nClauses(self) -> int:
        return self.nclauses

    def nAssigns(self) -> int:
        return len(self.trail)

    def depth(self) -> int:
        return len(self.clause_stack) - 1

    def clause(self, c: int) -> Tuple[int, ...]:
        return self.form[c]

    def status(self, c: int) -> Tuple[int, ...]:
        return tuple(self.clauses[c])

    def activeClauses(self) -> Tuple[int, ...]:
        return tuple(self.clause_stack[-1])

    def value_var(self, v: int) -> int:
        self._check_var(v)
        return self.vars[v - 1]

    def value_lit(self, lit: int) -> int:
        val = self.value_var(abs(lit))
        if val == VarState.UNASSIGNED or lit > 0:
            return val
        return VarState.FALSE if val == VarState.TRUE else VarState.TRUE

    def assignment(self) -> Tuple[int, ...]:
        return tuple(self.vars)

    def model(self) -> List[int]:
        """Assigned variables as DIMACS literals, e.g. ``[1, -2, 3]``."""
        return [v if val == VarState.TRUE else -v
                for v, val in enumerate(self.vars, start=1)
                if val != VarState.UNASSIGNED]

    def print_assignment(self):
        print(" ".join(str(val) for val in self.vars))

    def _check_var(self, v: int):
        if isinstance(v, bool) or not isinstance(v, int) or not 1 <= v <= self.nvar:
            raise AssignmentError(f"Variable {v!r} out of range 1..{self.nvar}.")

    def selectBranchVar(self) -> int:
        """Lowest unassigned variable, or VAR_UNDEF when everything is assigned."""
        for i, val in enumerate(self.vars):
            if val == VarState.UNASSIGNED:
                return i + 1
        return VAR_UNDEF

    def isEmptyClause(self, c: int) -> bool:
        if not 0 <= c < self.nclauses:
            raise IndexError(f"Clause index {c} out of range 0..{self.nclauses - 1}.")
        # A zero-length clause is vacuously empty.
        return all(s == Status.FALSIFIED for s in self.clauses[c])

    def hasEmptyClause(self) -> bool:
        for c in range(self.nclauses):
            if self.isEmptyClause(c):
                return True
        return False

    def isEmpty(self) -> bool:
        return not self.clause_stack[-1]

    def setVar(self, var: int, val: bool):
        """
        Assign ``var`` and push the resulting active-clause frame.

        Clauses containing a literal made true are removed from the new frame,
        occurrences of a literal made false are marked FALSIFIED.
        """
        self._check_var(var)
        if self.vars[var - 1] != VarState.UNASSIGNED:
            raise AssignmentError(f"Reassignment of an already-assigned variable {var}.")

        self.vars[var - 1] = var_state(val)
        self.trail.append(var)

        top = self.clause_stack[-1][:]
        self.clause_stack.append(top)

        sat_lit = var if val else -var
        false_lit = -sat_lit
        j = 0
        for i in range(len(top)):
            c = top[i]
            satisfied = False
            row = self.clauses[c]
            for k, lit in enumerate(self.form[c]):
                if lit == sat_lit:
                    row[k] = Status.SATISFYING
                    satisfied = True
                elif lit == false_lit:
                    row[k] = Status.FALSIFIED
            if not satisfied:
                top[j] = c
                j += 1
        del top[j:]

    def unset(self, var: int):
        """Undo the most recent setVar, which must have assigned ``var``."""
        self._check_var(var)
        if self.vars[var - 1] == VarState.UNASSIGNED:
            raise AssignmentError(f"Variable {var} is not assigned.")
        if len(self.clause_stack) <= 1:
            raise AssignmentError("Clause stack is at the base frame.")
        if self.trail[-1] != var:
            raise AssignmentError(
                f"Variable {var} unset out of order, last assigned is {self.trail[-1]}.")

        self.vars[var - 1] = VarState.UNASSIGNED
        self.trail.pop()
        self.clause_stack.pop()
        for c, lits in enumerate(self.form):
            row = self.clauses[c]
            for k, lit in enumerate(lits):
                if lit == var or lit == -var:
                    row[k] = Status.UNASSIGNED

    def toDimacs(self, f):
        """Write the formula in DIMACS format to an open text file."""
        if self.name:
            f.write(f"c {self.name}\n")
        f.write(f"p cnf {self.nvar} {self.nclauses}\n")
        for lits in self.form:
            f.write(" ".join(str(lit) for lit in lits + (0,)) + "\n")

    def __str__(self) -> str:
        return "".join("".join(f"{lit}\t" for lit in lits) + "\n" for lits in self.form)

    def __repr__(self) -> str:
        return f"Formula(name={self.name!r}, nvar={self.nvar}, nclauses={self.nclauses}, depth={self.depth()})"
