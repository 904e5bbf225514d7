# *************************************************************************
# SPDX-License-Identifier: Apache-2.0
# Licensed under the Apache License, Version 2.0.
# See the LICENSE file in the project root for the full license text.
# *************************************************************************
"""
Depth-first DPLL search over a backtrackable Formula.

The search keeps its own explicit stack of open branches and drives the
formula only through selectBranchVar / setVar / unset / isEmpty / hasEmptyClause.
"""
import time

from typing import List

from py_dpll.formula import Formula, VarState, VAR_UNDEF
from utils.keytrace_utils import convert_keytrace_to_str


# In Minisat: l_True = 0, l_False = 1, l_Undef = 2
class Lbool:
    TRUE = 0
    FALSE = 1
    UNDEF = 2


class DoubleOption:
    def __init__(self, category, name, desc, default, drange):
        self.value = default


class IntOption:
    def __init__(self, category, name, desc, default, irange):
        self.value = default


class BoolOption:
    def __init__(self, category, name, desc, default):
        self.value = default


class DPLLSolver:
    def __init__(self, formula: Formula):
        _cat = "CORE"
        self.opt_first_phase = BoolOption(_cat, "phase", "Value tried first on a decision", True)
        self.opt_conflict_budget = IntOption(_cat, "conf-budget", "Conflicts before giving up (-1 = none)",
                                             -1, (-1, 2 ** 31))
        self.opt_time_budget = DoubleOption(_cat, "time-budget", "Seconds before giving up (-1 = none)",
                                            -1, (-1, 1e100))

        self.formula = formula
        self.verbosity = 0
        self.first_phase = self.opt_first_phase.value
        self.conflict_budget = self.opt_conflict_budget.value
        self.time_budget = self.opt_time_budget.value

        self.solves = 0
        self.decisions = 0
        self.conflicts = 0
        self.backtracks = 0
        self.max_depth = 0
        self.solve_time = 0.0
        self._deadline = None

        self.model: List[int] = []
        self.record_key_trace = True
        self.key_trace_events = []

    @property
    def trace(self) -> str:
        return convert_keytrace_to_str(self.key_trace_events)

    def withinBudget(self) -> bool:
        if self.conflict_budget >= 0 and self.conflicts >= self.conflict_budget:
            return False
        if self._deadline is not None and time.perf_counter() >= self._deadline:
            return False
        return True

    def _record(self, etype: str, var: int, val: bool, level: int):
        if self.record_key_trace:
            self.key_trace_events.append((etype, var if val else -var, level))

    def cancelUntil(self, branches: List[List], level: int):
        """Unset open branches, newest first, until ``level`` remain."""
        while len(branches) > level:
            self.formula.unset(branches.pop()[0])

    def _backtrack(self, branches: List[List]) -> bool:
        """
        Close exhausted branches and flip the newest open one.

        Returns False when no branch is left to flip.
        """
        while branches and branches[-1][1]:
            self.formula.unset(branches.pop()[0])
        if not branches:
            return False
        v = branches[-1][0]
        val = not self.first_phase
        self.formula.unset(v)
        self.formula.setVar(v, val)
        branches[-1][1] = True
        self.backtracks += 1
        self._record('BT', v, val, len(branches))
        return True

    def search(self) -> int:
        F = self.formula
        branches: List[List] = []  # [var, second value tried]
        while True:
            conflict = F.hasEmptyClause()
            if not conflict:
                if F.isEmpty():
                    return Lbool.TRUE
                if not self.withinBudget():
                    self.cancelUntil(branches, 0)
                    return Lbool.UNDEF
                v = F.selectBranchVar()
                if v == VAR_UNDEF:
                    conflict = True
                else:
                    self.decisions += 1
                    F.setVar(v, self.first_phase)
                    branches.append([v, False])
                    self.max_depth = max(self.max_depth, len(branches))
                    self._record('D', v, self.first_phase, len(branches))
                    continue

            self.conflicts += 1
            if not self._backtrack(branches):
                return Lbool.FALSE

    def solve_(self) -> int:
        """
        Run the search from the formula's current state.

        Returns:
            Lbool.TRUE (SAT), Lbool.FALSE (UNSAT) or Lbool.UNDEF (budget exhausted).
        """
        F = self.formula
        self.model = []
        self.solves += 1
        start = time.perf_counter()
        self._deadline = start + self.time_budget if self.time_budget >= 0 else None

        if self.verbosity >= 1:
            print("============================[ Problem Statistics ]=============================")
            print("|  Number of variables:  %12d                                         |" % F.nVars())
            print("|  Number of clauses:    %12d                                         |" % F.nClauses())
            print("===============================================================================")

        status = self.search()
        self.solve_time = time.perf_counter() - start
        self._deadline = None

        if status == Lbool.TRUE:
            for val in F.assignment():
                if val == VarState.TRUE:
                    self.model.append(Lbool.TRUE)
                elif val == VarState.FALSE:
                    self.model.append(Lbool.FALSE)
                else:
                    self.model.append(Lbool.UNDEF)

        if self.verbosity >= 1:
            print("| decisions %10d | conflicts %10d | backtracks %10d | depth %6d |" % (
                self.decisions, self.conflicts, self.backtracks, self.max_depth))
            print("===============================================================================")
        return status
