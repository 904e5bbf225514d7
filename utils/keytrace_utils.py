"""
This file includes some help functions for the DPLL decision trace.

This module provides small helpers to:
  * convert recorded solver events into a flat trace string,
  * extract the "key trace", the decision path that survives backtracking,
  * read ordered decision literals from a trace string.
"""
import re

from typing import List, Tuple


def convert_keytrace_to_str(events: List[Tuple[str, int, int]]) -> str:
    """
    Converts a list of tuples like:
        [('D', 1, 1), ('D', 2, 2), ('BT', -2, 2), ('BT', -1, 1)]
    into a string like:
        "D 1 L 1 D 2 L 2 BT -2 L 2 BT -1 L 1"

    Events of an unknown type are skipped.
    """
    out_tokens = []
    for etype, val, lvl in events:
        if etype in ("D", "BT"):
            out_tokens.append(etype)
            out_tokens.append(str(val))
            out_tokens.append("L")
            out_tokens.append(str(lvl))

    return " ".join(out_tokens)


def extract_numbers_in_order(trace_string: str) -> List[int]:
    """
    Extracts the literals in order of traces.

    Args:
        trace_string: A string of traces.

    Returns:
        A list of integers.
    """
    pattern = r'(?:D|BT)\s+(-?\d+)'
    matches = re.findall(pattern, trace_string)
    return [int(m) for m in matches]


def get_key_trace(trace: str) -> str:
    """
    Extract the key trace from the entire trace.

    A 'BT x L k' replaces the decision made at level k, so every step at
    level k or deeper is dropped before it is appended.

    Args:
        trace: A string represents the entire trace.

    Returns:
        str: The extracted key trace as a single string.
    """
    tokens = trace.split()
    index = 0
    stack = []
    while index < len(tokens):
        token = tokens[index]
        if token not in ('D', 'BT'):
            raise ValueError(f"Unknown token '{token}'")
        if index + 3 >= len(tokens) or tokens[index + 2] != 'L':
            raise ValueError(f"Expected '<lit> L <level>' after '{token}'")
        lit = tokens[index + 1]
        level = int(tokens[index + 3])
        if token == 'BT':
            stack = [(lvl, s) for (lvl, s) in stack if lvl < level]
        stack.append((level, [token, lit, 'L', str(level)]))
        index += 4

    final_trace = []
    for lvl, step in stack:
        final_trace.extend(step)
    return ' '.join(final_trace)
