"""
Truth tables and canonical normal forms for propositional formulas.

Main features:
- Enumerate all assignments of n variables (row 0 all true, last row all false)
- Build a Table: one column per variable and per sub-expression, one row per assignment
- Derive CNF (one clause per false row) and DNF (one term per true row)
- Re-check single clauses/terms against a row, as the verification tables do
- Export a Table as a pandas DataFrame, as tab-separated text, or as
  step-by-step row explanations
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from propositional import (
    NEGATION,
    NEGATION_SYMBOLS,
    And,
    ConfigurationError,
    NoVariablesError,
    Or,
    TooManyVariablesError,
    UnassignedVariableError,
    decompose,
    extract_variables,
    parse,
)

logger = logging.getLogger(__name__)

TAUTOLOGY_MARKER = "Tautology (always true)"
CONTRADICTION_MARKER = "Contradiction (always false)"

_TRUE_WORDS = ("1", "true", "yes", "on")


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Settings:
    """
    Defaults for table construction and rendering.

    Attributes
    ----------
    max_variables:
        Largest number of variables a table may have (2^n rows). Every
        row is kept in memory, so each extra variable doubles both time
        and memory: 16 variables give 65,536 rows, 20 would give over a
        million and take more than a gigabyte.
    true_marker, false_marker:
        Glyphs used for booleans in text exports.
    strict:
        Raise FormulaSyntaxError on malformed fragments instead of
        treating them as false.
    """

    max_variables: int = 16
    true_marker: str = "T"
    false_marker: str = "F"
    strict: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> Settings:
        """Read TRUTHTABLE_* environment variables, falling back to the defaults."""
        environ = os.environ if environ is None else environ
        defaults = cls()

        raw_limit = environ.get("TRUTHTABLE_MAX_VARIABLES")
        if raw_limit is None or not raw_limit.strip():
            max_variables = defaults.max_variables
        else:
            try:
                max_variables = int(raw_limit)
            except ValueError:
                raise ConfigurationError(
                    f"TRUTHTABLE_MAX_VARIABLES must be an integer, got {raw_limit!r}"
                ) from None

        raw_strict = environ.get("TRUTHTABLE_STRICT")
        strict = defaults.strict if raw_strict is None else raw_strict.strip().lower() in _TRUE_WORDS

        return cls(
            max_variables=max_variables,
            true_marker=environ.get("TRUTHTABLE_TRUE_MARKER", defaults.true_marker),
            false_marker=environ.get("TRUTHTABLE_FALSE_MARKER", defaults.false_marker),
            strict=strict,
        )


# ---------------------------------------------------------------------------
# Assignments
# ---------------------------------------------------------------------------


def all_inputs(n: int) -> np.ndarray:
    """
    Return a (2^n, n) boolean matrix of all assignments of n variables.

    Row i encodes the binary number 2^n - 1 - i, most significant bit in
    column 0. For n = 2:
        [[T, T], [T, F], [F, T], [F, F]]
    """
    codes = np.arange(2**n - 1, -1, -1, dtype=np.int64)
    shifts = np.arange(n - 1, -1, -1, dtype=np.int64)
    return ((codes[:, None] >> shifts) & 1).astype(bool)


def all_valuations(var_names: Sequence[str]) -> List[Dict[str, bool]]:
    """Generate all valuations (dict variable -> bool) in table row order."""
    return [dict(zip(var_names, row)) for row in all_inputs(len(var_names)).tolist()]


# ---------------------------------------------------------------------------
# Table
# ---------------------------------------------------------------------------


def mark_frame(frame: pd.DataFrame, true_marker: str, false_marker: str) -> pd.DataFrame:
    """Replace every boolean cell of ``frame`` with one of two marker strings."""
    return pd.DataFrame(
        np.where(frame.to_numpy(dtype=bool), true_marker, false_marker),
        columns=frame.columns,
    )


class Record(Mapping[str, bool]):
    """
    Read-only, hashable mapping of column labels to booleans.

    All rows of a table share one label -> position index and each record
    stores only its own tuple of cells.
    """

    __slots__ = ("_positions", "_cells")

    def __init__(self, positions: Mapping[str, int], cells: Sequence[bool]):
        self._positions = positions
        self._cells = tuple(cells)

    def __getitem__(self, label: str) -> bool:
        return self._cells[self._positions[label]]

    def __iter__(self) -> Iterator[str]:
        return iter(self._positions)

    def __len__(self) -> int:
        return len(self._positions)

    def __hash__(self) -> int:
        return hash(frozenset(self.items()))

    def __repr__(self) -> str:
        return f"Record({dict(self)!r})"


@dataclass(frozen=True)
class Row:
    index: int
    assignment: Record
    values: Record  # sub-expression text -> value
    result: bool


@dataclass(frozen=True)
class Table:
    """
    Truth table of ``formula``.

    ``variables`` and ``subexpressions`` are the column headers; the last
    sub-expression is the formula itself. Rows are read-only once built.
    """

    formula: str
    variables: Tuple[str, ...]
    subexpressions: Tuple[str, ...]
    rows: Tuple[Row, ...]

    @property
    def header(self) -> List[str]:
        return list(self.variables) + list(self.subexpressions)

    @property
    def results(self) -> np.ndarray:
        return np.array([row.result for row in self.rows], dtype=bool)

    def column(self, label: str) -> np.ndarray:
        """Values of a variable or sub-expression column, in row order."""
        if label in self.subexpressions:
            return np.array([row.values[label] for row in self.rows], dtype=bool)
        if label in self.variables:
            return np.array([row.assignment[label] for row in self.rows], dtype=bool)
        raise KeyError(label)

    def truth_vector(self) -> Tuple[int, ...]:
        return tuple(int(row.result) for row in self.rows)

    def is_tautology(self) -> bool:
        return all(row.result for row in self.rows)

    def is_contradiction(self) -> bool:
        return not any(row.result for row in self.rows)

    def to_dataframe(self) -> pd.DataFrame:
        """
        Build a pandas DataFrame of the table.

        Columns are the variables followed by the sub-expressions, all of
        boolean dtype; the index is the row number.
        """
        data = [
            [row.assignment[v] for v in self.variables]
            + [row.values[s] for s in self.subexpressions]
            for row in self.rows
        ]
        return pd.DataFrame(data, columns=self.header, dtype=bool)

    def to_tsv(self, true_marker: str = "T", false_marker: str = "F") -> str:
        """
        Render the table as tab-separated text.

        The header line lists the variables then the sub-expressions; each
        following line holds one row with every boolean replaced by a marker.
        """
        marked = mark_frame(self.to_dataframe(), true_marker, false_marker)
        return marked.to_csv(sep="\t", index=False, lineterminator="\n")

    def steps(self, true_marker: str = "T", false_marker: str = "F") -> List[str]:
        """One line per row explaining the assignment and the result."""

        def mark(value: bool) -> str:
            return true_marker if value else false_marker

        lines = []
        for row in self.rows:
            assignment = ", ".join(f"{v}={mark(row.assignment[v])}" for v in self.variables)
            lines.append(f"Row {row.index + 1}: {assignment} → Result = {mark(row.result)}")
        return lines


def build(
    formula: str,
    max_variables: Optional[int] = None,
    strict: Optional[bool] = None,
    settings: Optional[Settings] = None,
) -> Table:
    """
    Build the complete truth table of ``formula``.

    Parameters
    ----------
    formula:
        Formula text, e.g. "P⊕Q→P∨Q∧R".
    max_variables:
        Upper bound on the number of variables; defaults to the settings.
    strict:
        Reject malformed fragments instead of treating them as false;
        defaults to the settings.
    settings:
        Settings to fall back on; read from the environment if omitted.

    Raises
    ------
    NoVariablesError
        If the formula contains no variable letters.
    TooManyVariablesError
        If it contains more than ``max_variables`` of them.
    """
    settings = settings or Settings.from_env()
    limit = settings.max_variables if max_variables is None else max_variables
    strict = settings.strict if strict is None else strict

    variables = extract_variables(formula)
    if not variables:
        raise NoVariablesError(formula)
    if len(variables) > limit:
        raise TooManyVariablesError(formula, len(variables), limit)

    subexpressions = decompose(formula, strict)
    inputs = all_inputs(len(variables))
    num_rows = inputs.shape[0]

    # Rows are independent, so one walk of the tree evaluates every column
    # for all rows at once.
    tree = parse(formula.strip(), strict)
    columns = {v: inputs[:, i] for i, v in enumerate(variables)}
    computed = tree.values(columns)
    # a wrapped formula such as "(P∧Q)" keeps its parentheses as a label
    computed.setdefault(subexpressions[-1], computed[tree.text])
    cells = np.column_stack(
        [
            np.broadcast_to(np.asarray(computed[text], dtype=bool), (num_rows,))
            for text in subexpressions
        ]
    ).tolist()

    variable_positions = {v: i for i, v in enumerate(variables)}
    subexpression_positions = {text: i for i, text in enumerate(subexpressions)}
    rows = tuple(
        Row(
            index=i,
            assignment=Record(variable_positions, assignment),
            values=Record(subexpression_positions, cells[i]),
            result=cells[i][-1],
        )
        for i, assignment in enumerate(inputs.tolist())
    )
    logger.debug(
        "Built table for %r: %d variables, %d sub-expressions, %d rows",
        formula,
        len(variables),
        len(subexpressions),
        num_rows,
    )
    return Table(formula, tuple(variables), tuple(subexpressions), rows)


# ---------------------------------------------------------------------------
# Normal forms
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NormalForm:
    """
    CNF or DNF read off a truth table.

    ``is_valid`` is False for the CNF of a tautology and the DNF of a
    contradiction; ``terms`` is then empty and ``formula`` holds the
    corresponding marker text.
    """

    kind: str
    terms: Tuple[str, ...]
    is_valid: bool
    formula: str

    def evaluate(self, assignment: Mapping[str, bool]) -> bool:
        if self.kind == "CNF":
            return all(evaluate_clause(term, assignment) for term in self.terms)
        return any(evaluate_conjunctive_term(term, assignment) for term in self.terms)

    def __str__(self) -> str:
        return self.formula


def _literal(variable: str, negated: bool) -> str:
    return f"{NEGATION}{variable}" if negated else variable


def cnf(table: Table) -> NormalForm:
    """
    Conjunctive normal form: one clause per false row.

    A variable that is true in the row appears negated in its clause, a
    false one appears plain, so the clause is false exactly on that row.
    """
    false_rows = [row for row in table.rows if not row.result]
    if not false_rows:
        return NormalForm("CNF", (), False, TAUTOLOGY_MARKER)

    clauses = tuple(
        "(" + Or.symbol.join(_literal(v, row.assignment[v]) for v in table.variables) + ")"
        for row in false_rows
    )
    return NormalForm("CNF", clauses, True, And.symbol.join(clauses))


def dnf(table: Table) -> NormalForm:
    """Disjunctive normal form: one minterm per true row."""
    true_rows = [row for row in table.rows if row.result]
    if not true_rows:
        return NormalForm("DNF", (), False, CONTRADICTION_MARKER)

    terms = tuple(
        "(" + And.symbol.join(_literal(v, not row.assignment[v]) for v in table.variables) + ")"
        for row in true_rows
    )
    return NormalForm("DNF", terms, True, Or.symbol.join(terms))


def _literal_values(term: str, joiner: str, assignment: Mapping[str, bool]) -> Iterator[bool]:
    for literal in term.replace("(", "").replace(")", "").split(joiner):
        literal = literal.strip()
        negated = literal.startswith(NEGATION_SYMBOLS)
        name = literal[1:].strip() if negated else literal
        try:
            value = bool(assignment[name])
        except KeyError:
            raise UnassignedVariableError(name) from None
        yield not value if negated else value


def evaluate_clause(clause: str, assignment: Mapping[str, bool]) -> bool:
    """Evaluate a CNF clause such as "(¬P∨Q)": true if any literal is true."""
    return any(_literal_values(clause, Or.symbol, assignment))


def evaluate_conjunctive_term(term: str, assignment: Mapping[str, bool]) -> bool:
    """Evaluate a DNF term such as "(P∧¬Q)": true if every literal is true."""
    return all(_literal_values(term, And.symbol, assignment))


def normal_form_frame(table: Table, normal_form: NormalForm) -> pd.DataFrame:
    """
    Build the verification table of a normal form.

    Columns: the variables, their negations, one column per clause/term,
    and a last column for the whole normal form. Every cell is recomputed
    from the term text, so the last column must reproduce the table result.
    """
    check = evaluate_clause if normal_form.kind == "CNF" else evaluate_conjunctive_term
    columns = (
        list(table.variables)
        + [_literal(v, True) for v in table.variables]
        + list(normal_form.terms)
        + [normal_form.formula]
    )
    data = []
    for row in table.rows:
        data.append(
            [row.assignment[v] for v in table.variables]
            + [not row.assignment[v] for v in table.variables]
            + [check(term, row.assignment) for term in normal_form.terms]
            + [normal_form.evaluate(row.assignment)]
        )
    return pd.DataFrame(data, columns=columns, dtype=bool)
