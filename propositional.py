"""
Propositional formulas over the connectives ¬ ∧ ∨ → ↔ ⊕ ↑ ↓.

Main features:
- Connective table: one Binary subclass per operator, with a fixed precedence rank
- Formula tree: Var, Not, Binary connectives and Malformed, parsed from text
- Decomposition: ordered, duplicate-free list of sub-expressions (innermost first)
- Evaluation: structural evaluation of a formula under a variable assignment,
  on plain booleans or on numpy boolean columns (one entry per truth-table row)

Formulas are written with single-letter variables, e.g. "P⊕Q→P∨Q∧R".
Precedence from loosest to tightest: ↔ < → < {∨, ⊕, ↓} < {∧, ↑} < ¬.
Among operators of equal rank the leftmost one is the main connective.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, ClassVar, Dict, Iterator, List, Mapping, Optional, Set, Tuple, Type

import numpy as np

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TruthTableError(Exception):
    """Base class for every error raised while building truth tables."""


class NoVariablesError(TruthTableError, ValueError):
    """Raised when a formula contains no variable letters at all."""

    def __init__(self, formula: str):
        super().__init__(f"Formula {formula!r} contains no variables (A-Z)")
        self.formula = formula


class TooManyVariablesError(TruthTableError, ValueError):
    """
    Raised when a formula has more variables than the configured limit.

    A table over n variables has 2^n rows, so the limit keeps memory and
    time bounded.
    """

    def __init__(self, formula: str, count: int, limit: int):
        super().__init__(
            f"Formula {formula!r} has {count} variables; at most {limit} are allowed"
        )
        self.formula = formula
        self.count = count
        self.limit = limit


class FormulaSyntaxError(TruthTableError, ValueError):
    """Raised in strict mode for a fragment with no connective and no variable."""

    def __init__(self, fragment: str):
        super().__init__(f"Cannot parse fragment {fragment!r}")
        self.fragment = fragment


class ConfigurationError(TruthTableError, ValueError):
    """Raised when a TRUTHTABLE_* environment variable holds an unusable value."""


class UnassignedVariableError(TruthTableError, KeyError):
    """Raised when an assignment has no value for a variable of the formula."""

    def __init__(self, variable: str):
        super().__init__(variable)
        self.variable = variable

    def __str__(self) -> str:
        return f"No truth value assigned to variable {self.variable!r}"


# ---------------------------------------------------------------------------
# Formula tree
# ---------------------------------------------------------------------------

# Truth values are either plain booleans or numpy boolean arrays holding one
# entry per table row; every connective below works on both.
Truth = Any

NEGATION_SYMBOLS = ("¬", "~")
NEGATION = "¬"

_VARIABLE_PATTERN = re.compile(r"[A-Za-z]")


@dataclass(frozen=True, eq=False, repr=False)
class Formula:
    """
    A node of a parsed formula.

    ``text`` is the fragment the node was parsed from, trimmed and with any
    fully-wrapping parentheses removed. It doubles as the column label of
    the node in a truth table.

    Trees can be as deep as the formula is long, so every walk below uses
    an explicit stack instead of recursion.
    """

    text: str

    def combine(self, operands: List[Truth], valuation: Mapping[str, Truth]) -> Truth:
        """Value of this node given the values of its children."""
        raise NotImplementedError

    def children(self) -> Tuple[Formula, ...]:
        return ()

    def subformulas(self) -> Iterator[Formula]:
        """Yield every node of the tree, operands before the node itself."""
        stack: List[Tuple[Formula, bool]] = [(self, False)]
        while stack:
            node, expanded = stack.pop()
            if expanded:
                yield node
                continue
            stack.append((node, True))
            for child in reversed(node.children()):
                stack.append((child, False))

    def values(self, valuation: Mapping[str, Truth]) -> Dict[str, Truth]:
        """
        Evaluate every node of the tree under ``valuation``.

        Returns a mapping from node text to value. Equal texts parse to equal
        subtrees, so each text is evaluated once.
        """
        computed: Dict[str, Truth] = {}
        for node in self.subformulas():
            if node.text not in computed:
                operands = [computed[child.text] for child in node.children()]
                computed[node.text] = node.combine(operands, valuation)
        return computed

    def evaluate(self, valuation: Mapping[str, Truth]) -> Truth:
        return self.values(valuation)[self.text]

    def variables(self) -> Set[str]:
        # a node's text spans the text of every node below it
        return set(_VARIABLE_PATTERN.findall(self.text))

    # The text fixes the whole subtree, so identity, hashing and repr use it
    # alone and never walk the children.
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Formula):
            return NotImplemented
        return type(self) is type(other) and self.text == other.text

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.text))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.text!r})"

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True, eq=False, repr=False)
class Var(Formula):
    @property
    def name(self) -> str:
        return self.text

    def combine(self, operands: List[Truth], valuation: Mapping[str, Truth]) -> Truth:
        try:
            return valuation[self.text]
        except KeyError:
            raise UnassignedVariableError(self.text) from None


@dataclass(frozen=True, eq=False, repr=False)
class Not(Formula):
    operand: Formula

    def combine(self, operands: List[Truth], valuation: Mapping[str, Truth]) -> Truth:
        return np.logical_not(operands[0])

    def children(self) -> Tuple[Formula, ...]:
        return (self.operand,)


@dataclass(frozen=True, eq=False, repr=False)
class Malformed(Formula):
    """A fragment with no connective that is not a variable either; always false."""

    def combine(self, operands: List[Truth], valuation: Mapping[str, Truth]) -> Truth:
        return False


@dataclass(frozen=True, eq=False, repr=False)
class Binary(Formula):
    left: Formula
    right: Formula

    symbol: ClassVar[str] = ""
    rank: ClassVar[int] = 0

    @staticmethod
    def apply(left: Truth, right: Truth) -> Truth:
        raise NotImplementedError

    def combine(self, operands: List[Truth], valuation: Mapping[str, Truth]) -> Truth:
        return self.apply(operands[0], operands[1])

    def children(self) -> Tuple[Formula, ...]:
        return (self.left, self.right)


@dataclass(frozen=True, eq=False, repr=False)
class Iff(Binary):
    symbol: ClassVar[str] = "↔"
    rank: ClassVar[int] = 1

    @staticmethod
    def apply(left: Truth, right: Truth) -> Truth:
        return np.equal(left, right)


@dataclass(frozen=True, eq=False, repr=False)
class Implies(Binary):
    symbol: ClassVar[str] = "→"
    rank: ClassVar[int] = 2

    @staticmethod
    def apply(left: Truth, right: Truth) -> Truth:
        # a → b is equivalent to ¬a ∨ b
        return np.logical_or(np.logical_not(left), right)


@dataclass(frozen=True, eq=False, repr=False)
class Or(Binary):
    symbol: ClassVar[str] = "∨"
    rank: ClassVar[int] = 3

    @staticmethod
    def apply(left: Truth, right: Truth) -> Truth:
        return np.logical_or(left, right)


@dataclass(frozen=True, eq=False, repr=False)
class Xor(Binary):
    symbol: ClassVar[str] = "⊕"
    rank: ClassVar[int] = 3

    @staticmethod
    def apply(left: Truth, right: Truth) -> Truth:
        return np.logical_xor(left, right)


@dataclass(frozen=True, eq=False, repr=False)
class Nor(Binary):
    symbol: ClassVar[str] = "↓"
    rank: ClassVar[int] = 3

    @staticmethod
    def apply(left: Truth, right: Truth) -> Truth:
        return np.logical_not(np.logical_or(left, right))


@dataclass(frozen=True, eq=False, repr=False)
class And(Binary):
    symbol: ClassVar[str] = "∧"
    rank: ClassVar[int] = 4

    @staticmethod
    def apply(left: Truth, right: Truth) -> Truth:
        return np.logical_and(left, right)


@dataclass(frozen=True, eq=False, repr=False)
class Nand(Binary):
    symbol: ClassVar[str] = "↑"
    rank: ClassVar[int] = 4

    @staticmethod
    def apply(left: Truth, right: Truth) -> Truth:
        return np.logical_not(np.logical_and(left, right))


CONNECTIVES: Dict[str, Type[Binary]] = {
    cls.symbol: cls for cls in (Iff, Implies, Or, Xor, Nor, And, Nand)
}

PRECEDENCE: Dict[str, int] = {symbol: cls.rank for symbol, cls in CONNECTIVES.items()}


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def strip_outer_parentheses(fragment: str) -> str:
    """
    Trim ``fragment`` and remove parentheses that wrap all of it.

    A leading "(" only wraps the whole fragment if the bracket depth stays
    above zero until the last character, so "(P)∧(Q)" is left alone while
    "((P∧Q))" becomes "P∧Q".
    """
    fragment = fragment.strip()
    while fragment.startswith("(") and fragment.endswith(")"):
        depth = 0
        for i, ch in enumerate(fragment):
            if ch == "(":
                depth += 1
            elif ch == ")":
                depth -= 1
            if depth == 0 and i < len(fragment) - 1:
                return fragment
        fragment = fragment[1:-1].strip()
    return fragment


def main_connective(fragment: str) -> int:
    """
    Return the index of the main connective of ``fragment``, or -1.

    Only operators outside every bracket pair count. The lowest rank wins,
    and among equal ranks the leftmost occurrence wins.
    """
    depth = 0
    index = -1
    lowest = None
    for i in range(len(fragment) - 1, -1, -1):
        ch = fragment[i]
        if ch == ")":
            depth += 1
        elif ch == "(":
            depth -= 1
        elif depth == 0 and ch in PRECEDENCE:
            if lowest is None or PRECEDENCE[ch] <= lowest:
                lowest = PRECEDENCE[ch]
                index = i
    return index


def is_variable(fragment: str) -> bool:
    return len(fragment) == 1 and _VARIABLE_PATTERN.match(fragment) is not None


@lru_cache(maxsize=1024)
def parse(formula: str, strict: bool = False) -> Formula:
    """
    Parse ``formula`` into a Formula tree.

    Parameters
    ----------
    formula:
        Formula text, e.g. "¬(P∧Q)→R".
    strict:
        If True, raise FormulaSyntaxError for a fragment that has no
        connective and is not a variable. Otherwise such a fragment becomes
        a Malformed node, which evaluates to false.
    """
    # Fragments wait on ``pending`` until their operands are parsed; finished
    # nodes are pushed on ``done`` left operand first.
    pending: List[Tuple[str, Optional[Type[Formula]], str]] = [("parse", None, formula)]
    done: List[Formula] = []
    while pending:
        action, cls, fragment = pending.pop()
        if action == "build":
            if cls is Not:
                done.append(Not(fragment, done.pop()))
            else:
                right = done.pop()
                left = done.pop()
                done.append(cls(fragment, left, right))
            continue

        text = strip_outer_parentheses(fragment)
        if is_variable(text):
            done.append(Var(text))
            continue

        # A binary connective outside brackets binds looser than a leading ¬,
        # so "¬P∧Q" is a conjunction and only "¬(P∧Q)" negates the group.
        index = main_connective(text)
        if index > 0:
            pending.append(("build", CONNECTIVES[text[index]], text))
            pending.append(("parse", None, text[index + 1 :]))
            pending.append(("parse", None, text[:index]))
            continue
        if text.startswith(NEGATION_SYMBOLS):
            pending.append(("build", Not, text))
            pending.append(("parse", None, text[1:]))
            continue

        if strict:
            raise FormulaSyntaxError(text)
        logger.warning("No connective found in %r; treating it as false", text)
        done.append(Malformed(text))

    return done[0]


# ---------------------------------------------------------------------------
# Public operations
# ---------------------------------------------------------------------------


def extract_variables(formula: str) -> List[str]:
    """Return the sorted, duplicate-free letters used in ``formula``."""
    return sorted(set(_VARIABLE_PATTERN.findall(formula)))


def decompose(formula: str, strict: bool = False) -> List[str]:
    """
    Return the sub-expressions needed to evaluate ``formula``.

    The list is ordered innermost first (left operand, right operand, then
    the compound), contains no bare variables and no duplicates, and ends
    with the formula itself. A formula that is a single variable yields a
    one-element list holding that variable.
    """
    full = formula.strip()
    if not full:
        return []

    recorded: Dict[str, None] = {}
    for node in parse(full, strict).subformulas():
        if isinstance(node, Var) or not node.text:
            continue
        recorded.setdefault(node.text)
    if full not in recorded:
        recorded[full] = None
    return list(recorded)


def evaluate(formula: str, assignment: Mapping[str, bool], strict: bool = False) -> bool:
    """
    Evaluate ``formula`` under ``assignment`` (variable -> bool).

    The assignment is only read. A variable of the formula missing from it
    raises UnassignedVariableError.
    """
    return bool(parse(formula.strip(), strict).evaluate(assignment))
