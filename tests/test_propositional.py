"""
Tests for propositional.py: parsing, decomposition and evaluation.
"""

import logging
import string

import numpy as np
import pytest

from propositional import (
    PRECEDENCE,
    And,
    FormulaSyntaxError,
    Implies,
    Malformed,
    Not,
    Or,
    TruthTableError,
    UnassignedVariableError,
    Var,
    decompose,
    evaluate,
    extract_variables,
    main_connective,
    parse,
    strip_outer_parentheses,
)


class TestStripOuterParentheses:
    def test_nested_wrapping(self):
        assert strip_outer_parentheses("((P∧Q))") == "P∧Q"

    def test_separate_groups_are_kept(self):
        assert strip_outer_parentheses("(P)∧(Q)") == "(P)∧(Q)"
        assert strip_outer_parentheses("(P∧Q)∨(R)") == "(P∧Q)∨(R)"

    def test_whitespace_is_trimmed(self):
        assert strip_outer_parentheses("  ( P ) ") == "P"

    def test_unbalanced_fragment(self):
        assert strip_outer_parentheses("((P)") == "(P"


class TestMainConnective:
    def test_lowest_rank_wins(self):
        assert main_connective("P⊕Q→P∨Q∧R") == 3
        assert main_connective("P∧Q↔R∨S") == 3

    def test_leftmost_of_equal_rank(self):
        assert main_connective("P→Q→R") == 1
        assert main_connective("P∨Q⊕R↓S") == 1

    def test_bracketed_operators_are_ignored(self):
        assert main_connective("(P∨Q)∧R") == 5

    def test_no_connective(self):
        assert main_connective("P") == -1
        assert main_connective("¬(P∧Q)") == -1

    def test_precedence_table(self):
        assert PRECEDENCE == {"↔": 1, "→": 2, "∨": 3, "⊕": 3, "↓": 3, "∧": 4, "↑": 4}


class TestParse:
    def test_negation_binds_tighter_than_binary(self):
        tree = parse("¬P∧Q")
        assert isinstance(tree, And)
        assert isinstance(tree.left, Not)
        assert tree.left.text == "¬P"
        assert tree.right == Var("Q")

    def test_negated_group(self):
        tree = parse("¬(P∧Q)")
        assert isinstance(tree, Not)
        assert isinstance(tree.operand, And)
        assert tree.operand.text == "P∧Q"

    def test_ascii_negation(self):
        tree = parse("~P")
        assert isinstance(tree, Not)
        assert tree.operand == Var("P")

    def test_precedence_split(self):
        tree = parse("P⊕Q→P∨Q∧R")
        assert isinstance(tree, Implies)
        assert tree.left.text == "P⊕Q"
        assert isinstance(tree.right, Or)
        assert tree.right.left == Var("P")
        assert tree.right.right.text == "Q∧R"

    def test_variables(self):
        assert parse("(A→B)∧¬C").variables() == {"A", "B", "C"}

    def test_malformed_fragment(self):
        tree = parse("P∨(Q R)")
        assert isinstance(tree.right, Malformed)
        assert tree.right.text == "Q R"

    def test_strict_rejects_malformed_fragment(self):
        with pytest.raises(FormulaSyntaxError) as excinfo:
            parse("P∨(Q R)", strict=True)
        assert excinfo.value.fragment == "Q R"
        assert isinstance(excinfo.value, TruthTableError)

    def test_evaluates_numpy_columns(self):
        columns = {
            "P": np.array([True, True, False, False]),
            "Q": np.array([True, False, True, False]),
        }
        assert parse("P∧Q").evaluate(columns).tolist() == [True, False, False, False]
        assert parse("P↑Q").evaluate(columns).tolist() == [False, True, True, True]


class TestExtractVariables:
    def test_sorted_and_deduplicated(self):
        assert extract_variables("Q∧P∨Q") == ["P", "Q"]

    def test_other_characters_are_inert(self):
        assert extract_variables("1∧2") == []
        assert extract_variables("(P1)∧Q") == ["P", "Q"]

    def test_uppercase_sorts_first(self):
        assert extract_variables("b∧A") == ["A", "b"]


class TestDecompose:
    def test_precedence_example(self):
        assert decompose("P⊕Q→P∨Q∧R") == ["P⊕Q", "Q∧R", "P∨Q∧R", "P⊕Q→P∨Q∧R"]

    def test_negation_scoping(self):
        assert decompose("¬P∧Q") == ["¬P", "¬P∧Q"]
        assert decompose("¬(P∧Q)") == ["P∧Q", "¬(P∧Q)"]

    def test_double_negation(self):
        assert decompose("¬¬P") == ["¬P", "¬¬P"]

    def test_equal_rank_splits_at_leftmost(self):
        assert decompose("P→Q→R") == ["Q→R", "P→Q→R"]

    def test_bare_variable_formula(self):
        assert decompose("P") == ["P"]

    def test_wrapped_formula_is_appended(self):
        assert decompose("(P∧Q)") == ["P∧Q", "(P∧Q)"]

    def test_duplicates_are_recorded_once(self):
        assert decompose("(P∧Q)∨(P∧Q)") == ["P∧Q", "(P∧Q)∨(P∧Q)"]
        assert decompose("¬P∨¬P∧Q") == ["¬P", "¬P∧Q", "¬P∨¬P∧Q"]

    def test_fragments_are_trimmed(self):
        assert decompose("P ∧ Q") == ["P ∧ Q"]
        assert decompose("  P∧Q  ") == ["P∧Q"]
        assert decompose("( P ∨ Q ) ∧ R") == ["P ∨ Q", "( P ∨ Q ) ∧ R"]

    def test_no_bare_variables(self):
        for formula in ("P∧Q", "¬P→(Q↔R)", "A⊕B↓C↑D"):
            result = decompose(formula)
            assert not any(len(s) == 1 and s.isalpha() for s in result)
            assert result[-1] == formula

    def test_idempotent(self):
        formula = "(P↔¬Q)⊕(R↓P)→¬(Q↑R)"
        assert decompose(formula) == decompose(formula)

    def test_blank_formula(self):
        assert decompose("   ") == []

    def test_malformed_fragment_is_recorded_and_logged(self, caplog):
        parse.cache_clear()
        with caplog.at_level(logging.WARNING, logger="propositional"):
            assert decompose("Q∨(R S)") == ["R S", "Q∨(R S)"]
        assert "R S" in caplog.text

    def test_trailing_operator(self):
        assert decompose("P∧") == ["P∧"]

    def test_strict_mode(self):
        with pytest.raises(FormulaSyntaxError):
            decompose("Q∨(R S)", strict=True)


class TestEvaluate:
    @pytest.mark.parametrize(
        "symbol, table",
        [
            ("∧", [True, False, False, False]),
            ("∨", [True, True, True, False]),
            ("→", [True, False, True, True]),
            ("↔", [True, False, False, True]),
            ("⊕", [False, True, True, False]),
            ("↑", [False, True, True, True]),
            ("↓", [False, False, False, True]),
        ],
    )
    def test_connective_semantics(self, symbol, table):
        rows = [(True, True), (True, False), (False, True), (False, False)]
        got = [evaluate(f"P{symbol}Q", {"P": p, "Q": q}) for p, q in rows]
        assert got == table

    def test_returns_plain_bool(self):
        assert evaluate("P∧Q", {"P": True, "Q": True}) is True
        assert evaluate("¬P", {"P": True}) is False

    def test_negation_scoping(self):
        assignment = {"P": False, "Q": False}
        assert evaluate("¬P∧Q", assignment) is False
        assert evaluate("¬(P∧Q)", assignment) is True

    def test_and_binds_tighter_than_or(self):
        assert evaluate("P∨Q∧R", {"P": True, "Q": False, "R": False}) is True

    def test_implication_chain_splits_at_leftmost(self):
        # P→(Q→R), not (P→Q)→R
        assert evaluate("P→Q→R", {"P": False, "Q": False, "R": False}) is True

    def test_biconditional_is_loosest(self):
        # P↔(Q→R), not (P↔Q)→R
        assert evaluate("P↔Q→R", {"P": False, "Q": False, "R": True}) is False

    def test_parentheses_override_precedence(self):
        assignment = {"P": True, "Q": False, "R": False}
        assert evaluate("(P∨Q)∧R", assignment) is False

    def test_all_letters_at_once(self):
        letters = string.ascii_uppercase
        conjunction = "∧".join(letters)
        parity = "⊕".join(letters)
        assert extract_variables(conjunction) == list(letters)

        everything = {v: True for v in letters}
        assert evaluate(conjunction, everything) is True
        assert evaluate(conjunction, {**everything, "M": False}) is False

        alternating = {v: i % 2 == 0 for i, v in enumerate(letters)}
        assert evaluate(parity, alternating) is True
        assert evaluate(parity, {**alternating, "B": True}) is False

    def test_letters_t_and_f_are_variables(self):
        assert evaluate("T", {"T": False}) is False
        assert evaluate("F∨T", {"F": True, "T": False}) is True

    def test_malformed_fragment_is_false(self):
        assert evaluate("P∨(Q R)", {"P": False, "Q": True, "R": True}) is False
        assert evaluate("P∨(Q R)", {"P": True, "Q": True, "R": True}) is True

    def test_missing_variable(self):
        with pytest.raises(UnassignedVariableError) as excinfo:
            evaluate("P∧Q", {"P": True})
        assert excinfo.value.variable == "Q"
        assert isinstance(excinfo.value, KeyError)

    def test_assignment_is_not_modified(self):
        assignment = {"P": True, "Q": False}
        evaluate("¬P↔Q", assignment)
        assert assignment == {"P": True, "Q": False}


class TestDeepFormulas:
    CHAIN = "∧".join(["P", "Q"] * 600)

    def test_long_chain_parses(self):
        tree = parse(self.CHAIN)
        assert isinstance(tree, And)
        assert tree.left == Var("P")
        assert tree.right.text == self.CHAIN[2:]
        assert repr(tree).startswith("And('P∧Q∧P")

    def test_long_chain_evaluates(self):
        assert evaluate(self.CHAIN, {"P": True, "Q": True}) is True
        assert evaluate(self.CHAIN, {"P": True, "Q": False}) is False

    def test_long_chain_decomposes(self):
        subexpressions = decompose(self.CHAIN)
        assert len(subexpressions) == 1199
        assert subexpressions[0] == "P∧Q"
        assert subexpressions[-1] == self.CHAIN

    def test_long_negation_run(self):
        assert evaluate("¬" * 1200 + "P", {"P": True}) is True
        assert evaluate("¬" * 1201 + "P", {"P": True}) is False
        assert len(decompose("~" * 1200 + "P")) == 1200

    def test_equal_text_means_equal_tree(self):
        assert parse(self.CHAIN) == parse(self.CHAIN, strict=True)
        assert hash(parse(self.CHAIN)) == hash(parse(self.CHAIN, strict=True))
        assert parse("P∧Q") != parse("P∨Q")
