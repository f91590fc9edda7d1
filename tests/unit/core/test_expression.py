"""Tests for the condition expression parser and evaluator."""

import pytest

from chatflow.core.errors import ExpressionError
from chatflow.core.expression import (
    MAX_NESTING,
    And,
    Compare,
    Includes,
    Length,
    LengthCompare,
    Literal,
    Not,
    Or,
    StartsWith,
    Text,
    evaluate,
    evaluate_condition,
    is_digits_only,
    parse_expression,
)


class TestDigitShortcut:
    """An all-digit expression is an exact code match, not an arithmetic value."""

    def test_matches_exact_code(self):
        assert evaluate_condition("1234", "1234") is True

    def test_user_text_is_trimmed(self):
        assert evaluate_condition("1234", "  1234\n") is True

    def test_expression_whitespace_is_ignored(self):
        assert evaluate_condition(" 1234 ", "1234") is True

    @pytest.mark.parametrize("text", ["12345", "123", "1234 please", "", "01234"])
    def test_anything_else_is_false(self, text):
        assert evaluate_condition("1234", text) is False

    def test_is_digits_only(self):
        assert is_digits_only("0042")
        assert not is_digits_only("42.0")
        assert not is_digits_only("")
        assert not is_digits_only('includes("1")')


class TestPredicates:
    def test_includes_is_case_insensitive(self):
        assert evaluate_condition('includes("refund")', "I want a REFUND please") is True

    def test_includes_miss(self):
        assert evaluate_condition('includes("refund")', "where is my order") is False

    def test_equals_ignores_case_and_trims(self):
        assert evaluate_condition("equals('yes')", "  Yes ") is True
        assert evaluate_condition("equals('yes')", "yes please") is False

    def test_starts_and_ends_with(self):
        assert evaluate_condition('startsWith("hi")', "Hi there") is True
        assert evaluate_condition('endsWith("there")', "Hi there") is True
        assert evaluate_condition('endsWith("hi")', "Hi there") is False

    def test_predicate_names_are_case_insensitive(self):
        assert evaluate_condition('INCLUDES("a")', "cat") is True
        assert evaluate_condition('startswith("c")', "cat") is True

    def test_numeric_argument_is_treated_as_text(self):
        assert evaluate_condition("includes(42)", "order 42") is True


class TestOperators:
    def test_and_or_not(self):
        expr = 'includes("refund") && !includes("cancel")'
        assert evaluate_condition(expr, "refund please") is True
        assert evaluate_condition(expr, "cancel my refund") is False

    def test_word_operators(self):
        assert evaluate_condition('includes("a") and not includes("z")', "abc") is True
        assert evaluate_condition('includes("x") or includes("b")', "abc") is True

    def test_or_binds_looser_than_and(self):
        # a || (b && c)
        assert evaluate_condition('includes("a") || includes("b") && includes("c")', "a") is True

    def test_parentheses(self):
        assert evaluate_condition('(includes("a") || includes("b")) && includes("c")', "a") is False

    def test_length_comparison(self):
        assert evaluate_condition("length > 3", "four") is True
        assert evaluate_condition("length >= 5", "four") is False
        assert evaluate_condition("3 < length", "four") is True

    def test_text_equality(self):
        assert evaluate_condition('text == "Hello"', " Hello ") is True
        assert evaluate_condition('text === "hello"', "Hello") is False
        assert evaluate_condition('text != "x"', "y") is True

    def test_equality_across_kinds_is_false(self):
        assert evaluate_condition('text == 5', "5") is False
        assert evaluate_condition('text !== 5', "5") is True

    def test_boolean_literals(self):
        assert evaluate_condition("true", "anything") is True
        assert evaluate_condition("!false", "anything") is True


class TestMalformedExpressions:
    """Malformed expressions never raise out of evaluate_condition."""

    @pytest.mark.parametrize(
        "expr",
        [
            "",
            "includes(",
            'includes("a"',
            "foo(1)",
            "__import__('os')",
            "text == ",
            "1 < length < 5",
            "length > 'abc'",
            'includes("a") &&',
            "@",
        ],
    )
    def test_resolves_false(self, expr):
        assert evaluate_condition(expr, "abc") is False

    def test_logs_warning(self, caplog):
        with caplog.at_level("WARNING", logger="chatflow.core.expression"):
            evaluate_condition("oops(", "abc")
        assert "Expression evaluation error" in caplog.text

    def test_parse_raises_expression_error(self):
        with pytest.raises(ExpressionError):
            parse_expression("includes(text)")


class TestNestingLimit:
    def test_nesting_within_limit_parses(self):
        depth = MAX_NESTING
        assert evaluate_condition("(" * depth + "true" + ")" * depth, "hi") is True
        # Each "!" counts as a level too
        inner = MAX_NESTING - 2
        assert evaluate_condition("!!" + "(" * inner + "true" + ")" * inner, "hi") is True

    @pytest.mark.parametrize(
        "expr",
        [
            "(" * 400 + "true" + ")" * 400,
            "!" * 1500 + "true",
            "not " * 200 + "false",
        ],
    )
    def test_parse_rejects_deep_nesting(self, expr):
        with pytest.raises(ExpressionError, match="nests deeper"):
            parse_expression(expr)

    @pytest.mark.parametrize(
        "expr",
        ["(" * 400 + "true" + ")" * 400, "!" * 1500 + "true"],
    )
    def test_deep_nesting_resolves_false(self, expr):
        assert evaluate_condition(expr, "hi") is False

    def test_overlong_flat_chain_resolves_false(self, caplog):
        expr = " && ".join(["true"] * 5000)

        with caplog.at_level("WARNING", logger="chatflow.core.expression"):
            assert evaluate_condition(expr, "hi") is False
        assert "too deeply nested" in caplog.text


class TestParser:
    def test_builds_tagged_ast(self):
        node = parse_expression('includes("a") && !startsWith("b") || length > 2')
        assert node == Or(
            And(Includes("a"), Not(StartsWith("b"))),
            LengthCompare(">", 2.0),
        )

    def test_literal_on_left_flips_length_operator(self):
        assert parse_expression("10 > length") == LengthCompare("<", 10.0)

    def test_text_compare(self):
        assert parse_expression("text == 'x'") == Compare("==", Text(), Literal("x"))

    def test_escaped_quotes(self):
        node = parse_expression(r'includes("say \"hi\"")')
        assert node == Includes('say "hi"')

    def test_length_alone_is_truthy_when_text_not_empty(self):
        assert parse_expression("length") == Length()
        assert evaluate(Length(), "a") is True
        assert evaluate(Length(), "   ") is False
