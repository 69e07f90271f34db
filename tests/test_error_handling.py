from __future__ import annotations

from textwrap import dedent

import pytest

from tests.support.harness import (
    EmptyOperand,
    LexError,
    MalformedStep,
    MisplacedBody,
    NestingTooDeep,
    ParseError,
    UnbalancedDelimiter,
    check_parse_error,
    parse_block,
    parse_invocation,
)
from fluidchain.errors import FluidError

SCENARIOS = [
    # Misplaced bodies
    pytest.param(
        "foo() { } bar()",
        MisplacedBody,
        "Unexpected 'bar' after a '{ ... }' body",
        1,
        11,
        id="body-followed-on-same-line",
    ),
    pytest.param(
        "foo() { } { }",
        MisplacedBody,
        "only one '{ ... }' body",
        1,
        11,
        id="two-bodies",
    ),
    pytest.param(
        "[+ 1] { a(); }",
        MisplacedBody,
        "Operator steps cannot take",
        1,
        7,
        id="body-on-operator-step",
    ),
    pytest.param(
        "a(); { b(); }",
        MisplacedBody,
        "must follow a method call",
        1,
        6,
        id="bare-body",
    ),
    # Unbalanced delimiters
    pytest.param("a(1;", UnbalancedDelimiter, "Unclosed '('", 1, 2, id="unclosed-paren"),
    pytest.param("a() { b();", UnbalancedDelimiter, "Unclosed '{'", 1, 5, id="unclosed-brace"),
    pytest.param("a(); }", UnbalancedDelimiter, "Unmatched '}'", 1, 6, id="stray-brace"),
    pytest.param("a(); )", UnbalancedDelimiter, "Unmatched ')'", 1, 6, id="stray-paren"),
    pytest.param(
        "a((b]);",
        UnbalancedDelimiter,
        "Mismatched ']' for '('",
        1,
        5,
        id="mismatched-closer",
    ),
    pytest.param("[- 1", UnbalancedDelimiter, "Unclosed '['", 1, 1, id="unclosed-bracket"),
    pytest.param(
        "parse::<i32();",
        UnbalancedDelimiter,
        "Unclosed '<'",
        1,
        8,
        id="unclosed-turbofish",
    ),
    # Empty operands
    pytest.param("[+]", EmptyOperand, "Operator '+' has no operand", 1, 3, id="empty-plus"),
    pytest.param("[as ]", EmptyOperand, "Operator 'as' has no operand", 1, 5, id="empty-cast"),
    # Malformed steps
    pytest.param("[]", MalformedStep, "needs an operator and an operand", 1, 2, id="empty-brackets"),
    pytest.param("[@ 1]", MalformedStep, "Unsupported operator '@'", 1, 2, id="unknown-operator"),
    pytest.param("[= 1]", MalformedStep, "Unsupported operator '='", 1, 2, id="assign-operator"),
    pytest.param("foo bar;", MalformedStep, "Expected ';' after call", 1, 5, id="missing-semi"),
    pytest.param(
        "[+ 1] a();",
        MalformedStep,
        "Expected ';' after operator step",
        1,
        7,
        id="missing-semi-after-operator",
    ),
    pytest.param(
        "123;",
        MalformedStep,
        "Expected a method name or '[' to start a step",
        1,
        1,
        id="literal-step",
    ),
    pytest.param(
        dedent(
            """\
            add(5);
            modify() {
                clamp(1, 2)
                [* 2];
            }
            """
        ),
        MalformedStep,
        "Expected ';' after call, got '['",
        4,
        5,
        id="missing-semi-nested",
    ),
]


@pytest.mark.parametrize("source, exc, msg, line, column", SCENARIOS)
def test_parse_errors(source: str, exc: type, msg: str, line: int, column: int) -> None:
    check_parse_error(source, exc, msg, line, column)


def test_parse_errors_share_a_base_class() -> None:
    for exc in (MalformedStep, UnbalancedDelimiter, MisplacedBody, EmptyOperand, NestingTooDeep):
        assert issubclass(exc, ParseError)
    assert issubclass(ParseError, FluidError)
    assert issubclass(LexError, FluidError)
    assert not issubclass(LexError, ParseError)


def test_error_message_carries_location() -> None:
    err = check_parse_error("a();\n[+]", EmptyOperand, "at line 2, col 3")
    assert err.token is not None


def test_body_on_a_new_line_is_not_misplaced() -> None:
    source = dedent(
        """\
        foo() {
            a();
        }
        bar();
        """
    )
    assert len(parse_block(source).steps) == 2


def test_nesting_limit() -> None:
    with pytest.raises(NestingTooDeep) as exc_info:
        parse_block("a() { b() { c() { d(); } } }", max_depth=2)

    err = exc_info.value
    assert "deeper than 2 levels" in str(err)
    assert (err.line, err.column) == (1, 17)


def test_nesting_limit_allows_exact_depth() -> None:
    block = parse_block("a() { b() { c(); } }", max_depth=2)
    assert block.depth() == 2


def test_default_nesting_limit() -> None:
    depth = 101
    source = "a() { " * depth + "}" * depth
    with pytest.raises(NestingTooDeep):
        parse_block(source)

    assert parse_block("a() { " * 100 + "}" * 100).depth() == 100


def test_lex_errors_surface_through_the_parser() -> None:
    with pytest.raises(LexError) as exc_info:
        parse_block('push_str("never closed);')

    assert exc_info.value.line == 1
    assert exc_info.value.column == 10


INVOCATION_ERRORS = [
    pytest.param(", { a(); }", MalformedStep, "Expected a receiver expression", id="no-receiver"),
    pytest.param("x { a(); }", MalformedStep, "Expected ','", id="no-comma"),
    pytest.param("x, a();", MalformedStep, "Expected '{' to open the block", id="no-block"),
    pytest.param("x, { a(); } y", MalformedStep, "Unexpected 'y' after the block", id="trailing-junk"),
    pytest.param("fluid!(x, { a(); }", UnbalancedDelimiter, "Unclosed '('", id="unclosed-wrapper"),
    pytest.param("x, { a(); ", UnbalancedDelimiter, "Unclosed '{'", id="unclosed-block"),
]


@pytest.mark.parametrize("source, exc, msg", INVOCATION_ERRORS)
def test_invocation_errors(source: str, exc: type, msg: str) -> None:
    with pytest.raises(exc) as exc_info:
        parse_invocation(source)

    assert msg in str(exc_info.value)
