from __future__ import annotations

import pytest

from tests.support.harness import (
    BinaryOp,
    Closure,
    MethodCall,
    Opaque,
    ParseError,
    fold,
    method,
    op,
    parse_block,
    read_chain,
    render,
)

ROUNDTRIP_CASES = [
    pytest.param('"123"', "parse::<i32>(); unwrap_or_default(); clamp(5, 100); to_string();", id="flat"),
    pytest.param("Builder::default()", "add(5); multiplied(3) { add(4); }", id="closure-last"),
    pytest.param("r", "f(); [- 100]; [* 2];", id="operators"),
    pytest.param("5i32", "[+ 5]; [as u8]; to_string();", id="cast-then-method"),
    pytest.param("x", "a() { b() { c(); } }; d();", id="nested"),
    pytest.param("x", "a() { p(); }; q() { r(); }", id="siblings"),
    pytest.param("x", "map() { [* 2]; to_string(); }", id="operator-in-closure"),
    pytest.param("x", "modify() {}", id="empty-body"),
    pytest.param("x", 'f(g(1, 2), [3, 4], "a, b"); [+ a.len() * 2];', id="opaque-args"),
    pytest.param("xs[0]", "iter(); collect::<Vec<Vec<u8>>>();", id="indexed-receiver"),
    pytest.param("x", "", id="empty"),
]


@pytest.mark.parametrize("receiver, source", ROUNDTRIP_CASES)
def test_read_chain_inverts_render(receiver: str, source: str) -> None:
    expr = fold(parse_block(source), Opaque(receiver))
    assert read_chain(render(expr)) == expr


def test_read_chain_structure() -> None:
    expr = read_chain("((r.f() - 100) * 2).g(|b| b.h(1))")

    assert expr == method(
        op(op(method(Opaque("r"), "f"), "-", "100"), "*", "2"),
        "g",
        Closure("b", method(Opaque("b"), "h", "1")),
    )


def test_read_chain_closure_at_top_level() -> None:
    assert read_chain("|b| b.f()") == Closure("b", method(Opaque("b"), "f"))


def test_parenthesized_opaque_receiver() -> None:
    expr = read_chain("(a, b).len()")

    assert isinstance(expr, MethodCall)
    assert expr.receiver == Opaque("a, b")
    assert expr.receiver.atomic is False


def test_parenthesized_binary_reads_as_binop() -> None:
    expr = read_chain("(a + b).abs()")

    assert isinstance(expr, MethodCall)
    assert expr.receiver == BinaryOp(Opaque("a"), "+", Opaque("b"))


@pytest.mark.parametrize(
    "source, msg",
    [
        pytest.param("x.f(", "Expected an argument", id="unclosed-call"),
        pytest.param("x.f() y", "Unexpected 'y' after expression", id="trailing-token"),
        pytest.param("x.f::<u8>", "Expected '(' after method name", id="turbofish-without-call"),
        pytest.param("|b b.f()", "Expected '|' after closure parameter", id="bad-closure"),
        pytest.param("", "Expected an expression", id="empty"),
    ],
)
def test_read_chain_errors(source: str, msg: str) -> None:
    with pytest.raises(ParseError) as exc_info:
        read_chain(source)

    assert msg in str(exc_info.value)
