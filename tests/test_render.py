from __future__ import annotations

from textwrap import dedent

import pytest

from tests.support.harness import (
    BinaryOp,
    Closure,
    MethodCall,
    Opaque,
    fold,
    method,
    op,
    parse_block,
    render,
)
from fluidchain.render import format_block, pretty

SCENARIOS = [
    pytest.param(
        '"123"',
        "parse::<i32>(); unwrap_or_default(); clamp(5, 100); to_string();",
        '"123".parse::<i32>().unwrap_or_default().clamp(5, 100).to_string()',
        id="flat-chain",
    ),
    pytest.param(
        "Builder::default()",
        "add(5); multiplied(3) { add(4); }",
        "Builder::default().add(5).multiplied(3, |b| b.add(4))",
        id="trailing-closure",
    ),
    pytest.param(
        "r",
        "f(); [- 100]; [* 2];",
        "((r.f() - 100) * 2)",
        id="operators",
    ),
    pytest.param(
        "5i32",
        "[+ 5]; [as u8]; to_string();",
        "((5i32 + 5) as u8).to_string()",
        id="method-after-cast",
    ),
    pytest.param(
        "x",
        "a() { b() { c(); } }",
        "x.a(|b| b.b(|b2| b2.c()))",
        id="nested-closures",
    ),
    pytest.param(
        "x",
        "map() { [* 2]; }",
        "x.map(|b| (b * 2))",
        id="operator-in-closure",
    ),
    pytest.param(
        "x",
        "modify() {}",
        "x.modify(|b| b)",
        id="empty-body",
    ),
    pytest.param(
        "x",
        'push(vec![1, 2], "a, b"); [+ a.len() * 2];',
        '(x.push(vec![1, 2], "a, b") + a.len() * 2)',
        id="verbatim-arguments",
    ),
    pytest.param(
        "x",
        "",
        "x",
        id="empty-block",
    ),
]


@pytest.mark.parametrize("receiver, block, expected", SCENARIOS)
def test_render_folded_blocks(receiver: str, block: str, expected: str) -> None:
    assert render(fold(parse_block(block), Opaque(receiver))) == expected


def test_non_atomic_receiver_is_parenthesized() -> None:
    expr = method(Opaque("a + b", atomic=False), "abs")
    assert render(expr) == "(a + b).abs()"


def test_atomic_receiver_is_not_parenthesized() -> None:
    expr = method(Opaque("Foo::new(1, 2)", atomic=True), "get")
    assert render(expr) == "Foo::new(1, 2).get()"


def test_closure_receiver_is_parenthesized() -> None:
    expr = MethodCall(Closure("b", Opaque("b")), "call", ())
    assert render(expr) == "(|b| b).call()"


def test_binary_operands_render_verbatim() -> None:
    expr = BinaryOp(Opaque("-1", atomic=False), "*", Opaque("a + b", atomic=False))
    assert render(expr) == "((-1) * a + b)"


def test_long_chain_renders_without_recursion_limit() -> None:
    expr = Opaque("x")
    for n in range(3000):
        expr = op(expr, "+", str(n)) if n % 2 else method(expr, "step")

    text = render(expr)
    assert text.startswith("(" * 1500)
    assert text.endswith("+ 2999)")


def test_pretty() -> None:
    expr = fold(parse_block("add(5); multiplied(3) { add(4); }"), Opaque("x"))

    assert pretty(expr) == dedent(
        """\
        method multiplied
          method add
            opaque x
            opaque 5
          opaque 3
          closure |b|
            method add
              opaque b
              opaque 4"""
    )


def test_pretty_binop() -> None:
    assert pretty(op(Opaque("x"), "as", "u8")) == "binop as\n  opaque x\n  opaque u8"


def test_format_block() -> None:
    block = parse_block("a(1,2); b { [+ 2]; c(); d() {} }")

    assert format_block(block) == dedent(
        """\
        a(1, 2);
        b() {
            [+ 2];
            c();
            d() {
            }
        }"""
    )


def test_format_block_reparses_to_the_same_block() -> None:
    block = parse_block("parse::<i32>(); m(x) { [as u8]; n(); }; o();")
    assert parse_block(format_block(block)) == block
