"""Expansion entry points: block notation in, chained expression out."""

from __future__ import annotations

import logging
from typing import Optional

from .builder import ParamNamer, fold
from .config import Config
from .lexer import tokenize
from .parser import is_atomic
from .render import render
from .syntax import Expression, Invocation, Opaque
from .transforms import parse_block, parse_invocation

logger = logging.getLogger(__name__)


def expand_invocation(invocation: Invocation, config: Optional[Config] = None) -> Expression:
    config = config or Config()
    block = invocation.block

    logger.debug(
        "folding %d steps (nesting depth %d) onto %s",
        len(block.steps), block.depth(), invocation.receiver.text,
    )
    return fold(block, invocation.receiver, ParamNamer(config.param_prefix))


def expand_tree(source: str, config: Optional[Config] = None) -> Expression:
    """Parse `receiver, { ... }` and fold it into an Expression."""
    config = config or Config()
    return expand_invocation(parse_invocation(source, max_depth=config.max_depth), config)


def expand(source: str, config: Optional[Config] = None) -> str:
    """Expand `receiver, { ... }` into the equivalent chained expression text."""
    text = render(expand_tree(source, config))
    logger.debug("expanded %d chars of block notation into %d chars", len(source), len(text))
    return text


def fold_source(receiver: str, block: str, config: Optional[Config] = None) -> Expression:
    """Fold block text (scope contents) onto receiver text taken verbatim."""
    config = config or Config()
    parsed = parse_block(block, max_depth=config.max_depth)
    receiver = receiver.strip()
    atomic = is_atomic(tokenize(receiver)[:-1])
    return fold(parsed, Opaque(receiver, atomic), ParamNamer(config.param_prefix))
