"""fluidchain: rewrite `receiver, { step; step; }` block notation into method chains."""

from .builder import ParamNamer, fold
from .config import Config
from .errors import (
    ConfigError,
    EmptyOperand,
    FluidError,
    LexError,
    MalformedStep,
    MisplacedBody,
    NestingTooDeep,
    ParseError,
    UnbalancedDelimiter,
)
from .expand import expand, expand_tree, fold_source
from .reader import read_chain
from .render import pretty, render
from .syntax import (
    SUPPORTED_OPERATORS,
    BinaryOp,
    Block,
    Call,
    Closure,
    Expression,
    Invocation,
    MethodCall,
    Opaque,
    OperatorStep,
)
from .transforms import parse_block, parse_invocation

__all__ = [
    "SUPPORTED_OPERATORS",
    "BinaryOp",
    "Block",
    "Call",
    "Closure",
    "Config",
    "ConfigError",
    "EmptyOperand",
    "Expression",
    "FluidError",
    "Invocation",
    "LexError",
    "MalformedStep",
    "MethodCall",
    "MisplacedBody",
    "NestingTooDeep",
    "Opaque",
    "OperatorStep",
    "ParamNamer",
    "ParseError",
    "UnbalancedDelimiter",
    "expand",
    "expand_tree",
    "fold",
    "fold_source",
    "parse_block",
    "parse_invocation",
    "pretty",
    "read_chain",
    "render",
]
