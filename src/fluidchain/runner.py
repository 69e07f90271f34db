from __future__ import annotations

import argparse
import logging
import sys
import traceback
from pathlib import Path
from typing import List, Optional

from .config import Config
from .errors import FluidError
from .expand import expand_invocation
from .render import format_block, pretty, render
from .transforms import parse_invocation

logger = logging.getLogger(__name__)


def _load_source(arg: Optional[str]) -> str:
    """
    Resolve CLI input into source text.
    - None or "-" => read stdin.
    - Existing path => read file contents.
    - Otherwise treat the argument as literal source.
    """

    if arg is None or arg == "-":
        data = sys.stdin.read()
        if not data:
            raise SystemExit("No input provided on stdin")
        return data

    candidate = Path(arg)
    try:
        is_file = candidate.is_file()
    except OSError:
        # Literal text longer than a path component.
        is_file = False
    if is_file:
        return candidate.read_text(encoding="utf-8")

    return arg


def run(source: str, config: Config, show: str = "expr") -> str:
    """Expand source and format it as the expression, its tree, or its steps."""
    invocation = parse_invocation(source, max_depth=config.max_depth)

    if show == "steps":
        return format_block(invocation.block)

    expr = expand_invocation(invocation, config)
    if show == "tree":
        return pretty(expr)
    return render(expr)


def build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="fluidchain",
        description="Expand `receiver, { step; step; }` block notation into a method chain.",
    )
    ap.add_argument("source", nargs="?", help="Path to a source file, '-' for stdin, or literal text")
    ap.add_argument("--tree", action="store_true", help="Print the expression tree")
    ap.add_argument("--steps", action="store_true", help="Print the parsed steps in canonical form")
    ap.add_argument("--param", metavar="PREFIX", help="Closure parameter prefix (default: b)")
    ap.add_argument("--repl", action="store_true", help="Start the interactive REPL")
    ap.add_argument("-v", "--verbose", action="count", default=0, help="-v for INFO, -vv for DEBUG")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    try:
        config = Config.from_env()
        if args.param:
            config = Config(args.param, config.max_depth, config.debug_py_trace)
    except FluidError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    if args.repl:
        from .repl import repl

        repl(config)
        return 0

    show = "tree" if args.tree else "steps" if args.steps else "expr"
    source = _load_source(args.source)

    try:
        print(run(source, config, show))
    except FluidError as exc:
        print(f"error: {exc}", file=sys.stderr)
        if config.debug_py_trace:
            print("\nPython traceback:", file=sys.stderr)
            print("".join(traceback.format_tb(exc.__traceback__)), file=sys.stderr, end="")
        return 1

    logger.info("expanded %s", args.source or "<stdin>")
    return 0


if __name__ == "__main__":
    sys.exit(main())
