"""Interactive REPL for fluidchain, powered by prompt_toolkit."""

from __future__ import annotations

import os
import re
import sys
import traceback
from typing import Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.shortcuts import clear

from .config import ENV_DEBUG_PY_TRACE, Config, debug_py_trace_enabled
from .errors import FluidError, LexError
from .lexer import tokenize
from .repl_highlight import FluidLexer
from .runner import run
from .token_types import CLOSERS, OPENERS

# Zero-width and invisible characters to strip from input.
_INVISIBLE_RE = re.compile("[\u200b\u200c\u200d\ufeff\u00a0\r]")

# Slash commands: name => (description, argument_hint).
_SLASH_CMDS = {
    "/clear": ("Clear the terminal screen", ""),
    "/py-traceback": ("Toggle Python traceback on errors", "[on|off]"),
    "/tree": ("Toggle printing the expression tree", "[on|off]"),
    "/steps": ("Toggle printing the parsed steps", "[on|off]"),
}

_ON = ("on", "1", "true", "yes")
_OFF = ("off", "0", "false", "no")


def open_depth(text: str) -> int:
    """Number of delimiters still open at the end of text (0 if it does not lex)."""
    try:
        tokens = tokenize(text)
    except LexError:
        return 0

    depth = 0
    for tok in tokens:
        if tok.type in OPENERS:
            depth += 1
        elif tok.type in CLOSERS:
            depth = max(depth - 1, 0)
    return depth


class _SlashCompleter(Completer):
    """Autocomplete slash commands on the primary prompt."""

    def get_completions(self, document, complete_event):
        text = document.text_before_cursor
        if not text.startswith("/"):
            return

        for cmd, (desc, hint) in _SLASH_CMDS.items():
            if cmd.startswith(text):
                yield Completion(
                    cmd,
                    start_position=-len(text),
                    display_meta=desc,
                )


class ReplState:
    def __init__(self, config: Config):
        self.config = config
        self.show = "expr"

    def toggle_show(self, mode: str, arg: str) -> Optional[str]:
        if arg.lower() in _ON:
            self.show = mode
        elif arg.lower() in _OFF:
            self.show = "expr"
        elif arg == "":
            self.show = "expr" if self.show == mode else mode
        else:
            return None
        return "on" if self.show == mode else "off"


def _handle_slash(line: str, state: ReplState) -> bool:
    """Handle slash commands. Returns True if the line was a command."""
    stripped = line.strip()
    if not stripped.startswith("/"):
        return False

    parts = stripped.split(None, 1)
    cmd = parts[0]
    arg = parts[1] if len(parts) > 1 else ""

    if cmd == "/clear":
        clear()
        return True

    if cmd == "/py-traceback":
        if arg.lower() in _ON:
            os.environ[ENV_DEBUG_PY_TRACE] = "1"
        elif arg.lower() in _OFF:
            os.environ.pop(ENV_DEBUG_PY_TRACE, None)
        elif arg == "":
            # Toggle.
            if debug_py_trace_enabled():
                os.environ.pop(ENV_DEBUG_PY_TRACE, None)
            else:
                os.environ[ENV_DEBUG_PY_TRACE] = "1"
        else:
            print("Usage: /py-traceback [on|off]", file=sys.stderr)
            return True

        state_text = "on" if debug_py_trace_enabled() else "off"
        print(f"Python traceback: {state_text}")
        return True

    if cmd in ("/tree", "/steps"):
        mode = cmd[1:]
        result = state.toggle_show(mode, arg)
        if result is None:
            print(f"Usage: {cmd} [on|off]", file=sys.stderr)
        else:
            print(f"Print {mode}: {result}")
        return True

    print(f"Unknown command: {cmd}", file=sys.stderr)
    return True


def _normalize(text: str) -> str:
    """Strip invisible characters from input."""
    return _INVISIBLE_RE.sub("", text)


def _compute_indent(text: str) -> str:
    """Compute the auto-indent prefix for the next continuation line."""
    return " " * (4 * open_depth(text))


def repl(config: Optional[Config] = None) -> None:
    """Interactive read-expand-print loop with prompt_toolkit."""
    state = ReplState(config or Config.from_env())

    history = InMemoryHistory()
    lexer = FluidLexer()

    bindings = KeyBindings()

    @bindings.add("backspace")
    def _backspace(event):
        buf = event.app.current_buffer
        buf.delete_before_cursor(1)
        if buf.text.startswith("/"):
            buf.start_completion()

    @bindings.add("enter")
    def _enter(event):
        buf = event.app.current_buffer
        text = buf.text

        # Keep reading while a brace, bracket or paren is still open.
        if not text.startswith("/") and open_depth(text) > 0:
            buf.insert_text("\n" + _compute_indent(text))
            return

        buf.validate_and_handle()

    session: PromptSession[str] = PromptSession(
        history=history,
        lexer=lexer,
        completer=_SlashCompleter(),
        complete_while_typing=True,
        key_bindings=bindings,
        multiline=True,
        prompt_continuation="... ",
    )

    print("fluidchain repl: enter `receiver, { steps }`, Ctrl-D to exit, / for commands")

    while True:
        try:
            text = session.prompt(">>> ")
        except EOFError:
            print()
            break
        except KeyboardInterrupt:
            print("KeyboardInterrupt")
            continue

        text = _normalize(text)
        if not text.strip():
            continue

        # Slash command?
        if _handle_slash(text, state):
            continue

        try:
            print(run(text, state.config, state.show))
        except FluidError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            if debug_py_trace_enabled():
                print("\nPython traceback:", file=sys.stderr)
                print("".join(traceback.format_tb(exc.__traceback__)), file=sys.stderr, end="")
