"""
Interactive read-eval-print loop.

Input is buffered across lines while it ends in an unfinished construct
(an open brace, a dangling operator, an open block comment); a blank line
forces evaluation of whatever has been typed. All entries share one root
scope, so declarations persist for the whole session.
"""

import logging
import sys
from typing import Callable, List, Optional, TextIO

from .config import SableConfig
from .errors import SableError
from .parser import parse_source
from .runtime.interpreter import Interpreter
from .runtime.scope import Scope
from .runtime.values import ValueKind, represent

logger = logging.getLogger(__name__)

# Unexpected end of input, unterminated block comment
INCOMPLETE_INPUT_CODES = ("E102", "E004")

RED = "\033[31m"
RESET = "\033[0m"

STDIN_NAME = "<stdin>"


class Repl:
    """
    Read-eval-print loop over a persistent root scope.

    Usage:
        Repl(config).run()

    ``input_func`` and ``output`` can be replaced for scripted sessions.
    """

    def __init__(self, config: Optional[SableConfig] = None,
                 input_func: Callable[[str], str] = input,
                 output: Optional[TextIO] = None):
        self.config = config or SableConfig()
        self.input_func = input_func
        self.output = output if output is not None else sys.stdout
        self.scope = Scope(name="global")
        self.interpreter = Interpreter(self.config)

    def _write(self, text: str) -> None:
        self.output.write(text + "\n")
        self.output.flush()

    def _report(self, error: SableError) -> None:
        text = f"{error.label}: {error}"
        if self.config.color:
            text = f"{RED}{text}{RESET}"
        self._write(text)

    def feed(self, source: str, force: bool = False) -> bool:
        """
        Evaluate one entry.

        Returns False when ``source`` is an unfinished construct and more
        lines are needed; ``force`` evaluates it anyway and reports the error.
        """
        try:
            tree = parse_source(source, STDIN_NAME)
        except SableError as error:
            if error.code in INCOMPLETE_INPUT_CODES and not force:
                return False
            error.attach_source(source.splitlines())
            self._report(error)
            return True

        self.interpreter.source_lines = source.splitlines()
        try:
            value = self.interpreter.execute(tree, self.scope)
        except SableError as error:
            self._report(error)
            return True

        if value.kind != ValueKind.NOTHING:
            self._write(represent(value))
        return True

    def run(self) -> int:
        """Run until end of input. Returns the process exit code."""
        logger.debug("starting REPL")
        buffer: List[str] = []

        while True:
            prompt = self.config.continuation_prompt if buffer else self.config.prompt
            try:
                line = self.input_func(prompt)
            except EOFError:
                self._write("")
                return 0
            except KeyboardInterrupt:
                self._write("\nKeyboardInterrupt")
                buffer.clear()
                continue

            if not buffer and not line.strip():
                continue

            force = bool(buffer) and not line.strip()
            buffer.append(line)
            try:
                done = self.feed("\n".join(buffer), force=force)
            except KeyboardInterrupt:
                self._write("\nKeyboardInterrupt")
                done = True
            if done:
                buffer.clear()
