"""
Lexical scopes for the interpreter.

Scopes form a chain through ``parent``. A scope is shared, never copied:
closures keep their defining scope alive, and nested blocks, loop
iterations and function calls all hang new scopes off existing ones.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional

from .values import Value


@dataclass(eq=False)
class Scope:
    """
    A single scope containing variable bindings.

    ``in_function`` marks scopes inside a function body (``return`` is legal),
    ``in_loop`` marks scopes inside a loop body (``break``/``continue`` are
    legal). Both are inherited by child blocks.
    """
    variables: Dict[str, Value] = field(default_factory=dict)
    parent: Optional["Scope"] = None
    in_function: bool = False
    in_loop: bool = False
    name: str = "anonymous"  # For debugging

    def child(self, name: str = "block", in_function: Optional[bool] = None,
              in_loop: Optional[bool] = None) -> "Scope":
        """Create a nested scope, inheriting flags unless overridden."""
        return Scope(
            parent=self,
            in_function=self.in_function if in_function is None else in_function,
            in_loop=self.in_loop if in_loop is None else in_loop,
            name=name,
        )

    def get(self, name: str) -> Optional[Value]:
        """Look up a variable in this scope or parent scopes."""
        scope = self
        while scope is not None:
            if name in scope.variables:
                return scope.variables[name]
            scope = scope.parent
        return None

    def declare(self, name: str, value: Value) -> None:
        """Bind a variable in this scope (shadowing any parent binding)."""
        self.variables[name] = value

    def update(self, name: str, value: Value) -> bool:
        """
        Rebind an existing variable.

        Searches up the scope chain for the nearest scope defining ``name``.
        Returns True if found and updated, False if not found.
        """
        scope = self
        while scope is not None:
            if name in scope.variables:
                scope.variables[name] = value
                return True
            scope = scope.parent
        return False

    def depth(self) -> int:
        """Number of ancestors above this scope."""
        count = 0
        scope = self.parent
        while scope is not None:
            count += 1
            scope = scope.parent
        return count
