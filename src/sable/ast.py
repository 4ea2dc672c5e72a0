"""
Abstract Syntax Tree (AST) node definitions for sable.

The parser produces a tree of these nodes and the interpreter walks it
directly. Statements and expressions are kept apart: statements may end a
block abruptly (``return``, ``break``, ``continue``), expressions always
produce a value.
"""

from dataclasses import dataclass, field
from typing import Optional, List, Any
from abc import ABC
from .tokens import SourceSpan, TokenType


# =============================================================================
# Base Classes
# =============================================================================

@dataclass
class AstNode(ABC):
    """Base class for all AST nodes."""
    span: SourceSpan  # Source location for error reporting

    def accept(self, visitor: "AstVisitor") -> Any:
        """Accept a visitor for traversal."""
        method_name = f"visit_{self.__class__.__name__}"
        method = getattr(visitor, method_name, visitor.generic_visit)
        return method(self)


class AstVisitor(ABC):
    """Base class for AST visitors."""

    def generic_visit(self, node: AstNode) -> Any:
        """Default visit method."""
        raise NotImplementedError(f"No visitor for {node.__class__.__name__}")


# =============================================================================
# Expression Nodes
# =============================================================================

@dataclass
class Expression(AstNode):
    """Base class for all expressions."""
    pass


@dataclass
class Literal(Expression):
    """An integer, float, string or boolean literal."""
    value: Any
    literal_type: TokenType  # INT_LITERAL, FLOAT_LITERAL, STRING_LITERAL, TRUE, FALSE


@dataclass
class NothingLiteral(Expression):
    """The ``nothing`` literal."""
    pass


@dataclass
class Identifier(Expression):
    """A variable reference."""
    name: str


@dataclass
class BinaryOp(Expression):
    """A binary operation: left op right."""
    left: Expression
    operator: TokenType
    right: Expression


@dataclass
class UnaryOp(Expression):
    """A prefix operation: ``not x`` or ``-x``."""
    operator: TokenType
    operand: Expression


@dataclass
class Increment(Expression):
    """``++x``, ``--x``, ``x++`` or ``x--``; rebinds ``target``."""
    target: Identifier
    delta: int      # +1 or -1
    prefix: bool    # prefix forms yield the new value, postfix the old one


@dataclass
class Assignment(Expression):
    """Rebinding of an existing variable: ``name = value``."""
    target: Identifier
    value: Expression


@dataclass
class FunctionCall(Expression):
    """A call: callee(args...)."""
    callee: Expression
    arguments: List[Expression] = field(default_factory=list)


@dataclass
class IndexAccess(Expression):
    """Index access: target[index]."""
    target: Expression
    index: Expression


@dataclass
class Slice(Expression):
    """Slice access: target[start:end:step], each part optional."""
    target: Expression
    start: Optional[Expression] = None
    end: Optional[Expression] = None
    step: Optional[Expression] = None


@dataclass
class RangeExpr(Expression):
    """Half-open integer range: start..end."""
    start: Expression
    end: Expression


@dataclass
class FunctionDef(Expression):
    """
    A function, named (``def``) or anonymous (lambda).

    Evaluating it yields the function value; a named function is also bound
    in the scope it is evaluated in.
    """
    name: Optional[str]
    parameters: List[str]
    body: "Block"


# =============================================================================
# Statement Nodes
# =============================================================================

@dataclass
class Statement(AstNode):
    """Base class for all statements."""
    pass


@dataclass
class ExpressionStatement(Statement):
    """An expression evaluated for its value or side effects."""
    expression: Expression


@dataclass
class VarDecl(Statement):
    """Variable declaration: let name = initializer."""
    name: str
    initializer: Expression


@dataclass
class AssertStatement(Statement):
    """Assertion: assert condition[, "message"]."""
    condition: Expression
    message: Optional[str] = None


@dataclass
class IfStatement(Statement):
    """If statement; ``else if`` chains nest another IfStatement in else_branch."""
    condition: Expression
    then_branch: "Block"
    else_branch: Optional[Statement] = None  # Block or IfStatement


@dataclass
class WhileStatement(Statement):
    """While loop."""
    condition: Expression
    body: "Block"


@dataclass
class ForStatement(Statement):
    """For-each loop: for variable in iterable { body }."""
    variable: str
    iterable: Expression
    body: "Block"


@dataclass
class CountingForStatement(Statement):
    """C-style loop: for (initializer; condition; step) { body }."""
    initializer: Optional[Statement]
    condition: Optional[Expression]
    step: Optional[Expression]
    body: "Block"


@dataclass
class ReturnStatement(Statement):
    """Return from the enclosing function."""
    value: Optional[Expression] = None


@dataclass
class BreakStatement(Statement):
    pass


@dataclass
class ContinueStatement(Statement):
    pass


@dataclass
class Block(Statement):
    """A braced sequence of statements, or a whole program."""
    statements: List[Statement] = field(default_factory=list)


# =============================================================================
# Debug output
# =============================================================================

class FormatVisitor(AstVisitor):
    """Debug visitor that renders the AST structure as indented text."""

    def __init__(self, indent: int = 0):
        self.indent = indent
        self.lines: List[str] = []

    def _emit(self, text: str) -> None:
        self.lines.append("  " * self.indent + text)

    def _nested(self, node: AstNode) -> None:
        child = FormatVisitor(self.indent + 2)
        node.accept(child)
        self.lines.extend(child.lines)

    def visit_Literal(self, node: Literal) -> None:
        self._emit(f"Literal {node.value!r}")

    def visit_Identifier(self, node: Identifier) -> None:
        self._emit(f"Identifier {node.name}")

    def generic_visit(self, node: AstNode) -> None:
        self._emit(f"{node.__class__.__name__}")
        for name, value in node.__dict__.items():
            if name == "span" or value is None:
                continue
            if isinstance(value, AstNode):
                self._emit(f"  {name}:")
                self._nested(value)
            elif isinstance(value, list):
                self._emit(f"  {name}: [")
                for item in value:
                    if isinstance(item, AstNode):
                        self._nested(item)
                    else:
                        self._emit(f"    {item!r}")
                self._emit("  ]")
            elif isinstance(value, TokenType):
                self._emit(f"  {name}: {value.name}")
            else:
                self._emit(f"  {name}: {value!r}")


def format_ast(node: AstNode) -> str:
    """Render an AST node as an indented tree."""
    visitor = FormatVisitor()
    node.accept(visitor)
    return "\n".join(visitor.lines)


def print_ast(node: AstNode) -> None:
    """Print an AST node for debugging."""
    print(format_ast(node))
