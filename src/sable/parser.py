"""
Recursive descent parser for sable.

Converts a token stream into an Abstract Syntax Tree (AST). Blocks are
delimited by braces; a simple statement ends at a line break, ``;``, a
closing brace or the end of input.
"""

import logging
from typing import List, Optional
from .tokens import Token, TokenType, SourceSpan, describe_token_type
from .lexer import tokenize
from .ast import (
    # Expressions
    Expression, Literal, NothingLiteral, Identifier, BinaryOp, UnaryOp,
    Increment, Assignment, FunctionCall, IndexAccess, Slice, RangeExpr,
    FunctionDef,
    # Statements
    Statement, ExpressionStatement, VarDecl, AssertStatement, IfStatement,
    WhileStatement, ForStatement, CountingForStatement, ReturnStatement,
    BreakStatement, ContinueStatement, Block,
)
from .errors import (
    error_unexpected_token,
    error_unexpected_eof,
    error_nesting_too_deep,
    error_invalid_assignment_target,
)

logger = logging.getLogger(__name__)


class Parser:
    """
    Recursive descent parser for sable.

    Usage:
        parser = Parser(tokens)
        program = parser.parse_program()

    The parser implements standard precedence climbing for expressions:
        Lowest:  = (assignment, right-associative)
                 or
                 and
                 == !=
                 < > <= >=
                 .. (range)
                 + -
                 * /
        Highest: prefix (not - ++ --), postfix (call, index, ++ --)

    A binary or postfix operator must start on the same line as its left
    operand unless it is inside parentheses or brackets, so ``x`` followed by
    ``-1`` on the next line is two statements.
    """

    # Operator precedence levels (higher = tighter binding)
    PRECEDENCE = {
        TokenType.OR: 1,
        TokenType.AND: 2,
        TokenType.EQ: 3,
        TokenType.NE: 3,
        TokenType.LT: 4,
        TokenType.GT: 4,
        TokenType.LE: 4,
        TokenType.GE: 4,
        TokenType.RANGE: 5,
        TokenType.PLUS: 6,
        TokenType.MINUS: 6,
        TokenType.STAR: 7,
        TokenType.SLASH: 7,
    }

    def __init__(self, tokens: List[Token], filename: Optional[str] = None, source: Optional[str] = None):
        self.tokens = tokens
        self.filename = filename
        self.source = source
        self.pos = 0
        self._nesting = 0  # open ( and [ around the current position
        self._lines = source.splitlines() if source is not None else []

    # =========================================================================
    # Token Navigation
    # =========================================================================

    def _current(self) -> Token:
        if self.pos >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[self.pos]

    def _peek(self, offset: int = 0) -> Token:
        idx = self.pos + offset
        if idx >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[idx]

    def _is_at_end(self) -> bool:
        return self._current().type == TokenType.EOF

    def _check(self, token_type: TokenType) -> bool:
        return self._current().type == token_type

    def _check_any(self, *token_types: TokenType) -> bool:
        return self._current().type in token_types

    def _advance(self) -> Token:
        """Consume and return current token."""
        token = self._current()
        if not self._is_at_end():
            self.pos += 1
        return token

    def _consume(self, token_type: TokenType, expected: str = None) -> Token:
        """Consume token of expected type, or raise error."""
        if self._check(token_type):
            return self._advance()
        self._error(expected or describe_token_type(token_type))

    def _match(self, *token_types: TokenType) -> Optional[Token]:
        """Consume token if it matches any of the given types."""
        if self._current().type in token_types:
            return self._advance()
        return None

    def _on_same_line(self) -> bool:
        """True when the current token may continue the expression before it."""
        return self._nesting > 0 or not self._current().newline_before

    def _at_line_end(self) -> bool:
        token = self._current()
        return (token.newline_before
                or token.type in (TokenType.SEMICOLON, TokenType.RBRACE, TokenType.EOF))

    def _expect_line_end(self) -> None:
        """Expect the end of a simple statement."""
        if self._match(TokenType.SEMICOLON):
            return
        if self._at_line_end():
            return
        self._error("end of statement")

    def _source_line(self, token: Token) -> Optional[str]:
        index = token.span.start.line - 1
        if 0 <= index < len(self._lines):
            return self._lines[index]
        return None

    def _error(self, expected: str) -> None:
        """Raise a parser error at the current token."""
        token = self._current()
        if token.type == TokenType.EOF:
            raise error_unexpected_eof(expected, token.span)
        raise error_unexpected_token(expected, self._describe(token), token.span,
                                     self._source_line(token))

    @staticmethod
    def _describe(token: Token) -> str:
        if token.type in (TokenType.IDENTIFIER, TokenType.INT_LITERAL,
                          TokenType.FLOAT_LITERAL):
            return f"'{token.lexeme}'"
        if token.type == TokenType.STRING_LITERAL:
            return "string literal"
        return describe_token_type(token.type)

    def _span_from(self, start: Token) -> SourceSpan:
        """Create a span from start token to the previous token."""
        prev_pos = max(0, self.pos - 1)
        end_token = self.tokens[prev_pos]
        return SourceSpan(start.span.start, end_token.span.end)

    # =========================================================================
    # Expression Parsing (Precedence Climbing)
    # =========================================================================

    def _parse_expression(self) -> Expression:
        """Parse an expression, including assignment."""
        start = self._current()
        expr = self._parse_binary_expr(1)

        if self._check(TokenType.ASSIGN) and self._on_same_line():
            if not isinstance(expr, Identifier):
                raise error_invalid_assignment_target(expr.span, self._source_line(start))
            self._advance()  # consume '='
            value = self._parse_expression()
            return Assignment(span=SourceSpan(expr.span.start, value.span.end),
                              target=expr, value=value)

        return expr

    def _parse_binary_expr(self, min_precedence: int) -> Expression:
        """Parse binary expressions with precedence climbing."""
        left = self._parse_unary_expr()

        while self._on_same_line():
            op_token = self._current()
            precedence = self.PRECEDENCE.get(op_token.type)

            if precedence is None or precedence < min_precedence:
                break

            self._advance()  # consume operator
            right = self._parse_binary_expr(precedence + 1)
            span = SourceSpan(left.span.start, right.span.end)

            if op_token.type == TokenType.RANGE:
                left = RangeExpr(span=span, start=left, end=right)
            else:
                left = BinaryOp(span=span, left=left, operator=op_token.type, right=right)

        return left

    def _parse_unary_expr(self) -> Expression:
        """Parse prefix expressions (not, -, ++, --)."""
        if self._check_any(TokenType.NOT, TokenType.MINUS):
            op = self._advance()
            operand = self._parse_unary_expr()
            return UnaryOp(
                span=SourceSpan(op.span.start, operand.span.end),
                operator=op.type,
                operand=operand
            )

        if self._check_any(TokenType.PLUS_PLUS, TokenType.MINUS_MINUS):
            op = self._advance()
            target = self._parse_unary_expr()
            return self._make_increment(op, target, prefix=True)

        return self._parse_postfix_expr()

    def _make_increment(self, op: Token, target: Expression, prefix: bool) -> Increment:
        if not isinstance(target, Identifier):
            raise error_invalid_assignment_target(target.span, self._source_line(op))
        if prefix:
            span = SourceSpan(op.span.start, target.span.end)
        else:
            span = SourceSpan(target.span.start, op.span.end)
        delta = 1 if op.type == TokenType.PLUS_PLUS else -1
        return Increment(span=span, target=target, delta=delta, prefix=prefix)

    def _parse_postfix_expr(self) -> Expression:
        """Parse postfix expressions (calls, indexing, slicing, ++, --)."""
        expr = self._parse_primary_expr()

        while self._on_same_line():
            if self._check(TokenType.LPAREN):
                expr = self._parse_call(expr)
            elif self._check(TokenType.LBRACKET):
                expr = self._parse_subscript(expr)
            elif self._check_any(TokenType.PLUS_PLUS, TokenType.MINUS_MINUS):
                expr = self._make_increment(self._advance(), expr, prefix=False)
            else:
                break

        return expr

    def _parse_call(self, callee: Expression) -> FunctionCall:
        """Parse function call arguments."""
        self._consume(TokenType.LPAREN)
        self._nesting += 1
        args = []
        if not self._check(TokenType.RPAREN):
            args.append(self._parse_expression())
            while self._match(TokenType.COMMA):
                if self._check(TokenType.RPAREN):
                    break  # Allow trailing comma
                args.append(self._parse_expression())
        self._nesting -= 1
        self._consume(TokenType.RPAREN, "',' or ')'")
        return FunctionCall(
            span=SourceSpan(callee.span.start, self.tokens[self.pos - 1].span.end),
            callee=callee,
            arguments=args,
        )

    def _parse_subscript(self, target: Expression) -> Expression:
        """Parse ``[index]`` or ``[start:end:step]``."""
        self._consume(TokenType.LBRACKET)
        self._nesting += 1

        start = None
        if not self._check(TokenType.COLON):
            start = self._parse_expression()

        if not self._match(TokenType.COLON):
            self._nesting -= 1
            self._consume(TokenType.RBRACKET, "':' or ']'")
            return IndexAccess(
                span=SourceSpan(target.span.start, self.tokens[self.pos - 1].span.end),
                target=target,
                index=start,
            )

        end = None
        if not self._check_any(TokenType.COLON, TokenType.RBRACKET):
            end = self._parse_expression()

        step = None
        if self._match(TokenType.COLON) and not self._check(TokenType.RBRACKET):
            step = self._parse_expression()

        self._nesting -= 1
        self._consume(TokenType.RBRACKET, "']'")
        return Slice(
            span=SourceSpan(target.span.start, self.tokens[self.pos - 1].span.end),
            target=target,
            start=start,
            end=end,
            step=step,
        )

    def _parse_primary_expr(self) -> Expression:
        """Parse primary expressions (literals, identifiers, grouped, lambdas)."""
        token = self._current()

        if token.type in (TokenType.INT_LITERAL, TokenType.FLOAT_LITERAL,
                          TokenType.STRING_LITERAL):
            self._advance()
            return Literal(span=token.span, value=token.value, literal_type=token.type)

        if token.type in (TokenType.TRUE, TokenType.FALSE):
            self._advance()
            return Literal(span=token.span, value=token.type == TokenType.TRUE,
                           literal_type=token.type)

        if token.type == TokenType.NOTHING:
            self._advance()
            return NothingLiteral(span=token.span)

        if token.type == TokenType.IDENTIFIER:
            self._advance()
            return Identifier(span=token.span, name=token.value)

        if token.type == TokenType.LPAREN:
            self._advance()
            self._nesting += 1
            expr = self._parse_expression()
            self._nesting -= 1
            self._consume(TokenType.RPAREN, "')'")
            return expr

        if token.type == TokenType.PIPE:
            return self._parse_lambda()

        self._error("expression")

    def _parse_lambda(self) -> FunctionDef:
        """Parse ``|a, b| => expr`` or ``|a, b| { block }``."""
        start = self._consume(TokenType.PIPE)
        parameters = []
        if not self._check(TokenType.PIPE):
            parameters = self._parse_parameter_names(TokenType.PIPE)
        self._consume(TokenType.PIPE, "',' or '|'")
        body = self._parse_function_body()
        return FunctionDef(span=self._span_from(start), name=None,
                           parameters=parameters, body=body)

    def _parse_parameter_names(self, closing: TokenType) -> List[str]:
        names = [self._consume(TokenType.IDENTIFIER, "parameter name").value]
        while self._match(TokenType.COMMA):
            if self._check(closing):
                break
            names.append(self._consume(TokenType.IDENTIFIER, "parameter name").value)
        return names

    def _parse_function_body(self) -> Block:
        """Parse ``=> expr`` (wrapped in a return) or a braced block."""
        arrow = self._match(TokenType.DOUBLE_ARROW)
        if arrow is None:
            return self._parse_block()

        saved = self._nesting
        self._nesting = 0
        value = self._parse_expression()
        self._nesting = saved
        span = SourceSpan(arrow.span.start, value.span.end)
        return Block(span=span, statements=[ReturnStatement(span=span, value=value)])

    # =========================================================================
    # Statement Parsing
    # =========================================================================

    def _parse_block(self) -> Block:
        """Parse a braced block of statements."""
        start = self._consume(TokenType.LBRACE, "'{'")
        saved = self._nesting
        self._nesting = 0

        statements = []
        while not self._check(TokenType.RBRACE):
            if self._is_at_end():
                self._error("'}'")
            if self._match(TokenType.SEMICOLON):
                continue
            statements.append(self._parse_statement())

        self._nesting = saved
        self._consume(TokenType.RBRACE, "'}'")
        return Block(span=self._span_from(start), statements=statements)

    def _parse_statement(self) -> Statement:
        """Parse a single statement."""
        token_type = self._current().type

        if token_type == TokenType.LET:
            return self._parse_var_decl(expect_line_end=True)
        if token_type == TokenType.DEF:
            return self._parse_function_statement()
        if token_type == TokenType.AT:
            return self._parse_decorated_function()
        if token_type == TokenType.IF:
            return self._parse_if_statement()
        if token_type == TokenType.WHILE:
            return self._parse_while_statement()
        if token_type == TokenType.FOR:
            return self._parse_for_statement()
        if token_type == TokenType.RETURN:
            return self._parse_return_statement()
        if token_type in (TokenType.BREAK, TokenType.CONTINUE):
            token = self._advance()
            self._expect_line_end()
            if token_type == TokenType.BREAK:
                return BreakStatement(span=token.span)
            return ContinueStatement(span=token.span)
        if token_type == TokenType.ASSERT:
            return self._parse_assert_statement()

        expr = self._parse_expression()
        self._expect_line_end()
        return ExpressionStatement(span=expr.span, expression=expr)

    def _parse_var_decl(self, expect_line_end: bool) -> VarDecl:
        """Parse: let name = expr"""
        start = self._consume(TokenType.LET)
        name = self._consume(TokenType.IDENTIFIER, "variable name").value
        self._consume(TokenType.ASSIGN, "'='")
        initializer = self._parse_expression()
        if expect_line_end:
            self._expect_line_end()
        return VarDecl(span=self._span_from(start), name=name, initializer=initializer)

    def _parse_function_def(self) -> FunctionDef:
        """Parse: def name(params) { ... } or def name(params) => expr"""
        start = self._consume(TokenType.DEF)
        name = self._consume(TokenType.IDENTIFIER, "function name").value
        self._consume(TokenType.LPAREN, "'('")
        parameters = []
        if not self._check(TokenType.RPAREN):
            parameters = self._parse_parameter_names(TokenType.RPAREN)
        self._consume(TokenType.RPAREN, "',' or ')'")

        shorthand = self._check(TokenType.DOUBLE_ARROW)
        body = self._parse_function_body()
        if shorthand:
            self._expect_line_end()
        return FunctionDef(span=self._span_from(start), name=name,
                           parameters=parameters, body=body)

    def _parse_function_statement(self) -> ExpressionStatement:
        func = self._parse_function_def()
        return ExpressionStatement(span=func.span, expression=func)

    def _parse_decorated_function(self) -> ExpressionStatement:
        """
        Parse one or more ``@decorator`` lines followed by a ``def``.

        ``@d def f() {}`` becomes ``f = d(def f() {})``: the definition binds
        ``f`` first and the assignment then rebinds it to the decorated value.
        Decorators apply bottom-up.
        """
        decorators = []
        while self._match(TokenType.AT):
            decorators.append(self._parse_postfix_expr())
            self._match(TokenType.SEMICOLON)

        if not self._check(TokenType.DEF):
            self._error("'def' after decorator")

        func = self._parse_function_def()
        value: Expression = func
        for decorator in reversed(decorators):
            value = FunctionCall(span=SourceSpan(decorator.span.start, func.span.end),
                                 callee=decorator, arguments=[value])

        target = Identifier(span=func.span, name=func.name)
        assignment = Assignment(span=value.span, target=target, value=value)
        return ExpressionStatement(span=assignment.span, expression=assignment)

    def _parse_if_statement(self) -> IfStatement:
        """Parse: if cond { ... } [else if cond { ... }]* [else { ... }]"""
        start = self._consume(TokenType.IF)
        condition = self._parse_expression()
        then_branch = self._parse_block()

        else_branch = None
        if self._match(TokenType.ELSE):
            if self._check(TokenType.IF):
                else_branch = self._parse_if_statement()
            else:
                else_branch = self._parse_block()

        return IfStatement(span=self._span_from(start), condition=condition,
                           then_branch=then_branch, else_branch=else_branch)

    def _parse_while_statement(self) -> WhileStatement:
        start = self._consume(TokenType.WHILE)
        condition = self._parse_expression()
        body = self._parse_block()
        return WhileStatement(span=self._span_from(start), condition=condition, body=body)

    def _parse_for_statement(self) -> Statement:
        """Parse: for name in expr { ... } or for (init; cond; step) { ... }"""
        start = self._consume(TokenType.FOR)

        if self._check(TokenType.LPAREN):
            return self._parse_counting_for(start)

        variable = self._consume(TokenType.IDENTIFIER, "loop variable or '('").value
        self._consume(TokenType.IN, "'in'")
        iterable = self._parse_expression()
        body = self._parse_block()
        return ForStatement(span=self._span_from(start), variable=variable,
                            iterable=iterable, body=body)

    def _parse_counting_for(self, start: Token) -> CountingForStatement:
        self._consume(TokenType.LPAREN)
        self._nesting += 1

        initializer = None
        if self._check(TokenType.LET):
            initializer = self._parse_var_decl(expect_line_end=False)
        elif not self._check(TokenType.SEMICOLON):
            expr = self._parse_expression()
            initializer = ExpressionStatement(span=expr.span, expression=expr)
        self._consume(TokenType.SEMICOLON, "';'")

        condition = None
        if not self._check(TokenType.SEMICOLON):
            condition = self._parse_expression()
        self._consume(TokenType.SEMICOLON, "';'")

        step = None
        if not self._check(TokenType.RPAREN):
            step = self._parse_expression()

        self._nesting -= 1
        self._consume(TokenType.RPAREN, "')'")
        body = self._parse_block()
        return CountingForStatement(span=self._span_from(start), initializer=initializer,
                                    condition=condition, step=step, body=body)

    def _parse_return_statement(self) -> ReturnStatement:
        start = self._consume(TokenType.RETURN)
        value = None
        if not self._at_line_end():
            value = self._parse_expression()
        self._expect_line_end()
        return ReturnStatement(span=self._span_from(start), value=value)

    def _parse_assert_statement(self) -> AssertStatement:
        """Parse: assert cond[, "message"]"""
        start = self._consume(TokenType.ASSERT)
        condition = self._parse_expression()
        message = None
        if self._match(TokenType.COMMA):
            message = self._consume(TokenType.STRING_LITERAL, "assertion message string").value
        self._expect_line_end()
        return AssertStatement(span=self._span_from(start), condition=condition,
                               message=message)

    # =========================================================================
    # Program
    # =========================================================================

    def parse_program(self) -> Block:
        """Parse a whole program into a top-level block."""
        start = self._current()
        statements = []
        while not self._is_at_end():
            if self._match(TokenType.SEMICOLON):
                continue
            if self._check(TokenType.RBRACE):
                self._error("statement")
            try:
                statements.append(self._parse_statement())
            except RecursionError:
                token = self._current()
                raise error_nesting_too_deep(token.span, self._source_line(token)) from None

        logger.debug("parsed %d top-level statements from %s",
                     len(statements), self.filename or "<input>")
        return Block(span=SourceSpan(start.span.start, self._current().span.end),
                     statements=statements)


def parse(tokens: List[Token], filename: Optional[str] = None, source: Optional[str] = None) -> Block:
    """
    Convenience function to parse tokens into a program.

    Args:
        tokens: List of tokens from the lexer
        filename: Optional filename for error messages
        source: Optional original source code, used to quote lines in errors

    Returns:
        Top-level Block of the program

    Raises:
        ParserError: If parsing fails
    """
    parser = Parser(tokens, filename, source)
    return parser.parse_program()


def parse_source(source: str, filename: Optional[str] = None) -> Block:
    """Tokenize and parse source text in one step."""
    return parse(tokenize(source, filename), filename, source)
