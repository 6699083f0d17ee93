"""
lamb Programming Language Parser
pyparsing tokenizer plus a precedence-climbing parser producing the AST
"""

from typing import List, Any, Optional
from dataclasses import dataclass, field, fields, is_dataclass
from enum import IntEnum
import logging

from pyparsing import (
    Regex, Literal, MatchFirst, ZeroOrMore, StringEnd,
    ParseBaseException, ParseFatalException, lineno, col
)

from error_handling import (
    LambLexError, LambSyntaxError, enhance_parse_exception_dict, get_context_lines, syntax_error
)


logger = logging.getLogger(__name__)

LAMBDA_KEYWORD = "λ"
RECURSION_KEYWORD = "𝑓"
OPERATORS = "+-*/=().&|"


@dataclass(frozen=True)
class SourceSpan:
    """Source location information for tokens and AST nodes"""
    filename: str
    start_line: int
    start_col: int
    end_line: int
    end_col: int
    text: str = ""

    def __str__(self) -> str:
        if self.start_line == self.end_line:
            return f"{self.filename}:{self.start_line}:{self.start_col}-{self.end_col}"
        return f"{self.filename}:{self.start_line}:{self.start_col}-{self.end_line}:{self.end_col}"


@dataclass(frozen=True)
class Token:
    """lamb token with source information"""
    type: str
    value: Any
    span: Optional[SourceSpan] = field(default=None, compare=False)

    def is_operator(self, symbol: str) -> bool:
        return self.type == "OPERATOR" and self.value == symbol

    def describe(self) -> str:
        if self.type == "EOF":
            return "end of input"
        if self.type == "IDENTIFIER":
            return f"identifier '{self.value}'"
        if self.type == "NUMBER":
            return f"number {self.value!r}"
        if self.type == "COMMENT":
            return "comment"
        return f"'{self.value}'"

    def __str__(self) -> str:
        return f"{self.type}({self.value!r})"


# ============================================================================
# AST
# ============================================================================

@dataclass(frozen=True)
class Identifier:
    name: str
    span: Optional[SourceSpan] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class Abstraction:
    """λparam.body"""
    param: str
    body: Any
    span: Optional[SourceSpan] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class NumberLiteral:
    value: float
    span: Optional[SourceSpan] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class Recursion:
    """𝑓(inner), meaningful only as the result of an abstraction body"""
    inner: Any
    span: Optional[SourceSpan] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class Application:
    """(func) arg"""
    func: Any
    arg: Any
    span: Optional[SourceSpan] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class ApplicationIf:
    """Reserved conditional application. The parser never produces it."""
    func: Any
    arg1: Any
    arg2: Any
    span: Optional[SourceSpan] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class BinaryOperation:
    op: str
    lhs: Any
    rhs: Any
    span: Optional[SourceSpan] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class Binding:
    """name = value, writes the global frame"""
    name: str
    value: Any
    span: Optional[SourceSpan] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class ExpressionStmt:
    expr: Any
    span: Optional[SourceSpan] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class CommentStmt:
    text: str
    span: Optional[SourceSpan] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class EndOfInput:
    span: Optional[SourceSpan] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class Program:
    statements: List[Any] = field(default_factory=list)


class Precedence(IntEnum):
    LOWEST = 0
    SUM = 1
    PRODUCT = 2
    BITWISE = 3
    CALL = 4


INFIX_PRECEDENCE = {
    '+': Precedence.SUM,
    '-': Precedence.SUM,
    '*': Precedence.PRODUCT,
    '/': Precedence.PRODUCT,
    '&': Precedence.BITWISE,
    '|': Precedence.BITWISE,
}


# ============================================================================
# TOKENIZER
# ============================================================================

class LambTokenizer:
    """lamb tokenizer built from pyparsing elements"""

    def __init__(self, filename: str = "<input>"):
        self.filename = filename
        self._setup_token_patterns()

    def _setup_token_patterns(self):
        """Setup all token patterns for lamb"""

        # Comments run from // to end of line and are kept
        comment = Regex(r"//[^\n]*").set_parse_action(self._make_comment)

        # Numbers with '_' separators between digits, optional fraction and exponent.
        # The lookahead rejects a match that stops in front of a dangling part.
        number = Regex(
            r"[0-9]+(?:_[0-9]+)*"
            r"(?:\.[0-9]+(?:_[0-9]+)*)?"
            r"(?:[eE][+-]?[0-9]+(?:_[0-9]+)*)?"
            r"(?![0-9_eE]|\.[0-9])"
        ).set_parse_action(self._make_number)

        # Whatever starts like a number but failed the pattern above
        malformed_number = Regex(
            r"[0-9][0-9_]*(?:\.[0-9_]*)?(?:[eE][+-]?[0-9_]*)?"
        ).set_parse_action(self._reject_number)

        identifier = Regex(r"[A-Za-z_][A-Za-z0-9_]*").set_parse_action(self._make_token("IDENTIFIER"))

        lambda_kw = Literal(LAMBDA_KEYWORD).set_parse_action(self._make_token("LAMBDA"))
        recursion_kw = Literal(RECURSION_KEYWORD).set_parse_action(self._make_token("RECURSION"))

        operator = MatchFirst([Literal(symbol) for symbol in OPERATORS]).set_parse_action(
            self._make_token("OPERATOR"))

        # Comment before operator so that // is not read as two slashes
        token = comment | number | malformed_number | identifier | lambda_kw | recursion_kw | operator

        self.token = token
        # Keep tabs so locations index the original text and comments stay verbatim
        self.token_stream = (ZeroOrMore(token) + StringEnd()).parse_with_tabs()

    def _span(self, text: str, loc: int, matched: str) -> SourceSpan:
        line = lineno(loc, text)
        column = col(loc, text)
        return SourceSpan(self.filename, line, column, line, column + len(matched), matched)

    def _make_token(self, token_type: str):
        def action(s, loc, t):
            return Token(token_type, t[0], self._span(s, loc, t[0]))
        return action

    def _make_comment(self, s, loc, t):
        text = t[0][2:]
        if text.endswith("\r"):
            text = text[:-1]
        return Token("COMMENT", text, self._span(s, loc, t[0]))

    def _make_number(self, s, loc, t):
        return Token("NUMBER", float(t[0].replace("_", "")), self._span(s, loc, t[0]))

    def _reject_number(self, s, loc, t):
        raise ParseFatalException(s, loc, f"malformed numeric literal '{t[0]}'")

    def tokenize(self, text: str) -> List[Token]:
        """Tokenize lamb source code, ending with a single EOF token"""
        try:
            tokens = list(self.token_stream.parse_string(text, parse_all=True))
        except ParseBaseException as e:
            raise LambLexError.from_dict(enhance_parse_exception_dict(e, text, self.filename)) from None

        end_line = text.count("\n") + 1
        end_col = len(text) - (text.rfind("\n") + 1) + 1
        tokens.append(Token("EOF", None, SourceSpan(self.filename, end_line, end_col, end_line, end_col)))
        logger.debug("tokenized %s into %d tokens", self.filename, len(tokens))
        return tokens


# ============================================================================
# PARSER
# ============================================================================

class LambParser:
    """Recursive descent with precedence climbing over a finished token sequence"""

    def __init__(self, tokens: List[Token]):
        self.tokens = list(tokens)
        self.position = 0
        self.seen_end = False

    def parse_program(self) -> Program:
        """Parse the whole token sequence. Stops at the first error."""
        statements = []
        while not self.seen_end:
            if self.look_ahead() is None:
                raise syntax_error("missing end of input marker", "end of input", "nothing")
            try:
                statements.append(self.parse_statement())
            except RecursionError:
                token = self.look_ahead()
                span = token.span if token is not None else None
                raise syntax_error("expression nested too deeply", "shallower nesting",
                                   "nesting past the recursion limit", span) from None

        leftover = self.look_ahead()
        if leftover is not None:
            raise syntax_error("tokens after end of input", "nothing", leftover.describe(), leftover.span)

        logger.debug("parsed %d statements", len(statements))
        return Program(statements)

    def parse_statement(self):
        token = self.look_ahead()

        if token.type == "IDENTIFIER":
            following = self.peek(1)
            if following is not None and following.is_operator("="):
                return self.parse_binding()
            return ExpressionStmt(self.parse_expression(Precedence.LOWEST), token.span)

        if token.type in ("LAMBDA", "NUMBER") or token.is_operator("("):
            return ExpressionStmt(self.parse_expression(Precedence.LOWEST), token.span)

        if token.type == "COMMENT":
            self.consume()
            return CommentStmt(token.value, token.span)

        if token.type == "EOF":
            self.consume()
            self.seen_end = True
            return EndOfInput(token.span)

        raise syntax_error("unexpected token at statement start", "statement", token.describe(), token.span)

    def parse_binding(self) -> Binding:
        name = self.consume()
        self.expect("=")
        value = self.parse_expression(Precedence.LOWEST)
        return Binding(name.value, value, name.span)

    def parse_expression(self, precedence: Precedence):
        left = self.parse_prefix()
        while True:
            token = self.look_ahead()
            if token is None or self.get_precedence(token) <= precedence:
                break
            left = self.parse_infix(left)
        return left

    def parse_prefix(self):
        token = self.consume()
        if token is None:
            raise syntax_error("unexpected end of input", "expression", "nothing")

        if token.type == "IDENTIFIER":
            return Identifier(token.value, token.span)
        if token.type == "NUMBER":
            return NumberLiteral(token.value, token.span)
        if token.type == "LAMBDA":
            return self.parse_abstraction(token)
        if token.type == "RECURSION":
            return self.parse_recursion(token)
        if token.is_operator("("):
            # Call precedence keeps binary operators out of the parentheses
            func = self.parse_expression(Precedence.CALL)
            self.expect(")")
            arg = self.parse_expression(Precedence.LOWEST)
            return Application(func, arg, token.span)

        raise syntax_error("unexpected token in prefix position", "expression", token.describe(), token.span)

    def parse_abstraction(self, keyword: Token) -> Abstraction:
        param = self.consume()
        if param is None or param.type != "IDENTIFIER":
            got = param.describe() if param is not None else "nothing"
            raise syntax_error("abstraction needs a parameter name", "parameter identifier", got,
                               param.span if param is not None else keyword.span)
        self.expect(".")
        body = self.parse_expression(Precedence.LOWEST)
        return Abstraction(param.value, body, keyword.span)

    def parse_recursion(self, keyword: Token) -> Recursion:
        self.expect("(")
        inner = self.parse_expression(Precedence.LOWEST)
        self.expect(")")
        return Recursion(inner, keyword.span)

    def parse_infix(self, left):
        token = self.consume()
        if token.type != "OPERATOR" or token.value not in INFIX_PRECEDENCE:
            raise syntax_error("unexpected token in infix position", "binary operator",
                               token.describe(), token.span)
        right = self.parse_expression(INFIX_PRECEDENCE[token.value])
        return BinaryOperation(token.value, left, right, token.span)

    def expect(self, symbol: str) -> Token:
        token = self.consume()
        if token is None:
            raise syntax_error("unexpected end of input", f"'{symbol}'", "nothing")
        if not token.is_operator(symbol):
            raise syntax_error(f"expected '{symbol}'", f"'{symbol}'", token.describe(), token.span)
        return token

    def get_precedence(self, token: Token) -> Precedence:
        if token.type == "OPERATOR":
            return INFIX_PRECEDENCE.get(token.value, Precedence.LOWEST)
        return Precedence.LOWEST

    def look_ahead(self) -> Optional[Token]:
        return self.peek(0)

    def peek(self, offset: int) -> Optional[Token]:
        index = self.position + offset
        if index < len(self.tokens):
            return self.tokens[index]
        return None

    def consume(self) -> Optional[Token]:
        token = self.look_ahead()
        if token is not None:
            self.position += 1
        return token


def parse(tokens: List[Token]) -> Program:
    """Parse a token sequence into a Program"""
    return LambParser(tokens).parse_program()


class LambSourceParser:
    """Front end combining the tokenizer and LambParser"""

    def parse_file(self, filepath: str) -> Program:
        """Parse a lamb source file"""
        return self.parse_string(read_source(filepath), filepath)

    def parse_string(self, text: str, filename: str = "<input>") -> Program:
        """Parse lamb source code from string, attaching source context to syntax errors"""
        tokens = tokenize(text, filename)
        try:
            return parse(tokens)
        except LambSyntaxError as e:
            if e.line > 0 and e.context is None:
                e.context = get_context_lines(text, e.line, e.column)
            raise

    def tokenize(self, text: str, filename: str = "<input>") -> List[Token]:
        """Tokenize lamb source code"""
        return tokenize(text, filename)

    def tokenize_file(self, filepath: str) -> List[Token]:
        return tokenize_file(filepath)


def read_source(filepath: str) -> str:
    try:
        with open(filepath, 'r', encoding='utf-8') as f:
            return f.read()
    except FileNotFoundError:
        raise LambLexError(f"File not found: {filepath}") from None
    except UnicodeDecodeError as e:
        raise LambLexError(f"Cannot decode file {filepath}: {e}") from None
    except OSError as e:
        raise LambLexError(f"Cannot read file {filepath}: {e.strerror}") from None


def tokenize(text: str, filename: str = "<input>") -> List[Token]:
    return LambTokenizer(filename).tokenize(text)


def tokenize_file(filepath: str) -> List[Token]:
    return tokenize(read_source(filepath), filepath)


# Factory functions for creating parsers
def create_parser() -> LambSourceParser:
    """Create a lamb parser"""
    return LambSourceParser()


# Utility functions for working with the AST
def pretty_print_ast(node: Any, indent: int = 0) -> str:
    """Pretty print an AST node for debugging"""
    if isinstance(node, Program):
        return "".join(pretty_print_ast(statement, indent) for statement in node.statements)

    attributes = []
    children = []
    for node_field in fields(node):
        if node_field.name == "span":
            continue
        value = getattr(node, node_field.name)
        if is_dataclass(value):
            children.append(value)
        else:
            attributes.append(f"{node_field.name}={value!r}")

    result = "  " * indent + type(node).__name__
    if attributes:
        result += f"({', '.join(attributes)})"
    result += "\n"

    for child in children:
        result += pretty_print_ast(child, indent + 1)

    return result
