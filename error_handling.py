"""
Error handling for the lamb language with detailed error messages
Error dictionaries are built by pure functions; exception classes wrap them
"""

from typing import List, Optional, Dict
from pyparsing import ParseBaseException


POSITION_UNAVAILABLE = "position unavailable"


# ============================================================================
# DATA STRUCTURES (Immutable Dictionaries)
# ============================================================================

def make_error_dict(
    kind: str,
    message: str,
    line: int = 0,
    column: int = 0,
    filename: str = "<input>",
    expected: Optional[List[str]] = None,
    got: Optional[str] = None,
    context: Optional[str] = None,
    suggestions: Optional[List[str]] = None
) -> Dict:
    """Create an immutable error structure. line == 0 means the position is unknown."""
    return {
        'kind': kind,
        'message': message,
        'line': line,
        'column': column,
        'filename': filename,
        'expected': expected or [],
        'got': got,
        'context': context,
        'suggestions': suggestions or []
    }


def format_position(error: Dict) -> str:
    """Format the position part of an error, or say it is unavailable"""
    if error['line'] <= 0:
        return POSITION_UNAVAILABLE
    return f"{error['filename']}:{error['line']}:{error['column']}"


def format_error_dict(error: Dict) -> str:
    """Format error as string"""
    error_msg = f"{error['kind']} at {format_position(error)}:\n"
    error_msg += f"  {error['message']}\n"

    if error['expected']:
        error_msg += f"  Expected: {', '.join(error['expected'])}\n"

    if error['got']:
        error_msg += f"  Got: {error['got']}\n"

    if error['context']:
        error_msg += f"  Context:\n{error['context']}\n"

    if error['suggestions']:
        error_msg += "  Suggestions:\n"
        for suggestion in error['suggestions']:
            error_msg += f"    - {suggestion}\n"

    return error_msg.rstrip("\n")


# ============================================================================
# PURE FUNCTIONS
# ============================================================================

def get_context_lines(source_text: str, line_num: int, col_num: int, context_lines: int = 1) -> str:
    """Get context lines around the error"""
    lines = source_text.split('\n')
    if line_num <= 0 or line_num > len(lines):
        return ""

    start_line = max(0, line_num - context_lines - 1)
    end_line = min(len(lines), line_num + context_lines)

    context_parts = []
    for i in range(start_line, end_line):
        line_prefix = f"{i+1:4d}: "
        context_parts.append(f"{line_prefix}{lines[i].rstrip()}")
        if i == line_num - 1:
            context_parts.append(f"{'':6}{' ' * max(col_num - 1, 0)}^ Error here")

    return '\n'.join(context_parts)


def extract_got(source_text: str, loc: int) -> str:
    """Extract what was actually found at the error location"""
    if loc >= len(source_text):
        return "end of input"
    got_text = source_text[loc:loc + 10].split('\n')[0].strip()
    if got_text:
        return f"'{got_text}'"
    return "end of line"


def generate_suggestions(message: str, got: Optional[str], expected: List[str]) -> List[str]:
    """Generate helpful suggestions based on the error"""
    suggestions = []
    got = got or ""
    expected_text = " ".join(expected)

    if "')'" in expected_text and any(op in got for op in ("+", "-", "*", "/", "&", "|")):
        suggestions.append("Parentheses only denote application; write arithmetic without them")

    if "'.'" in expected_text:
        suggestions.append("An abstraction needs a '.' after its parameter, e.g. λx.x")

    if "infix" in message:
        suggestions.append("Curried application needs explicit nesting: ((f) a) b")

    if "malformed numeric literal" in message:
        suggestions.append("Numbers look like 1_000.5e+2; underscores separate digits and need digits on both sides")

    if "unrecognized character" in message and ("\\" in got or "lambda" in got):
        suggestions.append("Abstractions are written with 'λ', recursion with '𝑓'")

    return suggestions


def enhance_parse_exception_dict(exc: ParseBaseException, source_text: str, filename: str = "<input>") -> Dict:
    """Convert a pyparsing exception raised while tokenizing into an error dict"""
    line_num = exc.lineno
    col_num = exc.column
    got = extract_got(source_text, exc.loc)

    if exc.loc < len(source_text) and not source_text[exc.loc].isspace() and "malformed" not in exc.msg:
        message = f"unrecognized character {source_text[exc.loc]!r}"
    else:
        message = exc.msg

    return make_error_dict(
        kind="Lex error",
        message=message,
        line=line_num,
        column=col_num,
        filename=filename,
        got=got,
        context=get_context_lines(source_text, line_num, col_num),
        suggestions=generate_suggestions(message, got, [])
    )


# ============================================================================
# EXCEPTION CLASSES
# ============================================================================

class LambError(Exception):
    """Base class of every error the lamb toolchain reports"""
    kind = "Error"

    def __init__(self, message: str, line: int = 0, column: int = 0, filename: str = "<input>",
                 expected: Optional[List[str]] = None, got: Optional[str] = None,
                 context: Optional[str] = None, suggestions: Optional[List[str]] = None):
        self.message = message
        self.line = line
        self.column = column
        self.filename = filename
        self.expected = expected or []
        self.got = got
        self.context = context
        self.suggestions = suggestions or []
        super().__init__(message)

    @classmethod
    def from_dict(cls, error: Dict) -> 'LambError':
        return cls(
            message=error['message'],
            line=error['line'],
            column=error['column'],
            filename=error['filename'],
            expected=error['expected'],
            got=error['got'],
            context=error['context'],
            suggestions=error['suggestions']
        )

    def to_dict(self) -> Dict:
        return make_error_dict(
            self.kind, self.message, self.line, self.column, self.filename,
            self.expected, self.got, self.context, self.suggestions
        )

    def __str__(self) -> str:
        return format_error_dict(self.to_dict())


class LambLexError(LambError):
    """Malformed numeric literal, unrecognized character or unreadable source"""
    kind = "Lex error"


class LambSyntaxError(LambError):
    """Unexpected token, missing expected token or unexpected end of input"""
    kind = "Syntax error"


class LambEvaluationError(LambError):
    """Semantic violation found while evaluating a program"""
    kind = "Evaluation error"

    def __str__(self) -> str:
        # evaluation errors carry no reliable source position
        return self.message


def syntax_error(message: str, expected: str, got: str, span=None) -> LambSyntaxError:
    """Build a syntax error from the offending token description and the expected one"""
    if span is None:
        return LambSyntaxError(message, expected=[expected], got=got,
                               suggestions=generate_suggestions(message, got, [expected]))
    return LambSyntaxError(
        message,
        line=span.start_line,
        column=span.start_col,
        filename=span.filename,
        expected=[expected],
        got=got,
        suggestions=generate_suggestions(message, got, [expected])
    )
