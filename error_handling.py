"""
Error handling for the Logo interpreter with detailed error messages
One failure family per pipeline stage: lexing, parsing and evaluation
"""

from typing import Any, List, Optional, Dict
from pyparsing import ParseException, col, lineno


# ============================================================================
# FAILURE KINDS
# ============================================================================

PARSE_EOF = "eof"
PARSE_UNEXPECTED_TOKEN = "unexpected_token"
PARSE_INTEGER = "parse_integer"
PARSE_UNBALANCED_PARENS = "unbalanced_parens"
PARSE_UNBALANCED_BRACKETS = "unbalanced_brackets"
PARSE_NESTING_TOO_DEEP = "nesting_too_deep"

RUNTIME_REDECLARED_PROCEDURE = "redeclared_procedure"
RUNTIME_PROCEDURE_NOT_FOUND = "procedure_not_found"
RUNTIME_VARIABLE_NOT_FOUND = "variable_not_found"
RUNTIME_ARG_COUNT_MISMATCH = "arg_count_mismatch"
RUNTIME_TYPE_MISMATCH = "type_mismatch"
RUNTIME_DIVISION_BY_ZERO = "division_by_zero"
RUNTIME_CALL_DEPTH_EXCEEDED = "call_depth_exceeded"
RUNTIME_OTHER = "other"


# ============================================================================
# DATA STRUCTURES (Immutable Dictionaries)
# ============================================================================

def make_lex_error(
    message: str,
    location: int,
    line: int,
    column: int,
    got: Optional[str] = None,
    context: Optional[str] = None
) -> Dict:
    """Create an immutable lex error structure"""
    return {
        'message': message,
        'location': location,
        'line': line,
        'column': column,
        'got': got,
        'context': context
    }


def format_lex_error(error: Dict) -> str:
    """Format lex error as string"""
    error_msg = f"Lex error at line {error['line']}, column {error['column']}:\n"
    error_msg += f"  {error['message']}\n"

    if error['got']:
        error_msg += f"  Got: {error['got']}\n"

    if error['context']:
        error_msg += f"  Context:\n{error['context']}\n"

    return error_msg.rstrip('\n')


# ============================================================================
# PURE FUNCTIONS
# ============================================================================

def get_context_lines(source_text: str, line_num: int, col_num: int, context_lines: int = 2) -> str:
    """Get context lines around the error"""
    lines = source_text.split('\n')
    start_line = max(0, line_num - context_lines - 1)
    end_line = min(len(lines), line_num + context_lines)

    context_parts = []
    for i in range(start_line, end_line):
        line_prefix = f"{i+1:4d}: "
        context_parts.append(f"{line_prefix}{lines[i]}")
        if i == line_num - 1:  # Error line
            context_parts.append(f"{'':6}{' ' * (col_num - 1)}^ Error here")

    return '\n'.join(context_parts)


def skip_whitespace(source_text: str, location: int) -> int:
    """Advance past whitespace the way the tokenizer does"""
    while location < len(source_text) and source_text[location] in " \t\r\n":
        location += 1
    return location


def extract_got(source_text: str, location: int) -> str:
    """Extract the unrecognized text starting at the error location"""
    if location >= len(source_text):
        return "end of input"

    end = location
    while end < len(source_text) and not source_text[end].isspace() and end - location < 10:
        end += 1
    return f"'{source_text[location:end]}'"


def enhance_parse_exception_dict(exc: ParseException, source_text: str) -> Dict:
    """Convert a pyparsing exception raised by the tokenizer to a lex error dict"""
    location = skip_whitespace(source_text, exc.loc)
    line_num = lineno(location, source_text)
    col_num = col(location, source_text)

    return make_lex_error(
        message="Unrecognized token",
        location=location,
        line=line_num,
        column=col_num,
        got=extract_got(source_text, location),
        context=get_context_lines(source_text, line_num, col_num)
    )


# ============================================================================
# EXCEPTION CLASSES
# ============================================================================

class LogoError(Exception):
    """Base class for every failure reported by the interpreter pipeline"""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class LogoLexError(LogoError):
    """No token definition matched at the current cursor"""

    def __init__(self, message: str, location: int = 0, line: int = 0, column: int = 0,
                 got: Optional[str] = None, context: Optional[str] = None):
        self.location = location
        self.line = line
        self.column = column
        self.got = got
        self.context = context
        super().__init__(message)

    def __str__(self) -> str:
        error_dict = make_lex_error(
            self.message, self.location, self.line, self.column,
            self.got, self.context
        )
        return format_lex_error(error_dict)


class LogoParseError(LogoError):
    """Parse failure naming the offending token and what would have been accepted"""

    def __init__(self, kind: str, message: str, token: Any = None,
                 expected: Optional[List[str]] = None):
        self.kind = kind
        self.token = token
        self.expected = expected or []
        super().__init__(message)

    def __str__(self) -> str:
        result = f"Parse error: {self.message}"
        span = getattr(self.token, 'span', None)
        if span is not None:
            result = f"Parse error at {span}: {self.message}"
        if self.expected:
            result += f"\n  Expected: {', '.join(self.expected)}"
        return result


class LogoRuntimeError(LogoError):
    """Evaluation failure; carries the instructions produced before it"""

    def __init__(self, kind: str, message: str, name: Optional[str] = None,
                 expected: Optional[int] = None, got: Optional[int] = None):
        self.kind = kind
        self.name = name
        self.expected = expected
        self.got = got
        self.instructions: List[Any] = []
        super().__init__(message)

    def __str__(self) -> str:
        return f"Runtime error: {self.message}"


# ============================================================================
# CONSTRUCTORS
# ============================================================================

def enhance_parse_exception(exc: ParseException, source_text: str) -> LogoLexError:
    """Convert a pyparsing exception into an enhanced Logo lex error"""
    error_dict = enhance_parse_exception_dict(exc, source_text)
    return LogoLexError(
        message=error_dict['message'],
        location=error_dict['location'],
        line=error_dict['line'],
        column=error_dict['column'],
        got=error_dict['got'],
        context=error_dict['context']
    )


def unexpected_token_error(token: Any, expected: Optional[List[str]] = None) -> LogoParseError:
    return LogoParseError(
        PARSE_UNEXPECTED_TOKEN, f"Unexpected token '{token}'", token, expected
    )


def eof_error(expected: Optional[List[str]] = None) -> LogoParseError:
    return LogoParseError(PARSE_EOF, "Unexpected end of input", None, expected)
