"""
Logo Language Parser
Tokenizer and recursive-descent parser for the Logo turtle-graphics language
"""

from typing import List, Union, Tuple, Optional, Sequence
from dataclasses import dataclass, field

# Import pyparsing with error handling
try:
    from pyparsing import (
        Keyword, Literal, MatchFirst, ParseException, Regex, ZeroOrMore,
        alphanums, col, lineno, one_of
    )
except ImportError:
    raise ImportError("pyparsing library not found. Install with: pip install pyparsing")

from error_handling import (
    LogoParseError, PARSE_INTEGER, PARSE_NESTING_TOO_DEEP, PARSE_UNBALANCED_BRACKETS,
    PARSE_UNBALANCED_PARENS, enhance_parse_exception, eof_error,
    unexpected_token_error
)


# ============================================================================
# TOKENS
# ============================================================================

NUMBER = "NUMBER"
WORD = "WORD"
VARIABLE = "VARIABLE"
IDENTIFIER = "IDENTIFIER"
REPEAT = "REPEAT"
MAKE = "MAKE"
TO = "TO"
END = "END"
LBRACKET = "LBRACKET"
RBRACKET = "RBRACKET"
LPAREN = "LPAREN"
RPAREN = "RPAREN"
OPERATOR = "OPERATOR"

KEYWORDS = {
    'repeat': REPEAT,
    'make': MAKE,
    'to': TO,
    'end': END,
}

DELIMITERS = {
    '[': LBRACKET,
    ']': RBRACKET,
    '(': LPAREN,
    ')': RPAREN,
}

# multiply and divide bind tighter than add and subtract
OPERATOR_PRECEDENCE = {
    '+': 1,
    '-': 1,
    '*': 2,
    '/': 2,
}

IDENTIFIER_CHARS = alphanums + "_.?"

# Signed 64-bit literal range
INTEGER_MIN = -(2 ** 63)
INTEGER_MAX = 2 ** 63 - 1


@dataclass(frozen=True)
class SourceSpan:
    """Source location information for diagnostics"""
    filename: str
    line: int
    column: int
    text: str = ""

    def __str__(self) -> str:
        return f"{self.filename}:{self.line}:{self.column}"


@dataclass(frozen=True)
class Token:
    """Logo token; the span is informational and ignored by equality"""
    type: str
    value: str
    span: Optional[SourceSpan] = field(default=None, compare=False, repr=False)

    @property
    def precedence(self) -> int:
        if self.type != OPERATOR:
            return 0
        return OPERATOR_PRECEDENCE[self.value]

    def __str__(self) -> str:
        if self.type == WORD:
            return f'"{self.value}'
        if self.type == VARIABLE:
            return f":{self.value}"
        return self.value


class LogoTokenizer:
    """Logo tokenizer: first matching pattern at the cursor wins"""

    def __init__(self, filename: str = "<input>", debug: bool = False):
        self.filename = filename
        self.debug = debug
        self._setup_token_patterns()

    def _setup_token_patterns(self):
        """Setup all token patterns in priority order"""

        # Priority 1: reserved words, whole words only
        keyword_patterns = [
            Keyword(spelling, ident_chars=IDENTIFIER_CHARS).set_parse_action(self._token_action(token_type))
            for spelling, token_type in KEYWORDS.items()
        ]

        # Priority 2: integers, optionally negative
        number_pattern = Regex(r'-?[0-9]+').set_parse_action(self._token_action(NUMBER))

        # Priority 3: quoted words ("name), marker stripped
        word_pattern = Regex(r'"[^\s\[\]()]+').set_parse_action(self._token_action(WORD, strip=1))

        # Priority 4: variable references (:name), marker stripped
        variable_pattern = Regex(r':[A-Za-z_][A-Za-z0-9_.?]*').set_parse_action(
            self._token_action(VARIABLE, strip=1)
        )

        # Priority 5: identifiers
        identifier_pattern = Regex(r'[A-Za-z_][A-Za-z0-9_.?]*').set_parse_action(self._identifier_action)

        # Priority 6: brackets and parentheses
        delimiter_patterns = [
            Literal(symbol).set_parse_action(self._token_action(token_type))
            for symbol, token_type in DELIMITERS.items()
        ]

        # Priority 7: arithmetic operators
        operator_pattern = one_of("+ - * /").set_parse_action(self._token_action(OPERATOR))

        self.token_pattern = MatchFirst(
            keyword_patterns
            + [number_pattern, word_pattern, variable_pattern, identifier_pattern]
            + delimiter_patterns
            + [operator_pattern]
        )

        # Default whitespace skipping covers spaces, tabs and newlines
        self.program_pattern = ZeroOrMore(self.token_pattern)
        self.program_pattern.parse_with_tabs()

    def _make_span(self, source: str, loc: int, text: str) -> SourceSpan:
        return SourceSpan(self.filename, lineno(loc, source), col(loc, source), text)

    def _token_action(self, token_type: str, strip: int = 0):
        def action(source, loc, toks):
            text = toks[0]
            return Token(token_type, text[strip:], self._make_span(source, loc, text))
        return action

    def _identifier_action(self, source, loc, toks):
        text = toks[0]
        token_type = KEYWORDS.get(text, IDENTIFIER)
        return Token(token_type, text, self._make_span(source, loc, text))

    def tokenize(self, text: str) -> List[Token]:
        """Tokenize Logo source code, failing at the first unrecognized token"""
        try:
            results = self.program_pattern.parse_string(text, parse_all=True)
        except ParseException as e:
            raise enhance_parse_exception(e, text) from e

        tokens = list(results)
        if self.debug:
            print(f"Lexing phase completed: {len(tokens)} tokens")
            print(pretty_print_tokens(tokens))
        return tokens


# ============================================================================
# AST NODES
# ============================================================================

@dataclass(frozen=True)
class Number:
    value: int

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class Variable:
    name: str

    def __str__(self) -> str:
        return f":{self.name}"


@dataclass(frozen=True)
class OperatorNode:
    """An operator inside a postfix sequence"""
    symbol: str

    def __str__(self) -> str:
        return self.symbol


@dataclass(frozen=True)
class ArithmeticExpression:
    """Arithmetic already flattened to postfix (reverse Polish) order"""
    postfix: Tuple[Union[Number, Variable, OperatorNode], ...]

    def __str__(self) -> str:
        return " ".join(str(item) for item in self.postfix)


Expression = Union[Number, Variable, ArithmeticExpression]


@dataclass(frozen=True)
class ProcedureDeclaration:
    name: str
    params: Tuple[str, ...]
    body: Tuple['Statement', ...]


@dataclass(frozen=True)
class ProcedureCall:
    name: str
    args: Tuple[Expression, ...]


@dataclass(frozen=True)
class VariableDeclaration:
    name: str
    value: Expression


@dataclass(frozen=True)
class Repeat:
    count: Expression
    body: Tuple['Statement', ...]


Statement = Union[ProcedureDeclaration, ProcedureCall, VariableDeclaration, Repeat]
Program = Tuple[Statement, ...]


# ============================================================================
# GRAMMAR
# ============================================================================

STATEMENT_START = ["repeat", "make", "to", "<identifier>"]
EXPRESSION_START = ["<number>", "<variable>", "("]
ARITHMETIC_TOKENS = {NUMBER, VARIABLE, OPERATOR, LPAREN, RPAREN}
ARGUMENT_START = {NUMBER, VARIABLE, LPAREN}


class TokenStream:
    """Cursor over a token list with one token of look-ahead"""

    def __init__(self, tokens: Sequence[Token]):
        self.tokens = list(tokens)
        self.position = 0

    def peek(self) -> Optional[Token]:
        if self.position < len(self.tokens):
            return self.tokens[self.position]
        return None

    def next(self) -> Optional[Token]:
        token = self.peek()
        if token is not None:
            self.position += 1
        return token

    def expect(self, token_type: str, label: str) -> Token:
        token = self.next()
        if token is None:
            raise eof_error([label])
        if token.type != token_type:
            raise unexpected_token_error(token, [label])
        return token

    def at_end(self) -> bool:
        return self.position >= len(self.tokens)


class LogoGrammar:
    """Recursive-descent statement grammar with a shunting-yard expression parser"""

    def __init__(self, debug: bool = False):
        self.debug = debug

    def parse_program(self, stream: TokenStream) -> Program:
        statements = []
        while not stream.at_end():
            statements.append(self.parse_statement(stream, stream.next()))
        return tuple(statements)

    def parse_statement(self, stream: TokenStream, token: Token) -> Statement:
        """Dispatch on the leading token of a statement"""
        if token.type == REPEAT:
            return self.parse_repeat(stream)
        if token.type == MAKE:
            return self.parse_variable_declaration(stream)
        if token.type == TO:
            return self.parse_procedure_declaration(stream)
        if token.type == IDENTIFIER:
            return self.parse_procedure_call(stream, token.value)
        if token.type == RBRACKET:
            raise LogoParseError(
                PARSE_UNBALANCED_BRACKETS, "Unbalanced brackets: ']' without a matching '['", token
            )
        raise unexpected_token_error(token, STATEMENT_START)

    def parse_body(self, stream: TokenStream, terminator: str, label: str) -> Tuple[Statement, ...]:
        """Parse statements until the terminator token; running out is an EOF failure"""
        statements = []
        while True:
            token = stream.next()
            if token is None:
                raise eof_error([label])
            if token.type == terminator:
                return tuple(statements)
            statements.append(self.parse_statement(stream, token))

    def parse_repeat(self, stream: TokenStream) -> Repeat:
        count = self.parse_expression(stream)
        stream.expect(LBRACKET, "[")
        body = self.parse_body(stream, RBRACKET, "]")
        return Repeat(count, body)

    def parse_variable_declaration(self, stream: TokenStream) -> VariableDeclaration:
        name = stream.expect(WORD, "<word>").value
        value = self.parse_expression(stream)
        return VariableDeclaration(name, value)

    def parse_procedure_declaration(self, stream: TokenStream) -> ProcedureDeclaration:
        # redeclaration is an evaluation-time concern
        name = stream.expect(IDENTIFIER, "<identifier>").value

        params = []
        while stream.peek() is not None and stream.peek().type == VARIABLE:
            params.append(stream.next().value)

        body = self.parse_body(stream, END, "end")
        return ProcedureDeclaration(name, tuple(params), body)

    def parse_procedure_call(self, stream: TokenStream, name: str) -> ProcedureCall:
        # arity is checked when the call is evaluated
        args = []
        while stream.peek() is not None and stream.peek().type in ARGUMENT_START:
            args.append(self.parse_expression(stream))
        return ProcedureCall(name, tuple(args))

    def parse_expression(self, stream: TokenStream) -> Expression:
        """Parse a single value, switching to postfix form when an operator follows"""
        token = stream.peek()
        if token is None:
            raise eof_error(EXPRESSION_START)
        if token.type == LPAREN:
            return self.parse_arithmetic_expression(stream)
        if token.type not in (NUMBER, VARIABLE):
            raise unexpected_token_error(token, EXPRESSION_START)

        stream.next()
        first = self.parse_operand(token)

        following = stream.peek()
        if following is not None and following.type == OPERATOR:
            return self.parse_arithmetic_expression(stream, first)
        return first

    def parse_operand(self, token: Token) -> Union[Number, Variable]:
        if token.type == VARIABLE:
            return Variable(token.value)
        return parse_number(token)

    def parse_arithmetic_expression(self, stream: TokenStream,
                                    first: Optional[Union[Number, Variable]] = None) -> ArithmeticExpression:
        """
        Shunting-yard conversion of infix arithmetic to postfix.

        Stops without consuming at an operand or '(' in operator position,
        so adjacent expressions stay separate arguments.
        """
        operator_stack: List[Token] = []
        output: List[Union[Number, Variable, OperatorNode]] = [] if first is None else [first]
        expect_operand = first is None

        while True:
            token = stream.peek()
            if token is None or token.type not in ARITHMETIC_TOKENS:
                break

            if token.type in (NUMBER, VARIABLE):
                if not expect_operand:
                    break
                output.append(self.parse_operand(token))
                expect_operand = False

            elif token.type == LPAREN:
                if not expect_operand:
                    break
                operator_stack.append(token)

            elif token.type == OPERATOR:
                if expect_operand:
                    raise unexpected_token_error(token, EXPRESSION_START)
                while (operator_stack and operator_stack[-1].type == OPERATOR
                       and operator_stack[-1].precedence >= token.precedence):
                    output.append(OperatorNode(operator_stack.pop().value))
                operator_stack.append(token)
                expect_operand = True

            else:  # RPAREN
                if expect_operand:
                    raise unexpected_token_error(token, EXPRESSION_START)
                while True:
                    if not operator_stack:
                        raise LogoParseError(PARSE_UNBALANCED_PARENS, "Unbalanced parentheses", token)
                    top = operator_stack.pop()
                    if top.type == LPAREN:
                        break
                    output.append(OperatorNode(top.value))

            stream.next()

        if expect_operand:
            token = stream.peek()
            if token is None:
                raise eof_error(EXPRESSION_START)
            raise unexpected_token_error(token, EXPRESSION_START)

        while operator_stack:
            top = operator_stack.pop()
            if top.type == LPAREN:
                raise LogoParseError(PARSE_UNBALANCED_PARENS, "Unbalanced parentheses", top)
            output.append(OperatorNode(top.value))

        return ArithmeticExpression(tuple(output))


def parse_number(token: Token) -> Number:
    """Convert a numeric literal token, rejecting values outside the integer range"""
    try:
        value = int(token.value)
    except ValueError:
        value = None
    if value is None or not INTEGER_MIN <= value <= INTEGER_MAX:
        raise LogoParseError(PARSE_INTEGER, f"Invalid integer literal '{token.value}'", token)
    return Number(value)


# ============================================================================
# PARSER FRONT END
# ============================================================================

class LogoParser:
    """Main Logo parser combining tokenizer and grammar"""

    def __init__(self, debug: bool = False):
        self.debug = debug
        self.grammar = LogoGrammar(debug)

    def tokenize(self, text: str, filename: str = "<input>") -> List[Token]:
        """Tokenize Logo source code"""
        tokenizer = LogoTokenizer(filename, self.debug)
        return tokenizer.tokenize(text)

    def parse_tokens(self, tokens: Sequence[Token]) -> Program:
        """Build the statement list for an already tokenized program"""
        try:
            program = self.grammar.parse_program(TokenStream(tokens))
        except RecursionError as e:
            raise LogoParseError(
                PARSE_NESTING_TOO_DEEP, "Statements are nested too deeply to parse"
            ) from e
        if self.debug:
            print(f"Parsing phase completed: {len(program)} statements")
            print(pretty_print_ast(program))
        return program

    def parse_string(self, text: str, filename: str = "<input>") -> Program:
        """Parse Logo source code from string"""
        return self.parse_tokens(self.tokenize(text, filename))

    def parse_file(self, filepath: str) -> Program:
        """Parse a Logo source file"""
        with open(filepath, 'r', encoding='utf-8') as f:
            content = f.read()
        return self.parse_string(content, filepath)

    def parse_expression(self, text: str, filename: str = "<input>") -> Expression:
        """Parse a single arithmetic expression"""
        stream = TokenStream(self.tokenize(text, filename))
        expression = self.grammar.parse_expression(stream)
        if not stream.at_end():
            raise unexpected_token_error(stream.peek())
        return expression


# Factory functions for creating parsers
def create_parser(debug: bool = False) -> LogoParser:
    """Create a Logo parser"""
    return LogoParser(debug=debug)


def create_debug_parser() -> LogoParser:
    """Create a Logo parser with debug enabled"""
    return LogoParser(debug=True)


# ============================================================================
# DEBUG OUTPUT
# ============================================================================

def pretty_print_tokens(tokens: Sequence[Token]) -> str:
    """Render a token list on one line"""
    return " ".join(f"{token.type}({token})" for token in tokens)


def pretty_print_ast(statements: Sequence[Statement], indent: int = 0) -> str:
    """Pretty print a statement list for debugging"""
    pad = "  " * indent
    result = ""
    for stmt in statements:
        if isinstance(stmt, Repeat):
            result += f"{pad}REPEAT({stmt.count})\n"
            result += pretty_print_ast(stmt.body, indent + 1)
        elif isinstance(stmt, ProcedureDeclaration):
            params = " ".join(f":{p}" for p in stmt.params)
            result += f"{pad}TO({stmt.name}{' ' + params if params else ''})\n"
            result += pretty_print_ast(stmt.body, indent + 1)
        elif isinstance(stmt, VariableDeclaration):
            result += f"{pad}MAKE({stmt.name}, {stmt.value})\n"
        else:
            args = ", ".join(str(arg) for arg in stmt.args)
            result += f"{pad}CALL({stmt.name}{', ' + args if args else ''})\n"
    return result


if __name__ == "__main__":
    import sys

    parser = create_debug_parser()
    source = sys.argv[1] if len(sys.argv) > 1 else "repeat 4 [ forward 10 + 7 * 8 - 2 right 90 ]"
    parser.parse_string(source)
