"""
PyMancer Parser
Tokenizer and pyparsing grammar for the restricted Python subset used by the exercises
"""

from typing import List, Any, Optional
from dataclasses import dataclass, field
import keyword
import re

from pyparsing import (
    Forward, Keyword, MatchFirst, QuotedString, Regex, Suppress, Opt,
    ZeroOrMore, DelimitedList, ParseBaseException,
    python_style_comment,
)

from error_handling import PyMancerSyntaxError, syntax_error_from_parse_exception


DEFAULT_PLACEHOLDER = "???"

IDENTIFIER_PATTERN = r'[A-Za-z_][A-Za-z0-9_]*'

# Statement node types produced by the grammar
METHOD_CALL = "METHOD_CALL"
PRINT = "PRINT"
ASSIGNMENT = "ASSIGNMENT"
IF = "IF"
FOR = "FOR"
COMMENT = "COMMENT"

BLOCK_HEADERS = (IF, FOR)


@dataclass(frozen=True)
class SourceSpan:
    """Source location information for a parsed line"""
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
    """Token with source information"""
    type: str
    value: Any
    span: SourceSpan

    def __str__(self) -> str:
        return f"{self.type}({self.value!r})"


@dataclass(frozen=True)
class CSTNode:
    """
    One parsed source line.

    value holds the grammar's payload: a (TAG, payload) tuple tree for
    expressions and conditions. children holds the body line of an if/for
    header once block analysis has attached it.
    """
    type: str
    value: Any
    span: Optional[SourceSpan] = None
    indented: bool = False
    children: List['CSTNode'] = field(default_factory=list)

    @property
    def line(self) -> Optional[int]:
        return self.span.start_line if self.span else None

    def __str__(self) -> str:
        if self.children:
            children_str = ", ".join(str(child) for child in self.children)
            return f"{self.type}({self.value}, [{children_str}])"
        return f"{self.type}({self.value})"


# ============================================================================
# TOKENIZER
# ============================================================================

class PyMancerTokenizer:
    """Line-oriented tokenizer, used to inspect how source text is read"""

    def __init__(self, filename: str = "<input>", placeholder: str = DEFAULT_PLACEHOLDER):
        self.filename = filename
        self.placeholder = placeholder
        self._setup_token_patterns()

    def _setup_token_patterns(self):
        self.string_pattern = re.compile(r"'[^']*'|\"[^\"]*\"")
        self.integer_pattern = re.compile(r'\d+')
        self.identifier_pattern = re.compile(IDENTIFIER_PATTERN)
        self.keywords = set(keyword.kwlist)
        # Longest first so '==' wins over '='
        self.operators = ['==', '=']
        self.delimiters = {'(', ')', '[', ']', ',', '.', ':'}

    def tokenize(self, text: str) -> List[Token]:
        tokens = []

        for line_num, line in enumerate(text.splitlines(), 1):
            pos = 0
            while pos < len(line):
                if line[pos].isspace():
                    pos += 1
                    continue

                # Rest of the line is a comment
                if line[pos] == '#':
                    break

                token = self._match_token_at_position(line, pos, line_num)
                if token is None:
                    char = line[pos]
                    if char in "'\"":
                        raise PyMancerSyntaxError(
                            "unterminated string literal", line=line_num, column=pos + 1)
                    raise PyMancerSyntaxError(
                        f"unknown character '{char}'", line=line_num, column=pos + 1)
                tokens.append(token)
                pos += len(token.span.text)

        return tokens

    def _make_token(self, token_type: str, value: Any, text: str, line_num: int, pos: int) -> Token:
        span = SourceSpan(self.filename, line_num, pos + 1, line_num, pos + len(text) + 1, text)
        return Token(token_type, value, span)

    def _match_token_at_position(self, line: str, pos: int, line_num: int) -> Optional[Token]:
        """Match a token at a specific position using priority order"""

        # The placeholder marker is made of operator characters, so it goes first
        if self.placeholder and line.startswith(self.placeholder, pos):
            return self._make_token("PLACEHOLDER", self.placeholder, self.placeholder, line_num, pos)

        if line[pos] in "'\"":
            match = self.string_pattern.match(line, pos)
            if match:
                text = match.group(0)
                return self._make_token("STRING", text[1:-1], text, line_num, pos)
            return None

        match = self.integer_pattern.match(line, pos)
        if match:
            text = match.group(0)
            return self._make_token("INTEGER", int(text), text, line_num, pos)

        for op in self.operators:
            if line.startswith(op, pos):
                return self._make_token("OPERATOR", op, op, line_num, pos)

        if line[pos] in self.delimiters:
            return self._make_token("DELIMITER", line[pos], line[pos], line_num, pos)

        match = self.identifier_pattern.match(line, pos)
        if match:
            text = match.group(0)
            token_type = "KEYWORD" if text in self.keywords else "IDENTIFIER"
            return self._make_token(token_type, text, text, line_num, pos)

        return None


# ============================================================================
# GRAMMAR
# ============================================================================

class PyMancerGrammar:
    """Statement, condition and expression grammar built with pyparsing"""

    def __init__(self):
        self._setup_grammar()

    def _setup_grammar(self):
        expression = Forward()

        # Python keywords can never name a variable
        reserved = MatchFirst([Keyword(word) for word in keyword.kwlist])

        def name():
            return (~reserved + Regex(IDENTIFIER_PATTERN)).set_name("identifier")

        identifier = name().set_parse_action(lambda t: ("IDENTIFIER", t[0]))

        # Literals
        string_literal = (
            QuotedString("'", convert_whitespace_escapes=False) |
            QuotedString('"', convert_whitespace_escapes=False)
        ).set_parse_action(lambda t: ("STRING", t[0]))
        integer = Regex(r'\d+').set_parse_action(lambda t: ("INTEGER", int(t[0])))
        boolean = (Keyword("True") | Keyword("False")).set_parse_action(
            lambda t: ("BOOLEAN", t[0] == "True")
        )

        list_literal = (
            Suppress("[") + Opt(DelimitedList(expression, ",")) + Suppress("]")
        ).set_parse_action(lambda t: ("LIST", list(t)))

        # Builtin calls such as len(items)
        call = (
            name() + Suppress("(") + Opt(expression) + Suppress(")")
        ).set_parse_action(lambda t: ("CALL", {
            "function": t[0],
            "argument": t[1] if len(t) > 1 else None,
        }))

        expression <<= string_literal | integer | boolean | list_literal | call | identifier

        # Conditions, from tightest to loosest binding
        bare_condition = (boolean | identifier).set_parse_action(
            lambda t: ("TRUTHY", t[0])
        )
        equality = (
            expression + Suppress("==") + expression
        ).set_parse_action(lambda t: ("EQUALS", {"left": t[0], "right": t[1]}))
        membership = (
            expression + Suppress(Keyword("in")) + identifier
        ).set_parse_action(lambda t: ("MEMBERSHIP", {"item": t[0], "container": t[1]}))
        simple_condition = membership | equality | bare_condition

        def make_and(tokens):
            items = list(tokens)
            result = items[0]
            for right in items[1:]:
                result = ("AND", {"left": result, "right": right})
            return result

        condition = (
            simple_condition + ZeroOrMore(Suppress(Keyword("and")) + simple_condition)
        ).set_parse_action(make_and)

        # Statements, tried in priority order
        method_call = (
            name() + Suppress(".") + name() + Suppress("(") + Opt(expression) + Suppress(")")
        ).set_parse_action(lambda t: (METHOD_CALL, {
            "target": t[0],
            "method": t[1],
            "argument": t[2] if len(t) > 2 else None,
        }))
        print_statement = (
            Suppress(Keyword("print")) + Suppress("(") + expression + Suppress(")")
        ).set_parse_action(lambda t: (PRINT, {"expression": t[0]}))
        assignment = (
            name() + Suppress("=") + expression
        ).set_parse_action(lambda t: (ASSIGNMENT, {"name": t[0], "value": t[1]}))
        if_header = (
            Suppress(Keyword("if")) + condition + Suppress(":")
        ).set_parse_action(lambda t: (IF, {"condition": t[0]}))
        for_header = (
            Suppress(Keyword("for")) + name() + Suppress(Keyword("in")) + name() + Suppress(":")
        ).set_parse_action(lambda t: (FOR, {"variable": t[0], "iterable": t[1]}))

        statement = method_call | print_statement | assignment | if_header | for_header
        statement.ignore(python_style_comment)

        self.statement = statement
        self.condition = condition
        self.expression = expression

    def parse_line(self, text: str, span: SourceSpan, indented: bool = False) -> CSTNode:
        """Parse one trimmed, non-comment source line into a statement node"""
        try:
            result = self.statement.parse_string(text, parse_all=True)
        except ParseBaseException as e:
            error = syntax_error_from_parse_exception(e, text, span.start_line)
            # Report the column against the untrimmed line
            if error.column is not None:
                error.column += len(span.text) - len(span.text.lstrip())
            raise error from e
        node_type, payload = result[0]
        return CSTNode(node_type, payload, span, indented)

    def parse_expression(self, text: str) -> Any:
        """Parse a standalone expression into its (TAG, payload) tree"""
        try:
            return self.expression.parse_string(text.strip(), parse_all=True)[0]
        except ParseBaseException as e:
            raise syntax_error_from_parse_exception(e, text.strip(), 1) from e

    def parse_condition(self, text: str) -> Any:
        """Parse a standalone condition into its (TAG, payload) tree"""
        try:
            return self.condition.parse_string(text.strip(), parse_all=True)[0]
        except ParseBaseException as e:
            raise syntax_error_from_parse_exception(e, text.strip(), 1) from e


# ============================================================================
# PARSER
# ============================================================================

class PyMancerParser:
    """Main parser combining the line scanner, tokenizer and grammar"""

    def __init__(self, placeholder: str = DEFAULT_PLACEHOLDER):
        self.placeholder = placeholder
        self.grammar = PyMancerGrammar()

    def scan_lines(self, text: str, filename: str = "<input>") -> List[SourceSpan]:
        """Spans of the non-blank source lines, in order; never fails"""
        return [
            SourceSpan(filename, line_num, 1, line_num, len(raw) + 1, raw)
            for line_num, raw in enumerate(text.splitlines(), 1)
            if raw.strip()
        ]

    def parse_source_line(self, span: SourceSpan) -> CSTNode:
        """
        Parse one scanned line.

        Comment lines become COMMENT nodes because an indented comment can
        stand in for an empty block body. The placeholder guard runs before
        the grammar sees the line.
        """
        raw = span.text
        stripped = raw.strip()
        indented = raw[0].isspace()

        if stripped.startswith('#'):
            return CSTNode(COMMENT, stripped, span, indented)

        if self.placeholder and self.placeholder in stripped:
            raise PyMancerSyntaxError(
                f"unresolved placeholder {self.placeholder}; all voids must be filled",
                line=span.start_line,
                column=raw.index(self.placeholder) + 1,
            )

        return self.grammar.parse_line(stripped, span, indented)

    def tokenize(self, text: str, filename: str = "<input>") -> List[Token]:
        tokenizer = PyMancerTokenizer(filename, self.placeholder)
        return tokenizer.tokenize(text)


# Factory function for creating parsers
def create_parser(placeholder: str = DEFAULT_PLACEHOLDER) -> PyMancerParser:
    """Create a parser; grammar objects are never shared between parsers"""
    return PyMancerParser(placeholder=placeholder)


def pretty_print_cst(cst: CSTNode, indent: int = 0) -> str:
    """Pretty print a statement node and its body for debugging"""
    location = f" @{cst.line}" if cst.line is not None else ""
    result = "  " * indent + f"{cst.type}{location}"
    if cst.value is not None:
        result += f" {cst.value!r}"
    result += "\n"

    for child in cst.children:
        result += pretty_print_cst(child, indent + 1)

    return result
