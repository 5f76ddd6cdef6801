"""
Error handling for the PyMancer evaluator
Error taxonomy, structured result records, and parse-error conversion
"""

from dataclasses import dataclass
from typing import List, Optional
from pyparsing import ParseBaseException


# ============================================================================
# ERROR KINDS
# ============================================================================

SYNTAX_ERROR = "SyntaxError"
NAME_ERROR = "NameError"
TYPE_ERROR = "TypeError"
ATTRIBUTE_ERROR = "AttributeError"
RESOURCE_ERROR = "ResourceExhaustedError"

ERROR_KINDS = (SYNTAX_ERROR, NAME_ERROR, TYPE_ERROR, ATTRIBUTE_ERROR, RESOURCE_ERROR)


# ============================================================================
# DATA STRUCTURES (Immutable Records)
# ============================================================================

@dataclass(frozen=True)
class ErrorInfo:
    """A classified evaluation failure"""
    kind: str
    message: str
    line: Optional[int] = None

    def __str__(self) -> str:
        return format_error_info(self)


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of one program run, handed back to the host application"""
    output: str
    success: bool
    error: Optional[ErrorInfo] = None


def make_error_info(kind: str, message: str, line: Optional[int] = None) -> ErrorInfo:
    """Create an error record, rejecting kinds outside the taxonomy"""
    if kind not in ERROR_KINDS:
        raise ValueError(f"Unknown error kind: {kind}")
    return ErrorInfo(kind, message, line)


def format_error_info(error: ErrorInfo) -> str:
    """Format an error record as a single line"""
    text = f"{error.kind}: {error.message}"
    if error.line is not None:
        text += f" (line {error.line})"
    return text


def render_output(lines: List[str]) -> str:
    """Join printed lines, dropping trailing whitespace"""
    return "\n".join(lines).rstrip()


def success_result(lines: List[str]) -> ExecutionResult:
    return ExecutionResult(render_output(lines), True)


def failure_result(lines: List[str], error: ErrorInfo) -> ExecutionResult:
    """Package a failure; output printed before the failure is kept"""
    return ExecutionResult(render_output(lines), False, error)


# ============================================================================
# EXCEPTIONS
# ============================================================================

class PyMancerError(Exception):
    """Base class for every failure raised while parsing or running a program"""
    kind = SYNTAX_ERROR

    def __init__(self, message: str, line: Optional[int] = None):
        self.message = message
        self.line = line
        super().__init__(message)

    def to_error_info(self) -> ErrorInfo:
        return make_error_info(self.kind, self.message, self.line)

    def __str__(self) -> str:
        return format_error_info(self.to_error_info())


class PyMancerSyntaxError(PyMancerError):
    """Unrecognized grammar, unresolved placeholder, or bad block structure"""
    kind = SYNTAX_ERROR

    def __init__(self, message: str, line: Optional[int] = None,
                 column: Optional[int] = None):
        self.column = column
        super().__init__(message, line)


class PyMancerNameError(PyMancerError):
    kind = NAME_ERROR


class PyMancerTypeError(PyMancerError):
    kind = TYPE_ERROR


class PyMancerAttributeError(PyMancerError):
    kind = ATTRIBUTE_ERROR


class PyMancerResourceError(PyMancerError):
    """The run exceeded its step ceiling or wall-clock bound"""
    kind = RESOURCE_ERROR


def classify_failure(exc: PyMancerError, lines: List[str]) -> ExecutionResult:
    """Turn a raised failure into the result the caller receives"""
    return failure_result(lines, exc.to_error_info())


# ============================================================================
# PARSE ERROR CONVERSION
# ============================================================================

def get_context_lines(source_text: str, line_num: int, col_num: Optional[int] = None,
                      context_lines: int = 2) -> str:
    """Get numbered source lines around an error, marking the failing line"""
    lines = source_text.split('\n')
    start_line = max(0, line_num - context_lines - 1)
    end_line = min(len(lines), line_num + context_lines)

    context_parts = []
    for i in range(start_line, end_line):
        line_prefix = f"{i+1:4d}: "
        context_parts.append(f"{line_prefix}{lines[i]}")
        if i == line_num - 1:
            if col_num:
                context_parts.append(f"{'':6}{' ' * (col_num - 1)}^")
            else:
                context_parts.append(f"{'':6}{'^' * len(lines[i].rstrip())}")

    return '\n'.join(context_parts)


def extract_got(line_text: str, col_num: int) -> str:
    """Extract what was actually found at the error column"""
    if col_num <= len(line_text):
        start = max(0, col_num - 1)
        got_text = line_text[start:start + 12].strip()
        if got_text:
            return f"'{got_text}'"
    return "end of line"


def syntax_error_from_parse_exception(exc: ParseBaseException, line_text: str,
                                      line_num: int) -> PyMancerSyntaxError:
    """Convert a pyparsing failure on one source line into a SyntaxError"""
    column = getattr(exc, 'column', 1)
    got = extract_got(line_text, column)
    return PyMancerSyntaxError(
        f"invalid syntax near {got}" if got != "end of line" else "invalid syntax at end of line",
        line=line_num,
        column=column,
    )
