"""
Error taxonomy and parse error reporting for LISQ
Runtime conditions are raised synchronously at the offending operation;
parse errors are enhanced with context lines and suggestions
"""

from typing import Any, List, Optional, Dict
from pyparsing import ParseException
import re


# ============================================================================
# RUNTIME ERRORS
# ============================================================================

class LisqRuntimeError(Exception):
    """Base class for every condition raised by the evaluation core"""
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class TypeMismatch(LisqRuntimeError):
    """A value lacks the capability required by the operation"""
    def __init__(self, expected: str, got: str, operation: Optional[str] = None):
        self.expected = expected
        self.got = got
        self.operation = operation
        where = f" in {operation}" if operation else ""
        super().__init__(f"Type check failed{where}: expected {expected}, got {got}")


class ImmutableStructureViolation(LisqRuntimeError):
    """Attempt to rebind, reassign or delete a slot of an immutable List"""
    def __init__(self, index: Any, type_name: str, action: str = "assign to"):
        self.index = index
        self.type_name = type_name
        self.action = action
        if index is None:
            message = f"Cannot {action} an immutable {type_name}"
        else:
            message = f"Cannot {action} element {index!r} of an immutable {type_name}"
        super().__init__(message)


class PositionalIndexError(LisqRuntimeError, IndexError):
    """Index outside the range of a positional value"""
    def __init__(self, index: Any, elems: Optional[int] = None):
        self.index = index
        self.elems = elems
        if elems is None:
            message = f"Index {index!r} out of range"
        else:
            message = f"Index {index!r} out of range (elems {elems})"
        super().__init__(message)


class CompositionError(LisqRuntimeError):
    """Attempt to compose something that is not a role into a type"""
    def __init__(self, composer: str, composee: Any):
        self.composer = composer
        self.composee = composee
        super().__init__(
            f"{composer} cannot compose {composee!r}: only roles can be composed")


class LisqSemanticsError(Exception):
    """Malformed syntax tree or unknown name found during analysis"""
    def __init__(self, message: str, context: str = ""):
        self.message = message
        self.context = context
        super().__init__(f"Semantics error: {message}" + (f" ({context})" if context else ""))



# ============================================================================
# PARSE ERROR REPORTING
# ============================================================================

# (fragment seen at the error, hint) pairs, checked in order
NOTATION_HINTS = [
    ("{", "Hashes are built from pairs: %h = a => 1, b => 2"),
    ("->", "Pairs are written with a fat arrow: key => value"),
    ("==>", "Pairs are written with a fat arrow: key => value"),
    ("..", "Range bounds are integers: 1..10, 0..^5 or 1..*"),
    ("$(", "An itemized list needs a closing ')': $(1, 2)"),
    ("|", "A spread applies to one term: |@a or |(1, 2)"),
]

TOKEN_PATTERN = re.compile(r"\$\(|\.\.\^?|=>|:=|[@$%]?\w+|\S")


def render_source_window(source_text: str, line_num: int, col_num: int, radius: int = 2) -> str:
    """Numbered source lines around line_num with a caret under col_num"""
    lines = source_text.split('\n')
    first = max(1, line_num - radius)
    last = min(len(lines), line_num + radius)

    window = []
    for number in range(first, last + 1):
        window.append(f"{number:4d}: {lines[number - 1]}")
        if number == line_num:
            window.append(' ' * (col_num + 5) + "^")
    return '\n'.join(window)


def expectation_of(exc: ParseException) -> List[str]:
    """What pyparsing was looking for, read from its message"""
    match = re.match(r"Expected\s+(.+?)(?:,\s+found\b.*)?$", exc.msg or "")
    if match is None:
        return ["a LISQ statement"]
    return [match.group(1)]


def token_at(line_text: str, col_num: int) -> Optional[str]:
    """The notation token starting at col_num, None at end of line"""
    match = TOKEN_PATTERN.search(line_text, max(0, col_num - 1))
    return match.group(0) if match else None


def hints_for(line_text: str, found: Optional[str]) -> List[str]:
    hints = [hint for fragment, hint in NOTATION_HINTS if fragment in line_text]
    if found is None:
        hints.append("The statement ends early: check for a missing ')' or ']'")
    elif found in (")", "]") and line_text.count(found) > line_text.count("(" if found == ")" else "["):
        hints.append(f"Unbalanced '{found}'")
    return hints


def describe_parse_exception(exc: ParseException, line_text: str) -> Dict[str, Any]:
    """Summarize a pyparsing failure on one line of LISQ notation"""
    found = token_at(line_text, exc.column)
    return {
        'expected': expectation_of(exc),
        'got': f"'{found}'" if found else "end of line",
        'suggestions': hints_for(line_text, found),
    }


class LisqParseError(Exception):
    """Notation that the grammar rejects, with its position and hints"""
    def __init__(self, message: str, location: int = 0, line: int = 0, column: int = 0,
                 expected: Optional[List[str]] = None, got: Optional[str] = None,
                 context: Optional[str] = None, suggestions: Optional[List[str]] = None):
        self.message = message
        self.location = location
        self.line = line
        self.column = column
        self.expected = list(expected or ())
        self.got = got
        self.context = context
        self.suggestions = list(suggestions or ())
        super().__init__(message)

    def __str__(self) -> str:
        if not self.line:
            return self.message
        parts = [f"Parse error at line {self.line}, column {self.column}: {self.message}"]
        if self.expected:
            parts.append("  expected " + " or ".join(self.expected)
                         + (f", found {self.got}" if self.got else ""))
        if self.context:
            parts.append(self.context)
        parts.extend(f"  hint: {hint}" for hint in self.suggestions)
        return '\n'.join(parts)
