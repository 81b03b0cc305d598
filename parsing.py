"""
LISQ list-expression notation parser
One statement per line (or several separated by ';'), '#' comments.
Produces CST nodes whose values are nested ("TYPE", payload) tuples
"""

from typing import Any, List, Optional
from dataclasses import dataclass

from pyparsing import (
    Forward, Keyword, Literal, Optional as PyParsingOptional, ParseException,
    ParserElement, QuotedString, Regex, Suppress, ZeroOrMore, one_of,
    python_style_comment
)

from error_handling import (
    LisqParseError, describe_parse_exception, render_source_window
)

# Enable packrat parsing for performance
ParserElement.enable_packrat()


@dataclass(frozen=True)
class SourceSpan:
    """Source location of a statement"""
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
class CSTNode:
    """Statement-level syntax node; value holds the nested tuple payload"""
    type: str
    value: Any
    span: Optional[SourceSpan] = None

    def __str__(self) -> str:
        return f"{self.type}({self.value})"


# ============================================================================
# PARSE ACTIONS
# ============================================================================

def _split_commas(tokens) -> List[Any]:
    return [tok for tok in tokens if not (isinstance(tok, str) and tok == ',')]


def make_list_expr(tokens):
    """A comma anywhere makes a LIST; a lone item is returned unchanged"""
    tokens = list(tokens)
    items = _split_commas(tokens)
    if len(items) == len(tokens):
        return items[0]
    return ("LIST", items)


def make_parens(tokens):
    if not tokens:
        return ("LIST", [])
    inner = tokens[0]
    if inner[0] == "LIST":
        return inner
    return ("PARENS", inner)


def make_array_literal(tokens):
    if not tokens:
        return ("ARRAY_LITERAL", [])
    inner = tokens[0]
    return ("ARRAY_LITERAL", inner[1] if inner[0] == "LIST" else [inner])


def make_variable(tokens):
    text = tokens[0]
    return ("VARIABLE", {"sigil": text[0], "name": text[1:]})


def make_pair(tokens):
    key = tokens[0]
    quoted = isinstance(key, tuple)
    return ("PAIR", {"key": key[1] if quoted else key, "value": tokens[1], "quoted": quoted})


def make_colon_pair(tokens):
    value = tokens[1] if len(tokens) > 1 else ("BOOL", True)
    return ("PAIR", {"key": tokens[0], "value": value, "quoted": False})


def make_range(tokens):
    if len(tokens) == 1:
        return tokens[0]
    start, operator, end = tokens[0], tokens[1], tokens[2]
    return ("RANGE", {
        "start": start,
        "end": None if end[0] == "WHATEVER" else end,
        "exclude_end": operator == "..^"
    })


def make_postfix(tokens):
    """Fold subscript and method trailers onto the primary, left to right"""
    node = tokens[0]
    for trailer in tokens[1:]:
        kind, payload = trailer
        if kind == "SUBSCRIPT_TRAILER":
            node = ("SUBSCRIPT", {"target": node, "index": payload})
        else:
            node = ("METHOD_CALL", {
                "invocant": node,
                "name": payload["name"],
                "args": payload["args"]
            })
    return node


def make_method_trailer(tokens):
    args = tokens[1][1] if len(tokens) > 1 else []
    return ("METHOD_TRAILER", {"name": tokens[0], "args": args})


def make_statement(kind):
    def action(tokens):
        return (kind, {"target": tokens[0], "value": tokens[1]})
    return action


# ============================================================================
# GRAMMAR
# ============================================================================

class LisqGrammar:
    """LISQ list-expression grammar using pyparsing"""

    def __init__(self, debug: bool = False):
        self.debug = debug
        self._setup_grammar()

    def _setup_grammar(self):
        list_expr = Forward()
        item = Forward()
        prefix = Forward()

        # Literals
        number = Regex(r'-?\d+').set_parse_action(lambda t: ("NUMBER", int(t[0])))
        string_literal = QuotedString('"', esc_char='\\').set_parse_action(lambda t: ("STRING", t[0]))
        boolean_kw = Keyword("True") | Keyword("False")
        boolean = boolean_kw.copy().set_parse_action(lambda t: ("BOOL", t[0] == "True"))

        # Whatever star and whatever code (*-1, *+2, **3, *%2)
        whatever_code = (Suppress("*") + one_of("+ - * %") + Regex(r'\d+')).set_parse_action(
            lambda t: ("WHATEVER_CODE", {"op": t[0], "operand": int(t[1])})
        )
        whatever = Literal("*").set_parse_action(lambda t: ("WHATEVER", None))

        # Names
        identifier_base = Regex(r'[A-Za-z_][A-Za-z0-9_]*')
        name = ~boolean_kw + identifier_base.copy()
        identifier = (~boolean_kw + identifier_base.copy()).set_parse_action(lambda t: ("IDENTIFIER", t[0]))
        variable = Regex(r'[@$%][A-Za-z_][A-Za-z0-9_]*').set_parse_action(make_variable)

        # Argument lists keep every item; nothing is collapsed
        arglist = item + ZeroOrMore(Suppress(",") + item) + PyParsingOptional(Suppress(","))
        call_args = (Suppress("(") + PyParsingOptional(arglist) + Suppress(")")).set_parse_action(
            lambda t: ("ARGS", list(t))
        )

        # Circumfixes
        parens = (Suppress("(") + PyParsingOptional(list_expr) + Suppress(")")).set_parse_action(make_parens)
        array_literal = (Suppress("[") + PyParsingOptional(list_expr) + Suppress("]")).set_parse_action(
            make_array_literal
        )
        box = (Suppress(Regex(r'\$\(')) + PyParsingOptional(list_expr) + Suppress(")")).set_parse_action(
            lambda t: ("BOX", t[0] if t else ("LIST", []))
        )
        capture_literal = (Suppress(Regex(r'\\\(')) + PyParsingOptional(arglist) + Suppress(")")).set_parse_action(
            lambda t: ("CAPTURE_LITERAL", list(t))
        )

        call = (name + call_args).set_parse_action(
            lambda t: ("CALL", {"function": t[0], "args": t[1][1]})
        )

        primary = (
            whatever_code |
            whatever |
            number |
            string_literal |
            boolean |
            box |
            capture_literal |
            parens |
            array_literal |
            variable |
            call |
            identifier
        )

        # Postfix trailers: subscripts and method calls
        subscript = (Suppress("[") + list_expr + Suppress("]")).set_parse_action(
            lambda t: ("SUBSCRIPT_TRAILER", t[0])
        )
        method = (Suppress(".") + name + PyParsingOptional(call_args)).set_parse_action(make_method_trailer)
        postfix = (primary + ZeroOrMore(subscript | method)).set_parse_action(make_postfix)

        # Prefix spread
        spread = (Suppress("|") + prefix).set_parse_action(lambda t: ("SPREAD", t[0]))
        prefix <<= spread | postfix

        # Ranges: a..b, a..^b, a..*
        range_expr = (prefix + PyParsingOptional((Literal("..^") | Literal("..")) + prefix)).set_parse_action(
            make_range
        )

        # Pairs: key => value, "key" => value, :key(value), :key
        pair = ((name | string_literal) + Suppress("=>") + item).set_parse_action(make_pair)
        colon_pair = (Suppress(":") + name + PyParsingOptional(Suppress("(") + list_expr + Suppress(")"))).set_parse_action(
            make_colon_pair
        )

        item <<= pair | colon_pair | range_expr

        list_expr <<= (
            item + ZeroOrMore(Literal(",") + item) + PyParsingOptional(Literal(","))
        ).set_parse_action(make_list_expr)

        # Statements
        target = variable | identifier
        assign_op = Suppress(Regex(r'=(?![=>])'))
        bind_op = Suppress(Literal(":="))
        assignment = (target + assign_op + list_expr).set_parse_action(make_statement("ASSIGNMENT"))
        binding = (target + bind_op + list_expr).set_parse_action(make_statement("BINDING"))
        expression_statement = list_expr.copy().set_parse_action(lambda t: ("EXPRESSION", t[0]))
        statement = assignment | binding | expression_statement

        line = statement + ZeroOrMore(Suppress(";") + statement) + PyParsingOptional(Suppress(";"))
        line.ignore(python_style_comment)

        # Store the parsers
        self.line = line
        self.statement = statement
        self.expression = list_expr
        self.item = item
        self.primary = primary

    def parse_program(self, text: str, filename: str = "<input>") -> List[CSTNode]:
        """Parse a complete LISQ program, line by line"""
        nodes: List[CSTNode] = []
        for line_num, source_line in enumerate(text.split('\n'), 1):
            stripped = source_line.strip()
            if not stripped or stripped.startswith('#'):
                continue
            try:
                result = self.line.parse_string(source_line, parse_all=True)
            except ParseException as e:
                raise self._parse_error(e, text, line_num, filename) from e
            span = SourceSpan(filename, line_num, 1, line_num, len(source_line), stripped)
            for statement in result:
                if self.debug:
                    print(f"Parsed {statement[0]} at {span}")
                nodes.append(CSTNode(statement[0], statement[1], span))
        return nodes

    def parse_expression(self, text: str, filename: str = "<input>") -> CSTNode:
        """Parse a single LISQ expression"""
        try:
            result = self.expression.parse_string(text, parse_all=True)
        except ParseException as e:
            raise self._parse_error(e, text, 1, filename) from e
        span = SourceSpan(filename, 1, 1, 1, len(text), text.strip())
        return CSTNode("EXPRESSION", result[0], span)

    def _parse_error(self, exc: ParseException, text: str, line_num: int, filename: str) -> LisqParseError:
        """Build a LisqParseError with the line number inside the whole text"""
        summary = describe_parse_exception(exc, text.split('\n')[line_num - 1])
        return LisqParseError(
            message=f"{exc.msg} ({filename}:{line_num}:{exc.column})",
            location=exc.loc,
            line=line_num,
            column=exc.column,
            expected=summary['expected'],
            got=summary['got'],
            context=render_source_window(text, line_num, exc.column),
            suggestions=summary['suggestions']
        )


class LisqParser:
    """File and string front door to the grammar"""

    def __init__(self, debug: bool = False):
        self.debug = debug
        self.grammar = LisqGrammar(debug)

    def parse_file(self, filepath: str) -> List[CSTNode]:
        """Parse a LISQ source file"""
        try:
            with open(filepath, 'r', encoding='utf-8') as f:
                content = f.read()
        except FileNotFoundError:
            raise LisqParseError(f"File not found: {filepath}")
        except UnicodeDecodeError as e:
            raise LisqParseError(f"Cannot decode file {filepath}: {e}")
        return self.grammar.parse_program(content, filepath)

    def parse_string(self, text: str, filename: str = "<input>") -> List[CSTNode]:
        return self.grammar.parse_program(text, filename)

    def parse_expression(self, text: str, filename: str = "<input>") -> CSTNode:
        return self.grammar.parse_expression(text, filename)


def create_parser(debug: bool = False) -> LisqParser:
    """Factory function for creating a parser"""
    return LisqParser(debug)


def create_debug_parser() -> LisqParser:
    """Factory function for creating a debug parser"""
    return LisqParser(debug=True)


def pretty_print_cst(node: Any, indent: int = 0) -> str:
    """Pretty print a CST node or a nested payload tuple"""
    prefix = "  " * indent
    if isinstance(node, CSTNode):
        header = f"{prefix}{node.type}" + (f"  [{node.span}]" if node.span else "")
        return header + "\n" + pretty_print_cst(node.value, indent + 1)
    if isinstance(node, tuple) and len(node) == 2 and isinstance(node[0], str):
        kind, payload = node
        if isinstance(payload, (dict, list, tuple)):
            return f"{prefix}{kind}\n" + pretty_print_cst(payload, indent + 1)
        return f"{prefix}{kind}: {payload!r}"
    if isinstance(node, dict):
        lines = []
        for key, value in node.items():
            if isinstance(value, (dict, list, tuple)):
                lines.append(f"{prefix}{key}:")
                lines.append(pretty_print_cst(value, indent + 1))
            else:
                lines.append(f"{prefix}{key}: {value!r}")
        return "\n".join(lines)
    if isinstance(node, list):
        if not node:
            return f"{prefix}(empty)"
        return "\n".join(pretty_print_cst(child, indent) for child in node)
    return f"{prefix}{node!r}"
