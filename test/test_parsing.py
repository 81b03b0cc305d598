"""
Parser tests for the LISQ list-expression notation
"""

import pytest

from error_handling import LisqParseError
from parsing import CSTNode, pretty_print_cst


def parse(grammar, text):
  return grammar.expression.parse_string(text, parse_all=True)[0]


class TestLiterals:
  """Atoms"""

  def test_number_and_string(self, grammar):
    assert parse(grammar, "42") == ("NUMBER", 42)
    assert parse(grammar, "-3") == ("NUMBER", -3)
    assert parse(grammar, '"hi there"') == ("STRING", "hi there")

  def test_booleans_are_not_identifiers(self, grammar):
    assert parse(grammar, "True") == ("BOOL", True)
    assert parse(grammar, "False") == ("BOOL", False)
    assert parse(grammar, "Truth") == ("IDENTIFIER", "Truth")

  def test_variables(self, grammar):
    assert parse(grammar, "@a") == ("VARIABLE", {"sigil": "@", "name": "a"})
    assert parse(grammar, "$x") == ("VARIABLE", {"sigil": "$", "name": "x"})
    assert parse(grammar, "%h") == ("VARIABLE", {"sigil": "%", "name": "h"})

  def test_whatever(self, grammar):
    assert parse(grammar, "*") == ("WHATEVER", None)
    assert parse(grammar, "*-1") == ("WHATEVER_CODE", {"op": "-", "operand": 1})
    assert parse(grammar, "**2") == ("WHATEVER_CODE", {"op": "*", "operand": 2})


class TestLists:
  """Commas, parentheses and circumfixes"""

  def test_comma_makes_a_list(self, grammar):
    result = parse(grammar, "1, 2, 3")
    assert result[0] == "LIST"
    assert len(result[1]) == 3

  def test_trailing_comma(self, grammar):
    assert parse(grammar, "1,") == ("LIST", [("NUMBER", 1)])

  def test_parens_without_comma_group(self, grammar):
    assert parse(grammar, "(1)") == ("PARENS", ("NUMBER", 1))
    assert parse(grammar, "()") == ("LIST", [])

  def test_nested_lists(self, grammar):
    result = parse(grammar, "1, (2, 3), 4")
    assert result[1][1] == ("LIST", [("NUMBER", 2), ("NUMBER", 3)])

  def test_box(self, grammar):
    assert parse(grammar, "$(1, 2)") == ("BOX", ("LIST", [("NUMBER", 1), ("NUMBER", 2)]))

  def test_array_literal(self, grammar):
    assert parse(grammar, "[1, 2]") == ("ARRAY_LITERAL", [("NUMBER", 1), ("NUMBER", 2)])
    assert parse(grammar, "[1]") == ("ARRAY_LITERAL", [("NUMBER", 1)])
    assert parse(grammar, "[]") == ("ARRAY_LITERAL", [])

  def test_spread(self, grammar):
    assert parse(grammar, "|@a") == ("SPREAD", ("VARIABLE", {"sigil": "@", "name": "a"}))

  def test_capture_literal(self, grammar):
    result = parse(grammar, "\\(1, :k(2))")
    assert result[0] == "CAPTURE_LITERAL"
    assert len(result[1]) == 2


class TestPairs:

  def test_bare_pair(self, grammar):
    assert parse(grammar, "key => 3") == ("PAIR", {"key": "key", "value": ("NUMBER", 3), "quoted": False})

  def test_quoted_key(self, grammar):
    assert parse(grammar, '"key" => 3')[1]["quoted"] is True

  def test_colon_pairs(self, grammar):
    assert parse(grammar, ":key(3)")[1]["value"] == ("NUMBER", 3)
    assert parse(grammar, ":flag")[1]["value"] == ("BOOL", True)

  def test_parenthesized_pair(self, grammar):
    result = parse(grammar, "(key => 3)")
    assert result[0] == "PARENS"
    assert result[1][0] == "PAIR"


class TestRanges:

  def test_inclusive(self, grammar):
    result = parse(grammar, "1..10")
    assert result == ("RANGE", {"start": ("NUMBER", 1), "end": ("NUMBER", 10), "exclude_end": False})

  def test_exclusive(self, grammar):
    assert parse(grammar, "1..^10")[1]["exclude_end"] is True

  def test_infinite(self, grammar):
    assert parse(grammar, "1..*")[1]["end"] is None


class TestPostfix:
  """Calls, subscripts and method trailers"""

  def test_call(self, grammar):
    result = parse(grammar, "f(1, k => 2)")
    assert result[0] == "CALL"
    assert result[1]["function"] == "f"
    assert len(result[1]["args"]) == 2

  def test_subscript(self, grammar):
    result = parse(grammar, "@a[0]")
    assert result == ("SUBSCRIPT", {"target": ("VARIABLE", {"sigil": "@", "name": "a"}),
                                    "index": ("NUMBER", 0)})

  def test_whatever_subscript(self, grammar):
    assert parse(grammar, "@a[*-1]")[1]["index"] == ("WHATEVER_CODE", {"op": "-", "operand": 1})

  def test_method_without_arguments(self, grammar):
    result = parse(grammar, "@a.flat")
    assert result[0] == "METHOD_CALL"
    assert result[1]["name"] == "flat"
    assert result[1]["args"] == []

  def test_method_chain(self, grammar):
    result = parse(grammar, "(1..*).head(3).elems")
    assert result[1]["name"] == "elems"
    inner = result[1]["invocant"]
    assert inner[1]["name"] == "head"
    assert inner[1]["args"] == [("NUMBER", 3)]


class TestPrograms:
  """Statements, spans and errors"""

  def test_statements_and_spans(self, grammar):
    nodes = grammar.parse_program("@a = 1, 2\n$x := 3; y = 4  # comment\n")
    assert [node.type for node in nodes] == ["ASSIGNMENT", "BINDING", "ASSIGNMENT"]
    assert [node.span.start_line for node in nodes] == [1, 2, 2]
    assert all(isinstance(node, CSTNode) for node in nodes)

  def test_comments_and_blank_lines_skipped(self, grammar):
    nodes = grammar.parse_program("# heading\n\n@a.elems\n")
    assert len(nodes) == 1
    assert nodes[0].type == "EXPRESSION"
    assert nodes[0].span.start_line == 3

  def test_pair_is_not_an_assignment(self, grammar):
    nodes = grammar.parse_program("k => 1")
    assert nodes[0].type == "EXPRESSION"
    assert nodes[0].value[0] == "PAIR"

  def test_parse_error_reports_line(self, grammar):
    with pytest.raises(LisqParseError) as excinfo:
      grammar.parse_program("@a = (1, 2")
    assert excinfo.value.line == 1

  def test_parse_error_on_later_line(self, grammar):
    with pytest.raises(LisqParseError) as excinfo:
      grammar.parse_program("1, 2\n@a = ]")
    assert excinfo.value.line == 2
    assert "line 2" in str(excinfo.value)

  def test_pretty_print(self, grammar):
    node = grammar.parse_expression("1, 2")
    text = pretty_print_cst(node)
    assert text.startswith("EXPRESSION")
    assert "NUMBER: 1" in text
