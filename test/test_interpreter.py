"""
End-to-end tests: LISQ source through parser, analyzer and interpreter
"""

import pytest

from containers import Array, Box, Hash, List, Pair
from contexts import Capture
from error_handling import (
    ImmutableStructureViolation, LisqRuntimeError, LisqSemanticsError, PositionalIndexError, TypeMismatch
)
from interpreter import create_interpreter, make_execution_context
from parsing import create_parser
from semantics import create_analyzer
from stdlib import lisq_gist


def last(run, code):
  return run(code)[-1]


class TestFlattening:
  """Lists nest, Slips splice, Boxes stay whole"""

  def test_flat_stops_at_box(self, run):
    assert lisq_gist(last(run, "(1, (2, 3), $(4, 5)).flat")) == "(1 2 3 $(4 5))"

  def test_array_assignment_keeps_nesting(self, run):
    assert last(run, "@a = 1, (2, 3), $(4, 5); @a.elems") == 3

  def test_array_elements_are_not_descended(self, run):
    assert lisq_gist(last(run, "@a = 1, (2, 3); @a.flat")) == "(1 $(2 3))"

  def test_slip_and_empty(self, run):
    assert last(run, "(1, slip(2, 3), 4).elems") == 4
    assert last(run, "(1, (2, 3), 4).elems") == 3
    assert last(run, "(1, Empty, 2).elems") == 2

  def test_scalar_variable_is_itemized(self, run):
    assert last(run, "$x = (1, 2); (0, $x, 3).flat.elems") == 3
    assert last(run, "@b = 1, 2; (0, @b, 3).flat.elems") == 4

  def test_spread_splices(self, run):
    assert last(run, "@b = 1, 2; (0, |@b, 3).elems") == 4

  def test_flat_depth(self, run):
    assert lisq_gist(last(run, "flat((1, (2, (3, 4))), 1)")) == "(1 2 (3 4))"


class TestAssignment:

  def test_array_literal_single_element_is_iterated(self, run):
    assert last(run, "[1..3].elems") == 3
    assert last(run, "[1, (2, 3)].elems") == 2
    assert lisq_gist(last(run, "[1..3]")) == "[1 2 3]"

  def test_self_referential_assignment(self, run):
    run("@a = 1, 2")
    assert last(run, "@a = @a, 3; @a.elems") == 2
    assert lisq_gist(last(run, "@a")) == "[[1 2] 3]"

  def test_spread_of_self(self, run):
    assert last(run, "@b = 1, 2; @b = |@b, 3; @b.elems") == 3

  def test_lazy_assignment(self, run):
    assert last(run, "@a = 1..*; @a[2]") == 3
    assert last(run, "@m = (1..*).map(*+1); @m[0]") == 2

  def test_scalar_reassignment(self, run):
    box = last(run, "$x = 5; $x = 6; $x")
    assert isinstance(box, Box)
    assert lisq_gist(box) == "6"

  def test_hash_assignment(self, run):
    assert last(run, '%h = a => 1, "b" => 2; %h.keys.elems') == 2
    assert last(run, '%h["a"]') == 1
    assert lisq_gist(last(run, "%h[*]")) == "(1 2)"

  def test_mutators(self, run):
    assert last(run, "@a = 1; @a.push(2, 3); @a.elems") == 3
    assert last(run, "@a.pop") == 3
    assert last(run, "@a.shift") == 1
    assert lisq_gist(last(run, "@a")) == "[2]"

  def test_array_holding_itself(self, run, capsys):
    run("@a = 1, 2; push(@a, @a)")
    assert last(run, "@a.elems") == 3
    assert last(run, "gist(@a)") == "[1 2 [...]]"
    run("say(@a)")
    assert capsys.readouterr().out == "[1 2 [...]]\n"


class TestArguments:

  def test_bare_pair_is_named(self, run):
    capture = last(run, "capture(1, 2, key => 3)")
    assert isinstance(capture, Capture)
    assert lisq_gist(capture) == "\\(1, 2, :key(3))"

  def test_pair_inside_list_is_positional(self, run):
    capture = last(run, "capture((1, 2, key => 3))")
    assert capture.positional.elems() == 1
    assert capture.named == {}

  def test_parenthesized_and_quoted_pairs_are_positional(self, run):
    capture = last(run, 'capture(1, (k => 2), "j" => 3)')
    assert capture.positional.elems() == 3
    assert capture.named == {}

  def test_spread_hash_is_named(self, run):
    assert last(run, "%h = a => 1; capture(|%h)").named == {'a': 1}

  def test_colon_pair_flag(self, run):
    assert last(run, "capture(:verbose)").named == {'verbose': True}

  def test_capture_literal(self, run):
    capture = last(run, "\\(1, k => 2)")
    assert capture == Capture(List(1), {'k': 2})

  def test_method_invocant_is_positional(self, run):
    assert last(run, "$x = (1, 2, 3); $x.elems") == 3


class TestSubscripts:

  def test_index_forms(self, run):
    run("@a = 10, 20, 30")
    assert last(run, "@a[*-1]") == 30
    assert last(run, "@a[-1]") == 30
    assert lisq_gist(last(run, "@a[0, 2]")) == "(10 30)"
    assert lisq_gist(last(run, "@a[(0, 1), (1, 2)]")) == "((10 20) (20 30))"
    assert lisq_gist(last(run, "@a[*]")) == "(10 20 30)"

  def test_lazy_index(self, run):
    assert last(run, "@a = 10, 20, 30; @a[1..*].elems") == 2

  def test_infinite_target(self, run):
    assert lisq_gist(last(run, "(1..*)[0, 1, 2]")) == "(1 2 3)"

  def test_out_of_range(self, run):
    run("@a = 10, 20, 30")
    with pytest.raises(PositionalIndexError):
      run("@a[5]")

  def test_missing_key(self, run):
    run("%h = a => 1")
    with pytest.raises(LisqRuntimeError):
      run('%h["zz"]')


class TestSequences:

  def test_head_of_infinite_range(self, run):
    assert lisq_gist(last(run, "(1..*).head(3)")) == "(1 2 3)"

  def test_unproduced_lazy_seq_gist(self, run):
    assert lisq_gist(last(run, "(1..*).map(*+1)")) == "(...)"
    assert lisq_gist(last(run, "1..*")) == "1..*"

  def test_map_with_builtin_reference(self, run):
    assert lisq_gist(last(run, "((1, 2), (3, 4, 5)).map(elems).list")) == "(2 3)"

  def test_grep(self, run):
    assert lisq_gist(last(run, "(1..10).grep(*%2).list")) == "(1 3 5 7 9)"

  def test_reverse_and_exclusive_range(self, run):
    assert lisq_gist(last(run, "(1..^4).reverse")) == "(3 2 1)"

  def test_eager_infinite_range(self, run):
    with pytest.raises(LisqRuntimeError):
      run("eager((1..*))")


class TestErrors:

  def test_undeclared_variable(self, run):
    with pytest.raises(LisqSemanticsError):
      run("@nope.flat")

  def test_arity(self, run):
    with pytest.raises(LisqRuntimeError):
      run("elems(1, 2)")

  def test_unknown_named_argument(self, run):
    with pytest.raises(LisqRuntimeError, match="does not accept named"):
      run("elems((1, 2), k => 1)")

  def test_capability_checks(self, run):
    with pytest.raises(TypeMismatch):
      run("keys(5)")
    with pytest.raises(TypeMismatch):
      run("@c := 5")
    with pytest.raises(TypeMismatch):
      run("%h2 := (1, 2)")

  def test_binding_does_not_copy(self, run):
    lst = last(run, "@c := (1, 2); @c")
    assert isinstance(lst, List)
    assert not isinstance(lst, Array)

  def test_assigning_to_bound_list_fails(self, run):
    run("@c := (1, 2)")
    with pytest.raises(ImmutableStructureViolation):
      run("@c = 3")
    assert lisq_gist(last(run, "@c")) == "(1 2)"
    run("@r := 1..3")
    with pytest.raises(ImmutableStructureViolation):
      run("@r = 4, 5")

  def test_assigning_to_bound_array_stores_into_it(self, run):
    run("@a = 1, 2; @c := @a")
    run("@c = 7, 8, 9")
    assert lisq_gist(last(run, "@a")) == "[7 8 9]"

  def test_mutating_a_list(self, run):
    with pytest.raises(TypeMismatch):
      run("(1, 2).push(3)")


class TestInterpreterState:

  def test_variables_persist_between_calls(self, run):
    run("@a = 1, 2")
    assert run("@a.elems") == [2]

  def test_bindings_before_a_failing_statement_are_kept(self, run):
    with pytest.raises(PositionalIndexError):
      run("@a = 1, 2; $x = 5; @a[9]; @b = 3")
    assert last(run, "@a.elems") == 2
    assert lisq_gist(last(run, "$x")) == "5"

  def test_say(self, run, capsys):
    assert run('say((1, 2), "x")') == [None]
    assert capsys.readouterr().out == "(1 2)x\n"

  def test_variables_and_reset(self):
    parser, analyzer = create_parser(), create_analyzer()
    interpreter = create_interpreter()
    interpreter.interpret(analyzer.analyze(parser.parse_string("%h = a => 1")))
    assert isinstance(interpreter.variables()['%h'], Hash)
    interpreter.reset()
    assert interpreter.variables() == {}

  def test_debug_trace(self, capsys):
    parser, analyzer = create_parser(), create_analyzer()
    interpreter = create_interpreter(debug=True)
    interpreter.interpret(analyzer.analyze(parser.parse_string("(1, 2).elems")))
    assert "Evaluating: METHOD_CALL" in capsys.readouterr().out

  def test_execution_context_validation(self):
    assert make_execution_context(2, 3)['degree'] == 3
    with pytest.raises(ValueError):
      make_execution_context(batch=0)
    with pytest.raises(ValueError):
      create_interpreter(degree=0)


def test_gist_of_hash_holding_itself():
  h = Hash(Pair('a', 1))
  h['self'] = h
  assert lisq_gist(h) == "{a => 1, self => {...}}"
