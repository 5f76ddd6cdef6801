"""
Evaluation tests for PyMancer
Statements, expressions, conditions, and how failures are classified
"""

import pytest
from interpreter import (
  execute_program,
  create_interpreter,
  make_execution_context,
)
from error_handling import (
  ExecutionResult,
  SYNTAX_ERROR,
  NAME_ERROR,
  TYPE_ERROR,
  ATTRIBUTE_ERROR,
  RESOURCE_ERROR,
)


class TestStatements:
  """Test each supported statement form"""

  def test_if_with_string_equality(self, run):
    result = run(
      "status = 'authorized'",
      "if status == 'authorized':",
      "    print('open')",
    )
    assert result == ExecutionResult("open", True)

  def test_if_with_integer_equality(self, run):
    program = ("if mana_level == 100:", "    print('full')")
    assert run("mana_level = 100", *program) == ExecutionResult("full", True)
    assert run("mana_level = 50", *program) == ExecutionResult("", True)

  def test_append_then_print(self, run):
    result = run("items = ['a']", "items.append('b')", "print(items)")
    assert result.success
    assert result.output == "['a', 'b']"

  def test_for_runs_body_per_element(self, run):
    result = run(
      "heads = ['a', 'b', 'c']",
      "for head in heads:",
      "    print('Strike!')",
    )
    assert result == ExecutionResult("Strike!\nStrike!\nStrike!", True)

  def test_for_binds_loop_variable(self, run):
    result = run("heads = ['Alpha', 'Beta']", "for head in heads:", "    print(head)")
    assert result.output == "Alpha\nBeta"

  def test_for_over_empty_list(self, run):
    result = run("heads = []", "for head in heads:", "    print(head)", "print('done')")
    assert result == ExecutionResult("done", True)

  def test_len_then_compare(self, run):
    result = run(
      "souls = ['a', 'b', 'c']",
      "count = len(souls)",
      "if count == 3:",
      "    print('ok')",
    )
    assert result == ExecutionResult("ok", True)

  def test_assignment_overwrites(self, run):
    assert run("x = 1", "x = 'two'", "print(x)").output == "two"

  def test_lists_are_shared_by_reference(self, run):
    result = run("a = ['x']", "b = a", "b.append('y')", "print(a)")
    assert result.output == "['x', 'y']"

  def test_body_line_is_not_rerun_at_top_level(self, run):
    result = run("flag = False", "if flag:", "    print('hidden')", "print('shown')")
    assert result.output == "shown"

  def test_non_indented_line_after_header_is_skipped(self, run):
    assert run("xs = [1, 2]", "for x in xs:", "print('after')") == ExecutionResult("", True)
    assert run("flag = False", "if flag:", "print('x')") == ExecutionResult("", True)
    assert run("flag = True", "if flag:", "print('x')", "print('y')") == ExecutionResult("y", True)

  def test_body_may_append(self, run):
    result = run(
      "found = []",
      "names = ['a', 'b']",
      "for name in names:",
      "    found.append(name)",
      "print(len(found))",
    )
    assert result.output == "2"

  def test_blank_lines_and_comments(self, run):
    result = run("# a comment", "", "x = 5  # trailing", "   ", "print(x)")
    assert result == ExecutionResult("5", True)

  def test_empty_program(self, run):
    assert run("") == ExecutionResult("", True)


class TestRendering:
  """Test what print() writes"""

  @pytest.mark.parametrize("expression, expected", [
    ("'text'", "text"),
    ('"text"', "text"),
    ("42", "42"),
    ("True", "True"),
    ("False", "False"),
    ("[]", "[]"),
    ("[1, 'a', False]", "[1, 'a', False]"),
    ("[[1], ['b']]", "[[1], ['b']]"),
  ])
  def test_print_rendering(self, run, expression, expected):
    assert run(f"print({expression})").output == expected

  def test_trailing_whitespace_trimmed(self, run):
    assert run("print('a   ')", "print('')").output == "a"


class TestConditions:
  """Test and / in / == / bare boolean"""

  @pytest.mark.parametrize("left, right, expected", [
    ("True", "True", "yes"),
    ("True", "False", ""),
    ("False", "True", ""),
  ])
  def test_and(self, run, left, right, expected):
    result = run(
      f"left_orb = {left}",
      f"right_orb = {right}",
      "if left_orb and right_orb:",
      "    print('yes')",
    )
    assert result == ExecutionResult(expected, True)

  def test_and_short_circuits(self, run):
    result = run("ready = False", "if ready and missing:", "    print('no')", "print('ok')")
    assert result == ExecutionResult("ok", True)

  def test_membership(self, run):
    program = ("if 'Moonlight' in ingredients:", "    print('sparkles')")
    assert run("ingredients = ['Sage', 'Moonlight']", *program).output == "sparkles"
    assert run("ingredients = ['Sage']", *program).output == ""

  def test_membership_uses_value_equality(self, run):
    assert run("xs = [1, 2]", "if 2 in xs:", "    print('in')").output == "in"
    assert run("xs = ['2']", "if 2 in xs:", "    print('in')").output == ""

  def test_equality_does_not_coerce(self, run):
    assert run("x = '100'", "if x == 100:", "    print('eq')").output == ""
    assert run("x = True", "if x == 1:", "    print('eq')").output == ""

  def test_list_equality_is_identity(self, run):
    assert run("a = [1]", "b = [1]", "if a == b:", "    print('eq')").output == ""
    assert run("a = [1]", "b = a", "if a == b:", "    print('eq')").output == "eq"

  def test_bare_boolean_literal(self, run):
    assert run("if True:", "    print('t')").output == "t"


class TestFailures:
  """Test error classification and partial output"""

  def test_placeholder_fails_closed(self, run):
    result = run("status = ???", "if status == 'authorized':", "    print('open')")
    assert not result.success
    assert result.error.kind == SYNTAX_ERROR
    assert result.error.line == 1

  def test_placeholder_keeps_earlier_output(self, run):
    result = run("print('a')", "x = ???")
    assert result == ExecutionResult("a", False, result.error)
    assert result.error.kind == SYNTAX_ERROR
    assert result.error.line == 2

  def test_unrecognized_line_keeps_earlier_output(self, run):
    result = run("print('a')", "while x:", "    print('b')")
    assert result.output == "a"
    assert result.error.kind == SYNTAX_ERROR
    assert result.error.line == 2

  def test_runtime_error_comes_before_later_placeholder(self, run):
    result = run("print(undefined)", "x = ???")
    assert result.error.kind == NAME_ERROR
    assert result.error.line == 1

  def test_bad_body_line_fails_when_header_is_reached(self, run):
    result = run("print('start')", "for x in xs:", "    ???('Strike!')")
    assert result.output == "start"
    assert result.error.kind == SYNTAX_ERROR
    assert result.error.line == 3

  def test_placeholder_in_body_line(self, run):
    result = run("heads = ['a']", "for head in heads:", "    ???('Strike!')")
    assert result.error.kind == SYNTAX_ERROR
    assert result.error.line == 3

  def test_unrecognized_line(self, run):
    result = run("heads = ['a']", "while head in heads:", "    print('Strike!')")
    assert result.error.kind == SYNTAX_ERROR
    assert result.error.line == 2

  @pytest.mark.parametrize("lines", [
    ("print(ghost)",),
    ("x = ghost",),
    ("x = [1, ghost]",),
    ("if ghost == 1:", "    print('x')"),
    ("if 1 in ghost:", "    print('x')"),
    ("if ghost:", "    print('x')"),
    ("for g in ghost:", "    print(g)"),
    ("ghost.append(1)",),
    ("x = len(ghost)",),
    ("items = []", "items.append(ghost)"),
  ])
  def test_undefined_names(self, run, lines):
    result = run(*lines)
    assert result.error.kind == NAME_ERROR
    assert "'ghost'" in result.error.message

  def test_unknown_function_is_name_error(self, run):
    result = run("souls = ['a']", "count = size(souls)")
    assert result.error.kind == NAME_ERROR
    assert result.error.line == 2

  def test_calling_a_variable_is_type_error(self, run):
    result = run("souls = ['a']", "count = souls(souls)")
    assert result.error.kind == TYPE_ERROR

  def test_append_on_non_list(self, run):
    result = run("name = 'merlin'", "name.append('x')")
    assert result.error.kind == ATTRIBUTE_ERROR
    assert result.error.message == "'str' object has no attribute 'append'"

  def test_unsupported_method(self, run):
    result = run("items = []", "items.push('x')")
    assert result.error.kind == ATTRIBUTE_ERROR
    assert result.error.message == "'list' object has no attribute 'push'"

  def test_append_without_argument(self, run):
    result = run("items = []", "items.append()")
    assert result.error.kind == TYPE_ERROR

  def test_for_over_non_list(self, run):
    result = run("y = 5", "for x in y:", "    print(x)")
    assert result.error.kind == TYPE_ERROR
    assert result.error.message == "'int' object is not iterable"
    assert result.error.line == 2

  def test_len_of_non_list(self, run):
    result = run("y = 'abc'", "n = len(y)")
    assert result.error.kind == TYPE_ERROR

  def test_membership_in_non_list(self, run):
    result = run("y = 'abc'", "if 'a' in y:", "    print('x')")
    assert result.error.kind == TYPE_ERROR

  def test_bare_condition_must_be_boolean(self, run):
    result = run("left_orb = 'True'", "if left_orb:", "    print('x')")
    assert result.error.kind == TYPE_ERROR

  def test_partial_output_is_kept(self, run):
    result = run("print('one')", "print('two')", "print(ghost)", "print('three')")
    assert not result.success
    assert result.output == "one\ntwo"
    assert result.error.line == 3

  def test_error_inside_loop_body_reports_body_line(self, run):
    result = run("xs = [1, 2]", "for x in xs:", "    print(ghost)")
    assert result.error.kind == NAME_ERROR
    assert result.error.line == 3

  def test_output_before_loop_failure(self, run):
    result = run(
      "xs = ['a', 5]",
      "found = []",
      "for x in xs:",
      "    print(len(xs))",
      "print(len(x))",
    )
    assert result.output == "2\n2"
    assert result.error.kind == TYPE_ERROR
    assert result.error.line == 5

  def test_error_string_form(self, run):
    result = run("print(ghost)")
    assert str(result.error) == "NameError: name 'ghost' is not defined (line 1)"


class TestResourceLimits:
  """Test the step ceiling"""

  def test_self_extending_loop_is_stopped(self):
    interpreter = create_interpreter(max_steps=50)
    result = interpreter.execute("\n".join([
      "xs = [1]",
      "print('start')",
      "for x in xs:",
      "    xs.append(x)",
    ]))
    assert not result.success
    assert result.error.kind == RESOURCE_ERROR
    assert result.output == "start"

  def test_ceiling_counts_loop_iterations(self):
    program = "xs = [1, 2, 3]\nfor x in xs:\n    print(x)"
    # 1 assignment + 1 header + 3 body runs
    assert execute_program(program, make_execution_context(max_steps=5)).success
    failed = execute_program(program, make_execution_context(max_steps=4))
    assert failed.error.kind == RESOURCE_ERROR
    assert failed.output == "1\n2"

  def test_invalid_ceiling(self):
    with pytest.raises(ValueError):
      make_execution_context(max_steps=0)


class TestIsolation:
  """Test that runs never share state"""

  def test_idempotent(self, interpreter):
    program = "items = ['a']\nitems.append('b')\nprint(items)"
    assert interpreter.execute(program) == interpreter.execute(program)

  def test_scope_not_retained(self, interpreter):
    interpreter.execute("secret = 'x'")
    result = interpreter.execute("print(secret)")
    assert result.error.kind == NAME_ERROR

  def test_literal_lists_are_fresh_per_run(self, interpreter):
    program = "items = []\nitems.append(1)\nprint(items)"
    assert interpreter.execute(program).output == "[1]"
    assert interpreter.execute(program).output == "[1]"

  def test_custom_placeholder_context(self):
    context = make_execution_context(placeholder="___")
    assert execute_program("x = '???'\nprint(x)", context).output == "???"
    assert execute_program("x = ___", context).error.kind == SYNTAX_ERROR
