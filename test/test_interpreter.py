"""
Evaluator tests for the Logo interpreter
Instruction streams, scoping, procedures and runtime failures
"""

import pytest
from interpreter import (
  Instruction, create_interpreter, create_debug_interpreter, DEFAULT_MAX_CALL_DEPTH
)
from stdlib import ALL_COMMANDS, FORWARD, lookup_command
from error_handling import (
  LogoRuntimeError, LogoParseError, RUNTIME_ARG_COUNT_MISMATCH, RUNTIME_CALL_DEPTH_EXCEEDED,
  RUNTIME_DIVISION_BY_ZERO, RUNTIME_PROCEDURE_NOT_FOUND, RUNTIME_REDECLARED_PROCEDURE,
  RUNTIME_TYPE_MISMATCH, RUNTIME_VARIABLE_NOT_FOUND
)


def runtime_error(interpreter, source):
  with pytest.raises(LogoRuntimeError) as exc_info:
    interpreter.run_program(source)
  return exc_info.value


class TestInstructionStream:
  """Commands become instructions in execution order"""

  def test_single_command(self, interpreter):
    assert interpreter.run_program("forward 10") == [Instruction(FORWARD, (10,))]

  def test_repeat(self, run):
    assert run("repeat 3 [ forward 10 ]") == ["forward 10"] * 3

  def test_variable_across_fragments(self, interpreter, run):
    assert run('make "x 5') == []
    assert run("forward :x") == ["forward 5"]
    assert interpreter.globals == {"x": 5}

  def test_aliases_emit_canonical_tags(self, run):
    assert run("fd 1 bk 2 lt 3 rt 4 seth 5 pu pd ht st cs") == [
      "forward 1", "backward 2", "left 3", "right 4", "setheading 5",
      "penup", "pendown", "hideturtle", "showturtle", "clearscreen",
    ]

  def test_multi_argument_commands(self, run):
    assert run("setxy 10 -20 setpc 255 0 0 setsc 1 2 3 setfc 4 5 6") == [
      "setxy 10 -20", "setpencolor 255 0 0", "setscreencolor 1 2 3", "setfillcolor 4 5 6",
    ]

  def test_zero_arity_commands(self, run):
    assert run("home clean fill exit") == ["home", "clean", "fill", "exit"]

  def test_show(self, run):
    assert run("show 3 + 4") == ["show 7"]

  def test_arguments_are_evaluated(self, run):
    assert run('make "s 10 setxy :s * 2 (:s + 5) / 3') == ["setxy 20 5"]

  def test_empty_program(self, run):
    assert run("") == []

  def test_declarations_emit_nothing(self, run):
    assert run('make "a 1 to nothing end') == []

  def test_run_file(self, interpreter, tmp_path):
    path = tmp_path / "tri.logo"
    path.write_text("to tri :s\n  repeat 3 [ fd :s rt 120 ]\nend\ntri 30\n", encoding="utf-8")
    instructions = interpreter.run_file(str(path))
    assert [str(i) for i in instructions] == ["forward 30", "right 120"] * 3
    assert "tri" in interpreter.procedures


class TestRepeat:
  """Repeat counts are evaluated once"""

  def test_zero_count(self, run):
    assert run("repeat 0 [ fd 1 ]") == []

  def test_negative_count(self, run):
    assert run("repeat -2 [ fd 1 ]") == []

  def test_arithmetic_count(self, run):
    assert run("repeat 2 + 1 [ fd 1 ]") == ["forward 1"] * 3

  def test_count_evaluated_once(self, run):
    assert run('make "n 2 repeat :n [ make "n :n + 1 fd :n ]') == ["forward 3", "forward 4"]

  def test_nested(self, run):
    assert run("repeat 2 [ repeat 2 [ fd 1 ] rt 90 ]") == [
      "forward 1", "forward 1", "right 90", "forward 1", "forward 1", "right 90",
    ]


def truncated_quotient(dividend, divisor):
  quotient = abs(dividend) // abs(divisor)
  return quotient if (dividend < 0) == (divisor < 0) else -quotient


class TestArithmetic:
  """Integer arithmetic with truncating division"""

  @pytest.mark.parametrize("source, expected", [
    ("1 + 2 * 3", 1 + 2 * 3),
    ("1 * 2 + 3", 1 * 2 + 3),
    ("2 * 3 + 4 * 5", 2 * 3 + 4 * 5),
    ("20 - 6 / 3 * 2", 20 - truncated_quotient(6, 3) * 2),
    ("20 / 6 - 3 * 2", truncated_quotient(20, 6) - 3 * 2),
    ("100 - 50 - 25 + 5", 100 - 50 - 25 + 5),
    ("2 * (3 + 4) * 5", 2 * (3 + 4) * 5),
    ("(1 + 2) * (3 + 4)", (1 + 2) * (3 + 4)),
    ("(8 - (3 - 1)) * 2", (8 - (3 - 1)) * 2),
    ("((2 + 3) * (4 - 9)) / 3", truncated_quotient((2 + 3) * (4 - 9), 3)),
    ("17 / (2 + 3) * 4 - 1", truncated_quotient(17, 2 + 3) * 4 - 1),
    ("1 - 2 * 3 / 4 + 5", 1 - truncated_quotient(2 * 3, 4) + 5),
    ("-9 / 4 + -3 * 2", truncated_quotient(-9, 4) + -3 * 2),
    ("(7 - 10) / 2 * (1 - 4)", truncated_quotient(7 - 10, 2) * (1 - 4)),
    ("1000 / 7 / 3 - 2 * (5 - 15)", truncated_quotient(truncated_quotient(1000, 7), 3) - 2 * (5 - 15)),
  ])
  def test_postfix_matches_conventional_evaluation(self, interpreter, source, expected):
    assert interpreter.evaluate_expression(source) == expected

  def test_precedence(self, interpreter):
    assert interpreter.evaluate_expression("10 + 7 * 8 - 2") == 64

  def test_parentheses(self, interpreter):
    assert interpreter.evaluate_expression("(10 + 7) * 8") == 136

  def test_left_to_right(self, interpreter):
    assert interpreter.evaluate_expression("100 / 10 / 5") == 2
    assert interpreter.evaluate_expression("10 - 3 - 2") == 5

  def test_truncating_division(self, interpreter):
    assert interpreter.evaluate_expression("7 / 2") == 3
    assert interpreter.evaluate_expression("-7 / 2") == -3
    assert interpreter.evaluate_expression("7 / -2") == -3
    assert interpreter.evaluate_expression("-7 / -2") == 3

  def test_variables(self, interpreter):
    interpreter.run_program('make "x 6')
    assert interpreter.evaluate_expression(":x * :x - 1") == 35

  def test_division_by_zero(self, interpreter):
    error = runtime_error(interpreter, "fd 1 show 7 / (3 - 3)")
    assert error.kind == RUNTIME_DIVISION_BY_ZERO
    assert error.message == "Cannot divide 7 by zero"
    assert [str(i) for i in error.instructions] == ["forward 1"]

  def test_expressions_do_not_mutate_state(self, interpreter):
    interpreter.run_program('make "x 1')
    interpreter.evaluate_expression(":x + 1")
    assert interpreter.globals == {"x": 1}


class TestProcedures:
  """Declaration, invocation and parameter binding"""

  def test_square(self, interpreter, run):
    run("to sq :s forward :s right 90 forward :s right 90 end")
    assert run("sq 10") == ["forward 10", "right 90", "forward 10", "right 90"]
    assert interpreter.scope_depth == 0

  def test_procedure_persists(self, interpreter, run):
    run("to dash fd 5 pu fd 5 pd end")
    assert "dash" in interpreter.procedures
    assert run("dash dash") == ["forward 5", "penup", "forward 5", "pendown"] * 2

  def test_redeclaration(self, interpreter):
    interpreter.run_program("to a fd 1 end")
    error = runtime_error(interpreter, "to a fd 2 end")
    assert error.kind == RUNTIME_REDECLARED_PROCEDURE
    assert error.name == "a"

  def test_redeclaration_in_same_fragment(self, interpreter):
    assert runtime_error(interpreter, "to a end to a end").kind == RUNTIME_REDECLARED_PROCEDURE

  def test_procedure_not_found(self, interpreter):
    error = runtime_error(interpreter, "fd 1 nosuchthing 5")
    assert error.kind == RUNTIME_PROCEDURE_NOT_FOUND
    assert error.name == "nosuchthing"
    assert [str(i) for i in error.instructions] == ["forward 1"]

  def test_commands_resolve_before_procedures(self, run):
    run("to forward :x right :x end")
    assert run("forward 5") == ["forward 5"]

  def test_procedure_arg_count(self, interpreter):
    interpreter.run_program("to two :a :b fd :a fd :b end")
    error = runtime_error(interpreter, "two 1")
    assert error.kind == RUNTIME_ARG_COUNT_MISMATCH
    assert (error.expected, error.got) == (2, 1)
    assert error.instructions == []

  def test_arguments_see_caller_scope(self, run):
    run("to inner :a fd :a end")
    run("to outer :a inner :a + 1 end")
    assert run("outer 5") == ["forward 6"]

  def test_declaration_inside_body(self, interpreter, run):
    run("to maker to made fd 1 end end")
    assert "made" not in interpreter.procedures
    run("maker")
    assert run("made") == ["forward 1"]

  def test_recursion_unrolls(self, run):
    run("to down :n repeat :n [ fd :n down :n - 1 ] end")
    assert run("down 2") == ["forward 2", "forward 1", "forward 2", "forward 1"]

  def test_mutual_recursion(self, run):
    run("to ping :n repeat :n [ fd 1 pong :n - 1 ] end")
    run("to pong :n repeat :n [ rt 1 ping :n - 1 ] end")
    assert run("ping 2") == ["forward 1", "right 1", "forward 1", "right 1"]


class TestScoping:
  """Local frames are pushed per call and searched innermost first"""

  def test_local_is_invisible_after_return(self, interpreter):
    interpreter.run_program('to setlocal make "tmp 3 fd :tmp end')
    assert interpreter.run_program("setlocal") == [Instruction(FORWARD, (3,))]
    assert "tmp" not in interpreter.globals
    error = runtime_error(interpreter, "fd :tmp")
    assert error.kind == RUNTIME_VARIABLE_NOT_FOUND

  def test_shadowing_leaves_global_unchanged(self, interpreter, run):
    run('make "x 1')
    run('to shadow :x make "x 99 fd :x end')
    assert run("shadow 5") == ["forward 99"]
    assert interpreter.globals["x"] == 1
    assert run("fd :x") == ["forward 1"]

  def test_parameter_shadows_global(self, run):
    run('make "n 100')
    run("to f :n fd :n end")
    assert run("f 7 fd :n") == ["forward 7", "forward 100"]

  def test_innermost_frame_wins(self, run):
    run("to show_n fd :n end")
    run("to inner :n show_n end")
    run("to outer :n inner :n + 1 end")
    assert run("outer 1") == ["forward 2"]

  def test_outer_frames_are_visible(self, run):
    run("to leaf fd :depth end")
    run("to root :depth leaf end")
    assert run("root 4") == ["forward 4"]

  def test_frame_popped_after_failure(self, interpreter):
    interpreter.run_program("to broken :a fd :missing end")
    runtime_error(interpreter, "broken 1")
    assert interpreter.scope_depth == 0

  def test_global_make_overwrites(self, interpreter, run):
    run('make "x 1 make "x 2')
    assert interpreter.globals["x"] == 2

  def test_variable_not_found(self, interpreter):
    error = runtime_error(interpreter, "fd :nope")
    assert error.kind == RUNTIME_VARIABLE_NOT_FOUND
    assert str(error) == "Runtime error: Variable 'nope' not found"

  def test_type_mismatch(self, interpreter):
    interpreter.globals["w"] = "word"
    error = runtime_error(interpreter, "fd :w")
    assert error.kind == RUNTIME_TYPE_MISMATCH


class TestArityInvariant:
  """Wrong argument counts never produce an instruction"""

  @pytest.mark.parametrize("command", ALL_COMMANDS, ids=lambda c: c.name)
  def test_every_command_rejects_extra_argument(self, interpreter, command):
    args = " ".join(["1"] * (command.arity + 1))
    error = runtime_error(interpreter, f"{command.name} {args}")
    assert error.kind == RUNTIME_ARG_COUNT_MISMATCH
    assert error.expected == command.arity
    assert error.got == command.arity + 1
    assert error.instructions == []

  @pytest.mark.parametrize("source", ["fd", "setxy 1", "setpc 1 2"])
  def test_missing_arguments(self, interpreter, source):
    error = runtime_error(interpreter, source)
    assert error.kind == RUNTIME_ARG_COUNT_MISMATCH
    assert error.instructions == []

  def test_greedy_arguments_break_following_call(self, interpreter):
    """home takes no arguments, so the 5 meant for nothing is an error"""
    error = runtime_error(interpreter, "fd 10 home 5")
    assert error.message == "home requires 0 arguments, got 1"
    assert [str(i) for i in error.instructions] == ["forward 10"]

  def test_aliases_share_arity(self):
    assert lookup_command("fd") is lookup_command("forward")
    assert lookup_command("setpc").arity == 3
    assert lookup_command("square") is None


class TestFailureState:
  """Earlier effects of a failing fragment persist"""

  def test_partial_effects_kept(self, interpreter):
    error = runtime_error(interpreter, 'make "x 1 fd :x nope make "y 2')
    assert interpreter.globals == {"x": 1}
    assert [str(i) for i in error.instructions] == ["forward 1"]

  def test_parse_failure_changes_nothing(self, interpreter):
    with pytest.raises(LogoParseError):
      interpreter.run_program('make "x 1 fd (')
    assert interpreter.globals == {}

  def test_deeply_nested_program(self, interpreter):
    deep = "repeat 1 [ " * 400 + "fd 1 " + "] " * 400
    with pytest.raises(LogoParseError):
      interpreter.run_program(deep)
    assert interpreter.run_program("repeat 1 [ " * 20 + "fd 1 " + "] " * 20) == [Instruction(FORWARD, (1,))]

  def test_reset(self, interpreter):
    interpreter.run_program('make "x 1 to p end')
    interpreter.reset()
    assert interpreter.globals == {}
    assert interpreter.procedures == {}

  def test_interpreters_are_independent(self):
    first = create_interpreter()
    second = create_interpreter()
    first.run_program('make "x 1')
    assert second.globals == {}


class TestCallDepth:
  """Runaway recursion fails instead of crashing"""

  def test_default_limit(self):
    assert create_interpreter().context['max_call_depth'] == DEFAULT_MAX_CALL_DEPTH

  def test_limit_exceeded(self):
    interpreter = create_interpreter(max_call_depth=10)
    interpreter.run_program("to loop :n fd :n loop :n + 1 end")
    error = runtime_error(interpreter, "loop 0")
    assert error.kind == RUNTIME_CALL_DEPTH_EXCEEDED
    assert len(error.instructions) == 10
    assert str(error.instructions[-1]) == "forward 9"
    assert interpreter.scope_depth == 0

  def test_host_recursion_limit(self):
    interpreter = create_interpreter(max_call_depth=None)
    interpreter.run_program("to forever fd 1 forever end")
    error = runtime_error(interpreter, "forever")
    assert error.kind == RUNTIME_CALL_DEPTH_EXCEEDED
    assert interpreter.scope_depth == 0
    assert interpreter.run_program("fd 2") == [Instruction(FORWARD, (2,))]


class TestDebugTrace:
  """Debug interpreters print their evaluation steps"""

  def test_trace_output(self, capsys):
    interpreter = create_debug_interpreter()
    interpreter.run_program('make "x 2 to f :a fd :a end f :x')
    out = capsys.readouterr().out
    assert "Bound: x = 2" in out
    assert "Defined procedure: f (1 params)" in out
    assert "Calling f with [2]" in out
    assert "Evaluation phase completed: 1 instructions" in out
