"""
Logo Interpreter - tree-walking evaluator
Turns parsed statement lists into an ordered stream of turtle instructions.
Interpreter state (globals, local scope stack, procedure table) persists
across programs run through the same Interpreter instance.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple
from contextlib import contextmanager
from dataclasses import dataclass

from parsing import (
  ArithmeticExpression,
  LogoParser,
  Number,
  OperatorNode,
  ProcedureCall,
  ProcedureDeclaration,
  Repeat,
  Statement,
  Variable,
  VariableDeclaration,
  create_parser,
)
from stdlib import ARITHMETIC_OPERATORS, Command, lookup_command
from error_handling import LogoRuntimeError
from utilities import (
  call_depth_error,
  internal_error,
  is_integer_value,
  procedure_not_found_error,
  redeclared_procedure_error,
  type_mismatch_error,
  validate_arg_count,
  variable_not_found_error,
)


DEFAULT_MAX_CALL_DEPTH = 100


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True)
class Instruction:
  """One resolved command with its evaluated arguments"""
  command: Command
  args: Tuple[int, ...] = ()

  def __str__(self) -> str:
    return " ".join([self.command.name] + [str(arg) for arg in self.args])


@dataclass(frozen=True)
class Procedure:
  """A user-defined procedure; the body tuple is shared, never copied"""
  name: str
  params: Tuple[str, ...]
  body: Tuple[Statement, ...]


def make_interpreter_state() -> Dict:
  """Create empty interpreter state"""
  return {
      'globals': {},
      'locals': [],
      'procedures': {}
  }


def make_execution_context(max_call_depth: int = DEFAULT_MAX_CALL_DEPTH, debug: bool = False) -> Dict:
  """Create an execution context holding evaluation limits and flags"""
  return {
      'max_call_depth': max_call_depth,
      'debug': debug
  }


# ============================================================================
# SCOPE OPERATIONS
# ============================================================================

@contextmanager
def local_scope(state: Dict, bindings: Dict[str, int]):
  """Push a scope frame for the duration of a procedure call"""
  state['locals'].append(bindings)
  try:
    yield bindings
  finally:
    state['locals'].pop()


def bind_variable(state: Dict, name: str, value: int) -> None:
  """Bind in the innermost local scope, or globally outside any call"""
  if state['locals']:
    state['locals'][-1][name] = value
  else:
    state['globals'][name] = value


def lookup_variable(state: Dict, name: str) -> int:
  """Look a variable up innermost scope first, then globally"""
  for frame in reversed(state['locals']):
    if name in frame:
      return check_integer(name, frame[name])

  if name in state['globals']:
    return check_integer(name, state['globals'][name])

  raise variable_not_found_error(name)


def check_integer(name: str, value: Any) -> int:
  if not is_integer_value(value):
    raise type_mismatch_error(name, "Number", value)
  return value


# ============================================================================
# EXPRESSION EVALUATION
# ============================================================================

def eval_expression(expr: Any, state: Dict) -> int:
  """Evaluate an expression to an integer; never mutates state"""
  if isinstance(expr, Number):
    return expr.value
  if isinstance(expr, Variable):
    return lookup_variable(state, expr.name)
  if isinstance(expr, ArithmeticExpression):
    return eval_postfix(expr.postfix, state)
  raise internal_error(f"Encountered unexpected expression {expr!r}")


def eval_postfix(postfix: Sequence[Any], state: Dict) -> int:
  """Evaluate a postfix sequence with an operand stack"""
  stack: List[int] = []
  for item in postfix:
    if isinstance(item, OperatorNode):
      if len(stack) < 2:
        raise internal_error(f"Operator '{item.symbol}' is missing operands")
      right = stack.pop()
      left = stack.pop()
      stack.append(ARITHMETIC_OPERATORS[item.symbol](left, right))
    elif isinstance(item, (Number, Variable)):
      stack.append(eval_expression(item, state))
    else:
      raise internal_error(
        "reverse polish notation should only contain numbers, variables and operators"
      )

  if len(stack) != 1:
    raise internal_error(f"Malformed postfix expression leaves {len(stack)} values")
  return stack[0]


# ============================================================================
# STATEMENT EVALUATION
# ============================================================================

def eval_statements(statements: Sequence[Statement], state: Dict,
                    instructions: List[Instruction], context: Dict) -> None:
  """Evaluate statements in order, stopping at the first failure"""
  for stmt in statements:
    eval_statement(stmt, state, instructions, context)


def eval_statement(stmt: Statement, state: Dict, instructions: List[Instruction], context: Dict) -> None:
  if context['debug']:
    print(f"Evaluating: {type(stmt).__name__}")

  evaluator = STATEMENT_EVALUATORS.get(type(stmt))
  if evaluator is None:
    raise internal_error(f"Unknown statement type: {type(stmt).__name__}")
  evaluator(stmt, state, instructions, context)


def eval_procedure_declaration(stmt: ProcedureDeclaration, state: Dict,
                               instructions: List[Instruction], context: Dict) -> None:
  if stmt.name in state['procedures']:
    raise redeclared_procedure_error(stmt.name)

  state['procedures'][stmt.name] = Procedure(stmt.name, stmt.params, stmt.body)
  if context['debug']:
    print(f"Defined procedure: {stmt.name} ({len(stmt.params)} params)")


def eval_procedure_call(stmt: ProcedureCall, state: Dict,
                        instructions: List[Instruction], context: Dict) -> None:
  """Two-tier name resolution: built-in commands first, then procedures"""
  command = lookup_command(stmt.name)
  if command is not None:
    eval_command(command, stmt, state, instructions)
    return

  procedure = state['procedures'].get(stmt.name)
  if procedure is None:
    raise procedure_not_found_error(stmt.name)

  validate_arg_count(stmt.name, stmt.args, len(procedure.params))

  # arguments see the caller's scope
  values = [eval_expression(arg, state) for arg in stmt.args]

  max_depth = context['max_call_depth']
  if max_depth is not None and len(state['locals']) >= max_depth:
    raise call_depth_error(max_depth)

  if context['debug']:
    print(f"Calling {procedure.name} with {values}")

  with local_scope(state, dict(zip(procedure.params, values))):
    eval_statements(procedure.body, state, instructions, context)

  if context['debug']:
    print(f"Returned from {procedure.name}")


def eval_command(command: Command, stmt: ProcedureCall, state: Dict,
                 instructions: List[Instruction]) -> None:
  validate_arg_count(stmt.name, stmt.args, command.arity)
  values = tuple(eval_expression(arg, state) for arg in stmt.args)
  instructions.append(Instruction(command, values))


def eval_variable_declaration(stmt: VariableDeclaration, state: Dict,
                              instructions: List[Instruction], context: Dict) -> None:
  value = eval_expression(stmt.value, state)
  bind_variable(state, stmt.name, value)
  if context['debug']:
    print(f"Bound: {stmt.name} = {value}")


def eval_repeat(stmt: Repeat, state: Dict, instructions: List[Instruction], context: Dict) -> None:
  # count is evaluated once; non-positive counts run the body zero times
  count = eval_expression(stmt.count, state)
  for _ in range(count):
    eval_statements(stmt.body, state, instructions, context)


STATEMENT_EVALUATORS = {
    ProcedureDeclaration: eval_procedure_declaration,
    ProcedureCall: eval_procedure_call,
    VariableDeclaration: eval_variable_declaration,
    Repeat: eval_repeat,
}


# ============================================================================
# PROGRAM EVALUATION
# ============================================================================

def eval_program(statements: Sequence[Statement], state: Dict, context: Dict) -> List[Instruction]:
  """
  Evaluate a program and return its instructions.

  A runtime failure propagates with the instructions produced so far attached
  as ``error.instructions``; state mutated before the failure is kept.
  """
  instructions: List[Instruction] = []
  try:
    eval_statements(statements, state, instructions, context)
  except LogoRuntimeError as e:
    e.instructions = list(instructions)
    raise
  except RecursionError as e:
    # frames may not all unwind cleanly once the host stack is exhausted
    state['locals'].clear()
    error = call_depth_error(context['max_call_depth'])
    error.instructions = list(instructions)
    raise error from e
  return instructions


class Interpreter:
  """Program-fragment entry point: source text in, instructions out"""

  def __init__(self, debug: bool = False, max_call_depth: Optional[int] = DEFAULT_MAX_CALL_DEPTH,
               parser: Optional[LogoParser] = None):
    self.debug = debug
    self.parser = parser or create_parser(debug)
    self.context = make_execution_context(max_call_depth, debug)
    self.state = make_interpreter_state()

  @property
  def globals(self) -> Dict[str, int]:
    return self.state['globals']

  @property
  def procedures(self) -> Dict[str, Procedure]:
    return self.state['procedures']

  @property
  def scope_depth(self) -> int:
    return len(self.state['locals'])

  def run_program(self, source: str, filename: str = "<input>") -> List[Instruction]:
    """Lex, parse and evaluate one program fragment"""
    statements = self.parser.parse_string(source, filename)
    return self.evaluate(statements)

  def run_file(self, filepath: str) -> List[Instruction]:
    return self.evaluate(self.parser.parse_file(filepath))

  def evaluate(self, statements: Sequence[Statement]) -> List[Instruction]:
    instructions = eval_program(statements, self.state, self.context)
    if self.debug:
      print(f"Evaluation phase completed: {len(instructions)} instructions")
    return instructions

  def evaluate_expression(self, source: str) -> int:
    """Parse and evaluate a single arithmetic expression in the global scope"""
    return eval_expression(self.parser.parse_expression(source), self.state)

  def reset(self) -> None:
    """Forget all variables and procedures"""
    self.state = make_interpreter_state()


# ============================================================================
# FACTORY FUNCTIONS (for main.py)
# ============================================================================

def create_interpreter(debug: bool = False, max_call_depth: Optional[int] = DEFAULT_MAX_CALL_DEPTH) -> Interpreter:
  """Factory function returning an interpreter with its own state"""
  return Interpreter(debug=debug, max_call_depth=max_call_depth)


def create_debug_interpreter(max_call_depth: Optional[int] = DEFAULT_MAX_CALL_DEPTH) -> Interpreter:
  """Factory function returning a debug interpreter"""
  return create_interpreter(debug=True, max_call_depth=max_call_depth)
