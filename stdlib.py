"""
Logo Standard Library
Built-in turtle commands and the integer arithmetic operators
"""

from dataclasses import dataclass
from typing import Dict, Callable, List, Optional
import operator

from utilities import binary_arithmetic_op, truncating_div


# ============================================================================
# COMMANDS
# ============================================================================

@dataclass(frozen=True)
class Command:
  """A built-in turtle verb with a fixed number of numeric arguments"""
  name: str
  arity: int

  def __str__(self) -> str:
    return self.name


# movement
FORWARD = Command("forward", 1)
BACKWARD = Command("backward", 1)
LEFT = Command("left", 1)
RIGHT = Command("right", 1)
SET_HEADING = Command("setheading", 1)
SET_XY = Command("setxy", 2)
HOME = Command("home", 0)

# pen
PEN_UP = Command("penup", 0)
PEN_DOWN = Command("pendown", 0)
SET_PEN_SIZE = Command("setpensize", 1)
SET_PEN_COLOR = Command("setpencolor", 3)

# canvas
HIDE_TURTLE = Command("hideturtle", 0)
SHOW_TURTLE = Command("showturtle", 0)
CLEAR_SCREEN = Command("clearscreen", 0)
CLEAN = Command("clean", 0)
SET_SCREEN_COLOR = Command("setscreencolor", 3)
FILL = Command("fill", 0)
SET_FILL_COLOR = Command("setfillcolor", 3)

# other
SHOW = Command("show", 1)
EXIT = Command("exit", 0)


ALL_COMMANDS: List[Command] = [
    FORWARD, BACKWARD, LEFT, RIGHT, SET_HEADING, SET_XY, HOME,
    PEN_UP, PEN_DOWN, SET_PEN_SIZE, SET_PEN_COLOR,
    HIDE_TURTLE, SHOW_TURTLE, CLEAR_SCREEN, CLEAN, SET_SCREEN_COLOR,
    FILL, SET_FILL_COLOR,
    SHOW, EXIT,
]

COMMAND_ALIASES: Dict[str, Command] = {
    "fd": FORWARD,
    "bk": BACKWARD,
    "lt": LEFT,
    "rt": RIGHT,
    "seth": SET_HEADING,
    "pu": PEN_UP,
    "pd": PEN_DOWN,
    "setpc": SET_PEN_COLOR,
    "ht": HIDE_TURTLE,
    "st": SHOW_TURTLE,
    "cs": CLEAR_SCREEN,
    "setsc": SET_SCREEN_COLOR,
    "setfc": SET_FILL_COLOR,
}


def create_command_table() -> Dict[str, Command]:
  """Map every command spelling, canonical or abbreviated, to its command"""
  table = {command.name: command for command in ALL_COMMANDS}
  table.update(COMMAND_ALIASES)
  return table


COMMAND_TABLE = create_command_table()


def lookup_command(name: str) -> Optional[Command]:
  """Resolve a name against the built-in command table"""
  return COMMAND_TABLE.get(name)


# ============================================================================
# ARITHMETIC
# ============================================================================

logo_add = binary_arithmetic_op(operator.add, "add")
logo_sub = binary_arithmetic_op(operator.sub, "subtract")
logo_mul = binary_arithmetic_op(operator.mul, "multiply")
logo_div = binary_arithmetic_op(truncating_div, "divide")


ARITHMETIC_OPERATORS: Dict[str, Callable[[int, int], int]] = {
    '+': logo_add,
    '-': logo_sub,
    '*': logo_mul,
    '/': logo_div,
}
