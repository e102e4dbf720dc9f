"""
Headless turtle renderer
Executes interpreter instructions against an in-memory turtle and canvas.
Runs as a pykka actor so the shell hands over instruction batches as messages.
"""

from typing import Callable, Dict, List, Optional, Sequence, TextIO, Tuple
from dataclasses import dataclass, field, replace
import math
import sys

import pykka

from interpreter import Instruction


Point = Tuple[float, float]
Color = Tuple[int, int, int]

EXIT_REQUESTED = "exit"


# ============================================================================
# TURTLE STATE
# ============================================================================

@dataclass(frozen=True)
class Segment:
  """A line drawn while the pen was down"""
  start: Point
  end: Point
  color: Color
  size: int


@dataclass
class TurtleState:
  """Pose, pen and canvas; heading is in degrees, 0 is north, clockwise"""
  x: float = 0.0
  y: float = 0.0
  heading: float = 0.0
  pen_down: bool = True
  pen_size: int = 1
  pen_color: Color = (0, 0, 0)
  screen_color: Color = (255, 255, 255)
  fill_color: Color = (0, 0, 0)
  visible: bool = True
  segments: List[Segment] = field(default_factory=list)
  fills: List[Tuple[Point, Color]] = field(default_factory=list)

  @property
  def position(self) -> Point:
    return (self.x, self.y)

  def copy(self) -> 'TurtleState':
    return replace(self, segments=list(self.segments), fills=list(self.fills))


def _clean_coordinate(value: float) -> float:
  # sin/cos leave tiny residues like 6.1e-15 on axis-aligned moves
  value = round(value, 9)
  return 0.0 if value == 0 else value


def move_to(turtle: TurtleState, x: float, y: float) -> None:
  """Move the turtle, drawing a segment when the pen is down"""
  x, y = _clean_coordinate(x), _clean_coordinate(y)
  if turtle.pen_down:
    turtle.segments.append(Segment(turtle.position, (x, y), turtle.pen_color, turtle.pen_size))
  turtle.x, turtle.y = x, y


def move_forward(turtle: TurtleState, distance: float) -> None:
  rad = math.radians(turtle.heading)
  move_to(turtle, turtle.x + distance * math.sin(rad), turtle.y + distance * math.cos(rad))


def turn(turtle: TurtleState, degrees: float) -> None:
  turtle.heading = (turtle.heading + degrees) % 360


# ============================================================================
# COMMAND HANDLERS
# ============================================================================

def _forward(turtle: TurtleState, args: Sequence[int]) -> None:
  move_forward(turtle, args[0])


def _backward(turtle: TurtleState, args: Sequence[int]) -> None:
  move_forward(turtle, -args[0])


def _left(turtle: TurtleState, args: Sequence[int]) -> None:
  turn(turtle, -args[0])


def _right(turtle: TurtleState, args: Sequence[int]) -> None:
  turn(turtle, args[0])


def _set_heading(turtle: TurtleState, args: Sequence[int]) -> None:
  turtle.heading = args[0] % 360


def _set_xy(turtle: TurtleState, args: Sequence[int]) -> None:
  move_to(turtle, args[0], args[1])


def _home(turtle: TurtleState, args: Sequence[int]) -> None:
  move_to(turtle, 0, 0)
  turtle.heading = 0.0


def _pen_up(turtle: TurtleState, args: Sequence[int]) -> None:
  turtle.pen_down = False


def _pen_down(turtle: TurtleState, args: Sequence[int]) -> None:
  turtle.pen_down = True


def _set_pen_size(turtle: TurtleState, args: Sequence[int]) -> None:
  turtle.pen_size = args[0]


def _set_pen_color(turtle: TurtleState, args: Sequence[int]) -> None:
  turtle.pen_color = (args[0], args[1], args[2])


def _hide_turtle(turtle: TurtleState, args: Sequence[int]) -> None:
  turtle.visible = False


def _show_turtle(turtle: TurtleState, args: Sequence[int]) -> None:
  turtle.visible = True


def _clean(turtle: TurtleState, args: Sequence[int]) -> None:
  turtle.segments.clear()
  turtle.fills.clear()


def _clear_screen(turtle: TurtleState, args: Sequence[int]) -> None:
  _clean(turtle, args)
  turtle.x, turtle.y, turtle.heading = 0.0, 0.0, 0.0


def _set_screen_color(turtle: TurtleState, args: Sequence[int]) -> None:
  turtle.screen_color = (args[0], args[1], args[2])


def _fill(turtle: TurtleState, args: Sequence[int]) -> None:
  turtle.fills.append((turtle.position, turtle.fill_color))


def _set_fill_color(turtle: TurtleState, args: Sequence[int]) -> None:
  turtle.fill_color = (args[0], args[1], args[2])


def _show(turtle: TurtleState, args: Sequence[int]) -> str:
  return str(args[0])


def _exit(turtle: TurtleState, args: Sequence[int]) -> str:
  return EXIT_REQUESTED


# Keyed by canonical command tag; an unknown tag is an evaluator defect
COMMAND_HANDLERS: Dict[str, Callable[[TurtleState, Sequence[int]], Optional[str]]] = {
    'forward': _forward,
    'backward': _backward,
    'left': _left,
    'right': _right,
    'setheading': _set_heading,
    'setxy': _set_xy,
    'home': _home,
    'penup': _pen_up,
    'pendown': _pen_down,
    'setpensize': _set_pen_size,
    'setpencolor': _set_pen_color,
    'hideturtle': _hide_turtle,
    'showturtle': _show_turtle,
    'clearscreen': _clear_screen,
    'clean': _clean,
    'setscreencolor': _set_screen_color,
    'fill': _fill,
    'setfillcolor': _set_fill_color,
    'show': _show,
    'exit': _exit,
}

# Commands with an effect outside the canvas
CONSOLE_COMMANDS = {'show', 'exit'}


def apply_instruction(turtle: TurtleState, instruction: Instruction) -> Optional[str]:
  """
  Apply one instruction to the turtle.

  Returns the console line for 'show', EXIT_REQUESTED for 'exit',
  otherwise None.
  """
  handler = COMMAND_HANDLERS[instruction.command.name]
  return handler(turtle, instruction.args)


def make_batch_result(output: List[str], executed: int, exit_requested: bool) -> Dict:
  """Create the reply for one executed instruction batch"""
  return {
      'output': output,
      'executed': executed,
      'exit_requested': exit_requested
  }


# ============================================================================
# ACTOR (Using Pykka)
# ============================================================================

class TurtleActor(pykka.ThreadingActor):
  """Actor owning one turtle; executes instruction batches in order"""

  def __init__(self, output: Optional[TextIO] = None, draw: bool = True):
    super().__init__()
    self.turtle = TurtleState()
    self.output = output
    self.draw = draw

  def execute(self, instructions: Sequence[Instruction]) -> Dict:
    """Run a batch, stopping at an exit instruction"""
    output: List[str] = []
    executed = 0
    for instruction in instructions:
      if not self.draw and instruction.command.name not in CONSOLE_COMMANDS:
        executed += 1
        continue

      result = apply_instruction(self.turtle, instruction)
      executed += 1
      if result == EXIT_REQUESTED:
        return make_batch_result(output, executed, True)
      if result is not None:
        output.append(result)
        self._write(result)

    return make_batch_result(output, executed, False)

  def snapshot(self) -> TurtleState:
    """Copy of the turtle safe to hand to another thread"""
    return self.turtle.copy()

  def reset(self) -> None:
    self.turtle = TurtleState()

  def _write(self, line: str) -> None:
    stream = self.output or sys.stdout
    stream.write(line + "\n")
    stream.flush()


def start_renderer(output: Optional[TextIO] = None, draw: bool = True) -> pykka.ActorRef:
  """Start a turtle actor and return its reference"""
  return TurtleActor.start(output=output, draw=draw)
