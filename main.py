"""
Logo Turtle Graphics - Main Entry Point
Runs Logo scripts or an interactive shell, drawing on a headless turtle
"""

import sys
import argparse
from pathlib import Path
from typing import List, Optional, Sequence
import os

# Readline support for history and auto-completion
try:
  import readline
  READLINE_AVAILABLE = True
except ImportError:
  READLINE_AVAILABLE = False

import pykka

from parsing import create_parser, create_debug_parser, pretty_print_tokens, pretty_print_ast
from interpreter import DEFAULT_MAX_CALL_DEPTH, Instruction, Interpreter, create_interpreter, create_debug_interpreter
from error_handling import LogoError, LogoLexError, LogoParseError, LogoRuntimeError
from renderer import start_renderer
from stdlib import COMMAND_TABLE


VERSION = "Logo v0.1.0 (Turtle Interpreter)"
PROMPT = ">> "
HISTORY_FILE = "~/.logo_history"


def create_arg_parser() -> argparse.ArgumentParser:
  """Create command line argument parser"""
  parser = argparse.ArgumentParser(
      prog='logo',
      description='Logo turtle graphics interpreter',
      formatter_class=argparse.RawDescriptionHelpFormatter,
      epilog="""
Examples:
  %(prog)s square.logo             # Run a Logo script
  %(prog)s -i                      # Interactive mode
  %(prog)s square.logo -i          # Run a script, then keep the shell open
  %(prog)s --tokens square.logo    # Show the token list
  %(prog)s --parse square.logo     # Show the parsed statements
  %(prog)s --debug square.logo     # Run with debug output
  %(prog)s --max-depth 500 f.logo  # Allow deeper procedure recursion
        """
  )

  parser.add_argument(
      'script',
      nargs='?',
      help='Logo script file to execute'
  )

  parser.add_argument(
      '-i', '--interactive',
      action='store_true',
      help='Start interactive mode (after running SCRIPT, if given)'
  )

  parser.add_argument(
      '--tokens',
      action='store_true',
      help='Tokenize file and show the tokens (for debugging)'
  )

  parser.add_argument(
      '--parse',
      action='store_true',
      help='Parse file and show the statements (for debugging)'
  )

  parser.add_argument(
      '--debug',
      action='store_true',
      help='Enable debug output for all stages'
  )

  parser.add_argument(
      '--no-turtle',
      action='store_true',
      help='Discard drawing instructions, only print show output'
  )

  parser.add_argument(
      '--max-depth',
      type=int,
      default=DEFAULT_MAX_CALL_DEPTH,
      metavar='N',
      help=f'Maximum procedure call depth (default: {DEFAULT_MAX_CALL_DEPTH})'
  )

  parser.add_argument(
      '--version',
      action='version',
      version=VERSION
  )

  return parser


def read_script(script_path: str) -> str:
  """Read a script, exiting with a hint when the file is unusable"""
  try:
    with open(script_path, 'r', encoding='utf-8') as f:
      return f.read()
  except FileNotFoundError:
    print(f"Error: Script file '{script_path}' not found")
    print(f"  Hint: Check the file path and make sure the file exists")
    sys.exit(1)
  except PermissionError:
    print(f"Error: Permission denied reading '{script_path}'")
    print(f"  Hint: Make sure you have read permissions for this file")
    sys.exit(1)
  except UnicodeDecodeError as e:
    print(f"Error: Cannot decode file '{script_path}': {e}")
    print(f"  Hint: Make sure the file is a text file with UTF-8 encoding")
    sys.exit(1)


def tokenize_file(script_path: str, debug: bool = False) -> None:
  """Tokenize a Logo script file and show the tokens"""
  source = read_script(script_path)
  parser = create_debug_parser() if debug else create_parser()
  try:
    tokens = parser.tokenize(source, script_path)
  except LogoLexError as e:
    print(f"Lex error in '{script_path}': {e}")
    sys.exit(1)

  print(f"Tokenized {len(tokens)} tokens:")
  print("=" * 50)
  for token in tokens:
    print(f"{token.span}  {token.type:<10} {token}")


def parse_file(script_path: str, debug: bool = False) -> None:
  """Parse a Logo script file and show the statements"""
  source = read_script(script_path)
  parser = create_debug_parser() if debug else create_parser()
  try:
    statements = parser.parse_string(source, script_path)
  except (LogoLexError, LogoParseError) as e:
    print(f"Error in '{script_path}': {e}")
    sys.exit(1)

  print(f"Parsed {len(statements)} top-level statements:")
  print("=" * 50)
  print(pretty_print_ast(statements), end="")


def render(renderer: Optional[pykka.ActorRef], instructions: Sequence[Instruction]) -> None:
  """Hand instructions to the turtle; an exit instruction ends the process"""
  if renderer is None or not instructions:
    return

  result = renderer.proxy().execute(list(instructions)).get()
  if result['exit_requested']:
    pykka.ActorRegistry.stop_all()
    sys.exit(0)


def run_source(interpreter: Interpreter, renderer: Optional[pykka.ActorRef],
               source: str, filename: str = "<input>") -> bool:
  """
  Run one program fragment and render its instructions.

  Returns False when the fragment failed; the error has been printed and any
  instructions produced before a runtime failure have been rendered.
  """
  try:
    instructions = interpreter.run_program(source, filename)
  except LogoLexError as e:
    print(e)
    return False
  except LogoParseError as e:
    print(e)
    return False
  except LogoRuntimeError as e:
    render(renderer, e.instructions)
    print(e)
    return False

  render(renderer, instructions)
  return True


def run_script_file(script_path: str, interpreter: Interpreter,
                    renderer: Optional[pykka.ActorRef], debug: bool = False) -> bool:
  """Run a Logo script file as one fragment"""
  source = read_script(script_path)
  if debug:
    print(f"Running {script_path}...")

  return run_source(interpreter, renderer, source, script_path)


def setup_readline():
  """Setup readline with history and auto-completion"""
  if not READLINE_AVAILABLE:
    return

  history_file = os.path.expanduser(HISTORY_FILE)
  try:
    readline.read_history_file(history_file)
  except OSError:
    pass  # First time, no history yet, or permission denied

  readline.set_history_length(1000)

  completions = sorted(
      ["repeat", "make", "to", "end"]
      + list(COMMAND_TABLE)
      + [":tokens", ":parse", ":eval", ":env", ":reset", ":help"]
  )

  def completer(text, state):
    options = [cmd for cmd in completions if cmd.startswith(text)]
    if state < len(options):
      return options[state]
    return None

  readline.set_completer(completer)
  readline.parse_and_bind("tab: complete")

  # Save history on exit
  import atexit

  def save_history():
    try:
      readline.write_history_file(history_file)
    except OSError:
      pass

  atexit.register(save_history)


def show_env(interpreter: Interpreter) -> None:
  print("Current environment:")
  if interpreter.globals:
    for name, value in interpreter.globals.items():
      print(f"  :{name} = {value}")
  else:
    print("  (no variables)")
  for procedure in interpreter.procedures.values():
    params = " ".join(f":{p}" for p in procedure.params)
    print(f"  to {procedure.name}{' ' + params if params else ''}")


def show_help() -> None:
  print("Shell Commands:")
  print("  :tokens <code>    - Show the token list")
  print("  :parse <code>     - Show parsed statements")
  print("  :eval <expr>      - Evaluate an arithmetic expression")
  print("  :env              - Show variables and procedures")
  print("  :reset            - Forget variables and procedures")
  print("  :help             - Show this help")
  print("  exit / Ctrl-D     - Exit shell")
  print()
  print("Language features:")
  print("  forward 100 right 90         - Turtle commands")
  print("  make \"size 50                - Variable binding")
  print("  fd :size * 2                 - Arithmetic with variables")
  print("  repeat 4 [ fd 10 rt 90 ]     - Repetition")
  print("  to sq :n repeat 4 [fd :n rt 90] end   - Procedure definition")
  print("  show 3 + 4                   - Print a value")


def handle_shell_command(line: str, interpreter: Interpreter) -> None:
  """Run a ':' shell command"""
  command, _, argument = line.partition(" ")
  parser = interpreter.parser
  try:
    if command == ":tokens":
      print(pretty_print_tokens(parser.tokenize(argument)))
    elif command == ":parse":
      print(pretty_print_ast(parser.parse_string(argument)), end="")
    elif command == ":eval":
      print(f"=> {interpreter.evaluate_expression(argument)}")
    elif command == ":env":
      show_env(interpreter)
    elif command == ":reset":
      interpreter.reset()
      print("Environment cleared")
    elif command == ":help":
      show_help()
    else:
      print(f"Unknown shell command '{command}', try :help")
  except LogoError as e:
    print(e)


def run_interactive_mode(interpreter: Interpreter, renderer: Optional[pykka.ActorRef],
                         debug: bool = False) -> None:
  """Read-evaluate loop; each line is a program fragment sharing interpreter state"""
  print(f"{VERSION} - Interactive Mode")
  print("Type 'exit' or Ctrl-D to quit, ':help' for commands")
  if READLINE_AVAILABLE:
    print("Readline enabled: Use ↑/↓ for history, Tab for completion")
  if debug:
    print("Debug mode enabled")
  print()

  setup_readline()

  while True:
    try:
      line = input(PROMPT)
    except KeyboardInterrupt:
      print()
      continue
    except EOFError:
      print("\nGoodbye!")
      break

    code = line.strip()
    if not code:
      continue

    if code.startswith(":"):
      handle_shell_command(code, interpreter)
      continue

    try:
      run_source(interpreter, renderer, code)
    except KeyboardInterrupt:
      print("\nInterrupted")


def main(argv: Optional[List[str]] = None) -> None:
  """Main entry point for the Logo interpreter"""
  arg_parser = create_arg_parser()
  args = arg_parser.parse_args(argv)

  if args.script and not Path(args.script).exists():
    print(f"Error: Script file '{args.script}' does not exist")
    sys.exit(1)

  if args.script and args.tokens:
    tokenize_file(args.script, debug=args.debug)
    return
  if args.script and args.parse:
    parse_file(args.script, debug=args.debug)
    return

  if not args.script and not args.interactive and (args.tokens or args.parse):
    arg_parser.print_help()
    sys.exit(1)

  if args.debug:
    interpreter = create_debug_interpreter(max_call_depth=args.max_depth)
  else:
    interpreter = create_interpreter(max_call_depth=args.max_depth)
  renderer = start_renderer(draw=not args.no_turtle)

  try:
    ok = True
    if args.script:
      ok = run_script_file(args.script, interpreter, renderer, debug=args.debug)
      if args.debug:
        print(renderer.proxy().snapshot().get())

    if args.interactive or not args.script:
      run_interactive_mode(interpreter, renderer, debug=args.debug)
    elif not ok:
      sys.exit(1)
  finally:
    pykka.ActorRegistry.stop_all()


if __name__ == "__main__":
  main()
