"""
lamb Programming Language - Main Entry Point
A minimal λ-calculus scripting language with name-triggered builtins
"""

import sys
import argparse
from pathlib import Path
from typing import List, Optional
import os

# Readline support for history and auto-completion
try:
  import readline
  READLINE_AVAILABLE = True
except ImportError:
  READLINE_AVAILABLE = False

from error_handling import LambError, LambEvaluationError, LambLexError, LambSyntaxError
from interpreter import create_interpreter
from logging_config import setup_logging, get_logger
from parsing import create_parser, pretty_print_ast
from stdlib import list_capabilities, BUILTIN_CAPABILITIES
from utilities import describe_value


__version__ = "0.1.0"

logger = get_logger(__name__)

PROMPT = "lamb> "


def create_arg_parser() -> argparse.ArgumentParser:
  """Create command line argument parser"""
  parser = argparse.ArgumentParser(
      prog='lamb',
      description='lamb - a minimal λ-calculus scripting language',
      formatter_class=argparse.RawDescriptionHelpFormatter,
      epilog="""
Examples:
  %(prog)s script.lamb              # Run a lamb script
  %(prog)s -i                       # Interactive mode
  %(prog)s --tokens script.lamb     # Show the token stream
  %(prog)s --parse script.lamb      # Parse and show the AST
  %(prog)s --debug script.lamb      # Run with debug logging on stderr
        """
  )

  parser.add_argument(
      'script',
      nargs='?',
      help='lamb source file to execute'
  )

  parser.add_argument(
      '-i', '--interactive',
      action='store_true',
      help='Start interactive mode'
  )

  parser.add_argument(
      '--tokens',
      action='store_true',
      help='Tokenize file and show the tokens'
  )

  parser.add_argument(
      '--parse',
      action='store_true',
      help='Parse file and show the AST'
  )

  parser.add_argument(
      '--debug',
      action='store_true',
      help='Enable debug logging for all stages'
  )

  parser.add_argument(
      '--log-level',
      choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
      default=None,
      help='Logging level (default: $LAMB_LOG_LEVEL or WARNING)'
  )

  parser.add_argument(
      '--log-file',
      default=None,
      help='Write log records to this file instead of stderr'
  )

  parser.add_argument(
      '--version',
      action='version',
      version=f'lamb v{__version__}'
  )

  return parser


def report(label: str, error: LambError) -> None:
  print(f"{label}: {error}", file=sys.stderr)


def dump_tokens(script_path: str) -> int:
  """Tokenize a lamb file and show the token stream"""
  try:
    tokens = create_parser().tokenize_file(script_path)
  except LambLexError as e:
    report("Parsing error", e)
    return 1

  for token in tokens:
    location = token.span if token.span is not None else "-"
    print(f"{location}\t{token}")
  return 0


def dump_ast(script_path: str) -> int:
  """Parse a lamb file and show the AST"""
  try:
    program = create_parser().parse_file(script_path)
  except (LambLexError, LambSyntaxError) as e:
    report("Parsing error", e)
    return 1

  print(f"Parsed {len(program.statements)} statements:")
  print("=" * 50)
  print(pretty_print_ast(program), end="")
  return 0


def run_script_file(script_path: str) -> int:
  """Parse and evaluate a lamb file. Only builtin effects reach stdout."""
  try:
    program = create_parser().parse_file(script_path)
  except (LambLexError, LambSyntaxError) as e:
    report("Parsing error", e)
    return 1

  interpreter = create_interpreter()
  try:
    results = interpreter.evaluate_program(program)
  except LambEvaluationError as e:
    report("Interpretation error", e)
    return 1
  finally:
    sys.stdout.flush()

  for result in results:
    logger.debug("=> %s", describe_value(result))
  return 0


def setup_readline():
  """Setup readline with history and auto-completion"""
  if not READLINE_AVAILABLE:
    return

  history_file = os.path.expanduser("~/.lamb_history")
  try:
    readline.read_history_file(history_file)
  except OSError:
    pass  # No history yet

  readline.set_history_length(1000)

  completions = list_capabilities() + [":tokens", ":parse", ":env", ":help", "exit"]

  def completer(text, state):
    options = [cmd for cmd in completions if cmd.startswith(text)]
    if state < len(options):
      return options[state]
    return None

  readline.set_completer(completer)
  readline.parse_and_bind("tab: complete")

  import atexit
  atexit.register(readline.write_history_file, history_file)


def show_help() -> None:
  print("REPL Commands:")
  print("  :tokens <src>     - Show the token stream")
  print("  :parse <src>      - Show the parsed AST")
  print("  :env              - Show global bindings")
  print("  :help             - Show this help")
  print("  exit              - Exit REPL")
  print()
  print("Language features:")
  print("  sq = λx.x*x        - Binding")
  print("  (sq) 4             - Application, parentheses hold the function only")
  print("  ((add) 1) 2        - Curried application needs explicit nesting")
  print("  λn.𝑓(n-1)          - Recursion, re-applied until the argument is 0")
  print()
  print("Builtins run when a parameter is named:")
  for name, capability in BUILTIN_CAPABILITIES.items():
    print(f"  {name:<8} {capability['description']}")


def run_repl_line(code: str, parser, interpreter) -> bool:
  """Handle one REPL line against the session interpreter. Returns False to quit."""
  stripped = code.strip()

  if stripped == "exit":
    return False

  if not stripped:
    return True

  if stripped.startswith(":tokens"):
    try:
      for token in parser.tokenize(stripped[len(":tokens"):]):
        print(f"  {token}")
    except LambLexError as e:
      print(f"Parsing error: {e}")
    return True

  if stripped.startswith(":parse"):
    try:
      print(pretty_print_ast(parser.parse_string(stripped[len(":parse"):])), end="")
    except (LambLexError, LambSyntaxError) as e:
      print(f"Parsing error: {e}")
    return True

  if stripped == ":env":
    bindings = interpreter.bindings()
    if not bindings:
      print("  (no bindings)")
    for name, value in bindings.items():
      print(f"  {name} = {describe_value(value)}")
    return True

  if stripped == ":help":
    show_help()
    return True

  try:
    program = parser.parse_string(code)
  except (LambLexError, LambSyntaxError) as e:
    print(f"Parsing error: {e}")
    return True

  try:
    for statement in program.statements:
      result = interpreter.evaluate_statement(statement)
      if result['type'] != 'Unit':
        sys.stdout.flush()
        print(f"=> {describe_value(result)}")
  except LambEvaluationError as e:
    print(f"Interpretation error: {e}")

  return True


def run_interactive_mode() -> int:
  """Run lamb in interactive mode with a persistent global frame"""
  print(f"lamb v{__version__} - Interactive Mode")
  print("Type 'exit' to quit, ':help' for commands")
  print()

  setup_readline()

  parser = create_parser()
  interpreter = create_interpreter()

  while True:
    try:
      code = input(PROMPT)
    except (KeyboardInterrupt, EOFError):
      print("\nGoodbye!")
      return 0

    try:
      if not run_repl_line(code, parser, interpreter):
        return 0
    except KeyboardInterrupt:
      print("\nInterrupted")


def main(argv: Optional[List[str]] = None) -> int:
  """Main entry point for lamb"""
  arg_parser = create_arg_parser()
  args = arg_parser.parse_args(argv)

  setup_logging("DEBUG" if args.debug else args.log_level, args.log_file)

  if args.script:
    if not Path(args.script).is_file():
      print(f"Error: Script file '{args.script}' does not exist", file=sys.stderr)
      return 1

    if args.tokens:
      return dump_tokens(args.script)
    if args.parse:
      return dump_ast(args.script)
    return run_script_file(args.script)

  if args.interactive:
    return run_interactive_mode()

  print("Missing source code file path!")
  print("Use 'lamb --help' for command line options")
  return 1


if __name__ == "__main__":
  sys.exit(main())
