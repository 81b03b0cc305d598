"""
LISQ - Main Entry Point
Lazy lists, flattening and context-driven list evaluation, with a REPL
"""

import sys
import argparse
from pathlib import Path
import os

# Readline support for history and auto-completion
try:
  import readline
  READLINE_AVAILABLE = True
except ImportError:
  READLINE_AVAILABLE = False

from error_handling import LisqParseError, LisqRuntimeError, LisqSemanticsError
from interpreter import create_debug_interpreter, create_interpreter
from iteration import DEFAULT_BATCH, DEFAULT_DEGREE
from parsing import create_debug_parser, create_parser, pretty_print_cst
from semantics import create_analyzer, create_debug_analyzer, pretty_print_ast
from stdlib import BUILTIN_FUNCTIONS, lisq_gist, list_builtin_functions


VERSION = 'LISQ v0.3.0'


def positive_int(text: str) -> int:
  """argparse type for --batch and --degree"""
  try:
    value = int(text)
  except ValueError:
    raise argparse.ArgumentTypeError(f"expected a positive integer, got {text!r}")
  if value < 1:
    raise argparse.ArgumentTypeError(f"expected a positive integer, got {value}")
  return value


def create_arg_parser() -> argparse.ArgumentParser:
  """Create command line argument parser"""
  parser = argparse.ArgumentParser(
      description='LISQ - lazy list evaluation with flattening and parallel batches',
      formatter_class=argparse.RawDescriptionHelpFormatter,
      epilog="""
Examples:
  %(prog)s script.lisq               # Run a LISQ script
  %(prog)s -i                        # Interactive mode
  %(prog)s --parse script.lisq       # Parse and show CST
  %(prog)s --analyze script.lisq     # Parse, analyze and show AST with contexts
  %(prog)s --debug script.lisq       # Run with debug output
  %(prog)s --degree 8 script.lisq    # Use 8 workers for hyper/race
        """
  )

  parser.add_argument(
      'script',
      nargs='?',
      help='LISQ script file to execute'
  )

  parser.add_argument(
      '-i', '--interactive',
      action='store_true',
      help='Start interactive mode'
  )

  parser.add_argument(
      '--parse',
      action='store_true',
      help='Parse file and show CST (for debugging)'
  )

  parser.add_argument(
      '--analyze',
      action='store_true',
      help='Parse and analyze file, show AST (for debugging)'
  )

  parser.add_argument(
      '--debug',
      action='store_true',
      help='Enable debug output for all stages'
  )

  parser.add_argument(
      '--batch',
      type=positive_int,
      default=DEFAULT_BATCH,
      help=f'Default batch size for hyper/race (default: {DEFAULT_BATCH})'
  )

  parser.add_argument(
      '--degree',
      type=positive_int,
      default=DEFAULT_DEGREE,
      help=f'Default number of workers for hyper/race (default: {DEFAULT_DEGREE})'
  )

  parser.add_argument(
      '--version',
      action='version',
      version=VERSION
  )

  return parser


def report_file_error(script_path: str, error: Exception) -> None:
  if isinstance(error, FileNotFoundError):
    print(f"Error: Script file '{script_path}' not found")
    print("  Hint: Check the file path and make sure the file exists")
  elif isinstance(error, PermissionError):
    print(f"Error: Permission denied reading '{script_path}'")
    print("  Hint: Make sure you have read permissions for this file")
  else:
    print(f"Error: Cannot read '{script_path}': {error}")
  sys.exit(1)


def parse_file(script_path: str, debug: bool = False) -> None:
  """Parse a LISQ script file and show the CST"""
  parser = create_debug_parser() if debug else create_parser()
  try:
    print(f"Parsing {script_path}...")
    cst_nodes = parser.parse_file(script_path)
  except (FileNotFoundError, PermissionError) as e:
    report_file_error(script_path, e)
  except LisqParseError as e:
    print(f"Parse error in '{script_path}': {e}")
    sys.exit(1)

  print(f"\nParsed {len(cst_nodes)} statements:")
  print("=" * 50)
  for i, node in enumerate(cst_nodes, 1):
    print(f"\nStatement {i}:")
    print(pretty_print_cst(node))


def analyze_file(script_path: str, debug: bool = False) -> None:
  """Parse and analyze a LISQ script file and show the AST"""
  parser = create_debug_parser() if debug else create_parser()
  analyzer = create_debug_analyzer() if debug else create_analyzer()
  try:
    print(f"Parsing and analyzing {script_path}...")
    cst_nodes = parser.parse_file(script_path)
  except (FileNotFoundError, PermissionError) as e:
    report_file_error(script_path, e)
  except LisqParseError as e:
    print(f"Parse error in '{script_path}': {e}")
    sys.exit(1)

  print(f"\nParsed {len(cst_nodes)} statements:")
  print("=" * 50)
  for i, cst_node in enumerate(cst_nodes, 1):
    print(f"\nStatement {i} - AST:")
    try:
      for ast_node in analyzer.analyze([cst_node]):
        print(pretty_print_ast(ast_node))
    except LisqSemanticsError as e:
      print(f"Semantic analysis error: {e}")


def run_script_file(script_path: str, debug: bool = False, batch: int = DEFAULT_BATCH,
                    degree: int = DEFAULT_DEGREE) -> None:
  """Run a LISQ script file; output comes from say()"""
  parser = create_debug_parser() if debug else create_parser()
  analyzer = create_debug_analyzer() if debug else create_analyzer()
  interpreter = create_debug_interpreter(batch, degree) if debug else create_interpreter(False, batch, degree)

  try:
    if debug:
      print(f"Parsing {script_path}...")
    cst_nodes = parser.parse_file(script_path)
    if debug:
      print(f"Parsed {len(cst_nodes)} statements")

    ast_nodes = analyzer.analyze(cst_nodes)
    if debug:
      print(f"Analyzed {len(ast_nodes)} statements")

    interpreter.interpret(ast_nodes)
  except (FileNotFoundError, PermissionError) as e:
    report_file_error(script_path, e)
  except LisqParseError as e:
    print(f"Parse error in '{script_path}': {e}")
    sys.exit(1)
  except LisqSemanticsError as e:
    print(f"Semantic analysis error in '{script_path}': {e}")
    sys.exit(1)
  except LisqRuntimeError as e:
    print(f"\n{'='*70}")
    print(f"Runtime Error in '{script_path}'")
    print(f"{'='*70}")
    print(f"\nError: {e.message}")
    if debug:
      print("\nVariables at error:")
      for name, value in interpreter.variables().items():
        print(f"  {name} = {lisq_gist(value)[:60]}")
    print(f"\n{'='*70}\n")
    sys.exit(1)


def setup_readline():
  """Setup readline with history and auto-completion"""
  if not READLINE_AVAILABLE:
    return

  history_file = os.path.expanduser("~/.lisq_history")
  try:
    readline.read_history_file(history_file)
  except OSError:
    # First time, no history yet, or permission denied
    pass

  readline.set_history_length(1000)

  completions = list_builtin_functions() + [
      "Empty", "Nil", "True", "False",
      ":parse", ":analyze", ":env", ":help", "exit",
  ]

  def completer(text, state):
    options = [cmd for cmd in completions if cmd.startswith(text)]
    if state < len(options):
      return options[state]
    return None

  readline.set_completer(completer)
  readline.parse_and_bind("tab: complete")

  import atexit
  atexit.register(readline.write_history_file, history_file)


def print_help() -> None:
  print("REPL Commands:")
  print("  :parse <expr>     - Show parsed CST")
  print("  :analyze <expr>   - Show analyzed AST with contexts")
  print("  :env              - Show current variables")
  print("  :help             - Show this help")
  print("  exit              - Exit REPL")
  print()
  print("Notation:")
  print("  @a = 1, (2, 3), $(4, 5)     - Assign into an Array")
  print("  @a.flat                     - Flatten; $( ) items stay whole")
  print("  (1..*).lazy.head(3)         - Infinite ranges are lazy")
  print("  capture(1, k => 2, (j => 3)) - Bare pairs become named arguments")
  print("  @a[0, 1], @a[*-1]           - Slices and whatever code")
  print("  (1..100).hyper.map(*+1)     - Batch-parallel map, ordered")
  print()
  print("Builtins:")
  for name, builtin in BUILTIN_FUNCTIONS.items():
    print(f"  {name:<10} {builtin['signature']}")


def run_interactive_mode(debug: bool = False, batch: int = DEFAULT_BATCH,
                         degree: int = DEFAULT_DEGREE) -> None:
  """Run LISQ in interactive mode"""
  print(f"{VERSION} - Interactive Mode")
  print("Type 'exit' to quit, ':help' for commands")
  if READLINE_AVAILABLE:
    print("Readline enabled: Use ↑/↓ for history, Tab for completion")
  if debug:
    print("Debug mode enabled")
  print()

  setup_readline()

  parser = create_debug_parser() if debug else create_parser()
  analyzer = create_debug_analyzer() if debug else create_analyzer()
  interpreter = create_debug_interpreter(batch, degree) if debug else create_interpreter(False, batch, degree)

  while True:
    try:
      code = input("lisq> ")
    except (KeyboardInterrupt, EOFError):
      print("\nGoodbye!")
      break

    stripped = code.strip()
    if stripped == "exit":
      break
    if not stripped:
      continue

    if stripped.startswith(":parse "):
      try:
        print(pretty_print_cst(parser.parse_expression(stripped[7:])))
      except LisqParseError as e:
        print(f"Parse error: {e}")
      continue

    if stripped.startswith(":analyze "):
      try:
        cst_nodes = parser.parse_string(stripped[9:], "<repl>")
        for ast_node in analyzer.preview(cst_nodes):
          print(pretty_print_ast(ast_node))
      except (LisqParseError, LisqSemanticsError) as e:
        print(f"Error: {e}")
      continue

    if stripped == ":env":
      variables = interpreter.variables()
      if variables:
        for name, value in variables.items():
          val_str = lisq_gist(value)
          if len(val_str) > 60:
            val_str = val_str[:57] + "..."
          print(f"  {name} = {val_str}")
      else:
        print("  (no variables)")
      continue

    if stripped == ":help":
      print_help()
      continue

    try:
      cst_nodes = parser.parse_string(code, "<repl>")
      ast_nodes = analyzer.analyze(cst_nodes)
      for value in interpreter.interpret(ast_nodes):
        print(f"=> {lisq_gist(value)}")
    except LisqParseError as e:
      print(f"Parse error: {e}")
    except LisqSemanticsError as e:
      print(f"Semantic error: {e}")
    except LisqRuntimeError as e:
      print("\nRuntime Error:")
      print(f"  {e.message}")
      print()


def show_language_info() -> None:
  """Show LISQ information"""
  print("LISQ")
  print("=" * 50)
  print("List evaluation with:")
  print("• Lazy and infinite sequences")
  print("• Flattening that stops at itemized values")
  print("• Assignment, argument and slice contexts")
  print("• Order-preserving (hyper) and unordered (race) batch parallelism")
  print()


def main() -> None:
  """Main entry point for LISQ"""
  arg_parser = create_arg_parser()
  args = arg_parser.parse_args()

  if len(sys.argv) == 1:
    # No arguments - show info and start interactive mode
    show_language_info()
    print("Starting interactive mode...")
    print("Use 'lisq --help' for command line options")
    print()
    run_interactive_mode()
    return

  if args.script:
    if not Path(args.script).exists():
      print(f"Error: Script file '{args.script}' does not exist")
      sys.exit(1)

    if args.parse:
      parse_file(args.script, debug=args.debug)
    elif args.analyze:
      analyze_file(args.script, debug=args.debug)
    else:
      run_script_file(args.script, args.debug, args.batch, args.degree)

  elif args.interactive:
    run_interactive_mode(args.debug, args.batch, args.degree)

  else:
    arg_parser.print_help()
    print()
    show_language_info()


if __name__ == "__main__":
  main()
