"""
PyMancer - Main Entry Point
Runs restricted-Python exercise programs from files, chapters, or an interactive prompt
"""

import sys
import argparse
import os
from typing import Dict, List, Optional

# Readline support for history in interactive mode
try:
  import readline
  READLINE_AVAILABLE = True
except ImportError:
  READLINE_AVAILABLE = False

from chapters import CHAPTERS, get_chapter, fill_placeholders, count_placeholders, evaluate_attempt
from error_handling import ExecutionResult, PyMancerSyntaxError, get_context_lines
from interpreter import (
  execute_program,
  make_execution_context,
  run_with_timeout,
  DEFAULT_MAX_STEPS,
)
from logging_config import setup_logging
from parsing import create_parser, pretty_print_cst, DEFAULT_PLACEHOLDER
from semantics import analyze_program


VERSION = "PyMancer 1.0.0"


def create_arg_parser() -> argparse.ArgumentParser:
  """Create command line argument parser"""
  parser = argparse.ArgumentParser(
      prog='pymancer',
      description='PyMancer - restricted Python evaluator for the Code Chronicles exercises',
      formatter_class=argparse.RawDescriptionHelpFormatter,
      epilog="""
Examples:
  %(prog)s spell.py                           # Run a program
  %(prog)s --tokens spell.py                  # Show the token stream
  %(prog)s --parse spell.py                   # Show the parsed statements
  %(prog)s --list-chapters                    # List the exercises
  %(prog)s --chapter 1 --choose "'authorized'"  # Attempt an exercise
  %(prog)s -i                                 # Interactive mode
        """
  )

  parser.add_argument(
      'script',
      nargs='?',
      help='program file to execute'
  )

  parser.add_argument(
      '-i', '--interactive',
      action='store_true',
      help='Start interactive mode'
  )

  parser.add_argument(
      '--tokens',
      action='store_true',
      help='Tokenize the file and show the tokens'
  )

  parser.add_argument(
      '--parse',
      action='store_true',
      help='Parse the file and show the statement tree'
  )

  parser.add_argument(
      '--list-chapters',
      action='store_true',
      help='List the exercise chapters'
  )

  parser.add_argument(
      '--chapter',
      type=int,
      metavar='N',
      help='Attempt chapter N, filling its placeholders with --choose'
  )

  parser.add_argument(
      '--choose',
      action='append',
      default=[],
      metavar='TOKEN',
      help='Token for the next placeholder (repeatable, left to right)'
  )

  parser.add_argument(
      '--placeholder',
      default=DEFAULT_PLACEHOLDER,
      help='Marker for unresolved code blanks (default: %(default)s)'
  )

  parser.add_argument(
      '--max-steps',
      type=int,
      default=DEFAULT_MAX_STEPS,
      help='Statement budget for one run (default: %(default)s)'
  )

  parser.add_argument(
      '--timeout',
      type=float,
      help='Wall-clock limit in seconds; runs on an actor when given'
  )

  parser.add_argument(
      '--log-level',
      default='WARNING',
      choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
      help='Logging level (default: %(default)s)'
  )

  parser.add_argument(
      '--log-file',
      help='Write logs to this file instead of stderr'
  )

  parser.add_argument(
      '--version',
      action='version',
      version=VERSION
  )

  return parser


def read_source(script_path: str) -> str:
  """Read a program file, exiting with a hint when it cannot be read"""
  try:
    with open(script_path, 'r', encoding='utf-8') as f:
      return f.read()
  except FileNotFoundError:
    print(f"Error: Script file '{script_path}' not found", file=sys.stderr)
    print(f"  Hint: Check the file path and make sure the file exists", file=sys.stderr)
    sys.exit(1)
  except PermissionError:
    print(f"Error: Permission denied reading '{script_path}'", file=sys.stderr)
    print(f"  Hint: Make sure you have read permissions for this file", file=sys.stderr)
    sys.exit(1)
  except UnicodeDecodeError as e:
    print(f"Error: Cannot decode file '{script_path}': {e}", file=sys.stderr)
    print(f"  Hint: Make sure the file is a text file with UTF-8 encoding", file=sys.stderr)
    sys.exit(1)


def run_source(source: str, context: Dict, timeout: Optional[float] = None) -> ExecutionResult:
  if timeout is not None:
    return run_with_timeout(source, timeout, context)
  return execute_program(source, context)


def print_result(result: ExecutionResult, source: str) -> None:
  """Print program output, then the error with surrounding source lines"""
  if result.output:
    print(result.output)

  if result.error is not None:
    print(f"\n{result.error}", file=sys.stderr)
    if result.error.line is not None:
      print(get_context_lines(source, result.error.line), file=sys.stderr)


def show_tokens(script_path: str, context: Dict) -> None:
  """Tokenize a file and list its tokens"""
  source = read_source(script_path)
  parser = create_parser(context['placeholder'])
  try:
    tokens = parser.tokenize(source, script_path)
  except PyMancerSyntaxError as e:
    print(f"Tokenizer error in '{script_path}': {e}", file=sys.stderr)
    sys.exit(1)

  for token in tokens:
    print(f"{token.span.start_line:4d}:{token.span.start_col:<3d} {token}")


def show_program(script_path: str, context: Dict) -> None:
  """Parse a file and show the analyzed statements"""
  source = read_source(script_path)
  parser = create_parser(context['placeholder'])
  try:
    program = analyze_program(parser, source, script_path)
  except PyMancerSyntaxError as e:
    print(f"Parse error in '{script_path}': {e}", file=sys.stderr)
    if e.line is not None:
      print(get_context_lines(source, e.line, e.column), file=sys.stderr)
    sys.exit(1)

  print(f"Parsed {len(program)} top-level statements:")
  print("=" * 50)
  for node in program:
    print(pretty_print_cst(node), end='')


def run_script_file(script_path: str, context: Dict, timeout: Optional[float] = None) -> None:
  """Run a program file, exiting with status 1 when it fails"""
  source = read_source(script_path)
  result = run_source(source, context, timeout)
  print_result(result, source)
  if not result.success:
    sys.exit(1)


def list_chapters() -> None:
  for chapter in CHAPTERS:
    print(f"{chapter['id']}. {chapter['title']} [{chapter['difficulty']}]")
    print(f"   {chapter['task']}")
    print(f"   Tokens: {', '.join(chapter['tokens'])}")


def run_chapter(chapter_id: int, choices: List[str], context: Dict) -> None:
  """Fill a chapter's blanks with the chosen tokens and judge the attempt"""
  chapter = get_chapter(chapter_id)
  if chapter is None:
    print(f"Error: No chapter {chapter_id}; use --list-chapters", file=sys.stderr)
    sys.exit(1)

  placeholder = context['placeholder']
  try:
    code = fill_placeholders(chapter['starter_code'].replace(DEFAULT_PLACEHOLDER, placeholder),
                             choices, placeholder)
  except ValueError as e:
    print(f"Error: {e}", file=sys.stderr)
    sys.exit(1)

  print(f"Chapter {chapter['id']}: {chapter['title']}")
  print("-" * 40)
  print(code)
  print("-" * 40)

  remaining = count_placeholders(code, placeholder)
  if remaining:
    print(f"{remaining} placeholder(s) left unfilled. Hint: {chapter['hint']}")

  attempt = evaluate_attempt(chapter, code, context)
  print_result(attempt['result'], code)
  print(attempt['message'])
  if not attempt['accepted']:
    sys.exit(1)


def setup_readline() -> None:
  """Setup readline history for interactive mode"""
  if not READLINE_AVAILABLE:
    return

  history_file = os.path.expanduser("~/.pymancer_history")
  try:
    readline.read_history_file(history_file)
  except OSError:
    pass  # First run, no history yet

  readline.set_history_length(1000)

  import atexit
  atexit.register(readline.write_history_file, history_file)


def run_interactive_mode(context: Dict, timeout: Optional[float] = None) -> None:
  """
  Read a program block by block; an empty line runs the block.

  Every block runs in a fresh scope, exactly as the evaluator does for files.
  """
  print(f"{VERSION} - Interactive Mode")
  print("Enter a program, then an empty line to run it. ':help' for commands, 'exit' to quit.")
  print()

  setup_readline()
  block: List[str] = []

  while True:
    try:
      line = input("... " if block else ">>> ")
    except (KeyboardInterrupt, EOFError):
      print("\nGoodbye!")
      break

    if not block and line.strip() == "exit":
      break

    if not block and line.strip() == ":help":
      print("Commands:")
      print("  :help     - Show this help")
      print("  exit      - Exit interactive mode")
      print()
      print("Supported statements:")
      print("  name = 'text' | 42 | True | [1, 2]")
      print("  print(name)")
      print("  items.append(value)")
      print("  if a == b:  /  if x in items:  /  if a and b:  (one indented body line)")
      print("  for item in items:  (one indented body line)")
      print("  len(items)")
      continue

    if line.strip():
      block.append(line)
      continue

    if block:
      source = "\n".join(block)
      block = []
      print_result(run_source(source, context, timeout), source)


def main(argv: Optional[List[str]] = None) -> None:
  """Main entry point for PyMancer"""
  arg_parser = create_arg_parser()
  args = arg_parser.parse_args(argv)

  setup_logging(args.log_level, args.log_file)

  try:
    context = make_execution_context(args.placeholder, args.max_steps)
  except ValueError as e:
    arg_parser.error(str(e))

  if args.list_chapters:
    list_chapters()
  elif args.chapter is not None:
    run_chapter(args.chapter, args.choose, context)
  elif args.script:
    if args.tokens:
      show_tokens(args.script, context)
    elif args.parse:
      show_program(args.script, context)
    else:
      run_script_file(args.script, context, args.timeout)
  elif args.interactive:
    run_interactive_mode(context, args.timeout)
  else:
    arg_parser.print_help()


if __name__ == "__main__":
  main()
