#!/usr/bin/env python3
"""
NUMERUS Command-Line Interface

Provides interactive REPL, script execution, and pipe/filter modes.

Usage:
    numerus                              # Start REPL
    numerus script.num                   # Run script
    numerus -e "(Division 1 3)"          # Evaluate expression
    numerus -p 50 -n -e "(Sine 1)"       # One-shot, 50 digits, numeric mode
    echo "(Factors 360)" | numerus       # Filter mode

Script Format:
    #!/usr/bin/env numerus
    :precision 30
    :rounding HalfEven

    (Division 1.0 7)
    (Summation (Exponentiation k 2) k 1 10)

REPL Commands:
    :help              Show help
    :precision [N]     Show or set the precision
    :rounding [MODE]   Show or set the rounding mode
    :euclidean [MODE]  Show or set the Euclidean division mode
    :numeric on|off    Toggle numeric mode
    :symbolic on|off   Toggle the structural (symbolic) reducers
    :trace on|off      Toggle tracing
    :reducers [TAG]    List registered reducers
    :groups            Show groups
    :enable GROUP      Enable group
    :disable GROUP     Disable group
    :quit              Exit
"""

import argparse
import logging
from logging.handlers import RotatingFileHandler
import random
import sys
from pathlib import Path
from typing import Optional, Tuple

from .engine import ReductionTrace
from .errors import ReductionError
from .expression import Expression, format_sexpr, parse_sexpr
from .prelude import default_engine
from .session import (
    DEFAULT_EUCLIDEAN_MODE, DEFAULT_PRECISION, DEFAULT_ROUNDING, check_precision, coerce_mode,
)
from .tower import ROUNDING_MODES, RoundingMode

# Try to import readline for better REPL experience
try:
    import readline
    HAS_READLINE = True
except ImportError:
    HAS_READLINE = False


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(verbose: bool = False, log_file: Optional[str] = None) -> None:
    """Configure logging: stderr by default, or a rotating log file."""
    handlers = None
    if log_file:
        # Keep up to 5 log files, max 1MB each
        handlers = [RotatingFileHandler(
            log_file,
            maxBytes=1024*1024,
            backupCount=4,
            encoding='utf-8'
        )]

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        handlers=handlers
    )


def parse_switch(arg: str, current: bool) -> bool:
    """'on' or 'off', anything else toggles."""
    if arg.lower() in ("on", "true", "1"):
        return True
    if arg.lower() in ("off", "false", "0"):
        return False
    return not current


class NumerusCompleter:
    """Tab completer for NUMERUS REPL."""

    # Commands that can be completed
    COMMANDS = [
        ":help", ":quit", ":exit", ":q",
        ":precision", ":rounding", ":euclidean",
        ":numeric", ":symbolic", ":trace",
        ":reducers", ":groups", ":enable", ":disable",
    ]

    SWITCH_OPTIONS = ["on", "off"]

    def __init__(self, repl: 'NumerusREPL'):
        self.repl = repl

    def complete(self, text: str, state: int) -> Optional[str]:
        """Return the next possible completion for 'text'."""
        if state == 0:
            line = readline.get_line_buffer() if HAS_READLINE else ""
            self.matches = self._get_matches(text, line)

        try:
            return self.matches[state]
        except IndexError:
            return None

    def _get_matches(self, text: str, line: str) -> list:
        """Get list of matches for the current input."""
        line = line.lstrip()

        if line.startswith(":rounding "):
            return [m.label for m in ROUNDING_MODES if m.label.startswith(text)]

        if line.startswith(":euclidean "):
            return [m.label for m in RoundingMode if m.label.startswith(text)]

        if line.startswith((":trace ", ":numeric ", ":symbolic ")):
            return [s for s in self.SWITCH_OPTIONS if s.startswith(text)]

        if line.startswith(":enable ") or line.startswith(":disable "):
            groups = list(self.repl.engine.groups())
            return [g for g in groups if g.startswith(text)]

        if line.startswith(":reducers "):
            return [t for t in self.repl.engine.tags() if t.startswith(text)]

        if text.startswith(":") or (line.startswith(":") and " " not in line):
            return [c for c in self.COMMANDS if c.startswith(text)]

        # In expression context, complete tags
        word = text.lstrip("(")
        prefix = text[:len(text) - len(word)]
        return [prefix + t for t in self.repl.engine.tags() if word and t.startswith(word)]


def count_parens(text: str) -> int:
    """Count unbalanced parentheses. Returns >0 if more open than close."""
    depth = 0
    in_string = False
    escape = False

    for c in text:
        if escape:
            escape = False
            continue
        if c == '\\':
            escape = True
            continue
        if c == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if c == '(':
            depth += 1
        elif c == ')':
            depth -= 1

    return depth


class NumerusREPL:
    """Interactive REPL for numerus."""

    def __init__(self, seed: Optional[int] = None, history: bool = True):
        self.engine = default_engine()
        self.precision = DEFAULT_PRECISION
        self.rounding = DEFAULT_ROUNDING
        self.euclidean_mode = DEFAULT_EUCLIDEAN_MODE
        self.numeric = False
        self.no_symbolic = False
        self.trace = False
        self.random = random.Random(seed)
        self.running = True
        self.multi_line_buffer = ""
        self._logger = logging.getLogger("NumerusREPL")

        # Set up readline history and completion
        self.history = history and HAS_READLINE
        if self.history:
            self.history_file = Path.home() / ".numerus_history"
            try:
                readline.read_history_file(self.history_file)
            except FileNotFoundError:
                pass
            readline.set_history_length(1000)

            self.completer = NumerusCompleter(self)
            readline.set_completer(self.completer.complete)
            readline.parse_and_bind("tab: complete")

            # Don't break on colons or dots
            readline.set_completer_delims(" \t\n")

    def save_history(self):
        """Save readline history."""
        if self.history:
            try:
                readline.write_history_file(self.history_file)
            except OSError as e:
                self._logger.warning("Could not save history to %s: %s", self.history_file, e)

    def evaluate(self, expr: Expression) -> Tuple[Expression, Optional[ReductionTrace]]:
        """
        Reduce an expression with the REPL settings.

        Settings changed by the expression itself (SetPrecision, SetRoundingMode,
        ...) are kept for the following expressions.
        """
        session = self.engine.session(
            precision=self.precision,
            rounding=self.rounding,
            euclidean_mode=self.euclidean_mode,
            numeric=self.numeric,
            no_symbolic=self.no_symbolic,
            trace=self.trace,
        )
        session.random = self.random
        result = session.reduce_and_get(expr.clone())

        self.precision = session.precision
        self.rounding = session.rounding
        self.euclidean_mode = session.euclidean_mode

        if session.trace is not None:
            session.trace.initial = expr
            session.trace.final = result.clone()
        return result, session.trace

    def handle_command(self, line: str) -> Optional[str]:
        """
        Handle a REPL command (starts with :).

        Returns a message to print, or None.
        """
        parts = line[1:].split(None, 1)
        if not parts:
            return "Unknown command. Type :help for help."

        cmd = parts[0].lower()
        arg = parts[1].strip() if len(parts) > 1 else ""

        if cmd == "help":
            return self.help_text()

        elif cmd == "quit" or cmd == "exit" or cmd == "q":
            self.running = False
            return None

        elif cmd == "precision":
            if not arg:
                return f"Precision: {self.precision}"
            try:
                self.precision = check_precision(int(arg))
            except ValueError as e:
                return f"Error: {e}"
            return f"Precision set to: {self.precision}"

        elif cmd == "rounding":
            if not arg:
                return f"Rounding mode: {self.rounding.label}"
            try:
                self.rounding = coerce_mode(arg)
            except ValueError as e:
                return f"Error: {e}"
            return f"Rounding mode set to: {self.rounding.label}"

        elif cmd == "euclidean":
            if not arg:
                return f"Euclidean division mode: {self.euclidean_mode.label}"
            try:
                self.euclidean_mode = coerce_mode(arg, allow_euclidean=True)
            except ValueError as e:
                return f"Error: {e}"
            return f"Euclidean division mode set to: {self.euclidean_mode.label}"

        elif cmd == "numeric":
            self.numeric = parse_switch(arg, self.numeric)
            return f"Numeric mode {'enabled' if self.numeric else 'disabled'}"

        elif cmd == "symbolic":
            self.no_symbolic = not parse_switch(arg, not self.no_symbolic)
            return f"Symbolic reducers {'disabled' if self.no_symbolic else 'enabled'}"

        elif cmd == "trace":
            self.trace = parse_switch(arg, self.trace)
            return f"Tracing {'enabled' if self.trace else 'disabled'}"

        elif cmd == "reducers":
            reducers = self.engine.list_reducers()
            if arg:
                reducers = [r for r in reducers if r.split(" ", 1)[0] == arg]
            if not reducers:
                return "No reducers registered"
            return "\n".join(reducers)

        elif cmd == "groups":
            groups = self.engine.groups()
            if not groups:
                return "No groups defined"
            disabled = self.engine.disabled_groups()
            return "Groups: " + ", ".join(
                f"{g} (disabled)" if g in disabled else g for g in sorted(groups))

        elif cmd == "enable":
            if not arg:
                return "Usage: :enable GROUP"
            self.engine.enable_group(arg)
            return f"Enabled group: {arg}"

        elif cmd == "disable":
            if not arg:
                return "Usage: :disable GROUP"
            self.engine.disable_group(arg)
            return f"Disabled group: {arg}"

        else:
            return f"Unknown command: {cmd}. Type :help for help."

    def help_text(self) -> str:
        """Return help text."""
        return """NUMERUS REPL Commands:
  :help              Show this help
  :precision [N]     Show or set the precision (significant digits)
  :rounding [MODE]   Show or set the rounding mode (HalfEven, TowardsZero, ...)
  :euclidean [MODE]  Show or set the Euclidean division mode
  :numeric on|off    Toggle numeric mode
  :symbolic on|off   Toggle the structural (symbolic) reducers
  :trace on|off      Toggle tracing
  :reducers [TAG]    List registered reducers
  :groups            Show all groups
  :enable GROUP      Enable a group
  :disable GROUP     Disable a group
  :quit              Exit

Syntax:
  (Addition 1 2/3 x)                       Tagged expression
  (+ 1 (* 2 x))                            Short aliases + * - / ^ N
  (N (Sine 1) 30)                          Numeric evaluation, 30 digits
  "text"                                   String
"""

    def process_line(self, line: str) -> Optional[str]:
        """
        Process a single line of input.

        Returns the result to print, or None.
        """
        line = line.strip()

        # Empty line or comment
        if not line or line.startswith("#"):
            return None

        # Command
        if line.startswith(":"):
            return self.handle_command(line)

        # Expression to evaluate
        try:
            expr = parse_sexpr(line)
            result, trace = self.evaluate(expr)
        except (ReductionError, ValueError) as e:
            self._logger.debug("Evaluation of %s failed: %s", line, e)
            return f"Error: {e}"

        output = format_sexpr(result)
        if trace:
            return f"{output}\n{trace.format('reducers')}"
        return output

    def run(self):
        """Run the REPL loop."""
        print("NUMERUS - symbolic arithmetic with an arbitrary precision numeric tower")
        print("Type :help for help, :quit to exit")
        print("Multi-line input: expressions with unbalanced parens continue on next line")
        print()

        while self.running:
            try:
                if self.multi_line_buffer:
                    prompt = "...... "
                else:
                    prompt = "numerus> "

                line = input(prompt)

                if self.multi_line_buffer:
                    self.multi_line_buffer += "\n" + line
                else:
                    self.multi_line_buffer = line

                paren_count = count_parens(self.multi_line_buffer)

                if paren_count > 0:
                    # More open parens than close - continue reading
                    continue
                elif paren_count < 0:
                    print("Error: Unbalanced parentheses (too many closing)")
                    self.multi_line_buffer = ""
                    continue

                complete_input = self.multi_line_buffer
                self.multi_line_buffer = ""

                result = self.process_line(complete_input)
                if result:
                    print(result)

            except EOFError:
                print()
                break
            except KeyboardInterrupt:
                # Cancel multi-line input on Ctrl+C
                if self.multi_line_buffer:
                    print("\nInput cancelled")
                    self.multi_line_buffer = ""
                else:
                    print()
                continue

        self.save_history()


class ScriptRunner:
    """Runs numerus scripts."""

    def __init__(self, seed: Optional[int] = None):
        self.repl = NumerusREPL(seed=seed, history=False)

    def run_script(self, path: Path, quiet: bool = False) -> int:
        """
        Run a script file.

        Args:
            path: Path to the script
            quiet: If True, don't print expression results

        Returns:
            Exit code (0 for success)
        """
        try:
            lines = path.read_text().splitlines()
        except OSError as e:
            print(f"Error reading {path}: {e}", file=sys.stderr)
            return 1

        buffer = ""
        start = 0
        for lineno, line in enumerate(lines, 1):
            line = line.strip()

            # Skip empty lines, comments, and shebang
            if not buffer and (not line or line.startswith("#")):
                continue

            if line.startswith(":") and not buffer:
                result = self.repl.handle_command(line)
                if result and ("Error" in result or "Unknown" in result):
                    print(f"{path}:{lineno}: {result}", file=sys.stderr)
                    return 1
                continue

            # Expressions may span lines
            if not buffer:
                start = lineno
            buffer = f"{buffer}\n{line}" if buffer else line
            if count_parens(buffer) > 0:
                continue

            result = self.repl.process_line(buffer)
            buffer = ""
            if result and result.startswith("Error"):
                print(f"{path}:{start}: {result}", file=sys.stderr)
                return 1
            if result and not quiet:
                print(result)

        if buffer:
            print(f"{path}:{start}: Error: Unbalanced parentheses", file=sys.stderr)
            return 1
        return 0

    def run_expression(self, expr_str: str) -> int:
        """
        Evaluate a single expression.

        Returns:
            Exit code (0 for success)
        """
        result = self.repl.process_line(expr_str)
        if result:
            if result.startswith("Error"):
                print(result, file=sys.stderr)
                return 1
            print(result)
        return 0

    def run_stdin(self, quiet: bool = False) -> int:
        """
        Read expressions from stdin and evaluate them.

        Returns:
            Exit code (0 for success)
        """
        for line in sys.stdin:
            line = line.strip()
            if not line or line.startswith("#"):
                continue

            result = self.repl.process_line(line)
            if result:
                if result.startswith("Error"):
                    print(result, file=sys.stderr)
                    return 1
                if not quiet:
                    print(result)

        return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="numerus",
        description="NUMERUS - symbolic arithmetic with an arbitrary precision numeric tower",
        epilog="Examples:\n"
               "  numerus                              Start REPL\n"
               "  numerus script.num                   Run script\n"
               "  numerus -e '(Division 1 3)'          Evaluate expression\n"
               "  numerus -p 50 -n -e '(Sine 1)'       Numeric mode, 50 digits\n"
               "  echo '(Factors 360)' | numerus       Filter mode\n",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        "script",
        nargs="?",
        help="Script file to run"
    )

    parser.add_argument(
        "-e", "--expr",
        help="Evaluate a single expression"
    )

    parser.add_argument(
        "-p", "--precision",
        type=int,
        default=DEFAULT_PRECISION,
        help=f"Significant digits of decimal results (default: {DEFAULT_PRECISION})"
    )

    parser.add_argument(
        "-r", "--rounding",
        default=DEFAULT_ROUNDING.label,
        help=f"Rounding mode (default: {DEFAULT_ROUNDING.label})"
    )

    parser.add_argument(
        "-n", "--numeric",
        action="store_true",
        help="Evaluate irrational results numerically"
    )

    parser.add_argument(
        "--no-symbolic",
        action="store_true",
        help="Skip the structural (symbolic) reducers"
    )

    parser.add_argument(
        "-t", "--trace",
        action="store_true",
        help="Enable tracing"
    )

    parser.add_argument(
        "--seed",
        type=int,
        help="Seed of the random number generator"
    )

    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Quiet mode (suppress non-essential output)"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Debug logging"
    )

    parser.add_argument(
        "--log-file",
        help="Write the log to a rotating file instead of stderr"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 0.1.0"
    )

    return parser


def main(argv=None):
    """Main entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose, args.log_file)

    runner = ScriptRunner(seed=args.seed)
    repl = runner.repl

    try:
        repl.precision = check_precision(args.precision)
        repl.rounding = coerce_mode(args.rounding)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    repl.numeric = args.numeric
    repl.no_symbolic = args.no_symbolic
    repl.trace = args.trace

    # Determine mode
    if args.script:
        sys.exit(runner.run_script(Path(args.script), quiet=args.quiet))

    elif args.expr:
        sys.exit(runner.run_expression(args.expr))

    elif not sys.stdin.isatty():
        # Pipe/filter mode (stdin is not a terminal)
        sys.exit(runner.run_stdin(quiet=args.quiet))

    else:
        # REPL mode gets history and completion
        interactive = NumerusREPL(seed=args.seed)
        interactive.precision = repl.precision
        interactive.rounding = repl.rounding
        interactive.euclidean_mode = repl.euclidean_mode
        interactive.numeric = repl.numeric
        interactive.no_symbolic = repl.no_symbolic
        interactive.trace = repl.trace
        interactive.run()


if __name__ == "__main__":
    main()
