"""Tests for CLI module."""

import subprocess
import sys

from numerus.cli import NumerusCompleter, NumerusREPL, ScriptRunner, count_parens, parse_switch
from numerus.tower import RoundingMode


class TestREPLCommands:
    """Tests for REPL command handling."""

    def setup_method(self):
        self.repl = NumerusREPL(history=False)

    def test_help_command(self):
        """Help command returns help text."""
        result = self.repl.handle_command(":help")
        assert ":precision" in result

    def test_precision_command(self):
        """Precision command shows and sets the precision."""
        assert self.repl.handle_command(":precision") == "Precision: 20"
        assert self.repl.handle_command(":precision 5") == "Precision set to: 5"
        assert self.repl.precision == 5

    def test_invalid_precision(self):
        """Invalid precision returns error."""
        assert self.repl.handle_command(":precision 0").startswith("Error")
        assert self.repl.handle_command(":precision abc").startswith("Error")
        assert self.repl.precision == 20

    def test_rounding_command(self):
        """Rounding command sets the rounding mode."""
        result = self.repl.handle_command(":rounding HalfEven")
        assert result == "Rounding mode set to: HalfEven"
        assert self.repl.rounding is RoundingMode.HALF_EVEN

    def test_rounding_rejects_euclidean(self):
        """EuclideanMode is only a division mode."""
        assert self.repl.handle_command(":rounding EuclideanMode").startswith("Error")
        result = self.repl.handle_command(":euclidean EuclideanMode")
        assert result == "Euclidean division mode set to: EuclideanMode"

    def test_numeric_command(self):
        """Numeric command toggles numeric mode."""
        assert self.repl.handle_command(":numeric on") == "Numeric mode enabled"
        assert self.repl.process_line("(SquareRoot 2)") == "1.4142135623730950488"
        self.repl.handle_command(":numeric off")
        assert self.repl.process_line("(SquareRoot 2)") == "(SquareRoot 2)"

    def test_trace_command(self):
        """Trace command toggles tracing."""
        assert not self.repl.trace

        result = self.repl.handle_command(":trace on")
        assert self.repl.trace
        assert result == "Tracing enabled"

        result = self.repl.handle_command(":trace off")
        assert not self.repl.trace
        assert result == "Tracing disabled"

    def test_trace_toggle(self):
        """Trace command without arg toggles."""
        self.repl.handle_command(":trace")
        assert self.repl.trace
        self.repl.handle_command(":trace")
        assert not self.repl.trace

    def test_traced_evaluation(self):
        """Traced results list the reducers applied."""
        self.repl.handle_command(":trace on")
        result = self.repl.process_line("(Addition 1 (Multiplication 2 3))")
        assert result == "7\nmultiplication-fold -> addition-fold"

    def test_symbolic_command(self):
        """Symbolic command switches the structural reducers."""
        assert self.repl.handle_command(":symbolic off") == "Symbolic reducers disabled"
        assert self.repl.process_line("(Negative (Negative x))") == "(Negative (Negative x))"
        self.repl.handle_command(":symbolic on")
        assert self.repl.process_line("(Negative (Negative x))") == "x"

    def test_reducers_command(self):
        """Reducers command lists reducers, optionally for one tag."""
        result = self.repl.handle_command(":reducers Division")
        assert "@division-numeric" in result
        assert "@addition-fold" not in result

    def test_groups_command(self):
        """Groups command lists the groups."""
        assert "symbolic" in self.repl.handle_command(":groups")

    def test_enable_disable_group(self):
        """Groups can be disabled and enabled."""
        assert self.repl.handle_command(":disable symbolic") == "Disabled group: symbolic"
        assert "symbolic (disabled)" in self.repl.handle_command(":groups")
        assert self.repl.process_line("(Negative (Negative x))") == "(Negative (Negative x))"
        self.repl.handle_command(":enable symbolic")
        assert self.repl.process_line("(Negative (Negative x))") == "x"

    def test_quit_command(self):
        """Quit command stops the loop."""
        assert self.repl.handle_command(":quit") is None
        assert not self.repl.running

    def test_unknown_command(self):
        """Unknown commands are reported."""
        assert self.repl.handle_command(":frobnicate").startswith("Unknown command")


class TestProcessLine:
    """Tests for line processing."""

    def setup_method(self):
        self.repl = NumerusREPL(history=False)

    def test_empty_line(self):
        """Empty lines give nothing."""
        assert self.repl.process_line("") is None
        assert self.repl.process_line("   ") is None

    def test_comment_line(self):
        """Comments give nothing."""
        assert self.repl.process_line("# a comment") is None

    def test_expression_evaluation(self):
        """Expressions are reduced."""
        assert self.repl.process_line("(Division 1 3)") == "1/3"
        assert self.repl.process_line("(+ 1 (* 2 x))") == "(Addition 1 (Multiplication 2 x))"

    def test_parse_error(self):
        """Parse errors are reported."""
        assert self.repl.process_line("(Addition 1").startswith("Error")

    def test_validation_error(self):
        """Invalid operands are reported."""
        assert self.repl.process_line("(Factorial -1)").startswith("Error")

    def test_settings_persist(self):
        """Settings made by expressions apply to later lines."""
        self.repl.process_line("(SetPrecision 5)")
        assert self.repl.precision == 5
        assert self.repl.process_line("(Division 1.0 3)") == "0.33333"


class TestScriptRunner:
    """Tests for script execution."""

    def test_run_expression(self, capsys):
        """Run single expression."""
        runner = ScriptRunner()
        assert runner.run_expression("(Addition 1 2)") == 0
        assert capsys.readouterr().out == "3\n"

    def test_run_expression_error(self, capsys):
        """Errors give a non-zero exit code."""
        runner = ScriptRunner()
        assert runner.run_expression("(Factorial -1)") == 1
        assert "Error" in capsys.readouterr().err

    def test_run_script(self, tmp_path, capsys):
        """Scripts mix commands and multi-line expressions."""
        script = tmp_path / "script.num"
        script.write_text(
            "#!/usr/bin/env numerus\n"
            ":precision 5\n"
            "\n"
            "(Division 1.0 3)\n"
            "(Summation\n"
            "  k k 1 10)\n"
        )
        runner = ScriptRunner()
        assert runner.run_script(script) == 0
        assert capsys.readouterr().out == "0.33333\n55\n"

    def test_run_script_quiet(self, tmp_path, capsys):
        """Quiet scripts print nothing."""
        script = tmp_path / "script.num"
        script.write_text("(Addition 1 2)\n")
        assert ScriptRunner().run_script(script, quiet=True) == 0
        assert capsys.readouterr().out == ""

    def test_run_script_unbalanced(self, tmp_path, capsys):
        """Unterminated expressions are errors."""
        script = tmp_path / "script.num"
        script.write_text("(Addition 1 2\n")
        assert ScriptRunner().run_script(script) == 1
        assert "Unbalanced" in capsys.readouterr().err

    def test_run_script_bad_command(self, tmp_path):
        """Failing commands stop the script."""
        script = tmp_path / "script.num"
        script.write_text(":precision zero\n(Addition 1 2)\n")
        assert ScriptRunner().run_script(script) == 1

    def test_missing_script(self, tmp_path):
        """Unreadable scripts are errors."""
        assert ScriptRunner().run_script(tmp_path / "missing.num") == 1


class TestCLIIntegration:
    """Integration tests using subprocess."""

    def test_help_flag(self):
        """--help flag works."""
        result = subprocess.run(
            [sys.executable, "-m", "numerus.cli", "--help"],
            capture_output=True, text=True
        )
        assert result.returncode == 0
        assert "NUMERUS" in result.stdout

    def test_version_flag(self):
        """--version flag works."""
        result = subprocess.run(
            [sys.executable, "-m", "numerus.cli", "--version"],
            capture_output=True, text=True
        )
        assert result.returncode == 0
        assert "0.1.0" in result.stdout

    def test_expression_mode(self):
        """Expression mode evaluates expression."""
        result = subprocess.run(
            [sys.executable, "-m", "numerus.cli", "-e", "(Addition 1 2)"],
            capture_output=True, text=True
        )
        assert result.returncode == 0
        assert result.stdout.strip() == "3"

    def test_precision_and_numeric_flags(self):
        """Precision and numeric flags apply to the expression."""
        result = subprocess.run(
            [sys.executable, "-m", "numerus.cli", "-p", "10", "-n", "-e", "Pi"],
            capture_output=True, text=True
        )
        assert result.returncode == 0
        assert result.stdout.strip() == "3.141592654"

    def test_invalid_rounding_flag(self):
        """Unknown rounding modes are rejected."""
        result = subprocess.run(
            [sys.executable, "-m", "numerus.cli", "-r", "Sideways", "-e", "1"],
            capture_output=True, text=True
        )
        assert result.returncode == 1

    def test_pipe_mode(self):
        """Pipe mode processes stdin."""
        result = subprocess.run(
            [sys.executable, "-m", "numerus.cli", "-q"],
            input="(Factors 360)\n(Division 1 3)\n",
            capture_output=True, text=True
        )
        assert result.returncode == 0
        assert result.stdout == ""

        result = subprocess.run(
            [sys.executable, "-m", "numerus.cli"],
            input="(Factors 360)\n(Division 1 3)\n",
            capture_output=True, text=True
        )
        assert result.returncode == 0
        assert "(List 2 2 2 3 3 5)" in result.stdout
        assert "1/3" in result.stdout


class TestMultiLineInput:
    """Tests for multi-line input parsing."""

    def test_count_parens_balanced(self):
        """Balanced parens return 0."""
        assert count_parens("(Addition x 1)") == 0
        assert count_parens("(Addition (Addition x 1) 2)") == 0
        assert count_parens("x") == 0

    def test_count_parens_unbalanced(self):
        """Open parens count up, close parens count down."""
        assert count_parens("(Addition x") == 1
        assert count_parens("(Addition (Addition x") == 2
        assert count_parens("(Addition x))") == -1

    def test_count_parens_ignores_strings(self):
        """Parens inside strings are ignored."""
        assert count_parens('(ToNumber ")" 10)') == 0
        assert count_parens('(ToNumber "(" 10)') == 0

    def test_parse_switch(self):
        """on and off, anything else toggles."""
        assert parse_switch("on", False)
        assert not parse_switch("off", True)
        assert parse_switch("", False)
        assert not parse_switch("", True)


class TestTabCompletion:
    """Tests for tab completion."""

    def setup_method(self):
        self.completer = NumerusCompleter(NumerusREPL(history=False))

    def test_completer_commands(self):
        """Completer suggests commands."""
        matches = self.completer._get_matches(":", ":")
        assert ":help" in matches
        assert ":precision" in matches

    def test_completer_partial_command(self):
        """Completer handles partial command."""
        matches = self.completer._get_matches(":pr", ":pr")
        assert matches == [":precision"]

    def test_completer_rounding_modes(self):
        """Rounding modes are completed, EuclideanMode only for division."""
        assert "HalfEven" in self.completer._get_matches("Half", ":rounding Half")
        assert self.completer._get_matches("Eu", ":rounding Eu") == []
        assert self.completer._get_matches("Eu", ":euclidean Eu") == ["EuclideanMode"]

    def test_completer_switches(self):
        """Switch commands complete on and off."""
        assert self.completer._get_matches("o", ":numeric o") == ["on", "off"]

    def test_completer_groups(self):
        """Group names are completed."""
        assert self.completer._get_matches("sym", ":disable sym") == ["symbolic"]

    def test_completer_tags(self):
        """Tags are completed inside expressions."""
        matches = self.completer._get_matches("(Facto", "(Facto")
        assert "(Factorial" in matches
        assert "(Factors" in matches
