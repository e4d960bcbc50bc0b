"""Unit tests for the command-line interface."""

import io
import json
import os
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from unittest import mock

from cmdtokens import commands


class TestCommands(unittest.TestCase):
    """Test the cmdtokens command-line tool."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmpdir.name, "commands.txt")

    def tearDown(self):
        self.tmpdir.cleanup()

    def run_main(self, *argv):
        """Run the CLI, returning (exit code, stdout, stderr)."""
        out, err = io.StringIO(), io.StringIO()
        code = 0
        with redirect_stdout(out), redirect_stderr(err):
            try:
                commands.main(list(argv))
            except SystemExit as e:
                code = e.code
        return code, out.getvalue(), err.getvalue()

    def test_no_arguments_prints_usage(self):
        """Test running without a command shows usage."""
        code, out, _ = self.run_main()
        self.assertEqual(0, code)
        self.assertIn("Usage: cmdtokens", out)

    def test_version(self):
        """Test the version command."""
        code, out, _ = self.run_main("version")
        self.assertEqual(0, code)
        self.assertEqual(commands.VERSION, out.strip())

    def test_split(self):
        """Test splitting a line prints one token per line."""
        code, out, _ = self.run_main("split", "a 'b c' d")
        self.assertEqual(0, code)
        self.assertEqual("a\nb c\nd\n", out)

    def test_split_json(self):
        """Test splitting a line to JSON."""
        code, out, _ = self.run_main("split", "--json", "testing: one two   three?")
        self.assertEqual(0, code)
        self.assertEqual(["testing:", "one", "two", "three?"], json.loads(out))

    def test_split_stdin(self):
        """Test lines are read from stdin without a line argument."""
        with mock.patch("sys.stdin", io.StringIO("a b\n'c d'\n")):
            code, out, _ = self.run_main("split", "--json")
        self.assertEqual(0, code)
        self.assertEqual(
            [["a", "b"], ["c d"]], [json.loads(line) for line in out.splitlines()]
        )

    def test_split_malformed(self):
        """Test malformed input exits with an error."""
        code, _, err = self.run_main("split", "'unterminated")
        self.assertEqual(1, code)
        self.assertIn("MissingClosingQuote", err)

    def test_join(self):
        """Test joining arguments."""
        code, out, _ = self.run_main("join", "testing:", "one", "three?", "don't")
        self.assertEqual(0, code)
        self.assertEqual("testing: one 'three?' 'don'\"'\"'t'\n", out)

    def test_join_option_like_arguments(self):
        """Test arguments starting with a dash are joined, not parsed."""
        code, out, err = self.run_main("join", "-l", "x")
        self.assertEqual(0, code)
        self.assertEqual("-l x\n", out)
        self.assertEqual("", err)

        code, out, _ = self.run_main("join", "-p", "23", "--help", "-h")
        self.assertEqual(0, code)
        self.assertEqual("-p 23 --help -h\n", out)

    def test_join_after_verbose(self):
        """Test the global verbose flag may come before join."""
        code, out, _ = self.run_main("-v", "join", "-x", "a b")
        self.assertEqual(0, code)
        self.assertEqual("-x 'a b'\n", out)

    def test_check_clean(self):
        """Test checking a valid record file."""
        with open(self.path, "w", encoding="utf-8") as f:
            f.write("a b\nc 'd e'\n")
        code, out, _ = self.run_main("check", "-r", self.path)
        self.assertEqual(0, code)
        self.assertIn("Records", out)
        self.assertIn("Tokens", out)

    def test_check_errors(self):
        """Test every malformed line is reported."""
        with open(self.path, "w", encoding="utf-8") as f:
            f.write("a b\n'bad\nworse\\\n")
        code, _, err = self.run_main("check", "--records", self.path)
        self.assertEqual(1, code)
        self.assertIn(f"{self.path}:2: error.MissingClosingQuote", err)
        self.assertIn(f"{self.path}:3: error.UnterminatedEscape", err)

    def test_check_missing_file(self):
        """Test a missing record file is an error."""
        code, _, err = self.run_main("check", "-r", self.path)
        self.assertEqual(1, code)
        self.assertIn("Error", err)

    def test_normalize_to_output(self):
        """Test normalize writes canonical lines to another file."""
        output = os.path.join(self.tmpdir.name, "out.txt")
        with open(self.path, "w", encoding="utf-8") as f:
            f.write('"plain" "needs quoting?"\n')
        code, _, _ = self.run_main("normalize", "-r", self.path, "-o", output)

        self.assertEqual(0, code)
        with open(output, encoding="utf-8") as f:
            self.assertEqual("plain 'needs quoting?'\n", f.read())
        with open(self.path, encoding="utf-8") as f:
            self.assertEqual('"plain" "needs quoting?"\n', f.read())

    def test_default_records_path(self):
        """Test the default record file is in the working directory."""
        self.assertEqual(
            os.path.realpath("commands.txt"), commands.default_records_path()
        )


if __name__ == "__main__":
    unittest.main()
