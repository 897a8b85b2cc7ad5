#
# Copyright 2024 zmqbuild Project Authors. All rights reserved.
# Use of this source code is governed by a MIT-style
# license that can be found at
#
# https://opensource.org/license/MIT
#
# The above copyright notice and this permission
# notice shall be included in all copies or
# substantial portions of the Software.

"""
Tests for the external command runners.

Run with: python3 -m pytest zmqbuild/utils/cmd/test_cmd_util.py
"""

import os
import sys
import tempfile
import unittest
from unittest.mock import patch

from zmqbuild.utils.cmd.cmd_util import (
    CommandResult,
    RecordingRunner,
    SubprocessRunner,
    decode_bytes,
)


class TestSubprocessRunner(unittest.TestCase):
    def setUp(self):
        self.runner = SubprocessRunner(echo=False)

    def test_stream_forwards_each_line(self):
        runner = SubprocessRunner(echo=False, stream=True)
        script = "import sys; print('checking for gcc... yes'); sys.stdout.flush(); print('done')"
        with patch("builtins.print") as mock_print:
            result = runner.run([sys.executable, "-c", script])
        self.assertTrue(result.ok)
        self.assertEqual(result.output.splitlines(), ["checking for gcc... yes", "done"])
        printed = [c.args[0] for c in mock_print.call_args_list]
        self.assertEqual([p.rstrip("\r\n") for p in printed], ["checking for gcc... yes", "done"])

    def test_stream_keeps_exit_status(self):
        runner = SubprocessRunner(echo=False, stream=True)
        with patch("builtins.print"):
            result = runner.run([sys.executable, "-c", "import sys; print('error'); sys.exit(2)"])
        self.assertEqual(result.returncode, 2)
        self.assertEqual(result.output.strip(), "error")

    def test_captures_output(self):
        result = self.runner.run([sys.executable, "-c", "print('hello')"])
        self.assertTrue(result.ok)
        self.assertEqual(result.output.strip(), "hello")

    def test_stderr_merged(self):
        result = self.runner.run(
            [sys.executable, "-c", "import sys; sys.stderr.write('oops\\n'); sys.exit(3)"]
        )
        self.assertEqual(result.returncode, 3)
        self.assertFalse(result.ok)
        self.assertIn("oops", result.output)

    def test_explicit_env_replaces_inherited(self):
        env = {"ZMQBUILD_MARKER": "armv7", "PATH": os.environ.get("PATH", "")}
        script = "import os; print(os.environ.get('ZMQBUILD_MARKER'), os.environ.get('HOME'))"
        result = self.runner.run([sys.executable, "-c", script], env=env)
        self.assertEqual(result.output.split(), ["armv7", "None"])

    def test_cwd(self):
        with tempfile.TemporaryDirectory() as tmp:
            result = self.runner.run(
                [sys.executable, "-c", "import os; print(os.getcwd())"], cwd=tmp
            )
            self.assertEqual(os.path.realpath(result.output.strip()), os.path.realpath(tmp))

    def test_missing_executable(self):
        result = self.runner.run(["zmqbuild-no-such-tool", "--version"])
        self.assertEqual(result.returncode, 127)
        self.assertIn("zmqbuild-no-such-tool", result.output)


class TestCommandResult(unittest.TestCase):
    def test_tail(self):
        result = CommandResult(1, "\n".join(str(i) for i in range(100)))
        self.assertEqual(result.tail(3), "97\n98\n99")

    def test_decode_invalid_utf8(self):
        self.assertEqual(decode_bytes(b"ok\xff"), "ok\ufffd")


class TestRecordingRunner(unittest.TestCase):
    def test_unhandled_commands_succeed(self):
        runner = RecordingRunner()
        result = runner.run(["make", "clean"], env={"A": "1"}, cwd="/src")
        self.assertTrue(result.ok)
        self.assertEqual(runner.calls[0].env, {"A": "1"})
        self.assertEqual(runner.calls[0].cwd, "/src")

    def test_longest_prefix_wins(self):
        runner = RecordingRunner()
        runner.on(["make"], CommandResult(0, "make"))
        runner.on(["make", "install"], CommandResult(2, "install"))
        self.assertEqual(runner.run(["make", "-j8"]).output, "make")
        self.assertEqual(runner.run(["make", "install"]).returncode, 2)
        self.assertEqual(runner.commands(), [["make", "-j8"], ["make", "install"]])


if __name__ == "__main__":
    unittest.main()
