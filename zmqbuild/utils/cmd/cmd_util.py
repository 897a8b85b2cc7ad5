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
External command execution for the build pipeline.

Every external tool (xcode-select, xcodebuild, xcrun, configure, make, lipo)
is launched through a runner object with a single ``run`` method. The
pipeline only depends on that narrow interface, so tests can substitute a
``RecordingRunner`` that records invocations instead of spawning processes.
"""

import subprocess
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional, Sequence

# Number of trailing output lines kept in error messages
OUTPUT_TAIL_LINES = 40


@dataclass(frozen=True)
class CommandResult:
    """Exit status and combined stdout/stderr of one external command."""
    returncode: int
    output: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def tail(self, lines: int = OUTPUT_TAIL_LINES) -> str:
        return "\n".join(self.output.splitlines()[-lines:])


def decode_bytes(data: bytes) -> str:
    """Decode process output, tolerating non UTF-8 bytes."""
    try:
        return bytes.decode(data, "UTF-8")
    except UnicodeDecodeError:
        return bytes.decode(data, "UTF-8", errors="replace")


def format_command(args: Sequence[str]) -> str:
    return " ".join(str(x) for x in args)


class SubprocessRunner:
    """
    Run commands with ``subprocess`` and capture their output.

    The call blocks until the command exits; there is no timeout. The
    environment is passed as an explicit mapping and replaces the inherited
    one entirely when given.

    Args:
        echo: Print each command line before running it
        stream: Forward each output line to stdout as the command prints it
    """

    def __init__(self, echo: bool = True, stream: bool = False):
        self.echo = echo
        self.stream = stream

    def run(
        self,
        args: Sequence[str],
        env: Optional[Mapping[str, str]] = None,
        cwd: Optional[str] = None,
    ) -> CommandResult:
        if self.echo:
            print(format_command(args))
        try:
            compile_popen = subprocess.Popen(
                [str(x) for x in args],
                cwd=cwd,
                env=dict(env) if env is not None else None,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
            )
        except OSError as e:
            # Missing executable or bad cwd, reported like a failed command
            return CommandResult(127, f"{args[0]}: {e}")
        if not self.stream:
            stdout, _ = compile_popen.communicate()
            return CommandResult(compile_popen.returncode, decode_bytes(stdout or b""))

        lines = []
        with compile_popen.stdout:
            for raw_line in iter(compile_popen.stdout.readline, b""):
                line = decode_bytes(raw_line)
                print(line, end="", flush=True)
                lines.append(line)
        compile_popen.wait()
        return CommandResult(compile_popen.returncode, "".join(lines))


# Handler signature for RecordingRunner: (args, env, cwd) -> CommandResult or None
CommandHandler = Callable[[List[str], Dict[str, str], Optional[str]], Optional[CommandResult]]


@dataclass
class RecordedCall:
    args: List[str]
    env: Dict[str, str]
    cwd: Optional[str]


@dataclass
class RecordingRunner:
    """
    Fake runner that records every invocation instead of spawning it.

    ``handlers`` maps a command prefix (tuple of leading arguments) to a
    callable producing the result. The longest matching prefix wins; commands
    with no handler succeed with empty output.
    """
    handlers: Dict[tuple, CommandHandler] = field(default_factory=dict)
    calls: List[RecordedCall] = field(default_factory=list)

    def on(self, prefix: Sequence[str], handler) -> "RecordingRunner":
        if isinstance(handler, CommandResult):
            result = handler
            handler = lambda args, env, cwd: result
        self.handlers[tuple(prefix)] = handler
        return self

    def run(
        self,
        args: Sequence[str],
        env: Optional[Mapping[str, str]] = None,
        cwd: Optional[str] = None,
    ) -> CommandResult:
        call = RecordedCall([str(x) for x in args], dict(env or {}), cwd)
        self.calls.append(call)
        best = None
        for prefix, handler in self.handlers.items():
            if tuple(call.args[: len(prefix)]) == prefix:
                if best is None or len(prefix) > len(best[0]):
                    best = (prefix, handler)
        if best is None:
            return CommandResult(0, "")
        result = best[1](call.args, call.env, call.cwd)
        return result if result is not None else CommandResult(0, "")

    def commands(self) -> List[List[str]]:
        return [c.args for c in self.calls]

    def calls_of(self, executable: str) -> List[RecordedCall]:
        return [c for c in self.calls if c.args and c.args[0].endswith(executable)]
