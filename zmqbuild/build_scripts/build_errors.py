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
Errors raised by the build pipeline.

Every fatal condition is a ``BuildError``; the CLI catches it at the top level,
prints it and exits with status 1. ``UnsupportedTargetError`` is the only one
the pipeline may recover from, depending on the missing-profile policy.
"""

from typing import Optional, Sequence


class BuildError(Exception):
    """Base exception for fatal build failures"""

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.hint = hint

    def __str__(self):
        text = super().__str__()
        if self.hint:
            text += f"\nHint: {self.hint}"
        return text


class ConfigError(BuildError):
    """zmqbuild.toml is unreadable or holds invalid values"""
    pass


class ToolchainError(BuildError):
    """The Xcode toolchain could not be queried"""
    pass


class SourceStageError(BuildError):
    """Download or extraction of the library source failed"""
    pass


class PatchError(BuildError):
    """The source patch could not be applied"""
    pass


class CopyError(BuildError):
    """Copying artifacts into the consuming project failed"""
    pass


class CommandError(BuildError):
    """An external command exited with a non-zero status"""

    def __init__(self, args: Sequence[str], returncode: int, output: str = ""):
        self.command = [str(x) for x in args]
        self.returncode = returncode
        self.output = output
        message = f"command failed ({returncode}): {' '.join(self.command)}"
        if output:
            message += f"\n{output}"
        super().__init__(message)


class UnsupportedTargetError(BuildError):
    """A (platform, architecture) pair has no build profile"""

    def __init__(self, platform, arch):
        self.platform = platform
        self.arch = arch
        super().__init__(
            f"Unsupported architecture '{arch.value}' for platform '{platform.value}'"
        )
