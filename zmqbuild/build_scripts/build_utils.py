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
Shared helpers for the build stages: fail-fast command execution and the
directory operations used to reset, populate and tear down build trees.
"""

import os
import shutil
import time
from typing import Mapping, Optional, Sequence

from zmqbuild.build_scripts.build_errors import CommandError
from zmqbuild.utils.cmd.cmd_util import CommandResult, format_command


def run_checked(
    runner,
    args: Sequence[str],
    env: Optional[Mapping[str, str]] = None,
    cwd: Optional[str] = None,
) -> CommandResult:
    """
    Run an external command and raise CommandError on a non-zero exit.

    There is no retry; the caller's stage is aborted by the exception.
    """
    result = runner.run(args, env=env, cwd=cwd)
    if not result.ok:
        print(f"!!!!!!!!!!! {format_command(args)} failed ({result.returncode}) !!!!!!!!!!!!!!!")
        raise CommandError(args, result.returncode, result.tail())
    return result


def remove_path(path):
    """Delete a file or directory tree if it exists."""
    if os.path.islink(path) or os.path.isfile(path):
        os.remove(path)
    elif os.path.isdir(path):
        shutil.rmtree(path)


def recreate_dir(path):
    """Delete a directory and create it again, empty."""
    remove_path(path)
    os.makedirs(path, exist_ok=True)


def copy_file(src, dst):
    """Copy a file, creating the destination's parent directories."""
    parent = os.path.dirname(dst)
    if parent:
        os.makedirs(parent, exist_ok=True)
    shutil.copy(src, dst)


def copy_tree(src, dst):
    """Copy a directory tree, merging into an existing destination."""
    shutil.copytree(src, dst, dirs_exist_ok=True)


def format_elapsed(start_time: float) -> str:
    return f"use time: {int(time.time() - start_time)} s"
