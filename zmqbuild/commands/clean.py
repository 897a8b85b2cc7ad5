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

import os
import sys
import argparse

from zmqbuild.utils.context.namespace import CliNameSpace
from zmqbuild.utils.context.context import CliContext
from zmqbuild.utils.context.command import CliCommand
from zmqbuild.build_scripts.build_config import load_build_config
from zmqbuild.build_scripts.build_errors import BuildError
from zmqbuild.build_scripts.build_utils import remove_path


class Clean(CliCommand):
    def description(self) -> str:
        return """
        This is a subcommand to clean build artifacts.

        Cleans the following directories:
        - libzmq_build/           # Scratch build directory
        - dist/                   # Universal libraries (only with --all)

        Examples:
            zmqbuild clean          # Remove the scratch build directory
            zmqbuild clean --all    # Also remove dist/
        """

    def cli(self, argv=None) -> CliNameSpace:
        parser = argparse.ArgumentParser(
            prog="zmqbuild clean",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            description=self.description(),
        )
        parser.add_argument(
            "--config",
            type=str,
            default=None,
            help="path of zmqbuild.toml (default: ./zmqbuild.toml)",
        )
        parser.add_argument(
            "--all",
            action="store_true",
            help="also remove the distribution directory",
        )
        args, unknown = parser.parse_known_args(argv, namespace=CliNameSpace())
        return args

    def exec(self, context: CliContext, args: CliNameSpace):
        try:
            config = load_build_config(
                args.config, None if args.config else context.project_dir
            )
        except BuildError as e:
            print(f"ERROR: {e}")
            sys.exit(1)

        targets = [config.build_path]
        if args.all:
            targets.append(config.dist_path)
        removed = []
        for path in targets:
            if os.path.exists(path):
                remove_path(path)
                print(f"✓ Removed {path}")
                removed.append(path)
            else:
                print(f"  {path} does not exist")
        return removed
