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

import sys
import argparse

from zmqbuild.utils.context.namespace import CliNameSpace
from zmqbuild.utils.context.context import CliContext
from zmqbuild.utils.context.command import CliCommand
from zmqbuild.build_scripts.build_config import load_build_config
from zmqbuild.build_scripts.build_errors import BuildError
from zmqbuild.build_scripts.consumer_copy import copy_to_consumer


class Copy(CliCommand):
    def description(self) -> str:
        return """
        Copy the universal libraries of all four platforms into the consuming
        project, e.g. dist/ios/lib/libzmq.a -> ../SwiftyZeroMQ/Libraries/libzmq-ios.a

        Fails if any platform's library is missing.

        Examples:
            zmqbuild copy
            zmqbuild copy --consumer ../SwiftyZeroMQ
        """

    def cli(self, argv=None) -> CliNameSpace:
        parser = argparse.ArgumentParser(
            prog="zmqbuild copy",
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
            "--consumer",
            type=str,
            default=None,
            help="consuming project directory (default: from config, ../SwiftyZeroMQ)",
        )
        args, unknown = parser.parse_known_args(argv, namespace=CliNameSpace())
        return args

    def exec(self, context: CliContext, args: CliNameSpace):
        try:
            config = load_build_config(
                args.config, None if args.config else context.project_dir
            )
            consumer = config.path(args.consumer or config.consumer.path)
            return copy_to_consumer(
                config.dist_path,
                consumer,
                lib_name=config.lib_name,
                libraries_subdir=config.consumer.libraries_subdir,
            )
        except BuildError as e:
            print(f"ERROR: {e}")
            sys.exit(1)
