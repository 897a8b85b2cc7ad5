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
import importlib
import argparse

from zmqbuild.utils.context.namespace import CliNameSpace
from zmqbuild.utils.context.context import CliContext
from zmqbuild.utils.context.command import CliCommand

SCRIPT_PATH = os.path.split(os.path.realpath(__file__))[0]
PACKAGE_NAME = os.path.basename(SCRIPT_PATH)


# Root Class for Command Line Interface
class Cli(CliCommand):
    def description(self) -> str:
        return """zmqbuild - libzmq builder for Apple platforms

Downloads a pinned libzmq release, cross-compiles it for iOS, macOS, tvOS
and watchOS with the Xcode toolchain and merges every architecture into one
universal static library per platform.

USAGE:
    zmqbuild <command> [options]

COMMANDS:
    build       Build dist/<platform>/lib/libzmq.a and headers
    copy        Copy the built libraries into the consuming project
    check       Show the Xcode toolchain, SDKs and build plan
    clean       Remove build artifacts

EXAMPLES:
    zmqbuild build                      # Build every platform with an SDK
    zmqbuild build --platforms ios      # Build iOS only
    zmqbuild build --strict-matrix      # Fail on unsupported architectures
    zmqbuild copy --consumer ../SwiftyZeroMQ
    zmqbuild check

For more information on a specific command:
    zmqbuild <command> --help
        """

    def get_command_list(self) -> list:
        arr = []
        for command in os.listdir(os.path.join(SCRIPT_PATH, "commands")):
            if (
                not command.startswith("_")
                and not command.startswith("test_")
                and command.endswith(".py")
            ):
                arr.append(os.path.splitext(os.path.basename(command))[0])
        return sorted(arr)

    def _parser(self, add_help=True) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="zmqbuild",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            description=self.description(),
            add_help=add_help,
        )
        parser.add_argument(
            "subcommand",
            metavar=f"{self.get_command_list()}",
            type=str,
            nargs="?",
            choices=self.get_command_list(),
        )
        return parser

    def cli(self, argv=None) -> CliNameSpace:
        argv = sys.argv[1:] if argv is None else argv
        # zmqbuild --help, but not zmqbuild build --help
        if len(argv) == 1 and argv[0] in ["--help", "-h"]:
            self._parser().print_help()
            sys.exit(0)

        args, unknown = self._parser(add_help=False).parse_known_args(
            argv[:1], namespace=CliNameSpace()
        )
        args.sub_argv = argv[1:]
        return args

    def exec(self, context: CliContext, args: CliNameSpace):
        if not args.subcommand:
            print("ERROR: No command specified\n")
            self._parser().print_help()
            sys.exit(1)

        module = importlib.import_module(f"{PACKAGE_NAME}.commands.{args.subcommand}")
        klass = getattr(module, args.subcommand.capitalize())
        sub_cmd = klass()
        return sub_cmd.exec(context, sub_cmd.cli(args.sub_argv))
