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
from zmqbuild.build_scripts.build_config import POLICY_ERROR, load_build_config
from zmqbuild.build_scripts.build_errors import BuildError, ConfigError
from zmqbuild.build_scripts.build_plan import Platform
from zmqbuild.build_scripts.pipeline import BuildPipeline
from zmqbuild.utils.cmd.cmd_util import SubprocessRunner


class Build(CliCommand):
    def description(self) -> str:
        return """Build universal libzmq static libraries for Apple platforms.

Downloads the pinned zeromq release, builds libsodium-ios first, then
configures and builds libzmq once per (platform, architecture) and merges
each platform's libraries with lipo.

OUTPUT:
    dist/<platform>/lib/libzmq.a
    dist/<platform>/include/

SUPPORTED MATRIX:
    ios         armv7, armv7s, arm64, i386, x86_64
    macos       x86_64
    tvos        arm64, x86_64
    watchos     armv7k, i386

EXAMPLES:
    zmqbuild build
    zmqbuild build --platforms ios,macos
    zmqbuild build --skip-dependency -j 4
    zmqbuild build --strict-matrix

REQUIREMENTS:
    Xcode and command-line tools (xcode-select, xcodebuild, xcrun, lipo)
        """

    def get_platform_list(self) -> list:
        return [p.value for p in Platform]

    def cli(self, argv=None) -> CliNameSpace:
        parser = argparse.ArgumentParser(
            prog="zmqbuild build",
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
            "--platforms",
            type=str,
            default=None,
            help=f"comma-separated platforms to build, from {','.join(self.get_platform_list())} (default: all with an SDK)",
        )
        parser.add_argument(
            "--zmq-version",
            type=str,
            default=None,
            help="libzmq release to build (default: from config, 4.1.5)",
        )
        parser.add_argument(
            "-j", "--jobs",
            type=int,
            default=None,
            help="parallel make jobs (default: from config, 8)",
        )
        parser.add_argument(
            "--skip-dependency",
            action="store_true",
            help="do not run the libsodium-ios build script first",
        )
        parser.add_argument(
            "--strict-matrix",
            action="store_true",
            help="fail instead of skipping architectures without a build profile",
        )
        parser.add_argument(
            "--verbose",
            action="store_true",
            help="print the output of every external command as it runs",
        )
        args, unknown = parser.parse_known_args(argv, namespace=CliNameSpace())
        return args

    def parse_platforms(self, value: str) -> tuple:
        platforms = []
        invalid = []
        for name in value.split(","):
            if not name.strip():
                continue
            try:
                platforms.append(Platform.parse(name))
            except ValueError:
                invalid.append(name.strip())
        if invalid:
            raise ConfigError(
                f"Invalid platforms: {', '.join(invalid)}",
                hint=f"Valid platforms: {', '.join(self.get_platform_list())}",
            )
        return tuple(platforms)

    def exec(self, context: CliContext, args: CliNameSpace):
        try:
            config = load_build_config(
                args.config, None if args.config else context.project_dir
            )
            if args.platforms:
                config.selected_platforms = self.parse_platforms(args.platforms)
            if args.zmq_version:
                config.version = args.zmq_version
            if args.jobs is not None:
                if args.jobs < 1:
                    raise ConfigError(f"--jobs must be positive, got {args.jobs}")
                config.jobs = args.jobs
            if args.skip_dependency:
                config.build_dependency = False
            if args.strict_matrix:
                config.missing_profile_policy = POLICY_ERROR

            pipeline = BuildPipeline(config, runner=SubprocessRunner(stream=args.verbose))
            artifacts = pipeline.run()
        except BuildError as e:
            print(f"ERROR: {e}")
            sys.exit(1)

        if not artifacts:
            print("WARNING: no platform produced a library")
        return artifacts
