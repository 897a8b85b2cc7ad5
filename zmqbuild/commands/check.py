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
from zmqbuild.build_scripts.build_errors import BuildError, UnsupportedTargetError
from zmqbuild.build_scripts.build_plan import Platform, resolve_profile
from zmqbuild.build_scripts.sdk_discovery import discover_sdks, discover_toolchain
from zmqbuild.utils.cmd.cmd_util import SubprocessRunner


class Check(CliCommand):
    def description(self) -> str:
        return """
        Check the Xcode toolchain and print the build plan.

        Shows the developer directory, the lipo executable, the SDK version
        found for each platform and the profile of every configured
        (platform, architecture) pair.

        Examples:
            zmqbuild check
            zmqbuild check --verbose    # also print the compiler flags
        """

    def cli(self, argv=None) -> CliNameSpace:
        parser = argparse.ArgumentParser(
            prog="zmqbuild check",
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
            "--verbose",
            action="store_true",
            help="Show detailed information",
        )
        args, unknown = parser.parse_known_args(argv, namespace=CliNameSpace())
        return args

    def exec(self, context: CliContext, args: CliNameSpace, runner=None):
        runner = runner or SubprocessRunner(echo=False)
        print("🔍 Checking Xcode toolchain...\n")
        try:
            config = load_build_config(
                args.config, None if args.config else context.project_dir
            )
            toolchain = discover_toolchain(runner)
            sdk_versions = discover_sdks(runner)
        except BuildError as e:
            print(f"❌ {e}")
            sys.exit(1)

        print(f"✅ Xcode: {toolchain.root}")
        print(f"✅ lipo: {toolchain.lipo}")

        planned = 0
        for platform in Platform:
            version = sdk_versions.get(platform)
            print(f"\n=== {platform.display_name} ===")
            if version is None:
                print("⚠️  SDK: Not found, platform will be skipped")
                continue
            print(f"✅ SDK: {version} (min {config.min_version(platform)})")
            for arch in config.archs(platform):
                try:
                    profile = resolve_profile(
                        platform,
                        arch,
                        toolchain.root,
                        version,
                        config.min_version(platform),
                        config.dependency_dist_path,
                    )
                except UnsupportedTargetError:
                    print(f"⚠️  {arch.value}: no build profile, will be skipped")
                    continue
                planned += 1
                print(f"   {arch.value}: --host={profile.host} {profile.platform_dir}")
                if args.verbose:
                    print(f"      SDKROOT={profile.sdk_root}")
                    print(f"      CPPFLAGS={' '.join(profile.preprocessor_flags)}")
                    print(f"      LDFLAGS={' '.join(profile.linker_flags)}")

        print(f"\n{planned} architecture build(s) planned")
        return planned
