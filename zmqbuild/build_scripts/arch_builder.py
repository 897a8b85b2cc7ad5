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
Configure, build and install libzmq for a single (platform, arch) pair.

For each BuildProfile the builder:
1. Creates <build_dir>/<platform>/<arch> as the install prefix
2. Builds a fresh environment for the toolchain (DEVELOPER_DIR, SDKROOT,
   CPPFLAGS, CXXFLAGS, LDFLAGS and PATH)
3. Runs ./configure --prefix=... --disable-shared --enable-static --host=...
4. Replaces src/platform.hpp with the bundled patched copy, which keeps
   clock_gettime disabled (only available from iOS 10)
5. Runs make clean, make -jN and make install

The environment is passed to every command explicitly and rebuilt from the
same base snapshot for each pair, so no flag from a previous architecture can
reach the next one.
"""

import os
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from zmqbuild.build_scripts.build_errors import BuildError, PatchError
from zmqbuild.build_scripts.build_plan import Architecture, BuildProfile, Platform
from zmqbuild.build_scripts.build_utils import copy_file, recreate_dir, run_checked

PATCH_TARGET = os.path.join("src", "platform.hpp")


@dataclass(frozen=True)
class BuildOutput:
    """Static library and headers installed by one architecture build."""
    platform: Platform
    arch: Architecture
    library: str
    include_dir: str


def build_environment(base_env: Mapping[str, str], profile: BuildProfile, toolchain) -> Dict[str, str]:
    """
    Environment of the configure/make commands for one profile.

    Starts from a copy of base_env and overwrites every toolchain variable.
    """
    env = dict(base_env)
    env["DEVELOPER_DIR"] = toolchain.root
    env["SDKROOT"] = profile.sdk_root
    env["CXXFLAGS"] = " ".join(profile.compiler_flags)
    env["CPPFLAGS"] = " ".join(profile.preprocessor_flags)
    env["LDFLAGS"] = " ".join(profile.linker_flags)
    path = base_env.get("PATH", os.defpath)
    env["PATH"] = os.pathsep.join(list(toolchain.bin_dirs) + [path])
    return env


class ArchBuilder:
    def __init__(
        self,
        runner,
        toolchain,
        source_dir: str,
        build_dir: str,
        patch_file: str,
        dependency_dist: str,
        lib_name: str = "libzmq.a",
        jobs: int = 8,
        base_env: Optional[Mapping[str, str]] = None,
    ):
        """
        Args:
            runner: ExternalCommand runner (see zmqbuild.utils.cmd.cmd_util)
            toolchain: Toolchain from sdk_discovery.discover_toolchain()
            source_dir: Extracted libzmq source tree
            build_dir: Scratch directory holding <platform>/<arch> prefixes
            patch_file: Replacement for src/platform.hpp
            dependency_dist: Pre-built libsodium root (<dist>/<platform>)
            lib_name: Installed static library file name
            jobs: Parallel make jobs
            base_env: Environment snapshot every build starts from
        """
        self.runner = runner
        self.toolchain = toolchain
        self.source_dir = source_dir
        self.build_dir = build_dir
        self.patch_file = patch_file
        self.dependency_dist = dependency_dist
        self.lib_name = lib_name
        self.jobs = jobs
        self.base_env = dict(base_env if base_env is not None else os.environ)

    def output_dir(self, platform: Platform, arch: Architecture) -> str:
        return os.path.join(self.build_dir, platform.value, arch.value)

    def configure_args(self, profile: BuildProfile, prefix: str):
        return [
            "./configure",
            f"--prefix={prefix}",
            "--disable-shared",
            "--enable-static",
            f"--host={profile.host}",
            f"--with-libsodium={os.path.join(self.dependency_dist, profile.platform.value)}",
        ]

    def apply_patch(self):
        if not os.path.isfile(self.patch_file):
            raise PatchError(f"patch file not found: {self.patch_file}")
        target = os.path.join(self.source_dir, PATCH_TARGET)
        try:
            copy_file(self.patch_file, target)
        except OSError as e:
            raise PatchError(f"failed to copy {self.patch_file} to {target}: {e}")

    def build(self, profile: BuildProfile) -> BuildOutput:
        """
        Build and install libzmq for one profile.

        Raises:
            CommandError: configure, make or make install failed
            PatchError: platform.hpp could not be replaced
            BuildError: make install did not produce the library
        """
        print(f"Building {profile.name}...")
        prefix = self.output_dir(profile.platform, profile.arch)
        recreate_dir(prefix)
        env = build_environment(self.base_env, profile, self.toolchain)

        print(f"Configuring for {profile.arch.value}...")
        run_checked(self.runner, self.configure_args(profile, prefix), env=env, cwd=self.source_dir)

        self.apply_patch()

        print(f"Building {self.lib_name} for {profile.arch.value}...")
        run_checked(self.runner, ["make", "clean"], env=env, cwd=self.source_dir)
        run_checked(self.runner, ["make", f"-j{self.jobs}", "V=0"], env=env, cwd=self.source_dir)
        run_checked(self.runner, ["make", "install"], env=env, cwd=self.source_dir)

        library = os.path.join(prefix, "lib", self.lib_name)
        if not os.path.isfile(library):
            raise BuildError(f"make install did not produce {library}")
        return BuildOutput(
            platform=profile.platform,
            arch=profile.arch,
            library=library,
            include_dir=os.path.join(prefix, "include"),
        )
