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
Merge the per-architecture libraries of a platform into a universal archive.

Output layout:
    <dist_dir>/<platform>/lib/<lib_name>   lipo -create of every arch build
    <dist_dir>/<platform>/include/         headers of the first arch found
"""

import os
from dataclasses import dataclass
from typing import List, Optional, Sequence

from zmqbuild.build_scripts.arch_builder import BuildOutput
from zmqbuild.build_scripts.build_plan import Platform
from zmqbuild.build_scripts.build_utils import copy_tree, run_checked


@dataclass(frozen=True)
class DistributionArtifact:
    platform: Platform
    library: str
    include_dir: str


class Assembler:
    def __init__(self, runner, toolchain, build_dir: str, dist_dir: str, lib_name: str = "libzmq.a"):
        self.runner = runner
        self.toolchain = toolchain
        self.build_dir = build_dir
        self.dist_dir = dist_dir
        self.lib_name = lib_name

    def lipo_libs(self, src_libs: Sequence[str], dst_lib: str):
        """Create a universal binary from architecture-specific libraries."""
        os.makedirs(os.path.dirname(dst_lib), exist_ok=True)
        run_checked(self.runner, [self.toolchain.lipo, "-create"] + list(src_libs) + ["-output", dst_lib])

    def _header_candidates(self, platform: Platform, outputs: Sequence[BuildOutput]) -> List[str]:
        candidates = [o.include_dir for o in outputs]
        platform_dir = os.path.join(self.build_dir, platform.value)
        if os.path.isdir(platform_dir):
            for name in sorted(os.listdir(platform_dir)):
                path = os.path.join(platform_dir, name, "include")
                if path not in candidates:
                    candidates.append(path)
        return candidates

    def copy_headers(self, platform: Platform, outputs: Sequence[BuildOutput], dst_dir: str) -> bool:
        # Headers do not depend on the architecture, the first one found is enough
        for include_dir in self._header_candidates(platform, outputs):
            if os.path.isdir(include_dir):
                copy_tree(include_dir, dst_dir)
                return True
        return False

    def assemble(self, platform: Platform, outputs: Sequence[BuildOutput]) -> Optional[DistributionArtifact]:
        """
        Produce the distribution artifact of one platform.

        Returns:
            DistributionArtifact, or None when the platform built nothing

        Raises:
            CommandError: lipo failed
        """
        if not outputs:
            print(f"WARNING: no libraries were built for {platform.display_name}, skipping")
            return None

        print(f"==================Assembling {platform.display_name}==================")
        platform_dist = os.path.join(self.dist_dir, platform.value)
        dst_lib = os.path.join(platform_dist, "lib", self.lib_name)
        self.lipo_libs([o.library for o in outputs], dst_lib)

        dst_include = os.path.join(platform_dist, "include")
        if not self.copy_headers(platform, outputs, dst_include):
            print(f"WARNING: no header directory found for {platform.display_name}")
        print(dst_lib)
        return DistributionArtifact(platform=platform, library=dst_lib, include_dir=dst_include)
