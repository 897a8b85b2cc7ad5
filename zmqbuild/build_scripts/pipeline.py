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
Pipeline driver: download, cross-compile and merge libzmq for Apple platforms.

Stages run strictly in order, one architecture at a time:

    INIT       delete and recreate the scratch build dir and dist dir
    DISCOVER   toolchain location and SDK versions
    STAGE      libsodium dependency (optional) and libzmq source download
    BUILD      every (platform, arch) pair in discovery / config order
    ASSEMBLE   lipo + headers for every discovered platform
    CLEANUP    delete the scratch build dir, keep dist

A fatal error in any stage leaves the pipeline in ABORTED and propagates the
exception; nothing after it runs and the scratch tree is kept for inspection.
"""

import os
import time
from enum import Enum
from typing import Dict, List, Mapping, Optional

from zmqbuild.build_scripts.arch_builder import ArchBuilder, BuildOutput
from zmqbuild.build_scripts.assembler import Assembler, DistributionArtifact
from zmqbuild.build_scripts.build_config import POLICY_ERROR, BuildConfig
from zmqbuild.build_scripts.build_errors import UnsupportedTargetError
from zmqbuild.build_scripts.build_plan import BuildProfile, Platform, resolve_profile
from zmqbuild.build_scripts.build_utils import format_elapsed, recreate_dir, remove_path
from zmqbuild.build_scripts.dependency_builder import DependencyBuilder
from zmqbuild.build_scripts.sdk_discovery import discover_sdks, discover_toolchain
from zmqbuild.build_scripts.source_stager import SourceStager
from zmqbuild.utils.cmd.cmd_util import SubprocessRunner


class PipelineState(Enum):
    INIT = "init"
    DISCOVER = "discover"
    STAGE = "stage"
    BUILD = "build"
    ASSEMBLE = "assemble"
    CLEANUP = "cleanup"
    DONE = "done"
    ABORTED = "aborted"


class BuildPipeline:
    def __init__(
        self,
        config: BuildConfig,
        runner=None,
        fetch=None,
        base_env: Optional[Mapping[str, str]] = None,
    ):
        """
        Args:
            config: Build configuration
            runner: ExternalCommand runner, defaults to SubprocessRunner
            fetch: Download callable for the source stager
            base_env: Environment every build command starts from,
                defaults to a snapshot of os.environ
        """
        self.config = config
        self.runner = runner or SubprocessRunner()
        self.fetch = fetch
        self.base_env = dict(base_env if base_env is not None else os.environ)
        self.state = PipelineState.INIT
        self.toolchain = None
        self.sdk_versions: Dict[Platform, str] = {}
        self.skipped: List[str] = []

    def _enter(self, state: PipelineState):
        self.state = state

    def run(self) -> Dict[Platform, DistributionArtifact]:
        """
        Run every stage and return the distribution artifact of each platform.

        Raises:
            BuildError: on the first fatal failure
        """
        before_time = time.time()
        try:
            self._init_dirs()
            platforms = self._discover()
            source_dir = self._stage()
            outputs = self._build_all(platforms, source_dir)
            artifacts = self._assemble_all(platforms, outputs)
            self._cleanup()
        except BaseException:
            self.state = PipelineState.ABORTED
            raise
        self._enter(PipelineState.DONE)

        print(time.strftime("%Y-%m-%d %H:%M:%S", time.localtime()))
        print("==================Output========================")
        for artifact in artifacts.values():
            print(artifact.library)
        print(format_elapsed(before_time))
        return artifacts

    def _init_dirs(self):
        self._enter(PipelineState.INIT)
        self.config.check_output_dirs()
        recreate_dir(self.config.build_path)
        recreate_dir(self.config.dist_path)

    def _discover(self) -> List[Platform]:
        self._enter(PipelineState.DISCOVER)
        self.toolchain = discover_toolchain(self.runner)
        print(f"Using Xcode developer directory {self.toolchain.root}")
        self.sdk_versions = discover_sdks(self.runner)

        selected = self.config.selected_platforms
        if selected is not None:
            for platform in selected:
                if platform not in self.sdk_versions:
                    print(f"WARNING: no {platform.display_name} SDK found, skipping {platform.value}")
            return [p for p in self.sdk_versions if p in selected]

        for platform in Platform:
            if platform not in self.sdk_versions:
                print(f"WARNING: no {platform.display_name} SDK found, skipping {platform.value}")
        return list(self.sdk_versions)

    def _stage(self) -> str:
        self._enter(PipelineState.STAGE)
        if self.config.build_dependency and self.config.dependency.build_script:
            DependencyBuilder(self.runner, self.config.dependency, self.config.project_dir).build()
        stager = SourceStager(
            self.config.version,
            self.config.build_path,
            self.config.url_template,
            self.config.source_dir_name,
            fetch=self.fetch,
        )
        return stager.stage()

    def plan(self, platform: Platform) -> List[BuildProfile]:
        """
        Profiles to build for a discovered platform, in configured arch order.

        Pairs missing from the build matrix are skipped with a warning, or
        raise UnsupportedTargetError when the policy is "error".
        """
        profiles = []
        for arch in self.config.archs(platform):
            try:
                profiles.append(
                    resolve_profile(
                        platform,
                        arch,
                        self.toolchain.root,
                        self.sdk_versions[platform],
                        self.config.min_version(platform),
                        self.config.dependency_dist_path,
                    )
                )
            except UnsupportedTargetError as e:
                if self.config.missing_profile_policy == POLICY_ERROR:
                    raise
                print(f"WARNING: {e}, skipping")
                self.skipped.append(f"{platform.value}/{arch.value}")
        return profiles

    def _build_all(self, platforms: List[Platform], source_dir: str) -> Dict[Platform, List[BuildOutput]]:
        self._enter(PipelineState.BUILD)
        builder = ArchBuilder(
            self.runner,
            self.toolchain,
            source_dir=source_dir,
            build_dir=self.config.build_path,
            patch_file=self.config.patch_path,
            dependency_dist=self.config.dependency_dist_path,
            lib_name=self.config.lib_name,
            jobs=self.config.jobs,
            base_env=self.base_env,
        )
        outputs: Dict[Platform, List[BuildOutput]] = {}
        for platform in platforms:
            print(f"==================build {platform.display_name} "
                  f"(SDK {self.sdk_versions[platform]})==================")
            outputs[platform] = [builder.build(profile) for profile in self.plan(platform)]
        return outputs

    def _assemble_all(self, platforms: List[Platform], outputs: Dict[Platform, List[BuildOutput]]):
        self._enter(PipelineState.ASSEMBLE)
        assembler = Assembler(
            self.runner,
            self.toolchain,
            self.config.build_path,
            self.config.dist_path,
            self.config.lib_name,
        )
        artifacts: Dict[Platform, DistributionArtifact] = {}
        for platform in platforms:
            artifact = assembler.assemble(platform, outputs.pop(platform, []))
            if artifact is not None:
                artifacts[platform] = artifact
        return artifacts

    def _cleanup(self):
        self._enter(PipelineState.CLEANUP)
        remove_path(self.config.build_path)
