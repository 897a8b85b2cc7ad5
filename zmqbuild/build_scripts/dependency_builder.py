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
Build the libsodium dependency before libzmq.

libzmq is configured --with-libsodium=<dist>/<platform>, so the sibling
libsodium-ios checkout has to produce its per-platform distribution first.
Its own build script is run as-is from its directory.
"""

import os

from zmqbuild.build_scripts.build_errors import BuildError
from zmqbuild.build_scripts.build_utils import run_checked


class DependencyBuilder:
    def __init__(self, runner, settings, project_dir: str):
        """
        Args:
            runner: ExternalCommand runner
            settings: DependencySettings from the build config
            project_dir: Directory the settings' relative paths resolve against
        """
        self.runner = runner
        self.settings = settings
        self.project_dir = project_dir

    @property
    def directory(self) -> str:
        return os.path.join(self.project_dir, self.settings.directory)

    def build(self):
        """
        Run the dependency's build script.

        Raises:
            BuildError: the dependency checkout or its script is missing
            CommandError: the script failed
        """
        print(f"Building dependency '{self.settings.name}'...")
        script = os.path.join(self.directory, self.settings.build_script)
        if not os.path.isfile(script):
            raise BuildError(
                f"dependency build script not found: {script}",
                hint="check out libsodium-ios next to zmqbuild.toml, or pass --skip-dependency",
            )
        run_checked(self.runner, ["sh", self.settings.build_script], cwd=self.directory)
