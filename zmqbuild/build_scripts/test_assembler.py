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
Tests for merging architecture libraries into the distribution tree.

Run with: python3 -m pytest zmqbuild/build_scripts/test_assembler.py
"""

import os
import shutil
import tempfile
import unittest

from zmqbuild.build_scripts.arch_builder import BuildOutput
from zmqbuild.build_scripts.assembler import Assembler
from zmqbuild.build_scripts.build_errors import CommandError
from zmqbuild.build_scripts.build_plan import Architecture, Platform
from zmqbuild.build_scripts.sdk_discovery import Toolchain
from zmqbuild.utils.cmd.cmd_util import CommandResult, RecordingRunner

LIPO = "/Applications/Xcode.app/Contents/Developer/Toolchains/XcodeDefault.xctoolchain/usr/bin/lipo"


class TestAssembler(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        self.build_dir = os.path.join(self.tmp, "libzmq_build")
        self.dist_dir = os.path.join(self.tmp, "dist")
        self.runner = RecordingRunner()
        self.assembler = Assembler(
            self.runner,
            Toolchain(root="/Applications/Xcode.app/Contents/Developer", lipo=LIPO),
            self.build_dir,
            self.dist_dir,
        )

    def tearDown(self):
        shutil.rmtree(self.tmp)

    def make_output(self, platform, arch, header="zmq.h"):
        prefix = os.path.join(self.build_dir, platform.value, arch.value)
        os.makedirs(os.path.join(prefix, "lib"))
        os.makedirs(os.path.join(prefix, "include"))
        open(os.path.join(prefix, "lib", "libzmq.a"), "wb").close()
        with open(os.path.join(prefix, "include", header), "w") as f:
            f.write(f"/* {arch.value} */\n")
        return BuildOutput(
            platform=platform,
            arch=arch,
            library=os.path.join(prefix, "lib", "libzmq.a"),
            include_dir=os.path.join(prefix, "include"),
        )

    def test_single_lipo_call(self):
        outputs = [
            self.make_output(Platform.TVOS, Architecture.ARM64),
            self.make_output(Platform.TVOS, Architecture.X86_64),
        ]
        artifact = self.assembler.assemble(Platform.TVOS, outputs)

        dst = os.path.join(self.dist_dir, "tvos", "lib", "libzmq.a")
        self.assertEqual(
            self.runner.commands(),
            [[LIPO, "-create", outputs[0].library, outputs[1].library, "-output", dst]],
        )
        self.assertEqual(artifact.library, dst)
        self.assertEqual(artifact.platform, Platform.TVOS)
        self.assertTrue(os.path.isdir(os.path.dirname(dst)))

    def test_headers_copied_from_first_arch(self):
        outputs = [
            self.make_output(Platform.WATCHOS, Architecture.ARMV7K),
            self.make_output(Platform.WATCHOS, Architecture.I386),
        ]
        artifact = self.assembler.assemble(Platform.WATCHOS, outputs)

        with open(os.path.join(artifact.include_dir, "zmq.h")) as f:
            self.assertEqual(f.read(), "/* armv7k */\n")

    def test_headers_fall_back_to_build_tree(self):
        output = self.make_output(Platform.MACOS, Architecture.X86_64, header="zmq_utils.h")
        missing = BuildOutput(
            platform=output.platform,
            arch=output.arch,
            library=output.library,
            include_dir=os.path.join(self.tmp, "nowhere"),
        )
        artifact = self.assembler.assemble(Platform.MACOS, [missing])
        self.assertTrue(os.path.isfile(os.path.join(artifact.include_dir, "zmq_utils.h")))

    def test_empty_platform_skipped(self):
        self.assertIsNone(self.assembler.assemble(Platform.IOS, []))
        self.assertEqual(self.runner.calls, [])
        self.assertFalse(os.path.exists(os.path.join(self.dist_dir, "ios")))

    def test_lipo_failure(self):
        self.runner.on([LIPO], CommandResult(1, "fatal error: lipo: same architectures"))
        outputs = [self.make_output(Platform.IOS, Architecture.ARM64)]
        with self.assertRaises(CommandError):
            self.assembler.assemble(Platform.IOS, outputs)


if __name__ == "__main__":
    unittest.main()
