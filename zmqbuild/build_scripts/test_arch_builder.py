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
Tests for the single-architecture configure/make/install step.

Run with: python3 -m pytest zmqbuild/build_scripts/test_arch_builder.py
"""

import os
import shutil
import tempfile
import unittest

from zmqbuild.build_scripts.arch_builder import ArchBuilder, build_environment
from zmqbuild.build_scripts.build_errors import BuildError, CommandError, PatchError
from zmqbuild.build_scripts.build_plan import Architecture, Platform, resolve_profile
from zmqbuild.build_scripts.sdk_discovery import Toolchain
from zmqbuild.utils.cmd.cmd_util import CommandResult, RecordingRunner

XCODE = "/Applications/Xcode.app/Contents/Developer"
TOOLCHAIN = Toolchain(root=XCODE, lipo="/usr/bin/lipo")
BASE_ENV = {"PATH": "/usr/bin:/bin", "HOME": "/Users/dev", "CPPFLAGS": "-DLEAKED"}


class FakeAutotools:
    """Installs a fake library into the --prefix given to ./configure."""

    def __init__(self, runner):
        self.prefix = None
        runner.on(["./configure"], self.configure)
        runner.on(["make", "install"], self.install)

    def configure(self, args, env, cwd):
        self.prefix = next(a.split("=", 1)[1] for a in args if a.startswith("--prefix="))

    def install(self, args, env, cwd):
        os.makedirs(os.path.join(self.prefix, "lib"), exist_ok=True)
        os.makedirs(os.path.join(self.prefix, "include"), exist_ok=True)
        open(os.path.join(self.prefix, "lib", "libzmq.a"), "wb").close()
        open(os.path.join(self.prefix, "include", "zmq.h"), "w").close()


class TestBuildEnvironment(unittest.TestCase):
    def test_overrides_toolchain_variables(self):
        profile = resolve_profile(Platform.IOS, Architecture.ARM64, XCODE, "14.0")
        env = build_environment(BASE_ENV, profile, TOOLCHAIN)

        self.assertEqual(env["DEVELOPER_DIR"], XCODE)
        self.assertEqual(env["SDKROOT"], profile.sdk_root)
        self.assertEqual(env["CPPFLAGS"], " ".join(profile.preprocessor_flags))
        self.assertEqual(env["CXXFLAGS"], "-Os -Qunused-arguments")
        self.assertEqual(env["LDFLAGS"], " ".join(profile.linker_flags))
        self.assertEqual(env["HOME"], "/Users/dev")
        self.assertTrue(env["PATH"].startswith(TOOLCHAIN.bin_dirs[0] + os.pathsep))
        self.assertTrue(env["PATH"].endswith("/usr/bin:/bin"))

    def test_base_env_untouched(self):
        base = dict(BASE_ENV)
        profile = resolve_profile(Platform.IOS, Architecture.I386, XCODE, "14.0")
        build_environment(base, profile, TOOLCHAIN)
        self.assertEqual(base, BASE_ENV)


class TestArchBuilder(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        self.source_dir = os.path.join(self.tmp, "libzmq_build", "libzmq")
        os.makedirs(os.path.join(self.source_dir, "src"))
        with open(os.path.join(self.source_dir, "src", "platform.hpp"), "w") as f:
            f.write("#define HAVE_CLOCK_GETTIME 1\n")
        self.patch_file = os.path.join(self.tmp, "platform-patched.hpp")
        with open(self.patch_file, "w") as f:
            f.write("/* #undef HAVE_CLOCK_GETTIME */\n")
        self.runner = RecordingRunner()
        self.autotools = FakeAutotools(self.runner)
        self.builder = ArchBuilder(
            self.runner,
            TOOLCHAIN,
            source_dir=self.source_dir,
            build_dir=os.path.join(self.tmp, "libzmq_build"),
            patch_file=self.patch_file,
            dependency_dist="/dep/libsodium_dist",
            jobs=4,
            base_env=BASE_ENV,
        )

    def tearDown(self):
        shutil.rmtree(self.tmp)

    def profile(self, platform=Platform.IOS, arch=Architecture.ARMV7):
        return resolve_profile(platform, arch, XCODE, "14.0")

    def test_command_order(self):
        output = self.builder.build(self.profile())
        prefix = os.path.join(self.tmp, "libzmq_build", "ios", "armv7")

        self.assertEqual(
            self.runner.commands(),
            [
                [
                    "./configure",
                    f"--prefix={prefix}",
                    "--disable-shared",
                    "--enable-static",
                    "--host=armv7-apple-darwin",
                    "--with-libsodium=/dep/libsodium_dist/ios",
                ],
                ["make", "clean"],
                ["make", "-j4", "V=0"],
                ["make", "install"],
            ],
        )
        for call in self.runner.calls:
            self.assertEqual(call.cwd, self.source_dir)
        self.assertEqual(output.library, os.path.join(prefix, "lib", "libzmq.a"))
        self.assertEqual(output.include_dir, os.path.join(prefix, "include"))

    def test_patch_applied(self):
        self.builder.build(self.profile())
        with open(os.path.join(self.source_dir, "src", "platform.hpp")) as f:
            self.assertIn("#undef HAVE_CLOCK_GETTIME", f.read())

    def test_missing_patch_file(self):
        os.remove(self.patch_file)
        with self.assertRaises(PatchError):
            self.builder.build(self.profile())
        self.assertEqual(self.runner.commands()[-1][0], "./configure")

    def test_environment_isolated_between_builds(self):
        self.builder.build(self.profile(Platform.IOS, Architecture.I386))
        self.builder.build(self.profile(Platform.IOS, Architecture.ARM64))

        configure_calls = self.runner.calls_of("configure")
        i386_env = configure_calls[0].env
        arm64_env = configure_calls[1].env
        self.assertIn("-m32", i386_env["CPPFLAGS"].split())
        self.assertNotIn("-m32", arm64_env["CPPFLAGS"].split())
        self.assertNotIn("-m32", arm64_env["LDFLAGS"].split())
        self.assertNotIn("-DLEAKED", arm64_env["CPPFLAGS"])
        self.assertIn("iPhoneOS14.0.sdk", arm64_env["SDKROOT"])
        self.assertIn("iPhoneSimulator14.0.sdk", i386_env["SDKROOT"])

    def test_prefix_recreated(self):
        stale = os.path.join(self.tmp, "libzmq_build", "ios", "armv7", "stale.o")
        os.makedirs(os.path.dirname(stale))
        open(stale, "w").close()
        self.builder.build(self.profile())
        self.assertFalse(os.path.exists(stale))

    def test_make_failure_stops_build(self):
        self.runner.on(["make", "-j4"], CommandResult(2, "error: clock_gettime"))
        with self.assertRaises(CommandError) as ctx:
            self.builder.build(self.profile())
        self.assertEqual(ctx.exception.returncode, 2)
        self.assertIn("clock_gettime", ctx.exception.output)
        self.assertNotIn(["make", "install"], self.runner.commands())

    def test_configure_failure_stops_build(self):
        self.runner.on(["./configure"], CommandResult(1, "configure: error: C compiler cannot create executables"))
        with self.assertRaises(CommandError):
            self.builder.build(self.profile())
        self.assertEqual(len(self.runner.calls), 1)

    def test_missing_library_after_install(self):
        self.runner.on(["make", "install"], CommandResult(0, ""))
        with self.assertRaises(BuildError):
            self.builder.build(self.profile())


if __name__ == "__main__":
    unittest.main()
