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
Tests for Xcode toolchain discovery.

Run with: python3 -m pytest zmqbuild/build_scripts/test_sdk_discovery.py
"""

import unittest

from zmqbuild.build_scripts.build_errors import ToolchainError
from zmqbuild.build_scripts.build_plan import Platform
from zmqbuild.build_scripts.sdk_discovery import (
    FIND_LIPO_CMD,
    PRINT_PATH_CMD,
    SHOW_SDKS_CMD,
    discover_sdks,
    discover_toolchain,
    parse_sdk_versions,
)
from zmqbuild.utils.cmd.cmd_util import CommandResult, RecordingRunner

SHOWSDKS_OUTPUT = """iOS SDKs:
\tiOS 14.0                      \t-sdk iphoneos14.0

iOS Simulator SDKs:
\tSimulator - iOS 14.0          \t-sdk iphonesimulator14.0

macOS SDKs:
\tmacOS 10.15                   \t-sdk macosx10.15

tvOS SDKs:
\ttvOS 14.0                     \t-sdk appletvos14.0

tvOS Simulator SDKs:
\tSimulator - tvOS 14.0         \t-sdk appletvsimulator14.0

watchOS SDKs:
\twatchOS 7.0                   \t-sdk watchos7.0

watchOS Simulator SDKs:
\tSimulator - watchOS 7.0       \t-sdk watchsimulator7.0
"""


class TestParseSdkVersions(unittest.TestCase):
    def test_all_platforms(self):
        versions = parse_sdk_versions(SHOWSDKS_OUTPUT)
        self.assertEqual(
            versions,
            {
                Platform.IOS: "14.0",
                Platform.MACOS: "10.15",
                Platform.TVOS: "14.0",
                Platform.WATCHOS: "7.0",
            },
        )
        self.assertEqual(
            list(versions),
            [Platform.IOS, Platform.MACOS, Platform.TVOS, Platform.WATCHOS],
        )

    def test_missing_platform_absent(self):
        versions = parse_sdk_versions("iOS SDKs:\n\tiOS 13.2  -sdk iphoneos13.2\n")
        self.assertEqual(versions, {Platform.IOS: "13.2"})

    def test_highest_version_wins(self):
        output = "-sdk macosx10.14\n-sdk macosx10.9\n-sdk macosx10.15\n"
        self.assertEqual(parse_sdk_versions(output)[Platform.MACOS], "10.15")

    def test_simulator_only_not_matched(self):
        self.assertEqual(parse_sdk_versions("-sdk iphonesimulator14.0\n"), {})


class TestDiscover(unittest.TestCase):
    def test_discover_sdks(self):
        runner = RecordingRunner().on(SHOW_SDKS_CMD, CommandResult(0, SHOWSDKS_OUTPUT))
        versions = discover_sdks(runner)
        self.assertEqual(versions[Platform.WATCHOS], "7.0")
        self.assertEqual(runner.commands(), [SHOW_SDKS_CMD])

    def test_discover_sdks_failure(self):
        runner = RecordingRunner().on(SHOW_SDKS_CMD, CommandResult(1, "xcodebuild: error"))
        with self.assertRaises(ToolchainError) as ctx:
            discover_sdks(runner)
        self.assertIn("xcode-select --install", str(ctx.exception))

    def test_discover_toolchain(self):
        runner = (
            RecordingRunner()
            .on(PRINT_PATH_CMD, CommandResult(0, "/Applications/Xcode.app/Contents/Developer\n"))
            .on(FIND_LIPO_CMD, CommandResult(0, "/usr/bin/lipo\n"))
        )
        toolchain = discover_toolchain(runner)
        self.assertEqual(toolchain.root, "/Applications/Xcode.app/Contents/Developer")
        self.assertEqual(toolchain.lipo, "/usr/bin/lipo")
        self.assertEqual(
            toolchain.bin_dirs[0],
            "/Applications/Xcode.app/Contents/Developer/Toolchains/XcodeDefault.xctoolchain/usr/bin",
        )

    def test_discover_toolchain_empty_output(self):
        runner = RecordingRunner().on(PRINT_PATH_CMD, CommandResult(0, ""))
        with self.assertRaises(ToolchainError):
            discover_toolchain(runner)

    def test_lipo_not_found(self):
        runner = (
            RecordingRunner()
            .on(PRINT_PATH_CMD, CommandResult(0, "/Xcode\n"))
            .on(FIND_LIPO_CMD, CommandResult(72, "xcrun: error: unable to find utility \"lipo\""))
        )
        with self.assertRaises(ToolchainError):
            discover_toolchain(runner)


if __name__ == "__main__":
    unittest.main()
