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
Queries against the installed Xcode toolchain.

- discover_sdks(): platform SDK versions from `xcodebuild -showsdks`
- discover_toolchain(): developer directory and lipo location
"""

import os
import re
from dataclasses import dataclass
from typing import Dict, Tuple

from zmqbuild.build_scripts.build_errors import ToolchainError
from zmqbuild.build_scripts.build_plan import Platform

SHOW_SDKS_CMD = ["xcodebuild", "-showsdks"]
PRINT_PATH_CMD = ["xcode-select", "-print-path"]
FIND_LIPO_CMD = ["xcrun", "-sdk", "iphoneos", "-find", "lipo"]

XCODE_HINT = "Install Xcode and its command line tools: xcode-select --install"

# `-sdk iphoneos14.0`; simulator SDKs (iphonesimulator14.0) never match
_SDK_PATTERNS = {
    platform: re.compile(r"-sdk\s+%s(\d+(?:\.\d+)*)\b" % platform.sdk_name)
    for platform in Platform
}


@dataclass(frozen=True)
class Toolchain:
    """Location of the Xcode developer directory and its tools."""
    root: str
    lipo: str

    @property
    def bin_dirs(self) -> Tuple[str, ...]:
        toolchain = os.path.join(self.root, "Toolchains", "XcodeDefault.xctoolchain", "usr")
        return (os.path.join(toolchain, "bin"), os.path.join(toolchain, "sbin"))


def _version_key(version: str) -> Tuple[int, ...]:
    return tuple(int(x) for x in version.split("."))


def parse_sdk_versions(output: str) -> Dict[Platform, str]:
    """
    Extract the highest SDK version of every platform from `xcodebuild -showsdks`.

    Platforms appear in the order their SDK first shows up in the output;
    platforms without a matching line are absent.
    """
    versions: Dict[Platform, str] = {}
    for line in output.splitlines():
        for platform, pattern in _SDK_PATTERNS.items():
            match = pattern.search(line)
            if not match:
                continue
            version = match.group(1)
            current = versions.get(platform)
            if current is None or _version_key(version) > _version_key(current):
                versions[platform] = version
    return versions


def discover_sdks(runner) -> Dict[Platform, str]:
    """Run `xcodebuild -showsdks` once and parse the platform SDK versions."""
    result = runner.run(SHOW_SDKS_CMD)
    if not result.ok:
        raise ToolchainError(
            f"'{' '.join(SHOW_SDKS_CMD)}' failed ({result.returncode}):\n{result.tail()}",
            hint=XCODE_HINT,
        )
    versions = parse_sdk_versions(result.output)
    for platform, version in versions.items():
        print(f"Found {platform.display_name} SDK {version}")
    return versions


def _query(runner, args) -> str:
    result = runner.run(args)
    value = result.output.strip().splitlines()[-1].strip() if result.output.strip() else ""
    if not result.ok or not value:
        raise ToolchainError(
            f"'{' '.join(args)}' failed ({result.returncode}): {result.output.strip()}",
            hint=XCODE_HINT,
        )
    return value


def discover_toolchain(runner) -> Toolchain:
    """Locate the Xcode developer directory and the lipo executable."""
    root = _query(runner, PRINT_PATH_CMD)
    lipo = _query(runner, FIND_LIPO_CMD)
    return Toolchain(root=root, lipo=lipo)
