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
Build plan table for Apple platforms.

Maps each (platform, architecture) pair to the toolchain settings needed to
cross-compile libzmq with its autotools build:
- Platform directory inside Xcode (iPhoneOS, iPhoneSimulator, MacOSX, ...)
- Host triple passed to ./configure --host
- SDK root, derived from the Xcode developer dir and the SDK version
- Preprocessor, compiler and linker flags

Supported matrix:
    iOS      armv7, armv7s, arm64 (device), i386, x86_64 (simulator)
    macOS    x86_64
    tvOS     arm64 (device), x86_64 (simulator)
    watchOS  armv7k (device), i386 (simulator)

Pairs outside the matrix raise UnsupportedTargetError; the pipeline decides
whether that skips the pair or aborts the run.
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Dict, NamedTuple, Optional, Tuple

from zmqbuild.build_scripts.build_errors import UnsupportedTargetError


class Architecture(Enum):
    ARMV7 = "armv7"
    ARMV7S = "armv7s"
    ARMV7K = "armv7k"
    ARM64 = "arm64"
    I386 = "i386"
    X86_64 = "x86_64"

    @classmethod
    def parse(cls, name: str) -> "Architecture":
        try:
            return cls(name.strip().lower())
        except ValueError:
            valid = ", ".join(a.value for a in cls)
            raise ValueError(f"unknown architecture '{name}', expected one of: {valid}")


class Platform(Enum):
    IOS = "ios"
    MACOS = "macos"
    TVOS = "tvos"
    WATCHOS = "watchos"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @property
    def version_min_flag(self) -> str:
        """Name used in -m<name>-version-min=<version>."""
        return _VERSION_MIN_FLAGS[self]

    @property
    def sdk_name(self) -> str:
        """Device SDK name as printed by `xcodebuild -showsdks` (-sdk <name><version>)."""
        return _SDK_NAMES[self]

    @property
    def nominal_archs(self) -> Tuple[Architecture, ...]:
        return NOMINAL_ARCHS[self]

    @classmethod
    def parse(cls, name: str) -> "Platform":
        try:
            return cls(name.strip().lower())
        except ValueError:
            valid = ", ".join(p.value for p in cls)
            raise ValueError(f"unknown platform '{name}', expected one of: {valid}")


_DISPLAY_NAMES = {
    Platform.IOS: "iOS",
    Platform.MACOS: "macOS",
    Platform.TVOS: "tvOS",
    Platform.WATCHOS: "watchOS",
}

_VERSION_MIN_FLAGS = {
    Platform.IOS: "ios",
    Platform.MACOS: "macosx",
    Platform.TVOS: "tvos",
    Platform.WATCHOS: "watchos",
}

_SDK_NAMES = {
    Platform.IOS: "iphoneos",
    Platform.MACOS: "macosx",
    Platform.TVOS: "appletvos",
    Platform.WATCHOS: "watchos",
}

# Architectures each platform nominally ships, in build order. i386 is still
# listed for macOS although the matrix no longer has a profile for it.
NOMINAL_ARCHS: Dict[Platform, Tuple[Architecture, ...]] = {
    Platform.IOS: (
        Architecture.ARMV7,
        Architecture.ARMV7S,
        Architecture.ARM64,
        Architecture.I386,
        Architecture.X86_64,
    ),
    Platform.MACOS: (Architecture.X86_64, Architecture.I386),
    Platform.TVOS: (Architecture.ARM64, Architecture.X86_64),
    Platform.WATCHOS: (Architecture.ARMV7K, Architecture.I386),
}

DEFAULT_MIN_VERSIONS: Dict[Platform, str] = {
    Platform.IOS: "9.0",
    Platform.MACOS: "10.11",
    Platform.TVOS: "9.0",
    Platform.WATCHOS: "2.0",
}

OPTIMIZATION_FLAG = "-Os"
BITCODE_FLAG = "-fembed-bitcode"
COMPILER_FLAGS = (OPTIMIZATION_FLAG, "-Qunused-arguments")
# 32-bit simulator and desktop slices
M32_FLAG = "-m32"
# 32-bit device slices
THUMB_FLAG = "-mthumb"


class _MatrixEntry(NamedTuple):
    platform_dir: str
    host: str
    m32: bool = False
    thumb: bool = False


BUILD_MATRIX: Dict[Tuple[Platform, Architecture], _MatrixEntry] = {
    (Platform.IOS, Architecture.ARMV7): _MatrixEntry("iPhoneOS", "armv7-apple-darwin", thumb=True),
    (Platform.IOS, Architecture.ARMV7S): _MatrixEntry("iPhoneOS", "armv7s-apple-darwin", thumb=True),
    (Platform.IOS, Architecture.ARM64): _MatrixEntry("iPhoneOS", "arm-apple-darwin"),
    (Platform.IOS, Architecture.I386): _MatrixEntry("iPhoneSimulator", "i386-apple-darwin", m32=True),
    (Platform.IOS, Architecture.X86_64): _MatrixEntry("iPhoneSimulator", "x86_64-apple-darwin"),
    (Platform.MACOS, Architecture.X86_64): _MatrixEntry("MacOSX", "x86_64-apple-darwin"),
    (Platform.TVOS, Architecture.ARM64): _MatrixEntry("AppleTVOS", "arm-apple-darwin"),
    (Platform.TVOS, Architecture.X86_64): _MatrixEntry("AppleTVSimulator", "x86_64-apple-darwin"),
    (Platform.WATCHOS, Architecture.ARMV7K): _MatrixEntry("WatchOS", "arm-apple-darwin", thumb=True),
    (Platform.WATCHOS, Architecture.I386): _MatrixEntry("WatchSimulator", "i386-apple-darwin", m32=True),
}


@dataclass(frozen=True)
class BuildProfile:
    """Everything needed to configure libzmq for one (platform, arch) pair."""
    platform: Platform
    arch: Architecture
    platform_dir: str
    host: str
    sdk_root: str
    min_version: str
    compiler_flags: Tuple[str, ...]
    preprocessor_flags: Tuple[str, ...]
    linker_flags: Tuple[str, ...]

    @property
    def name(self) -> str:
        return f"{self.platform.value}/{self.arch.value}"


def is_supported(platform: Platform, arch: Architecture) -> bool:
    return (platform, arch) in BUILD_MATRIX


def supported_architectures(platform: Platform) -> Tuple[Architecture, ...]:
    """Architectures of the matrix for a platform, in nominal order first."""
    archs = [a for a in platform.nominal_archs if is_supported(platform, a)]
    archs += [a for (p, a) in BUILD_MATRIX if p == platform and a not in archs]
    return tuple(archs)


def sdk_root_path(toolchain_root: str, platform_dir: str, sdk_version: str) -> str:
    """
    Path of an SDK inside the Xcode developer directory.

    Example:
        sdk_root_path("/Applications/Xcode.app/Contents/Developer", "iPhoneOS", "14.0")
        -> .../Platforms/iPhoneOS.platform/Developer/SDKs/iPhoneOS14.0.sdk
    """
    return os.path.join(
        toolchain_root,
        "Platforms",
        f"{platform_dir}.platform",
        "Developer",
        "SDKs",
        f"{platform_dir}{sdk_version}.sdk",
    )


def resolve_profile(
    platform: Platform,
    arch: Architecture,
    toolchain_root: str,
    sdk_version: Optional[str],
    min_version: Optional[str] = None,
    dependency_dist: Optional[str] = None,
) -> BuildProfile:
    """
    Resolve the build profile of a (platform, arch) pair.

    Args:
        platform: Target platform
        arch: Target CPU architecture
        toolchain_root: Xcode developer directory (xcode-select -print-path)
        sdk_version: SDK version reported by discovery for this platform
        min_version: Minimum OS version, defaults to DEFAULT_MIN_VERSIONS
        dependency_dist: Root of the pre-built libsodium distribution; its
            <platform>/include directory is added to the include path

    Returns:
        BuildProfile for the pair

    Raises:
        UnsupportedTargetError: the pair is not part of BUILD_MATRIX
        ValueError: no SDK version was given
    """
    entry = BUILD_MATRIX.get((platform, arch))
    if entry is None:
        raise UnsupportedTargetError(platform, arch)
    if not sdk_version:
        raise ValueError(f"no SDK version for {platform.display_name}")

    min_version = min_version or DEFAULT_MIN_VERSIONS[platform]
    sdk_root = sdk_root_path(toolchain_root, entry.platform_dir, sdk_version)

    cppflags = []
    ldflags = []
    if entry.m32:
        cppflags.append(M32_FLAG)
        ldflags.append(M32_FLAG)
    cppflags += [
        "-arch", arch.value,
        "-isysroot", sdk_root,
        f"-m{platform.version_min_flag}-version-min={min_version}",
        OPTIMIZATION_FLAG,
        BITCODE_FLAG,
    ]
    if dependency_dist:
        cppflags.append(f"-I{os.path.join(dependency_dist, platform.value, 'include')}")
    ldflags += ["-arch", arch.value, "-isysroot", sdk_root]
    if entry.thumb:
        ldflags.append(THUMB_FLAG)

    return BuildProfile(
        platform=platform,
        arch=arch,
        platform_dir=entry.platform_dir,
        host=entry.host,
        sdk_root=sdk_root,
        min_version=min_version,
        compiler_flags=COMPILER_FLAGS,
        preprocessor_flags=tuple(cppflags),
        linker_flags=tuple(ldflags),
    )
