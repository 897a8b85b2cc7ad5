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
Build configuration loaded from zmqbuild.toml.

The file is optional; every key has a default matching the pinned libzmq
release and the libsodium-ios sibling checkout. Example:

    [library]
    version = "4.1.5"

    [build]
    jobs = 8
    missing_profile_policy = "warn"

    [platforms.ios]
    min_version = "9.0"
    archs = ["armv7", "armv7s", "arm64", "i386", "x86_64"]

    [dependency]
    directory = "libsodium-ios"
    build_script = "libsodium.sh"
    dist_dir = "libsodium-ios/libsodium_dist"

    [consumer]
    path = "../SwiftyZeroMQ"
"""

import os
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from zmqbuild.build_scripts.build_errors import ConfigError
from zmqbuild.build_scripts.build_plan import (
    DEFAULT_MIN_VERSIONS,
    Architecture,
    Platform,
)

CONFIG_FILE_NAME = "zmqbuild.toml"

DEFAULT_ZMQ_VERSION = "4.1.5"
DEFAULT_URL_TEMPLATE = (
    "https://github.com/zeromq/zeromq4-1/releases/download/"
    "v{version}/zeromq-{version}.tar.gz"
)
PATCHES_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.realpath(__file__))), "patches")
DEFAULT_PATCH_FILE = os.path.join(PATCHES_DIR, "platform-patched.hpp")

POLICY_WARN = "warn"
POLICY_ERROR = "error"
MISSING_PROFILE_POLICIES = (POLICY_WARN, POLICY_ERROR)


@dataclass(frozen=True)
class PlatformSettings:
    min_version: str
    archs: Tuple[Architecture, ...]


@dataclass(frozen=True)
class DependencySettings:
    """Pre-built libsodium used by ./configure --with-libsodium."""
    name: str = "libsodium-ios"
    directory: str = "libsodium-ios"
    build_script: str = "libsodium.sh"
    dist_dir: str = "libsodium-ios/libsodium_dist"


@dataclass(frozen=True)
class ConsumerSettings:
    path: str = "../SwiftyZeroMQ"
    libraries_subdir: str = "Libraries"


def _default_platforms() -> Dict[Platform, PlatformSettings]:
    return {
        p: PlatformSettings(DEFAULT_MIN_VERSIONS[p], p.nominal_archs) for p in Platform
    }


@dataclass
class BuildConfig:
    project_dir: str = field(default_factory=os.getcwd)
    version: str = DEFAULT_ZMQ_VERSION
    lib_name: str = "libzmq.a"
    url_template: str = DEFAULT_URL_TEMPLATE
    source_dir_name: str = "libzmq"
    build_dir: str = "libzmq_build"
    dist_dir: str = "dist"
    jobs: int = 8
    missing_profile_policy: str = POLICY_WARN
    patch_file: str = DEFAULT_PATCH_FILE
    platforms: Dict[Platform, PlatformSettings] = field(default_factory=_default_platforms)
    # None builds every discovered platform
    selected_platforms: Optional[Tuple[Platform, ...]] = None
    build_dependency: bool = True
    dependency: DependencySettings = field(default_factory=DependencySettings)
    consumer: ConsumerSettings = field(default_factory=ConsumerSettings)

    def path(self, value: str) -> str:
        """Resolve a configured path against the project directory."""
        return os.path.normpath(os.path.join(self.project_dir, os.path.expanduser(value)))

    @property
    def build_path(self) -> str:
        return self.path(self.build_dir)

    @property
    def dist_path(self) -> str:
        return self.path(self.dist_dir)

    @property
    def dependency_dist_path(self) -> str:
        return self.path(self.dependency.dist_dir)

    @property
    def patch_path(self) -> str:
        return self.path(self.patch_file)

    def min_version(self, platform: Platform) -> str:
        return self.platforms[platform].min_version

    def archs(self, platform: Platform) -> Tuple[Architecture, ...]:
        return self.platforms[platform].archs

    def check_output_dirs(self):
        """
        Reject build and dist directories the pipeline must not delete.

        Both are wiped at the start of a run and the build directory again at
        the end. Neither may be empty or contain the project directory, and
        the two must not overlap.

        Raises:
            ConfigError: an unsafe directory setting
        """
        for key, value in (("build_dir", self.build_dir), ("dist_dir", self.dist_dir)):
            if not value.strip():
                raise ConfigError(f"build.{key} must not be empty")
        project = os.path.abspath(self.project_dir)
        build_path = os.path.abspath(self.build_path)
        dist_path = os.path.abspath(self.dist_path)
        for key, path in (("build_dir", build_path), ("dist_dir", dist_path)):
            if _is_within(project, path):
                raise ConfigError(
                    f"build.{key} resolves to {path}, which contains the project directory {project}"
                )
        if _is_within(dist_path, build_path) or _is_within(build_path, dist_path):
            raise ConfigError(
                f"build.build_dir ({build_path}) and build.dist_dir ({dist_path}) must not overlap",
                hint="the build directory is deleted after a successful build",
            )


def _is_within(path: str, parent: str) -> bool:
    """True if path is parent itself or lies below it."""
    return os.path.commonpath([path, parent]) == parent


def _table(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = data.get(key, {})
    if not isinstance(value, dict):
        raise ConfigError(f"[{key}] must be a table in {CONFIG_FILE_NAME}")
    return value


def _string(table: Dict[str, Any], key: str, default: str, section: str) -> str:
    value = table.get(key, default)
    if not isinstance(value, str):
        raise ConfigError(f"{section}.{key} must be a string, got {value!r}")
    return value


def _parse_platforms(data: Dict[str, Any]) -> Dict[Platform, PlatformSettings]:
    platforms = _default_platforms()
    for name, table in _table(data, "platforms").items():
        try:
            platform = Platform.parse(name)
        except ValueError as e:
            raise ConfigError(f"[platforms.{name}]: {e}")
        if not isinstance(table, dict):
            raise ConfigError(f"[platforms.{name}] must be a table")
        section = f"platforms.{name}"
        min_version = _string(table, "min_version", DEFAULT_MIN_VERSIONS[platform], section)
        archs = platform.nominal_archs
        if "archs" in table:
            if not isinstance(table["archs"], list):
                raise ConfigError(f"{section}.archs must be a list of architecture names")
            try:
                archs = tuple(Architecture.parse(str(a)) for a in table["archs"])
            except ValueError as e:
                raise ConfigError(f"{section}.archs: {e}")
            duplicates = sorted({a.value for a in archs if archs.count(a) > 1})
            if duplicates:
                raise ConfigError(f"{section}.archs lists {', '.join(duplicates)} more than once")
        platforms[platform] = PlatformSettings(min_version, archs)
    return platforms


def config_from_dict(data: Dict[str, Any], project_dir: Optional[str] = None) -> BuildConfig:
    """Build a BuildConfig from parsed TOML data."""
    library = _table(data, "library")
    build = _table(data, "build")
    dependency = _table(data, "dependency")
    consumer = _table(data, "consumer")

    jobs = build.get("jobs", 8)
    if not isinstance(jobs, int) or isinstance(jobs, bool) or jobs < 1:
        raise ConfigError(f"build.jobs must be a positive integer, got {jobs!r}")

    policy = _string(build, "missing_profile_policy", POLICY_WARN, "build")
    if policy not in MISSING_PROFILE_POLICIES:
        raise ConfigError(
            f"build.missing_profile_policy must be one of {', '.join(MISSING_PROFILE_POLICIES)}, got '{policy}'"
        )

    defaults = DependencySettings()
    consumer_defaults = ConsumerSettings()
    config = BuildConfig(
        project_dir=os.path.abspath(project_dir or os.getcwd()),
        version=_string(library, "version", DEFAULT_ZMQ_VERSION, "library"),
        lib_name=_string(library, "lib_name", "libzmq.a", "library"),
        url_template=_string(library, "url_template", DEFAULT_URL_TEMPLATE, "library"),
        source_dir_name=_string(library, "source_dir_name", "libzmq", "library"),
        build_dir=_string(build, "build_dir", "libzmq_build", "build"),
        dist_dir=_string(build, "dist_dir", "dist", "build"),
        jobs=jobs,
        missing_profile_policy=policy,
        patch_file=_string(build, "patch_file", "", "build") or DEFAULT_PATCH_FILE,
        platforms=_parse_platforms(data),
        dependency=DependencySettings(
            name=_string(dependency, "name", defaults.name, "dependency"),
            directory=_string(dependency, "directory", defaults.directory, "dependency"),
            build_script=_string(dependency, "build_script", defaults.build_script, "dependency"),
            dist_dir=_string(dependency, "dist_dir", defaults.dist_dir, "dependency"),
        ),
        consumer=ConsumerSettings(
            path=_string(consumer, "path", consumer_defaults.path, "consumer"),
            libraries_subdir=_string(
                consumer, "libraries_subdir", consumer_defaults.libraries_subdir, "consumer"
            ),
        ),
    )
    config.check_output_dirs()
    return config


def load_build_config(config_file: Optional[str] = None, project_dir: Optional[str] = None) -> BuildConfig:
    """
    Load configuration from zmqbuild.toml.

    Args:
        config_file: Explicit config path; defaults to <project_dir>/zmqbuild.toml
        project_dir: Directory relative paths resolve against; defaults to the
            config file's directory, or the current working directory

    Returns:
        BuildConfig, with defaults when no file exists

    Raises:
        ConfigError: an explicit file is missing, or the file is invalid
    """
    if config_file is None:
        project_dir = project_dir or os.getcwd()
        config_file = os.path.join(project_dir, CONFIG_FILE_NAME)
        if not os.path.isfile(config_file):
            print(f"   ⚠️  Warning: {CONFIG_FILE_NAME} not found at {config_file}")
            print("   ⚠️  Using default configuration values")
            return config_from_dict({}, project_dir)
    elif not os.path.isfile(config_file):
        raise ConfigError(f"config file not found: {config_file}")

    project_dir = project_dir or os.path.dirname(os.path.abspath(config_file))
    try:
        with open(config_file, "rb") as f:
            toml_data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"Error reading {config_file}: {e}")
    return config_from_dict(toml_data, project_dir)
