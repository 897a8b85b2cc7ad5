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
Download and unpack the pinned libzmq source release.

    <build_dir>/zeromq-<version>.tar.gz   downloaded, then deleted
    <build_dir>/zeromq-<version>/         extracted, then renamed to
    <build_dir>/<source_dir_name>/        the canonical source directory
"""

import os
import sys
import tarfile
import urllib.request

from zmqbuild.build_scripts.build_errors import SourceStageError
from zmqbuild.build_scripts.build_utils import remove_path


def download_file(url: str, dest_path: str):
    """Download file from URL with progress indication"""
    print(f"   Downloading from {url}...")

    def reporthook(count, block_size, total_size):
        if total_size > 0:
            percent = min(int(count * block_size * 100 / total_size), 100)
            sys.stdout.write(f"\r   Progress: {percent}%")
            sys.stdout.flush()

    urllib.request.urlretrieve(url, dest_path, reporthook)
    print()
    print(f"   ✓ Downloaded to {dest_path}")


def extract_archive(archive_path: str, dest_dir: str):
    """Extract a .tar.gz archive into dest_dir."""
    print(f"   Extracting {os.path.basename(archive_path)}...")
    with tarfile.open(archive_path, "r:gz") as tar_ref:
        if hasattr(tarfile, "data_filter"):
            tar_ref.extractall(dest_dir, filter="data")
        else:
            tar_ref.extractall(dest_dir)


class SourceStager:
    """Fetch the zeromq release tarball into the scratch build directory."""

    def __init__(self, version, build_dir, url_template, source_dir_name="libzmq", fetch=None):
        """
        Args:
            version: libzmq release version, e.g. "4.1.5"
            build_dir: Scratch directory the archive is downloaded into
            url_template: Download URL with a {version} placeholder
            source_dir_name: Name of the extracted source directory
            fetch: Callable (url, dest_path) doing the download;
                defaults to download_file
        """
        self.version = version
        self.build_dir = build_dir
        self.url_template = url_template
        self.source_dir_name = source_dir_name
        self.fetch = fetch or download_file

    @property
    def tar_name(self) -> str:
        return f"zeromq-{self.version}"

    @property
    def url(self) -> str:
        return self.url_template.format(version=self.version)

    @property
    def source_dir(self) -> str:
        return os.path.join(self.build_dir, self.source_dir_name)

    def stage(self) -> str:
        """
        Download, extract and rename the source tree.

        Returns:
            Path of the canonical source directory

        Raises:
            SourceStageError: any step failed
        """
        print(f"==================Downloading zeromq {self.version}==================")
        os.makedirs(self.build_dir, exist_ok=True)
        archive = os.path.join(self.build_dir, f"{self.tar_name}.tar.gz")
        extracted = os.path.join(self.build_dir, self.tar_name)

        try:
            self.fetch(self.url, archive)
        except (OSError, ValueError) as e:
            remove_path(archive)
            raise SourceStageError(f"download of {self.url} failed: {e}")

        try:
            extract_archive(archive, self.build_dir)
        except (OSError, tarfile.TarError) as e:
            raise SourceStageError(f"extraction of {archive} failed: {e}")

        if not os.path.isdir(extracted):
            raise SourceStageError(
                f"expected directory {extracted} not found after extracting {archive}"
            )

        remove_path(self.source_dir)
        os.rename(extracted, self.source_dir)
        os.remove(archive)
        print(f"   ✓ Source ready at {self.source_dir}")
        return self.source_dir
