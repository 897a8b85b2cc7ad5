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
Copy the universal libraries into the consuming Swift project.

    dist/ios/lib/libzmq.a  ->  ../SwiftyZeroMQ/Libraries/libzmq-ios.a
"""

import os
from typing import Iterable, List

from zmqbuild.build_scripts.build_errors import CopyError
from zmqbuild.build_scripts.build_plan import Platform
from zmqbuild.build_scripts.build_utils import copy_file


def consumer_lib_name(lib_name: str, platform: Platform) -> str:
    stem, ext = os.path.splitext(lib_name)
    return f"{stem}-{platform.value}{ext}"


def copy_to_consumer(
    dist_dir: str,
    consumer_dir: str,
    platforms: Iterable[Platform] = tuple(Platform),
    lib_name: str = "libzmq.a",
    libraries_subdir: str = "Libraries",
) -> List[str]:
    """
    Copy dist/<platform>/lib/<lib_name> of every platform into the consumer.

    Returns:
        Destination paths, in platform order

    Raises:
        CopyError: a platform's library is missing (it was skipped or failed
            upstream) or the copy itself failed
    """
    print(f"Copying to {os.path.basename(os.path.normpath(consumer_dir))}...")
    dst_dir = os.path.join(consumer_dir, libraries_subdir)
    sources = [
        (platform, os.path.join(dist_dir, platform.value, "lib", lib_name))
        for platform in platforms
    ]
    # Nothing is copied unless every platform has a library
    missing = [(platform, src) for platform, src in sources if not os.path.isfile(src)]
    if missing:
        names = ", ".join(platform.display_name for platform, _ in missing)
        raise CopyError(
            "\n".join(f"{src} not found" for _, src in missing),
            hint=f"run 'zmqbuild build' and check that {names} was built",
        )

    copied = []
    for platform, src in sources:
        dst = os.path.join(dst_dir, consumer_lib_name(lib_name, platform))
        try:
            copy_file(src, dst)
        except OSError as e:
            raise CopyError(f"failed to copy {src} to {dst}: {e}")
        print(f"   {src} -> {dst}")
        copied.append(dst)
    return copied
