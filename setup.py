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

from setuptools import setup, find_packages

ALL_PROGRAM_ENTRIES = ["zmqbuild = zmqbuild.main:main"]

with open("README.md", "r") as f:
    long_description = f.read()

setup(
    name="zmqbuild",
    version="1.0.0",
    description="Builds universal libzmq static libraries for Apple platforms.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="zmqbuild Project Authors",
    packages=find_packages(include=["zmqbuild", "zmqbuild.*"]),
    package_data={"zmqbuild": ["patches/*.hpp"]},
    include_package_data=True,
    python_requires=">=3.8",
    install_requires=[
        'tomli>=2.0.0; python_version < "3.11"',
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: Implementation :: CPython",
        "Operating System :: MacOS :: MacOS X",
    ],
    zip_safe=False,
    entry_points={"console_scripts": ALL_PROGRAM_ENTRIES},
)
