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

import sys

from zmqbuild.cli import Cli
from zmqbuild.utils.context.context import CliContext


def main(argv=None):
    cli = Cli()
    cli.exec(CliContext(), cli.cli(argv))


if __name__ == "__main__":
    sys.exit(main())
