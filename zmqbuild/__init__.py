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

"""Cross-compile libzmq for Apple platforms into universal static libraries."""

__version__ = "1.0.0"
