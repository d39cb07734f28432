# --                                                            ; {{{1
#
# File        : kaiwa/__init__.py
# Maintainer  : Felix C. Stegerman <flx@obfusk.net>
# Date        : 2017-11-20
#
# Copyright   : Copyright (C) 2017  Felix C. Stegerman
# Version     : v0.0.1
# License     : GPLv3+
#
# --                                                            ; }}}1

"""kaiwa - incremental execution core for a compiled-language REPL"""

__version__ = "0.0.1"

# vim: set tw=70 sw=2 sts=2 et fdm=marker :
