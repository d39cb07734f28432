# --                                                            ; {{{1
#
# File        : kaiwa/misc.py
# Maintainer  : Felix C. Stegerman <flx@obfusk.net>
# Date        : 2017-11-20
#
# Copyright   : Copyright (C) 2017  Felix C. Stegerman
# Version     : v0.0.1
# License     : GPLv3+
#
# --                                                            ; }}}1

                                                                # {{{1
r"""
Lexical helpers: identifier patterns, keyword sets and name
mangling shared by the reader, the preprocessor and the toy
substrate.

>>> backtick_wrap("foo"), backtick_wrap("my name"), backtick_wrap("type")
('foo', '`my name`', '`type`')
"""                                                             # }}}1

import regex, sys

                                                                # {{{1
S_OPCHARS         = "!#%&*+-/:<=>?@\\^|~"
S_OPEN, S_CLOSE   = "([{", ")]}"

RX_OPCHAR         = "[" + regex.escape(S_OPCHARS) + "]"
RX_PLAINID        = r"[\p{L}_$][\p{L}\p{N}_$]*(?:(?<=_)" + RX_OPCHAR + "+)?"
RX_OPID           = RX_OPCHAR + "+"
RX_BACKQUOTED     = r"`[^`\n]+`"
RX_IDENT          = "(?:" + RX_PLAINID + "|" + RX_BACKQUOTED + "|" + \
                            RX_OPID + ")"

RX_VARID          = r"[\p{Ll}_][\p{L}\p{N}_$]*"

RX_PLAINID_C      = regex.compile(RX_PLAINID)
RX_VARID_C        = regex.compile(RX_VARID)
RX_OPID_C         = regex.compile(RX_OPID)
RX_BACKQUOTED_C   = regex.compile(RX_BACKQUOTED)
RX_IDENT_C        = regex.compile(RX_IDENT)

RX_NUMBER         = r"(?:0[xX][0-9a-fA-F]+|\d+(?:\.\d+)?(?:[eE][+-]?\d+)?" \
                    r"|\.\d+(?:[eE][+-]?\d+)?)[lLfFdD]?(?![\p{L}\p{N}_])"
RX_NUMBER_C       = regex.compile(RX_NUMBER)

RESERVED          = frozenset("""
  abstract case catch class def do else extends false final finally
  for forSome if implicit import lazy macro match new null object
  override package private protected return sealed super this throw
  trait try true type val var while with yield
  _ : = => <- <: <% >: # @
""".split())

MODIFIERS         = frozenset("""
  abstract final implicit lazy override private protected sealed
""".split())

# a statement cannot end with one of these
CONT_KEYWORDS     = frozenset("""
  abstract case catch class def do else extends final finally for
  forSome if implicit import lazy match new object override package
  private protected sealed throw trait try type val var while with
  yield
""".split())

# a line starting with one of these continues the previous one
LEADING_KEYWORDS  = frozenset("""
  catch else extends finally forSome match with yield
""".split())

# importing this forces a unit to be wrapped in an object
SPECIAL_OBJ_WRAP  = "special.wrap.obj"
                                                                # }}}1

def isident(s):                                                 # {{{1
  """
  Is the string a plain or operator identifier that needs no
  backticks?

  >>> isident("foo")
  True
  >>> isident("foo_+")
  True
  >>> isident("++")
  True
  >>> isident("42")
  False
  >>> isident("val")
  False
  >>> isident("=>")
  False
  >>> isident("子猫")
  True
  >>> isident("my name")
  False
  """

  return s not in RESERVED and \
    bool(RX_PLAINID_C.fullmatch(s) or RX_OPID_C.fullmatch(s))
                                                                # }}}1

def isvarid(s):                                                 # {{{1
  """
  Is the identifier a pattern variable (as opposed to a stable
  identifier or a wildcard)?

  >>> [ isvarid(x) for x in "x _x Some _ `x` val _*".split() ]
  [True, True, False, False, False, False, False]
  """

  return isident(s) and s.strip("_") != "" and \
    bool(RX_VARID_C.fullmatch(s))
                                                                # }}}1

def backtick_wrap(s):
  """Wrap a name in backticks unless it is a valid identifier."""
  return s if isident(s) else "`" + s + "`"

def decode(s):
  """
  Strip backticks from a (possibly quoted) identifier.

  >>> decode("`my name`"), decode("foo")
  ('my name', 'foo')
  """
  return s[1:-1] if RX_BACKQUOTED_C.fullmatch(s) else s

def is_synthetic(s):
  """Compiler-generated names (e.g. x$1) contain a dollar sign."""
  return "$" in s

def str_lit(s):
  r"""
  Quote a string as a string literal.

  >>> print(str_lit('say "hi"\\'))
  "say \"hi\"\\"
  """
  return '"' + s.replace("\\", "\\\\").replace('"', '\\"') + '"'

if __name__ == "__main__":
  import doctest
  if doctest.testmod()[0]: sys.exit(1)

# vim: set tw=70 sw=2 sts=2 et fdm=marker :
