# --                                                            ; {{{1
#
# File        : kaiwa/data.py
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
Errors, parsed-statement trees and the result values passed between
the splitter, the preprocessor, the unit builder and the engine.

>>> Failure(COMPILE_ERROR, "not found: value x")
Failure(kind='CompileError', message='not found: value x')
>>> INCOMPLETE, SKIP, INTERRUPTED
(Incomplete, Skip, Interrupted)
"""                                                             # }}}1

import sys

from collections import namedtuple

# === Exceptions ===

class KaiwaError(Exception):
  """Base class for kaiwa errors"""

class ParseError(KaiwaError):
  """Definitively malformed input."""
  def __init__(self, msg, loc = None):
    super().__init__(msg if loc is None else
                     "{} (at char {})".format(msg, loc))
    self.loc = loc

class ClassificationFailure(KaiwaError):
  """Statements that do not survive being re-parsed on their own."""
  def __init__(self, messages):
    super().__init__("\n".join(messages))
    self.messages = tuple(messages)

class CompileError(KaiwaError):
  """Diagnostics reported by the compiler service."""
  def __init__(self, diagnostics):
    if isinstance(diagnostics, str): diagnostics = [diagnostics]
    super().__init__("\n".join(diagnostics))
    self.diagnostics = tuple(diagnostics)

class RuntimeFault(KaiwaError):
  """Fault raised while running otherwise valid code."""

class Interrupted(KaiwaError):
  """Evaluation cancelled by the user."""

class BackendError(KaiwaError):
  """The compiler/loader substrate could not be set up."""

# === Declaration Kinds ===

OBJECT, CLASS, TRAIT, FUNCTION = "object", "class", "trait", "function"
TYPE, VALUE, IMPORT, EXPRESSION = "type", "value", "import", "expression"

KINDS = (OBJECT, CLASS, TRAIT, FUNCTION, TYPE, VALUE, IMPORT, EXPRESSION)

# === Splitter ===

class Statement(namedtuple("Statement", "text index".split())):
  """Top-level statement with its position in the input."""
  def __str__(self): return self.text

class Complete(namedtuple("Complete", "statements".split())):
  """Buffer split into complete statements."""

class _Singleton(object):
  def __init__(self, name): self.name = name
  def __repr__(self): return self.name

INCOMPLETE  = _Singleton("Incomplete")
SKIP        = _Singleton("Skip")
INTERRUPTED = _Singleton("Interrupted")

# === Trees ===

ModuleDef = namedtuple("ModuleDef", "name".split())
ClassDef  = namedtuple("ClassDef" , "name is_trait".split())
DefDef    = namedtuple("DefDef"   , "name".split())
TypeDef   = namedtuple("TypeDef"  , "name".split())
ValDef    = namedtuple("ValDef"   , "name is_lazy is_var synthetic".split())
Import    = namedtuple("Import"   , "path".split())
Expr      = namedtuple("Expr"     , "code".split())

# === Preprocessor ===

class Output(namedtuple("Output",
                        "kind code printers bindings imports".split())):
  """
  Rewritten source for one statement, the display instructions to
  evaluate when its unit runs, and the names it binds and imports.
  """

Binding = namedtuple("Binding", "name kind is_lazy".split())

# === Session Scope ===

ImportEntry   = namedtuple("ImportEntry" , "path origin".split())
BindingEntry  = namedtuple("BindingEntry",
                           "name origin is_lazy kind".split())

class Snapshot(namedtuple("Snapshot",
                          "version imports bindings".split())):
  """Immutable view of the session scope."""
  def __len__(self): return len(self.imports) + len(self.bindings)

class Unit(namedtuple("Unit", """wrapper_id name holder source
                                 imports bindings""".split())):
  """Self-contained compilable program fragment."""
  @property
  def entry(self): return self.holder + ".$main()"

# === Results ===

Buffer  = namedtuple("Buffer" , "code".split())
Success = namedtuple("Success", "text bindings imports".split())
Failure = namedtuple("Failure", "kind message".split())

PARSE_ERROR, CLASSIFICATION_FAILURE = "ParseError", "ClassificationFailure"
COMPILE_ERROR, RUNTIME_ERROR        = "CompileError", "RuntimeError"

if __name__ == "__main__":
  import doctest
  if doctest.testmod()[0]: sys.exit(1)

# vim: set tw=70 sw=2 sts=2 et fdm=marker :
