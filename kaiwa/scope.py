# --                                                            ; {{{1
#
# File        : kaiwa/scope.py
# Maintainer  : Felix C. Stegerman <flx@obfusk.net>
# Date        : 2017-11-21
#
# Copyright   : Copyright (C) 2017  Felix C. Stegerman
# Version     : v0.0.1
# License     : GPLv3+
#
# --                                                            ; }}}1

                                                                # {{{1
r"""
Session scope (imports and names bound by earlier units) and the
wrapping of preprocessed statements into compilable units.

>>> from kaiwa.preproc import Preprocessor
>>> pp, sc = Preprocessor(), SessionScope()
>>> u = build_unit(pp("val x = 1; x * 2", 0), sc.snapshot(), 0)
>>> print(u.source)
class cmd0 extends Serializable {
val x = 1
val res0_1 = (
x * 2
)
def $main() = Iterator[Iterator[String]](
  ReplBridge.printIdent("x", x),
  ReplBridge.printIdent("res0_1", res0_1)
).filter(_.nonEmpty).flatMap(_ ++ Iterator("\n"))
}
object cmd0 {
  val INSTANCE = new cmd0
}
>>> u.entry
'cmd0.INSTANCE.$main()'

>>> sc.commit(u); len(sc), sc.version
(2, 1)
>>> u = build_unit(pp("import foo.bar", 1), sc.snapshot(), 1, OBJECT_WRAP)
>>> print(u.source)
import cmd0.INSTANCE.{x, res0_1}
object cmd1 {
import foo.bar
def $main() = Iterator[Iterator[String]](
  ReplBridge.printImport("foo.bar")
).filter(_.nonEmpty).flatMap(_ ++ Iterator("\n"))
}
>>> sc.commit(u); sc.imports
(ImportEntry(path='foo.bar', origin='cmd1'),)
"""                                                             # }}}1

import logging, sys, threading

from collections import OrderedDict

from . import data as D
from . import misc as M

logger = logging.getLogger(__name__)

CLASS_WRAP, OBJECT_WRAP = "class", "object"
WRAP_MODES              = { "class": CLASS_WRAP, "cls": CLASS_WRAP,
                            "object": OBJECT_WRAP, "obj": OBJECT_WRAP }

class SessionScope(object):                                     # {{{1
  """
    Append-only record of the imports and bindings visible to later
    units; grows by whole units only.
  """

  def __init__(self):
    self._imports, self._bindings, self._version = [], [], 0
    self._lock = threading.Lock()

  @property
  def version(self): return self._version

  @property
  def imports(self): return tuple(self._imports)

  @property
  def bindings(self): return tuple(self._bindings)

  def __len__(self):
    return len(self._imports) + len(self._bindings)

  def snapshot(self):
    with self._lock:
      return D.Snapshot(self._version, tuple(self._imports),
                        tuple(self._bindings))

  def commit(self, unit):
    """Add everything a (successfully run) unit imports and binds."""
    with self._lock:
      self._imports.extend(unit.imports)
      self._bindings.extend(unit.bindings)
      self._version += 1
      logger.debug("scope v%d: +%d imports, +%d bindings from %s",
                   self._version, len(unit.imports),
                   len(unit.bindings), unit.name)
                                                                # }}}1

def bridge(bindings):                                           # {{{1
  """
  Import lines exposing previously bound names; only the latest
  origin of a rebound name is imported.

  >>> B = D.BindingEntry
  >>> bridge([B("x", "cmd0", False, "value"), B("y", "cmd0", False,
  ...   "value"), B("x", "cmd2.INSTANCE", False, "value")])
  ['import cmd0.{y}', 'import cmd2.INSTANCE.{x}']
  """

  latest = OrderedDict()
  for b in bindings:
    latest.pop(b.name, None); latest[b.name] = b.origin
  by_origin = OrderedDict()
  for name, origin in latest.items():
    by_origin.setdefault(origin, []).append(M.backtick_wrap(name))
  return [ "import {}.{{{}}}".format(o, ", ".join(ns))
           for o, ns in by_origin.items() ]
                                                                # }}}1

def _main(printers):
  items = ",\n".join( "  " + p for p in printers )
  return "def $main() = Iterator[Iterator[String]](" + \
         ("\n" + items + "\n" if items else "") + \
         ').filter(_.nonEmpty).flatMap(_ ++ Iterator("\\n"))'

def build_unit(outputs, snapshot, wrapper_id, wrap = CLASS_WRAP):  # {{{1
  r"""
  Wrap preprocessed statements and a scope snapshot into a unit:
  scope imports, the bridge to earlier bindings, the statements, and
  the display instructions in declaration order.

  >>> from kaiwa.preproc import Preprocessor
  >>> outs = Preprocessor()("import special.wrap.obj; 42", 7)
  >>> u = build_unit(outs, SessionScope().snapshot(), 7)
  >>> u.holder, u.bindings
  ('cmd7', (BindingEntry(name='res7_1', origin='cmd7', is_lazy=False, kind='value'),))
  >>> u == build_unit(outs, SessionScope().snapshot(), 7)
  True

  >>> u = build_unit(Preprocessor()("import special.wrap.obj, foo.bar", 0),
  ...                SessionScope().snapshot(), 0)
  >>> u.imports
  (ImportEntry(path='foo.bar', origin='cmd0'),)
  >>> print(u.source)
  object cmd0 {
  import foo.bar
  def $main() = Iterator[Iterator[String]](
    ReplBridge.printImport("foo.bar")
  ).filter(_.nonEmpty).flatMap(_ ++ Iterator("\n"))
  }
  """

  name = "cmd" + str(wrapper_id)
  if any( M.SPECIAL_OBJ_WRAP in o.imports for o in outputs ):
    wrap    = OBJECT_WRAP
    outputs = [ o._replace(imports = [ p for p in o.imports
                                       if p != M.SPECIAL_OBJ_WRAP ])
                for o in outputs if o.code ]
  holder  = name if wrap == OBJECT_WRAP else name + ".INSTANCE"
  paths   = OrderedDict.fromkeys( x.path for x in snapshot.imports )
  head    = [ "import " + p for p in paths ] + bridge(snapshot.bindings)
  body    = [ o.code for o in outputs ] + \
            [ _main([ p for o in outputs for p in o.printers ]) ]
  if wrap == OBJECT_WRAP:
    wrapped = [ "object {} {{".format(name) ] + body + [ "}" ]
  else:
    wrapped = [ "class {} extends Serializable {{".format(name) ] + \
              body + [ "}", "object {} {{".format(name),
                       "  val INSTANCE = new {}".format(name), "}" ]
  imports   = tuple( D.ImportEntry(p, holder)
                     for o in outputs for p in o.imports )
  bindings  = tuple( D.BindingEntry(b.name, holder, b.is_lazy, b.kind)
                     for o in outputs for b in o.bindings )
  logger.debug("built %s (%s wrap, scope v%d)", name, wrap,
               snapshot.version)
  return D.Unit(wrapper_id, name, holder, "\n".join(head + wrapped),
                imports, bindings)
                                                                # }}}1

if __name__ == "__main__":
  import doctest
  if doctest.testmod()[0]: sys.exit(1)

# vim: set tw=70 sw=2 sts=2 et fdm=marker :
