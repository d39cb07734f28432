# --                                                            ; {{{1
#
# File        : kaiwa/preproc.py
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
Turn REPL-style snippets into code ready to be wrapped into a unit.

Each statement becomes an Output: the (possibly rewritten) code, the
display instructions to evaluate when the unit runs, and the names
it binds and imports.

>>> pp = Preprocessor()
>>> out, = pp("1 + 1", 3)
>>> out.kind, out.code
('expression', 'val res3 = (\n1 + 1\n)')
>>> out.printers
['ReplBridge.printIdent("res3", res3)']

>>> [ o.code for o in pp("val x = 1; x + 1", 4) ]
['val x = 1', 'val res4_1 = (\nx + 1\n)']

>>> pp("val x = {", 5)
Buffer(code='val x = {')
>>> pp("  ", 5)
Skip
"""                                                             # }}}1

import logging, sys

from . import data as D
from . import misc as M
from . import read as R

logger = logging.getLogger(__name__)

# === Display ===

class Display(object):                                          # {{{1
  """
    Produces display instructions: snippets of code that, evaluated
    when their unit runs, yield the text describing a declaration.
  """

  def definition(self, label, name):
    raise NotImplementedError

  def identity(self, ident):
    raise NotImplementedError

  def lazy_identity(self, ident):
    raise NotImplementedError

  def display_import(self, imported):
    raise NotImplementedError
                                                                # }}}1

class ShellDisplay(Display):                                    # {{{1
  """Display instructions calling into the ReplBridge runtime."""

  def definition(self, label, name):
    return "ReplBridge.printDef({}, {})".format(M.str_lit(label),
                                                M.str_lit(name))

  def identity(self, ident):
    return "ReplBridge.printIdent({}, {})".format(M.str_lit(ident),
                                                  ident)

  def lazy_identity(self, ident):
    return "ReplBridge.printLazy({})".format(M.str_lit(ident))

  def display_import(self, imported):
    return "ReplBridge.printImport({})".format(M.str_lit(imported))
                                                                # }}}1

# === Processors ===

def _def_proc(kind, match):
  """Processor for declarations that all have the same shape."""
  def f(self, code, name, tree):
    n = match(tree)
    if n is None: return None
    return D.Output(kind, code,
                    [self.display.definition(kind, M.backtick_wrap(n))],
                    [D.Binding(n, kind, False)], [])
  return f

def _match(cls, cond = lambda t: True):
  return lambda t: t.name if isinstance(t, cls) and cond(t) else None

class Preprocessor(object):                                     # {{{1
  """
    Split a buffer into statements and classify each one, trying
    the processors in priority order; Expr always matches.
  """

  object_def  = _def_proc(D.OBJECT  , _match(D.ModuleDef))
  class_def   = _def_proc(D.CLASS   , _match(D.ClassDef,
                                             lambda t: not t.is_trait))
  trait_def   = _def_proc(D.TRAIT   , _match(D.ClassDef,
                                             lambda t: t.is_trait))
  def_def     = _def_proc(D.FUNCTION, _match(D.DefDef))
  type_def    = _def_proc(D.TYPE    , _match(D.TypeDef))

  def pat_var_def(self, code, name, tree):
    if not isinstance(tree, D.ValDef): return None
    # leave out synthetics (e.g. the holder of a destructured tuple)
    if M.is_synthetic(tree.name):
      return D.Output(D.VALUE, code, [], [], [])
    ident = M.backtick_wrap(tree.name)
    p = self.display.lazy_identity(ident) if tree.is_lazy else \
        self.display.identity(ident)
    return D.Output(D.VALUE, code, [p],
                    [D.Binding(tree.name, D.VALUE, tree.is_lazy)], [])

  def import_(self, code, name, tree):
    if not isinstance(tree, D.Import): return None
    body = code.split(None, 1)[1]
    return D.Output(D.IMPORT, code, [self.display.display_import(body)],
                    [], [tree.path])

  def expr(self, code, name, tree):
    return D.Output(D.EXPRESSION, "val {} = (\n{}\n)".format(name, code),
                    [self.display.identity(name)],
                    [D.Binding(name, D.VALUE, False)], [])

  def __init__(self, display = None):
    self.display  = display or ShellDisplay()
    self.decls    = [ self.object_def, self.class_def, self.trait_def,
                      self.def_def, self.type_def, self.pat_var_def,
                      self.import_, self.expr ]

  def handle_tree(self, code, name, tree):
    return next( o for o in ( f(code, name, tree) for f in self.decls )
                 if o is not None )

  def classify(self, code, name, trees = None):               # {{{2
    r"""
    Classify one statement.

    >>> pp = Preprocessor()
    >>> o = pp.classify("val (a, b) = (1, 2)", "res0")
    >>> o.code, o.printers
    ('val (a, b) = (1, 2)', ['ReplBridge.printIdent("a", a)', 'ReplBridge.printIdent("b", b)'])
    >>> [ b.name for b in o.bindings ]
    ['a', 'b']

    >>> o = pp.classify("import a.b, c.{d, e}", "res0")
    >>> o.kind, o.printers, o.imports
    ('import', ['ReplBridge.printImport("a.b, c.{d, e}")'], ['a.b', 'c.{d, e}'])

    >>> pp.classify("lazy val y = 42", "res0").printers
    ['ReplBridge.printLazy("y")']
    >>> pp.classify("val `my x` = 1", "res0").printers
    ['ReplBridge.printIdent("`my x`", `my x`)']
    >>> pp.classify("def f(x: Int) = x", "res0").printers
    ['ReplBridge.printDef("function", "f")']
    """

    if trees is None: trees = R.parse(code)
    if all( isinstance(t, D.Import) for t in trees ):
      return self.imports(code, name, trees)
    if len(trees) == 1:
      return self.handle_tree(code, name, trees[0])
    # pattern definitions binding several names parse into several
    # trees: aggregate their printers, but only output the code once
    outs = [ self.handle_tree(code, name, t)
             for t in trees if isinstance(t, D.ValDef) ]
    return D.Output(D.VALUE, code,
                    [ p for o in outs for p in o.printers ],
                    [ b for o in outs for b in o.bindings ], [])
                                                                # }}}2

  def imports(self, code, name, trees):
    """
    One echo for the whole import clause.  The object-wrap marker is
    left out of the code and the echo, but kept in the imports so the
    unit builder can see it.

    >>> pp = Preprocessor()
    >>> o = pp.classify("import special.wrap.obj, foo.bar", "res0")
    >>> o.code, o.printers, o.imports
    ('import foo.bar', ['ReplBridge.printImport("foo.bar")'], ['special.wrap.obj', 'foo.bar'])
    >>> pp.classify("import special.wrap.obj", "res0")
    Output(kind='import', code='', printers=[], bindings=[], imports=['special.wrap.obj'])
    """

    paths = [ t.path for t in trees ]
    keep  = [ p for p in paths if p != M.SPECIAL_OBJ_WRAP ]
    if len(keep) == len(paths):
      out = self.handle_tree(code, name, trees[0])
      return out._replace(imports = paths)
    if not keep:
      return D.Output(D.IMPORT, "", [], [], paths)
    body = ", ".join(keep)
    return D.Output(D.IMPORT, "import " + body,
                    [self.display.display_import(body)], [], paths)

  def __call__(self, code, wrapper_id):
    """
    Preprocess a buffer: Buffer(code) when it is incomplete, SKIP
    when it holds no statements, a list of Outputs otherwise.
    """
    res = R.split(code)
    if res is D.INCOMPLETE: return D.Buffer(code)
    if not res.statements: return D.SKIP
    return self.complete(wrapper_id, res.statements)

  def complete(self, wrapper_id, statements):                   # {{{2
    """
    Re-parse every statement on its own and classify it; the result
    variable is suffixed with the index of the statement if there is
    more than one.

    >>> pp = Preprocessor()
    >>> try: pp("val = 1; var = 2", 0)
    ... except D.ClassificationFailure as e: print(len(e.messages))
    2
    >>> try: pp.complete(0, [D.Statement("a; b", 0)])
    ... except D.ClassificationFailure as e: print(e)
    statement 0 does not split on its own: a; b
    """

    reparsed, errors = [], []
    for st in statements:
      again = R.split(st.text)
      if again is D.INCOMPLETE or \
          [ x.text for x in again.statements ] != [st.text]:
        errors.append("statement {} does not split on its own: {}"
                      .format(st.index, st.text))
        continue
      try:
        reparsed.append((st, R.parse(st.text)))
      except D.ParseError as e:
        errors.append("{}: {}".format(st.text, e))
    if errors:
      raise D.ClassificationFailure(errors)
    outs = []
    for st, trees in reparsed:
      suffix  = "_" + str(st.index) if len(reparsed) > 1 else ""
      out     = self.classify(st.text, "res" + str(wrapper_id) + suffix,
                              trees)
      logger.debug("statement %d: %s", st.index, out.kind)
      outs.append(out)
    return outs
                                                                # }}}2
                                                                # }}}1

if __name__ == "__main__":
  import doctest
  if doctest.testmod()[0]: sys.exit(1)

# vim: set tw=70 sw=2 sts=2 et fdm=marker :
