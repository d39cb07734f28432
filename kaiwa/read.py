# --                                                            ; {{{1
#
# File        : kaiwa/read.py
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
Split input into top-level statements and parse statement headers.

>>> split("val x = 1; val y = 2\nx + y").statements
[Statement(text='val x = 1', index=0), Statement(text='val y = 2', index=1), Statement(text='x + y', index=2)]
>>> split("val x = {")
Incomplete
>>> parse("1 + 1")
[Expr(code='1 + 1')]
"""                                                             # }}}1

import logging, sys

import pyparsing as P
import regex

from . import data as D
from . import misc as M

logger = logging.getLogger(__name__)

# NB: newlines separate statements, so the splitter is built w/o
# them in the default whitespace (restored afterwards).
_WS = " \t\r\f"

def _make_splitter():                                           # {{{1
  old = P.ParserElement.DEFAULT_WHITE_CHARS
  P.ParserElement.set_default_whitespace_chars(_WS)
  try:
    return _splitter_grammar()
  finally:
    P.ParserElement.set_default_whitespace_chars(old)
                                                                # }}}1

def _splitter_grammar():                                        # {{{1
  # NB: the order in which alternatives are tried is important;
  # e.g. """ before ", unclosed comment before operators, etc.

  l, r, s     = P.Literal, P.Regex, P.Suppress
  om, op, zm  = P.OneOrMore, P.Optional, P.ZeroOrMore
  rx          = lambda x: r(regex.compile(x))
  kws         = lambda xs: rx("(?:" + "|".join(sorted(xs, key = len,
                  reverse = True)) + r")(?![\p{L}\p{N}_$])")
  n           = lambda x, name: x.set_name(name)

  nl, semi    = l("\n"), l(";")
  lcomm       = n(r(r"//[^\n]*"), "comment")
  bcomm       = n(r(r"/\*(?:[^*]|\*(?!/))*\*/"), "comment")
  o_bcomm     = r(r"/\*[\s\S]*") \
                .set_parse_action(_unclosed("comment"))
  tstr        = n(r(r'"""[\s\S]*?"""+'), "string")
  o_tstr      = r(r'"""[\s\S]*') \
                .set_parse_action(_unclosed("multi-line string literal"))
  str_        = n(r(r'"(?:[^"\\\n]|\\.)*"'), "string")
  o_str       = r(r'"(?:[^"\\\n]|\\.)*\s*\Z') \
                .set_parse_action(_unclosed("string literal"))
  char        = n(rx(r"'(?:[^'\\\n]|\\.)'|'[\p{L}_][\p{L}\p{N}_]*"),
                  "character")
  number      = n(r(M.RX_NUMBER_C), "number")
  cont_kw     = n(kws(M.CONT_KEYWORDS), "keyword")
  lead_kw     = kws(M.LEADING_KEYWORDS)
  ident       = n(~cont_kw + rx(M.RX_PLAINID + "|" + M.RX_BACKQUOTED),
                  "identifier")
  opid        = n(r(M.RX_OPID_C), "operator")
  punct       = n(r(r"[.,]"), "punctuation")

  plain       = tstr | o_tstr | str_ | o_str | char | number | ident
  cont        = cont_kw | opid | punct

  group       = P.Forward()
  inner       = nl | semi | group | o_bcomm | cont | plain
  pair        = lambda o, c: l(o) - zm(inner) - l(c)
  group     <<= n(pair("(", ")") | pair("[", "]") | pair("{", "}"),
                  "group")

  # a trailing operator/keyword continues onto the next line(s)
  nls, link   = om(nl), P.Forward()
  piece       = n(group | o_bcomm | link | plain, "expression")
  link      <<= cont - op(nls) - piece
  joined      = s(nls) + P.FollowedBy(l(".") | lead_kw)

  stmt        = n(P.original_text_for(piece + zm(joined | piece)),
                  "statement")
  sep         = s(om(nl | semi))
  stmts       = op(sep) + op(stmt + zm(sep + stmt)) + op(sep) + \
                P.StringEnd()
  stmts.ignore(lcomm); stmts.ignore(bcomm)
  return stmts.parse_with_tabs()
                                                                # }}}1

def _unclosed(what):
  def f(s, loc, t):
    raise P.ParseFatalException(s, len(s), "unclosed " + what)
  return f

_splitter = _make_splitter()

def split(s):                                                   # {{{1
  r"""
  Split a buffer into complete top-level statements.

  Returns Complete(statements) or INCOMPLETE (when parsing fails at
  the very end of the input, e.g. an open brace); raises ParseError
  when it fails anywhere else.

  >>> split("1 + 1")
  Complete(statements=[Statement(text='1 + 1', index=0)])
  >>> [ str(x) for x in split("xs\n  .map(f)\nys").statements ]
  ['xs\n  .map(f)', 'ys']
  >>> [ str(x) for x in split("if (x) 1\nelse 2").statements ]
  ['if (x) 1\nelse 2']
  >>> [ str(x) for x in split("def f(x: Int) = {\n  x + 1\n}").statements ]
  ['def f(x: Int) = {\n  x + 1\n}']
  >>> [ str(x) for x in split("val s = \"a;b\" // c; d").statements ]
  ['val s = "a;b"']
  >>> split("  // just a comment\n")
  Complete(statements=[])
  >>> [ str(x) for x in split("a; b").statements ]
  ['a', 'b']
  >>> split("a\n") == split("\na") == split("a") != split("a\n;b")
  True

  >>> split("1 +"), split('"' * 3 + "abc"), split("/* note")
  (Incomplete, Incomplete, Incomplete)
  >>> split("f(1,"), split('val s = "abc')
  (Incomplete, Incomplete)

  >>> for x in ["foo(]", ") 1", "val x = 1)"]:
  ...   try: split(x)
  ...   except D.ParseError as e: print("error at", e.loc)
  error at 4
  error at 0
  error at 9
  >>> try: split("1 + )")
  ... except D.ParseError as e: print(e)
  Expected expression (at char 4)
  """

  try:
    res = _splitter.parse_string(s, parse_all = True)
  except P.ParseBaseException as e:
    if e.loc >= len(s.rstrip()):
      logger.debug("incomplete input: %s", e.msg)
      return D.INCOMPLETE
    raise D.ParseError(e.msg, e.loc) from None
  return D.Complete([ D.Statement(t.strip(), i)
                      for i, t in enumerate(res) ])
                                                                # }}}1

# === Statement headers ===

def _make_parser():                                             # {{{1
  r, s        = P.Regex, P.Suppress
  om, op, zm  = P.OneOrMore, P.Optional, P.ZeroOrMore
  kw          = P.Keyword
  g           = P.Group
  nest        = lambda o, c: P.nested_expr(o, c)

  name        = r(M.RX_IDENT_C).add_condition(
                  lambda t: t[0] not in M.RESERVED,
                  message = "expected identifier").set_name("identifier")
  grp         = nest("(", ")") | nest("[", "]") | nest("{", "}")
  annot       = s("@" + name + op(nest("(", ")")))
  mod         = P.one_of(sorted(M.MODIFIERS), as_keyword = True)

  objdef      = s(op(kw("case")) + kw("object")) - name
  classdef    = s(op(kw("case")) + kw("class")) - name
  traitdef    = s(kw("trait")) - name
  defdef      = s(kw("def")) - name
  typedef     = s(kw("type")) - name

  pat         = P.original_text_for(om(grp | r(r"[^\s()\[\]{},:=]+")))
  typ         = om(grp | r(r"=>|[^\s()\[\]{}=,]+"))
  valdef      = (kw("val") | kw("var"))("kw") - \
                g(pat + zm(s(",") - pat))("pats") + \
                op(s(":") - typ) + op(s("=") + r(r"[\s\S]+"))

  objdef  .set_parse_action(lambda t: D.ModuleDef(M.decode(t[0])))
  classdef.set_parse_action(lambda t: D.ClassDef(M.decode(t[0]), False))
  traitdef.set_parse_action(lambda t: D.ClassDef(M.decode(t[0]), True))
  defdef  .set_parse_action(lambda t: D.DefDef(M.decode(t[0])))
  typedef .set_parse_action(lambda t: D.TypeDef(M.decode(t[0])))
  valdef  .set_parse_action(_parse_val)

  form        = objdef | classdef | traitdef | defdef | typedef | valdef
  decl        = zm(annot) + g(zm(mod))("mods") + g(form)("trees")
  decl.set_parse_action(_parse_decl)

  imp         = P.original_text_for(r(r"(?:`[^`]*`|[^\s,{}`;])+") +
                                    op(nest("{", "}")))
  import_     = s(kw("import")) - imp + zm(s(",") - imp) - P.StringEnd()
  import_.set_parse_action(lambda t: [ D.Import(x) for x in t ])

  return import_ | decl
                                                                # }}}1

def _parse_val(t):
  return pattern_trees(list(t.pats), t.kw == "var")

def _parse_decl(t):
  lazy = "lazy" in t.mods.as_list()
  return [ x._replace(is_lazy = lazy)
           if isinstance(x, D.ValDef) and not x.synthetic else x
           for x in t.trees ]

_RX_PAT_TOKEN = regex.compile(
  r'"(?:[^"\\]|\\.)*"' + r"|'(?:[^'\\]|\\.)'|" + M.RX_NUMBER + "|" +
  r"[()\[\]{},.]|" + M.RX_IDENT
)

def pattern_vars(pat):                                          # {{{1
  """
  Variables bound by a pattern.

  >>> pattern_vars("(a, b)")
  ['a', 'b']
  >>> pattern_vars("(a: Int, List(b, _*), c @ Some(_), `d`, E, x.y)")
  ['a', 'b', 'c']
  >>> pattern_vars("Some(x: Map[String, Int])")
  ['x']
  """

  toks  = [ m.group() for m in _RX_PAT_TOKEN.finditer(pat) ]
  vs, depth, typed = [], 0, None
  for i, t in enumerate(toks):
    prev  = toks[i-1] if i > 0 else None
    nxt   = toks[i+1] if i+1 < len(toks) else None
    if t in M.S_OPEN:
      depth += 1
    elif t in M.S_CLOSE:
      if typed == depth: typed = None
      depth -= 1
    elif t == "," and typed == depth:
      typed = None
    elif typed is not None:
      continue
    elif t == ":":
      typed = depth
    elif M.isvarid(t) and prev != "." and nxt not in (".", "("):
      vs.append(t)
  return vs
                                                                # }}}1

def pattern_trees(pats, is_var = False):                        # {{{1
  """
  ValDef trees for the patterns of one val/var definition.

  A pattern binding several variables gets a synthetic holder
  followed by one tree per variable; a plain name, or a pattern with
  a single variable, gets just the one tree.

  >>> [ t.name for t in pattern_trees(["x"]) ]
  ['x']
  >>> [ t.name for t in pattern_trees(["a", "b"]) ]
  ['a', 'b']
  >>> [ t.name for t in pattern_trees(["(a, b)"]) ]
  ['x$1', 'a', 'b']
  >>> [ t.name for t in pattern_trees(["Some(y)"]) ]
  ['y']
  >>> [ (t.name, t.synthetic) for t in pattern_trees(["_"]) ]
  [('x$1', True)]
  """

  trees, n  = [], 0
  val       = lambda x, syn = False: D.ValDef(x, False, is_var, syn)
  for p in pats:
    if M.isident(p) or M.RX_BACKQUOTED_C.fullmatch(p):
      trees.append(val(M.decode(p))); continue
    vs = pattern_vars(p)
    if len(vs) == 1:
      trees.append(val(vs[0]))
    else:
      n += 1; trees.append(val("x$" + str(n), True))
      trees.extend(map(val, vs))
  return trees
                                                                # }}}1

_parser = _make_parser()

def parse(s):                                                   # {{{1
  r"""
  Parse a single statement into declaration trees; anything that is
  not a declaration or an import is an expression.

  >>> parse("val x = 42")
  [ValDef(name='x', is_lazy=False, is_var=False, synthetic=False)]
  >>> parse("@transient lazy val y: Int = x")
  [ValDef(name='y', is_lazy=True, is_var=False, synthetic=False)]
  >>> [ t.name for t in parse("val (a, b) = (1, 2)") ]
  ['x$1', 'a', 'b']
  >>> parse("var f: Int => Int = identity")
  [ValDef(name='f', is_lazy=False, is_var=True, synthetic=False)]
  >>> parse("case class Point(x: Int, y: Int)")
  [ClassDef(name='Point', is_trait=False)]
  >>> parse("sealed trait Shape"), parse("case object Nil")
  ([ClassDef(name='Shape', is_trait=True)], [ModuleDef(name='Nil')])
  >>> parse("def +(that: V) = that"), parse("type T = Int")
  ([DefDef(name='+')], [TypeDef(name='T')])
  >>> parse("import a.b, c.{d, e}")
  [Import(path='a.b'), Import(path='c.{d, e}')]
  >>> parse("values.map(f)")
  [Expr(code='values.map(f)')]

  >>> for x in ["val = 1", "class", "import"]:
  ...   try: parse(x)
  ...   except D.ParseError: print("parse error:", x)
  parse error: val = 1
  parse error: class
  parse error: import
  """

  try:
    trees = list(_parser.parse_string(s))
  except P.ParseSyntaxException as e:
    raise D.ParseError(e.msg, e.loc) from None
  except P.ParseException:
    return [D.Expr(s)]
  return trees
                                                                # }}}1

if __name__ == "__main__":
  import doctest
  if doctest.testmod()[0]: sys.exit(1)

# vim: set tw=70 sw=2 sts=2 et fdm=marker :
