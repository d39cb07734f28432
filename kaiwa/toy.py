# --                                                            ; {{{1
#
# File        : kaiwa/toy.py
# Maintainer  : Felix C. Stegerman <flx@obfusk.net>
# Date        : 2017-11-24
#
# Copyright   : Copyright (C) 2017  Felix C. Stegerman
# Version     : v0.0.1
# License     : GPLv3+
#
# --                                                            ; }}}1

                                                                # {{{1
r"""
Toy compiler/loader substrate.

Understands the units built by kaiwa.scope for a small expression
language: literals, arithmetic, comparisons, tuples, List(...),
single-expression defs, and references to earlier names; other
definitions are registered as opaque symbols.

>>> from kaiwa.preproc import Preprocessor
>>> from kaiwa.scope import SessionScope, build_unit
>>> tb, sc = ToyBackend(), SessionScope()
>>> u = build_unit(Preprocessor()("val xs = List(1, 2, 3)", 0),
...                sc.snapshot(), 0)
>>> frags = tb.invoke(tb.load(tb.compile(u.source)))
>>> next(frags), next(frags), next(frags)
('xs', ': ', 'List[Int]')
>>> "".join(frags)
' = List(1, 2, 3)\n'

>>> try: tb.compile(build_unit(Preprocessor()("y + 1", 1),
...                            sc.snapshot(), 1).source)
... except D.CompileError as e: print(e)
cmd1.sc:2: not found: value y
"""                                                             # }}}1

import ast, logging, math, operator, sys, time, types

import regex

from collections import namedtuple

from . import data as D
from . import misc as M
from . import read as R

logger = logging.getLogger(__name__)

_RX_BRIDGE  = regex.compile(r"import\s+(cmd\w+?)(?:\.INSTANCE)?\.\{(.*)\}$")
_RX_OPEN    = regex.compile(r"(object|class)\s+(\S+?)"
                            r"(?:\s+extends\s+Serializable)?\s*\{$")
_RX_PRINT   = regex.compile(r"ReplBridge\.(\w+)\((.*)\),?$")
_RX_ARG     = regex.compile(r'"(?:[^"\\]|\\.)*"|[^,\s][^,]*')
_RX_PREFIX  = regex.compile(r"(?:@\S+\s+)*(?:(?:" +
                            "|".join(sorted(M.MODIFIERS)) +
                            r")\s+)*(val|var|def)\s+")
_RX_DEFHEAD = regex.compile(r"(" + M.RX_IDENT + r")\s*"
                            r"(?:\(([^()]*)\))?\s*(?::[\s\S]*)?$")
_RX_SCALA   = regex.compile(r'"(?:[^"\\]|\\.)*"|&&|\|\||!(?!=)')
_RX_TUPLE_N = regex.compile(r"_([1-9]\d*)")

# === Runtime values ===

class _ScalaError(Exception):
  def __init__(self, cls, msg):
    super().__init__("{}: {}".format(cls, msg)); self.cls = cls

class _List(list):
  pass

_Opaque = namedtuple("_Opaque", "kind name".split())

class _Lazy(object):
  def __init__(self, thunk): self.thunk, self.done = thunk, False
  def force(self):
    if not self.done:
      self.value, self.done = self.thunk(), True
    return self.value

class _Def(object):
  def __init__(self, name, params, body, env):
    self.name, self.params, self.body, self.env = name, params, body, env
  def __call__(self, *args):
    ps = self.params or []
    if len(args) != len(ps):
      raise TypeError("{} takes {} argument(s)".format(self.name, len(ps)))
    return self.body(_Env(dict(zip(ps, args)), self.env))

class _Env(object):
  def __init__(self, values, parent = None):
    self.values, self.parent = values, parent
  def lookup(self, name):
    e = self
    while e is not None:
      if name in e.values:
        v = e.values[name]
        return v.force() if isinstance(v, _Lazy) else v
      e = e.parent
    raise KeyError(name)

def _sys_error(msg):
  raise _ScalaError("java.lang.RuntimeException", msg)

def _sleep(ms):
  end = time.monotonic() + ms / 1000.0
  while time.monotonic() < end:
    time.sleep(min(0.01, max(0.0, end - time.monotonic())))

BUILTINS = {
  "true": True, "false": False,
  "List": lambda *xs: _List(xs), "Seq": lambda *xs: _List(xs),
  "sys": types.SimpleNamespace(error = _sys_error),
  "Thread": types.SimpleNamespace(sleep = _sleep),
  "math": types.SimpleNamespace(max = max, min = min, abs = abs,
                                sqrt = math.sqrt, Pi = math.pi),
}

_MEMBERS = {
  "length": len, "size": len, "head": lambda x: x[0],
  "tail": lambda x: _List(x[1:]) if isinstance(x, _List) else x[1:],
  "isEmpty": lambda x: len(x) == 0, "nonEmpty": lambda x: len(x) > 0,
  "sum": sum, "max": max, "min": min,
  "reverse": lambda x: _List(reversed(x)) if isinstance(x, _List)
                       else x[::-1],
  "toUpperCase": str.upper, "toLowerCase": str.lower,
  "toString": lambda x: _str(x),
}

# === Scala-ish semantics ===

def _isint(x):
  return isinstance(x, int) and not isinstance(x, bool)

def _add(a, b):
  if isinstance(a, str) or isinstance(b, str): return _str(a) + _str(b)
  return a + b

def _div(a, b):
  if _isint(a) and _isint(b):
    if b == 0: raise _ScalaError("java.lang.ArithmeticException",
                                 "/ by zero")
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b >= 0) else -q
  if b == 0: return math.copysign(math.inf, a) if a else math.nan
  return a / b

def _mod(a, b):
  if _isint(a) and _isint(b): return a - b * _div(a, b)
  return math.fmod(a, b)

_BINOPS = {
  ast.Add: _add, ast.Sub: operator.sub, ast.Mult: operator.mul,
  ast.Div: _div, ast.Mod: _mod, ast.BitAnd: operator.and_,
  ast.BitOr: operator.or_, ast.BitXor: operator.xor,
  ast.LShift: operator.lshift, ast.RShift: operator.rshift,
}
_UNOPS = {
  ast.USub: operator.neg, ast.UAdd: operator.pos,
  ast.Not: operator.not_, ast.Invert: operator.invert,
}
_CMPOPS = {
  ast.Eq: operator.eq, ast.NotEq: operator.ne, ast.Lt: operator.lt,
  ast.LtE: operator.le, ast.Gt: operator.gt, ast.GtE: operator.ge,
}

def _float(x):
  if math.isnan(x): return "NaN"
  if math.isinf(x): return "Infinity" if x > 0 else "-Infinity"
  return repr(x)

def _str(x):
  """Scala's toString."""
  if isinstance(x, bool): return "true" if x else "false"
  if isinstance(x, float): return _float(x)
  if x is None: return "()"
  if isinstance(x, _List): return "List(" + ", ".join(map(_str, x)) + ")"
  if isinstance(x, tuple) and not isinstance(x, _Opaque):
    return "(" + ",".join(map(_str, x)) + ")"
  if isinstance(x, _Opaque): return x.name
  if isinstance(x, _Def): return "<function>"
  return str(x)

def _type(x):                                                   # {{{1
  """
  >>> [ _type(x) for x in [1, 2**40, 1.5, "s", True, None, (1, "a")] ]
  ['Int', 'Long', 'Double', 'String', 'Boolean', 'Unit', '(Int, String)']
  >>> _type(_List([1, 2])), _type(_List([1, "a"])), _type(_List())
  ('List[Int]', 'List[Any]', 'List[Nothing]')
  """

  if isinstance(x, bool): return "Boolean"
  if _isint(x): return "Int" if -2**31 <= x < 2**31 else "Long"
  if isinstance(x, float): return "Double"
  if isinstance(x, str): return "String"
  if x is None: return "Unit"
  if isinstance(x, _List):
    ts = { _type(y) for y in x }
    return "List[" + (ts.pop() if len(ts) == 1 else
                      "Nothing" if not ts else "Any") + "]"
  if isinstance(x, _Opaque): return x.name + ".type"
  if isinstance(x, tuple): return "(" + ", ".join(map(_type, x)) + ")"
  if isinstance(x, _Def): return "Function"
  return "Any"
                                                                # }}}1

def _show(x):                                                   # {{{1
  r"""
  Pretty-print a value, one fragment at a time.

  >>> list(_show(_List([1, (2, "b\"")])))
  ['List(', '1', ', ', '(', '2', ', ', '"b\\""', ')', ')']
  """

  if isinstance(x, _List):
    yield "List("
    for i, y in enumerate(x):
      if i: yield ", "
      yield from _show(y)
    yield ")"
  elif isinstance(x, tuple) and not isinstance(x, _Opaque):
    yield "("
    for i, y in enumerate(x):
      if i: yield ", "
      yield from _show(y)
    yield ")"
  elif isinstance(x, str):
    yield M.str_lit(x).replace("\n", "\\n")
  else:
    yield _str(x)
                                                                # }}}1

# === Compiling expressions ===

class _NotFound(Exception):
  pass

class _Unsupported(Exception):
  pass

class _ExprCompiler(object):                                    # {{{1
  """
    Check names statically and turn a Python AST (of the translated
    Scala expression) into a closure over an environment.
  """

  def __init__(self, known):
    self.known = known

  def __call__(self, node):
    f = getattr(self, "_" + type(node).__name__, None)
    if f is None: raise _Unsupported(type(node).__name__)
    return f(node)

  def _Constant(self, n):
    v = n.value
    if isinstance(v, (bytes, complex)) or v is Ellipsis or v is None:
      raise _Unsupported(repr(v))
    return lambda env: v

  def _Name(self, n):
    name = n.id
    if name not in self.known: raise _NotFound(name)
    def f(env):
      v = env.lookup(name)
      return v() if isinstance(v, _Def) and v.params is None else v
    return f

  def _Tuple(self, n):
    fs = [ self(x) for x in n.elts ]
    return lambda env: tuple( f(env) for f in fs )

  def _BinOp(self, n):
    if type(n.op) not in _BINOPS: raise _Unsupported("operator")
    l, r, op = self(n.left), self(n.right), _BINOPS[type(n.op)]
    return lambda env: op(l(env), r(env))

  def _UnaryOp(self, n):
    x, op = self(n.operand), _UNOPS[type(n.op)]
    return lambda env: op(x(env))

  def _BoolOp(self, n):
    fs, conj = [ self(x) for x in n.values ], isinstance(n.op, ast.And)
    def f(env):
      for g in fs:
        if bool(g(env)) != conj: return not conj
      return conj
    return f

  def _Compare(self, n):
    if any( type(o) not in _CMPOPS for o in n.ops ):
      raise _Unsupported("comparison")
    fs  = [ self(n.left) ] + [ self(x) for x in n.comparators ]
    ops = [ _CMPOPS[type(o)] for o in n.ops ]
    def f(env):
      vs = [ g(env) for g in fs ]
      return all( op(a, b) for op, a, b in zip(ops, vs, vs[1:]) )
    return f

  def _Attribute(self, n):
    attr, m = n.attr, _RX_TUPLE_N.fullmatch(n.attr)
    obj = self(n.value)
    if isinstance(n.value, ast.Name) and n.value.id in BUILTINS and \
        isinstance(BUILTINS[n.value.id], types.SimpleNamespace):
      if not hasattr(BUILTINS[n.value.id], attr):
        raise _NotFound(n.value.id + "." + attr)
      return lambda env: getattr(obj(env), attr)
    if m:
      i = int(m.group(1)) - 1
      return lambda env: obj(env)[i]
    if attr not in _MEMBERS: raise _Unsupported("member " + attr)
    return lambda env: _MEMBERS[attr](obj(env))

  def _Call(self, n):
    if n.keywords: raise _Unsupported("named arguments")
    fn, args = self(n.func), [ self(x) for x in n.args ]
    def f(env):
      g, xs = fn(env), [ a(env) for a in args ]
      if isinstance(g, (list, tuple, str)) and len(xs) == 1:
        return g[xs[0]]
      return g(*xs)
    return f
                                                                # }}}1

def _pythonize(expr):
  """
  >>> _pythonize('!a && b || "!&&"')
  ' not a  and  b  or  "!&&"'
  """
  t = { "&&": " and ", "||": " or ", "!": " not " }
  return _RX_SCALA.sub(lambda m: t.get(m.group(), m.group()), expr)

def compile_expr(expr, known):
  r"""
  Compile an expression to a closure; raises _NotFound etc.  A block
  holding a single expression is unwrapped.

  >>> compile_expr("{\n  20 + 1\n}", set())(None)
  21
  """
  e = expr.strip()
  if e.startswith("{") and e.endswith("}"):
    try:
      inner = R.split(e[1:-1])
    except D.ParseError:
      inner = None
    if inner not in (None, D.INCOMPLETE) and len(inner.statements) == 1:
      return compile_expr(inner.statements[0].text, known)
  try:
    node = ast.parse(_pythonize(expr).strip(), mode = "eval").body
  except SyntaxError:
    raise _Unsupported(expr.strip()) from None
  return _ExprCompiler(known)(node)

# === Splitting definitions ===

def _top_split(s, chars):                                       # {{{1
  """
  Split at top-level (bracket depth 0, outside strings) occurrences
  of any of chars.

  >>> _top_split("(a, b): (Int, Int)", ":")
  ['(a, b)', ' (Int, Int)']
  >>> _top_split('a, "b, c", d(e, f)', ",")
  ['a', ' "b, c"', ' d(e, f)']
  """

  out, depth, start, i, n = [], 0, 0, 0, len(s)
  while i < n:
    c = s[i]
    if c == '"':
      j = s.find('"', i + 1)
      while j != -1 and s[j-1] == "\\": j = s.find('"', j + 1)
      i = n if j == -1 else j + 1; continue
    if c in M.S_OPEN: depth += 1
    elif c in M.S_CLOSE: depth -= 1
    elif depth == 0 and c in chars:
      out.append(s[start:i]); start = i + 1
    i += 1
  out.append(s[start:])
  return out
                                                                # }}}1

def _split_def(s):                                              # {{{1
  """
  Split a definition at its top-level = (not ==, =>, <=, >=, !=).

  >>> _split_def("val f: Int => Int = x => x")
  ('val f: Int => Int ', ' x => x')
  >>> _split_def("val b = 1 == 2")
  ('val b ', ' 1 == 2')
  >>> _split_def("def f: Int")
  ('def f: Int', None)
  """

  depth, i, n = 0, 0, len(s)
  while i < n:
    c = s[i]
    if c == '"':
      j = s.find('"', i + 1)
      while j != -1 and s[j-1] == "\\": j = s.find('"', j + 1)
      if j == -1: break
      i = j + 1; continue
    if c in M.S_OPEN: depth += 1
    elif c in M.S_CLOSE: depth -= 1
    elif c == "=" and depth == 0:
      prev, nxt = s[i-1] if i else "", s[i+1] if i + 1 < n else ""
      if nxt in "=>" and nxt or prev in M.S_OPCHARS and prev:
        i += 1; continue
      return s[:i], s[i+1:]
    i += 1
  return s, None
                                                                # }}}1

# === Backend ===

class _Artifact(object):
  def __init__(self, name, bridged, ops, displays):
    self.name, self.bridged = name, bridged
    self.ops, self.displays = ops, displays

class _Runnable(object):
  def __init__(self, artifact, env):
    self.artifact, self.env = artifact, env

class ToyBackend(object):                                       # {{{1
  """
    Reference substrate: compile(source) -> artifact (or raises
    CompileError), load(artifact) -> runnable, invoke(runnable) ->
    lazy sequence of text fragments (may raise RuntimeFault).
  """

  def __init__(self):
    self.wrappers = {}

  # --- compile ---

  def compile(self, source):                                    # {{{2
    lines = source.split("\n")
    i, bridged, errors = 0, [], []
    while i < len(lines) and not _RX_OPEN.match(lines[i]):
      m = _RX_BRIDGE.match(lines[i])
      if m:
        bridged.append((m.group(1), [ M.decode(x.strip())
                                      for x in m.group(2).split(",") ]))
      i += 1
    if i == len(lines):
      raise D.CompileError("expected class or object definition")
    name  = _RX_OPEN.match(lines[i]).group(2)
    j     = next( ( k for k in range(i, len(lines))
                    if lines[k].startswith("def $main()") ), None )
    if j is None:
      raise D.CompileError("{}: missing entry point".format(name))
    diag  = lambda line, msg: "{}.sc:{}: {}".format(name, line, msg)

    known = set(BUILTINS)
    for w, names in bridged:
      if w not in self.wrappers:
        errors.append(diag(1, "not found: object " + w)); continue
      for x in names:
        if x not in self.wrappers[w]:
          errors.append(diag(1, "value {} is not a member of {}"
                                .format(x, w)))
        known.add(x)

    ops, body = [], "\n".join(lines[i+1:j])
    stmts     = R.split(body)
    if stmts is D.INCOMPLETE:
      raise D.CompileError(diag(j, "unexpected end of input"))
    pos = source.index(lines[i]) + len(lines[i])
    for st in stmts.statements:
      at    = source.index(st.text, pos); pos = at + len(st.text)
      line  = source.count("\n", 0, at) + 1
      try:
        ops.append(self._statement(st.text, known))
      except _NotFound as e:
        errors.append(diag(line, "not found: value " + e.args[0]))
      except (_Unsupported, D.ParseError) as e:
        errors.append(diag(line, "toy backend cannot compile: " +
                                 str(e.args[0])))

    displays = []
    for k in range(j + 1, len(lines)):
      m = _RX_PRINT.match(lines[k].strip())
      if not m: break
      args = [ a.strip() for a in _RX_ARG.findall(m.group(2)) ]
      if not errors and m.group(1) == "printIdent" and \
          M.decode(args[1]) not in known:
        errors.append(diag(k + 1, "not found: value " + args[1]))
      displays.append((m.group(1), args))

    if errors: raise D.CompileError(errors)
    logger.debug("compiled %s: %d statements, %d displays",
                 name, len(ops), len(displays))
    return _Artifact(name, bridged, ops, displays)
                                                                # }}}2

  def _statement(self, code, known):                            # {{{2
    trees = R.parse(code)
    t     = trees[0]
    if isinstance(t, D.Import):
      return lambda env: None
    if isinstance(t, (D.ModuleDef, D.ClassDef, D.TypeDef)):
      kind = D.OBJECT if isinstance(t, D.ModuleDef) else \
             D.TYPE if isinstance(t, D.TypeDef) else \
             D.TRAIT if t.is_trait else D.CLASS
      known.add(t.name)
      return lambda env: env.values.__setitem__(t.name,
                                                _Opaque(kind, t.name))
    if isinstance(t, D.Expr):
      f = compile_expr(code, known)
      return lambda env: f(env) and None
    head, rhs = _split_def(code)
    if rhs is None:
      raise _Unsupported("declaration without a body")
    head = _RX_PREFIX.sub("", head, count = 1).strip()
    if isinstance(t, D.DefDef): return self._def(t.name, head, rhs, known)
    return self._val(trees, head, rhs, known)
                                                                # }}}2

  def _def(self, name, head, rhs, known):
    m = _RX_DEFHEAD.fullmatch(head)
    if not m: raise _Unsupported(head)
    params  = None if m.group(2) is None else \
              [ p.split(":")[0].strip()
                for p in _top_split(m.group(2), ",") if p.strip() ]
    known.add(name)
    body    = compile_expr(rhs, known | set(params or []))
    return lambda env: env.values.__setitem__(
      name, _Def(name, params, body, env))

  def _val(self, trees, head, rhs, known):                      # {{{2
    f     = compile_expr(rhs, known)
    pats  = [ p.strip() for p in _top_split(_top_split(head, ":")[0], ",") ]
    lazy  = any( t.is_lazy for t in trees )
    names = []
    for p in pats:
      if M.isident(p) or M.RX_BACKQUOTED_C.fullmatch(p) or p == "_":
        names.append(M.decode(p))
      elif p.startswith("(") and p.endswith(")"):
        parts = [ x.strip() for x in _top_split(p[1:-1], ",") ]
        if not all( M.isvarid(x) or x == "_" for x in parts ):
          raise _Unsupported("pattern " + p)
        names.append(parts)
      else:
        raise _Unsupported("pattern " + p)
    for n in names:
      known.update(n if isinstance(n, list) else [n])
    def op(env):
      for n in names:
        if isinstance(n, list):
          v = f(env)
          if not isinstance(v, tuple) or len(v) != len(n):
            raise _ScalaError("scala.MatchError", _str(v))
          for x, y in zip(n, v):
            if x != "_": env.values[x] = y
        elif lazy:
          env.values[n] = _Lazy(lambda: f(env))
        elif n != "_":
          env.values[n] = f(env)
        else:
          f(env)
    return op
                                                                # }}}2

  # --- load & invoke ---

  def load(self, artifact):
    ns = self.wrappers[artifact.name] = {}
    bridged = { x: self.wrappers[w][x]
                for w, names in artifact.bridged for x in names }
    env = _Env(ns, _Env(bridged, _Env(BUILTINS)))
    return _Runnable(artifact, env)

  def invoke(self, runnable):
    return self._run(runnable.artifact, runnable.env)

  def _run(self, artifact, env):                                # {{{2
    for op in artifact.ops:
      _guard(op, env)
    for what, args in artifact.displays:
      it    = iter(self._display(what, args, env))
      first = _guard(next, it, None)
      if first is None: continue
      yield first
      while True:
        x = _guard(next, it, None)
        if x is None: break
        yield x
      yield "\n"
                                                                # }}}2

  def _display(self, what, args, env):
    s = [ _unquote(a) for a in args ]
    if what == "printDef":
      yield from ("defined ", s[0], " ", s[1])
    elif what == "printIdent":
      v = env.lookup(M.decode(args[1]))
      yield from (s[0], ": ", _type(v), " = ")
      yield from _show(v)
    elif what == "printLazy":
      yield from (s[0], " = <lazy>")
    elif what == "printImport":
      yield from ("import ", s[0])
                                                                # }}}1

def _unquote(s):
  if not (s.startswith('"') and s.endswith('"')): return s
  return regex.sub(r"\\(.)", r"\1", s[1:-1])

def _guard(f, *args):
  try:
    return f(*args)
  except _ScalaError as e:
    raise D.RuntimeFault(str(e)) from e
  except RecursionError as e:
    raise D.RuntimeFault("java.lang.StackOverflowError") from e
  except (ArithmeticError, TypeError, ValueError, IndexError,
          KeyError) as e:
    raise D.RuntimeFault("{}: {}".format(type(e).__name__, e)) from e

if __name__ == "__main__":
  import doctest
  if doctest.testmod()[0]: sys.exit(1)

# vim: set tw=70 sw=2 sts=2 et fdm=marker :
