# --                                                            ; {{{1
#
# File        : kaiwa/__main__.py
# Maintainer  : Felix C. Stegerman <flx@obfusk.net>
# Date        : 2017-11-26
#
# Copyright   : Copyright (C) 2017  Felix C. Stegerman
# Version     : v0.0.1
# License     : GPLv3+
#
# --                                                            ; }}}1

                                                                # {{{1
r"""
Command-line entry point.

>>> config("--wrap", "obj", "--no-color", "--hist-file", "")
Config(prompt='@', wrap='object', hist_file='', predef=None, backend='kaiwa.toy:ToyBackend', color=False, debug=False)
>>> main("--hist-file", "", "--eval", "val x = 6; x * 7")
x: Int = 6
res0_1: Int = 42
0
>>> main("--hist-file", "", "--no-color", "--eval", "nope")
CompileError: cmd0.sc:2: not found: value nope
1

>>> import os, tempfile
>>> d = tempfile.mkdtemp(); f = os.path.join(d, "predef.sc")
>>> with open(f, "w") as fh: n = fh.write("val answer = 42")
>>> main("--hist-file", "", "--predef", f, "--eval", "answer + 1")
res0: Int = 43
0
"""                                                             # }}}1

import argparse, importlib, logging, sys

from collections import namedtuple

from . import __version__
from . import data as D
from . import eval as E
from . import repl as R
from . import scope as S

logger = logging.getLogger(__name__)

_me   = "kaiwa"
_desc = "incremental REPL execution core (with a toy backend)"

DEFAULT_BACKEND = "kaiwa.toy:ToyBackend"

Config = namedtuple("Config", """prompt wrap hist_file predef backend
                                 color debug""".split())

def main(*args):                                                # {{{1
  """Main program."""
  p = _argument_parser(); n = p.parse_args(args)
  if n.test: return test(verbose = n.verbose)
  c = _config(p, n)
  logging.basicConfig(level = logging.DEBUG if c.debug
                              else logging.WARNING)
  try:
    session = E.Session(backend(c.backend), wrap = c.wrap,
                        on_success = R.history_hook(c.hist_file))
  except D.BackendError as e:
    print("{}: {}".format(_me, e), file = sys.stderr)
    return 2
  if c.predef:
    res = session.run_predef(_read(c.predef))
    if isinstance(res, D.Failure): R.print_error(res, c.color)
  status = 0
  if n.eval is not None:
    res = session.submit(n.eval)
    if isinstance(res, D.Buffer):
      res = D.Failure(D.PARSE_ERROR, "incomplete input")
    if isinstance(res, D.Failure):
      R.print_error(res, c.color); status = 1
    elif res is D.INTERRUPTED:
      status = 130
    if not n.interactive: return status
  history = R.History(c.hist_file).load() if c.hist_file else []
  R.repl(session, prompt = c.prompt, color = c.color, history = history)
  return status
                                                                # }}}1

def _read(path):
  with open(path, encoding = "utf8") as f:
    return f.read()

def backend(name):                                              # {{{1
  """
  Instantiate a backend given as module:factory.

  >>> backend("kaiwa.toy:ToyBackend")                 # doctest: +ELLIPSIS
  <kaiwa.toy.ToyBackend object at ...>
  >>> backend("nope")
  Traceback (most recent call last):
    ...
  kaiwa.data.BackendError: expected module:factory, got 'nope'
  """

  mod, _, factory = name.partition(":")
  if not (mod and factory):
    raise D.BackendError("expected module:factory, got {!r}".format(name))
  try:
    return getattr(importlib.import_module(mod), factory)()
  except (ImportError, AttributeError) as e:
    raise D.BackendError("cannot load backend {}: {}".format(name, e))
                                                                # }}}1

def _argument_parser():                                         # {{{1
  p = argparse.ArgumentParser(description = _desc, prog = _me)
  p.add_argument("--eval", "-e", metavar = "CODE",
                 help = "code to run (instead of the repl)")
  p.add_argument("--interactive", "-i", action = "store_true",
                 help = "start the repl after --eval")
  p.add_argument("--prompt", metavar = "PROMPT", default = "@",
                 help = "repl prompt (default: %(default)s)")
  p.add_argument("--wrap", metavar = "MODE", default = S.CLASS_WRAP,
                 help = "wrap units in a class or an object "
                        "(class|object; default: %(default)s)")
  p.add_argument("--hist-file", metavar = "FILE", default = "~/.kaiwa",
                 help = "history file; empty to disable "
                        "(default: %(default)s)")
  p.add_argument("--predef", metavar = "FILE",
                 help = "code to run before the first line")
  p.add_argument("--backend", metavar = "MODULE:FACTORY",
                 default = DEFAULT_BACKEND,
                 help = "compiler/loader backend (default: %(default)s)")
  p.add_argument("--no-color", dest = "color", action = "store_false",
                 help = "do not color errors")
  p.add_argument("--debug", action = "store_true",
                 help = "log debug messages to stderr")
  p.add_argument("--version", action = "version",
                 version = "%(prog)s {}".format(__version__))
  p.add_argument("--test", action = "store_true",
                 help = "run tests (instead of the interpreter)")
  p.add_argument("--verbose", "-v", action = "store_true",
                 help = "run tests verbosely")
  return p
                                                                # }}}1

def _config(p, n):
  wrap = S.WRAP_MODES.get(n.wrap)
  if wrap is None:
    p.error("invalid wrap mode: {!r}".format(n.wrap))
  return Config(n.prompt, wrap, n.hist_file, n.predef, n.backend,
                n.color and sys.stdout.isatty(), n.debug)

def config(*args):
  """Parse arguments into a Config."""
  p = _argument_parser()
  return _config(p, p.parse_args(args))

def test(verbose = False):                                      # {{{1
  """Run doctest on all modules."""
  import doctest, pkgutil
  from . import __path__ as path
  tot_f, tot_t = 0, 0
  for x in pkgutil.iter_modules(path):
    m = importlib.import_module("."+x.name, __package__)
    if verbose: print("Testing module {} ...".format(x.name))
    f, t = doctest.testmod(m, verbose = verbose,
                           optionflags = doctest.ELLIPSIS)
    tot_f += f; tot_t += t
    if verbose: print()
  if verbose:
    print("Summary:")
    print("{} passed and {} failed.".format(tot_t - tot_f, tot_f))
    if tot_f == 0: print("Test passed.")
    else: print("***Test Failed*** {} failures.".format(tot_f))
  return 0 if tot_f == 0 else 1
                                                                # }}}1

def main_():
  """Entry point for main program."""
  return main(*sys.argv[1:])

if __name__ == "__main__":
  sys.exit(main_())

# vim: set tw=70 sw=2 sts=2 et fdm=marker :
