# --                                                            ; {{{1
#
# File        : kaiwa/repl.py
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
Read-Eval-Print loop and history file.

>>> from kaiwa.eval import Session
>>> from kaiwa.toy import ToyBackend
>>> lines = iter(["val x = {", "  20 + 1", "}", "x * 2", "exit"])
>>> def read(p):
...   l = next(lines); print(p + l); return l
>>> repl(Session(ToyBackend()), read = read, color = False)
@ val x = {
    20 + 1
  }
x: Int = 21
@ x * 2
res1: Int = 42
@ exit
Bye!
"""                                                             # }}}1

import logging, os, sys

from . import data as D

logger = logging.getLogger(__name__)

SEPARATOR = "\n\n\n"
RED, RESET = "\033[31m", "\033[0m"

class History(object):                                          # {{{1
  r"""
    Append-only history file; entries are separated by blank lines
    (an entry may contain single blank lines).

    >>> import os, tempfile
    >>> d = tempfile.mkdtemp(); f = os.path.join(d, "hist")
    >>> History(f).load()
    []
    >>> h = History(f); h.record("1 + 1"); h.record("def f = {\n\n  1\n}")
    >>> History(f).load()
    ['1 + 1', 'def f = {\n\n  1\n}']
  """

  def __init__(self, path):
    self.path = path

  def load(self):
    try:
      with open(self.path, encoding = "utf8") as f:
        data = f.read()
    except FileNotFoundError:
      return []
    return [ x for x in data.split(SEPARATOR) if x.strip() ]

  def record(self, text):
    with open(self.path, "a", encoding = "utf8") as f:
      f.write(SEPARATOR + text)
                                                                # }}}1

def _readline(history):
  try:
    import readline
  except ImportError:
    return
  for x in history: readline.add_history(x)

def print_error(res, color):
  msg = "{}: {}".format(res.kind, res.message)
  print(RED + msg + RESET if color else msg, file = sys.stdout)

def repl(session, prompt = "@", color = True, read = input,
         history = ()):                                         # {{{1
  """
    Read-Eval-Print loop: accumulate lines while the input is
    incomplete, then submit; Ctrl-C while reading drops the buffer,
    while evaluating interrupts the running unit.

    >>> class Stuck(object):
    ...   def submit(self, code): raise KeyboardInterrupt
    >>> lines = iter(["1 + 1"])
    >>> def read(p):
    ...   l = next(lines, None)
    ...   if l is None: raise EOFError
    ...   print(p + l); return l
    >>> repl(Stuck(), read = read, color = False)
    @ 1 + 1
    Interrupted!
    <BLANKLINE>
    Bye!
  """

  if sys.stdin.isatty() and read is input: _readline(history)
  main, cont = prompt + " ", " " * (len(prompt) + 1)
  buf = None
  while True:
    try:
      line = read(main if buf is None else cont)
    except EOFError:
      print(); break
    except KeyboardInterrupt:
      print(); buf = None; continue
    if buf is None and line.strip() == "exit": break
    code = line if buf is None else buf + "\n" + line
    try:
      res = session.submit(code)
    except KeyboardInterrupt:
      res = D.INTERRUPTED
    buf = None
    if isinstance(res, D.Buffer):
      buf = res.code
    elif isinstance(res, D.Failure):
      print_error(res, color)
    elif res is D.INTERRUPTED:
      print("Interrupted!")
  print("Bye!")
                                                                # }}}1

def history_hook(path):
  """on_success hook recording to a history file (or None)."""
  if not path: return None
  return History(os.path.expanduser(path)).record

if __name__ == "__main__":
  import doctest
  if doctest.testmod()[0]: sys.exit(1)

# vim: set tw=70 sw=2 sts=2 et fdm=marker :
