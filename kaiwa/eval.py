# --                                                            ; {{{1
#
# File        : kaiwa/eval.py
# Maintainer  : Felix C. Stegerman <flx@obfusk.net>
# Date        : 2017-11-25
#
# Copyright   : Copyright (C) 2017  Felix C. Stegerman
# Version     : v0.0.1
# License     : GPLv3+
#
# --                                                            ; }}}1

                                                                # {{{1
r"""
Compile, load and run units; commit them to the session scope only
when they succeed.

>>> import io, threading
>>> from kaiwa.toy import ToyBackend
>>> out, seen = io.StringIO(), []
>>> s = Session(ToyBackend(), sink = out.write, on_success = seen.append)
>>> s.submit("1 + 1")
Success(text='res0: Int = 2\n', bindings=(BindingEntry(name='res0', origin='cmd0.INSTANCE', is_lazy=False, kind='value'),), imports=())
>>> out.getvalue()
'res0: Int = 2\n'

>>> s.submit("val x = {")
Buffer(code='val x = {')
>>> s.submit("   ")
Skip

>>> t = threading.Timer(0.2, s.interrupt_current); t.start()
>>> s.submit("Thread.sleep(60000)")
Interrupted
>>> [ x for x in threading.enumerate() if x.name == "cmd1" ]
[]
>>> len(s.scope)
1
>>> s.submit("res0 * 21").text
'res2: Int = 42\n'

>>> s.submit('sys.error("boom")')
Failure(kind='RuntimeError', message='java.lang.RuntimeException: boom')
>>> len(s.scope), s.scope.version
(2, 2)
>>> s.submit('val a = 1; val b = 2; val c: Int = sys.error("late")').kind
'RuntimeError'
>>> len(s.scope), s.scope.version
(2, 2)

>>> s.submit("nope + 1")                        # doctest: +ELLIPSIS
Failure(kind='CompileError', message='cmd5.sc:...: not found: value nope')
>>> s.submit(") 1").kind
'ParseError'
>>> s.submit("val = 1").kind
'ClassificationFailure'
>>> s.next_id
6

>>> s.submit("import foo.bar; val y = 1; y + res2").text
'import foo.bar\ny: Int = 1\nres6_2: Int = 43\n'
>>> s.scope.imports
(ImportEntry(path='foo.bar', origin='cmd6.INSTANCE'),)
>>> seen
['1 + 1', 'res0 * 21', 'import foo.bar; val y = 1; y + res2']
"""                                                             # }}}1

import ctypes, logging, sys, threading

from . import data as D
from . import preproc as P
from . import scope as S

logger = logging.getLogger(__name__)

class _Stop(BaseException):
  """Raised asynchronously in a thread running an interrupted unit."""

def _stop_thread(thread):
  n = ctypes.pythonapi.PyThreadState_SetAsyncExc(
        ctypes.c_ulong(thread.ident), ctypes.py_object(_Stop))
  if n > 1:
    ctypes.pythonapi.PyThreadState_SetAsyncExc(
      ctypes.c_ulong(thread.ident), None)
    raise SystemError("PyThreadState_SetAsyncExc failed")
  return n == 1

class CancelToken(object):
  """
    Cancellation and commit are mutually exclusive: whichever happens
    first under the lock wins.
  """

  def __init__(self):
    self.lock = threading.Lock()
    self.cancelled = self.committed = False

  def cancel(self):
    with self.lock:
      if self.committed: return False
      self.cancelled = True
      return True

class Engine(object):                                           # {{{1
  """
    Runs one unit at a time against a backend; a unit's bindings and
    imports reach the scope only if it compiled and ran to the end.
  """

  def __init__(self, backend, scope):
    self.backend, self.scope = backend, scope

  def run(self, unit, sink = None, token = None):               # {{{2
    r"""
    Compile, load and invoke a unit, streaming its output to sink;
    returns Success or Failure (raises Interrupted if cancelled).

    >>> from kaiwa.toy import ToyBackend
    >>> from kaiwa.preproc import Preprocessor
    >>> e = Engine(ToyBackend(), S.SessionScope())
    >>> u = S.build_unit(Preprocessor()("val a = 6 * 7", 0),
    ...                  e.scope.snapshot(), 0)
    >>> e.run(u, token = CancelToken()).text
    'a: Int = 42\n'
    >>> e.scope.version
    1
    """

    token = token or CancelToken()
    try:
      artifact = self.backend.compile(unit.source)
    except D.CompileError as e:
      logger.debug("%s: compile error", unit.name)
      return D.Failure(D.COMPILE_ERROR, str(e))
    try:
      frags = []
      for x in self.backend.invoke(self.backend.load(artifact)):
        frags.append(x)
        if sink is not None: sink(x)
    except D.RuntimeFault as e:
      logger.debug("%s: runtime fault", unit.name)
      return D.Failure(D.RUNTIME_ERROR, str(e))
    with token.lock:
      if token.cancelled: raise D.Interrupted(unit.name)
      self.scope.commit(unit)
      token.committed = True
    return D.Success("".join(frags), unit.bindings, unit.imports)
                                                                # }}}2
                                                                # }}}1

class _Task(object):
  def __init__(self, unit):
    self.unit, self.token, self.thread = unit, CancelToken(), None
    self.result, self.done = None, threading.Event()

  def settle(self, result):
    if not self.done.is_set():
      self.result = result; self.done.set()

def _stdout(x):
  sys.stdout.write(x); sys.stdout.flush()

class Session(object):                                          # {{{1
  r"""
    A REPL session: preprocessor, scope, engine and the wrapper
    counter.  Every built unit consumes an identifier, whether it
    succeeds or not.

    >>> from kaiwa.toy import ToyBackend
    >>> s = Session(ToyBackend(), wrap = S.OBJECT_WRAP,
    ...             sink = lambda x: None)
    >>> s.submit("val z = 2").bindings
    (BindingEntry(name='z', origin='cmd0', is_lazy=False, kind='value'),)
    >>> s.submit("z * 3").text
    'res1: Int = 6\n'
  """

  join_timeout = 2.0

  def __init__(self, backend, wrap = S.CLASS_WRAP, display = None,
               sink = _stdout, on_success = None):
    self.preprocessor = P.Preprocessor(display)
    self.scope        = S.SessionScope()
    self.engine       = Engine(backend, self.scope)
    self.wrap, self.sink, self.on_success = wrap, sink, on_success
    self.next_id, self._task = 0, None
    self._lock        = threading.Lock()

  def _prepare(self, code, wrapper_id):
    try:
      return self.preprocessor(code, wrapper_id)
    except D.ParseError as e:
      return D.Failure(D.PARSE_ERROR, str(e))
    except D.ClassificationFailure as e:
      return D.Failure(D.CLASSIFICATION_FAILURE, str(e))

  def submit(self, code):
    """
    Process one buffer: Buffer (needs more input), SKIP, Success,
    Failure or INTERRUPTED.
    """
    outs = self._prepare(code, self.next_id)
    if not isinstance(outs, list): return outs
    unit = S.build_unit(outs, self.scope.snapshot(), self.next_id,
                        self.wrap)
    self.next_id += 1
    res = self._execute(unit)
    if isinstance(res, D.Success): self._record(code)
    return res

  def run_predef(self, code):
    r"""
    Run predef code (once, before the first submission); it does not
    consume an identifier.

    >>> from kaiwa.toy import ToyBackend
    >>> s = Session(ToyBackend(), sink = lambda x: None)
    >>> s.run_predef("val answer = 42").bindings
    (BindingEntry(name='answer', origin='cmdPredef.INSTANCE', is_lazy=False, kind='value'),)
    >>> s.submit("answer").text, s.next_id
    ('res0: Int = 42\n', 1)

    >>> s = Session(ToyBackend(), sink = lambda x: None)
    >>> s.run_predef("nope").kind
    'CompileError'
    >>> s.submit("1").text
    'res0: Int = 1\n'
    """
    outs = self._prepare(code, "Predef")
    if not isinstance(outs, list): return outs
    unit = S.build_unit(outs, self.scope.snapshot(), "Predef",
                        self.wrap)
    return self._execute(unit)

  def _execute(self, unit):                                     # {{{2
    task = _Task(unit)
    task.thread = threading.Thread(target = self._work, args = (task,),
                                   name = unit.name, daemon = True)
    with self._lock: self._task = task
    try:
      task.thread.start()
      while True:
        try:
          task.done.wait()
          break
        except KeyboardInterrupt:
          self.interrupt_current()
      if task.token.cancelled: self._reap(task)
      return task.result
    finally:
      with self._lock: self._task = None
                                                                # }}}2

  def _reap(self, task):
    task.thread.join(self.join_timeout)
    if task.thread.is_alive():
      logger.warning("%s still running %.1fs after interrupt",
                     task.unit.name, self.join_timeout)

  def _work(self, task):
    # the stop may arrive anywhere, even while handling another error
    try:
      try:
        res = self.engine.run(task.unit, self.sink, task.token)
      except D.Interrupted:
        res = D.INTERRUPTED
      except Exception as e:
        logger.exception("%s: unexpected error", task.unit.name)
        res = D.Failure(D.RUNTIME_ERROR,
                        "{}: {}".format(type(e).__name__, e))
    except _Stop:
      res = D.INTERRUPTED
    if res is D.INTERRUPTED: logger.info("%s interrupted", task.unit.name)
    task.settle(res)

  def interrupt_current(self):
    """
    Cancel the running unit (if any and not yet committed); returns
    whether there was something to cancel.
    """
    with self._lock: task = self._task
    if task is None or task.done.is_set(): return False
    if not task.token.cancel(): return False
    logger.debug("interrupting %s", task.unit.name)
    if not _stop_thread(task.thread):
      # the thread already finished; the cancelled token stops the commit
      logger.debug("%s: no thread to stop", task.unit.name)
    task.settle(D.INTERRUPTED)
    return True

  def _record(self, code):
    if self.on_success is None: return
    try:
      self.on_success(code)
    except OSError as e:
      logger.warning("could not record history: %s", e)
                                                                # }}}1

if __name__ == "__main__":
  import doctest
  if doctest.testmod()[0]: sys.exit(1)

# vim: set tw=70 sw=2 sts=2 et fdm=marker :
