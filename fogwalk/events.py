"""Single-threaded event loop with timers and a thread-safe inbox.

All engine state is mutated from callbacks run by this loop. Blocking I/O
(street fetches) runs on worker threads and re-enters the loop by posting
its result to the inbox, so the engine itself never needs locks.
"""

import heapq
import itertools
import queue
import threading
import time
from typing import Callable, Optional


class ScheduledCall:
    """Handle for a timer registered with EventLoop.call_later"""

    def __init__(self, when: float, seq: int, callback: Callable, args: tuple):
        self.when = when
        self.seq = seq
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

    def __lt__(self, other: "ScheduledCall") -> bool:
        return (self.when, self.seq) < (other.when, other.seq)


class EventLoop:
    """Cooperative scheduler. Clock and sleep are injectable for tests."""

    def __init__(self, clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        self.clock = clock
        self.sleep = sleep
        self._timers: list[ScheduledCall] = []
        self._seq = itertools.count()
        self._inbox: queue.Queue = queue.Queue()
        self._jobs_lock = threading.Lock()
        self._jobs_pending = 0

    def time(self) -> float:
        return self.clock()

    def call_later(self, delay: float, callback: Callable, *args) -> ScheduledCall:
        """Run callback(*args) after delay seconds"""
        call = ScheduledCall(self.clock() + max(0.0, delay), next(self._seq), callback, args)
        heapq.heappush(self._timers, call)
        return call

    def call_soon(self, callback: Callable, *args) -> ScheduledCall:
        return self.call_later(0, callback, *args)

    def post(self, callback: Callable, *args):
        """Queue callback from any thread; it runs on the loop's next pass"""
        self._inbox.put((callback, args))

    def run_in_thread(self, func: Callable, on_done: Callable,
                      on_error: Optional[Callable] = None):
        """Run func on a worker thread and deliver its result through the inbox"""
        with self._jobs_lock:
            self._jobs_pending += 1

        def worker():
            try:
                result = func()
            except Exception as e:
                if on_error:
                    self.post(self._finish_job, on_error, e)
                else:
                    self.post(self._finish_job, _reraise, e)
            else:
                self.post(self._finish_job, on_done, result)

        threading.Thread(target=worker, daemon=True).start()

    def _finish_job(self, callback: Callable, value):
        with self._jobs_lock:
            self._jobs_pending -= 1
        callback(value)

    def _drain_inbox(self) -> int:
        count = 0
        while True:
            try:
                callback, args = self._inbox.get_nowait()
            except queue.Empty:
                return count
            callback(*args)
            count += 1

    def _prune(self):
        while self._timers and self._timers[0].cancelled:
            heapq.heappop(self._timers)

    def run_once(self) -> int:
        """Run inbox items and every timer that is due. Returns callbacks run."""
        count = self._drain_inbox()
        now = self.clock()
        due = []
        self._prune()
        while self._timers and self._timers[0].when <= now:
            call = heapq.heappop(self._timers)
            if not call.cancelled:
                due.append(call)
        for call in due:
            # An earlier callback in this batch may have cancelled it
            if call.cancelled:
                continue
            call.callback(*call.args)
            count += 1
        return count

    def has_pending(self) -> bool:
        self._prune()
        with self._jobs_lock:
            jobs = self._jobs_pending
        return bool(self._timers) or jobs > 0 or not self._inbox.empty()

    def _wait(self, deadline: Optional[float]):
        """Block until the next timer is due or a worker posts a result"""
        self._prune()
        now = self.clock()
        next_when = self._timers[0].when if self._timers else None
        if deadline is not None and (next_when is None or deadline < next_when):
            next_when = deadline
        with self._jobs_lock:
            jobs = self._jobs_pending
        if jobs > 0 or next_when is None:
            timeout = 0.05 if next_when is None else min(0.05, max(0.0, next_when - now))
            try:
                callback, args = self._inbox.get(timeout=timeout)
            except queue.Empty:
                if next_when is not None and next_when > self.clock():
                    self.sleep(0)
                return
            callback(*args)
            return
        delay = next_when - now
        if delay > 0:
            self.sleep(delay)

    def run_until(self, predicate: Callable[[], bool], timeout: Optional[float] = None) -> bool:
        """Run until predicate() is true. Returns False on timeout or when idle."""
        deadline = self.clock() + timeout if timeout is not None else None
        while True:
            self.run_once()
            if predicate():
                return True
            if not self.has_pending():
                return False
            if deadline is not None and self.clock() >= deadline:
                return False
            self._wait(deadline)

    def run_until_idle(self, timeout: Optional[float] = None) -> bool:
        """Run until no timers, jobs or inbox items remain"""
        return self.run_until(lambda: not self.has_pending(), timeout=timeout)

    def run_forever(self, stop: Callable[[], bool] = lambda: False):
        """Keep serving the inbox even when idle (interactive sessions)"""
        while not stop():
            self.run_once()
            self._wait(None)


def _reraise(error: Exception):
    raise error


class ManualClock:
    """Virtual clock whose sleep advances time instantly"""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float):
        self.now += max(0.0, seconds)

    def advance(self, seconds: float):
        self.sleep(seconds)
