import atexit
import logging
import threading
from collections import deque

logger = logging.getLogger(__name__)

_queue = None


class TaskQueue:
    """FIFO of zero-argument callables, drained one at a time.

    A task that adds more work never runs that work itself: the outermost
    ``run`` picks it up once the current task returns, so chained
    settlements do not deepen the call stack.
    """

    def __init__(self, auto_run=True, run_on_exit=False):
        self.auto_run = auto_run
        self.tasks = deque()
        self.running = False
        self._lock = threading.Lock()
        # Ident of the thread inside ``run``, if any.
        self._runner = None

        if run_on_exit:
            atexit.register(self.run)

    def add(self, *tasks):
        self.tasks.extend(tasks)
        if self.auto_run:
            self.run()

    def run(self):
        # Re-checked after each drain: another thread may have added work
        # while this one was finishing.
        while self.tasks:
            with self._lock:
                if self.running:
                    return
                self.running = True
                self._runner = threading.get_ident()

            try:
                while self.tasks:
                    task = self.tasks.popleft()
                    task()
            finally:
                self._runner = None
                self.running = False

    def run_once(self):
        """Runs the next task, if any. Returns whether one ran."""
        try:
            task = self.tasks.popleft()
        except IndexError:
            return False
        task()
        return True

    def is_draining_here(self):
        return self._runner == threading.get_ident()

    def is_empty(self):
        return not self.tasks

    def __len__(self):
        return len(self.tasks)

    def __repr__(self):
        return '<%s pending=%d running=%s>' % (self.__class__.__name__, len(self.tasks), self.running)


def queue():
    """Returns the process-wide queue, creating it on first use."""
    global _queue
    if _queue is None:
        _queue = TaskQueue()
    return _queue


def set_queue(new_queue):
    global _queue
    if _queue is not None and not _queue.is_empty():
        logger.warning('Replacing task queue with %d pending tasks', len(_queue))
    _queue = new_queue
    return _queue


@atexit.register
def _run_at_exit():
    if _queue is not None:
        _queue.run()
