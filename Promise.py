import logging
import threading
from collections import namedtuple
from functools import partial

import TaskQueue
from ResolutionStep import FULFILLED, REJECTED, ResolutionStep

PENDING = 'pending'

logger = logging.getLogger(__name__)

# What a promise is resolved with: a plain value, or another promise whose
# outcome it adopts.
Value = namedtuple('Value', ['value'])
Pending = namedtuple('Pending', ['promise'])


class PromiseException(Exception):
    def __init__(self, value):
        super().__init__(value)
        self.value = value

    def __str__(self):
        return repr(self.value)


class CancellationException(PromiseException):
    def __init__(self, value='Promise has been cancelled'):
        super().__init__(value)


def settlement_payload(value):
    if isinstance(value, Promise):
        return Pending(value)
    return Value(value)


class _Adoption:
    """Settles ``promise`` with the outcome of the promise it adopted."""

    def __init__(self, promise):
        self.promise = promise

    def is_settled(self):
        return self.promise.state != PENDING

    def resolve(self, value):
        self.promise._complete(FULFILLED, value)

    def reject(self, reason):
        self.promise._complete(REJECTED, reason)

    def __repr__(self):
        return '<adoption by %r>' % self.promise


class Promise:
    # Seconds between checks on whether another thread is still draining.
    WAIT_POLL_INTERVAL = 0.05

    def __init__(self, fn=None, queue=None):
        self.state = PENDING
        self.result = None
        self.steps = []
        self.queue = queue if queue is not None else TaskQueue.queue()

        # Set by the first resolve/reject/cancel, before ``state`` changes
        # when the resolution adopts another promise.
        self._locked = False
        self._lock = threading.Lock()
        self._settled = threading.Event()

        if fn is not None:
            try:
                fn(self.resolve, self.reject)
            except Exception as e:
                self.reject(e)

    @staticmethod
    def resolved(value, queue=None):
        promise = Promise(queue=queue)
        promise.resolve(value)
        return promise

    @staticmethod
    def rejected(reason, queue=None):
        promise = Promise(queue=queue)
        promise.reject(reason)
        return promise

    def resolve(self, value):
        if value is self and not self._locked:
            raise TypeError('Cannot resolve a promise with itself')
        if not self._lock_in():
            return

        payload = settlement_payload(value)
        if isinstance(payload, Pending):
            logger.debug('%r adopting %r', self, payload.promise)
            payload.promise._add_step(ResolutionStep(_Adoption(self)))
        else:
            self._complete(FULFILLED, payload.value)

    def reject(self, reason):
        if self._lock_in():
            self._complete(REJECTED, reason)

    def cancel(self):
        """Rejects the promise with a CancellationException unless it is
        already settled. Returns whether the cancellation took effect.
        """
        if not self._lock_in():
            return False
        logger.debug('Cancelling %r', self)
        self._complete(REJECTED, CancellationException())
        return True

    def is_settled(self):
        return self._locked

    def then(self, on_fulfilled=None, on_rejected=None):
        downstream = Promise(queue=self.queue)
        self._add_step(ResolutionStep(downstream, on_fulfilled, on_rejected))
        return downstream

    def catch(self, on_rejected):
        return self.then(None, on_rejected)

    def wait(self):
        """Drains the task queue and returns the fulfillment value.

        A rejection is raised: exceptions as they are, any other reason
        wrapped in a PromiseException. Called from a task of the same queue,
        it runs the queued tasks itself; while another thread drains the
        queue, it blocks until that thread settles the promise or stops.
        """
        if self.queue.is_draining_here():
            while self.state == PENDING and self.queue.run_once():
                pass
        else:
            while self.state == PENDING:
                self.queue.run()
                if self.state != PENDING or not self.queue.running:
                    break
                self._settled.wait(self.WAIT_POLL_INTERVAL)

        if self.state == PENDING:
            raise RuntimeError('%r did not settle after draining its task queue' % self)
        if self.state == REJECTED:
            if isinstance(self.result, BaseException):
                raise self.result
            raise PromiseException(self.result)
        return self.result

    def _lock_in(self):
        with self._lock:
            if self._locked:
                return False
            self._locked = True
            return True

    def _complete(self, state, result):
        with self._lock:
            if self.state != PENDING:
                return
            self.state = state
            self.result = result
            steps, self.steps = self.steps, []
        self._settled.set()

        logger.debug('%r settled, scheduling %d step(s)', self, len(steps))
        if steps:
            self.queue.add(*[partial(step.invoke, state, result) for step in steps])

    def _add_step(self, step):
        with self._lock:
            if self.state == PENDING:
                self.steps.append(step)
                return
            state, result = self.state, self.result
        self.queue.add(partial(step.invoke, state, result))

    def __repr__(self):
        if self.state == PENDING:
            v = '(pending)'
        elif self.state == REJECTED:
            v = repr(self.result) + ' (rejected)'
        else:
            v = repr(self.result)
        return '<%s %s>' % (self.__class__.__name__, v)
