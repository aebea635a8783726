import logging

FULFILLED = 'fulfilled'
REJECTED = 'rejected'

logger = logging.getLogger(__name__)


class ResolutionStep:
    """Links one downstream promise to the continuations registered for it.

    The scheduler calls ``invoke`` once, when the upstream promise settles.
    Whatever the continuation does (return a value, return a promise, raise)
    ends up as a settlement of ``downstream``; nothing escapes to the caller.
    """

    def __init__(self, downstream, on_fulfilled=None, on_rejected=None):
        for name, callback in (('on_fulfilled', on_fulfilled), ('on_rejected', on_rejected)):
            if callback is not None and not callable(callback):
                raise TypeError('%s must be callable, got %r' % (name, callback))

        self.downstream = downstream
        self.on_fulfilled = on_fulfilled
        self.on_rejected = on_rejected

    def invoke(self, branch, value):
        # The downstream may have been cancelled or settled before this
        # call came off the queue.
        if self.downstream.is_settled():
            logger.debug('Skipping %s step, downstream %r already settled', branch, self.downstream)
            return

        handler = self.on_fulfilled if branch == FULFILLED else self.on_rejected

        # A traceback raised from the handler must not lead back to it.
        self.on_fulfilled = None
        self.on_rejected = None

        try:
            if handler is not None:
                self.downstream.resolve(handler(value))
            elif branch == FULFILLED:
                self.downstream.resolve(value)
            else:
                self.downstream.reject(value)
        except Exception as e:
            logger.debug('Continuation raised %r, rejecting %r', e, self.downstream)
            self.downstream.reject(e)

    def __repr__(self):
        return '<%s downstream=%r>' % (self.__class__.__name__, self.downstream)
