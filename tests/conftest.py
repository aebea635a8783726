import pytest

import TaskQueue


@pytest.fixture
def queue():
    """A fresh, auto-running queue installed as the process-wide default."""
    previous = TaskQueue._queue
    yield TaskQueue.set_queue(TaskQueue.TaskQueue())
    TaskQueue._queue = previous


@pytest.fixture
def manual_queue():
    """A queue that only runs when drained explicitly."""
    return TaskQueue.TaskQueue(auto_run=False)
