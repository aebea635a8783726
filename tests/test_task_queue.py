import pytest

import TaskQueue


def test_runs_tasks_in_fifo_order(manual_queue):
    seen = []
    manual_queue.add(lambda: seen.append(1), lambda: seen.append(2))
    manual_queue.add(lambda: seen.append(3))

    assert seen == []
    assert len(manual_queue) == 3

    manual_queue.run()

    assert seen == [1, 2, 3]
    assert manual_queue.is_empty()


def test_auto_run_drains_on_add():
    queue = TaskQueue.TaskQueue()
    seen = []

    queue.add(lambda: seen.append('ran'))

    assert seen == ['ran']
    assert queue.is_empty()


def test_nested_work_runs_after_current_task():
    queue = TaskQueue.TaskQueue()
    seen = []

    def outer():
        queue.add(lambda: seen.append('inner'))
        seen.append('outer done')

    queue.add(outer)

    assert seen == ['outer done', 'inner']


def test_deep_nesting_does_not_recurse():
    queue = TaskQueue.TaskQueue()
    count = []

    def step():
        count.append(None)
        if len(count) < 20000:
            queue.add(step)

    queue.add(step)

    assert len(count) == 20000


def test_failing_task_propagates_and_keeps_the_rest(manual_queue):
    seen = []

    def boom():
        raise ValueError('boom')

    manual_queue.add(boom, lambda: seen.append('later'))

    with pytest.raises(ValueError):
        manual_queue.run()

    assert not manual_queue.running
    assert len(manual_queue) == 1

    manual_queue.run()
    assert seen == ['later']


def test_process_wide_queue_is_created_once_and_replaceable(queue):
    assert TaskQueue.queue() is queue

    replacement = TaskQueue.TaskQueue(auto_run=False)
    assert TaskQueue.set_queue(replacement) is replacement
    assert TaskQueue.queue() is replacement


def test_queue_created_lazily():
    previous = TaskQueue._queue
    TaskQueue._queue = None
    try:
        created = TaskQueue.queue()
        assert isinstance(created, TaskQueue.TaskQueue)
        assert TaskQueue.queue() is created
    finally:
        TaskQueue._queue = previous


def test_lazy_queue_does_not_register_exit_hooks(monkeypatch):
    registered = []
    monkeypatch.setattr(TaskQueue.atexit, 'register', registered.append)
    monkeypatch.setattr(TaskQueue, '_queue', None)

    TaskQueue.queue()
    TaskQueue.set_queue(None)
    TaskQueue.queue()

    assert registered == []


def test_exit_hook_drains_the_current_queue(monkeypatch):
    replaced = TaskQueue.TaskQueue(auto_run=False)
    current = TaskQueue.TaskQueue(auto_run=False)
    monkeypatch.setattr(TaskQueue, '_queue', replaced)
    TaskQueue.set_queue(current)
    seen = []
    replaced.add(lambda: seen.append('replaced'))
    current.add(lambda: seen.append('current'))

    TaskQueue._run_at_exit()

    assert seen == ['current']


def test_run_once_runs_a_single_task(manual_queue):
    seen = []
    manual_queue.add(lambda: seen.append(1), lambda: seen.append(2))

    assert manual_queue.run_once()
    assert seen == [1]
    assert manual_queue.run_once()
    assert not manual_queue.run_once()
    assert seen == [1, 2]
