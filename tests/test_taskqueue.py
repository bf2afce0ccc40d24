import threading

from evnet.taskqueue import LockFreeQueue, Task


def test_lock_free_queue_concurrent():
    task_num = 10000
    q = LockFreeQueue()
    counter = 0
    counter_lock = threading.Lock()

    def produce():
        for _ in range(task_num):
            q.enqueue(Task())

    def consume():
        nonlocal counter
        while True:
            task = q.dequeue()
            with counter_lock:
                if task is not None:
                    counter += 1
                done = counter == 2 * task_num
            if task is None and done:
                break

    threads = [
        threading.Thread(target=produce),
        threading.Thread(target=produce),
        threading.Thread(target=consume),
        threading.Thread(target=consume),
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    assert not any(t.is_alive() for t in threads)
    assert counter == 2 * task_num
    assert q.is_empty()
    assert q.dequeue() is None


def test_empty_queue():
    q = LockFreeQueue()
    assert q.is_empty() is True
    assert len(q) == 0
    assert q.dequeue() is None


def test_fifo_order_and_length():
    q = LockFreeQueue()
    tasks = [Task(arg=i) for i in range(5)]
    for t in tasks:
        q.enqueue(t)
    assert len(q) == 5
    assert q.is_empty() is False
    out = [q.dequeue() for _ in range(5)]
    assert [t.arg for t in out] == [0, 1, 2, 3, 4]
    assert out[0] is tasks[0]
    assert q.is_empty() is True


def test_task_runs_with_its_argument():
    seen = []
    task = Task(run=seen.append, arg="payload")
    q = LockFreeQueue()
    q.enqueue(task)
    got = q.dequeue()
    got.run(got.arg)
    assert seen == ["payload"]


def test_task_defaults():
    task = Task()
    assert task.run is None
    assert task.arg is None