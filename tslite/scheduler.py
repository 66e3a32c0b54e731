"""
Cooperative task scheduler for async functions.

Each task wraps a generator. The generator yields whatever the script is
awaiting; the scheduler parks the task until that value settles and then
resumes it, in FIFO order, with the fulfilled value (via `send`) or the
rejection (via `throw`). There is no preemption: a task runs until its next
`await` or until it finishes.

A runtime error rejects only the task it escapes from and awaiters receive
the same error. Only the main task lets it propagate out of the scheduler.
"""

from __future__ import annotations

import logging
from collections import deque
from enum import Enum
from typing import Deque, Generator, List, Optional, Tuple

from .errors import SchedulerStalled, TsliteError

logger = logging.getLogger(__name__)

TaskBody = Generator[object, object, object]


class TaskState(str, Enum):
    PENDING = "pending"
    FULFILLED = "fulfilled"
    REJECTED = "rejected"


class ThrowSignal(Exception):
    """A script-level `throw` in flight; rejects the task it escapes from."""

    def __init__(self, value: object, line: Optional[int] = None, column: Optional[int] = None) -> None:
        super().__init__(value)
        self.value = value
        self.line = line
        self.column = column


class Task:
    def __init__(self, task_id: int, name: str, body: TaskBody) -> None:
        self.id = task_id
        self.name = name
        self.body = body
        self.state = TaskState.PENDING
        self.result: object = None
        self.rejection: Optional[ThrowSignal] = None
        self.error: Optional[TsliteError] = None
        self.waiters: List[Task] = []
        self.observed = False

    @property
    def label(self) -> str:
        return f"#{self.id} {self.name}"

    @property
    def settled(self) -> bool:
        return self.state is not TaskState.PENDING

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"Task({self.label}, {self.state.value})"


class Scheduler:
    def __init__(self, max_steps: int = 100_000) -> None:
        self.max_steps = max_steps
        self.steps = 0
        self.ready: Deque[Tuple[Task, object]] = deque()
        self.unhandled: List[Task] = []
        self._rejected: List[Task] = []
        self._current: List[Task] = []
        self._main: Optional[Task] = None
        self._next_id = 1

    @property
    def current(self) -> Optional[Task]:
        return self._current[-1] if self._current else None

    def _create(self, name: str, body: TaskBody) -> Task:
        task = Task(self._next_id, name, body)
        self._next_id += 1
        logger.debug("spawn task %s", task.label)
        return task

    def spawn(self, name: str, body: TaskBody) -> Task:
        """Create a task and run it synchronously up to its first suspension."""
        task = self._create(name, body)
        self._step(task, None, None)
        return task

    def run(self, name: str, body: TaskBody) -> Task:
        """Run `body` as the main task, then drain the ready queue."""
        main = self._create(name, body)
        main.observed = True
        self._main = main
        self._step(main, None, None)
        self.drain()
        if not main.settled:
            raise SchedulerStalled("ready queue is empty but the main task is still waiting", task=main.label)
        return main

    def drain(self) -> None:
        while self.ready:
            if self.steps >= self.max_steps:
                raise SchedulerStalled(f"step limit of {self.max_steps} reached with tasks still runnable")
            task, awaited = self.ready.popleft()
            self.steps += 1
            if isinstance(awaited, Task) and awaited.state is TaskState.REJECTED:
                self._step(task, None, self._rethrow(awaited))
            elif isinstance(awaited, Task):
                self._step(task, awaited.result, None)
            else:
                self._step(task, awaited, None)
        self.unhandled.extend(t for t in self._rejected if not t.observed)
        self._rejected = [t for t in self._rejected if t.observed]

    def _step(self, task: Task, value: object, error: Optional[BaseException]) -> None:
        self._current.append(task)
        try:
            if error is not None:
                awaited = task.body.throw(error)
            else:
                awaited = task.body.send(value)
        except StopIteration as stop:
            self._settle(task, TaskState.FULFILLED, stop.value)
        except ThrowSignal as signal:
            task.rejection = signal
            self._settle(task, TaskState.REJECTED, signal.value)
        except TsliteError as exc:
            if task is self._main:
                raise
            if exc.task is None:
                exc.task = task.label
            logger.debug("task %s failed: %s", task.label, exc)
            task.error = exc
            self._settle(task, TaskState.REJECTED, exc)
        else:
            self._suspend(task, awaited)
        finally:
            self._current.pop()

    def _suspend(self, task: Task, awaited: object) -> None:
        if isinstance(awaited, Task):
            awaited.observed = True
            if not awaited.settled:
                logger.debug("task %s waits on %s", task.label, awaited.label)
                awaited.waiters.append(task)
                return
        logger.debug("task %s yields", task.label)
        self.ready.append((task, awaited))

    def _settle(self, task: Task, state: TaskState, result: object) -> None:
        task.state = state
        task.result = result
        logger.debug("task %s %s", task.label, state.value)
        if state is TaskState.REJECTED and not task.waiters:
            self._rejected.append(task)
        for waiter in task.waiters:
            self.ready.append((waiter, task))
        task.waiters.clear()

    @staticmethod
    def _rethrow(task: Task) -> Exception:
        if task.error is not None:
            return task.error
        origin = task.rejection
        if origin is None:
            return ThrowSignal(task.result)
        return ThrowSignal(task.result, origin.line, origin.column)
