"""Named task DAG with make-style freshness skipping and parallel scheduling."""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from graphlib import CycleError, TopologicalSorter
from pathlib import Path

from bootforge.errors import BootforgeError, ConfigurationError
from bootforge.freshness import is_stale
from bootforge.models import TaskOutcome
from bootforge.observability import StructuredLogger


@dataclass(frozen=True, slots=True)
class Task:
    """A pipeline step.

    ``inputs``/``outputs`` declare the files the step reads and writes. A task
    with outputs is skipped when every output is fresh against its inputs;
    a task without outputs always runs.
    """

    name: str
    action: Callable[[], object]
    deps: tuple[str, ...] = ()
    inputs: tuple[Path, ...] = ()
    outputs: tuple[Path, ...] = ()

    def is_up_to_date(self) -> bool:
        if not self.outputs:
            return False
        return not any(is_stale(output, self.inputs) for output in self.outputs)


@dataclass(slots=True)
class TaskGraph:
    logger: StructuredLogger = field(default_factory=StructuredLogger)
    profile: str | None = None
    _tasks: dict[str, Task] = field(default_factory=dict, init=False, repr=False)

    def add(self, task: Task) -> Task:
        if task.name in self._tasks:
            raise ConfigurationError(f"Duplicate task name: {task.name!r}")
        self._tasks[task.name] = task
        return task

    def task(self, name: str) -> Task:
        try:
            return self._tasks[name]
        except KeyError:
            raise ConfigurationError(
                f"Unknown task: {name!r}",
                hint=f"Known tasks: {', '.join(sorted(self._tasks))}.",
            ) from None

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._tasks)

    def dependencies(self, targets: Iterable[str]) -> set[str]:
        """Return *targets* plus everything they transitively depend on."""
        selected: set[str] = set()
        pending = list(targets)
        while pending:
            name = pending.pop()
            if name in selected:
                continue
            task = self.task(name)
            selected.add(name)
            pending.extend(task.deps)
        return selected

    def order(self, targets: Iterable[str]) -> list[str]:
        return list(self._sorter(self.dependencies(targets)).static_order())

    def run(self, targets: Iterable[str], *, max_workers: int = 2) -> dict[str, TaskOutcome]:
        """Run *targets* and their dependencies, independent tasks in parallel.

        On the first failure no further task is scheduled; tasks already
        running finish and keep their results, then the failure is re-raised.
        """
        sorter = self._sorter(self.dependencies(targets))
        try:
            sorter.prepare()
        except CycleError as exc:
            raise ConfigurationError(
                "Task graph contains a cycle.",
                context={"cycle": " -> ".join(str(node) for node in exc.args[1])},
            ) from exc

        outcomes: dict[str, TaskOutcome] = {}
        failure: Exception | None = None
        running: dict[Future[TaskOutcome], str] = {}
        with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
            while sorter.is_active():
                if failure is None:
                    for name in sorter.get_ready():
                        running[pool.submit(self._execute, self._tasks[name])] = name
                if not running:
                    break
                done, _ = wait(running, return_when=FIRST_COMPLETED)
                for future in done:
                    name = running.pop(future)
                    try:
                        outcomes[name] = future.result()
                    except Exception as exc:
                        if failure is None:
                            failure = exc
                        continue
                    sorter.done(name)
        if failure is not None:
            raise failure
        return outcomes

    def _sorter(self, selected: set[str]) -> TopologicalSorter[str]:
        return TopologicalSorter({name: self._tasks[name].deps for name in sorted(selected)})

    def _execute(self, task: Task) -> TaskOutcome:
        if task.is_up_to_date():
            self._log(task, "task_skipped", "Outputs are up to date.")
            return TaskOutcome(name=task.name, status="skipped")

        self._log(task, "task_start", "Starting task.")
        started = time.monotonic()
        try:
            value = task.action()
        except BootforgeError as exc:
            self._log(
                task,
                "task_failed",
                str(exc.to_dict()["message"]),
                level="error",
                extra={"code": exc.code, **exc.context},
            )
            raise
        except Exception as exc:
            self._log(
                task,
                "task_failed",
                str(exc),
                level="error",
                extra={"error": type(exc).__name__},
            )
            raise
        duration = time.monotonic() - started
        self._log(
            task, "task_complete", "Completed task.", extra={"duration_s": round(duration, 3)}
        )
        return TaskOutcome(name=task.name, status="ran", duration_s=duration, value=value)

    def _log(
        self,
        task: Task,
        operation: str,
        message: str,
        *,
        level: str = "info",
        extra: dict[str, object] | None = None,
    ) -> None:
        self.logger.log(
            operation=operation,
            profile=self.profile,
            stage=task.name,
            component=None,
            message=message,
            level=level,
            extra=extra,
        )
