"""Task Graph Executor.

Runs a validated `TaskGraph`:
- every task whose dependencies have all succeeded is started immediately,
  so independent tasks run concurrently;
- the first failure (by completion order) is latched, nothing new is started
  afterwards, and in-flight tasks are allowed to finish with their outcomes
  discarded;
- on success the value of the graph's final task is returned.

Three entry points share one driver: `execute` (awaitable, raises),
`run` (awaitable, reports through a completion callback) and `run_sync`
(blocking).
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable

from execution.graph import ResultBag, TaskGraph, TaskNode

logger = logging.getLogger(__name__)

DoneCallback = Callable[[BaseException | None, Any], Any]
ProgressCallback = Callable[[dict[str, Any]], Any]


@dataclass
class ExecutionState:
    """Bookkeeping for a single run. Never shared between runs."""

    started: set[str] = field(default_factory=set)
    in_flight: set[str] = field(default_factory=set)
    completed: set[str] = field(default_factory=set)
    error: BaseException | None = None
    result: Any = None


class TaskGraphExecutor:
    """Dependency-driven scheduler for a static set of named tasks."""

    def __init__(self, progress_callback: ProgressCallback | None = None, offload_sync: bool = True):
        self.progress_callback = progress_callback
        self.offload_sync = offload_sync
        # Tasks still running after their run was cancelled from outside.
        self._detached: set[asyncio.Task] = set()

    async def execute(self, graph: TaskGraph) -> Any:
        """Run the graph and return the final task's value, raising the first task error."""
        state = await self._drive(graph)
        if state.error is not None:
            raise state.error
        return state.result

    async def run(self, graph: TaskGraph, on_done: DoneCallback) -> None:
        """Run the graph and report `(error, result)` to `on_done` exactly once."""
        state = await self._drive(graph)
        outcome = on_done(state.error, None if state.error is not None else state.result)
        if inspect.isawaitable(outcome):
            await outcome

    def run_sync(self, graph: TaskGraph) -> Any:
        """Blocking variant of `execute`. Must not be called from a running event loop."""
        return asyncio.run(self.execute(graph))

    async def _drive(self, graph: TaskGraph) -> ExecutionState:
        state = ExecutionState()
        results: dict[str, Any] = {}
        bag: ResultBag = MappingProxyType(results)
        completions: asyncio.Queue[tuple[str, asyncio.Task]] = asyncio.Queue()
        running: dict[str, asyncio.Task] = {}

        async def schedule_ready() -> None:
            if state.error is not None:
                return
            started: list[str] = []
            for name, node in graph.nodes.items():
                if name in state.started:
                    continue
                if not all(dep in state.completed for dep in node.dependencies):
                    continue
                state.started.add(name)
                state.in_flight.add(name)
                task = asyncio.create_task(self._invoke(node, bag), name=f"task-graph:{name}")
                task.add_done_callback(lambda t, n=name: completions.put_nowait((n, t)))
                running[name] = task
                logger.debug("Task started: %s", name)
                started.append(name)
            for name in started:
                await self._emit_progress({"type": "task_started", "task": name})

        logger.info("Task graph started: %d tasks, final=%s", len(graph), graph.final)
        try:
            await schedule_ready()
            while state.in_flight:
                name, task = await completions.get()
                state.in_flight.discard(name)
                running.pop(name, None)

                if task.cancelled():
                    error: BaseException | None = asyncio.CancelledError(f"Task '{name}' was cancelled")
                else:
                    error = task.exception()

                if state.error is not None:
                    logger.info("Discarding outcome of task '%s' after earlier failure", name)
                    await self._emit_progress({"type": "task_discarded", "task": name})
                    continue

                if error is not None:
                    state.error = error
                    logger.info("Task '%s' failed, halting scheduling: %r", name, error)
                    await self._emit_progress({"type": "task_failed", "task": name, "error": repr(error)})
                    continue

                results[name] = task.result()
                state.completed.add(name)
                logger.debug("Task completed: %s", name)
                await self._emit_progress({"type": "task_completed", "task": name})
                await schedule_ready()
        except asyncio.CancelledError:
            for task in running.values():
                self._detached.add(task)
                task.add_done_callback(self._detached.discard)
            raise

        if state.error is None:
            state.result = results[graph.final]
            logger.info("Task graph finished: final=%s", graph.final)
        return state

    async def _invoke(self, node: TaskNode, bag: ResultBag) -> Any:
        if inspect.iscoroutinefunction(node.action):
            return await node.action(bag)

        if self.offload_sync:
            outcome = await asyncio.to_thread(node.action, bag)
        else:
            outcome = node.action(bag)
        if inspect.isawaitable(outcome):
            return await outcome
        return outcome

    async def _emit_progress(self, payload: dict[str, Any]) -> None:
        if self.progress_callback is None:
            return
        try:
            maybe_result = self.progress_callback(payload)
            if inspect.isawaitable(maybe_result):
                await maybe_result
        except Exception as exc:
            logger.warning("Failed to emit task graph progress callback: %s", exc)
