"""
Orchestrator - Background job wrapper around crawl().

Crawls are submitted as asyncio tasks keyed by a task id and polled for
status, so a caller (an API handler, a CLI progress loop) never blocks on a
long-running crawl.

Design Pattern: Job Queue + Observer
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

import structlog

from ..models import CrawlResult
from .config import CrawlConfig
from .site_crawler import crawl


class TaskStatus(Enum):
    """Crawl job status"""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class CrawlTask:
    """Represents a single crawl job"""
    task_id: str
    target_url: str
    config: CrawlConfig
    status: TaskStatus = TaskStatus.PENDING
    created_at: datetime = field(default_factory=datetime.now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    result: Optional[CrawlResult] = None
    error: Optional[str] = None
    cancel_event: asyncio.Event = field(default_factory=asyncio.Event, repr=False)


CrawlFunc = Callable[..., Awaitable[CrawlResult]]


class Orchestrator:
    """
    Runs crawls in the background with bounded concurrency.

    Responsibilities:
    1. Assign task ids and keep job state
    2. Limit the number of crawls running at once
    3. Report status for polling
    4. Notify observers on state changes

    Example:
        >>> orchestrator = Orchestrator(max_concurrent_crawls=2)
        >>> task_id = orchestrator.submit("https://example.com")
        >>> orchestrator.get_status(task_id)
        {'task_id': '...', 'status': 'running'}
        >>> task = await orchestrator.wait(task_id)
    """

    def __init__(
        self,
        max_concurrent_crawls: int = 2,
        crawl_func: Optional[CrawlFunc] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            max_concurrent_crawls: Number of crawls allowed to run at once
            crawl_func: Coroutine function with the signature of crawl()
        """
        self.max_concurrent_crawls = max_concurrent_crawls
        self.crawl_func = crawl_func or crawl

        self.semaphore = asyncio.Semaphore(max_concurrent_crawls)

        # State tracking
        self.tasks: Dict[str, CrawlTask] = {}
        self._runners: Dict[str, asyncio.Task] = {}

        # Structured logging
        self.logger = structlog.get_logger(__name__)

        # Observer pattern - callbacks
        self.observers: List[Callable[[str, Dict[str, Any]], None]] = []

    def subscribe(self, observer: Callable[[str, Dict[str, Any]], None]):
        """
        Subscribe to job events (Observer pattern).

        Args:
            observer: Callback receiving (event, data)
        """
        self.observers.append(observer)
        self.logger.info("observer_subscribed", observer=getattr(observer, "__name__", repr(observer)))

    def _notify_observers(self, event: str, data: Dict[str, Any]):
        """Notify all observers of an event"""
        for observer in self.observers:
            try:
                observer(event, data)
            except Exception as e:
                self.logger.error(
                    "observer_error",
                    observer=getattr(observer, "__name__", repr(observer)),
                    error=str(e),
                )

    def submit(self, target_url: str, config: Optional[CrawlConfig] = None) -> str:
        """
        Schedule a crawl. Must be called from a running event loop.

        Returns:
            Task id for polling
        """
        task_id = f"crawl_{uuid.uuid4().hex[:12]}"
        task = CrawlTask(
            task_id=task_id,
            target_url=target_url,
            config=config or CrawlConfig(),
        )
        self.tasks[task_id] = task
        self._runners[task_id] = asyncio.create_task(self._run(task))

        self.logger.info("crawl_submitted", task_id=task_id, target=target_url)
        self._notify_observers("crawl_submitted", {"task_id": task_id, "target": target_url})
        return task_id

    async def _run(self, task: CrawlTask):
        async with self.semaphore:
            task.status = TaskStatus.RUNNING
            task.started_at = datetime.now()
            self._notify_observers("crawl_started", {"task_id": task.task_id})

            try:
                task.result = await self.crawl_func(
                    task.target_url,
                    task.config,
                    cancel_event=task.cancel_event,
                )
                task.status = TaskStatus.COMPLETED

            except asyncio.CancelledError:
                task.status = TaskStatus.FAILED
                task.error = "Crawl task was cancelled"
                raise

            except Exception as e:
                task.status = TaskStatus.FAILED
                task.error = str(e) or type(e).__name__
                self.logger.error(
                    "crawl_task_failed",
                    task_id=task.task_id,
                    error=task.error,
                    exc_info=True,
                )

            finally:
                task.completed_at = datetime.now()
                self._notify_observers(
                    f"crawl_{task.status.value}",
                    {"task_id": task.task_id, "status": task.status.value},
                )

    def get_status(self, task_id: str) -> Dict[str, Any]:
        """
        Poll a job.

        Returns:
            ``{"task_id", "status"}`` plus ``result`` (as a dict) once completed
            or ``error`` once failed

        Raises:
            KeyError: If the task id is unknown
        """
        task = self.tasks[task_id]
        status: Dict[str, Any] = {"task_id": task_id, "status": task.status.value}

        if task.status == TaskStatus.COMPLETED and task.result is not None:
            status["result"] = task.result.to_dict()
        elif task.status == TaskStatus.FAILED:
            status["error"] = task.error

        return status

    async def wait(self, task_id: str) -> CrawlTask:
        """Wait until a job has finished, successfully or not"""
        await asyncio.wait({self._runners[task_id]})
        return self.tasks[task_id]

    def cancel(self, task_id: str):
        """Ask a running crawl to stop; it completes with a partial result"""
        self.tasks[task_id].cancel_event.set()
        self.logger.info("crawl_cancel_requested", task_id=task_id)

    async def shutdown(self):
        """Cancel unfinished jobs and wait for all runners to exit"""
        for runner in self._runners.values():
            if not runner.done():
                runner.cancel()
        await asyncio.gather(*self._runners.values(), return_exceptions=True)
        self.logger.info("orchestrator_stopped", tasks=len(self.tasks))

    def get_statistics(self) -> Dict[str, Any]:
        by_status: Dict[str, int] = {status.value: 0 for status in TaskStatus}
        for task in self.tasks.values():
            by_status[task.status.value] += 1

        return {
            "tasks": len(self.tasks),
            "max_concurrent_crawls": self.max_concurrent_crawls,
            "by_status": by_status,
        }
