"""
Unit tests for Orchestrator module.

Run with: pytest tests/unit/test_orchestrator.py -v
"""

import asyncio

import pytest

from cartographer.core.config import CrawlConfig
from cartographer.core.exceptions import EngineBootstrapError
from cartographer.core.orchestrator import CrawlTask, Orchestrator, TaskStatus
from cartographer.models import CrawlResult, CrawlStatistics, SecurityFindings


def empty_result(target_url: str, cancelled: bool = False) -> CrawlResult:
    return CrawlResult(
        target_url=target_url,
        root_url=f"{target_url}/",
        sitemap=(),
        directories=(),
        files={},
        forms=(),
        errors=(),
        statistics=CrawlStatistics(),
        discovery_methods={"sitemap": 0, "robots": 0, "crawl": 0, "directory": 0},
        security=SecurityFindings(),
        cancelled=cancelled,
    )


async def instant_crawl(target_url, config, cancel_event=None):
    return empty_result(target_url)


async def broken_crawl(target_url, config, cancel_event=None):
    raise EngineBootstrapError("Fetch engine failed to start: no browser")


class TestOrchestrator:
    """Test suite for Orchestrator class"""

    @pytest.mark.asyncio
    async def test_orchestrator_initialization(self):
        """Test orchestrator initializes correctly"""
        orchestrator = Orchestrator(max_concurrent_crawls=3)

        assert orchestrator.max_concurrent_crawls == 3
        assert orchestrator.tasks == {}
        assert orchestrator.observers == []

    @pytest.mark.asyncio
    async def test_submit_and_wait(self):
        """Test a job runs to completion and exposes its result"""
        orchestrator = Orchestrator(crawl_func=instant_crawl)

        task_id = orchestrator.submit("https://example.com")
        assert task_id.startswith("crawl_")
        assert orchestrator.get_status(task_id)["status"] in ("pending", "running")

        task = await orchestrator.wait(task_id)

        assert isinstance(task, CrawlTask)
        assert task.status == TaskStatus.COMPLETED
        assert task.completed_at is not None

        status = orchestrator.get_status(task_id)
        assert status["status"] == "completed"
        assert status["result"]["target_url"] == "https://example.com"

    @pytest.mark.asyncio
    async def test_config_passed_through(self):
        """Test the submitted config reaches the crawl function"""
        seen = []

        async def recording_crawl(target_url, config, cancel_event=None):
            seen.append((target_url, config.max_depth))
            return empty_result(target_url)

        orchestrator = Orchestrator(crawl_func=recording_crawl)
        task_id = orchestrator.submit("https://example.com", CrawlConfig(max_depth=1))
        await orchestrator.wait(task_id)

        assert seen == [("https://example.com", 1)]

    @pytest.mark.asyncio
    async def test_failed_job(self):
        """Test a crawl exception marks the job failed with its message"""
        orchestrator = Orchestrator(crawl_func=broken_crawl)

        task_id = orchestrator.submit("https://example.com")
        await orchestrator.wait(task_id)

        status = orchestrator.get_status(task_id)
        assert status["status"] == "failed"
        assert "no browser" in status["error"]
        assert "result" not in status

    @pytest.mark.asyncio
    async def test_unknown_task_id(self):
        """Test polling an unknown id raises KeyError"""
        orchestrator = Orchestrator(crawl_func=instant_crawl)

        with pytest.raises(KeyError):
            orchestrator.get_status("crawl_missing")

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self):
        """Test no more than max_concurrent_crawls run at once"""
        running = 0
        peak = 0

        async def slow_crawl(target_url, config, cancel_event=None):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1
            return empty_result(target_url)

        orchestrator = Orchestrator(max_concurrent_crawls=2, crawl_func=slow_crawl)
        task_ids = [orchestrator.submit(f"https://site{i}.example") for i in range(5)]
        for task_id in task_ids:
            await orchestrator.wait(task_id)

        assert peak == 2
        assert all(orchestrator.tasks[t].status == TaskStatus.COMPLETED for t in task_ids)

    @pytest.mark.asyncio
    async def test_cancel_returns_partial_result(self):
        """Test cancel() sets the job's event and the crawl finishes normally"""

        async def cooperative_crawl(target_url, config, cancel_event=None):
            await cancel_event.wait()
            return empty_result(target_url, cancelled=True)

        orchestrator = Orchestrator(crawl_func=cooperative_crawl)
        task_id = orchestrator.submit("https://example.com")
        await asyncio.sleep(0)

        orchestrator.cancel(task_id)
        task = await orchestrator.wait(task_id)

        assert task.status == TaskStatus.COMPLETED
        assert task.result.cancelled is True

    @pytest.mark.asyncio
    async def test_shutdown_cancels_unfinished_jobs(self):
        """Test shutdown() stops runners that are still waiting"""

        async def endless_crawl(target_url, config, cancel_event=None):
            await asyncio.Event().wait()

        orchestrator = Orchestrator(crawl_func=endless_crawl)
        task_id = orchestrator.submit("https://example.com")
        await asyncio.sleep(0)

        await orchestrator.shutdown()

        assert orchestrator.tasks[task_id].status == TaskStatus.FAILED
        assert orchestrator.get_status(task_id)["error"] == "Crawl task was cancelled"

    @pytest.mark.asyncio
    async def test_observer_pattern(self):
        """Test observer subscription and lifecycle notifications"""
        orchestrator = Orchestrator(crawl_func=instant_crawl)
        events_received = []

        def test_observer(event, data):
            events_received.append((event, data))

        orchestrator.subscribe(test_observer)
        task_id = orchestrator.submit("https://example.com")
        await orchestrator.wait(task_id)

        assert [event for event, _ in events_received] == [
            "crawl_submitted",
            "crawl_started",
            "crawl_completed",
        ]
        assert all(data["task_id"] == task_id for _, data in events_received)

    @pytest.mark.asyncio
    async def test_failing_observer_does_not_break_job(self):
        """Test observer exceptions are logged and swallowed"""
        orchestrator = Orchestrator(crawl_func=instant_crawl)

        def bad_observer(event, data):
            raise RuntimeError("observer bug")

        orchestrator.subscribe(bad_observer)
        task_id = orchestrator.submit("https://example.com")
        task = await orchestrator.wait(task_id)

        assert task.status == TaskStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_get_statistics(self):
        """Test job counts by status"""
        orchestrator = Orchestrator(crawl_func=instant_crawl)
        await orchestrator.wait(orchestrator.submit("https://a.example"))
        await orchestrator.wait(orchestrator.submit("https://b.example"))

        stats = orchestrator.get_statistics()

        assert stats["tasks"] == 2
        assert stats["by_status"] == {"pending": 0, "running": 0, "completed": 2, "failed": 0}

    def test_task_status_enum(self):
        """Test TaskStatus enum values"""
        assert TaskStatus.PENDING.value == "pending"
        assert TaskStatus.RUNNING.value == "running"
        assert TaskStatus.COMPLETED.value == "completed"
        assert TaskStatus.FAILED.value == "failed"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
