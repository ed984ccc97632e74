"""
Job stream orchestrator tests.

Polling runs with an injected no-op sleep, so the loop runs at full speed.

Run with:
    python -m pytest tests/test_job_stream.py -v
"""

import json
import os
import sys
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from conftest import FakeKV, ScriptedAdapter, make_job, make_key, processing
from services.storage.artifact_store import ArtifactStore
from services.streaming.job_stream import (
    PROVIDER_GONE_MESSAGE,
    TIMEOUT_MESSAGE,
    TRANSIENT_ERROR_MESSAGE,
    JobStreamOrchestrator,
    StreamEvent,
    format_sse,
)
from services.video_generation.models import GenerationResult, JobStatus, VideoStatus
from services.video_generation.registry import ProviderRegistry


async def no_sleep(seconds):
    return None


def complete(url="https://api.openai.test/v1/videos/video_123/content", duration=8):
    return GenerationResult(
        status=VideoStatus.COMPLETE,
        provider_job_id="video_123",
        video_url=url,
        duration=duration,
        progress=100,
    )


def artifact_store_mock():
    store = MagicMock()
    store.put = AsyncMock()
    store.serving_url = ArtifactStore.serving_url
    return store


def build(job_store, adapter, artifact_store=None, keys=None, max_attempts=120, sleep=no_sleep):
    kv = FakeKV()
    kv.add_keys(*(keys if keys is not None else [make_key("k1", adapter.name)]))
    registry = ProviderRegistry(kv, {adapter.name: adapter})
    return JobStreamOrchestrator(
        registry,
        job_store,
        artifact_store,
        poll_interval=5,
        max_attempts=max_attempts,
        sleep=sleep,
    )


async def collect(orchestrator, job):
    return [event async for event in orchestrator.stream(job)]


class TestStreamEvent:

    def test_sse_format(self):
        event = StreamEvent(status="processing", progress=40)
        text = event.to_sse()
        assert text.startswith("data: ")
        assert text.endswith("\n\n")
        payload = json.loads(text[len("data: "):].strip())
        assert payload == {
            "status": "processing",
            "progress": 40,
            "videoUrl": None,
            "thumbnailUrl": None,
            "duration": None,
            "error": None,
        }

    def test_cost_only_when_set(self):
        assert "cost" not in StreamEvent(status="processing").to_dict()
        assert StreamEvent(status="complete", cost=0.8).to_dict()["cost"] == 0.8

    def test_format_sse(self):
        assert format_sse({"a": 1}) == 'data: {"a": 1}\n\n'

    def test_is_terminal(self):
        assert StreamEvent(status="complete").is_terminal
        assert StreamEvent(status="error").is_terminal
        assert not StreamEvent(status="queued").is_terminal


class TestJobStreamOrchestrator:

    @pytest.mark.asyncio
    async def test_already_complete_job_is_not_polled(self, job_store):
        adapter = ScriptedAdapter(poll_results=[processing()])
        orchestrator = build(job_store, adapter)
        job = make_job(status=JobStatus.COMPLETE, video_url="/api/video/file/videos/user-1/job-1.mp4", duration_seconds=8)

        events = await collect(orchestrator, job)

        assert len(events) == 1
        assert events[0].status == "complete"
        assert events[0].progress == 100
        assert events[0].video_url == "/api/video/file/videos/user-1/job-1.mp4"
        assert adapter.polls == 0

    @pytest.mark.asyncio
    async def test_already_failed_job(self, job_store):
        adapter = ScriptedAdapter(poll_results=[processing()])
        orchestrator = build(job_store, adapter)

        events = await collect(orchestrator, make_job(status=JobStatus.ERROR, error="Moderation"))

        assert [(e.status, e.progress, e.error) for e in events] == [("error", 0, "Moderation")]
        assert adapter.polls == 0

    @pytest.mark.asyncio
    async def test_no_key_ends_with_error(self, job_store):
        adapter = ScriptedAdapter(poll_results=[processing()])
        orchestrator = build(job_store, adapter, keys=[])

        events = await collect(orchestrator, make_job())

        assert len(events) == 1
        assert events[0].status == "error"
        assert events[0].error == PROVIDER_GONE_MESSAGE
        assert adapter.polls == 0

    @pytest.mark.asyncio
    async def test_progress_then_complete(self, job_store):
        adapter = ScriptedAdapter(poll_results=[processing(10), processing(60), complete()])
        orchestrator = build(job_store, adapter)

        events = await collect(orchestrator, make_job())

        assert [e.status for e in events] == ["processing", "processing", "complete"]
        assert [e.progress for e in events] == [10, 60, 100]
        final = events[-1]
        assert final.cost == pytest.approx(0.8)
        assert final.duration == 8
        # Without an artifact store the provider URL is served as-is
        assert final.video_url == "https://api.openai.test/v1/videos/video_123/content"

    @pytest.mark.asyncio
    async def test_first_processing_poll_marks_generating(self, job_store):
        adapter = ScriptedAdapter(poll_results=[processing(10), processing(60), complete()])
        orchestrator = build(job_store, adapter)

        await collect(orchestrator, make_job())

        statuses = [call.kwargs.get("status") for call in job_store.update_status.await_args_list]
        assert statuses == [JobStatus.GENERATING, JobStatus.COMPLETE]

    @pytest.mark.asyncio
    async def test_complete_updates_job_row(self, job_store):
        adapter = ScriptedAdapter(poll_results=[complete()])
        orchestrator = build(job_store, adapter)

        await collect(orchestrator, make_job())

        call = job_store.update_status.await_args
        assert call.args == ("job-1",)
        assert call.kwargs["status"] == JobStatus.COMPLETE
        assert call.kwargs["cost"] == pytest.approx(0.8)
        assert call.kwargs["duration_seconds"] == 8
        assert call.kwargs["r2_key"] is None
        assert call.kwargs["completed_at"] is not None

    @pytest.mark.asyncio
    async def test_complete_stores_artifact(self, job_store):
        adapter = ScriptedAdapter(poll_results=[complete()], video_bytes=b"video-bytes")
        store = artifact_store_mock()
        orchestrator = build(job_store, adapter, artifact_store=store)

        events = await collect(orchestrator, make_job())

        store.put.assert_awaited_once_with("videos/user-1/job-1.mp4", b"video-bytes", "video/mp4")
        assert events[-1].video_url == "/api/video/file/videos/user-1/job-1.mp4"
        assert job_store.update_status.await_args.kwargs["r2_key"] == "videos/user-1/job-1.mp4"

    @pytest.mark.asyncio
    async def test_download_failure_falls_back_to_provider_url(self, job_store):
        adapter = ScriptedAdapter(poll_results=[complete()], video_bytes=RuntimeError("403"))
        store = artifact_store_mock()
        orchestrator = build(job_store, adapter, artifact_store=store)

        events = await collect(orchestrator, make_job())

        store.put.assert_not_awaited()
        assert events[-1].status == "complete"
        assert events[-1].video_url == "https://api.openai.test/v1/videos/video_123/content"

    @pytest.mark.asyncio
    async def test_upload_failure_falls_back_to_provider_url(self, job_store):
        adapter = ScriptedAdapter(poll_results=[complete()])
        store = artifact_store_mock()
        store.put.side_effect = RuntimeError("bucket missing")
        orchestrator = build(job_store, adapter, artifact_store=store)

        events = await collect(orchestrator, make_job())

        assert events[-1].video_url == "https://api.openai.test/v1/videos/video_123/content"
        assert job_store.update_status.await_args.kwargs["r2_key"] is None

    @pytest.mark.asyncio
    async def test_job_store_failure_still_emits_complete(self, job_store):
        job_store.update_status.side_effect = RuntimeError("db down")
        adapter = ScriptedAdapter(poll_results=[complete()])
        orchestrator = build(job_store, adapter)

        events = await collect(orchestrator, make_job())

        assert [e.status for e in events] == ["complete"]

    @pytest.mark.asyncio
    async def test_provider_error_is_terminal(self, job_store):
        adapter = ScriptedAdapter(poll_results=[processing(20), GenerationResult.failed("Moderation blocked")])
        orchestrator = build(job_store, adapter)

        events = await collect(orchestrator, make_job())

        assert events[-1].status == "error"
        assert events[-1].error == "Moderation blocked"
        call = job_store.update_status.await_args
        assert call.kwargs == {"status": JobStatus.ERROR, "error": "Moderation blocked"}

    @pytest.mark.asyncio
    async def test_poll_exception_is_transient(self, job_store):
        adapter = ScriptedAdapter(poll_results=[RuntimeError("timeout"), processing(50), complete()])
        orchestrator = build(job_store, adapter)

        events = await collect(orchestrator, make_job())

        assert events[0].status == "processing"
        assert events[0].error == TRANSIENT_ERROR_MESSAGE
        assert events[-1].status == "complete"

    @pytest.mark.asyncio
    async def test_waits_poll_interval_between_polls(self, job_store):
        sleeps = []

        async def fake_sleep(seconds):
            sleeps.append(seconds)

        adapter = ScriptedAdapter(poll_results=[RuntimeError("timeout"), processing(50), complete()])
        orchestrator = build(job_store, adapter, sleep=fake_sleep)

        events = await collect(orchestrator, make_job())

        assert [e.status for e in events] == ["processing", "processing", "complete"]
        # one wait after the failed poll, one after progress, none after the terminal event
        assert sleeps == [5, 5]
        assert adapter.polls == 3

    @pytest.mark.asyncio
    async def test_already_terminal_job_never_waits(self, job_store):
        sleeps = []

        async def fake_sleep(seconds):
            sleeps.append(seconds)

        orchestrator = build(job_store, ScriptedAdapter(), sleep=fake_sleep)

        await collect(orchestrator, make_job(status=JobStatus.COMPLETE, video_url="/v.mp4"))

        assert sleeps == []

    @pytest.mark.asyncio
    async def test_timeout_after_max_attempts(self, job_store):
        adapter = ScriptedAdapter(poll_results=[processing(5)])
        orchestrator = build(job_store, adapter, max_attempts=3)

        events = await collect(orchestrator, make_job())

        assert adapter.polls == 3
        assert [e.status for e in events] == ["processing"] * 3 + ["error"]
        assert events[-1].error == TIMEOUT_MESSAGE
        assert job_store.update_status.await_args.kwargs["error"] == TIMEOUT_MESSAGE

    @pytest.mark.asyncio
    async def test_exactly_one_terminal_event(self, job_store):
        adapter = ScriptedAdapter(poll_results=[processing(), complete()])
        orchestrator = build(job_store, adapter)

        events = await collect(orchestrator, make_job())

        assert sum(1 for e in events if e.is_terminal) == 1
        assert events[-1].is_terminal

    @pytest.mark.asyncio
    async def test_missing_provider_job_id(self, job_store):
        adapter = ScriptedAdapter(poll_results=[processing()])
        orchestrator = build(job_store, adapter)

        events = await collect(orchestrator, make_job(provider_job_id=None))

        assert [e.status for e in events] == ["error"]
        assert adapter.polls == 0

    @pytest.mark.asyncio
    async def test_chat_message_updated_on_complete(self, job_store):
        adapter = ScriptedAdapter(poll_results=[complete()])
        orchestrator = build(job_store, adapter)

        await collect(orchestrator, make_job(message_id="m1", conversation_id="c1"))

        call = job_store.update_message_media.await_args
        assert call.args == ("m1", "c1")
        assert call.kwargs["media_status"] == "complete"

    @pytest.mark.asyncio
    async def test_chat_message_updated_on_error(self, job_store):
        adapter = ScriptedAdapter(poll_results=[GenerationResult.failed("boom")])
        orchestrator = build(job_store, adapter)

        await collect(orchestrator, make_job(message_id="m1"))

        call = job_store.update_message_media.await_args
        assert call.kwargs == {"media_status": "error", "media_error": "boom"}
