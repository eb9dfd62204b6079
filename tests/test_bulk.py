"""Tests for bulk delete and zip downloads."""
import pytest

from cloudbox.errors import ValidationError
from cloudbox.models import ZipLink
from cloudbox.orchestrator.bulk import BulkOperationRunner
from cloudbox.utils.events import CancelToken


@pytest.mark.asyncio
async def test_bulk_delete_is_best_effort_and_sequential(backend):
    backend.fail_deletes = {"b"}
    runner = BulkOperationRunner(backend)

    failed = []
    runner.on_item_failed(lambda file_id, error: failed.append(file_id))

    result = await runner.bulk_delete(["a", "b", "c"])

    assert [c for c in backend.calls] == [("delete_file", "a"), ("delete_file", "b"), ("delete_file", "c")]
    assert result.attempted == ["a", "b", "c"]
    assert result.succeeded == ["a", "c"]
    assert list(result.failed) == ["b"]
    assert failed == ["b"]
    assert result.all_success is False


@pytest.mark.asyncio
async def test_bulk_delete_rejects_empty_selection(backend):
    runner = BulkOperationRunner(backend)
    with pytest.raises(ValidationError):
        await runner.bulk_delete([])
    assert backend.calls == []


@pytest.mark.asyncio
async def test_bulk_delete_stops_at_iteration_boundary_on_cancel(backend):
    runner = BulkOperationRunner(backend)
    token = CancelToken()
    runner.on_item_deleted(lambda file_id: token.cancel() if file_id == "a" else None)

    result = await runner.bulk_delete(["a", "b", "c"], token)

    assert result.attempted == ["a"]
    assert result.cancelled is True
    assert backend.calls == [("delete_file", "a")]


@pytest.mark.asyncio
async def test_bulk_download_zip_hands_stream_to_save(backend):
    runner = BulkOperationRunner(backend)
    received = []

    async def save(stream):
        async for chunk in stream:
            received.append(chunk)
        return "saved"

    outcome = await runner.bulk_download_zip(["x", "y"], save)

    assert outcome == "saved"
    assert b"".join(received) == b"<x><y>"
    assert backend.calls == [("download_zip", ["x", "y"])]


@pytest.mark.asyncio
async def test_bulk_download_zip_rejects_empty(backend):
    runner = BulkOperationRunner(backend)

    async def save(stream):
        return None

    with pytest.raises(ValidationError):
        await runner.bulk_download_zip([], save)


@pytest.mark.asyncio
async def test_fast_zip_staggers_downloads(backend):
    backend.zip_links = [
        ZipLink("acc-1", "https://dl/1.zip"),
        ZipLink("acc-2", "https://dl/2.zip"),
        ZipLink("acc-3", "https://dl/3.zip"),
    ]
    events = []

    async def fake_sleep(seconds):
        events.append(("sleep", seconds))

    async def download(link):
        events.append(("download", link.account))

    runner = BulkOperationRunner(backend, download_stagger=0.8, sleep=fake_sleep)
    downloaded = []
    runner.on_download(lambda link: downloaded.append(link.account))
    fetched = await runner.fast_zip(download)

    assert [link.account for link in fetched] == ["acc-1", "acc-2", "acc-3"]
    assert downloaded == ["acc-1", "acc-2", "acc-3"]
    assert events == [
        ("download", "acc-1"),
        ("sleep", 0.8),
        ("download", "acc-2"),
        ("sleep", 0.8),
        ("download", "acc-3"),
    ]


@pytest.mark.asyncio
async def test_fast_zip_without_stagger(backend):
    backend.zip_links = [ZipLink("a", "u1"), ZipLink("b", "u2")]
    slept = []

    async def fake_sleep(seconds):
        slept.append(seconds)

    async def download(link):
        return None

    runner = BulkOperationRunner(backend, download_stagger=0, sleep=fake_sleep)
    await runner.fast_zip(download)
    assert slept == []
