"""
Tests for StreamingFetcher: progress reporting, status and transport errors,
and cooperative cancellation.
"""
import asyncio

import httpx
import pytest

from conftest import FakeServer, fetcher_for
from exceptions import NetworkError, OperationCancelled
from services.fetch_pipeline import StreamingFetcher, make_http_client, parse_content_length


def fetch(server, url="https://example.com/clip.mp4", **kwargs):
    """Run one fetch, collecting progress events; returns (data, events)."""
    events = []

    async def scenario():
        fetcher = fetcher_for(server)
        try:
            return await fetcher.fetch_with_progress(url, events.append, **kwargs)
        finally:
            await fetcher.client.aclose()

    return asyncio.run(scenario()), events


def test_determinate_progress_reports_fraction_per_chunk():
    server = FakeServer([b"a" * 250] * 4, content_length=1000)
    totals = []

    data, events = fetch(server, on_total=totals.append)

    assert len(data) == 1000
    assert totals == [1000]
    assert [e.fraction for e in events] == [0.25, 0.5, 0.75, 1.0]
    assert [e.bytes_received for e in events] == [250, 500, 750, 1000]
    assert all(e.total_bytes == 1000 for e in events)


def test_indeterminate_progress_reports_cumulative_bytes():
    server = FakeServer([b"a" * 100, b"b" * 200, b"c" * 300])
    totals = []

    data, events = fetch(server, "https://example.com/clip.mkv", on_total=totals.append)

    assert data == b"a" * 100 + b"b" * 200 + b"c" * 300
    assert totals == []
    assert [e.bytes_received for e in events] == [100, 300, 600]
    assert all(e.fraction is None and not e.is_determinate for e in events)


def test_short_body_still_closes_at_one():
    server = FakeServer([b"a" * 400, b"b" * 400], content_length=1000)

    data, events = fetch(server)

    assert len(data) == 800
    assert [e.fraction for e in events] == [0.4, 0.8, 1.0]
    assert events[-1].bytes_received == 800


def test_fraction_never_exceeds_one_when_length_is_understated():
    server = FakeServer([b"a" * 300, b"b" * 300], content_length=400)

    data, events = fetch(server)

    assert len(data) == 600
    assert [e.fraction for e in events] == [0.75, 1.0]


def test_fractions_are_monotonic():
    server = FakeServer([b"x" * size for size in (1, 7, 3, 50, 2, 37)], content_length=100)

    _, events = fetch(server)

    fractions = [e.fraction for e in events]
    assert fractions == sorted(fractions)
    assert fractions[-1] == 1.0


def test_sync_and_async_callbacks_are_both_supported():
    server = FakeServer([b"a" * 10, b"b" * 10], content_length=20)
    seen = []

    async def on_progress(progress):
        seen.append(progress.fraction)

    async def scenario():
        fetcher = fetcher_for(server)
        try:
            return await fetcher.fetch_with_progress("https://example.com/clip.mp4", on_progress)
        finally:
            await fetcher.client.aclose()

    assert asyncio.run(scenario()) == b"a" * 10 + b"b" * 10
    assert seen == [0.5, 1.0]


def test_non_success_status_raises_network_error():
    server = FakeServer(status_code=404)

    with pytest.raises(NetworkError) as exc_info:
        fetch(server)

    assert exc_info.value.status_code == 404
    assert "404" in exc_info.value.message


def test_transport_failure_mid_stream_raises_network_error():
    server = FakeServer([b"a" * 100, b"b" * 100, b"c" * 100], content_length=300, fail_after=2)
    events = []

    async def scenario():
        fetcher = fetcher_for(server)
        try:
            await fetcher.fetch_with_progress("https://example.com/clip.mp4", events.append)
        finally:
            await fetcher.client.aclose()

    with pytest.raises(NetworkError) as exc_info:
        asyncio.run(scenario())

    assert exc_info.value.status_code is None
    assert "ReadError" in exc_info.value.cause
    assert [e.bytes_received for e in events] == [100, 200]


@pytest.mark.parametrize("failure", [
    ValueError("invalid literal for int() with base 10: 'x'"),
    httpx.InvalidURL("Invalid port: '99999'"),
])
def test_non_http_errors_from_the_client_raise_network_error(failure):
    def handler(request):
        raise failure

    async def scenario():
        fetcher = StreamingFetcher(make_http_client(httpx.MockTransport(handler)))
        try:
            await fetcher.fetch_with_progress("https://example.com/clip.mp4")
        finally:
            await fetcher.client.aclose()

    with pytest.raises(NetworkError) as exc_info:
        asyncio.run(scenario())

    assert type(failure).__name__ in exc_info.value.cause
    assert exc_info.value.status_code is None


def test_pre_set_cancel_event_skips_the_request():
    server = FakeServer([b"a" * 10], content_length=10)

    async def scenario():
        cancel = asyncio.Event()
        cancel.set()
        fetcher = fetcher_for(server)
        try:
            await fetcher.fetch_with_progress("https://example.com/clip.mp4", cancel_event=cancel)
        finally:
            await fetcher.client.aclose()

    with pytest.raises(OperationCancelled):
        asyncio.run(scenario())
    assert server.calls == 0


def test_cancel_during_stalled_read_stops_promptly_without_further_progress():
    server = FakeServer([b"a" * 100, b"b" * 100, b"c" * 100], content_length=300, stall_after=1)
    events = []

    async def scenario():
        cancel = asyncio.Event()
        reason = {"value": "cancelled"}

        def on_progress(progress):
            events.append(progress)
            asyncio.get_running_loop().call_later(0.01, cancel.set)
            reason["value"] = "removed"

        fetcher = fetcher_for(server)
        try:
            await asyncio.wait_for(
                fetcher.fetch_with_progress(
                    "https://example.com/clip.mp4",
                    on_progress,
                    cancel_event=cancel,
                    cancel_reason=lambda: reason["value"],
                ),
                timeout=5,
            )
        finally:
            await fetcher.client.aclose()

    with pytest.raises(OperationCancelled) as exc_info:
        asyncio.run(scenario())

    assert exc_info.value.reason == "removed"
    assert [e.bytes_received for e in events] == [100]


def test_cancel_while_waiting_for_headers_stops_promptly():
    server = FakeServer([b"a" * 10], content_length=10, stall_headers=True)
    events = []

    async def scenario():
        cancel = asyncio.Event()
        asyncio.get_running_loop().call_later(0.05, cancel.set)
        fetcher = fetcher_for(server)
        try:
            await asyncio.wait_for(
                fetcher.fetch_with_progress(
                    "https://example.com/clip.mp4",
                    events.append,
                    cancel_event=cancel,
                    cancel_reason=lambda: "timed out",
                ),
                timeout=2,
            )
        finally:
            await fetcher.client.aclose()

    with pytest.raises(OperationCancelled) as exc_info:
        asyncio.run(scenario())

    assert exc_info.value.reason == "timed out"
    assert server.calls == 1
    assert events == []


@pytest.mark.parametrize("header, expected", [
    (None, None),
    ("1000", 1000),
    (" 42 ", 42),
    ("0", None),
    ("-5", None),
    ("lots", None),
])
def test_parse_content_length(header, expected):
    assert parse_content_length(header) == expected


def test_invalid_content_length_header_falls_back_to_byte_counts():
    def handler(request):
        return httpx.Response(200, headers={"content-length": "abc"}, content=b"payload")

    async def scenario():
        events = []
        fetcher = StreamingFetcher(make_http_client(httpx.MockTransport(handler)))
        try:
            data = await fetcher.fetch_with_progress("https://example.com/clip.mp4", events.append)
        finally:
            await fetcher.client.aclose()
        return data, events

    data, events = asyncio.run(scenario())
    assert data == b"payload"
    assert [e.fraction for e in events] == [None]
