import asyncio
import os
import sys
import tempfile
from pathlib import Path

# Add backend directory to Python path FIRST
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Keep test runs from writing logs into the user's home directory
os.environ.setdefault("MEDIAFORGE_LOG_DIR", tempfile.mkdtemp(prefix="mediaforge-test-logs-"))

# Now import after path is set
import httpx
import pytest

from constants import ErrorKind
from services.entry_registry import EntryRegistry
from services.event_broadcaster import EventBroadcaster
from services.fetch_pipeline import StreamingFetcher, make_http_client
from services.interfaces import IEntryEventListener


class FakeServer:
    """
    Serves one canned response through httpx.MockTransport.

    Args:
        chunks: Body chunks, delivered one per read
        status_code: Response status
        content_length: Advertised length header (None to omit it)
        fail_after: Raise a transport error before delivering this chunk index
        stall_after: Block forever before delivering this chunk index
        stall_headers: Block forever before sending the response headers
    """

    def __init__(self, chunks=(), status_code=200, content_length=None, fail_after=None, stall_after=None,
                 stall_headers=False):
        self.chunks = [bytes(chunk) for chunk in chunks]
        self.status_code = status_code
        self.content_length = content_length
        self.fail_after = fail_after
        self.stall_after = stall_after
        self.stall_headers = stall_headers
        self.requests = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def _body(self):
        for index, chunk in enumerate(self.chunks):
            if self.fail_after is not None and index == self.fail_after:
                raise httpx.ReadError("connection reset by peer")
            if self.stall_after is not None and index == self.stall_after:
                await asyncio.Event().wait()
            yield chunk
            await asyncio.sleep(0)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.stall_headers:
            await asyncio.Event().wait()
        headers = {}
        if self.content_length is not None:
            headers["content-length"] = str(self.content_length)
        if not 200 <= self.status_code < 300:
            return httpx.Response(self.status_code, headers=headers, content=b"not found")
        return httpx.Response(self.status_code, headers=headers, content=self._body())

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


class RecordingListener(IEntryEventListener):
    """Records every event as a (name, *args) tuple."""

    def __init__(self):
        self.events = []

    async def on_entry_created(self, entry):
        self.events.append(("created", entry.id))

    async def on_progress(self, entry_id, progress):
        self.events.append(("progress", entry_id, progress))

    async def on_entry_updated(self, entry):
        self.events.append(("updated", entry.id))

    async def on_entry_removed(self, entry_id):
        self.events.append(("removed", entry_id))

    async def on_operation_failed(self, entry_id, error_kind: ErrorKind, detail: str):
        self.events.append(("failed", entry_id, error_kind, detail))

    def names(self):
        return [event[0] for event in self.events]

    def progress(self):
        return [event[2] for event in self.events if event[0] == "progress"]

    def failures(self):
        return [event for event in self.events if event[0] == "failed"]


def fetcher_for(server: FakeServer) -> StreamingFetcher:
    return StreamingFetcher(make_http_client(server.transport))


@pytest.fixture
def registry():
    return EntryRegistry()


@pytest.fixture
def recorder():
    return RecordingListener()


@pytest.fixture
def broadcaster(recorder):
    broadcaster = EventBroadcaster()
    broadcaster.subscribe(recorder)
    return broadcaster
