"""
Streaming Fetch Pipeline

Fetches a remote resource incrementally with httpx and reports progress per
received chunk. Chunk sizes are whatever the transport delivers.

Progress rules:
- With a content-length, each chunk reports received/total (clamped to 1.0);
  if the last chunk did not already report 1.0 a closing event does
- Without one, each chunk reports the cumulative byte count and no fraction
- Nothing is reported after a cancellation has been observed
- Cancellation is observed while waiting for headers as well as for each chunk
"""
import asyncio
import inspect
import logging
from typing import AsyncIterator, Awaitable, Callable, Optional, Union

import httpx

from constants import HTTPStatus, NetworkConfig
from domain.value_objects import TransferProgress
from exceptions import NetworkError, OperationCancelled

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[TransferProgress], Union[None, Awaitable[None]]]
TotalCallback = Callable[[int], Union[None, Awaitable[None]]]


def make_http_client(transport: Optional[httpx.AsyncBaseTransport] = None) -> httpx.AsyncClient:
    """
    Build the shared async HTTP client.

    Args:
        transport: Optional transport override (tests pass httpx.MockTransport)
    """
    timeout = httpx.Timeout(
        NetworkConfig.READ_TIMEOUT_SECONDS,
        connect=NetworkConfig.CONNECT_TIMEOUT_SECONDS,
    )
    return httpx.AsyncClient(
        transport=transport,
        timeout=timeout,
        follow_redirects=NetworkConfig.FOLLOW_REDIRECTS,
        headers={"User-Agent": NetworkConfig.USER_AGENT},
    )


def parse_content_length(value: Optional[str]) -> Optional[int]:
    """Advertised total length, or None if the header is missing or unusable."""
    if value is None:
        return None
    try:
        total = int(value.strip())
    except ValueError:
        logger.warning(f"Ignoring invalid content-length header: {value!r}")
        return None
    return total if total > 0 else None


async def _notify(callback: Optional[Callable], value) -> None:
    if callback is None:
        return
    result = callback(value)
    if inspect.isawaitable(result):
        await result


# Returned by _race when the cancel event wins
_CANCELLED = object()

# Failures raised by httpx (or the URL parsing beneath it) that are not HTTPError subclasses
_REQUEST_ERRORS = (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError, ValueError)


async def _pull(stream: AsyncIterator[bytes]) -> Optional[bytes]:
    try:
        return await stream.__anext__()
    except StopAsyncIteration:
        return None


async def _race(work: Awaitable, cancel_event: Optional[asyncio.Event]):
    """
    Await ``work``, or give up as soon as cancel_event is set.

    Used for both the request (until headers arrive) and every chunk read.
    A response that lost the race is closed.

    Returns:
        The result of ``work``, or _CANCELLED
    """
    if cancel_event is None:
        return await work
    work_task = asyncio.ensure_future(work)
    if cancel_event.is_set():
        work_task.cancel()
        await asyncio.gather(work_task, return_exceptions=True)
        return _CANCELLED

    cancel_task = asyncio.ensure_future(cancel_event.wait())
    try:
        done, _ = await asyncio.wait({work_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        # The stream cannot be closed while a read is still suspended inside it
        work_task.cancel()
        cancel_task.cancel()
        await asyncio.gather(work_task, cancel_task, return_exceptions=True)
        raise

    if cancel_task not in done:
        cancel_task.cancel()
        return work_task.result()

    work_task.cancel()
    outcome, = await asyncio.gather(work_task, return_exceptions=True)
    if isinstance(outcome, httpx.Response):
        await outcome.aclose()
    return _CANCELLED


class StreamingFetcher:
    """
    Performs streamed GET requests over a shared httpx.AsyncClient.

    The fetcher does not own the client; whoever created it closes it.
    """

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def fetch_with_progress(
        self,
        url: str,
        on_progress: Optional[ProgressCallback] = None,
        *,
        on_total: Optional[TotalCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
        cancel_reason: Callable[[], str] = lambda: "cancelled",
    ) -> bytes:
        """
        Download ``url`` and return its body as one contiguous buffer.

        Args:
            url: Already-validated http(s) URL
            on_progress: Called at most once per received chunk with a TransferProgress
            on_total: Called once with the advertised length when the server sends one
            cancel_event: Set by the caller to stop the transfer
            cancel_reason: Produces the reason reported in OperationCancelled

        Returns:
            All received bytes; length is the sum of chunk lengths

        Raises:
            NetworkError: Non-2xx status or transport failure
            OperationCancelled: cancel_event was set before the transfer finished
        """
        chunks: list[bytes] = []
        received = 0

        def check_cancelled():
            if cancel_event is not None and cancel_event.is_set():
                raise OperationCancelled(url, cancel_reason())

        check_cancelled()
        try:
            request = self.client.build_request("GET", url)
            response = await _race(self.client.send(request, stream=True), cancel_event)
            if response is _CANCELLED:
                raise OperationCancelled(url, cancel_reason())

            try:
                if not HTTPStatus.is_success(response.status_code):
                    raise NetworkError(url, status_code=response.status_code)

                total = parse_content_length(response.headers.get("content-length"))
                if total is not None:
                    await _notify(on_total, total)

                last_fraction: Optional[float] = None
                stream = response.aiter_bytes()
                try:
                    while True:
                        chunk = await _race(_pull(stream), cancel_event)
                        if chunk is _CANCELLED:
                            raise OperationCancelled(url, cancel_reason())
                        if chunk is None:
                            break
                        if not chunk:
                            continue
                        chunks.append(chunk)
                        received += len(chunk)

                        if total is not None:
                            last_fraction = min(received / total, 1.0)
                            progress = TransferProgress(received, total, last_fraction)
                        else:
                            progress = TransferProgress(received)
                        await _notify(on_progress, progress)
                finally:
                    await stream.aclose()

                check_cancelled()
                if total is not None and last_fraction != 1.0:
                    await _notify(on_progress, TransferProgress(received, total, 1.0))
            finally:
                await response.aclose()

        except _REQUEST_ERRORS as e:
            raise NetworkError(url, cause=f"{type(e).__name__}: {e}") from e

        if total is not None and received != total:
            logger.warning(f"Advertised length {total} for {url} but received {received} bytes")
        logger.info(f"Fetched {received} bytes from {url}")
        return b"".join(chunks)
