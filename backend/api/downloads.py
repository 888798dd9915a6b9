"""
Downloads API endpoints

Direct-link video downloads into the entry registry.
"""
from fastapi import APIRouter, Depends, Response
import logging

from constants import HTTPStatus
from dependencies import get_download_service
from dtos.request import DownloadRequest
from dtos.response import EntryResponse, UrlPreviewResponse
from exceptions import EntryNotFoundError
from services.download_service import DownloadService
from utils.error_handlers import handle_api_errors
from utils.media_types import describe_url

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/downloads/preview", response_model=UrlPreviewResponse)
def preview_url(url: str = ""):
    """
    Describe a URL while the user is typing it.

    Never fails: invalid input simply yields ``valid: false``.
    """
    info = describe_url(url)
    if info is None:
        return UrlPreviewResponse(valid=False)
    return UrlPreviewResponse(valid=True, **info)


@router.post("/downloads", response_model=EntryResponse, status_code=HTTPStatus.ACCEPTED)
@handle_api_errors("Start download")
async def start_download(
    request: DownloadRequest,
    response: Response,
    wait: bool = False,
    service: DownloadService = Depends(get_download_service),
):
    """
    Download a direct video link.

    By default the transfer runs in the background and the placeholder entry is
    returned immediately (202); progress arrives over the WebSocket. With
    ``wait=true`` the request completes with the finished entry (200).

    Raises:
        HTTPException: 400 for invalid URLs, 502 for upstream failures (wait only)
    """
    if wait:
        entry = await service.download(request.url)
        response.status_code = HTTPStatus.OK
    else:
        entry = await service.start(request.url)
    return EntryResponse.from_entry(entry)


@router.post("/downloads/{entry_id}/cancel", status_code=HTTPStatus.ACCEPTED)
@handle_api_errors("Cancel download")
def cancel_download(entry_id: str, service: DownloadService = Depends(get_download_service)):
    """
    Cancel an in-flight download; the entry is rolled back when the transfer stops.

    Raises:
        HTTPException: 404 if no download is running for the entry
    """
    if not service.cancel(entry_id):
        raise EntryNotFoundError(entry_id)
    return {"entry_id": entry_id, "cancelling": True}
