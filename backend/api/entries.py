"""
Entries API endpoints

Local uploads, settings changes, removal, conversion and export.
"""
from fastapi import APIRouter, Depends, File, Response, UploadFile
from fastapi import HTTPException
from typing import List
from urllib.parse import quote
import logging

from config.app_config import AppConfig
from constants import HTTPStatus
from dependencies import get_app_config, get_entry_service
from domain.entities import LocalFile
from dtos.request import SettingUpdateRequest
from dtos.response import EntryResponse, IntakeResponse
from services.entry_service import EntryService, ExportedFile
from utils.error_handlers import handle_api_errors

logger = logging.getLogger(__name__)

router = APIRouter()

# Uploads are read in slices of this size so oversized files are rejected early
UPLOAD_READ_CHUNK_BYTES = 1024 * 1024


def attachment_response(exported: ExportedFile) -> Response:
    """Wrap exported bytes in a download response."""
    ascii_name = exported.filename.encode("ascii", "ignore").decode().replace('"', "") or "download"
    disposition = f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(exported.filename)}"
    return Response(
        content=exported.data,
        media_type=exported.media_type,
        headers={"Content-Disposition": disposition},
    )


async def read_bounded(upload: UploadFile, limit: int) -> bytes:
    """
    Read an upload without buffering more than ``limit`` bytes of it.

    Raises:
        HTTPException: 413 as soon as the upload is known to exceed ``limit``
    """
    too_large = HTTPException(
        status_code=HTTPStatus.REQUEST_ENTITY_TOO_LARGE,
        detail=f"{upload.filename} exceeds the upload limit"
    )
    if upload.size is not None and upload.size > limit:
        raise too_large

    chunks = []
    received = 0
    while True:
        chunk = await upload.read(UPLOAD_READ_CHUNK_BYTES)
        if not chunk:
            break
        received += len(chunk)
        if received > limit:
            raise too_large
        chunks.append(chunk)
    return b"".join(chunks)


@router.get("/entries", response_model=List[EntryResponse])
@handle_api_errors("List entries")
def list_entries(service: EntryService = Depends(get_entry_service)):
    """List every entry in the session, oldest first."""
    return [EntryResponse.from_entry(entry) for entry in service.list_entries()]


@router.get("/entries/{entry_id}", response_model=EntryResponse)
@handle_api_errors("Get entry")
def get_entry(entry_id: str, service: EntryService = Depends(get_entry_service)):
    """
    Get a single entry

    Raises:
        HTTPException: 404 if the entry is not registered
    """
    return EntryResponse.from_entry(service.get_entry(entry_id))


@router.post("/entries/upload", response_model=IntakeResponse, status_code=HTTPStatus.CREATED)
@handle_api_errors("Upload files")
async def upload_files(
    files: List[UploadFile] = File(...),
    service: EntryService = Depends(get_entry_service),
    config: AppConfig = Depends(get_app_config),
):
    """
    Register one or more local files.

    Unsupported file types are listed in ``rejected`` rather than failing the batch.
    """
    local_files = []
    for upload in files:
        data = await read_bounded(upload, config.max_upload_bytes)
        local_files.append(LocalFile(
            name=upload.filename or "upload",
            mime_type=upload.content_type or "",
            size_bytes=len(data),
            data=data,
        ))

    result = await service.add_local_files(local_files)
    return IntakeResponse(
        added=[EntryResponse.from_entry(entry) for entry in result.added],
        rejected=result.rejected,
    )


@router.patch("/entries/{entry_id}/settings", response_model=EntryResponse)
@handle_api_errors("Update settings")
async def update_settings(
    entry_id: str,
    request: SettingUpdateRequest,
    service: EntryService = Depends(get_entry_service),
):
    """Change one output setting; quality and bitrate are snapped to offered values."""
    entry = await service.update_setting(entry_id, request.field, request.value)
    return EntryResponse.from_entry(entry)


@router.delete("/entries/{entry_id}", status_code=HTTPStatus.NO_CONTENT)
@handle_api_errors("Remove entry")
async def remove_entry(entry_id: str, service: EntryService = Depends(get_entry_service)):
    """Remove an entry (idempotent). Cancels its download if one is running."""
    await service.remove(entry_id)
    return Response(status_code=HTTPStatus.NO_CONTENT)


@router.post("/entries/{entry_id}/convert")
@handle_api_errors("Convert entry")
async def convert_entry(
    entry_id: str,
    to_mp3: bool = False,
    service: EntryService = Depends(get_entry_service),
):
    """
    Convert an entry with its current settings and return the result as an attachment.

    Raises:
        HTTPException: 409 if a conversion of this entry is already running
    """
    exported = await service.convert(entry_id, to_mp3=to_mp3)
    return attachment_response(exported)


@router.get("/entries/{entry_id}/file")
@handle_api_errors("Export entry")
def export_entry(entry_id: str, service: EntryService = Depends(get_entry_service)):
    """Download the original bytes of an entry."""
    return attachment_response(service.export(entry_id))
