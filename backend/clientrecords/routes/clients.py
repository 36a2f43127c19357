"""
Client Records Backend — Client Route Handlers
================================================

What:  HTTP surface for client records and profile photos.
How:   Extracts path/query/body data, builds the caller's OrgScope, delegates
       to ClientService / PhotoService, returns JSON.
Who:   Called by the staff frontend.

Status codes (kept compatible with the existing frontend):
    missing or malformed client id on record routes → 400, on delete-photo → 404
    delete refused (event attendance) → 406
    update success → 201

Every route on `router` requires a bearer token. `files_router` serves the
stored photos to <img> tags and is not token-gated.
"""

import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Path, Query, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from clientrecords.auth import require_token
from clientrecords.database import get_db_session
from clientrecords.exceptions import ClientNotFoundError, NotFoundError
from clientrecords.schemas.client import (
    ClientCreate,
    ClientCreatedResponse,
    ClientDetailsResponse,
    ClientResponse,
    ClientUpdate,
    ErrorResponse,
    MessageResponse,
    UploadResponse,
    ZipCount,
)
from clientrecords.scope import OrgScope, get_org_scope
from clientrecords.services.client_service import client_service
from clientrecords.services.file_service import FileService, get_file_service
from clientrecords.services.photo_service import photo_service

logger = logging.getLogger(__name__)

# ── Router Configuration ──────────────────────────────────────────────────
router = APIRouter(
    prefix="/api/clients",
    tags=["Clients"],
    dependencies=[Depends(require_token)],
    responses={401: {"description": "Missing or invalid bearer token", "model": ErrorResponse}},
)
files_router = APIRouter(tags=["Files"])


# A malformed path id is answered like an unknown id
def record_client_id(client_id: str = Path(description="Client UUID")) -> uuid.UUID:
    try:
        return uuid.UUID(client_id)
    except ValueError:
        raise ClientNotFoundError(client_id)


def photo_client_id(client_id: str = Path(description="Client UUID")) -> uuid.UUID:
    try:
        return uuid.UUID(client_id)
    except ValueError:
        raise NotFoundError(resource="client", resource_id=client_id, message="Client not found")


@router.get(
    "/",
    response_model=List[ClientResponse],
    summary="List the organization's clients",
)
async def list_clients(
    scope: OrgScope = Depends(get_org_scope),
    db: AsyncSession = Depends(get_db_session),
) -> List[ClientResponse]:
    return await client_service.list_clients(db, scope)


@router.get(
    "/details/{client_id}",
    response_model=ClientDetailsResponse,
    responses={400: {"description": "Client not found", "model": ErrorResponse}},
    summary="Client with registered and unregistered events",
)
async def get_client_details(
    client_id: uuid.UUID = Depends(record_client_id),
    scope: OrgScope = Depends(get_org_scope),
    db: AsyncSession = Depends(get_db_session),
) -> ClientDetailsResponse:
    """
    Returns the client, the organization's events the client is registered
    for (`clientEvents`), and the ones it could still register for
    (`eventsFiltered`).
    """
    return await client_service.get_client_details(db, scope, client_id)


@router.get(
    "/id/{client_id}",
    response_model=ClientResponse,
    responses={400: {"description": "Client not found", "model": ErrorResponse}},
    summary="Get a single client by ID",
)
async def get_client(
    client_id: uuid.UUID = Depends(record_client_id),
    scope: OrgScope = Depends(get_org_scope),
    db: AsyncSession = Depends(get_db_session),
) -> ClientResponse:
    return await client_service.get_client(db, scope, client_id)


@router.get(
    "/search",
    response_model=List[ClientResponse],
    responses={400: {"description": "Invalid searchBy", "model": ErrorResponse}},
    summary="Search clients by name or phone number",
)
async def search_clients(
    search_by: Optional[str] = Query(default=None, alias="searchBy", description="'name' or 'number'"),
    first_name: Optional[str] = Query(default=None, alias="firstName"),
    last_name: Optional[str] = Query(default=None, alias="lastName"),
    phone_number: Optional[str] = Query(default=None, alias="phoneNumber"),
    scope: OrgScope = Depends(get_org_scope),
    db: AsyncSession = Depends(get_db_session),
) -> List[ClientResponse]:
    """
    Example: `/api/clients/search?searchBy=name&firstName=Bob&lastName=`
    """
    return await client_service.search_clients(
        db,
        scope,
        search_by=search_by,
        first_name=first_name,
        last_name=last_name,
        phone_number=phone_number,
    )


@router.post(
    "/",
    response_model=ClientCreatedResponse,
    summary="Create a client",
)
async def create_client(
    payload: ClientCreate,
    scope: OrgScope = Depends(get_org_scope),
    db: AsyncSession = Depends(get_db_session),
) -> ClientCreatedResponse:
    client_id = await client_service.create_client(db, scope, payload)
    return ClientCreatedResponse(id=client_id)


@router.put(
    "/update/{client_id}",
    status_code=201,
    response_model=MessageResponse,
    responses={400: {"description": "Client not found", "model": ErrorResponse}},
    summary="Partially update a client",
)
async def update_client(
    payload: ClientUpdate,
    client_id: uuid.UUID = Depends(record_client_id),
    scope: OrgScope = Depends(get_org_scope),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await client_service.update_client(db, scope, client_id, payload)
    return MessageResponse(message="Client updated successfully")


@router.get(
    "/byzip",
    response_model=List[ZipCount],
    summary="Client counts per zip code (dashboard)",
)
async def clients_by_zip(
    scope: OrgScope = Depends(get_org_scope),
    db: AsyncSession = Depends(get_db_session),
) -> List[ZipCount]:
    return await client_service.aggregate_by_zip(db, scope)


@router.post(
    "/upload",
    response_model=UploadResponse,
    responses={400: {"description": "No file, bad type or too large", "model": ErrorResponse}},
    summary="Upload a client's profile photo",
)
async def upload_profile_image(
    client_img: Optional[UploadFile] = File(default=None, alias="ClientImg"),
    client_id: Optional[str] = Form(default=None, alias="ClientId"),
    scope: OrgScope = Depends(get_org_scope),
    db: AsyncSession = Depends(get_db_session),
) -> UploadResponse:
    """
    Multipart form: `ClientImg` (the image) and `ClientId`.

    An unknown or malformed ClientId is answered with 200 and
    `{"message": "No Files were uploaded!", "user": null}`.
    """
    parsed_id: Optional[uuid.UUID] = None
    if client_id:
        try:
            parsed_id = uuid.UUID(client_id)
        except ValueError:
            logger.info("Upload with malformed ClientId %r", client_id)

    if client_img is None:
        return await photo_service.upload_photo(db, scope, parsed_id, None, None)

    try:
        content = await client_img.read()
        logger.info(
            "Received photo upload: filename=%s, size=%d bytes, client=%s",
            client_img.filename or "unknown",
            len(content),
            client_id,
        )
        return await photo_service.upload_photo(db, scope, parsed_id, client_img.filename, content)
    finally:
        await client_img.close()


@router.delete(
    "/delete/profile/{client_id}",
    response_model=MessageResponse,
    responses={
        404: {"description": "Client not found", "model": ErrorResponse},
        500: {"description": "Database update failed", "model": ErrorResponse},
    },
    summary="Remove a client's profile photo",
)
async def delete_profile_image(
    client_id: uuid.UUID = Depends(photo_client_id),
    scope: OrgScope = Depends(get_org_scope),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    return await photo_service.delete_photo(db, scope, client_id)


@router.delete(
    "/{client_id}",
    response_model=MessageResponse,
    responses={
        400: {"description": "Client not found", "model": ErrorResponse},
        406: {"description": "Client is signed up for events", "model": ErrorResponse},
    },
    summary="Hard-delete a client with no event registrations",
)
async def delete_client(
    client_id: uuid.UUID = Depends(record_client_id),
    scope: OrgScope = Depends(get_org_scope),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await client_service.delete_client(db, scope, client_id)
    return MessageResponse(message="Client deleted successfully")


@files_router.get(
    "/uploads/{filename}",
    summary="Serve a stored profile photo",
    responses={404: {"description": "File not found", "model": ErrorResponse}},
)
async def serve_profile_image(
    filename: str,
    files: FileService = Depends(get_file_service),
) -> FileResponse:
    path = files.resolve(filename)
    if not path.is_file():
        raise NotFoundError(resource="file", resource_id=filename)
    return FileResponse(
        path=str(path),
        headers={"Cache-Control": "private, max-age=86400"},
    )
