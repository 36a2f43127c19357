"""
Client Records Backend — Photo Service (Photo Manager)
========================================================

What:  Attaches a profile photo to a client and removes it again.
How:   Composes FileService (bytes on disk) with the client row
       (profile_img holds the stored filename).
Who:   Called by the upload / delete-photo route handlers.

Photo state per client:
    absent ──upload──▶ present(filename) ──delete──▶ absent
    present ──upload──▶ present(new filename), old file removed

File and row are not written atomically:
    - upload: file written, then the row update is committed; only after the
      commit is the superseded file removed. A failed flush or commit rolls
      the row back and removes the new file instead
    - delete: file unlinked first, then profile_img cleared
"""

import logging
import uuid
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from clientrecords.exceptions import DatabaseError, NotFoundError, ValidationError
from clientrecords.schemas.client import MessageResponse, UploadResponse
from clientrecords.scope import OrgScope
from clientrecords.services.client_service import find_client, to_client_response
from clientrecords.services.file_service import FileService, get_file_service

logger = logging.getLogger(__name__)

UPLOADED_MESSAGE = "File uploaded!"
NOTHING_UPLOADED_MESSAGE = "No Files were uploaded!"
NO_FILE_MESSAGE = "No files were uploaded"
DELETED_MESSAGE = "Profile image deleted successfully"


class PhotoService:
    """
    Profile photo workflow.

    Args:
        files: FileService to use (tests pass one bound to a temp directory).
    """

    def __init__(self, files: Optional[FileService] = None):
        self._files = files

    @property
    def files(self) -> FileService:
        if self._files is None:
            self._files = get_file_service()
        return self._files

    async def upload_photo(
        self,
        db: AsyncSession,
        scope: OrgScope,
        client_id: Optional[uuid.UUID],
        filename: Optional[str],
        content: Optional[bytes],
    ) -> UploadResponse:
        """
        Store an uploaded photo and point the client's profile_img at it.

        Outcomes:
            no file in the request       → ValidationError (400)
            client id missing or unknown → UploadResponse(user=None), nothing stored
            success                      → UploadResponse(user=<updated client>)

        Raises:
            ValidationError:  no file, bad extension, bad size
            FileStorageError: the file could not be written
            DatabaseError:    the client row could not be updated or committed
        """
        if not filename or content is None:
            raise ValidationError(message=NO_FILE_MESSAGE, field="ClientImg")

        if client_id is None:
            logger.info("Photo upload without a client id; nothing stored")
            return UploadResponse(message=NOTHING_UPLOADED_MESSAGE, user=None)

        try:
            client = await find_client(db, scope, client_id)
        except SQLAlchemyError as e:
            raise DatabaseError(
                message="Could not look up the client. Please try again.",
                context={"client_id": str(client_id), "error": str(e)},
            )
        if client is None:
            logger.info("Photo upload for unknown client %s; nothing stored", client_id)
            return UploadResponse(message=NOTHING_UPLOADED_MESSAGE, user=None)

        stored_name = await self.files.store_file(filename, content)
        previous = client.profile_img

        # Committed here rather than by the request session, so the old file
        # is only removed once the new reference is durable
        try:
            client.profile_img = stored_name
            await db.flush()
            await db.commit()
        except SQLAlchemyError as e:
            logger.error("Failed to record photo %s for client %s: %s", stored_name, client_id, str(e))
            await db.rollback()
            self.files.cleanup_file(stored_name)
            raise DatabaseError(
                message="Could not save the profile image. Please try again.",
                context={"client_id": str(client_id), "error": str(e)},
            )

        if previous and previous != stored_name:
            self.files.cleanup_file(previous)

        logger.info("Client %s profile image set to %s", client_id, stored_name)
        return UploadResponse(message=UPLOADED_MESSAGE, user=to_client_response(client))

    async def delete_photo(
        self,
        db: AsyncSession,
        scope: OrgScope,
        client_id: uuid.UUID,
    ) -> MessageResponse:
        """
        Remove the client's photo file (if any) and clear profile_img.

        A missing file is not an error; profile_img is cleared either way.

        Raises:
            NotFoundError:    no visible client with this id (404)
            FileStorageError: the file exists but could not be removed
            DatabaseError:    the client row could not be updated
        """
        try:
            client = await find_client(db, scope, client_id)
        except SQLAlchemyError as e:
            raise DatabaseError(
                message="Database update failed",
                context={"client_id": str(client_id), "error": str(e)},
            )
        if client is None:
            raise NotFoundError(resource="client", resource_id=str(client_id), message="Client not found")

        if client.profile_img:
            try:
                removed = self.files.delete_file(client.profile_img)
            except NotFoundError:
                # reference points outside the uploads directory; only clear it
                logger.warning("Ignoring out-of-tree photo reference %r", client.profile_img)
                removed = False
            if not removed:
                logger.info("Photo file %s for client %s was already gone", client.profile_img, client_id)

        try:
            client.profile_img = None
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to clear profile image for client %s: %s", client_id, str(e))
            raise DatabaseError(
                message="Database update failed",
                context={"client_id": str(client_id), "error": str(e)},
            )

        logger.info("Client %s profile image cleared", client_id)
        return MessageResponse(message=DELETED_MESSAGE)


# ── Singleton Instance ────────────────────────────────────────────────────
photo_service = PhotoService()
