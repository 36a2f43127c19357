"""
Client Records Backend — Client Service (Client Repository)
=============================================================

What:  CRUD, search and dashboard queries over client records, plus the
       attendance-guarded delete.
How:   Async SQLAlchemy queries against the caller's session. Every
       org-scoped operation takes an explicit OrgScope; a client is visible
       to an organization when it has a membership row for it.
Who:   Called by the client route handlers and by PhotoService.

Delete protocol (order is fixed):
    1. Scoped existence check, row locked FOR UPDATE   → ClientNotFoundError
    2. Count attendee rows on the organization's events → ConflictError if > 0
    3. Delete the client (memberships and attendee rows cascade)
    All three steps share the request's transaction.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from clientrecords.exceptions import (
    ClientNotFoundError,
    ConflictError,
    DatabaseError,
    ValidationError,
)
from clientrecords.models.client import Client, ClientOrg
from clientrecords.models.event import Event, EventAttendee
from clientrecords.schemas.client import (
    Address,
    ClientCreate,
    ClientDetailsResponse,
    ClientResponse,
    ClientUpdate,
    EventResponse,
    PhoneNumber,
    ZipCount,
)
from clientrecords.scope import OrgScope

logger = logging.getLogger(__name__)

# searchBy discriminator values
SEARCH_BY_NAME = "name"
SEARCH_BY_NUMBER = "number"
SEARCH_MODES = (SEARCH_BY_NAME, SEARCH_BY_NUMBER)

# Top-level fields a partial update may write directly
_UPDATABLE_FIELDS = ("first_name", "middle_name", "last_name", "email")
# Fields that may be changed but never cleared
_REQUIRED_FIELDS = {"first_name", "last_name", "phone_primary"}
_ADDRESS_FIELDS = ("line1", "line2", "city", "county", "zip")


def in_org(scope: OrgScope):
    """SQL criterion: the client is a member of the scope's organization."""
    return Client.org_memberships.any(ClientOrg.org_id == scope.org_id)


async def find_client(
    db: AsyncSession,
    scope: OrgScope,
    client_id: uuid.UUID,
    for_update: bool = False,
) -> Optional[Client]:
    """Scoped lookup. Returns None when the id is unknown or belongs to another org."""
    query = select(Client).where(Client.id == client_id, in_org(scope))
    if for_update:
        query = query.with_for_update(of=Client)
    result = await db.execute(query)
    return result.scalar_one_or_none()


def to_client_response(client: Client) -> ClientResponse:
    """Nest the flat columns back into the API shape."""
    return ClientResponse(
        id=client.id,
        first_name=client.first_name,
        middle_name=client.middle_name,
        last_name=client.last_name,
        email=client.email,
        phone_number=PhoneNumber(
            primary=client.phone_primary,
            secondary=client.phone_secondary,
        ),
        address=Address(
            line1=client.address_line1,
            line2=client.address_line2,
            city=client.address_city,
            county=client.address_county,
            zip=client.address_zip,
        ),
        orgs=client.orgs,
        profile_img=client.profile_img,
        created_at=client.created_at,
        updated_at=client.updated_at,
    )


class ClientService:
    """
    Business logic for client records.

    Error Handling Strategy:
        Lookup misses raise ClientNotFoundError, refused deletes raise
        ConflictError, bad discriminators raise ValidationError. Any
        SQLAlchemyError is wrapped in DatabaseError with the original
        message kept in context for the logs.
    """

    async def list_clients(
        self,
        db: AsyncSession,
        scope: Optional[OrgScope] = None,
    ) -> List[ClientResponse]:
        """
        All clients, ordered by name.

        scope=None lists every organization's clients (the historical
        organization-blind listing); the HTTP layer always passes a scope.
        """
        query = select(Client).order_by(Client.last_name, Client.first_name)
        if scope is not None:
            query = query.where(in_org(scope))
        try:
            result = await db.execute(query)
        except SQLAlchemyError as e:
            logger.error("Database error listing clients: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve clients. Please try again.",
                context={"error": str(e)},
            )
        return [to_client_response(client) for client in result.scalars().all()]

    async def get_client(
        self,
        db: AsyncSession,
        scope: OrgScope,
        client_id: uuid.UUID,
    ) -> ClientResponse:
        """
        Raises:
            ClientNotFoundError: no client with this id in the scope's organization
        """
        try:
            client = await find_client(db, scope, client_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching client %s: %s", client_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the client. Please try again.",
                context={"client_id": str(client_id), "error": str(e)},
            )
        if client is None:
            raise ClientNotFoundError(str(client_id))
        return to_client_response(client)

    async def get_client_details(
        self,
        db: AsyncSession,
        scope: OrgScope,
        client_id: uuid.UUID,
    ) -> ClientDetailsResponse:
        """
        The client, the org events it is registered for, and the org events
        it is not registered for.

        Query plan:
            registered:   events JOIN event_attendees ON client_id = :id
                          WHERE events.org = :org
            unregistered: events WHERE org = :org AND NOT EXISTS (
                              attendee row for :id)
        """
        try:
            client = await find_client(db, scope, client_id)
            if client is None:
                raise ClientNotFoundError(str(client_id))

            registered_query = (
                select(Event)
                .join(EventAttendee, EventAttendee.event_id == Event.id)
                .where(
                    EventAttendee.client_id == client.id,
                    Event.org == scope.org_id,
                )
                .order_by(Event.event_date, Event.event_name)
            )
            unregistered_query = (
                select(Event)
                .where(
                    Event.org == scope.org_id,
                    ~Event.attendee_links.any(EventAttendee.client_id == client.id),
                )
                .order_by(Event.event_date, Event.event_name)
            )
            registered = (await db.execute(registered_query)).scalars().all()
            unregistered = (await db.execute(unregistered_query)).scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error loading details for client %s: %s", client_id, str(e))
            raise DatabaseError(
                message="Could not retrieve client details. Please try again.",
                context={"client_id": str(client_id), "error": str(e)},
            )

        return ClientDetailsResponse(
            client=to_client_response(client),
            client_events=[EventResponse.model_validate(event) for event in registered],
            events_filtered=[EventResponse.model_validate(event) for event in unregistered],
        )

    async def search_clients(
        self,
        db: AsyncSession,
        scope: OrgScope,
        search_by: Optional[str],
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        phone_number: Optional[str] = None,
    ) -> List[ClientResponse]:
        """
        Case-insensitive substring search within the organization.

        search_by="name":   firstName and/or lastName filters
        search_by="number": phoneNumber filter on the primary number
        Supplied filters are ANDed; absent or empty values are skipped.
        Values match literally (LIKE wildcards in the input are escaped).

        Raises:
            ValidationError: search_by is neither "name" nor "number"
        """
        if search_by not in SEARCH_MODES:
            raise ValidationError(
                message="invalid searchBy",
                field="searchBy",
                context={"search_by": search_by, "allowed": list(SEARCH_MODES)},
            )

        filters = [in_org(scope)]
        if search_by == SEARCH_BY_NAME:
            if first_name:
                filters.append(Client.first_name.icontains(first_name, autoescape=True))
            if last_name:
                filters.append(Client.last_name.icontains(last_name, autoescape=True))
        else:
            if phone_number:
                filters.append(Client.phone_primary.icontains(phone_number, autoescape=True))

        query = select(Client).where(*filters).order_by(Client.last_name, Client.first_name)
        try:
            result = await db.execute(query)
        except SQLAlchemyError as e:
            logger.error("Database error searching clients: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not search clients. Please try again.",
                context={"search_by": search_by, "error": str(e)},
            )
        return [to_client_response(client) for client in result.scalars().all()]

    async def create_client(
        self,
        db: AsyncSession,
        scope: OrgScope,
        payload: ClientCreate,
    ) -> uuid.UUID:
        """
        Persist a new client as a member of exactly the scope's organization.
        Any `orgs` value in the payload is discarded.

        Returns:
            The generated client id.
        """
        if payload.orgs and payload.orgs != [scope.org_id]:
            logger.info("Ignoring client-supplied orgs %s on create", payload.orgs)

        address = payload.address or Address()
        client = Client(
            first_name=payload.first_name,
            middle_name=payload.middle_name,
            last_name=payload.last_name,
            email=payload.email,
            phone_primary=payload.phone_number.primary,
            phone_secondary=payload.phone_number.secondary,
            address_line1=address.line1,
            address_line2=address.line2,
            address_city=address.city,
            address_county=address.county,
            address_zip=address.zip,
        )
        client.org_memberships = [ClientOrg(org_id=scope.org_id)]

        try:
            db.add(client)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error creating client: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not create the client. Please try again.",
                context={"error": str(e)},
            )

        logger.info("New client created: %s (org=%s)", client.id, scope.org_id)
        return client.id

    async def update_client(
        self,
        db: AsyncSession,
        scope: OrgScope,
        client_id: uuid.UUID,
        payload: ClientUpdate,
    ) -> ClientResponse:
        """
        Apply the fields present in `payload`.

        Nested phoneNumber / address objects are merged: only their present
        keys are written. Memberships and profile image are not touched.

        Raises:
            ClientNotFoundError: no visible client with this id
            ValidationError:     a required field was explicitly set to null
        """
        changes = payload.model_dump(exclude_unset=True)

        column_changes = {field: changes[field] for field in _UPDATABLE_FIELDS if field in changes}
        for key, value in (changes.get("phone_number") or {}).items():
            column_changes[f"phone_{key}"] = value
        for key, value in (changes.get("address") or {}).items():
            if key in _ADDRESS_FIELDS:
                column_changes[f"address_{key}"] = value

        cleared = sorted(k for k in _REQUIRED_FIELDS if k in column_changes and column_changes[k] is None)
        if cleared:
            raise ValidationError(
                message=f"Required fields cannot be cleared: {', '.join(cleared)}",
                context={"fields": cleared},
            )

        try:
            client = await find_client(db, scope, client_id)
            if client is None:
                raise ClientNotFoundError(str(client_id))

            for column, value in column_changes.items():
                setattr(client, column, value)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error updating client %s: %s", client_id, str(e))
            raise DatabaseError(
                message="Could not update the client. Please try again.",
                context={"client_id": str(client_id), "error": str(e)},
            )

        logger.info("Client %s updated: %s", client_id, sorted(column_changes))
        return to_client_response(client)

    async def delete_client(
        self,
        db: AsyncSession,
        scope: OrgScope,
        client_id: uuid.UUID,
    ) -> None:
        """
        Hard-delete a client that is not registered for any of the
        organization's events.

        Attendee rows on other organizations' events do not block the
        delete; they are removed with the client.

        Raises:
            ClientNotFoundError: no visible client with this id
            ConflictError:       the client is an attendee of an org event
        """
        try:
            client = await find_client(db, scope, client_id, for_update=True)
            if client is None:
                raise ClientNotFoundError(str(client_id))

            attendance_query = (
                select(func.count())
                .select_from(EventAttendee)
                .join(Event, Event.id == EventAttendee.event_id)
                .where(
                    EventAttendee.client_id == client.id,
                    Event.org == scope.org_id,
                )
            )
            registrations = (await db.execute(attendance_query)).scalar_one()

            if registrations:
                logger.warning(
                    "Refusing to delete client %s: registered for %d event(s) in org %s",
                    client_id,
                    registrations,
                    scope.org_id,
                )
                raise ConflictError(
                    message="Client is signed up for events and can't be deleted.",
                    context={"client_id": str(client_id), "events": registrations},
                )

            await db.delete(client)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error deleting client %s: %s", client_id, str(e))
            raise DatabaseError(
                message="Could not delete the client. Please try again.",
                context={"client_id": str(client_id), "error": str(e)},
            )

        logger.info("Client %s deleted (org=%s)", client_id, scope.org_id)

    async def aggregate_by_zip(
        self,
        db: AsyncSession,
        scope: Optional[OrgScope] = None,
    ) -> List[ZipCount]:
        """
        Client counts per zip code, for the dashboard map.

        Clients with no zip or an empty zip are left out. scope=None counts
        every organization's clients.
        """
        query = (
            select(Client.address_zip, func.count(Client.id))
            .where(Client.address_zip.is_not(None), Client.address_zip != "")
            .group_by(Client.address_zip)
            .order_by(Client.address_zip)
        )
        if scope is not None:
            query = query.where(in_org(scope))
        try:
            rows = (await db.execute(query)).all()
        except SQLAlchemyError as e:
            logger.error("Database error aggregating clients by zip: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not aggregate clients by zip code.",
                context={"error": str(e)},
            )
        return [ZipCount(zip=zip_code, count=count) for zip_code, count in rows]


# ── Singleton Instance ────────────────────────────────────────────────────
client_service = ClientService()
