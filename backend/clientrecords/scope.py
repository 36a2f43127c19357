"""
Client Records Backend — Organization Scope
=============================================

What:  The tenant boundary handed to every org-scoped service call.
Who:   Built by the HTTP layer (get_org_scope), consumed by services.

Services never read the configured organization themselves, so one process
can serve several organizations by building a different scope per request.
"""

from dataclasses import dataclass

from clientrecords.config import settings


@dataclass(frozen=True)
class OrgScope:
    """Identifies the organization a request acts on behalf of."""

    org_id: str

    def __post_init__(self) -> None:
        if not self.org_id:
            raise ValueError("OrgScope requires a non-empty org_id")


def get_org_scope() -> OrgScope:
    """
    FastAPI dependency returning the scope for the current request.

    Today every request acts for the deployment's ORG_ID.
    """
    return OrgScope(org_id=settings.org_id)
