"""GraphQL context for request handling."""
from dataclasses import dataclass, field
from datetime import date

from django.http import HttpRequest
from django.utils import timezone

from apps.core.auth import get_user_from_token
from apps.tenants.models import Tenant, User


@dataclass
class Context:
    """GraphQL request context.

    ``reference_date`` is the "today" used by renewal and savings resolvers.
    Tests pin it to get deterministic renewal windows.
    """

    request: HttpRequest
    user: User | None = None
    reference_date: date = field(default_factory=timezone.localdate)

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def tenant(self) -> Tenant | None:
        return self.user.tenant if self.user else None


def get_context(request: HttpRequest) -> Context:
    """Extract context from request, including authenticated user."""
    user = None

    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        user = get_user_from_token(auth_header[7:])

    return Context(request=request, user=user)
