"""Core GraphQL schema: authentication, current user and global search."""
import strawberry
from django.contrib.auth import authenticate
from django.db.models import Q
from strawberry.types import Info

from apps.core.auth import (
    REFRESH_TOKEN,
    create_access_token,
    create_refresh_token,
    get_user_from_token,
)
from apps.core.context import Context


@strawberry.type
class AuthPayload:
    """Authentication response with tokens."""

    access_token: str
    refresh_token: str
    user_id: int
    email: str
    tenant_id: int | None


@strawberry.type
class AuthError:
    """Authentication error."""

    message: str


AuthResult = strawberry.union("AuthResult", [AuthPayload, AuthError])


@strawberry.type
class DeleteResult:
    """Result of delete operations."""

    success: bool = False
    error: str | None = None


@strawberry.type
class CurrentUser:
    """Current authenticated user info."""

    id: int
    email: str
    first_name: str
    last_name: str
    tenant_id: int | None
    tenant_name: str | None
    currency: str | None
    roles: list[str]
    permissions: list[str]
    renewal_window_days: int | None = None


@strawberry.type
class SearchResultItem:
    """A single search hit."""

    id: int
    title: str
    url: str
    subtitle: str | None = None


@strawberry.type
class SearchResultGroup:
    type: str
    label: str
    items: list[SearchResultItem]
    has_more: bool = False


@strawberry.type
class GlobalSearchResult:
    """Search hits grouped by record type."""

    groups: list[SearchResultGroup]
    total_count: int


def _search_group(queryset, limit, group_type, label, describe) -> SearchResultGroup | None:
    # Fetch one extra row to know whether there are more
    rows = list(queryset[: limit + 1])
    if not rows:
        return None
    items = [describe(row) for row in rows[:limit]]
    return SearchResultGroup(type=group_type, label=label, items=items, has_more=len(rows) > limit)


def _issue_tokens(user) -> AuthResult:
    if user.tenant and not user.tenant.is_active:
        return AuthError(message="Tenant is inactive")

    return AuthPayload(
        access_token=create_access_token(user),
        refresh_token=create_refresh_token(user),
        user_id=user.id,
        email=user.email,
        tenant_id=user.tenant_id,
    )


@strawberry.type
class CoreQuery:
    """Core queries including auth status."""

    @strawberry.field
    def me(self, info: Info[Context, None]) -> CurrentUser | None:
        """Get current authenticated user."""
        user = info.context.user
        if user is None:
            return None

        return CurrentUser(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            tenant_id=user.tenant_id,
            tenant_name=user.tenant.name if user.tenant else None,
            currency=user.tenant.currency if user.tenant else None,
            roles=[r.name for r in user.roles.all()],
            permissions=sorted(user.effective_permissions),
            renewal_window_days=user.tenant.renewal_window if user.tenant else None,
        )

    @strawberry.field
    def global_search(
        self, info: Info[Context, None], query: str, limit: int = 10
    ) -> GlobalSearchResult:
        """Search contracts, invoices and synced marketplace products the user may read."""
        from apps.contracts.models import Contract
        from apps.invoices.models import Invoice
        from apps.marketplace.models import MarketplaceProduct

        user = info.context.user
        query = query.strip()
        if user is None or not user.tenant or len(query) < 2:
            return GlobalSearchResult(groups=[], total_count=0)

        groups = []
        if user.has_perm_check("contracts", "read"):
            groups.append(_search_group(
                Contract.objects.for_tenant(user.tenant)
                .filter(Q(name__icontains=query) | Q(client__icontains=query))
                .order_by("end_date", "name"),
                limit,
                "contract",
                "Contracts",
                lambda c: SearchResultItem(
                    id=c.id, title=c.name, subtitle=c.client, url=f"/contracts/{c.id}"
                ),
            ))
        if user.has_perm_check("invoices", "read"):
            groups.append(_search_group(
                Invoice.objects.for_tenant(user.tenant)
                .filter(invoice_number__icontains=query)
                .select_related("contract"),
                limit,
                "invoice",
                "Invoices",
                lambda i: SearchResultItem(
                    id=i.id,
                    title=i.invoice_number,
                    subtitle=i.contract.name if i.contract else None,
                    url=f"/invoices/{i.id}",
                ),
            ))
        if user.has_perm_check("marketplace", "read"):
            groups.append(_search_group(
                MarketplaceProduct.objects.for_tenant(user.tenant)
                .filter(Q(product_name__icontains=query) | Q(vendor__icontains=query))
                .order_by("product_name"),
                limit,
                "marketplace_product",
                "Marketplace products",
                lambda p: SearchResultItem(
                    id=p.id, title=p.product_name, subtitle=p.vendor or None, url=p.marketplace_url
                ),
            ))

        groups = [g for g in groups if g is not None]
        return GlobalSearchResult(groups=groups, total_count=sum(len(g.items) for g in groups))


@strawberry.type
class AuthMutation:
    """Authentication mutations."""

    @strawberry.mutation
    def login(self, email: str, password: str) -> AuthResult:
        """Authenticate user and return tokens."""
        user = authenticate(username=email, password=password)
        if user is None or not user.is_active:
            return AuthError(message="Invalid email or password")
        return _issue_tokens(user)

    @strawberry.mutation
    def refresh_token(self, refresh_token: str) -> AuthResult:
        """Get new access token using refresh token."""
        user = get_user_from_token(refresh_token, token_type=REFRESH_TOKEN)
        if user is None:
            return AuthError(message="Invalid or expired refresh token")
        return _issue_tokens(user)
