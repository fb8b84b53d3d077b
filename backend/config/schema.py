"""Root GraphQL schema."""
import strawberry

from apps.alerts.schema import AlertMutation, AlertQuery
from apps.core.schema import AuthMutation, CoreQuery
from apps.contracts.schema import ContractMutation, ContractQuery
from apps.invoices.schema import InvoiceMutation, InvoiceQuery
from apps.marketplace.schema import MarketplaceMutation, MarketplaceQuery


@strawberry.type
class Query(
    CoreQuery,
    ContractQuery,
    InvoiceQuery,
    MarketplaceQuery,
    AlertQuery,
):
    @strawberry.field
    def health(self) -> str:
        return "ok"


@strawberry.type
class Mutation(AuthMutation, ContractMutation, InvoiceMutation, MarketplaceMutation, AlertMutation):
    pass


schema = strawberry.Schema(
    query=Query,
    mutation=Mutation,
)
