"""Abstract marketplace provider interface."""
from abc import ABC, abstractmethod

from django.conf import settings
from django.utils.module_loading import import_string

from apps.marketplace.services.catalog import RawProductRecord


class MarketplaceProvider(ABC):
    """Abstract base class for cloud marketplace integrations.

    Implementations wrap one connected account (see ``MarketplaceIntegration``)
    and return raw records; normalization happens in ``catalog``.
    """

    def __init__(self, integration=None):
        self.integration = integration

    @property
    def integration_id(self):
        return self.integration.pk if self.integration is not None else None

    @abstractmethod
    def test_connection(self) -> dict:
        """Test the connection to the marketplace account.

        Returns:
            dict with 'success' (bool), optional 'permissions' (dict) and optional 'error' (str)
        """
        ...

    @abstractmethod
    def search(
        self,
        query: str,
        product_type: str = "All",
        max_results: int = 10,
    ) -> list[RawProductRecord]:
        """Search the marketplace catalog.

        Args:
            query: Free text search
            product_type: Catalog entity type filter, "All" for no filter
            max_results: Upper bound on returned records

        Returns:
            List of RawProductRecord objects
        """
        ...

    @abstractmethod
    def list_subscriptions(self) -> list[RawProductRecord]:
        """Fetch products the account is subscribed to.

        Returns:
            List of RawProductRecord objects (agreements and marketplace instances)
        """
        ...


def get_provider(integration) -> MarketplaceProvider | None:
    """Factory: returns the configured provider for this integration."""
    provider_path = getattr(settings, "MARKETPLACE_PROVIDER_CLASS", "")
    if not provider_path:
        return None
    provider_class = import_string(provider_path)
    return provider_class(integration)
