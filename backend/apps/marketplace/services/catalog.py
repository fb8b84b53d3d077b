"""Normalization of marketplace search and sync results into one product record.

Upstream lookups return three different shapes: catalog entities, signed
agreements and EC2 instances launched from marketplace images. Each is mapped
into ``ExternalProduct``. Pricing is only ever taken from a real price record;
when none is found ``monthly_cost`` stays ``None`` so downstream savings math
can tell "no data" apart from "costs nothing".
"""
import json
import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Iterable

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "USD"

CATALOG_URL = "https://aws.amazon.com/marketplace/pp/{product_id}"
AGREEMENT_URL = "https://console.aws.amazon.com/marketplace/home#/agreements/{product_id}"

# EC2 instance states that still represent a usable subscription
RUNNING_INSTANCE_STATES = {"pending", "running"}
STOPPED_INSTANCE_STATES = {"stopping", "stopped", "shutting-down", "terminated"}


class ProductSource(str, Enum):
    """Upstream result shape a raw record came from."""

    CATALOG_ENTITY = "marketplace_catalog"
    AGREEMENT = "marketplace_agreement"
    EC2_IMAGE = "ec2_marketplace"


class Availability(str, Enum):
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    UNKNOWN = "unknown"


class ProductNormalizationError(ValueError):
    """Raised when a raw record cannot be identified as a product."""


@dataclass
class RawProductRecord:
    """A raw record as returned by a marketplace provider.

    ``price_list`` holds pricing-lookup entries (JSON strings or dicts) when the
    provider managed to fetch any.
    """

    source: ProductSource
    payload: dict
    price_list: list | None = None
    integration_id: int | None = None


@dataclass
class ExternalProduct:
    """A normalized marketplace offering."""

    product_id: str
    product_name: str
    vendor: str = ""
    product_type: str = ""
    monthly_cost: Decimal | None = None
    currency: str = DEFAULT_CURRENCY
    availability: Availability = Availability.UNKNOWN
    match_score_hint: float | None = None
    marketplace_url: str = ""
    metadata: dict = field(default_factory=dict)
    integration_id: int | None = None
    source: ProductSource | None = None

    @property
    def identity(self) -> tuple[int | None, str]:
        return (self.integration_id, self.product_id)

    @property
    def has_pricing(self) -> bool:
        return self.monthly_cost is not None


def _to_decimal(value: Any) -> Decimal | None:
    """Parse a price into a non-negative Decimal, or None when it is not a real price."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite() or amount < 0:
        return None
    return amount


def _load_json(value: Any) -> dict:
    if isinstance(value, dict):
        return value
    if isinstance(value, str) and value.strip():
        try:
            loaded = json.loads(value)
        except ValueError:
            logger.warning("Ignoring unparseable JSON blob in marketplace record")
            return {}
        return loaded if isinstance(loaded, dict) else {}
    return {}


def parse_monthly_cost(price_list: Iterable | None) -> tuple[Decimal | None, str, str | None]:
    """
    Extract a price from pricing-lookup entries.

    Walks ``terms.OnDemand -> first term -> priceDimensions -> first dimension
    -> pricePerUnit``. The first entry carrying a real price wins.

    Returns:
        (monthly_cost or None, currency, pricing unit or None)
    """
    for entry in price_list or []:
        price_data = _load_json(entry)
        on_demand = (price_data.get("terms") or {}).get("OnDemand") or {}
        for term in on_demand.values():
            dimensions = (term or {}).get("priceDimensions") or {}
            for dimension in dimensions.values():
                price_per_unit = (dimension or {}).get("pricePerUnit") or {}
                for currency, raw_amount in price_per_unit.items():
                    amount = _to_decimal(raw_amount)
                    if amount is not None:
                        return amount, currency, dimension.get("unit")
    return None, DEFAULT_CURRENCY, None


def _explicit_pricing(payload: dict) -> tuple[Decimal | None, str]:
    """Pricing that a provider already attached to the payload, e.g. from a live search."""
    pricing = payload.get("pricing") or {}
    amount = _to_decimal(pricing.get("monthlyCost", pricing.get("monthly_cost")))
    return amount, pricing.get("currency") or DEFAULT_CURRENCY


def _resolve_pricing(raw: RawProductRecord) -> tuple[Decimal | None, str, dict]:
    amount, currency, unit = parse_monthly_cost(raw.price_list)
    if amount is not None:
        return amount, currency, {"pricingModel": unit or "Monthly"}
    amount, currency = _explicit_pricing(raw.payload or {})
    return amount, currency, {}


def _normalize_catalog_entity(payload: dict) -> dict:
    product_id = payload.get("EntityId")
    details = _load_json(payload.get("Details") or payload.get("DetailsDocument"))
    return {
        "product_id": product_id,
        "product_name": payload.get("Name") or "Unknown Product",
        "vendor": (details.get("Vendor") or {}).get("Name") or "Unknown Vendor",
        "product_type": payload.get("EntityType") or "SaaS",
        "availability": Availability.AVAILABLE,
        "marketplace_url": CATALOG_URL.format(product_id=product_id),
        "metadata": {
            "entityArn": payload.get("EntityArn"),
            "visibility": payload.get("Visibility"),
            "lastModifiedDate": payload.get("LastModifiedDate"),
            "description": details.get("Description", ""),
            "details": details,
        },
    }


def _normalize_agreement(payload: dict) -> dict:
    product_id = payload.get("AgreementId")
    proposal = payload.get("ProposalSummary") or {}
    return {
        "product_id": product_id,
        "product_name": proposal.get("OfferName") or "Unknown Product",
        "vendor": (payload.get("Proposer") or {}).get("AccountId") or "Unknown",
        "product_type": payload.get("AgreementType") or "Subscription",
        "availability": Availability.AVAILABLE,
        "marketplace_url": AGREEMENT_URL.format(product_id=product_id),
        "metadata": {
            "agreementId": product_id,
            "status": payload.get("Status"),
            "acceptanceTime": payload.get("AcceptanceTime"),
            "endTime": payload.get("EndTime"),
            "terms": payload.get("AcceptedTerms"),
        },
    }


def _normalize_ec2_image(payload: dict) -> dict:
    instance = payload.get("Instance") or {}
    image = payload.get("Image") or {}
    instance_id = instance.get("InstanceId")
    if not image.get("ProductCodes"):
        raise ProductNormalizationError(
            f"Instance {instance_id} was not launched from a marketplace image"
        )

    state = ((instance.get("State") or {}).get("Name") or "").lower()
    if state in RUNNING_INSTANCE_STATES:
        availability = Availability.AVAILABLE
    elif state in STOPPED_INSTANCE_STATES:
        availability = Availability.UNAVAILABLE
    else:
        availability = Availability.UNKNOWN

    return {
        "product_id": f"ec2-{instance_id}" if instance_id else None,
        "product_name": image.get("Name") or f"Marketplace Instance {instance_id}",
        "vendor": image.get("OwnerId") or "Unknown",
        "product_type": "EC2_Marketplace_Instance",
        "availability": availability,
        "marketplace_url": "",
        "metadata": {
            "instanceId": instance_id,
            "instanceType": instance.get("InstanceType"),
            "instanceState": state or None,
            "imageId": image.get("ImageId"),
            "productCodes": image.get("ProductCodes"),
        },
    }


_NORMALIZERS = {
    ProductSource.CATALOG_ENTITY: _normalize_catalog_entity,
    ProductSource.AGREEMENT: _normalize_agreement,
    ProductSource.EC2_IMAGE: _normalize_ec2_image,
}


def normalize_product(raw: RawProductRecord) -> ExternalProduct:
    """
    Convert a raw provider record into an ExternalProduct.

    Args:
        raw: The record with its upstream shape and optional price list

    Returns:
        ExternalProduct with ``monthly_cost`` set only when a real price exists

    Raises:
        ProductNormalizationError: if the record has no product identity
    """
    source = ProductSource(raw.source)
    payload = raw.payload or {}
    fields = _NORMALIZERS[source](payload)
    if not fields["product_id"]:
        raise ProductNormalizationError(f"{source.value} record has no product id")

    monthly_cost, currency, pricing_meta = _resolve_pricing(raw)
    metadata = {**fields.pop("metadata"), **pricing_meta, "source": source.value}

    hint = payload.get("matchScore")
    return ExternalProduct(
        **fields,
        monthly_cost=monthly_cost,
        currency=currency,
        match_score_hint=float(hint) if isinstance(hint, (int, float)) else None,
        metadata=metadata,
        integration_id=raw.integration_id,
        source=source,
    )


def deduplicate_products(products: Iterable[ExternalProduct]) -> list[ExternalProduct]:
    """
    Collapse products sharing (integration_id, product_id); the latest record wins.

    The surviving record keeps the position of the first occurrence.
    """
    by_identity: dict[tuple[int | None, str], ExternalProduct] = {}
    for product in products:
        by_identity[product.identity] = product
    return list(by_identity.values())
