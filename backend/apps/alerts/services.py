"""Working out which renewal reminders fall due on a given day."""
import logging
from dataclasses import dataclass
from typing import Iterable

from django.db import transaction

from apps.contracts.models import Contract
from apps.contracts.services.renewals import days_until, to_date
from .models import AlertConfiguration, AlertHistory

logger = logging.getLogger(__name__)


@dataclass
class DueReminder:
    configuration: AlertConfiguration
    days_left: int

    @property
    def contract(self):
        return self.configuration.contract

    @property
    def message(self) -> str:
        return f"{self.contract.name} expires in {self.days_left} days on {self.contract.end_date}"


def due_reminders(configurations: Iterable[AlertConfiguration], reference_date) -> list[DueReminder]:
    """
    Reminders whose alert period matches the days left on an active contract.

    Args:
        configurations: Alert configurations with their contracts loaded
        reference_date: The "today" to measure against

    Returns:
        One reminder per matching configuration, in input order

    Raises:
        ValueError: If reference_date is missing or cannot be parsed as a date
    """
    reference = to_date(reference_date)
    if reference is None:
        raise ValueError(f"Invalid reference date: {reference_date!r}")

    reminders = []
    for configuration in configurations:
        contract = configuration.contract
        if contract.status != Contract.Status.ACTIVE:
            continue
        days_left = days_until(contract.end_date, reference)
        if configuration.is_due(days_left):
            reminders.append(DueReminder(configuration=configuration, days_left=days_left))
    return reminders


def record_due_reminders(tenant, reference_date) -> list[AlertHistory]:
    """
    Add a history entry for every reminder due on ``reference_date``.

    A configuration is reminded at most once per alert period of a contract
    term, so running this repeatedly for the same day records nothing new.
    """
    configurations = (
        AlertConfiguration.objects.for_tenant(tenant)
        .filter(is_active=True)
        .select_related("contract")
    )
    created = []
    with transaction.atomic():
        for reminder in due_reminders(configurations, reference_date):
            already_recorded = AlertHistory.objects.filter(
                configuration=reminder.configuration,
                alert_type=AlertHistory.AlertType.RENEWAL_REMINDER,
                days_before=reminder.days_left,
                contract_end_date=reminder.contract.end_date,
            ).exists()
            if already_recorded:
                continue
            created.append(
                AlertHistory.objects.create(
                    tenant_id=reminder.configuration.tenant_id,
                    contract=reminder.contract,
                    configuration=reminder.configuration,
                    email=reminder.configuration.email,
                    alert_type=AlertHistory.AlertType.RENEWAL_REMINDER,
                    days_before=reminder.days_left,
                    contract_end_date=reminder.contract.end_date,
                    message=reminder.message,
                )
            )

    if created:
        logger.info("Recorded %d renewal reminders for tenant %s", len(created), tenant.pk)
    return created
