"""GraphQL schema for renewal alerts."""

from typing import List

import strawberry
import strawberry_django
from django.core.exceptions import ValidationError
from django.db import transaction
from strawberry import auto
from strawberry.types import Info

from apps.contracts.models import Contract
from apps.core.context import Context
from apps.core.permissions import check_perm, require_perm
from apps.core.schema import DeleteResult
from .models import AlertConfiguration, AlertHistory
from .services import DueReminder, due_reminders, record_due_reminders


@strawberry_django.type(AlertConfiguration)
class AlertConfigurationType:
    """Renewal reminder settings for one recipient of a contract."""

    id: auto
    email: auto
    is_active: auto
    created_at: auto

    @strawberry.field
    def alert_days(self) -> List[int]:
        return list(self.alert_days)

    @strawberry.field
    def contract_id(self) -> strawberry.ID:
        return self.contract_id


@strawberry_django.type(AlertHistory)
class AlertHistoryType:
    """An alert raised for a contract."""

    id: auto
    email: auto
    alert_type: auto
    days_before: auto
    message: auto
    sent_at: auto

    @strawberry.field
    def contract_id(self) -> strawberry.ID:
        return self.contract_id

    @strawberry.field
    def configuration_id(self) -> strawberry.ID | None:
        return self.configuration_id


@strawberry.type
class DueRenewalAlertType:
    configuration_id: strawberry.ID
    contract_id: strawberry.ID
    contract_name: str
    email: str
    days_left: int
    message: str


def due_reminder_to_type(reminder: DueReminder) -> DueRenewalAlertType:
    return DueRenewalAlertType(
        configuration_id=reminder.configuration.id,
        contract_id=reminder.contract.id,
        contract_name=reminder.contract.name,
        email=reminder.configuration.email,
        days_left=reminder.days_left,
        message=reminder.message,
    )


@strawberry.input
class CreateAlertConfigurationInput:
    contract_id: strawberry.ID
    email: str
    alert_days: List[int]


@strawberry.type
class AlertConfigurationResult:
    configuration: AlertConfigurationType | None = None
    success: bool = False
    error: str | None = None


@strawberry.type
class RecordAlertsResult:
    recorded: int = 0
    success: bool = False
    error: str | None = None


@strawberry.type
class AlertQuery:
    """Renewal alert queries."""

    @strawberry.field
    def alert_configurations(
        self,
        info: Info[Context, None],
        contract_id: strawberry.ID | None = None,
    ) -> List[AlertConfigurationType]:
        """Alert configurations, optionally for one contract."""
        user = require_perm(info, "contracts", "read")
        queryset = AlertConfiguration.objects.for_tenant(user.tenant)
        if contract_id:
            queryset = queryset.filter(contract_id=contract_id)
        return list(queryset)

    @strawberry.field
    def alert_history(
        self,
        info: Info[Context, None],
        contract_id: strawberry.ID,
    ) -> List[AlertHistoryType]:
        """Alerts raised for a contract, newest first."""
        user = require_perm(info, "contracts", "read")
        return list(AlertHistory.objects.for_tenant(user.tenant).filter(contract_id=contract_id))

    @strawberry.field
    def due_renewal_alerts(self, info: Info[Context, None]) -> List[DueRenewalAlertType]:
        """Reminders whose alert period falls on today."""
        user = require_perm(info, "contracts", "read")
        configurations = (
            AlertConfiguration.objects.for_tenant(user.tenant)
            .filter(is_active=True)
            .select_related("contract")
        )
        reminders = due_reminders(configurations, info.context.reference_date)
        return [due_reminder_to_type(r) for r in reminders]


@strawberry.type
class AlertMutation:
    """Renewal alert mutations."""

    @strawberry.mutation
    def create_alert_configuration(
        self, info: Info[Context, None], input: CreateAlertConfigurationInput
    ) -> AlertConfigurationResult:
        """Configure renewal reminders for a contract and log the change."""
        user, err = check_perm(info, "contracts", "write")
        if err:
            return AlertConfigurationResult(error=err)
        if not user.tenant:
            return AlertConfigurationResult(error="No tenant assigned")

        contract = Contract.objects.for_tenant(user.tenant).filter(id=input.contract_id).first()
        if not contract:
            return AlertConfigurationResult(error="Contract not found")

        configuration = AlertConfiguration(
            tenant=user.tenant,
            contract=contract,
            email=input.email.strip(),
            alert_days=list(input.alert_days),
        )
        try:
            with transaction.atomic():
                configuration.save()
                AlertHistory.objects.create(
                    tenant=user.tenant,
                    contract=contract,
                    configuration=configuration,
                    email=configuration.email,
                    alert_type=AlertHistory.AlertType.CONFIGURED,
                    message=f"Configuration Set: {configuration.days_label} days",
                )
        except ValidationError as e:
            return AlertConfigurationResult(
                error="; ".join(
                    f"{field}: {' '.join(messages)}" for field, messages in e.message_dict.items()
                )
            )
        return AlertConfigurationResult(configuration=configuration, success=True)

    @strawberry.mutation
    def delete_alert_configuration(
        self, info: Info[Context, None], configuration_id: strawberry.ID
    ) -> DeleteResult:
        """Stop renewal reminders; past alerts stay in the history."""
        user, err = check_perm(info, "contracts", "write")
        if err:
            return DeleteResult(error=err)
        if not user.tenant:
            return DeleteResult(error="No tenant assigned")

        configuration = AlertConfiguration.objects.for_tenant(user.tenant).filter(id=configuration_id).first()
        if not configuration:
            return DeleteResult(error="Alert configuration not found")

        configuration.delete()
        return DeleteResult(success=True)

    @strawberry.mutation
    def record_renewal_alerts(self, info: Info[Context, None]) -> RecordAlertsResult:
        """Add today's due reminders to the alert history."""
        user, err = check_perm(info, "contracts", "write")
        if err:
            return RecordAlertsResult(error=err)
        if not user.tenant:
            return RecordAlertsResult(error="No tenant assigned")

        created = record_due_reminders(user.tenant, info.context.reference_date)
        return RecordAlertsResult(recorded=len(created), success=True)
