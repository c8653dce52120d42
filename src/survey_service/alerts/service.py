"""
Alert contacts and survey alerts.
"""

from datetime import datetime, timezone
from uuid import uuid4

from survey_service.alerts.models import AlertContactRecord
from survey_service.alerts.schemas import CONTACT_TYPE_EMAIL, AlertContact, AlertContactRequest, SurveyAlert
from survey_service.auth.identity import Tenant
from survey_service.notifications.client import NotificationsClientProtocol
from survey_service.shared.exceptions import NotFoundError, ValidationError
from survey_service.shared.logging import get_logger
from survey_service.shared.unit_of_work import TransactionManager

logger = get_logger(__name__)


class AlertService:
    """Alert contact CRUD and delivery of survey alerts."""

    def __init__(self, transactions: TransactionManager, notifications: NotificationsClientProtocol) -> None:
        self._transactions = transactions
        self._notifications = notifications

    async def get_contact(self, contact_id: str, tenant: Tenant) -> AlertContact:
        async with self._transactions.transaction() as store:
            record = await store.alert_contacts.get(contact_id, tenant)
        if record is None:
            raise NotFoundError("Alert contact not found", details={"contact_id": contact_id})
        return AlertContact.model_validate(record)

    async def list_contacts(self, tenant: Tenant) -> list[AlertContact]:
        async with self._transactions.transaction() as store:
            records = await store.alert_contacts.list(tenant)
        return [AlertContact.model_validate(record) for record in records]

    async def create_contact(self, request: AlertContactRequest, tenant: Tenant) -> AlertContact:
        record = AlertContactRecord(
            id=str(uuid4()),
            org_id=tenant.org_id,
            app_id=tenant.app_id,
            key=request.key,
            type=request.type,
            address=request.address,
            params=request.params,
            date_created=datetime.now(timezone.utc),
        )
        async with self._transactions.transaction() as store:
            await store.alert_contacts.create(record)
        logger.info("Alert contact created", extra={"contact_id": record.id, "key": record.key})
        return AlertContact.model_validate(record)

    async def update_contact(self, contact_id: str, request: AlertContactRequest, tenant: Tenant) -> AlertContact:
        async with self._transactions.transaction() as store:
            record = await store.alert_contacts.get(contact_id, tenant)
            if record is None:
                raise NotFoundError("Alert contact not found", details={"contact_id": contact_id})
            record.key = request.key
            record.type = request.type
            record.address = request.address
            record.params = request.params
            record.date_updated = datetime.now(timezone.utc)
            await store.alert_contacts.update(record)
        logger.info("Alert contact updated", extra={"contact_id": contact_id})
        return AlertContact.model_validate(record)

    async def delete_contact(self, contact_id: str, tenant: Tenant) -> None:
        async with self._transactions.transaction() as store:
            deleted = await store.alert_contacts.delete(contact_id, tenant)
        if not deleted:
            raise NotFoundError("Alert contact not found", details={"contact_id": contact_id})
        logger.info("Alert contact deleted", extra={"contact_id": contact_id})

    async def send_survey_alert(self, alert: SurveyAlert, tenant: Tenant) -> int:
        """Email the alert to every email contact registered under its key.

        Returns:
            Number of emails sent.

        Raises:
            ValidationError: If an email contact exists and the content lacks
                a string ``subject`` or ``body``.
            UpstreamUnavailableError: If the notifications service fails.
        """
        async with self._transactions.transaction() as store:
            records = await store.alert_contacts.list_by_key(alert.contact_key, tenant)

        recipients = [record.address for record in records if record.type == CONTACT_TYPE_EMAIL]
        if not recipients:
            logger.info("No email contacts for survey alert", extra={"contact_key": alert.contact_key})
            return 0

        subject = alert.content.get("subject")
        body = alert.content.get("body")
        if not isinstance(subject, str):
            raise ValidationError("Alert content subject is required", details={"field": "subject"})
        if not isinstance(body, str):
            raise ValidationError("Alert content body is required", details={"field": "body"})

        for address in recipients:
            await self._notifications.send_mail(address, subject, body)

        logger.info(
            "Survey alert sent",
            extra={"contact_key": alert.contact_key, "recipient_count": len(recipients)},
        )
        return len(recipients)


__all__ = ["AlertService"]
