from __future__ import annotations

from functools import lru_cache

from pydantic import BaseModel, ConfigDict

from orderdesk.settings.modules.billing_settings import BillingSettings
from orderdesk.settings.modules.database_settings import DatabaseSettings
from orderdesk.settings.modules.integrations_settings import (
    DocumentLookupSettings,
    InvoicingSettings,
)
from orderdesk.settings.modules.logging_settings import LoggingSettings
from orderdesk.settings.modules.ordering_settings import OrderingSettings


class IntegrationsSettings(BaseModel):
    """Aggregates integrations settings as nested objects."""

    model_config = ConfigDict(extra="ignore")

    invoicing: InvoicingSettings
    document_lookup: DocumentLookupSettings


class AppSettings(BaseModel):
    """Application settings aggregator."""

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="ignore")

    ordering: OrderingSettings
    billing: BillingSettings
    database: DatabaseSettings
    integrations: IntegrationsSettings
    logging: LoggingSettings


@lru_cache()
def get_app_settings() -> AppSettings:
    return AppSettings(
        ordering=OrderingSettings(),
        billing=BillingSettings(),
        database=DatabaseSettings(),
        integrations=IntegrationsSettings(
            invoicing=InvoicingSettings(),
            document_lookup=DocumentLookupSettings(),
        ),
        logging=LoggingSettings(),
    )
