# Settings modules
from .app_settings import AppSettings, IntegrationsSettings, get_app_settings
from .billing_settings import BillingSettings
from .database_settings import DatabaseSettings
from .integrations_settings import DocumentLookupSettings, InvoicingSettings
from .logging_settings import LoggingSettings
from .ordering_settings import OrderingSettings

__all__ = [
    "AppSettings",
    "get_app_settings",
    "IntegrationsSettings",
    "BillingSettings",
    "DatabaseSettings",
    "DocumentLookupSettings",
    "InvoicingSettings",
    "LoggingSettings",
    "OrderingSettings",
]
