from __future__ import annotations

from pydantic import Field

from orderdesk.settings.base import OrderDeskBaseSettings


class InvoicingSettings(OrderDeskBaseSettings):
    """
    Electronic invoicing provider.
    Disabled by default; the mock client is used instead.
    """

    enabled: bool = Field(False, alias="INVOICING_ENABLED")
    url: str = Field("", alias="INVOICING_URL")
    token: str = Field("", alias="INVOICING_TOKEN")
    timeout_seconds: int = Field(30, alias="INVOICING_TIMEOUT_SECONDS")


class DocumentLookupSettings(OrderDeskBaseSettings):
    """
    RUC / DNI lookup service.
    Disabled by default; the mock client is used instead.
    """

    enabled: bool = Field(False, alias="DOCUMENT_LOOKUP_ENABLED")
    url: str = Field("", alias="DOCUMENT_LOOKUP_URL")
    token: str = Field("", alias="DOCUMENT_LOOKUP_TOKEN")
    timeout_seconds: int = Field(15, alias="DOCUMENT_LOOKUP_TIMEOUT_SECONDS")
