"""Tests for the invoicing and document lookup adapters."""

import pytest

from orderdesk.domain.exceptions import NotFound, UpstreamFailure
from orderdesk.infrastructure.adapters.documents import HttpDocumentLookupClient, MockDocumentLookupClient
from orderdesk.infrastructure.adapters.invoicing import HttpInvoicingClient, MockInvoicingClient
from orderdesk.settings.modules import DocumentLookupSettings, InvoicingSettings


@pytest.mark.asyncio
async def test_mock_invoicing_client_issues_sequential_codes():
    client = MockInvoicingClient()

    first = await client.issue_invoice({"orderNumber": "ORD-001"})
    second = await client.issue_invoice({"orderNumber": "ORD-002"})

    assert (first, second) == ("MOCK-000001", "MOCK-000002")
    assert [payload["orderNumber"] for payload in client.issued] == ["ORD-001", "ORD-002"]


@pytest.mark.asyncio
async def test_mock_invoicing_client_can_fail():
    client = MockInvoicingClient(fail_with="SUNAT offline")

    with pytest.raises(UpstreamFailure, match="SUNAT offline"):
        await client.issue_invoice({"orderNumber": "ORD-001"})
    assert client.issued == []


@pytest.mark.asyncio
async def test_mock_lookup_client_serves_known_documents():
    client = MockDocumentLookupClient()

    record = await client.lookup("dni", "43837522")

    assert record["apellidoPaterno"] == "QUISPE"
    assert client.lookups == [("dni", "43837522")]
    with pytest.raises(NotFound):
        await client.lookup("ruc", "20999999999")


@pytest.mark.asyncio
async def test_http_invoicing_client_without_url_fails_fast():
    client = HttpInvoicingClient(InvoicingSettings(enabled=True, url=""))

    with pytest.raises(UpstreamFailure):
        await client.issue_invoice({"orderNumber": "ORD-001"})


@pytest.mark.asyncio
async def test_http_lookup_client_without_url_fails_fast():
    client = HttpDocumentLookupClient(DocumentLookupSettings(enabled=True, url=""))

    with pytest.raises(UpstreamFailure):
        await client.lookup("ruc", "20131312955")
