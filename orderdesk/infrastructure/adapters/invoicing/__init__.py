from .http_invoicing_client import HttpInvoicingClient
from .mock_invoicing_client import MockInvoicingClient

__all__ = ["HttpInvoicingClient", "MockInvoicingClient"]
