from .http_document_lookup_client import HttpDocumentLookupClient
from .mock_document_lookup_client import MockDocumentLookupClient

__all__ = ["HttpDocumentLookupClient", "MockDocumentLookupClient"]
