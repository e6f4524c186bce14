"""
Mock Document Lookup Client.

Serves identity records from a fixed table for tests and demos.
"""
import logging
from typing import Any, Dict, Optional

from orderdesk.application.interfaces import IDocumentLookupClient
from orderdesk.domain.exceptions import NotFound

logger = logging.getLogger(__name__)

DEFAULT_DOCUMENTS: Dict[str, Dict[str, Any]] = {
    "20131312955": {
        "numeroDocumento": "20131312955",
        "razonSocial": "SUPERINTENDENCIA NACIONAL DE ADUANAS Y DE ADMINISTRACION TRIBUTARIA",
        "direccion": "AV. GARCILASO DE LA VEGA NRO. 1472, LIMA",
        "estado": "ACTIVO",
    },
    "43837522": {
        "numeroDocumento": "43837522",
        "nombres": "MARIA ELENA",
        "apellidoPaterno": "QUISPE",
        "apellidoMaterno": "HUAMAN",
    },
}


class MockDocumentLookupClient(IDocumentLookupClient):
    """Mock implementation of the identity lookup service."""

    def __init__(self, documents: Optional[Dict[str, Dict[str, Any]]] = None):
        self.documents = dict(DEFAULT_DOCUMENTS if documents is None else documents)
        self.lookups = []
        logger.info("MockDocumentLookupClient initialized")

    async def lookup(self, doc_type: str, number: str) -> Dict[str, Any]:
        self.lookups.append((doc_type, number))
        record = self.documents.get(number)
        if record is None:
            raise NotFound(f"{doc_type.upper()} {number} not found")
        logger.info(f"Mock lookup served {doc_type.upper()} {number}")
        return dict(record)
