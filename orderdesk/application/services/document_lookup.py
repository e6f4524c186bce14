"""
Identity document lookups (RUC / DNI).

Validates the request, calls the lookup client and normalizes whatever
field names the provider used.
"""
from typing import Any, Dict, Optional

from pydantic import ValidationError

from orderdesk.application.dtos.document_dto import DocumentLookupRequest, IdentityDocument
from orderdesk.application.interfaces import IDocumentLookupClient
from orderdesk.domain.exceptions import InvalidArgument, UpstreamFailure
from orderdesk.infrastructure.logging import get_logger

logger = get_logger(__name__)

_NAME_KEYS = ("razonSocial", "nombreCompleto", "nombre", "name")
_ADDRESS_KEYS = ("direccion", "domicilioFiscal", "address")
_STATUS_KEYS = ("estado", "status")


def _first(record: Dict[str, Any], keys) -> Optional[str]:
    for key in keys:
        value = record.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def normalize_identity(doc_type: str, number: str, record: Dict[str, Any]) -> IdentityDocument:
    name = _first(record, _NAME_KEYS)
    if name is None and record.get("nombres"):
        parts = [record.get("nombres"), record.get("apellidoPaterno"), record.get("apellidoMaterno")]
        name = " ".join(part.strip() for part in parts if part)
    if not name:
        raise UpstreamFailure(f"Lookup for {doc_type.upper()} {number} returned no name")

    return IdentityDocument(
        number=number,
        type=doc_type,
        name=name,
        address=_first(record, _ADDRESS_KEYS),
        status=_first(record, _STATUS_KEYS),
    )


class DocumentLookupService:

    def __init__(self, client: IDocumentLookupClient) -> None:
        self._client = client

    async def lookup_document(self, doc_type: str, number: str) -> IdentityDocument:
        """
        Raises:
            InvalidArgument: wrong type or digit count
            NotFound: unknown document
            UpstreamFailure: lookup service failure
        """
        try:
            request = DocumentLookupRequest(type=doc_type, number=number)
        except ValidationError as e:
            message = "; ".join(error["msg"] for error in e.errors())
            raise InvalidArgument(f"Invalid document {doc_type!r} {number!r}: {message}")

        record = await self._client.lookup(request.type, request.number)
        identity = normalize_identity(request.type, request.number, record or {})
        logger.info(f"Looked up {request.type.upper()} {request.number}")
        return identity
