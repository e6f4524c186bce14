"""Identity document (RUC / DNI) lookup endpoints."""
from fastapi import APIRouter, Depends

from api.dependencies import get_document_lookup_service
from orderdesk.application.dtos import IdentityDocument
from orderdesk.application.services import DocumentLookupService


router = APIRouter()


@router.get("/{doc_type}/{number}", response_model=IdentityDocument, summary="Look up RUC or DNI")
async def lookup_document(
    doc_type: str,
    number: str,
    lookups: DocumentLookupService = Depends(get_document_lookup_service),
):
    return await lookups.lookup_document(doc_type, number)
