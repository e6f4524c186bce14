"""
FastAPI Dependencies.

Provides dependency injection for the order and billing services.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import Header

# Load environment variables ONCE before any settings objects are created
_PROJECT_ROOT = Path(__file__).resolve().parents[1]
load_dotenv(dotenv_path=_PROJECT_ROOT / ".env")

from orderdesk.application.interfaces import IDocumentLookupClient, IInvoicingClient
from orderdesk.application.services import (
    BillingDeriver,
    DocumentLookupService,
    HistoryRecorder,
    OrderStore,
    SequenceAllocator,
)
from orderdesk.domain.repositories import DocumentStore
from orderdesk.infrastructure.adapters.documents import HttpDocumentLookupClient, MockDocumentLookupClient
from orderdesk.infrastructure.adapters.invoicing import HttpInvoicingClient, MockInvoicingClient
from orderdesk.infrastructure.persistence import InMemoryDocumentStore, SqlAlchemyDocumentStore
from orderdesk.settings import get_app_settings

logger = logging.getLogger(__name__)


# =============================================================================
# SINGLETON INSTANCES
# =============================================================================

_document_store: Optional[DocumentStore] = None
_engine = None
_history_recorder: Optional[HistoryRecorder] = None
_sequence_allocator: Optional[SequenceAllocator] = None
_order_store: Optional[OrderStore] = None
_billing_deriver: Optional[BillingDeriver] = None
_invoicing_client: Optional[IInvoicingClient] = None
_document_lookup_client: Optional[IDocumentLookupClient] = None
_document_lookup_service: Optional[DocumentLookupService] = None


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_document_store() -> DocumentStore:
    global _document_store, _engine

    if _document_store is None:
        settings = get_app_settings().database

        if settings.backend == "sql":
            from orderdesk.infrastructure.database.config import create_engine, get_session_factory

            _engine = create_engine(settings)
            _document_store = SqlAlchemyDocumentStore(get_session_factory(_engine))
            logger.info("Created SqlAlchemyDocumentStore instance")
        else:
            _document_store = InMemoryDocumentStore()
            logger.info("Created InMemoryDocumentStore instance")

    return _document_store


async def init_document_store() -> None:
    """Create tables when the SQL backend is selected."""
    get_document_store()
    if _engine is not None:
        from orderdesk.infrastructure.database.config import init_database

        await init_database(_engine)


async def close_document_store() -> None:
    global _engine

    if _engine is not None:
        await _engine.dispose()
        _engine = None


def get_history_recorder() -> HistoryRecorder:
    global _history_recorder
    if _history_recorder is None:
        _history_recorder = HistoryRecorder(get_document_store())
    return _history_recorder


def get_sequence_allocator() -> SequenceAllocator:
    global _sequence_allocator
    if _sequence_allocator is None:
        settings = get_app_settings().ordering
        _sequence_allocator = SequenceAllocator(
            get_document_store(),
            counter_path=settings.counter_path,
            max_retries=settings.transaction_retries,
        )
    return _sequence_allocator


def get_order_store() -> OrderStore:
    global _order_store
    if _order_store is None:
        settings = get_app_settings()
        _order_store = OrderStore(
            get_document_store(),
            get_sequence_allocator(),
            get_history_recorder(),
            order_number_prefix=settings.ordering.order_number_prefix,
            currency=settings.billing.currency,
        )
        logger.info("Created OrderStore instance")
    return _order_store


def get_invoicing_client() -> IInvoicingClient:
    global _invoicing_client

    if _invoicing_client is None:
        settings = get_app_settings().integrations.invoicing
        if settings.enabled:
            _invoicing_client = HttpInvoicingClient(settings)
            logger.info("Created HttpInvoicingClient instance")
        else:
            _invoicing_client = MockInvoicingClient()
            logger.info("Using MockInvoicingClient (invoicing disabled)")

    return _invoicing_client


def get_billing_deriver() -> BillingDeriver:
    global _billing_deriver
    if _billing_deriver is None:
        settings = get_app_settings().billing
        _billing_deriver = BillingDeriver(
            get_document_store(),
            get_order_store(),
            get_history_recorder(),
            invoicing_client=get_invoicing_client(),
            default_terms_days=settings.default_terms_days,
            igv_factor=settings.igv_factor,
        )
        logger.info("Created BillingDeriver instance")
    return _billing_deriver


def get_document_lookup_service() -> DocumentLookupService:
    global _document_lookup_client, _document_lookup_service

    if _document_lookup_service is None:
        settings = get_app_settings().integrations.document_lookup
        if settings.enabled:
            _document_lookup_client = HttpDocumentLookupClient(settings)
            logger.info("Created HttpDocumentLookupClient instance")
        else:
            _document_lookup_client = MockDocumentLookupClient()
            logger.info("Using MockDocumentLookupClient (lookups disabled)")
        _document_lookup_service = DocumentLookupService(_document_lookup_client)

    return _document_lookup_service


def get_actor(x_actor: Optional[str] = Header(default=None)) -> Optional[str]:
    """Operator performing the request, taken from the X-Actor header."""
    return x_actor


# =============================================================================
# RESET (for testing)
# =============================================================================

def reset_dependencies():
    global _document_store, _engine, _history_recorder, _sequence_allocator
    global _order_store, _billing_deriver, _invoicing_client
    global _document_lookup_client, _document_lookup_service

    _document_store = None
    _engine = None
    _history_recorder = None
    _sequence_allocator = None
    _order_store = None
    _billing_deriver = None
    _invoicing_client = None
    _document_lookup_client = None
    _document_lookup_service = None

    logger.info("Dependencies reset")
