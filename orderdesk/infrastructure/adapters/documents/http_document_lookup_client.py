"""
HTTP Document Lookup Client.

Queries the identity lookup service for RUC / DNI records.
"""
import asyncio
import logging
from typing import Any, Dict

import aiohttp

from orderdesk.application.interfaces import IDocumentLookupClient
from orderdesk.domain.exceptions import NotFound, UpstreamFailure
from orderdesk.settings.modules.integrations_settings import DocumentLookupSettings

logger = logging.getLogger(__name__)


class HttpDocumentLookupClient(IDocumentLookupClient):
    """aiohttp implementation: GET {url}/{doc_type}/{number}."""

    def __init__(self, settings: DocumentLookupSettings):
        self.settings = settings
        self.base_url = settings.url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=settings.timeout_seconds)
        logger.info("HttpDocumentLookupClient initialized")

    async def lookup(self, doc_type: str, number: str) -> Dict[str, Any]:
        if not self.base_url:
            raise UpstreamFailure("Document lookup URL not configured")

        headers = {"Accept": "application/json"}
        if self.settings.token:
            headers["Authorization"] = f"Bearer {self.settings.token}"

        url = f"{self.base_url}/{doc_type}/{number}"
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.get(url, headers=headers) as response:
                    if response.status == 404:
                        raise NotFound(f"{doc_type.upper()} {number} not found")
                    if response.status >= 400:
                        error_text = await response.text()
                        logger.error(f"Document lookup error: {response.status} - {error_text}")
                        raise UpstreamFailure(
                            f"Document lookup failed for {doc_type.upper()} {number}: {response.status}"
                        )
                    return await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Failed to reach document lookup service: {e}", exc_info=True)
            raise UpstreamFailure(f"Document lookup service unreachable: {e}") from e
