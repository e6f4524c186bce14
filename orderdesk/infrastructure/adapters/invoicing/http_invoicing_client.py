"""
HTTP Invoicing Client.

Submits invoice payloads to the electronic invoicing provider.
"""
import asyncio
import logging
from typing import Any, Dict

import aiohttp

from orderdesk.application.interfaces import IInvoicingClient
from orderdesk.domain.exceptions import UpstreamFailure
from orderdesk.settings.modules.integrations_settings import InvoicingSettings

logger = logging.getLogger(__name__)


class HttpInvoicingClient(IInvoicingClient):
    """
    aiohttp implementation of the invoicing provider.

    Expects a JSON response carrying the acceptance code under `code`
    (or `acceptanceCode`).
    """

    def __init__(self, settings: InvoicingSettings):
        self.settings = settings
        self.url = settings.url
        self.timeout = aiohttp.ClientTimeout(total=settings.timeout_seconds)
        logger.info("HttpInvoicingClient initialized")

    async def issue_invoice(self, payload: Dict[str, Any]) -> str:
        if not self.url:
            raise UpstreamFailure("Invoicing provider URL not configured")

        headers = {"Content-Type": "application/json"}
        if self.settings.token:
            headers["Authorization"] = f"Bearer {self.settings.token}"

        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(self.url, json=payload, headers=headers) as response:
                    if response.status >= 400:
                        error_text = await response.text()
                        logger.error(f"Invoicing API error: {response.status} - {error_text}")
                        raise UpstreamFailure(
                            f"Invoicing provider rejected {payload.get('orderNumber')}: "
                            f"{response.status} {error_text}"
                        )
                    body = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Failed to reach invoicing provider: {e}", exc_info=True)
            raise UpstreamFailure(f"Invoicing provider unreachable: {e}") from e

        code = (body or {}).get("code") or (body or {}).get("acceptanceCode")
        if not code:
            raise UpstreamFailure(f"Invoicing provider returned no acceptance code: {body}")

        logger.info(f"Invoice {payload.get('orderNumber')} accepted with code {code}")
        return str(code)
