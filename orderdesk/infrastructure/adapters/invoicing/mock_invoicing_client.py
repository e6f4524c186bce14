"""
Mock Invoicing Client.

Accepts every payload and hands out sequential acceptance codes.
"""
import itertools
import logging
from typing import Any, Dict, List, Optional

from orderdesk.application.interfaces import IInvoicingClient
from orderdesk.domain.exceptions import UpstreamFailure

logger = logging.getLogger(__name__)


class MockInvoicingClient(IInvoicingClient):
    """
    Mock implementation of the invoicing provider.

    Set `fail_with` to make every call fail with that message.
    """

    def __init__(self, fail_with: Optional[str] = None):
        self.fail_with = fail_with
        self.issued: List[Dict[str, Any]] = []
        self._codes = itertools.count(1)
        logger.info("MockInvoicingClient initialized (no provider calls)")

    async def issue_invoice(self, payload: Dict[str, Any]) -> str:
        if self.fail_with:
            logger.warning(f"Mock invoicing failure for {payload.get('orderNumber')}: {self.fail_with}")
            raise UpstreamFailure(self.fail_with)

        self.issued.append(payload)
        code = f"MOCK-{next(self._codes):06d}"
        logger.info(f"Mock invoice accepted: {payload.get('orderNumber')} -> {code}")
        return code
