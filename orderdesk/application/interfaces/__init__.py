"""Application layer interfaces."""
from abc import ABC, abstractmethod
from typing import Any, Dict


class IInvoicingClient(ABC):
    """
    Interface for the electronic invoicing provider.

    The application layer builds the payload; the provider accepts or
    rejects it.
    """

    @abstractmethod
    async def issue_invoice(self, payload: Dict[str, Any]) -> str:
        """
        Submit an invoice payload.

        Args:
            payload: Normalized invoice payload (client tax id, lines, totals)

        Returns:
            Provider acceptance code

        Raises:
            UpstreamFailure: provider unreachable or payload rejected
        """
        pass


class IDocumentLookupClient(ABC):
    """
    Interface for RUC / DNI identity lookups.

    Fallback strategy across government sources is the adapter's concern.
    """

    @abstractmethod
    async def lookup(self, doc_type: str, number: str) -> Dict[str, Any]:
        """
        Look up an identity document.

        Args:
            doc_type: "ruc" or "dni"
            number: Document number, digits only

        Returns:
            Raw identity fields as returned by the provider

        Raises:
            NotFound: document does not exist
            UpstreamFailure: provider unreachable or erroring
        """
        pass
