"""
Electronic invoice payload.

Prices on orders include IGV. The provider wants the tax-exclusive unit
value next to the tax-inclusive price:

    unitValue = round2(price / igv_factor)
    lineTotal = quantity * price
"""
from decimal import Decimal
from typing import Any, Dict

from orderdesk.domain.entities import Order
from orderdesk.domain.exceptions import InvalidArgument
from orderdesk.domain.value_objects import round2, to_decimal
from orderdesk.utils.datetime import to_iso

DEFAULT_IGV_FACTOR = Decimal("1.18")

# Businesses (RUC) get a factura, individuals a boleta
FACTURA = "factura"
BOLETA = "boleta"


def build_invoice_payload(order: Order, igv_factor: Any = DEFAULT_IGV_FACTOR) -> Dict[str, Any]:
    """
    Build the provider payload from an order.

    Raises:
        InvalidArgument: the client has no tax id or the factor is not > 1
    """
    factor = to_decimal(igv_factor)
    if factor <= 1:
        raise InvalidArgument(f"IGV factor must be greater than 1, got: {factor}")

    tax_id = (order.client.tax_id or "").strip()
    if not tax_id:
        raise InvalidArgument(f"Order {order.order_number} has no client tax id")

    lines = []
    total = Decimal("0.00")
    for item in order.items:
        price = item.unit_price
        line_total = round2(price * item.quantity)
        total += line_total
        lines.append({
            "description": item.name,
            "quantity": item.quantity,
            "unitValue": str(round2(price / factor)),
            "unitPrice": str(price),
            "lineTotal": str(line_total),
        })

    taxable = round2(total / factor)

    return {
        "orderId": order.id,
        "orderNumber": order.order_number.value,
        "documentType": FACTURA if len(tax_id) == 11 else BOLETA,
        "issueDate": to_iso(order.created_at),
        "currency": order.total.currency,
        "client": {
            "taxId": tax_id,
            "name": order.client.name,
            "address": order.client.address or order.delivery_address,
        },
        "items": lines,
        "totals": {
            "taxable": str(taxable),
            "igv": str(total - taxable),
            "total": str(total),
        },
        "notes": order.notes,
    }
