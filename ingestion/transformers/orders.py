"""
Stripe Checkout Session -> stripe_orders
"""

from typing import Any, Dict, Optional
from ingestion.transformers.normalizer import hash_email, parse_datetime, to_int, to_str
from schemas.records import StripeOrderRecord
from core.exceptions import NormalizationError


def _first_price(session: Dict[str, Any]) -> Dict[str, Any]:
    line_items = (session.get("line_items") or {}).get("data") or []
    if not line_items:
        return {}
    return line_items[0].get("price") or {}


def _product_id(price: Dict[str, Any]) -> Optional[str]:
    product = price.get("product")
    # expanded product objects carry their id
    if isinstance(product, dict):
        return to_str(product.get("id"))
    return to_str(product)


def normalize_stripe_session(session: Dict[str, Any]) -> StripeOrderRecord:
    """
    Field defaults:
    - amount: amount_total, 0 when absent
    - currency: lower-cased, "eur" when absent
    - status: payment_status, "unknown" when absent
    - customer_email_hash, product_id, price_id, fbp, fbc, ttclid, country: None when absent
    - checkout_metadata: {} when absent
    """
    created_at = parse_datetime(session.get("created"))
    if not session.get("id") or created_at is None:
        raise NormalizationError(
            "Checkout session without id or created timestamp",
            context={"source": "stripe", "record_id": session.get("id")}
        )

    details = session.get("customer_details") or {}
    address = details.get("address") or {}
    meta = session.get("metadata") or {}
    price = _first_price(session)

    return StripeOrderRecord(
        id=str(session["id"]),
        created_at=created_at,
        amount=to_int(session.get("amount_total")),
        currency=(session.get("currency") or "eur").lower(),
        status=session.get("payment_status") or "unknown",
        customer_email_hash=hash_email(details.get("email")),
        checkout_session_id=str(session["id"]),
        product_id=_product_id(price),
        price_id=to_str(price.get("id")),
        fbp=to_str(meta.get("fbp")),
        fbc=to_str(meta.get("fbc")),
        ttclid=to_str(meta.get("ttclid")),
        country=to_str(address.get("country")),
        checkout_metadata=dict(meta),
        raw=session,
    )
