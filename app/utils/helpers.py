"""
Helper utility functions
"""
from bson import ObjectId
from typing import Any, Dict, List, Optional
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
import secrets
import string
import time
import pytz

from app.config.settings import settings

DISPLAY_TZ = pytz.timezone(settings.DISPLAY_TIMEZONE)

_ID_ALPHABET = string.ascii_uppercase + string.digits


def serialize_doc(doc: Dict) -> Dict:
    """Convert MongoDB document to JSON-serializable format"""
    if doc is None:
        return None

    if "_id" in doc and isinstance(doc["_id"], ObjectId):
        doc["_id"] = str(doc["_id"])

    # Convert any nested ObjectIds or datetimes
    for key, value in doc.items():
        if isinstance(value, ObjectId):
            doc[key] = str(value)
        elif isinstance(value, datetime):
            if value.tzinfo is None:
                value = pytz.utc.localize(value)
            doc[key] = value.astimezone(DISPLAY_TZ).isoformat()
        elif isinstance(value, list):
            doc[key] = [serialize_doc(item) if isinstance(item, dict) else item for item in value]
        elif isinstance(value, dict):
            doc[key] = serialize_doc(value)

    return doc


def serialize_docs(docs: List[Dict]) -> List[Dict]:
    """Convert list of MongoDB documents to JSON-serializable format"""
    return [serialize_doc(doc) for doc in docs]


def round_currency(value: Any) -> float:
    """Round a money amount to 2 decimals, half-up"""
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def generate_payment_id(prefix: Optional[str] = None) -> str:
    """
    Generate a payment ID: PREFIX-<epoch millis>-<9 random chars>.
    Millisecond timestamp plus ~46 bits of randomness; the unique index on
    paymentId rejects the (negligible) collision case.
    """
    prefix = prefix or settings.PAYMENT_ID_PREFIX
    random_part = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"{prefix}-{int(time.time() * 1000)}-{random_part}"


def generate_reference(prefix: str) -> str:
    return f"{prefix}_{int(time.time() * 1000)}_{secrets.token_hex(6)}"


def paginate(page: int, limit: int) -> tuple[int, int]:
    """Clamp page/limit query values and return (skip, limit)"""
    limit = max(1, min(limit or settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE))
    page = max(1, page or 1)
    return (page - 1) * limit, limit
