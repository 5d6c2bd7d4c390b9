"""
Helper utilities
"""
import uuid
from decimal import Decimal
from typing import Optional


def generate_id() -> str:
    """Unique string id for new entities"""
    return uuid.uuid4().hex


def decimal_to_float(value: Optional[Decimal]) -> Optional[float]:
    """JSON-friendly float for Numeric columns"""
    return float(value) if value is not None else None
