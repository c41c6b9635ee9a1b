"""
Utility functions for the application.
"""
from typing import Any, Dict, Iterable
from decimal import Decimal, ROUND_HALF_UP

CENTS = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """Convert a JSON number to Decimal without inheriting binary float noise."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value: Decimal) -> Decimal:
    """Round half away from zero to 2 decimal places."""
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def money_to_float(value: Decimal) -> float:
    """Round for output and convert to a JSON-friendly float."""
    return float(round_money(value))


def normalize_code(code: str) -> str:
    """Share codes are case-insensitive and stored uppercase."""
    return code.strip().upper()


def format_money(currency: str, amount: float) -> str:
    return f"{currency}{amount:.2f}"


def format_breakdown(currency: str, totals: Iterable[Any], grand_total: float) -> str:
    """
    Build the plain-text breakdown people paste into group chats.

    ``totals`` are PersonTotal-shaped objects.
    """
    lines = []
    for t in totals:
        lines.append(
            f"{t.person.name}: {format_money(currency, t.total)} "
            f"(Subtotal: {format_money(currency, t.subtotal)} + "
            f"Service: {format_money(currency, t.service)} + "
            f"Tip: {format_money(currency, t.tip)})"
        )
    breakdown = "\n".join(lines)
    return f"Bill Split\n\n{breakdown}\n\nGrand Total: {format_money(currency, grand_total)}"


def format_error(message: str, details: Any = None) -> Dict[str, Any]:
    """Format error response."""
    response = {"error": message}
    if details:
        response["details"] = details
    return response
