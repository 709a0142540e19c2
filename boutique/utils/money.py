# module boutique.utils.money
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

CENT = Decimal("0.01")

def to_decimal(value: Any) -> Decimal:
    """
    Convertit une valeur lue en base (str|int|float|Decimal|None) en Decimal exact.
    - Passe par str() pour éviter l'imprécision binaire des floats renvoyés par PostgREST.
    - Retourne Decimal("0") si la valeur est absente ou illisible.
    """
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal("0")

def format_amount(value: Decimal) -> str:
    """Sérialise un montant en chaîne à deux décimales ('99.97'), format stocké en base."""
    return str(to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP))

def to_minor_units(value: Decimal) -> int:
    """Montant en plus petite unité monétaire (centimes) pour Stripe."""
    return int((to_decimal(value) * 100).to_integral_value(rounding=ROUND_HALF_UP))
