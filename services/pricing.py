import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Mapping

EARTH_RADIUS_KM = 6371


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in kilometres, rounded to one decimal place."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return round_half_up(EARTH_RADIUS_KM * c)


def distance_between(
    buyer_lat: float | None, buyer_lng: float | None, seller_lat: float | None, seller_lng: float | None
) -> float | None:
    """Best-effort distance; None when either side has no coordinates."""
    if None in (buyer_lat, buyer_lng, seller_lat, seller_lng):
        return None
    return haversine_km(buyer_lat, buyer_lng, seller_lat, seller_lng)


def _to_decimal(value: float | int | str | Decimal | None) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def line_total(item: Mapping[str, Any], pax: int = 1, per_pax: bool = False) -> Decimal:
    total = _to_decimal(item.get("price")) * _to_decimal(item.get("quantity") or 1)
    if per_pax:
        total *= _to_decimal(pax)
    return total


def items_total(items: Iterable[Mapping[str, Any]], pax: int = 1, per_pax: bool = False) -> Decimal:
    """Sum of price x quantity, multiplied by pax for catering orders."""
    return sum((line_total(item, pax, per_pax) for item in items), Decimal("0"))


def round_half_up(value: float, places: int = 1) -> float:
    """Round with ties going up (4.25 -> 4.3), unlike the built-in ``round``."""
    step = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(step, rounding=ROUND_HALF_UP))
