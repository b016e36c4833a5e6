"""Stay validation, night counting and price computation."""

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from booka.exceptions import ValidationError

CENT = Decimal("0.01")


@dataclass(frozen=True)
class StayQuote:
    """Price of a validated stay."""

    check_in: date
    check_out: date
    nights: int
    price_per_night: Decimal
    total_price: Decimal


def parse_iso_date(value: date | str, field: str = "date") -> date:
    """Return ``value`` as a ``date``, accepting ``YYYY-MM-DD`` strings."""
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a valid date in YYYY-MM-DD format") from None


def validate_stay(check_in: date | str, check_out: date | str) -> tuple[date, date]:
    """Parse both ends of a stay and require ``check_out`` after ``check_in``."""
    start = parse_iso_date(check_in, "check_in")
    end = parse_iso_date(check_out, "check_out")
    if end <= start:
        raise ValidationError("check_out must be after check_in")
    return start, end


def count_nights(check_in: date, check_out: date) -> int:
    """Whole nights between two dates. Callers validate the range first."""
    return (check_out - check_in).days


def compute_total(nights: int, price_per_night: Decimal) -> Decimal:
    """``nights * price_per_night`` rounded half-up to cents."""
    return (Decimal(nights) * Decimal(price_per_night)).quantize(CENT, rounding=ROUND_HALF_UP)


def quote_stay(check_in: date | str, check_out: date | str, price_per_night: Decimal) -> StayQuote:
    """Validate a stay and price it.

    Raises:
        ValidationError: If a date is malformed or ``check_out <= check_in``.
    """
    start, end = validate_stay(check_in, check_out)
    nights = count_nights(start, end)
    return StayQuote(
        check_in=start,
        check_out=end,
        nights=nights,
        price_per_night=Decimal(price_per_night),
        total_price=compute_total(nights, price_per_night),
    )
