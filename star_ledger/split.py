from decimal import Decimal, ROUND_HALF_UP

from pydantic import BaseModel


STAR_VALUE_NGN = Decimal("500")
OWNER_SHARE = Decimal("0.60")
VIEWER_SHARE = Decimal("0.20")
PLATFORM_SHARE = Decimal("0.20")

MIN_STAR_PRICE = 0
MAX_STAR_PRICE = 5

_CENTS = Decimal("0.01")


class InvalidStarPriceError(ValueError):
    pass


class RevenueSplit(BaseModel):
    stars_spent: int
    total_ngn: Decimal
    owner_earn: Decimal
    viewer_earn: Decimal
    platform_earn: Decimal


def validate_star_price(star_price: int) -> int:
    if isinstance(star_price, bool) or not isinstance(star_price, int):
        raise InvalidStarPriceError(f"Star price must be an integer, got {star_price!r}")
    if not MIN_STAR_PRICE <= star_price <= MAX_STAR_PRICE:
        raise InvalidStarPriceError(
            f"Star price must be between {MIN_STAR_PRICE} and {MAX_STAR_PRICE}, got {star_price}"
        )
    return star_price


def compute_split(star_price: int) -> RevenueSplit:
    """Split the NGN value of ``star_price`` stars 60/20/20.

    The platform share is the remainder so the three parts always add up to
    the full value.
    """
    validate_star_price(star_price)
    total = (STAR_VALUE_NGN * star_price).quantize(_CENTS, rounding=ROUND_HALF_UP)
    owner_earn = (total * OWNER_SHARE).quantize(_CENTS, rounding=ROUND_HALF_UP)
    viewer_earn = (total * VIEWER_SHARE).quantize(_CENTS, rounding=ROUND_HALF_UP)
    platform_earn = total - owner_earn - viewer_earn

    return RevenueSplit(
        stars_spent=star_price,
        total_ngn=total,
        owner_earn=owner_earn,
        viewer_earn=viewer_earn,
        platform_earn=platform_earn,
    )
