"""Points calculation.

Pure and deterministic: the same inputs always give the same points, so the
pipeline, force-match and the preview endpoint share this one function.
"""

import enum
from dataclasses import dataclass
from decimal import ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP, Decimal


class RoundingMode(str, enum.Enum):
    FLOOR = "floor"
    CEIL = "ceil"
    ROUND = "round"

    @classmethod
    def parse(cls, value: "str | RoundingMode | None") -> "RoundingMode":
        """Parse a stored setting value; unknown values fall back to floor."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.FLOOR


_DECIMAL_ROUNDING = {
    RoundingMode.FLOOR: ROUND_FLOOR,
    RoundingMode.CEIL: ROUND_CEILING,
    # Half-up, not banker's rounding: round(15.50) == 16.
    RoundingMode.ROUND: ROUND_HALF_UP,
}


@dataclass(frozen=True)
class PointsCalculation:
    eligible_amount: Decimal
    ratio: Decimal
    raw_points: Decimal
    points: int
    rounding: RoundingMode
    below_threshold: bool = False


def _dec(value: Decimal | float | int | str) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def calculate_points(
    eligible_amount: Decimal | float | int | str,
    ratio: Decimal | float | int | str = Decimal("1"),
    min_eligible_amount: Decimal | float | int | str = Decimal("0"),
    rounding: RoundingMode | str = RoundingMode.FLOOR,
) -> PointsCalculation:
    """Convert an eligible amount into integer points.

    Args:
        eligible_amount: Sum of matched line amounts
        ratio: Points per currency unit
        min_eligible_amount: Amounts strictly below this earn nothing
        rounding: floor, ceil or round (half-up)

    Returns:
        PointsCalculation with the raw and rounded values

    Example:
        >>> calculate_points(Decimal("15.99"), 1, 0, "floor").points
        15
    """
    eligible = _dec(eligible_amount)
    ratio_dec = _dec(ratio)
    mode = RoundingMode.parse(rounding)

    if eligible < _dec(min_eligible_amount):
        return PointsCalculation(
            eligible_amount=eligible,
            ratio=ratio_dec,
            raw_points=Decimal("0"),
            points=0,
            rounding=mode,
            below_threshold=True,
        )

    raw = eligible * ratio_dec
    points = int(raw.to_integral_value(rounding=_DECIMAL_ROUNDING[mode]))
    return PointsCalculation(
        eligible_amount=eligible,
        ratio=ratio_dec,
        raw_points=raw,
        points=max(points, 0),
        rounding=mode,
    )
