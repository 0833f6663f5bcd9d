"""Pure alert rules: condition evaluation, threshold crossing and cooldown.

None of these functions touch the database or the network, and none of them
raise on bad input: an operator they do not understand simply does not fire.
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

from app.core.config import settings
from app.models.alert import AlertOperator

OperatorLike = Union[AlertOperator, str]


def _normalize_operator(operator: OperatorLike) -> Optional[AlertOperator]:
    if isinstance(operator, AlertOperator):
        return operator
    try:
        return AlertOperator(str(operator))
    except ValueError:
        return None


def _reaches(change: float, threshold: float) -> bool:
    # Rebuilt prices can land a rounding step below the threshold
    return change >= threshold or math.isclose(change, threshold, rel_tol=1e-9)


def evaluate_condition(
    operator: OperatorLike,
    threshold: float,
    current_value: float,
    reference_value: Optional[float] = None,
) -> bool:
    """Check whether an alert condition holds for the current value.

    `above` and `below` are strict comparisons, so a value equal to the
    threshold never fires. Percent thresholds are percentages (10 means 10%).

    Without a `reference_value` the percent operators rebuild a prior price
    from the current price and the threshold itself, which makes them a
    single-sample approximation rather than a real change measurement.
    """
    op = _normalize_operator(operator)
    if op is None:
        return False

    try:
        threshold = float(threshold)
        current_value = float(current_value)

        if op == AlertOperator.ABOVE:
            return current_value > threshold

        if op == AlertOperator.BELOW:
            return current_value < threshold

        if op == AlertOperator.PERCENT_INCREASE:
            previous_price = (
                float(reference_value)
                if reference_value is not None
                else current_value / (1 + threshold / 100)
            )
            change = (current_value - previous_price) / previous_price * 100
            return _reaches(change, threshold)

        if op == AlertOperator.PERCENT_DECREASE:
            base_price = (
                float(reference_value)
                if reference_value is not None
                else current_value / (1 - threshold / 100)
            )
            change = (base_price - current_value) / base_price * 100
            return _reaches(change, threshold)

    except (ArithmeticError, TypeError, ValueError):
        return False

    return False


def has_crossed(
    operator: OperatorLike,
    threshold: float,
    previous_value: Optional[float],
    current_value: float,
) -> bool:
    """Check whether a value moved across the threshold between two observations.

    With no previous observation the first one counts as a crossing, so a
    fresh portfolio alert can fire once.
    """
    if previous_value is None:
        return True

    op = _normalize_operator(operator)
    if op == AlertOperator.ABOVE:
        return previous_value <= threshold and current_value > threshold
    if op == AlertOperator.BELOW:
        return previous_value >= threshold and current_value < threshold

    # Percent operators are not defined for portfolio alerts
    return False


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_within_cooldown(
    last_triggered: Optional[datetime],
    now: Optional[datetime] = None,
    cooldown_minutes: Optional[int] = None,
) -> bool:
    """True while `now - last_triggered` is shorter than the cooldown window."""
    if last_triggered is None:
        return False

    if now is None:
        now = datetime.now(timezone.utc)
    if cooldown_minutes is None:
        cooldown_minutes = settings.ALERT_COOLDOWN_MINUTES

    elapsed = _as_utc(now) - _as_utc(last_triggered)
    return elapsed < timedelta(minutes=cooldown_minutes)
