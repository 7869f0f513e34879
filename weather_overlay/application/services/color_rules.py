"""Color rule evaluation."""

import math
import operator
import re
from typing import Callable, Sequence

from weather_overlay.domain.entities import DEFAULT_COLOR, ColorRule, SecondaryClause
from weather_overlay.domain.enums import SECONDARY_OPS, ComparisonOp
from weather_overlay.domain.errors import InvalidColorRuleError
from weather_overlay.domain.types import ColorRuleDict

_HEX_COLOR = re.compile(r"^#?([0-9A-Fa-f]{6})$")

# Operator mapping
_COMPARATORS: dict[ComparisonOp, Callable[[float, float], bool]] = {
    ComparisonOp.EQ: operator.eq,
    ComparisonOp.LT: operator.lt,
    ComparisonOp.LE: operator.le,
    ComparisonOp.GT: operator.gt,
    ComparisonOp.GE: operator.ge,
}

_OPERATOR_ALIASES = {"==": ComparisonOp.EQ}


def color_for(
    rules: Sequence[ColorRule],
    value: float | None,
    default: str = DEFAULT_COLOR,
) -> str:
    """Color of the first rule matching value, else default."""
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return default

    for rule in rules:
        if matches(rule, value):
            return rule.color
    return default


def matches(rule: ColorRule, value: float) -> bool:
    """Whether value satisfies the rule's primary and secondary clauses."""
    if not _COMPARATORS[rule.operator](value, rule.threshold):
        return False
    if rule.secondary is not None:
        return _COMPARATORS[rule.secondary.operator](value, rule.secondary.threshold)
    return True


def parse_operator(raw: str | ComparisonOp) -> ComparisonOp:
    """Parse operator string, accepting '==' as an alias for '='."""
    if isinstance(raw, ComparisonOp):
        return raw
    raw = str(raw).strip()
    if raw in _OPERATOR_ALIASES:
        return _OPERATOR_ALIASES[raw]
    try:
        return ComparisonOp(raw)
    except ValueError:
        raise InvalidColorRuleError(f"Invalid operator: {raw!r}")


def normalize_color(raw: str) -> str:
    """Normalize a 6-hex-digit color to '#rrggbb'."""
    match = _HEX_COLOR.match(str(raw).strip()) if raw is not None else None
    if not match:
        raise InvalidColorRuleError(f"Invalid color format {raw!r}. Use hex format (#RRGGBB)")
    return f"#{match.group(1).lower()}"


def build_rule(record: ColorRuleDict) -> ColorRule:
    """Build a validated rule from a configuration record."""
    try:
        threshold = float(record["value"])
    except (KeyError, TypeError, ValueError):
        raise InvalidColorRuleError("Value must be a valid number")

    secondary = None
    operator2 = record.get("operator2")
    if operator2:
        value2 = record.get("value2")
        try:
            threshold2 = float(value2)
        except (TypeError, ValueError):
            raise InvalidColorRuleError("Second value must be a valid number when using compound rules")
        secondary = SecondaryClause(parse_operator(operator2), threshold2)

    rule = ColorRule(
        operator=parse_operator(record.get("operator", "")),
        threshold=threshold,
        color=normalize_color(record.get("color")),
        secondary=secondary,
    )
    ensure_valid_rules([rule])
    return rule


def rule_to_record(rule: ColorRule) -> ColorRuleDict:
    """Inverse of build_rule."""
    record: ColorRuleDict = {
        "operator": rule.operator.value,
        "value": rule.threshold,
        "color": rule.color,
    }
    if rule.secondary is not None:
        record["operator2"] = rule.secondary.operator.value
        record["value2"] = rule.secondary.threshold
    return record


def validate_rule(rule: ColorRule) -> list[str]:
    """Return validation errors for a rule (empty when valid)."""
    errors: list[str] = []

    if not _HEX_COLOR.match(rule.color or ""):
        errors.append("Invalid color format. Use hex format (#RRGGBB)")
    if not _is_finite(rule.threshold):
        errors.append("Value must be a valid number")

    if rule.secondary is not None:
        if rule.secondary.operator not in SECONDARY_OPS:
            errors.append("Invalid second operator")
        elif not _is_finite(rule.secondary.threshold):
            errors.append("Second value must be a valid number when using compound rules")
        elif _is_finite(rule.threshold) and _interval_is_empty(rule):
            errors.append(
                f"Invalid range: '{describe_rule(rule)}' can never match",
            )
    return errors


def ensure_valid_rules(rules: Sequence[ColorRule]) -> None:
    """Raise InvalidColorRuleError for the first invalid rule."""
    for index, rule in enumerate(rules):
        errors = validate_rule(rule)
        if errors:
            raise InvalidColorRuleError(f"Rule {index}: {'; '.join(errors)}")


def describe_rule(rule: ColorRule) -> str:
    """Human-readable condition, e.g. '>= 0 and < 15'."""
    text = f"{rule.operator.value} {rule.threshold:g}"
    if rule.secondary is not None:
        text += f" and {rule.secondary.operator.value} {rule.secondary.threshold:g}"
    return text


def contrast_color(background: str) -> str:
    """Black or white text color for legibility on background."""
    match = _HEX_COLOR.match(background or "")
    if not match:
        return "#ffffff"
    hex_digits = match.group(1)
    r, g, b = (int(hex_digits[i : i + 2], 16) for i in (0, 2, 4))
    luminance = (0.299 * r + 0.587 * g + 0.114 * b) / 255
    return "#000000" if luminance > 0.5 else "#ffffff"


def _is_finite(value: object) -> bool:
    return isinstance(value, (int, float)) and math.isfinite(value)


def _bound(op: ComparisonOp, threshold: float) -> tuple[float, bool, float, bool]:
    """Interval (low, low_inclusive, high, high_inclusive) accepted by op."""
    if op is ComparisonOp.EQ:
        return threshold, True, threshold, True
    if op is ComparisonOp.LT:
        return -math.inf, False, threshold, False
    if op is ComparisonOp.LE:
        return -math.inf, False, threshold, True
    if op is ComparisonOp.GT:
        return threshold, False, math.inf, False
    return threshold, True, math.inf, False


def _interval_is_empty(rule: ColorRule) -> bool:
    lo1, lo1_inc, hi1, hi1_inc = _bound(rule.operator, rule.threshold)
    lo2, lo2_inc, hi2, hi2_inc = _bound(rule.secondary.operator, rule.secondary.threshold)

    if lo1 > lo2 or (lo1 == lo2 and not lo1_inc):
        lo, lo_inc = lo1, lo1_inc
    else:
        lo, lo_inc = lo2, lo2_inc
    if hi1 < hi2 or (hi1 == hi2 and not hi1_inc):
        hi, hi_inc = hi1, hi1_inc
    else:
        hi, hi_inc = hi2, hi2_inc

    if lo > hi:
        return True
    return lo == hi and not (lo_inc and hi_inc)
