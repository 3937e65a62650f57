"""
Unit Conversion Engine.

Resolves a conversion request against the formula catalog using, in order:
role formula, direct formula, reverse formula, then unit ratios. Results are
rounded UP to 4 decimal places.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Literal, Optional, Tuple, Union

from ..parsing import FormulaEvaluationError, FormulaSyntaxError, parse_formula
from .catalog import Catalog, CategoryDef, RoleUnit, formula_key
from .errors import InvalidRequest, MalformedFormula, NoConversionPath

# --- Types ---

Strategy = Literal["role_formula", "direct_formula", "reverse_formula", "ratio"]
RawValue = Union[str, int, float]

ROUNDING_SCALE = 10_000


@dataclass(frozen=True)
class ConversionResult:
    category: str
    from_unit: str
    to_unit: str
    input_value: float
    output_value: float
    strategy: Strategy
    computed_at: datetime

    def to_dict(self):
        return {
            "category": self.category,
            "from_unit": self.from_unit,
            "to_unit": self.to_unit,
            "input_value": self.input_value,
            "output_value": self.output_value,
            "strategy": self.strategy,
            "computed_at": self.computed_at.isoformat(),
        }


# --- Helpers ---

def parse_value(raw_value: Optional[RawValue]) -> float:
    """Parse user input into a finite float."""
    if raw_value is None or isinstance(raw_value, bool):
        raise InvalidRequest("A numeric value is required")

    if isinstance(raw_value, str):
        text = raw_value.strip()
        if not text:
            raise InvalidRequest("A numeric value is required")
        try:
            value = float(text)
        except ValueError:
            raise InvalidRequest(f"'{raw_value}' is not a number") from None
    elif isinstance(raw_value, (int, float)):
        value = float(raw_value)
    else:
        raise InvalidRequest(f"'{raw_value}' is not a number")

    if not math.isfinite(value):
        raise InvalidRequest(f"'{raw_value}' is not a finite number")
    return value


def round_up(result: float) -> float:
    """Ceiling to 4 decimals. Negative values move toward zero."""
    scaled = result * ROUNDING_SCALE
    if not math.isfinite(scaled):
        # already integral at this magnitude
        return result
    return math.ceil(scaled) / ROUNDING_SCALE


def evaluate_formula(key: str, expression: str, value: float) -> float:
    try:
        return parse_formula(expression).evaluate(value)
    except (FormulaSyntaxError, FormulaEvaluationError) as e:
        raise MalformedFormula(key, str(e)) from e


def _resolve_roles(cat: CategoryDef, from_unit: str, to_unit: str, value: float) -> Tuple[float, Strategy]:
    from_def: RoleUnit = cat.units[from_unit]
    to_def: RoleUnit = cat.units[to_unit]

    # No ratio or reverse fallback: these relationships are affine
    key = formula_key(from_def.role, to_def.role)
    expression = cat.formulas.get(key)
    if expression is None:
        raise NoConversionPath(f"No formula '{key}' in '{cat.name}' for {from_unit} -> {to_unit}")
    return evaluate_formula(key, expression, value), "role_formula"


def _resolve_linear(catalog: Catalog, cat: CategoryDef, from_unit: str, to_unit: str, value: float) -> Tuple[float, Strategy]:
    if cat.has_formulas:
        direct_key = formula_key(from_unit, to_unit)
        direct = cat.formulas.get(direct_key)
        if direct is not None:
            return evaluate_formula(direct_key, direct, value), "direct_formula"

        # Only valid for purely multiplicative formulas: f(1) is taken as the scale.
        reverse_key = formula_key(to_unit, from_unit)
        reverse = cat.formulas.get(reverse_key)
        if reverse is not None:
            factor = evaluate_formula(reverse_key, reverse, 1)
            if factor == 0:
                raise MalformedFormula(reverse_key, "evaluates to zero at 1, cannot invert")
            return value / factor, "reverse_formula"

    from_ratio = catalog.get_unit_ratio(cat.name, from_unit)
    to_ratio = catalog.get_unit_ratio(cat.name, to_unit)
    return value * (to_ratio / from_ratio), "ratio"


# --- Core Functions ---

def convert(
    catalog: Catalog,
    category: Optional[str],
    from_unit: Optional[str],
    to_unit: Optional[str],
    raw_value: Optional[RawValue],
    now: Optional[datetime] = None,
) -> ConversionResult:
    """
    Convert ``raw_value`` from ``from_unit`` to ``to_unit`` within ``category``.

    Raises a ConversionError subclass:
    - InvalidRequest: missing field or non-numeric value
    - UnknownCategory / UnknownUnit: lookup against the catalog failed
    - NoConversionPath: role-based category without a matching formula
    - MalformedFormula: selected formula is not evaluable arithmetic
    """
    # 1. Validate everything before dispatch
    for field_name, field_value in (("category", category), ("from_unit", from_unit), ("to_unit", to_unit)):
        if not isinstance(field_value, str) or not field_value:
            raise InvalidRequest(f"'{field_name}' is required")

    cat = catalog.get_category(category)
    catalog.get_unit(category, from_unit)
    catalog.get_unit(category, to_unit)
    value = parse_value(raw_value)

    # 2. Pick strategy and evaluate
    if cat.uses_roles:
        raw_result, strategy = _resolve_roles(cat, from_unit, to_unit, value)
    else:
        raw_result, strategy = _resolve_linear(catalog, cat, from_unit, to_unit, value)

    if not math.isfinite(raw_result):
        raise InvalidRequest(f"'{raw_value}' converts to a value out of range")

    # 3. Round and package
    return ConversionResult(
        category=category,
        from_unit=from_unit,
        to_unit=to_unit,
        input_value=value,
        output_value=round_up(raw_result),
        strategy=strategy,
        computed_at=now or datetime.now(timezone.utc),
    )
