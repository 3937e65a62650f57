"""
Formula catalog: categories, their units, and optional conversion formulas.

The catalog is built once from a JSON document shaped like::

    {
      "length": {"units": {"meter": 1, "kilometer": 0.001}},
      "temperature": {
        "units": {"celsius": "C", "fahrenheit": "F"},
        "formula": {"C_to_F": "value * 9/5 + 32", "F_to_C": "(value - 32) * 5/9"}
      }
    }

Numeric unit values are ratios against the category base. String unit values
are role tags substituted into formula keys. A Catalog is never mutated after
load, so one instance can be shared freely.
"""

import json
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Optional, Union

from ..parsing import FormulaSyntaxError, parse_formula
from ..settings import settings
from .errors import CatalogError, NoConversionPath, UnknownCategory, UnknownUnit

logger = logging.getLogger("unitconv.catalog")

BUNDLED_CATALOG = Path(__file__).resolve().parent.parent / "data" / "formula.json"


# --- Types ---

@dataclass(frozen=True)
class RatioUnit:
    name: str
    ratio: float


@dataclass(frozen=True)
class RoleUnit:
    name: str
    role: str


UnitDef = Union[RatioUnit, RoleUnit]


@dataclass(frozen=True)
class CategoryDef:
    name: str
    units: Mapping[str, UnitDef]
    formulas: Mapping[str, str] = field(default_factory=dict)

    @property
    def uses_roles(self) -> bool:
        return any(isinstance(u, RoleUnit) for u in self.units.values())

    @property
    def has_formulas(self) -> bool:
        return bool(self.formulas)


def formula_key(from_part: str, to_part: str) -> str:
    return f"{from_part}_to_{to_part}"


class Catalog:
    """Read-only lookups over the parsed catalog document."""

    def __init__(self, categories: Mapping[str, CategoryDef]):
        self._categories = MappingProxyType(dict(categories))

    def __contains__(self, category: object) -> bool:
        return category in self._categories

    def __iter__(self) -> Iterator[str]:
        return iter(self._categories)

    def __len__(self) -> int:
        return len(self._categories)

    def has_category(self, category: str) -> bool:
        return category in self._categories

    def list_categories(self) -> List[str]:
        return list(self._categories)

    def get_category(self, category: str) -> CategoryDef:
        try:
            return self._categories[category]
        except KeyError:
            raise UnknownCategory(category) from None

    def list_units(self, category: str) -> List[str]:
        return list(self.get_category(category).units)

    def get_unit(self, category: str, unit: str) -> UnitDef:
        cat = self.get_category(category)
        try:
            return cat.units[unit]
        except KeyError:
            raise UnknownUnit(category, unit) from None

    def get_unit_ratio(self, category: str, unit: str) -> float:
        unit_def = self.get_unit(category, unit)
        if isinstance(unit_def, RoleUnit):
            raise NoConversionPath(
                f"Unit '{unit}' in '{category}' is formula based and has no ratio"
            )
        return unit_def.ratio

    def get_formula(self, category: str, key: str) -> Optional[str]:
        return self.get_category(category).formulas.get(key)


# --- Loading ---

def _load_unit(category: str, name: str, raw) -> UnitDef:
    # bool is an int subclass; a true/false ratio is a data error
    if isinstance(raw, bool):
        raise CatalogError(f"{category}.units.{name}: expected a number or role tag, got {raw!r}")
    if isinstance(raw, (int, float)):
        ratio = float(raw)
        if not math.isfinite(ratio) or ratio == 0:
            raise CatalogError(f"{category}.units.{name}: ratio must be finite and non-zero")
        return RatioUnit(name, ratio)
    if isinstance(raw, str) and raw.strip():
        return RoleUnit(name, raw.strip())
    raise CatalogError(f"{category}.units.{name}: expected a number or role tag, got {raw!r}")


def _load_category(name: str, raw) -> CategoryDef:
    if not isinstance(raw, dict):
        raise CatalogError(f"{name}: category must be an object")

    raw_units = raw.get("units")
    if not isinstance(raw_units, dict) or not raw_units:
        raise CatalogError(f"{name}: 'units' must be a non-empty object")

    units: Dict[str, UnitDef] = {
        unit_name: _load_unit(name, unit_name, value) for unit_name, value in raw_units.items()
    }
    kinds = {type(u) for u in units.values()}
    if len(kinds) > 1:
        raise CatalogError(f"{name}: units mix ratios and role tags")

    raw_formulas = raw.get("formula") or {}
    if not isinstance(raw_formulas, dict):
        raise CatalogError(f"{name}: 'formula' must be an object")

    formulas: Dict[str, str] = {}
    for key, expression in raw_formulas.items():
        if not isinstance(expression, str):
            raise CatalogError(f"{name}.formula.{key}: expression must be a string")
        formulas[key] = expression
        # Bad formulas still load; the engine reports them when selected.
        try:
            parse_formula(expression)
        except FormulaSyntaxError as e:
            logger.warning(f"Formula {name}.{key} will not evaluate: {e}")

    return CategoryDef(
        name=name,
        units=MappingProxyType(units),
        formulas=MappingProxyType(formulas),
    )


def load_catalog(document: Mapping) -> Catalog:
    """Build a Catalog from an already parsed document."""
    if not isinstance(document, Mapping):
        raise CatalogError("Catalog document must be an object keyed by category")
    categories = {
        name: _load_category(name, raw) for name, raw in document.items()
    }
    logger.info(f"Loaded catalog with {len(categories)} categories")
    return Catalog(categories)


def load_catalog_file(path: Union[str, Path]) -> Catalog:
    path = Path(path)
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise CatalogError(f"{path}: invalid JSON ({e})") from e
    return load_catalog(document)


_default_catalog: Optional[Catalog] = None


def get_default_catalog() -> Catalog:
    """Return the process-wide catalog (loads on first use)."""
    global _default_catalog
    if _default_catalog is None:
        _default_catalog = load_catalog_file(settings.catalog_path or BUNDLED_CATALOG)
    return _default_catalog
