import json
import logging

import pytest

from app.services.catalog import (
    BUNDLED_CATALOG, RatioUnit, RoleUnit, load_catalog, load_catalog_file,
)
from app.services.errors import (
    CatalogError, InvalidRequest, NoConversionPath, UnknownCategory, UnknownUnit,
)


def test_categories_keep_declared_order(catalog):
    assert catalog.list_categories() == ["length", "temperature", "speed", "broken"]
    assert len(catalog) == 4
    assert "length" in catalog
    assert "volume" not in catalog
    assert catalog.has_category("speed")
    assert list(catalog) == catalog.list_categories()


def test_units_keep_declared_order(catalog):
    assert catalog.list_units("length") == ["meter", "kilometer", "foot", "inch"]


def test_unknown_category(catalog):
    with pytest.raises(UnknownCategory) as exc:
        catalog.list_units("volume")
    assert exc.value.kind == "unknown_category"
    # unknown category is also an invalid request
    assert isinstance(exc.value, InvalidRequest)


def test_unit_ratio(catalog):
    assert catalog.get_unit_ratio("length", "foot") == 3.28084
    assert catalog.get_unit("length", "meter") == RatioUnit("meter", 1.0)


def test_unknown_unit(catalog):
    with pytest.raises(UnknownUnit) as exc:
        catalog.get_unit_ratio("length", "furlong")
    assert exc.value.unit == "furlong"
    assert exc.value.kind == "unknown_unit"


def test_role_units_have_no_ratio(catalog):
    assert catalog.get_unit("temperature", "celsius") == RoleUnit("celsius", "C")
    with pytest.raises(NoConversionPath):
        catalog.get_unit_ratio("temperature", "celsius")


def test_get_formula(catalog):
    assert catalog.get_formula("temperature", "C_to_F") == "value * 9/5 + 32"
    assert catalog.get_formula("temperature", "F_to_K") is None
    assert catalog.get_formula("length", "meter_to_foot") is None
    with pytest.raises(UnknownCategory):
        catalog.get_formula("nope", "a_to_b")


def test_category_kinds(catalog):
    assert catalog.get_category("temperature").uses_roles is True
    assert catalog.get_category("length").uses_roles is False
    assert catalog.get_category("length").has_formulas is False
    assert catalog.get_category("speed").has_formulas is True


def test_catalog_is_read_only(catalog):
    cat = catalog.get_category("length")
    with pytest.raises(TypeError):
        cat.units["parsec"] = RatioUnit("parsec", 3.24e-17)
    with pytest.raises(TypeError):
        cat.formulas["meter_to_foot"] = "value * 3"


def test_malformed_formula_loads_with_warning(caplog):
    doc = {"odd": {"units": {"a": 1, "b": 2}, "formula": {"a_to_b": "value * rate"}}}
    with caplog.at_level(logging.WARNING, logger="unitconv.catalog"):
        catalog = load_catalog(doc)
    assert catalog.get_formula("odd", "a_to_b") == "value * rate"
    assert "odd.a_to_b" in caplog.text


@pytest.mark.parametrize("document", [
    [],
    {"length": []},
    {"length": {}},
    {"length": {"units": {}}},
    {"length": {"units": {"meter": 1, "celsius": "C"}}},
    {"length": {"units": {"meter": 0}}},
    {"length": {"units": {"meter": True}}},
    {"length": {"units": {"meter": None}}},
    {"length": {"units": {"meter": "  "}}},
    {"length": {"units": {"meter": 1}, "formula": ["meter_to_meter"]}},
    {"length": {"units": {"meter": 1}, "formula": {"meter_to_meter": 1}}},
])
def test_rejects_malformed_documents(document):
    with pytest.raises(CatalogError):
        load_catalog(document)


def test_missing_formula_section_is_allowed():
    catalog = load_catalog({"mass": {"units": {"kilogram": 1, "gram": 1000}, "formula": None}})
    assert catalog.get_category("mass").has_formulas is False


def test_load_from_file(tmp_path):
    path = tmp_path / "formula.json"
    path.write_text(json.dumps({"mass": {"units": {"kilogram": 1, "gram": 1000}}}), encoding="utf-8")
    catalog = load_catalog_file(path)
    assert catalog.list_units("mass") == ["kilogram", "gram"]


def test_load_invalid_json(tmp_path):
    path = tmp_path / "formula.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(CatalogError):
        load_catalog_file(path)


def test_bundled_catalog():
    catalog = load_catalog_file(BUNDLED_CATALOG)
    assert catalog.list_categories()[0] == "length"
    assert catalog.get_category("temperature").uses_roles is True
    assert "foot" in catalog.list_units("length")


def test_deeply_nested_formula_loads_with_warning(caplog):
    deep = "(" * 3000 + "value" + ")" * 3000
    doc = {"x": {"units": {"a": 1, "b": 2}, "formula": {"a_to_b": deep}}}
    with caplog.at_level(logging.WARNING, logger="unitconv.catalog"):
        catalog = load_catalog(doc)
    assert catalog.get_formula("x", "a_to_b") == deep
    assert "x.a_to_b" in caplog.text
