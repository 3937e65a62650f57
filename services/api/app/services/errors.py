"""
Error taxonomy for catalog lookups and conversions.

Each error carries a stable ``kind`` string so callers can choose a message
without matching on class names.
"""


class ConversionError(Exception):
    kind = "conversion_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {"kind": self.kind, "message": self.message}


class InvalidRequest(ConversionError):
    """Missing field, unparseable value, or unit outside the category."""
    kind = "invalid_request"


class UnknownCategory(InvalidRequest):
    kind = "unknown_category"

    def __init__(self, category: str):
        super().__init__(f"Unknown category '{category}'")
        self.category = category


class UnknownUnit(InvalidRequest):
    kind = "unknown_unit"

    def __init__(self, category: str, unit: str):
        super().__init__(f"Unknown unit '{unit}' in category '{category}'")
        self.category = category
        self.unit = unit


class NoConversionPath(ConversionError):
    """No formula connects the two units and no fallback is permitted."""
    kind = "no_conversion_path"


class MalformedFormula(ConversionError):
    """A catalog formula is not evaluable as arithmetic over ``value``."""
    kind = "malformed_formula"

    def __init__(self, formula_key: str, reason: str):
        super().__init__(f"Formula '{formula_key}' is malformed: {reason}")
        self.formula_key = formula_key
        self.reason = reason


class CatalogError(ValueError):
    """The catalog document does not match the expected structure."""
