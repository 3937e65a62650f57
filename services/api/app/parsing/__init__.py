from .formula import Formula, FormulaSyntaxError, FormulaEvaluationError, parse_formula

__all__ = ["Formula", "FormulaSyntaxError", "FormulaEvaluationError", "parse_formula"]
