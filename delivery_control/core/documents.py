"""
Helpers for Brazilian company/person document numbers (CPF/CNPJ).
"""
import re
from typing import Any, Optional

_NON_DIGITS = re.compile(r"[^0-9]")


def clean_document(document: Optional[str]) -> str:
    """Strip every non-digit character: '12.345.678/0001-90' -> '12345678000190'."""
    if not document:
        return ""
    return _NON_DIGITS.sub("", document)


def document_value(raw: Any) -> str:
    """
    Platforms send the document either as a plain string or as an object
    like {"type": "cnpj", "value": "..."}; collapse both to a string.
    """
    if raw is None:
        return ""
    if isinstance(raw, str):
        return raw
    if isinstance(raw, dict):
        value = raw.get("value")
        return value if isinstance(value, str) else ""
    raise ValueError("cpf_cnpj must be a string or an object")
