"""Masking helpers for personal data bound to log events (LGPD).

The structlog ``mask_sensitive_data`` processor is the last line of
defence; services call these helpers explicitly so log events stay
useful (last digits) without exposing the full identifier.
"""

from __future__ import annotations

from typing import Optional

from modules.customers.tax_ids import CNPJ_LENGTH, CPF_LENGTH, clean


def mask_cpf(cpf: Optional[str]) -> Optional[str]:
    """``52998224725`` -> ``***.***.247-25``."""
    if not cpf or not cpf.strip():
        return None
    digits = clean(cpf)
    if len(digits) != CPF_LENGTH:
        return "***INVALID_CPF***"
    return f"***.***.{digits[6:9]}-{digits[9:]}"


def mask_cnpj(cnpj: Optional[str]) -> Optional[str]:
    """``11222333000181`` -> ``**.***.***/****-81``."""
    if not cnpj or not cnpj.strip():
        return None
    digits = clean(cnpj)
    if len(digits) != CNPJ_LENGTH:
        return "***INVALID_CNPJ***"
    return f"**.***.***/****-{digits[12:]}"


def mask_email(email: Optional[str]) -> Optional[str]:
    """Keep the first two characters of the local part."""
    if not email or not email.strip():
        return None
    if "@" not in email:
        return "***INVALID_EMAIL***"
    local, domain = email.split("@", 1)
    if len(local) <= 2:
        return f"***@{domain}"
    return f"{local[:2]}***@{domain}"
