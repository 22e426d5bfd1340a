"""Brazilian tax identifiers: CPF (individuals) and CNPJ (companies).

Thin layer over *validate-docbr*, shared by the DTOs, the serializers and
the service layer:

- ``clean``: keep digits only (``None`` / ``""`` pass through).
- ``is_valid_cpf`` / ``is_valid_cnpj``: length and repeated-digit checks,
  then the Receita Federal check digits via ``validate_docbr``.
- ``format_cpf`` / ``format_cnpj``: canonical display masks.

A single repeated digit (``00000000000``, ``11111111111`` ...) is always
rejected before the checksum runs: several of those sequences satisfy
the check digits.
"""

from __future__ import annotations

import re
from typing import Optional

from validate_docbr import CNPJ, CPF

CPF_LENGTH = 11
CNPJ_LENGTH = 14

_NON_DIGITS = re.compile(r"[^0-9]")

_cpf = CPF()
_cnpj = CNPJ()


def clean(raw: Optional[str]) -> Optional[str]:
    """Strip every non-digit character.  Never raises."""
    if not raw:
        return raw
    return _NON_DIGITS.sub("", raw)


def _is_repeated_sequence(digits: str) -> bool:
    return len(set(digits)) == 1


def is_valid_cpf(raw: Optional[str]) -> bool:
    """Return ``True`` if *raw* (formatted or not) is a valid CPF."""
    cpf = clean(raw)
    if not cpf or len(cpf) != CPF_LENGTH:
        return False
    if _is_repeated_sequence(cpf):
        return False
    return _cpf.validate(cpf)


def is_valid_cnpj(raw: Optional[str]) -> bool:
    """Return ``True`` if *raw* (formatted or not) is a valid CNPJ."""
    cnpj = clean(raw)
    if not cnpj or len(cnpj) != CNPJ_LENGTH:
        return False
    if _is_repeated_sequence(cnpj):
        return False
    return _cnpj.validate(cnpj)


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


def format_cpf(cpf: Optional[str]) -> Optional[str]:
    """``52998224725`` -> ``529.982.247-25``; other lengths returned as-is."""
    if cpf is None or len(cpf) != CPF_LENGTH:
        return cpf
    return _cpf.mask(cpf)


def format_cnpj(cnpj: Optional[str]) -> Optional[str]:
    """``11222333000181`` -> ``11.222.333/0001-81``; other lengths as-is."""
    if cnpj is None or len(cnpj) != CNPJ_LENGTH:
        return cnpj
    return _cnpj.mask(cnpj)
