"""
Utilidades de parsing e formatação de valores monetários.

Este módulo interpreta o texto livre digitado pelo frentista nos campos
de valor (por exemplo, "R$ 1.234,56", "1234.5" ou "12,") e o converte em
``Decimal``. Também reformata progressivamente a entrada enquanto o
usuário digita, agrupando milhares com ponto e mantendo a parte decimal
como foi digitada.

Regras do separador decimal:
    - texto com prefixo ``R$``: vírgula é o decimal e pontos agrupam milhar;
    - vírgula e ponto presentes: o que aparece por último é o decimal;
    - uma única vírgula: é o decimal; várias vírgulas agrupam milhar;
    - apenas um ponto seguido de no máximo 2 dígitos: ponto é decimal;
    - demais casos: pontos são separadores de milhar.
"""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional, Tuple

_PREFIXO_RE = re.compile(r"^\s*R?\$\s*", re.IGNORECASE)
_LIMPA_RE = re.compile(r"[^\d.,]")
_NAO_DIGITO_RE = re.compile(r"\D")

DUAS_CASAS = Decimal("0.01")
ZERO = Decimal("0.00")


def arredonda(valor: Any) -> Decimal:
    """Arredonda para 2 casas (meio para longe do zero).

    Floats passam por ``str()`` antes da conversão, de modo que resíduos
    binários (``19.999999999999998``) não vazam para a exibição. A função
    é idempotente: ``arredonda(arredonda(x)) == arredonda(x)``.

    Args:
        valor: ``Decimal``, ``int``, ``float``, texto numérico ou ``None``.

    Returns:
        ``Decimal`` quantizado em 2 casas; ``0.00`` para ``None`` ou valores
        não numéricos.
    """
    if valor is None:
        return ZERO
    try:
        d = valor if isinstance(valor, Decimal) else Decimal(str(valor))
    except (InvalidOperation, ValueError):
        return ZERO
    if not d.is_finite():
        return ZERO
    return d.quantize(DUAS_CASAS, rounding=ROUND_HALF_UP)


def _partes(texto: Any) -> Tuple[str, Optional[str]]:
    """Separa ``texto`` em (dígitos inteiros, dígitos decimais ou None)."""
    s = str(texto)
    formatado = _PREFIXO_RE.match(s) is not None
    s = _LIMPA_RE.sub("", _PREFIXO_RE.sub("", s).strip())

    if formatado:
        # saída de formata_entrada: ponto sempre agrupa milhar
        sep = "," if "," in s else None
    elif "," in s and "." in s:
        sep = "," if s.rfind(",") > s.rfind(".") else "."
    elif "," in s:
        sep = "," if s.count(",") == 1 else None
    elif s.count(".") == 1 and len(s.split(".", 1)[1]) <= 2:
        sep = "."
    else:
        sep = None

    if sep is None:
        return _NAO_DIGITO_RE.sub("", s), None
    inteiro, _, decimal = s.partition(sep)
    return _NAO_DIGITO_RE.sub("", inteiro), _NAO_DIGITO_RE.sub("", decimal)


def parse_valor(texto: Any) -> Decimal:
    """Interpreta um valor monetário digitado.

    Exemplos:
        "R$ 1.234,56" → Decimal("1234.56")
        "1234.5"      → Decimal("1234.5")
        "1.234"       → Decimal("1234")
        ""            → Decimal("0")

    Nunca lança exceção: entradas vazias ou ilegíveis retornam zero.
    """
    if texto is None:
        return Decimal("0")
    try:
        inteiro, decimal = _partes(texto)
        if not inteiro and not decimal:
            return Decimal("0")
        return Decimal(f"{inteiro or '0'}.{decimal or '0'}")
    except (InvalidOperation, ValueError):
        return Decimal("0")


def _agrupa_milhar(digitos: str) -> str:
    return f"{int(digitos):,}".replace(",", ".")


def formata_entrada(texto: Optional[str]) -> str:
    """Reformata a entrada parcial de um campo de valor.

    - prefixo ``"R$ "``;
    - parte inteira sem zeros à esquerda e agrupada a cada 3 dígitos;
    - após digitar o separador decimal, os decimais são repassados
      como estão (sem completar com ``,00``).

    Exemplos:
        "12345"    → "R$ 12.345"
        "R$ 12,"   → "R$ 12,"
        "0005,5"   → "R$ 5,5"
        "R$ 1.23"  → "R$ 123"   (apagou o último dígito de "R$ 1.234")
    """
    if not texto:
        return ""
    inteiro, decimal = _partes(texto)
    if not inteiro and decimal is None:
        return ""
    inteiro_fmt = _agrupa_milhar(inteiro) if inteiro else "0"
    if decimal is not None:
        return f"R$ {inteiro_fmt},{decimal}"
    return f"R$ {inteiro_fmt}"


def formata_moeda(valor: Any) -> str:
    """Formata um valor como moeda brasileira (``R$ 1.234,56``)."""
    v = arredonda(valor)
    return f"R$ {v:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
