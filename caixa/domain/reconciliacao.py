"""
Cálculo de conferência do caixa do frentista.

O formulário de fechamento é um valor imutável: cada alteração de campo
gera um novo ``FormularioFechamento``. Os totais e a situação do caixa
são sempre derivados do formulário atual (``calcular`` /
``FormularioFechamento.resumo``), nunca armazenados à parte.

Fórmulas:
    total_cartao    = débito + crédito
    total_notas     = soma das notas a prazo + nota a prazo avulsa
    total_informado = total_cartao + total_notas + pix + dinheiro + moedas + baratão
    diferenca       = encerrante - total_informado

Situação (tolerância ε = 0.001, apenas ruído numérico):
    diferenca >  ε                          → FALTA
    diferenca < -ε                          → SOBRA
    |diferenca| <= ε e encerrante > 0       → BATEU
    caso contrário (encerrante não informado) → INDEFINIDO
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple

from caixa.config import DEFAULTS
from caixa.domain.dinheiro import arredonda, parse_valor
from caixa.domain.erros import EncerranteNaoInformado, TotalNaoInformado


class Situacao(str, Enum):
    FALTA = "FALTA"
    SOBRA = "SOBRA"
    BATEU = "BATEU"
    INDEFINIDO = "INDEFINIDO"


@dataclass(frozen=True)
class ItemNota:
    """Nota a prazo lançada para um cliente."""
    cliente_id: int
    cliente_nome: str
    valor: Decimal


@dataclass(frozen=True)
class Reconciliacao:
    encerrante: Decimal
    total_cartao: Decimal
    total_notas: Decimal
    total_informado: Decimal
    diferenca: Decimal
    situacao: Situacao

    @property
    def pode_enviar(self) -> bool:
        return self.total_informado > 0


@dataclass(frozen=True)
class DadosFechamento:
    """Entrada do envio de fechamento."""
    data: str                      # YYYY-MM-DD
    turno_id: int
    posto_id: int
    valor_cartao_debito: Decimal = Decimal("0.00")
    valor_cartao_credito: Decimal = Decimal("0.00")
    valor_nota: Decimal = Decimal("0.00")
    valor_pix: Decimal = Decimal("0.00")
    valor_dinheiro: Decimal = Decimal("0.00")
    valor_moedas: Decimal = Decimal("0.00")
    valor_baratao: Decimal = Decimal("0.00")
    valor_encerrante: Decimal = Decimal("0.00")
    diferenca: Decimal = Decimal("0.00")   # encerrante - total informado
    observacoes: str = ""
    frentista_id: Optional[int] = None
    notas: Tuple[ItemNota, ...] = ()

    @property
    def total_informado(self) -> Decimal:
        return arredonda(
            arredonda(self.valor_cartao_debito)
            + arredonda(self.valor_cartao_credito)
            + arredonda(self.valor_nota)
            + arredonda(self.valor_pix)
            + arredonda(self.valor_dinheiro)
            + arredonda(self.valor_moedas)
            + arredonda(self.valor_baratao)
        )


CAMPOS_VALOR = (
    "valor_encerrante",
    "valor_cartao_debito",
    "valor_cartao_credito",
    "valor_pix",
    "valor_dinheiro",
    "valor_moedas",
    "valor_baratao",
    "valor_nota_prazo",
)


@dataclass(frozen=True)
class FormularioFechamento:
    """Estado do formulário de fechamento (texto como digitado)."""
    valor_encerrante: str = ""
    valor_cartao_debito: str = ""
    valor_cartao_credito: str = ""
    valor_pix: str = ""
    valor_dinheiro: str = ""
    valor_moedas: str = ""
    valor_baratao: str = ""
    valor_nota_prazo: str = ""
    observacoes: str = ""
    notas: Tuple[ItemNota, ...] = field(default_factory=tuple)

    def com_campo(self, campo: str, valor: str) -> "FormularioFechamento":
        if campo != "observacoes" and campo not in CAMPOS_VALOR:
            raise KeyError(campo)
        return replace(self, **{campo: valor})

    def com_nota(self, item: ItemNota) -> "FormularioFechamento":
        return replace(self, notas=self.notas + (item,))

    def sem_nota(self, indice: int) -> "FormularioFechamento":
        return replace(self, notas=tuple(n for i, n in enumerate(self.notas) if i != indice))

    def limpo(self) -> "FormularioFechamento":
        return FormularioFechamento()

    @property
    def resumo(self) -> Reconciliacao:
        return calcular(self)

    def para_envio(
        self,
        data: str,
        turno_id: int,
        posto_id: int,
        frentista_id: Optional[int] = None,
    ) -> DadosFechamento:
        r = self.resumo
        return DadosFechamento(
            data=data,
            turno_id=turno_id,
            posto_id=posto_id,
            valor_cartao_debito=arredonda(parse_valor(self.valor_cartao_debito)),
            valor_cartao_credito=arredonda(parse_valor(self.valor_cartao_credito)),
            valor_nota=r.total_notas,
            valor_pix=arredonda(parse_valor(self.valor_pix)),
            valor_dinheiro=arredonda(parse_valor(self.valor_dinheiro)),
            valor_moedas=arredonda(parse_valor(self.valor_moedas)),
            valor_baratao=arredonda(parse_valor(self.valor_baratao)),
            valor_encerrante=r.encerrante,
            diferenca=r.diferenca,
            observacoes=self.observacoes,
            frentista_id=frentista_id,
            notas=self.notas,
        )


def classificar(
    diferenca: Decimal,
    encerrante: Decimal,
    tolerancia: Decimal = DEFAULTS.tolerancia,
) -> Situacao:
    if diferenca > tolerancia:
        return Situacao.FALTA
    if diferenca < -tolerancia:
        return Situacao.SOBRA
    if encerrante > 0:
        return Situacao.BATEU
    return Situacao.INDEFINIDO


def calcular(form: FormularioFechamento) -> Reconciliacao:
    """Deriva totais, diferença e situação a partir do formulário."""
    v = {c: arredonda(parse_valor(getattr(form, c))) for c in CAMPOS_VALOR}

    encerrante = v["valor_encerrante"]
    total_cartao = arredonda(v["valor_cartao_debito"] + v["valor_cartao_credito"])
    total_notas = arredonda(
        sum((arredonda(n.valor) for n in form.notas), Decimal("0")) + v["valor_nota_prazo"]
    )
    total_informado = arredonda(
        total_cartao
        + total_notas
        + v["valor_pix"]
        + v["valor_dinheiro"]
        + v["valor_moedas"]
        + v["valor_baratao"]
    )
    diferenca = arredonda(encerrante - total_informado)

    return Reconciliacao(
        encerrante=encerrante,
        total_cartao=total_cartao,
        total_notas=total_notas,
        total_informado=total_informado,
        diferenca=diferenca,
        situacao=classificar(diferenca, encerrante),
    )


def validar_envio(form: FormularioFechamento) -> Reconciliacao:
    """Valida o formulário antes do envio e devolve o resumo."""
    r = calcular(form)
    if r.encerrante == 0:
        raise EncerranteNaoInformado()
    if r.total_informado == 0:
        raise TotalNaoInformado()
    return r
