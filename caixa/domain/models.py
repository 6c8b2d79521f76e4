# caixa/domain/models.py
"""
Modelos (dataclasses) do domínio.

Observação importante:
- Os repositórios aceitam dicionários; as dataclasses são a forma
  tipada que os casos de uso recebem de volta (via `from_row`).
- Valores monetários são sempre `Decimal` com 2 casas.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

from caixa.domain.dinheiro import arredonda


ROLE_ADMIN = "ADMIN"
STATUS_FECHADO = "FECHADO"


class _FromRow:
    """Construção a partir de `sqlite3.Row`/dict ignorando colunas extras."""

    @classmethod
    def from_row(cls, row: Optional[Mapping[str, Any]]):
        if row is None:
            return None
        data = dict(row)
        nomes = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in nomes})


@dataclass
class Identidade:
    """Identidade autenticada (vinda do provedor de login)."""
    user_id: str
    email: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Posto(_FromRow):
    id: int
    nome: str
    cnpj: Optional[str] = None
    endereco: Optional[str] = None
    cidade: Optional[str] = None
    estado: Optional[str] = None
    telefone: Optional[str] = None
    email: Optional[str] = None
    ativo: int = 1


@dataclass
class Usuario(_FromRow):
    """Perfil de usuário (tabela `usuario`)."""
    id: int
    nome: str
    email: str
    role: str = "FRENTISTA"
    posto_id: Optional[int] = None

    @property
    def is_admin(self) -> bool:
        return (self.role or "").upper() == ROLE_ADMIN


@dataclass
class Frentista(_FromRow):
    id: int
    nome: str
    posto_id: int
    cpf: Optional[str] = None
    telefone: Optional[str] = None
    data_admissao: Optional[str] = None
    ativo: int = 1
    user_id: Optional[str] = None


@dataclass
class Turno(_FromRow):
    id: int
    nome: str
    horario_inicio: str   # HH:MM
    horario_fim: str      # HH:MM (pode cruzar a meia-noite)
    ativo: Optional[int] = None  # None conta como ativo
    posto_id: Optional[int] = None


@dataclass
class Cliente(_FromRow):
    id: int
    nome: str
    documento: Optional[str] = None
    posto_id: Optional[int] = None
    ativo: int = 1
    bloqueado: int = 0


@dataclass
class Fechamento(_FromRow):
    """Fechamento geral de um (data, turno, posto)."""
    id: int
    data: str
    turno_id: int
    posto_id: int
    usuario_id: Optional[int] = None
    status: str = STATUS_FECHADO
    total_recebido: Decimal = Decimal("0.00")
    total_vendas: Decimal = Decimal("0.00")
    diferenca: Decimal = Decimal("0.00")
    observacoes: Optional[str] = None

    def __post_init__(self):
        self.total_recebido = arredonda(self.total_recebido)
        self.total_vendas = arredonda(self.total_vendas)
        self.diferenca = arredonda(self.diferenca)


# Campos de forma de pagamento somados em `valor_conferido`
CAMPOS_PAGAMENTO = (
    "valor_cartao_debito",
    "valor_cartao_credito",
    "valor_nota",
    "valor_pix",
    "valor_dinheiro",
    "valor_moedas",
    "valor_baratao",
)


@dataclass
class FechamentoFrentista(_FromRow):
    """Contribuição de um frentista para um fechamento."""
    id: int
    fechamento_id: int
    frentista_id: int
    valor_cartao_debito: Decimal = Decimal("0.00")
    valor_cartao_credito: Decimal = Decimal("0.00")
    valor_nota: Decimal = Decimal("0.00")
    valor_pix: Decimal = Decimal("0.00")
    valor_dinheiro: Decimal = Decimal("0.00")
    valor_moedas: Decimal = Decimal("0.00")
    valor_baratao: Decimal = Decimal("0.00")
    valor_conferido: Decimal = Decimal("0.00")
    encerrante: Decimal = Decimal("0.00")
    diferenca_calculada: Decimal = Decimal("0.00")
    observacoes: Optional[str] = None
    posto_id: Optional[int] = None

    def __post_init__(self):
        for nome in CAMPOS_PAGAMENTO + ("valor_conferido", "encerrante", "diferenca_calculada"):
            setattr(self, nome, arredonda(getattr(self, nome)))

    @property
    def total_pagamentos(self) -> Decimal:
        return arredonda(sum((getattr(self, c) for c in CAMPOS_PAGAMENTO), Decimal("0")))


@dataclass
class NotaPrazo(_FromRow):
    id: int
    cliente_id: int
    frentista_id: int
    data: str
    valor: Decimal
    posto_id: int
    fechamento_id: int
    criado_em: str

    def __post_init__(self):
        self.valor = arredonda(self.valor)


@dataclass
class Produto(_FromRow):
    id: int
    nome: str
    preco_venda: Decimal
    estoque_atual: float = 0.0
    categoria: Optional[str] = None
    ativo: int = 1
    posto_id: Optional[int] = None

    def __post_init__(self):
        self.preco_venda = arredonda(self.preco_venda)


@dataclass
class VendaProduto(_FromRow):
    id: int
    frentista_id: int
    produto_id: int
    quantidade: float
    valor_unitario: Decimal
    valor_total: Decimal
    data: str
    posto_id: Optional[int] = None
    produto_nome: Optional[str] = None

    def __post_init__(self):
        self.valor_unitario = arredonda(self.valor_unitario)
        self.valor_total = arredonda(self.valor_total)
