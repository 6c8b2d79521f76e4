# caixa/infra/repositories.py
"""
Repositórios (DAO) para acesso e manipulação de dados no SQLite.

Classes:
- ParamsRepo
- PostoRepo
- UsuarioRepo
- FrentistaRepo
- TurnoRepo
- ClienteRepo
- FechamentoRepo
- FechamentoFrentistaRepo
- NotaPrazoRepo
- CaixaRepo
- ProdutoRepo
- VendaProdutoRepo

Consultas por posto retornam lista vazia quando `posto_id` é None.
"""

from __future__ import annotations

from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .db import connect
from caixa.domain.dinheiro import arredonda
from caixa.domain.erros import EstoqueInsuficiente
from caixa.domain.models import (
    CAMPOS_PAGAMENTO,
    STATUS_FECHADO,
    Cliente,
    Fechamento,
    FechamentoFrentista,
    Frentista,
    NotaPrazo,
    Posto,
    Produto,
    Turno,
    Usuario,
    VendaProduto,
)


# -------------------------
# Helpers
# -------------------------

def _as_dict(row: Any) -> Dict[str, Any]:
    if isinstance(row, dict):
        return dict(row)
    if is_dataclass(row):
        return asdict(row)
    raise TypeError("row must be dict or dataclass")


def _db_value(v: Any) -> Any:
    """Decimal vira REAL com 2 casas; o resto passa direto."""
    if isinstance(v, Decimal):
        return float(arredonda(v))
    return v


def _prepare(row: Dict[str, Any]) -> Dict[str, Any]:
    return {k: _db_value(v) for k, v in row.items()}


def _insert(c, table: str, row: Dict[str, Any]) -> int:
    row = _prepare(row)
    cols = ",".join(row.keys())
    vals = ",".join(f":{k}" for k in row.keys())
    cur = c.execute(f"INSERT INTO {table} ({cols}) VALUES ({vals})", row)
    return int(cur.lastrowid)


def _update(c, table: str, row_id: int, patch: Dict[str, Any], allowed: Iterable[str]) -> int:
    patch = {k: v for k, v in _prepare(patch).items() if k in set(allowed)}
    if not patch:
        return 0
    sets = ",".join(f"{k} = :{k}" for k in patch.keys())
    cur = c.execute(f"UPDATE {table} SET {sets} WHERE id = :_id", {**patch, "_id": row_id})
    return cur.rowcount


def _recalcula_totais(
    c,
    fechamento_id: int,
    total_vendas_manual: Decimal = Decimal("0"),
    observacoes: Optional[str] = None,
) -> Fechamento:
    cols = ", ".join(CAMPOS_PAGAMENTO)
    rows = c.execute(
        f"SELECT {cols} FROM fechamento_frentista WHERE fechamento_id = ?",
        (fechamento_id,),
    ).fetchall()
    total_recebido = arredonda(
        sum((arredonda(r[k]) for r in rows for k in CAMPOS_PAGAMENTO), Decimal("0"))
    )

    atual = c.execute(
        "SELECT total_vendas FROM fechamento WHERE id = ?", (fechamento_id,)
    ).fetchone()
    manual = arredonda(total_vendas_manual)
    total_vendas = manual if manual != 0 else arredonda(atual["total_vendas"] if atual else 0)
    diferenca = arredonda(total_recebido - total_vendas)

    c.execute(
        """
        UPDATE fechamento SET
            total_recebido = ?,
            total_vendas = ?,
            diferenca = ?,
            status = ?,
            observacoes = COALESCE(?, observacoes)
        WHERE id = ?
        """,
        (
            float(total_recebido), float(total_vendas), float(diferenca),
            STATUS_FECHADO, observacoes, fechamento_id,
        ),
    )
    return Fechamento.from_row(
        c.execute("SELECT * FROM fechamento WHERE id = ?", (fechamento_id,)).fetchone()
    )


# -------------------------
# Params
# -------------------------

class ParamsRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def set_many(self, items: Iterable[Tuple[str, str]]) -> None:
        with connect(self.db_path) as c:
            c.executemany(
                """
                INSERT INTO params (chave, valor)
                VALUES (?, ?)
                ON CONFLICT(chave) DO UPDATE SET valor=excluded.valor
                """,
                list(items),
            )

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        with connect(self.db_path) as c:
            row = c.execute("SELECT valor FROM params WHERE chave = ?", (key,)).fetchone()
            return row[0] if row else default

    def get_int(self, key: str, default: Optional[int] = None) -> Optional[int]:
        v = self.get(key, None)
        if v is None:
            return default
        try:
            return int(v)
        except ValueError:
            return default

    def get_float(self, key: str, default: float) -> float:
        v = self.get(key, None)
        if v is None:
            return default
        try:
            return float(v)
        except ValueError:
            return default


# -------------------------
# Posto
# -------------------------

class PostoRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def create(self, row: Dict[str, Any]) -> Posto:
        with connect(self.db_path) as c:
            new_id = _insert(c, "posto", _as_dict(row))
            return Posto.from_row(c.execute("SELECT * FROM posto WHERE id = ?", (new_id,)).fetchone())

    def get_all(self) -> List[Posto]:
        with connect(self.db_path) as c:
            rows = c.execute("SELECT * FROM posto WHERE ativo = 1 ORDER BY nome").fetchall()
            return [Posto.from_row(r) for r in rows]

    def get_by_id(self, posto_id: int) -> Optional[Posto]:
        with connect(self.db_path) as c:
            return Posto.from_row(c.execute("SELECT * FROM posto WHERE id = ?", (posto_id,)).fetchone())


# -------------------------
# Usuário (perfil)
# -------------------------

class UsuarioRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def create(self, row: Dict[str, Any]) -> Usuario:
        with connect(self.db_path) as c:
            new_id = _insert(c, "usuario", _as_dict(row))
            return Usuario.from_row(c.execute("SELECT * FROM usuario WHERE id = ?", (new_id,)).fetchone())

    def get_by_email(self, email: str) -> Optional[Usuario]:
        if not email:
            return None
        with connect(self.db_path) as c:
            row = c.execute(
                "SELECT * FROM usuario WHERE lower(email) = lower(?)", (email,)
            ).fetchone()
            return Usuario.from_row(row)

    def get_admin(self) -> Optional[Usuario]:
        with connect(self.db_path) as c:
            row = c.execute(
                "SELECT * FROM usuario WHERE upper(role) = 'ADMIN' ORDER BY id LIMIT 1"
            ).fetchone()
            return Usuario.from_row(row)

    def get_first(self) -> Optional[Usuario]:
        with connect(self.db_path) as c:
            return Usuario.from_row(c.execute("SELECT * FROM usuario ORDER BY id LIMIT 1").fetchone())


# -------------------------
# Frentista
# -------------------------

class FrentistaRepo:
    CAMPOS_EDITAVEIS = ("nome", "cpf", "telefone", "data_admissao", "ativo", "user_id", "posto_id")

    def __init__(self, db_path: str):
        self.db_path = db_path

    def create(self, row: Dict[str, Any]) -> Frentista:
        row = _as_dict(row)
        row.setdefault("ativo", 1)
        with connect(self.db_path) as c:
            new_id = _insert(c, "frentista", row)
            return Frentista.from_row(c.execute("SELECT * FROM frentista WHERE id = ?", (new_id,)).fetchone())

    def get_by_id(self, frentista_id: int) -> Optional[Frentista]:
        with connect(self.db_path) as c:
            return Frentista.from_row(
                c.execute("SELECT * FROM frentista WHERE id = ?", (frentista_id,)).fetchone()
            )

    def get_by_user_id(
        self,
        user_id: str,
        posto_id: Optional[int] = None,
        apenas_ativos: bool = True,
    ) -> Optional[Frentista]:
        if not user_id:
            return None
        sql = "SELECT * FROM frentista WHERE user_id = ?"
        params: List[Any] = [user_id]
        if posto_id is not None:
            sql += " AND posto_id = ?"
            params.append(posto_id)
        if apenas_ativos:
            sql += " AND ativo = 1"
        sql += " ORDER BY ativo DESC, id LIMIT 1"
        with connect(self.db_path) as c:
            return Frentista.from_row(c.execute(sql, params).fetchone())

    def get_all_by_posto(self, posto_id: Optional[int]) -> List[Frentista]:
        if posto_id is None:
            return []
        with connect(self.db_path) as c:
            rows = c.execute(
                "SELECT * FROM frentista WHERE posto_id = ? AND ativo = 1 ORDER BY nome",
                (posto_id,),
            ).fetchall()
            return [Frentista.from_row(r) for r in rows]

    def update(self, frentista_id: int, patch: Dict[str, Any]) -> Optional[Frentista]:
        with connect(self.db_path) as c:
            _update(c, "frentista", frentista_id, patch, self.CAMPOS_EDITAVEIS)
            return Frentista.from_row(
                c.execute("SELECT * FROM frentista WHERE id = ?", (frentista_id,)).fetchone()
            )


# -------------------------
# Turno
# -------------------------

class TurnoRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def create(self, row: Dict[str, Any]) -> Turno:
        with connect(self.db_path) as c:
            new_id = _insert(c, "turno", _as_dict(row))
            return Turno.from_row(c.execute("SELECT * FROM turno WHERE id = ?", (new_id,)).fetchone())

    def get_all(self, posto_id: Optional[int] = None) -> List[Turno]:
        sql = "SELECT * FROM turno"
        params: List[Any] = []
        if posto_id is not None:
            sql += " WHERE posto_id = ?"
            params.append(posto_id)
        sql += " ORDER BY horario_inicio, id"
        with connect(self.db_path) as c:
            return [Turno.from_row(r) for r in c.execute(sql, params).fetchall()]

    def get_by_id(self, turno_id: int) -> Optional[Turno]:
        with connect(self.db_path) as c:
            return Turno.from_row(c.execute("SELECT * FROM turno WHERE id = ?", (turno_id,)).fetchone())


# -------------------------
# Cliente
# -------------------------

class ClienteRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def create(self, row: Dict[str, Any]) -> Cliente:
        with connect(self.db_path) as c:
            new_id = _insert(c, "cliente", _as_dict(row))
            return Cliente.from_row(c.execute("SELECT * FROM cliente WHERE id = ?", (new_id,)).fetchone())

    def get_by_id(self, cliente_id: int) -> Optional[Cliente]:
        with connect(self.db_path) as c:
            return Cliente.from_row(c.execute("SELECT * FROM cliente WHERE id = ?", (cliente_id,)).fetchone())

    def get_all(self, posto_id: Optional[int] = None) -> List[Cliente]:
        """Clientes ativos (bloqueados incluídos; o chamador checa `bloqueado`)."""
        sql = "SELECT * FROM cliente WHERE ativo = 1"
        params: List[Any] = []
        if posto_id is not None:
            sql += " AND posto_id = ?"
            params.append(posto_id)
        sql += " ORDER BY nome"
        with connect(self.db_path) as c:
            return [Cliente.from_row(r) for r in c.execute(sql, params).fetchall()]

    def search(self, texto: str, posto_id: Optional[int] = None, limit: int = 20) -> List[Cliente]:
        sql = "SELECT * FROM cliente WHERE ativo = 1 AND nome LIKE ?"
        params: List[Any] = [f"%{texto}%"]
        if posto_id is not None:
            sql += " AND posto_id = ?"
            params.append(posto_id)
        sql += " ORDER BY nome LIMIT ?"
        params.append(limit)
        with connect(self.db_path) as c:
            return [Cliente.from_row(r) for r in c.execute(sql, params).fetchall()]


# -------------------------
# Fechamento (geral)
# -------------------------

class FechamentoRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def get_by_id(self, fechamento_id: int) -> Optional[Fechamento]:
        with connect(self.db_path) as c:
            return Fechamento.from_row(
                c.execute("SELECT * FROM fechamento WHERE id = ?", (fechamento_id,)).fetchone()
            )

    def get_by_chave(self, data: str, turno_id: int, posto_id: int) -> Optional[Fechamento]:
        with connect(self.db_path) as c:
            row = c.execute(
                "SELECT * FROM fechamento WHERE data = ? AND turno_id = ? AND posto_id = ?",
                (data, turno_id, posto_id),
            ).fetchone()
            return Fechamento.from_row(row)

    def get_or_create(
        self,
        data: str,
        turno_id: int,
        usuario_id: Optional[int],
        total_recebido: Decimal = Decimal("0"),
        total_vendas: Decimal = Decimal("0"),
        posto_id: Optional[int] = None,
    ) -> Tuple[Fechamento, bool]:
        """Busca o fechamento de (data, turno, posto) ou cria um novo.

        Um fechamento existente é reaproveitado sem alterar data, turno
        ou autor. Na criação, os totais vêm do primeiro envio.

        Returns:
            (fechamento, criado)
        """
        recebido = arredonda(total_recebido)
        vendas = arredonda(total_vendas)
        with connect(self.db_path) as c:
            cur = c.execute(
                """
                INSERT INTO fechamento
                    (data, turno_id, posto_id, usuario_id, status,
                     total_recebido, total_vendas, diferenca)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(data, turno_id, posto_id) DO NOTHING
                """,
                (
                    data, turno_id, posto_id, usuario_id, STATUS_FECHADO,
                    float(recebido), float(vendas), float(arredonda(recebido - vendas)),
                ),
            )
            criado = cur.rowcount == 1
            row = c.execute(
                "SELECT * FROM fechamento WHERE data = ? AND turno_id = ? AND posto_id = ?",
                (data, turno_id, posto_id),
            ).fetchone()
            return Fechamento.from_row(row), criado

    def recompute_and_persist(
        self,
        fechamento_id: int,
        total_vendas_manual: Decimal = Decimal("0"),
        observacoes: Optional[str] = None,
    ) -> Fechamento:
        """Recalcula os totais a partir de TODOS os envios do fechamento.

        - total_recebido: soma das formas de pagamento de todos os frentistas
        - total_vendas: substituído apenas se `total_vendas_manual` != 0
        - diferenca: total_recebido - total_vendas
        - observacoes: mantidas quando None
        """
        with connect(self.db_path) as c:
            return _recalcula_totais(c, fechamento_id, total_vendas_manual, observacoes)


# -------------------------
# Fechamento por frentista
# -------------------------

class FechamentoFrentistaRepo:
    CAMPOS_EDITAVEIS = CAMPOS_PAGAMENTO + (
        "valor_conferido", "encerrante", "diferenca_calculada", "observacoes",
    )

    def __init__(self, db_path: str):
        self.db_path = db_path

    def create(self, row: Dict[str, Any]) -> FechamentoFrentista:
        """Insere o envio. Duplicidade (fechamento, frentista) levanta IntegrityError."""
        with connect(self.db_path) as c:
            new_id = _insert(c, "fechamento_frentista", _as_dict(row))
            return FechamentoFrentista.from_row(
                c.execute("SELECT * FROM fechamento_frentista WHERE id = ?", (new_id,)).fetchone()
            )

    def update(self, linha_id: int, fields: Dict[str, Any]) -> Optional[FechamentoFrentista]:
        with connect(self.db_path) as c:
            _update(c, "fechamento_frentista", linha_id, fields, self.CAMPOS_EDITAVEIS)
            return FechamentoFrentista.from_row(
                c.execute("SELECT * FROM fechamento_frentista WHERE id = ?", (linha_id,)).fetchone()
            )

    def get_existing_id(self, fechamento_id: int, frentista_id: int) -> Optional[int]:
        with connect(self.db_path) as c:
            row = c.execute(
                "SELECT id FROM fechamento_frentista WHERE fechamento_id = ? AND frentista_id = ?",
                (fechamento_id, frentista_id),
            ).fetchone()
            return int(row[0]) if row else None

    def list_by_fechamento(self, fechamento_id: int) -> List[FechamentoFrentista]:
        with connect(self.db_path) as c:
            rows = c.execute(
                "SELECT * FROM fechamento_frentista WHERE fechamento_id = ? ORDER BY id",
                (fechamento_id,),
            ).fetchall()
            return [FechamentoFrentista.from_row(r) for r in rows]

    def delete_com_notas(self, linha_id: int) -> Tuple[int, Optional[Fechamento]]:
        """Remove a linha, as notas a prazo do mesmo frentista no fechamento
        e recalcula os totais, tudo numa única transação.

        Returns:
            (notas removidas, fechamento recalculado); (0, None) se a linha não existe.
        """
        with connect(self.db_path) as c:
            linha = c.execute(
                "SELECT fechamento_id, frentista_id FROM fechamento_frentista WHERE id = ?",
                (linha_id,),
            ).fetchone()
            if linha is None:
                return 0, None
            notas = c.execute(
                "DELETE FROM nota_prazo WHERE fechamento_id = ? AND frentista_id = ?",
                (linha["fechamento_id"], linha["frentista_id"]),
            ).rowcount
            c.execute("DELETE FROM fechamento_frentista WHERE id = ?", (linha_id,))
            return notas, _recalcula_totais(c, linha["fechamento_id"])

    def frentistas_que_fecharam(self, data: str, turno_id: int, posto_id: Optional[int]) -> List[int]:
        if posto_id is None or not turno_id:
            return []
        with connect(self.db_path) as c:
            rows = c.execute(
                """
                SELECT ff.frentista_id
                FROM fechamento_frentista ff
                JOIN fechamento f ON f.id = ff.fechamento_id
                WHERE f.data = ? AND f.turno_id = ? AND ff.posto_id = ?
                ORDER BY ff.id
                """,
                (data, turno_id, posto_id),
            ).fetchall()
            return [int(r[0]) for r in rows]

    def get_historico(self, frentista_id: int, posto_id: int, limit: int = 10) -> List[Dict[str, Any]]:
        """Envios do frentista (mais recentes primeiro) com data e nome do turno."""
        with connect(self.db_path) as c:
            rows = c.execute(
                """
                SELECT ff.*, f.data AS data, t.nome AS turno
                FROM fechamento_frentista ff
                JOIN fechamento f ON f.id = ff.fechamento_id
                LEFT JOIN turno t ON t.id = f.turno_id
                WHERE ff.frentista_id = ? AND ff.posto_id = ?
                ORDER BY ff.id DESC
                LIMIT ?
                """,
                (frentista_id, posto_id, limit),
            ).fetchall()
            return [dict(r) for r in rows]


# -------------------------
# Notas a prazo
# -------------------------

class NotaPrazoRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def insert_many(self, rows: Iterable[Dict[str, Any]]) -> int:
        rows = [_prepare(_as_dict(r)) for r in rows]
        if not rows:
            return 0
        with connect(self.db_path) as c:
            c.executemany(
                """
                INSERT INTO nota_prazo
                    (cliente_id, frentista_id, data, valor, posto_id, fechamento_id, criado_em)
                VALUES
                    (:cliente_id, :frentista_id, :data, :valor, :posto_id, :fechamento_id, :criado_em)
                """,
                rows,
            )
        return len(rows)

    def list_by_fechamento(self, fechamento_id: int) -> List[NotaPrazo]:
        with connect(self.db_path) as c:
            rows = c.execute(
                "SELECT * FROM nota_prazo WHERE fechamento_id = ? ORDER BY id", (fechamento_id,)
            ).fetchall()
            return [NotaPrazo.from_row(r) for r in rows]


# -------------------------
# Abertura de caixa
# -------------------------

class CaixaRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def esta_aberto_hoje(self, frentista_id: int, hoje: Optional[str] = None) -> bool:
        hoje = hoje or date.today().isoformat()
        with connect(self.db_path) as c:
            row = c.execute(
                "SELECT 1 FROM caixa_aberto WHERE frentista_id = ? AND data = ?",
                (frentista_id, hoje),
            ).fetchone()
            return row is not None

    def abrir(
        self,
        turno_id: int,
        posto_id: int,
        frentista_id: int,
        hoje: Optional[str] = None,
    ) -> int:
        """Abre o caixa do frentista. Já aberto no dia levanta IntegrityError."""
        hoje = hoje or date.today().isoformat()
        with connect(self.db_path) as c:
            return _insert(c, "caixa_aberto", {
                "frentista_id": frentista_id,
                "turno_id": turno_id,
                "posto_id": posto_id,
                "data": hoje,
                "aberto_em": datetime.now().isoformat(timespec="seconds"),
            })


# -------------------------
# Produtos e vendas
# -------------------------

class ProdutoRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def create(self, row: Dict[str, Any]) -> Produto:
        with connect(self.db_path) as c:
            new_id = _insert(c, "produto", _as_dict(row))
            return Produto.from_row(c.execute("SELECT * FROM produto WHERE id = ?", (new_id,)).fetchone())

    def get_by_id(self, produto_id: int) -> Optional[Produto]:
        with connect(self.db_path) as c:
            return Produto.from_row(c.execute("SELECT * FROM produto WHERE id = ?", (produto_id,)).fetchone())

    def get_all(self, posto_id: Optional[int] = None) -> List[Produto]:
        sql = "SELECT * FROM produto WHERE ativo = 1"
        params: List[Any] = []
        if posto_id is not None:
            sql += " AND posto_id = ?"
            params.append(posto_id)
        sql += " ORDER BY nome"
        with connect(self.db_path) as c:
            return [Produto.from_row(r) for r in c.execute(sql, params).fetchall()]


class VendaProdutoRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def create(
        self,
        frentista_id: int,
        produto_id: int,
        quantidade: float,
        valor_unitario: Decimal,
        posto_id: Optional[int],
        data: Optional[str] = None,
    ) -> VendaProduto:
        """Registra a venda com `valor_total` calculado e baixa o estoque.

        A baixa só acontece se o estoque ainda cobre a quantidade no momento
        da gravação; caso contrário levanta EstoqueInsuficiente sem gravar.
        """
        valor_total = arredonda(Decimal(str(quantidade)) * arredonda(valor_unitario))
        data = data or datetime.now().isoformat(timespec="seconds")
        with connect(self.db_path) as c:
            baixa = c.execute(
                "UPDATE produto SET estoque_atual = estoque_atual - ? WHERE id = ? AND estoque_atual >= ?",
                (float(quantidade), produto_id, float(quantidade)),
            )
            if baixa.rowcount == 0:
                atual = c.execute("SELECT estoque_atual FROM produto WHERE id = ?", (produto_id,)).fetchone()
                raise EstoqueInsuficiente(atual["estoque_atual"] if atual else 0)
            new_id = _insert(c, "venda_produto", {
                "frentista_id": frentista_id,
                "produto_id": produto_id,
                "quantidade": float(quantidade),
                "valor_unitario": arredonda(valor_unitario),
                "valor_total": valor_total,
                "data": data,
                "posto_id": posto_id,
            })
            row = c.execute(
                """
                SELECT v.*, p.nome AS produto_nome
                FROM venda_produto v JOIN produto p ON p.id = v.produto_id
                WHERE v.id = ?
                """,
                (new_id,),
            ).fetchone()
            return VendaProduto.from_row(row)

    def get_by_frentista_dia(self, frentista_id: int, dia: Optional[str] = None) -> List[VendaProduto]:
        dia = dia or date.today().isoformat()
        with connect(self.db_path) as c:
            rows = c.execute(
                """
                SELECT v.*, p.nome AS produto_nome
                FROM venda_produto v JOIN produto p ON p.id = v.produto_id
                WHERE v.frentista_id = ? AND substr(v.data, 1, 10) = ?
                ORDER BY v.id DESC
                """,
                (frentista_id, dia),
            ).fetchall()
            return [VendaProduto.from_row(r) for r in rows]
