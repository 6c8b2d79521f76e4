# caixa/usecases/vendas.py
"""
UC: Registrar venda de produto (loja de conveniência / pista).

- registrar_venda(): valida quantidade e estoque, grava a venda com
  valor total calculado e baixa o estoque.
- vendas_hoje(): vendas do frentista no dia.
"""

from __future__ import annotations

from datetime import date
from typing import List, Optional

from caixa.config import DB_PATH
from caixa.domain.erros import EstoqueInsuficiente, QuantidadeInvalida
from caixa.domain.models import Produto, VendaProduto
from caixa.infra.repositories import ProdutoRepo, VendaProdutoRepo
from caixa.infra.logger import log_database_operation, log_system_event, log_transaction


def produtos_do_posto(posto_id: Optional[int], db_path: str = DB_PATH) -> List[Produto]:
    if posto_id is None:
        return []
    return ProdutoRepo(db_path).get_all(posto_id=posto_id)


def registrar_venda(
    frentista_id: int,
    produto_id: int,
    quantidade: float,
    db_path: str = DB_PATH,
) -> VendaProduto:
    log_system_event("registrar_venda_start", {"frentista_id": frentista_id, "produto_id": produto_id})

    if quantidade is None or quantidade <= 0:
        raise QuantidadeInvalida()

    produto = ProdutoRepo(db_path).get_by_id(produto_id)
    if produto is None or not produto.ativo:
        raise LookupError(f"Produto não encontrado: {produto_id}")
    if quantidade > produto.estoque_atual:
        raise EstoqueInsuficiente(produto.estoque_atual)

    try:
        venda = VendaProdutoRepo(db_path).create(
            frentista_id=frentista_id,
            produto_id=produto.id,
            quantidade=quantidade,
            valor_unitario=produto.preco_venda,
            posto_id=produto.posto_id,
        )
    except Exception as e:
        log_transaction("registrar_venda", {"produto_id": produto_id, "quantidade": quantidade}, error=str(e))
        raise

    log_database_operation("venda_produto", "INSERT", 1, produto_id=produto.id, quantidade=quantidade)
    log_transaction("registrar_venda", {
        "produto_id": produto.id, "quantidade": quantidade, "valor_total": str(venda.valor_total),
    }, result="success")
    return venda


def vendas_hoje(frentista_id: int, db_path: str = DB_PATH) -> List[VendaProduto]:
    return VendaProdutoRepo(db_path).get_by_frentista_dia(frentista_id, date.today().isoformat())
