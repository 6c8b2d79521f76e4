# caixa/usecases/notas.py
"""
UC: lançar nota a prazo no formulário de fechamento.

Validação local, sem tocar no banco: cliente bloqueado e valor não
positivo são recusados antes de qualquer gravação.
"""

from __future__ import annotations

from typing import List, Optional

from caixa.config import DB_PATH
from caixa.domain.dinheiro import arredonda, parse_valor
from caixa.domain.erros import ClienteBloqueado, ValorInvalido
from caixa.domain.models import Cliente
from caixa.domain.reconciliacao import FormularioFechamento, ItemNota
from caixa.infra.repositories import ClienteRepo


def adicionar_nota(form: FormularioFechamento, cliente: Cliente, texto_valor: str) -> FormularioFechamento:
    """Devolve um novo formulário com a nota adicionada."""
    if cliente.bloqueado:
        raise ClienteBloqueado(cliente.nome)
    valor = arredonda(parse_valor(texto_valor))
    if valor <= 0:
        raise ValorInvalido()
    return form.com_nota(ItemNota(cliente_id=cliente.id, cliente_nome=cliente.nome, valor=valor))


def clientes_do_posto(posto_id: Optional[int], db_path: str = DB_PATH) -> List[Cliente]:
    if posto_id is None:
        return []
    return ClienteRepo(db_path).get_all(posto_id=posto_id)


def buscar_clientes(texto: str, posto_id: Optional[int], db_path: str = DB_PATH) -> List[Cliente]:
    if posto_id is None or not (texto or "").strip():
        return []
    return ClienteRepo(db_path).search(texto.strip(), posto_id=posto_id)
