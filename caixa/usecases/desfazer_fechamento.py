# caixa/usecases/desfazer_fechamento.py
"""
UC: Desfazer o envio de um frentista.

Remove as notas a prazo do frentista naquele fechamento, a linha do
frentista e recalcula os totais do fechamento geral com as linhas
restantes, numa única transação: se qualquer passo falhar, nada é
removido. O fechamento geral permanece, mesmo sem linhas.
"""

from __future__ import annotations

from caixa.config import DB_PATH
from caixa.domain.erros import CaixaErro, FalhaEnvio, NadaParaDesfazer
from caixa.infra.repositories import FechamentoFrentistaRepo, FechamentoRepo
from caixa.infra.logger import log_database_operation, log_fechamento, log_transaction
from caixa.usecases.enviar_fechamento import ResultadoOperacao


def desfazer_fechamento(
    frentista_id: int,
    data: str,
    turno_id: int,
    posto_id: int,
    db_path: str = DB_PATH,
) -> ResultadoOperacao:
    chave = {"frentista_id": frentista_id, "data": data, "turno_id": turno_id, "posto_id": posto_id}
    try:
        fechamento_repo = FechamentoRepo(db_path)
        fechamento = fechamento_repo.get_by_chave(data, turno_id, posto_id)
        if fechamento is None:
            raise NadaParaDesfazer()

        linha_repo = FechamentoFrentistaRepo(db_path)
        linha_id = linha_repo.get_existing_id(fechamento.id, frentista_id)
        if linha_id is None:
            raise NadaParaDesfazer()

        notas, geral = linha_repo.delete_com_notas(linha_id)
        if geral is None:
            raise NadaParaDesfazer()
        log_database_operation("nota_prazo", "DELETE", notas, fechamento_id=fechamento.id)
        log_database_operation("fechamento_frentista", "DELETE", 1, id=linha_id)

        log_fechamento(
            "undo", fechamento.id, frentista_id,
            total_recebido=str(geral.total_recebido), diferenca=str(geral.diferenca),
        )
        log_transaction("desfazer_fechamento", chave, result="success")
        return ResultadoOperacao(
            success=True,
            message="Fechamento desfeito com sucesso.",
            fechamento_id=fechamento.id,
        )

    except CaixaErro as e:
        log_transaction("desfazer_fechamento", chave, error=e.codigo)
        return ResultadoOperacao.falha(e)
    except Exception as e:
        msg = str(e) or FalhaEnvio.mensagem_padrao
        log_transaction("desfazer_fechamento", chave, error=msg)
        return ResultadoOperacao.falha(FalhaEnvio(msg))
