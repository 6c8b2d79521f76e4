# caixa/usecases/enviar_fechamento.py
"""
UC: Enviar o fechamento de caixa de um frentista.

Passos:
1. Resolve o usuário a quem o fechamento geral é atribuído (perfil do
   login; sem perfil, admin ou primeiro usuário se o fallback estiver
   habilitado; senão segue com atribuição nula).
2. Resolve o frentista (id explícito ou vínculo com o login).
3. Busca ou cria o fechamento geral de (data, turno, posto).
4. Recusa envio repetido do mesmo frentista no mesmo fechamento.
5. Grava a linha do frentista.
6. Recalcula os totais do fechamento geral com TODAS as linhas.
7. Grava as notas a prazo. Falha aqui é só registrada em log.

Nenhuma exceção escapa: o resultado é sempre um `ResultadoOperacao`.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from caixa.config import DB_PATH, DEFAULTS, DefaultConfig
from caixa.domain.dinheiro import arredonda
from caixa.domain.erros import (
    CaixaErro,
    FalhaEnvio,
    FechamentoDuplicado,
    FrentistaNaoEncontrado,
    FrentistaNaoIdentificado,
    NaoAutenticado,
    PostoNaoSelecionado,
)
from caixa.domain.models import Frentista, Identidade
from caixa.domain.reconciliacao import DadosFechamento
from caixa.infra.repositories import (
    FechamentoFrentistaRepo,
    FechamentoRepo,
    FrentistaRepo,
    NotaPrazoRepo,
    UsuarioRepo,
)
from caixa.infra.logger import (
    log_database_operation,
    log_fechamento,
    log_system_event,
    log_transaction,
)


@dataclass
class ResultadoOperacao:
    success: bool
    message: str
    fechamento_id: Optional[int] = None
    erro: Optional[str] = None  # codigo do CaixaErro

    @classmethod
    def falha(cls, erro: CaixaErro) -> "ResultadoOperacao":
        return cls(success=False, message=erro.mensagem, erro=erro.codigo)


def _resolver_usuario_id(
    identidade: Optional[Identidade],
    db_path: str,
    config: DefaultConfig,
) -> Optional[int]:
    repo = UsuarioRepo(db_path)

    if identidade is not None and identidade.email:
        perfil = repo.get_by_email(identidade.email)
        if perfil is not None:
            return perfil.id

    if not config.permitir_atribuicao_fallback:
        raise NaoAutenticado()

    usuario = repo.get_admin() or repo.get_first()
    if usuario is None:
        log_system_event(
            "usuario_atribuicao_indisponivel",
            {"detalhe": "nenhum usuário para vincular ao fechamento"},
            level="critical",
        )
        return None

    log_system_event(
        "usuario_atribuicao_fallback",
        {"usuario_id": usuario.id, "role": usuario.role},
        level="warning",
    )
    return usuario.id


def _resolver_frentista(
    dados: DadosFechamento,
    identidade: Optional[Identidade],
    db_path: str,
) -> Frentista:
    repo = FrentistaRepo(db_path)
    if dados.frentista_id:
        frentista = repo.get_by_id(dados.frentista_id)
        if frentista is None:
            raise FrentistaNaoEncontrado()
        return frentista

    frentista = None
    if identidade is not None and identidade.user_id:
        frentista = repo.get_by_user_id(identidade.user_id)
    if frentista is None:
        raise FrentistaNaoIdentificado()
    return frentista


def _gravar_notas(dados: DadosFechamento, frentista_id: int, fechamento_id: int, db_path: str) -> None:
    if not dados.notas:
        return
    criado_em = datetime.now().isoformat(timespec="seconds")
    rows = [
        {
            "cliente_id": n.cliente_id,
            "frentista_id": frentista_id,
            "data": dados.data,
            "valor": arredonda(n.valor),
            "posto_id": dados.posto_id,
            "fechamento_id": fechamento_id,
            "criado_em": criado_em,
        }
        for n in dados.notas
    ]
    try:
        n = NotaPrazoRepo(db_path).insert_many(rows)
        log_database_operation("nota_prazo", "INSERT_MANY", n, fechamento_id=fechamento_id)
        log_fechamento("notas", fechamento_id, frentista_id, quantidade=n)
    except sqlite3.Error as e:
        # fechamento e linha já gravados
        log_fechamento("notas_falha", fechamento_id, frentista_id, level="error", error=str(e))


def enviar_fechamento(
    dados: DadosFechamento,
    identidade: Optional[Identidade] = None,
    db_path: str = DB_PATH,
    config: DefaultConfig = DEFAULTS,
) -> ResultadoOperacao:
    log_system_event("enviar_fechamento_start", {
        "data": dados.data, "turno_id": dados.turno_id, "posto_id": dados.posto_id,
    })

    try:
        if dados.posto_id is None:
            raise PostoNaoSelecionado()
        usuario_id = _resolver_usuario_id(identidade, db_path, config)
        frentista = _resolver_frentista(dados, identidade, db_path)

        total_informado = dados.total_informado
        encerrante = arredonda(dados.valor_encerrante)

        fechamento_repo = FechamentoRepo(db_path)
        fechamento, criado = fechamento_repo.get_or_create(
            dados.data,
            dados.turno_id,
            usuario_id,
            total_recebido=total_informado,
            total_vendas=encerrante,
            posto_id=dados.posto_id,
        )
        log_fechamento("create" if criado else "reuse", fechamento.id, frentista.id, data=dados.data)

        linha_repo = FechamentoFrentistaRepo(db_path)
        if linha_repo.get_existing_id(fechamento.id, frentista.id) is not None:
            raise FechamentoDuplicado()

        try:
            linha = linha_repo.create({
                "fechamento_id": fechamento.id,
                "frentista_id": frentista.id,
                "valor_cartao_debito": arredonda(dados.valor_cartao_debito),
                "valor_cartao_credito": arredonda(dados.valor_cartao_credito),
                "valor_nota": arredonda(dados.valor_nota),
                "valor_pix": arredonda(dados.valor_pix),
                "valor_dinheiro": arredonda(dados.valor_dinheiro),
                "valor_moedas": arredonda(dados.valor_moedas),
                "valor_baratao": arredonda(dados.valor_baratao),
                "valor_conferido": total_informado,
                "encerrante": encerrante,
                "diferenca_calculada": arredonda(dados.diferenca),
                "observacoes": dados.observacoes or None,
                "posto_id": dados.posto_id,
            })
        except sqlite3.IntegrityError:
            # outro envio do mesmo frentista entrou entre a checagem e o insert
            raise FechamentoDuplicado()
        log_database_operation("fechamento_frentista", "INSERT", 1, id=linha.id)

        geral = fechamento_repo.recompute_and_persist(
            fechamento.id, observacoes=dados.observacoes or None
        )
        log_fechamento(
            "totals", fechamento.id, frentista.id,
            total_recebido=str(geral.total_recebido),
            total_vendas=str(geral.total_vendas),
            diferenca=str(geral.diferenca),
        )

        _gravar_notas(dados, frentista.id, fechamento.id, db_path)

        result = ResultadoOperacao(
            success=True,
            message="Fechamento realizado com sucesso!",
            fechamento_id=fechamento.id,
        )
        log_transaction("enviar_fechamento", {
            "frentista_id": frentista.id, "fechamento_id": fechamento.id,
            "total_informado": str(total_informado), "encerrante": str(encerrante),
        }, result="success")
        return result

    except FechamentoDuplicado as e:
        log_fechamento("duplicate", None, dados.frentista_id, level="warning", data=dados.data)
        return ResultadoOperacao.falha(e)
    except CaixaErro as e:
        log_transaction("enviar_fechamento", {"data": dados.data, "turno_id": dados.turno_id}, error=e.codigo)
        return ResultadoOperacao.falha(e)
    except Exception as e:
        msg = str(e) or FalhaEnvio.mensagem_padrao
        log_transaction("enviar_fechamento", {"data": dados.data, "turno_id": dados.turno_id}, error=msg)
        log_system_event("enviar_fechamento_error", {"error": msg}, level="error")
        return ResultadoOperacao.falha(FalhaEnvio(msg))
