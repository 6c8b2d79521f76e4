import sqlite3
from dataclasses import replace
from decimal import Decimal
from unittest.mock import patch

from caixa.config import DefaultConfig
from caixa.domain.models import Identidade
from caixa.domain.reconciliacao import DadosFechamento, ItemNota
from caixa.infra.repositories import (
    FechamentoFrentistaRepo,
    FechamentoRepo,
    NotaPrazoRepo,
    UsuarioRepo,
)
from caixa.usecases.enviar_fechamento import enviar_fechamento

HOJE = "2026-10-19"


def _dados(seed, **kw) -> DadosFechamento:
    base = dict(
        data=HOJE,
        turno_id=seed.manha.id,
        posto_id=seed.posto.id,
        valor_dinheiro=Decimal("600.00"),
        valor_pix=Decimal("400.00"),
        valor_encerrante=Decimal("1000.00"),
        diferenca=Decimal("0.00"),
    )
    base.update(kw)
    return DadosFechamento(**base)


ANA = Identidade(user_id="uid-ana", email="ana@posto.com")


def test_envio_cria_fechamento_e_linha(seed):
    res = enviar_fechamento(_dados(seed), ANA, db_path=seed.db_path)
    assert res.success, res.message
    assert res.message == "Fechamento realizado com sucesso!"

    geral = FechamentoRepo(seed.db_path).get_by_id(res.fechamento_id)
    assert geral.usuario_id == seed.usuario.id
    assert geral.status == "FECHADO"
    assert geral.total_recebido == Decimal("1000.00")
    assert geral.total_vendas == Decimal("1000.00")
    assert geral.diferenca == Decimal("0.00")

    linhas = FechamentoFrentistaRepo(seed.db_path).list_by_fechamento(res.fechamento_id)
    assert len(linhas) == 1
    assert linhas[0].frentista_id == seed.ana.id
    assert linhas[0].valor_conferido == Decimal("1000.00")
    assert linhas[0].encerrante == Decimal("1000.00")
    assert linhas[0].posto_id == seed.posto.id


def test_envio_repetido_e_recusado_sem_alterar_totais(seed):
    primeiro = enviar_fechamento(_dados(seed), ANA, db_path=seed.db_path)
    assert primeiro.success
    antes = FechamentoRepo(seed.db_path).get_by_id(primeiro.fechamento_id)

    segundo = enviar_fechamento(_dados(seed), ANA, db_path=seed.db_path)
    assert not segundo.success
    assert segundo.erro == "fechamento_duplicado"
    assert segundo.message == "Você já realizou o fechamento para este turno hoje."

    depois = FechamentoRepo(seed.db_path).get_by_id(primeiro.fechamento_id)
    assert depois == antes
    assert len(FechamentoFrentistaRepo(seed.db_path).list_by_fechamento(antes.id)) == 1


def _envia_ana_e_bruno(seed, ordem):
    dados = {
        "ana": _dados(seed, frentista_id=seed.ana.id),
        "bruno": _dados(
            seed,
            frentista_id=seed.bruno.id,
            valor_dinheiro=Decimal("250.00"),
            valor_pix=Decimal("0"),
            valor_cartao_debito=Decimal("49.90"),
            valor_encerrante=Decimal("299.90"),
        ),
    }
    res = None
    for nome in ordem:
        res = enviar_fechamento(dados[nome], None, db_path=seed.db_path)
        assert res.success, res.message
    return FechamentoRepo(seed.db_path).get_by_id(res.fechamento_id)


def test_totais_somam_todos_os_frentistas(seed):
    geral = _envia_ana_e_bruno(seed, ["ana", "bruno"])
    assert geral.total_recebido == Decimal("1299.90")
    assert geral.total_vendas == Decimal("1000.00")
    assert geral.diferenca == Decimal("299.90")


def test_totais_independem_da_ordem(seed):
    geral = _envia_ana_e_bruno(seed, ["bruno", "ana"])
    assert geral.total_recebido == Decimal("1299.90")


def test_um_fechamento_por_data_turno_posto(seed):
    a = enviar_fechamento(_dados(seed, frentista_id=seed.ana.id), None, db_path=seed.db_path)
    b = enviar_fechamento(_dados(seed, frentista_id=seed.bruno.id), None, db_path=seed.db_path)
    c = enviar_fechamento(
        _dados(seed, frentista_id=seed.ana.id, turno_id=seed.noite.id), None, db_path=seed.db_path
    )
    assert a.fechamento_id == b.fechamento_id
    assert c.fechamento_id != a.fechamento_id


def test_notas_a_prazo_gravadas(seed):
    notas = (ItemNota(seed.cliente.id, seed.cliente.nome, Decimal("80.00")),)
    dados = _dados(seed, valor_dinheiro=Decimal("520.00"), valor_nota=Decimal("80.00"), notas=notas)
    res = enviar_fechamento(dados, ANA, db_path=seed.db_path)
    assert res.success

    gravadas = NotaPrazoRepo(seed.db_path).list_by_fechamento(res.fechamento_id)
    assert len(gravadas) == 1
    assert gravadas[0].valor == Decimal("80.00")
    assert gravadas[0].frentista_id == seed.ana.id
    assert gravadas[0].data == HOJE


def test_falha_nas_notas_nao_derruba_envio(seed):
    notas = (ItemNota(seed.cliente.id, seed.cliente.nome, Decimal("80.00")),)
    dados = _dados(seed, notas=notas)
    with patch.object(NotaPrazoRepo, "insert_many", side_effect=sqlite3.OperationalError("disk I/O error")):
        res = enviar_fechamento(dados, ANA, db_path=seed.db_path)
    assert res.success
    assert FechamentoFrentistaRepo(seed.db_path).get_existing_id(res.fechamento_id, seed.ana.id)
    assert NotaPrazoRepo(seed.db_path).list_by_fechamento(res.fechamento_id) == []


def test_frentista_explicito_inexistente(seed):
    res = enviar_fechamento(_dados(seed, frentista_id=999), ANA, db_path=seed.db_path)
    assert not res.success
    assert res.erro == "frentista_nao_encontrado"
    assert FechamentoRepo(seed.db_path).get_by_chave(HOJE, seed.manha.id, seed.posto.id) is None


def test_frentista_nao_identificado(seed):
    res = enviar_fechamento(_dados(seed), None, db_path=seed.db_path)
    assert not res.success
    assert res.erro == "frentista_nao_identificado"


def test_atribuicao_prefere_admin_sem_login(seed):
    admin = UsuarioRepo(seed.db_path).create({"nome": "Gerente", "email": "gerente@posto.com", "role": "ADMIN"})
    res = enviar_fechamento(_dados(seed, frentista_id=seed.bruno.id), None, db_path=seed.db_path)
    assert res.success
    assert FechamentoRepo(seed.db_path).get_by_id(res.fechamento_id).usuario_id == admin.id


def test_atribuicao_primeiro_usuario_sem_admin(seed):
    res = enviar_fechamento(_dados(seed, frentista_id=seed.bruno.id), None, db_path=seed.db_path)
    assert res.success
    assert FechamentoRepo(seed.db_path).get_by_id(res.fechamento_id).usuario_id == seed.usuario.id


def test_atribuicao_nula_sem_nenhum_usuario(seed):
    with patch.object(UsuarioRepo, "get_first", return_value=None):
        res = enviar_fechamento(_dados(seed, frentista_id=seed.bruno.id), None, db_path=seed.db_path)
    assert res.success
    assert FechamentoRepo(seed.db_path).get_by_id(res.fechamento_id).usuario_id is None


def test_fallback_desabilitado(seed):
    config = DefaultConfig(permitir_atribuicao_fallback=False)
    res = enviar_fechamento(_dados(seed, frentista_id=seed.bruno.id), None, db_path=seed.db_path, config=config)
    assert not res.success
    assert res.erro == "nao_autenticado"

    # com perfil logado o fallback não é necessário
    res = enviar_fechamento(_dados(seed), ANA, db_path=seed.db_path, config=config)
    assert res.success


def test_corrida_no_insert_vira_duplicado(seed):
    assert enviar_fechamento(_dados(seed), ANA, db_path=seed.db_path).success
    with patch.object(FechamentoFrentistaRepo, "get_existing_id", return_value=None):
        res = enviar_fechamento(_dados(seed), ANA, db_path=seed.db_path)
    assert not res.success
    assert res.erro == "fechamento_duplicado"


def test_erro_inesperado_vira_falha_de_envio(seed):
    with patch.object(FechamentoRepo, "get_or_create", side_effect=RuntimeError("conexão perdida")):
        res = enviar_fechamento(_dados(seed), ANA, db_path=seed.db_path)
    assert not res.success
    assert res.erro == "falha_envio"
    assert res.message == "conexão perdida"


def test_diferenca_assinada_na_linha(seed):
    dados = replace(_dados(seed), valor_dinheiro=Decimal("500.00"), diferenca=Decimal("100.00"))
    res = enviar_fechamento(dados, ANA, db_path=seed.db_path)
    linha = FechamentoFrentistaRepo(seed.db_path).list_by_fechamento(res.fechamento_id)[0]
    assert linha.diferenca_calculada == Decimal("100.00")
    assert linha.valor_conferido == Decimal("900.00")


def test_sem_posto_recusa_antes_de_gravar(seed):
    res = enviar_fechamento(_dados(seed, posto_id=None), ANA, db_path=seed.db_path)
    assert not res.success
    assert res.erro == "posto_nao_selecionado"
    assert res.message.startswith("Nenhum posto selecionado")
    assert FechamentoRepo(seed.db_path).get_by_chave(HOJE, seed.manha.id, seed.posto.id) is None
