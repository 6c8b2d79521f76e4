import sqlite3
from decimal import Decimal

import pytest

from caixa.infra.db import connect
from caixa.infra.repositories import (
    CaixaRepo,
    FechamentoFrentistaRepo,
    FechamentoRepo,
    FrentistaRepo,
    ParamsRepo,
)


def _linha(fechamento_id, frentista_id, **valores):
    row = {"fechamento_id": fechamento_id, "frentista_id": frentista_id}
    row.update({k: Decimal(v) for k, v in valores.items()})
    return row


def test_migracoes_versao_e_coluna_baratao(db_path):
    with connect(db_path) as c:
        assert c.execute("PRAGMA user_version;").fetchone()[0] == 2
        cols = [r[1] for r in c.execute("PRAGMA table_info(fechamento_frentista);").fetchall()]
    assert "valor_baratao" in cols


def test_get_or_create_reaproveita(seed):
    repo = FechamentoRepo(seed.db_path)
    f1, criado1 = repo.get_or_create("2026-10-19", seed.manha.id, seed.usuario.id,
                                     Decimal("10"), Decimal("20"), seed.posto.id)
    f2, criado2 = repo.get_or_create("2026-10-19", seed.manha.id, None,
                                     Decimal("99"), Decimal("99"), seed.posto.id)
    assert criado1 and not criado2
    assert f1.id == f2.id
    assert f2.usuario_id == seed.usuario.id
    assert f2.total_vendas == Decimal("20.00")
    assert f2.diferenca == Decimal("-10.00")


def test_recompute_soma_todas_as_linhas_e_override(seed):
    repo = FechamentoRepo(seed.db_path)
    linhas = FechamentoFrentistaRepo(seed.db_path)
    f, _ = repo.get_or_create("2026-10-19", seed.manha.id, None, Decimal("0"), Decimal("500"), seed.posto.id)

    linhas.create(_linha(f.id, seed.ana.id, valor_dinheiro="100.10", valor_pix="0.20", valor_baratao="5"))
    linhas.create(_linha(f.id, seed.bruno.id, valor_cartao_credito="200.70", valor_moedas="0.30"))

    geral = repo.recompute_and_persist(f.id, observacoes="turno tranquilo")
    assert geral.total_recebido == Decimal("306.30")
    assert geral.total_vendas == Decimal("500.00")
    assert geral.diferenca == Decimal("-193.70")
    assert geral.observacoes == "turno tranquilo"

    geral = repo.recompute_and_persist(f.id, total_vendas_manual=Decimal("306.30"))
    assert geral.total_vendas == Decimal("306.30")
    assert geral.diferenca == Decimal("0.00")
    assert geral.observacoes == "turno tranquilo"


def test_linha_unica_por_frentista(seed):
    repo = FechamentoRepo(seed.db_path)
    f, _ = repo.get_or_create("2026-10-19", seed.manha.id, None, posto_id=seed.posto.id)
    linhas = FechamentoFrentistaRepo(seed.db_path)
    linhas.create(_linha(f.id, seed.ana.id, valor_pix="1"))
    with pytest.raises(sqlite3.IntegrityError):
        linhas.create(_linha(f.id, seed.ana.id, valor_pix="2"))


def test_update_linha(seed):
    f, _ = FechamentoRepo(seed.db_path).get_or_create("2026-10-19", seed.manha.id, None, posto_id=seed.posto.id)
    linhas = FechamentoFrentistaRepo(seed.db_path)
    linha = linhas.create(_linha(f.id, seed.ana.id, valor_pix="1"))
    atualizada = linhas.update(linha.id, {"valor_pix": Decimal("2.5"), "fechamento_id": 999})
    assert atualizada.valor_pix == Decimal("2.50")
    assert atualizada.fechamento_id == f.id


def test_frentista_update_e_busca(seed):
    repo = FrentistaRepo(seed.db_path)
    atualizado = repo.update(seed.ana.id, {"telefone": "5133334444", "id": 77})
    assert atualizado.id == seed.ana.id
    assert atualizado.telefone == "5133334444"

    repo.update(seed.ana.id, {"ativo": 0})
    assert repo.get_by_user_id("uid-ana") is None
    assert repo.get_by_user_id("uid-ana", apenas_ativos=False).id == seed.ana.id
    assert repo.get_by_user_id("uid-ana", posto_id=99, apenas_ativos=False) is None
    assert repo.get_all_by_posto(None) == []


def test_caixa_abre_uma_vez_por_dia(seed):
    repo = CaixaRepo(seed.db_path)
    assert not repo.esta_aberto_hoje(seed.ana.id, "2026-10-19")
    repo.abrir(seed.manha.id, seed.posto.id, seed.ana.id, "2026-10-19")
    assert repo.esta_aberto_hoje(seed.ana.id, "2026-10-19")
    assert not repo.esta_aberto_hoje(seed.ana.id, "2026-10-20")
    with pytest.raises(sqlite3.IntegrityError):
        repo.abrir(seed.noite.id, seed.posto.id, seed.ana.id, "2026-10-19")


def test_params(db_path):
    repo = ParamsRepo(db_path)
    repo.set_many([("posto_id", "3")])
    repo.set_many([("posto_id", "4")])
    assert repo.get("posto_id") == "4"
    assert repo.get_int("posto_id") == 4
    assert repo.get_int("nao_existe", 1) == 1
    assert repo.get_float("posto_id", 0.0) == 4.0
