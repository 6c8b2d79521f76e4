import asyncio
import sqlite3
import time
from datetime import datetime
from unittest.mock import patch

from caixa.domain.models import Identidade
from caixa.infra.repositories import CaixaRepo, FrentistaRepo, TurnoRepo, UsuarioRepo
from caixa.usecases.sessao import (
    EstadoSessao,
    _Progresso,
    verificar_sessao,
    verificar_sessao_sync,
)

AGORA = datetime(2026, 10, 19, 10, 0)
HOJE = "2026-10-19"


def _verificar(seed, identidade, **kw):
    kw.setdefault("agora", AGORA)
    return asyncio.run(verificar_sessao(identidade, seed.posto.id, db_path=seed.db_path, **kw))


def test_sem_identidade_redireciona_para_login(seed):
    assert _verificar(seed, None).estado is EstadoSessao.REDIRECIONAR_LOGIN


def test_admin_dispensa_frentista(seed):
    UsuarioRepo(seed.db_path).create({"nome": "Gerente", "email": "gerente@posto.com", "role": "ADMIN"})
    res = _verificar(seed, Identidade(user_id="uid-gerente", email="gerente@posto.com"))
    assert res.estado is EstadoSessao.ADMIN
    assert res.frentista is None
    assert FrentistaRepo(seed.db_path).get_by_user_id("uid-gerente") is None


def test_frentista_existente_abre_caixa_no_turno(seed):
    res = _verificar(seed, Identidade(user_id="uid-ana", email="ana@posto.com"))
    assert res.estado is EstadoSessao.PRONTO
    assert res.frentista.id == seed.ana.id
    assert res.turno.nome == "Manhã"
    assert res.caixa_aberto
    assert CaixaRepo(seed.db_path).esta_aberto_hoje(seed.ana.id, HOJE)


def test_caixa_ja_aberto(seed):
    CaixaRepo(seed.db_path).abrir(seed.manha.id, seed.posto.id, seed.ana.id, HOJE)
    res = _verificar(seed, Identidade(user_id="uid-ana", email="ana@posto.com"))
    assert res.estado is EstadoSessao.PRONTO
    assert res.turno is None


def test_auto_cadastro_do_frentista(seed):
    ident = Identidade(user_id="uid-novo", email="carlos.silva@posto.com", metadata={"cpf": "123"})
    res = _verificar(seed, ident)
    assert res.estado is EstadoSessao.PRONTO
    assert res.frentista_criado

    criado = FrentistaRepo(seed.db_path).get_by_user_id("uid-novo")
    assert criado.nome == "carlos.silva"
    assert criado.cpf == "123"
    assert criado.posto_id == 1
    assert criado.data_admissao == HOJE


def test_auto_cadastro_usa_metadados(seed):
    ident = Identidade(
        user_id="uid-novo",
        email="x@posto.com",
        metadata={"nome": "Carlos Silva", "telefone": "51999990000", "posto_id": str(seed.posto.id)},
    )
    _verificar(seed, ident)
    criado = FrentistaRepo(seed.db_path).get_by_user_id("uid-novo")
    assert criado.nome == "Carlos Silva"
    assert criado.telefone == "51999990000"


def test_falha_no_auto_cadastro_bloqueia(seed):
    with patch.object(FrentistaRepo, "create", side_effect=sqlite3.IntegrityError("FOREIGN KEY constraint failed")):
        res = _verificar(seed, Identidade(user_id="uid-novo", email="novo@posto.com"))
    assert res.estado is EstadoSessao.BLOQUEADO


def test_frentista_inativo_bloqueia(seed):
    FrentistaRepo(seed.db_path).update(seed.bruno.id, {"ativo": 0})
    res = _verificar(seed, Identidade(user_id="uid-bruno", email="bruno@posto.com"))
    assert res.estado is EstadoSessao.BLOQUEADO
    # não recria o cadastro
    assert len(FrentistaRepo(seed.db_path).get_all_by_posto(seed.posto.id)) == 1


def test_sem_turno_vai_para_abertura_manual(seed):
    with patch.object(TurnoRepo, "get_all", return_value=[]):
        res = _verificar(seed, Identidade(user_id="uid-ana", email="ana@posto.com"))
    assert res.estado is EstadoSessao.ABERTURA_MANUAL
    assert not CaixaRepo(seed.db_path).esta_aberto_hoje(seed.ana.id, HOJE)


def test_falha_na_abertura_vai_para_abertura_manual(seed):
    with patch.object(CaixaRepo, "abrir", side_effect=sqlite3.OperationalError("database is locked")):
        res = _verificar(seed, Identidade(user_id="uid-ana", email="ana@posto.com"))
    assert res.estado is EstadoSessao.ABERTURA_MANUAL
    assert res.turno.nome == "Manhã"


def test_timeout_conclui_verificacao(seed):
    def lento(self, email):
        time.sleep(0.3)
        return None

    with patch.object(UsuarioRepo, "get_by_email", lento):
        res = _verificar(seed, Identidade(user_id="uid-ana", email="ana@posto.com"), timeout=0.05)
    assert res.estado is EstadoSessao.VERIFICACAO_CONCLUIDA
    assert res.frentista is None
    assert not CaixaRepo(seed.db_path).esta_aberto_hoje(seed.ana.id, HOJE)


def test_erro_inesperado_mantem_progresso_parcial(seed):
    with patch.object(CaixaRepo, "esta_aberto_hoje", side_effect=RuntimeError("rede indisponível")):
        res = _verificar(seed, Identidade(user_id="uid-ana", email="ana@posto.com"))
    assert res.estado is EstadoSessao.VERIFICACAO_CONCLUIDA
    assert res.frentista.id == seed.ana.id


def test_progresso_fechado_recusa_escritas():
    p = _Progresso()
    p.registrar(caixa_aberto=True)
    p.fechar()
    p.registrar(caixa_aberto=False, frentista="tarde demais")
    assert p.fechado
    assert p.caixa_aberto is True
    assert p.frentista is None


def test_versao_sincrona(seed):
    res = verificar_sessao_sync(None, seed.posto.id, db_path=seed.db_path)
    assert res.estado is EstadoSessao.REDIRECIONAR_LOGIN


def test_timeout_devolve_controle_no_limite(seed):
    def travado(self, email):
        time.sleep(1.0)
        return None

    inicio = time.monotonic()
    with patch.object(UsuarioRepo, "get_by_email", travado):
        res = verificar_sessao_sync(
            Identidade(user_id="uid-ana", email="ana@posto.com"),
            seed.posto.id,
            db_path=seed.db_path,
            timeout=0.1,
            agora=AGORA,
        )
        decorrido = time.monotonic() - inicio
        # a chamada travada termina depois, sem retomar a verificação
        time.sleep(1.2)

    assert res.estado is EstadoSessao.VERIFICACAO_CONCLUIDA
    assert decorrido < 0.6
    assert not CaixaRepo(seed.db_path).esta_aberto_hoje(seed.ana.id, HOJE)
