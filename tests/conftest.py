from decimal import Decimal
from types import SimpleNamespace

import pytest

from caixa.infra.migrations import apply_migrations
from caixa.infra.repositories import (
    ClienteRepo,
    FrentistaRepo,
    PostoRepo,
    ProdutoRepo,
    TurnoRepo,
    UsuarioRepo,
)


@pytest.fixture
def db_path(tmp_path):
    path = str(tmp_path / "caixa_test.sqlite")
    apply_migrations(path)
    return path


@pytest.fixture
def seed(db_path):
    """Posto 1 com dois frentistas, dois turnos, clientes e um produto."""
    posto = PostoRepo(db_path).create({"nome": "Posto Central"})
    usuario = UsuarioRepo(db_path).create({
        "nome": "Ana", "email": "ana@posto.com", "role": "FRENTISTA", "posto_id": posto.id,
    })
    frentistas = FrentistaRepo(db_path)
    ana = frentistas.create({"nome": "Ana", "posto_id": posto.id, "user_id": "uid-ana"})
    bruno = frentistas.create({"nome": "Bruno", "posto_id": posto.id, "user_id": "uid-bruno"})

    turnos = TurnoRepo(db_path)
    manha = turnos.create({
        "nome": "Manhã", "horario_inicio": "08:00", "horario_fim": "16:00", "posto_id": posto.id,
    })
    noite = turnos.create({
        "nome": "Noite", "horario_inicio": "16:00", "horario_fim": "08:00", "posto_id": posto.id,
    })

    clientes = ClienteRepo(db_path)
    transportadora = clientes.create({"nome": "Transportadora Sul", "posto_id": posto.id})
    caloteiro = clientes.create({"nome": "Frota Norte", "posto_id": posto.id, "bloqueado": 1})

    oleo = ProdutoRepo(db_path).create({
        "nome": "Óleo 1L", "preco_venda": Decimal("32.90"), "estoque_atual": 10, "posto_id": posto.id,
    })

    return SimpleNamespace(
        db_path=db_path,
        posto=posto,
        usuario=usuario,
        ana=ana,
        bruno=bruno,
        manha=manha,
        noite=noite,
        cliente=transportadora,
        cliente_bloqueado=caloteiro,
        produto=oleo,
    )
