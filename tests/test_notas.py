from decimal import Decimal

import pytest

from caixa.domain.erros import ClienteBloqueado, ValorInvalido
from caixa.domain.reconciliacao import FormularioFechamento
from caixa.infra.db import connect
from caixa.usecases.notas import adicionar_nota, buscar_clientes, clientes_do_posto


def _conta_notas(db_path) -> int:
    with connect(db_path) as c:
        return c.execute("SELECT COUNT(*) FROM nota_prazo").fetchone()[0]


def test_adiciona_nota(seed):
    form = FormularioFechamento(valor_encerrante="100")
    novo = adicionar_nota(form, seed.cliente, "R$ 45,50")
    assert form.notas == ()
    assert novo.notas[0].cliente_id == seed.cliente.id
    assert novo.notas[0].valor == Decimal("45.50")
    assert novo.resumo.total_notas == Decimal("45.50")


def test_cliente_bloqueado_recusado_antes_de_gravar(seed):
    form = FormularioFechamento()
    with pytest.raises(ClienteBloqueado) as exc:
        adicionar_nota(form, seed.cliente_bloqueado, "50")
    assert "Frota Norte" in exc.value.mensagem
    assert exc.value.codigo == "cliente_bloqueado"
    assert _conta_notas(seed.db_path) == 0


@pytest.mark.parametrize("valor", ["", "0", "0,00", "abc"])
def test_valor_nao_positivo(seed, valor):
    with pytest.raises(ValorInvalido):
        adicionar_nota(FormularioFechamento(), seed.cliente, valor)


def test_clientes_do_posto(seed):
    nomes = [c.nome for c in clientes_do_posto(seed.posto.id, seed.db_path)]
    assert nomes == ["Frota Norte", "Transportadora Sul"]
    assert clientes_do_posto(None, seed.db_path) == []


def test_buscar_clientes(seed):
    assert [c.nome for c in buscar_clientes("transp", seed.posto.id, seed.db_path)] == ["Transportadora Sul"]
    assert buscar_clientes("  ", seed.posto.id, seed.db_path) == []
    assert buscar_clientes("transp", None, seed.db_path) == []
