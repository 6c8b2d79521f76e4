from datetime import datetime

import pytest

from caixa.domain.models import Turno
from caixa.domain.turnos import hhmm, resolver_turno, turno_contem
from caixa.infra.repositories import TurnoRepo
from caixa.usecases.turno_atual import turno_atual


MANHA = Turno(id=1, nome="Manhã", horario_inicio="08:00", horario_fim="16:00")
NOITE = Turno(id=2, nome="Noite", horario_inicio="16:00", horario_fim="08:00")


@pytest.mark.parametrize(
    "hora,esperado",
    [
        ("10:00", "Manhã"),
        ("08:00", "Manhã"),
        ("15:59", "Manhã"),
        ("16:00", "Noite"),
        ("20:00", "Noite"),
        ("02:00", "Noite"),
        ("07:59", "Noite"),
    ],
)
def test_resolver_turno_com_virada_de_dia(hora, esperado):
    assert resolver_turno([MANHA, NOITE], hora).nome == esperado


def test_turno_contem_intervalo_aberto_no_fim():
    assert turno_contem(MANHA, "08:00")
    assert not turno_contem(MANHA, "16:00")


def test_sem_correspondencia_usa_diario():
    tarde = Turno(id=1, nome="Tarde", horario_inicio="12:00", horario_fim="18:00")
    diario = Turno(id=2, nome="DIÁRIO", horario_inicio="06:00", horario_fim="07:00")
    assert resolver_turno([tarde, diario], "22:00").id == 2


def test_sem_correspondencia_nem_diario_usa_primeiro():
    tarde = Turno(id=1, nome="Tarde", horario_inicio="12:00", horario_fim="18:00")
    madrugada = Turno(id=2, nome="Madrugada", horario_inicio="00:00", horario_fim="06:00")
    assert resolver_turno([tarde, madrugada], "09:00").id == 1


def test_prioriza_turnos_ativos():
    inativo = Turno(id=1, nome="Manhã antiga", horario_inicio="08:00", horario_fim="16:00", ativo=0)
    ativo = Turno(id=2, nome="Integral", horario_inicio="06:00", horario_fim="22:00", ativo=1)
    assert resolver_turno([inativo, ativo], "10:00").id == 2


def test_todos_inativos_ainda_resolve():
    inativo = Turno(id=1, nome="Manhã", horario_inicio="08:00", horario_fim="16:00", ativo=0)
    assert resolver_turno([inativo], "10:00").id == 1


def test_lista_vazia():
    assert resolver_turno([], "10:00") is None


def test_hhmm():
    assert hhmm("8:00") == "08:00"
    assert hhmm("08:00:00") == "08:00"
    assert hhmm(None) == ""


def test_turno_atual_no_banco(seed):
    assert turno_atual(seed.posto.id, seed.db_path, datetime(2026, 10, 19, 10, 0)).nome == "Manhã"
    assert turno_atual(seed.posto.id, seed.db_path, datetime(2026, 10, 19, 2, 0)).nome == "Noite"


def test_turno_atual_sem_posto(seed):
    assert turno_atual(None, seed.db_path) is None


def test_turno_atual_posto_sem_turnos(db_path):
    assert turno_atual(99, db_path) is None
    assert TurnoRepo(db_path).get_all(posto_id=99) == []
