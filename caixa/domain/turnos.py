"""
Resolução do turno vigente a partir dos horários cadastrados.

Funções puras: recebem a lista de turnos do posto e a hora atual
(``HH:MM``) e devolvem o turno aplicável. A busca no banco fica em
``caixa.usecases.turno_atual``.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Sequence

from caixa.domain.models import Turno

NOME_TURNO_DIARIO = "diário"


def hhmm(valor: Optional[str]) -> str:
    """Normaliza ``"8:00"``/``"08:00:00"`` para ``"08:00"``."""
    if not valor:
        return ""
    partes = str(valor).strip().split(":")
    try:
        h = int(partes[0])
        m = int(partes[1]) if len(partes) > 1 else 0
    except ValueError:
        return str(valor).strip()[:5]
    return f"{h:02d}:{m:02d}"


def hora_atual(agora: Optional[datetime] = None) -> str:
    agora = agora or datetime.now()
    return agora.strftime("%H:%M")


def turno_contem(turno: Turno, hora: str) -> bool:
    """Indica se ``hora`` pertence ao intervalo do turno.

    Regras:
        - ``inicio <= fim`` (mesmo dia): ``inicio <= hora < fim``
        - ``inicio > fim`` (cruza a meia-noite): ``hora >= inicio`` ou ``hora < fim``
    """
    inicio = hhmm(turno.horario_inicio)
    fim = hhmm(turno.horario_fim)
    hora = hhmm(hora)
    if inicio > fim:
        return hora >= inicio or hora < fim
    return inicio <= hora < fim


def candidatos(turnos: Sequence[Turno]) -> List[Turno]:
    """Prioriza turnos ativos; se nenhum estiver ativo, considera todos."""
    ativos = [t for t in turnos if t.ativo is None or bool(t.ativo)]
    return ativos if ativos else list(turnos)


def resolver_turno(turnos: Sequence[Turno], hora: str) -> Optional[Turno]:
    """Escolhe o turno vigente para ``hora``.

    Retorna o primeiro turno (na ordem da lista) que contém a hora. Sem
    correspondência, usa o turno chamado "Diário" (sem diferenciar
    maiúsculas) ou o primeiro candidato. Lista vazia retorna ``None``.
    """
    lista = candidatos(turnos)
    if not lista:
        return None
    for turno in lista:
        if turno_contem(turno, hora):
            return turno
    for turno in lista:
        if (turno.nome or "").strip().lower() == NOME_TURNO_DIARIO:
            return turno
    return lista[0]
