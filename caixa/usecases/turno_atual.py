# caixa/usecases/turno_atual.py
"""
UC: turno vigente do posto.

Busca os turnos do posto (ordenados por horário de início) e aplica
`resolver_turno` com a hora atual. Sem posto, não consulta o banco.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from caixa.config import DB_PATH
from caixa.domain.models import Turno
from caixa.domain.turnos import hora_atual, resolver_turno
from caixa.infra.repositories import TurnoRepo
from caixa.infra.logger import log_system_event


def turno_atual(
    posto_id: Optional[int],
    db_path: str = DB_PATH,
    agora: Optional[datetime] = None,
) -> Optional[Turno]:
    if posto_id is None:
        return None

    turnos = TurnoRepo(db_path).get_all(posto_id=posto_id)
    hora = hora_atual(agora)
    turno = resolver_turno(turnos, hora)

    if turno is None:
        log_system_event("turno_nao_encontrado", {"posto_id": posto_id, "hora": hora}, level="warning")
    else:
        log_system_event("turno_atual", {"posto_id": posto_id, "hora": hora, "turno": turno.nome})
    return turno
