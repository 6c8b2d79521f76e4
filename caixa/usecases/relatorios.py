# caixa/usecases/relatorios.py
"""
Relatórios do fechamento de caixa:
- histórico de envios do frentista
- frentistas que já fecharam (data, turno, posto)
- exportação do histórico para XLSX/CSV
"""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from caixa.config import DB_PATH, DEFAULTS
from caixa.domain.dinheiro import arredonda
from caixa.domain.models import CAMPOS_PAGAMENTO
from caixa.infra.repositories import FechamentoFrentistaRepo
from caixa.infra.logger import log_file_operation, log_system_event


# ----------------------
# 1) Histórico
# ----------------------

def historico_frentista(
    frentista_id: int,
    posto_id: Optional[int],
    limite: int = DEFAULTS.limite_historico,
    db_path: str = DB_PATH,
) -> List[Dict[str, Any]]:
    """
    Últimos envios do frentista no posto, do mais recente para o mais antigo.

    Cada item: id, data, turno, total_informado, encerrante, diferenca,
    status ("ok" quando a diferença é zero, senão "divergente"), observacoes.
    """
    if posto_id is None:
        return []

    rows = FechamentoFrentistaRepo(db_path).get_historico(frentista_id, posto_id, limite)
    out: List[Dict[str, Any]] = []
    for r in rows:
        total = arredonda(sum((arredonda(r.get(c)) for c in CAMPOS_PAGAMENTO if c in r), Decimal("0")))
        encerrante = arredonda(r.get("encerrante"))
        diferenca = arredonda(r.get("diferenca_calculada"))
        if diferenca == 0 and encerrante:
            diferenca = arredonda(encerrante - total)
        out.append({
            "id": r["id"],
            "data": r.get("data") or "",
            "turno": r.get("turno") or "N/A",
            "total_informado": total,
            "encerrante": encerrante,
            "diferenca": diferenca,
            "status": "ok" if diferenca == 0 else "divergente",
            "observacoes": r.get("observacoes") or "",
        })

    log_system_event("historico_frentista", {"frentista_id": frentista_id, "linhas": len(out)})
    return out


# ----------------------
# 2) Quem já fechou
# ----------------------

def frentistas_que_fecharam(
    data: str,
    turno_id: Optional[int],
    posto_id: Optional[int],
    db_path: str = DB_PATH,
) -> List[int]:
    return FechamentoFrentistaRepo(db_path).frentistas_que_fecharam(data, turno_id, posto_id)


# ----------------------
# 3) Exportação
# ----------------------

def exportar_historico(linhas: List[Dict[str, Any]], caminho: str) -> str:
    """Grava o histórico em `.xlsx` (padrão) ou `.csv`, conforme a extensão."""
    path = Path(caminho)
    path.parent.mkdir(parents=True, exist_ok=True)

    df = pd.DataFrame(linhas, columns=[
        "id", "data", "turno", "total_informado", "encerrante", "diferenca", "status", "observacoes",
    ])
    for col in ("total_informado", "encerrante", "diferenca"):
        df[col] = df[col].map(float)

    if path.suffix.lower() == ".csv":
        df.to_csv(path, index=False, sep=";", decimal=",")
    else:
        df.to_excel(path, index=False, sheet_name="historico")

    log_file_operation("export", str(path), rows_processed=len(df))
    return str(path)
