# caixa/usecases/sessao.py
"""
UC: verificação de sessão do frentista (entrada na tela de fechamento).

Sequência, interrompida no primeiro passo conclusivo:
1. Sem identidade           -> REDIRECIONAR_LOGIN
2. Perfil ADMIN             -> ADMIN (dispensa cadastro de frentista)
3. Frentista do login       -> segue; inativo -> BLOQUEADO
4. Sem frentista            -> cria a partir dos metadados do cadastro
                               (efeito colateral desta verificação);
                               falha na criação -> BLOQUEADO
5. Caixa já aberto hoje     -> PRONTO
6. Abre o caixa no turno vigente -> PRONTO; sem turno ou falha -> ABERTURA_MANUAL

A verificação inteira roda sob `asyncio.wait_for` (padrão 5s). As chamadas
ao banco rodam num executor próprio, descartado sem espera ao fim da
verificação: uma chamada travada não segura o chamador além do limite.
Estouro do tempo ou erro inesperado resulta em VERIFICACAO_CONCLUIDA com o
progresso parcial. Depois do resultado decidido, o ramo abandonado não
altera mais o progresso.
"""

from __future__ import annotations

import asyncio
import sqlite3
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from caixa.config import DB_PATH, DEFAULTS
from caixa.domain.models import Frentista, Identidade, Turno, Usuario
from caixa.infra.repositories import CaixaRepo, FrentistaRepo, UsuarioRepo
from caixa.infra.logger import log_sessao
from caixa.usecases.turno_atual import turno_atual


class EstadoSessao(str, Enum):
    REDIRECIONAR_LOGIN = "REDIRECIONAR_LOGIN"
    ADMIN = "ADMIN"
    PRONTO = "PRONTO"
    ABERTURA_MANUAL = "ABERTURA_MANUAL"
    BLOQUEADO = "BLOQUEADO"
    VERIFICACAO_CONCLUIDA = "VERIFICACAO_CONCLUIDA"


@dataclass
class ResultadoSessao:
    estado: EstadoSessao
    usuario: Optional[Usuario] = None
    frentista: Optional[Frentista] = None
    turno: Optional[Turno] = None
    frentista_criado: bool = False
    caixa_aberto: bool = False
    mensagem: str = ""


class _Progresso:
    """Progresso parcial da verificação. Fechado, recusa novas escritas."""

    def __init__(self) -> None:
        self._fechado = False
        self.usuario: Optional[Usuario] = None
        self.frentista: Optional[Frentista] = None
        self.turno: Optional[Turno] = None
        self.frentista_criado = False
        self.caixa_aberto = False

    @property
    def fechado(self) -> bool:
        return self._fechado

    def registrar(self, **campos: Any) -> None:
        if self._fechado:
            return
        for k, v in campos.items():
            setattr(self, k, v)

    def fechar(self) -> None:
        self._fechado = True

    def resultado(self, estado: EstadoSessao, mensagem: str = "") -> ResultadoSessao:
        return ResultadoSessao(
            estado=estado,
            usuario=self.usuario,
            frentista=self.frentista,
            turno=self.turno,
            frentista_criado=self.frentista_criado,
            caixa_aberto=self.caixa_aberto,
            mensagem=mensagem,
        )


def _dados_novo_frentista(identidade: Identidade, hoje: str) -> Dict[str, Any]:
    meta = identidade.metadata or {}
    email = identidade.email or ""
    nome = (meta.get("nome") or "").strip() or email.split("@")[0] or "Frentista"
    try:
        posto_id = int(meta.get("posto_id") or DEFAULTS.posto_id_padrao)
    except (TypeError, ValueError):
        posto_id = DEFAULTS.posto_id_padrao
    return {
        "nome": nome,
        "cpf": meta.get("cpf"),
        "telefone": meta.get("telefone"),
        "posto_id": posto_id,
        "data_admissao": hoje,
        "ativo": 1,
        "user_id": identidade.user_id,
    }


def _rodar(executor: Executor, func, *args):
    return asyncio.get_running_loop().run_in_executor(executor, func, *args)


async def _verificar(
    identidade: Optional[Identidade],
    posto_id: Optional[int],
    db_path: str,
    agora: datetime,
    progresso: _Progresso,
    executor: Executor,
) -> ResultadoSessao:
    # 1) identidade
    if identidade is None or not identidade.user_id:
        log_sessao("sem_identidade")
        return progresso.resultado(EstadoSessao.REDIRECIONAR_LOGIN)

    # 2) administrador
    if identidade.email:
        usuario = await _rodar(executor, UsuarioRepo(db_path).get_by_email, identidade.email)
        progresso.registrar(usuario=usuario)
        if usuario is not None and usuario.is_admin:
            log_sessao("admin", {"usuario_id": usuario.id})
            return progresso.resultado(EstadoSessao.ADMIN)

    # 3) frentista vinculado ao login
    frentista_repo = FrentistaRepo(db_path)
    frentista = await _rodar(
        executor, frentista_repo.get_by_user_id, identidade.user_id, None, False
    )

    if frentista is not None and not frentista.ativo:
        progresso.registrar(frentista=frentista)
        log_sessao("frentista_inativo", {"frentista_id": frentista.id}, level="warning")
        return progresso.resultado(EstadoSessao.BLOQUEADO, "Conta desativada. Procure o administrador.")

    # 4) auto-cadastro
    hoje = agora.date().isoformat()
    if frentista is None:
        dados = _dados_novo_frentista(identidade, hoje)
        try:
            frentista = await _rodar(executor, frentista_repo.create, dados)
        except sqlite3.Error as e:
            log_sessao("auto_cadastro_falha", {"user_id": identidade.user_id, "error": str(e)}, level="error")
            return progresso.resultado(EstadoSessao.BLOQUEADO, "Conta desativada. Procure o administrador.")
        progresso.registrar(frentista=frentista, frentista_criado=True)
        log_sessao("auto_cadastro", {"frentista_id": frentista.id, "posto_id": frentista.posto_id})
    else:
        progresso.registrar(frentista=frentista)

    # 5) caixa já aberto
    caixa_repo = CaixaRepo(db_path)
    aberto = await _rodar(executor, caixa_repo.esta_aberto_hoje, frentista.id, hoje)
    if aberto:
        progresso.registrar(caixa_aberto=True)
        log_sessao("caixa_ja_aberto", {"frentista_id": frentista.id})
        return progresso.resultado(EstadoSessao.PRONTO)

    # 6) abertura automática no turno vigente
    posto_turno = frentista.posto_id if frentista.posto_id is not None else posto_id
    turno = await _rodar(executor, turno_atual, posto_turno, db_path, agora)
    progresso.registrar(turno=turno)
    if turno is None:
        log_sessao("sem_turno", {"posto_id": posto_turno}, level="warning")
        return progresso.resultado(EstadoSessao.ABERTURA_MANUAL)

    try:
        await _rodar(executor, caixa_repo.abrir, turno.id, posto_turno, frentista.id, hoje)
    except sqlite3.Error as e:
        log_sessao("abertura_falha", {"frentista_id": frentista.id, "error": str(e)}, level="error")
        return progresso.resultado(EstadoSessao.ABERTURA_MANUAL)

    progresso.registrar(caixa_aberto=True)
    log_sessao("caixa_aberto", {"frentista_id": frentista.id, "turno_id": turno.id})
    return progresso.resultado(EstadoSessao.PRONTO)


async def verificar_sessao(
    identidade: Optional[Identidade],
    posto_id: Optional[int] = None,
    db_path: str = DB_PATH,
    timeout: float = DEFAULTS.timeout_sessao_s,
    agora: Optional[datetime] = None,
) -> ResultadoSessao:
    agora = agora or datetime.now()
    progresso = _Progresso()
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="sessao")
    try:
        return await asyncio.wait_for(
            _verificar(identidade, posto_id, db_path, agora, progresso, executor),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        log_sessao("timeout", {"timeout_s": timeout}, level="warning")
    except Exception as e:
        log_sessao("erro", {"error": str(e)}, level="error")
    finally:
        progresso.fechar()
        # não espera a chamada pendente
        executor.shutdown(wait=False)
    return progresso.resultado(EstadoSessao.VERIFICACAO_CONCLUIDA)


def verificar_sessao_sync(
    identidade: Optional[Identidade],
    posto_id: Optional[int] = None,
    db_path: str = DB_PATH,
    timeout: float = DEFAULTS.timeout_sessao_s,
    agora: Optional[datetime] = None,
) -> ResultadoSessao:
    return asyncio.run(verificar_sessao(identidade, posto_id, db_path, timeout, agora))
