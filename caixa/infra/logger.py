# caixa/infra/logger.py
"""
Sistema de logging para as operações de caixa.

Este módulo configura e fornece loggers para registrar as operações
críticas do sistema: envios e desfazimentos de fechamento, verificação
de sessão do frentista e operações no banco de dados.
"""

import logging
import os
from pathlib import Path
from typing import Dict, Any, Optional


# Flag global para habilitar/desabilitar logging (CAIXA_LOG=1 liga)
ENABLE_LOGGING = os.environ.get("CAIXA_LOG", "").strip().lower() in {"1", "true", "sim", "yes"}
# Flag global para habilitar/desabilitar prints/output
ENABLE_OUTPUT = False

def print_system(*args, **kwargs):
    """Print controlado pelo ENABLE_OUTPUT."""
    if ENABLE_OUTPUT:
        print(*args, **kwargs)

# Configuração base dos loggers
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

def setup_logger(name: str, log_file: str, level: int = logging.INFO) -> logging.Logger:
    """
    Configura um logger específico com arquivo de saída.

    O arquivo só é criado na primeira mensagem emitida.

    Args:
        name: Nome do logger
        log_file: Caminho do arquivo de log
        level: Nível de logging (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        Logger configurado
    """
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False

    while logger.handlers:
        logger.removeHandler(logger.handlers[0])

    file_handler = logging.FileHandler(log_file, encoding='utf-8', delay=True)
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    logger.addHandler(file_handler)

    return logger

# Diretório base para logs (na pasta do pacote, ou CAIXA_LOG_DIR)
BASE_DIR = Path(__file__).parent.parent
LOGS_DIR = Path(os.environ.get("CAIXA_LOG_DIR") or (BASE_DIR / "logs"))

LOG_FILES = {
    "transactions": LOGS_DIR / "transactions.log",
    "fechamentos": LOGS_DIR / "fechamentos.log",
    "sessao": LOGS_DIR / "sessao.log",
    "database": LOGS_DIR / "database.log",
    "system": LOGS_DIR / "system.log",
}

transaction_logger = setup_logger('caixa.transactions', str(LOG_FILES["transactions"]))
fechamento_logger = setup_logger('caixa.fechamentos', str(LOG_FILES["fechamentos"]))
sessao_logger = setup_logger('caixa.sessao', str(LOG_FILES["sessao"]))
database_logger = setup_logger('caixa.database', str(LOG_FILES["database"]))
system_logger = setup_logger('caixa.system', str(LOG_FILES["system"]))


def _enabled() -> bool:
    return ENABLE_LOGGING or ENABLE_OUTPUT


def log_transaction(operation: str, data: Dict[str, Any], result: Optional[Any] = None, error: Optional[str] = None) -> None:
    """
    Registra uma transação completa no log.

    Args:
        operation: Tipo de operação (enviar_fechamento, desfazer_fechamento, ...)
        data: Dados da transação
        result: Resultado da operação (opcional)
        error: Mensagem de erro (opcional)
    """
    if not _enabled():
        return
    if error:
        transaction_logger.error(f"TRANSACTION_FAILED: {operation} - {error} - Data: {data}")
    else:
        transaction_logger.info(f"TRANSACTION_SUCCESS: {operation} - Result: {result} - Data: {data}")


def log_fechamento(action: str, fechamento_id: Optional[int], frentista_id: Optional[int],
                   level: str = "info", **kwargs) -> None:
    """
    Log específico para fechamentos de caixa.

    Args:
        action: Ação realizada (create, reuse, duplicate, totals, undo, notas)
        fechamento_id: Fechamento geral envolvido
        frentista_id: Frentista envolvido
        level: Nível do log (info, warning, error)
        **kwargs: Dados adicionais (valores, diferença, turno...)
    """
    if not _enabled():
        return
    log_data = {
        "action": action,
        "fechamento_id": fechamento_id,
        "frentista_id": frentista_id,
        **kwargs
    }
    log_method = getattr(fechamento_logger, level.lower(), fechamento_logger.info)
    log_method(f"FECHAMENTO_{action.upper()}: {log_data}")


def log_sessao(step: str, details: Dict[str, Any] = None, level: str = "info") -> None:
    """
    Log dos passos da verificação de sessão (login, auto-cadastro, abertura de caixa).
    """
    if not _enabled():
        return
    log_method = getattr(sessao_logger, level.lower(), sessao_logger.info)
    log_method(f"SESSAO_{step.upper()}: {details or {}}")


def log_database_operation(table: str, operation: str, affected_rows: int = 0, **kwargs) -> None:
    """
    Log específico para operações no banco de dados.

    Args:
        table: Nome da tabela
        operation: Operação SQL (INSERT, UPDATE, DELETE, SELECT)
        affected_rows: Número de linhas afetadas
        **kwargs: Dados adicionais
    """
    if not _enabled():
        return
    log_data = {
        "table": table,
        "operation": operation,
        "affected_rows": affected_rows,
        **kwargs
    }
    database_logger.info(f"DB_{operation}: {log_data}")


def log_system_event(event: str, details: Dict[str, Any] = None, level: str = "info") -> None:
    """
    Log para eventos do sistema.

    Args:
        event: Descrição do evento
        details: Detalhes adicionais (opcional)
        level: Nível do log (info, warning, error, critical)
    """
    if not _enabled():
        return
    log_data = {
        "event": event,
        "details": details or {}
    }
    log_method = getattr(system_logger, level.lower(), system_logger.info)
    log_method(f"SYSTEM_EVENT: {event} - {log_data}")


def log_file_operation(operation: str, file_path: str, rows_processed: int = 0, **kwargs) -> None:
    """
    Log para operações de arquivo (exportação de histórico).
    """
    if not _enabled():
        return
    log_data = {
        "operation": operation,
        "file_path": file_path,
        "rows_processed": rows_processed,
        **kwargs
    }
    system_logger.info(f"FILE_{operation.upper()}: {log_data}")


def get_log_summary(log_type: str = "transactions", lines: int = 100) -> Optional[str]:
    """
    Obtém um resumo dos logs recentes.

    Args:
        log_type: Tipo de log (transactions, fechamentos, sessao, database, system)
        lines: Número de linhas a retornar

    Returns:
        Conteúdo do log como string
    """
    if not _enabled():
        return None

    log_file = LOG_FILES.get(log_type)
    if not log_file or not log_file.exists():
        return f"Log {log_type} não encontrado."

    try:
        with open(log_file, 'r', encoding='utf-8') as f:
            all_lines = f.readlines()
            return ''.join(all_lines[-lines:])
    except OSError as e:
        return f"Erro ao ler log {log_type}: {str(e)}"
