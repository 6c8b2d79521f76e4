# caixa/config.py
"""
Configurações globais e valores padrão do fechamento de caixa.
"""

import os
from dataclasses import dataclass
from decimal import Decimal


# Caminho padrão do banco de dados SQLite
DB_PATH = os.environ.get("CAIXA_DB") or os.path.join(os.getcwd(), "caixa.db")


def _env_bool(nome: str, default: bool) -> bool:
    val = os.environ.get(nome)
    if val is None:
        return default
    return val.strip().lower() in {"1", "true", "t", "sim", "s", "y", "yes"}


@dataclass
class DefaultConfig:
    """Valores padrão para parâmetros do sistema."""
    posto_id_padrao: int = 1  # posto usado no auto-cadastro sem metadado
    timeout_sessao_s: float = 5.0  # limite da verificação de sessão
    tolerancia: Decimal = Decimal("0.001")  # ruído de ponto flutuante, não arredondamento
    limite_historico: int = 10
    # Atribui o fechamento a um admin (ou ao primeiro usuário) quando
    # não há perfil logado. Modo de dispositivo compartilhado.
    permitir_atribuicao_fallback: bool = True


# Instância global dos valores padrão
DEFAULTS = DefaultConfig(
    permitir_atribuicao_fallback=_env_bool("CAIXA_ATRIBUICAO_FALLBACK", True),
)
