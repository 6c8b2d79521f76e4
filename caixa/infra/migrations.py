# caixa/infra/migrations.py
"""
Migrações de schema usando PRAGMA user_version.

V1: tabelas base (postos, usuários, frentistas, turnos, clientes,
    fechamentos, fechamentos por frentista, notas a prazo, abertura de caixa)
V2: produtos e vendas de produtos; coluna `valor_baratao` em fechamento_frentista
"""

from __future__ import annotations

from typing import List
from .db import connect


SCHEMA_V1: List[str] = [
    # Parâmetros K/V (posto selecionado, overrides de config)
    """
    CREATE TABLE IF NOT EXISTS params (
        chave TEXT PRIMARY KEY,
        valor TEXT
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS posto (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        nome TEXT NOT NULL,
        cnpj TEXT,
        endereco TEXT,
        cidade TEXT,
        estado TEXT,
        telefone TEXT,
        email TEXT,
        ativo INTEGER DEFAULT 1
    );
    """,
    # Perfis de usuário (role ADMIN dispensa cadastro de frentista)
    """
    CREATE TABLE IF NOT EXISTS usuario (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        nome TEXT NOT NULL,
        email TEXT NOT NULL UNIQUE,
        role TEXT DEFAULT 'FRENTISTA',
        posto_id INTEGER,
        FOREIGN KEY (posto_id) REFERENCES posto(id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS frentista (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        nome TEXT NOT NULL,
        cpf TEXT,
        telefone TEXT,
        data_admissao TEXT,
        ativo INTEGER DEFAULT 1,
        user_id TEXT,
        posto_id INTEGER NOT NULL,
        FOREIGN KEY (posto_id) REFERENCES posto(id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS turno (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        nome TEXT NOT NULL,
        horario_inicio TEXT NOT NULL, -- HH:MM
        horario_fim TEXT NOT NULL,    -- HH:MM
        ativo INTEGER,                -- NULL conta como ativo
        posto_id INTEGER,
        FOREIGN KEY (posto_id) REFERENCES posto(id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS cliente (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        nome TEXT NOT NULL,
        documento TEXT,
        posto_id INTEGER,
        ativo INTEGER DEFAULT 1,
        bloqueado INTEGER DEFAULT 0,
        FOREIGN KEY (posto_id) REFERENCES posto(id)
    );
    """,
    # Fechamento geral: um por (data, turno, posto)
    """
    CREATE TABLE IF NOT EXISTS fechamento (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        data TEXT NOT NULL,
        turno_id INTEGER NOT NULL,
        posto_id INTEGER NOT NULL,
        usuario_id INTEGER,
        status TEXT DEFAULT 'FECHADO',
        total_recebido REAL DEFAULT 0,
        total_vendas REAL DEFAULT 0,
        diferenca REAL DEFAULT 0,
        observacoes TEXT,
        UNIQUE (data, turno_id, posto_id),
        FOREIGN KEY (turno_id) REFERENCES turno(id),
        FOREIGN KEY (posto_id) REFERENCES posto(id),
        FOREIGN KEY (usuario_id) REFERENCES usuario(id)
    );
    """,
    # Contribuição de cada frentista: uma por (fechamento, frentista)
    """
    CREATE TABLE IF NOT EXISTS fechamento_frentista (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        fechamento_id INTEGER NOT NULL,
        frentista_id INTEGER NOT NULL,
        valor_cartao_debito REAL DEFAULT 0,
        valor_cartao_credito REAL DEFAULT 0,
        valor_nota REAL DEFAULT 0,
        valor_pix REAL DEFAULT 0,
        valor_dinheiro REAL DEFAULT 0,
        valor_moedas REAL DEFAULT 0,
        valor_conferido REAL DEFAULT 0,
        encerrante REAL DEFAULT 0,
        diferenca_calculada REAL DEFAULT 0,
        observacoes TEXT,
        posto_id INTEGER,
        UNIQUE (fechamento_id, frentista_id),
        FOREIGN KEY (fechamento_id) REFERENCES fechamento(id) ON DELETE CASCADE,
        FOREIGN KEY (frentista_id) REFERENCES frentista(id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS nota_prazo (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        cliente_id INTEGER NOT NULL,
        frentista_id INTEGER NOT NULL,
        data TEXT NOT NULL,
        valor REAL NOT NULL,
        posto_id INTEGER,
        fechamento_id INTEGER NOT NULL,
        criado_em TEXT NOT NULL,
        FOREIGN KEY (cliente_id) REFERENCES cliente(id),
        FOREIGN KEY (frentista_id) REFERENCES frentista(id),
        FOREIGN KEY (fechamento_id) REFERENCES fechamento(id) ON DELETE CASCADE
    );
    """,
    # Abertura de caixa do frentista: uma por dia
    """
    CREATE TABLE IF NOT EXISTS caixa_aberto (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        frentista_id INTEGER NOT NULL,
        turno_id INTEGER NOT NULL,
        posto_id INTEGER NOT NULL,
        data TEXT NOT NULL,
        aberto_em TEXT NOT NULL,
        UNIQUE (frentista_id, data),
        FOREIGN KEY (frentista_id) REFERENCES frentista(id),
        FOREIGN KEY (turno_id) REFERENCES turno(id)
    );
    """,
    "CREATE INDEX IF NOT EXISTS ix_frentista_user_id ON frentista (user_id);",
    "CREATE INDEX IF NOT EXISTS ix_nota_prazo_fechamento ON nota_prazo (fechamento_id, frentista_id);",
]

SCHEMA_V2: List[str] = [
    """
    CREATE TABLE IF NOT EXISTS produto (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        nome TEXT NOT NULL,
        preco_venda REAL NOT NULL DEFAULT 0,
        estoque_atual REAL NOT NULL DEFAULT 0,
        categoria TEXT,
        ativo INTEGER DEFAULT 1,
        posto_id INTEGER,
        FOREIGN KEY (posto_id) REFERENCES posto(id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS venda_produto (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        frentista_id INTEGER NOT NULL,
        produto_id INTEGER NOT NULL,
        quantidade REAL NOT NULL,
        valor_unitario REAL NOT NULL,
        valor_total REAL NOT NULL,
        data TEXT NOT NULL,
        posto_id INTEGER,
        FOREIGN KEY (frentista_id) REFERENCES frentista(id),
        FOREIGN KEY (produto_id) REFERENCES produto(id)
    );
    """,
]


def _ensure_column(conn, table: str, column: str, ddl: str) -> None:
    """Adiciona coluna se não existir."""
    cur = conn.execute(f"PRAGMA table_info({table});")
    cols = [r[1] for r in cur.fetchall()]  # r[1] é o nome da coluna
    if column not in cols:
        conn.execute(f"ALTER TABLE {table} ADD COLUMN {ddl};")


def _apply_v1(conn) -> None:
    for sql in SCHEMA_V1:
        conn.executescript(sql)


def _apply_v2(conn) -> None:
    for sql in SCHEMA_V2:
        conn.executescript(sql)
    _ensure_column(conn, "fechamento_frentista", "valor_baratao", "valor_baratao REAL DEFAULT 0")


def apply_migrations(db_path: str) -> None:
    """Aplica migrações incrementais de acordo com PRAGMA user_version."""
    with connect(db_path) as conn:
        ver = conn.execute("PRAGMA user_version;").fetchone()[0] or 0

        if ver < 1:
            _apply_v1(conn)
            conn.execute("PRAGMA user_version = 1;")
            ver = 1

        if ver < 2:
            _apply_v2(conn)
            conn.execute("PRAGMA user_version = 2;")
            ver = 2
