# caixa/adapters/cli.py
"""
CLI do fechamento de caixa (Typer).

Comandos principais:
- migrate                 -> aplica migrações
- params set/get/show     -> gerencia parâmetros (posto selecionado)
- sessao                  -> verificação de sessão do frentista
- turno-atual             -> turno vigente do posto
- fechar                  -> confere e envia o fechamento do frentista
- desfazer                -> desfaz o envio do frentista
- fecharam                -> frentistas que já fecharam o turno
- historico               -> histórico do frentista (opcional: --exportar)
- venda                   -> registra venda de produto
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional, List, Dict, Any

import typer
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich import box

from caixa.config import DB_PATH, DEFAULTS
from caixa.domain.dinheiro import formata_moeda
from caixa.domain.erros import CaixaErro
from caixa.domain.models import Identidade
from caixa.domain.reconciliacao import FormularioFechamento, Situacao, validar_envio
from caixa.infra.migrations import apply_migrations
from caixa.infra.repositories import ClienteRepo, FrentistaRepo, ParamsRepo
from caixa.usecases.sessao import verificar_sessao_sync
from caixa.usecases.turno_atual import turno_atual
from caixa.usecases.enviar_fechamento import enviar_fechamento
from caixa.usecases.desfazer_fechamento import desfazer_fechamento
from caixa.usecases.notas import adicionar_nota
from caixa.usecases.vendas import registrar_venda
from caixa.usecases.relatorios import (
    exportar_historico,
    frentistas_que_fecharam,
    historico_frentista,
)


app = typer.Typer(help="Fechamento de Caixa (CLI)")
console = Console()

CORES_SITUACAO = {
    Situacao.FALTA: "bold red",
    Situacao.SOBRA: "bold blue",
    Situacao.BATEU: "bold green",
    Situacao.INDEFINIDO: "dim",
}


# -----------------------
# util
# -----------------------

def _display_table(data: List[Dict[str, Any]], title: str = "Resultado") -> None:
    """Exibe uma lista de dicionários em tabela Rich (moeda em pt-BR)."""
    if not data:
        console.print(Panel("Nenhum dado encontrado", title=title, border_style="yellow"))
        return

    table = Table(title=title, box=box.ROUNDED)
    columns = list(data[0].keys())
    for column in columns:
        if column in ("total_informado", "encerrante", "diferenca", "valor", "valor_total"):
            table.add_column(column, justify="right")
        elif column == "data":
            table.add_column(column, justify="center")
        else:
            table.add_column(column)

    for row in data:
        values = []
        for col in columns:
            val = row.get(col, "")
            if isinstance(val, Decimal):
                values.append(formata_moeda(val))
            elif col == "status":
                cor = "green" if val == "ok" else "red"
                values.append(f"[{cor}]{val}[/]")
            else:
                values.append(str(val))
        table.add_row(*values)

    console.print(table)


def _posto(db_path: str, posto_id: Optional[int]) -> Optional[int]:
    if posto_id is not None:
        return posto_id
    return ParamsRepo(db_path).get_int("posto_id")


def _sair_com_erro(msg: str) -> None:
    console.print(Panel(msg, title="Erro", border_style="red"))
    raise typer.Exit(code=1)


# -----------------------
# comandos de infra
# -----------------------

@app.command("migrate")
def cmd_migrate(db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite")):
    """Aplica as migrações do banco."""
    apply_migrations(db_path)
    typer.echo(f">> Migrações aplicadas em: {db_path}")


params_app = typer.Typer(help="Gerenciar parâmetros (posto selecionado).")
app.add_typer(params_app, name="params")


@params_app.command("set")
def cmd_params_set(
    posto_id: Optional[int] = typer.Option(None, help="Posto selecionado (ex.: 1)"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Define parâmetros (apenas os informados são alterados)."""
    items: List[tuple[str, str]] = []
    if posto_id is not None:
        items.append(("posto_id", str(posto_id)))
    if not items:
        typer.echo("Nada a alterar. Informe pelo menos um parâmetro.")
        raise typer.Exit(code=1)
    ParamsRepo(db_path).set_many(items)
    typer.echo(">> Parâmetros atualizados.")


@params_app.command("get")
def cmd_params_get(
    chave: str = typer.Argument(..., help="Ex.: posto_id"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Mostra um parâmetro específico."""
    val = ParamsRepo(db_path).get(chave)
    typer.echo("(None)" if val is None else val)


@params_app.command("show")
def cmd_params_show(db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite")):
    """Exibe os parâmetros efetivos e os padrões."""
    repo = ParamsRepo(db_path)
    table = Table(title="Parâmetros do Sistema")
    table.add_column("Parâmetro")
    table.add_column("Valor Atual")
    table.add_column("Valor Padrão")
    table.add_row("posto_id", str(repo.get("posto_id")), str(DEFAULTS.posto_id_padrao))
    table.add_row("timeout_sessao_s", "-", str(DEFAULTS.timeout_sessao_s))
    table.add_row("limite_historico", "-", str(DEFAULTS.limite_historico))
    table.add_row("permitir_atribuicao_fallback", "-", str(DEFAULTS.permitir_atribuicao_fallback))
    console.print(table)
    console.print(f"[dim]Banco de dados: {db_path}[/dim]")


# -----------------------
# sessão e turno
# -----------------------

@app.command("sessao")
def cmd_sessao(
    user_id: Optional[str] = typer.Option(None, "--user-id", help="Id do login"),
    email: Optional[str] = typer.Option(None, help="E-mail do login"),
    nome: Optional[str] = typer.Option(None, help="Nome informado no cadastro"),
    posto_id: Optional[int] = typer.Option(None, "--posto-id"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Verifica a sessão do frentista e abre o caixa do dia quando possível."""
    identidade = None
    if user_id:
        meta = {"nome": nome} if nome else {}
        if posto_id is not None:
            meta["posto_id"] = posto_id
        identidade = Identidade(user_id=user_id, email=email, metadata=meta)

    res = verificar_sessao_sync(identidade, _posto(db_path, posto_id), db_path=db_path)
    linhas = [f"Estado: [bold]{res.estado.value}[/]"]
    if res.frentista is not None:
        linhas.append(f"Frentista: {res.frentista.id} - {res.frentista.nome}")
    if res.frentista_criado:
        linhas.append("Cadastro de frentista criado automaticamente.")
    if res.turno is not None:
        linhas.append(f"Turno: {res.turno.nome}")
    if res.caixa_aberto:
        linhas.append("Caixa aberto hoje.")
    if res.mensagem:
        linhas.append(res.mensagem)
    console.print(Panel("\n".join(linhas), title="Sessão"))


@app.command("turno-atual")
def cmd_turno_atual(
    posto_id: Optional[int] = typer.Option(None, "--posto-id"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Mostra o turno vigente do posto."""
    turno = turno_atual(_posto(db_path, posto_id), db_path=db_path)
    if turno is None:
        typer.echo("Nenhum turno encontrado.")
        raise typer.Exit(code=1)
    typer.echo(f"{turno.id} - {turno.nome} ({turno.horario_inicio}-{turno.horario_fim})")


# -----------------------
# fechamento
# -----------------------

@app.command("fechar")
def cmd_fechar(
    encerrante: str = typer.Option("", help="Valor do encerrante (ex.: 1.000,00)"),
    debito: str = typer.Option("", help="Cartão de débito"),
    credito: str = typer.Option("", help="Cartão de crédito"),
    pix: str = typer.Option("", help="PIX"),
    dinheiro: str = typer.Option("", help="Dinheiro"),
    moedas: str = typer.Option("", help="Moedas"),
    baratao: str = typer.Option("", help="Baratão"),
    nota_prazo: str = typer.Option("", "--nota-prazo", help="Nota a prazo avulsa"),
    nota: List[str] = typer.Option([], "--nota", help="CLIENTE_ID:VALOR (pode repetir)"),
    obs: str = typer.Option("", help="Observações"),
    data: Optional[str] = typer.Option(None, help="YYYY-MM-DD (padrão: hoje)"),
    turno_id: Optional[int] = typer.Option(None, "--turno-id", help="Padrão: turno vigente"),
    posto_id: Optional[int] = typer.Option(None, "--posto-id"),
    frentista_id: Optional[int] = typer.Option(None, "--frentista-id"),
    user_id: Optional[str] = typer.Option(None, "--user-id", help="Id do login"),
    email: Optional[str] = typer.Option(None, help="E-mail do login"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Confere os valores informados e envia o fechamento do frentista."""
    posto = _posto(db_path, posto_id)
    if posto is None:
        _sair_com_erro("Nenhum posto selecionado. Use: params set --posto-id N")

    form = FormularioFechamento()
    for campo, valor in (
        ("valor_encerrante", encerrante),
        ("valor_cartao_debito", debito),
        ("valor_cartao_credito", credito),
        ("valor_pix", pix),
        ("valor_dinheiro", dinheiro),
        ("valor_moedas", moedas),
        ("valor_baratao", baratao),
        ("valor_nota_prazo", nota_prazo),
        ("observacoes", obs),
    ):
        form = form.com_campo(campo, valor)

    clientes = ClienteRepo(db_path)
    try:
        for item in nota:
            cid, _, valor = item.partition(":")
            cliente = clientes.get_by_id(int(cid))
            if cliente is None:
                _sair_com_erro(f"Cliente não encontrado: {cid}")
            form = adicionar_nota(form, cliente, valor)
        resumo = validar_envio(form)
    except CaixaErro as e:
        _sair_com_erro(e.mensagem)
    except ValueError:
        _sair_com_erro("Nota inválida. Use CLIENTE_ID:VALOR")

    if turno_id is None:
        turno = turno_atual(posto, db_path=db_path)
        if turno is None:
            _sair_com_erro("Nenhum turno cadastrado para o posto.")
        turno_id = turno.id

    table = Table(title="Conferência", box=box.ROUNDED)
    table.add_column("Campo")
    table.add_column("Valor", justify="right")
    table.add_row("Encerrante", formata_moeda(resumo.encerrante))
    table.add_row("Cartões", formata_moeda(resumo.total_cartao))
    table.add_row("Notas a prazo", formata_moeda(resumo.total_notas))
    table.add_row("Total informado", formata_moeda(resumo.total_informado))
    table.add_row("Diferença", formata_moeda(resumo.diferenca))
    cor = CORES_SITUACAO[resumo.situacao]
    table.add_row("Situação", f"[{cor}]{resumo.situacao.value}[/]")
    console.print(table)

    identidade = Identidade(user_id=user_id, email=email) if user_id else None
    dados = form.para_envio(
        data=data or date.today().isoformat(),
        turno_id=turno_id,
        posto_id=posto,
        frentista_id=frentista_id,
    )
    res = enviar_fechamento(dados, identidade, db_path=db_path)
    if not res.success:
        _sair_com_erro(res.message)
    console.print(Panel(f"{res.message}\nFechamento: {res.fechamento_id}", border_style="green"))


@app.command("desfazer")
def cmd_desfazer(
    frentista_id: int = typer.Option(..., "--frentista-id"),
    turno_id: int = typer.Option(..., "--turno-id"),
    data: Optional[str] = typer.Option(None, help="YYYY-MM-DD (padrão: hoje)"),
    posto_id: Optional[int] = typer.Option(None, "--posto-id"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Desfaz o envio do frentista no turno."""
    posto = _posto(db_path, posto_id)
    if posto is None:
        _sair_com_erro("Nenhum posto selecionado. Use: params set --posto-id N")
    res = desfazer_fechamento(frentista_id, data or date.today().isoformat(), turno_id, posto, db_path=db_path)
    if not res.success:
        _sair_com_erro(res.message)
    typer.echo(f">> {res.message}")


@app.command("fecharam")
def cmd_fecharam(
    turno_id: int = typer.Option(..., "--turno-id"),
    data: Optional[str] = typer.Option(None, help="YYYY-MM-DD (padrão: hoje)"),
    posto_id: Optional[int] = typer.Option(None, "--posto-id"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Lista os frentistas que já fecharam o turno."""
    posto = _posto(db_path, posto_id)
    ids = frentistas_que_fecharam(data or date.today().isoformat(), turno_id, posto, db_path=db_path)
    nomes = {f.id: f.nome for f in FrentistaRepo(db_path).get_all_by_posto(posto)}
    _display_table([{"frentista_id": i, "nome": nomes.get(i, "?")} for i in ids], title="Já fecharam")


@app.command("historico")
def cmd_historico(
    frentista_id: int = typer.Option(..., "--frentista-id"),
    limite: int = typer.Option(DEFAULTS.limite_historico, help="Quantidade de envios"),
    exportar: Optional[str] = typer.Option(None, help="Arquivo .xlsx ou .csv"),
    posto_id: Optional[int] = typer.Option(None, "--posto-id"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Histórico de fechamentos do frentista."""
    linhas = historico_frentista(frentista_id, _posto(db_path, posto_id), limite=limite, db_path=db_path)
    _display_table(linhas, title="Histórico de Fechamentos")
    if exportar:
        path = exportar_historico(linhas, exportar)
        typer.echo(f">> Histórico exportado em: {path}")


@app.command("venda")
def cmd_venda(
    frentista_id: int = typer.Option(..., "--frentista-id"),
    produto_id: int = typer.Option(..., "--produto-id"),
    quantidade: float = typer.Option(1, help="Quantidade vendida"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Registra a venda de um produto e baixa o estoque."""
    try:
        venda = registrar_venda(frentista_id, produto_id, quantidade, db_path=db_path)
    except CaixaErro as e:
        _sair_com_erro(e.mensagem)
    except LookupError as e:
        _sair_com_erro(str(e))
    typer.echo(f">> Venda registrada: {venda.produto_nome} x{venda.quantidade:g} = {formata_moeda(venda.valor_total)}")


def main():
    app()


if __name__ == "__main__":
    main()
