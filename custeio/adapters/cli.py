# custeio/adapters/cli.py
"""
CLI do motor de custeio (Typer).

Comandos principais:
- resumo        -> indicadores agregados do período
- valoracao     -> valoração por armazém (snapshot x replay), bin ou item
- giro          -> giro de estoque e dias médios para vender por item
- vendas        -> mais vendido, menos vendido e itens sem venda
- aging         -> idade do saldo por armazém ou bin
- divergencias  -> armazéns em que snapshot e replay não batem
- ignorados     -> movimentos descartados e o motivo
- receita       -> receita por cliente (requer --pedidos)
- converter     -> converte uma quantidade entre unidades
"""

from __future__ import annotations

from datetime import date
from typing import Any, List, Optional

import typer
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich import box

from custeio.config import DEFAULTS
from custeio.adapters.loaders import load_conversoes, load_unidades
from custeio.adapters.parsers import parse_numero
from custeio.domain.unidades import GrafoConversao, com_inversas
from custeio.usecases.gerar_relatorio import RelatorioCusteio, gerar_relatorio_de_arquivos
from custeio.usecases.relatorios import (
    relatorio_aging,
    relatorio_divergencias,
    relatorio_giro,
    relatorio_ignorados,
    relatorio_mais_vendidos,
    relatorio_receita,
    relatorio_resumo,
    relatorio_valoracao,
)


app = typer.Typer(help="Custeio de Estoque (CLI)")
console = Console()


# -----------------------
# util
# -----------------------

def _fmt(val: Any) -> str:
    """Formata valores no padrão brasileiro; None vira 'n/d' (indefinido)."""
    if val is None:
        return "n/d"
    if isinstance(val, bool):
        return "sim" if val else "não"
    if isinstance(val, int):
        return f"{val:,}".replace(",", ".")
    if isinstance(val, float):
        return f"{val:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
    return str(val)


def _display_table(columns: List[str], rows: List[list], msg: Optional[str], title: str = "Resultado") -> None:
    """Exibe (colunas, linhas, mensagem) em tabela formatada usando Rich."""
    if not rows:
        console.print(Panel(msg or "Nenhum dado encontrado", title=title, border_style="yellow"))
        return

    table = Table(title=title, box=box.ROUNDED)
    for i, col in enumerate(columns):
        numerica = any(isinstance(r[i], (int, float)) and not isinstance(r[i], bool) for r in rows)
        table.add_column(col, justify="right" if numerica else "left")
    for r in rows:
        table.add_row(*[_fmt(v) for v in r])
    console.print(table)
    if msg:
        console.print(f"[dim]{msg}[/dim]")


def _erro(e: Exception) -> None:
    console.print(Panel(str(e), title="Erro", border_style="red"))
    raise typer.Exit(code=1)


def _parse_data(s: Optional[str], nome: str) -> Optional[date]:
    if not s:
        return None
    try:
        return date.fromisoformat(s.strip())
    except ValueError:
        raise ValueError(f"{nome} inválido: {s!r} (use AAAA-MM-DD)") from None


# opções comuns aos relatórios
MOVIMENTOS = typer.Option(..., "--movimentos", "-m", help="CSV/XLSX de movimentos de estoque")
NIVEIS = typer.Option(..., "--niveis", "-n", help="CSV/XLSX do snapshot de saldos")
CONVERSOES = typer.Option(None, "--conversoes", "-c", help="CSV/XLSX de conversões de unidade")
UNIDADES = typer.Option(None, "--unidades", help="CSV/XLSX do cadastro de unidades")
ITENS = typer.Option(None, "--itens", "-i", help="CSV/XLSX do cadastro de itens")
PEDIDOS = typer.Option(None, "--pedidos", help="CSV/XLSX de pedidos (receita por cliente)")
METODO = typer.Option(DEFAULTS.metodo_custo, "--metodo", help="FIFO ou WA (média ponderada)")
INICIO = typer.Option(None, "--inicio", help="Início da janela (AAAA-MM-DD)")
FIM = typer.Option(None, "--fim", help="Fim da janela (AAAA-MM-DD, padrão: hoje)")
ESTRITO = typer.Option(False, "--estrito", help="Falha em conversão impossível ou camadas FIFO esgotadas")


def _gerar(
    movimentos: str,
    niveis: str,
    conversoes: Optional[str],
    unidades: Optional[str],
    itens: Optional[str],
    metodo: str,
    inicio: Optional[str],
    fim: Optional[str],
    estrito: bool,
    pedidos: Optional[str] = None,
) -> RelatorioCusteio:
    return gerar_relatorio_de_arquivos(
        movimentos_path=movimentos,
        niveis_path=niveis,
        conversoes_path=conversoes,
        unidades_path=unidades,
        itens_path=itens,
        pedidos_path=pedidos,
        metodo=metodo,
        inicio=_parse_data(inicio, "--inicio"),
        fim=_parse_data(fim, "--fim"),
        estrito=estrito,
    )


def _titulo(base: str, rel: RelatorioCusteio) -> str:
    return f"{base} ({rel.metodo.value}, {rel.janela.inicio.isoformat()} a {rel.janela.fim.isoformat()})"


# -----------------------
# relatórios
# -----------------------

@app.command("resumo")
def cmd_resumo(
    movimentos: str = MOVIMENTOS, niveis: str = NIVEIS, conversoes: Optional[str] = CONVERSOES,
    unidades: Optional[str] = UNIDADES, itens: Optional[str] = ITENS, pedidos: Optional[str] = PEDIDOS,
    metodo: str = METODO, inicio: Optional[str] = INICIO, fim: Optional[str] = FIM, estrito: bool = ESTRITO,
):
    """Indicadores agregados: COGS, valoração, giro e dias médios para vender."""
    try:
        rel = _gerar(movimentos, niveis, conversoes, unidades, itens, metodo, inicio, fim, estrito, pedidos)
    except (ValueError, OSError) as e:
        _erro(e)
    _display_table(*relatorio_resumo(rel), title=_titulo("Resumo do Período", rel))


@app.command("valoracao")
def cmd_valoracao(
    movimentos: str = MOVIMENTOS, niveis: str = NIVEIS, conversoes: Optional[str] = CONVERSOES,
    unidades: Optional[str] = UNIDADES, itens: Optional[str] = ITENS,
    metodo: str = METODO, inicio: Optional[str] = INICIO, fim: Optional[str] = FIM, estrito: bool = ESTRITO,
    por: str = typer.Option("armazem", "--por", help="armazem | bin | item"),
):
    """Valoração do estoque (snapshot x replay por armazém; snapshot por bin ou item)."""
    try:
        rel = _gerar(movimentos, niveis, conversoes, unidades, itens, metodo, inicio, fim, estrito)
        res = relatorio_valoracao(rel, por=por)
    except (ValueError, OSError) as e:
        _erro(e)
    _display_table(*res, title=_titulo(f"Valoração por {por}", rel))


@app.command("giro")
def cmd_giro(
    movimentos: str = MOVIMENTOS, niveis: str = NIVEIS, conversoes: Optional[str] = CONVERSOES,
    unidades: Optional[str] = UNIDADES, itens: Optional[str] = ITENS,
    metodo: str = METODO, inicio: Optional[str] = INICIO, fim: Optional[str] = FIM, estrito: bool = ESTRITO,
    top_n: Optional[int] = typer.Option(None, "--top", help="Mostra apenas os N primeiros"),
):
    """Giro de estoque por item (do maior para o menor)."""
    try:
        rel = _gerar(movimentos, niveis, conversoes, unidades, itens, metodo, inicio, fim, estrito)
    except (ValueError, OSError) as e:
        _erro(e)
    _display_table(*relatorio_giro(rel, top_n=top_n), title=_titulo("Giro de Estoque", rel))


@app.command("vendas")
def cmd_vendas(
    movimentos: str = MOVIMENTOS, niveis: str = NIVEIS, conversoes: Optional[str] = CONVERSOES,
    unidades: Optional[str] = UNIDADES, itens: Optional[str] = ITENS,
    metodo: str = METODO, inicio: Optional[str] = INICIO, fim: Optional[str] = FIM, estrito: bool = ESTRITO,
):
    """Mais vendido, menos vendido e quantidade de itens sem venda."""
    try:
        rel = _gerar(movimentos, niveis, conversoes, unidades, itens, metodo, inicio, fim, estrito)
    except (ValueError, OSError) as e:
        _erro(e)
    _display_table(*relatorio_mais_vendidos(rel), title=_titulo("Mais e Menos Vendidos", rel))


@app.command("aging")
def cmd_aging(
    movimentos: str = MOVIMENTOS, niveis: str = NIVEIS, conversoes: Optional[str] = CONVERSOES,
    unidades: Optional[str] = UNIDADES, itens: Optional[str] = ITENS,
    metodo: str = METODO, inicio: Optional[str] = INICIO, fim: Optional[str] = FIM, estrito: bool = ESTRITO,
    por: str = typer.Option("armazem", "--por", help="armazem | bin"),
    quantidade: bool = typer.Option(False, "--quantidade", help="Mostra quantidades em vez de valores"),
):
    """Idade do saldo desde a última entrada do item, por faixa de dias."""
    try:
        rel = _gerar(movimentos, niveis, conversoes, unidades, itens, metodo, inicio, fim, estrito)
        res = relatorio_aging(rel, por=por, valor=not quantidade)
    except (ValueError, OSError) as e:
        _erro(e)
    _display_table(*res, title=_titulo(f"Aging por {por}", rel))


@app.command("divergencias")
def cmd_divergencias(
    movimentos: str = MOVIMENTOS, niveis: str = NIVEIS, conversoes: Optional[str] = CONVERSOES,
    unidades: Optional[str] = UNIDADES, itens: Optional[str] = ITENS,
    metodo: str = METODO, inicio: Optional[str] = INICIO, fim: Optional[str] = FIM, estrito: bool = ESTRITO,
):
    """Armazéns em que a valoração do snapshot difere da valoração do replay."""
    try:
        rel = _gerar(movimentos, niveis, conversoes, unidades, itens, metodo, inicio, fim, estrito)
    except (ValueError, OSError) as e:
        _erro(e)
    _display_table(*relatorio_divergencias(rel), title=_titulo("Divergências Snapshot x Replay", rel))


@app.command("ignorados")
def cmd_ignorados(
    movimentos: str = MOVIMENTOS, niveis: str = NIVEIS, conversoes: Optional[str] = CONVERSOES,
    unidades: Optional[str] = UNIDADES, itens: Optional[str] = ITENS,
    metodo: str = METODO, inicio: Optional[str] = INICIO, fim: Optional[str] = FIM,
):
    """Movimentos descartados no replay, com o motivo."""
    try:
        rel = _gerar(movimentos, niveis, conversoes, unidades, itens, metodo, inicio, fim, False)
    except (ValueError, OSError) as e:
        _erro(e)
    _display_table(*relatorio_ignorados(rel), title=_titulo("Movimentos Ignorados", rel))


@app.command("receita")
def cmd_receita(
    movimentos: str = MOVIMENTOS, niveis: str = NIVEIS,
    pedidos: str = typer.Option(..., "--pedidos", help="CSV/XLSX de pedidos"),
    inicio: Optional[str] = INICIO, fim: Optional[str] = FIM,
    top_n: Optional[int] = typer.Option(None, "--top", help="Mostra apenas os N primeiros"),
):
    """Receita por cliente no período (cancelados e rascunhos ficam de fora)."""
    try:
        rel = _gerar(movimentos, niveis, None, None, None, DEFAULTS.metodo_custo, inicio, fim, False, pedidos)
    except (ValueError, OSError) as e:
        _erro(e)
    _display_table(*relatorio_receita(rel, top_n=top_n), title=_titulo("Receita por Cliente", rel))


# -----------------------
# unidades
# -----------------------

@app.command("converter")
def cmd_converter(
    quantidade: str = typer.Argument(..., help="Quantidade (aceita vírgula decimal)"),
    origem: str = typer.Argument(..., help="Unidade de origem (id ou código)"),
    destino: str = typer.Argument(..., help="Unidade de destino (id ou código)"),
    conversoes: str = typer.Option(..., "--conversoes", "-c", help="CSV/XLSX de conversões de unidade"),
    unidades: Optional[str] = UNIDADES,
    inversas: bool = typer.Option(False, "--inversas", help="Considera também o sentido inverso de cada aresta"),
):
    """Converte uma quantidade entre unidades usando o grafo de conversão."""
    try:
        qtd = parse_numero(quantidade)
        if qtd is None:
            raise ValueError(f"quantidade inválida: {quantidade!r}")
        cadastro = load_unidades(unidades) if unidades else {}
        arestas = load_conversoes(conversoes, cadastro)
        if inversas:
            arestas = com_inversas(arestas)
        grafo = GrafoConversao.construir(arestas, cadastro.values())
        convertido = grafo.converter(qtd, origem, destino)
    except (ValueError, OSError) as e:
        _erro(e)
    typer.echo(f"{_fmt(qtd)} {origem} = {_fmt(convertido)} {destino}")


# Entry point:
def main():
    app()


if __name__ == "__main__":
    main()
