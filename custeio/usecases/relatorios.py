# custeio/usecases/relatorios.py
"""
Visões tabulares do relatório de custeio:
- resumo do período (COGS, valoração, giro agregado)
- valoração por armazém / bin / item (snapshot x replay)
- giro por item
- mais e menos vendidos
- aging por armazém ou por bin
- divergências snapshot x replay
- movimentos ignorados
- receita por cliente

Todas retornam (colunas, linhas, mensagem). Razões indefinidas ficam
como None nas linhas; quem exibe decide como mostrar "desconhecido".
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from custeio.usecases.gerar_relatorio import RelatorioCusteio
from custeio.infra.logger import system_logger

Tabela = Tuple[List[str], List[list], Optional[str]]


def _nome_item(rel: RelatorioCusteio, item_id: str) -> str:
    it = rel.itens.get(item_id)
    return (it.nome if it and it.nome else "") or ""


# ----------------------
# 1) Resumo
# ----------------------

def relatorio_resumo(rel: RelatorioCusteio) -> Tabela:
    """Indicadores agregados do período, uma linha por indicador."""
    r = rel.resumo
    columns = ["Indicador", "Valor"]
    rows = [
        ["Método", rel.metodo.value],
        ["Período", f"{rel.janela.inicio.isoformat()} a {rel.janela.fim.isoformat()}"],
        ["Dias no período", r.dias],
        ["COGS do período", r.cogs_total],
        ["Valor atual (snapshot)", r.valor_atual],
        ["Valor ao fim (replay)", rel.ledger.valoracao_total],
        ["Unidades vendidas", r.total_vendido],
        ["Estoque médio", r.estoque_medio],
        ["Giro", r.giro],
        ["Dias médios para vender", r.dias_medios_venda],
        ["Movimentos aplicados", len(rel.ledger.aplicados)],
        ["Movimentos ignorados", len(rel.ignorados)],
    ]
    if rel.receita:
        rows.append(["Receita no período", rel.receita_total])
    system_logger.info(f"REPORT_RESUMO: {rel.metodo.value} giro={r.giro:.4f} cogs={r.cogs_total:.2f}")
    return columns, rows, None


# ----------------------
# 2) Valoração
# ----------------------

def relatorio_valoracao(rel: RelatorioCusteio, por: str = "armazem") -> Tabela:
    """
    Valoração do estoque.
    - por="armazem": snapshot e replay lado a lado
    - por="bin":     snapshot por (armazém, bin)
    - por="item":    snapshot por item
    """
    por = (por or "armazem").strip().lower()
    snap = rel.snapshot
    if por == "bin":
        columns = ["Armazém", "Bin", "Valor"]
        rows = [[a, b or "", v] for (a, b), v in sorted(snap.por_bin.items(), key=lambda kv: -kv[1])]
    elif por == "item":
        columns = ["Item", "Nome", "Valor"]
        rows = [[i, _nome_item(rel, i), v] for i, v in sorted(snap.por_item.items(), key=lambda kv: -kv[1])]
    elif por == "armazem":
        columns = ["Armazém", "Valor (snapshot)", "Valor (replay)"]
        replay = rel.ledger.valoracao_por_armazem
        armazens = sorted(set(snap.por_armazem) | set(replay))
        rows = [[a, snap.por_armazem.get(a, 0.0), replay.get(a, 0.0)] for a in armazens]
        rows.sort(key=lambda r: -r[1])
    else:
        raise ValueError(f"agrupamento desconhecido: {por!r} (use armazem, bin ou item)")

    system_logger.info(f"REPORT_VALORACAO: por={por} linhas={len(rows)} total={snap.total:.2f}")
    msg = None
    if not rows:
        msg = "Nenhum saldo valorado encontrado."
    return columns, rows, msg


# ----------------------
# 3) Giro
# ----------------------

def relatorio_giro(rel: RelatorioCusteio, top_n: Optional[int] = None) -> Tabela:
    """Giro por item, do maior para o menor."""
    linhas = rel.giro[:top_n] if top_n else rel.giro
    columns = [
        "Item", "Nome", "SKU", "Vendidos", "Início", "Fim",
        "Estoque Médio", "Giro", "Dias p/ Vender", "COGS",
    ]
    rows = [
        [
            g.item_id,
            g.nome or "",
            g.sku or "",
            g.vendidos,
            g.unidades_inicio,
            g.unidades_fim,
            g.media_unidades,
            g.giro,
            g.dias_medios_venda,
            g.cogs,
        ]
        for g in linhas
    ]
    msg = None
    if not rows:
        msg = "Nenhum item com estoque ou venda no período."
    return columns, rows, msg


# ----------------------
# 4) Mais / menos vendidos
# ----------------------

def relatorio_mais_vendidos(rel: RelatorioCusteio) -> Tabela:
    v = rel.vendas
    columns = ["Posição", "Item", "Nome", "Quantidade"]
    rows: List[list] = []
    if v.melhor:
        rows.append(["Mais vendido", v.melhor.item_id, v.melhor.nome or "", v.melhor.qtd])
    if v.pior:
        rows.append(["Menos vendido", v.pior.item_id, v.pior.nome or "", v.pior.qtd])
    rows.append(["Sem vendas", "", "", v.sem_vendas])
    msg = None
    if v.melhor is None:
        msg = "Nenhuma venda registrada no período."
    return columns, rows, msg


# ----------------------
# 5) Aging
# ----------------------

def relatorio_aging(rel: RelatorioCusteio, por: str = "armazem", valor: bool = True) -> Tabela:
    """
    Aging do saldo disponível.
    Cada faixa vira uma coluna com o valor (valor=True) ou a quantidade.
    """
    por = (por or "armazem").strip().lower()
    if por not in {"armazem", "bin"}:
        raise ValueError(f"agrupamento desconhecido: {por!r} (use armazem ou bin)")
    campo = "valor" if valor else "qtd"
    faixas = list(rel.aging.faixas)
    linhas = rel.aging.por_bin if por == "bin" else rel.aging.por_armazem

    columns = ["Armazém"] + (["Bin"] if por == "bin" else []) + ["Total"] + faixas
    rows = []
    for ln in linhas:
        row = [ln.armazem_id] + ([ln.bin_id or ""] if por == "bin" else [])
        row.append(ln.valor if valor else ln.qtd)
        row.extend(ln.por_faixa[f][campo] for f in faixas)
        rows.append(row)

    system_logger.info(f"REPORT_AGING: por={por} campo={campo} linhas={len(rows)}")
    msg = None
    if not rows:
        msg = "Nenhum saldo disponível para classificar."
    return columns, rows, msg


# ----------------------
# 6) Divergências
# ----------------------

def relatorio_divergencias(rel: RelatorioCusteio) -> Tabela:
    columns = ["Armazém", "Snapshot", "Replay", "Diferença"]
    rows = [[d.armazem_id, d.valor_snapshot, d.valor_replay, d.diferenca] for d in rel.divergencias]
    if rows:
        system_logger.warning(f"REPORT_DIVERGENCIAS: {len(rows)} armazéns com divergência")
    msg = None
    if not rows:
        msg = "Snapshot e replay conferem em todos os armazéns."
    return columns, rows, msg


# ----------------------
# 7) Ignorados
# ----------------------

def relatorio_ignorados(rel: RelatorioCusteio) -> Tabela:
    columns = ["Movimento", "Motivo", "Detalhe"]
    rows = [[r.movimento_id, r.motivo, r.detalhe or ""] for r in rel.ignorados]
    msg = None
    if not rows:
        msg = "Nenhum movimento ignorado."
    return columns, rows, msg


# ----------------------
# 8) Receita
# ----------------------

def relatorio_receita(rel: RelatorioCusteio, top_n: Optional[int] = None) -> Tabela:
    linhas = rel.receita[:top_n] if top_n else rel.receita
    columns = ["Cliente", "Nome", "Receita", "% do Total"]
    total = rel.receita_total
    rows = [
        [r.cliente_id, r.nome or "", r.valor, (r.valor / total * 100) if total else None]
        for r in linhas
    ]
    msg = None
    if not rows:
        msg = "Nenhum pedido no período."
    return columns, rows, msg
