# custeio/usecases/gerar_relatorio.py
"""
UC: Gerar o relatório de custeio de um período.

Fluxo (recalculado do zero a cada chamada):
1) Constrói o grafo de conversão a partir das arestas.
2) Normaliza os movimentos para a unidade base de cada item.
3) Replay do ledger (FIFO ou média) na janela pedida.
4) Valoração independente a partir do snapshot de saldos.
5) Indicadores: giro, mais/menos vendidos, aging, divergências, receita.

Obs.:
- Movimentos problemáticos não derrubam o relatório: saem em `ignorados`
  com o motivo. Em modo estrito, conversão impossível e camadas FIFO
  esgotadas levantam exceção.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from custeio.config import DEFAULTS, DefaultConfig
from custeio.adapters.loaders import (
    load_conversoes,
    load_itens,
    load_movimentos,
    load_niveis,
    load_pedidos,
    load_unidades,
)
from custeio.domain.analytics import (
    GiroItem,
    MaisMenosVendidos,
    ResultadoAging,
    ResumoGiro,
    aging,
    giro_por_item,
    indice,
    mais_e_menos_vendidos,
    resumo_giro,
    unidades_inicio_fim,
)
from custeio.domain.ledger import LedgerCusto, ResultadoLedger
from custeio.domain.models import (
    ArestaConversao,
    Ignorado,
    Item,
    Janela,
    MetodoCusto,
    Movimento,
    NivelEstoque,
    UnidadeMedida,
)
from custeio.domain.normalizacao import normalizar_movimentos
from custeio.domain.receita import ReceitaCliente, receita_por_cliente
from custeio.domain.unidades import GrafoConversao
from custeio.domain.valoracao import Divergencia, ValoracaoSnapshot, divergencias_valoracao, valorar_snapshot
from custeio.infra.logger import log_ledger_event, log_system_event, system_logger


@dataclass(frozen=True)
class RelatorioCusteio:
    """Modelo final do relatório, chaveado por ids estáveis (armazém, bin, item)."""
    metodo: MetodoCusto
    janela: Janela
    ledger: ResultadoLedger
    snapshot: ValoracaoSnapshot
    unidades_inicio: Dict[str, float]
    unidades_fim: Dict[str, float]
    giro: List[GiroItem]
    resumo: ResumoGiro
    vendas: MaisMenosVendidos
    aging: ResultadoAging
    divergencias: List[Divergencia]
    ignorados: List[Ignorado]
    receita: List[ReceitaCliente] = field(default_factory=list)
    receita_total: float = 0.0
    itens: Dict[str, Item] = field(default_factory=dict)

    def contagem_ignorados(self) -> Dict[str, int]:
        out: Dict[str, int] = {}
        for r in self.ignorados:
            out[r.motivo] = out.get(r.motivo, 0) + 1
        return out


def resolver_janela(
    inicio: Optional[date] = None,
    fim: Optional[date] = None,
    config: DefaultConfig = DEFAULTS,
) -> Janela:
    """Monta a janela a partir das datas informadas (faltantes vêm do padrão)."""
    if inicio is None:
        return Janela.ultimos_dias(config.janela_dias, hoje=fim)
    if fim is None:
        fim = datetime.now(timezone.utc).date()
    return Janela(inicio=inicio, fim=fim)


def _pedidos_na_janela(pedidos: Iterable[Mapping[str, Any]], janela: Janela) -> List[Mapping[str, Any]]:
    # pedido sem data é considerado já filtrado por quem buscou
    return [p for p in pedidos if p.get("criado_em") is None or janela.contem(p.get("criado_em"))]


def gerar_relatorio(
    movimentos: Sequence[Movimento],
    niveis: Sequence[NivelEstoque],
    arestas: Optional[Iterable[ArestaConversao]] = None,
    metodo: Optional[MetodoCusto | str] = None,
    janela: Optional[Janela] = None,
    itens: Optional[Iterable[Item]] = None,
    pedidos: Optional[Iterable[Mapping[str, Any]]] = None,
    estrito: bool = False,
    config: DefaultConfig = DEFAULTS,
    unidades: Optional[Iterable[UnidadeMedida]] = None,
) -> RelatorioCusteio:
    """
    Executa o cálculo completo do período.

    Args:
        movimentos: Movimentos na ordem de busca (não precisam estar ordenados).
        niveis: Snapshot de saldos por (armazém, bin, item).
        arestas: Arestas de conversão de unidade.
        metodo: 'FIFO' ou 'WA' (padrão: config.metodo_custo).
        janela: Janela do relatório (padrão: últimos config.janela_dias dias).
        itens: Cadastro de itens (nomes, unidade base). Restringe giro e vendas.
        pedidos: Pedidos/vendas de balcão para receita por cliente.
        estrito: Propaga `SemCaminhoConversao` e `CamadasInsuficientes`.
        unidades: Cadastro de unidades, para casar id e código da mesma unidade.

    Returns:
        RelatorioCusteio
    """
    metodo = MetodoCusto.parse(metodo or config.metodo_custo)
    janela = janela or resolver_janela(config=config)
    log_system_event("gerar_relatorio_start", {
        "metodo": metodo.value,
        "inicio": janela.inicio.isoformat(),
        "fim": janela.fim.isoformat(),
        "movimentos": len(movimentos),
        "niveis": len(niveis),
        "estrito": estrito,
    })

    try:
        grafo = GrafoConversao.construir(arestas, unidades)
        system_logger.info(f"REPORT_CUSTEIO: Grafo com {len(grafo.unidades)} unidades")

        idx = indice(itens) if itens is not None else None
        base_por_item = {i.id: i.unidade_base_id for i in (idx or {}).values() if i.unidade_base_id}
        normalizados, ign_norm = normalizar_movimentos(movimentos, grafo, base_por_item, estrito=estrito)

        ledger = LedgerCusto(metodo, janela, estrito=estrito, config=config).replay(normalizados)
        ignorados = ign_norm + ledger.ignorados
        for r in ignorados:
            log_ledger_event("ignorado", r.movimento_id, level="warning", motivo=r.motivo, detalhe=r.detalhe)
        for a in ledger.aplicados:
            if a.qtd_descoberta > 0:
                log_ledger_event("descoberto", a.movimento_id, level="warning", qtd_descoberta=a.qtd_descoberta)
        system_logger.info(
            f"REPORT_CUSTEIO: Replay {metodo.value} - {len(ledger.aplicados)} aplicados, "
            f"{len(ignorados)} ignorados"
        )

        snapshot = valorar_snapshot(niveis)
        inicio, fim = unidades_inicio_fim(niveis, ledger.vendidos_por_item, ledger.recebidos_por_item)
        linhas_giro = giro_por_item(inicio, fim, ledger.vendidos_por_item, ledger.cogs_por_item, janela.dias, itens=idx)
        resumo = resumo_giro(linhas_giro, janela.dias, snapshot.total, ledger.cogs_por_item)
        vendas = mais_e_menos_vendidos(ledger.vendidos_por_item, itens=idx, ids_conhecidos=set(inicio) | set(fim))
        res_aging = aging(niveis, normalizados, janela.fim_dt)

        divergencias = divergencias_valoracao(snapshot, ledger.valoracao_por_armazem)
        for d in divergencias:
            log_ledger_event(
                "divergencia", level="warning", armazem_id=d.armazem_id,
                valor_snapshot=d.valor_snapshot, valor_replay=d.valor_replay,
            )

        receita: List[ReceitaCliente] = []
        receita_total = 0.0
        if pedidos is not None:
            na_janela = _pedidos_na_janela(pedidos, janela)
            nomes = {p["cliente_id"]: p["cliente_nome"] for p in na_janela if p.get("cliente_id") and p.get("cliente_nome")}
            receita, receita_total = receita_por_cliente(na_janela, nomes=nomes)

        rel = RelatorioCusteio(
            metodo=metodo,
            janela=janela,
            ledger=ledger,
            snapshot=snapshot,
            unidades_inicio=inicio,
            unidades_fim=fim,
            giro=linhas_giro,
            resumo=resumo,
            vendas=vendas,
            aging=res_aging,
            divergencias=divergencias,
            ignorados=ignorados,
            receita=receita,
            receita_total=receita_total,
            itens=idx or {},
        )

        log_system_event("gerar_relatorio_success", {
            "cogs_total": ledger.cogs_total,
            "valor_snapshot": snapshot.total,
            "valor_replay": ledger.valoracao_total,
            "ignorados": rel.contagem_ignorados(),
            "divergencias": len(divergencias),
        })
        return rel

    except Exception as e:
        error_msg = str(e)
        log_system_event("gerar_relatorio_error", {
            "metodo": metodo.value,
            "error": error_msg,
        }, level="error")
        system_logger.error(f"REPORT_CUSTEIO: Erro - {error_msg}")
        raise


def gerar_relatorio_de_arquivos(
    movimentos_path: str,
    niveis_path: str,
    conversoes_path: Optional[str] = None,
    unidades_path: Optional[str] = None,
    itens_path: Optional[str] = None,
    pedidos_path: Optional[str] = None,
    metodo: Optional[str] = None,
    inicio: Optional[date] = None,
    fim: Optional[date] = None,
    estrito: bool = False,
    config: DefaultConfig = DEFAULTS,
) -> RelatorioCusteio:
    """Lê as planilhas (CSV/XLSX) e gera o relatório."""
    log_system_event("gerar_relatorio_de_arquivos", {
        "movimentos": movimentos_path,
        "niveis": niveis_path,
        "conversoes": conversoes_path,
        "itens": itens_path,
    })
    unidades = load_unidades(unidades_path) if unidades_path else None
    arestas = load_conversoes(conversoes_path, unidades) if conversoes_path else None
    return gerar_relatorio(
        movimentos=load_movimentos(movimentos_path),
        niveis=load_niveis(niveis_path),
        arestas=arestas,
        metodo=metodo,
        janela=resolver_janela(inicio, fim, config=config),
        itens=load_itens(itens_path) if itens_path else None,
        pedidos=load_pedidos(pedidos_path) if pedidos_path else None,
        estrito=estrito,
        config=config,
        unidades=unidades.values() if unidades else None,
    )
