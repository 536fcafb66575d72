# custeio/domain/analytics.py
"""
Indicadores do período: giro de estoque, dias médios para vender,
mais/menos vendidos e aging por armazém e por bin.

Combina a saída do ledger (vendidos, recebidos, COGS) com o snapshot
(saldo final). Razões com denominador zero saem como ``None``
("desconhecido"), nunca como 0, NaN ou infinito.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from math import floor
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from custeio.config import FAIXAS_AGING
from custeio.domain.ledger import IN, classificar_movimento, quantidade_base
from custeio.domain.models import Item, Movimento, NivelEstoque, como_utc


def indice(itens: Optional[Iterable[Item]]) -> Dict[str, Item]:
    return {i.id: i for i in itens or []}


# ----------------------
# unidades início/fim
# ----------------------

def unidades_inicio_fim(
    niveis: Iterable[NivelEstoque],
    vendidos: Mapping[str, float],
    recebidos: Mapping[str, float],
) -> Tuple[Dict[str, float], Dict[str, float]]:
    """Reconstrói o saldo de início a partir do saldo final e do fluxo do período.

    fim    = soma do saldo disponível no snapshot
    inicio = max(0, fim + vendidos − recebidos)
    """
    fim: Dict[str, float] = defaultdict(float)
    for n in niveis:
        fim[n.item_id] += float(n.qtd_disponivel or 0.0)
    inicio: Dict[str, float] = {}
    for item_id in set(fim) | set(vendidos) | set(recebidos):
        e = fim.get(item_id, 0.0)
        inicio[item_id] = max(0.0, e + vendidos.get(item_id, 0.0) - recebidos.get(item_id, 0.0))
    return inicio, dict(fim)


def _giro(vendido: float, inicio: float, fim: float, dias: int) -> Tuple[float, float, Optional[float]]:
    media = (inicio + fim) / 2
    giro = vendido / media if media > 0 else 0.0
    venda_diaria = vendido / dias if dias > 0 else 0.0
    dias_para_vender = media / venda_diaria if venda_diaria > 0 else None
    return media, giro, dias_para_vender


# ----------------------
# giro
# ----------------------

@dataclass(frozen=True)
class GiroItem:
    item_id: str
    nome: Optional[str]
    sku: Optional[str]
    vendidos: float
    unidades_inicio: float
    unidades_fim: float
    media_unidades: float
    giro: float
    dias_medios_venda: Optional[float]
    cogs: float = 0.0


def giro_por_item(
    inicio: Mapping[str, float],
    fim: Mapping[str, float],
    vendidos: Mapping[str, float],
    cogs_por_item: Mapping[str, float],
    dias: int,
    itens: Optional[Mapping[str, Item]] = None,
) -> List[GiroItem]:
    """Uma linha por item, ordenada pelo maior giro.

    Com cadastro de itens, itens fora do cadastro ficam de fora.
    """
    ids = set(inicio) | set(fim) | set(vendidos)
    linhas: List[GiroItem] = []
    for item_id in ids:
        it = None
        if itens is not None:
            it = itens.get(item_id)
            if it is None:
                continue
        v = vendidos.get(item_id, 0.0)
        b = inicio.get(item_id, 0.0)
        e = fim.get(item_id, 0.0)
        media, giro, dias_venda = _giro(v, b, e, dias)
        linhas.append(
            GiroItem(
                item_id=item_id,
                nome=it.nome if it else None,
                sku=it.sku if it else None,
                vendidos=v,
                unidades_inicio=b,
                unidades_fim=e,
                media_unidades=media,
                giro=giro,
                dias_medios_venda=dias_venda,
                cogs=cogs_por_item.get(item_id, 0.0),
            )
        )
    linhas.sort(key=lambda r: (-r.giro, r.item_id))
    return linhas


@dataclass(frozen=True)
class ResumoGiro:
    total_vendido: float
    estoque_medio: float
    giro: float
    dias_medios_venda: Optional[float]
    dias: int
    valor_atual: float
    cogs_total: float


def resumo_giro(
    linhas: Sequence[GiroItem],
    dias: int,
    valor_atual: float,
    cogs_por_item: Mapping[str, float],
) -> ResumoGiro:
    """Mesmas fórmulas do giro por item, agregadas sobre todas as linhas."""
    total_vendido = sum(r.vendidos for r in linhas)
    total_inicio = sum(r.unidades_inicio for r in linhas)
    total_fim = sum(r.unidades_fim for r in linhas)
    media, giro, dias_venda = _giro(total_vendido, total_inicio, total_fim, dias)
    return ResumoGiro(
        total_vendido=total_vendido,
        estoque_medio=media,
        giro=giro,
        dias_medios_venda=dias_venda,
        dias=dias,
        valor_atual=valor_atual,
        cogs_total=sum(cogs_por_item.values()),
    )


# ----------------------
# mais / menos vendidos
# ----------------------

@dataclass(frozen=True)
class Vendedor:
    item_id: str
    qtd: float
    nome: Optional[str] = None


@dataclass(frozen=True)
class MaisMenosVendidos:
    melhor: Optional[Vendedor]
    pior: Optional[Vendedor]
    sem_vendas: int


def mais_e_menos_vendidos(
    vendidos: Mapping[str, float],
    itens: Optional[Mapping[str, Item]] = None,
    ids_conhecidos: Optional[Set[str]] = None,
) -> MaisMenosVendidos:
    """Item com mais e com menos unidades vendidas (apenas vendas não nulas).

    `sem_vendas` = itens distintos − itens com alguma venda. Itens distintos
    vêm do cadastro quando informado; senão de `ids_conhecidos` ∪ vendidos.
    """
    linhas = [
        Vendedor(item_id=i, qtd=q, nome=(itens[i].nome if itens else None))
        for i, q in vendidos.items()
        if q > 0 and (itens is None or i in itens)
    ]
    if itens is not None:
        total = len(itens)
    else:
        total = len(set(ids_conhecidos or ()) | {v.item_id for v in linhas})
    if not linhas:
        return MaisMenosVendidos(melhor=None, pior=None, sem_vendas=total)
    linhas.sort(key=lambda v: (-v.qtd, v.item_id))
    return MaisMenosVendidos(melhor=linhas[0], pior=linhas[-1], sem_vendas=total - len(linhas))


# ----------------------
# aging
# ----------------------

@dataclass
class LinhaAging:
    armazem_id: str
    bin_id: Optional[str] = None
    qtd: float = 0.0
    valor: float = 0.0
    por_faixa: Dict[str, Dict[str, float]] = field(default_factory=dict)


@dataclass(frozen=True)
class ResultadoAging:
    faixas: Tuple[str, ...]
    por_armazem: List[LinhaAging]
    por_bin: List[LinhaAging]


def ultima_entrada_por_item(movimentos: Iterable[Movimento], ate: datetime) -> Dict[str, datetime]:
    """Instante da entrada mais recente de cada item (global, todos os armazéns).

    Entrada segue a mesma regra do ledger: recebimento ou ajuste positivo.
    """
    ate = como_utc(ate)
    ultima: Dict[str, datetime] = {}
    for m in movimentos:
        if classificar_movimento(m) != IN or quantidade_base(m) is None:
            continue
        inst = m.instante
        if inst > ate:
            continue
        prev = ultima.get(m.item_id)
        if prev is None or inst > prev:
            ultima[m.item_id] = inst
    return ultima


def faixa_de(idade_dias: Optional[int], faixas=FAIXAS_AGING) -> str:
    """Rótulo da faixa para a idade; sem histórico de entrada vai para a mais antiga."""
    if idade_dias is None:
        return faixas[-1][0]
    for rotulo, minimo, maximo in faixas:
        if idade_dias >= minimo and (maximo is None or idade_dias <= maximo):
            return rotulo
    return faixas[-1][0]


def aging(
    niveis: Iterable[NivelEstoque],
    movimentos: Iterable[Movimento],
    referencia: datetime,
    faixas=FAIXAS_AGING,
) -> ResultadoAging:
    """Classifica o saldo disponível por idade desde a última entrada do item.

    Produz duas quebras (armazém e armazém+bin), cada uma com quantidade
    e valor por faixa. Ordenadas pelo maior valor.
    """
    ref = como_utc(referencia)
    ultima = ultima_entrada_por_item(movimentos, ref)
    rotulos = tuple(f[0] for f in faixas)

    def _nova(armazem_id: str, bin_id: Optional[str]) -> LinhaAging:
        return LinhaAging(
            armazem_id=armazem_id,
            bin_id=bin_id,
            por_faixa={r: {"qtd": 0.0, "valor": 0.0} for r in rotulos},
        )

    por_armazem: Dict[str, LinhaAging] = {}
    por_bin: Dict[Tuple[str, Optional[str]], LinhaAging] = {}
    for n in niveis:
        qtd = float(n.qtd_disponivel or 0.0)
        if qtd <= 0:
            continue
        valor = qtd * float(n.custo_medio or 0.0)
        t = ultima.get(n.item_id)
        idade = max(0, floor((ref - t).total_seconds() / 86400)) if t else None
        rotulo = faixa_de(idade, faixas)

        chave_bin = (n.armazem_id, n.bin_id or None)
        linhas = (
            por_armazem.setdefault(n.armazem_id, _nova(n.armazem_id, None)),
            por_bin.setdefault(chave_bin, _nova(*chave_bin)),
        )
        for linha in linhas:
            linha.qtd += qtd
            linha.valor += valor
            linha.por_faixa[rotulo]["qtd"] += qtd
            linha.por_faixa[rotulo]["valor"] += valor

    return ResultadoAging(
        faixas=rotulos,
        por_armazem=sorted(por_armazem.values(), key=lambda r: -r.valor),
        por_bin=sorted(por_bin.values(), key=lambda r: -r.valor),
    )
