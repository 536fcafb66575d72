# custeio/domain/valoracao.py
"""
Valoração atual a partir dos saldos materializados (snapshot).

Independente do ledger: serve para comparar "snapshot atual" com
"replay até o fim da janela". Divergências entre os dois indicam que a
manutenção do snapshot se afastou do log de movimentos.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from custeio.domain.models import NivelEstoque


ChaveBin = Tuple[str, Optional[str]]  # (armazem_id, bin_id)


@dataclass(frozen=True)
class ValoracaoSnapshot:
    total: float
    por_armazem: Dict[str, float]
    por_bin: Dict[ChaveBin, float]
    por_item: Dict[str, float]


def valorar_snapshot(niveis: Iterable[NivelEstoque]) -> ValoracaoSnapshot:
    """Soma `qtd_disponivel × custo_medio` por armazém, bin e item.

    Linhas com valor zero ficam de fora (não poluem a quebra por bin).
    """
    total = 0.0
    por_armazem: Dict[str, float] = defaultdict(float)
    por_bin: Dict[ChaveBin, float] = defaultdict(float)
    por_item: Dict[str, float] = defaultdict(float)
    for n in niveis:
        valor = float(n.qtd_disponivel or 0.0) * float(n.custo_medio or 0.0)
        if valor == 0:
            continue
        total += valor
        por_armazem[n.armazem_id] += valor
        por_bin[(n.armazem_id, n.bin_id or None)] += valor
        por_item[n.item_id] += valor
    return ValoracaoSnapshot(
        total=total,
        por_armazem=dict(por_armazem),
        por_bin=dict(por_bin),
        por_item=dict(por_item),
    )


@dataclass(frozen=True)
class Divergencia:
    armazem_id: str
    valor_snapshot: float
    valor_replay: float

    @property
    def diferenca(self) -> float:
        return self.valor_snapshot - self.valor_replay


def divergencias_valoracao(
    snapshot: ValoracaoSnapshot,
    valoracao_replay: Mapping[str, float],
    tolerancia: float = 0.005,
) -> List[Divergencia]:
    """Armazéns cujo valor no snapshot difere do valor do replay além da tolerância.

    Ordenado pela maior diferença absoluta.
    """
    out: List[Divergencia] = []
    for armazem in sorted(set(snapshot.por_armazem) | set(valoracao_replay)):
        vs = snapshot.por_armazem.get(armazem, 0.0)
        vr = float(valoracao_replay.get(armazem, 0.0))
        if abs(vs - vr) > tolerancia:
            out.append(Divergencia(armazem_id=armazem, valor_snapshot=vs, valor_replay=vr))
    out.sort(key=lambda d: -abs(d.diferenca))
    return out
