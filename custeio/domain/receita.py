# custeio/domain/receita.py
"""
Receita por cliente a partir de pedidos e vendas de balcão já filtrados
pela janela do relatório.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

STATUS_EXCLUIDOS = {"cancelled", "canceled", "void", "draft", "rejected", "refunded"}
CLIENTE_DESCONHECIDO = "unknown"

_CAMPOS_VALOR = ("grand_total", "total", "net_total")


def _valor(pedido: Mapping[str, Any]) -> float:
    for campo in _CAMPOS_VALOR:
        v = pedido.get(campo)
        if v is None:
            continue
        try:
            return float(v)
        except (TypeError, ValueError):
            return 0.0
    return 0.0


@dataclass(frozen=True)
class ReceitaCliente:
    cliente_id: str
    valor: float
    nome: Optional[str] = None


def receita_por_cliente(
    pedidos: Iterable[Mapping[str, Any]],
    nomes: Optional[Mapping[str, str]] = None,
) -> Tuple[List[ReceitaCliente], float]:
    """Soma o valor de cada pedido por cliente, ignorando status cancelados/rascunho.

    Returns:
        (linhas ordenadas do maior valor para o menor, total geral)
    """
    agg: Dict[str, float] = defaultdict(float)
    total = 0.0
    for p in pedidos:
        if str(p.get("status") or "").strip().lower() in STATUS_EXCLUIDOS:
            continue
        v = _valor(p)
        cliente = p.get("cliente_id") or CLIENTE_DESCONHECIDO
        agg[cliente] += v
        total += v
    nomes = nomes or {}
    linhas = [
        ReceitaCliente(
            cliente_id=c,
            valor=v,
            nome=nomes.get(c) or ("(sem cliente)" if c == CLIENTE_DESCONHECIDO else c),
        )
        for c, v in agg.items()
    ]
    linhas.sort(key=lambda r: -r.valor)
    return linhas, total
