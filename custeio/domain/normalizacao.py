# custeio/domain/normalizacao.py
"""
Normalização de movimentos para a unidade base do item.

O ledger só faz contas com `qtd_base`. Aqui preenchemos `qtd_base` dos
movimentos que chegaram apenas com a quantidade digitada (`qtd` +
`unidade_id`), usando o grafo de conversão.

Regras:
- `qtd_base` já informado → movimento passa intacto.
- sem unidade digitada ou sem unidade base conhecida → `qtd` já é base.
- conversão impossível → o movimento sai com `Ignorado(sem_caminho_conversao)`;
  em modo estrito a `SemCaminhoConversao` é propagada.
- quando a quantidade é convertida, `custo_unitario` é reescalado para a
  unidade base, preservando o valor da linha.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, List, Mapping, Optional, Tuple

from custeio.domain.erros import SEM_CAMINHO_CONVERSAO, SemCaminhoConversao
from custeio.domain.models import Ignorado, Movimento
from custeio.domain.unidades import GrafoConversao, UnidadeLike


def normalizar_movimento(
    m: Movimento,
    grafo: GrafoConversao,
    unidade_base: Optional[UnidadeLike],
) -> Movimento:
    """Devolve o movimento com `qtd_base` preenchido (pode levantar `SemCaminhoConversao`)."""
    if m.qtd_base is not None or m.qtd is None:
        return m
    if not m.unidade_id or not unidade_base:
        return replace(m, qtd_base=float(m.qtd))
    qtd_base = grafo.converter(m.qtd, m.unidade_id, unidade_base)
    custo = m.custo_unitario
    if custo is not None and qtd_base:
        custo = float(custo) * float(m.qtd) / qtd_base
    return replace(m, qtd_base=qtd_base, custo_unitario=custo)


def normalizar_movimentos(
    movimentos: Iterable[Movimento],
    grafo: GrafoConversao,
    unidade_base_por_item: Mapping[str, UnidadeLike],
    estrito: bool = False,
) -> Tuple[List[Movimento], List[Ignorado]]:
    """Normaliza uma lista de movimentos.

    Args:
        movimentos: Movimentos na ordem em que foram buscados.
        grafo: Grafo de conversão já construído para esta execução.
        unidade_base_por_item: item_id -> unidade base declarada.
        estrito: Se True, a primeira conversão impossível aborta tudo.

    Returns:
        (movimentos normalizados, movimentos descartados com o motivo)
    """
    ok: List[Movimento] = []
    ignorados: List[Ignorado] = []
    for m in movimentos:
        try:
            ok.append(normalizar_movimento(m, grafo, unidade_base_por_item.get(m.item_id)))
        except SemCaminhoConversao as e:
            if estrito:
                raise
            ignorados.append(Ignorado(movimento_id=m.id, motivo=SEM_CAMINHO_CONVERSAO, detalhe=str(e)))
    return ok, ignorados
