# custeio/domain/unidades.py
"""
Grafo de conversão entre unidades de medida.

Convenção do fator (importante):
    1 × (unidade ORIGEM) × fator = (unidade DESTINO)
    Ex.: KG -> G, fator = 1000  (1 KG × 1000 = 1000 G)

As arestas são dirigidas. O grafo não cria inversas sozinho: quem precisa
de conversão nos dois sentidos passa as duas arestas (ou usa `com_inversas`).

Equivalência de unidades é um teste em dois estágios, sem hierarquia de
classes: mesma identidade OU mesmo código (sem diferenciar maiúsculas).
Unidades equivalentes convertem com fator 1 sem precisar de aresta.

O fator de caminhos com mais de um salto é composto multiplicando os
fatores de cada aresta ao longo da busca em largura.
"""

from __future__ import annotations

from collections import defaultdict, deque
from math import isfinite
from typing import Dict, Iterable, List, Optional, Tuple, Union

from custeio.domain.erros import SemCaminhoConversao
from custeio.domain.models import ArestaConversao, UnidadeMedida


UnidadeLike = Union[UnidadeMedida, str]


def _como_unidade(u: UnidadeLike) -> UnidadeMedida:
    if isinstance(u, UnidadeMedida):
        return u
    s = str(u or "").strip()
    return UnidadeMedida(id=s, codigo=s)


def _codigo_normalizado(codigo: Optional[str]) -> str:
    return (codigo or "").strip().casefold()


def sao_equivalentes(a: UnidadeLike, b: UnidadeLike) -> bool:
    """Duas unidades são a mesma se batem por id ou por código.

    Args:
        a: Unidade (ou id/código como string).
        b: Unidade (ou id/código como string).

    Returns:
        ``True`` se os ids forem iguais, ou se os códigos normalizados
        (sem espaços, casefold) forem iguais e não vazios.
    """
    ua, ub = _como_unidade(a), _como_unidade(b)
    if ua.id and ua.id == ub.id:
        return True
    ca, cb = _codigo_normalizado(ua.codigo), _codigo_normalizado(ub.codigo)
    return bool(ca) and ca == cb


def com_inversas(arestas: Iterable[ArestaConversao]) -> List[ArestaConversao]:
    """Devolve as arestas mais a inversa de cada uma (destino -> origem, 1/fator).

    Arestas com fator não finito ou <= 0 são descartadas.
    """
    out: List[ArestaConversao] = []
    for a in arestas or []:
        f = float(a.fator)
        if not isfinite(f) or f <= 0:
            continue
        out.append(a)
        out.append(ArestaConversao(origem=a.destino, destino=a.origem, fator=1.0 / f))
    return out


class GrafoConversao:
    """Grafo dirigido e ponderado de conversões, imutável depois de construído."""

    def __init__(
        self,
        adjacencia: Dict[str, Tuple[Tuple[str, float], ...]],
        unidades: Dict[str, UnidadeMedida],
    ):
        self._adj = adjacencia
        self._unidades = unidades

    @classmethod
    def construir(
        cls,
        arestas: Optional[Iterable[ArestaConversao]],
        unidades: Optional[Iterable[UnidadeMedida]] = None,
    ) -> "GrafoConversao":
        """Registra `origem -> (destino, fator)` para cada aresta.

        Arestas duplicadas viram caminhos paralelos; ciclos são permitidos.
        Fatores não finitos ou <= 0 não entram no grafo.

        `unidades` (cadastro) permite resolver um id ou código solto para a
        unidade completa mesmo quando ela não aparece em nenhuma aresta.
        """
        adj: Dict[str, List[Tuple[str, float]]] = defaultdict(list)
        registro: Dict[str, UnidadeMedida] = {u.id: u for u in unidades or [] if u.id}
        for a in arestas or []:
            try:
                f = float(a.fator)
            except (TypeError, ValueError):
                continue
            if not isfinite(f) or f <= 0:
                continue
            if not a.origem.id or not a.destino.id:
                continue
            adj[a.origem.id].append((a.destino.id, f))
            registro.setdefault(a.origem.id, a.origem)
            registro.setdefault(a.destino.id, a.destino)
        return cls({k: tuple(v) for k, v in adj.items()}, registro)

    @property
    def vazio(self) -> bool:
        return not self._adj

    @property
    def unidades(self) -> Tuple[UnidadeMedida, ...]:
        return tuple(self._unidades.values())

    def resolver(self, unidade: UnidadeLike) -> UnidadeMedida:
        """Troca um id ou código solto pela unidade registrada, quando houver.

        Procura primeiro por id e depois por código (casefold). Sem registro,
        devolve a própria string como id e código.
        """
        if isinstance(unidade, UnidadeMedida):
            return self._unidades.get(unidade.id, unidade)
        s = str(unidade or "").strip()
        if s in self._unidades:
            return self._unidades[s]
        codigo = _codigo_normalizado(s)
        if codigo:
            for un in self._unidades.values():
                if _codigo_normalizado(un.codigo) == codigo:
                    return un
        return _como_unidade(s)

    def arestas_de(self, unidade: UnidadeLike) -> Tuple[Tuple[str, float], ...]:
        return self._adj.get(self.resolver(unidade).id, ())

    def _nos_equivalentes(self, u: UnidadeMedida) -> List[str]:
        return [uid for uid, un in self._unidades.items() if sao_equivalentes(un, u)]

    def _fator_caminho(self, origem: UnidadeMedida, destino: UnidadeMedida) -> Optional[float]:
        inicios = self._nos_equivalentes(origem)
        if not inicios:
            return None
        if any(sao_equivalentes(self._unidades[uid], destino) for uid in inicios):
            return 1.0
        visitados = set(inicios)
        fila = deque((uid, 1.0) for uid in inicios)
        while fila:
            uid, acc = fila.popleft()
            for prox, fator in self._adj.get(uid, ()):
                if prox in visitados:
                    continue
                passo = acc * fator
                if sao_equivalentes(self._unidades[prox], destino):
                    return passo
                visitados.add(prox)
                fila.append((prox, passo))
        return None

    def pode_converter(self, origem: UnidadeLike, destino: UnidadeLike) -> bool:
        """Verdadeiro se equivalentes ou se `destino` é alcançável a partir de `origem`."""
        o, d = self.resolver(origem), self.resolver(destino)
        if sao_equivalentes(o, d):
            return True
        if self.vazio:
            return False
        return self._fator_caminho(o, d) is not None

    def fator(self, origem: UnidadeLike, destino: UnidadeLike) -> float:
        """Fator composto de `origem` para `destino`. Levanta `SemCaminhoConversao`."""
        o, d = self.resolver(origem), self.resolver(destino)
        if sao_equivalentes(o, d):
            return 1.0
        f = None if self.vazio else self._fator_caminho(o, d)
        if f is None:
            raise SemCaminhoConversao(o.codigo or o.id, d.codigo or d.id)
        return f

    def converter(self, qtd: float, origem: UnidadeLike, destino: UnidadeLike) -> float:
        """Converte `qtd` de `origem` para `destino`.

        Nunca devolve a quantidade original como padrão silencioso: sem
        caminho, levanta `SemCaminhoConversao`.
        """
        q = float(qtd)
        if not isfinite(q):
            raise ValueError("quantidade invalida")
        return q * self.fator(origem, destino)

    def tentar_converter(self, qtd: float, origem: UnidadeLike, destino: UnidadeLike) -> Optional[float]:
        """Versão sem exceção de `converter`: devolve None quando não há caminho."""
        try:
            return self.converter(qtd, origem, destino)
        except ValueError:
            return None
