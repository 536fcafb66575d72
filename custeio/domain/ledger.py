# custeio/domain/ledger.py
"""
Ledger de custo: replay cronológico de movimentos por (armazém, item).

Dado um método (FIFO ou média ponderada) e uma janela de relatório, o
replay percorre os movimentos uma única vez e devolve:
- saldo final por chave (quantidade, custo médio de exibição, valor, camadas);
- COGS por item reconhecido dentro da janela;
- unidades vendidas e recebidas por item dentro da janela;
- valoração total por armazém ao final do replay;
- um resultado por movimento (`Aplicado` ou `Ignorado(motivo)`).

Fluxo:
1) Ordena por timestamp (sort estável: empates mantêm a ordem de busca).
2) Classifica a direção: receive→IN, issue→OUT, adjust→sinal, transfer.
3) Transferência move base de custo entre chaves sem reconhecer COGS.
4) Entrada cria camada (FIFO) ou recalcula a média (WA).
5) Saída consome camadas mais antigas (FIFO) ou baixa à média (WA).
6) Consolida saldos e valoração por armazém.

Todo o estado vive em um `_EstadoReplay` criado a cada chamada; nada
sobrevive entre execuções.
"""

from __future__ import annotations

from collections import Counter, defaultdict, deque
from dataclasses import dataclass, field
from math import isfinite
from typing import Deque, Dict, Iterable, List, Optional, Tuple

from custeio.config import DEFAULTS, DefaultConfig
from custeio.domain.erros import (
    ARMAZEM_NAO_RESOLVIDO,
    QTD_NAO_POSITIVA,
    SEM_ITEM,
    CamadasInsuficientes,
)
from custeio.domain.models import (
    Aplicado,
    CamadaCusto,
    ChaveLedger,
    EstadoMedio,
    Ignorado,
    Janela,
    MetodoCusto,
    Movimento,
    ResultadoMovimento,
    SaldoChave,
)


IN = "IN"
OUT = "OUT"
ADJ = "ADJ"
TRANSFER = "TRANSFER"

_TIPOS_IN = {"receipt", "in", "purchase", "receive"}
_TIPOS_OUT = {"issue", "out", "sale", "ship"}
_TIPOS_ADJ = {"adj", "adjust", "adjustment", "stock_adjustment"}


# ----------------------
# classificação
# ----------------------

def classificar_tipo(tipo: Optional[str]) -> Optional[str]:
    """Mapeia o tipo cadastrado para IN / OUT / ADJ / TRANSFER (None = desconhecido)."""
    s = (tipo or "").strip().lower()
    if s in _TIPOS_IN:
        return IN
    if s in _TIPOS_OUT:
        return OUT
    if s == "transfer":
        return TRANSFER
    if s in _TIPOS_ADJ:
        return ADJ
    return None


def classificar_movimento(m: Movimento) -> str:
    """Direção líquida do movimento: 'IN', 'OUT' ou 'TRANSFER'.

    Ajustes e tipos desconhecidos seguem o sinal de `qtd_base` (>= 0 é IN).
    """
    t = classificar_tipo(m.tipo)
    if t in (IN, OUT, TRANSFER):
        return t
    return IN if (m.qtd_base or 0.0) >= 0 else OUT


def quantidade_base(m: Movimento) -> Optional[float]:
    """Quantidade positiva a movimentar, ou None se o movimento deve ser ignorado."""
    q = m.qtd_base
    if q is None:
        return None
    try:
        q = float(q)
    except (TypeError, ValueError):
        return None
    if not isfinite(q):
        return None
    if classificar_tipo(m.tipo) in (ADJ, None):
        q = abs(q)
    return q if q > 0 else None


def resolver_armazem(m: Movimento, direcao: str) -> Optional[str]:
    """Armazém afetado por um lado do movimento.

    `armazem_id` tem prioridade; senão entrada usa destino→origem e
    saída usa origem→destino.
    """
    if m.armazem_id:
        return m.armazem_id
    if direcao == IN:
        return m.armazem_destino_id or m.armazem_origem_id or None
    return m.armazem_origem_id or m.armazem_destino_id or None


def _armazens_transferencia(m: Movimento) -> Tuple[Optional[str], Optional[str]]:
    origem = m.armazem_origem_id or m.armazem_id or None
    destino = m.armazem_destino_id or m.armazem_id or None
    return origem, destino


# ----------------------
# estado do replay
# ----------------------

@dataclass
class _EntradaLedger:
    """Estado de uma chave (armazém, item): camadas FIFO ou média."""
    camadas: Deque[CamadaCusto] = field(default_factory=deque)
    media: EstadoMedio = field(default_factory=EstadoMedio)
    ultimo_custo: float = 0.0


@dataclass
class _EstadoReplay:
    chaves: Dict[ChaveLedger, _EntradaLedger] = field(default_factory=dict)
    cogs_por_item: Dict[str, float] = field(default_factory=lambda: defaultdict(float))
    vendidos_por_item: Dict[str, float] = field(default_factory=lambda: defaultdict(float))
    recebidos_por_item: Dict[str, float] = field(default_factory=lambda: defaultdict(float))
    resultados: List[ResultadoMovimento] = field(default_factory=list)

    def entrada(self, chave: ChaveLedger) -> _EntradaLedger:
        e = self.chaves.get(chave)
        if e is None:
            e = _EntradaLedger()
            self.chaves[chave] = e
        return e


# ----------------------
# resultado
# ----------------------

@dataclass(frozen=True)
class ResultadoLedger:
    """Fotografia imutável do ledger ao final do replay."""
    metodo: MetodoCusto
    janela: Janela
    saldos: Dict[ChaveLedger, SaldoChave]
    cogs_por_item: Dict[str, float]
    vendidos_por_item: Dict[str, float]
    recebidos_por_item: Dict[str, float]
    valoracao_por_armazem: Dict[str, float]
    resultados: Tuple[ResultadoMovimento, ...]

    @property
    def qtd_final_por_chave(self) -> Dict[ChaveLedger, float]:
        return {k: s.qtd for k, s in self.saldos.items()}

    @property
    def custo_medio_final_por_chave(self) -> Dict[ChaveLedger, float]:
        return {k: s.custo_medio for k, s in self.saldos.items()}

    @property
    def cogs_total(self) -> float:
        return sum(self.cogs_por_item.values())

    @property
    def valoracao_total(self) -> float:
        return sum(self.valoracao_por_armazem.values())

    @property
    def ignorados(self) -> List[Ignorado]:
        return [r for r in self.resultados if isinstance(r, Ignorado)]

    @property
    def aplicados(self) -> List[Aplicado]:
        return [r for r in self.resultados if isinstance(r, Aplicado)]

    def contagem_ignorados(self) -> Dict[str, int]:
        return dict(Counter(r.motivo for r in self.ignorados))


# ----------------------
# motor
# ----------------------

class LedgerCusto:
    """Replay de movimentos sob FIFO ou média ponderada."""

    def __init__(
        self,
        metodo: MetodoCusto | str,
        janela: Janela,
        estrito: bool = False,
        config: DefaultConfig = DEFAULTS,
    ):
        self.metodo = MetodoCusto.parse(metodo)
        self.janela = janela
        self.estrito = estrito
        self.config = config

    @property
    def fifo(self) -> bool:
        return self.metodo == MetodoCusto.FIFO

    # -- FIFO --

    def _consumir_fifo(
        self, e: _EntradaLedger, qtd: float, chave: ChaveLedger
    ) -> Tuple[float, List[CamadaCusto], float]:
        """Consome as camadas mais antigas. Devolve (custo, camadas tomadas, qtd descoberta)."""
        restante = qtd
        custo = 0.0
        tomadas: List[CamadaCusto] = []
        while restante > 0 and e.camadas:
            primeira = e.camadas[0]
            tomar = min(restante, primeira.qtd)
            if tomar <= 0:
                e.camadas.popleft()
                continue
            custo += tomar * primeira.custo
            tomadas.append(CamadaCusto(qtd=tomar, custo=primeira.custo))
            primeira.qtd -= tomar
            restante -= tomar
            e.ultimo_custo = primeira.custo
            if primeira.qtd <= self.config.epsilon_camada:
                e.camadas.popleft()

        descoberta = 0.0
        if restante > self.config.epsilon_restante:
            if self.estrito:
                raise CamadasInsuficientes(chave, restante)
            # dado inconsistente a montante: estende ao último custo conhecido
            custo += restante * e.ultimo_custo
            tomadas.append(CamadaCusto(qtd=restante, custo=e.ultimo_custo))
            descoberta = restante
        return custo, tomadas, descoberta

    # -- média ponderada --

    @staticmethod
    def _misturar(est: EstadoMedio, qtd: float, custo: float) -> None:
        total = est.custo_medio * est.qtd + custo * qtd
        est.qtd += qtd
        if est.qtd > 0:
            est.custo_medio = total / est.qtd

    # -- aplicação por direção --

    def _custo_entrada(self, m: Movimento, qtd: float, e: _EntradaLedger) -> float:
        if m.custo_unitario is not None:
            return float(m.custo_unitario)
        if not self.fifo and (e.media.qtd > 0 or e.media.custo_medio > 0):
            return e.media.custo_medio
        if m.valor_total is not None:
            return float(m.valor_total) / qtd
        return e.media.custo_medio if not self.fifo else 0.0

    def _aplicar_entrada(self, st: _EstadoReplay, m: Movimento, qtd: float, armazem: str) -> Aplicado:
        e = st.entrada((armazem, m.item_id))
        custo = self._custo_entrada(m, qtd, e)
        if self.fifo:
            e.camadas.append(CamadaCusto(qtd=qtd, custo=custo))
        else:
            self._misturar(e.media, qtd, custo)
        if self.janela.contem(m.criado_em):
            st.recebidos_por_item[m.item_id] += qtd
        return Aplicado(movimento_id=m.id, direcao=IN, qtd=qtd, custo=qtd * custo)

    def _aplicar_saida(self, st: _EstadoReplay, m: Movimento, qtd: float, armazem: str) -> Aplicado:
        chave = (armazem, m.item_id)
        e = st.entrada(chave)
        descoberta = 0.0
        if self.fifo:
            cogs, _, descoberta = self._consumir_fifo(e, qtd, chave)
        else:
            cogs = qtd * e.media.custo_medio
            e.media.qtd = max(0.0, e.media.qtd - qtd)
        if self.janela.contem(m.criado_em):
            st.cogs_por_item[m.item_id] += cogs
            st.vendidos_por_item[m.item_id] += qtd
        return Aplicado(movimento_id=m.id, direcao=OUT, qtd=qtd, custo=cogs, qtd_descoberta=descoberta)

    def _aplicar_transferencia(
        self, st: _EstadoReplay, m: Movimento, qtd: float, origem: str, destino: str
    ) -> Aplicado:
        k_orig, k_dest = (origem, m.item_id), (destino, m.item_id)
        src = st.entrada(k_orig)
        if k_orig == k_dest:
            # troca de bin dentro do mesmo armazém: base de custo não muda
            media = src.media.custo_medio if not self.fifo else _custo_medio_camadas(src.camadas)
            return Aplicado(movimento_id=m.id, direcao=TRANSFER, qtd=qtd, custo=qtd * media)
        dst = st.entrada(k_dest)
        descoberta = 0.0
        if self.fifo:
            valor, tomadas, descoberta = self._consumir_fifo(src, qtd, k_orig)
            for c in tomadas:
                dst.camadas.append(CamadaCusto(qtd=c.qtd, custo=c.custo))
                dst.ultimo_custo = c.custo
        else:
            custo_mov = src.media.custo_medio
            src.media.qtd = max(0.0, src.media.qtd - qtd)
            self._misturar(dst.media, qtd, custo_mov)
            valor = qtd * custo_mov
        return Aplicado(movimento_id=m.id, direcao=TRANSFER, qtd=qtd, custo=valor, qtd_descoberta=descoberta)

    def _aplicar(self, st: _EstadoReplay, m: Movimento) -> ResultadoMovimento:
        if not m.item_id:
            return Ignorado(movimento_id=m.id, motivo=SEM_ITEM)
        qtd = quantidade_base(m)
        if qtd is None:
            return Ignorado(movimento_id=m.id, motivo=QTD_NAO_POSITIVA, detalhe=f"qtd_base={m.qtd_base!r}")

        direcao = classificar_movimento(m)
        if direcao == TRANSFER:
            origem, destino = _armazens_transferencia(m)
            if not origem or not destino:
                return Ignorado(movimento_id=m.id, motivo=ARMAZEM_NAO_RESOLVIDO, detalhe="transfer")
            return self._aplicar_transferencia(st, m, qtd, origem, destino)

        armazem = resolver_armazem(m, direcao)
        if not armazem:
            return Ignorado(movimento_id=m.id, motivo=ARMAZEM_NAO_RESOLVIDO, detalhe=direcao)
        if direcao == IN:
            return self._aplicar_entrada(st, m, qtd, armazem)
        return self._aplicar_saida(st, m, qtd, armazem)

    # -- consolidação --

    def _saldo(self, chave: ChaveLedger, e: _EntradaLedger) -> SaldoChave:
        armazem, item = chave
        if self.fifo:
            qtd = sum(c.qtd for c in e.camadas)
            valor = sum(c.qtd * c.custo for c in e.camadas)
            media = valor / qtd if qtd > 0 else 0.0
            camadas = tuple(CamadaCusto(qtd=c.qtd, custo=c.custo) for c in e.camadas)
        else:
            qtd = e.media.qtd
            media = e.media.custo_medio
            valor = qtd * media
            camadas = ()
        return SaldoChave(armazem_id=armazem, item_id=item, qtd=qtd, custo_medio=media, valor=valor, camadas=camadas)

    def replay(self, movimentos: Iterable[Movimento]) -> ResultadoLedger:
        """Executa o replay completo e devolve a fotografia final."""
        st = _EstadoReplay()
        ordenados = sorted(movimentos, key=lambda m: m.instante)
        for m in ordenados:
            st.resultados.append(self._aplicar(st, m))

        saldos: Dict[ChaveLedger, SaldoChave] = {}
        valoracao: Dict[str, float] = defaultdict(float)
        for chave, e in st.chaves.items():
            s = self._saldo(chave, e)
            saldos[chave] = s
            valoracao[s.armazem_id] += s.valor

        return ResultadoLedger(
            metodo=self.metodo,
            janela=self.janela,
            saldos=saldos,
            cogs_por_item=dict(st.cogs_por_item),
            vendidos_por_item=dict(st.vendidos_por_item),
            recebidos_por_item=dict(st.recebidos_por_item),
            valoracao_por_armazem=dict(valoracao),
            resultados=tuple(st.resultados),
        )


def _custo_medio_camadas(camadas: Iterable[CamadaCusto]) -> float:
    qtd = valor = 0.0
    for c in camadas:
        qtd += c.qtd
        valor += c.qtd * c.custo
    return valor / qtd if qtd > 0 else 0.0


def replay_movimentos(
    movimentos: Iterable[Movimento],
    metodo: MetodoCusto | str,
    janela: Janela,
    estrito: bool = False,
) -> ResultadoLedger:
    """Atalho funcional para `LedgerCusto(metodo, janela, estrito).replay(movimentos)`."""
    return LedgerCusto(metodo, janela, estrito=estrito).replay(movimentos)
