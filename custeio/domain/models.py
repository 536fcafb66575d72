# custeio/domain/models.py
"""
Modelos (dataclasses) do domínio de custeio.

Observação importante:
- Os registros chegam já buscados e autorizados pela camada de cadastro;
  o motor não persiste nada. As dataclasses aqui são o contrato em memória
  entre loaders, motor e apresentação.
- Quantidades usadas no ledger são sempre `qtd_base` (unidade base do item).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import Optional, Tuple, Union


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def como_utc(ts: Optional[datetime]) -> datetime:
    """Normaliza um timestamp para UTC (naive é tratado como UTC; None vira epoch)."""
    if ts is None:
        return EPOCH
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


class MetodoCusto(str, Enum):
    """Método de custeio do ledger."""
    FIFO = "FIFO"
    WA = "WA"  # média ponderada

    @classmethod
    def parse(cls, valor: Union[str, "MetodoCusto"]) -> "MetodoCusto":
        if isinstance(valor, MetodoCusto):
            return valor
        s = str(valor or "").strip().upper().replace("-", "_")
        if s in {"FIFO", "PEPS"}:
            return cls.FIFO
        if s in {"WA", "WEIGHTED_AVERAGE", "WEIGHTEDAVERAGE", "MEDIA", "CMP"}:
            return cls.WA
        raise ValueError(f"metodo de custo desconhecido: {valor!r}")


@dataclass(frozen=True)
class UnidadeMedida:
    """Unidade de medida (ex.: KG). `familia` é apenas informativa."""
    id: str
    codigo: str
    familia: Optional[str] = None


@dataclass(frozen=True)
class ArestaConversao:
    """Aresta dirigida: qtd_em_destino = qtd_em_origem * fator."""
    origem: UnidadeMedida
    destino: UnidadeMedida
    fator: float


@dataclass(frozen=True)
class Item:
    """Cadastro mínimo de item (para juntar nomes e unidade base)."""
    id: str
    nome: Optional[str] = None
    sku: Optional[str] = None
    unidade_base_id: Optional[str] = None


@dataclass(frozen=True)
class Movimento:
    """Movimentação de estoque (receive | issue | transfer | adjust)."""
    id: str
    tipo: str
    item_id: str
    qtd: Optional[float] = None
    qtd_base: Optional[float] = None
    unidade_id: Optional[str] = None
    custo_unitario: Optional[float] = None
    valor_total: Optional[float] = None
    armazem_id: Optional[str] = None
    armazem_origem_id: Optional[str] = None
    armazem_destino_id: Optional[str] = None
    bin_origem_id: Optional[str] = None
    bin_destino_id: Optional[str] = None
    ref_tipo: Optional[str] = None
    ref_id: Optional[str] = None
    criado_em: Optional[datetime] = None

    @property
    def instante(self) -> datetime:
        return como_utc(self.criado_em)


@dataclass(frozen=True)
class NivelEstoque:
    """Linha de saldo materializado para (armazém, bin, item)."""
    item_id: str
    armazem_id: str
    bin_id: Optional[str] = None
    qtd_disponivel: float = 0.0
    qtd_alocada: float = 0.0
    custo_medio: float = 0.0
    id: Optional[str] = None


@dataclass
class CamadaCusto:
    """Camada FIFO: saldo restante a um custo unitário."""
    qtd: float
    custo: float


@dataclass
class EstadoMedio:
    """Estado de média ponderada por chave (armazém, item)."""
    qtd: float = 0.0
    custo_medio: float = 0.0


@dataclass(frozen=True)
class Janela:
    """Janela de relatório [inicio, fim], inclusiva, em dias completos UTC."""
    inicio: date
    fim: date

    def __post_init__(self):
        if self.fim < self.inicio:
            raise ValueError("fim da janela anterior ao inicio")

    @classmethod
    def ultimos_dias(cls, dias: int, hoje: Optional[date] = None) -> "Janela":
        """Janela com `dias` dias completos terminando em `hoje` (inclusive)."""
        fim = hoje or datetime.now(timezone.utc).date()
        return cls(inicio=fim - timedelta(days=max(1, dias) - 1), fim=fim)

    @property
    def inicio_dt(self) -> datetime:
        return datetime.combine(self.inicio, time.min, tzinfo=timezone.utc)

    @property
    def fim_dt(self) -> datetime:
        return datetime.combine(self.fim, time.max, tzinfo=timezone.utc)

    @property
    def dias(self) -> int:
        return max(1, (self.fim - self.inicio).days + 1)

    def contem(self, ts: Optional[datetime]) -> bool:
        t = como_utc(ts)
        return self.inicio_dt <= t <= self.fim_dt


ChaveLedger = Tuple[str, str]  # (armazem_id, item_id)


@dataclass(frozen=True)
class Aplicado:
    """Movimento aplicado ao ledger."""
    movimento_id: str
    direcao: str  # 'IN' | 'OUT' | 'TRANSFER'
    qtd: float
    custo: float  # valor movimentado (entrada, COGS ou custo transferido)
    qtd_descoberta: float = 0.0  # saída além das camadas FIFO disponíveis


@dataclass(frozen=True)
class Ignorado:
    """Movimento descartado, com o motivo."""
    movimento_id: str
    motivo: str
    detalhe: Optional[str] = None


ResultadoMovimento = Union[Aplicado, Ignorado]


@dataclass(frozen=True)
class SaldoChave:
    """Saldo final de uma chave (armazém, item) após o replay."""
    armazem_id: str
    item_id: str
    qtd: float
    custo_medio: float
    valor: float
    camadas: Tuple[CamadaCusto, ...] = field(default_factory=tuple)
