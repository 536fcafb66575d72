# custeio/config.py
"""
Configurações globais e valores padrão do motor de custeio.
"""

import os
from dataclasses import dataclass
from typing import Optional, Tuple


# Faixas de aging em dias: (rótulo, mínimo, máximo). Máximo None = sem limite.
FAIXAS_AGING: Tuple[Tuple[str, int, Optional[int]], ...] = (
    ("0-30", 0, 30),
    ("31-60", 31, 60),
    ("61-90", 61, 90),
    ("91-180", 91, 180),
    ("181+", 181, None),
)


def _env_float(nome: str, default: float) -> float:
    v = os.environ.get(nome)
    if v is None or not v.strip():
        return default
    try:
        return float(v)
    except ValueError:
        return default


@dataclass
class DefaultConfig:
    """Valores padrão para parâmetros do relatório."""
    metodo_custo: str = os.environ.get("CUSTEIO_METODO", "WA")  # 'WA' | 'FIFO'
    janela_dias: int = int(_env_float("CUSTEIO_JANELA_DIAS", 90))  # últimos N dias
    epsilon_camada: float = 1e-7  # camada FIFO com saldo <= epsilon é removida
    epsilon_restante: float = 1e-6  # sobra de saída acima disso = camadas esgotadas


# Instância global dos valores padrão
DEFAULTS = DefaultConfig()
