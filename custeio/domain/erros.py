# custeio/domain/erros.py
"""
Erros e motivos de descarte do motor de custeio.

Nenhum destes é fatal para o relatório inteiro: o motor degrada por registro.
As exceções só sobem em modo estrito.
"""

from __future__ import annotations

from typing import Any


# Motivos de `Ignorado`
QTD_NAO_POSITIVA = "qtd_nao_positiva"
ARMAZEM_NAO_RESOLVIDO = "armazem_nao_resolvido"
SEM_ITEM = "sem_item"
SEM_CAMINHO_CONVERSAO = "sem_caminho_conversao"

MOTIVOS = (QTD_NAO_POSITIVA, ARMAZEM_NAO_RESOLVIDO, SEM_ITEM, SEM_CAMINHO_CONVERSAO)


class SemCaminhoConversao(ValueError):
    """Não existe caminho no grafo entre as duas unidades."""

    def __init__(self, origem: Any, destino: Any):
        self.origem = origem
        self.destino = destino
        super().__init__(f"sem caminho de conversao entre {origem} e {destino}")


class CamadasInsuficientes(ValueError):
    """Saída FIFO maior que o saldo em camadas (apenas em modo estrito)."""

    def __init__(self, chave: Any, faltante: float):
        self.chave = chave
        self.faltante = faltante
        super().__init__(f"camadas insuficientes em {chave}: faltam {faltante:g}")
