"""
Utilidades de parsing para quantidades, números e datas vindos de planilhas.

As planilhas de movimentos costumam trazer a quantidade junto da unidade
digitada, no formato "<valor> <unidade> - <descrição>" (ex.: "5,5 KG - Quilo",
"-2 CX - Caixa" em ajustes negativos). Aqui extraímos valor, unidade e
descrição de forma tolerante.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Optional, Tuple

import pandas as pd

_SEP_DESC = re.compile(r"\s+-\s+")
_ISO_DATA = re.compile(r"^\d{4}-\d{2}-\d{2}")


def parse_numero(val: Any) -> Optional[float]:
    """Converte texto numérico para float.

    Aceita vírgula ou ponto como separador decimal. Quando há os dois,
    o último que aparece é o decimal ("1.234,5" → 1234.5, "1,234.5" → 1234.5).

    Returns:
        O número, ou None se vazio/inválido.
    """
    if val is None:
        return None
    if isinstance(val, (int, float)) and not isinstance(val, bool):
        f = float(val)
        return None if f != f else f
    s = str(val).strip().replace(" ", "")
    if not s:
        return None
    if "," in s and "." in s:
        if s.rfind(",") > s.rfind("."):
            s = s.replace(".", "").replace(",", ".")
        else:
            s = s.replace(",", "")
    elif "," in s:
        s = s.replace(",", ".")
    try:
        return float(s)
    except ValueError:
        return None


def parse_quantidade_raw(txt: Any) -> Tuple[Optional[float], Optional[str], Optional[str]]:
    """Interpreta uma string de quantidade com unidade.

    Exemplos:
        "5.00 KG - Quilograma" → (5.0, "KG", "Quilograma")
        "-2 CX - Caixa"        → (-2.0, "CX", "Caixa")
        "5,5 l"                → (5.5, "L", None)
        "12"                   → (12.0, None, None)

    Args:
        txt: Texto a ser interpretado.

    Returns:
        Uma tupla (numero, unidade, descricao). Qualquer valor que não
        possa ser determinado será retornado como None.
    """
    if txt is None:
        return None, None, None
    s = str(txt).strip()
    if not s:
        return None, None, None
    partes = _SEP_DESC.split(s, maxsplit=1)
    head = partes[0].strip()
    desc = partes[1].strip() if len(partes) > 1 and partes[1].strip() else None
    tokens = head.split()
    num = parse_numero(tokens[0]) if tokens else None
    unidade = tokens[1].strip().upper() if len(tokens) >= 2 and tokens[1].strip() else None
    return num, unidade, desc


def parse_timestamp(val: Any) -> Optional[datetime]:
    """Converte data/hora de planilha para datetime em UTC.

    Datas ISO ("2025-01-31", "2025-01-31T10:00:00Z") são lidas como tal;
    as demais no padrão brasileiro (dia primeiro, "31/01/2025 10:00").
    Sem fuso informado, assume UTC.

    Returns:
        datetime com tzinfo UTC, ou None se vazio/inválido.
    """
    if val is None:
        return None
    if isinstance(val, (pd.Timestamp, datetime)):
        ts = pd.Timestamp(val)
    else:
        s = str(val).strip()
        if not s:
            return None
        ts = pd.to_datetime(s, dayfirst=not _ISO_DATA.match(s), errors="coerce")
    if ts is None or pd.isna(ts):
        return None
    ts = ts.tz_localize("UTC") if ts.tzinfo is None else ts.tz_convert("UTC")
    return ts.to_pydatetime()
