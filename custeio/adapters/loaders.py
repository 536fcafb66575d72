# custeio/adapters/loaders.py
"""
Loaders de planilhas (CSV ou XLSX) para o motor de custeio.

Essas funções:
- leem planilhas usando pandas (todas as colunas como string);
- normalizam cabeçalhos (acentos, variações, sinônimos em PT/EN);
- devolvem as dataclasses do domínio prontas para o motor.

Observações:
- Quantidade pode vir "crua" ("5 KG - Quilo"); a unidade digitada é extraída.
- Datas/horas são normalizadas para UTC (naive = UTC).
- Nenhum loader converte unidades: isso é papel da normalização.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd

from custeio.adapters.parsers import parse_numero, parse_quantidade_raw, parse_timestamp
from custeio.domain.models import ArestaConversao, Item, Movimento, NivelEstoque, UnidadeMedida
from custeio.infra.logger import log_file_operation


# ---------------------------
# utilitários de normalização
# ---------------------------

def _slug(s: str) -> str:
    """Normaliza cabeçalhos: minúsculas, sem acentos, sem não-alfanumérico."""
    if s is None:
        return ""
    s = str(s).strip().lower()
    acentos = dict(zip("áàâãäéèêëíìîïóòôõöúùûüç", "aaaaaeeeeiiiiooooouuuuc"))
    s = "".join(acentos.get(ch, ch) for ch in s)
    s = re.sub(r"[^a-z0-9]+", " ", s)
    s = re.sub(r"\s+", " ", s).strip()
    return s


def _camel_para_espaco(s: str) -> str:
    return re.sub(r"(?<=[a-z0-9])(?=[A-Z])", " ", str(s))


def _safe_get(row, key):
    """Safely gets a value from pandas row, handling NA values."""
    val = row.get(key)
    if val is None or pd.isna(val):
        return None
    return val


def _to_str(val: Any) -> Optional[str]:
    if val is None:
        return None
    s = str(val).strip()
    return s or None


ALIASES_MOVIMENTO = {
    "id": "id",
    "movimento": "id",
    "movement id": "id",
    "tipo": "tipo",
    "type": "tipo",
    "item": "item_id",
    "item id": "item_id",
    "codigo": "item_id",
    "produto": "item_id",
    "quantidade": "qtd",
    "qtd": "qtd",
    "qty": "qtd",
    "quantidade base": "qtd_base",
    "qtd base": "qtd_base",
    "qty base": "qtd_base",
    "unidade": "unidade_id",
    "uom": "unidade_id",
    "uom id": "unidade_id",
    "custo unitario": "custo_unitario",
    "unit cost": "custo_unitario",
    "valor unitario": "custo_unitario",
    "valor total": "valor_total",
    "total value": "valor_total",
    "armazem": "armazem_id",
    "warehouse": "armazem_id",
    "warehouse id": "armazem_id",
    "armazem origem": "armazem_origem_id",
    "warehouse from id": "armazem_origem_id",
    "armazem destino": "armazem_destino_id",
    "warehouse to id": "armazem_destino_id",
    "bin origem": "bin_origem_id",
    "bin from id": "bin_origem_id",
    "bin destino": "bin_destino_id",
    "bin to id": "bin_destino_id",
    "ref tipo": "ref_tipo",
    "ref type": "ref_tipo",
    "ref id": "ref_id",
    "data": "criado_em",
    "criado em": "criado_em",
    "created at": "criado_em",
    "createdat": "criado_em",
}

ALIASES_NIVEL = {
    "id": "id",
    "item": "item_id",
    "item id": "item_id",
    "codigo": "item_id",
    "armazem": "armazem_id",
    "warehouse": "armazem_id",
    "warehouse id": "armazem_id",
    "bin": "bin_id",
    "bin id": "bin_id",
    "disponivel": "qtd_disponivel",
    "qtd disponivel": "qtd_disponivel",
    "on hand qty": "qtd_disponivel",
    "alocado": "qtd_alocada",
    "qtd alocada": "qtd_alocada",
    "allocated qty": "qtd_alocada",
    "custo medio": "custo_medio",
    "avg cost": "custo_medio",
}

ALIASES_CONVERSAO = {
    "de": "origem",
    "origem": "origem",
    "from": "origem",
    "from uom id": "origem",
    "para": "destino",
    "destino": "destino",
    "to": "destino",
    "to uom id": "destino",
    "fator": "fator",
    "factor": "fator",
}

ALIASES_UNIDADE = {
    "id": "id",
    "codigo": "codigo",
    "code": "codigo",
    "familia": "familia",
    "family": "familia",
}

ALIASES_ITEM = {
    "id": "id",
    "codigo": "id",
    "nome": "nome",
    "name": "nome",
    "sku": "sku",
    "unidade base": "unidade_base_id",
    "base uom id": "unidade_base_id",
}

ALIASES_PEDIDO = {
    "id": "id",
    "cliente": "cliente_id",
    "cliente id": "cliente_id",
    "customer id": "cliente_id",
    "cliente nome": "cliente_nome",
    "customer name": "cliente_nome",
    "status": "status",
    "grand total": "grand_total",
    "total": "total",
    "net total": "net_total",
    "total amount": "total",
    "criado em": "criado_em",
    "created at": "criado_em",
}


def _normalize_columns(df: pd.DataFrame, aliases: Mapping[str, str]) -> pd.DataFrame:
    """Renomeia colunas com base em sinônimos/variações."""
    new_cols = {}
    for col in df.columns:
        key = _slug(_camel_para_espaco(col))
        new_cols[col] = aliases.get(key, key.replace(" ", "_"))
    return df.rename(columns=new_cols)


def _read_table(path: str) -> pd.DataFrame:
    """Lê CSV ou XLSX (pela extensão) com todas as colunas como string."""
    suffix = Path(path).suffix.lower()
    if suffix in {".xlsx", ".xlsm", ".xls"}:
        df = pd.read_excel(path, dtype="string")
    else:
        df = pd.read_csv(path, dtype="string", keep_default_na=True)
    for c in df.columns:
        df[c] = df[c].astype("string")
    return df


# ---------------------------
# loaders públicos
# ---------------------------

def load_movimentos(path: str) -> List[Movimento]:
    """Lê movimentos de estoque.

    A coluna de quantidade aceita texto cru ("5 KG - Quilo"); a unidade
    extraída só é usada se não houver coluna de unidade preenchida.
    """
    df = _normalize_columns(_read_table(path), ALIASES_MOVIMENTO)
    out: List[Movimento] = []
    for idx, row in df.iterrows():
        qtd, unidade_raw, _ = parse_quantidade_raw(_safe_get(row, "qtd"))
        out.append(
            Movimento(
                id=_to_str(_safe_get(row, "id")) or f"linha-{idx + 2}",
                tipo=_to_str(_safe_get(row, "tipo")) or "",
                item_id=_to_str(_safe_get(row, "item_id")) or "",
                qtd=qtd,
                qtd_base=parse_numero(_safe_get(row, "qtd_base")),
                unidade_id=_to_str(_safe_get(row, "unidade_id")) or unidade_raw,
                custo_unitario=parse_numero(_safe_get(row, "custo_unitario")),
                valor_total=parse_numero(_safe_get(row, "valor_total")),
                armazem_id=_to_str(_safe_get(row, "armazem_id")),
                armazem_origem_id=_to_str(_safe_get(row, "armazem_origem_id")),
                armazem_destino_id=_to_str(_safe_get(row, "armazem_destino_id")),
                bin_origem_id=_to_str(_safe_get(row, "bin_origem_id")),
                bin_destino_id=_to_str(_safe_get(row, "bin_destino_id")),
                ref_tipo=_to_str(_safe_get(row, "ref_tipo")),
                ref_id=_to_str(_safe_get(row, "ref_id")),
                criado_em=parse_timestamp(_safe_get(row, "criado_em")),
            )
        )
    log_file_operation("load_movimentos", path, rows_processed=len(out))
    return out


def load_niveis(path: str) -> List[NivelEstoque]:
    """Lê o snapshot de saldos (armazém, bin, item)."""
    df = _normalize_columns(_read_table(path), ALIASES_NIVEL)
    out: List[NivelEstoque] = []
    for _, row in df.iterrows():
        item_id = _to_str(_safe_get(row, "item_id"))
        armazem_id = _to_str(_safe_get(row, "armazem_id"))
        if not item_id or not armazem_id:
            continue
        out.append(
            NivelEstoque(
                id=_to_str(_safe_get(row, "id")),
                item_id=item_id,
                armazem_id=armazem_id,
                bin_id=_to_str(_safe_get(row, "bin_id")),
                qtd_disponivel=parse_numero(_safe_get(row, "qtd_disponivel")) or 0.0,
                qtd_alocada=parse_numero(_safe_get(row, "qtd_alocada")) or 0.0,
                custo_medio=parse_numero(_safe_get(row, "custo_medio")) or 0.0,
            )
        )
    log_file_operation("load_niveis", path, rows_processed=len(out))
    return out


def load_unidades(path: str) -> Dict[str, UnidadeMedida]:
    """Lê o cadastro de unidades. Retorna id -> UnidadeMedida."""
    df = _normalize_columns(_read_table(path), ALIASES_UNIDADE)
    out: Dict[str, UnidadeMedida] = {}
    for _, row in df.iterrows():
        uid = _to_str(_safe_get(row, "id")) or _to_str(_safe_get(row, "codigo"))
        if not uid:
            continue
        out[uid] = UnidadeMedida(
            id=uid,
            codigo=_to_str(_safe_get(row, "codigo")) or uid,
            familia=_to_str(_safe_get(row, "familia")),
        )
    log_file_operation("load_unidades", path, rows_processed=len(out))
    return out


def load_conversoes(path: str, unidades: Optional[Mapping[str, UnidadeMedida]] = None) -> List[ArestaConversao]:
    """Lê arestas de conversão (origem, destino, fator).

    Origem/destino podem ser ids do cadastro de unidades ou códigos soltos.
    """
    unidades = unidades or {}
    df = _normalize_columns(_read_table(path), ALIASES_CONVERSAO)
    out: List[ArestaConversao] = []
    for _, row in df.iterrows():
        o = _to_str(_safe_get(row, "origem"))
        d = _to_str(_safe_get(row, "destino"))
        f = parse_numero(_safe_get(row, "fator"))
        if not o or not d or f is None:
            continue
        out.append(
            ArestaConversao(
                origem=unidades.get(o) or UnidadeMedida(id=o, codigo=o),
                destino=unidades.get(d) or UnidadeMedida(id=d, codigo=d),
                fator=f,
            )
        )
    log_file_operation("load_conversoes", path, rows_processed=len(out))
    return out


def load_itens(path: str) -> List[Item]:
    """Lê o cadastro de itens (id, nome, sku, unidade base)."""
    df = _normalize_columns(_read_table(path), ALIASES_ITEM)
    out: List[Item] = []
    for _, row in df.iterrows():
        iid = _to_str(_safe_get(row, "id"))
        if not iid:
            continue
        out.append(
            Item(
                id=iid,
                nome=_to_str(_safe_get(row, "nome")),
                sku=_to_str(_safe_get(row, "sku")),
                unidade_base_id=_to_str(_safe_get(row, "unidade_base_id")),
            )
        )
    log_file_operation("load_itens", path, rows_processed=len(out))
    return out


def load_pedidos(path: str) -> List[Dict[str, Any]]:
    """Lê pedidos/vendas de balcão como dicionários (para receita por cliente)."""
    df = _normalize_columns(_read_table(path), ALIASES_PEDIDO)
    out: List[Dict[str, Any]] = []
    for _, row in df.iterrows():
        out.append(
            {
                "id": _to_str(_safe_get(row, "id")),
                "cliente_id": _to_str(_safe_get(row, "cliente_id")),
                "cliente_nome": _to_str(_safe_get(row, "cliente_nome")),
                "status": _to_str(_safe_get(row, "status")),
                "grand_total": parse_numero(_safe_get(row, "grand_total")),
                "total": parse_numero(_safe_get(row, "total")),
                "net_total": parse_numero(_safe_get(row, "net_total")),
                "criado_em": parse_timestamp(_safe_get(row, "criado_em")),
            }
        )
    log_file_operation("load_pedidos", path, rows_processed=len(out))
    return out
