import dataclasses
import math
from datetime import date, datetime, timezone

import pytest

from custeio.domain.erros import (
    ARMAZEM_NAO_RESOLVIDO,
    QTD_NAO_POSITIVA,
    SEM_ITEM,
    CamadasInsuficientes,
)
from custeio.domain.ledger import IN, OUT, TRANSFER, LedgerCusto, classificar_movimento, replay_movimentos, resolver_armazem
from custeio.domain.models import Aplicado, CamadaCusto, Ignorado, Janela, MetodoCusto, Movimento

JANELA = Janela(inicio=date(2025, 1, 1), fim=date(2025, 1, 31))


def ts(dia, hora=12):
    return datetime(2025, 1, dia, hora, tzinfo=timezone.utc)


def mov(id, tipo, qtd, dia, armazem="WH1", item="SKU1", custo=None, **kw):
    kw.setdefault("criado_em", ts(dia))
    return Movimento(
        id=id, tipo=tipo, item_id=item, qtd=qtd, qtd_base=qtd,
        custo_unitario=custo, armazem_id=armazem, **kw,
    )


# ----------------------
# cenários de referência
# ----------------------

def test_cenario_a_fifo_receive_issue():
    res = replay_movimentos(
        [mov("r1", "receive", 100, 2, custo=10), mov("i1", "issue", 40, 10)],
        "FIFO", JANELA,
    )
    assert math.isclose(res.cogs_por_item["SKU1"], 400)
    assert res.saldos[("WH1", "SKU1")].camadas == (CamadaCusto(qtd=60, custo=10),)
    assert math.isclose(res.valoracao_por_armazem["WH1"], 600)
    assert res.vendidos_por_item["SKU1"] == 40


def test_cenario_b_media_ponderada():
    res = replay_movimentos(
        [
            mov("r1", "receive", 100, 2, custo=10),
            mov("r2", "receive", 50, 3, custo=20),
            mov("i1", "issue", 60, 10),
        ],
        MetodoCusto.WA, JANELA,
    )
    saldo = res.saldos[("WH1", "SKU1")]
    assert math.isclose(saldo.custo_medio, 2000 / 150)
    assert math.isclose(res.cogs_por_item["SKU1"], 800)
    assert math.isclose(saldo.qtd, 90)
    assert math.isclose(res.valoracao_por_armazem["WH1"], 1200)


def test_cenario_c_transferencia_fifo_move_camadas_sem_cogs():
    res = replay_movimentos(
        [
            mov("r1", "receive", 100, 2, custo=10),
            mov("i1", "issue", 40, 5),
            mov("t1", "transfer", 20, 15, armazem=None, armazem_origem_id="WH1", armazem_destino_id="WH2"),
        ],
        "FIFO", JANELA,
    )
    assert res.saldos[("WH1", "SKU1")].camadas == (CamadaCusto(qtd=40, custo=10),)
    assert res.saldos[("WH2", "SKU1")].camadas == (CamadaCusto(qtd=20, custo=10),)
    # só a saída i1 reconhece COGS
    assert math.isclose(res.cogs_total, 400)
    t1 = res.resultados[-1]
    assert isinstance(t1, Aplicado)
    assert t1.direcao == TRANSFER
    assert math.isclose(t1.custo, 200)


# ----------------------
# conservação
# ----------------------

def _entradas_e_saidas():
    return [
        mov("r1", "receive", 10, 2, custo=5),
        mov("r2", "receive", 20, 3, custo=7),
        mov("i1", "issue", 12, 4),
        mov("r3", "receive", 5, 5, custo=9),
        mov("i2", "issue", 15, 6),
    ]


def test_conservacao_fifo():
    res = replay_movimentos(_entradas_e_saidas(), "FIFO", JANELA)
    saldo = res.saldos[("WH1", "SKU1")]
    valor_camadas = sum(c.qtd * c.custo for c in saldo.camadas)
    assert math.isclose(valor_camadas + res.cogs_total, 10 * 5 + 20 * 7 + 5 * 9)
    # i1 consome 10@5 + 2@7
    i1 = next(r for r in res.resultados if r.movimento_id == "i1")
    assert math.isclose(i1.custo, 64)


def test_conservacao_media():
    res = replay_movimentos(_entradas_e_saidas(), "WA", JANELA)
    saldo = res.saldos[("WH1", "SKU1")]
    assert math.isclose(saldo.qtd * saldo.custo_medio + res.cogs_total, 10 * 5 + 20 * 7 + 5 * 9)
    assert math.isclose(saldo.qtd, 8)


# ----------------------
# camadas esgotadas
# ----------------------

def test_fifo_esgotado_estende_ao_ultimo_custo():
    res = replay_movimentos(
        [mov("r1", "receive", 10, 2, custo=5), mov("i1", "issue", 15, 3)],
        "FIFO", JANELA,
    )
    i1 = res.resultados[-1]
    assert math.isclose(i1.custo, 75)
    assert math.isclose(i1.qtd_descoberta, 5)
    assert res.saldos[("WH1", "SKU1")].qtd == 0


def test_fifo_sem_camadas_custa_zero():
    res = replay_movimentos([mov("i1", "issue", 3, 3)], "FIFO", JANELA)
    i1 = res.resultados[0]
    assert i1.custo == 0
    assert math.isclose(i1.qtd_descoberta, 3)


def test_fifo_esgotado_em_modo_estrito_levanta():
    movs = [mov("r1", "receive", 10, 2, custo=5), mov("i1", "issue", 15, 3)]
    with pytest.raises(CamadasInsuficientes, match="camadas insuficientes"):
        LedgerCusto("FIFO", JANELA, estrito=True).replay(movs)


def test_media_saida_maior_que_saldo_zera_quantidade():
    res = replay_movimentos(
        [mov("r1", "receive", 10, 2, custo=5), mov("i1", "issue", 15, 3)],
        "WA", JANELA,
    )
    saldo = res.saldos[("WH1", "SKU1")]
    assert saldo.qtd == 0
    assert math.isclose(res.cogs_total, 75)


# ----------------------
# janela
# ----------------------

@pytest.mark.parametrize(
    "quando,conta",
    [
        (datetime(2024, 12, 31, 23, 59, 59, tzinfo=timezone.utc), False),
        (datetime(2025, 1, 1, 0, 0, 0, tzinfo=timezone.utc), True),
        (datetime(2025, 1, 31, 23, 59, 59, tzinfo=timezone.utc), True),
        (datetime(2025, 2, 1, 0, 0, 0, tzinfo=timezone.utc), False),
    ],
)
def test_cogs_so_dentro_da_janela(quando, conta):
    movs = [
        mov("r1", "receive", 10, 2, custo=5, criado_em=datetime(2024, 12, 1, tzinfo=timezone.utc)),
        mov("i1", "issue", 4, 1, criado_em=quando),
    ]
    res = replay_movimentos(movs, "FIFO", JANELA)
    assert math.isclose(res.cogs_por_item.get("SKU1", 0.0), 20 if conta else 0)
    assert math.isclose(res.vendidos_por_item.get("SKU1", 0.0), 4 if conta else 0)
    # saldo final considera o movimento de qualquer forma
    assert math.isclose(res.saldos[("WH1", "SKU1")].qtd, 6)


def test_recebidos_fora_da_janela_nao_contam():
    res = replay_movimentos(
        [mov("r1", "receive", 10, 2, custo=5, criado_em=datetime(2024, 12, 1, tzinfo=timezone.utc))],
        "FIFO", JANELA,
    )
    assert res.recebidos_por_item == {}


# ----------------------
# descarte por registro
# ----------------------

def test_motivos_de_descarte():
    movs = [
        mov("z1", "receive", 0, 2, custo=5),
        mov("z2", "issue", -3, 2),
        Movimento(id="z3", tipo="receive", item_id="SKU1", qtd=5, armazem_id="WH1", criado_em=ts(2)),
        mov("w1", "receive", 5, 2, armazem=None, custo=1),
        mov("w2", "transfer", 5, 2, armazem=None, armazem_origem_id="WH1"),
        mov("s1", "receive", 5, 2, item="", custo=1),
    ]
    res = replay_movimentos(movs, "FIFO", JANELA)
    motivos = {r.movimento_id: r.motivo for r in res.ignorados}
    assert motivos == {
        "z1": QTD_NAO_POSITIVA,
        "z2": QTD_NAO_POSITIVA,
        "z3": QTD_NAO_POSITIVA,
        "w1": ARMAZEM_NAO_RESOLVIDO,
        "w2": ARMAZEM_NAO_RESOLVIDO,
        "s1": SEM_ITEM,
    }
    assert res.contagem_ignorados() == {QTD_NAO_POSITIVA: 3, ARMAZEM_NAO_RESOLVIDO: 2, SEM_ITEM: 1}
    assert res.aplicados == []
    assert res.saldos == {}


def test_um_resultado_por_movimento():
    movs = _entradas_e_saidas() + [mov("z1", "receive", 0, 2)]
    res = replay_movimentos(movs, "WA", JANELA)
    assert len(res.resultados) == len(movs)
    assert all(isinstance(r, (Aplicado, Ignorado)) for r in res.resultados)


# ----------------------
# classificação
# ----------------------

def test_ajuste_negativo_e_saida():
    res = replay_movimentos(
        [mov("r1", "receive", 10, 2, custo=4), mov("a1", "adjust", -3, 3)],
        "FIFO", JANELA,
    )
    a1 = res.resultados[-1]
    assert a1.direcao == OUT
    assert math.isclose(a1.custo, 12)
    assert math.isclose(res.saldos[("WH1", "SKU1")].qtd, 7)


def test_ajuste_positivo_e_tipo_desconhecido_sao_entrada():
    res = replay_movimentos(
        [mov("a1", "adjust", 4, 2, custo=6), mov("x1", "contagem", 2, 3, custo=6)],
        "FIFO", JANELA,
    )
    assert [r.direcao for r in res.resultados] == [IN, IN]
    assert math.isclose(res.saldos[("WH1", "SKU1")].valor, 36)


@pytest.mark.parametrize(
    "tipo,qtd,esperado",
    [
        ("receive", 1, IN),
        ("Purchase", 1, IN),
        ("issue", 1, OUT),
        ("sale", 1, OUT),
        ("transfer", 1, TRANSFER),
        ("adjust", 0, IN),
        ("stock_adjustment", -1, OUT),
        ("inventario", -2, OUT),
    ],
)
def test_classificar_movimento(tipo, qtd, esperado):
    assert classificar_movimento(mov("m", tipo, qtd, 2)) == esperado


def test_resolver_armazem_por_direcao():
    m = Movimento(id="m", tipo="receive", item_id="X", armazem_origem_id="A", armazem_destino_id="B")
    assert resolver_armazem(m, IN) == "B"
    assert resolver_armazem(m, OUT) == "A"
    so_origem = Movimento(id="m", tipo="issue", item_id="X", armazem_origem_id="A")
    assert resolver_armazem(so_origem, IN) == "A"
    unico = Movimento(id="m", tipo="issue", item_id="X", armazem_id="C", armazem_origem_id="A")
    assert resolver_armazem(unico, OUT) == "C"


def test_entrada_sem_armazem_usa_destino():
    res = replay_movimentos(
        [mov("r1", "receive", 5, 2, armazem=None, custo=2, armazem_destino_id="WH9")],
        "FIFO", JANELA,
    )
    assert math.isclose(res.valoracao_por_armazem["WH9"], 10)


# ----------------------
# custo de entrada
# ----------------------

def test_media_entrada_sem_custo_usa_media_atual():
    res = replay_movimentos(
        [mov("r1", "receive", 10, 2, custo=5), mov("r2", "receive", 10, 3)],
        "WA", JANELA,
    )
    saldo = res.saldos[("WH1", "SKU1")]
    assert math.isclose(saldo.custo_medio, 5)
    assert math.isclose(saldo.qtd, 20)


def test_fifo_entrada_sem_custo_usa_valor_total():
    res = replay_movimentos([mov("r1", "receive", 10, 2, valor_total=30)], "FIFO", JANELA)
    assert res.saldos[("WH1", "SKU1")].camadas == (CamadaCusto(qtd=10, custo=3),)


def test_custo_zero_e_custo_real():
    res = replay_movimentos(
        [mov("r1", "receive", 10, 2, custo=0, valor_total=50)], "FIFO", JANELA,
    )
    assert res.saldos[("WH1", "SKU1")].camadas == (CamadaCusto(qtd=10, custo=0),)


# ----------------------
# transferências e ordenação
# ----------------------

def test_transferencia_media_mistura_no_destino():
    res = replay_movimentos(
        [
            mov("r1", "receive", 10, 2, custo=5),
            mov("r2", "receive", 10, 2, armazem="WH2", custo=10),
            mov("t1", "transfer", 10, 3, armazem=None, armazem_origem_id="WH1", armazem_destino_id="WH2"),
        ],
        "WA", JANELA,
    )
    assert res.saldos[("WH1", "SKU1")].qtd == 0
    destino = res.saldos[("WH2", "SKU1")]
    assert math.isclose(destino.qtd, 20)
    assert math.isclose(destino.custo_medio, 7.5)
    assert res.cogs_total == 0


def test_transferencia_entre_bins_do_mesmo_armazem_nao_altera_saldo():
    res = replay_movimentos(
        [
            mov("r1", "receive", 10, 2, custo=5),
            mov("t1", "transfer", 4, 3, bin_origem_id="A", bin_destino_id="B"),
        ],
        "FIFO", JANELA,
    )
    assert res.saldos[("WH1", "SKU1")].camadas == (CamadaCusto(qtd=10, custo=5),)
    assert math.isclose(res.resultados[-1].custo, 20)


def test_ordena_por_timestamp():
    res = replay_movimentos(
        [mov("i1", "issue", 40, 10), mov("r1", "receive", 100, 2, custo=10)],
        "FIFO", JANELA,
    )
    assert math.isclose(res.cogs_total, 400)
    assert [r.movimento_id for r in res.resultados] == ["r1", "i1"]


def test_empate_de_timestamp_mantem_ordem_de_busca():
    res = replay_movimentos(
        [
            mov("r1", "receive", 10, 2, custo=5),
            mov("r2", "receive", 10, 2, custo=8),
            mov("i1", "issue", 10, 3),
        ],
        "FIFO", JANELA,
    )
    assert math.isclose(res.cogs_total, 50)


# ----------------------
# estado efêmero
# ----------------------

def test_replay_nao_compartilha_estado_entre_execucoes():
    ledger = LedgerCusto("FIFO", JANELA)
    a = ledger.replay(_entradas_e_saidas())
    b = ledger.replay(_entradas_e_saidas())
    assert a.cogs_por_item == b.cogs_por_item
    assert a.valoracao_por_armazem == b.valoracao_por_armazem


def test_resultado_e_imutavel():
    res = replay_movimentos(_entradas_e_saidas(), "FIFO", JANELA)
    with pytest.raises(dataclasses.FrozenInstanceError):
        res.metodo = MetodoCusto.WA


def test_metodo_desconhecido():
    with pytest.raises(ValueError, match="metodo de custo desconhecido"):
        LedgerCusto("LIFO", JANELA)
