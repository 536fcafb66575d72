from datetime import date, datetime, timedelta, timezone

import pytest

from custeio.domain.models import EPOCH, Janela, MetodoCusto, Movimento, como_utc


@pytest.mark.parametrize(
    "valor,esperado",
    [
        ("FIFO", MetodoCusto.FIFO),
        ("peps", MetodoCusto.FIFO),
        ("wa", MetodoCusto.WA),
        ("weighted-average", MetodoCusto.WA),
        ("CMP", MetodoCusto.WA),
        (MetodoCusto.WA, MetodoCusto.WA),
    ],
)
def test_metodo_custo_parse(valor, esperado):
    assert MetodoCusto.parse(valor) is esperado


def test_janela_inclusiva_em_utc():
    j = Janela(inicio=date(2025, 1, 1), fim=date(2025, 1, 31))
    assert j.dias == 31
    assert j.contem(datetime(2025, 1, 1, tzinfo=timezone.utc))
    assert j.contem(datetime(2025, 1, 31, 23, 59, 59, 999999, tzinfo=timezone.utc))
    assert not j.contem(datetime(2025, 2, 1, tzinfo=timezone.utc))
    # 31/01 22:00 em UTC-3 já é 01/02 em UTC
    assert not j.contem(datetime(2025, 1, 31, 22, 0, tzinfo=timezone(timedelta(hours=-3))))


def test_janela_de_um_dia():
    j = Janela(inicio=date(2025, 1, 1), fim=date(2025, 1, 1))
    assert j.dias == 1


def test_janela_invertida():
    with pytest.raises(ValueError):
        Janela(inicio=date(2025, 2, 1), fim=date(2025, 1, 1))


def test_como_utc():
    assert como_utc(None) == EPOCH
    naive = datetime(2025, 1, 1, 10, 0)
    assert como_utc(naive) == datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc)
    assert Movimento(id="m", tipo="receive", item_id="X").instante == EPOCH


@pytest.mark.parametrize("dias", [1, 7, 30, 90])
def test_ultimos_dias_tem_exatamente_n_dias(dias):
    j = Janela.ultimos_dias(dias, hoje=date(2025, 3, 31))
    assert j.fim == date(2025, 3, 31)
    assert j.dias == dias


def test_ultimos_dias_minimo_de_um_dia():
    j = Janela.ultimos_dias(0, hoje=date(2025, 3, 31))
    assert j.inicio == j.fim
    assert j.dias == 1
