import math

from custeio.domain.models import NivelEstoque
from custeio.domain.valoracao import divergencias_valoracao, valorar_snapshot

NIVEIS = [
    NivelEstoque(item_id="X", armazem_id="WH1", bin_id="A", qtd_disponivel=10, custo_medio=2),
    NivelEstoque(item_id="Y", armazem_id="WH1", bin_id="B", qtd_disponivel=5, custo_medio=4),
    NivelEstoque(item_id="X", armazem_id="WH2", bin_id="", qtd_disponivel=3, custo_medio=10),
    NivelEstoque(item_id="Z", armazem_id="WH3", bin_id="C", qtd_disponivel=0, custo_medio=5),
    NivelEstoque(item_id="Z", armazem_id="WH3", bin_id="D", qtd_disponivel=8, custo_medio=0),
]


def test_valorar_snapshot_agrupa_por_armazem_bin_item():
    v = valorar_snapshot(NIVEIS)
    assert math.isclose(v.total, 70)
    assert v.por_armazem == {"WH1": 40, "WH2": 30}
    assert v.por_bin == {("WH1", "A"): 20, ("WH1", "B"): 20, ("WH2", None): 30}
    assert v.por_item == {"X": 50, "Y": 20}


def test_linhas_com_valor_zero_ficam_de_fora():
    v = valorar_snapshot(NIVEIS)
    assert "WH3" not in v.por_armazem
    assert "Z" not in v.por_item
    assert not any(a == "WH3" for a, _ in v.por_bin)


def test_snapshot_vazio():
    v = valorar_snapshot([])
    assert v.total == 0
    assert v.por_armazem == {} and v.por_bin == {} and v.por_item == {}


def test_divergencias_ordenadas_pela_maior_diferenca():
    v = valorar_snapshot(NIVEIS)
    div = divergencias_valoracao(v, {"WH1": 40.001, "WH2": 10, "WH9": 5})
    assert [d.armazem_id for d in div] == ["WH2", "WH9"]
    assert math.isclose(div[0].diferenca, 20)
    assert math.isclose(div[1].diferenca, -5)
    assert div[1].valor_snapshot == 0


def test_sem_divergencia_quando_bate():
    v = valorar_snapshot(NIVEIS)
    assert divergencias_valoracao(v, {"WH1": 40, "WH2": 30}) == []
