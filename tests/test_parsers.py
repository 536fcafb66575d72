from datetime import datetime, timezone

import pytest
from custeio.adapters.parsers import parse_numero, parse_quantidade_raw, parse_timestamp

@pytest.mark.parametrize(
    "txt,exp_num,exp_unit,exp_desc",
    [
        ("5.00 KG - Quilograma", 5.0, "KG", "Quilograma"),
        ("2 CX - Caixas", 2.0, "CX", "Caixas"),
        ("5,5 l - litro", 5.5, "L", "litro"),
        ("-2 UN - Unidade", -2.0, "UN", "Unidade"),
        ("10 PC", 10.0, "PC", None),
        ("12", 12.0, None, None),
        ("", None, None, None),
        (None, None, None, None),
    ],
)
def test_parse_quantidade_raw(txt, exp_num, exp_unit, exp_desc):
    num, unit, desc = parse_quantidade_raw(txt)
    assert (num == exp_num) or (num is None and exp_num is None)
    assert unit == exp_unit
    assert desc == exp_desc


@pytest.mark.parametrize(
    "val,esperado",
    [
        ("1.234,5", 1234.5),
        ("1,234.5", 1234.5),
        ("0,05", 0.05),
        ("-3", -3.0),
        (7, 7.0),
        (float("nan"), None),
        ("abc", None),
        ("  ", None),
        (None, None),
    ],
)
def test_parse_numero(val, esperado):
    assert parse_numero(val) == esperado


@pytest.mark.parametrize(
    "val,esperado",
    [
        ("2025-01-31", datetime(2025, 1, 31, tzinfo=timezone.utc)),
        ("31/01/2025 10:30", datetime(2025, 1, 31, 10, 30, tzinfo=timezone.utc)),
        ("05/02/2025", datetime(2025, 2, 5, tzinfo=timezone.utc)),
        ("2025-01-31T10:00:00-03:00", datetime(2025, 1, 31, 13, 0, tzinfo=timezone.utc)),
        (datetime(2025, 1, 31, 8, 0), datetime(2025, 1, 31, 8, 0, tzinfo=timezone.utc)),
        ("", None),
        (None, None),
    ],
)
def test_parse_timestamp(val, esperado):
    assert parse_timestamp(val) == esperado
