from datetime import date, datetime

import pandas as pd

from herogrill.utils import (
    fmt_brl, fmt_date_br, fmt_month_year, fmt_weight, generate_id, previous_month,
    sanitize, sorted_ptbr, to_iso,
)


def test_fmt_brl_uses_brazilian_separators():
    assert fmt_brl(1234.56) == "R$ 1.234,56"
    assert fmt_brl(0) == "R$ 0,00"
    assert fmt_brl(-1500) == "-R$ 1.500,00"


def test_fmt_weight_three_decimals():
    assert fmt_weight(1234.5) == "1.234,500"
    assert fmt_weight(-0.25) == "-0,250"


def test_fmt_date_br():
    assert fmt_date_br("2025-03-07") == "07/03/2025"
    assert fmt_date_br(date(2024, 12, 1)) == "01/12/2024"
    assert fmt_date_br("") == "-"
    assert fmt_date_br(None) == "-"
    assert fmt_date_br(float("nan")) == "-"


def test_to_iso_normalizes_inputs():
    assert to_iso(date(2025, 1, 2)) == "2025-01-02"
    assert to_iso(datetime(2025, 1, 2, 13, 0)) == "2025-01-02"
    assert to_iso(pd.Timestamp("2025-01-02")) == "2025-01-02"
    assert to_iso("2025-01-02 10:11:12") == "2025-01-02"
    assert to_iso(pd.NaT) == ""
    assert to_iso(pd.Timestamp("NaT")) == ""
    assert to_iso(float("nan")) == ""
    assert to_iso("nan") == ""
    assert to_iso(None) == ""


def test_previous_month_wraps_year():
    assert previous_month(2025, 1) == (2024, 12)
    assert previous_month(2025, 7) == (2025, 6)


def test_fmt_month_year():
    assert fmt_month_year(3, 2025) == "Março 2025"


def test_sorted_ptbr_ignores_accents_and_case():
    assert sorted_ptbr(["picanha", "Óleo", "alcatra", "Coração"]) == ["alcatra", "Coração", "Óleo", "picanha"]


def test_sanitize_and_ids():
    assert sanitize("<b>") == "&lt;b&gt;"
    ident = generate_id()
    assert len(ident) == 12
    assert ident != generate_id()
