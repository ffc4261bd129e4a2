from __future__ import annotations
from datetime import date

import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from herogrill import engine, exports, storage
from herogrill.auth import allowed_stores
from herogrill.config import CFG, MESES_PT
from herogrill.screens.common import (
    confirm_delete, money_column, month_year_inputs, no_data, plot, render_header,
    render_kpi, run_action, select_row, store_filter, tone_of,
)
from herogrill.utils import fmt_brl, fmt_month_year, today_iso
from herogrill.validation import validate_balance_snapshot


def _snapshot_fields(lojas: list[str], prefix: str, current: dict | None = None) -> dict:
    cur = current or {}
    loja = st.selectbox(
        "Loja", lojas, index=lojas.index(cur["Loja"]) if cur.get("Loja") in lojas else None,
        key=f"{prefix}_loja",
    )
    default = date(int(cur["Ano"]), int(cur["Mes"]), 1) if cur.get("Ano") else None
    mes, ano = month_year_inputs(prefix, default)
    entry = {"Loja": loja or "", "Ano": int(ano), "Mes": int(mes)}
    cols = st.columns(3)
    for i, (field, label) in enumerate(CFG.CONTAS_SALDO):
        entry[field] = float(cols[i % 3].number_input(
            f"{label} (R$)", step=0.01, format="%.2f",
            value=float(cur.get(field, 0.0)), key=f"{prefix}_{field}",
        ))
    total = engine.snapshot_total(entry)
    render_kpi("Saldo total", fmt_brl(total), tone=tone_of(total))
    return entry


def _tab_lancamentos(lojas: list[str]) -> None:
    entry = _snapshot_fields(lojas, "sal_new")
    if entry["Loja"]:
        prev = storage.previous_month_balance(entry["Loja"], entry["Ano"], entry["Mes"])
        if prev:
            diff = engine.snapshot_total(entry) - float(prev["SaldoTotal"])
            st.caption(
                f"Mês anterior ({fmt_month_year(int(prev['Mes']), int(prev['Ano']))}): "
                f"{fmt_brl(float(prev['SaldoTotal']))} — variação {fmt_brl(diff)}"
            )
        else:
            st.caption("Sem saldo registrado no mês anterior para esta loja.")
    if st.button("REGISTRAR SALDO", key="sal_save", use_container_width=True):
        ok, err = validate_balance_snapshot(entry)
        if not ok:
            st.toast(f"⚠ {err}")
        elif run_action(lambda: storage.insert_snapshot(entry), f"Saldo {entry['Loja']} registrado"):
            for field, _ in CFG.CONTAS_SALDO:
                st.session_state.pop(f"sal_new_{field}", None)
            st.rerun()


def _display(df: pd.DataFrame) -> pd.DataFrame:
    data = {
        "Loja": df["Loja"],
        "Mês/Ano": [f"{MESES_PT[int(m)]}/{int(a)}" for m, a in zip(df["Mes"], df["Ano"])],
    }
    for field, label in CFG.CONTAS_SALDO:
        if field in df.columns:
            data[label] = df[field]
    data["Total"] = df["SaldoTotal"]
    data["Variação"] = df["Variacao"]
    return pd.DataFrame(data)


def _money_cols(df: pd.DataFrame) -> dict:
    return {c: money_column(c) for c in df.columns if c not in ("Loja", "Mês/Ano")}


def _tab_consulta(lojas: list[str]) -> None:
    c1, c2 = st.columns([1, 2])
    with c1:
        loja = store_filter("Loja", lojas, key="salc_loja")
    with c2:
        mes, ano = month_year_inputs("salc", allow_all=True)
    df = storage.load_snapshots()
    df = engine.balance_variations(df[df["Loja"].isin(lojas)])
    df = engine.filter_snapshots(df, loja, ano, mes)
    if df is None or df.empty:
        no_data()
        return
    shown = _display(df)
    pos = select_row(shown, key="salc_table", column_config=_money_cols(shown))
    if pos is None:
        st.caption("Selecione um saldo para editar ou excluir.")
        return
    current = df.iloc[pos].to_dict()
    with st.expander(f"Editar — {current['Loja']} {fmt_month_year(int(current['Mes']), int(current['Ano']))}", expanded=True):
        entry = _snapshot_fields(lojas, f"sale_{current['Id']}", current)
        c_save, c_del = st.columns(2)
        with c_save:
            if st.button("SALVAR ALTERAÇÕES", key=f"sale_save_{current['Id']}"):
                ok, err = validate_balance_snapshot(entry)
                if not ok:
                    st.toast(f"⚠ {err}")
                elif run_action(lambda: storage.update_snapshot(current["Id"], entry), "Saldo atualizado"):
                    st.rerun()
        with c_del:
            if confirm_delete(f"sale_del_{current['Id']}"):
                if run_action(lambda: storage.delete_snapshot(current["Id"]), "Saldo excluído"):
                    st.rerun()


def _tab_relatorios(lojas: list[str]) -> None:
    loja = store_filter("Loja", lojas, key="salr_loja", all_label="Todas (consolidado)")
    df = storage.load_snapshots()
    df = df[df["Loja"].isin(lojas)]
    if loja:
        series = engine.balance_variations(df)
        series = series[series["Loja"] == loja]
    else:
        series = engine.consolidated_variations(df)
    if series.empty:
        no_data()
        return
    series = series.sort_values(["Ano", "Mes"]).reset_index(drop=True)
    labels = [f"{MESES_PT[int(m)]}/{str(int(a))[2:]}" for m, a in zip(series["Mes"], series["Ano"])]

    last = series.iloc[-1]
    k1, k2 = st.columns(2)
    with k1:
        render_kpi("Saldo atual", fmt_brl(float(last["SaldoTotal"])), fmt_month_year(int(last["Mes"]), int(last["Ano"])))
    with k2:
        render_kpi("Variação no mês", fmt_brl(float(last["Variacao"])), tone=tone_of(float(last["Variacao"])))

    fig = go.Figure()
    fig.add_trace(go.Bar(
        name="Variação", x=labels, y=series["Variacao"],
        marker_color=["#16a34a" if v >= 0 else "#dc2626" for v in series["Variacao"]],
    ))
    fig.add_trace(go.Scatter(
        name="Saldo total", x=labels, y=series["SaldoTotal"], mode="lines+markers",
        line=dict(color="#1e293b", width=2, dash="dot"), yaxis="y2",
    ))
    fig.update_layout(yaxis2=dict(overlaying="y", side="right", showgrid=False, tickformat=",.0f"))
    plot(fig)

    buffer = exports.export_snapshots(series.iloc[::-1].reset_index(drop=True))
    if buffer:
        st.download_button(
            "⬇ EXPORTAR EXCEL", buffer, file_name=f"saldo_contas_{today_iso()}.xlsx",
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )


def render(user: dict) -> None:
    render_header("Saldo de Contas", "Saldos mensais por loja")
    lojas = allowed_stores(user, storage.load_app_data()["lojas"])
    tab_l, tab_c, tab_r = st.tabs(["Lançamentos", "Consulta", "Relatórios"])
    with tab_l:
        _tab_lancamentos(lojas)
    with tab_c:
        _tab_consulta(lojas)
    with tab_r:
        _tab_relatorios(lojas)
