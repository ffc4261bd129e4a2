"""Entradas e Saídas (modelo antigo, um registro mensal por loja)."""
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
from herogrill.validation import validate_financial_record


def _record_fields(lojas: list[str], prefix: str, current: dict | None = None) -> dict:
    cur = current or {}
    loja = st.selectbox(
        "Loja", lojas, index=lojas.index(cur["Loja"]) if cur.get("Loja") in lojas else None,
        key=f"{prefix}_loja",
    )
    default = date(int(cur["Ano"]), int(cur["Mes"]), 1) if cur.get("Ano") else None
    mes, ano = month_year_inputs(prefix, default)
    entry = {"Loja": loja or "", "Ano": int(ano), "Mes": int(mes)}

    col_c, col_d = st.columns(2)
    with col_c:
        st.markdown("**Créditos (receitas)**")
        for field, label in CFG.CREDITOS_FINANCEIRO:
            entry[field] = float(st.number_input(
                f"{label} (R$)", min_value=0.0, step=0.01, format="%.2f",
                value=float(cur.get(field, 0.0)), key=f"{prefix}_{field}",
            ))
    with col_d:
        st.markdown("**Débitos (despesas)**")
        for field, label in CFG.DEBITOS_FINANCEIRO:
            entry[field] = float(st.number_input(
                f"{label} (R$)", min_value=0.0, step=0.01, format="%.2f",
                value=float(cur.get(field, 0.0)), key=f"{prefix}_{field}",
            ))
    tot = engine.record_totals(entry)
    k1, k2, k3 = st.columns(3)
    with k1:
        render_kpi("Receitas", fmt_brl(tot["TotalReceitas"]), tone="up")
    with k2:
        render_kpi("Despesas", fmt_brl(tot["TotalDespesas"]), tone="down")
    with k3:
        render_kpi("Resultado", fmt_brl(tot["ResultadoLiquido"]), tone=tone_of(tot["ResultadoLiquido"]))
    return entry


def _tab_lancamentos(lojas: list[str]) -> None:
    entry = _record_fields(lojas, "fin_new")
    if st.button("REGISTRAR", key="fin_save", use_container_width=True):
        ok, err = validate_financial_record(entry)
        if not ok:
            st.toast(f"⚠ {err}")
        elif run_action(lambda: storage.insert_financial_record(entry), f"{entry['Loja']} — {fmt_month_year(entry['Mes'], entry['Ano'])}"):
            for field, _ in CFG.CREDITOS_FINANCEIRO + CFG.DEBITOS_FINANCEIRO:
                st.session_state.pop(f"fin_new_{field}", None)
            st.rerun()


def _display(df: pd.DataFrame) -> pd.DataFrame:
    return pd.DataFrame({
        "Mês/Ano": [f"{MESES_PT[int(m)]}/{int(a)}" for m, a in zip(df["Mes"], df["Ano"])],
        "Loja": df["Loja"],
        "Receitas": df["TotalReceitas"],
        "Despesas": df["TotalDespesas"],
        "Resultado": df["ResultadoLiquido"],
    })


_COLS = {c: money_column(c) for c in ("Receitas", "Despesas", "Resultado")}


def _filtered(lojas: list[str], key: str) -> tuple[pd.DataFrame, str | None]:
    c1, c2 = st.columns([1, 2])
    with c1:
        loja = store_filter("Loja", lojas, key=f"{key}_loja", all_label=engine.CONSOLIDADO)
    with c2:
        mes, ano = month_year_inputs(key, allow_all=True)
    df = storage.load_financial_records()
    df = df[df["Loja"].isin(lojas)]
    return engine.aggregate_financial_records(df, loja, ano, mes), loja


def _tab_consulta(lojas: list[str]) -> None:
    df, loja = _filtered(lojas, "finc")
    if df.empty:
        no_data()
        return
    pos = select_row(_display(df), key="finc_table", column_config=_COLS)
    if not loja:
        st.caption("Visão consolidada. Selecione uma loja para editar registros.")
        return
    if pos is None:
        st.caption("Selecione um registro para editar ou excluir.")
        return
    current = df.iloc[pos].to_dict()
    with st.expander(f"Editar — {current['Loja']} {fmt_month_year(int(current['Mes']), int(current['Ano']))}", expanded=True):
        entry = _record_fields(lojas, f"fine_{current['Id']}", current)
        c_save, c_del = st.columns(2)
        with c_save:
            if st.button("SALVAR ALTERAÇÕES", key=f"fine_save_{current['Id']}"):
                ok, err = validate_financial_record(entry)
                if not ok:
                    st.toast(f"⚠ {err}")
                elif run_action(lambda: storage.update_financial_record(current["Id"], entry), "Registro atualizado"):
                    st.rerun()
        with c_del:
            if confirm_delete(f"fine_del_{current['Id']}"):
                if run_action(lambda: storage.delete_financial_record(current["Id"]), "Registro excluído"):
                    st.rerun()


def _tab_relatorios(lojas: list[str]) -> None:
    df, _ = _filtered(lojas, "finr")
    if df.empty:
        no_data()
        return
    tot_rec = float(df["TotalReceitas"].sum())
    tot_desp = float(df["TotalDespesas"].sum())
    k1, k2, k3 = st.columns(3)
    with k1:
        render_kpi("Receitas", fmt_brl(tot_rec), tone="up")
    with k2:
        render_kpi("Despesas", fmt_brl(tot_desp), tone="down")
    with k3:
        render_kpi("Resultado", fmt_brl(tot_rec - tot_desp), tone=tone_of(tot_rec - tot_desp))

    chrono = df.iloc[::-1]
    labels = [f"{MESES_PT[int(m)]}/{str(int(a))[2:]}" for m, a in zip(chrono["Mes"], chrono["Ano"])]
    fig = go.Figure()
    fig.add_trace(go.Bar(name="Receitas", x=labels, y=chrono["TotalReceitas"], marker_color="#16a34a"))
    fig.add_trace(go.Bar(name="Despesas", x=labels, y=chrono["TotalDespesas"], marker_color="#dc2626"))
    fig.add_trace(go.Scatter(
        name="Resultado", x=labels, y=chrono["ResultadoLiquido"], mode="lines+markers",
        line=dict(color="#1e293b", width=2, dash="dot"),
    ))
    fig.update_layout(barmode="group")
    plot(fig)

    st.dataframe(_display(df), hide_index=True, use_container_width=True, column_config=_COLS)
    buffer = exports.export_financial_records(df)
    if buffer:
        st.download_button(
            "⬇ EXPORTAR EXCEL", buffer, file_name=f"relatorio_financeiro_{today_iso()}.xlsx",
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )


def render(user: dict) -> None:
    render_header("Entradas e Saídas", "Registro mensal por loja (modelo antigo)")
    lojas = allowed_stores(user, storage.load_app_data()["lojas"])
    tab_l, tab_c, tab_r = st.tabs(["Lançamentos", "Consulta", "Relatórios"])
    with tab_l:
        _tab_lancamentos(lojas)
    with tab_c:
        _tab_consulta(lojas)
    with tab_r:
        _tab_relatorios(lojas)
