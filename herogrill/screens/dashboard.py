from __future__ import annotations
from datetime import date

import plotly.graph_objects as go
import streamlit as st

from herogrill import engine, storage
from herogrill.auth import allowed_stores
from herogrill.screens.common import (
    month_year_inputs, no_data, plot, render_header, render_kpi, store_filter, tone_of,
)
from herogrill.utils import fmt_brl, fmt_month_year


def _sort_choice(title: str, key: str) -> str:
    st.markdown(f"**{title}**")
    return st.radio(
        "Ordenar", ["value", "alpha"], horizontal=True, key=key,
        format_func=lambda m: "Maior valor" if m == "value" else "A-Z",
        label_visibility="collapsed",
    )


def render(user: dict) -> None:
    render_header("Dashboard", "Visão geral do mês")
    app_data = storage.load_app_data()
    lojas = allowed_stores(user, app_data["lojas"])

    c1, c2 = st.columns([1, 2])
    with c1:
        loja = store_filter("Loja", lojas, key="dash_loja")
    with c2:
        mes, ano = month_year_inputs("dash")

    df_orders = storage.load_orders()
    df_lanc = storage.load_lancamentos()
    if loja is None and len(lojas) != len(app_data["lojas"]):
        df_orders = df_orders[df_orders["Loja"].isin(lojas)]
        df_lanc = df_lanc[df_lanc["Loja"].isin(lojas)]

    mx = engine.dashboard_metrics(df_orders, df_lanc, ano, mes, loja)
    is_current = date.today().year == ano and date.today().month == mes

    k1, k2, k3 = st.columns(3)
    with k1:
        render_kpi(
            "Receitas", fmt_brl(mx["receitas"]),
            f"Projeção: {fmt_brl(mx['projecao_receitas'])}" if is_current else fmt_month_year(mes, ano),
            "up",
        )
    with k2:
        render_kpi(
            "Despesas", fmt_brl(mx["despesas"]),
            f"Projeção: {fmt_brl(mx['projecao_despesas'])}" if is_current else "Pedidos + despesas",
            "down",
        )
    with k3:
        render_kpi("Resultado", fmt_brl(mx["resultado"]), "Receitas − despesas", tone_of(mx["resultado"]))

    # --- Desempenho por loja ---
    st.markdown("#### Desempenho por loja")
    perf = engine.store_performance(df_orders, df_lanc, lojas, ano, mes, loja)
    if perf.empty:
        no_data()
    else:
        fig = go.Figure()
        fig.add_trace(go.Bar(name="Receita", x=perf["Loja"], y=perf["Receita"], marker_color="#16a34a"))
        fig.add_trace(go.Bar(name="Despesa", x=perf["Loja"], y=perf["Despesa"], marker_color="#dc2626"))
        if is_current:
            fig.add_trace(go.Scatter(
                name="Receita projetada", x=perf["Loja"], y=perf["ProjReceita"],
                mode="markers", marker=dict(size=10, color="#16a34a", symbol="diamond-open"),
            ))
        fig.update_layout(barmode="group")
        plot(fig)

    # --- Despesas fixas x variáveis ---
    col_f, col_v = st.columns(2)
    with col_f:
        modo_f = _sort_choice("Despesas Fixas", "dash_sort_fixed")
    with col_v:
        modo_v = _sort_choice("Despesas Variáveis", "dash_sort_var")
    fixas, variaveis = engine.expense_lists(mx["despesas_lista"], modo_f, modo_v)
    for col, df, label in ((col_f, fixas, "Fixas"), (col_v, variaveis, "Variáveis")):
        with col:
            if df.empty:
                no_data("Sem despesas.")
            else:
                st.dataframe(
                    df.assign(Valor=df["Valor"].map(fmt_brl)),
                    hide_index=True, use_container_width=True,
                )
                st.caption(f"Total {label}: {fmt_brl(float(df['Valor'].sum()))}")

    # --- Comparativo 6 meses ---
    st.markdown("#### Últimos 6 meses")
    comp = engine.monthly_comparison(df_orders, df_lanc, loja)
    fig = go.Figure()
    fig.add_trace(go.Bar(name="Receitas", x=comp["Mes"], y=comp["Receitas"], marker_color="#16a34a"))
    fig.add_trace(go.Bar(name="Despesas", x=comp["Mes"], y=comp["Despesas"], marker_color="#dc2626"))
    fig.update_layout(barmode="group")
    plot(fig, height=280)
