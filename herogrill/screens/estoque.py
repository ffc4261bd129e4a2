from __future__ import annotations
from datetime import date

import pandas as pd
import streamlit as st

from herogrill import engine, printing, storage
from herogrill.auth import allowed_stores
from herogrill.config import CFG
from herogrill.screens.common import no_data, render_header, render_kpi, run_action
from herogrill.utils import fmt_date_br, fmt_weight, today_iso
from herogrill.validation import validate_meat_adjustment

_WEIGHT = st.column_config.NumberColumn(format="%.3f")


def _tab_controle(lojas: list[str]) -> None:
    loja = st.selectbox("Loja", lojas, key="est_loja")
    if not loja:
        no_data("Nenhuma loja cadastrada.")
        return
    hoje = today_iso()
    sheet = engine.daily_meat_sheet(
        storage.load_orders(), storage.load_consumption(), storage.load_adjustments(), loja, hoje,
    )
    st.caption(f"Controle do dia {fmt_date_br(hoje)} — quantidades em kg")
    edited = st.data_editor(
        sheet, hide_index=True, use_container_width=True, key=f"est_editor_{loja}",
        disabled=["Produto", "EstoqueInicial", "EstoqueFinal"],
        column_config={
            "Produto": "Produto",
            "EstoqueInicial": st.column_config.NumberColumn("Estoque inicial", format="%.3f"),
            "ConsumoHoje": st.column_config.NumberColumn("Consumo hoje", format="%.3f", min_value=0.0, step=0.001),
            "EstoqueFinal": st.column_config.NumberColumn("Estoque final", format="%.3f"),
        },
    )
    consumo = pd.to_numeric(edited["ConsumoHoje"], errors="coerce").fillna(0.0)
    final = edited["EstoqueInicial"] - consumo
    k1, k2, k3 = st.columns(3)
    with k1:
        render_kpi("Estoque inicial", fmt_weight(float(edited["EstoqueInicial"].sum())))
    with k2:
        render_kpi("Consumo hoje", fmt_weight(float(consumo.sum())))
    with k3:
        render_kpi("Estoque final", fmt_weight(float(final.sum())), tone="down" if (final < 0).any() else "")
    if (final < 0).any():
        st.warning("Há produtos com estoque final negativo.")

    if st.button("SALVAR CONSUMO DO DIA", key="est_save", use_container_width=True):
        quantidades = dict(zip(edited["Produto"], consumo))
        if run_action(lambda: storage.save_daily_consumption(loja, hoje, quantidades), "Consumo registrado"):
            st.rerun()


def _tab_gerar_pedido(lojas: list[str]) -> None:
    loja = st.selectbox("Selecionar loja", lojas, key="estp_loja")
    if not loja:
        no_data("Nenhuma loja cadastrada.")
        return
    stock = engine.meat_stock_by_store(
        storage.load_orders(), storage.load_consumption(), storage.load_adjustments(), loja,
    )
    stock["Pedido"] = 0.0
    stock["Unidade"] = CFG.UNIDADE_PEDIDO_CARNES
    edited = st.data_editor(
        stock, hide_index=True, use_container_width=True, key=f"estp_editor_{loja}",
        disabled=["Produto", "Estoque", "Unidade"],
        column_config={
            "Estoque": st.column_config.NumberColumn("Estoque atual", format="%.3f"),
            "Pedido": st.column_config.NumberColumn("Pedido (kg)", format="%.3f", min_value=0.0, step=0.001),
        },
    )
    quantidades = dict(zip(edited["Produto"], pd.to_numeric(edited["Pedido"], errors="coerce").fillna(0.0)))
    itens, peso = engine.order_sheet_totals(quantidades)
    k1, k2 = st.columns(2)
    with k1:
        render_kpi("Itens", str(itens))
    with k2:
        render_kpi("Peso total", f"{fmt_weight(peso)} kg")

    if itens:
        pdf = printing.meat_order_pdf(loja, date.today(), quantidades, dict(zip(stock["Produto"], stock["Estoque"])))
        st.download_button(
            "🖨 GERAR FOLHA DE PEDIDO (PDF)", pdf,
            file_name=f"pedido_carnes_{loja}_{today_iso()}.pdf", mime="application/pdf",
            use_container_width=True,
        )


def _tab_ajustes(lojas: list[str]) -> None:
    with st.form("est_ajuste", clear_on_submit=True):
        c1, c2 = st.columns(2)
        d = c1.date_input("Data", value=date.today(), format="DD/MM/YYYY")
        loja = c2.selectbox("Loja", lojas)
        produto = c1.selectbox("Produto", list(CFG.CARNES))
        qtd = c2.number_input("Quantidade (kg, negativo para perda)", step=0.001, format="%.3f")
        motivo = st.text_input("Motivo", max_chars=CFG.MAX_DESC_LENGTH)
        if st.form_submit_button("REGISTRAR AJUSTE"):
            entry = {"Data": d, "Loja": loja, "Produto": produto, "Quantidade": float(qtd), "Motivo": motivo.strip()}
            ok, err = validate_meat_adjustment(entry)
            if not ok:
                st.toast(f"⚠ {err}")
            elif run_action(lambda: storage.insert_adjustment(entry), f"Ajuste {produto}: {fmt_weight(qtd)} kg"):
                st.rerun()

    df = storage.load_adjustments()
    df = df[df["Loja"].isin(lojas)]
    if df.empty:
        return
    st.markdown("#### Últimos ajustes")
    st.dataframe(
        df.sort_values("CriadoEm", ascending=False).head(30).assign(Data=lambda x: x["Data"].map(fmt_date_br))
        [["Data", "Loja", "Produto", "Quantidade", "Motivo"]],
        hide_index=True, use_container_width=True, column_config={"Quantidade": _WEIGHT},
    )


def render(user: dict) -> None:
    render_header("Estoque de Carnes", "Controle diário e pedidos")
    lojas = allowed_stores(user, storage.load_app_data()["lojas"])
    tab_d, tab_p, tab_a = st.tabs(["Controle Diário", "Gerar Pedido", "Ajustes"])
    with tab_d:
        _tab_controle(lojas)
    with tab_p:
        _tab_gerar_pedido(lojas)
    with tab_a:
        _tab_ajustes(lojas)
