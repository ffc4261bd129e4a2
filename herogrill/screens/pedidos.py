from __future__ import annotations
from datetime import date, timedelta

import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from herogrill import engine, exports, storage
from herogrill.auth import allowed_stores, has_permission
from herogrill.config import CFG
from herogrill.screens.common import (
    confirm_delete, money_column, no_data, plot, render_header, render_kpi,
    run_action, select_row, store_filter,
)
from herogrill.utils import fmt_brl, fmt_date_br, fmt_weight, today_iso
from herogrill.validation import validate_order

_FORM_KEYS = ("ped_marca", "ped_fornecedor", "ped_unidade", "ped_valor", "ped_categoria", "ped_tipo")


def _autofill_from_last_order() -> None:
    """Preenche campos com o último pedido do produto escolhido."""
    produto = st.session_state.get("ped_produto")
    last = engine.last_order_for_product(storage.load_orders(), produto)
    if not last:
        return
    app_data = storage.load_app_data()
    for key, field, lista in (
        ("ped_marca", "Marca", "marcas"),
        ("ped_fornecedor", "Fornecedor", "fornecedores"),
        ("ped_unidade", "UnidadeMedida", "unidades"),
        ("ped_categoria", "Categoria", "categorias"),
        ("ped_tipo", "Tipo", "tipos"),
    ):
        st.session_state[key] = last[field] if last[field] in app_data[lista] else None
    st.session_state.ped_valor = float(last["ValorUnitario"])


def _initial(key: str, **kwargs) -> dict:
    """Valor inicial do widget, omitido quando já preenchido via session_state."""
    return {} if key in st.session_state else kwargs


def _order_fields(app_data: dict, lojas: list[str], prefix: str, current: dict | None = None) -> dict:
    """Campos do pedido (cadastro e edição)."""
    cur = current or {}

    def _idx(options: list, value) -> int | None:
        return options.index(value) if value in options else None

    c1, c2, c3 = st.columns(3)
    with c1:
        d = st.date_input(
            "Data", value=pd.to_datetime(cur.get("Data") or today_iso()).date(),
            format="DD/MM/YYYY", key=f"{prefix}_data",
        )
        loja = st.selectbox("Loja", lojas, index=_idx(lojas, cur.get("Loja")), key=f"{prefix}_loja")
        produto = st.selectbox(
            "Produto", app_data["produtos"], index=_idx(app_data["produtos"], cur.get("Produto")),
            key=f"{prefix}_produto",
            on_change=_autofill_from_last_order if prefix == "ped" else None,
        )
    with c2:
        marca = st.selectbox(
            "Marca", app_data["marcas"], key=f"{prefix}_marca",
            **_initial(f"{prefix}_marca", index=_idx(app_data["marcas"], cur.get("Marca"))),
        )
        fornecedor = st.selectbox(
            "Fornecedor", app_data["fornecedores"], key=f"{prefix}_fornecedor",
            **_initial(f"{prefix}_fornecedor", index=_idx(app_data["fornecedores"], cur.get("Fornecedor"))),
        )
        unidade = st.selectbox(
            "Unidade de medida", app_data["unidades"], key=f"{prefix}_unidade",
            **_initial(f"{prefix}_unidade", index=_idx(app_data["unidades"], cur.get("UnidadeMedida"))),
        )
    with c3:
        valor = st.number_input(
            "Valor unitário (R$)", min_value=0.0, step=0.01, format="%.2f", key=f"{prefix}_valor",
            **_initial(f"{prefix}_valor", value=float(cur.get("ValorUnitario", 0.0))),
        )
        qtd = st.number_input(
            "Quantidade", min_value=0.0, step=1.0, format="%.3f",
            value=float(cur.get("Quantidade", 0.0)), key=f"{prefix}_qtd",
        )
        venc_default = pd.to_datetime(cur["Vencimento"]).date() if cur.get("Vencimento") else None
        venc = st.date_input("Vencimento", value=venc_default, format="DD/MM/YYYY", key=f"{prefix}_venc")
    c4, c5 = st.columns(2)
    tipo = c4.selectbox(
        "Tipo", app_data["tipos"], key=f"{prefix}_tipo",
        **_initial(f"{prefix}_tipo", index=_idx(app_data["tipos"], cur.get("Tipo"))),
    )
    categoria = c5.selectbox(
        "Categoria", app_data["categorias"], key=f"{prefix}_categoria",
        **_initial(f"{prefix}_categoria", index=_idx(app_data["categorias"], cur.get("Categoria"))),
    )
    st.caption(f"Valor total: {fmt_brl(round(valor * qtd, 2))}")
    return {
        "Data": d, "Loja": loja or "", "Produto": produto or "", "Marca": marca or "",
        "Fornecedor": fornecedor or "", "UnidadeMedida": unidade or "",
        "ValorUnitario": float(valor), "Quantidade": float(qtd),
        "Vencimento": venc, "Tipo": tipo or "", "Categoria": categoria or "",
    }


def _tab_cadastro(app_data: dict, lojas: list[str]) -> None:
    entry = _order_fields(app_data, lojas, "ped")
    if st.button("REGISTRAR PEDIDO", key="ped_save", use_container_width=True):
        ok, err = validate_order(entry)
        if not ok:
            st.toast(f"⚠ {err}")
            return
        if run_action(lambda: storage.insert_order(entry), f"{entry['Produto']} — {fmt_brl(entry['ValorUnitario'] * entry['Quantidade'])}"):
            for key in _FORM_KEYS + ("ped_qtd",):
                st.session_state.pop(key, None)
            st.rerun()


def _display_orders(df: pd.DataFrame) -> pd.DataFrame:
    return pd.DataFrame({
        "Data": df["Data"].map(fmt_date_br),
        "Loja": df["Loja"],
        "Produto": df["Produto"],
        "Fornecedor": df["Fornecedor"],
        "Qtd": df["Quantidade"],
        "Un.": df["UnidadeMedida"],
        "Unitário": df["ValorUnitario"],
        "Total": df["ValorTotal"],
        "Vencimento": df["Vencimento"].map(fmt_date_br),
    })


def _tab_consulta(app_data: dict, lojas: list[str]) -> None:
    c1, c2, c3 = st.columns(3)
    inicio = c1.date_input("De", value=date.today().replace(day=1), format="DD/MM/YYYY", key="pedc_ini")
    fim = c2.date_input("Até", value=date.today(), format="DD/MM/YYYY", key="pedc_fim")
    with c3:
        loja = store_filter("Loja", lojas, key="pedc_loja")
    df = engine.filter_orders(storage.load_orders(), inicio, fim, loja, lojas_permitidas=lojas)
    df = df.iloc[::-1].reset_index(drop=True)
    if df.empty:
        no_data()
        return
    pos = select_row(
        _display_orders(df), key="pedc_table",
        column_config={"Unitário": money_column("Unitário"), "Total": money_column("Total")},
    )
    st.caption(f"{len(df)} pedido(s) — total {fmt_brl(float(df['ValorTotal'].sum()))}")
    if pos is None:
        st.caption("Selecione um pedido para editar ou excluir.")
        return

    current = df.iloc[pos].to_dict()
    with st.expander(f"Editar pedido — {current['Produto']} ({fmt_date_br(current['Data'])})", expanded=True):
        entry = _order_fields(app_data, lojas, f"pede_{current['Id']}", current)
        c_save, c_del = st.columns(2)
        with c_save:
            if st.button("SALVAR ALTERAÇÕES", key=f"pede_save_{current['Id']}"):
                ok, err = validate_order(entry)
                if not ok:
                    st.toast(f"⚠ {err}")
                elif run_action(lambda: storage.update_order(current["Id"], entry), "Pedido atualizado"):
                    st.rerun()
        with c_del:
            if confirm_delete(f"pede_del_{current['Id']}"):
                if run_action(lambda: storage.delete_order(current["Id"]), "Pedido excluído"):
                    st.rerun()


def _tab_relatorios(app_data: dict, lojas: list[str]) -> None:
    c1, c2, c3, c4 = st.columns(4)
    inicio = c1.date_input("De", value=date.today() - timedelta(days=30), format="DD/MM/YYYY", key="pedr_ini")
    fim = c2.date_input("Até", value=date.today(), format="DD/MM/YYYY", key="pedr_fim")
    with c3:
        loja = store_filter("Loja", lojas, key="pedr_loja")
    produto = c4.selectbox("Produto", ["Todos"] + app_data["produtos"], key="pedr_prod")
    produto = None if produto == "Todos" else produto

    df = engine.filter_orders(storage.load_orders(), inicio, fim, loja, produto, lojas_permitidas=lojas)
    if df.empty:
        no_data()
        return

    k1, k2, k3 = st.columns(3)
    with k1:
        render_kpi("Pedidos", str(len(df)))
    with k2:
        render_kpi("Quantidade", fmt_weight(float(df["Quantidade"].sum())))
    with k3:
        render_kpi("Valor total", fmt_brl(float(df["ValorTotal"].sum())))

    st.dataframe(
        _display_orders(df), hide_index=True, use_container_width=True,
        column_config={"Unitário": money_column("Unitário"), "Total": money_column("Total")},
    )

    if produto:
        st.markdown(f"#### Evolução do preço unitário — {produto}")
        fig = go.Figure(go.Scatter(
            x=df["Data"], y=df["ValorUnitario"], mode="lines+markers",
            line=dict(color="#b91c1c", width=2), name="Valor unitário",
        ))
        plot(fig, height=260)

    buffer = exports.export_orders(df)
    if buffer:
        st.download_button(
            "⬇ EXPORTAR EXCEL", buffer, file_name=f"relatorio_pedidos_{today_iso()}.xlsx",
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )


def render_list_editor(app_data: dict, keys: tuple, prefix: str) -> None:
    """Edição das listas do sistema (uma tabela por lista)."""
    labels = {
        "lojas": "Lojas", "produtos": "Produtos", "marcas": "Marcas",
        "fornecedores": "Fornecedores", "unidades": "Unidades",
        "tipos": "Tipos", "categorias": "Categorias",
    }
    edited: dict[str, list[str]] = dict(app_data)
    cols = st.columns(min(len(keys), 3))
    for i, key in enumerate(keys):
        with cols[i % len(cols)]:
            st.markdown(f"**{labels[key]}**")
            df_edit = st.data_editor(
                pd.DataFrame({"Item": app_data.get(key, [])}),
                num_rows="dynamic", hide_index=True, use_container_width=True,
                key=f"{prefix}_{key}",
            )
            edited[key] = [
                str(v).strip() for v in df_edit["Item"].tolist()
                if v is not None and str(v).strip() and str(v) != "nan"
            ]
    if st.button("SALVAR LISTAS", key=f"{prefix}_save"):
        if run_action(lambda: storage.save_app_data(edited), "Listas atualizadas"):
            st.rerun()


def render(user: dict) -> None:
    render_header("Pedidos", "Cadastro e consulta de pedidos de compra")
    app_data = storage.load_app_data()
    lojas = allowed_stores(user, app_data["lojas"])

    names = ["Cadastrar", "Consulta", "Relatórios"]
    if has_permission(user, "config_campos"):
        names.append("Campos")
    tabs = st.tabs(names)
    with tabs[0]:
        _tab_cadastro(app_data, lojas)
    with tabs[1]:
        _tab_consulta(app_data, lojas)
    with tabs[2]:
        _tab_relatorios(app_data, lojas)
    if len(tabs) > 3:
        with tabs[3]:
            render_list_editor(app_data, tuple(CFG.LISTAS), "campos")
