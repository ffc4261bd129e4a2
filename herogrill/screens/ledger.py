"""Telas compartilhadas por Controle 043 e Controle de Empréstimos."""
from __future__ import annotations
from datetime import date, timedelta

import pandas as pd
import streamlit as st

from herogrill import engine, exports, storage
from herogrill.auth import allowed_stores
from herogrill.config import CFG
from herogrill.screens.common import (
    confirm_delete, money_column, no_data, pills, render_header, render_kpi,
    run_action, select_row, store_filter, tone_of,
)
from herogrill.utils import fmt_brl, fmt_date_br, today_iso
from herogrill.validation import validate_ledger_entry

_TIPO_LABEL = {CFG.TIPO_CREDITO: "Crédito", CFG.TIPO_DEBITO: "Débito"}


def _entry_fields(lojas: list[str], prefix: str, current: dict | None = None) -> dict:
    cur = current or {}
    c1, c2 = st.columns(2)
    d = c1.date_input(
        "Data", value=pd.to_datetime(cur.get("Data") or today_iso()).date(),
        format="DD/MM/YYYY", key=f"{prefix}_data",
    )
    loja = c2.selectbox(
        "Loja", lojas, index=lojas.index(cur["Loja"]) if cur.get("Loja") in lojas else None,
        key=f"{prefix}_loja",
    )
    tipos = [CFG.TIPO_DEBITO, CFG.TIPO_CREDITO]
    tipo = c1.radio(
        "Tipo", tipos, horizontal=True, format_func=_TIPO_LABEL.get,
        index=tipos.index(cur["Tipo"]) if cur.get("Tipo") in tipos else 0, key=f"{prefix}_tipo",
    )
    valor = c2.number_input(
        "Valor (R$)", min_value=0.0, step=0.01, format="%.2f",
        value=float(cur.get("Valor", 0.0)), key=f"{prefix}_valor",
    )
    desc = st.text_input(
        "Descrição", value=cur.get("Descricao", ""), max_chars=CFG.MAX_DESC_LEDGER,
        key=f"{prefix}_desc",
    )
    return {"Data": d, "Loja": loja or "", "Tipo": tipo, "Valor": float(valor), "Descricao": desc.strip()}


def _display(df: pd.DataFrame) -> pd.DataFrame:
    is_credit = df["Tipo"] == CFG.TIPO_CREDITO
    return pd.DataFrame({
        "Data": df["Data"].map(fmt_date_br),
        "Loja": df["Loja"],
        "Tipo": df["Tipo"].map(_TIPO_LABEL),
        "Crédito": df["Valor"].where(is_credit, 0.0),
        "Débito": df["Valor"].where(~is_credit, 0.0),
        "Descrição": df["Descricao"],
    })


_COLS = {"Crédito": money_column("Crédito"), "Débito": money_column("Débito")}


def _totals(df: pd.DataFrame) -> None:
    tot = engine.ledger_totals(df)
    k1, k2, k3 = st.columns(3)
    with k1:
        render_kpi("Créditos", fmt_brl(tot["credito"]), tone="up")
    with k2:
        render_kpi("Débitos", fmt_brl(tot["debito"]), tone="down")
    with k3:
        render_kpi("Saldo", fmt_brl(tot["saldo"]), "Crédito − débito", tone_of(tot["saldo"]))


def _tab_cadastro(worksheet: str, lojas: list[str], prefix: str) -> None:
    entry = _entry_fields(lojas, f"{prefix}_new")
    if st.button("REGISTRAR", key=f"{prefix}_save", use_container_width=True):
        ok, err = validate_ledger_entry(entry)
        if not ok:
            st.toast(f"⚠ {err}")
        elif run_action(
            lambda: storage.insert_ledger_entry(worksheet, entry),
            f"{_TIPO_LABEL[entry['Tipo']]} — {fmt_brl(entry['Valor'])}",
        ):
            for suffix in ("valor", "desc"):
                st.session_state.pop(f"{prefix}_new_{suffix}", None)
            st.rerun()


def _tab_consulta(worksheet: str, lojas: list[str], prefix: str) -> None:
    c1, c2, c3 = st.columns([1, 1, 1])
    with c1:
        loja = store_filter("Loja", lojas, key=f"{prefix}_cons_loja")
    with c2:
        modo = pills("Filtrar por", ["Mês", "Dia", "Ano"], key=f"{prefix}_cons_modo") or "Mês"
    with c3:
        ref = st.date_input("Referência", value=date.today(), format="DD/MM/YYYY", key=f"{prefix}_cons_ref")
    periodo = {"Dia": ref.strftime("%Y-%m-%d"), "Mês": ref.strftime("%Y-%m"), "Ano": ref.strftime("%Y")}[modo]

    df = storage.load_ledger(worksheet)
    df = df[df["Loja"].isin(lojas)]
    df = engine.filter_ledger(df, loja, periodo)
    _totals(df)
    if df.empty:
        no_data()
        return
    pos = select_row(_display(df), key=f"{prefix}_cons_table", column_config=_COLS)
    if pos is None:
        st.caption("Selecione um lançamento para editar ou excluir.")
        return
    current = df.iloc[pos].to_dict()
    with st.expander(f"Editar — {fmt_date_br(current['Data'])} {current['Loja']}", expanded=True):
        entry = _entry_fields(lojas, f"{prefix}_edit_{current['Id']}", current)
        c_save, c_del = st.columns(2)
        with c_save:
            if st.button("SALVAR ALTERAÇÕES", key=f"{prefix}_edit_save_{current['Id']}"):
                ok, err = validate_ledger_entry(entry)
                if not ok:
                    st.toast(f"⚠ {err}")
                elif run_action(lambda: storage.update_ledger_entry(worksheet, current["Id"], entry), "Lançamento atualizado"):
                    st.rerun()
        with c_del:
            if confirm_delete(f"{prefix}_del_{current['Id']}"):
                if run_action(lambda: storage.delete_ledger_entry(worksheet, current["Id"]), "Lançamento excluído"):
                    st.rerun()


def _tab_relatorios(worksheet: str, title: str, lojas: list[str], prefix: str) -> None:
    c1, c2, c3, c4 = st.columns(4)
    inicio = c1.date_input("De", value=date.today() - timedelta(days=30), format="DD/MM/YYYY", key=f"{prefix}_rel_ini")
    fim = c2.date_input("Até", value=date.today(), format="DD/MM/YYYY", key=f"{prefix}_rel_fim")
    with c3:
        loja = store_filter("Loja", lojas, key=f"{prefix}_rel_loja")
    with c4:
        visao = pills("Visão", ["Detalhada", "Sintética"], key=f"{prefix}_rel_visao") or "Detalhada"

    df = engine.filter_ledger_period(storage.load_ledger(worksheet), inicio, fim, loja, lojas)
    _totals(df)
    if df.empty:
        no_data()
        return
    if visao == "Sintética":
        st.dataframe(
            engine.ledger_by_store(df), hide_index=True, use_container_width=True,
            column_config={
                "Credito": money_column("Crédito"), "Debito": money_column("Débito"),
                "Saldo": money_column("Saldo"),
            },
        )
    else:
        st.dataframe(_display(df), hide_index=True, use_container_width=True, column_config=_COLS)

    buffer = exports.export_ledger(df, title)
    if buffer:
        st.download_button(
            "⬇ EXPORTAR EXCEL", buffer,
            file_name=f"relatorio_{prefix}_{today_iso()}.xlsx",
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            key=f"{prefix}_rel_dl",
        )


def render_ledger(user: dict, worksheet: str, title: str, subtitle: str, prefix: str) -> None:
    render_header(title, subtitle)
    lojas = allowed_stores(user, storage.load_app_data()["lojas"])
    tab_c, tab_q, tab_r = st.tabs(["Cadastrar", "Consulta", "Relatórios"])
    with tab_c:
        _tab_cadastro(worksheet, lojas, prefix)
    with tab_q:
        _tab_consulta(worksheet, lojas, prefix)
    with tab_r:
        _tab_relatorios(worksheet, title, lojas, prefix)


def render_043(user: dict) -> None:
    render_ledger(user, CFG.WS_043, "Controle 043", "Débitos e créditos da conta 043", "c043")


def render_emprestimos(user: dict) -> None:
    render_ledger(user, CFG.WS_EMPRESTIMOS, "Controle de Empréstimos", "Empréstimos entre lojas", "emp")
