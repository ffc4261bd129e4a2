"""Financeiro: contas, lançamentos (receita / despesa / transferência) e pagamentos."""
from __future__ import annotations
from datetime import date

import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from herogrill import engine, exports, storage
from herogrill.auth import allowed_stores, has_permission
from herogrill.config import CFG
from herogrill.screens.common import (
    confirm_delete, money_column, no_data, pills, plot, render_header, render_kpi,
    run_action, store_filter, tone_of,
)
from herogrill.screens.pedidos import render_list_editor
from herogrill.utils import fmt_brl, fmt_date_br, today_iso
from herogrill.validation import validate_account, validate_lancamento


def _account_options(df_contas: pd.DataFrame, loja: str | None) -> dict[str, str]:
    """Id -> nome das contas da loja."""
    if df_contas.empty:
        return {}
    df = df_contas if not loja else df_contas[df_contas["Loja"] == loja]
    return dict(zip(df["Id"], df["Nome"]))


def _select_account(label: str, options: dict[str, str], key: str, current: str | None = None) -> str | None:
    ids = list(options.keys())
    return st.selectbox(
        label, ids, index=ids.index(current) if current in ids else None,
        format_func=lambda i: options.get(i, i), key=key,
    )


def _render_balances(df_contas: pd.DataFrame, df_lanc: pd.DataFrame, lojas: list[str], user: dict) -> None:
    if not has_permission(user, "view_balances"):
        st.info("🔒 Visualização de saldos restrita ao Gerente/Administrador.")
        return
    saldos = engine.account_balances(df_contas, df_lanc)
    saldos = saldos[saldos["Loja"].isin(lojas)]
    if saldos.empty:
        st.caption("Nenhuma conta cadastrada em Campos.")
        return
    cols = st.columns(min(len(saldos), 4))
    for i, (_, row) in enumerate(saldos.iterrows()):
        with cols[i % len(cols)]:
            render_kpi(row["Nome"], fmt_brl(float(row["Saldo"])), row["Loja"], tone_of(float(row["Saldo"])))
    st.caption(f"Saldo total: {fmt_brl(float(saldos['Saldo'].sum()))}")


def _lancamento_fields(app_data: dict, lojas: list[str], df_contas: pd.DataFrame, prefix: str, current: dict | None = None) -> dict:
    cur = current or {}
    tipos = list(CFG.TIPOS_LANCAMENTO)
    tipo = st.radio(
        "Tipo de lançamento", tipos, horizontal=True, key=f"{prefix}_tipo",
        index=tipos.index(cur["Tipo"]) if cur.get("Tipo") in tipos else 0,
    )
    is_transf = tipo == CFG.TIPO_TRANSFERENCIA

    c1, c2, c3 = st.columns(3)
    loja = c1.selectbox(
        "Loja de origem" if is_transf else "Loja", lojas,
        index=lojas.index(cur["Loja"]) if cur.get("Loja") in lojas else None, key=f"{prefix}_loja",
    )
    with c2:
        conta = _select_account(
            "Conta de origem" if is_transf else "Conta",
            _account_options(df_contas, loja), f"{prefix}_conta", cur.get("ContaId"),
        )
    venc = c3.date_input(
        "Vencimento", value=pd.to_datetime(cur.get("Data") or today_iso()).date(),
        format="DD/MM/YYYY", key=f"{prefix}_venc",
    )

    loja_dest = conta_dest = None
    if is_transf:
        d1, d2 = st.columns(2)
        loja_dest = d1.selectbox(
            "Loja de destino", app_data["lojas"],
            index=app_data["lojas"].index(cur["LojaDestino"]) if cur.get("LojaDestino") in app_data["lojas"] else None,
            key=f"{prefix}_loja_dest",
        )
        with d2:
            conta_dest = _select_account(
                "Conta de destino", _account_options(df_contas, loja_dest),
                f"{prefix}_conta_dest", cur.get("ContaDestinoId"),
            )

    e1, e2, e3 = st.columns(3)
    valor = e1.number_input(
        "Valor (R$)", min_value=0.0, step=0.01, format="%.2f",
        value=float(cur.get("Valor", 0.0)), key=f"{prefix}_valor",
    )
    metodos = ["-"] + list(CFG.METODOS_PAGAMENTO)
    metodo = e2.selectbox(
        "Forma de pagamento", metodos, key=f"{prefix}_metodo",
        index=metodos.index(cur["MetodoPagamento"]) if cur.get("MetodoPagamento") in metodos else 0,
    )
    status = e3.radio(
        "Status", [CFG.STATUS_PENDENTE, CFG.STATUS_PAGO], horizontal=True, key=f"{prefix}_status",
        index=1 if cur.get("Status") == CFG.STATUS_PAGO else 0,
    )
    pagamento = None
    if status == CFG.STATUS_PAGO:
        pag_default = cur.get("DataPagamento") or today_iso()
        pagamento = st.date_input(
            "Data de pagamento", value=pd.to_datetime(pag_default).date(),
            format="DD/MM/YYYY", key=f"{prefix}_pag",
        )

    f1, f2, f3, f4 = st.columns(4)

    def _opt(col, label, options, field):
        return col.selectbox(
            label, options, index=options.index(cur[field]) if cur.get(field) in options else None,
            key=f"{prefix}_{field}",
        )

    produto = _opt(f1, "Produto", app_data["produtos"], "Produto")
    categoria = _opt(f2, "Categoria", app_data["categorias"], "Categoria")
    fornecedor = _opt(f3, "Fornecedor", app_data["fornecedores"], "Fornecedor")
    classificacao = _opt(f4, "Classificação", app_data["tipos"], "Classificacao")
    desc = st.text_input(
        "Descrição", value=cur.get("Descricao", ""), max_chars=CFG.MAX_DESC_LENGTH, key=f"{prefix}_desc",
    )
    return {
        "Id": cur.get("Id", ""),
        "Data": venc,
        "DataPagamento": pagamento or "",
        "Loja": loja or "",
        "Tipo": tipo,
        "ContaId": conta or "",
        "LojaDestino": loja_dest or "",
        "ContaDestinoId": conta_dest or "",
        "MetodoPagamento": "" if metodo == "-" else metodo,
        "Produto": produto or "",
        "Categoria": categoria or "",
        "Fornecedor": fornecedor or "",
        "Valor": float(valor),
        "Status": status,
        "Descricao": desc.strip(),
        "Classificacao": classificacao or CFG.CLASS_VARIAVEL,
        "Origem": cur.get("Origem") or CFG.ORIGEM_MANUAL,
        "CriadoEm": cur.get("CriadoEm", ""),
    }


def _save_lancamento(entry: dict, msg: str) -> bool:
    ok, err = validate_lancamento(entry)
    if not ok:
        st.toast(f"⚠ {err}")
        return False
    return run_action(lambda: storage.upsert_lancamento(entry), msg)


def _render_auto_pix(lojas: list[str], df_contas: pd.DataFrame, df_lanc: pd.DataFrame) -> None:
    with st.expander("🪄 Pix automático (ajuste pelo saldo real)"):
        c1, c2 = st.columns(2)
        loja = c1.selectbox("Loja", lojas, index=0 if len(lojas) == 1 else None, key="pix_loja")
        with c2:
            conta = _select_account("Conta", _account_options(df_contas, loja), "pix_conta")
        if not loja or not conta:
            st.caption("Selecione loja e conta.")
            return
        inicial = float(df_contas.loc[df_contas["Id"] == conta, "SaldoInicial"].iloc[0])
        sistema = engine.account_balance(df_lanc, conta, inicial)
        real = st.number_input("Saldo real no banco (R$)", value=sistema, step=0.01, format="%.2f", key=f"pix_real_{conta}")
        diff = round(real - sistema, 2)
        k1, k2 = st.columns(2)
        with k1:
            render_kpi("Saldo no sistema", fmt_brl(sistema))
        with k2:
            render_kpi("Diferença", fmt_brl(diff), "Entrada" if diff > 0 else "Saída" if diff < 0 else "", tone_of(diff))
        if st.button("GERAR LANÇAMENTO", key="pix_save"):
            entry = engine.auto_pix_adjustment(real, sistema, loja, conta)
            if entry is None:
                st.toast("⚠ O saldo digitado é igual ao do sistema. Nenhum lançamento necessário.")
            elif run_action(lambda: storage.upsert_lancamento(entry), f"Ajuste {entry['Tipo']} {fmt_brl(entry['Valor'])}"):
                st.rerun()


def _tab_lancamentos(app_data: dict, lojas: list[str], user: dict) -> None:
    df_contas = storage.load_accounts()
    df_lanc = storage.load_lancamentos()
    _render_balances(df_contas, df_lanc, lojas, user)

    st.markdown("#### Novo lançamento")
    entry = _lancamento_fields(app_data, lojas, df_contas, "lanc_new")
    if st.button("REGISTRAR LANÇAMENTO", key="lanc_save", use_container_width=True):
        if _save_lancamento(entry, f"{entry['Tipo']} — {fmt_brl(entry['Valor'])}"):
            for suffix in ("valor", "desc"):
                st.session_state.pop(f"lanc_new_{suffix}", None)
            st.rerun()

    _render_auto_pix(lojas, df_contas, df_lanc)

    st.markdown("#### Lançamentos do mês")
    merged = engine.merge_lancamentos(df_lanc, storage.load_orders())
    inicio = date.today().replace(day=1)
    df = engine.filter_lancamentos(merged, inicio, None)
    df = df[df["Loja"].isin(lojas)]
    totals = engine.lancamento_totals(df)
    st.caption(
        f"{totals['quantidade']} lançamento(s) — receitas {fmt_brl(totals['receitas'])}, "
        f"despesas {fmt_brl(totals['despesas'])}, saldo {fmt_brl(totals['saldo'])}"
    )
    if df.empty:
        no_data()
    else:
        st.dataframe(_display(df, df_contas), hide_index=True, use_container_width=True, column_config=_COLS)


def _display(df: pd.DataFrame, df_contas: pd.DataFrame) -> pd.DataFrame:
    nomes = dict(zip(df_contas["Id"], df_contas["Nome"])) if not df_contas.empty else {}
    conta = df["ContaId"].map(lambda c: nomes.get(c, ""))
    destino = df["ContaDestinoId"].map(lambda c: nomes.get(c, ""))
    return pd.DataFrame({
        "Vencimento": df["Data"].map(fmt_date_br),
        "Pagamento": df["DataPagamento"].map(fmt_date_br),
        "Loja": df["Loja"],
        "Tipo": df["Tipo"],
        "Conta": conta.where(destino == "", conta + " → " + destino),
        "Produto": df["Produto"],
        "Fornecedor": df["Fornecedor"],
        "Categoria": df["Categoria"],
        "Valor": df["Valor"],
        "Status": df["Status"],
        "Origem": df["Origem"],
    })


_COLS = {"Valor": money_column("Valor")}


def _tab_consulta(app_data: dict, lojas: list[str]) -> None:
    df_contas = storage.load_accounts()
    merged = engine.merge_lancamentos(storage.load_lancamentos(), storage.load_orders())

    c1, c2, c3, c4 = st.columns(4)
    base = pills("Data", ["Vencimento", "Pagamento"], key="lcons_base") or "Vencimento"
    inicio = c1.date_input("De", value=date.today().replace(day=1), format="DD/MM/YYYY", key="lcons_ini")
    fim = c2.date_input("Até", value=date.today(), format="DD/MM/YYYY", key="lcons_fim")
    with c3:
        loja = store_filter("Loja", lojas, key="lcons_loja")
    status = c4.selectbox("Status", ["Todos", CFG.STATUS_PENDENTE, CFG.STATUS_PAGO], key="lcons_status")
    d1, d2, d3, d4 = st.columns(4)
    contas = _account_options(df_contas, loja)
    with d1:
        conta = _select_account("Conta", contas, "lcons_conta")
    categoria = d2.selectbox("Categoria", ["Todas"] + app_data["categorias"], key="lcons_cat")
    fornecedor = d3.selectbox("Fornecedor", ["Todos"] + app_data["fornecedores"], key="lcons_forn")
    classificacao = d4.selectbox("Classificação", ["Todas"] + app_data["tipos"], key="lcons_class")

    df = engine.filter_lancamentos(
        merged, inicio, fim,
        by_payment=base == "Pagamento",
        loja=loja, conta=conta,
        categoria=None if categoria == "Todas" else categoria,
        fornecedor=None if fornecedor == "Todos" else fornecedor,
        status=None if status == "Todos" else status,
        classificacao=None if classificacao == "Todas" else classificacao,
    )
    df = df[df["Loja"].isin(lojas)].reset_index(drop=True)

    tot = engine.lancamento_totals(df)
    k1, k2, k3, k4 = st.columns(4)
    with k1:
        render_kpi("Lançamentos", str(tot["quantidade"]))
    with k2:
        render_kpi("Receitas", fmt_brl(tot["receitas"]), tone="up")
    with k3:
        render_kpi("Despesas", fmt_brl(tot["despesas"]), tone="down")
    with k4:
        render_kpi("Saldo", fmt_brl(tot["saldo"]), tone=tone_of(tot["saldo"]))
    if df.empty:
        no_data()
        return

    event = st.dataframe(
        _display(df, df_contas), hide_index=True, use_container_width=True,
        on_select="rerun", selection_mode="multi-row", key="lcons_table", column_config=_COLS,
    )
    selected = event.selection.rows if event is not None else []
    st.download_button(
        "⬇ EXPORTAR CSV", exports.export_lancamentos_csv(df, dict(zip(df_contas["Id"], df_contas["Nome"]))),
        file_name=f"lancamentos_{today_iso()}.csv", mime="text/csv",
    )
    if not selected:
        st.caption("Selecione um lançamento para editar, pagar ou excluir; vários para pagamento em lote.")
        return
    if len(selected) > 1:
        _render_batch_payment(df.iloc[selected], df_contas)
        return
    _render_edit(app_data, lojas, df_contas, df.iloc[selected[0]].to_dict())


def _render_batch_payment(rows: pd.DataFrame, df_contas: pd.DataFrame) -> None:
    pendentes = rows[rows["Status"] == CFG.STATUS_PENDENTE]
    st.markdown(f"#### Pagamento em lote — {len(pendentes)} pendente(s), {fmt_brl(float(pendentes['Valor'].sum()))}")
    if pendentes.empty:
        st.caption("Nenhum pendente entre os selecionados.")
        return
    with st.form("batch_pay"):
        c1, c2, c3 = st.columns(3)
        with c1:
            conta = _select_account("Conta", _account_options(df_contas, None), "batch_conta")
        metodo = c2.selectbox("Forma de pagamento", ["-"] + list(CFG.METODOS_PAGAMENTO))
        dia = c3.date_input("Data de pagamento", value=date.today(), format="DD/MM/YYYY")
        if st.form_submit_button("CONFIRMAR PAGAMENTOS"):
            def _pay():
                paid = engine.apply_batch_payment(pendentes.to_dict(orient="records"), conta, metodo, dia)
                storage.upsert_lancamentos(paid)
            if run_action(_pay, f"{len(pendentes)} lançamento(s) pagos"):
                st.rerun()


def _render_edit(app_data: dict, lojas: list[str], df_contas: pd.DataFrame, current: dict) -> None:
    lanc_id = current["Id"]
    from_order = current.get("Origem") == CFG.ORIGEM_PEDIDO
    if current["Status"] == CFG.STATUS_PENDENTE:
        with st.expander("💳 Confirmar pagamento", expanded=True):
            with st.form(f"pay_{lanc_id}"):
                c1, c2, c3 = st.columns(3)
                with c1:
                    conta = _select_account(
                        "Conta", _account_options(df_contas, current["Loja"]), f"pay_conta_{lanc_id}",
                        current.get("ContaId"),
                    )
                metodos = ["-"] + list(CFG.METODOS_PAGAMENTO)
                metodo = c2.selectbox(
                    "Forma de pagamento", metodos,
                    index=metodos.index(current["MetodoPagamento"]) if current.get("MetodoPagamento") in metodos else 0,
                )
                dia = c3.date_input("Data de pagamento", value=date.today(), format="DD/MM/YYYY")
                if st.form_submit_button("CONFIRMAR PAGAMENTO"):
                    def _pay():
                        storage.upsert_lancamento(engine.pay_lancamento(current, conta, metodo, current["Loja"], dia))
                    if run_action(_pay, f"Pago — {fmt_brl(float(current['Valor']))}"):
                        st.rerun()

    with st.expander("✎ Editar lançamento"):
        entry = _lancamento_fields(app_data, lojas, df_contas, f"ledit_{lanc_id}", current)
        c_save, c_del = st.columns(2)
        with c_save:
            if st.button("SALVAR ALTERAÇÕES", key=f"ledit_save_{lanc_id}"):
                if _save_lancamento(entry, "Lançamento atualizado"):
                    st.rerun()
        with c_del:
            existing = set(storage.load_lancamentos()["Id"])
            if confirm_delete(f"ledit_del_{lanc_id}", "EXCLUIR PEDIDO" if from_order and lanc_id not in existing else "EXCLUIR"):
                if lanc_id in existing:
                    action = lambda: storage.delete_lancamento(lanc_id)  # noqa: E731
                else:
                    action = lambda: storage.delete_order(lanc_id)  # noqa: E731
                if run_action(action, "Excluído"):
                    st.rerun()


def _tab_relatorios(lojas: list[str]) -> None:
    merged = engine.merge_lancamentos(storage.load_lancamentos(), storage.load_orders())
    c1, c2, c3 = st.columns(3)
    inicio = c1.date_input("De", value=date.today().replace(day=1), format="DD/MM/YYYY", key="lrel_ini")
    fim = c2.date_input("Até", value=date.today(), format="DD/MM/YYYY", key="lrel_fim")
    with c3:
        loja = store_filter("Loja", lojas, key="lrel_loja")
    df = engine.filter_lancamentos(merged, inicio, fim, loja=loja)
    df = df[df["Loja"].isin(lojas)]
    if df.empty:
        no_data()
        return

    pagos = df[df["Status"] == CFG.STATUS_PAGO]
    pend = df[df["Status"] == CFG.STATUS_PENDENTE]
    k1, k2 = st.columns(2)
    with k1:
        render_kpi("Pago no período", fmt_brl(float(pagos.loc[pagos["Tipo"] == CFG.TIPO_DESPESA, "Valor"].sum())))
    with k2:
        render_kpi("A pagar", fmt_brl(float(pend.loc[pend["Tipo"] == CFG.TIPO_DESPESA, "Valor"].sum())), tone="down")

    despesas = df[df["Tipo"] == CFG.TIPO_DESPESA]
    if not despesas.empty:
        por_cat = (
            despesas.assign(Categoria=despesas["Categoria"].replace("", "Sem categoria"))
            .groupby("Categoria", as_index=False)["Valor"].sum()
            .sort_values("Valor", ascending=True)
        )
        st.markdown("#### Despesas por categoria")
        fig = go.Figure(go.Bar(x=por_cat["Valor"], y=por_cat["Categoria"], orientation="h", marker_color="#b91c1c"))
        plot(fig, height=max(240, 28 * len(por_cat)))

    por_loja = df[df["Tipo"] != CFG.TIPO_TRANSFERENCIA].pivot_table(
        index="Loja", columns="Tipo", values="Valor", aggfunc="sum", fill_value=0.0,
    ).reset_index()
    st.markdown("#### Por loja")
    fig = go.Figure()
    for tipo, color in ((CFG.TIPO_RECEITA, "#16a34a"), (CFG.TIPO_DESPESA, "#dc2626")):
        if tipo in por_loja.columns:
            fig.add_trace(go.Bar(name=tipo, x=por_loja["Loja"], y=por_loja[tipo], marker_color=color))
    fig.update_layout(barmode="group")
    plot(fig, height=280)


def _tab_campos(app_data: dict, lojas: list[str]) -> None:
    df_contas = storage.load_accounts()
    st.markdown("#### Contas")
    with st.form("conta_new", clear_on_submit=True):
        c1, c2, c3 = st.columns(3)
        nome = c1.text_input("Nome da conta", max_chars=CFG.MAX_DESC_LENGTH)
        loja = c2.selectbox("Loja", lojas)
        inicial = c3.number_input("Saldo inicial (R$)", step=0.01, format="%.2f")
        if st.form_submit_button("ADICIONAR CONTA"):
            entry = {"Nome": nome.strip(), "Loja": loja, "SaldoInicial": float(inicial)}
            ok, err = validate_account(entry)
            if not ok:
                st.toast(f"⚠ {err}")
            elif run_action(lambda: storage.insert_account(entry), f"Conta {entry['Nome']} criada"):
                st.rerun()

    contas = df_contas[df_contas["Loja"].isin(lojas)]
    if contas.empty:
        no_data("Nenhuma conta cadastrada.")
    for _, row in contas.iterrows():
        with st.expander(f"{row['Nome']} — {row['Loja']} ({fmt_brl(float(row['SaldoInicial']))})"):
            c1, c2, c3 = st.columns(3)
            nome = c1.text_input("Nome", value=row["Nome"], key=f"conta_nome_{row['Id']}")
            loja = c2.selectbox(
                "Loja", lojas, index=lojas.index(row["Loja"]) if row["Loja"] in lojas else 0,
                key=f"conta_loja_{row['Id']}",
            )
            inicial = c3.number_input(
                "Saldo inicial (R$)", value=float(row["SaldoInicial"]), step=0.01, format="%.2f",
                key=f"conta_ini_{row['Id']}",
            )
            b1, b2 = st.columns(2)
            with b1:
                if st.button("SALVAR", key=f"conta_save_{row['Id']}"):
                    entry = {"Nome": nome.strip(), "Loja": loja, "SaldoInicial": float(inicial)}
                    ok, err = validate_account(entry)
                    if not ok:
                        st.toast(f"⚠ {err}")
                    elif run_action(lambda: storage.update_account(row["Id"], entry), "Conta atualizada"):
                        st.rerun()
            with b2:
                if confirm_delete(f"conta_del_{row['Id']}"):
                    if run_action(lambda: storage.delete_account(row["Id"]), "Conta excluída"):
                        st.rerun()

    st.markdown("#### Listas")
    render_list_editor(app_data, ("categorias", "fornecedores", "produtos"), "fin_campos")


def render(user: dict) -> None:
    render_header("Financeiro", "Caixa, contas e lançamentos")
    app_data = storage.load_app_data()
    lojas = allowed_stores(user, app_data["lojas"])
    names = ["Lançamentos", "Consulta", "Relatórios"]
    if has_permission(user, "config_financeiro_campos"):
        names.append("Campos")
    tabs = st.tabs(names)
    with tabs[0]:
        _tab_lancamentos(app_data, lojas, user)
    with tabs[1]:
        _tab_consulta(app_data, lojas)
    with tabs[2]:
        _tab_relatorios(lojas)
    if len(tabs) > 3:
        with tabs[3]:
            _tab_campos(app_data, lojas)
