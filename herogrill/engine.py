"""Motor de cálculo: saldos derivados, filtros e agregações.

Todas as funções recebem DataFrames já carregados (datas como 'AAAA-MM-DD')
e não acessam a planilha nem o Streamlit.
"""
from __future__ import annotations
import calendar
from datetime import date

import pandas as pd

from herogrill.config import CFG
from herogrill.utils import generate_id, sort_key_ptbr, to_iso
from herogrill.validation import validate_payment

CONSOLIDADO = "Todas as Lojas (Consolidado)"


# ==============================================================================
# 7. MOTOR ANALÍTICO
# ==============================================================================

def _str_col(df: pd.DataFrame, col: str) -> pd.Series:
    """Coluna como string limpa ('' para nulos)."""
    if col not in df.columns:
        return pd.Series([""] * len(df), index=df.index, dtype=object)
    return df[col].fillna("").astype(str).str.strip().replace({"nan": "", "None": "", "NaT": ""})


def _num_col(df: pd.DataFrame, col: str) -> pd.Series:
    if col not in df.columns:
        return pd.Series([0.0] * len(df), index=df.index, dtype=float)
    return pd.to_numeric(df[col], errors="coerce").fillna(0.0)


# --- Saldos de contas -------------------------------------------------------

def effective_dates(df_lanc: pd.DataFrame) -> pd.Series:
    """Data efetiva: data de pagamento, ou vencimento quando não houver."""
    pag = _str_col(df_lanc, "DataPagamento").str[:10]
    venc = _str_col(df_lanc, "Data").str[:10]
    return pag.where(pag != "", venc)


def account_deltas(df_lanc: pd.DataFrame, as_of=None) -> pd.Series:
    """Soma dos movimentos pagos por conta (Id da conta -> delta).

    Receita soma na conta; Despesa subtrai; Transferência subtrai na origem
    e soma no destino.
    """
    if df_lanc is None or df_lanc.empty:
        return pd.Series(dtype=float)
    paid = df_lanc[_str_col(df_lanc, "Status") == CFG.STATUS_PAGO].copy()
    if as_of is not None:
        paid = paid[effective_dates(paid) <= to_iso(as_of)]
    if paid.empty:
        return pd.Series(dtype=float)

    tipo = _str_col(paid, "Tipo")
    valor = _num_col(paid, "Valor")
    sign = tipo.map({
        CFG.TIPO_RECEITA: 1.0,
        CFG.TIPO_DESPESA: -1.0,
        CFG.TIPO_TRANSFERENCIA: -1.0,
    }).fillna(0.0)
    origem = pd.DataFrame({"Conta": _str_col(paid, "ContaId"), "Delta": valor * sign})

    is_transf = tipo == CFG.TIPO_TRANSFERENCIA
    destino = pd.DataFrame({
        "Conta": _str_col(paid, "ContaDestinoId")[is_transf],
        "Delta": valor[is_transf],
    })
    moves = pd.concat([origem, destino], ignore_index=True)
    moves = moves[moves["Conta"] != ""]
    return moves.groupby("Conta")["Delta"].sum()


def account_balance(df_lanc: pd.DataFrame, account_id: str, initial: float, as_of=None) -> float:
    """Saldo da conta = saldo inicial + movimentos pagos até `as_of`."""
    deltas = account_deltas(df_lanc, as_of)
    return float(initial) + float(deltas.get(str(account_id), 0.0))


def account_balances(
    df_contas: pd.DataFrame,
    df_lanc: pd.DataFrame,
    as_of=None,
    loja: str | None = None,
) -> pd.DataFrame:
    """Saldo atual de cada conta cadastrada (opcionalmente de uma loja)."""
    cols = ["Id", "Nome", "Loja", "SaldoInicial", "Saldo"]
    if df_contas is None or df_contas.empty:
        return pd.DataFrame(columns=cols)
    df = df_contas.copy()
    if loja:
        df = df[_str_col(df, "Loja") == loja]
    deltas = account_deltas(df_lanc, as_of)
    df["SaldoInicial"] = _num_col(df, "SaldoInicial")
    df["Saldo"] = df["SaldoInicial"] + _str_col(df, "Id").map(deltas).fillna(0.0)
    return df[cols].reset_index(drop=True)


def total_balance(df_contas: pd.DataFrame, df_lanc: pd.DataFrame, as_of=None) -> float:
    balances = account_balances(df_contas, df_lanc, as_of)
    return float(balances["Saldo"].sum()) if not balances.empty else 0.0


# --- Lançamentos ------------------------------------------------------------

def orders_as_pending(df_orders: pd.DataFrame, existing_ids) -> pd.DataFrame:
    """Pedidos ainda não lançados viram despesas pendentes com o mesmo Id."""
    cols = list(CFG.COLS_LANCAMENTO)
    if df_orders is None or df_orders.empty:
        return pd.DataFrame(columns=cols)
    existing = {str(i) for i in existing_ids}
    df = df_orders[~_str_col(df_orders, "Id").isin(existing)]
    if df.empty:
        return pd.DataFrame(columns=cols)

    venc = _str_col(df, "Vencimento")
    tipo = _str_col(df, "Tipo")
    criado = _str_col(df, "CriadoEm")
    out = pd.DataFrame({
        "Id": _str_col(df, "Id"),
        "Data": venc.where(venc != "", _str_col(df, "Data")),
        "DataPagamento": "",
        "Loja": _str_col(df, "Loja"),
        "Tipo": CFG.TIPO_DESPESA,
        "ContaId": "",
        "LojaDestino": "",
        "ContaDestinoId": "",
        "MetodoPagamento": "Boleto",
        "Produto": _str_col(df, "Produto"),
        "Categoria": _str_col(df, "Categoria"),
        "Fornecedor": _str_col(df, "Fornecedor"),
        "Valor": _num_col(df, "ValorTotal"),
        "Status": CFG.STATUS_PENDENTE,
        "Descricao": "Pedido ref. " + _str_col(df, "Produto"),
        "Classificacao": tipo.where(tipo != "", CFG.CLASS_VARIAVEL),
        "Origem": CFG.ORIGEM_PEDIDO,
        "CriadoEm": criado.where(criado != "", _str_col(df, "Data")),
    })
    return out[cols].reset_index(drop=True)


def merge_lancamentos(df_lanc: pd.DataFrame, df_orders: pd.DataFrame) -> pd.DataFrame:
    """Lançamentos gravados + pedidos ainda não convertidos."""
    base = df_lanc if df_lanc is not None else pd.DataFrame(columns=list(CFG.COLS_LANCAMENTO))
    pending = orders_as_pending(df_orders, _str_col(base, "Id").tolist())
    if pending.empty:
        return base.reset_index(drop=True)
    if base.empty:
        return pending
    return pd.concat([base, pending], ignore_index=True)


def filter_lancamentos(
    df: pd.DataFrame,
    start=None,
    end=None,
    *,
    by_payment: bool = False,
    loja: str | None = None,
    conta: str | None = None,
    categoria: str | None = None,
    fornecedor: str | None = None,
    status: str | None = None,
    classificacao: str | None = None,
) -> pd.DataFrame:
    """Filtra lançamentos por período (vencimento ou pagamento) e atributos.

    Filtrando por pagamento, lançamentos sem data de pagamento ficam de fora
    e a ordem é pagamento decrescente; caso contrário pendentes vêm primeiro,
    depois vencimento crescente.
    """
    if df is None or df.empty:
        return pd.DataFrame(columns=list(CFG.COLS_LANCAMENTO))
    target = _str_col(df, "DataPagamento" if by_payment else "Data").str[:10]
    mask = pd.Series(True, index=df.index)
    if by_payment:
        mask &= target != ""
    if start is not None:
        mask &= target >= to_iso(start)
    if end is not None:
        mask &= target <= to_iso(end)
    if loja:
        mask &= _str_col(df, "Loja") == loja
    if categoria:
        mask &= _str_col(df, "Categoria") == categoria
    if fornecedor:
        mask &= _str_col(df, "Fornecedor") == fornecedor
    if status:
        mask &= _str_col(df, "Status") == status
    if classificacao:
        mask &= _str_col(df, "Classificacao") == classificacao
    if conta:
        is_transf = _str_col(df, "Tipo") == CFG.TIPO_TRANSFERENCIA
        mask &= (_str_col(df, "ContaId") == conta) | (
            is_transf & (_str_col(df, "ContaDestinoId") == conta)
        )

    out = df[mask].copy()
    if by_payment:
        out["_ord"] = target[mask]
        out = out.sort_values("_ord", ascending=False, kind="mergesort")
    else:
        out["_pend"] = (_str_col(out, "Status") != CFG.STATUS_PENDENTE).astype(int)
        out["_ord"] = _str_col(out, "Data").str[:10]
        out = out.sort_values(["_pend", "_ord"], kind="mergesort")
    return out.drop(columns=[c for c in ("_ord", "_pend") if c in out.columns]).reset_index(drop=True)


def lancamento_totals(df: pd.DataFrame) -> dict:
    """Receitas, despesas e saldo (transferências não entram)."""
    if df is None or df.empty:
        return {"receitas": 0.0, "despesas": 0.0, "saldo": 0.0, "quantidade": 0}
    tipo = _str_col(df, "Tipo")
    valor = _num_col(df, "Valor")
    receitas = float(valor[tipo == CFG.TIPO_RECEITA].sum())
    despesas = float(valor[tipo == CFG.TIPO_DESPESA].sum())
    return {
        "receitas": receitas,
        "despesas": despesas,
        "saldo": receitas - despesas,
        "quantidade": int(len(df)),
    }


def pay_lancamento(row: dict, conta_id: str, metodo: str, loja: str | None = None, data_pagamento=None) -> dict:
    """Confirma pagamento de um lançamento (ou pedido pendente).

    Raises:
        ValueError: conta, forma de pagamento ou loja ausentes.
    """
    loja = loja or row.get("Loja", "")
    ok, err = validate_payment(conta_id, metodo, loja)
    if not ok:
        raise ValueError(err)
    paid = dict(row)
    paid.update({
        "ContaId": conta_id,
        "MetodoPagamento": metodo,
        "Loja": loja,
        "Status": CFG.STATUS_PAGO,
        "DataPagamento": to_iso(data_pagamento or date.today()),
    })
    return paid


def apply_batch_payment(rows: list[dict], conta_id: str, metodo: str, data_pagamento=None) -> list[dict]:
    """Mesma conta, forma e data de pagamento para todos os selecionados."""
    if not rows:
        raise ValueError("Nenhum lançamento selecionado")
    return [pay_lancamento(r, conta_id, metodo, r.get("Loja"), data_pagamento) for r in rows]


def auto_pix_adjustment(real: float, system: float, loja: str, conta_id: str, today=None) -> dict | None:
    """Lançamento de ajuste 'Pix Cliente' = saldo real − saldo do sistema.

    Diferença positiva gera Receita, negativa gera Despesa; zero não gera nada.
    """
    diff = round(float(real) - float(system), 2)
    if diff == 0:
        return None
    dia = to_iso(today or date.today())
    return {
        "Id": generate_id(),
        "Data": dia,
        "DataPagamento": dia,
        "Loja": loja,
        "Tipo": CFG.TIPO_RECEITA if diff > 0 else CFG.TIPO_DESPESA,
        "ContaId": conta_id,
        "LojaDestino": "",
        "ContaDestinoId": "",
        "MetodoPagamento": "PiX",
        "Produto": CFG.PIX_CLIENTE,
        "Categoria": CFG.PIX_CLIENTE,
        "Fornecedor": CFG.PIX_CLIENTE,
        "Valor": abs(diff),
        "Status": CFG.STATUS_PAGO,
        "Descricao": f"Ajuste Automático ({CFG.PIX_CLIENTE})",
        "Classificacao": CFG.CLASS_VARIAVEL,
        "Origem": CFG.ORIGEM_MANUAL,
    }


# --- Controle 043 / Empréstimos ---------------------------------------------

def filter_ledger(df: pd.DataFrame, loja: str | None = None, periodo: str | None = None) -> pd.DataFrame:
    """Filtro da consulta: loja e período por prefixo de data.

    `periodo` pode ser dia ('AAAA-MM-DD'), mês ('AAAA-MM') ou ano ('AAAA').
    Resultado em data decrescente.
    """
    if df is None or df.empty:
        return pd.DataFrame(columns=list(CFG.COLS_LEDGER))
    mask = pd.Series(True, index=df.index)
    if loja:
        mask &= _str_col(df, "Loja") == loja
    if periodo:
        mask &= _str_col(df, "Data").str.startswith(str(periodo))
    out = df[mask].copy()
    out["_ord"] = _str_col(out, "Data")
    out = out.sort_values("_ord", ascending=False, kind="mergesort").drop(columns="_ord")
    return out.reset_index(drop=True)


def filter_ledger_period(
    df: pd.DataFrame,
    start,
    end,
    loja: str | None = None,
    lojas_permitidas: list[str] | None = None,
) -> pd.DataFrame:
    """Filtro dos relatórios: intervalo de datas, loja e lojas permitidas ao usuário."""
    if df is None or df.empty:
        return pd.DataFrame(columns=list(CFG.COLS_LEDGER))
    data = _str_col(df, "Data").str[:10]
    mask = (data >= to_iso(start)) & (data <= to_iso(end))
    if loja:
        mask &= _str_col(df, "Loja") == loja
    if lojas_permitidas is not None:
        mask &= _str_col(df, "Loja").isin(lojas_permitidas)
    out = df[mask].copy()
    out["_ord"] = data[mask]
    out = out.sort_values("_ord", kind="mergesort").drop(columns="_ord")
    return out.reset_index(drop=True)


def ledger_totals(df: pd.DataFrame) -> dict:
    """Créditos, débitos e saldo (crédito − débito)."""
    if df is None or df.empty:
        return {"credito": 0.0, "debito": 0.0, "saldo": 0.0}
    tipo = _str_col(df, "Tipo")
    valor = _num_col(df, "Valor")
    credito = float(valor[tipo == CFG.TIPO_CREDITO].sum())
    debito = float(valor[tipo == CFG.TIPO_DEBITO].sum())
    return {"credito": credito, "debito": debito, "saldo": credito - debito}


def ledger_by_store(df: pd.DataFrame) -> pd.DataFrame:
    """Visão sintética: uma linha por loja."""
    cols = ["Loja", "Credito", "Debito", "Saldo"]
    if df is None or df.empty:
        return pd.DataFrame(columns=cols)
    tmp = pd.DataFrame({
        "Loja": _str_col(df, "Loja"),
        "Credito": _num_col(df, "Valor").where(_str_col(df, "Tipo") == CFG.TIPO_CREDITO, 0.0),
        "Debito": _num_col(df, "Valor").where(_str_col(df, "Tipo") == CFG.TIPO_DEBITO, 0.0),
    })
    out = tmp.groupby("Loja", as_index=False)[["Credito", "Debito"]].sum()
    out["Saldo"] = out["Credito"] - out["Debito"]
    out = out.sort_values("Loja", key=lambda s: s.map(sort_key_ptbr))
    return out[cols].reset_index(drop=True)


# --- Saldo de Contas --------------------------------------------------------

def snapshot_total(entry: dict) -> float:
    """Soma das contas de um saldo mensal."""
    return round(sum(float(entry.get(field, 0.0) or 0.0) for field, _ in CFG.CONTAS_SALDO), 2)


def _prepare_snapshots(df: pd.DataFrame) -> pd.DataFrame:
    out = df.copy()
    out["Ano"] = _num_col(out, "Ano").astype(int)
    out["Mes"] = _num_col(out, "Mes").astype(int)
    out["SaldoTotal"] = _num_col(out, "SaldoTotal")
    return out


def balance_variations(df: pd.DataFrame) -> pd.DataFrame:
    """Variação mês a mês por loja: total − total anterior da mesma loja.

    O primeiro registro de cada loja tem variação 0.
    """
    if df is None or df.empty:
        return pd.DataFrame(columns=list(CFG.COLS_SALDO) + ["Variacao"])
    out = _prepare_snapshots(df)
    out = out.sort_values(["Loja", "Ano", "Mes"], kind="mergesort")
    out["Variacao"] = out.groupby("Loja")["SaldoTotal"].diff().fillna(0.0)
    return out.reset_index(drop=True)


def consolidated_variations(df: pd.DataFrame) -> pd.DataFrame:
    """Totais de todas as lojas somados por mês, com variação sobre o mês anterior."""
    cols = ["Loja", "Ano", "Mes", "SaldoTotal", "Variacao"]
    if df is None or df.empty:
        return pd.DataFrame(columns=cols)
    out = _prepare_snapshots(df)
    out = out.groupby(["Ano", "Mes"], as_index=False)["SaldoTotal"].sum()
    out = out.sort_values(["Ano", "Mes"])
    out["Variacao"] = out["SaldoTotal"].diff().fillna(0.0)
    out["Loja"] = CONSOLIDADO
    return out[cols].reset_index(drop=True)


def filter_snapshots(
    df: pd.DataFrame,
    loja: str | None = None,
    ano: int | None = None,
    mes: int | None = None,
) -> pd.DataFrame:
    """Filtra saldos já com variação calculada; mais recentes primeiro."""
    if df is None or df.empty:
        return df
    mask = pd.Series(True, index=df.index)
    if loja:
        mask &= _str_col(df, "Loja") == loja
    if ano:
        mask &= df["Ano"] == int(ano)
    if mes:
        mask &= df["Mes"] == int(mes)
    out = df[mask].sort_values(["Ano", "Mes"], ascending=False, kind="mergesort")
    return out.reset_index(drop=True)


# --- Entradas e Saídas (antigo) ---------------------------------------------

def record_totals(entry: dict) -> dict:
    """Recalcula totais de receitas, despesas e resultado líquido."""
    out = dict(entry)
    receitas = sum(float(out.get(f, 0.0) or 0.0) for f, _ in CFG.CREDITOS_FINANCEIRO)
    despesas = sum(float(out.get(f, 0.0) or 0.0) for f, _ in CFG.DEBITOS_FINANCEIRO)
    out["TotalReceitas"] = round(receitas, 2)
    out["TotalDespesas"] = round(despesas, 2)
    out["ResultadoLiquido"] = round(receitas - despesas, 2)
    return out


def aggregate_financial_records(
    df: pd.DataFrame,
    loja: str | None = None,
    ano: int | None = None,
    mes: int | None = None,
) -> pd.DataFrame:
    """Sem filtro de loja, consolida todas as lojas por ano/mês."""
    cols = list(CFG.COLS_FINANCEIRO)
    if df is None or df.empty:
        return pd.DataFrame(columns=cols)
    valores = [f for f, _ in CFG.CREDITOS_FINANCEIRO + CFG.DEBITOS_FINANCEIRO] + [
        "TotalReceitas", "TotalDespesas", "ResultadoLiquido",
    ]
    out = df.copy()
    out["Ano"] = _num_col(out, "Ano").astype(int)
    out["Mes"] = _num_col(out, "Mes").astype(int)
    for col in valores:
        out[col] = _num_col(out, col)

    if loja:
        out = out[_str_col(out, "Loja") == loja]
    else:
        out = out.groupby(["Ano", "Mes"], as_index=False)[valores].sum()
        out["Loja"] = CONSOLIDADO
        out["Id"] = "agg-" + out["Ano"].astype(str) + "-" + out["Mes"].astype(str).str.zfill(2)
        out["CriadoEm"] = ""
    if ano:
        out = out[out["Ano"] == int(ano)]
    if mes:
        out = out[out["Mes"] == int(mes)]
    out = out.sort_values(["Ano", "Mes"], ascending=False, kind="mergesort")
    return out[cols].reset_index(drop=True)


# --- Dashboard --------------------------------------------------------------

def projection_factor(year: int, month: int, today: date | None = None) -> float:
    """Dias do mês / dias decorridos no mês corrente; 1 para outros meses."""
    today = today or date.today()
    if today.year != year or today.month != month:
        return 1.0
    days_in_month = calendar.monthrange(year, month)[1]
    return days_in_month / today.day


def _month_prefix(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def _expense_items(df_orders: pd.DataFrame, df_lanc: pd.DataFrame, prefix: str, loja: str | None) -> pd.DataFrame:
    """Pedidos + despesas do mês como itens (Nome, Valor, Tipo, Loja).

    Lançamentos com o mesmo Id de um pedido já estão contados pelo pedido.
    """
    frames = []
    if df_orders is not None and not df_orders.empty:
        o = df_orders[_str_col(df_orders, "Data").str.startswith(prefix)]
        if loja:
            o = o[_str_col(o, "Loja") == loja]
        tipo = _str_col(o, "Tipo")
        frames.append(pd.DataFrame({
            "Nome": _str_col(o, "Produto"),
            "Valor": _num_col(o, "ValorTotal"),
            "Tipo": tipo.where(tipo != "", CFG.CLASS_VARIAVEL),
            "Loja": _str_col(o, "Loja"),
        }))
    if df_lanc is not None and not df_lanc.empty:
        order_ids = set(_str_col(df_orders, "Id")) if df_orders is not None else set()
        t = df_lanc[
            _str_col(df_lanc, "Data").str.startswith(prefix)
            & (_str_col(df_lanc, "Tipo") == CFG.TIPO_DESPESA)
            & ~_str_col(df_lanc, "Id").isin(order_ids)
        ]
        if loja:
            t = t[_str_col(t, "Loja") == loja]
        nome = _str_col(t, "Descricao")
        nome = nome.where(nome != "", _str_col(t, "Categoria"))
        nome = nome.where(nome != "", _str_col(t, "Fornecedor"))
        classe = _str_col(t, "Classificacao")
        frames.append(pd.DataFrame({
            "Nome": nome,
            "Valor": _num_col(t, "Valor"),
            "Tipo": classe.where(classe != "", CFG.CLASS_VARIAVEL),
            "Loja": _str_col(t, "Loja"),
        }))
    frames = [f for f in frames if not f.empty]
    if not frames:
        return pd.DataFrame(columns=["Nome", "Valor", "Tipo", "Loja"])
    return pd.concat(frames, ignore_index=True)


def _revenue_items(df_lanc: pd.DataFrame, prefix: str, loja: str | None) -> pd.DataFrame:
    if df_lanc is None or df_lanc.empty:
        return pd.DataFrame(columns=["Nome", "Valor", "Loja"])
    t = df_lanc[
        _str_col(df_lanc, "Data").str.startswith(prefix)
        & (_str_col(df_lanc, "Tipo") == CFG.TIPO_RECEITA)
    ]
    if loja:
        t = t[_str_col(t, "Loja") == loja]
    nome = _str_col(t, "Descricao")
    return pd.DataFrame({
        "Nome": nome.where(nome != "", _str_col(t, "Categoria")),
        "Valor": _num_col(t, "Valor"),
        "Loja": _str_col(t, "Loja"),
    })


def dashboard_metrics(
    df_orders: pd.DataFrame,
    df_lanc: pd.DataFrame,
    year: int,
    month: int,
    loja: str | None = None,
    today: date | None = None,
) -> dict:
    """Receitas, despesas (pedidos + despesas) e projeção do mês."""
    prefix = _month_prefix(year, month)
    fator = projection_factor(year, month, today)
    despesas = _expense_items(df_orders, df_lanc, prefix, loja)
    receitas = _revenue_items(df_lanc, prefix, loja)
    total_rec = float(receitas["Valor"].sum()) if not receitas.empty else 0.0
    total_desp = float(despesas["Valor"].sum()) if not despesas.empty else 0.0
    return {
        "receitas": total_rec,
        "despesas": total_desp,
        "resultado": total_rec - total_desp,
        "projecao_receitas": total_rec * fator,
        "projecao_despesas": total_desp * fator,
        "fator": fator,
        "despesas_lista": despesas,
        "receitas_lista": receitas,
    }


def store_performance(
    df_orders: pd.DataFrame,
    df_lanc: pd.DataFrame,
    lojas: list[str],
    year: int,
    month: int,
    loja: str | None = None,
    today: date | None = None,
) -> pd.DataFrame:
    """Receita, despesa e projeção por loja, maior receita primeiro."""
    cols = ["Loja", "Receita", "Despesa", "Resultado", "ProjReceita", "ProjDespesa"]
    fator = projection_factor(year, month, today)
    prefix = _month_prefix(year, month)
    despesas = _expense_items(df_orders, df_lanc, prefix, loja)
    receitas = _revenue_items(df_lanc, prefix, loja)
    rows = []
    for nome in lojas:
        if loja and nome != loja:
            continue
        rec = float(receitas.loc[receitas["Loja"] == nome, "Valor"].sum()) if not receitas.empty else 0.0
        desp = float(despesas.loc[despesas["Loja"] == nome, "Valor"].sum()) if not despesas.empty else 0.0
        rows.append({
            "Loja": nome,
            "Receita": rec,
            "Despesa": desp,
            "Resultado": rec - desp,
            "ProjReceita": rec * fator,
            "ProjDespesa": desp * fator,
        })
    if not rows:
        return pd.DataFrame(columns=cols)
    out = pd.DataFrame(rows, columns=cols)
    return out.sort_values("Receita", ascending=False, kind="mergesort").reset_index(drop=True)


def expense_lists(
    despesas: pd.DataFrame,
    sort_fixed: str = "value",
    sort_variable: str = "value",
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Separa despesas fixas e variáveis, agrupadas por nome.

    `sort_*` = 'value' (maior valor primeiro) ou 'alpha' (A-Z).
    """
    empty = pd.DataFrame(columns=["Nome", "Valor"])
    if despesas is None or despesas.empty:
        return empty, empty.copy()
    tipo = _str_col(despesas, "Tipo")
    fixed = despesas[tipo.isin(CFG.CLASS_FIXA)]
    variable = despesas[tipo.isin((CFG.CLASS_VARIAVEL, "Variavel", ""))]

    def _group(df: pd.DataFrame, mode: str) -> pd.DataFrame:
        if df.empty:
            return empty.copy()
        g = df.groupby("Nome", as_index=False)["Valor"].sum()
        if mode == "alpha":
            g = g.sort_values("Nome", key=lambda s: s.map(sort_key_ptbr))
        else:
            g = g.sort_values("Valor", ascending=False, kind="mergesort")
        return g.reset_index(drop=True)

    return _group(fixed, sort_fixed), _group(variable, sort_variable)


def monthly_comparison(
    df_orders: pd.DataFrame,
    df_lanc: pd.DataFrame,
    loja: str | None = None,
    today: date | None = None,
    months: int = CFG.MESES_COMPARATIVO,
) -> pd.DataFrame:
    """Receitas x despesas dos últimos `months` meses (mais antigo primeiro)."""
    today = today or date.today()
    rows = []
    for i in range(months - 1, -1, -1):
        total = today.year * 12 + (today.month - 1) - i
        yr, mo = divmod(total, 12)
        mo += 1
        prefix = _month_prefix(yr, mo)
        desp = _expense_items(df_orders, df_lanc, prefix, loja)
        rec = _revenue_items(df_lanc, prefix, loja)
        rows.append({
            "Mes": f"{mo}/{str(yr)[2:]}",
            "Receitas": float(rec["Valor"].sum()) if not rec.empty else 0.0,
            "Despesas": float(desp["Valor"].sum()) if not desp.empty else 0.0,
        })
    return pd.DataFrame(rows, columns=["Mes", "Receitas", "Despesas"])


# --- Estoque de carnes ------------------------------------------------------

def _meat_sum(df: pd.DataFrame, col: str, meat: str, mask: pd.Series | None = None) -> float:
    if df is None or df.empty:
        return 0.0
    sel = _str_col(df, "Produto").str.lower() == meat.lower()
    if mask is not None:
        sel &= mask
    return float(_num_col(df, col)[sel].sum())


def _store_mask(df: pd.DataFrame, loja: str | None) -> pd.Series | None:
    if df is None or df.empty or not loja:
        return None
    return _str_col(df, "Loja") == loja


def _and(a: pd.Series | None, b: pd.Series | None) -> pd.Series | None:
    if a is None:
        return b
    if b is None:
        return a
    return a & b


def daily_meat_sheet(
    df_orders: pd.DataFrame,
    df_consumo: pd.DataFrame,
    df_ajustes: pd.DataFrame,
    loja: str | None = None,
    today=None,
) -> pd.DataFrame:
    """Planilha diária: inicial = comprado − consumido antes de hoje + ajustes.

    Final = inicial − consumo de hoje.
    """
    dia = to_iso(today or date.today())
    cons_loja = _store_mask(df_consumo, loja)
    before = today_mask = None
    if df_consumo is not None and not df_consumo.empty:
        datas = _str_col(df_consumo, "Data").str[:10]
        before = _and(cons_loja, datas < dia)
        today_mask = _and(cons_loja, datas == dia)
    rows = []
    for meat in CFG.CARNES:
        comprado = _meat_sum(df_orders, "Quantidade", meat, _store_mask(df_orders, loja))
        consumido = _meat_sum(df_consumo, "QuantidadeConsumida", meat, before)
        ajustes = _meat_sum(df_ajustes, "Quantidade", meat, _store_mask(df_ajustes, loja))
        hoje = _meat_sum(df_consumo, "QuantidadeConsumida", meat, today_mask)
        inicial = round(comprado - consumido + ajustes, 3)
        rows.append({
            "Produto": meat,
            "EstoqueInicial": inicial,
            "ConsumoHoje": round(hoje, 3),
            "EstoqueFinal": round(inicial - hoje, 3),
        })
    return pd.DataFrame(rows)


def meat_stock_by_store(
    df_orders: pd.DataFrame,
    df_consumo: pd.DataFrame,
    df_ajustes: pd.DataFrame,
    loja: str,
) -> pd.DataFrame:
    """Estoque atual da loja: comprado − consumido + ajustado."""
    rows = []
    for meat in CFG.CARNES:
        comprado = _meat_sum(df_orders, "Quantidade", meat, _store_mask(df_orders, loja))
        consumido = _meat_sum(df_consumo, "QuantidadeConsumida", meat, _store_mask(df_consumo, loja))
        ajustado = _meat_sum(df_ajustes, "Quantidade", meat, _store_mask(df_ajustes, loja))
        rows.append({"Produto": meat, "Estoque": round(comprado - consumido + ajustado, 3)})
    return pd.DataFrame(rows)


def order_sheet_totals(quantidades: dict[str, float]) -> tuple[int, float]:
    """Quantidade de itens pedidos (qtd > 0) e peso total."""
    itens = sum(1 for q in quantidades.values() if q > 0)
    peso = round(sum(q for q in quantidades.values() if q > 0), 3)
    return itens, peso


# --- Pedidos ----------------------------------------------------------------

def last_order_for_product(df_orders: pd.DataFrame, produto: str) -> dict | None:
    """Último pedido do produto (para preencher marca, fornecedor, unidade...)."""
    if df_orders is None or df_orders.empty or not produto:
        return None
    df = df_orders[_str_col(df_orders, "Produto") == produto].copy()
    if df.empty:
        return None
    df["_ord"] = _str_col(df, "Data") + " " + _str_col(df, "CriadoEm")
    df["ValorUnitario"] = _num_col(df, "ValorUnitario")
    for col in ("Marca", "Fornecedor", "UnidadeMedida", "Categoria", "Tipo"):
        df[col] = _str_col(df, col)
    row = df.sort_values("_ord", kind="mergesort").iloc[-1]
    return {
        "Marca": row["Marca"],
        "Fornecedor": row["Fornecedor"],
        "UnidadeMedida": row["UnidadeMedida"],
        "ValorUnitario": float(row["ValorUnitario"]),
        "Categoria": row["Categoria"],
        "Tipo": row["Tipo"],
    }


def filter_orders(
    df: pd.DataFrame,
    start=None,
    end=None,
    loja: str | None = None,
    produto: str | None = None,
    fornecedor: str | None = None,
    lojas_permitidas: list[str] | None = None,
) -> pd.DataFrame:
    """Pedidos no período, em ordem de data."""
    if df is None or df.empty:
        return pd.DataFrame(columns=list(CFG.COLS_PEDIDO))
    data = _str_col(df, "Data").str[:10]
    mask = pd.Series(True, index=df.index)
    if start is not None:
        mask &= data >= to_iso(start)
    if end is not None:
        mask &= data <= to_iso(end)
    if loja:
        mask &= _str_col(df, "Loja") == loja
    if produto:
        mask &= _str_col(df, "Produto") == produto
    if fornecedor:
        mask &= _str_col(df, "Fornecedor") == fornecedor
    if lojas_permitidas is not None:
        mask &= _str_col(df, "Loja").isin(lojas_permitidas)
    out = df[mask].copy()
    out["_ord"] = data[mask]
    out = out.sort_values("_ord", kind="mergesort").drop(columns="_ord")
    return out.reset_index(drop=True)
