from __future__ import annotations
from io import BytesIO

import pandas as pd

from herogrill.config import CFG, MESES_FULL, logger
from herogrill.utils import fmt_date_br


# ==============================================================================
# 9. EXPORTAÇÕES (Excel / CSV)
# ==============================================================================

def _to_excel(sheets: dict[str, pd.DataFrame]) -> BytesIO | None:
    try:
        buffer = BytesIO()
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            for name, df in sheets.items():
                df.to_excel(writer, sheet_name=name[:31], index=False)
        buffer.seek(0)
        return buffer
    except Exception as e:
        logger.error(f"export excel failed: {e}")
        return None


def export_orders(df: pd.DataFrame) -> BytesIO | None:
    """Relatório de pedidos."""
    out = pd.DataFrame({
        "Data": df["Data"].apply(fmt_date_br),
        "Loja": df["Loja"],
        "Produto": df["Produto"],
        "Marca": df["Marca"],
        "Fornecedor": df["Fornecedor"],
        "Unidade": df["UnidadeMedida"],
        "Valor Unitário (R$)": df["ValorUnitario"],
        "Quantidade": df["Quantidade"],
        "Valor Total (R$)": df["ValorTotal"],
        "Vencimento": df["Vencimento"].apply(fmt_date_br),
        "Tipo": df["Tipo"],
        "Categoria": df["Categoria"],
    })
    resumo = pd.DataFrame({
        "Métrica": ["Nº Pedidos", "Quantidade Total", "Valor Total (R$)"],
        "Valor": [len(df), float(df["Quantidade"].sum()), float(df["ValorTotal"].sum())],
    })
    return _to_excel({"Pedidos": out, "Resumo": resumo})


def export_ledger(df: pd.DataFrame, title: str) -> BytesIO | None:
    """Controle 043 ou Empréstimos (crédito / débito)."""
    is_credit = df["Tipo"] == CFG.TIPO_CREDITO
    out = pd.DataFrame({
        "Data": df["Data"].apply(fmt_date_br),
        "Loja": df["Loja"],
        "Tipo": df["Tipo"].map({CFG.TIPO_CREDITO: "Crédito", CFG.TIPO_DEBITO: "Débito"}),
        "Crédito (R$)": df["Valor"].where(is_credit, 0.0),
        "Débito (R$)": df["Valor"].where(~is_credit, 0.0),
        "Descrição": df["Descricao"],
    })
    return _to_excel({title: out})


def export_snapshots(df: pd.DataFrame) -> BytesIO | None:
    """Saldos mensais com a variação já calculada."""
    data = {
        "Loja": df["Loja"],
        "Mês/Ano": [f"{MESES_FULL[int(m)]}/{int(a)}" for m, a in zip(df["Mes"], df["Ano"])],
    }
    for field, label in CFG.CONTAS_SALDO:
        if field in df.columns:
            data[f"{label} (R$)"] = df[field]
    data["Saldo Total (R$)"] = df["SaldoTotal"]
    if "Variacao" in df.columns:
        data["Variação (R$)"] = df["Variacao"]
    return _to_excel({"Saldo Contas": pd.DataFrame(data)})


def export_financial_records(df: pd.DataFrame) -> BytesIO | None:
    """Entradas e saídas mensais por loja (ou consolidado)."""
    data = {
        "Loja": df["Loja"],
        "Mês/Ano": [f"{MESES_FULL[int(m)]}/{int(a)}" for m, a in zip(df["Mes"], df["Ano"])],
    }
    for field, label in CFG.CREDITOS_FINANCEIRO:
        data[f"Crédito {label} (R$)"] = df[field]
    data["Total Receitas (R$)"] = df["TotalReceitas"]
    for field, label in CFG.DEBITOS_FINANCEIRO:
        data[f"Débito {label} (R$)"] = df[field]
    data["Total Despesas (R$)"] = df["TotalDespesas"]
    data["Resultado (R$)"] = df["ResultadoLiquido"]
    return _to_excel({"Financeiro": pd.DataFrame(data)})


def export_lancamentos_csv(df: pd.DataFrame, contas: dict[str, str] | None = None) -> bytes:
    """CSV (separador ';', decimal ',') dos lançamentos filtrados."""
    contas = contas or {}
    out = pd.DataFrame({
        "Vencimento": df["Data"].apply(fmt_date_br),
        "Pagamento": df["DataPagamento"].apply(fmt_date_br),
        "Loja": df["Loja"],
        "Tipo": df["Tipo"],
        "Conta": df["ContaId"].map(lambda c: contas.get(c, "")),
        "Loja Destino": df["LojaDestino"],
        "Conta Destino": df["ContaDestinoId"].map(lambda c: contas.get(c, "")),
        "Forma Pagamento": df["MetodoPagamento"],
        "Produto": df["Produto"],
        "Categoria": df["Categoria"],
        "Fornecedor": df["Fornecedor"],
        "Classificação": df["Classificacao"],
        "Valor": df["Valor"],
        "Status": df["Status"],
        "Descrição": df["Descricao"],
    })
    return out.to_csv(index=False, sep=";", decimal=",").encode("utf-8-sig")
