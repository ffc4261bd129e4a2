from datetime import date

import pandas as pd
import pytest

from herogrill import engine
from herogrill.config import CFG
from tests.helpers import frame, lanc, order


@pytest.fixture
def contas():
    return frame([
        {"Id": "c1", "Nome": "Caixa", "Loja": "Centro", "SaldoInicial": 100.0},
        {"Id": "c2", "Nome": "Banco", "Loja": "Centro", "SaldoInicial": 0.0},
        {"Id": "c3", "Nome": "Caixa", "Loja": "Praia", "SaldoInicial": 50.0},
    ], CFG.COLS_CONTA)


@pytest.fixture
def movimentos():
    return frame([
        lanc(Id="l1", Tipo=CFG.TIPO_RECEITA, ContaId="c1", Valor=200.0, Status=CFG.STATUS_PAGO,
             DataPagamento="2025-03-01"),
        lanc(Id="l2", Tipo=CFG.TIPO_DESPESA, ContaId="c1", Valor=30.0, Status=CFG.STATUS_PAGO,
             DataPagamento="2025-03-05"),
        lanc(Id="l3", Tipo=CFG.TIPO_TRANSFERENCIA, ContaId="c1", ContaDestinoId="c2",
             LojaDestino="Centro", Valor=70.0, Status=CFG.STATUS_PAGO, DataPagamento="2025-03-10"),
        lanc(Id="l4", Tipo=CFG.TIPO_DESPESA, ContaId="c1", Valor=999.0, Status=CFG.STATUS_PENDENTE),
    ], CFG.COLS_LANCAMENTO)


# --- Saldos -----------------------------------------------------------------

def test_account_balance_counts_only_paid(movimentos):
    assert engine.account_balance(movimentos, "c1", 100.0) == pytest.approx(200.0)
    assert engine.account_balance(movimentos, "c2", 0.0) == pytest.approx(70.0)


def test_account_balance_as_of_uses_payment_date(movimentos):
    assert engine.account_balance(movimentos, "c1", 100.0, as_of="2025-03-04") == pytest.approx(300.0)
    assert engine.account_balance(movimentos, "c2", 0.0, as_of=date(2025, 3, 9)) == pytest.approx(0.0)


def test_effective_date_falls_back_to_due_date():
    df = frame([lanc(Data="2025-02-01", DataPagamento=""), lanc(Data="2025-02-01", DataPagamento="2025-02-20")],
               CFG.COLS_LANCAMENTO)
    assert list(engine.effective_dates(df)) == ["2025-02-01", "2025-02-20"]


def test_account_balances_and_total(contas, movimentos):
    out = engine.account_balances(contas, movimentos)
    saldos = dict(zip(out["Id"], out["Saldo"]))
    assert saldos == {"c1": pytest.approx(200.0), "c2": pytest.approx(70.0), "c3": pytest.approx(50.0)}
    assert engine.total_balance(contas, movimentos) == pytest.approx(320.0)
    only_praia = engine.account_balances(contas, movimentos, loja="Praia")
    assert list(only_praia["Id"]) == ["c3"]


def test_transfer_keeps_total_balance(contas):
    before = frame([lanc(Id="r", Tipo=CFG.TIPO_RECEITA, ContaId="c1", Valor=10.0, Status=CFG.STATUS_PAGO)],
                   CFG.COLS_LANCAMENTO)
    after = pd.concat([before, frame([
        lanc(Id="t", Tipo=CFG.TIPO_TRANSFERENCIA, ContaId="c1", LojaDestino="Praia", ContaDestinoId="c3",
             Valor=45.5, Status=CFG.STATUS_PAGO),
    ], CFG.COLS_LANCAMENTO)], ignore_index=True)
    assert engine.total_balance(contas, after) == pytest.approx(engine.total_balance(contas, before))
    assert engine.account_balance(after, "c3", 50.0) == pytest.approx(95.5)


def test_account_balances_without_accounts():
    out = engine.account_balances(pd.DataFrame(), pd.DataFrame())
    assert out.empty
    assert list(out.columns) == ["Id", "Nome", "Loja", "SaldoInicial", "Saldo"]


# --- Lançamentos ------------------------------------------------------------

def test_orders_become_pending_expenses():
    orders = frame([
        order(Id="p1", Vencimento="2025-04-01", ValorTotal=500.0, Tipo="Fixa"),
        order(Id="p2", Data="2025-03-06", Vencimento="", ValorTotal=80.0, Tipo=""),
    ], CFG.COLS_PEDIDO)
    pending = engine.orders_as_pending(orders, ["p2"])
    assert list(pending["Id"]) == ["p1"]
    row = pending.iloc[0]
    assert row["Tipo"] == CFG.TIPO_DESPESA
    assert row["Status"] == CFG.STATUS_PENDENTE
    assert row["Origem"] == CFG.ORIGEM_PEDIDO
    assert row["Data"] == "2025-04-01"
    assert row["MetodoPagamento"] == "Boleto"
    assert row["Classificacao"] == "Fixa"
    assert row["Valor"] == 500.0

    fallback = engine.orders_as_pending(orders, []).set_index("Id")
    assert fallback.loc["p2", "Data"] == "2025-03-06"
    assert fallback.loc["p2", "Classificacao"] == CFG.CLASS_VARIAVEL


def test_merge_lancamentos_skips_converted_orders(movimentos):
    orders = frame([order(Id="l1"), order(Id="p9")], CFG.COLS_PEDIDO)
    merged = engine.merge_lancamentos(movimentos, orders)
    assert len(merged) == len(movimentos) + 1
    assert merged["Id"].tolist().count("l1") == 1


def test_filter_lancamentos_due_date_pending_first():
    df = frame([
        lanc(Id="a", Data="2025-03-20", Status=CFG.STATUS_PAGO, DataPagamento="2025-03-20"),
        lanc(Id="b", Data="2025-03-15"),
        lanc(Id="c", Data="2025-03-01", Status=CFG.STATUS_PAGO, DataPagamento="2025-03-02"),
        lanc(Id="d", Data="2025-02-28"),
    ], CFG.COLS_LANCAMENTO)
    out = engine.filter_lancamentos(df, "2025-03-01", "2025-03-31")
    assert list(out["Id"]) == ["b", "c", "a"]


def test_filter_lancamentos_by_payment_date_descending():
    df = frame([
        lanc(Id="a", Status=CFG.STATUS_PAGO, DataPagamento="2025-03-02"),
        lanc(Id="b", Status=CFG.STATUS_PENDENTE),
        lanc(Id="c", Status=CFG.STATUS_PAGO, DataPagamento="2025-03-09"),
    ], CFG.COLS_LANCAMENTO)
    out = engine.filter_lancamentos(df, date(2025, 3, 1), date(2025, 3, 31), by_payment=True)
    assert list(out["Id"]) == ["c", "a"]


def test_filter_lancamentos_account_matches_transfer_destination(movimentos):
    out = engine.filter_lancamentos(movimentos, conta="c2")
    assert list(out["Id"]) == ["l3"]
    out = engine.filter_lancamentos(movimentos, status=CFG.STATUS_PENDENTE)
    assert list(out["Id"]) == ["l4"]


def test_lancamento_totals_ignore_transfers(movimentos):
    tot = engine.lancamento_totals(movimentos)
    assert tot["receitas"] == pytest.approx(200.0)
    assert tot["despesas"] == pytest.approx(1029.0)
    assert tot["saldo"] == pytest.approx(-829.0)
    assert tot["quantidade"] == 4
    assert engine.lancamento_totals(pd.DataFrame())["quantidade"] == 0


def test_pay_lancamento_sets_status_and_date():
    paid = engine.pay_lancamento(lanc(Id="x", Valor=10.0), "c1", "PiX", data_pagamento=date(2025, 3, 12))
    assert paid["Status"] == CFG.STATUS_PAGO
    assert paid["DataPagamento"] == "2025-03-12"
    assert paid["ContaId"] == "c1"
    assert paid["MetodoPagamento"] == "PiX"
    assert paid["Loja"] == "Centro"


@pytest.mark.parametrize("conta, metodo", [("", "PiX"), ("c1", "-"), ("c1", "")])
def test_pay_lancamento_requires_account_and_method(conta, metodo):
    with pytest.raises(ValueError):
        engine.pay_lancamento(lanc(), conta, metodo)


def test_apply_batch_payment():
    rows = [lanc(Id="a", Loja="Centro"), lanc(Id="b", Loja="Praia")]
    paid = engine.apply_batch_payment(rows, "c1", "Boleto", "2025-03-31")
    assert [p["Status"] for p in paid] == [CFG.STATUS_PAGO, CFG.STATUS_PAGO]
    assert [p["Loja"] for p in paid] == ["Centro", "Praia"]
    with pytest.raises(ValueError):
        engine.apply_batch_payment([], "c1", "Boleto")


def test_auto_pix_adjustment():
    up = engine.auto_pix_adjustment(150.0, 100.0, "Centro", "c1", today=date(2025, 3, 3))
    assert up["Tipo"] == CFG.TIPO_RECEITA
    assert up["Valor"] == pytest.approx(50.0)
    assert up["Status"] == CFG.STATUS_PAGO
    assert up["DataPagamento"] == "2025-03-03"
    down = engine.auto_pix_adjustment(80.0, 100.0, "Centro", "c1")
    assert down["Tipo"] == CFG.TIPO_DESPESA
    assert down["Valor"] == pytest.approx(20.0)
    assert engine.auto_pix_adjustment(100.0, 100.0, "Centro", "c1") is None


# --- Controle 043 / Empréstimos ---------------------------------------------

@pytest.fixture
def ledger():
    return frame([
        {"Id": "1", "Data": "2025-03-01", "Loja": "Centro", "Tipo": CFG.TIPO_CREDITO, "Valor": 100.0},
        {"Id": "2", "Data": "2025-03-15", "Loja": "Praia", "Tipo": CFG.TIPO_DEBITO, "Valor": 40.0},
        {"Id": "3", "Data": "2025-02-10", "Loja": "Centro", "Tipo": CFG.TIPO_DEBITO, "Valor": 25.0},
        {"Id": "4", "Data": "2024-12-31", "Loja": "Centro", "Tipo": CFG.TIPO_CREDITO, "Valor": 10.0},
    ], CFG.COLS_LEDGER)


def test_filter_ledger_by_prefix(ledger):
    assert list(engine.filter_ledger(ledger, periodo="2025-03")["Id"]) == ["2", "1"]
    assert list(engine.filter_ledger(ledger, loja="Centro", periodo="2025")["Id"]) == ["1", "3"]
    assert list(engine.filter_ledger(ledger, periodo="2025-03-01")["Id"]) == ["1"]


def test_filter_ledger_period_respects_permitted_stores(ledger):
    out = engine.filter_ledger_period(ledger, "2025-01-01", "2025-03-31", lojas_permitidas=["Centro"])
    assert list(out["Id"]) == ["3", "1"]


def test_ledger_totals_and_synthetic_view(ledger):
    tot = engine.ledger_totals(ledger)
    assert tot == {"credito": 110.0, "debito": 65.0, "saldo": 45.0}
    by_store = engine.ledger_by_store(ledger).set_index("Loja")
    assert by_store.loc["Centro", "Saldo"] == pytest.approx(85.0)
    assert by_store.loc["Praia", "Debito"] == pytest.approx(40.0)


# --- Saldo de Contas --------------------------------------------------------

@pytest.fixture
def snapshots():
    return frame([
        {"Id": "s1", "Loja": "Centro", "Ano": 2025, "Mes": 1, "SaldoTotal": 1000.0},
        {"Id": "s2", "Loja": "Centro", "Ano": 2025, "Mes": 2, "SaldoTotal": 1200.0},
        {"Id": "s3", "Loja": "Praia", "Ano": 2025, "Mes": 2, "SaldoTotal": 300.0},
        {"Id": "s4", "Loja": "Centro", "Ano": 2024, "Mes": 12, "SaldoTotal": 900.0},
    ], CFG.COLS_SALDO)


def test_snapshot_total_accepts_negative_accounts():
    entry = {"CaixaEconomica": 100.0, "Cofre": -20.5, "Investimentos": 0.25}
    assert engine.snapshot_total(entry) == pytest.approx(79.75)


def test_balance_variations_per_store_across_years(snapshots):
    out = engine.balance_variations(snapshots).set_index("Id")
    assert out.loc["s4", "Variacao"] == 0.0
    assert out.loc["s1", "Variacao"] == pytest.approx(100.0)
    assert out.loc["s2", "Variacao"] == pytest.approx(200.0)
    assert out.loc["s3", "Variacao"] == 0.0


def test_filter_after_variation_keeps_previous_month_difference(snapshots):
    out = engine.filter_snapshots(engine.balance_variations(snapshots), loja="Centro", ano=2025, mes=1)
    assert list(out["Id"]) == ["s1"]
    assert out.iloc[0]["Variacao"] == pytest.approx(100.0)


def test_consolidated_variations(snapshots):
    out = engine.consolidated_variations(snapshots)
    assert list(out["SaldoTotal"]) == [900.0, 1000.0, 1500.0]
    assert list(out["Variacao"]) == [0.0, 100.0, 500.0]
    assert set(out["Loja"]) == {engine.CONSOLIDADO}


# --- Entradas e Saídas ------------------------------------------------------

def test_record_totals():
    out = engine.record_totals({"CreditoCaixa": 100.0, "CreditoIfood": 50.0, "DebitoLoteria": 30.0})
    assert out["TotalReceitas"] == 150.0
    assert out["TotalDespesas"] == 30.0
    assert out["ResultadoLiquido"] == 120.0


def test_aggregate_financial_records_consolidates_without_store():
    rows = [
        engine.record_totals({"Id": "a", "Loja": "Centro", "Ano": 2025, "Mes": 3, "CreditoCaixa": 100.0}),
        engine.record_totals({"Id": "b", "Loja": "Praia", "Ano": 2025, "Mes": 3, "DebitoCaixa": 40.0}),
        engine.record_totals({"Id": "c", "Loja": "Praia", "Ano": 2025, "Mes": 2, "CreditoDelta": 10.0}),
    ]
    df = frame(rows, CFG.COLS_FINANCEIRO)
    out = engine.aggregate_financial_records(df)
    assert list(out["Id"]) == ["agg-2025-03", "agg-2025-02"]
    assert out.iloc[0]["ResultadoLiquido"] == pytest.approx(60.0)
    assert out.iloc[0]["Loja"] == engine.CONSOLIDADO

    praia = engine.aggregate_financial_records(df, loja="Praia", mes=2)
    assert list(praia["Id"]) == ["c"]


# --- Dashboard --------------------------------------------------------------

def test_projection_factor():
    assert engine.projection_factor(2025, 4, today=date(2025, 4, 10)) == pytest.approx(3.0)
    assert engine.projection_factor(2025, 3, today=date(2025, 4, 10)) == 1.0


def test_dashboard_metrics_counts_orders_once():
    orders = frame([
        order(Id="p1", Data="2025-04-02", ValorTotal=300.0, Tipo="Fixa", Produto="Aluguel"),
        order(Id="p2", Data="2025-03-30", ValorTotal=999.0),
    ], CFG.COLS_PEDIDO)
    lancs = frame([
        lanc(Id="p1", Data="2025-04-02", Valor=300.0, Status=CFG.STATUS_PAGO),
        lanc(Id="x1", Data="2025-04-05", Valor=50.0, Descricao="Gás"),
        lanc(Id="x2", Data="2025-04-06", Tipo=CFG.TIPO_RECEITA, Valor=1000.0, Descricao="Vendas"),
        lanc(Id="x3", Data="2025-04-06", Tipo=CFG.TIPO_TRANSFERENCIA, Valor=77.0),
    ], CFG.COLS_LANCAMENTO)
    m = engine.dashboard_metrics(orders, lancs, 2025, 4, today=date(2025, 4, 15))
    assert m["receitas"] == pytest.approx(1000.0)
    assert m["despesas"] == pytest.approx(350.0)
    assert m["resultado"] == pytest.approx(650.0)
    assert m["projecao_despesas"] == pytest.approx(700.0)

    fixas, variaveis = engine.expense_lists(m["despesas_lista"])
    assert list(fixas["Nome"]) == ["Aluguel"]
    assert list(variaveis["Nome"]) == ["Gás"]


def test_store_performance_sorted_by_revenue():
    lancs = frame([
        lanc(Loja="Centro", Data="2025-04-01", Tipo=CFG.TIPO_RECEITA, Valor=100.0),
        lanc(Loja="Praia", Data="2025-04-01", Tipo=CFG.TIPO_RECEITA, Valor=500.0),
        lanc(Loja="Praia", Data="2025-04-01", Valor=200.0),
    ], CFG.COLS_LANCAMENTO)
    out = engine.store_performance(pd.DataFrame(), lancs, ["Centro", "Praia"], 2025, 4, today=date(2025, 5, 1))
    assert list(out["Loja"]) == ["Praia", "Centro"]
    assert out.iloc[0]["Resultado"] == pytest.approx(300.0)


def test_expense_lists_sorting():
    despesas = pd.DataFrame({
        "Nome": ["Luz", "Água", "Luz", "Carne"],
        "Valor": [10.0, 50.0, 15.0, 5.0],
        "Tipo": ["Fixa", "Fixo", "Fixa", "Variável"],
    })
    fixas, variaveis = engine.expense_lists(despesas, sort_fixed="alpha")
    assert list(fixas["Nome"]) == ["Água", "Luz"]
    assert list(fixas["Valor"]) == [50.0, 25.0]
    fixas, _ = engine.expense_lists(despesas)
    assert list(fixas["Nome"]) == ["Água", "Luz"]
    assert list(variaveis["Nome"]) == ["Carne"]


def test_monthly_comparison_last_six_months():
    lancs = frame([
        lanc(Data="2024-12-10", Tipo=CFG.TIPO_RECEITA, Valor=10.0),
        lanc(Data="2025-03-10", Valor=4.0),
    ], CFG.COLS_LANCAMENTO)
    out = engine.monthly_comparison(pd.DataFrame(), lancs, today=date(2025, 3, 20))
    assert list(out["Mes"]) == ["10/24", "11/24", "12/24", "1/25", "2/25", "3/25"]
    assert out.iloc[2]["Receitas"] == 10.0
    assert out.iloc[5]["Despesas"] == 4.0


# --- Estoque de carnes ------------------------------------------------------

@pytest.fixture
def meat_data():
    orders = frame([
        order(Loja="Centro", Produto="Picanha", Quantidade=20.0),
        order(Loja="Praia", Produto="Picanha", Quantidade=7.0),
        order(Loja="Centro", Produto="Cupim", Quantidade=5.0),
    ], CFG.COLS_PEDIDO)
    consumo = frame([
        {"Data": "2025-03-09", "Loja": "Centro", "Produto": "Picanha", "QuantidadeConsumida": 3.0},
        {"Data": "2025-03-10", "Loja": "Centro", "Produto": "Picanha", "QuantidadeConsumida": 2.5},
        {"Data": "2025-03-10", "Loja": "Praia", "Produto": "Picanha", "QuantidadeConsumida": 1.0},
    ], CFG.COLS_CONSUMO)
    ajustes = frame([
        {"Data": "2025-03-08", "Loja": "Centro", "Produto": "Picanha", "Quantidade": -0.5},
    ], CFG.COLS_AJUSTE)
    return orders, consumo, ajustes


def test_daily_meat_sheet(meat_data):
    sheet = engine.daily_meat_sheet(*meat_data, loja="Centro", today="2025-03-10").set_index("Produto")
    assert list(sheet.index) == list(CFG.CARNES)
    assert sheet.loc["Picanha", "EstoqueInicial"] == pytest.approx(16.5)
    assert sheet.loc["Picanha", "ConsumoHoje"] == pytest.approx(2.5)
    assert sheet.loc["Picanha", "EstoqueFinal"] == pytest.approx(14.0)
    assert sheet.loc["Cupim", "EstoqueFinal"] == pytest.approx(5.0)
    assert sheet.loc["Alcatra", "EstoqueInicial"] == 0.0


def test_meat_stock_by_store(meat_data):
    stock = engine.meat_stock_by_store(*meat_data, loja="Praia").set_index("Produto")
    assert stock.loc["Picanha", "Estoque"] == pytest.approx(6.0)
    assert stock.loc["Cupim", "Estoque"] == 0.0


def test_order_sheet_totals_ignores_zero_lines():
    assert engine.order_sheet_totals({"Picanha": 2.5, "Cupim": 0.0, "Alcatra": 1.25}) == (2, 3.75)
    assert engine.order_sheet_totals({}) == (0, 0.0)


# --- Pedidos ----------------------------------------------------------------

def test_last_order_for_product():
    orders = frame([
        order(Data="2025-03-01", Marca="A", ValorUnitario=40.0),
        order(Data="2025-03-20", Marca="B", ValorUnitario=55.0),
        order(Data="2025-03-25", Produto="Cupim", Marca="C"),
    ], CFG.COLS_PEDIDO)
    last = engine.last_order_for_product(orders, "Picanha")
    assert last["Marca"] == "B"
    assert last["ValorUnitario"] == 55.0
    assert engine.last_order_for_product(orders, "Alcatra") is None


def test_filter_orders():
    orders = frame([
        order(Id="1", Data="2025-03-20", Loja="Centro"),
        order(Id="2", Data="2025-03-01", Loja="Praia", Fornecedor="Outro"),
        order(Id="3", Data="2025-01-01", Loja="Centro"),
    ], CFG.COLS_PEDIDO)
    out = engine.filter_orders(orders, "2025-03-01", "2025-03-31")
    assert list(out["Id"]) == ["2", "1"]
    out = engine.filter_orders(orders, lojas_permitidas=["Centro"])
    assert list(out["Id"]) == ["3", "1"]
    out = engine.filter_orders(orders, fornecedor="Outro")
    assert list(out["Id"]) == ["2"]
