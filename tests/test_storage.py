import json

import pandas as pd
import pytest

from herogrill import storage
from herogrill.config import CFG, WORKSHEETS
from tests.helpers import frame, lanc, order


def _sheet(conn, ws, rows):
    conn.sheets[ws] = frame(rows, WORKSHEETS[ws])


def test_load_missing_worksheet_returns_empty_frame(conn):
    df = storage.load_orders()
    assert df.empty
    assert list(df.columns) == list(CFG.COLS_PEDIDO)


def test_load_coerces_types(conn):
    _sheet(conn, CFG.WS_SALDOS, [{"Id": "s1", "Loja": " Centro ", "Ano": "2025", "Mes": "3.0", "Cofre": "10,5x"}])
    df = storage.load_snapshots()
    row = df.iloc[0]
    assert row["Loja"] == "Centro"
    assert row["Ano"] == 2025 and row["Mes"] == 3
    assert row["Cofre"] == 0.0
    assert row["CaixaEconomica"] == 0.0


def test_insert_order_computes_total_and_audits(conn):
    _sheet(conn, CFG.WS_PEDIDOS, [])
    new_id = storage.insert_order(order(ValorUnitario=12.5, Quantidade=4.0, ValorTotal=0.0))
    df = storage.load_orders()
    assert list(df["Id"]) == [new_id]
    assert df.iloc[0]["ValorTotal"] == pytest.approx(50.0)
    assert df.iloc[0]["CriadoEm"] != ""
    audit = conn.sheets[CFG.WS_AUDIT]
    assert list(audit["Acao"]) == ["CREATE"]
    assert list(audit["Planilha"]) == [CFG.WS_PEDIDOS]


def test_update_and_delete_row(conn):
    _sheet(conn, CFG.WS_043, [{"Id": "a", "Data": "2025-03-01", "Loja": "Centro", "Tipo": "DEBITO", "Valor": 5.0}])
    storage.update_ledger_entry(CFG.WS_043, "a", {"Valor": 7.0, "Descricao": "x" * 80})
    row = storage.load_ledger(CFG.WS_043).iloc[0]
    assert row["Valor"] == 7.0
    assert len(row["Descricao"]) == CFG.MAX_DESC_LEDGER

    storage.delete_ledger_entry(CFG.WS_043, "a")
    assert storage.load_ledger(CFG.WS_043).empty
    with pytest.raises(storage.StorageError, match="Registro não encontrado"):
        storage.delete_ledger_entry(CFG.WS_043, "a")


def test_load_ledger_rejects_other_sheets(conn):
    with pytest.raises(ValueError):
        storage.load_ledger(CFG.WS_PEDIDOS)


def test_snapshot_unique_per_store_month(conn):
    _sheet(conn, CFG.WS_SALDOS, [])
    entry = {"Loja": "Centro", "Ano": 2025, "Mes": 3, "Cofre": 100.0, "Loteria": -20.0}
    first = storage.insert_snapshot(entry)
    assert storage.load_snapshots().iloc[0]["SaldoTotal"] == pytest.approx(80.0)
    with pytest.raises(storage.StorageError, match="Já existe"):
        storage.insert_snapshot(entry)

    other = storage.insert_snapshot({**entry, "Mes": 4})
    with pytest.raises(storage.StorageError):
        storage.update_snapshot(other, {**entry, "Mes": 3})
    storage.update_snapshot(first, {**entry, "Cofre": 200.0})
    df = storage.load_snapshots().set_index("Id")
    assert df.loc[first, "SaldoTotal"] == pytest.approx(180.0)


def test_previous_month_balance_wraps_year(conn):
    _sheet(conn, CFG.WS_SALDOS, [
        {"Id": "s1", "Loja": "Centro", "Ano": 2024, "Mes": 12, "SaldoTotal": 900.0},
        {"Id": "s2", "Loja": "Praia", "Ano": 2024, "Mes": 12, "SaldoTotal": 1.0},
    ])
    prev = storage.previous_month_balance("Centro", 2025, 1)
    assert prev["Id"] == "s1"
    assert storage.previous_month_balance("Centro", 2025, 2) is None


def test_financial_record_totals_recomputed(conn):
    _sheet(conn, CFG.WS_FINANCEIRO, [])
    rec_id = storage.insert_financial_record(
        {"Loja": "Centro", "Ano": 2025, "Mes": 3, "CreditoCaixa": 100.0, "DebitoCaixa": 30.0, "TotalReceitas": 1.0}
    )
    storage.update_financial_record(
        rec_id, {"Loja": "Centro", "Ano": 2025, "Mes": 3, "CreditoCaixa": 50.0, "DebitoCaixa": 0.0}
    )
    row = storage.load_financial_records().iloc[0]
    assert row["TotalReceitas"] == 50.0
    assert row["ResultadoLiquido"] == 50.0
    with pytest.raises(storage.StorageError):
        storage.insert_financial_record({"Loja": "Centro", "Ano": 2025, "Mes": 3})


def test_upsert_lancamentos_single_write(conn):
    _sheet(conn, CFG.WS_LANCAMENTOS, [lanc(Id="l1", Valor=10.0, CriadoEm="2025-03-01 10:00:00")])
    paid = lanc(Id="l1", Valor=10.0, Status=CFG.STATUS_PAGO, DataPagamento="2025-03-05", ContaId="c1")
    from_order = lanc(Id="p1", Valor=99.0, Status=CFG.STATUS_PAGO, DataPagamento="2025-03-05",
                      ContaId="c1", Origem=CFG.ORIGEM_PEDIDO)
    ids = storage.upsert_lancamentos([paid, from_order])
    assert ids == ["l1", "p1"]
    assert conn.writes_to(CFG.WS_LANCAMENTOS) == 1

    df = storage.load_lancamentos().set_index("Id")
    assert df.loc["l1", "Status"] == CFG.STATUS_PAGO
    assert df.loc["l1", "CriadoEm"] == "2025-03-01 10:00:00"
    assert df.loc["p1", "Origem"] == CFG.ORIGEM_PEDIDO
    assert df.loc["p1", "Valor"] == 99.0


def test_upsert_lancamento_generates_id(conn):
    _sheet(conn, CFG.WS_LANCAMENTOS, [])
    new_id = storage.upsert_lancamento(lanc(Valor=5.0, Origem=""))
    assert len(new_id) == 12
    row = storage.load_lancamentos().iloc[0]
    assert row["Origem"] == CFG.ORIGEM_MANUAL


def test_save_daily_consumption_replaces_same_day(conn):
    _sheet(conn, CFG.WS_CONSUMO, [
        {"Id": "old", "Data": "2025-03-10", "Loja": "Centro", "Produto": "Picanha", "QuantidadeConsumida": 9.0},
        {"Id": "keep", "Data": "2025-03-09", "Loja": "Centro", "Produto": "Picanha", "QuantidadeConsumida": 1.0},
        {"Id": "other", "Data": "2025-03-10", "Loja": "Praia", "Produto": "Picanha", "QuantidadeConsumida": 2.0},
    ])
    saved = storage.save_daily_consumption("Centro", "2025-03-10", {"Picanha": 2.5, "Cupim": 0.0})
    assert saved == 1
    df = storage.load_consumption()
    assert "old" not in set(df["Id"])
    assert {"keep", "other"} <= set(df["Id"])
    today = df[(df["Data"] == "2025-03-10") & (df["Loja"] == "Centro")]
    assert list(today["QuantidadeConsumida"]) == [2.5]


def test_insert_adjustment_keeps_negative_quantity(conn):
    _sheet(conn, CFG.WS_AJUSTES, [])
    storage.insert_adjustment({"Data": "2025-03-10", "Loja": "Centro", "Produto": "Cupim",
                               "Quantidade": -1.2345, "Motivo": "Perda"})
    assert storage.load_adjustments().iloc[0]["Quantidade"] == pytest.approx(-1.235)


@pytest.mark.parametrize("raw, expected", [
    (1.2345, 1.235),
    (-1.2345, -1.235),
    (2.0004, 2.0),
    ("0.0005", 0.001),
])
def test_weights_round_half_up_to_grams(raw, expected):
    assert storage._round_weight(raw) == expected


def test_save_user_rules(conn):
    _sheet(conn, CFG.WS_USUARIOS, [])
    user_id = storage.save_user({"Nome": "Ana", "Usuario": "ana", "Senha": "1", "Modulos": ["pedidos"], "Lojas": []})
    raw = conn.sheets[CFG.WS_USUARIOS].iloc[0]
    assert json.loads(raw["Modulos"]) == ["pedidos"]

    with pytest.raises(storage.StorageError, match="Usuário já existe"):
        storage.save_user({"Nome": "Outra", "Usuario": "ANA", "Senha": "2"})
    with pytest.raises(storage.StorageError, match="reservado"):
        storage.save_user({"Nome": "X", "Usuario": CFG.MASTER_USUARIO.lower(), "Senha": "2"})

    storage.save_user({"Id": user_id, "Nome": "Ana Paula", "Usuario": "ana", "Senha": "",
                       "Modulos": ["pedidos", "estoque"], "Lojas": ["Centro"]})
    row = storage.load_users().iloc[0]
    assert row["Nome"] == "Ana Paula"
    assert row["Senha"] == "1"
    assert row["Modulos"] == ["pedidos", "estoque"]
    assert row["Lojas"] == ["Centro"]


def test_save_user_rejects_configured_master_login(conn, monkeypatch):
    _sheet(conn, CFG.WS_USUARIOS, [])
    monkeypatch.setattr(storage, "master_username", lambda: "Gerente")
    with pytest.raises(storage.StorageError, match="reservado"):
        storage.save_user({"Nome": "X", "Usuario": "gerente", "Senha": "2"})
    assert conn.writes_to(CFG.WS_USUARIOS) == 0


def test_change_password(conn):
    _sheet(conn, CFG.WS_USUARIOS, [{"Id": "u1", "Nome": "Ana", "Usuario": "ana", "Senha": "old"}])
    with pytest.raises(storage.StorageError, match="Senha atual incorreta"):
        storage.change_password("u1", "wrong", "new")
    storage.change_password("u1", "old", "new")
    assert storage.load_users().iloc[0]["Senha"] == "new"
    with pytest.raises(storage.StorageError):
        storage.change_password(CFG.MASTER_ID, "x", "y")
    with pytest.raises(storage.StorageError):
        storage.delete_user(CFG.MASTER_ID)


def test_messages_read_tracking(conn):
    _sheet(conn, CFG.WS_MENSAGENS, [])
    popup = storage.create_message({"Tipo": "popup", "Severidade": "info", "Titulo": "Oi", "Conteudo": "..."})
    storage.create_message({"Tipo": "notification", "Severidade": "alert", "Titulo": "Aviso", "Conteudo": "..."})
    df = storage.load_messages()
    assert list(storage.unread_messages(df, "u1")["Id"]) == [popup]

    storage.mark_message_read(popup, "u1")
    storage.mark_message_read(popup, "u1")
    df = storage.load_messages()
    assert df.set_index("Id").loc[popup, "LidoPor"] == ["u1"]
    assert storage.unread_messages(df, "u1").empty
    assert list(storage.unread_messages(df, "u2")["Id"]) == [popup]

    storage.set_message_active(popup, False)
    assert storage.unread_messages(storage.load_messages(), "u2").empty


def test_mutate_retries_then_raises(conn):
    _sheet(conn, CFG.WS_CONTAS, [])
    conn.fail_updates = 1
    storage.insert_account({"Nome": "Caixa", "Loja": "Centro", "SaldoInicial": 0.0})
    assert len(storage.load_accounts()) == 1

    conn.fail_updates = CFG.SAVE_RETRIES
    with pytest.raises(storage.StorageError, match="Falha ao salvar"):
        storage.insert_account({"Nome": "Banco", "Loja": "Centro", "SaldoInicial": 0.0})
    assert len(storage.load_accounts()) == 1


def test_insert_row_retries_after_read_failure(flaky_conn):
    _sheet(flaky_conn, CFG.WS_PEDIDOS, [order(Id=f"p{i}") for i in range(5)])
    flaky_conn.fail_reads(CFG.WS_PEDIDOS, 1)
    storage.insert_order(order())
    assert len(flaky_conn.sheets[CFG.WS_PEDIDOS]) == 6


def test_insert_row_keeps_rows_when_reads_keep_failing(flaky_conn):
    _sheet(flaky_conn, CFG.WS_PEDIDOS, [order(Id=f"p{i}") for i in range(5)])
    flaky_conn.fail_reads(CFG.WS_PEDIDOS, CFG.SAVE_RETRIES)
    with pytest.raises(storage.StorageError, match="Falha ao salvar"):
        storage.insert_order(order())
    assert flaky_conn.writes_to(CFG.WS_PEDIDOS) == 0
    assert list(flaky_conn.sheets[CFG.WS_PEDIDOS]["Id"]) == [f"p{i}" for i in range(5)]


def test_missing_worksheet_starts_empty_on_write(conn):
    storage.insert_order(order(Id="p1"))
    assert list(conn.sheets[CFG.WS_PEDIDOS]["Id"]) == ["p1"]


def test_read_table_raises_on_read_failure(flaky_conn):
    _sheet(flaky_conn, CFG.WS_CONTAS, [{"Id": "c1", "Nome": "Caixa"}])
    flaky_conn.fail_reads(CFG.WS_CONTAS, 1)
    with pytest.raises(storage.StorageError, match="Falha ao ler Contas"):
        storage.read_table(CFG.WS_CONTAS)
    assert list(storage.read_table(CFG.WS_CONTAS)["Id"]) == ["c1"]


def test_audit_log_read_failure_keeps_history(flaky_conn):
    flaky_conn.sheets[CFG.WS_AUDIT] = pd.DataFrame(
        [{"Timestamp": "t", "Usuario": "u", "Acao": "OLD", "Planilha": "x", "Detalhes": str(i)} for i in range(3)]
    )
    flaky_conn.fail_reads(CFG.WS_AUDIT, 1)
    storage.log_audit("NEW", CFG.WS_PEDIDOS, "d")
    assert list(flaky_conn.sheets[CFG.WS_AUDIT]["Acao"]) == ["OLD"] * 3


def test_audit_log_is_trimmed(conn):
    conn.sheets[CFG.WS_AUDIT] = pd.DataFrame(
        [{"Timestamp": "t", "Usuario": "u", "Acao": "OLD", "Planilha": "x", "Detalhes": str(i)}
         for i in range(CFG.AUDIT_MAX_ROWS)]
    )
    storage.log_audit("NEW", CFG.WS_PEDIDOS, "d")
    audit = conn.sheets[CFG.WS_AUDIT]
    assert len(audit) == CFG.AUDIT_MAX_ROWS
    assert audit.iloc[-1]["Acao"] == "NEW"
    assert audit.iloc[0]["Detalhes"] == "1"


def test_app_data_lists_sorted_with_default_types(conn):
    _sheet(conn, CFG.WS_CONFIG, [{"Categoria": "lojas", "Itens": '["Praia", "Centro"]'}])
    data = storage.load_app_data()
    assert data["lojas"] == ["Centro", "Praia"]
    assert data["tipos"] == list(CFG.TIPOS_PADRAO)

    storage.save_app_data({**data, "produtos": ["Picanha", "Alcatra", "Picanha"]})
    assert storage.load_app_data()["produtos"] == ["Alcatra", "Picanha"]


def test_create_missing_worksheets(conn):
    _sheet(conn, CFG.WS_PEDIDOS, [])
    created = storage.create_missing_worksheets()
    assert CFG.WS_PEDIDOS not in created
    assert set(created) == set(WORKSHEETS) - {CFG.WS_PEDIDOS}
    assert storage.worksheet_issues() == []
