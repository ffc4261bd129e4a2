from datetime import date

import pytest

from herogrill.config import CFG
from herogrill.validation import (
    validate_account, validate_balance_snapshot, validate_financial_record, validate_lancamento,
    validate_ledger_entry, validate_meat_adjustment, validate_message, validate_order,
    validate_payment, validate_user,
)
from tests.helpers import lanc, order


def test_valid_order():
    assert validate_order(order(Data=date(2025, 3, 1))) == (True, "")


@pytest.mark.parametrize("field, value, msg", [
    ("Data", "", "Data obrigatória"),
    ("Data", "2019-12-31", "Data muito antiga (anterior a 2020)"),
    ("Data", "31/12/2025", "Data inválida"),
    ("Loja", "", "Loja obrigatório"),
    ("ValorUnitario", 0, "Valor unitário deve ser maior que zero"),
    ("Quantidade", -1.0, "Quantidade deve ser maior que zero"),
])
def test_invalid_order(field, value, msg):
    assert validate_order(order(**{field: value})) == (False, msg)


def test_ledger_entry_description_limit():
    entry = {"Data": "2025-03-01", "Loja": "Centro", "Tipo": CFG.TIPO_CREDITO, "Valor": 10.0}
    assert validate_ledger_entry(entry)[0]
    assert not validate_ledger_entry({**entry, "Descricao": "x" * (CFG.MAX_DESC_LEDGER + 1)})[0]
    assert not validate_ledger_entry({**entry, "Tipo": "ENTRADA"})[0]
    assert not validate_ledger_entry({**entry, "Valor": 0})[0]


def test_balance_snapshot_allows_negatives():
    entry = {"Loja": "Centro", "Ano": 2025, "Mes": 3, "Cofre": -150.0}
    assert validate_balance_snapshot(entry) == (True, "")
    assert validate_balance_snapshot({**entry, "Mes": 13}) == (False, "Mês inválido")
    assert validate_balance_snapshot({**entry, "Ano": 2019}) == (False, "Ano inválido")


def test_financial_record_rejects_negatives():
    entry = {"Loja": "Centro", "Ano": 2025, "Mes": 3, "CreditoCaixa": 10.0}
    assert validate_financial_record(entry)[0]
    ok, err = validate_financial_record({**entry, "DebitoCaixa": -1.0})
    assert not ok
    assert "Caixa" in err


def test_account():
    assert validate_account({"Nome": "Caixa", "Loja": "Centro", "SaldoInicial": -5.0})[0]
    assert validate_account({"Nome": " ", "Loja": "Centro"}) == (False, "Nome da conta obrigatório")
    assert validate_account({"Nome": "Caixa", "Loja": ""}) == (False, "Loja obrigatória")


def test_lancamento_regular():
    entry = lanc(Valor=10.0, ContaId="c1")
    assert validate_lancamento(entry) == (True, "")
    assert validate_lancamento({**entry, "ContaId": ""}) == (False, "Conta obrigatória")
    assert validate_lancamento({**entry, "Valor": 0.0}) == (False, "Valor deve ser maior que zero")
    assert validate_lancamento({**entry, "Tipo": "Outro"}) == (False, "Tipo inválido")


def test_lancamento_paid_needs_payment_date():
    entry = lanc(Valor=10.0, ContaId="c1", Status=CFG.STATUS_PAGO)
    assert validate_lancamento(entry) == (False, "Data de pagamento obrigatória")
    assert validate_lancamento({**entry, "DataPagamento": date(2025, 3, 2)})[0]


def test_lancamento_transfer():
    entry = lanc(Tipo=CFG.TIPO_TRANSFERENCIA, Valor=10.0, ContaId="c1", LojaDestino="Praia", ContaDestinoId="c3")
    assert validate_lancamento(entry) == (True, "")
    assert validate_lancamento({**entry, "ContaDestinoId": ""}) == (False, "Selecione loja e conta de destino")
    assert validate_lancamento({**entry, "ContaDestinoId": "c1"}) == (
        False, "Conta de origem e destino devem ser diferentes",
    )


def test_payment():
    assert validate_payment("c1", "PiX", "Centro") == (True, "")
    assert validate_payment("", "PiX", "Centro") == (False, "Selecione a conta")
    assert validate_payment("c1", "-", "Centro") == (False, "Selecione a forma de pagamento")
    assert validate_payment("c1", "PiX", "") == (False, "Loja obrigatória")


def test_user():
    entry = {"Nome": "Ana", "Usuario": "ana", "Senha": "123", "Modulos": ["pedidos"]}
    assert validate_user(entry) == (True, "")
    assert validate_user({**entry, "Senha": ""}, is_new=False) == (True, "")
    assert validate_user({**entry, "Senha": ""}) == (False, "Senha obrigatória")
    assert validate_user({**entry, "Usuario": "ana maria"}) == (False, "Usuário não pode conter espaços")
    assert validate_user({**entry, "Modulos": ["relatorios"]}) == (False, "Módulo inválido: relatorios")


def test_meat_adjustment():
    entry = {"Data": "2025-03-01", "Loja": "Centro", "Produto": "Picanha", "Quantidade": -1.5, "Motivo": "Perda"}
    assert validate_meat_adjustment(entry) == (True, "")
    assert validate_meat_adjustment({**entry, "Quantidade": 0.0}) == (False, "Quantidade deve ser diferente de zero")
    assert validate_meat_adjustment({**entry, "Motivo": ""}) == (False, "Motivo obrigatório")


def test_message():
    entry = {"Tipo": "popup", "Severidade": "info", "Titulo": "Aviso", "Conteudo": "Texto"}
    assert validate_message(entry) == (True, "")
    assert validate_message({**entry, "Tipo": "email"}) == (False, "Tipo de mensagem inválido")
    assert validate_message({**entry, "Conteudo": ""}) == (False, "Conteúdo obrigatório")
