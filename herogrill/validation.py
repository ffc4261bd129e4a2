from __future__ import annotations
from datetime import date, datetime

import pandas as pd

from herogrill.config import CFG


# ==============================================================================
# 5. VALIDAÇÃO
# ==============================================================================

def _is_blank(val) -> bool:
    if val is None:
        return True
    if isinstance(val, float) and pd.isna(val):
        return True
    return not str(val).strip()


def _is_positive(val) -> bool:
    return isinstance(val, (int, float)) and not isinstance(val, bool) and val > 0


def _check_date(dt, label: str = "Data") -> tuple[bool, str]:
    """Aceita date, datetime, Timestamp ou 'AAAA-MM-DD'."""
    if _is_blank(dt):
        return False, f"{label} obrigatória"
    if isinstance(dt, pd.Timestamp):
        if pd.isna(dt):
            return False, f"{label} obrigatória"
        dt = dt.to_pydatetime()
    if isinstance(dt, datetime):
        year = dt.year
    elif isinstance(dt, date):
        year = dt.year
    else:
        try:
            year = datetime.strptime(str(dt)[:10], "%Y-%m-%d").year
        except ValueError:
            return False, f"{label} inválida"
    if year < CFG.ANO_MINIMO:
        return False, f"{label} muito antiga (anterior a {CFG.ANO_MINIMO})"
    return True, ""


def _check_year_month(entry: dict) -> tuple[bool, str]:
    ano = entry.get("Ano")
    mes = entry.get("Mes")
    if not isinstance(ano, int) or ano < CFG.ANO_MINIMO or ano > 2100:
        return False, "Ano inválido"
    if not isinstance(mes, int) or not 1 <= mes <= 12:
        return False, "Mês inválido"
    return True, ""


def validate_order(entry: dict) -> tuple[bool, str]:
    """Valida um pedido antes de salvar."""
    ok, err = _check_date(entry.get("Data"))
    if not ok:
        return ok, err
    for field, label in (
        ("Loja", "Loja"), ("Produto", "Produto"), ("Fornecedor", "Fornecedor"),
        ("UnidadeMedida", "Unidade de medida"),
    ):
        if _is_blank(entry.get(field)):
            return False, f"{label} obrigatório"
    if not _is_positive(entry.get("ValorUnitario")):
        return False, "Valor unitário deve ser maior que zero"
    if not _is_positive(entry.get("Quantidade")):
        return False, "Quantidade deve ser maior que zero"
    venc = entry.get("Vencimento")
    if not _is_blank(venc):
        ok, err = _check_date(venc, "Vencimento")
        if not ok:
            return ok, err
    return True, ""


def validate_ledger_entry(entry: dict) -> tuple[bool, str]:
    """Valida lançamento do Controle 043 ou de Empréstimos."""
    ok, err = _check_date(entry.get("Data"))
    if not ok:
        return ok, err
    if _is_blank(entry.get("Loja")):
        return False, "Loja obrigatória"
    if entry.get("Tipo") not in (CFG.TIPO_DEBITO, CFG.TIPO_CREDITO):
        return False, "Tipo inválido"
    if not _is_positive(entry.get("Valor")):
        return False, "Valor deve ser maior que zero"
    desc = entry.get("Descricao", "")
    if desc and len(str(desc)) > CFG.MAX_DESC_LEDGER:
        return False, f"Descrição muito longa (máx {CFG.MAX_DESC_LEDGER})"
    return True, ""


def validate_balance_snapshot(entry: dict) -> tuple[bool, str]:
    """Valida um saldo mensal de contas. Valores negativos são aceitos."""
    if _is_blank(entry.get("Loja")):
        return False, "Loja obrigatória"
    ok, err = _check_year_month(entry)
    if not ok:
        return ok, err
    for field, label in CFG.CONTAS_SALDO:
        val = entry.get(field, 0.0)
        if not isinstance(val, (int, float)) or isinstance(val, bool):
            return False, f"Valor inválido em {label}"
    return True, ""


def validate_financial_record(entry: dict) -> tuple[bool, str]:
    """Valida um registro mensal de entradas e saídas."""
    if _is_blank(entry.get("Loja")):
        return False, "Loja obrigatória"
    ok, err = _check_year_month(entry)
    if not ok:
        return ok, err
    for field, label in CFG.CREDITOS_FINANCEIRO + CFG.DEBITOS_FINANCEIRO:
        val = entry.get(field, 0.0)
        if not isinstance(val, (int, float)) or isinstance(val, bool) or val < 0:
            return False, f"Valor inválido em {label}"
    return True, ""


def validate_account(entry: dict) -> tuple[bool, str]:
    """Valida uma conta financeira (banco/caixa) de uma loja."""
    nome = entry.get("Nome", "")
    if _is_blank(nome):
        return False, "Nome da conta obrigatório"
    if len(str(nome)) > CFG.MAX_DESC_LENGTH:
        return False, f"Nome muito longo (máx {CFG.MAX_DESC_LENGTH})"
    if _is_blank(entry.get("Loja")):
        return False, "Loja obrigatória"
    val = entry.get("SaldoInicial", 0.0)
    if not isinstance(val, (int, float)) or isinstance(val, bool):
        return False, "Saldo inicial inválido"
    return True, ""


def validate_lancamento(entry: dict) -> tuple[bool, str]:
    """Valida lançamento do financeiro (Receita / Despesa / Transferência).

    Transferência exige loja e conta de origem e de destino; os demais tipos
    exigem loja e conta.
    """
    tipo = entry.get("Tipo")
    if tipo not in CFG.TIPOS_LANCAMENTO:
        return False, "Tipo inválido"
    ok, err = _check_date(entry.get("Data"), "Data de vencimento")
    if not ok:
        return ok, err
    if not _is_positive(entry.get("Valor")):
        return False, "Valor deve ser maior que zero"
    if entry.get("Status") not in (CFG.STATUS_PAGO, CFG.STATUS_PENDENTE):
        return False, "Status inválido"

    if tipo == CFG.TIPO_TRANSFERENCIA:
        if _is_blank(entry.get("Loja")) or _is_blank(entry.get("ContaId")):
            return False, "Selecione loja e conta de origem"
        if _is_blank(entry.get("LojaDestino")) or _is_blank(entry.get("ContaDestinoId")):
            return False, "Selecione loja e conta de destino"
        if entry.get("ContaId") == entry.get("ContaDestinoId"):
            return False, "Conta de origem e destino devem ser diferentes"
    else:
        if _is_blank(entry.get("Loja")):
            return False, "Loja obrigatória"
        if _is_blank(entry.get("ContaId")):
            return False, "Conta obrigatória"

    if entry.get("Status") == CFG.STATUS_PAGO:
        ok, err = _check_date(entry.get("DataPagamento"), "Data de pagamento")
        if not ok:
            return ok, err
    desc = entry.get("Descricao", "")
    if desc and len(str(desc)) > CFG.MAX_DESC_LENGTH:
        return False, f"Descrição muito longa (máx {CFG.MAX_DESC_LENGTH})"
    return True, ""


def validate_payment(conta_id, metodo, loja) -> tuple[bool, str]:
    """Confirmação de pagamento: conta, forma de pagamento e loja."""
    if _is_blank(conta_id):
        return False, "Selecione a conta"
    if _is_blank(metodo) or str(metodo).strip() == "-":
        return False, "Selecione a forma de pagamento"
    if _is_blank(loja):
        return False, "Loja obrigatória"
    return True, ""


def validate_user(entry: dict, *, is_new: bool = True) -> tuple[bool, str]:
    """Valida cadastro de usuário. Senha só é obrigatória na criação."""
    if _is_blank(entry.get("Nome")):
        return False, "Nome obrigatório"
    usuario = entry.get("Usuario", "")
    if _is_blank(usuario):
        return False, "Usuário obrigatório"
    if " " in str(usuario).strip():
        return False, "Usuário não pode conter espaços"
    if is_new and _is_blank(entry.get("Senha")):
        return False, "Senha obrigatória"
    modulos = entry.get("Modulos", [])
    valid = {m for m, _ in CFG.MODULOS}
    invalid = [m for m in modulos if m not in valid]
    if invalid:
        return False, f"Módulo inválido: {', '.join(invalid)}"
    return True, ""


def validate_meat_adjustment(entry: dict) -> tuple[bool, str]:
    """Ajuste de estoque: quantidade pode ser negativa (perda), nunca zero."""
    ok, err = _check_date(entry.get("Data"))
    if not ok:
        return ok, err
    if _is_blank(entry.get("Loja")):
        return False, "Loja obrigatória"
    if _is_blank(entry.get("Produto")):
        return False, "Produto obrigatório"
    qtd = entry.get("Quantidade")
    if not isinstance(qtd, (int, float)) or isinstance(qtd, bool) or qtd == 0:
        return False, "Quantidade deve ser diferente de zero"
    if _is_blank(entry.get("Motivo")):
        return False, "Motivo obrigatório"
    return True, ""


def validate_message(entry: dict) -> tuple[bool, str]:
    """Valida mensagem do sistema (aviso, popup ou dica)."""
    if entry.get("Tipo") not in CFG.MSG_TIPOS:
        return False, "Tipo de mensagem inválido"
    if entry.get("Severidade") not in CFG.MSG_SEVERIDADES:
        return False, "Severidade inválida"
    if _is_blank(entry.get("Titulo")):
        return False, "Título obrigatório"
    if _is_blank(entry.get("Conteudo")):
        return False, "Conteúdo obrigatório"
    return True, ""
