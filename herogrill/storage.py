"""Camada de dados sobre a planilha Google Sheets (uma worksheet por tabela)."""
from __future__ import annotations
import json
import time
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable

import pandas as pd
import streamlit as st
from gspread.exceptions import WorksheetNotFound
from streamlit_gsheets import GSheetsConnection

from herogrill.auth import master_username
from herogrill.config import CFG, WORKSHEETS, logger
from herogrill.engine import record_totals, snapshot_total
from herogrill.utils import generate_id, now_iso, previous_month, sorted_ptbr, to_iso


class StorageError(Exception):
    """Falha de gravação ou regra de negócio violada (mensagem para o usuário)."""


# Colunas por tipo, usadas na leitura e na gravação
_NUMERIC = {
    "ValorUnitario", "Quantidade", "ValorTotal", "Valor", "SaldoInicial",
    "QuantidadeConsumida", "SaldoTotal", "TotalReceitas", "TotalDespesas",
    "ResultadoLiquido",
} | {f for f, _ in CFG.CONTAS_SALDO} | {f for f, _ in CFG.CREDITOS_FINANCEIRO + CFG.DEBITOS_FINANCEIRO}
_INTEGER = {"Ano", "Mes"}
_DATES = {"Data", "DataPagamento", "Vencimento"}
_JSON_LISTS = {"Modulos", "Lojas", "LidoPor"}


# ==============================================================================
# 6. CAMADA DE DADOS
# ==============================================================================

def get_conn() -> GSheetsConnection:
    """Retorna conexão com Google Sheets."""
    return st.connection("gsheets", type=GSheetsConnection)


def _normalize_strings(df: pd.DataFrame, columns: list[str]) -> pd.DataFrame:
    """Normaliza strings de colunas categóricas."""
    for col in columns:
        if col in df.columns:
            df[col] = df[col].fillna("").astype(str).str.strip()
            df.loc[df[col].isin(["nan", "None", "NaT"]), col] = ""
    return df


def _parse_json_list(val) -> list:
    if isinstance(val, list):
        return val
    if val is None or (isinstance(val, float) and pd.isna(val)):
        return []
    text = str(val).strip()
    if not text:
        return []
    try:
        parsed = json.loads(text)
    except (ValueError, TypeError):
        return [p.strip() for p in text.split(",") if p.strip()]
    return parsed if isinstance(parsed, list) else []


def _parse_ativo(val) -> bool:
    """Converte valor para booleano (coluna Ativo)."""
    if isinstance(val, bool):
        return val
    if val is None or (isinstance(val, float) and pd.isna(val)):
        return True
    return str(val).strip().upper() not in ("FALSE", "0", "NAO", "NÃO", "N")


def _coerce(df: pd.DataFrame, columns: tuple) -> pd.DataFrame:
    """Completa colunas faltantes e converte tipos conforme o nome da coluna."""
    df = df.dropna(how="all").copy()
    for col in columns:
        if col not in df.columns:
            df[col] = None
    for col in columns:
        if col in _NUMERIC:
            df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0.0).astype(float)
        elif col in _INTEGER:
            df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0).astype(int)
        elif col in _DATES:
            df[col] = df[col].apply(to_iso)
        elif col in _JSON_LISTS:
            df[col] = df[col].apply(_parse_json_list)
        elif col == "Ativo":
            df[col] = df[col].apply(_parse_ativo)
        else:
            _normalize_strings(df, [col])
    return df[list(columns)].reset_index(drop=True)


def _load(worksheet: str) -> pd.DataFrame:
    columns = WORKSHEETS[worksheet]
    try:
        df = get_conn().read(worksheet=worksheet)
        if df is None:
            return pd.DataFrame(columns=list(columns))
        return _coerce(df, columns)
    except Exception as e:
        logger.error(f"load [{worksheet}]: {e}")
        return pd.DataFrame(columns=list(columns))


def _serialize_for_sheet(df: pd.DataFrame) -> pd.DataFrame:
    """Serializa DataFrame para gravação na planilha."""
    df_out = df.copy()
    for col in df_out.columns:
        if col in _DATES:
            df_out[col] = df_out[col].apply(to_iso)
        elif col in _JSON_LISTS:
            df_out[col] = df_out[col].apply(
                lambda v: json.dumps(_parse_json_list(v), ensure_ascii=False)
            )
        elif col == "Ativo":
            df_out[col] = df_out[col].apply(lambda x: "TRUE" if _parse_ativo(x) else "FALSE")
    return df_out.astype(object).where(pd.notna(df_out), "")


def _current_user() -> str:
    try:
        return st.session_state.get("auth_user", "anônimo")
    except Exception:
        return "anônimo"


def log_audit(action: str, worksheet: str, details: str = "") -> None:
    """Registra ação no audit log (fire-and-forget)."""
    try:
        conn = get_conn()
        df_log = _read_for_write(conn, CFG.WS_AUDIT)

        new_row = pd.DataFrame([{
            "Timestamp": now_iso(),
            "Usuario": _current_user(),
            "Acao": action,
            "Planilha": worksheet,
            "Detalhes": str(details)[:200],
        }])
        df_updated = pd.concat([df_log, new_row], ignore_index=True)
        if len(df_updated) > CFG.AUDIT_MAX_ROWS:
            df_updated = df_updated.tail(CFG.AUDIT_MAX_ROWS).reset_index(drop=True)
        conn.update(worksheet=CFG.WS_AUDIT, data=df_updated)
    except Exception as e:
        logger.warning(f"Audit log failed (non-blocking): {e}")


def _read_for_write(conn, worksheet: str) -> pd.DataFrame:
    """Leitura sem cache. Só a worksheet inexistente vira tabela vazia."""
    columns = WORKSHEETS[worksheet]
    try:
        df = conn.read(worksheet=worksheet, ttl=0)
    except WorksheetNotFound:
        logger.warning(f"Worksheet ausente: {worksheet}")
        df = None
    if df is None:
        return pd.DataFrame(columns=list(columns))
    return _coerce(df, columns)


def read_table(worksheet: str, conn=None) -> pd.DataFrame:
    """Leitura sem cache (backup, log de auditoria).

    Raises:
        StorageError: falha de leitura (rede, cota, permissão).
    """
    try:
        return _read_for_write(conn or get_conn(), worksheet)
    except Exception as e:
        logger.error(f"read [{worksheet}]: {e}")
        raise StorageError(f"Falha ao ler {worksheet}: {e}") from e


def _mutate(
    worksheet: str,
    change: Callable[[pd.DataFrame], pd.DataFrame],
    action: str,
    details: str = "",
) -> None:
    """Lê a planilha, aplica `change` e grava de volta (com retry).

    Falha de leitura ou gravação é repetida até CFG.SAVE_RETRIES vezes;
    StorageError levantado por `change` (regra de negócio) não é repetido.
    """
    conn = get_conn()
    for attempt in range(CFG.SAVE_RETRIES):
        try:
            df_curr = _read_for_write(conn, worksheet)
            df_updated = change(df_curr).reindex(columns=list(WORKSHEETS[worksheet]))
            conn.update(worksheet=worksheet, data=_serialize_for_sheet(df_updated))
            st.cache_data.clear()
            logger.info(f"{action} OK [{worksheet}]: {details}")
            log_audit(action, worksheet, details)
            return
        except StorageError:
            raise
        except Exception as e:
            if attempt == CFG.SAVE_RETRIES - 1:
                logger.error(f"{action} failed [{worksheet}]: {e}")
                st.cache_data.clear()
                raise StorageError(
                    f"Falha ao salvar após {CFG.SAVE_RETRIES} tentativas: {e}"
                ) from e
            time.sleep(0.5 * (attempt + 1))


def insert_row(worksheet: str, data: dict, details: str = "") -> str:
    """Acrescenta uma linha. Gera Id e CriadoEm quando ausentes."""
    row = dict(data)
    if "Id" in WORKSHEETS[worksheet] and not row.get("Id"):
        row["Id"] = generate_id()
    if "CriadoEm" in WORKSHEETS[worksheet] and not row.get("CriadoEm"):
        row["CriadoEm"] = now_iso()

    def change(df: pd.DataFrame) -> pd.DataFrame:
        df_new = pd.DataFrame([row])
        if df.empty:
            return df_new
        return pd.concat([df, df_new], ignore_index=True)

    _mutate(worksheet, change, "CREATE", details or row.get("Id", ""))
    return row.get("Id", "")


def update_row(worksheet: str, row_id: str, changes: dict, details: str = "") -> None:
    """Atualiza a linha com o Id informado."""
    row_id = str(row_id)

    def change(df: pd.DataFrame) -> pd.DataFrame:
        mask = df["Id"].astype(str) == row_id
        if not mask.any():
            raise StorageError("Registro não encontrado.")
        df = df.astype(object)
        for key, val in changes.items():
            if key == "Id" or key not in df.columns:
                continue
            idx = df.index[mask]
            for i in idx:
                df.at[i, key] = val
        return df

    _mutate(worksheet, change, "UPDATE", details or row_id)


def delete_row(worksheet: str, row_id: str, details: str = "") -> None:
    """Remove a linha com o Id informado."""
    row_id = str(row_id)

    def change(df: pd.DataFrame) -> pd.DataFrame:
        mask = df["Id"].astype(str) == row_id
        if not mask.any():
            raise StorageError("Registro não encontrado.")
        return df[~mask].reset_index(drop=True)

    _mutate(worksheet, change, "DELETE", details or row_id)


def coerce_table(worksheet: str, df: pd.DataFrame) -> pd.DataFrame:
    """Ajusta colunas e tipos de uma tabela vinda de fora (ex.: backup)."""
    return _coerce(df, WORKSHEETS[worksheet])


def replace_sheet(worksheet: str, df_new: pd.DataFrame, details: str = "") -> None:
    """Substitui o conteúdo inteiro da planilha."""
    columns = list(WORKSHEETS[worksheet])
    df_out = df_new.reindex(columns=columns) if not df_new.empty else pd.DataFrame(columns=columns)
    _mutate(worksheet, lambda _df: df_out, "REPLACE", details or f"{len(df_out)} registros")


# ==============================================================================
# 6.1 LISTAS DO SISTEMA (Configuracoes)
# ==============================================================================

@st.cache_data(ttl=CFG.CACHE_TTL)
def load_app_data() -> dict[str, list[str]]:
    """Listas editáveis (lojas, produtos, marcas...). Sempre ordenadas."""
    data: dict[str, list[str]] = {key: [] for key in CFG.LISTAS}
    df = _load(CFG.WS_CONFIG)
    for _, row in df.iterrows():
        key = str(row["Categoria"]).strip()
        if key in data:
            data[key] = sorted_ptbr(set(_parse_json_list(row["Itens"])))
    if not data["tipos"]:
        data["tipos"] = list(CFG.TIPOS_PADRAO)
    return data


def save_app_data(data: dict[str, list[str]]) -> None:
    rows = [
        {"Categoria": key, "Itens": json.dumps(sorted_ptbr(set(data.get(key, []))), ensure_ascii=False)}
        for key in CFG.LISTAS
    ]
    replace_sheet(CFG.WS_CONFIG, pd.DataFrame(rows), "listas do sistema")


# ==============================================================================
# 6.2 PEDIDOS
# ==============================================================================

@st.cache_data(ttl=CFG.CACHE_TTL)
def load_orders() -> pd.DataFrame:
    return _load(CFG.WS_PEDIDOS)


def _order_row(entry: dict) -> dict:
    row = dict(entry)
    row["Data"] = to_iso(row.get("Data"))
    row["Vencimento"] = to_iso(row.get("Vencimento"))
    row["ValorTotal"] = round(float(row.get("ValorUnitario", 0)) * float(row.get("Quantidade", 0)), 2)
    return row


def insert_order(entry: dict) -> str:
    row = _order_row(entry)
    return insert_row(CFG.WS_PEDIDOS, row, f"{row.get('Produto', '')} — {row.get('Loja', '')}")


def update_order(order_id: str, entry: dict) -> None:
    update_row(CFG.WS_PEDIDOS, order_id, _order_row(entry), f"{entry.get('Produto', '')}")


def delete_order(order_id: str) -> None:
    delete_row(CFG.WS_PEDIDOS, order_id)


# ==============================================================================
# 6.3 CONTROLE 043 / EMPRÉSTIMOS
# ==============================================================================

_LEDGERS = (CFG.WS_043, CFG.WS_EMPRESTIMOS)


@st.cache_data(ttl=CFG.CACHE_TTL)
def load_ledger(worksheet: str) -> pd.DataFrame:
    if worksheet not in _LEDGERS:
        raise ValueError(f"Planilha de controle inválida: {worksheet}")
    return _load(worksheet)


def insert_ledger_entry(worksheet: str, entry: dict) -> str:
    row = dict(entry)
    row["Data"] = to_iso(row.get("Data"))
    row["Descricao"] = str(row.get("Descricao", ""))[:CFG.MAX_DESC_LEDGER]
    return insert_row(worksheet, row, f"{row.get('Tipo')} {row.get('Valor')} — {row.get('Loja')}")


def update_ledger_entry(worksheet: str, entry_id: str, entry: dict) -> None:
    row = dict(entry)
    if "Data" in row:
        row["Data"] = to_iso(row["Data"])
    if "Descricao" in row:
        row["Descricao"] = str(row["Descricao"])[:CFG.MAX_DESC_LEDGER]
    update_row(worksheet, entry_id, row)


def delete_ledger_entry(worksheet: str, entry_id: str) -> None:
    delete_row(worksheet, entry_id)


# ==============================================================================
# 6.4 SALDO DE CONTAS
# ==============================================================================

@st.cache_data(ttl=CFG.CACHE_TTL)
def load_snapshots() -> pd.DataFrame:
    return _load(CFG.WS_SALDOS)


def _check_unique_month(df: pd.DataFrame, entry: dict, ignore_id: str | None = None) -> None:
    if df.empty:
        return
    mask = (
        (df["Loja"].astype(str) == str(entry["Loja"]))
        & (pd.to_numeric(df["Ano"], errors="coerce") == int(entry["Ano"]))
        & (pd.to_numeric(df["Mes"], errors="coerce") == int(entry["Mes"]))
    )
    if ignore_id is not None:
        mask &= df["Id"].astype(str) != str(ignore_id)
    if mask.any():
        raise StorageError("Já existe um lançamento para esta Loja neste Mês/Ano.")


def insert_snapshot(entry: dict) -> str:
    """Grava saldo mensal; um único registro por loja/ano/mês."""
    row = dict(entry)
    row["Id"] = row.get("Id") or generate_id()
    row["CriadoEm"] = row.get("CriadoEm") or now_iso()
    row["SaldoTotal"] = snapshot_total(row)

    def change(df: pd.DataFrame) -> pd.DataFrame:
        _check_unique_month(df, row)
        return pd.concat([df, pd.DataFrame([row])], ignore_index=True)

    _mutate(CFG.WS_SALDOS, change, "CREATE", f"{row['Loja']} {row['Mes']:02d}/{row['Ano']}")
    return row["Id"]


def update_snapshot(snapshot_id: str, entry: dict) -> None:
    row = dict(entry)
    row["SaldoTotal"] = snapshot_total(row)

    def change(df: pd.DataFrame) -> pd.DataFrame:
        _check_unique_month(df, row, ignore_id=snapshot_id)
        mask = df["Id"].astype(str) == str(snapshot_id)
        if not mask.any():
            raise StorageError("Registro não encontrado.")
        df = df.astype(object)
        for key, val in row.items():
            if key in df.columns and key != "Id":
                df.loc[mask, key] = val
        return df

    _mutate(CFG.WS_SALDOS, change, "UPDATE", f"{row['Loja']} {row['Mes']:02d}/{row['Ano']}")


def delete_snapshot(snapshot_id: str) -> None:
    delete_row(CFG.WS_SALDOS, snapshot_id)


def previous_month_balance(loja: str, ano: int, mes: int, df: pd.DataFrame | None = None) -> dict | None:
    """Saldo do mês anterior da loja (janeiro consulta dezembro do ano anterior)."""
    df = load_snapshots() if df is None else df
    if df.empty:
        return None
    prev_ano, prev_mes = previous_month(int(ano), int(mes))
    match = df[
        (df["Loja"] == loja)
        & (df["Ano"].astype(int) == prev_ano)
        & (df["Mes"].astype(int) == prev_mes)
    ]
    if match.empty:
        return None
    return match.iloc[0].to_dict()


# ==============================================================================
# 6.5 ENTRADAS E SAÍDAS (antigo)
# ==============================================================================

@st.cache_data(ttl=CFG.CACHE_TTL)
def load_financial_records() -> pd.DataFrame:
    return _load(CFG.WS_FINANCEIRO)


def insert_financial_record(entry: dict) -> str:
    row = record_totals(entry)
    row["Id"] = row.get("Id") or generate_id()
    row["CriadoEm"] = row.get("CriadoEm") or now_iso()

    def change(df: pd.DataFrame) -> pd.DataFrame:
        _check_unique_month(df, row)
        return pd.concat([df, pd.DataFrame([row])], ignore_index=True)

    _mutate(CFG.WS_FINANCEIRO, change, "CREATE", f"{row['Loja']} {row['Mes']:02d}/{row['Ano']}")
    return row["Id"]


def update_financial_record(record_id: str, entry: dict) -> None:
    row = record_totals(entry)

    def change(df: pd.DataFrame) -> pd.DataFrame:
        _check_unique_month(df, row, ignore_id=record_id)
        mask = df["Id"].astype(str) == str(record_id)
        if not mask.any():
            raise StorageError("Registro não encontrado.")
        df = df.astype(object)
        for key, val in row.items():
            if key in df.columns and key != "Id":
                df.loc[mask, key] = val
        return df

    _mutate(CFG.WS_FINANCEIRO, change, "UPDATE", f"{row['Loja']} {row['Mes']:02d}/{row['Ano']}")


def delete_financial_record(record_id: str) -> None:
    delete_row(CFG.WS_FINANCEIRO, record_id)


# ==============================================================================
# 6.6 NOVO FINANCEIRO (Contas e Lançamentos)
# ==============================================================================

@st.cache_data(ttl=CFG.CACHE_TTL)
def load_accounts() -> pd.DataFrame:
    return _load(CFG.WS_CONTAS)


def insert_account(entry: dict) -> str:
    return insert_row(CFG.WS_CONTAS, entry, f"{entry.get('Nome')} — {entry.get('Loja')}")


def update_account(account_id: str, entry: dict) -> None:
    update_row(CFG.WS_CONTAS, account_id, entry, f"{entry.get('Nome')}")


def delete_account(account_id: str) -> None:
    delete_row(CFG.WS_CONTAS, account_id)


@st.cache_data(ttl=CFG.CACHE_TTL)
def load_lancamentos() -> pd.DataFrame:
    return _load(CFG.WS_LANCAMENTOS)


def upsert_lancamentos(entries: list[dict]) -> list[str]:
    """Insere ou atualiza por Id, numa única gravação.

    Pedido pendente pago vira lançamento com o mesmo Id do pedido.
    """
    rows = []
    for entry in entries:
        row = dict(entry)
        row["Id"] = row.get("Id") or generate_id()
        row["Origem"] = row.get("Origem") or CFG.ORIGEM_MANUAL
        rows.append(row)
    ids = [r["Id"] for r in rows]

    def change(df: pd.DataFrame) -> pd.DataFrame:
        df = df.astype(object)
        new_rows = []
        for row in rows:
            mask = df["Id"].astype(str) == str(row["Id"])
            if mask.any():
                for key, val in row.items():
                    if key == "CriadoEm" and not val:
                        continue
                    if key in df.columns and key != "Id":
                        df.loc[mask, key] = val
            else:
                new_rows.append({**row, "CriadoEm": row.get("CriadoEm") or now_iso()})
        if new_rows:
            df = pd.concat([df, pd.DataFrame(new_rows)], ignore_index=True)
        return df

    _mutate(CFG.WS_LANCAMENTOS, change, "UPSERT", f"{len(rows)} lançamento(s)")
    return ids


def upsert_lancamento(entry: dict) -> str:
    return upsert_lancamentos([entry])[0]


def delete_lancamento(lanc_id: str) -> None:
    delete_row(CFG.WS_LANCAMENTOS, lanc_id)


# ==============================================================================
# 6.7 ESTOQUE DE CARNES
# ==============================================================================

@st.cache_data(ttl=CFG.CACHE_TTL)
def load_consumption() -> pd.DataFrame:
    return _load(CFG.WS_CONSUMO)


@st.cache_data(ttl=CFG.CACHE_TTL)
def load_adjustments() -> pd.DataFrame:
    return _load(CFG.WS_AJUSTES)


def _round_weight(val) -> float:
    """Peso com 3 casas; a meia unidade arredonda para longe do zero."""
    return float(Decimal(str(float(val))).quantize(Decimal("0.001"), rounding=ROUND_HALF_UP))


def save_daily_consumption(loja: str, dia, quantidades: dict[str, float]) -> int:
    """Grava o consumo do dia da loja; substitui o que já havia para a data.

    Só produtos com consumo > 0 geram linha. Retorna quantas linhas gravou.
    """
    dia_iso = to_iso(dia)
    rows = [
        {
            "Id": generate_id(),
            "Data": dia_iso,
            "Loja": loja,
            "Produto": produto,
            "QuantidadeConsumida": _round_weight(qtd),
            "CriadoEm": now_iso(),
        }
        for produto, qtd in quantidades.items()
        if qtd and qtd > 0
    ]
    produtos = {p.lower() for p in quantidades}

    def change(df: pd.DataFrame) -> pd.DataFrame:
        same_day = (
            (df["Data"].astype(str).str[:10] == dia_iso)
            & (df["Loja"].astype(str) == loja)
            & (df["Produto"].astype(str).str.lower().isin(produtos))
        )
        kept = df[~same_day]
        if not rows:
            return kept.reset_index(drop=True)
        return pd.concat([kept, pd.DataFrame(rows)], ignore_index=True)

    _mutate(CFG.WS_CONSUMO, change, "CONSUMO", f"{loja} {dia_iso}: {len(rows)} itens")
    return len(rows)


def insert_adjustment(entry: dict) -> str:
    row = dict(entry)
    row["Data"] = to_iso(row.get("Data"))
    row["Quantidade"] = _round_weight(row.get("Quantidade", 0))
    return insert_row(CFG.WS_AJUSTES, row, f"{row.get('Produto')} {row['Quantidade']} — {row.get('Motivo')}")


# ==============================================================================
# 6.8 USUÁRIOS
# ==============================================================================

@st.cache_data(ttl=CFG.CACHE_TTL)
def load_users() -> pd.DataFrame:
    return _load(CFG.WS_USUARIOS)


def save_user(entry: dict) -> str:
    """Cria ou atualiza usuário (por Id).

    Raises:
        StorageError: usuário reservado do administrador ou já existente.
    """
    row = dict(entry)
    username = str(row.get("Usuario", "")).strip()
    if username.lower() in {CFG.MASTER_USUARIO.lower(), master_username().lower()}:
        raise StorageError("Nome de usuário reservado.")
    row["Usuario"] = username
    for key in ("Modulos", "Lojas"):
        row[key] = json.dumps(_parse_json_list(row.get(key, [])), ensure_ascii=False)
    row["Id"] = row.get("Id") or generate_id()
    is_new = not entry.get("Id")

    def change(df: pd.DataFrame) -> pd.DataFrame:
        others = df[df["Id"].astype(str) != str(row["Id"])]
        if (others["Usuario"].astype(str).str.lower() == username.lower()).any():
            raise StorageError("Usuário já existe.")
        if is_new:
            row["CriadoEm"] = now_iso()
            return pd.concat([df, pd.DataFrame([row])], ignore_index=True)
        mask = df["Id"].astype(str) == str(row["Id"])
        if not mask.any():
            raise StorageError("Registro não encontrado.")
        df = df.astype(object)
        idx = df.index[mask][0]
        for key, val in row.items():
            if key == "Senha" and not val:
                continue
            if key in df.columns and key != "Id":
                df.at[idx, key] = val
        return df

    _mutate(CFG.WS_USUARIOS, change, "CREATE" if is_new else "UPDATE", username)
    return row["Id"]


def delete_user(user_id: str) -> None:
    if user_id == CFG.MASTER_ID:
        raise StorageError("O administrador mestre não pode ser excluído.")
    delete_row(CFG.WS_USUARIOS, user_id)


def change_password(user_id: str, current: str, new: str) -> None:
    """Troca de senha pelo próprio usuário (exige a senha atual)."""
    if user_id == CFG.MASTER_ID:
        raise StorageError("A senha do administrador mestre é definida no secrets.toml.")
    if not new or not str(new).strip():
        raise StorageError("Nova senha obrigatória.")

    def change(df: pd.DataFrame) -> pd.DataFrame:
        mask = df["Id"].astype(str) == str(user_id)
        if not mask.any():
            raise StorageError("Usuário não encontrado.")
        if str(df.loc[mask, "Senha"].iloc[0]) != str(current):
            raise StorageError("Senha atual incorreta.")
        df = df.astype(object)
        df.loc[mask, "Senha"] = new
        return df

    _mutate(CFG.WS_USUARIOS, change, "PASSWORD", str(user_id))


# ==============================================================================
# 6.9 MENSAGENS DO SISTEMA
# ==============================================================================

@st.cache_data(ttl=CFG.CACHE_TTL)
def load_messages() -> pd.DataFrame:
    df = _load(CFG.WS_MENSAGENS)
    if df.empty:
        return df
    return df.sort_values("CriadoEm", ascending=False, kind="mergesort").reset_index(drop=True)


def create_message(entry: dict) -> str:
    row = dict(entry)
    row.setdefault("Ativo", True)
    row["LidoPor"] = "[]"
    return insert_row(CFG.WS_MENSAGENS, row, str(row.get("Titulo", "")))


def delete_message(message_id: str) -> None:
    delete_row(CFG.WS_MENSAGENS, message_id)


def set_message_active(message_id: str, ativo: bool) -> None:
    update_row(CFG.WS_MENSAGENS, message_id, {"Ativo": ativo})


def mark_message_read(message_id: str, user_id: str) -> None:
    """Acrescenta o usuário em LidoPor (sem duplicar)."""

    def change(df: pd.DataFrame) -> pd.DataFrame:
        mask = df["Id"].astype(str) == str(message_id)
        if not mask.any():
            raise StorageError("Mensagem não encontrada.")
        df = df.astype(object)
        idx = df.index[mask][0]
        lidos = list(_parse_json_list(df.at[idx, "LidoPor"]))
        if user_id not in lidos:
            lidos.append(user_id)
        df.at[idx, "LidoPor"] = json.dumps(lidos, ensure_ascii=False)
        return df

    _mutate(CFG.WS_MENSAGENS, change, "READ", f"{message_id} por {user_id}")


def unread_messages(df: pd.DataFrame, user_id: str, tipos: tuple = ("popup", "tip")) -> pd.DataFrame:
    """Mensagens ativas dos tipos informados ainda não lidas pelo usuário."""
    if df.empty:
        return df
    mask = (
        df["Ativo"].apply(_parse_ativo)
        & df["Tipo"].isin(tipos)
        & ~df["LidoPor"].apply(lambda lidos: user_id in _parse_json_list(lidos))
    )
    return df[mask].reset_index(drop=True)


# ==============================================================================
# 6.10 DIAGNÓSTICO E INTEGRIDADE
# ==============================================================================

def config_status() -> dict[str, bool]:
    """Quais blocos do secrets.toml estão presentes."""
    status = {"gsheets": False, "auth": False}
    try:
        status["gsheets"] = "gsheets" in st.secrets.get("connections", {})
        status["auth"] = "password" in st.secrets.get("auth", {})
    except (FileNotFoundError, KeyError, Exception) as e:
        logger.warning(f"config_status: {e}")
    return status


def check_connection() -> dict:
    """Testa leitura da planilha. status: ok | error | config_missing."""
    if not config_status()["gsheets"]:
        return {"status": "config_missing", "message": "Bloco [connections.gsheets] ausente no secrets.toml"}
    started = time.time()
    try:
        get_conn().read(worksheet=CFG.WS_CONFIG, ttl=0)
    except Exception as e:
        logger.error(f"check_connection: {e}")
        return {"status": "error", "message": str(e)}
    return {"status": "ok", "message": f"Conectado em {time.time() - started:.2f}s"}


def worksheet_issues() -> list[str]:
    """Worksheets ausentes ou com colunas faltando."""
    conn = get_conn()
    issues: list[str] = []
    for ws_name, expected_cols in WORKSHEETS.items():
        try:
            df = conn.read(worksheet=ws_name, ttl=0)
            if df is not None and not df.empty:
                missing = set(expected_cols) - set(df.columns)
                if missing:
                    issues.append(f"{ws_name}: colunas faltando — {', '.join(sorted(missing))}")
        except WorksheetNotFound:
            issues.append(f"{ws_name}: não encontrada")
        except Exception as e:
            issues.append(f"{ws_name}: inacessível")
            logger.warning(f"[Integridade] {ws_name}: {e}")
    return issues


def validate_worksheets() -> None:
    """Valida integridade das worksheets no boot. Executa uma vez por sessão."""
    if st.session_state.get("_ws_validated", False):
        return
    issues = worksheet_issues()
    if issues:
        for issue in issues:
            logger.warning(f"[Integridade] {issue}")
    else:
        logger.info("Integridade OK — todas as worksheets validadas")
    st.session_state["_ws_validated"] = True


def _worksheet_exists(conn, ws_name: str) -> bool:
    try:
        conn.read(worksheet=ws_name, ttl=0)
    except WorksheetNotFound:
        return False
    return True


def create_missing_worksheets() -> list[str]:
    """Cria com cabeçalho as worksheets que não existem."""
    conn = get_conn()
    created: list[str] = []
    for ws_name, expected_cols in WORKSHEETS.items():
        try:
            if _worksheet_exists(conn, ws_name):
                continue
            conn.create(worksheet=ws_name, data=pd.DataFrame(columns=list(expected_cols)))
            created.append(ws_name)
            logger.info(f"Worksheet criada: {ws_name}")
        except Exception as e:
            logger.error(f"create worksheet [{ws_name}]: {e}")
            raise StorageError(f"Não foi possível criar {ws_name}: {e}") from e
    if created:
        st.cache_data.clear()
        log_audit("CREATE_SHEETS", "ALL", ", ".join(created))
    return created
