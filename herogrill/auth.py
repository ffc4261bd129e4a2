from __future__ import annotations

import pandas as pd
import streamlit as st

from herogrill.config import CFG, logger


# ==============================================================================
# 12. AUTENTICAÇÃO E PERMISSÕES
# ==============================================================================

ALL_MODULES: tuple = tuple(m for m, _ in CFG.MODULOS)

PROFILES: dict[str, list[str]] = {
    "gerente": [m for m in ALL_MODULES if m not in ("backup", "admin")],
    "operador": ["pedidos", "estoque", "novo_financeiro"],
    "observador": ["dashboard"],
}

# Permissões que não são telas próprias (liberam recursos dentro de outras telas)
SUB_PERMISSIONS: tuple = ("config_campos", "config_financeiro_campos", "view_balances")


def master_username() -> str:
    """Login do administrador mestre ([auth] username, ou o padrão)."""
    try:
        return str(st.secrets.get("auth", {}).get("username", CFG.MASTER_USUARIO))
    except Exception as e:
        logger.warning(f"[auth] secrets indisponível: {e}")
        return CFG.MASTER_USUARIO


def master_user() -> dict | None:
    """Administrador mestre definido em [auth] do secrets.toml."""
    try:
        password = st.secrets.get("auth", {}).get("password")
    except Exception as e:
        logger.warning(f"[auth] secrets indisponível: {e}")
        return None
    if not password:
        return None
    return {
        "Id": CFG.MASTER_ID,
        "Nome": CFG.MASTER_NOME,
        "Usuario": master_username(),
        "Senha": str(password),
        "Modulos": list(ALL_MODULES),
        "Lojas": [],
        "is_master": True,
    }


def authenticate(username: str, password: str, df_users: pd.DataFrame, master: dict | None = None) -> dict | None:
    """Confere usuário e senha (comparação direta, como gravado na planilha)."""
    username = (username or "").strip()
    if not username or not password:
        return None
    if master and username == master["Usuario"] and password == master["Senha"]:
        return {k: v for k, v in master.items() if k != "Senha"}
    if df_users is None or df_users.empty:
        return None
    match = df_users[
        (df_users["Usuario"].astype(str) == username)
        & (df_users["Senha"].astype(str) == str(password))
    ]
    if match.empty:
        return None
    row = match.iloc[0]
    return {
        "Id": str(row["Id"]),
        "Nome": str(row["Nome"]),
        "Usuario": str(row["Usuario"]),
        "Modulos": list(row["Modulos"]) if isinstance(row["Modulos"], list) else [],
        "Lojas": list(row["Lojas"]) if isinstance(row["Lojas"], list) else [],
        "is_master": False,
    }


def has_permission(user: dict | None, module: str) -> bool:
    if not user:
        return False
    if user.get("is_master"):
        return True
    return module in user.get("Modulos", [])


def allowed_stores(user: dict | None, all_stores: list[str]) -> list[str]:
    """Lojas visíveis: mestre vê todas; lista vazia também libera todas."""
    if not user:
        return []
    if user.get("is_master"):
        return list(all_stores)
    lojas = user.get("Lojas") or []
    if not lojas:
        return list(all_stores)
    return [s for s in all_stores if s in lojas]


def allowed_modules(user: dict | None) -> list[tuple[str, str]]:
    """Telas de navegação liberadas ao usuário (sem as sub-permissões)."""
    return [
        (key, label) for key, label in CFG.MODULOS
        if key not in SUB_PERMISSIONS and has_permission(user, key)
    ]


def profile_label(modulos: list[str]) -> str:
    """Rótulo do perfil na listagem de usuários."""
    if "admin" in modulos:
        return "Admin"
    if modulos == ["dashboard"]:
        return "Observador"
    if "config_campos" in modulos and "view_balances" in modulos:
        return "Gerente"
    return "Operador"


# --- Sessão -----------------------------------------------------------------

def current_user() -> dict | None:
    if not st.session_state.get("authenticated", False):
        return None
    return st.session_state.get("auth_user_data")


def start_session(user: dict) -> None:
    st.session_state.authenticated = True
    st.session_state.auth_user = user["Nome"]
    st.session_state.auth_user_data = user
    logger.info(f"Login OK: {user['Usuario']}")


def logout() -> None:
    """Limpa sessão de autenticação."""
    for key in ["authenticated", "auth_user", "auth_user_data", "_msgs_seen"]:
        st.session_state.pop(key, None)
    logger.info("Logout")
    st.rerun()
