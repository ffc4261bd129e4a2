from __future__ import annotations
from datetime import datetime

import streamlit as st

from herogrill import storage
from herogrill.auth import allowed_modules, current_user, logout
from herogrill.config import CFG
from herogrill.screens import SCREENS
from herogrill.screens.common import inject_css, render_header
from herogrill.screens.login import change_password_dialog, render_login, render_messages
from herogrill.utils import fmt_date_br, sanitize


# ==============================================================================
# 1. SYSTEM BOOT
# ==============================================================================

st.set_page_config(
    page_title=f"{CFG.APP_NAME} — Gestão",
    page_icon="🔥",
    layout="wide",
    initial_sidebar_state="collapsed"
)

HOME = ("home", "🏠 Início")


# ==============================================================================
# 2. INÍCIO
# ==============================================================================

def render_home(user: dict, modules: list[tuple[str, str]]) -> None:
    render_header(f"Olá, {user['Nome']}", f"{CFG.APP_NAME} — {fmt_date_br(datetime.now().date())}")
    if not modules:
        st.info("Nenhum módulo liberado para o seu usuário. Fale com o administrador.")
        return
    st.caption("Módulos disponíveis")
    cols = st.columns(3)
    for i, (key, label) in enumerate(modules):
        with cols[i % 3]:
            if st.button(label, key=f"home_{key}", use_container_width=True):
                st.session_state.nav_module = key
                st.rerun()


# ==============================================================================
# 3. APLICAÇÃO PRINCIPAL
# ==============================================================================

def main() -> None:
    inject_css()

    # --- Autenticação ---
    user = current_user()
    if not user:
        render_login()
        return

    storage.validate_worksheets()

    # --- Barra de Controle ---
    modules = allowed_modules(user)
    options = [HOME] + modules
    labels = dict(options)
    keys = [k for k, _ in options]
    if st.session_state.get("nav_module") not in keys:
        st.session_state.nav_module = HOME[0]

    c_nav, c_status = st.columns([3, 1])
    with c_nav:
        try:
            choice = st.pills(
                "Módulo", keys, format_func=labels.get, selection_mode="single",
                default=st.session_state.nav_module, label_visibility="collapsed",
            )
        except Exception:
            choice = st.radio(
                "Módulo", keys, format_func=labels.get, horizontal=True,
                index=keys.index(st.session_state.nav_module), label_visibility="collapsed",
            )
    if choice and choice != st.session_state.nav_module:
        st.session_state.nav_module = choice
    with c_status:
        st.markdown(
            f'<div class="status-line">{sanitize(CFG.APP_NAME)} v{CFG.VERSION} — {sanitize(user["Nome"])}</div>',
            unsafe_allow_html=True,
        )
        cs1, cs2, cs3 = st.columns(3)
        with cs1:
            if st.button("⟳", key="refresh_btn", help="Atualizar dados"):
                st.cache_data.clear()
                st.rerun()
        with cs2:
            if st.button("🔑", key="pwd_btn", help="Trocar senha"):
                change_password_dialog(user)
        with cs3:
            if st.button("⏻", key="logout_btn", help="Sair"):
                logout()

    render_messages(user)

    module = st.session_state.nav_module
    if module == HOME[0]:
        render_home(user, modules)
        return
    SCREENS[module](user)


# ==============================================================================
# BOOT
# ==============================================================================

if __name__ == "__main__":
    main()
