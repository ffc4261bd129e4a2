"""Login, troca de senha e mensagens do sistema."""
from __future__ import annotations

import streamlit as st

from herogrill import storage
from herogrill.auth import authenticate, master_user, start_session
from herogrill.config import CFG, logger
from herogrill.screens.common import run_action
from herogrill.utils import sanitize

_SEVERITY_BOX = {"info": st.info, "warning": st.warning, "alert": st.error}


# ==============================================================================
# 12. LOGIN
# ==============================================================================

def render_login() -> None:
    """Tela de login (usuários da planilha + administrador mestre do secrets)."""
    st.markdown(f"""
    <div class="login-head">
        <div class="login-brand">🔥 {sanitize(CFG.APP_NAME)}</div>
        <div class="login-title">Autenticação</div>
        <div class="login-sub">Acesso restrito</div>
    </div>
    """, unsafe_allow_html=True)

    _, col_center, _ = st.columns([1, 1, 1])
    with col_center:
        with st.form("login_form"):
            username = st.text_input("Usuário", placeholder="usuário", label_visibility="collapsed")
            password = st.text_input("Senha", type="password", placeholder="senha", label_visibility="collapsed")
            if st.form_submit_button("ENTRAR", use_container_width=True):
                master = master_user()
                users = storage.load_users()
                user = authenticate(username, password, users, master)
                if user:
                    start_session(user)
                    st.rerun()
                else:
                    st.error("Usuário ou senha incorretos")
                    logger.warning(f"Login falhou: {username.strip()}")
                if master is None and users.empty:
                    st.caption("Nenhum usuário disponível: configure [auth] no secrets.toml.")
        st.markdown(f'<div class="login-version">v{CFG.VERSION}</div>', unsafe_allow_html=True)


@st.dialog("Trocar senha")
def change_password_dialog(user: dict) -> None:
    if user.get("is_master"):
        st.info("A senha do administrador mestre é definida no secrets.toml.")
        return
    with st.form("pwd_form"):
        atual = st.text_input("Senha atual", type="password")
        nova = st.text_input("Nova senha", type="password")
        confirma = st.text_input("Confirmar nova senha", type="password")
        if st.form_submit_button("SALVAR", use_container_width=True):
            if nova != confirma:
                st.error("As senhas não conferem.")
            elif run_action(lambda: storage.change_password(user["Id"], atual, nova), "Senha alterada"):
                st.rerun()


# ==============================================================================
# 12.1 MENSAGENS DO SISTEMA
# ==============================================================================

def render_messages(user: dict) -> None:
    """Avisos fixos, popups (até confirmar leitura) e dicas (toast, uma vez por sessão)."""
    df = storage.load_messages()
    if df.empty:
        return
    ativos = df[df["Ativo"].astype(bool)]

    for _, msg in ativos[ativos["Tipo"] == "notification"].iterrows():
        box = _SEVERITY_BOX.get(msg["Severidade"], st.info)
        box(f"**{msg['Titulo']}** — {msg['Conteudo']}")

    seen = st.session_state.setdefault("_msgs_seen", set())
    pendentes = storage.unread_messages(df, user["Id"])
    for _, msg in pendentes.iterrows():
        if msg["Tipo"] == "tip":
            if msg["Id"] not in seen:
                st.toast(f"💡 {msg['Titulo']}: {msg['Conteudo']}")
                seen.add(msg["Id"])
            continue
        with st.container(border=True):
            box = _SEVERITY_BOX.get(msg["Severidade"], st.info)
            box(f"**{msg['Titulo']}**\n\n{msg['Conteudo']}")
            if st.button("ENTENDI", key=f"msg_ok_{msg['Id']}"):
                if run_action(lambda: storage.mark_message_read(msg["Id"], user["Id"]), "Mensagem marcada como lida"):
                    st.rerun()
