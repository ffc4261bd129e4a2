"""Administração: usuários, mensagens do sistema e diagnóstico."""
from __future__ import annotations

import pandas as pd
import streamlit as st

from herogrill import storage
from herogrill.auth import ALL_MODULES, PROFILES, profile_label
from herogrill.config import CFG
from herogrill.screens.common import confirm_delete, no_data, pills, render_header, run_action
from herogrill.utils import fmt_date_br
from herogrill.validation import validate_message, validate_user

_MODULE_LABEL = dict(CFG.MODULOS)
_PROFILE_OPTIONS = ["personalizado"] + list(PROFILES)


def _user_fields(lojas: list[str], prefix: str, current: dict | None = None) -> dict:
    cur = current or {}
    c1, c2, c3 = st.columns(3)
    nome = c1.text_input("Nome", value=cur.get("Nome", ""), key=f"{prefix}_nome")
    usuario = c2.text_input("Usuário", value=cur.get("Usuario", ""), key=f"{prefix}_usuario")
    senha = c3.text_input(
        "Senha" if not cur else "Nova senha (vazio mantém a atual)",
        type="password", key=f"{prefix}_senha",
    )
    perfil = st.selectbox("Perfil", _PROFILE_OPTIONS, key=f"{prefix}_perfil", format_func=str.capitalize)
    default_modulos = PROFILES[perfil] if perfil in PROFILES else list(cur.get("Modulos", []))
    modulos = st.multiselect(
        "Módulos", list(ALL_MODULES), default=[m for m in default_modulos if m in ALL_MODULES],
        format_func=lambda m: _MODULE_LABEL.get(m, m), key=f"{prefix}_modulos_{perfil}",
    )
    lojas_sel = st.multiselect(
        "Lojas (vazio = todas)", lojas,
        default=[s for s in cur.get("Lojas", []) if s in lojas], key=f"{prefix}_lojas",
    )
    return {
        "Id": cur.get("Id", ""),
        "Nome": nome.strip(),
        "Usuario": usuario.strip(),
        "Senha": senha,
        "Modulos": modulos,
        "Lojas": lojas_sel,
    }


def _tab_usuarios(lojas: list[str]) -> None:
    with st.expander("➕ Novo usuário"):
        entry = _user_fields(lojas, "usr_new")
        if st.button("CRIAR USUÁRIO", key="usr_create"):
            ok, err = validate_user(entry, is_new=True)
            if not ok:
                st.toast(f"⚠ {err}")
            elif run_action(lambda: storage.save_user(entry), f"Usuário {entry['Usuario']} criado"):
                st.rerun()

    df = storage.load_users()
    if df.empty:
        no_data("Nenhum usuário cadastrado. Apenas o administrador mestre tem acesso.")
        return
    st.dataframe(
        pd.DataFrame({
            "Nome": df["Nome"],
            "Usuário": df["Usuario"],
            "Perfil": df["Modulos"].map(profile_label),
            "Lojas": df["Lojas"].map(lambda v: ", ".join(v) if v else "Todas"),
        }),
        hide_index=True, use_container_width=True,
    )
    for _, row in df.iterrows():
        user = row.to_dict()
        with st.expander(f"✎ {user['Nome']} ({user['Usuario']})"):
            entry = _user_fields(lojas, f"usr_{user['Id']}", user)
            c_save, c_del = st.columns(2)
            with c_save:
                if st.button("SALVAR", key=f"usr_save_{user['Id']}"):
                    ok, err = validate_user(entry, is_new=False)
                    if not ok:
                        st.toast(f"⚠ {err}")
                    elif run_action(lambda: storage.save_user(entry), "Usuário atualizado"):
                        st.rerun()
            with c_del:
                if confirm_delete(f"usr_del_{user['Id']}"):
                    if run_action(lambda: storage.delete_user(user["Id"]), "Usuário excluído"):
                        st.rerun()


def _tab_mensagens() -> None:
    with st.form("msg_new", clear_on_submit=True):
        c1, c2 = st.columns(2)
        tipo = c1.selectbox("Tipo", list(CFG.MSG_TIPOS))
        severidade = c2.selectbox("Severidade", list(CFG.MSG_SEVERIDADES))
        titulo = st.text_input("Título", max_chars=CFG.MAX_DESC_LENGTH)
        conteudo = st.text_area("Conteúdo")
        if st.form_submit_button("PUBLICAR"):
            entry = {
                "Tipo": tipo, "Severidade": severidade,
                "Titulo": titulo.strip(), "Conteudo": conteudo.strip(), "Ativo": True,
            }
            ok, err = validate_message(entry)
            if not ok:
                st.toast(f"⚠ {err}")
            elif run_action(lambda: storage.create_message(entry), "Mensagem publicada"):
                st.rerun()

    df = storage.load_messages()
    if df.empty:
        no_data("Nenhuma mensagem.")
        return
    for _, row in df.iterrows():
        msg = row.to_dict()
        status = "🟢" if msg["Ativo"] else "⚪"
        with st.expander(f"{status} [{msg['Tipo']}] {msg['Titulo']}"):
            st.write(msg["Conteudo"])
            st.caption(f"Criada em {fmt_date_br(msg['CriadoEm'])} — lida por {len(msg['LidoPor'])} usuário(s)")
            c1, c2 = st.columns(2)
            with c1:
                label = "DESATIVAR" if msg["Ativo"] else "ATIVAR"
                if st.button(label, key=f"msg_toggle_{msg['Id']}"):
                    if run_action(lambda: storage.set_message_active(msg["Id"], not msg["Ativo"]), "Mensagem atualizada"):
                        st.rerun()
            with c2:
                if confirm_delete(f"msg_del_{msg['Id']}"):
                    if run_action(lambda: storage.delete_message(msg["Id"]), "Mensagem excluída"):
                        st.rerun()


def _tab_diagnostico() -> None:
    status = storage.config_status()
    c1, c2 = st.columns(2)
    c1.metric("Google Sheets", "Configurado" if status["gsheets"] else "Ausente")
    c2.metric("Administrador mestre", "Configurado" if status["auth"] else "Ausente")

    if st.button("TESTAR CONEXÃO", key="diag_conn"):
        result = storage.check_connection()
        if result["status"] == "ok":
            st.success(result["message"])
        elif result["status"] == "config_missing":
            st.warning(result["message"])
        else:
            st.error(result["message"])

    if st.button("VERIFICAR PLANILHAS", key="diag_ws"):
        issues = storage.worksheet_issues()
        if issues:
            for issue in issues:
                st.warning(issue)
        else:
            st.success("Todas as planilhas estão íntegras.")

    if st.button("CRIAR PLANILHAS AUSENTES", key="diag_create"):
        created: list[str] = []
        if run_action(lambda: created.extend(storage.create_missing_worksheets()), "Verificação concluída"):
            st.info(f"Criadas: {', '.join(created)}" if created else "Nenhuma planilha ausente.")

    st.markdown("#### Log de auditoria")
    try:
        audit = storage.read_table(CFG.WS_AUDIT)
    except storage.StorageError as e:
        st.error(str(e))
        return
    if audit.empty:
        no_data("Log vazio.")
    else:
        st.dataframe(audit.iloc[::-1].head(100), hide_index=True, use_container_width=True)


def render(user: dict) -> None:
    render_header("Administração", "Usuários, mensagens e diagnóstico")
    lojas = storage.load_app_data()["lojas"]
    secao = pills("Seção", ["Usuários", "Mensagens", "Diagnóstico"], key="admin_secao") or "Usuários"
    if secao == "Usuários":
        _tab_usuarios(lojas)
    elif secao == "Mensagens":
        _tab_mensagens()
    else:
        _tab_diagnostico()
