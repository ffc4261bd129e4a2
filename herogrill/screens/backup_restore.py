from __future__ import annotations

import streamlit as st

from herogrill import backup
from herogrill.config import logger
from herogrill.screens.common import render_header, run_action
from herogrill.storage import StorageError


def _tab_backup() -> None:
    st.caption("Exporta todas as tabelas (exceto o log de auditoria) em um único arquivo JSON.")
    if st.button("GERAR BACKUP", key="backup_btn", use_container_width=True):
        try:
            st.session_state["_backup_doc"] = backup.create_backup()
        except StorageError as e:
            st.session_state.pop("_backup_doc", None)
            st.error(str(e))
    doc = st.session_state.get("_backup_doc")
    if doc:
        st.download_button(
            "⬇ BAIXAR BACKUP", doc.encode("utf-8"), backup.backup_filename(),
            "application/json", use_container_width=True, key="backup_download",
        )


def _tab_restore() -> None:
    st.warning("A restauração SUBSTITUI todos os dados atuais pelos do arquivo.")
    uploaded = st.file_uploader("Arquivo de backup (.json)", type=["json"], key="restore_file")
    if uploaded is None:
        return
    raw = uploaded.getvalue()
    try:
        tables = backup.parse_backup(raw)
    except backup.BackupError as e:
        st.error(str(e))
        logger.warning(f"Backup rejeitado: {e}")
        return

    st.markdown("#### Conteúdo do arquivo")
    st.dataframe(
        [{"Tabela": ws, "Registros": len(df)} for ws, df in tables.items()],
        hide_index=True, use_container_width=True,
    )
    confirm = st.checkbox("Entendo que os dados atuais serão substituídos", key="restore_confirm")
    if st.button("RESTAURAR", key="restore_btn", disabled=not confirm, use_container_width=True):
        counts: dict[str, int] = {}

        def _restore():
            counts.update(backup.restore_backup(raw))

        if run_action(_restore, "Backup restaurado"):
            st.success(f"{sum(counts.values())} registros restaurados em {len(counts)} tabelas.")
            st.session_state.pop("restore_confirm", None)


def render(user: dict) -> None:
    render_header("Backup", "Cópia de segurança e restauração")
    tab_b, tab_r = st.tabs(["Gerar Backup", "Restaurar"])
    with tab_b:
        _tab_backup()
    with tab_r:
        _tab_restore()
