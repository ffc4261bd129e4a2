"""Telas Streamlit, uma por módulo de navegação."""
from __future__ import annotations

from herogrill.screens import (
    admin, backup_restore, dashboard, estoque, financeiro, ledger, novo_financeiro, pedidos, saldo,
)

# Chave do módulo (CFG.MODULOS) -> função de renderização
SCREENS: dict = {
    "dashboard": dashboard.render,
    "pedidos": pedidos.render,
    "estoque": estoque.render,
    "controle043": ledger.render_043,
    "emprestimos": ledger.render_emprestimos,
    "saldo": saldo.render,
    "financeiro": financeiro.render,
    "novo_financeiro": novo_financeiro.render,
    "backup": backup_restore.render,
    "admin": admin.render,
}
