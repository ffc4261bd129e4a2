"""Hero Grill — painel de gestão (pedidos, financeiro, estoque, saldos)."""

from herogrill.config import CFG

__version__ = CFG.VERSION
