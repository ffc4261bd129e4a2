"""Folha de pedido de carnes para impressão (PDF)."""
from __future__ import annotations
from io import BytesIO

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from herogrill.config import CFG
from herogrill.engine import order_sheet_totals
from herogrill.utils import fmt_date_br, fmt_weight


def _draw_header(c, page_width, y, loja: str, dia: str):
    c.setFont("Helvetica-Bold", 16)
    c.drawCentredString(page_width / 2, y, f"{CFG.APP_NAME.upper()} — PEDIDO DE CARNES")
    y -= 20

    c.setFont("Helvetica", 10)
    c.drawCentredString(page_width / 2, y, f"Loja: {loja}    Data: {fmt_date_br(dia)}")
    y -= 14

    c.line(40, y, page_width - 40, y)
    y -= 22
    return y


def meat_order_pdf(loja: str, dia, quantidades: dict[str, float], estoque: dict[str, float] | None = None) -> BytesIO:
    """Gera o PDF com os itens de quantidade > 0, total de itens e peso total."""
    estoque = estoque or {}
    buffer = BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4)
    w, height = A4

    y = _draw_header(c, w, height - 50, loja, dia)

    c.setFont("Helvetica-Bold", 10)
    c.drawString(50, y, "Produto")
    c.drawRightString(330, y, "Estoque Atual")
    c.drawRightString(440, y, "Pedido (kg)")
    c.drawString(460, y, "Unidade")
    y -= 6
    c.line(40, y, w - 40, y)
    y -= 16

    c.setFont("Helvetica", 10)
    for produto, qtd in quantidades.items():
        if qtd <= 0:
            continue
        if y < 80:
            c.showPage()
            y = height - 50
            c.setFont("Helvetica", 10)
        c.drawString(50, y, produto)
        c.drawRightString(330, y, fmt_weight(estoque.get(produto, 0.0)))
        c.drawRightString(440, y, fmt_weight(qtd))
        c.drawString(460, y, CFG.UNIDADE_PEDIDO_CARNES)
        y -= 18

    itens, peso = order_sheet_totals(quantidades)
    y -= 4
    c.line(40, y, w - 40, y)
    y -= 18
    c.setFont("Helvetica-Bold", 11)
    c.drawString(50, y, f"Total de itens: {itens}")
    c.drawRightString(440, y, f"Peso total: {fmt_weight(peso)} kg")

    y -= 60
    c.setFont("Helvetica", 9)
    c.line(50, y, 250, y)
    c.drawString(50, y - 12, "Responsável")

    c.showPage()
    c.save()
    buffer.seek(0)
    return buffer
