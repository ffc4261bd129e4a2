from __future__ import annotations
import html as html_lib
import unicodedata
import uuid
from datetime import date, datetime

import pandas as pd

from herogrill.config import MESES_FULL


# ==============================================================================
# 4. UTILITÁRIOS
# ==============================================================================

def sanitize(text: str) -> str:
    """Escapa HTML para prevenir injeção."""
    return html_lib.escape(str(text))


def generate_id() -> str:
    """Gera ID único de 12 caracteres hex."""
    return uuid.uuid4().hex[:12]


def now_iso() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


def today_iso() -> str:
    return date.today().strftime("%Y-%m-%d")


def _fmt_number(val: float, decimals: int) -> str:
    return f"{abs(val):,.{decimals}f}".replace(",", "X").replace(".", ",").replace("X", ".")


def fmt_brl(val: float) -> str:
    """Formata valor float para padrão BRL: R$ 1.234,56 / -R$ 1.234,56"""
    if val < 0:
        return f"-R$ {_fmt_number(val, 2)}"
    return f"R$ {_fmt_number(val, 2)}"


def fmt_weight(val: float) -> str:
    """Formata peso em kg com 3 casas: 1.234,567"""
    sign = "-" if val < 0 else ""
    return f"{sign}{_fmt_number(val, 3)}"


def fmt_date_br(value) -> str:
    """Converte 'AAAA-MM-DD' (ou date) para 'DD/MM/AAAA'. Vazio retorna '-'."""
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return "-"
    if isinstance(value, (date, datetime)):
        return value.strftime("%d/%m/%Y")
    text = str(value).strip()
    if not text or text.lower() in ("nan", "nat", "none"):
        return "-"
    parts = text[:10].split("-")
    if len(parts) != 3:
        return text
    return f"{parts[2]}/{parts[1]}/{parts[0]}"


def fmt_month_year(mo: int, yr: int) -> str:
    """Retorna 'Janeiro 2025'."""
    return f"{MESES_FULL[mo]} {yr}"


def to_iso(value) -> str:
    """Normaliza date/datetime/Timestamp/str para 'AAAA-MM-DD' ('' quando vazio)."""
    if value is None or value is pd.NaT:
        return ""
    if isinstance(value, (pd.Timestamp, datetime, date)):
        return value.strftime("%Y-%m-%d")
    text = str(value).strip()
    if text.lower() in ("", "nan", "nat", "none"):
        return ""
    return text[:10]


def previous_month(year: int, month: int) -> tuple[int, int]:
    """Mês anterior, virando o ano em janeiro."""
    if month == 1:
        return year - 1, 12
    return year, month - 1


def sort_key_ptbr(text: str) -> str:
    """Chave de ordenação sem acento e sem caixa (aproxima a collation pt-BR)."""
    norm = unicodedata.normalize("NFKD", str(text))
    return "".join(c for c in norm if not unicodedata.combining(c)).casefold()


def sorted_ptbr(items) -> list[str]:
    return sorted((str(i) for i in items), key=sort_key_ptbr)
