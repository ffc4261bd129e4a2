from __future__ import annotations
from datetime import date
from pathlib import Path

import plotly.graph_objects as go
import streamlit as st

from herogrill.config import CFG, MESES_FULL, logger
from herogrill.storage import StorageError
from herogrill.utils import sanitize


# ==============================================================================
# 3. CSS
# ==============================================================================

def inject_css() -> None:
    """Injeta fonte e CSS externo."""
    st.markdown(
        '<link href="https://fonts.googleapis.com/css2?family=Inter:wght@400;600;800'
        '&display=swap" rel="stylesheet">',
        unsafe_allow_html=True,
    )
    css_path = Path(__file__).resolve().parents[2] / "style.css"
    try:
        css_text = css_path.read_text(encoding="utf-8")
        st.markdown(f"<style>{css_text}</style>", unsafe_allow_html=True)
    except FileNotFoundError:
        logger.error(f"style.css não encontrado em {css_path}")


# ==============================================================================
# 8. COMPONENTES VISUAIS
# ==============================================================================

def render_kpi(label: str, value: str, sub: str = "", tone: str = "") -> None:
    """Renderiza card KPI. tone: '' | 'up' | 'down'."""
    st.markdown(f"""
    <div class="kpi-card {tone}">
        <div class="kpi-label">{sanitize(label)}</div>
        <div class="kpi-value">{sanitize(value)}</div>
        <div class="kpi-sub">{sanitize(sub)}</div>
    </div>
    """, unsafe_allow_html=True)


def render_header(title: str, subtitle: str = "") -> None:
    st.markdown(
        f'<div class="module-title">{sanitize(title)}</div>'
        f'<div class="module-sub">{sanitize(subtitle)}</div>',
        unsafe_allow_html=True,
    )


def tone_of(value: float) -> str:
    if value > 0:
        return "up"
    if value < 0:
        return "down"
    return ""


def pills(label: str, options: list[str], key: str, default: str | None = None) -> str | None:
    """Seletor em pílulas; cai para radio em versões sem st.pills."""
    try:
        return st.pills(
            label, options, default=default or (options[0] if options else None),
            selection_mode="single", key=key, label_visibility="collapsed",
        )
    except Exception:
        return st.radio(label, options, horizontal=True, key=key, label_visibility="collapsed")


def store_filter(label: str, stores: list[str], key: str, all_label: str = "Todas") -> str | None:
    """Selectbox de loja com opção 'Todas' (retorna None)."""
    choice = st.selectbox(label, [all_label] + list(stores), key=key)
    return None if choice == all_label else choice


def month_year_inputs(key: str, default: date | None = None, allow_all: bool = False) -> tuple[int | None, int | None]:
    """Selectboxes de mês e ano. Com allow_all, 'Todos' retorna None."""
    default = default or date.today()
    anos = list(range(date.today().year + 1, CFG.ANO_MINIMO - 1, -1))
    meses = list(MESES_FULL.keys())
    c1, c2 = st.columns(2)
    if allow_all:
        mes = c1.selectbox(
            "Mês", [0] + meses, key=f"{key}_mes",
            format_func=lambda m: "Todos" if m == 0 else MESES_FULL[m],
        )
        ano = c2.selectbox(
            "Ano", [0] + anos, key=f"{key}_ano",
            format_func=lambda a: "Todos" if a == 0 else str(a),
        )
        return (mes or None), (ano or None)
    mes = c1.selectbox(
        "Mês", meses, index=default.month - 1, key=f"{key}_mes",
        format_func=lambda m: MESES_FULL[m],
    )
    ano = c2.selectbox("Ano", anos, index=anos.index(default.year) if default.year in anos else 0, key=f"{key}_ano")
    return mes, ano


def run_action(action, success: str) -> bool:
    """Executa gravação mostrando toast de sucesso ou o erro de negócio."""
    try:
        action()
    except (StorageError, ValueError) as e:
        st.toast(f"⚠ {e}")
        return False
    st.toast(f"✓ {success}")
    return True


def chart_layout(fig: go.Figure, height: int = 320) -> go.Figure:
    fig.update_layout(
        paper_bgcolor="rgba(0,0,0,0)",
        plot_bgcolor="rgba(0,0,0,0)",
        font=dict(family="Inter, sans-serif", color="#334155", size=11),
        legend=dict(
            orientation="h", yanchor="bottom", y=1.02,
            xanchor="center", x=0.5, font=dict(size=10)
        ),
        margin=dict(l=0, r=0, t=30, b=0),
        height=height,
        xaxis=dict(gridcolor="#e2e8f0", showline=False),
        yaxis=dict(gridcolor="#e2e8f0", showline=False, tickformat=",.0f"),
    )
    return fig


def plot(fig: go.Figure, height: int = 320) -> None:
    st.plotly_chart(chart_layout(fig, height), use_container_width=True, config={"displayModeBar": False})


def select_row(df_display, key: str, column_config: dict | None = None) -> int | None:
    """Tabela com seleção de uma linha; retorna a posição selecionada."""
    event = st.dataframe(
        df_display, hide_index=True, use_container_width=True,
        on_select="rerun", selection_mode="single-row", key=key,
        column_config=column_config,
    )
    rows = event.selection.rows if event is not None else []
    return rows[0] if rows else None


def confirm_delete(key: str, label: str = "EXCLUIR") -> bool:
    """Botão de exclusão com confirmação em dois cliques."""
    flag = f"_confirm_{key}"
    if st.session_state.get(flag):
        st.warning("Confirma a exclusão? Esta ação não pode ser desfeita.")
        c1, c2 = st.columns(2)
        if c1.button("SIM, EXCLUIR", key=f"{key}_yes", use_container_width=True):
            st.session_state.pop(flag, None)
            return True
        if c2.button("CANCELAR", key=f"{key}_no", use_container_width=True):
            st.session_state.pop(flag, None)
            st.rerun()
        return False
    if st.button(label, key=key):
        st.session_state[flag] = True
        st.rerun()
    return False


def money_column(label: str):
    return st.column_config.NumberColumn(label, format="R$ %.2f")


def no_data(msg: str = "Nenhum registro encontrado.") -> None:
    st.info(msg)
