from __future__ import annotations
import logging
from dataclasses import dataclass


# ==============================================================================
# 1. CONFIGURAÇÃO CENTRALIZADA
# ==============================================================================

@dataclass(frozen=True)
class Config:
    VERSION: str = "1.14.0"
    APP_NAME: str = "Hero Grill"

    # --- Planilhas (tabelas) ---
    WS_USUARIOS: str = "Usuarios"
    WS_CONFIG: str = "Configuracoes"
    WS_PEDIDOS: str = "Pedidos"
    WS_043: str = "Controle043"
    WS_EMPRESTIMOS: str = "Emprestimos"
    WS_SALDOS: str = "SaldoContas"
    WS_FINANCEIRO: str = "RegistrosFinanceiros"
    WS_CONTAS: str = "Contas"
    WS_LANCAMENTOS: str = "Lancamentos"
    WS_CONSUMO: str = "ConsumoCarnes"
    WS_AJUSTES: str = "AjustesCarnes"
    WS_MENSAGENS: str = "Mensagens"
    WS_AUDIT: str = "AuditLog"

    # --- Colunas ---
    COLS_USUARIO: tuple = ("Id", "Nome", "Usuario", "Senha", "Modulos", "Lojas", "CriadoEm")
    COLS_CONFIG: tuple = ("Categoria", "Itens")
    COLS_PEDIDO: tuple = (
        "Id", "Data", "Loja", "Produto", "Marca", "Fornecedor", "UnidadeMedida",
        "ValorUnitario", "Quantidade", "ValorTotal", "Vencimento", "Tipo",
        "Categoria", "CriadoEm",
    )
    COLS_LEDGER: tuple = ("Id", "Data", "Loja", "Tipo", "Valor", "Descricao", "CriadoEm")
    COLS_SALDO: tuple = (
        "Id", "Loja", "Ano", "Mes", "CaixaEconomica", "Cofre", "Loteria",
        "PagbankH", "PagbankD", "Investimentos", "SaldoTotal", "CriadoEm",
    )
    COLS_FINANCEIRO: tuple = (
        "Id", "Loja", "Ano", "Mes",
        "CreditoCaixa", "CreditoDelta", "CreditoPagbankH", "CreditoPagbankD",
        "CreditoIfood", "TotalReceitas",
        "DebitoCaixa", "DebitoPagbankH", "DebitoPagbankD", "DebitoLoteria",
        "TotalDespesas", "ResultadoLiquido", "CriadoEm",
    )
    COLS_CONTA: tuple = ("Id", "Nome", "Loja", "SaldoInicial", "CriadoEm")
    COLS_LANCAMENTO: tuple = (
        "Id", "Data", "DataPagamento", "Loja", "Tipo", "ContaId", "LojaDestino",
        "ContaDestinoId", "MetodoPagamento", "Produto", "Categoria", "Fornecedor",
        "Valor", "Status", "Descricao", "Classificacao", "Origem", "CriadoEm",
    )
    COLS_CONSUMO: tuple = ("Id", "Data", "Loja", "Produto", "QuantidadeConsumida", "CriadoEm")
    COLS_AJUSTE: tuple = ("Id", "Data", "Loja", "Produto", "Quantidade", "Motivo", "CriadoEm")
    COLS_MENSAGEM: tuple = (
        "Id", "Tipo", "Titulo", "Conteudo", "Severidade", "Ativo", "LidoPor", "CriadoEm",
    )
    COLS_AUDIT: tuple = ("Timestamp", "Usuario", "Acao", "Planilha", "Detalhes")

    # Contas do Saldo de Contas, na ordem do formulário
    CONTAS_SALDO: tuple = (
        ("CaixaEconomica", "Caixa Econômica"),
        ("Cofre", "Cofre"),
        ("Loteria", "Loteria"),
        ("PagbankH", "PagBank H"),
        ("PagbankD", "PagBank D"),
        ("Investimentos", "Investimentos"),
    )
    CREDITOS_FINANCEIRO: tuple = (
        ("CreditoCaixa", "Caixa"),
        ("CreditoDelta", "Delta"),
        ("CreditoPagbankH", "PagBank H"),
        ("CreditoPagbankD", "PagBank D"),
        ("CreditoIfood", "iFood"),
    )
    DEBITOS_FINANCEIRO: tuple = (
        ("DebitoCaixa", "Caixa"),
        ("DebitoPagbankH", "PagBank H"),
        ("DebitoPagbankD", "PagBank D"),
        ("DebitoLoteria", "Loteria"),
    )

    # --- Listas editáveis (Configuracoes) ---
    LISTAS: tuple = ("lojas", "produtos", "marcas", "fornecedores", "unidades", "tipos", "categorias")
    TIPOS_PADRAO: tuple = ("Fixa", "Variável")

    # --- Lançamentos ---
    TIPO_RECEITA: str = "Receita"
    TIPO_DESPESA: str = "Despesa"
    TIPO_TRANSFERENCIA: str = "Transferência"
    TIPOS_LANCAMENTO: tuple = ("Despesa", "Receita", "Transferência")
    STATUS_PAGO: str = "Pago"
    STATUS_PENDENTE: str = "Pendente"
    METODOS_PAGAMENTO: tuple = ("Boleto", "PiX", "Dinheiro", "Cartão", "Transferência bancária")
    ORIGEM_MANUAL: str = "manual"
    ORIGEM_PEDIDO: str = "pedido"
    CLASS_FIXA: tuple = ("Fixa", "Fixo")
    CLASS_VARIAVEL: str = "Variável"
    PIX_CLIENTE: str = "Pix Cliente"

    # --- Controle 043 / Empréstimos ---
    TIPO_DEBITO: str = "DEBITO"
    TIPO_CREDITO: str = "CREDITO"
    MAX_DESC_LEDGER: int = 50

    # --- Estoque ---
    CARNES: tuple = (
        "Alcatra", "Capa do filé", "Coxao mole", "Contra filé", "Coração",
        "Cupim", "Fraldinha", "Patinho", "Picanha", "Costela de Boi",
    )
    UNIDADE_PEDIDO_CARNES: str = "Peças"

    # --- Mensagens ---
    MSG_TIPOS: tuple = ("notification", "popup", "tip")
    MSG_SEVERIDADES: tuple = ("info", "warning", "alert")

    # --- Usuários ---
    MASTER_ID: str = "master-001"
    MASTER_NOME: str = "Administrador Mestre"
    MASTER_USUARIO: str = "Administrador"
    MODULOS: tuple = (
        ("dashboard", "📊 Dashboard (Visão Geral)"),
        ("pedidos", "Pedidos (Cadastro)"),
        ("estoque", "🥩 Estoque de Carnes"),
        ("config_campos", "⚙️ Config. Produtos (Campos)"),
        ("controle043", "Controle 043"),
        ("emprestimos", "💸 Controle Empréstimos"),
        ("saldo", "Saldo Contas"),
        ("financeiro", "Entradas e Saídas (Antigo)"),
        ("novo_financeiro", "Financeiro (Caixa/Lançamentos)"),
        ("config_financeiro_campos", "⚙️ Config. Contas (Financeiro)"),
        ("view_balances", "💰 Permissão: Visualizar Saldos"),
        ("backup", "Backup"),
        ("admin", "Administração (Admin)"),
    )

    # --- Limites ---
    CACHE_TTL: int = 120
    MAX_DESC_LENGTH: int = 200
    SAVE_RETRIES: int = 3
    AUDIT_MAX_ROWS: int = 500
    MESES_COMPARATIVO: int = 6
    BACKUP_VERSION: int = 11
    ANO_MINIMO: int = 2020

CFG = Config()


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("hero_grill")

MESES_PT: dict[int, str] = {
    1: "Jan", 2: "Fev", 3: "Mar", 4: "Abr", 5: "Mai", 6: "Jun",
    7: "Jul", 8: "Ago", 9: "Set", 10: "Out", 11: "Nov", 12: "Dez"
}
MESES_FULL: dict[int, str] = {
    1: "Janeiro", 2: "Fevereiro", 3: "Março", 4: "Abril",
    5: "Maio", 6: "Junho", 7: "Julho", 8: "Agosto",
    9: "Setembro", 10: "Outubro", 11: "Novembro", 12: "Dezembro"
}

# Planilha -> colunas esperadas (integridade, backup e restauração)
WORKSHEETS: dict[str, tuple] = {
    CFG.WS_USUARIOS: CFG.COLS_USUARIO,
    CFG.WS_CONFIG: CFG.COLS_CONFIG,
    CFG.WS_PEDIDOS: CFG.COLS_PEDIDO,
    CFG.WS_043: CFG.COLS_LEDGER,
    CFG.WS_EMPRESTIMOS: CFG.COLS_LEDGER,
    CFG.WS_SALDOS: CFG.COLS_SALDO,
    CFG.WS_FINANCEIRO: CFG.COLS_FINANCEIRO,
    CFG.WS_CONTAS: CFG.COLS_CONTA,
    CFG.WS_LANCAMENTOS: CFG.COLS_LANCAMENTO,
    CFG.WS_CONSUMO: CFG.COLS_CONSUMO,
    CFG.WS_AJUSTES: CFG.COLS_AJUSTE,
    CFG.WS_MENSAGENS: CFG.COLS_MENSAGEM,
    CFG.WS_AUDIT: CFG.COLS_AUDIT,
}
