from __future__ import annotations

import pandas as pd

from herogrill.config import CFG


def lanc(**overrides) -> dict:
    """Lançamento completo com valores neutros."""
    row = {
        "Id": "", "Data": "2025-03-10", "DataPagamento": "", "Loja": "Centro",
        "Tipo": CFG.TIPO_DESPESA, "ContaId": "", "LojaDestino": "", "ContaDestinoId": "",
        "MetodoPagamento": "", "Produto": "", "Categoria": "", "Fornecedor": "",
        "Valor": 0.0, "Status": CFG.STATUS_PENDENTE, "Descricao": "", "Classificacao": CFG.CLASS_VARIAVEL,
        "Origem": CFG.ORIGEM_MANUAL, "CriadoEm": "",
    }
    row.update(overrides)
    return row


def frame(rows: list[dict], columns: tuple) -> pd.DataFrame:
    return pd.DataFrame(rows).reindex(columns=list(columns))


def order(**overrides) -> dict:
    row = {
        "Id": "", "Data": "2025-03-05", "Loja": "Centro", "Produto": "Picanha", "Marca": "Friboi",
        "Fornecedor": "Frigo Sul", "UnidadeMedida": "kg", "ValorUnitario": 50.0, "Quantidade": 10.0,
        "ValorTotal": 500.0, "Vencimento": "", "Tipo": "Variável", "Categoria": "Carnes", "CriadoEm": "",
    }
    row.update(overrides)
    return row
