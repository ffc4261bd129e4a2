"""Backup completo em JSON e restauração (substitui todos os dados)."""
from __future__ import annotations
import json
from datetime import datetime

import pandas as pd

from herogrill import storage
from herogrill.config import CFG, WORKSHEETS, logger


class BackupError(ValueError):
    """Arquivo de backup inválido."""


# AuditLog fica fora do backup
BACKUP_TABLES: tuple = tuple(ws for ws in WORKSHEETS if ws != CFG.WS_AUDIT)


def backup_filename(now: datetime | None = None) -> str:
    now = now or datetime.now()
    return f"HERO_GRILL_BACKUP_{now.strftime('%Y%m%d')}.json"


def create_backup() -> str:
    """Lê todas as tabelas e devolve o documento JSON do backup.

    Raises:
        StorageError: alguma tabela não pôde ser lida (nenhum backup parcial).
    """
    conn = storage.get_conn()
    tabelas: dict[str, list[dict]] = {}
    for ws_name in BACKUP_TABLES:
        try:
            df = storage.read_table(ws_name, conn)
        except storage.StorageError as e:
            logger.error(f"Backup abortado em {ws_name}: {e}")
            raise storage.StorageError(f"Backup não gerado: {e}") from e
        tabelas[ws_name] = df.to_dict(orient="records")
    doc = {
        "versao": CFG.BACKUP_VERSION,
        "geradoEm": datetime.now().isoformat(timespec="seconds"),
        "origem": f"{CFG.APP_NAME} v{CFG.VERSION}",
        "tabelas": tabelas,
    }
    total = sum(len(rows) for rows in tabelas.values())
    storage.log_audit("BACKUP", "ALL", f"{len(tabelas)} tabelas, {total} registros")
    logger.info(f"Backup gerado: {total} registros")
    return json.dumps(doc, ensure_ascii=False, indent=2, default=str)


def parse_backup(raw: str | bytes) -> dict[str, pd.DataFrame]:
    """Valida o arquivo e devolve uma tabela (DataFrame) por worksheet.

    Tabelas ausentes do arquivo voltam vazias.
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise BackupError("Arquivo não está em UTF-8.") from e
    try:
        doc = json.loads(raw)
    except ValueError as e:
        raise BackupError(f"JSON inválido: {e}") from e
    if not isinstance(doc, dict) or not isinstance(doc.get("tabelas"), dict):
        raise BackupError("Arquivo não é um backup do sistema (campo 'tabelas' ausente).")
    versao = doc.get("versao")
    if not isinstance(versao, int) or versao > CFG.BACKUP_VERSION:
        raise BackupError(f"Versão de backup não suportada: {versao}")

    tables: dict[str, pd.DataFrame] = {}
    for ws_name in BACKUP_TABLES:
        rows = doc["tabelas"].get(ws_name, [])
        if not isinstance(rows, list) or not all(isinstance(r, dict) for r in rows):
            raise BackupError(f"Tabela {ws_name} com formato inválido.")
        columns = list(WORKSHEETS[ws_name])
        tables[ws_name] = pd.DataFrame(rows).reindex(columns=columns) if rows else pd.DataFrame(columns=columns)
    ignored = set(doc["tabelas"]) - set(BACKUP_TABLES)
    if ignored:
        logger.warning(f"Backup: tabelas ignoradas {sorted(ignored)}")
    return tables


def restore_backup(raw: str | bytes) -> dict[str, int]:
    """Substitui todas as tabelas pelo conteúdo do backup.

    O arquivo inteiro é validado antes da primeira gravação.

    Returns:
        Registros restaurados por tabela.

    Raises:
        BackupError: arquivo inválido; nada foi gravado.
        StorageError: falha no meio da restauração; a mensagem informa as
            tabelas já restauradas e a que falhou.
    """
    tables = parse_backup(raw)
    prepared: dict[str, pd.DataFrame] = {}
    for ws_name, df in tables.items():
        try:
            prepared[ws_name] = storage.coerce_table(ws_name, df)
        except (TypeError, ValueError) as e:
            raise BackupError(f"Tabela {ws_name} com dados inválidos: {e}") from e

    counts: dict[str, int] = {}
    for ws_name, df in prepared.items():
        try:
            storage.replace_sheet(ws_name, df, f"restauração: {len(df)} registros")
        except storage.StorageError as e:
            restored = ", ".join(counts) or "nenhuma"
            logger.error(f"Restauração interrompida em {ws_name}; restauradas: {restored}")
            raise storage.StorageError(
                f"Restauração interrompida em {ws_name} ({e}). Tabelas já restauradas: {restored}."
            ) from e
        counts[ws_name] = len(df)
    logger.info(f"Backup restaurado: {sum(counts.values())} registros em {len(counts)} tabelas")
    return counts
