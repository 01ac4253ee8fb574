"""HTML document creation for the Mili document tables.

A document is one ``documentContracts`` row plus one ``documentContentHTMLs``
row holding the HTML body, written in a single transaction to the shared
Mili MySQL database. The tables belong to the Mili application; nothing here
creates or migrates them.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import pymysql

from mili_mcp.config import ServerConfig

logger = logging.getLogger(__name__)

DOCUMENT_FORMAT_HTML = "HTML"
DOCUMENT_TYPE_HTML = 1
STATE_ACTIVE = 1

_INSERT_CONTRACT = (
    "INSERT INTO documentContracts "
    "(dcId, dcName, dcDocument, dcPages, dcType, dcState, dcDatCre, dcDatMod) "
    "VALUES (%s, %s, %s, %s, %s, %s, %s, %s)"
)
_INSERT_CONTENT = (
    "INSERT INTO documentContentHTMLs "
    "(dchId, dchContent, dcId, dchDatCre, dchDatMod, dchState, dchRoute, dchPages) "
    "VALUES (%s, %s, %s, %s, %s, %s, %s, %s)"
)

# Returns an open DB-API connection with autocommit off.
ConnectionFactory = Callable[[], Any]


class DocumentError(RuntimeError):
    """The document could not be written; nothing was committed."""


@dataclass(frozen=True)
class CreatedDocument:
    dc_id: str
    dch_id: str


class DocumentStore:
    """Writes documents through connections from *connect*.

    Use :meth:`from_config` for the MySQL database named by the ``DB_*``
    settings. One connection is opened per document and closed afterwards.
    """

    def __init__(self, connect: ConnectionFactory, *, description: str = "documents database") -> None:
        self._connect = connect
        self.description = description

    @classmethod
    def from_config(cls, config: ServerConfig) -> DocumentStore:
        def connect() -> pymysql.connections.Connection:
            return pymysql.connect(
                host=config.db_host,
                port=config.db_port,
                user=config.db_user,
                password=config.db_password,
                database=config.db_name,
                charset="utf8mb4",
                autocommit=False,
            )

        return cls(connect, description=f"{config.db_user}@{config.db_host}:{config.db_port}/{config.db_name}")

    def create_document(self, title: str, content: str, route: str, pages: int = 1) -> CreatedDocument:
        dc_id = str(uuid.uuid4())
        dch_id = str(uuid.uuid4())
        now = datetime.now()

        try:
            conn = self._connect()
        except pymysql.MySQLError as exc:
            msg = f"Cannot connect to {self.description}: {exc}"
            raise DocumentError(msg) from exc
        try:
            with conn.cursor() as cursor:
                cursor.execute(
                    _INSERT_CONTRACT,
                    (dc_id, title, DOCUMENT_FORMAT_HTML, pages, DOCUMENT_TYPE_HTML, STATE_ACTIVE, now, now),
                )
                cursor.execute(
                    _INSERT_CONTENT,
                    (dch_id, content, dc_id, now, now, STATE_ACTIVE, route, pages),
                )
            conn.commit()
        except pymysql.MySQLError as exc:
            conn.rollback()
            msg = f"Error creating document: {exc}"
            raise DocumentError(msg) from exc
        finally:
            conn.close()

        logger.info("Created document %s (%s)", dc_id, title)
        return CreatedDocument(dc_id=dc_id, dch_id=dch_id)
