"""SQLite-backed document store with CouchDB-style revisions."""

import asyncio
import hashlib
import json
from datetime import datetime
from functools import partial
from typing import List, Optional

from common.logging_config import get_logger
from mirror import config
from mirror.database import get_db_connection, init_database
from mirror.exceptions import DocumentNotFoundError, StaleRevisionError
from mirror.schemas.documents import Document
from mirror.stores import DocumentStore

logger = get_logger(__name__)


def next_revision(rev: Optional[str], body: dict) -> str:
    """
    Compute the revision following ``rev`` for a new body.

    Revisions look like ``"<generation>-<md5 of body>"``.
    """
    generation = int(rev.split("-", 1)[0]) + 1 if rev else 1
    digest = hashlib.md5(json.dumps(body, sort_keys=True).encode("utf-8")).hexdigest()
    return f"{generation}-{digest}"


class SqliteDocumentStore(DocumentStore):
    """
    DocumentStore persisted in a SQLite table.

    The sqlite3 calls block, so each one runs in the loop's default executor.
    A fresh connection is opened per call.
    """

    def __init__(self, database_path: Optional[str] = None):
        self.database_path = str(database_path or config.DATABASE_PATH)
        init_database(self.database_path)

    async def _run(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(func, *args))

    async def get(self, doc_id: str) -> Optional[Document]:
        return await self._run(self._get, doc_id)

    async def put(self, doc: Document) -> Document:
        return await self._run(self._put, doc)

    async def remove(self, doc: Document) -> None:
        await self._run(self._remove, doc)

    async def all_documents(self) -> List[Document]:
        return await self._run(self._all_documents)

    async def count(self) -> int:
        return await self._run(self._count)

    def _get(self, doc_id: str) -> Optional[Document]:
        with get_db_connection(self.database_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT doc_id, rev, body FROM documents WHERE doc_id = ?",
                (doc_id,)
            )
            row = cursor.fetchone()

        if row is None:
            logger.debug(f"Document not found: {doc_id}")
            return None

        return self._row_to_document(row)

    def _put(self, doc: Document) -> Document:
        body = doc.body()

        with get_db_connection(self.database_path) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT rev FROM documents WHERE doc_id = ?", (doc.id,))
            row = cursor.fetchone()
            current_rev = row["rev"] if row else None

            if current_rev != doc.rev:
                raise StaleRevisionError(doc.id, doc.rev, current_rev)

            new_rev = next_revision(current_rev, body)
            updated_at = datetime.utcnow().isoformat()

            if current_rev is None:
                cursor.execute(
                    """
                    INSERT INTO documents (doc_id, rev, body, updated_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    (doc.id, new_rev, json.dumps(body), updated_at)
                )
            else:
                cursor.execute(
                    """
                    UPDATE documents
                    SET rev = ?, body = ?, updated_at = ?
                    WHERE doc_id = ? AND rev = ?
                    """,
                    (new_rev, json.dumps(body), updated_at, doc.id, current_rev)
                )
            conn.commit()

        logger.debug(f"Stored document {doc.id} [rev={new_rev}]")
        return doc.with_rev(new_rev)

    def _remove(self, doc: Document) -> None:
        with get_db_connection(self.database_path) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT rev FROM documents WHERE doc_id = ?", (doc.id,))
            row = cursor.fetchone()

            if row is None:
                raise DocumentNotFoundError(f"Document {doc.id} is not stored")
            if row["rev"] != doc.rev:
                raise StaleRevisionError(doc.id, doc.rev, row["rev"])

            cursor.execute(
                "DELETE FROM documents WHERE doc_id = ? AND rev = ?",
                (doc.id, doc.rev)
            )
            conn.commit()

        logger.debug(f"Removed document {doc.id} [rev={doc.rev}]")

    def _all_documents(self) -> List[Document]:
        with get_db_connection(self.database_path) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT doc_id, rev, body FROM documents ORDER BY doc_id")
            rows = cursor.fetchall()

        return [self._row_to_document(row) for row in rows]

    def _count(self) -> int:
        with get_db_connection(self.database_path) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) FROM documents")
            return cursor.fetchone()[0]

    @staticmethod
    def _row_to_document(row) -> Document:
        data = json.loads(row["body"])
        data["_id"] = row["doc_id"]
        data["_rev"] = row["rev"]
        return Document.model_validate(data)
