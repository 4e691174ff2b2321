import uuid
from datetime import datetime
from typing import Any

from psycopg import sql
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from docflow.database.connection import get_connection
from docflow.database.filters import (
    NEEDS_REVIEW,
    NEEDS_REVIEW_CONFIDENCE,
    NEEDS_REVIEW_LABELS,
    PROCESSED_TODAY,
    start_of_today,
    total_pages,
)
from docflow.database.models import (
    ComparisonResult,
    DocumentFilter,
    DocumentPage,
    DocumentRecord,
    DocumentStats,
    DocumentStatus,
    LogEntry,
    Sentiment,
    utcnow,
)
from docflow.database.repositories.base import BaseDocumentRepository, Mutator

_COLUMNS = (
    "id",
    "owner_id",
    "original_display_name",
    "uploaded_display_name",
    "storage_key",
    "media_type",
    "size_bytes",
    "status",
    "extracted_text",
    "classification_label",
    "classification_confidence",
    "structured_data",
    "sentiment",
    "route_destination",
    "logs",
    "comparison_results",
    "created_at",
    "updated_at",
)
_SELECT = sql.SQL("SELECT {} FROM documents").format(
    sql.SQL(", ").join(sql.Identifier(column) for column in _COLUMNS)
)


class DocumentRepository(BaseDocumentRepository):
    """Database operations for the documents table."""

    def create(self, record: DocumentRecord) -> DocumentRecord:
        values = _record_to_row(record)
        query = sql.SQL("INSERT INTO documents ({}) VALUES ({})").format(
            sql.SQL(", ").join(sql.Identifier(column) for column in _COLUMNS),
            sql.SQL(", ").join(sql.Placeholder() for _ in _COLUMNS),
        )
        with get_connection() as conn:
            conn.execute(query, [values[column] for column in _COLUMNS])
            conn.commit()
        return record

    def get(self, document_id: str) -> DocumentRecord | None:
        if not _is_uuid(document_id):
            return None
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(_SELECT + sql.SQL(" WHERE id = %s"), (document_id,))
                row = cur.fetchone()
        return _row_to_record(row) if row is not None else None

    def get_many(self, document_ids: list[str], owner_id: str) -> list[DocumentRecord]:
        if not document_ids:
            return []
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    _SELECT + sql.SQL(" WHERE id::text = ANY(%s) AND owner_id = %s"),
                    (list(document_ids), owner_id),
                )
                rows = cur.fetchall()
        by_id = {str(row["id"]): _row_to_record(row) for row in rows}
        return [by_id[document_id] for document_id in document_ids if document_id in by_id]

    def atomic_update(self, document_id: str, mutator: Mutator) -> DocumentRecord | None:
        """Lock the row, apply the mutator and write it back in one transaction."""
        if not _is_uuid(document_id):
            return None
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(_SELECT + sql.SQL(" WHERE id = %s FOR UPDATE"), (document_id,))
                row = cur.fetchone()
                if row is None:
                    conn.rollback()
                    return None
                record = _row_to_record(row)
                mutator(record)
                record.updated_at = max(utcnow(), record.updated_at)
                values = _record_to_row(record)
                mutable = [c for c in _COLUMNS if c not in ("id", "owner_id", "created_at")]
                cur.execute(
                    sql.SQL("UPDATE documents SET {} WHERE id = %s").format(
                        sql.SQL(", ").join(
                            sql.SQL("{} = %s").format(sql.Identifier(column))
                            for column in mutable
                        )
                    ),
                    [*(values[column] for column in mutable), document_id],
                )
            conn.commit()
        return record

    def delete(self, document_id: str) -> bool:
        if not _is_uuid(document_id):
            return False
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM documents WHERE id = %s", (document_id,))
                deleted = cur.rowcount > 0
            conn.commit()
        return deleted

    def list(self, owner_id: str, document_filter: DocumentFilter) -> DocumentPage:
        conditions: list[sql.Composable] = [sql.SQL("owner_id = %s")]
        params: list[Any] = [owner_id]
        if document_filter.search:
            conditions.append(sql.SQL("original_display_name ILIKE %s"))
            params.append(f"%{document_filter.search}%")
        category = document_filter.category
        if category == NEEDS_REVIEW:
            conditions.append(
                sql.SQL("(classification_label = ANY(%s) OR classification_confidence < %s)")
            )
            params.extend([list(NEEDS_REVIEW_LABELS), NEEDS_REVIEW_CONFIDENCE])
        elif category == PROCESSED_TODAY:
            conditions.append(sql.SQL("created_at >= %s"))
            params.append(start_of_today())
        elif category and category != "all":
            conditions.append(sql.SQL("classification_label = %s"))
            params.append(category)

        where = sql.SQL(" WHERE ") + sql.SQL(" AND ").join(conditions)
        order = sql.SQL(" ORDER BY {} {} LIMIT %s OFFSET %s").format(
            sql.Identifier(document_filter.sort_by),
            sql.SQL("ASC" if document_filter.sort_order == "asc" else "DESC"),
        )
        offset = (document_filter.page - 1) * document_filter.limit
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(sql.SQL("SELECT COUNT(*) AS total FROM documents") + where, params)
                count_row = cur.fetchone()
                total = int(count_row["total"]) if count_row else 0
                cur.execute(_SELECT + where + order, [*params, document_filter.limit, offset])
                rows = cur.fetchall()

        return DocumentPage(
            documents=[_row_to_record(row) for row in rows],
            page=document_filter.page,
            total_pages=total_pages(total, document_filter.limit),
            total_documents=total,
        )

    def stats(self, owner_id: str) -> DocumentStats:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT
                        COUNT(*) AS total_documents,
                        COUNT(*) FILTER (
                            WHERE classification_label = ANY(%s)
                               OR classification_confidence < %s
                        ) AS needs_review,
                        COUNT(*) FILTER (WHERE created_at >= %s) AS processed_today
                    FROM documents
                    WHERE owner_id = %s
                    """,
                    (list(NEEDS_REVIEW_LABELS), NEEDS_REVIEW_CONFIDENCE, start_of_today(), owner_id),
                )
                totals = cur.fetchone()
                cur.execute(
                    """
                    SELECT classification_label, COUNT(*) AS count
                    FROM documents
                    WHERE owner_id = %s
                    GROUP BY classification_label
                    """,
                    (owner_id,),
                )
                labels = cur.fetchall()

        return DocumentStats(
            total_documents=int(totals["total_documents"]),
            needs_review=int(totals["needs_review"]),
            processed_today=int(totals["processed_today"]),
            label_breakdown={row["classification_label"]: int(row["count"]) for row in labels},
        )


def _is_uuid(value: str) -> bool:
    try:
        uuid.UUID(value)
    except (TypeError, ValueError, AttributeError):
        return False
    return True


def _record_to_row(record: DocumentRecord) -> dict[str, Any]:
    return {
        "id": record.id,
        "owner_id": record.owner_id,
        "original_display_name": record.original_display_name,
        "uploaded_display_name": record.uploaded_display_name,
        "storage_key": record.storage_key,
        "media_type": record.media_type,
        "size_bytes": record.size_bytes,
        "status": record.status.value,
        "extracted_text": record.extracted_text,
        "classification_label": record.classification_label,
        "classification_confidence": record.classification_confidence,
        "structured_data": Jsonb(record.structured_data),
        "sentiment": record.sentiment.value,
        "route_destination": record.route_destination,
        "logs": Jsonb([
            {"timestamp": entry.timestamp.isoformat(), "message": entry.message}
            for entry in record.logs
        ]),
        "comparison_results": Jsonb([
            {"target_id": r.target_id, "target_name": r.target_name, "score": r.score}
            for r in record.comparison_results
        ]),
        "created_at": record.created_at,
        "updated_at": record.updated_at,
    }


def _row_to_record(row: dict[str, Any]) -> DocumentRecord:
    return DocumentRecord(
        id=str(row["id"]),
        owner_id=row["owner_id"],
        original_display_name=row["original_display_name"],
        uploaded_display_name=row["uploaded_display_name"],
        storage_key=row["storage_key"],
        media_type=row["media_type"],
        size_bytes=row["size_bytes"],
        status=DocumentStatus(row["status"]),
        extracted_text=row["extracted_text"] or "",
        classification_label=row["classification_label"],
        classification_confidence=row["classification_confidence"],
        structured_data=dict(row["structured_data"] or {}),
        sentiment=Sentiment(row["sentiment"]),
        route_destination=row["route_destination"],
        logs=[
            LogEntry(
                timestamp=datetime.fromisoformat(entry["timestamp"]),
                message=entry["message"],
            )
            for entry in row["logs"] or []
        ],
        comparison_results=[
            ComparisonResult(
                target_id=item["target_id"],
                target_name=item["target_name"],
                score=int(item["score"]),
            )
            for item in row["comparison_results"] or []
        ],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
