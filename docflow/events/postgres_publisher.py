from typing import Any

from psycopg.types.json import Jsonb

from docflow.database.connection import get_connection
from docflow.events.base import BaseEventPublisher

CHANNEL = "document_events"


class PostgresEventPublisher(BaseEventPublisher):
    """Appends events to the document_events outbox and notifies listeners.

    The NOTIFY payload is the outbox row id; listeners read the full snapshot
    from the row. Row ids increase with insertion, so ordering by id gives
    per-document mutation order.
    """

    def publish(self, event_name: str, payload: dict[str, Any]) -> None:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO document_events (document_id, event_name, payload)
                    VALUES (%s, %s, %s)
                    RETURNING id
                    """,
                    (str(payload["id"]), event_name, Jsonb(payload)),
                )
                row = cur.fetchone()
                if row is None:
                    raise RuntimeError("document_events insert returned no id")
                cur.execute("SELECT pg_notify(%s, %s)", (CHANNEL, str(row[0])))
            conn.commit()
