from psycopg.rows import dict_row

from docflow.database.connection import get_connection
from docflow.database.models import Owner
from docflow.notification.base import BaseOwnerDirectory


class PostgresOwnerDirectory(BaseOwnerDirectory):
    """Looks owners up in the users table."""

    def find(self, owner_id: str) -> Owner | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    "SELECT id, email, username FROM users WHERE id = %s",
                    (owner_id,),
                )
                row = cur.fetchone()
        if row is None:
            return None
        return Owner(id=row["id"], email=row["email"], username=row["username"])


class StaticOwnerDirectory(BaseOwnerDirectory):
    """Fixed owner table, for local runs without a users table."""

    def __init__(self, owners: list[Owner] | None = None) -> None:
        self._owners = {owner.id: owner for owner in owners or []}

    def find(self, owner_id: str) -> Owner | None:
        return self._owners.get(owner_id)
