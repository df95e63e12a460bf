"""SQLite-backed storage for schema, records and view configuration."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from mdmengine.core.connection import DatabaseConnection

logger = logging.getLogger(__name__)

# Columns holding JSON documents; decoded on read, encoded on write
JSON_COLUMNS = {
    "allowed_file_types",
    "combo_spec",
    "column_order",
    "hidden_columns",
    "combo_columns",
}


def _encode(row: Dict[str, Any]) -> Dict[str, Any]:
    encoded = {}
    for key, value in row.items():
        if key in JSON_COLUMNS and value is not None:
            value = json.dumps(value)
        encoded[key] = value
    return encoded


def _decode(row: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if row is None:
        return None
    for key in JSON_COLUMNS.intersection(row):
        if row[key] is not None:
            row[key] = json.loads(row[key])
    return row


class EngineStore:
    """Row-level access to the engine database.

    Methods never commit on their own; callers compose them inside
    ``store.transaction()`` so multi-row writes are all-or-nothing.
    """

    def __init__(self, db_path: Path):
        """Open (and if needed create) the engine database at ``db_path``."""
        self.db_path = Path(db_path)
        self.conn = DatabaseConnection(self.db_path)
        self._create_tables()

    def transaction(self):
        return self.conn.transaction()

    def close(self) -> None:
        self.conn.close()

    def _create_tables(self):
        """Create the engine tables if they don't exist."""
        with self.conn.transaction():
            self.conn.execute("""
                CREATE TABLE IF NOT EXISTS data_models (
                    id TEXT PRIMARY KEY,
                    tenant TEXT NOT NULL,
                    name TEXT NOT NULL,
                    display_name TEXT NOT NULL,
                    description TEXT,
                    slug TEXT NOT NULL,
                    slug_source TEXT NOT NULL DEFAULT 'auto',
                    source_type TEXT NOT NULL DEFAULT 'INTERNAL',
                    is_active BOOLEAN NOT NULL DEFAULT TRUE,
                    created_at TIMESTAMP NOT NULL,
                    updated_at TIMESTAMP,
                    UNIQUE(tenant, name),
                    UNIQUE(tenant, slug)
                )
            """)

            self.conn.execute("""
                CREATE TABLE IF NOT EXISTS data_model_spaces (
                    data_model_id TEXT NOT NULL,
                    space_id TEXT NOT NULL,
                    PRIMARY KEY (data_model_id, space_id),
                    FOREIGN KEY (data_model_id) REFERENCES data_models(id) ON DELETE CASCADE
                )
            """)

            self.conn.execute("""
                CREATE TABLE IF NOT EXISTS attributes (
                    id TEXT PRIMARY KEY,
                    data_model_id TEXT NOT NULL,
                    code TEXT NOT NULL,
                    display_name TEXT NOT NULL,
                    description TEXT,
                    type TEXT NOT NULL,
                    is_required BOOLEAN NOT NULL DEFAULT FALSE,
                    is_unique BOOLEAN NOT NULL DEFAULT FALSE,
                    display_order INTEGER NOT NULL DEFAULT 0,
                    default_value TEXT,
                    allowed_file_types JSON,
                    max_file_size INTEGER,
                    combo_spec JSON,
                    created_at TIMESTAMP NOT NULL,
                    updated_at TIMESTAMP,
                    FOREIGN KEY (data_model_id) REFERENCES data_models(id) ON DELETE CASCADE,
                    UNIQUE(data_model_id, code)
                )
            """)

            self.conn.execute("""
                CREATE TABLE IF NOT EXISTS attribute_options (
                    id TEXT PRIMARY KEY,
                    attribute_id TEXT NOT NULL,
                    value TEXT NOT NULL,
                    label TEXT NOT NULL,
                    color TEXT,
                    display_order INTEGER NOT NULL DEFAULT 0,
                    created_at TIMESTAMP NOT NULL,
                    updated_at TIMESTAMP,
                    FOREIGN KEY (attribute_id) REFERENCES attributes(id) ON DELETE CASCADE,
                    UNIQUE(attribute_id, value)
                )
            """)

            self.conn.execute("""
                CREATE TABLE IF NOT EXISTS data_records (
                    id TEXT PRIMARY KEY,
                    data_model_id TEXT NOT NULL,
                    name TEXT,
                    created_by TEXT,
                    created_at TIMESTAMP NOT NULL,
                    updated_at TIMESTAMP,
                    FOREIGN KEY (data_model_id) REFERENCES data_models(id) ON DELETE CASCADE
                )
            """)

            self.conn.execute("""
                CREATE TABLE IF NOT EXISTS data_record_values (
                    record_id TEXT NOT NULL,
                    attribute_id TEXT NOT NULL,
                    value TEXT NOT NULL,
                    created_at TIMESTAMP NOT NULL,
                    updated_at TIMESTAMP,
                    PRIMARY KEY (record_id, attribute_id),
                    FOREIGN KEY (record_id) REFERENCES data_records(id) ON DELETE CASCADE,
                    FOREIGN KEY (attribute_id) REFERENCES attributes(id) ON DELETE CASCADE
                )
            """)

            self.conn.execute("""
                CREATE TABLE IF NOT EXISTS view_configs (
                    id TEXT PRIMARY KEY,
                    data_model_id TEXT NOT NULL,
                    owner TEXT,
                    name TEXT NOT NULL,
                    column_order JSON NOT NULL,
                    hidden_columns JSON NOT NULL,
                    combo_columns JSON NOT NULL,
                    created_at TIMESTAMP NOT NULL,
                    updated_at TIMESTAMP,
                    FOREIGN KEY (data_model_id) REFERENCES data_models(id) ON DELETE CASCADE
                )
            """)

            # Indexes for common queries
            self.conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_attributes_model
                ON attributes(data_model_id, display_order)
            """)

            self.conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_records_model
                ON data_records(data_model_id)
            """)

            self.conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_values_attribute
                ON data_record_values(attribute_id, value)
            """)

            self.conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_views_model
                ON view_configs(data_model_id, owner)
            """)

    # Generic helpers; table and column names never come from callers
    def _insert(self, table: str, row: Dict[str, Any]) -> None:
        row = _encode(row)
        columns = ", ".join(row)
        placeholders = ", ".join("?" for _ in row)
        self.conn.execute(
            f"INSERT INTO {table} ({columns}) VALUES ({placeholders})",
            list(row.values()),
        )

    def _update(self, table: str, row_id: str, fields: Dict[str, Any]) -> int:
        if not fields:
            return 0
        fields = _encode(fields)
        assignments = ", ".join(f"{column} = ?" for column in fields)
        cursor = self.conn.execute(
            f"UPDATE {table} SET {assignments} WHERE id = ?",
            [*fields.values(), row_id],
        )
        return cursor.rowcount

    def _delete(self, table: str, row_id: str) -> int:
        cursor = self.conn.execute(f"DELETE FROM {table} WHERE id = ?", (row_id,))
        return cursor.rowcount

    def _get(self, table: str, row_id: str) -> Optional[Dict[str, Any]]:
        return _decode(self.conn.fetchone(f"SELECT * FROM {table} WHERE id = ?", (row_id,)))

    # Data model operations
    def insert_data_model(self, row: Dict[str, Any]) -> None:
        self._insert("data_models", row)

    def get_data_model(self, model_id: str) -> Optional[Dict[str, Any]]:
        return self._get("data_models", model_id)

    def find_data_model(self, tenant: str, column: str, value: str) -> Optional[Dict[str, Any]]:
        """Look up a data model by ``name`` or ``slug`` within a tenant."""
        if column not in ("name", "slug"):
            raise ValueError(f"Cannot look up data models by '{column}'")
        return self.conn.fetchone(
            f"SELECT * FROM data_models WHERE tenant = ? AND {column} = ?",
            (tenant, value),
        )

    def list_data_models(
        self, tenant: str, space_ids: Optional[Iterable[str]] = None
    ) -> List[Dict[str, Any]]:
        """List data models of a tenant, optionally only those linked to ``space_ids``."""
        if space_ids is None:
            return self.conn.fetchall(
                "SELECT * FROM data_models WHERE tenant = ? ORDER BY name, id",
                (tenant,),
            )
        spaces = list(space_ids)
        if not spaces:
            return []
        placeholders = ", ".join("?" for _ in spaces)
        return self.conn.fetchall(
            f"""
            SELECT DISTINCT m.* FROM data_models m
            JOIN data_model_spaces s ON s.data_model_id = m.id
            WHERE m.tenant = ? AND s.space_id IN ({placeholders})
            ORDER BY m.name, m.id
            """,
            [tenant, *spaces],
        )

    def update_data_model(self, model_id: str, fields: Dict[str, Any]) -> int:
        return self._update("data_models", model_id, fields)

    def delete_data_model(self, model_id: str) -> int:
        return self._delete("data_models", model_id)

    # Space link operations
    def get_spaces(self, model_id: str) -> List[str]:
        rows = self.conn.fetchall(
            "SELECT space_id FROM data_model_spaces WHERE data_model_id = ? ORDER BY space_id",
            (model_id,),
        )
        return [row["space_id"] for row in rows]

    def link_spaces(self, model_id: str, space_ids: Iterable[str]) -> None:
        self.conn.executemany(
            "INSERT OR IGNORE INTO data_model_spaces (data_model_id, space_id) VALUES (?, ?)",
            [(model_id, space_id) for space_id in space_ids],
        )

    def unlink_spaces(self, model_id: str, space_ids: Iterable[str]) -> None:
        self.conn.executemany(
            "DELETE FROM data_model_spaces WHERE data_model_id = ? AND space_id = ?",
            [(model_id, space_id) for space_id in space_ids],
        )

    # Attribute operations
    def insert_attribute(self, row: Dict[str, Any]) -> None:
        self._insert("attributes", row)

    def get_attribute(self, attribute_id: str) -> Optional[Dict[str, Any]]:
        return self._get("attributes", attribute_id)

    def list_attributes(self, model_id: str) -> List[Dict[str, Any]]:
        """Attributes of a model ordered by display_order, ties broken by id."""
        rows = self.conn.fetchall(
            "SELECT * FROM attributes WHERE data_model_id = ? ORDER BY display_order, id",
            (model_id,),
        )
        return [_decode(row) for row in rows]

    def next_display_order(self, model_id: str) -> int:
        row = self.conn.fetchone(
            "SELECT MAX(display_order) AS max_order FROM attributes WHERE data_model_id = ?",
            (model_id,),
        )
        if not row or row["max_order"] is None:
            return 0
        return row["max_order"] + 1

    def update_attribute(self, attribute_id: str, fields: Dict[str, Any]) -> int:
        return self._update("attributes", attribute_id, fields)

    def delete_attribute(self, attribute_id: str) -> int:
        return self._delete("attributes", attribute_id)

    # Option operations
    def list_options(self, attribute_ids: List[str]) -> List[Dict[str, Any]]:
        if not attribute_ids:
            return []
        placeholders = ", ".join("?" for _ in attribute_ids)
        return self.conn.fetchall(
            f"""
            SELECT * FROM attribute_options
            WHERE attribute_id IN ({placeholders})
            ORDER BY display_order, id
            """,
            attribute_ids,
        )

    def replace_options(self, attribute_id: str, rows: List[Dict[str, Any]]) -> None:
        self.conn.execute(
            "DELETE FROM attribute_options WHERE attribute_id = ?", (attribute_id,)
        )
        for row in rows:
            self._insert("attribute_options", row)

    # Record operations
    def insert_record(self, row: Dict[str, Any]) -> None:
        self._insert("data_records", row)

    def get_record(self, record_id: str) -> Optional[Dict[str, Any]]:
        return self._get("data_records", record_id)

    def list_records(
        self, model_id: str, limit: Optional[int] = None, offset: int = 0
    ) -> List[Dict[str, Any]]:
        query = "SELECT * FROM data_records WHERE data_model_id = ? ORDER BY created_at, id"
        params: List[Any] = [model_id]
        if limit is not None:
            query += " LIMIT ? OFFSET ?"
            params.extend([limit, offset])
        return self.conn.fetchall(query, params)

    def count_records(self, model_id: str) -> int:
        row = self.conn.fetchone(
            "SELECT COUNT(*) AS n FROM data_records WHERE data_model_id = ?", (model_id,)
        )
        return row["n"] if row else 0

    def update_record(self, record_id: str, fields: Dict[str, Any]) -> int:
        return self._update("data_records", record_id, fields)

    def delete_record(self, record_id: str) -> int:
        return self._delete("data_records", record_id)

    # Value operations
    def get_values(self, record_ids: List[str]) -> Dict[str, Dict[str, str]]:
        """Stored values keyed by record id, then attribute id."""
        values: Dict[str, Dict[str, str]] = {record_id: {} for record_id in record_ids}
        if not record_ids:
            return values
        placeholders = ", ".join("?" for _ in record_ids)
        rows = self.conn.fetchall(
            f"""
            SELECT record_id, attribute_id, value FROM data_record_values
            WHERE record_id IN ({placeholders})
            """,
            record_ids,
        )
        for row in rows:
            values[row["record_id"]][row["attribute_id"]] = row["value"]
        return values

    def upsert_value(self, cell: Dict[str, Any]) -> None:
        """Insert or overwrite one cell given as a dumped DataRecordValue."""
        self.conn.execute(
            """
            INSERT INTO data_record_values (record_id, attribute_id, value, created_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(record_id, attribute_id)
            DO UPDATE SET value = excluded.value, updated_at = excluded.created_at
            """,
            (cell["record_id"], cell["attribute_id"], cell["value"], cell["created_at"]),
        )

    def delete_value(self, record_id: str, attribute_id: str) -> None:
        self.conn.execute(
            "DELETE FROM data_record_values WHERE record_id = ? AND attribute_id = ?",
            (record_id, attribute_id),
        )

    def delete_values_for_attribute(self, attribute_id: str) -> int:
        cursor = self.conn.execute(
            "DELETE FROM data_record_values WHERE attribute_id = ?", (attribute_id,)
        )
        return cursor.rowcount

    def value_taken(
        self, attribute_id: str, value: str, exclude_record_id: Optional[str] = None
    ) -> bool:
        """Whether another record already stores ``value`` for ``attribute_id``."""
        row = self.conn.fetchone(
            """
            SELECT 1 FROM data_record_values
            WHERE attribute_id = ? AND value = ? AND record_id IS NOT ?
            LIMIT 1
            """,
            (attribute_id, value, exclude_record_id),
        )
        return row is not None

    def has_duplicate_values(self, attribute_id: str) -> bool:
        row = self.conn.fetchone(
            """
            SELECT 1 FROM data_record_values WHERE attribute_id = ?
            GROUP BY value HAVING COUNT(*) > 1 LIMIT 1
            """,
            (attribute_id,),
        )
        return row is not None

    # View configuration operations
    def insert_view(self, row: Dict[str, Any]) -> None:
        self._insert("view_configs", row)

    def get_view(self, view_id: str) -> Optional[Dict[str, Any]]:
        return self._get("view_configs", view_id)

    def list_views(self, model_id: str, owner: Optional[str] = None) -> List[Dict[str, Any]]:
        query = "SELECT * FROM view_configs WHERE data_model_id = ?"
        params: List[Any] = [model_id]
        if owner is not None:
            query += " AND owner = ?"
            params.append(owner)
        query += " ORDER BY created_at, id"
        return [_decode(row) for row in self.conn.fetchall(query, params)]

    def update_view(self, view_id: str, fields: Dict[str, Any]) -> int:
        return self._update("view_configs", view_id, fields)

    def delete_view(self, view_id: str) -> int:
        return self._delete("view_configs", view_id)

    def scrub_attribute_from_views(self, model_id: str, attribute_id: str, now) -> int:
        """Drop an attribute id from every view of a model; returns views touched."""
        touched = 0
        for view in self.list_views(model_id):
            changes = {}
            for column in ("column_order", "hidden_columns", "combo_columns"):
                ids = view[column] or []
                if attribute_id in ids:
                    changes[column] = [i for i in ids if i != attribute_id]
            if changes:
                changes["updated_at"] = now
                self.update_view(view["id"], changes)
                touched += 1
        if touched:
            logger.debug(f"Removed attribute {attribute_id} from {touched} view(s)")
        return touched
