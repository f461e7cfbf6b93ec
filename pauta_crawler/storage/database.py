"""
Relational store for extracted hearings.

Rows are upserted on (unit, date_iso, process_number); a conflicting write
only refreshes the descriptive columns. The store is probed once when the
run starts: if it is unreachable, or a write fails later, it is disabled for
the rest of the run and every further write is a logged no-op.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

import sqlalchemy as sa
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.exc import SQLAlchemyError

from ..exceptions import StorageError
from ..models import TargetDate

logger = logging.getLogger(__name__)

metadata = sa.MetaData()

hearing_agenda = sa.Table(
    "hearing_agenda",
    metadata,
    sa.Column("id", sa.BigInteger().with_variant(sa.Integer, "sqlite"), primary_key=True, autoincrement=True),
    sa.Column("generated_at", sa.DateTime, nullable=False),
    sa.Column("unit", sa.String(255), nullable=False),
    sa.Column("date_display", sa.String(10), nullable=False),
    sa.Column("date_iso", sa.Date, nullable=False),
    sa.Column("process_number", sa.String(64), nullable=False),
    sa.Column("session", sa.String(255)),
    sa.Column("judge", sa.String(255)),
    sa.Column("claimant", sa.String(255)),
    sa.Column("respondent", sa.String(255)),
    sa.Column("created_at", sa.DateTime, server_default=sa.func.now(), nullable=False),
    sa.UniqueConstraint("unit", "date_iso", "process_number", name="uq_hearing_agenda"),
    sa.Index("ix_hearing_agenda_date", "date_iso"),
    sa.Index("ix_hearing_agenda_unit", "unit"),
)

KEY_COLUMNS = ("unit", "date_iso", "process_number")
UPDATABLE_COLUMNS = ("generated_at", "session", "judge", "claimant", "respondent")


def build_database_url(config: Dict[str, Any]) -> Union[str, URL]:
    """
    Database URL from config: an explicit url wins over the MySQL parts.
    """
    if config.get('url'):
        return config['url']
    return URL.create(
        "mysql+pymysql",
        username=config.get('user', 'root'),
        password=config.get('password') or None,
        host=config.get('host', '127.0.0.1'),
        port=int(config.get('port', 3306)),
        database=config.get('name', 'jte'),
        query={'charset': 'utf8mb4'},
    )


class AgendaStore:
    """
    Upsert-only store backed by SQLAlchemy Core.
    """

    def __init__(self, url: Union[str, URL], chunk_size: int = 800, connect_timeout: int = 8):
        self.url = url
        self.chunk_size = chunk_size
        self.connect_timeout = connect_timeout
        self.engine: Optional[Engine] = None

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "AgendaStore":
        return cls(
            build_database_url(config),
            chunk_size=config.get('chunk_size', 800),
            connect_timeout=config.get('connect_timeout', 8),
        )

    @property
    def available(self) -> bool:
        return self.engine is not None

    def connect(self) -> bool:
        """
        Probe the database and create the schema.

        Returns:
            True if the store is usable for this run
        """
        connect_args = {}
        if make_url(self.url).get_backend_name() == 'mysql':
            connect_args['connect_timeout'] = self.connect_timeout

        try:
            engine = sa.create_engine(self.url, pool_pre_ping=True, connect_args=connect_args)
        except ModuleNotFoundError as e:
            logger.warning(f"Database driver not installed, continuing without it: {e}")
            return False

        try:
            with engine.connect() as conn:
                conn.execute(sa.text("SELECT 1"))
            metadata.create_all(engine)
        except SQLAlchemyError as e:
            logger.warning(f"Database unavailable, continuing without it: {e}")
            engine.dispose()
            return False

        self.engine = engine
        logger.info("Database connected and schema ready")
        return True

    def disable(self, reason: str) -> None:
        logger.warning(f"Disabling database store for this run: {reason}")
        if self.engine is not None:
            self.engine.dispose()
        self.engine = None

    def _to_db_row(self, row: Dict[str, Any]) -> Dict[str, Any]:
        target = TargetDate.from_display(row['date'])
        generated_at = row['generated_at']
        if isinstance(generated_at, str):
            generated_at = datetime.fromisoformat(generated_at)
        return {
            'generated_at': generated_at,
            'unit': row['unit'],
            'date_display': target.display,
            'date_iso': target.value,
            'process_number': row.get('process_number') or "",
            'session': row.get('session') or None,
            'judge': row.get('judge') or None,
            'claimant': row.get('claimant') or None,
            'respondent': row.get('respondent') or None,
        }

    def _upsert_statement(self, values: List[Dict[str, Any]]):
        dialect = self.engine.dialect.name
        if dialect == 'mysql':
            from sqlalchemy.dialects.mysql import insert
            stmt = insert(hearing_agenda).values(values)
            return stmt.on_duplicate_key_update({c: stmt.inserted[c] for c in UPDATABLE_COLUMNS})
        if dialect in ('sqlite', 'postgresql'):
            if dialect == 'sqlite':
                from sqlalchemy.dialects.sqlite import insert
            else:
                from sqlalchemy.dialects.postgresql import insert
            stmt = insert(hearing_agenda).values(values)
            return stmt.on_conflict_do_update(
                index_elements=list(KEY_COLUMNS),
                set_={c: stmt.excluded[c] for c in UPDATABLE_COLUMNS},
            )
        raise StorageError(f"Upsert not supported for dialect {dialect}")

    def upsert(self, rows: List[Dict[str, Any]]) -> int:
        """
        Insert or update sink rows.

        Rows sharing a key within one call collapse to the last one.

        Args:
            rows: Rows keyed by ROW_FIELDS

        Returns:
            Affected row count reported by the driver (0 when disabled)
        """
        if not self.available or not rows:
            return 0

        unique: Dict[tuple, Dict[str, Any]] = {}
        for row in rows:
            db_row = self._to_db_row(row)
            unique[tuple(db_row[k] for k in KEY_COLUMNS)] = db_row
        values = list(unique.values())

        total = 0
        try:
            with self.engine.begin() as conn:
                for start in range(0, len(values), self.chunk_size):
                    result = conn.execute(self._upsert_statement(values[start:start + self.chunk_size]))
                    total += max(result.rowcount or 0, 0)
        except (SQLAlchemyError, StorageError) as e:
            logger.error(f"Database write failed: {e}")
            self.disable(str(e))
            return 0

        return total

    def close(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
            self.engine = None
