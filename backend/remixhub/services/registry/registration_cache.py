"""
Registration Cache

Denormalized lookup store mapping content hashes to on-chain identifiers.

Write semantics:
- One row per cid. Writes are single-statement upserts so concurrent
  writers for the same cid converge without locking.
- Supplied fields are merged with set semantics. A None value means "not
  known by this writer" and never clears a stored value.
- Defaults are fill-only: written when the stored column is NULL and left
  alone otherwise (first-writer-wins columns such as anchor_confirmed_at).

The cache is advisory. The ledger is the source of truth.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ...errors import StoreUnavailable, ValidationError
from ...models.db_models import StoryRegistrationDB
from ..hashing import normalize_hash

logger = logging.getLogger(__name__)

DEFAULT_BATCH_LIMIT = 200

# Columns a writer may supply. cid and created_at are managed here.
WRITABLE_COLUMNS = frozenset({
    "cid_hash",
    "ip_id",
    "tx_hash",
    "title",
    "anchor_tx_hash",
    "anchor_confirmed_at",
    "parent_cid",
    "parent_ip_id",
})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RegistrationCache:
    """
    Persistent key-indexed store of StoryRegistrationDB rows.

    Usage:
        cache = RegistrationCache(db)
        record = cache.upsert("Qm...", {"ip_id": "0x..."})
        db.commit()
    """

    def __init__(
        self,
        db: Session,
        batch_limit: int = DEFAULT_BATCH_LIMIT,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.db = db
        self.batch_limit = batch_limit
        self.clock = clock

    # =========================================================================
    # WRITES
    # =========================================================================

    def upsert(
        self,
        cid: str,
        fields: Optional[Mapping[str, Any]] = None,
        defaults: Optional[Mapping[str, Any]] = None,
    ) -> StoryRegistrationDB:
        """
        Create the row for cid if absent, else merge the supplied fields.

        Does not commit; the caller owns the transaction.

        Args:
            cid: Primary key
            fields: Columns to set. None values are skipped.
            defaults: Columns to set only where currently NULL.

        Returns:
            The row as stored after the write
        """
        if not cid:
            raise ValidationError("cid is required")

        values = self._clean(fields)
        fill_only = {k: v for k, v in self._clean(defaults).items() if k not in values}
        now = self.clock()

        try:
            dialect = self.db.get_bind().dialect.name
            if dialect in ("postgresql", "sqlite"):
                self._upsert_on_conflict(dialect, cid, values, fill_only, now)
            else:
                self._upsert_generic(cid, values, fill_only, now)
            self.db.flush()
            record = self._fetch(cid)
        except SQLAlchemyError as e:
            logger.error(f"Registration upsert failed for cid={cid}: {e}")
            raise StoreUnavailable(f"Registration cache write failed: {e}") from e

        if record is None:
            raise StoreUnavailable(f"Registration for cid={cid} missing after upsert")
        return record

    def _clean(self, fields: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        cleaned: Dict[str, Any] = {}
        for key, value in (fields or {}).items():
            if key not in WRITABLE_COLUMNS:
                raise ValueError(f"Unknown registration field: {key}")
            if value is None:
                continue
            cleaned[key] = value
        return cleaned

    def _upsert_on_conflict(
        self,
        dialect: str,
        cid: str,
        values: Dict[str, Any],
        fill_only: Dict[str, Any],
        now: datetime,
    ) -> None:
        insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
        table = StoryRegistrationDB.__table__

        stmt = insert(table).values(cid=cid, created_at=now, updated_at=now, **values, **fill_only)

        update_set: Dict[str, Any] = {key: stmt.excluded[key] for key in values}
        for key in fill_only:
            update_set[key] = func.coalesce(table.c[key], stmt.excluded[key])
        update_set["updated_at"] = stmt.excluded.updated_at

        stmt = stmt.on_conflict_do_update(index_elements=[table.c.cid], set_=update_set)
        self.db.execute(stmt)

    def _upsert_generic(
        self,
        cid: str,
        values: Dict[str, Any],
        fill_only: Dict[str, Any],
        now: datetime,
    ) -> None:
        """Select-then-write for dialects without ON CONFLICT."""
        for attempt in range(2):
            record = self._fetch(cid)
            if record is None:
                record = StoryRegistrationDB(cid=cid, created_at=now, **fill_only, **values)
                record.updated_at = now
                try:
                    with self.db.begin_nested():
                        self.db.add(record)
                    return
                except IntegrityError:
                    # Another writer created the row first; merge into it instead.
                    if attempt == 1:
                        raise
                    continue

            for key, value in values.items():
                setattr(record, key, value)
            for key, value in fill_only.items():
                if getattr(record, key) is None:
                    setattr(record, key, value)
            record.updated_at = now
            return

    # =========================================================================
    # READS
    # =========================================================================

    def _fetch(self, cid: str) -> Optional[StoryRegistrationDB]:
        stmt = (
            select(StoryRegistrationDB)
            .where(StoryRegistrationDB.cid == cid)
            .execution_options(populate_existing=True)
        )
        return self.db.execute(stmt).scalars().first()

    def get_by_cid(self, cid: str) -> Optional[StoryRegistrationDB]:
        """Fresh read of the row for cid, or None."""
        try:
            return self._fetch(cid)
        except SQLAlchemyError as e:
            logger.error(f"Registration read failed for cid={cid}: {e}")
            raise StoreUnavailable(f"Registration cache read failed: {e}") from e

    def get_many_by_hash(
        self, hashes: Iterable[str]
    ) -> Dict[str, Optional[StoryRegistrationDB]]:
        """
        Look up rows by cid_hash.

        Keys are lowercased and deduplicated before querying. The result
        contains every requested key, mapped to None when unknown.

        Raises:
            ValidationError: more than batch_limit distinct keys
        """
        keys = list(dict.fromkeys(normalize_hash(h) for h in hashes))
        if len(keys) > self.batch_limit:
            raise ValidationError(
                f"Too many cid hashes: {len(keys)} (max {self.batch_limit})"
            )

        result: Dict[str, Optional[StoryRegistrationDB]] = {key: None for key in keys}
        if not keys:
            return result

        stmt = (
            select(StoryRegistrationDB)
            .where(StoryRegistrationDB.cid_hash.in_(keys))
            .execution_options(populate_existing=True)
        )
        try:
            rows = self.db.execute(stmt).scalars().all()
        except SQLAlchemyError as e:
            logger.error(f"Batch registration read failed ({len(keys)} keys): {e}")
            raise StoreUnavailable(f"Registration cache read failed: {e}") from e

        for row in rows:
            key = normalize_hash(row.cid_hash)
            # Several cids never share a hash in practice; keep the first anchored one.
            current = result.get(key)
            if current is None or (current.ip_id is None and row.ip_id is not None):
                result[key] = row
        return result

    def rows_missing_hash(self, limit: int = 500):
        """Rows written without a cid_hash (repair tooling)."""
        stmt = (
            select(StoryRegistrationDB)
            .where(StoryRegistrationDB.cid_hash.is_(None))
            .limit(limit)
        )
        return self.db.execute(stmt).scalars().all()

    def rows_missing_ip_id(self, created_before: datetime, limit: int = 500):
        """Rows that never received an ipId (repair tooling)."""
        stmt = (
            select(StoryRegistrationDB)
            .where(StoryRegistrationDB.ip_id.is_(None))
            .where(StoryRegistrationDB.created_at < created_before)
            .order_by(StoryRegistrationDB.created_at)
            .limit(limit)
        )
        return self.db.execute(stmt).scalars().all()

    def release(self) -> None:
        """
        End the current read transaction.

        The next read then sees rows committed by other requests since.
        """
        if self.db.in_transaction():
            self.db.commit()
