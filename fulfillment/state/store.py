"""Document store for fulfillment records on top of Redis.

Layout:
    {table}:{id}                        JSON document
    {table}:index:{field}:{value}       sorted set of ids scored by created_at
    {table}:unique:{field}:{value}      id owning a unique value
"""

from enum import Enum
from typing import Any, Awaitable, Callable, TypeVar

from redis.asyncio.client import Pipeline

from fulfillment.errors import NotFoundError, PreconditionFailedError
from fulfillment.models.base import Record
from fulfillment.state.manager import StateManager
from fulfillment.utils.logging import get_logger

logger = get_logger(__name__)

R = TypeVar("R", bound=Record)
T = TypeVar("T")


def index_value(value: Any) -> str:
    """Normalize a field value for use inside a key."""
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


def record_key(table: str, record_id: str) -> str:
    return f"{table}:{record_id}"


def index_key(table: str, field: str, value: Any) -> str:
    return f"{table}:index:{field}:{index_value(value)}"


def unique_key(table: str, field: str, value: Any) -> str:
    return f"{table}:unique:{field}:{index_value(value)}"


class Transaction:
    """
    One attempt of an atomic unit of work.

    Reads WATCH their keys so the values used by guards are the values at
    commit time. Writes are only queued; ``commit`` sends them inside
    MULTI/EXEC together with index maintenance.
    """

    def __init__(self, pipe: Pipeline):
        self.pipe = pipe
        self._snapshots: dict[str, Record] = {}
        self._writes: list[tuple[str, Record]] = []

    async def get(self, model: type[R], record_id: str) -> R | None:
        """Read a record and watch it for concurrent changes."""
        key = record_key(model.table, record_id)
        await self.pipe.watch(key)
        raw = await self.pipe.get(key)

        if raw is None:
            return None

        record = model.model_validate_json(raw)
        self._snapshots[key] = record.model_copy(deep=True)
        return record

    async def require(self, model: type[R], record_id: str, entity: str) -> R:
        """Read a record that must exist."""
        record = await self.get(model, record_id)
        if record is None:
            raise NotFoundError(entity, record_id)
        return record

    async def find_unique(self, model: type[Record], field: str, value: Any) -> str | None:
        """Return the id holding a unique value, watching the claim."""
        key = unique_key(model.table, field, value)
        await self.pipe.watch(key)
        return await self.pipe.get(key)

    async def insert(self, record: Record) -> None:
        """Queue a new record after checking its unique fields are free."""
        for field in record.unique_fields:
            value = getattr(record, field)
            if value is None:
                continue
            owner = await self.find_unique(type(record), field, value)
            if owner is not None and owner != record.id:
                raise PreconditionFailedError(
                    f"{type(record).__name__} with {field} '{value}' already exists"
                )
        self._writes.append(("put", record))

    def put(self, record: Record) -> None:
        """Queue an updated record read earlier in this transaction."""
        self._writes.append(("put", record))

    def delete(self, record: Record) -> None:
        """Queue removal of a record read earlier in this transaction."""
        self._writes.append(("delete", record))

    def commit(self) -> None:
        """Switch to MULTI and queue every buffered write."""
        self.pipe.multi()
        for op, record in self._writes:
            if op == "put":
                self._queue_put(record)
            else:
                self._queue_delete(record)

    def _queue_put(self, record: Record) -> None:
        table = record.table
        previous = self._snapshots.get(record_key(table, record.id))

        self.pipe.set(record_key(table, record.id), record.model_dump_json())

        for field in record.indexes:
            value = getattr(record, field)
            if previous is not None:
                old_value = getattr(previous, field)
                if index_value(old_value) != index_value(value):
                    self.pipe.zrem(index_key(table, field, old_value), record.id)
            self.pipe.zadd(index_key(table, field, value), {record.id: record.created_at})

        for field in record.unique_fields:
            value = getattr(record, field)
            if previous is not None:
                old_value = getattr(previous, field)
                if old_value is not None and old_value != value:
                    self.pipe.delete(unique_key(table, field, old_value))
            if value is not None:
                self.pipe.set(unique_key(table, field, value), record.id)

    def _queue_delete(self, record: Record) -> None:
        table = record.table
        self.pipe.delete(record_key(table, record.id))
        for field in record.indexes:
            self.pipe.zrem(index_key(table, field, getattr(record, field)), record.id)
        for field in record.unique_fields:
            value = getattr(record, field)
            if value is not None:
                self.pipe.delete(unique_key(table, field, value))


class RecordStore:
    """Get/insert/patch/delete and indexed lookups over stored records."""

    def __init__(self, state_manager: StateManager):
        self.state = state_manager

    async def transaction(self, func: Callable[[Transaction], Awaitable[T]]) -> T:
        """Run ``func`` atomically, retrying it on concurrent modification."""

        async def attempt(pipe: Pipeline) -> T:
            txn = Transaction(pipe)
            result = await func(txn)
            txn.commit()
            return result

        return await self.state.run_transaction(attempt)

    async def get(self, model: type[R], record_id: str) -> R | None:
        raw = await self.state.get(record_key(model.table, record_id))
        if raw is None:
            return None
        return model.model_validate_json(raw)

    async def get_many(self, model: type[R], record_ids: list[str]) -> list[R]:
        """Fetch records by id, skipping ids that no longer exist."""
        raws = await self.state.mget([record_key(model.table, rid) for rid in record_ids])
        return [model.model_validate_json(raw) for raw in raws if raw is not None]

    async def insert(self, record: R) -> R:
        async def op(txn: Transaction) -> R:
            await txn.insert(record)
            return record

        await self.transaction(op)
        logger.debug("record_inserted", table=record.table, record_id=record.id)
        return record

    async def patch(self, model: type[R], record_id: str, **fields: Any) -> R:
        """Update fields of an existing record, revalidating the result."""

        async def op(txn: Transaction) -> R:
            current = await txn.require(model, record_id, model.__name__.lower())
            updated = model.model_validate({**current.model_dump(), **fields})
            txn.put(updated)
            return updated

        return await self.transaction(op)

    async def delete(self, model: type[R], record_id: str) -> bool:
        async def op(txn: Transaction) -> bool:
            current = await txn.get(model, record_id)
            if current is None:
                return False
            txn.delete(current)
            return True

        return await self.transaction(op)

    async def find_unique(self, model: type[R], field: str, value: Any) -> R | None:
        record_id = await self.state.get(unique_key(model.table, field, value))
        if record_id is None:
            return None
        return await self.get(model, record_id)

    async def query_ids(
        self,
        model: type[Record],
        field: str,
        value: Any,
        newest_first: bool = True,
    ) -> list[str]:
        return await self.state.zrange(index_key(model.table, field, value), desc=newest_first)

    async def query(
        self,
        model: type[R],
        field: str,
        value: Any,
        offset: int = 0,
        limit: int | None = None,
        newest_first: bool = True,
    ) -> list[R]:
        """Records whose indexed ``field`` equals ``value``, ordered by creation."""
        if limit == 0:
            return []
        end = -1 if limit is None else offset + limit - 1
        record_ids = await self.state.zrange(
            index_key(model.table, field, value), offset, end, desc=newest_first
        )
        return await self.get_many(model, record_ids)
