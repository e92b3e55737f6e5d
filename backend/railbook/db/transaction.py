"""
Transaction coordinator for allocation and cancellation.

CONCURRENCY STRATEGY: Single writer per pool + database transaction
===================================================================

Problem:
  Booking is read-then-write: count CNF occupancy, decide a tier, insert.
  Two requests that both read CNF=62 would both insert as CNF -> 64/63.
  Cancellation has the same shape: find the oldest RAC, promote it.

Solution:
  1. Every write scope acquires one asyncio.Lock per pool, so allocation
     and cancellation run one at a time inside this process.
  2. Inside the lock the scope opens a database transaction at the
     configured isolation level (SERIALIZABLE on PostgreSQL), so a second
     API process cannot interleave either; conflicts surface as aborts.
  3. Commit on normal exit, rollback on any exception.

  Read-only availability queries use `reader()` and never wait for the
  lock; they see the last committed state.

  There is no retry here. A serialization failure or I/O error becomes
  TransactionAborted and the caller decides whether to try again.
"""

import asyncio
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from railbook.core.exceptions import DOMAIN_OUTCOMES, TransactionAborted
from railbook.core.logging import get_logger
from railbook.core.metrics import record_transaction_abort, transaction_latency
from railbook.db.ledger import LedgerGateway

logger = get_logger(__name__)


class TransactionCoordinator:
    def __init__(
        self,
        sessionmaker: async_sessionmaker[AsyncSession],
        isolation_level: Optional[str] = None,
    ):
        self._sessionmaker = sessionmaker
        self._isolation_level = isolation_level
        self._write_lock = asyncio.Lock()

    @asynccontextmanager
    async def transaction(self, operation: str, **context) -> AsyncIterator[LedgerGateway]:
        """
        Atomic read-decide-write scope.

        Domain outcomes (DuplicateBooking, CapacityExhausted, NotFound) are
        rolled back and re-raised as-is. Anything else is rolled back and
        raised as TransactionAborted; the original error is chained, logged
        with `operation` and `context`, and never shown to the caller.
        """
        start = time.perf_counter()
        async with self._write_lock:
            async with self._sessionmaker() as session:
                try:
                    if self._isolation_level:
                        await session.connection(
                            execution_options={"isolation_level": self._isolation_level}
                        )
                    yield LedgerGateway(session)
                    await session.commit()
                except DOMAIN_OUTCOMES:
                    await session.rollback()
                    raise
                except Exception as e:
                    await session.rollback()
                    logger.error(
                        "transaction_aborted",
                        operation=operation,
                        error_type=type(e).__name__,
                        error=str(e),
                        **context,
                    )
                    record_transaction_abort(operation)
                    raise TransactionAborted(operation) from e
                finally:
                    transaction_latency.labels(operation=operation).observe(
                        time.perf_counter() - start
                    )

    @asynccontextmanager
    async def reader(self) -> AsyncIterator[LedgerGateway]:
        """Read-only scope outside the writer lock."""
        async with self._sessionmaker() as session:
            yield LedgerGateway(session)
