"""
Store error translation

Turns driver-level failures into StoreUnavailable so callers only ever see
the treasury error taxonomy. Domain errors raised inside the block pass
through untouched.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import aiosqlite

from adapters.db.sqlite_adapter import TransactionCommitError
from core.errors import StoreUnavailable, TreasuryError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def store_errors(operation: str, **context: Any) -> AsyncIterator[None]:
    """Map aiosqlite / commit failures to StoreUnavailable

    Args:
        operation: Operation name for the log line and error message
        **context: Extra log context (request_id, entry_id, ...)

    Raises:
        StoreUnavailable: outcome_unknown=True when COMMIT failed,
            False when the write was rolled back

    Example:
    ```python
    async with store_errors("ledger.append", entry_id=entry.entry_id):
        async with adapter.transaction() as conn:
            await conn.execute("INSERT INTO ...")
    ```
    """
    try:
        yield
    except TreasuryError:
        raise
    except TransactionCommitError as e:
        logger.error(
            f"{operation}: commit failed, outcome unknown: {e}",
            extra={"operation": operation, **context},
        )
        raise StoreUnavailable(
            f"{operation}: commit failed, re-read to confirm the outcome",
            outcome_unknown=True,
        ) from e
    except aiosqlite.Error as e:
        logger.error(
            f"{operation}: store error: {e}",
            extra={"operation": operation, **context},
        )
        raise StoreUnavailable(f"{operation}: {e}") from e
