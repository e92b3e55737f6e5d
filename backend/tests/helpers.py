"""
Query helpers for assertions that look past the service API.
"""

from sqlalchemy import func, select

from railbook.db.transaction import TransactionCoordinator


async def count_rows(coordinator: TransactionCoordinator, model) -> int:
    async with coordinator.reader() as ledger:
        result = await ledger.session.execute(select(func.count()).select_from(model))
        return result.scalar_one()


async def fetch(coordinator: TransactionCoordinator, reservation_id: int):
    async with coordinator.reader() as ledger:
        return await ledger.get_reservation(reservation_id)
