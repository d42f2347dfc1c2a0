"""Tests for the allowance and interest tickers."""

import asyncio
import pathlib
import sys
from datetime import datetime

import pytest
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlmodel import SQLModel, select

# Allow importing the familybank package
sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

from familybank import ledger, schedules
from familybank.database import enable_sqlite_foreign_keys
from familybank.models import (
    AllowanceSchedule,
    Child,
    Family,
    InterestSchedule,
    Parent,
    Transaction,
)
from familybank.tickers import AllowanceTicker, InterestTicker, Ticker, build_tickers

MONDAY = datetime(2025, 1, 20, 9, 0)


async def _setup_test_db(url: str = "sqlite+aiosqlite:///:memory:"):
    engine = enable_sqlite_foreign_keys(create_async_engine(url))
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    TestSession = async_sessionmaker(engine, expire_on_commit=False)
    async with TestSession() as session:
        family = Family(slug="tick-family")
        session.add(family)
        await session.flush()
        parent = Parent(family_id=family.id, name="Pat", email="pat@example.com", password_hash="x")
        ann = Child(family_id=family.id, first_name="Ann", password_hash="x")
        ben = Child(family_id=family.id, first_name="Ben", password_hash="x")
        session.add(parent)
        session.add(ann)
        session.add(ben)
        await session.commit()
        ids = {"parent": parent.id, "ann": ann.id, "ben": ben.id}
    return engine, TestSession, ids


async def _rows(session, child_id):
    result = await session.execute(
        select(Transaction).where(Transaction.child_id == child_id).order_by(Transaction.id)
    )
    return result.scalars().all()


async def _child(session, child_id):
    result = await session.execute(
        select(Child).where(Child.id == child_id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def _schedule(session, model, schedule_id):
    result = await session.execute(
        select(model).where(model.id == schedule_id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


def test_allowance_fires_once_and_advances():
    async def run():
        engine, TestSession, ids = await _setup_test_db()
        async with TestSession() as session:
            schedule = await schedules.create_schedule(
                session, AllowanceSchedule, ids["ann"], ids["parent"], "weekly", 5, None,
                now=datetime(2025, 1, 10), amount_cents=1500, note="Allowance",
            )
            await schedules.update_schedule_status(session, schedule, "paused")
            schedule = await schedules.update_schedule_status(session, schedule, "active", now=MONDAY)
            assert schedule.next_run_at == datetime(2025, 1, 24)

        ticker = AllowanceTicker(interval=60, session_factory=TestSession)
        assert await ticker.scan(now=datetime(2025, 1, 23, 23, 59)) == 0
        assert await ticker.scan(now=datetime(2025, 1, 24, 0, 5)) == 1
        assert await ticker.scan(now=datetime(2025, 1, 24, 0, 10)) == 0

        async with TestSession() as session:
            rows = await _rows(session, ids["ann"])
            assert [(tx.kind, tx.amount_cents, tx.schedule_id, tx.note) for tx in rows] == [
                ("allowance", 1500, schedule.id, "Allowance")
            ]
            assert (await _child(session, ids["ann"])).balance_cents == 1500
            stored = await _schedule(session, AllowanceSchedule, schedule.id)
            assert stored.next_run_at == datetime(2025, 1, 31)
            assert await schedules.list_due(session, AllowanceSchedule, datetime(2025, 1, 24, 0, 10)) == []
        await engine.dispose()

    asyncio.run(run())


def test_monthly_allowance_clamps_through_february():
    async def run():
        engine, TestSession, ids = await _setup_test_db()
        async with TestSession() as session:
            schedule = await schedules.create_schedule(
                session, AllowanceSchedule, ids["ann"], ids["parent"], "monthly", None, 31,
                now=datetime(2025, 1, 15), amount_cents=500,
            )
            assert schedule.next_run_at == datetime(2025, 1, 31)

        ticker = AllowanceTicker(interval=60, session_factory=TestSession)
        expected = [datetime(2025, 2, 28), datetime(2025, 3, 31)]
        for now, following in zip([datetime(2025, 1, 31), datetime(2025, 2, 28)], expected):
            assert await ticker.scan(now=now) == 1
            async with TestSession() as session:
                stored = await _schedule(session, AllowanceSchedule, schedule.id)
                assert stored.next_run_at == following
        async with TestSession() as session:
            assert (await _child(session, ids["ann"])).balance_cents == 1000
        await engine.dispose()

    asyncio.run(run())


def test_catch_up_is_one_firing_per_scan():
    async def run():
        engine, TestSession, ids = await _setup_test_db()
        async with TestSession() as session:
            schedule = await schedules.create_schedule(
                session, AllowanceSchedule, ids["ann"], ids["parent"], "weekly", 5, None,
                now=MONDAY, amount_cents=100,
            )
            await schedules.update_next_run_at(session, schedule, datetime(2024, 12, 6))

        ticker = AllowanceTicker(interval=60, session_factory=TestSession)
        now = datetime(2025, 1, 24, 1, 0)
        assert await ticker.scan(now=now) == 1
        async with TestSession() as session:
            stored = await _schedule(session, AllowanceSchedule, schedule.id)
            assert stored.next_run_at == datetime(2024, 12, 13)
        assert await ticker.scan(now=now) == 1
        async with TestSession() as session:
            assert (await _child(session, ids["ann"])).balance_cents == 200
        await engine.dispose()

    asyncio.run(run())


def test_paused_schedule_is_not_fired():
    async def run():
        engine, TestSession, ids = await _setup_test_db()
        async with TestSession() as session:
            schedule = await schedules.create_schedule(
                session, AllowanceSchedule, ids["ann"], ids["parent"], "weekly", 5, None,
                now=MONDAY, amount_cents=100,
            )
            await schedules.update_schedule_status(session, schedule, "paused")

        ticker = AllowanceTicker(interval=60, session_factory=TestSession)
        assert await ticker.scan(now=datetime(2025, 2, 1)) == 0
        async with TestSession() as session:
            assert await _rows(session, ids["ann"]) == []
        await engine.dispose()

    asyncio.run(run())


def test_edit_that_moves_next_run_forward_wins():
    async def run():
        engine, TestSession, ids = await _setup_test_db()
        async with TestSession() as session:
            schedule = await schedules.create_schedule(
                session, AllowanceSchedule, ids["ann"], ids["parent"], "weekly", 5, None,
                now=MONDAY, amount_cents=100,
            )

        ticker = AllowanceTicker(interval=60, session_factory=TestSession)
        now = datetime(2025, 1, 24, 6, 0)
        async with TestSession() as session:
            due = await ticker.list_due(session, now)
            assert [s.id for s in due] == [schedule.id]
        async with TestSession() as session:
            # Edited after the scan listed it but before it fired.
            await schedules.update_schedule_fields(
                session, schedule, {"day_of_week": 6}, now=datetime(2025, 1, 24, 5, 0)
            )
        async with TestSession() as session:
            assert not await ticker.execute_one(session, schedule.id, ids["ann"], now)
            assert await _rows(session, ids["ann"]) == []
        await engine.dispose()

    asyncio.run(run())


def test_failure_is_logged_and_scan_continues(caplog):
    class FlakyTicker(AllowanceTicker):
        async def execute_one(self, db, schedule_id, child_id, now):
            if child_id == self.broken_child:
                raise RuntimeError("boom")
            return await super().execute_one(db, schedule_id, child_id, now)

    async def run():
        engine, TestSession, ids = await _setup_test_db()
        async with TestSession() as session:
            for child in ("ann", "ben"):
                await schedules.create_schedule(
                    session, AllowanceSchedule, ids[child], ids["parent"], "weekly", 5, None,
                    now=MONDAY, amount_cents=100,
                )

        ticker = FlakyTicker(interval=60, session_factory=TestSession)
        ticker.broken_child = ids["ann"]
        assert await ticker.scan(now=datetime(2025, 1, 24)) == 1
        async with TestSession() as session:
            assert (await _child(session, ids["ann"])).balance_cents == 0
            assert (await _child(session, ids["ben"])).balance_cents == 100
            pending = await schedules.list_due(session, AllowanceSchedule, datetime(2025, 1, 24))
            assert [s.child_id for s in pending] == [ids["ann"]]
        await engine.dispose()

    asyncio.run(run())
    assert "failed to process schedule" in caplog.text


def test_interest_rounds_and_records_slot():
    async def run():
        engine, TestSession, ids = await _setup_test_db()
        async with TestSession() as session:
            await ledger.deposit(session, ids["ann"], ids["parent"], 10000)
            _, schedule = await schedules.set_interest(
                session, ids["ann"], ids["parent"], 1000, "monthly", None, 1,
                now=datetime(2025, 1, 15),
            )
            assert schedule.next_run_at == datetime(2025, 2, 1)

        ticker = InterestTicker(interval=60, session_factory=TestSession)
        assert await ticker.scan(now=datetime(2025, 2, 1, 5, 0)) == 1
        async with TestSession() as session:
            child = await _child(session, ids["ann"])
            assert child.balance_cents == 10083
            assert child.last_interest_at == datetime(2025, 2, 1)
            rows = await _rows(session, ids["ann"])
            assert [(tx.kind, tx.amount_cents, tx.note) for tx in rows] == [
                ("deposit", 10000, None),
                ("interest", 83, "10.00% annual rate"),
            ]
            stored = await _schedule(session, InterestSchedule, schedule.id)
            assert stored.next_run_at == datetime(2025, 3, 1)
        await engine.dispose()

    asyncio.run(run())


def test_interest_below_one_cent_is_skipped_but_advances():
    async def run():
        engine, TestSession, ids = await _setup_test_db()
        async with TestSession() as session:
            await ledger.deposit(session, ids["ann"], ids["parent"], 100)
            _, schedule = await schedules.set_interest(
                session, ids["ann"], ids["parent"], 500, "monthly", None, 1,
                now=datetime(2025, 1, 15),
            )

        ticker = InterestTicker(interval=60, session_factory=TestSession)
        assert await ticker.scan(now=datetime(2025, 2, 1)) == 1
        async with TestSession() as session:
            child = await _child(session, ids["ann"])
            assert child.balance_cents == 100
            assert child.last_interest_at is None
            assert [tx.kind for tx in await _rows(session, ids["ann"])] == ["deposit"]
            stored = await _schedule(session, InterestSchedule, schedule.id)
            assert stored.next_run_at == datetime(2025, 3, 1)
        await engine.dispose()

    asyncio.run(run())


def test_interest_not_applied_twice_in_a_slot():
    async def run():
        engine, TestSession, ids = await _setup_test_db()
        async with TestSession() as session:
            await ledger.deposit(session, ids["ann"], ids["parent"], 12000)
            _, schedule = await schedules.set_interest(
                session, ids["ann"], ids["parent"], 10000, "monthly", None, 1,
                now=datetime(2025, 1, 15),
            )
            # Accrual for this month was already recorded.
            await ledger.credit_interest(
                session, ids["ann"], ids["parent"], 1000, None, datetime(2025, 2, 1)
            )

        ticker = InterestTicker(interval=60, session_factory=TestSession)
        assert await ticker.scan(now=datetime(2025, 2, 1, 1, 0)) == 1
        async with TestSession() as session:
            child = await _child(session, ids["ann"])
            assert child.balance_cents == 13000
            assert [tx.kind for tx in await _rows(session, ids["ann"])] == ["deposit", "interest"]
            stored = await _schedule(session, InterestSchedule, schedule.id)
            assert stored.next_run_at == datetime(2025, 3, 1)

        assert await ticker.scan(now=datetime(2025, 3, 1)) == 1
        async with TestSession() as session:
            # 13000 * 10000 / 12 / 10000 = 1083.33...
            assert (await _child(session, ids["ann"])).balance_cents == 14083
        await engine.dispose()

    asyncio.run(run())


def test_interest_cadence_edit_does_not_accrue_twice_in_a_week():
    async def run():
        engine, TestSession, ids = await _setup_test_db()
        async with TestSession() as session:
            await ledger.deposit(session, ids["ann"], ids["parent"], 52000)
            _, schedule = await schedules.set_interest(
                session, ids["ann"], ids["parent"], 10000, "weekly", 5, None, now=MONDAY,
            )
            assert schedule.next_run_at == datetime(2025, 1, 24)

        ticker = InterestTicker(interval=60, session_factory=TestSession)
        assert await ticker.scan(now=datetime(2025, 1, 24, 1, 0)) == 1
        async with TestSession() as session:
            # 52000 * 10000 / 52 / 10000 = 1000
            assert (await _child(session, ids["ann"])).balance_cents == 53000
            schedule = await schedules.upsert_interest_for_child(
                session, ids["ann"], ids["parent"], "weekly", 6, None,
                now=datetime(2025, 1, 24, 2, 0),
            )
            assert schedule.next_run_at == datetime(2025, 1, 25)

        assert await ticker.scan(now=datetime(2025, 1, 25, 1, 0)) == 1
        async with TestSession() as session:
            rows = await _rows(session, ids["ann"])
            assert [tx.kind for tx in rows] == ["deposit", "interest"]
            assert (await _child(session, ids["ann"])).balance_cents == 53000
            stored = await _schedule(session, InterestSchedule, schedule.id)
            assert stored.next_run_at == datetime(2025, 2, 1)

        assert await ticker.scan(now=datetime(2025, 2, 1, 1, 0)) == 1
        async with TestSession() as session:
            rows = await _rows(session, ids["ann"])
            assert [tx.kind for tx in rows] == ["deposit", "interest", "interest"]
        await engine.dispose()

    asyncio.run(run())


def test_run_scans_immediately_and_stops(tmp_path):
    async def run():
        # A file database so the polling sessions do not share the ticker's connection.
        engine, TestSession, ids = await _setup_test_db(f"sqlite+aiosqlite:///{tmp_path / 'tick.db'}")
        async with TestSession() as session:
            schedule = await schedules.create_schedule(
                session, AllowanceSchedule, ids["ann"], ids["parent"], "weekly", 5, None,
                now=MONDAY, amount_cents=250,
            )
            await schedules.update_next_run_at(session, schedule, datetime(2000, 1, 7))

        stop = asyncio.Event()
        ticker = AllowanceTicker(interval=3600, session_factory=TestSession)
        task = asyncio.create_task(ticker.run(stop))
        for _ in range(200):
            async with TestSession() as session:
                if (await _child(session, ids["ann"])).balance_cents:
                    break
            await asyncio.sleep(0.01)
        stop.set()
        await asyncio.wait_for(task, timeout=5)
        async with TestSession() as session:
            assert (await _child(session, ids["ann"])).balance_cents == 250
        await engine.dispose()

    asyncio.run(run())


def test_ticker_base_requires_execute_one():
    with pytest.raises(TypeError):
        Ticker(interval=60)
    assert all(isinstance(t, Ticker) for t in build_tickers())
