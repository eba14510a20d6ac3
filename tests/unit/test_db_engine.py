"""Tests for the kernel database layer: engine lifecycle, session scope, rounding."""

from decimal import Decimal

import pytest
from sqlalchemy import inspect, select

from reimburse_kernel.db.engine import (
    get_engine,
    get_session,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from reimburse_kernel.db.types import round_money
from reimburse_modules._orm_registry import create_all_tables
from reimburse_modules.policy.orm import PolicyModel


@pytest.fixture
def sqlite_engine():
    engine = init_engine_from_url("sqlite:///:memory:")
    create_all_tables()
    yield engine
    reset_engine()


class TestEngineLifecycle:

    def test_uninitialized_raises(self):
        reset_engine()

        with pytest.raises(RuntimeError, match="not initialized"):
            get_engine()
        with pytest.raises(RuntimeError, match="not initialized"):
            get_session()

    def test_create_all_tables(self, sqlite_engine):
        tables = set(inspect(sqlite_engine).get_table_names())

        assert {"policies", "reimbursements", "reimbursement_items"} <= tables


class TestSessionScope:

    def test_commits_on_success(self, sqlite_engine, tenant_id):
        with session_scope() as session:
            session.add(PolicyModel(tenant_id=tenant_id, name="Travel", rules=[]))

        with session_scope() as session:
            names = session.scalars(select(PolicyModel.name)).all()

        assert names == ["Travel"]

    def test_rolls_back_on_error(self, sqlite_engine, tenant_id):
        with pytest.raises(ValueError):
            with session_scope() as session:
                session.add(PolicyModel(tenant_id=tenant_id, name="Doomed", rules=[]))
                session.flush()
                raise ValueError("abort")

        with session_scope() as session:
            assert session.scalars(select(PolicyModel)).all() == []


class TestRoundMoney:

    @pytest.mark.parametrize("value,expected", [
        ("10.555", "10.56"),
        ("10.554", "10.55"),
        ("13.7931", "13.79"),
        ("-2.005", "-2.01"),
    ])
    def test_half_up(self, value, expected):
        assert round_money(Decimal(value)) == Decimal(expected)

    def test_zero_places(self):
        assert round_money(Decimal("2.5"), 0) == Decimal("3")
