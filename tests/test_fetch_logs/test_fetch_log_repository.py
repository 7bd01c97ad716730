"""Tests for FetchLogRepository."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from buzzing.fetch_logs.repository import MAX_ERROR_LENGTH, FetchLogRepository
from buzzing.fetch_logs.schemas import FetchLog, FetchStatus


class TestAppend:
    @pytest.mark.asyncio
    async def test_success_row(self, mock_database: AsyncMock) -> None:
        mock_database.fetchval.return_value = "log-1"
        repo = FetchLogRepository(mock_database)

        log_id = await repo.append(
            FetchLog(source_name="hn", status=FetchStatus.SUCCESS, items_count=12, duration_ms=830)
        )

        assert log_id == "log-1"
        sql, *params = mock_database.fetchval.call_args[0]
        assert "INSERT INTO fetch_logs" in sql
        assert params == ["hn", "success", 12, None, 830]

    @pytest.mark.asyncio
    async def test_long_error_is_truncated(self, mock_database: AsyncMock) -> None:
        repo = FetchLogRepository(mock_database)

        await repo.append(
            FetchLog(source_name="ph", status=FetchStatus.FAILED, error_msg="x" * 5000)
        )

        params = mock_database.fetchval.call_args[0][1:]
        assert params[1] == "failed"
        assert len(params[3]) == MAX_ERROR_LENGTH


class TestRecent:
    @pytest.mark.asyncio
    async def test_filters_by_source(self, mock_database: AsyncMock) -> None:
        mock_database.fetch.return_value = [
            {
                "id": "log-1",
                "source_name": "hn",
                "status": "failed",
                "items_count": 0,
                "error_msg": "hn: topstories did not return a list",
                "duration_ms": 120,
                "created_at": datetime(2024, 5, 1, tzinfo=timezone.utc),
            }
        ]
        repo = FetchLogRepository(mock_database)

        logs = await repo.recent(source_name="hn", limit=5)

        assert logs[0].status is FetchStatus.FAILED
        assert logs[0].error_msg.startswith("hn:")
        sql, *params = mock_database.fetch.call_args[0]
        assert "WHERE source_name = $1" in sql
        assert params == ["hn", 5]

    @pytest.mark.asyncio
    async def test_all_sources(self, mock_database: AsyncMock) -> None:
        repo = FetchLogRepository(mock_database)

        assert await repo.recent(limit=10) == []
        sql, *params = mock_database.fetch.call_args[0]
        assert "WHERE" not in sql
        assert params == [10]
