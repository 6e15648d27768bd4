"""Tests for background jobs."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from corplegends.jobs.refresh_roster import run_refresh
from corplegends.services.roster_provider import build_fallback_roster


class TestRefreshRoster:
    async def test_refreshes_provider(self) -> None:
        provider = MagicMock()
        provider.refresh = AsyncMock(return_value=build_fallback_roster(12))

        with (
            patch("corplegends.jobs.refresh_roster.init_db", new=AsyncMock()),
            patch("corplegends.jobs.refresh_roster.get_roster_provider", return_value=provider),
        ):
            count = await run_refresh()

        assert count == 12
        provider.refresh.assert_awaited_once()

    async def test_failure_propagates(self) -> None:
        provider = MagicMock()
        provider.refresh = AsyncMock(side_effect=RuntimeError("boom"))

        with (
            patch("corplegends.jobs.refresh_roster.init_db", new=AsyncMock()),
            patch("corplegends.jobs.refresh_roster.get_roster_provider", return_value=provider),
            pytest.raises(RuntimeError, match="boom"),
        ):
            await run_refresh()
