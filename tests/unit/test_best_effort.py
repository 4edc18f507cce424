"""Unit tests for best-effort side effects (tutorhub/resilience/best_effort.py)"""
import pytest
from unittest.mock import AsyncMock, Mock, patch

from tutorhub.resilience.best_effort import run_best_effort


@pytest.mark.asyncio
async def test_returns_sync_result():
    """Test a plain callable's result is returned"""
    assert await run_best_effort(lambda: 42) == 42


@pytest.mark.asyncio
async def test_awaits_coroutine_function():
    """Test async callables are awaited"""
    effect = AsyncMock(return_value="sent")
    assert await run_best_effort(effect, operation="review_email") == "sent"
    effect.assert_awaited_once()


@pytest.mark.asyncio
async def test_awaits_awaitable():
    """Test a bare awaitable is accepted"""
    async def send():
        return "ok"

    assert await run_best_effort(send()) == "ok"


@pytest.mark.asyncio
async def test_failure_is_logged_and_ignored(caplog):
    """Test failures return None and are recorded"""
    effect = Mock(side_effect=ConnectionError("smtp down"))

    with patch("tutorhub.resilience.best_effort.record_side_effect_failure") as mock_record:
        result = await run_best_effort(effect, operation="signup_email")

    assert result is None
    mock_record.assert_called_once_with("signup_email")
    assert "signup_email failed" in caplog.text
