"""Tests for the /monitor slash command group."""

from unittest.mock import Mock, AsyncMock

import discord
import pytest
from discord import app_commands

from domains.usage_monitor.commands import EXECUTION_ERROR, MonitorGroup
from conftest import make_interaction


@pytest.fixture
def monitor():
    return Mock(start=AsyncMock(), stop=AsyncMock(), once=AsyncMock())


@pytest.fixture
def group(monitor):
    return MonitorGroup(monitor)


def test_group_layout(group):
    assert group.name == "monitor"
    assert sorted(c.name for c in group.commands) == ["once", "start", "stop"]


@pytest.mark.asyncio
async def test_subcommands_delegate(group, monitor, mock_interaction):
    await group.get_command("start").callback(group, mock_interaction, 300)
    monitor.start.assert_awaited_once_with(mock_interaction, 300)

    await group.get_command("stop").callback(group, mock_interaction)
    monitor.stop.assert_awaited_once_with(mock_interaction)

    await group.get_command("once").callback(group, mock_interaction)
    monitor.once.assert_awaited_once_with(mock_interaction)


@pytest.mark.asyncio
async def test_on_error_replies_ephemerally(group, mock_channel):
    interaction = make_interaction(mock_channel)
    error = app_commands.CommandInvokeError(Mock(), RuntimeError("boom"))

    await group.on_error(interaction, error)

    interaction.response.send_message.assert_awaited_once_with(EXECUTION_ERROR, ephemeral=True)
    interaction.followup.send.assert_not_awaited()


@pytest.mark.asyncio
async def test_on_error_after_response_uses_followup(group, mock_channel):
    interaction = make_interaction(mock_channel)
    interaction.response.is_done.return_value = True

    await group.on_error(interaction, app_commands.AppCommandError("boom"))

    interaction.followup.send.assert_awaited_once_with(EXECUTION_ERROR, ephemeral=True)


@pytest.mark.asyncio
async def test_on_error_reply_failure_is_logged(group, mock_channel):
    interaction = make_interaction(mock_channel)
    interaction.response.send_message.side_effect = discord.HTTPException(
        Mock(status=500, reason="error"), "down"
    )

    await group.on_error(interaction, app_commands.AppCommandError("boom"))
