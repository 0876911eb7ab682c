from types import SimpleNamespace

import pytest
import pytest_asyncio

from CommonsPact.cogs.Proposals.listeners.ReactionListener import ReactionListener
from CommonsPact.share.ApiScheduler import APIScheduler
from CommonsPact.share.UnitOfWork import UnitOfWork
from conftest import BOT_USER_ID, DEBATE_CHANNEL_ID, GUILD_ID, VOTE_CHANNEL_ID


def payload(
    channel_id: int, message_id: int, emoji: str = "✅", user_id: int = 7, member=None
):
    return SimpleNamespace(
        guild_id=GUILD_ID,
        channel_id=channel_id,
        message_id=message_id,
        user_id=user_id,
        emoji=emoji,
        member=member,
    )


@pytest_asyncio.fixture
async def listener(bot, logic):
    bot.lifecycle_scheduler = APIScheduler(concurrent_requests=1, name="lifecycle")
    bot.lifecycle_scheduler.start()
    yield ReactionListener(bot, SimpleNamespace(logic=logic))
    await bot.lifecycle_scheduler.stop()


class TestReactionListener:
    @pytest.mark.asyncio
    async def test_support_reaction_opens_vote(self, listener, gateway, db_handler):
        message = gateway.post(DEBATE_CHANNEL_ID, "**Policy**: Ban spam bots", reactions={"✅": 3})

        await listener.dispatch_reaction(payload(DEBATE_CHANNEL_ID, message.id))

        assert len(gateway.messages_in(VOTE_CHANNEL_ID)) == 1
        async with UnitOfWork(db_handler) as uow:
            assert await uow.proposal.is_tracked(GUILD_ID, message.id)

    @pytest.mark.asyncio
    async def test_support_below_threshold_does_nothing(self, listener, gateway):
        message = gateway.post(DEBATE_CHANNEL_ID, "**Policy**: Ban spam bots", reactions={"✅": 2})

        await listener.dispatch_reaction(payload(DEBATE_CHANNEL_ID, message.id))

        assert gateway.messages_in(VOTE_CHANNEL_ID) == []

    @pytest.mark.asyncio
    async def test_own_and_unrelated_reactions_are_ignored(self, listener, gateway):
        message = gateway.post(DEBATE_CHANNEL_ID, "**Policy**: Ban spam bots", reactions={"✅": 5})

        await listener.dispatch_reaction(
            payload(DEBATE_CHANNEL_ID, message.id, user_id=BOT_USER_ID)
        )
        await listener.dispatch_reaction(payload(DEBATE_CHANNEL_ID, message.id, emoji="🎉"))

        assert gateway.messages_in(VOTE_CHANNEL_ID) == []

    @pytest.mark.asyncio
    async def test_vote_reaction_refreshes_counts(self, listener, logic, gateway, db_handler):
        message = gateway.post(DEBATE_CHANNEL_ID, "**Policy**: Ban spam bots")
        proposal = await logic.handle_support_reaction(message, 3)
        gateway.set_reactions(VOTE_CHANNEL_ID, proposal.vote_message_id, {"✅": 3, "❌": 2})

        await listener.dispatch_reaction(
            payload(VOTE_CHANNEL_ID, proposal.vote_message_id, emoji="❌")
        )

        async with UnitOfWork(db_handler) as uow:
            stored = await uow.proposal.get_proposal(GUILD_ID, proposal.vote_message_id)
        assert (stored.yes_votes, stored.no_votes) == (2, 1)

    @pytest.mark.asyncio
    async def test_deleted_message_is_logged_not_raised(self, listener, gateway):
        await listener.dispatch_reaction(payload(DEBATE_CHANNEL_ID, 123456))

        assert gateway.messages_in(VOTE_CHANNEL_ID) == []

    @pytest.mark.asyncio
    async def test_reaction_added_by_another_bot_counts_toward_support(
        self, listener, gateway, db_handler
    ):
        message = gateway.post(DEBATE_CHANNEL_ID, "**Policy**: Ban spam bots", reactions={"✅": 3})

        await listener.on_raw_reaction_add(
            payload(DEBATE_CHANNEL_ID, message.id, user_id=8, member=SimpleNamespace(bot=True))
        )

        assert len(gateway.messages_in(VOTE_CHANNEL_ID)) == 1
        async with UnitOfWork(db_handler) as uow:
            assert await uow.proposal.is_tracked(GUILD_ID, message.id)
