from datetime import datetime, timedelta

import pytest

from CommonsPact.cogs.Proposals.dto.WithdrawalTargetDto import WithdrawalTargetDto
from CommonsPact.cogs.Proposals.ProposalErrors import ProposalAlreadyExists, ProposalNotFound
from CommonsPact.cogs.Proposals.qo.CreateProposalQo import CreateProposalQo
from CommonsPact.cogs.Proposals.qo.FinalizeProposalQo import FinalizeProposalQo
from CommonsPact.share.enums.ProposalStatus import ProposalStatus
from CommonsPact.share.UnitOfWork import UnitOfWork
from conftest import DEBATE_CHANNEL_ID, GUILD_ID, VOTE_CHANNEL_ID

START = datetime(2024, 1, 1, 12, 0, 0)


def build_qo(vote_message_id: int, original_message_id: int, **overrides) -> CreateProposalQo:
    fields = dict(
        guild_id=GUILD_ID,
        vote_message_id=vote_message_id,
        vote_channel_id=VOTE_CHANNEL_ID,
        original_message_id=original_message_id,
        original_channel_id=DEBATE_CHANNEL_ID,
        proposal_type="policy",
        content="**Policy**: Ban spam bots",
        author_id=42,
        author_tag="alice",
        support_threshold=3,
        start_time=START,
        end_time=START + timedelta(hours=72),
    )
    fields.update(overrides)
    return CreateProposalQo(**fields)


async def create(db_handler, qo: CreateProposalQo):
    async with UnitOfWork(db_handler) as uow:
        proposal = await uow.proposal.create_proposal(qo)
        await uow.commit()
    return proposal


async def finalize(db_handler, vote_message_id: int, status: ProposalStatus, yes=1, no=0):
    async with UnitOfWork(db_handler) as uow:
        won = await uow.proposal.finalize_proposal(
            FinalizeProposalQo(
                guild_id=GUILD_ID,
                vote_message_id=vote_message_id,
                status=status,
                yes_votes=yes,
                no_votes=no,
                completed_at=START + timedelta(hours=73),
            )
        )
        await uow.commit()
    return won


class TestProposalService:
    @pytest.mark.asyncio
    async def test_create_starts_in_voting_with_zero_counts(self, db_handler):
        proposal = await create(db_handler, build_qo(1001, 2001))

        assert proposal.id is not None
        assert proposal.status == ProposalStatus.VOTING
        assert (proposal.yes_votes, proposal.no_votes) == (0, 0)
        assert proposal.completed_at is None

    @pytest.mark.asyncio
    async def test_naive_utc_times_are_stored_and_read_back_unchanged(self, db_handler):
        await create(db_handler, build_qo(1001, 2001))
        await finalize(db_handler, 1001, ProposalStatus.PASSED)

        async with UnitOfWork(db_handler) as uow:
            stored = await uow.proposal.get_proposal(GUILD_ID, 1001)

        assert stored.start_time == START
        assert stored.end_time == START + timedelta(hours=72)
        assert stored.completed_at == START + timedelta(hours=73)
        assert stored.start_time.tzinfo is None
        assert stored.created_at.tzinfo is None

    @pytest.mark.asyncio
    async def test_is_tracked_by_vote_or_debate_message(self, db_handler):
        await create(db_handler, build_qo(1001, 2001))

        async with UnitOfWork(db_handler) as uow:
            assert await uow.proposal.is_tracked(GUILD_ID, 1001)
            assert await uow.proposal.is_tracked(GUILD_ID, 2001)
            assert not await uow.proposal.is_tracked(GUILD_ID, 3001)
            assert not await uow.proposal.is_tracked(GUILD_ID + 1, 1001)

    @pytest.mark.asyncio
    async def test_second_create_for_same_debate_message_conflicts(self, db_handler):
        await create(db_handler, build_qo(1001, 2001))

        with pytest.raises(ProposalAlreadyExists):
            await create(db_handler, build_qo(1002, 2001))

        async with UnitOfWork(db_handler) as uow:
            assert await uow.proposal.get_proposal(GUILD_ID, 1002) is None

    @pytest.mark.asyncio
    async def test_same_ids_in_another_guild_do_not_conflict(self, db_handler):
        await create(db_handler, build_qo(1001, 2001))
        other = await create(db_handler, build_qo(1001, 2001, guild_id=GUILD_ID + 1))

        assert other.guild_id == GUILD_ID + 1

    @pytest.mark.asyncio
    async def test_target_resolution_round_trips_as_dto(self, db_handler):
        target = WithdrawalTargetDto(
            resolution_id=77,
            channel_id=103,
            raw_content="**PASSED POLICY RESOLUTION**",
            extracted_original_text="Ban spam bots",
            matched_by="exact",
        )
        await create(db_handler, build_qo(1001, 2001, is_withdrawal=True, target_resolution=target))

        async with UnitOfWork(db_handler) as uow:
            stored = await uow.proposal.get_by_original_message_id(GUILD_ID, 2001)

        assert stored is not None
        assert stored.is_withdrawal is True
        assert stored.target_resolution == target

    @pytest.mark.asyncio
    async def test_update_missing_proposal_raises(self, db_handler):
        with pytest.raises(ProposalNotFound):
            async with UnitOfWork(db_handler) as uow:
                await uow.proposal.update_proposal(GUILD_ID, 404, author_tag="nobody")

    @pytest.mark.asyncio
    async def test_finalize_is_gated_on_voting(self, db_handler):
        await create(db_handler, build_qo(1001, 2001))

        assert await finalize(db_handler, 1001, ProposalStatus.PASSED, yes=6, no=2)
        assert not await finalize(db_handler, 1001, ProposalStatus.FAILED, yes=0, no=9)

        async with UnitOfWork(db_handler) as uow:
            stored = await uow.proposal.get_proposal(GUILD_ID, 1001)

        assert stored.status == ProposalStatus.PASSED
        assert (stored.yes_votes, stored.no_votes) == (6, 2)
        assert stored.completed_at == START + timedelta(hours=73)

    @pytest.mark.asyncio
    async def test_finalize_rejects_non_terminal_status(self, db_handler):
        await create(db_handler, build_qo(1001, 2001))

        with pytest.raises(ValueError):
            await finalize(db_handler, 1001, ProposalStatus.VOTING)

    @pytest.mark.asyncio
    async def test_vote_counts_frozen_after_finalize(self, db_handler):
        await create(db_handler, build_qo(1001, 2001))

        async with UnitOfWork(db_handler) as uow:
            assert await uow.proposal.update_vote_counts(GUILD_ID, 1001, 4, 1)

        await finalize(db_handler, 1001, ProposalStatus.PASSED, yes=4, no=1)

        async with UnitOfWork(db_handler) as uow:
            assert not await uow.proposal.update_vote_counts(GUILD_ID, 1001, 0, 10)
            stored = await uow.proposal.get_proposal(GUILD_ID, 1001)

        assert (stored.yes_votes, stored.no_votes) == (4, 1)

    @pytest.mark.asyncio
    async def test_expired_votes_and_queries(self, db_handler):
        await create(db_handler, build_qo(1001, 2001))
        await create(db_handler, build_qo(1002, 2002, end_time=START + timedelta(hours=1)))
        await create(db_handler, build_qo(1003, 2003, guild_id=GUILD_ID + 1))

        async with UnitOfWork(db_handler) as uow:
            expired = await uow.proposal.get_expired_votes(GUILD_ID, START + timedelta(hours=2))
            guild_ids = await uow.proposal.get_guild_ids_with_status(ProposalStatus.VOTING)
            voting = await uow.proposal.query_by_status(GUILD_ID, ProposalStatus.VOTING)
            by_type = await uow.proposal.query_by_type(GUILD_ID, "policy")

        assert [p.vote_message_id for p in expired] == [1002]
        assert sorted(guild_ids) == [GUILD_ID, GUILD_ID + 1]
        # 按截止时间升序
        assert [p.vote_message_id for p in voting] == [1002, 1001]
        assert len(by_type) == 2
