import logging
from datetime import datetime
from typing import Any, List, Optional, Sequence

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from CommonsPact.cogs.Proposals.dto.ProposalDto import ProposalDto
from CommonsPact.cogs.Proposals.ProposalErrors import ProposalAlreadyExists, ProposalNotFound
from CommonsPact.cogs.Proposals.qo.CreateProposalQo import CreateProposalQo
from CommonsPact.cogs.Proposals.qo.FinalizeProposalQo import FinalizeProposalQo
from CommonsPact.models.Proposal import Proposal
from CommonsPact.share.enums.ProposalStatus import ProposalStatus
from CommonsPact.share.TimeUtils import TimeUtils

logger = logging.getLogger(__name__)


class ProposalService:
    """
    提案存储服务。

    所有查询与写入都以 guild_id 为作用域。创建是条件写入 (先到者胜)，
    状态相关的更新只在提案仍处于投票中时生效，保证状态不会回退。
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_proposal(self, qo: CreateProposalQo) -> ProposalDto:
        """
        创建一条投票中的提案记录。

        Raises:
            ProposalAlreadyExists: 同一服务器下投票消息或原讨论消息已被跟踪。
        """
        new_proposal = Proposal(
            guild_id=qo.guild_id,
            vote_message_id=qo.vote_message_id,
            vote_channel_id=qo.vote_channel_id,
            original_message_id=qo.original_message_id,
            original_channel_id=qo.original_channel_id,
            proposal_type=qo.proposal_type,
            is_withdrawal=qo.is_withdrawal,
            content=qo.content,
            author_id=qo.author_id,
            author_tag=qo.author_tag,
            status=ProposalStatus.VOTING,
            support_threshold=qo.support_threshold,
            yes_votes=0,
            no_votes=0,
            start_time=qo.start_time,
            end_time=qo.end_time,
            target_resolution=(
                qo.target_resolution.model_dump() if qo.target_resolution else None
            ),
        )
        self.session.add(new_proposal)
        try:
            await self.session.flush()
            await self.session.refresh(new_proposal)
        except IntegrityError:
            logger.debug(
                f"提案 (投票消息: {qo.vote_message_id}, 原消息: {qo.original_message_id}) "
                "已存在，回滚会话。"
            )
            await self.session.rollback()
            raise ProposalAlreadyExists(qo.original_message_id)

        logger.debug(f"成功创建提案 {qo.vote_message_id} (原消息: {qo.original_message_id})")
        return ProposalDto.model_validate(new_proposal)

    async def get_proposal(self, guild_id: int, vote_message_id: int) -> Optional[ProposalDto]:
        """根据投票消息ID获取提案。"""
        statement = select(Proposal).where(
            Proposal.guild_id == guild_id,
            Proposal.vote_message_id == vote_message_id,
        )
        result = await self.session.exec(statement)
        proposal = result.one_or_none()
        return ProposalDto.model_validate(proposal) if proposal else None

    async def get_by_original_message_id(
        self, guild_id: int, message_id: int
    ) -> Optional[ProposalDto]:
        """根据原讨论消息ID获取提案。"""
        statement = select(Proposal).where(
            Proposal.guild_id == guild_id,
            Proposal.original_message_id == message_id,
        )
        result = await self.session.exec(statement)
        proposal = result.one_or_none()
        return ProposalDto.model_validate(proposal) if proposal else None

    async def is_tracked(self, guild_id: int, message_id: int) -> bool:
        """判断某条消息 (讨论消息或投票消息) 是否已经对应一条提案记录。"""
        statement = select(Proposal.id).where(
            Proposal.guild_id == guild_id,
            or_(
                Proposal.vote_message_id == message_id,
                Proposal.original_message_id == message_id,
            ),
        )
        result = await self.session.exec(statement)
        return result.first() is not None

    async def update_proposal(self, guild_id: int, vote_message_id: int, **fields: Any):
        """
        更新提案的任意字段。

        Raises:
            ProposalNotFound: 记录不存在。
        """
        statement = (
            update(Proposal)
            .where(
                Proposal.guild_id == guild_id,  # type: ignore
                Proposal.vote_message_id == vote_message_id,  # type: ignore
            )
            .values(**fields, updated_at=TimeUtils.utc_now())
            .returning(Proposal.id)  # type: ignore
        )
        result = await self.session.exec(statement)  # type: ignore
        if result.scalar_one_or_none() is None:
            raise ProposalNotFound(vote_message_id)

    async def update_vote_counts(
        self, guild_id: int, vote_message_id: int, yes_votes: int, no_votes: int
    ) -> bool:
        """
        刷新票数。只对投票中的提案生效，已结束的提案票数不会再变化。

        Returns:
            是否有记录被更新。
        """
        statement = (
            update(Proposal)
            .where(
                Proposal.guild_id == guild_id,  # type: ignore
                Proposal.vote_message_id == vote_message_id,  # type: ignore
                Proposal.status == ProposalStatus.VOTING,  # type: ignore
            )
            .values(yes_votes=yes_votes, no_votes=no_votes, updated_at=TimeUtils.utc_now())
            .returning(Proposal.id)  # type: ignore
        )
        result = await self.session.exec(statement)  # type: ignore
        return result.scalar_one_or_none() is not None

    async def finalize_proposal(self, qo: FinalizeProposalQo) -> bool:
        """
        将提案写入终态 (PASSED / FAILED)。以状态为条件，只有仍在投票中的提案会被更新。

        Returns:
            本次调用是否赢得了终态写入。
        """
        if not qo.status.is_terminal:
            raise ValueError(f"{qo.status.name} 不是终态")

        statement = (
            update(Proposal)
            .where(
                Proposal.guild_id == qo.guild_id,  # type: ignore
                Proposal.vote_message_id == qo.vote_message_id,  # type: ignore
                Proposal.status == ProposalStatus.VOTING,  # type: ignore
            )
            .values(
                status=qo.status,
                yes_votes=qo.yes_votes,
                no_votes=qo.no_votes,
                completed_at=qo.completed_at,
                updated_at=TimeUtils.utc_now(),
            )
            .returning(Proposal.id)  # type: ignore
        )
        result = await self.session.exec(statement)  # type: ignore
        return result.scalar_one_or_none() is not None

    async def query_by_status(self, guild_id: int, status: ProposalStatus) -> List[ProposalDto]:
        """按状态查询提案。"""
        statement = (
            select(Proposal)
            .where(Proposal.guild_id == guild_id, Proposal.status == status)
            .order_by(Proposal.end_time)  # type: ignore
        )
        result = await self.session.exec(statement)
        return [ProposalDto.model_validate(p) for p in result.all()]

    async def query_by_type(self, guild_id: int, proposal_type: str) -> List[ProposalDto]:
        """按提案类型查询提案。"""
        statement = select(Proposal).where(
            Proposal.guild_id == guild_id, Proposal.proposal_type == proposal_type
        )
        result = await self.session.exec(statement)
        return [ProposalDto.model_validate(p) for p in result.all()]

    async def get_guild_ids_with_status(self, status: ProposalStatus) -> Sequence[int]:
        """列出存在指定状态提案的所有服务器，供定时任务按服务器逐个处理。"""
        statement = select(Proposal.guild_id).where(Proposal.status == status).distinct()
        result = await self.session.exec(statement)
        return list(result.all())

    async def get_expired_votes(self, guild_id: int, now: datetime) -> List[ProposalDto]:
        """获取投票中且截止时间已过的提案。"""
        voting = await self.query_by_status(guild_id, ProposalStatus.VOTING)
        return [p for p in voting if p.end_time <= now]
