from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import Column, DateTime, UniqueConstraint
from sqlmodel import Field

from CommonsPact.models.BaseModel import BaseModel
from CommonsPact.share.database_types import JSON_TYPE
from CommonsPact.share.enums.ProposalStatus import ProposalStatus


class Proposal(BaseModel, table=True):
    """
    提案表模型

    提案只在进入投票阶段时才会被写入，以投票消息ID作为业务主键。
    原讨论消息ID同样唯一，用于判断某条讨论消息是否已被跟踪。
    """

    __tablename__ = "proposal"  # type: ignore
    __table_args__ = (
        UniqueConstraint("guild_id", "vote_message_id", name="uq_proposal_vote_message"),
        UniqueConstraint("guild_id", "original_message_id", name="uq_proposal_original_message"),
    )

    guild_id: int = Field(index=True, description="服务器ID")
    vote_message_id: int = Field(index=True, description="投票消息ID")
    vote_channel_id: int = Field(description="投票频道ID")
    original_message_id: int = Field(index=True, description="原讨论消息ID")
    original_channel_id: int = Field(description="讨论频道ID")

    proposal_type: str = Field(index=True, description="提案类型，例如 policy")
    is_withdrawal: bool = Field(default=False, description="是否为撤回提案")
    content: str = Field(description="提案原文")
    author_id: int = Field(index=True, description="提案人的Discord ID")
    author_tag: str = Field(default="", description="提案人的显示名称")

    status: int = Field(
        default=ProposalStatus.VOTING,
        index=True,
        description="提案状态: 1-投票中, 2-已通过, 3-未通过",
    )
    support_threshold: int = Field(description="进入投票时的支持阈值快照")
    yes_votes: int = Field(default=0, description="赞成票")
    no_votes: int = Field(default=0, description="反对票")

    start_time: datetime = Field(sa_type=DateTime(timezone=False), description="投票开始时间")
    end_time: datetime = Field(
        index=True, sa_type=DateTime(timezone=False), description="投票截止时间"
    )
    completed_at: Optional[datetime] = Field(
        default=None, sa_type=DateTime(timezone=False), description="投票结束处理时间"
    )

    target_resolution: Optional[Dict[str, Any]] = Field(
        default=None,
        sa_column=Column("target_resolution", JSON_TYPE, nullable=True),
        description="撤回提案的目标决议",
    )
