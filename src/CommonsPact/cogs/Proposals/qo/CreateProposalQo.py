from datetime import datetime
from typing import Optional

from CommonsPact.cogs.Proposals.dto.WithdrawalTargetDto import WithdrawalTargetDto
from CommonsPact.share.BaseDto import BaseDto


class CreateProposalQo(BaseDto):
    """
    进入投票阶段时创建提案记录的查询对象
    """

    guild_id: int
    """服务器ID"""
    vote_message_id: int
    """新投票消息ID，作为提案主键"""
    vote_channel_id: int
    """投票频道ID"""
    original_message_id: int
    """原讨论消息ID"""
    original_channel_id: int
    """讨论频道ID"""
    proposal_type: str
    """提案类型"""
    is_withdrawal: bool = False
    """是否为撤回提案"""
    content: str
    """提案原文"""
    author_id: int
    """提案人ID"""
    author_tag: str = ""
    """提案人显示名称"""
    support_threshold: int
    """支持阈值快照"""
    start_time: datetime
    """投票开始时间"""
    end_time: datetime
    """投票截止时间"""
    target_resolution: Optional[WithdrawalTargetDto] = None
    """撤回提案的目标决议"""
