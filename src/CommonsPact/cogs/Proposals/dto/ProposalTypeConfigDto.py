from typing import List

from pydantic import Field

from CommonsPact.share.BaseDto import BaseDto


class ProposalTypeConfigDto(BaseDto):
    """
    单个提案类型的配置，对应 config.json 中 proposalTypes 下的一项。
    """

    debate_channel_id: int = Field(alias="debateChannelId")
    """讨论频道ID"""
    vote_channel_id: int = Field(alias="voteChannelId")
    """投票频道ID"""
    resolutions_channel_id: int = Field(alias="resolutionsChannelId")
    """决议频道ID"""
    support_threshold: int = Field(alias="supportThreshold", ge=1)
    """进入投票所需的支持反应数"""
    vote_duration_hours: float = Field(alias="voteDurationHours", gt=0)
    """投票持续小时数"""
    formats: List[str] = Field(default_factory=list)
    """允许的开头标签，例如 ["Policy"]"""
