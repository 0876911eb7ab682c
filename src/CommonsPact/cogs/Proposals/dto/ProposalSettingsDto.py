from typing import Any, Dict, Optional

from pydantic import Field

from CommonsPact.cogs.Proposals.dto.ProposalTypeConfigDto import ProposalTypeConfigDto
from CommonsPact.share.BaseDto import BaseDto


class EmojiSettingsDto(BaseDto):
    support: str = "✅"
    yes: str = "✅"
    no: str = "❌"


class SchedulerSettingsDto(BaseDto):
    check_interval_seconds: float = Field(default=60, alias="checkIntervalSeconds", gt=0)
    initial_delay_seconds: float = Field(default=5, alias="initialDelaySeconds", ge=0)


class WithdrawalSettingsDto(BaseDto):
    lookback_limit: int = Field(default=100, alias="lookbackLimit", ge=1)
    keyword_overlap_ratio: float = Field(default=0.6, alias="keywordOverlapRatio", gt=0, le=1)
    min_keyword_length: int = Field(default=4, alias="minKeywordLength", ge=1)


class ProposalSettingsDto(BaseDto):
    """
    提案模块的全部静态配置，启动时从 bot.config 校验生成，之后只读。
    """

    emojis: EmojiSettingsDto = Field(default_factory=EmojiSettingsDto)
    scheduler: SchedulerSettingsDto = Field(default_factory=SchedulerSettingsDto)
    withdrawal: WithdrawalSettingsDto = Field(default_factory=WithdrawalSettingsDto)
    proposal_types: Dict[str, ProposalTypeConfigDto] = Field(
        default_factory=dict, alias="proposalTypes"
    )
    roles: Dict[str, int] = Field(default_factory=dict)
    """身份组键名到身份组ID的映射，例如 {"moderator": 123}"""

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "ProposalSettingsDto":
        """从 config.json 的字典内容构造配置对象。缺失的分组使用默认值。"""
        return cls.model_validate(
            {
                key: config[key]
                for key in ("emojis", "scheduler", "withdrawal", "proposalTypes", "roles")
                if key in config
            }
        )

    def is_debate_channel(self, channel_id: int) -> bool:
        return any(c.debate_channel_id == channel_id for c in self.proposal_types.values())

    def is_vote_channel(self, channel_id: int) -> bool:
        return any(c.vote_channel_id == channel_id for c in self.proposal_types.values())

    @property
    def moderator_role_id(self) -> Optional[int]:
        return self.roles.get("moderator")
