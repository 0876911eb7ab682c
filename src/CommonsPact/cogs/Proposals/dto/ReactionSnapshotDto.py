from typing import Dict, List

from pydantic import Field

from CommonsPact.share.BaseDto import BaseDto


class ReactionSnapshotDto(BaseDto):
    """
    某条消息在某一时刻的反应计数快照。
    """

    counts: Dict[str, int] = Field(default_factory=dict)
    """表情 -> 反应总数 (包含 Bot 自己)"""
    me: List[str] = Field(default_factory=list)
    """Bot 自己添加过的表情"""

    def count(self, emoji: str) -> int:
        return self.counts.get(emoji, 0)

    def count_without_self(self, emoji: str) -> int:
        """去除 Bot 自己的反应后的计数，仅当 Bot 确实添加过该表情时才扣除。"""
        own = 1 if emoji in self.me else 0
        return max(0, self.count(emoji) - own)
