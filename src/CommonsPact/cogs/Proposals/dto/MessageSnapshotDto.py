from datetime import datetime
from typing import Optional

from pydantic import Field

from CommonsPact.cogs.Proposals.dto.ReactionSnapshotDto import ReactionSnapshotDto
from CommonsPact.share.BaseDto import BaseDto


class MessageSnapshotDto(BaseDto):
    """
    与平台无关的消息快照，生命周期逻辑只通过它读取消息。
    """

    id: int
    channel_id: int
    guild_id: int
    author_id: int
    author_tag: str = ""
    content: str = ""
    created_at: Optional[datetime] = None
    reactions: ReactionSnapshotDto = Field(default_factory=ReactionSnapshotDto)
