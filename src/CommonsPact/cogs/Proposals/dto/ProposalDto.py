from datetime import datetime
from typing import Optional

from CommonsPact.cogs.Proposals.dto.WithdrawalTargetDto import WithdrawalTargetDto
from CommonsPact.share.BaseDto import BaseDto
from CommonsPact.share.enums.ProposalStatus import ProposalStatus

# 通过后直接任免版主、不发布决议的提案类型
MODERATOR_PROPOSAL_TYPE = "moderator"


class ProposalDto(BaseDto):
    """
    提案的数据传输对象
    """

    id: int
    guild_id: int
    vote_message_id: int
    vote_channel_id: int
    original_message_id: int
    original_channel_id: int
    proposal_type: str
    is_withdrawal: bool
    content: str
    author_id: int
    author_tag: str
    status: ProposalStatus
    support_threshold: int
    yes_votes: int
    no_votes: int
    start_time: datetime
    end_time: datetime
    completed_at: Optional[datetime] = None
    target_resolution: Optional[WithdrawalTargetDto] = None

    @property
    def is_moderator_action(self) -> bool:
        return self.proposal_type == MODERATOR_PROPOSAL_TYPE and not self.is_withdrawal
