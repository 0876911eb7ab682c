from datetime import datetime

from CommonsPact.share.BaseDto import BaseDto
from CommonsPact.share.enums.ProposalStatus import ProposalStatus


class FinalizeProposalQo(BaseDto):
    """
    将投票中的提案写入终态的查询对象
    """

    guild_id: int
    vote_message_id: int
    status: ProposalStatus
    yes_votes: int
    no_votes: int
    completed_at: datetime
