from datetime import datetime
from typing import Optional

from CommonsPact.share.BaseDto import BaseDto


class PendingProposalDto(BaseDto):
    """
    仍在讨论阶段、已有支持但未达到阈值的提案
    """

    message_id: int
    channel_id: int
    content: str
    author_id: int
    created_at: Optional[datetime] = None
    support_count: int
    required_support: int
    proposal_type: str
    is_withdrawal: bool
