from typing import Dict

from pydantic import Field

from CommonsPact.share.BaseDto import BaseDto


class ProposalStatsDto(BaseDto):
    """
    提案统计信息
    """

    total: int = 0
    voting: int = 0
    passed: int = 0
    failed: int = 0
    by_type: Dict[str, int] = Field(default_factory=dict)
