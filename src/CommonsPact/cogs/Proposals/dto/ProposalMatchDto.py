from CommonsPact.cogs.Proposals.dto.ProposalTypeConfigDto import ProposalTypeConfigDto
from CommonsPact.share.BaseDto import BaseDto


class ProposalMatchDto(BaseDto):
    """
    提案分类结果
    """

    proposal_type: str
    config: ProposalTypeConfigDto
    is_withdrawal: bool = False
