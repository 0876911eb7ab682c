from .MessageSnapshotDto import MessageSnapshotDto
from .ModeratorActionDto import ModeratorActionDto
from .PendingProposalDto import PendingProposalDto
from .ProposalDto import ProposalDto
from .ProposalMatchDto import ProposalMatchDto
from .ProposalSettingsDto import (
    EmojiSettingsDto,
    ProposalSettingsDto,
    SchedulerSettingsDto,
    WithdrawalSettingsDto,
)
from .ProposalStatsDto import ProposalStatsDto
from .ProposalTypeConfigDto import ProposalTypeConfigDto
from .ReactionSnapshotDto import ReactionSnapshotDto
from .VoteOutcomeDto import VoteOutcomeDto
from .WithdrawalTargetDto import WithdrawalTargetDto

__all__ = [
    "EmojiSettingsDto",
    "MessageSnapshotDto",
    "ModeratorActionDto",
    "PendingProposalDto",
    "ProposalDto",
    "ProposalMatchDto",
    "ProposalSettingsDto",
    "ProposalStatsDto",
    "ProposalTypeConfigDto",
    "ReactionSnapshotDto",
    "SchedulerSettingsDto",
    "VoteOutcomeDto",
    "WithdrawalSettingsDto",
    "WithdrawalTargetDto",
]
