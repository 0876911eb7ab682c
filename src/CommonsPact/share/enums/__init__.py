from .ProposalStatus import ProposalStatus

__all__ = [
    "ProposalStatus",
]
