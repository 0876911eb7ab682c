from .ProposalMessageBuilder import ProposalMessageBuilder

__all__ = [
    "ProposalMessageBuilder",
]
