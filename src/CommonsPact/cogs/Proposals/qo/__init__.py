from .CreateProposalQo import CreateProposalQo
from .FinalizeProposalQo import FinalizeProposalQo

__all__ = [
    "CreateProposalQo",
    "FinalizeProposalQo",
]
