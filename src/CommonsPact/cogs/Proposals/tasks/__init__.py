from .VoteCloser import VoteCloser

__all__ = [
    "VoteCloser",
]
