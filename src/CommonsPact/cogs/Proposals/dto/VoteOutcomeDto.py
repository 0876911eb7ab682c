from CommonsPact.share.BaseDto import BaseDto


class VoteOutcomeDto(BaseDto):
    """
    一次投票的最终结果。
    """

    vote_message_id: int
    passed: bool
    yes_votes: int
    no_votes: int

    @staticmethod
    def decide(yes_votes: int, no_votes: int) -> bool:
        """简单多数: 赞成严格多于反对才算通过，平票视为未通过。"""
        return yes_votes > no_votes
