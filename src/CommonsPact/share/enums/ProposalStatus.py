from enum import IntEnum


class ProposalStatus(IntEnum):
    """
    提案当前状态。

    只能单向推进: DEBATING -> VOTING -> PASSED | FAILED。
    DEBATING 阶段的提案只是一条带反应的消息，不会写入数据库。
    """

    DEBATING = 0  # 讨论中
    VOTING = 1  # 投票中
    PASSED = 2  # 已通过
    FAILED = 3  # 未通过

    @property
    def is_terminal(self) -> bool:
        return self in (ProposalStatus.PASSED, ProposalStatus.FAILED)
