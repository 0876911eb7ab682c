class ProposalLifecycleError(Exception):
    """提案生命周期中所有可预期错误的基类。"""


class ConfigurationMissing(ProposalLifecycleError):
    """配置中的目标频道不存在或不可访问。"""

    def __init__(self, channel_id: int, purpose: str = ""):
        self.channel_id = channel_id
        self.purpose = purpose
        super().__init__(f"找不到{purpose}频道 {channel_id}")


class WithdrawalTargetNotFound(ProposalLifecycleError):
    """撤回提案找不到可撤回的决议。"""

    def __init__(self, message_id: int):
        self.message_id = message_id
        super().__init__(f"撤回提案 {message_id} 未找到匹配的决议")


class StoreConflict(ProposalLifecycleError):
    """条件写入失败，意味着其他流程已经处理了这条记录，可以安全丢弃。"""


class ProposalAlreadyExists(StoreConflict):
    def __init__(self, message_id: int):
        self.message_id = message_id
        super().__init__(f"提案 {message_id} 已存在")


class ProposalNotFound(StoreConflict):
    def __init__(self, message_id: int):
        self.message_id = message_id
        super().__init__(f"提案 {message_id} 不存在")


class TransportFailure(ProposalLifecycleError):
    """消息平台的发送、编辑或拉取失败。"""

    def __init__(self, action: str, original: Exception | None = None):
        self.action = action
        self.original = original
        detail = f": {original}" if original else ""
        super().__init__(f"消息平台操作失败 ({action}){detail}")


class MemberNotFound(ProposalLifecycleError):
    """服务器中找不到目标成员。"""

    def __init__(self, user_id: int, guild_id: int | None = None):
        self.user_id = user_id
        self.guild_id = guild_id
        super().__init__(f"在服务器 {guild_id} 中找不到成员 {user_id}")


class RoleNotFound(ProposalLifecycleError):
    """配置中的身份组未设置，或在服务器中不存在。"""

    def __init__(self, role_id: int | None, role_key: str = ""):
        self.role_id = role_id
        self.role_key = role_key
        if role_id is None:
            super().__init__(f"未配置{role_key}身份组")
        else:
            super().__init__(f"找不到{role_key}身份组 {role_id}")


class InvalidModeratorAction(ProposalLifecycleError):
    """版主任免提案的内容无法解析出操作或目标成员。"""

    def __init__(self, message_id: int):
        self.message_id = message_id
        super().__init__(f"提案 {message_id} 不是有效的版主任免格式")
