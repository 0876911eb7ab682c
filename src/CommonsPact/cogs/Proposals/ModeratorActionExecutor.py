import logging
from typing import Optional

from CommonsPact.cogs.Proposals.dto.ModeratorActionDto import ModeratorActionDto
from CommonsPact.cogs.Proposals.dto.ProposalDto import ProposalDto
from CommonsPact.cogs.Proposals.dto.ProposalSettingsDto import ProposalSettingsDto
from CommonsPact.cogs.Proposals.MessageGateway import MessageGateway
from CommonsPact.cogs.Proposals.ProposalErrors import InvalidModeratorAction, RoleNotFound
from CommonsPact.share.StringUtils import MODERATOR_ACTION_PATTERN, StringUtils

logger = logging.getLogger(__name__)


class ModeratorActionExecutor:
    """
    执行已通过的版主任免提案。

    "**Add Moderator**: @用户" 授予配置中的 moderator 身份组，
    "**Remove Moderator**: @用户" 将其移除。成员已处于目标状态时不做任何修改。
    """

    def __init__(self, gateway: MessageGateway, settings: ProposalSettingsDto):
        self.gateway = gateway
        self.settings = settings

    @staticmethod
    def parse(content: str) -> Optional[ModeratorActionDto]:
        """解析提案正文，格式不正确或无法识别目标成员时返回 None。"""
        match = MODERATOR_ACTION_PATTERN.match(content.strip())
        if not match:
            return None

        target_text = match.group(2).strip()
        user_id = StringUtils.extract_user_id(target_text)
        if user_id is None:
            return None

        return ModeratorActionDto(
            action="add" if match.group(1).lower() == "add" else "remove",
            user_id=user_id,
            target_text=target_text,
        )

    @staticmethod
    def summarize(action: ModeratorActionDto) -> str:
        if action.action == "add":
            return f"Add <@{action.user_id}> as moderator"
        return f"Remove <@{action.user_id}> from moderator role"

    async def execute(self, proposal: ProposalDto) -> bool:
        """
        按提案内容授予或移除版主身份组。

        Returns:
            实际修改了身份组时返回 True；成员已处于目标状态时返回 False。

        Raises:
            InvalidModeratorAction: 提案内容无法解析。
            RoleNotFound: 未配置 moderator 身份组，或身份组已不存在。
            MemberNotFound: 目标成员不在服务器中。
            TransportFailure: 消息平台调用失败。
        """
        action = self.parse(proposal.content)
        if action is None:
            raise InvalidModeratorAction(proposal.vote_message_id)

        role_id = self.settings.moderator_role_id
        if role_id is None:
            raise RoleNotFound(None, "版主")

        has_role = await self.gateway.member_has_role(proposal.guild_id, action.user_id, role_id)
        if action.action == "add":
            if has_role:
                logger.info(f"成员 {action.user_id} 已拥有版主身份组，无需修改。")
                return False
            await self.gateway.add_role(proposal.guild_id, action.user_id, role_id)
        else:
            if not has_role:
                logger.info(f"成员 {action.user_id} 没有版主身份组，无需移除。")
                return False
            await self.gateway.remove_role(proposal.guild_id, action.user_id, role_id)

        logger.info(f"已执行版主任免 (提案 {proposal.vote_message_id}): {self.summarize(action)}")
        return True
