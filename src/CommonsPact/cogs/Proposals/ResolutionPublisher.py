import logging

from CommonsPact.cogs.Proposals.dto.ProposalDto import ProposalDto
from CommonsPact.cogs.Proposals.dto.ProposalSettingsDto import ProposalSettingsDto
from CommonsPact.cogs.Proposals.dto.ProposalTypeConfigDto import ProposalTypeConfigDto
from CommonsPact.cogs.Proposals.MessageGateway import MessageGateway
from CommonsPact.cogs.Proposals.ProposalErrors import (
    ConfigurationMissing,
    ProposalLifecycleError,
    TransportFailure,
)
from CommonsPact.cogs.Proposals.views.ProposalMessageBuilder import ProposalMessageBuilder

logger = logging.getLogger(__name__)


class ResolutionPublisher:
    """
    发布已通过提案的永久记录，以及执行撤回提案。
    """

    def __init__(self, gateway: MessageGateway, settings: ProposalSettingsDto):
        self.gateway = gateway
        self.settings = settings

    def _type_config(self, proposal: ProposalDto) -> ProposalTypeConfigDto:
        config = self.settings.proposal_types.get(proposal.proposal_type)
        if config is None:
            raise ProposalLifecycleError(f"提案类型 '{proposal.proposal_type}' 已不在配置中")
        return config

    async def publish_resolution(self, proposal: ProposalDto) -> int:
        """
        将决议发送到该类型的决议频道。

        Returns:
            决议消息ID。

        Raises:
            ConfigurationMissing: 决议频道不存在。
            TransportFailure: 发送失败。
        """
        config = self._type_config(proposal)
        if not await self.gateway.channel_exists(config.resolutions_channel_id):
            raise ConfigurationMissing(config.resolutions_channel_id, "决议")

        content = ProposalMessageBuilder.build_resolution(proposal, self.settings.emojis)
        message = await self.gateway.send_message(config.resolutions_channel_id, content)
        logger.info(
            f"{proposal.proposal_type} 决议已发布到 {config.resolutions_channel_id} (消息: {message.id})"
        )
        return message.id

    async def execute_withdrawal(self, proposal: ProposalDto) -> int:
        """
        删除被撤回的决议消息，并在决议频道发布撤回公告。
        删除失败只记录日志，撤回公告仍然会发布。

        Returns:
            撤回公告的消息ID。
        """
        target = proposal.target_resolution
        if target is None:
            raise ProposalLifecycleError(f"撤回提案 {proposal.vote_message_id} 没有目标决议")

        try:
            await self.gateway.delete_message(target.channel_id, target.resolution_id)
            logger.info(f"已删除被撤回的决议消息 {target.resolution_id}")
        except (ConfigurationMissing, TransportFailure) as e:
            logger.warning(f"无法删除被撤回的决议消息 {target.resolution_id}: {e}")

        config = self._type_config(proposal)
        if not await self.gateway.channel_exists(config.resolutions_channel_id):
            raise ConfigurationMissing(config.resolutions_channel_id, "决议")

        content = ProposalMessageBuilder.build_withdrawal_notice(proposal, self.settings.emojis)
        message = await self.gateway.send_message(config.resolutions_channel_id, content)
        logger.info(f"撤回公告已发布到 {config.resolutions_channel_id} (消息: {message.id})")
        return message.id
