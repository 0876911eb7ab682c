import logging
from typing import Optional

from CommonsPact.cogs.Proposals.dto.ProposalSettingsDto import WithdrawalSettingsDto
from CommonsPact.cogs.Proposals.dto.ProposalTypeConfigDto import ProposalTypeConfigDto
from CommonsPact.cogs.Proposals.dto.WithdrawalTargetDto import WithdrawalTargetDto
from CommonsPact.cogs.Proposals.MessageGateway import MessageGateway
from CommonsPact.share.StringUtils import StringUtils

logger = logging.getLogger(__name__)

PASSED_MARKER = "PASSED"
RESOLUTION_MARKER = "RESOLUTION"


class WithdrawalResolver:
    """
    在决议频道中查找撤回提案所引用的已发布决议。

    匹配策略按顺序执行，先命中者胜出:
    1. exact: 两段文本互相包含 (不区分大小写)
    2. labeled_field: 决议的核心字段与撤回文本互相包含
    3. keyword_overlap: 撤回文本中足够长的词有足够比例出现在决议中
    顺序不能调整，后面的策略更宽松，更容易误判。
    """

    def __init__(self, gateway: MessageGateway, settings: Optional[WithdrawalSettingsDto] = None):
        self.gateway = gateway
        self.settings = settings or WithdrawalSettingsDto()

    @staticmethod
    def is_active_resolution(content: str) -> bool:
        """决议频道中只有同时带 PASSED 与 RESOLUTION 标记的消息才是有效决议。"""
        return PASSED_MARKER in content and RESOLUTION_MARKER in content

    def match_strategy(self, resolution_content: str, reference: str) -> Optional[str]:
        """
        判断决议是否与撤回引用匹配。

        Returns:
            命中的策略名称，未命中时返回 None。
        """
        resolution_lower = resolution_content.lower()
        reference_lower = reference.lower()

        if reference_lower in resolution_lower or resolution_lower in reference_lower:
            return "exact"

        field = StringUtils.extract_labeled_field(resolution_content)
        if field:
            field_lower = field.lower()
            if reference_lower in field_lower or field_lower in reference_lower:
                return "labeled_field"

        overlap = self.keyword_overlap(resolution_lower, reference_lower)
        if overlap >= self.settings.keyword_overlap_ratio:
            return "keyword_overlap"

        return None

    def keyword_overlap(self, resolution_content: str, reference: str) -> float:
        """
        撤回文本中长度达标的词，有多少比例作为子串出现在决议的某个词里。
        没有任何达标词时返回 0，不会因此命中。
        """
        keywords = [
            word
            for word in reference.lower().split()
            if len(word) >= self.settings.min_keyword_length
        ]
        if not keywords:
            return 0.0

        resolution_words = resolution_content.lower().split()
        matched = sum(
            1 for word in keywords if any(word in candidate for candidate in resolution_words)
        )
        return matched / len(keywords)

    async def resolve(
        self, withdrawal_text: str, proposal_type: str, config: ProposalTypeConfigDto
    ) -> Optional[WithdrawalTargetDto]:
        """
        Args:
            withdrawal_text: 撤回提案原文，需以 "**Withdraw**:" 开头。
            proposal_type: 提案类型，仅用于日志。
            config: 该类型的配置，决议频道从这里读取。

        Returns:
            匹配到的决议；引用格式不正确或回溯窗口内没有匹配时返回 None。

        Raises:
            ConfigurationMissing: 决议频道不存在。
            TransportFailure: 拉取历史消息失败。
        """
        reference = StringUtils.extract_withdraw_reference(withdrawal_text)
        if reference is None:
            logger.info("撤回提案中没有找到引用内容。")
            return None

        logger.info(
            f"正在为 {proposal_type} 撤回提案查找决议: \"{StringUtils.truncate(reference)}\""
        )

        messages = await self.gateway.fetch_recent_messages(
            config.resolutions_channel_id, self.settings.lookback_limit
        )

        for message in messages:
            if not self.is_active_resolution(message.content):
                continue

            strategy = self.match_strategy(message.content, reference)
            if strategy is None:
                continue

            logger.info(f"找到匹配的决议 {message.id} (策略: {strategy})")
            return WithdrawalTargetDto(
                resolution_id=message.id,
                channel_id=config.resolutions_channel_id,
                raw_content=message.content,
                extracted_original_text=StringUtils.extract_original_text(message.content),
                matched_by=strategy,
            )

        logger.info(f"在最近 {len(messages)} 条决议消息中没有找到匹配项。")
        return None
