import logging
from typing import Dict, Optional

from CommonsPact.cogs.Proposals.dto.ProposalMatchDto import ProposalMatchDto
from CommonsPact.cogs.Proposals.dto.ProposalTypeConfigDto import ProposalTypeConfigDto
from CommonsPact.share.StringUtils import StringUtils

logger = logging.getLogger(__name__)

WITHDRAW_LABEL = "Withdraw"


class ProposalClassifier:
    """
    根据所在频道和开头格式判断一条消息是否为有效提案。

    支持的格式:
    - **Policy**: 内容
    - **Withdraw**: 对已发布决议的引用
    """

    def __init__(self, proposal_types: Dict[str, ProposalTypeConfigDto]):
        self.proposal_types = proposal_types
        self._patterns = {
            proposal_type: StringUtils.build_label_pattern([*config.formats, WITHDRAW_LABEL])
            for proposal_type, config in proposal_types.items()
        }

    def classify(self, channel_id: int, text: str) -> Optional[ProposalMatchDto]:
        """
        Returns:
            匹配到的提案类型、配置以及是否为撤回提案；频道不符或格式不正确时返回 None。
        """
        content = text.strip()
        for proposal_type, config in self.proposal_types.items():
            if config.debate_channel_id != channel_id:
                continue

            match = self._patterns[proposal_type].match(content)
            if match:
                is_withdrawal = match.group(1).lower() == WITHDRAW_LABEL.lower()
                logger.debug(
                    f"匹配到提案类型: {proposal_type}{' (撤回)' if is_withdrawal else ''}"
                )
                return ProposalMatchDto(
                    proposal_type=proposal_type, config=config, is_withdrawal=is_withdrawal
                )

        logger.debug(f"频道 {channel_id} 中的消息不是有效提案: {StringUtils.truncate(content)}")
        return None
