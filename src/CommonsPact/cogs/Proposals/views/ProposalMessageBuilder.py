from datetime import datetime
from typing import Optional

from CommonsPact.cogs.Proposals.dto.ProposalDto import ProposalDto
from CommonsPact.cogs.Proposals.dto.ProposalSettingsDto import EmojiSettingsDto
from CommonsPact.cogs.Proposals.dto.WithdrawalTargetDto import WithdrawalTargetDto
from CommonsPact.share.TimeUtils import TimeUtils

WITHDRAWAL_TARGET_NOT_FOUND_TEXT = (
    "Could not find the target resolution to withdraw. "
    "Please ensure you have referenced a valid resolution."
)


class ProposalMessageBuilder:
    """
    负责生成提案生命周期中发送到 Discord 的所有消息文本。

    决议消息中的 "PASSED" 与 "RESOLUTION" 标记会被撤回匹配逻辑用来识别有效决议，
    修改格式时需要同时保持这两个标记。
    """

    @staticmethod
    def format_tally(yes_votes: int, no_votes: int, emojis: EmojiSettingsDto) -> str:
        return f"{emojis.yes} {yes_votes} - {emojis.no} {no_votes}"

    @staticmethod
    def build_vote_message(
        proposal_type: str,
        author_tag: str,
        content: str,
        end_time: datetime,
        emojis: EmojiSettingsDto,
        is_withdrawal: bool = False,
        target: Optional[WithdrawalTargetDto] = None,
    ) -> str:
        withdrawal_text = "WITHDRAWAL " if is_withdrawal else ""
        type_suffix = " (withdrawal)" if is_withdrawal else ""

        if is_withdrawal:
            instructions = (
                f"{emojis.yes} React with {emojis.yes} to SUPPORT withdrawing this resolution\n"
                f"{emojis.no} React with {emojis.no} to OPPOSE withdrawal (keep the resolution)"
            )
        else:
            instructions = (
                f"{emojis.yes} React with {emojis.yes} to SUPPORT this proposal\n"
                f"{emojis.no} React with {emojis.no} to OPPOSE this proposal"
            )

        target_section = ""
        if target is not None:
            target_section = f"\n**Resolution to withdraw:**\n{target.extracted_original_text}\n"

        return (
            f"🗳️ **{proposal_type.upper()} {withdrawal_text}VOTING PHASE**\n\n"
            f"**Proposed by:** {author_tag}\n"
            f"**Type:** {proposal_type}{type_suffix}\n"
            f"**Original Proposal:**\n{content}\n"
            f"{target_section}\n"
            f"**Instructions:**\n{instructions}\n\n"
            f"**Voting ends:** {TimeUtils.to_discord_timestamp(end_time)}\n\n"
            "React below to cast your vote!"
        )

    @staticmethod
    def build_moved_notice(original_content: str, vote_channel_id: int, is_withdrawal: bool) -> str:
        withdrawal_text = "withdrawal " if is_withdrawal else ""
        return (
            f"{original_content}\n\n"
            f"**This {withdrawal_text}proposal has been moved to voting in <#{vote_channel_id}>**"
        )

    @staticmethod
    def build_outcome_summary(
        vote_content: str, proposal: ProposalDto, passed: bool, emojis: EmojiSettingsDto
    ) -> str:
        """在投票消息末尾追加投票结果。"""
        result_emoji = emojis.yes if passed else emojis.no
        result_text = "PASSED" if passed else "FAILED"

        follow_up = ""
        if passed:
            if proposal.is_withdrawal:
                follow_up = "The target resolution has been withdrawn."
            elif proposal.is_moderator_action:
                follow_up = "The moderator role change is being applied."
            else:
                follow_up = "This proposal has been moved to resolutions."

        return (
            f"{vote_content}\n\n"
            "**VOTING COMPLETED**\n"
            f"{result_emoji} **{result_text}**\n"
            f"{emojis.yes} Support: {proposal.yes_votes}\n"
            f"{emojis.no} Oppose: {proposal.no_votes}\n\n"
            f"{follow_up}"
        ).rstrip()

    @staticmethod
    def build_resolution(proposal: ProposalDto, emojis: EmojiSettingsDto) -> str:
        """已通过提案的永久决议记录。"""
        passed_on = proposal.completed_at or TimeUtils.utc_now()
        return (
            f"**PASSED {proposal.proposal_type.upper()} RESOLUTION**\n\n"
            f"**Proposed by:** <@{proposal.author_id}>\n"
            f"**Type:** {proposal.proposal_type}\n"
            f"**Passed on:** {TimeUtils.to_discord_timestamp(passed_on)}\n"
            "**Final Vote:** "
            f"{ProposalMessageBuilder.format_tally(proposal.yes_votes, proposal.no_votes, emojis)}"
            "\n\n"
            f"**Resolution:**\n{proposal.content}\n\n"
            f"*This resolution is now active {proposal.proposal_type} policy.*"
        )

    @staticmethod
    def build_withdrawal_notice(proposal: ProposalDto, emojis: EmojiSettingsDto) -> str:
        """撤回提案通过后发布的撤回公告。"""
        withdrawn_on = proposal.completed_at or TimeUtils.utc_now()
        original_text = (
            proposal.target_resolution.extracted_original_text
            if proposal.target_resolution
            else ""
        )
        return (
            f"🗑️ **WITHDRAWN {proposal.proposal_type.upper()} RESOLUTION**\n\n"
            f"**Withdrawn by:** <@{proposal.author_id}>\n"
            f"**Withdrawn on:** {TimeUtils.to_discord_timestamp(withdrawn_on)}\n"
            "**Final Vote:** "
            f"{ProposalMessageBuilder.format_tally(proposal.yes_votes, proposal.no_votes, emojis)}"
            "\n\n"
            f"**Original Resolution (now withdrawn):**\n{original_text}\n\n"
            f"**Withdrawal Proposal:**\n{proposal.content}\n\n"
            "*This resolution has been officially withdrawn and is no longer active policy.*"
        )
