from datetime import datetime, timedelta

from CommonsPact.cogs.Proposals.dto.ProposalDto import ProposalDto
from CommonsPact.cogs.Proposals.dto.ProposalSettingsDto import EmojiSettingsDto
from CommonsPact.cogs.Proposals.views.ProposalMessageBuilder import ProposalMessageBuilder
from CommonsPact.cogs.Proposals.WithdrawalResolver import WithdrawalResolver
from CommonsPact.share.enums.ProposalStatus import ProposalStatus
from CommonsPact.share.StringUtils import StringUtils
from CommonsPact.share.TimeUtils import TimeUtils

EMOJIS = EmojiSettingsDto()
START = datetime(2024, 1, 1, 12, 0, 0)


def passed_proposal(**overrides) -> ProposalDto:
    fields = dict(
        id=1,
        guild_id=555,
        vote_message_id=1001,
        vote_channel_id=102,
        original_message_id=2001,
        original_channel_id=101,
        proposal_type="policy",
        is_withdrawal=False,
        content="**Policy**: Ban spam bots",
        author_id=42,
        author_tag="alice",
        status=ProposalStatus.PASSED,
        support_threshold=3,
        yes_votes=6,
        no_votes=2,
        start_time=START,
        end_time=START + timedelta(hours=72),
        completed_at=START + timedelta(hours=73),
    )
    fields.update(overrides)
    return ProposalDto(**fields)


class TestProposalMessageBuilder:
    def test_tally_format(self):
        assert ProposalMessageBuilder.format_tally(6, 2, EMOJIS) == "✅ 6 - ❌ 2"

    def test_vote_message_shows_end_time_as_discord_timestamp(self):
        end_time = TimeUtils.get_utc_end_time(72, START)

        content = ProposalMessageBuilder.build_vote_message(
            "policy", "alice", "**Policy**: Ban spam bots", end_time, EMOJIS
        )

        assert content.startswith("🗳️ **POLICY VOTING PHASE**")
        assert "**Voting ends:** <t:1704369600:F>" in content

    def test_published_resolution_is_found_again_by_withdrawal(self):
        content = ProposalMessageBuilder.build_resolution(passed_proposal(), EMOJIS)

        assert WithdrawalResolver.is_active_resolution(content)
        assert "**Final Vote:** ✅ 6 - ❌ 2" in content
        assert StringUtils.extract_original_text(content) == "Ban spam bots"
        assert StringUtils.extract_withdraw_reference("**Withdraw**: Ban spam bots\nthanks") == (
            "Ban spam bots"
        )

    def test_outcome_summary_for_failed_vote_has_no_follow_up(self):
        proposal = passed_proposal(status=ProposalStatus.FAILED, yes_votes=2, no_votes=2)

        content = ProposalMessageBuilder.build_outcome_summary("vote", proposal, False, EMOJIS)

        assert content.endswith("❌ Oppose: 2")
        assert "❌ **FAILED**" in content
