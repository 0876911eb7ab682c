import pytest

from CommonsPact.cogs.Proposals.ProposalClassifier import ProposalClassifier
from conftest import DEBATE_CHANNEL_ID, VOTE_CHANNEL_ID


class TestProposalClassifier:
    @pytest.fixture
    def classifier(self, settings) -> ProposalClassifier:
        return ProposalClassifier(settings.proposal_types)

    def test_matches_configured_label(self, classifier):
        match = classifier.classify(DEBATE_CHANNEL_ID, "**Policy**: Ban spam bots")

        assert match is not None
        assert match.proposal_type == "policy"
        assert match.is_withdrawal is False
        assert match.config.support_threshold == 3

    def test_label_is_case_insensitive_and_text_is_stripped(self, classifier):
        match = classifier.classify(DEBATE_CHANNEL_ID, "   **policy**: lower case label\n")

        assert match is not None
        assert match.proposal_type == "policy"

    def test_withdraw_label_marks_withdrawal(self, classifier):
        match = classifier.classify(DEBATE_CHANNEL_ID, "**WITHDRAW**: Ban spam bots")

        assert match is not None
        assert match.is_withdrawal is True

    def test_wrong_channel_is_not_a_proposal(self, classifier):
        assert classifier.classify(VOTE_CHANNEL_ID, "**Policy**: Ban spam bots") is None

    @pytest.mark.parametrize(
        "text",
        [
            "Policy: missing bold",
            "**Governance**: label of another type",
            "I think **Policy**: should not match mid-text",
            "",
        ],
    )
    def test_malformed_label_is_rejected(self, classifier, text):
        assert classifier.classify(DEBATE_CHANNEL_ID, text) is None
