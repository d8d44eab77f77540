from bouncer.models.guest import Guest, MatchResult
from bouncer.services.match_resolution import (
    resolve_identity,
    select_candidate,
    summarize_matches,
    summarize_matches_short,
)


def result(*pairs):
    return MatchResult.model_validate(
        {"matches": [{"guest": guest, "confidence": conf} for guest, conf in pairs]}
    )


class TestResolveIdentity:
    def test_absent_result_resolves_to_nobody(self, roster):
        assert resolve_identity(None, roster) is None
        assert resolve_identity(MatchResult(matches=[]), roster) is None

    def test_single_high_match_string_guest(self, roster):
        guest = resolve_identity(result(("Jane Doe", "high")), roster)
        assert guest is not None
        assert guest.name == "Jane Doe"
        # canonical roster record, contact details included
        assert guest.phone == "555-2222"

    def test_single_high_wins_over_medium_and_low(self, roster):
        res = result(
            ("Jane Park", "medium"),
            ({"name": "Jane Doe", "status": None}, "high"),
            ("Sam Rivera", "low"),
        )
        assert resolve_identity(res, roster).name == "Jane Doe"

    def test_two_high_matches_are_ambiguous(self, roster):
        res = result(("Jane Doe", "high"), ("Jane Park", "high"))
        assert resolve_identity(res, roster) is None

    def test_single_medium_without_high_is_accepted(self, roster):
        res = result(("Sam Rivera", "medium"), ("Jane Doe", "low"))
        assert resolve_identity(res, roster).name == "Sam Rivera"

    def test_two_medium_without_high_are_ambiguous(self, roster):
        res = result(("Jane Doe", "medium"), ("Jane Park", "medium"))
        assert resolve_identity(res, roster) is None

    def test_low_confidence_is_never_accepted(self, roster):
        assert resolve_identity(result(("Jane Doe", "low")), roster) is None

    def test_accepted_name_must_be_on_roster(self, roster):
        assert resolve_identity(result(("Janet Doe", "high")), roster) is None

    def test_duplicated_roster_name_resolves_to_nobody(self, roster):
        twins = roster + [Guest(name="Jane Doe", phone="555-9999")]
        assert resolve_identity(result(("Jane Doe", "high")), twins) is None

    def test_roster_match_is_case_sensitive(self, roster):
        assert resolve_identity(result(("jane doe", "high")), roster) is None

    def test_guest_object_resolves_to_roster_record(self, roster):
        res = result(({"name": "Alex Kim", "phone": "000", "status": "vip"}, "high"))
        guest = resolve_identity(res, roster)
        assert guest == Guest(name="Alex Kim", phone="555-1111", status="vip")

    def test_select_candidate_ignores_roster(self):
        candidate = select_candidate(result(("Ghost", "medium")))
        assert candidate is not None
        assert candidate.guest_name == "Ghost"


class TestSummaries:
    def test_no_match(self, roster):
        assert summarize_matches(None, roster) == "No Match"
        assert summarize_matches_short(None) == "None"

    def test_single_match_includes_status_from_roster(self, roster):
        res = result(("Alex Kim", "high"))
        assert summarize_matches(res, roster) == "Alex Kim (vip) - high confidence"
        assert summarize_matches_short(res) == "Alex Kim (high)"

    def test_multiple_matches_listed_with_low_confidence(self, roster):
        res = result(("Jane Doe", "high"), ("Jane Park", "high"), ("Sam Rivera", "low"))
        summary = summarize_matches(res, roster)
        assert summary.startswith("Multiple matches (3): ")
        assert "Jane Doe - high" in summary
        assert "Sam Rivera (regular) - low" in summary
        assert summarize_matches_short(res) == "3 matches - see email"

    def test_sole_low_candidate_is_informational(self, roster):
        res = result(("Jane Park", "low"))
        assert summarize_matches(res, roster) == "Jane Park - low confidence"
        assert resolve_identity(res, roster) is None
