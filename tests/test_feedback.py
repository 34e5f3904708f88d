"""Tests for judge-to-creator feedback formatting."""

from flowsynth.loop.feedback import NO_ISSUES_GUIDANCE, format_feedback
from flowsynth.loop.models import EvaluationResult, SubScores


def make_evaluation(issues, feedback="Tighten the summary.", score=6.5):
    return EvaluationResult(
        approved=False,
        score=score,
        sub_scores=SubScores(accuracy=7, completeness=6, formatting=5.5),
        issues=issues,
        feedback=feedback,
        iteration=1,
    )


class TestFormatFeedback:
    """Feedback is specific, numbered and never empty."""

    def test_every_issue_is_listed(self):
        issues = ["Email missing from header", "Graduation year is wrong", "Skills not grouped"]

        text = format_feedback(make_evaluation(issues))

        for n, issue in enumerate(issues, start=1):
            assert f"{n}. {issue}" in text
        assert NO_ISSUES_GUIDANCE not in text

    def test_scores_and_notes_included(self):
        text = format_feedback(make_evaluation(["Email missing"]))

        assert "6.5/10" in text
        assert "accuracy 7" in text
        assert "formatting 5.5" in text
        assert "Judge notes: Tighten the summary." in text

    def test_empty_issues_still_gives_guidance(self):
        text = format_feedback(make_evaluation([], feedback=""))

        assert text.strip()
        assert NO_ISSUES_GUIDANCE in text
        assert "Judge notes" not in text

    def test_blank_issues_are_dropped(self):
        text = format_feedback(make_evaluation(["  ", "Fix the date"]))

        assert "1. Fix the date" in text
        assert "2." not in text
