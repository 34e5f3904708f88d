"""Turn a judge evaluation into guidance for the next generation pass."""

from .models import EvaluationResult


NO_ISSUES_GUIDANCE = (
    "No specific issues were listed. Re-check every fact against the collected data, "
    "fill any field the output schema expects, and tighten the HTML presentation."
)


def _fmt(score: float) -> str:
    return f"{score:g}"


def format_feedback(evaluation: EvaluationResult) -> str:
    """
    Format an evaluation as feedback for the Generator.

    Every issue appears as its own numbered line so refinement targets
    specific problems. The result is never empty.
    """
    sub = evaluation.sub_scores
    lines = [
        f"Overall score: {_fmt(evaluation.score)}/10 "
        f"(accuracy {_fmt(sub.accuracy)}, completeness {_fmt(sub.completeness)}, "
        f"formatting {_fmt(sub.formatting)})",
    ]

    issues = [issue.strip() for issue in evaluation.issues if issue and issue.strip()]
    if issues:
        lines.append("")
        lines.append("Issues to fix:")
        lines.extend(f"{n}. {issue}" for n, issue in enumerate(issues, start=1))
    else:
        lines.append("")
        lines.append(NO_ISSUES_GUIDANCE)

    if evaluation.feedback.strip():
        lines.append("")
        lines.append(f"Judge notes: {evaluation.feedback.strip()}")

    return "\n".join(lines)
