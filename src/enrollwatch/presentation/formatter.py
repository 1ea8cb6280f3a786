import logging

from enrollwatch.rules.models import RuleResult, RuleSeverity

logger = logging.getLogger(__name__)

SEVERITY_EMOJI = {
    RuleSeverity.CRITICAL: "🔴",
    RuleSeverity.HIGH: "🟠",
    RuleSeverity.WARNING: "🟡",
    RuleSeverity.INFO: "⚪",
}

SEVERITY_ORDER = [RuleSeverity.CRITICAL, RuleSeverity.HIGH, RuleSeverity.WARNING, RuleSeverity.INFO]

_SEVERITY_RANK = {severity: rank for rank, severity in enumerate(SEVERITY_ORDER)}


def rank_results(results: list[RuleResult]) -> list[RuleResult]:
    """Order results by severity, then confidence (highest first), then rule id."""
    return sorted(
        results,
        key=lambda r: (_SEVERITY_RANK.get(r.severity, len(SEVERITY_ORDER)), -r.confidence_score, r.rule_id),
    )


def format_result_summary(results: list[RuleResult]) -> str:
    """One-line count summary, e.g. "🚨 3 issues detected: 1 critical, 2 high"."""
    if not results:
        return "✅ No issues detected"

    counts = []
    for severity in SEVERITY_ORDER:
        count = sum(1 for r in results if r.severity == severity)
        if count:
            counts.append(f"{count} {severity.value}")

    noun = "issue" if len(results) == 1 else "issues"
    return f"🚨 {len(results)} {noun} detected: {', '.join(counts)}"


def format_results_markdown(results: list[RuleResult]) -> str:
    """Render results as markdown grouped by severity."""
    if not results:
        return "# Enrollment Analysis\n\n✅ No issues detected for this session."

    ranked = rank_results(results)
    text = "# Enrollment Analysis\n\n"
    text += f"{format_result_summary(ranked)}\n\n"

    for severity in SEVERITY_ORDER:
        group = [r for r in ranked if r.severity == severity]
        if not group:
            continue

        text += f"## {SEVERITY_EMOJI[severity]} {severity.value.title()} Severity\n\n"
        for result in group:
            text += _format_result(result)

    return text.rstrip() + "\n"


def _format_result(result: RuleResult) -> str:
    text = f"### {result.rule_title} (`{result.rule_id}`)\n"
    text += f"**Confidence:** {result.confidence_score}% | **Category:** {result.category}\n\n"

    if result.explanation:
        text += f"{result.explanation.strip()}\n\n"

    if result.remediation_steps:
        text += "**How to fix:**\n"
        for remediation in result.remediation_steps:
            text += f"- **{remediation.title}**\n"
            for index, step in enumerate(remediation.steps, start=1):
                text += f"  {index}. {step}\n"
        text += "\n"

    if result.related_docs:
        text += "**Related documentation:**\n"
        for doc in result.related_docs:
            text += f"- [{doc.title}]({doc.url})\n"
        text += "\n"

    return text
