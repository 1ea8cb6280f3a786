from enrollwatch.presentation.formatter import (
    format_result_summary,
    format_results_markdown,
    rank_results,
)

__all__ = [
    "format_result_summary",
    "format_results_markdown",
    "rank_results",
]
