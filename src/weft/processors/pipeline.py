"""Composed tool result processing.

`process_tool_results` chains the individual processors in a fixed order:

1. Skip everything when no successful result is larger than the truncate threshold
2. Truncate (if configured)
3. Summarize (if configured)
4. Sample (if configured)
5. Emit a processing event
"""

from __future__ import annotations

import logging
import math
from typing import Any, Iterable, Optional, Union

from ..context.types import ToolResult
from ..telemetry import events
from .base import estimate_size
from .sample import sample as sample_results
from .summarize import summarize as summarize_results
from .truncate import truncate as truncate_results


def process_tool_results(
    results: Iterable[ToolResult],
    truncate: Optional[int] = None,
    summarize: Union[bool, dict[str, Any]] = False,
    sample: Optional[int] = None,
    skip_small: bool = True,
) -> list[ToolResult]:
    """Apply the standard processing pipeline to tool results.

    Args:
        results: Tool results to process
        truncate: Max size for truncation, None disables it
        summarize: True for default summaries, a dict of summarize() options,
            or False to disable
        sample: Sample size for list results, None disables sampling
        skip_small: Leave results untouched when none is larger than the
            truncate threshold. Without a truncate threshold nothing counts as
            large, so processing is skipped entirely.

    Returns:
        Processed results
    """
    results = list(results)
    options = {
        "truncate": truncate,
        "summarize": summarize,
        "sample": sample,
        "skip_small": skip_small,
    }

    if skip_small and not _has_large_result(results, truncate):
        logging.debug("[weft] All results under threshold, skipping processing")
        _emit(results, skipped=True, options=options)
        return results

    if truncate is not None:
        logging.debug("[weft] Truncating results to max_size=%d", truncate)
        results = truncate_results(results, max_size=truncate)

    if summarize:
        summarize_options = summarize if isinstance(summarize, dict) else {}
        logging.debug("[weft] Summarizing results with options: %s", summarize_options)
        results = summarize_results(results, **summarize_options)

    if sample is not None:
        logging.debug("[weft] Sampling results with size=%d", sample)
        results = sample_results(results, sample_size=sample)

    _emit(results, skipped=False, options=options)
    return results


def _has_large_result(results: list[ToolResult], threshold: Optional[int]) -> bool:
    limit = math.inf if threshold is None else threshold
    return any(result.is_ok and estimate_size(result.payload) > limit for result in results)


def _emit(results: list[ToolResult], skipped: bool, options: dict[str, Any]) -> None:
    events.emit(
        events.PROCESS_RESULTS,
        {"count": len(results), "skipped": skipped},
        {"options": options},
    )


__all__ = ["process_tool_results"]
