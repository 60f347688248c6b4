"""Result processors - shrink tool outputs before they re-enter the context.

- truncate: cut text, lists and mappings to a maximum size
- summarize: replace values with structural summaries
- sample: keep a subset of list items
- process_tool_results: the three above, composed
"""

from .base import estimate_size, is_large, preserve_structure
from .pipeline import process_tool_results
from .sample import SampleStrategy, sample
from .summarize import summarize, summarize_value
from .truncate import truncate

__all__ = [
    "estimate_size",
    "is_large",
    "preserve_structure",
    "truncate",
    "summarize",
    "summarize_value",
    "sample",
    "SampleStrategy",
    "process_tool_results",
]
