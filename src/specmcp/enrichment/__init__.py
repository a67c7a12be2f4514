"""Description enhancement for generated tools.

An optional, rule-based pass that tidies the human-readable text of a
:class:`~specmcp.models.ParsedApiSpec` before tools are synthesized from it:
summaries and descriptions are cleaned up, missing endpoint descriptions
and parameter descriptions are generated from the method, path and names.

Priority chain (lowest to highest):
    generated text --> rewritten document text

Enable it with ``specmcp generate --enhance`` or
``"enhance_descriptions": true`` in ``specmcp.json``.
"""

from __future__ import annotations

from specmcp.enrichment.enhancer import (
    EnhancementSummary,
    enhance_endpoint,
    enhance_spec,
    enhance_text,
    generate_description,
    summarize_changes,
)

__all__ = [
    "EnhancementSummary",
    "enhance_endpoint",
    "enhance_spec",
    "enhance_text",
    "generate_description",
    "summarize_changes",
]
