"""Library entry points: one document in, tool descriptors out.

:func:`generate_tools` runs the full pipeline for a single decoded document::

    normalize -> validate -> [enhance] -> synthesize

:func:`generate_batch` does the same for several sources in a bounded thread
pool and merges the results. Every stage below is pure, so documents are
processed independently; results always come back in the order the sources
were given, whatever order the workers finish in.

Failure policy:

* A document that cannot be loaded or has no ``paths`` raises
  :class:`~specmcp.exceptions.SpecParseError` from :func:`generate_tools`;
  in a batch it is logged, recorded in
  :attr:`~specmcp.models.BatchResult.failures` and skipped.
* Validation problems never stop generation; the report is attached to the
  result. Callers that want strict behaviour pass ``strict=True``.
* Anything unexpected is wrapped in
  :class:`~specmcp.exceptions.GenerationError` with the cause chained.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Optional, Union

from specmcp.enrichment.enhancer import enhance_spec
from specmcp.exceptions import GenerationError, SpecmcpError, SpecParseError
from specmcp.generator.naming import namespace_slug
from specmcp.generator.synthesizer import synthesize_tools
from specmcp.models import (
    BatchResult,
    DocumentFailure,
    GenerationResult,
    MergeStrategy,
    McpToolSpec,
    SpecSource,
)
from specmcp.parser.loader import load_spec
from specmcp.parser.normalizer import UNTITLED_API, get_base_url, normalize
from specmcp.parser.validator import require_valid, validate, validate_tool

logger = logging.getLogger(__name__)


def generate_tools(
    document: dict[str, Any],
    *,
    base_url: Optional[str] = None,
    enhance: bool = False,
    merge_path_parameters: bool = False,
    strict: bool = False,
    source: Optional[str] = None,
) -> GenerationResult:
    """Turn one decoded document into tool descriptors.

    Args:
        document: The decoded OpenAPI 3.x or Swagger 2.0 document.
        base_url: Overrides the base URL derived from the document.
        enhance: Run the rule-based description enhancer first.
        merge_path_parameters: Apply path-level parameters to operations.
        strict: Raise instead of continuing when validation finds errors.
        source: Where the document came from, recorded on the result.

    Returns:
        A :class:`~specmcp.models.GenerationResult` with the tools, the API
        metadata, and the validation report.

    Raises:
        SpecParseError: If the document has no usable ``paths``.
        ValidationError: If *strict* is set and validation found errors.
        GenerationError: If an unexpected error occurs.
    """
    try:
        report = validate(document)
        for message in report.errors:
            logger.warning("Validation error: %s", message)
        if strict:
            require_valid(report, subject=source or "Document")

        spec = normalize(document, merge_path_parameters=merge_path_parameters)
        if enhance:
            spec = enhance_spec(spec)

        tools = synthesize_tools(spec, base_url=base_url)
        for tool in tools:
            for message in validate_tool(tool).errors:
                logger.warning("Tool check: %s", message)

        return GenerationResult(
            source=source,
            info=spec.info,
            servers=spec.servers,
            base_url=base_url if base_url is not None else get_base_url(spec),
            tools=tools,
            validation=report,
        )
    except SpecmcpError:
        raise
    except Exception as exc:
        raise GenerationError(f"Failed to generate tools: {exc}") from exc


def generate_from_source(
    source: Union[str, SpecSource],
    *,
    base_url: Optional[str] = None,
    enhance: bool = False,
    merge_path_parameters: bool = False,
    strict: bool = False,
) -> GenerationResult:
    """Load *source* (URL, path, or ``-``) and run :func:`generate_tools` on it."""
    location = source.input if isinstance(source, SpecSource) else source
    document = load_spec(location)
    return generate_tools(
        document,
        base_url=base_url,
        enhance=enhance,
        merge_path_parameters=merge_path_parameters,
        strict=strict,
        source=location,
    )


def generate_batch(
    sources: list[SpecSource],
    *,
    max_workers: int = 4,
    merge_strategy: MergeStrategy = MergeStrategy.NAMESPACE,
    base_url: Optional[str] = None,
    enhance: bool = False,
    merge_path_parameters: bool = False,
    strict: bool = False,
) -> BatchResult:
    """Generate tools for several documents and merge them.

    Documents are loaded and processed concurrently by at most *max_workers*
    threads. Disabled sources are ignored. With *strict*, a document with
    validation errors is skipped like one that fails to load.

    Merge strategies:

    * ``namespace`` -- every tool name is prefixed with the document's slug
      (its batch ``name``, else its API title, else the file stem), e.g.
      ``pets__list_pets``.
    * ``combine`` -- lists are concatenated unchanged; names that collide are
      logged and listed in :attr:`~specmcp.models.BatchResult.duplicate_names`.

    Returns:
        The merged :class:`~specmcp.models.BatchResult`, in *sources* order.
    """
    enabled = [s for s in sources if s.enabled]
    batch = BatchResult()
    if not enabled:
        return batch

    def run(source: SpecSource) -> Union[GenerationResult, DocumentFailure]:
        try:
            return generate_from_source(
                source,
                base_url=base_url,
                enhance=enhance,
                merge_path_parameters=merge_path_parameters,
                strict=strict,
            )
        except SpecmcpError as exc:
            logger.error("Skipping %s: %s", source.input, exc)
            return DocumentFailure(source=source.input, error=str(exc))

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
        outcomes = list(pool.map(run, enabled))

    seen: set[str] = set()
    for source, outcome in zip(enabled, outcomes):
        if isinstance(outcome, DocumentFailure):
            batch.failures.append(outcome)
            continue
        if not outcome.validation.is_valid:
            logger.warning(
                "%s has %d validation error(s); continuing",
                source.input,
                len(outcome.validation.errors),
            )
        batch.results.append(outcome)

        if merge_strategy == MergeStrategy.NAMESPACE:
            prefix = namespace_slug(source.name or _document_label(source, outcome))
            tools = [_namespaced(tool, prefix) for tool in outcome.tools]
        else:
            tools = list(outcome.tools)

        for tool in tools:
            if tool.name in seen:
                logger.warning("Duplicate tool name '%s' from %s", tool.name, source.input)
                if tool.name not in batch.duplicate_names:
                    batch.duplicate_names.append(tool.name)
            seen.add(tool.name)
            batch.tools.append(tool)

    return batch


def _namespaced(tool: McpToolSpec, prefix: str) -> McpToolSpec:
    return tool.model_copy(update={"name": f"{prefix}__{tool.name}"})


def _document_label(source: SpecSource, result: GenerationResult) -> str:
    if result.info.title and result.info.title != UNTITLED_API:
        return result.info.title
    return Path(source.input).stem or result.info.title
