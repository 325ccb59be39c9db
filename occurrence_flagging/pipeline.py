"""Flagging orchestrator.

Processes every taxon file of a run in order: flags its records, writes the
flagged file, and returns a summary row. Summary rows are folded into one
table after the loop and merged with the summary of earlier steps.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import dataframely as dy
import polars as pl

from occurrence_flagging.boundary_layers import BoundaryLayers
from occurrence_flagging.dataframes.flagged_occurrence import (
    FlaggedOccurrenceSchema,
    write_flagged_occurrences,
)
from occurrence_flagging.dataframes.occurrence import list_taxon_files, read_occurrences
from occurrence_flagging.dataframes.taxon_summary import (
    TaxonSummarySchema,
    merge_summaries,
    read_existing_summary,
)
from occurrence_flagging.exceptions import TaxonProcessingError
from occurrence_flagging.output import (
    find_existing_summary,
    get_summary_path,
    get_taxon_output_path,
    write_csv_atomic,
)
from occurrence_flagging.types import FlaggingConfig, RunPaths, TaxonFile, TaxonName

logger = logging.getLogger(__name__)


@dataclass
class TaxonResult:
    """What flagging one taxon produced."""

    taxon_name: TaxonName
    output_path: Path
    summary: dy.DataFrame[TaxonSummarySchema]


@dataclass
class BatchResult:
    """Outcome of a whole run."""

    summary: pl.DataFrame
    summary_path: Optional[Path] = None
    processed: list[TaxonName] = field(default_factory=list)
    skipped: list[TaxonName] = field(default_factory=list)
    failed: list[TaxonName] = field(default_factory=list)


def process_taxon(
    taxon_file: TaxonFile,
    output_path: Path,
    boundary_layers: BoundaryLayers,
    config: FlaggingConfig,
) -> Optional[TaxonResult]:
    """
    Flag one taxon's records and write the flagged file.

    Returns:
        The output path and summary row, or None when the file has no
        records and was skipped.
    """
    occurrences = read_occurrences(taxon_file.path)
    if occurrences.height == 0:
        logger.warning(f"Skipping {taxon_file.taxon_name}: no records")
        return None

    flagged = FlaggedOccurrenceSchema.build(
        occurrences,
        boundary_layers,
        config,
        taxon_name=taxon_file.taxon_name,
    )
    summary = TaxonSummarySchema.build_row(taxon_file.taxon_name, flagged, config)

    write_flagged_occurrences(flagged, output_path)

    return TaxonResult(
        taxon_name=taxon_file.taxon_name,
        output_path=output_path,
        summary=summary,
    )


def _process_taxon_isolated(
    taxon_file: TaxonFile,
    output_path: Path,
    boundary_layers: BoundaryLayers,
    config: FlaggingConfig,
) -> Optional[TaxonResult]:
    try:
        return process_taxon(taxon_file, output_path, boundary_layers, config)
    except Exception as e:
        raise TaxonProcessingError(taxon_file.taxon_name, e) from e


def run_batch(
    taxon_files: list[TaxonFile],
    paths: RunPaths,
    boundary_layers: BoundaryLayers,
    config: FlaggingConfig,
) -> BatchResult:
    """Flag each taxon in turn; a failing taxon is logged and the batch continues."""
    total = len(taxon_files)
    logger.info(f"Starting target taxa ({total} total)")

    summaries: list[dy.DataFrame[TaxonSummarySchema]] = []
    result = BatchResult(summary=TaxonSummarySchema.combine([]))

    for index, taxon_file in enumerate(taxon_files, start=1):
        output_path = get_taxon_output_path(taxon_file, paths.input_dir, paths.output_dir)
        try:
            taxon_result = _process_taxon_isolated(
                taxon_file, output_path, boundary_layers, config
            )
        except TaxonProcessingError as e:
            logger.exception(f"{e} ({index} of {total})")
            result.failed.append(taxon_file.taxon_name)
            continue

        if taxon_result is None:
            result.skipped.append(taxon_file.taxon_name)
            continue

        summaries.append(taxon_result.summary)
        result.processed.append(taxon_file.taxon_name)
        logger.info(
            f"Ending {taxon_file.taxon_name}, {index} of {total} ({taxon_result.output_path})"
        )

    result.summary = TaxonSummarySchema.combine(summaries)

    if result.skipped:
        logger.warning(f"Skipped {len(result.skipped)} taxa: {', '.join(result.skipped)}")
    if result.failed:
        logger.error(f"Failed {len(result.failed)} taxa: {', '.join(result.failed)}")

    return result


def write_summary(new_summary: pl.DataFrame, summary_dir: Path) -> Path:
    """Merge the run's summary into the most recent existing one and write it."""
    existing: Optional[pl.DataFrame] = None
    existing_path = find_existing_summary(summary_dir)
    if existing_path is None:
        logger.warning(
            f"No existing summary found in {summary_dir}; writing this run's summary only"
        )
    else:
        logger.info(f"Merging with existing summary {existing_path}")
        existing = read_existing_summary(existing_path)

    try:
        merged = merge_summaries(existing, new_summary)
    except ValueError as e:
        logger.warning(f"Could not merge with {existing_path}: {e}")
        merged = merge_summaries(None, new_summary)

    summary_path = write_csv_atomic(merged, get_summary_path(summary_dir))
    logger.info(f"Summary written to {summary_path}")
    return summary_path


def run(
    paths: RunPaths,
    boundary_layers: BoundaryLayers,
    config: FlaggingConfig = FlaggingConfig(),
) -> BatchResult:
    """Flag every taxon file under paths.input_dir and write the merged summary."""
    taxon_files = list_taxon_files(paths.input_dir)
    result = run_batch(taxon_files, paths, boundary_layers, config)
    result.summary_path = write_summary(result.summary, paths.summary_dir)
    return result
