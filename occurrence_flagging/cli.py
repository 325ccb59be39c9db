"""Command-line entry point for flagging occurrence records."""

import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from occurrence_flagging import output, pipeline
from occurrence_flagging.boundary_layers import BoundaryLayers
from occurrence_flagging.cli_input import build_config, parse_cli_input
from occurrence_flagging.exceptions import OccurrenceFlaggingError
from occurrence_flagging.logging import configure_logging
from occurrence_flagging.types import RunPaths

logger = logging.getLogger(__name__)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_cli_input(argv)

    if args.log_file:
        output.prepare_file_path(args.log_file)
    configure_logging(args.log_file)

    try:
        config = build_config(args)
        paths = RunPaths(
            input_dir=Path(args.input_dir),
            output_dir=output.ensure_output_dir(args.output_dir),
            summary_dir=output.ensure_output_dir(args.summary_dir),
        )
        boundary_layers = BoundaryLayers.load(
            countries_path=args.countries,
            urban_areas_path=args.urban_areas,
            institutions_path=args.institutions,
            centroids_path=args.centroids,
            provinces_path=args.provinces,
        )
        result = pipeline.run(paths, boundary_layers, config)
    except (OccurrenceFlaggingError, FileNotFoundError) as e:
        logger.error(str(e))
        return 1

    logger.info(
        f"Flagged {len(result.processed)} taxa "
        f"({len(result.skipped)} skipped, {len(result.failed)} failed)"
    )
    return 1 if result.failed else 0


if __name__ == "__main__":
    sys.exit(main())
