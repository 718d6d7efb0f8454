"""Runner script for the location history trip detection pipeline.

Usage: ``python run.py [config.yaml]``; defaults to the config next to
this file.
"""

import logging
import sys
from pathlib import Path

from pipeline.pipeline import Pipeline
from processing import detect_trips, load_data, write_data

DEFAULT_CONFIG = Path(__file__).parent / "config.yaml"

logger = logging.getLogger(__name__)

# Custom steps can be added here and referenced by name in the config
PROCESSING_STEPS = [load_data, detect_trips, write_data]


def main(config_path: Path = DEFAULT_CONFIG) -> None:
    """Run the configured steps and report how many trips were found."""
    logger.info("Starting trip detection pipeline (%s)", config_path)

    result = Pipeline(config_path=config_path, steps=PROCESSING_STEPS).run()

    n_trips = 0 if result.trips is None else result.trips.height
    logger.info("Pipeline finished: %d trips detected.", n_trips)


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    main(Path(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_CONFIG)
