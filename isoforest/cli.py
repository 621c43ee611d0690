"""Command line driver: read a CSV file, build a forest and print one label per row.

Usage:
  python -m isoforest data.csv --threshold 0.6
  python -m isoforest data.csv --contamination 0.02 --index-col 0 --seed 7
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence

from .classifier import classify, threshold_for_contamination
from .config import DEFAULT_SAMPLING_SIZE, LOG_LEVELS, Settings, get_settings
from .dataset import Dataset
from .exceptions import InvalidInputError
from .forest import build_forest

logger = logging.getLogger(__name__)


def _index_col(value: str) -> int | str:
    return int(value) if value.isdigit() else value


def build_parser(settings: Settings | None = None) -> argparse.ArgumentParser:
    if settings is None:
        settings = get_settings()

    ap = argparse.ArgumentParser(
        prog="isoforest",
        description="Flag anomalous rows of a numeric CSV file with an Isolation Forest.",
    )
    ap.add_argument("path", help="CSV file with a header row of feature names")
    ap.add_argument("--num-trees", type=int, default=settings.NUM_TREES)
    ap.add_argument("--sampling-size", type=int, default=settings.SAMPLING_SIZE)
    ap.add_argument(
        "--reference-size", type=int, default=DEFAULT_SAMPLING_SIZE,
        help="sample size the scores are normalized against",
    )
    cutoff = ap.add_mutually_exclusive_group(required=True)
    cutoff.add_argument("--threshold", type=float, help="scores >= threshold are anomalies")
    cutoff.add_argument(
        "--contamination", type=float,
        help="flag this fraction of the highest scoring rows",
    )
    ap.add_argument(
        "--index-col", type=_index_col, default=None,
        help="column (position or name) holding row ids, excluded from features",
    )
    ap.add_argument("--seed", type=int, default=None)
    ap.add_argument("--n-jobs", type=int, default=settings.N_JOBS)
    ap.add_argument(
        "--log-level", type=str.upper, choices=LOG_LEVELS, default=settings.LOG_LEVEL,
    )
    return ap


def main(argv: Sequence[str] | None = None) -> int:
    try:
        settings = get_settings()
    except InvalidInputError as exc:
        print(f"isoforest: error: {exc}", file=sys.stderr)
        return 2

    args = build_parser(settings).parse_args(argv)
    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        dataset = Dataset.from_csv(args.path, index_col=args.index_col)
        forest = build_forest(
            dataset,
            num_trees=args.num_trees,
            sampling_size=args.sampling_size,
            random_state=args.seed,
            n_jobs=args.n_jobs,
        )
        scores = forest.scores(dataset, reference_size=args.reference_size)

        if args.threshold is not None:
            threshold = args.threshold
        else:
            threshold = threshold_for_contamination(scores, args.contamination)
            logger.info("Contamination %.4f gives threshold %.6f", args.contamination, threshold)

        classifications = classify(scores, threshold)
    except InvalidInputError as exc:
        print(f"isoforest: error: {exc}", file=sys.stderr)
        return 2

    for i, classification in enumerate(classifications):
        print(f"i = {i} . classification: {classification}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
