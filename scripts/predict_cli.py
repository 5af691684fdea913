"""CLI script for getting recommendations from exported item vectors.

Useful for testing and evaluation. Builds a vector model from a vectors file,
then recommends (or ranks a candidate list) for a user described by the items
they have consumed.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.config import DEFAULT_CONFIDENCE, DEFAULT_REGULARIZATION, DEFAULT_TOP_N
from src.recommender.exceptions import VecRecException
from src.recommender.utils import build_vector_model

# Setup logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s: %(message)s"
)
logger = logging.getLogger(__name__)


def get_recommendations(
    vectors_path: str,
    seen_items: Sequence[int],
    top_n: int = DEFAULT_TOP_N,
    candidates: Optional[Sequence[int]] = None,
    confidence: float = DEFAULT_CONFIDENCE,
    regularization: float = DEFAULT_REGULARIZATION,
) -> List[Tuple[int, float]]:
    """Get scored items for a user.

    Args:
        vectors_path: File with the trained item vectors
        seen_items: Items the user has consumed
        top_n: Number of recommendations to return (ignored when ranking)
        candidates: If given, rank these items instead of recommending
        confidence: Confidence applied to every seen item
        regularization: Ridge coefficient

    Returns:
        List of (item_id, score) pairs, best first
    """
    model = build_vector_model(vectors_path, confidence, regularization)

    if candidates is not None:
        items = list(candidates)
        scores = model.rank(items, seen_items)
        return list(zip(items, scores))

    return [(rec.document_id, rec.score) for rec in model.recommend(seen_items, top_n)]


def parse_arguments(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Recommend or rank items from exported item vectors",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/predict_cli.py models/item_vectors.joblib --seen 1234 4567
  python scripts/predict_cli.py models/item_vectors.csv --seen 1234 --top-n 5
  python scripts/predict_cli.py models/item_vectors.npz --seen 1234 --rank 1 3 10
        """
    )

    parser.add_argument(
        "vectors_path",
        type=str,
        help="Item vectors file (.joblib, .pkl, .npz or .csv)"
    )

    parser.add_argument(
        "--seen",
        type=int,
        nargs="+",
        required=True,
        help="Items the user has already consumed"
    )

    parser.add_argument(
        "--top-n",
        type=int,
        default=DEFAULT_TOP_N,
        help=f"Number of recommendations to return (default: {DEFAULT_TOP_N})"
    )

    parser.add_argument(
        "--rank",
        type=int,
        nargs="+",
        default=None,
        metavar="ITEM",
        help="Rank these candidate items instead of recommending"
    )

    parser.add_argument(
        "--confidence",
        type=float,
        default=DEFAULT_CONFIDENCE,
        help=f"Confidence of each seen item (default: {DEFAULT_CONFIDENCE})"
    )

    parser.add_argument(
        "--regularization",
        type=float,
        default=DEFAULT_REGULARIZATION,
        help=f"Regularization (default: {DEFAULT_REGULARIZATION})"
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging"
    )

    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main CLI function."""
    args = parse_arguments(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.INFO)

    try:
        results = get_recommendations(
            vectors_path=args.vectors_path,
            seen_items=args.seen,
            top_n=args.top_n,
            candidates=args.rank,
            confidence=args.confidence,
            regularization=args.regularization,
        )
    except (FileNotFoundError, ValueError, VecRecException) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    mode = "Ranked candidates" if args.rank is not None else "Recommendations"
    print(f"\n{mode} for seen items {args.seen}:")
    for position, (item_id, score) in enumerate(results, start=1):
        print(f"  {position:>3}. item {item_id:<10} score {score: .6f}")
    print()

    return 0


if __name__ == "__main__":
    sys.exit(main())
