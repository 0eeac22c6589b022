#!/usr/bin/env python3
"""
CLI for running property valuations.

Usage:
    python -m avm.cli sample
    python -m avm.cli estimate <dataset_json> --property-id <id>
    python -m avm.cli estimate <dataset_json> --manual '<json>'
    python -m avm.cli rental <dataset_json> --property-id <id> [--purchase-price N]

Examples:
    # Value the built-in Dubai Marina sample unit
    python -m avm.cli sample

    # Value a stored property from a dataset file
    python -m avm.cli estimate data/dubai.json --property-id DXB-MAR-0001

    # Value an ad hoc property against the same dataset
    python -m avm.cli estimate data/dubai.json --manual \\
        '{"community": "Dubai Marina", "property_type": "apartment", "bedrooms": 2, "area_sqft": 1250}'

The dataset is a JSON object with "properties" and (optionally)
"market_data" lists. AVM_DATA_FILE supplies a default path.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from .exceptions import ValuationError
from .market_data import InMemoryMarketDataProvider
from .property_store import InMemoryPropertyStore
from .sample_data import SAMPLE_TARGET_ID, create_sample_dataset
from .service import ValuationService
from .valuation_engine import RentalEstimate, Valuation
from utils.config import Config
from utils.formatting import format_currency, format_percent, format_price_per_sqft


logger = logging.getLogger(__name__)


def print_valuation(valuation: Valuation) -> None:
    """Print a human-readable valuation summary."""
    print(f"Valuation {valuation.id}")
    print(f"  Property:        {valuation.property_id or '(manual input)'}")
    print(f"  Estimated value: {format_currency(valuation.estimated_value_aed)}")
    print(
        f"  95% range:       {format_currency(valuation.confidence_low_aed)}"
        f" - {format_currency(valuation.confidence_high_aed)}"
    )
    print(f"  Confidence:      {valuation.confidence_level.value}")
    print(f"  Price per sqft:  {format_price_per_sqft(valuation.price_per_sqft)}")
    print(f"  Annual rent:     {format_currency(valuation.estimated_rent_aed)}")
    print(f"  Gross yield:     {format_percent(valuation.gross_yield_pct, 2)}")
    print(f"  MAE:             {format_percent(valuation.mae, 1)}")
    print(f"  Market trend:    {valuation.market_factors.trend.value}")
    print(f"  Comparables ({valuation.comparables_count}):")
    for comp in valuation.comparable_properties:
        print(
            f"    {comp.property_id:<16} similarity {comp.similarity_score:.3f}"
            f"  raw {format_currency(comp.raw_price)}"
            f"  adjusted {format_currency(comp.adjusted_price)}"
        )


def print_rental(estimate: RentalEstimate) -> None:
    """Print a human-readable rental estimate."""
    print(f"Rental estimate for {estimate.property_id}")
    print(f"  Annual rent:  {format_currency(estimate.annual_rent_aed)}")
    print(f"  Monthly rent: {format_currency(estimate.monthly_rent_aed)}")
    print(f"  Gross yield:  {format_percent(estimate.gross_yield_pct, 2)}")
    print(f"  Based on:     {format_currency(estimate.based_on_price_aed)}")


def load_service(dataset_path: str, config: Config) -> ValuationService:
    """Build a service over the properties and market data in a dataset file."""
    store = InMemoryPropertyStore.from_json(dataset_path)
    market = InMemoryMarketDataProvider.from_json(dataset_path)
    return ValuationService(store, market, config=config)


def _resolve_dataset(args, config: Config):
    dataset = args.dataset or config.data_file
    if not dataset:
        print("Error: no dataset given and AVM_DATA_FILE is not set", file=sys.stderr)
        return None
    if not Path(dataset).exists():
        print(f"Error: File not found: {dataset}", file=sys.stderr)
        return None
    return dataset


def _emit(result, as_json: bool, printer) -> None:
    if as_json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        printer(result)


def cmd_sample(args, config: Config):
    """Value the sample target against the built-in dataset."""
    store, market = create_sample_dataset()
    service = ValuationService(store, market, config=config)

    valuation = asyncio.run(service.estimate_value(SAMPLE_TARGET_ID, args.requested_by))
    _emit(valuation, args.json, print_valuation)
    return 0


def cmd_estimate(args, config: Config):
    """Value a stored property or a manual feature bundle."""
    dataset = _resolve_dataset(args, config)
    if dataset is None:
        return 1

    if args.manual:
        try:
            request = json.loads(args.manual)
        except json.JSONDecodeError as e:
            print(f"Error: Invalid JSON: {e}", file=sys.stderr)
            return 1
    elif args.property_id:
        request = args.property_id
    else:
        print("Error: one of --property-id or --manual is required", file=sys.stderr)
        return 1

    service = load_service(dataset, config)
    valuation = asyncio.run(service.estimate_value(request, args.requested_by))
    _emit(valuation, args.json, print_valuation)
    return 0


def cmd_rental(args, config: Config):
    """Estimate rent and gross yield for a stored property."""
    dataset = _resolve_dataset(args, config)
    if dataset is None:
        return 1

    service = load_service(dataset, config)
    estimate = asyncio.run(
        service.estimate_rental(
            args.property_id,
            purchase_price=args.purchase_price,
            requested_by=args.requested_by,
        )
    )
    _emit(estimate, args.json, print_rental)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Property AVM - comparative valuation for Dubai properties",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python -m avm.cli sample
    python -m avm.cli estimate data/dubai.json --property-id DXB-MAR-0001
    python -m avm.cli rental data/dubai.json --property-id DXB-MAR-0001 --purchase-price 2400000
        """,
    )
    parser.add_argument("--json", action="store_true", help="Print results as JSON")
    parser.add_argument(
        "--requested-by",
        default="cli",
        help="Requester recorded on the valuation (default: cli)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Sample command
    sample_parser = subparsers.add_parser(
        "sample",
        help="Value a sample Dubai Marina apartment against built-in data",
    )
    sample_parser.set_defaults(func=cmd_sample)

    # Estimate command
    estimate_parser = subparsers.add_parser(
        "estimate",
        help="Estimate the value of a stored or manual property",
    )
    estimate_parser.add_argument(
        "dataset",
        nargs="?",
        help="Path to JSON dataset (default: AVM_DATA_FILE)",
    )
    target = estimate_parser.add_mutually_exclusive_group()
    target.add_argument("--property-id", help="Id of a property in the dataset")
    target.add_argument("--manual", help="Manual feature bundle as a JSON object")
    estimate_parser.set_defaults(func=cmd_estimate)

    # Rental command
    rental_parser = subparsers.add_parser(
        "rental",
        help="Estimate rent and gross yield for a stored property",
    )
    rental_parser.add_argument(
        "dataset",
        nargs="?",
        help="Path to JSON dataset (default: AVM_DATA_FILE)",
    )
    rental_parser.add_argument("--property-id", required=True, help="Id of a property in the dataset")
    rental_parser.add_argument(
        "--purchase-price",
        type=float,
        help="Purchase price in AED (default: a fresh valuation)",
    )
    rental_parser.set_defaults(func=cmd_rental)

    return parser


def main(argv=None):
    """Main CLI entry point."""
    config = Config.load()
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    args = build_parser().parse_args(argv)
    try:
        return args.func(args, config)
    except ValuationError as e:
        logger.debug("Valuation failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
