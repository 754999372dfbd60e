"""Command line interface for familynet."""

from __future__ import annotations

import argparse
import json
import os
from typing import Sequence

from .api import load_session_dataset, run_pipeline
from .layout import LayoutConfig
from .loader import DataLoadError, load_dataset
from .resolver import LinkResolver
from .stats import calculate_family_stats, insights
from .utils import console, set_log_level


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="familynet", description="Family relationship graph layout")
    sub = parser.add_subparsers(dest="command", required=True)

    layout = sub.add_parser("layout", help="Resolve, classify and lay out a family dataset")
    layout.add_argument("--nodes", help="Path or URL of nodes.csv")
    layout.add_argument("--links", help="Path or URL of links.csv")
    layout.add_argument("--sample", action="store_true", help="Use the built-in sample dataset")
    layout.add_argument("--out", required=True, help="Output directory")
    layout.add_argument("--seed", type=int, help="Seed for reproducible layouts")
    layout.add_argument("--max-frames", type=int, default=600)
    layout.add_argument("--width", type=float, default=LayoutConfig.width)
    layout.add_argument("--height", type=float, default=LayoutConfig.height)
    layout.add_argument(
        "--log-level",
        default=os.getenv("FAMILYNET_LOG_LEVEL", "INFO"),
        help="Python logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    layout.add_argument(
        "--report-path",
        help="Optional JSON file to store resolver diagnostics",
    )

    stats = sub.add_parser("stats", help="Print summary statistics")
    stats.add_argument("--nodes", help="Path or URL of nodes.csv")
    stats.add_argument("--links", help="Path or URL of links.csv")
    stats.add_argument("--sample", action="store_true", help="Use the built-in sample dataset")

    validate = sub.add_parser("validate", help="Check referential integrity of a dataset")
    validate.add_argument("--nodes", required=True, help="Path or URL of nodes.csv")
    validate.add_argument("--links", required=True, help="Path or URL of links.csv")

    return parser


def run_layout(args: argparse.Namespace) -> None:
    set_log_level(args.log_level)
    if not args.sample and not args.nodes:
        raise SystemExit("Provide --nodes (and --links) or --sample")
    config = LayoutConfig(width=args.width, height=args.height)
    session = run_pipeline(
        nodes=args.nodes,
        links=args.links,
        out_dir=args.out,
        seed=args.seed,
        max_frames=args.max_frames,
        config=config,
        sample=args.sample,
    )
    resolution = session.resolution
    console.log(
        f"Layout completed with {len(session.people)} people and {len(resolution.edges)} canonical edges"
    )
    if resolution.dropped_references:
        console.log(f"[yellow]Dropped {resolution.dropped_references} edges with unknown endpoints[/yellow]")
    for diagnostic in resolution.diagnostics:
        console.log(f"[yellow]{diagnostic.message}[/yellow]")
    if args.report_path:
        with open(args.report_path, "w", encoding="utf-8") as fh:
            json.dump(resolution.to_dict(), fh, indent=2)
        console.log(f"Diagnostics report saved to {args.report_path}")


def run_stats(args: argparse.Namespace) -> None:
    dataset = load_session_dataset(args.nodes, args.links, sample=args.sample, fallback_to_sample=False)
    stats = calculate_family_stats(dataset.people)
    console.log("Stats", stats.to_dict())
    console.log("Insights", insights(dataset.people, dataset.edges))


def run_validate(nodes: str, links: str) -> None:
    try:
        dataset = load_dataset(nodes, links)
    except DataLoadError as exc:
        raise SystemExit(str(exc)) from exc
    result = LinkResolver(dataset.people).resolve(dataset.edges)
    console.log(f"People: {len(dataset.people)} Links: {len(dataset.edges)} Canonical: {len(result.edges)}")
    for diagnostic in result.diagnostics:
        console.log(f"[yellow]{diagnostic.message}[/yellow]")
    if result.dropped_references:
        raise SystemExit(f"{result.dropped_references} links reference missing people")
    console.log("Validation OK")


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command == "layout":
        run_layout(args)
    elif args.command == "stats":
        try:
            run_stats(args)
        except DataLoadError as exc:
            raise SystemExit(str(exc)) from exc
    elif args.command == "validate":
        run_validate(args.nodes, args.links)
    else:  # pragma: no cover
        parser.print_help()


if __name__ == "__main__":  # pragma: no cover
    main()
