from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List

from .config import AppConfig, load_config
from .graph.builder import build_graph
from .io.loader import load_graph
from .pipeline.csv_export import generate_factors_csv, generate_loops_csv, generate_matrix_csv
from .pipeline.factors import classify_factors
from .pipeline.loops import SORT_KEYS, compute_loops, filter_loops, polarity_first, sort_loops
from .types import ScoringCoefficients


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with a clean format for terminal output."""
    level = logging.DEBUG if verbose else logging.INFO

    # Create formatter with timestamp and level
    formatter = logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    # JSON goes to stdout, so log lines go to stderr
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = []  # Clear any existing handlers
    root_logger.addHandler(handler)


def _pick(value, default):
    return default if value is None else value


def cmd_loops(args: argparse.Namespace, cfg: AppConfig) -> int:
    logger = logging.getLogger(__name__)
    try:
        graph = load_graph(Path(args.graph))
    except (FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        return 1

    coefficients = ScoringCoefficients(
        composite=_pick(args.coef_composite, cfg.coefficients.composite),
        steer=_pick(args.coef_steer, cfg.coefficients.steer),
        independence=_pick(args.coef_independence, cfg.coefficients.independence),
    )
    steering = args.steering if args.steering else graph.steering_factors

    analysis = compute_loops(
        graph.nodes,
        graph.edges,
        alpha=_pick(args.alpha, cfg.alpha),
        steering_factors=steering,
        coefficients=coefficients,
        use_adjusted_independence=args.adjusted_independence or cfg.use_adjusted_independence,
        max_len=_pick(args.max_len, cfg.max_len),
        top_k=_pick(args.top_k, cfg.top_k),
        min_length=_pick(args.min_length, cfg.min_loop_length),
    )

    loops = analysis.loops
    if args.filter:
        loops = filter_loops(loops, args.filter)
    if args.sort:
        loops = sort_loops(loops, args.sort, descending=not args.ascending)
    if args.polarity_first:
        loops = polarity_first(
            loops,
            "reinforcing" if args.polarity_first == "R" else "balancing",
            keep_order=bool(args.sort),
        )
    analysis = analysis.model_copy(update={"loops": loops})

    if args.csv:
        rows = generate_loops_csv(analysis, Path(args.csv))
        logger.info(f"Wrote {rows} loops to {args.csv}")

    for note in analysis.notes:
        logger.info(note)
    print(json.dumps(analysis.model_dump(mode="json"), indent=2, ensure_ascii=False))
    return 0


def cmd_factors(args: argparse.Namespace, cfg: AppConfig) -> int:
    logger = logging.getLogger(__name__)
    try:
        graph = load_graph(Path(args.graph))
    except (FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        return 1

    alpha = _pick(args.alpha, cfg.alpha)
    factors = classify_factors(graph.nodes, graph.edges, alpha=alpha)
    if args.csv:
        rows = generate_factors_csv(factors, Path(args.csv))
        logger.info(f"Wrote {rows} factors to {args.csv}")
    if args.matrix_csv:
        rows = generate_matrix_csv(build_graph(graph.nodes, graph.edges), Path(args.matrix_csv), alpha)
        logger.info(f"Wrote {rows}x{rows} dependency matrix to {args.matrix_csv}")
    print(json.dumps([f.model_dump(mode="json") for f in factors], indent=2, ensure_ascii=False))
    return 0


def cmd_serve(args: argparse.Namespace, cfg: AppConfig) -> int:
    from .server import run as run_server

    run_server(host=_pick(args.host, cfg.host), port=_pick(args.port, cfg.port), debug=args.debug)
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="cld", description="Causal loop diagram loop analysis")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="cmd", required=True)

    # cld loops
    p_loops = sub.add_parser("loops", help="Identify and rank feedback loops")
    p_loops.add_argument("--graph", required=True, help="Diagram snapshot (.json, .yml or .yaml)")
    p_loops.add_argument("--steering", nargs="*", metavar="NODE_ID", help="Steering factor ids (overrides the file)")
    p_loops.add_argument("--alpha", type=float, help="Impact weight in W = a*I + (1-a)*C")
    p_loops.add_argument("--max-len", type=int, help="Longest loop to search for")
    p_loops.add_argument("--top-k", type=int, help="Maximum number of loops to return")
    p_loops.add_argument("--min-length", type=int, help="Shortest loop to report (>= 2)")
    p_loops.add_argument("--coef-composite", type=float, help="Weight of the normalised composite value")
    p_loops.add_argument("--coef-steer", type=float, help="Weight of the normalised steering factor count")
    p_loops.add_argument("--coef-independence", type=float, help="Weight of the conditional independence value")
    p_loops.add_argument("--adjusted-independence", action="store_true",
        help="Use the length-adjusted overlap as the conditional independence value")
    p_loops.add_argument("--sort", choices=SORT_KEYS, help="Sort loops by this metric (descending)")
    p_loops.add_argument("--ascending", action="store_true", help="Sort ascending instead")
    p_loops.add_argument("--polarity-first", choices=["R", "B"], help="List reinforcing (R) or balancing (B) loops first")
    p_loops.add_argument("--filter", help="Keep loops containing a factor whose name matches")
    p_loops.add_argument("--csv", help="Also write the loops to this CSV file")
    p_loops.set_defaults(func=cmd_loops)

    # cld factors
    p_fac = sub.add_parser("factors", help="Classify factors by active/passive influence")
    p_fac.add_argument("--graph", required=True, help="Diagram snapshot (.json, .yml or .yaml)")
    p_fac.add_argument("--alpha", type=float, help="Impact weight in W = a*I + (1-a)*C")
    p_fac.add_argument("--csv", help="Also write the factor table to this CSV file")
    p_fac.add_argument("--matrix-csv", help="Also write the direct dependency matrix to this CSV file")
    p_fac.set_defaults(func=cmd_factors)

    # cld serve
    p_srv = sub.add_parser("serve", help="Serve the loop engine over HTTP")
    p_srv.add_argument("--host")
    p_srv.add_argument("--port", type=int)
    p_srv.add_argument("--debug", action="store_true")
    p_srv.set_defaults(func=cmd_serve)

    return p


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)
    return args.func(args, load_config())


if __name__ == "__main__":
    sys.exit(main())
