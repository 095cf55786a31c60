from __future__ import annotations

import logging
from typing import Any, Dict

from flask import Flask, jsonify, request
from pydantic import ValidationError

from .config import AppConfig, load_config
from .pipeline.factors import classify_factors
from .pipeline.loops import SORT_KEYS, compute_loops, sort_loops
from .types import ScoringCoefficients

logger = logging.getLogger(__name__)


def _bad_request(message: str):
    return jsonify({"status": "error", "error": message}), 400


def _read_body() -> Dict[str, Any] | None:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return None
    if not isinstance(body.get("nodes", []), list) or not isinstance(body.get("edges", []), list):
        return None
    return body


def create_app(cfg: AppConfig | None = None) -> Flask:
    cfg = cfg or load_config()
    app = Flask(__name__)

    @app.route("/health")
    def health():
        return jsonify({"status": "ok"})

    @app.route("/loops", methods=["POST"])
    def loops_route():
        body = _read_body()
        if body is None:
            return _bad_request("Request body must be a JSON object with 'nodes' and 'edges' arrays")
        try:
            coefficients = ScoringCoefficients(**(body.get("coefficients") or cfg.coefficients.model_dump()))
            analysis = compute_loops(
                body.get("nodes", []),
                body.get("edges", []),
                alpha=float(body.get("alpha", cfg.alpha)),
                steering_factors=[str(s) for s in body.get("steering_factors", [])],
                coefficients=coefficients,
                use_adjusted_independence=bool(body.get("use_adjusted_independence", cfg.use_adjusted_independence)),
                max_len=int(body.get("max_len", cfg.max_len)),
                top_k=int(body.get("top_k", cfg.top_k)),
                min_length=int(body.get("min_length", cfg.min_loop_length)),
            )
        except (TypeError, ValueError, ValidationError) as e:
            return _bad_request(str(e))

        sort_key = body.get("sort")
        if sort_key:
            if sort_key not in SORT_KEYS:
                return _bad_request(f"Unknown sort key: {sort_key}")
            analysis = analysis.model_copy(update={"loops": sort_loops(analysis.loops, sort_key)})
        return jsonify({"status": "ok", "analysis": analysis.model_dump(mode="json")})

    @app.route("/factors", methods=["POST"])
    def factors_route():
        body = _read_body()
        if body is None:
            return _bad_request("Request body must be a JSON object with 'nodes' and 'edges' arrays")
        try:
            alpha = float(body.get("alpha", cfg.alpha))
        except (TypeError, ValueError) as e:
            return _bad_request(str(e))
        factors = classify_factors(body.get("nodes", []), body.get("edges", []), alpha=alpha)
        return jsonify({"status": "ok", "factors": [f.model_dump(mode="json") for f in factors]})

    return app


def run(host: str = "127.0.0.1", port: int = 5000, debug: bool = False) -> None:
    app = create_app()
    logger.info(f"Serving loop analysis on http://{host}:{port}")
    app.run(host=host, port=port, debug=debug)
