#!/usr/bin/env python3
"""Production script: batch-price a book of European options under BSM + Hull-White.

Usage
-----
    python scripts/price_book.py --input portfolio.csv --output prices.csv
    python scripts/price_book.py --input portfolio.csv --output prices.json --greeks

Input CSV format
----------------
    id,S0,K,T,r,sigma,q,kind,a,sigma_r,rho
    1,100,110,0.5,0.02,0.20,0.0,call,0.1,0.01,0.3
    2,100,95,1.0,0.02,0.25,0.01,put,0.1,0.01,-0.2

Rows without ``a``/``sigma_r`` are priced with deterministic rates (plain BS).
Rows sharing (r, a, sigma_r) share one fitted Hull-White model.

Output
------
    CSV or JSON with columns: id, price, variance, delta, gamma, vega, theta, rho
"""

from __future__ import annotations
import argparse
import csv
import json
import logging
from pathlib import Path

from hybridpricer.core import OptionSpec
from hybridpricer.curves import FlatForward
from hybridpricer.engine import AnalyticBSMHullWhiteEngine
from hybridpricer.errors import PricingError
from hybridpricer.black_scholes_vec import bs_price_vec, bs_greeks_vec
from hybridpricer.short_rate import HullWhite

logger = logging.getLogger("price_book")

GREEK_KEYS = ("delta", "gamma", "vega", "theta", "rho")


def _blank(row: dict, key: str) -> bool:
    return not (row.get(key) or "").strip()


def _price_row(row: dict, compute_greeks: bool, models: dict) -> dict:
    """Price a single portfolio row and return result dict."""
    rid = row.get("id", "")
    S0 = float(row["S0"])
    K = float(row["K"])
    T = float(row["T"])
    r = float(row["r"])
    sigma = float(row["sigma"])
    q = float(row.get("q") or 0.0)
    kind = row["kind"].strip().lower()

    result = {"id": rid, "price": None, "variance": None}

    if _blank(row, "a") or _blank(row, "sigma_r"):
        result["price"] = float(bs_price_vec(S0, K, T, r, q, sigma, kind))
        result["variance"] = sigma * sigma * T
        if compute_greeks:
            g = bs_greeks_vec(S0, K, T, r, q, sigma, kind)
            for key in GREEK_KEYS:
                result[key] = float(g[key])
        return result

    a, sigma_r = float(row["a"]), float(row["sigma_r"])
    rho = float(row.get("rho") or 0.0)
    key = (r, a, sigma_r)
    if key not in models:
        models[key] = HullWhite(FlatForward(r), a=a, sigma=sigma_r)
    engine = AnalyticBSMHullWhiteEngine(rho, models[key])
    try:
        spec = OptionSpec.flat(S0, K, T, sigma, rate=r, dividend=q, kind=kind)
        res = engine.calculate(spec, greeks=compute_greeks)
    finally:
        engine.close()
    result["price"] = res.value
    result["variance"] = res.variance
    if compute_greeks:
        for key in GREEK_KEYS:
            result[key] = res.greeks[key]
    return result


def price_rows(rows: list, compute_greeks: bool = False) -> list:
    models: dict = {}
    results = []
    for i, row in enumerate(rows):
        try:
            results.append(_price_row(row, compute_greeks, models))
        except (PricingError, KeyError, ValueError) as e:
            logger.error("row %d (id=%s): %s", i, row.get("id", "?"), e)
            results.append({"id": row.get("id", ""), "price": None, "error": str(e)})
    return results


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Batch-price an options book under BSM + Hull-White."
    )
    parser.add_argument("--input", required=True, help="Path to portfolio CSV")
    parser.add_argument("--output", required=True, help="Output path (.csv or .json)")
    parser.add_argument("--greeks", action="store_true", help="Compute Greeks")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    with open(args.input, newline="") as f:
        rows = list(csv.DictReader(f))

    logger.info("pricing %d positions", len(rows))
    results = price_rows(rows, args.greeks)

    output_path = Path(args.output)
    if output_path.suffix == ".json":
        with open(output_path, "w") as f:
            json.dump(results, f, indent=2, default=str)
    else:
        if not results:
            logger.warning("no results to write")
            return
        fieldnames = list(results[0].keys())
        for r in results:
            for k in r:
                if k not in fieldnames:
                    fieldnames.append(k)
        with open(output_path, "w", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames, extrasaction="ignore")
            writer.writeheader()
            writer.writerows(results)

    priced = sum(1 for r in results if r.get("price") is not None)
    logger.info("results written to %s  priced: %d  failed: %d",
                args.output, priced, len(results) - priced)


if __name__ == "__main__":
    main()
