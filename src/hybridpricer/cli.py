import argparse
import datetime as dt
import logging
import math
import sys
from dataclasses import replace

from .black_scholes_vec import bs_price_vec
from .calendars import Market, south_korea
from .config import PricerConfig, add_pricing_args
from .daycounters import day_counter, maturity_from_dates
from .errors import PricingError

def _date(s: str) -> dt.date:
    try:
        return dt.date.fromisoformat(s)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {s!r}") from None

def _overrides(args) -> dict:
    return {k: getattr(args, k, None) for k in
            ("spot", "vol", "rate", "dividend", "a", "sigma_r", "rho",
             "strike", "maturity", "kind")}

def _spec(args, cfg: PricerConfig):
    spec = cfg.option_spec()
    if args.expiry is not None:
        cal = south_korea(args.calendar) if args.calendar else None
        T = maturity_from_dates(args.valuation_date or dt.date.today(), args.expiry,
                                day_counter(args.day_counter), cal)
        spec = replace(spec, maturity=T)
    return spec

def cmd_price(args):
    cfg = PricerConfig.load(args.config, _overrides(args))
    spec = _spec(args, cfg)
    engine = cfg.engine(cfg.model())
    res = engine.calculate(spec, greeks=args.greeks)
    print(f"{res.value:.10f}")
    if args.greeks:
        for key, val in res.greeks.items():
            print(f"{key:>22s} {val:.10f}")
    if args.verbose:
        vol = math.sqrt(res.variance / spec.maturity) if spec.maturity > 0 else 0.0
        print(f"variance {res.variance:.10f}  forward {res.forward:.10f}  "
              f"discount {res.discount:.10f}  effective vol {vol:.10f}")

def cmd_bs(args):
    cfg = PricerConfig.load(args.config, _overrides(args))
    spec = _spec(args, cfg)
    px = bs_price_vec(spec.spot, spec.strike, spec.maturity,
                      spec.risk_free_curve.zero_rate(spec.maturity),
                      spec.dividend_curve.zero_rate(spec.maturity),
                      spec.volatility, spec.kind)
    print(f"{float(px):.10f}")

def cmd_calendar(args):
    cal = south_korea(args.market)
    if args.holidays:
        start, end = args.holidays
        for d in cal.holiday_list(start, end, include_weekends=args.weekends):
            print(f"{d.isoformat()}  {cal.holiday_name(d)}")
        return
    for d in args.dates:
        name = cal.holiday_name(d)
        print(f"{d.isoformat()}  {'business day' if name is None else 'holiday (' + name + ')'}")

def main(argv=None) -> int:
    p = argparse.ArgumentParser(prog="hybridpricer",
                                description="European options under BSM equity + Hull-White rates")
    p.add_argument("-v", "--verbose", action="store_true")
    sub = p.add_subparsers(dest="cmd", required=True)

    # Hybrid
    p_px = sub.add_parser("price", help="BSM + Hull-White analytic price")
    add_pricing_args(p_px)
    p_px.add_argument("--a", type=float, help="Hull-White mean reversion")
    p_px.add_argument("--sigma-r", dest="sigma_r", type=float, help="Hull-White volatility")
    p_px.add_argument("--rho", type=float, help="equity/short-rate correlation")
    p_px.add_argument("--greeks", action="store_true")
    p_px.set_defaults(func=cmd_price)

    # Plain BS
    p_bs = sub.add_parser("bs", help="Black-Scholes price (deterministic rates)")
    add_pricing_args(p_bs)
    p_bs.set_defaults(func=cmd_bs)

    for sp in (p_px, p_bs):
        sp.add_argument("--expiry", type=_date, help="expiry date, overrides --maturity")
        sp.add_argument("--valuation-date", dest="valuation_date", type=_date)
        sp.add_argument("--day-counter", dest="day_counter", default="act/365")
        sp.add_argument("--calendar", choices=[m.value for m in Market],
                        help="adjust expiry to a South Korean business day")

    # Calendar
    p_cal = sub.add_parser("calendar", help="South Korean business days")
    p_cal.add_argument("dates", nargs="*", type=_date)
    p_cal.add_argument("--market", default=Market.SETTLEMENT.value,
                       choices=[m.value for m in Market])
    p_cal.add_argument("--holidays", nargs=2, type=_date, metavar=("FROM", "TO"))
    p_cal.add_argument("--weekends", action="store_true", help="list weekends too")
    p_cal.set_defaults(func=cmd_calendar)

    args = p.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")
    try:
        args.func(args)
    except PricingError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    return 0

if __name__ == "__main__":
    sys.exit(main())
