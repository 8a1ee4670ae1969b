# config.py
# YAML pricing configuration with shallow command-line overrides.
#
#   market: {spot: 100, volatility: 0.2, rate: 0.02, dividend: 0.0}
#   model:  {mean_reversion: 0.1, sigma: 0.01}
#   engine: {correlation: 0.0}
#   option: {strike: 100, maturity: 1.0, kind: call}
from __future__ import annotations
import argparse, os, pathlib, typing as t
from dataclasses import dataclass
import yaml

from .core import OptionSpec
from .curves import FlatForward
from .engine import AnalyticBSMHullWhiteEngine
from .errors import ConfigurationError
from .short_rate import HullWhite

DEFAULTS: dict = {
    "market": {"spot": 100.0, "volatility": 0.2, "rate": 0.0, "dividend": 0.0},
    "model": {"mean_reversion": 0.1, "sigma": 0.01},
    "engine": {"correlation": 0.0},
    "option": {"strike": 100.0, "maturity": 1.0, "kind": "call"},
}

# cli option -> (section, key)
_OVERRIDES = {
    "spot": ("market", "spot"),
    "vol": ("market", "volatility"),
    "rate": ("market", "rate"),
    "dividend": ("market", "dividend"),
    "a": ("model", "mean_reversion"),
    "sigma_r": ("model", "sigma"),
    "rho": ("engine", "correlation"),
    "strike": ("option", "strike"),
    "maturity": ("option", "maturity"),
    "kind": ("option", "kind"),
}


@dataclass
class PricerConfig:
    raw: dict

    @classmethod
    def load(cls, path: t.Optional[str] = None,
             cli_overrides: t.Dict[str, t.Any] | None = None) -> "PricerConfig":
        data: dict = {}
        if path:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
            if not isinstance(data, dict):
                raise ConfigurationError(f"{path}: top level must be a mapping")
        for section, values in DEFAULTS.items():
            merged = dict(values)
            merged.update(data.get(section) or {})
            data[section] = merged
        cli_overrides = cli_overrides or {}
        for opt, (section, key) in _OVERRIDES.items():
            if cli_overrides.get(opt) is not None:
                data[section][key] = cli_overrides[opt]
        return cls(raw=data)

    def dump_to(self, path: str) -> None:
        pathlib.Path(os.path.dirname(path) or ".").mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.safe_dump(self.raw, f)

    def __getitem__(self, k): return self.raw[k]
    def get(self, k, d=None): return self.raw.get(k, d)

    # --- builders -------------------------------------------------------
    def option_spec(self) -> OptionSpec:
        m, o = self.raw["market"], self.raw["option"]
        return OptionSpec.flat(
            spot=float(m["spot"]), strike=float(o["strike"]),
            maturity=float(o["maturity"]), volatility=float(m["volatility"]),
            rate=float(m["rate"]), dividend=float(m["dividend"]),
            kind=str(o["kind"]).lower(),
        )

    def model(self) -> HullWhite:
        md = self.raw["model"]
        return HullWhite(FlatForward(float(self.raw["market"]["rate"])),
                         a=float(md["mean_reversion"]), sigma=float(md["sigma"]))

    def engine(self, model: HullWhite) -> AnalyticBSMHullWhiteEngine:
        return AnalyticBSMHullWhiteEngine(float(self.raw["engine"]["correlation"]), model)


def add_pricing_args(p: argparse.ArgumentParser) -> argparse.ArgumentParser:
    p.add_argument("--config", type=str, help="YAML file; flags below override it")
    p.add_argument("--spot", type=float)
    p.add_argument("--strike", type=float)
    p.add_argument("--maturity", type=float, help="years")
    p.add_argument("--vol", type=float, help="equity volatility")
    p.add_argument("--rate", type=float, help="flat cont. risk-free rate")
    p.add_argument("--dividend", type=float, help="flat cont. dividend yield")
    p.add_argument("--kind", type=str, choices=["call", "put"])
    return p
