"""
experiments/run_experiments.py

Experiment harness that loads the baseline config, applies scenario and
command-line overrides, runs several replications of the packet station,
and reports KPIs with confidence intervals. Bad numeric flags stop the
program with a usage message before any simulation state is built.
"""

from __future__ import annotations
import argparse, copy, logging, math, os, sys
from statistics import mean, stdev
from typing import Callable, Dict, List, Optional, Sequence

import yaml
from scipy.stats import t as student_t

try:
    # When executed as a module: python -m experiments.run_experiments
    from .scenarios import SCENARIOS
except ImportError:
    # When run as a script: python experiments/run_experiments.py
    ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    if ROOT not in sys.path:
        sys.path.insert(0, ROOT)
    from experiments.scenarios import SCENARIOS

from pktsim.analytical import md1
from pktsim.simulation import SimulationConfig, run_replications

logger = logging.getLogger(__name__)

# Shipped as package data next to this module
DEFAULT_CONFIG = os.path.join(os.path.dirname(os.path.abspath(__file__)), "baseline.yaml")
DEFAULT_OUT_DIR = "output"

def load_cfg(path: Optional[str] = None) -> Dict:
    with open(path or DEFAULT_CONFIG, "r") as f:
        return yaml.safe_load(f) or {}

def apply_overrides(cfg: Dict, overrides: Dict) -> Dict:
    """Apply scenario overrides (recursive merge) on top of the base config."""
    new = copy.deepcopy(cfg)

    def _merge(dst: Dict, src: Dict):
        for key, val in src.items():
            if isinstance(val, dict) and isinstance(dst.get(key), dict):
                _merge(dst[key], val)
            else:
                dst[key] = copy.deepcopy(val)

    _merge(new, overrides)
    return new

def mean_ci(values: List[float], confidence_level: float) -> tuple[float, float]:
    """Return (mean, half-width) using a t-distribution critical value."""
    if not values:
        return 0.0, 0.0
    mu = mean(values)
    n = len(values)
    if n < 2:
        return mu, 0.0
    level = min(max(confidence_level, 0.0), 0.999999)
    alpha = 1.0 - level
    tcrit = student_t.ppf(1 - alpha / 2.0, n - 1)
    half = tcrit * (stdev(values) / math.sqrt(n))
    if not math.isfinite(half):
        half = 0.0
    return mu, half

def series(results: List[Dict], extractor: Callable[[Dict], float]) -> List[float]:
    """Collect a numeric series from each replication result."""
    return [float(extractor(res)) for res in results]

def aggregate_time_series(results: List[Dict]) -> List[Dict[str, float]]:
    """
    Average the per-replication queue-length series point by point. Every
    replication of a scenario samples on the same tick grid.
    """
    runs = [res.get("time_series", []) for res in results]
    runs = [r for r in runs if r]
    if not runs:
        return []
    n = min(len(r) for r in runs)
    return [
        {
            "time_seconds": runs[0][i]["time_seconds"],
            "qlen": sum(r[i]["qlen"] for r in runs) / len(runs),
        }
        for i in range(n)
    ]

def plot_time_series(points: List[Dict[str, float]], warmup: float, scenario_name: str,
                     out_dir: str = DEFAULT_OUT_DIR) -> Optional[str]:
    """
    Persist a PNG of the mean queue length versus time, with the warm-up
    cutoff drawn as a vertical line. Relative out_dir resolves against the
    working directory.
    """
    if not points:
        return None
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt
    x = [pt["time_seconds"] for pt in points]
    y = [pt["qlen"] for pt in points]
    plt.figure(figsize=(9, 5))
    plt.plot(x, y, label="Queue length (mean over replications)", color="#2563eb")
    if warmup > 0:
        plt.axvline(warmup, color="#f59e0b", linestyle="--", label="Warm-up cutoff")
    plt.xlim(left=0)
    plt.xlabel("Time (seconds)")
    plt.ylabel("Packets waiting")
    plt.title(f"{scenario_name}: queue length")
    plt.legend()
    plt.grid(True, linestyle="--", alpha=0.4)
    os.makedirs(out_dir, exist_ok=True)
    safe_name = scenario_name.lower().replace(" ", "_")
    out_path = os.path.join(out_dir, f"{safe_name}_qlen.png")
    plt.tight_layout()
    plt.savefig(out_path, dpi=160)
    plt.close()
    return out_path

def _positive_float(text: str) -> float:
    try:
        val = float(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {text!r}")
    if not math.isfinite(val) or val <= 0:
        raise argparse.ArgumentTypeError(f"must be > 0: {text!r}")
    return val

def _non_negative_int(text: str) -> int:
    try:
        val = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {text!r}")
    if val < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0: {text!r}")
    return val

def _positive_int(text: str) -> int:
    val = _non_negative_int(text)
    if val == 0:
        raise argparse.ArgumentTypeError(f"must be >= 1: {text!r}")
    return val

def build_parser() -> argparse.ArgumentParser:
    names = [sc["name"] for sc in SCENARIOS]
    p = argparse.ArgumentParser(
        prog="pktsim",
        description="Tick-driven simulation of a single packet queue (M/G/1 style).",
    )
    p.add_argument("-a", "--avg", type=_positive_float, metavar="NUM",
                   help="average number of generated packets/s")
    p.add_argument("-l", "--len", type=_positive_int, metavar="NUM",
                   help="packet length; bits")
    p.add_argument("-c", "--stime", type=_positive_float, metavar="NUM",
                   help="service rate; bits/s")
    p.add_argument("-t", "--duration", type=_positive_float, metavar="SEC",
                   help="duration of each replication; seconds")
    p.add_argument("-b", "--buffer", type=_non_negative_int, metavar="NUM",
                   help="queue buffer limit in packets (0 = unbounded)")
    p.add_argument("-r", "--resolution", type=_positive_float, metavar="NUM",
                   help="ticks per second")
    p.add_argument("--arrivals", choices=["markov", "deterministic"],
                   help="interarrival process")
    p.add_argument("--seed", type=int, help="seed of the first replication")
    p.add_argument("-n", "--replications", type=_positive_int, metavar="NUM",
                   help="replications per scenario")
    p.add_argument("--config", metavar="PATH", default=DEFAULT_CONFIG,
                   help="YAML config (default: the bundled baseline.yaml)")
    p.add_argument("--scenario", choices=names + ["all"], default="baseline",
                   help="scenario to run, or 'all'")
    p.add_argument("--plot", action="store_true",
                   help="save a queue-length plot per scenario")
    p.add_argument("--out-dir", metavar="DIR", default=DEFAULT_OUT_DIR,
                   help="directory for plots (default: ./output)")
    p.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return p

def cli_overrides(args: argparse.Namespace) -> Dict:
    """Translate command-line flags into a config override dict."""
    out: Dict[str, Dict] = {}

    def _set(section: str, key: str, val):
        if val is not None:
            out.setdefault(section, {})[key] = val

    _set("arrivals", "rate", args.avg)
    _set("arrivals", "kind", args.arrivals)
    _set("packets", "size", args.len)
    _set("server", "service_rate", args.stime)
    _set("server", "buffer_limit", args.buffer)
    _set("sim", "duration", args.duration)
    _set("sim", "resolution", args.resolution)
    _set("sim", "seed", args.seed)
    return out

def report(name: str, sim_cfg: SimulationConfig, results: List[Dict], confidence: float):
    """Print the KPI block for one scenario."""
    level_pct = confidence * 100.0
    sojourn = mean_ci(series(results, lambda r: r["sojourn_mean"]), confidence)
    qlen = mean_ci(series(results, lambda r: r["qlen_mean"]), confidence)
    loss = mean_ci(series(results, lambda r: r["loss_probability"] * 100.0), confidence)
    idle = mean_ci(series(results, lambda r: r["idle_proportion"] * 100.0), confidence)
    generated = mean_ci(series(results, lambda r: r["packets_generated"]), confidence)
    processed = mean_ci(series(results, lambda r: r["packets_processed"]), confidence)
    dropped = mean_ci(series(results, lambda r: r["packets_dropped"]), confidence)
    leftover = mean_ci(series(results, lambda r: r["final_qlen"]), confidence)
    seeds = [r["seed"] for r in results]

    print(f"Scenario: {name} (replications={len(results)}, {level_pct:.1f}% CI, seeds {seeds[0]}-{seeds[-1]})")
    print(f"  Arrivals: {sim_cfg.arrivals} @ {sim_cfg.arrival_rate:g} packets/s, "
          f"{sim_cfg.packet_size} bits, service {sim_cfg.service_rate:g} bits/s, "
          f"buffer {sim_cfg.buffer_limit if sim_cfg.buffer_limit is not None else 'unbounded'}")
    print("  Sojourn time by seed:")
    for res in results:
        print(f"    seed {res['seed']}: {res['sojourn_mean'] * 1e3:.3f} ms "
              f"(stddev {res['sojourn_stddev'] * 1e3:.3f} ms)")
    print(f"  Mean sojourn time: {sojourn[0] * 1e3:.3f} ± {sojourn[1] * 1e3:.3f} ms")
    print(f"  Mean queue depth: {qlen[0]:.3f} ± {qlen[1]:.3f} packets")
    print(f"  Generated/run: {generated[0]:.1f} ± {generated[1]:.1f}")
    print(f"  Processed/run: {processed[0]:.1f} ± {processed[1]:.1f}")
    print(f"  Dropped/run: {dropped[0]:.1f} ± {dropped[1]:.1f}")
    print(f"  Loss probability: {loss[0]:.2f}% ± {loss[1]:.2f}%")
    print(f"  Server idle: {idle[0]:.2f}% ± {idle[1]:.2f}%")
    print(f"  Leftover queue: {leftover[0]:.1f} ± {leftover[1]:.1f}")
    if not all(r["conserved"] for r in results):
        print("  [warn] packet conservation violated in at least one replication")
    if sim_cfg.arrivals.strip().lower() == "markov":
        ref = md1(sim_cfg.arrival_rate, sim_cfg.packet_size, sim_cfg.service_rate)
        if ref.note:
            print(f"  M/D/1 reference: {ref.note}")
        else:
            print(f"  M/D/1 reference: W = {ref.W * 1e3:.3f} ms, Lq = {ref.Lq:.3f}, rho = {ref.utilization:.3f}")

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point: drive the selected scenarios and report KPIs."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        cfg = load_cfg(args.config)
    except (OSError, yaml.YAMLError) as exc:
        parser.error(f"cannot read config {args.config}: {exc}")
    exp_cfg = cfg.get("experiments", {}) or {}
    replications = args.replications or max(1, int(exp_cfg.get("replications", 1)))
    confidence = float(exp_cfg.get("confidence_level", 0.95))

    chosen = SCENARIOS if args.scenario == "all" else [s for s in SCENARIOS if s["name"] == args.scenario]
    overrides = cli_overrides(args)
    plan = []
    # Validate every scenario up front so bad input fails before any run
    for sc in chosen:
        sc_cfg = apply_overrides(apply_overrides(cfg, sc["overrides"]), overrides)
        try:
            sim_cfg = SimulationConfig.from_dict(sc_cfg).validate()
        except (TypeError, ValueError) as exc:
            parser.error(f"scenario {sc['name']}: {exc}")
        plan.append((sc["name"], sim_cfg))

    for name, sim_cfg in plan:
        logger.info("scenario %s: %d replications", name, replications)
        results = run_replications(sim_cfg, replications)
        report(name, sim_cfg, results, confidence)
        if args.plot:
            plot_path = plot_time_series(aggregate_time_series(results), sim_cfg.warmup, name,
                                         out_dir=args.out_dir)
            if plot_path:
                print(f"  Queue-length plot saved to: {plot_path}")
        print("-")
    return 0

if __name__ == "__main__":
    sys.exit(main())
