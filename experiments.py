"""
Shannon-Fano coding experiments

Measures how close Shannon-Fano codes get to the entropy bound on synthetic data,
how much the dictionary and bit count header cost, and how build/encode/decode time scales

Outputs (in --outdir):
  - metrics.csv     (raw row per run per configuration)
  - summary.csv     (grouped mean/stdev)
  - *.png           (charts)

How to run:
  python experiments.py --outdir results --runs 5
  python experiments.py --outdir results --runs 3 --exp1_size_kb 64 --exp2_max_mb 1
  python experiments.py --outdir results --exp1_generators uniform256,zipf128,single
"""

from __future__ import annotations

import argparse
import bisect
import csv
import random
import statistics
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Sequence, Tuple

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

import codebook as cb
import shannon_fano as sf


# Utilities

def now_ns() -> int:
    return time.perf_counter_ns()

def ns_to_ms(ns: int) -> float:
    return ns / 1_000_000.0

def safe_mkdir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)

def parse_csv_list(s: str) -> List[str]:
    return [x.strip() for x in s.split(",") if x.strip()]


# Synthetic dataset generators

def sample_weighted(symbols: Sequence[int], weights: Sequence[float], size: int, rng: random.Random) -> bytes:
    cdf = []
    acc = 0.0
    for w in weights:
        acc += w
        cdf.append(acc)
    top = len(symbols) - 1
    return bytes(symbols[min(bisect.bisect_left(cdf, rng.random() * acc), top)] for _ in range(size))

def gen_uniform(size: int, alphabet: int = 256, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    return bytes(rng.randrange(0, alphabet) for _ in range(size))

def gen_repetitive(size: int, dominant: int = ord('A'), dom_frac: float = 0.90, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    others = [i for i in range(256) if i != dominant]
    return bytes(dominant if rng.random() < dom_frac else rng.choice(others) for _ in range(size))

def gen_zipf_like(size: int, alphabet: int = 128, s: float = 1.2, seed: int = 0) -> bytes:
    weights = [1.0 / ((i + 1) ** s) for i in range(alphabet)]
    return sample_weighted(list(range(alphabet)), weights, size, random.Random(seed))

def gen_english_like(size: int, seed: int = 0) -> bytes:
    chars = " etaoinshrdlcumwfgypbvkjxqETAOINSHRDLCUMWFGYPBVKJXQ\n"
    weights = []
    for ch in chars:
        if ch == ' ':
            weights.append(13.0)
        elif ch == '\n':
            weights.append(1.5)
        elif ch.lower() in "etaoinshrdlu":
            weights.append(6.0)
        elif ch.lower() in "cmfwgypbvk":
            weights.append(2.5)
        else:
            weights.append(1.2)
    return sample_weighted([ord(ch) for ch in chars], weights, size, random.Random(seed))

def gen_single(size: int, seed: int = 0) -> bytes:
    return bytes([random.Random(seed).randrange(256)]) * size

GENERATOR_REGISTRY: Dict[str, Callable[[int, int], bytes]] = {
    "uniform256": lambda size, seed: gen_uniform(size, alphabet=256, seed=seed),
    "uniform100": lambda size, seed: gen_uniform(size, alphabet=100, seed=seed),
    "zipf128": lambda size, seed: gen_zipf_like(size, alphabet=128, s=1.2, seed=seed),
    "zipf16": lambda size, seed: gen_zipf_like(size, alphabet=16, s=1.5, seed=seed),
    "repetitive90": lambda size, seed: gen_repetitive(size, dominant=ord('A'), dom_frac=0.90, seed=seed),
    "repetitive99": lambda size, seed: gen_repetitive(size, dominant=ord('A'), dom_frac=0.99, seed=seed),
    "english_like": lambda size, seed: gen_english_like(size, seed=seed),
    "single": lambda size, seed: gen_single(size, seed=seed),
}

def generate_dataset(name: str, size_bytes: int, seed: int) -> Tuple[str, bytes]:
    """
    Unknown dataset names fall back to uniform256 so one typo does not lose a whole run
    """
    fn = GENERATOR_REGISTRY.get(name)
    if fn is None:
        return f"{name}_fallback_uniform256", gen_uniform(size_bytes, alphabet=256, seed=seed)
    return name, fn(size_bytes, seed)


# Experiment runner

@dataclass
class MetricRow:
    exp_name: str
    dataset_name: str
    file_size_bytes: int
    run_id: int
    unique_symbols: int

    build_ms: float
    encode_ms: float
    decode_ms: float
    total_ms: float

    payload_bytes: int     # header + packed bits
    dictionary_bytes: int
    compression_ratio: float  # (payload + dictionary) / original

    entropy_bits: float       # per symbol
    mean_code_bits: float     # per symbol
    efficiency: float         # entropy / mean code length, 1.0 when both are 0
    max_code_bits: int
    correctness_ok: int  # 1 or 0


def run_one(data: bytes) -> MetricRow:
    t0 = now_ns()
    probabilities = sf.symbol_probabilities(data)
    codebook = sf.build_codebook(probabilities)
    t1 = now_ns()

    payload = sf.encode(data, codebook)
    t2 = now_ns()

    # Decode from the serialized dictionary, as a separate process would
    dict_blob = cb.dumps(codebook)
    decoded = sf.decode(cb.loads(dict_blob), payload)
    t3 = now_ns()

    h = sf.entropy(probabilities)
    avg = sf.mean_code_length(codebook, sf.symbol_frequencies(data))
    efficiency = h / avg if avg > 0 else 1.0

    return MetricRow(
        exp_name="",
        dataset_name="",
        file_size_bytes=len(data),
        run_id=0,
        unique_symbols=len(codebook),
        build_ms=ns_to_ms(t1 - t0),
        encode_ms=ns_to_ms(t2 - t1),
        decode_ms=ns_to_ms(t3 - t2),
        total_ms=ns_to_ms(t3 - t0),
        payload_bytes=len(payload),
        dictionary_bytes=len(dict_blob),
        compression_ratio=(len(payload) + len(dict_blob)) / max(1, len(data)),
        entropy_bits=h,
        mean_code_bits=avg,
        efficiency=efficiency,
        max_code_bits=max((len(e.code) for e in codebook), default=0),
        correctness_ok=1 if decoded == data else 0,
    )


def write_csv(path: Path, rows: List[MetricRow]) -> None:
    fields = list(MetricRow.__dataclass_fields__.keys())
    with path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=fields)
        w.writeheader()
        for r in rows:
            w.writerow({k: getattr(r, k) for k in fields})


SUMMARY_METRICS = (
    "compression_ratio", "mean_code_bits", "entropy_bits", "efficiency",
    "build_ms", "encode_ms", "decode_ms", "total_ms",
)

def mean_stdev(vals: List[float]) -> Tuple[float, float]:
    if len(vals) == 1:
        return vals[0], 0.0
    return statistics.mean(vals), statistics.stdev(vals)

def group_summary(rows: List[MetricRow], out_path: Path) -> None:
    """
    Group by exp_name, dataset_name, file_size_bytes and write mean/stdev per metric
    """
    key_to: Dict[Tuple[str, str, int], List[MetricRow]] = {}
    for r in rows:
        key_to.setdefault((r.exp_name, r.dataset_name, r.file_size_bytes), []).append(r)

    summary_fields = ["exp_name", "dataset_name", "file_size_bytes", "n_runs"]
    for m in SUMMARY_METRICS:
        summary_fields += [f"{m}_mean", f"{m}_stdev"]
    summary_fields.append("correctness_ok_rate")

    with out_path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=summary_fields)
        w.writeheader()
        for (exp_name, dataset_name, size_b), items in sorted(key_to.items()):
            out = {
                "exp_name": exp_name,
                "dataset_name": dataset_name,
                "file_size_bytes": size_b,
                "n_runs": len(items),
                "correctness_ok_rate": sum(x.correctness_ok for x in items) / len(items),
            }
            for m in SUMMARY_METRICS:
                out[f"{m}_mean"], out[f"{m}_stdev"] = mean_stdev([getattr(x, m) for x in items])
            w.writerow(out)


# Plotting

def plot_experiment_1(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp1_distribution"]
    if not exp_rows:
        return

    datasets = sorted(set(r.dataset_name for r in exp_rows))

    def mean_for(dataset: str, field: str) -> float:
        vals = [getattr(r, field) for r in exp_rows if r.dataset_name == dataset]
        return statistics.mean(vals) if vals else float("nan")

    x = list(range(len(datasets)))
    width = 0.4

    plt.figure()
    plt.bar([i - width / 2 for i in x], [mean_for(d, "entropy_bits") for d in datasets], width, label="entropy")
    plt.bar([i + width / 2 for i in x], [mean_for(d, "mean_code_bits") for d in datasets], width, label="Shannon-Fano")
    plt.xticks(x, datasets, rotation=20, ha="right")
    plt.ylabel("Bits per Symbol")
    plt.title("Experiment 1: Mean Code Length vs Entropy")
    plt.legend()
    plt.tight_layout()
    plt.savefig(outdir / "exp1_code_length.png", dpi=200)
    plt.close()

    plt.figure()
    plt.plot(x, [mean_for(d, "compression_ratio") for d in datasets], marker="o")
    plt.xticks(x, datasets, rotation=20, ha="right")
    plt.ylabel("(Payload + Dictionary) / Original Bytes")
    plt.title("Experiment 1: Compression Ratio by Distribution")
    plt.tight_layout()
    plt.savefig(outdir / "exp1_compression_ratio.png", dpi=200)
    plt.close()


def plot_experiment_2(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp2_size_scaling"]
    if not exp_rows:
        return

    for dist in sorted(set(r.dataset_name for r in exp_rows)):
        dist_rows = [r for r in exp_rows if r.dataset_name == dist]
        sizes = sorted(set(r.file_size_bytes for r in dist_rows))

        def mean_size(size: int, field: str) -> float:
            vals = [getattr(r, field) for r in dist_rows if r.file_size_bytes == size]
            return statistics.mean(vals) if vals else float("nan")

        plt.figure()
        for field, label in (("build_ms", "build"), ("encode_ms", "encode"), ("decode_ms", "decode")):
            plt.plot(sizes, [mean_size(s, field) for s in sizes], marker="o", label=label)
        plt.xscale("log", base=2)
        plt.xlabel("File Size (bytes)")
        plt.ylabel("Time (ms)")
        plt.title(f"Experiment 2: Runtime vs Size ({dist})")
        plt.legend()
        plt.tight_layout()
        plt.savefig(outdir / f"exp2_time_{dist}.png", dpi=200)
        plt.close()

        plt.figure()
        plt.plot(sizes, [mean_size(s, "compression_ratio") for s in sizes], marker="o")
        plt.xscale("log", base=2)
        plt.xlabel("File Size (bytes)")
        plt.ylabel("(Payload + Dictionary) / Original Bytes")
        plt.title(f"Experiment 2: Compression Ratio vs Size ({dist})")
        plt.tight_layout()
        plt.savefig(outdir / f"exp2_compression_ratio_{dist}.png", dpi=200)
        plt.close()


# Main

def main(argv: List[str] = None) -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("--outdir", type=str, default="results", help="Output directory for CSV and plots")
    ap.add_argument("--runs", type=int, default=5, help="Repetitions per configuration (>=3 recommended for timing)")
    ap.add_argument("--seed", type=int, default=123, help="Base random seed")
    ap.add_argument("--no_plots", action="store_true", help="Write CSV files only")

    ap.add_argument("--no_exp1", action="store_true", help="Disable experiment 1 (distribution)")
    ap.add_argument("--no_exp2", action="store_true", help="Disable experiment 2 (size scaling)")

    ap.add_argument("--exp1_size_kb", type=int, default=256, help="Experiment 1 fixed file size in KB")
    ap.add_argument("--exp1_generators", type=str,
                    default="uniform256,uniform100,zipf128,zipf16,repetitive90,repetitive99,english_like,single",
                    help="Comma-separated dataset generator names for experiment 1")

    ap.add_argument("--exp2_min_kb", type=int, default=1, help="Experiment 2 min size in KB (power-of-two growth)")
    ap.add_argument("--exp2_max_mb", type=int, default=2, help="Experiment 2 max size in MB (power-of-two growth)")
    ap.add_argument("--exp2_generators", type=str, default="uniform256,zipf128,english_like",
                    help="Comma-separated dataset generator names for experiment 2")

    args = ap.parse_args(argv)

    outdir = Path(args.outdir)
    safe_mkdir(outdir)

    rows: List[MetricRow] = []

    # Experiment 1: distributions (fixed size)
    if not args.no_exp1:
        fixed_size = max(1, args.exp1_size_kb) * 1024
        for gen_name in parse_csv_list(args.exp1_generators):
            for run_id in range(1, args.runs + 1):
                dataset_name, data = generate_dataset(gen_name, fixed_size, args.seed + run_id)
                row = run_one(data)
                row.exp_name = "exp1_distribution"
                row.dataset_name = dataset_name
                row.run_id = run_id
                rows.append(row)
            print(f"exp1 {gen_name}: done")

    # Experiment 2: size scaling (powers of 2)
    if not args.no_exp2:
        min_bytes = max(1, args.exp2_min_kb) * 1024
        max_bytes = max(1, args.exp2_max_mb) * 1024 * 1024

        sizes: List[int] = []
        s = min_bytes
        while s <= max_bytes:
            sizes.append(s)
            s *= 2

        for gen_name in parse_csv_list(args.exp2_generators):
            for size_b in sizes:
                for run_id in range(1, args.runs + 1):
                    dataset_name, data = generate_dataset(gen_name, size_b, args.seed + 10_000 + size_b + run_id)
                    row = run_one(data)
                    row.exp_name = "exp2_size_scaling"
                    row.dataset_name = dataset_name
                    row.run_id = run_id
                    rows.append(row)
            print(f"exp2 {gen_name}: done")

    metrics_csv = outdir / "metrics.csv"
    summary_csv = outdir / "summary.csv"
    write_csv(metrics_csv, rows)
    group_summary(rows, summary_csv)

    if not args.no_plots:
        plot_experiment_1(rows, outdir)
        plot_experiment_2(rows, outdir)

    ok_rate = sum(r.correctness_ok for r in rows) / max(1, len(rows))
    print(f"Wrote {len(rows)} rows to {metrics_csv}")
    print(f"Wrote grouped summary to {summary_csv}")
    print(f"Correctness rate across all runs: {ok_rate:.3f}")
    print("Charts saved in:", outdir.resolve())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
