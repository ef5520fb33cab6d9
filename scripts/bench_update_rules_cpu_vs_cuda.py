# scripts/bench_update_rules_cpu_vs_cuda.py
"""
Microbench: update-rule step latency (NumPy backend vs CuPy backend).

What it measures
----------------
- Per-variant latency of one `UpdateRule.apply` call over a fixed set of
  parameters, on CPU and (when available) on CUDA.
- Uses warmup iterations (not recorded), then repeats with median/p95.
- For CUDA, optionally synchronizes after each iteration so timings are accurate.

Notes
-----
- Gradients are refreshed from a device-resident copy before every step, so
  the measured time includes one buffer copy per parameter.
- Parameter shapes mimic a small MLP: weight/bias pairs given by ``--layers``.

Example
-------
python -O scripts/bench_update_rules_cpu_vs_cuda.py --kinds SGD NESTEROV ADAGRAD \
    --layers 784 512 10 --dtype float32 --warmup 20 --repeats 200 --sync_each_iter
"""

from __future__ import annotations

import argparse
import math
import statistics
import time
from dataclasses import dataclass
from typing import Callable, List, Sequence, Tuple

import numpy as np

import os
import sys

THIS_DIR = os.path.dirname(os.path.abspath(__file__))
ROOT_DIR = os.path.abspath(os.path.join(THIS_DIR, ".."))
SRC_DIR = os.path.join(ROOT_DIR, "src")
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from keysolver.domain import Device, DeviceNotSupportedError, UpdateRuleKind
from keysolver.infrastructure.backend import get_backend
from keysolver.infrastructure.net import Parameter
from keysolver.infrastructure.solver import OptimizerState, UpdateRule


def _cuda_backend(device: str, dtype: np.dtype):
    try:
        return get_backend(Device(device), dtype=dtype)
    except DeviceNotSupportedError as e:
        print(f"[WARN] {e}")
        return None


def _layer_shapes(layers: Sequence[int]) -> List[Tuple[int, ...]]:
    shapes: List[Tuple[int, ...]] = []
    for fan_in, fan_out in zip(layers[:-1], layers[1:]):
        shapes.append((fan_out, fan_in))
        shapes.append((fan_out,))
    return shapes


def _build(backend, kind: UpdateRuleKind, host_params, host_grads, args):
    params = [
        Parameter(
            f"p{i}",
            backend.from_host(data),
            backend.zeros(data.shape),
        )
        for i, data in enumerate(host_params)
    ]
    grads = [backend.from_host(g) for g in host_grads]
    rule = UpdateRule(
        kind=kind,
        momentum=args.momentum,
        delta=args.delta,
        rms_decay=args.rms_decay,
        weight_decay=args.weight_decay,
    )
    state = OptimizerState(backend, rule.kind, params)

    def step() -> None:
        for p, g in zip(params, grads):
            backend.copy(g, p.diff)
        rule.apply(backend, params, state, args.lr)

    return step, params


# ----------------------------
# Stats helpers
# ----------------------------
def _median(xs: Sequence[float]) -> float:
    return statistics.median(xs) if xs else float("nan")


def _p95(xs: Sequence[float]) -> float:
    if not xs:
        return float("nan")
    ys = sorted(xs)
    k = int(math.ceil(0.95 * len(ys))) - 1
    k = max(0, min(k, len(ys) - 1))
    return ys[k]


def _fmt(sec: float) -> str:
    if sec < 1e-3:
        return f"{sec * 1e6:8.1f} µs"
    return f"{sec * 1e3:8.3f} ms"


@dataclass
class RuleResult:
    name: str
    cpu_med: float
    cpu_p95: float
    gpu_med: float
    gpu_p95: float


# ----------------------------
# Bench core
# ----------------------------
def _time_step(
    fn: Callable[[], None],
    *,
    warmup: int,
    repeats: int,
    sync: Callable[[], None] | None,
) -> List[float]:
    for _ in range(warmup):
        fn()
        if sync is not None:
            sync()

    times: List[float] = []
    for _ in range(repeats):
        t0 = time.perf_counter()
        fn()
        if sync is not None:
            sync()
        t1 = time.perf_counter()
        times.append(t1 - t0)
    return times


def _sanity_check(cpu_backend, gpu_backend, cpu_params, gpu_params, name: str, dtype) -> None:
    atol = 1e-5 if dtype == np.float32 else 1e-12
    rtol = 1e-4 if dtype == np.float32 else 1e-10
    for p, q in zip(cpu_params, gpu_params):
        a = cpu_backend.to_host(p.diff)
        b = gpu_backend.to_host(q.diff)
        if not np.allclose(a, b, rtol=rtol, atol=atol):
            max_abs = float(np.max(np.abs(a - b)))
            raise AssertionError(f"[sanity] {name} mismatch on {p.name}: max_abs={max_abs}")


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--layers", nargs="+", type=int, default=[784, 512, 256, 10])
    ap.add_argument("--dtype", choices=["float32", "float64"], default="float32")
    ap.add_argument("--warmup", type=int, default=20)
    ap.add_argument("--repeats", type=int, default=200)
    ap.add_argument(
        "--sync_each_iter",
        action="store_true",
        help="Synchronize the CUDA device after each step",
    )
    ap.add_argument("--cuda_device", default="cuda:0")
    ap.add_argument(
        "--kinds",
        nargs="*",
        default=[k.value for k in UpdateRuleKind],
    )
    ap.add_argument("--lr", type=float, default=0.01)
    ap.add_argument("--momentum", type=float, default=0.9)
    ap.add_argument("--delta", type=float, default=1e-8)
    ap.add_argument("--rms_decay", type=float, default=0.99)
    ap.add_argument("--weight_decay", type=float, default=5e-4)
    ap.add_argument(
        "--sanity",
        action="store_true",
        help="Compare one step (CPU vs CUDA) per update rule",
    )
    args = ap.parse_args()

    dtype = np.float32 if args.dtype == "float32" else np.float64
    kinds = [UpdateRuleKind.parse(k) for k in args.kinds]
    shapes = _layer_shapes(args.layers)
    n_values = sum(int(np.prod(s)) for s in shapes)

    print("=" * 96)
    print(
        f"Update rules CPU vs CUDA bench | params={len(shapes)} values={n_values} dtype={np.dtype(dtype)} warmup={args.warmup} repeats={args.repeats} sync_each_iter={args.sync_each_iter}"
    )
    print("=" * 96)

    rng = np.random.default_rng(0)
    host_params = [rng.standard_normal(size=s).astype(dtype) * 0.05 for s in shapes]
    host_grads = [rng.standard_normal(size=s).astype(dtype) * 0.01 for s in shapes]

    cpu = get_backend(Device("cpu"), dtype=dtype)
    gpu = _cuda_backend(args.cuda_device, dtype)
    have_cuda = gpu is not None
    if not have_cuda:
        print("[WARN] CUDA not available; running CPU-only.")

    results: List[RuleResult] = []
    for kind in kinds:
        cpu_step, cpu_params = _build(cpu, kind, host_params, host_grads, args)
        cpu_times = _time_step(cpu_step, warmup=args.warmup, repeats=args.repeats, sync=None)

        if have_cuda:
            gpu_step, gpu_params = _build(gpu, kind, host_params, host_grads, args)
            gpu_times = _time_step(
                gpu_step,
                warmup=args.warmup,
                repeats=args.repeats,
                sync=gpu.synchronize if args.sync_each_iter else None,
            )
            gpu_med, gpu_p95 = _median(gpu_times), _p95(gpu_times)
        else:
            gpu_med, gpu_p95 = float("nan"), float("nan")

        if args.sanity and have_cuda:
            cpu_step, cpu_params = _build(cpu, kind, host_params, host_grads, args)
            gpu_step, gpu_params = _build(gpu, kind, host_params, host_grads, args)
            cpu_step()
            gpu_step()
            _sanity_check(cpu, gpu, cpu_params, gpu_params, kind.value, dtype)

        results.append(
            RuleResult(
                name=kind.value,
                cpu_med=_median(cpu_times),
                cpu_p95=_p95(cpu_times),
                gpu_med=gpu_med,
                gpu_p95=gpu_p95,
            )
        )

    print("\nResults (median / p95):")
    print("-" * 96)
    hdr = f"{'rule':12s} | {'cpu_med':>12s} {'cpu_p95':>12s} | {'gpu_med':>12s} {'gpu_p95':>12s} | {'speedup':>8s}"
    print(hdr)
    print("-" * 96)

    for r in results:
        if have_cuda and (r.gpu_med > 0):
            speedup_s = f"{r.cpu_med / r.gpu_med:7.2f}x"
        else:
            speedup_s = "   n/a"
        line = (
            f"{r.name:12s} | {_fmt(r.cpu_med):>12s} {_fmt(r.cpu_p95):>12s} | "
            f"{_fmt(r.gpu_med):>12s} {_fmt(r.gpu_p95):>12s} | {speedup_s:>8s}"
        )
        print(line)

    print("-" * 96)
    if args.sanity and have_cuda:
        print("Sanity: PASS (all selected update rules)")

    if have_cuda and not args.sync_each_iter:
        print(
            "\nNote: CUDA timings may be optimistic without --sync_each_iter (kernels are async)."
        )


if __name__ == "__main__":
    main()
