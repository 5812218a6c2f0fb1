from .models import StatisticSnapshot


def _seconds(value: float | None, width: int = 11) -> str:
    if value is None:
        return f"{'n/a':>{width}} "
    return f"{value:{width}.5f}s"


def _percent(value: float | None) -> str:
    if value is None:
        return "   n/a %"
    return f"{value:6.2f} %"


def render_statistic_report(total: StatisticSnapshot, success: StatisticSnapshot) -> str:
    lines = ["", "======== response times statistic ========"]
    lines.append(f"Total requests: {total.count:5d}")
    lines.append(f"        lowest: {_seconds(total.min)}")
    lines.append(f"       highest: {_seconds(total.max)}")
    lines.append(f"          mean: {_seconds(total.mean)}")
    lines.append(f"       success: {success.count:5d} ~ {_percent(total.share(success.count))}")
    for name, c in total.bucket_counts.items():
        lines.append(f"{name:>14}: {c:5d} ~ {_percent(total.share(c))}")

    lines.append("")
    lines.append(f"Success requests: {success.count:5d}")
    lines.append(f"          lowest: {_seconds(success.min)}")
    lines.append(f"         highest: {_seconds(success.max)}")
    lines.append(f"            mean: {_seconds(success.mean)}")
    for name, c in success.bucket_counts.items():
        lines.append(f"{name:>16}: {c:5d} ~ {_percent(success.share(c))}")
    return "\n".join(lines)


def render_status_counts(status_counts: dict[int | None, int]) -> str:
    if not status_counts:
        return "No responses."
    lines = ["Status codes"]
    for status in sorted(status_counts, key=lambda s: (s is None, s or 0)):
        label = "failed" if status is None else str(status)
        lines.append(f"{label:>8}: {status_counts[status]:5d}")
    return "\n".join(lines)


def render_latency_histogram(latencies: list[float], bins: int = 20, width: int = 40) -> str:
    """Latency distribution in milliseconds, with a cumulative share per row."""
    if not latencies:
        return "No latency data."
    ms = sorted(v * 1000.0 for v in latencies)
    lo, hi = ms[0], ms[-1]
    if hi <= lo:
        return f"All {len(ms)} requests took {lo:.1f}ms"

    step = (hi - lo) / bins
    counts = [0] * bins
    for v in ms:
        counts[min(bins - 1, int((v - lo) / step))] += 1

    peak = max(counts)
    lines = [f"Latency distribution ({len(ms)} requests)"]
    seen = 0
    for i, c in enumerate(counts):
        seen += c
        bar = "#" * round(c / peak * width)
        lines.append(f"{lo + i * step:9.1f}ms |{bar:<{width}}| {c:5d} {seen * 100.0 / len(ms):6.2f}%")
    return "\n".join(lines)


def render_percentiles(snapshot: StatisticSnapshot, points=(0.50, 0.90, 0.95, 0.99)) -> str:
    if not snapshot.count:
        return "No percentiles."
    parts = [f"p{round(p * 100)}={snapshot.percentile(p):.4f}s" for p in points]
    return "Percentiles: " + " ".join(parts)
