"""Text formatting helpers for panel views."""

from collections.abc import Sequence

from memviz.models import DisplayRow, ProcessAggregate

SPARK_CHARS = "▁▂▃▄▅▆▇█"


def format_row(agg: ProcessAggregate) -> DisplayRow:
    """Render an aggregate into its five display fields."""
    return DisplayRow(
        user=agg.user,
        name=agg.name,
        count=f"{agg.count}x",
        cpu=f"{agg.cpu_percent:.1f}%",
        memory=f"{agg.memory_mib:.2f} MiB",
    )


def truncate(text: str, width: int) -> str:
    """Cut text to width, marking the cut with '..'."""
    if width <= 0:
        return ""
    if len(text) <= width:
        return text
    if width <= 2:
        return text[:width]
    return text[: width - 2] + ".."


def usage_bar(percent: float, width: int = 20) -> str:
    """Draw a horizontal bar filled in proportion to percent."""
    width = max(width, 0)
    filled = int(min(max(percent, 0.0), 100.0) / 100.0 * width)
    return "█" * filled + "░" * (width - filled)


def sparkline(values: Sequence[float], width: int, low: float = 0.0, high: float = 100.0) -> str:
    """
    Draw the newest values as a one-line block sparkline.

    Values are scaled between low and high; only the last width values are shown.
    """
    if width <= 0 or not values:
        return ""
    span = high - low
    chars = []
    for value in list(values)[-width:]:
        ratio = (value - low) / span if span > 0 else 0.0
        ratio = min(max(ratio, 0.0), 1.0)
        chars.append(SPARK_CHARS[round(ratio * (len(SPARK_CHARS) - 1))])
    return "".join(chars)
