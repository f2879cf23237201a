"""
Visualization utilities for simulated power analyses.
"""

from typing import Any, Dict, List, Sequence

import numpy as np

__all__ = []


def _create_power_plot(
    x_values: Sequence[Any],
    powers_by_term: Dict[str, List[float]],
    first_achieved: Dict[str, Any],
    terms: List[str],
    target_power: float,
    title: str,
    xlabel: str = "Sample Size",
):
    """Create a parameter vs. power line plot with achievement markers.

    Draws one line per term, a horizontal dashed line at the target power,
    and annotates the first x value that reaches the target.

    Args:
        x_values: X-axis values (sorted).
        powers_by_term: Mapping of line label to power percentages.
        first_achieved: Mapping of line label to the first x value that
            achieved target power (``-1`` if not achieved).
        terms: Ordered list of line labels to plot.
        target_power: Target power percentage (drawn as reference line).
        title: Plot title.
        xlabel: X-axis label.

    Raises:
        ImportError: If ``matplotlib`` is not installed.
    """
    try:
        import matplotlib.pyplot as plt
    except ImportError:
        raise ImportError("matplotlib required for plotting: pip install matplotlib") from None

    x_values = list(x_values)
    fig, ax = plt.subplots(figsize=(10, 6))
    colors = plt.get_cmap("Set1")(np.linspace(0, 1, max(len(terms), 1)))

    for i, term in enumerate(terms):
        powers = powers_by_term[term]
        ax.plot(x_values, powers, "o-", color=colors[i], label=term, linewidth=2, markersize=4)

        achieved = first_achieved.get(term, -1)
        if achieved != -1:
            achieved_power = powers[x_values.index(achieved)]
            ax.plot(
                achieved,
                achieved_power,
                "s",
                color=colors[i],
                markersize=10,
                markerfacecolor="white",
                markeredgewidth=2,
                markeredgecolor=colors[i],
            )
            ax.annotate(
                f"{xlabel}={achieved}",
                xy=(achieved, achieved_power),
                xytext=(10, 10),
                textcoords="offset points",
                bbox={"boxstyle": "round,pad=0.3", "facecolor": colors[i], "alpha": 0.3},
                arrowprops={"arrowstyle": "->", "color": colors[i]},
            )

    ax.axhline(
        y=target_power,
        color="red",
        linestyle="--",
        linewidth=2,
        label=f"Target Power ({target_power}%)",
    )

    ax.set_title(title, fontsize=14, fontweight="bold")
    ax.set_xlabel(xlabel, fontsize=12)
    ax.set_ylabel("Power (%)", fontsize=12)
    ax.grid(True, alpha=0.3)
    ax.legend(bbox_to_anchor=(1.05, 1), loc="upper left")
    ax.set_ylim(0, 105)

    plt.tight_layout()
    plt.show()
    return fig
