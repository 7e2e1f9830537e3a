from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List

import matplotlib.pyplot as plt

logger = logging.getLogger(__name__)


def plot_genotype_classes(
    *,
    class_counts: Dict[str, int],
    out_png: str | Path,
    title: str = "Decoded genotypes",
) -> None:
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)

    labels = ["Hom-ref (0|0)", "Het (0|1)", "Hom-alt (1|1)", "Missing"]
    values = [
        int(class_counts.get("hom_ref", 0)),
        int(class_counts.get("het", 0)),
        int(class_counts.get("hom_alt", 0)),
        int(class_counts.get("missing", 0)),
    ]

    plt.figure()
    plt.bar(labels, values)
    plt.ylabel("Genotype count (all samples)")
    plt.title(title)
    plt.xticks(rotation=15, ha="right")
    plt.tight_layout()
    plt.savefig(out_png, dpi=160)
    plt.close()


def plot_het_prob_hist(
    *,
    bin_edges: List[float],
    counts: List[int],
    out_png: str | Path,
    title: str = "Heterozygous genotype probability",
) -> None:
    """Bar plot of a pre-binned histogram of P(het) across samples and records."""
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)

    if len(bin_edges) != len(counts) + 1:
        raise ValueError("bin_edges must have length len(counts)+1")

    widths = [bin_edges[i + 1] - bin_edges[i] for i in range(len(counts))]
    centers = [bin_edges[i] + widths[i] / 2.0 for i in range(len(counts))]

    plt.figure()
    plt.bar(centers, counts, width=widths, align="center")
    plt.xlabel("P(het)")
    plt.ylabel("Sample genotypes")
    plt.title(title)
    plt.tight_layout()
    plt.savefig(out_png, dpi=160)
    plt.close()
