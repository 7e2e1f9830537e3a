from __future__ import annotations

import logging
from itertools import islice
from pathlib import Path
from typing import Any, Dict, Optional

import numpy as np
from tqdm import tqdm

from .format_index import get_format_index
from .models import DEFAULT_MAX_ALLELE_LEN, FORMAT_NOT_FOUND
from .vcf import VCFReader

logger = logging.getLogger(__name__)

GENOTYPE_CLASSES = ("hom_ref", "het", "hom_alt", "missing")

_HET_PROB_BINS = 20


def classify_haplotypes(haps: np.ndarray) -> np.ndarray:
    """Map a ``2 * n`` haplotype array to per-sample class codes.

    Codes index into :data:`GENOTYPE_CLASSES`; a sample with either allele
    missing is classed as missing.
    """
    pairs = np.asarray(haps, dtype=np.int64).reshape(-1, 2)
    missing = (pairs < 0).any(axis=1)
    codes = pairs.sum(axis=1)
    codes[missing] = GENOTYPE_CLASSES.index("missing")
    return codes


def summarize_vcf(
    vcf_path: str | Path,
    *,
    max_records: Optional[int] = None,
    max_allele_len: int = DEFAULT_MAX_ALLELE_LEN,
    progress: bool = False,
) -> Dict[str, Any]:
    """Stream a VCF and collect genotype and genotype-probability summaries.

    Each record is decoded for whichever of GT/GL its FORMAT declares; records
    with neither are only counted. Malformed sample data is fatal as in
    :func:`~vcfgeno.genotypes.decode_haplotypes`.

    Returns
    -------
    dict
        JSON-serializable summary with per-sample genotype class counts, the
        mean genotype probabilities and a histogram of heterozygous
        probabilities.
    """
    counts: Dict[str, int] = {
        "records_total": 0,
        "records_with_gt": 0,
        "records_with_gl": 0,
        "records_without_sample_data": 0,
        "alleles_truncated": 0,
    }

    with VCFReader.open(vcf_path, max_allele_len=max_allele_len) as reader:
        header = reader.header
        n = header.n_samples
        class_counts = np.zeros((n, len(GENOTYPE_CLASSES)), dtype=np.int64)
        prob_sum = np.zeros(3, dtype=np.float64)
        n_prob_triples = 0
        het_edges = np.linspace(0.0, 1.0, _HET_PROB_BINS + 1)
        het_hist = np.zeros(_HET_PROB_BINS, dtype=np.int64)

        haps = np.empty(2 * n, dtype=np.int8)
        probs = np.empty(3 * n, dtype=np.float64)

        it = islice(reader, max_records)
        if progress:
            it = tqdm(it, unit="record", desc="Summarizing records", total=max_records)

        for record in it:
            counts["records_total"] += 1
            if record.truncated:
                counts["alleles_truncated"] += 1

            has_gt = get_format_index(record.format, "GT") != FORMAT_NOT_FOUND
            has_gl = get_format_index(record.format, "GL") != FORMAT_NOT_FOUND
            if not (has_gt or has_gl):
                counts["records_without_sample_data"] += 1
                continue

            reader.decode_record(
                record,
                haplotypes=haps if has_gt else None,
                geno_probs=probs if has_gl else None,
            )

            if has_gl:
                triples = probs.reshape(-1, 3)
                ok = np.isfinite(triples).all(axis=1)
                prob_sum += triples[ok].sum(axis=0)
                n_prob_triples += int(ok.sum())
                het_hist += np.histogram(triples[ok, 1], bins=het_edges)[0]
                counts["records_with_gl"] += 1

            if has_gt:
                codes = classify_haplotypes(haps)
                class_counts[np.arange(n), codes] += 1
                counts["records_with_gt"] += 1

        unphased = reader.session.unphased_seen

    sample_names = list(header.samples)
    per_sample = {
        name: {cls: int(class_counts[i, j]) for j, cls in enumerate(GENOTYPE_CLASSES)}
        for i, name in enumerate(sample_names)
    }
    totals = {cls: int(class_counts[:, j].sum()) for j, cls in enumerate(GENOTYPE_CLASSES)}

    mean_probs: Optional[Dict[str, float]] = None
    if n_prob_triples > 0:
        m = prob_sum / n_prob_triples
        mean_probs = {"hom_ref": float(m[0]), "het": float(m[1]), "hom_alt": float(m[2])}

    logger.info(
        "Summarized %d records (%d with GT, %d with GL) for %d samples",
        counts["records_total"],
        counts["records_with_gt"],
        counts["records_with_gl"],
        n,
    )

    return {
        "vcf": str(vcf_path),
        "n_header_lines": header.n_header_lines,
        "n_samples": n,
        "samples": sample_names,
        "counts": counts,
        "unphased_genotypes": int(unphased),
        "genotype_classes": totals,
        "per_sample": per_sample,
        "mean_geno_probs": mean_probs,
        "het_prob_hist": {
            "bin_edges": [float(x) for x in het_edges],
            "counts": [int(c) for c in het_hist],
        },
    }
