"""Decoding of per-sample GT and GL subfields into caller-owned arrays.

Both decoders take the raw sample text of one line (everything after the
FORMAT column) and split it themselves, so the same text can be decoded
twice in any order.

Haplotypes are stored two per sample as 0, 1 or ``GT_MISSING``; only
biallelic diploid calls are supported, so any other allele index turns both
alleles of that sample into ``GT_MISSING``.

Genotype probabilities are stored three per sample (hom-ref, het, hom-alt).
GL values are log10 likelihoods; they are exponentiated and renormalized so
each triple sums to one, which is the posterior under a uniform prior.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from .errors import VCFFormatError
from .format_index import get_format_index
from .models import FORMAT_NOT_FOUND, GL_MISSING, GT_MISSING

logger = logging.getLogger(__name__)

# Prefix matches, like scanf("%d|%d"): trailing text after the second allele is ignored.
_PHASED_RE = re.compile(r"\s*([+-]?\d+)\|\s*([+-]?\d+)")
_UNPHASED_RE = re.compile(r"\s*([+-]?\d+)/\s*([+-]?\d+)")

_SUPPORTED_ALLELES = frozenset((0, 1, GT_MISSING))


@dataclass
class ParserSession:
    """Per-stream state shared by successive decode calls.

    ``warned_unphased`` is set after the first unphased genotype is seen so
    the warning is only logged once for the session.
    """

    warned_unphased: bool = False
    unphased_seen: int = 0


def _prepare_out(out: Optional[np.ndarray], n: int, dtype: type, kind: type) -> np.ndarray:
    if out is None:
        return np.empty(n, dtype=dtype)
    if out.ndim != 1 or out.shape[0] != n:
        raise ValueError(f"Output buffer must be 1-D with length {n}; got shape {out.shape}")
    if not np.issubdtype(out.dtype, kind):
        raise ValueError(f"Output buffer must have a {kind.__name__} dtype; got {out.dtype}")
    return out


def parse_genotype(gt_str: str, session: ParserSession) -> Tuple[int, int]:
    """Parse one GT subfield into a pair of allele indices."""
    m = _PHASED_RE.match(gt_str)
    if m is None:
        m = _UNPHASED_RE.match(gt_str)
        if m is not None:
            session.unphased_seen += 1
            if not session.warned_unphased:
                logger.warning("some genotypes are unphased (delimited with '/' instead of '|')")
                session.warned_unphased = True
    if m is None:
        logger.warning("could not parse genotype string '%s'", gt_str)
        return GT_MISSING, GT_MISSING

    hap1 = int(m.group(1))
    hap2 = int(m.group(2))
    if hap1 not in _SUPPORTED_ALLELES or hap2 not in _SUPPORTED_ALLELES:
        # multi-allelic sites and copy number genotypes
        logger.debug("non-biallelic genotype '%s' set to missing", gt_str)
        return GT_MISSING, GT_MISSING
    return hap1, hap2


def decode_haplotypes(
    format_str: str,
    sample_text: str,
    n_samples: int,
    *,
    session: Optional[ParserSession] = None,
    out: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Decode the GT subfield of every sample into ``2 * n_samples`` alleles.

    Parameters
    ----------
    format_str:
        FORMAT column of the line, e.g. ``GT:GL:DP``.
    sample_text:
        Whitespace-separated sample columns of the line.
    n_samples:
        Sample count from the header.
    session:
        Holds the once-per-stream unphased warning flag. A fresh session is
        used when omitted.
    out:
        Optional 1-D signed-integer array of length ``2 * n_samples``
        filled in place.

    Raises
    ------
    VCFFormatError
        If FORMAT has no GT subfield or the number of decoded genotypes does
        not match ``n_samples``.
    """
    if session is None:
        session = ParserSession()

    gt_idx = get_format_index(format_str, "GT")
    if gt_idx == FORMAT_NOT_FOUND:
        raise VCFFormatError(
            f"VCF format string does not specify GT token, cannot obtain haplotypes: '{format_str}'"
        )

    expect_haps = 2 * n_samples
    haps = _prepare_out(out, expect_haps, np.int8, np.signedinteger)

    n_haps = 0
    for tok in sample_text.split():
        fields = tok.split(":")
        if gt_idx >= len(fields):
            continue
        hap1, hap2 = parse_genotype(fields[gt_idx], session)
        if n_haps + 2 > expect_haps:
            raise VCFFormatError("more genotypes per line than expected")
        haps[n_haps] = hap1
        haps[n_haps + 1] = hap2
        n_haps += 2

    if n_haps != expect_haps:
        raise VCFFormatError(
            f"expected {expect_haps} genotype values per line, but got {n_haps}"
        )
    return haps


def parse_likelihoods(gl_str: str) -> Tuple[float, float, float]:
    """Parse one GL subfield into (hom-ref, het, hom-alt) log10 likelihoods."""
    vals = gl_str.split(",")
    if len(vals) >= 3:
        try:
            return float(vals[0]), float(vals[1]), float(vals[2])
        except ValueError:
            pass
    if gl_str == ".":
        return GL_MISSING, GL_MISSING, GL_MISSING
    raise VCFFormatError(f"failed to parse genotype likelihoods from string '{gl_str}'")


def decode_geno_probs(
    format_str: str,
    sample_text: str,
    n_samples: int,
    *,
    out: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Decode the GL subfield of every sample into ``3 * n_samples`` probabilities.

    ``out`` must be a floating-point array when given. Triples whose
    likelihoods cannot be normalized (all ``-inf``, or overflowing) are
    written as NaN and reported with a warning.
    """
    gl_idx = get_format_index(format_str, "GL")
    if gl_idx == FORMAT_NOT_FOUND:
        raise VCFFormatError(
            f"VCF format string does not specify GL token, cannot obtain genotype probabilities: '{format_str}'"
        )

    expect_probs = 3 * n_samples
    probs_out = _prepare_out(out, expect_probs, np.float64, np.floating)

    rows: List[Tuple[float, float, float]] = []
    for tok in sample_text.split():
        fields = tok.split(":")
        if gl_idx >= len(fields):
            continue
        like = parse_likelihoods(fields[gl_idx])
        if 3 * (len(rows) + 1) > expect_probs:
            raise VCFFormatError("more genotype likelihoods per line than expected")
        rows.append(like)

    if 3 * len(rows) != expect_probs:
        raise VCFFormatError(
            f"expected {expect_probs} genotype likelihoods per line, but got {3 * len(rows)}"
        )
    if not rows:
        return probs_out

    log_like = np.asarray(rows, dtype=np.float64)
    with np.errstate(over="ignore", invalid="ignore", divide="ignore"):
        probs = np.power(10.0, log_like)
        prob_sum = probs.sum(axis=1, keepdims=True)
        probs = probs / prob_sum

    bad = ~np.isfinite(probs).all(axis=1)
    if bad.any():
        logger.warning(
            "could not normalize genotype likelihoods for %d sample(s); probabilities set to NaN",
            int(bad.sum()),
        )
        probs[bad] = np.nan

    probs_out[:] = probs.ravel()
    return probs_out
