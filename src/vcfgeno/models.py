from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

GT_MISSING = -1

# log10(1/3): uniform likelihood used for a missing GL subfield ('.')
GL_MISSING = -0.477

FORMAT_NOT_FOUND = -1

VCF_FIX_HEADERS: Tuple[str, ...] = (
    "#CHROM",
    "POS",
    "ID",
    "REF",
    "ALT",
    "QUAL",
    "FILTER",
    "INFO",
    "FORMAT",
)

N_FIX_HEADERS = len(VCF_FIX_HEADERS)

# Longer REF/ALT text is truncated (with a warning) when stored on a record.
DEFAULT_MAX_ALLELE_LEN = 1000


@dataclass(frozen=True)
class VariantHeaderInfo:
    """Information derived from the VCF header, built once per stream.

    Attributes
    ----------
    n_meta_lines:
        Number of ``##`` metadata lines preceding the column header.
    n_samples:
        Number of sample columns (tokens in the ``#CHROM`` line minus 9).
    samples:
        Sample names from the ``#CHROM`` line. Only used for reporting.
    """

    n_meta_lines: int
    n_samples: int
    samples: Tuple[str, ...] = ()

    @property
    def n_header_lines(self) -> int:
        """Total header lines including the ``#CHROM`` line."""
        return self.n_meta_lines + 1


@dataclass(frozen=True)
class VariantRecord:
    """Fixed columns of one VCF data line plus its raw sample text.

    ``ref`` and ``alt`` may be truncated; ``ref_len`` and ``alt_len`` always
    hold the length of the allele text as it appeared in the file.
    """

    chrom: str
    pos: int
    id: str
    ref: str
    alt: str
    ref_len: int
    alt_len: int
    qual: str
    filter: str
    info: str
    format: str
    sample_text: str
    line_no: Optional[int] = None

    @property
    def truncated(self) -> bool:
        return self.ref_len != len(self.ref) or self.alt_len != len(self.alt)


@dataclass(frozen=True)
class VariantLine:
    """Result of :meth:`vcfgeno.vcf.VCFReader.read_line`."""

    record: VariantRecord
    haplotypes: Optional[np.ndarray] = None  # int8, 2 * n_samples
    geno_probs: Optional[np.ndarray] = None  # float64, 3 * n_samples
