"""Header and record parsing for VCF text streams.

Parsing is forward-only: :func:`read_header` must consume the header before
:func:`read_record` is called for each data line. Fatal problems raise
:class:`~vcfgeno.errors.VCFFormatError`; recoverable ones are logged.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

import numpy as np

from .errors import VCFFormatError
from .format_index import get_format_index
from .genotypes import ParserSession, decode_geno_probs, decode_haplotypes
from .models import (
    DEFAULT_MAX_ALLELE_LEN,
    N_FIX_HEADERS,
    VCF_FIX_HEADERS,
    VariantHeaderInfo,
    VariantLine,
    VariantRecord,
)
from .source import LineSource

logger = logging.getLogger(__name__)

__all__ = ["VCFReader", "get_format_index", "read_header", "read_record"]

OutRequest = Union[bool, np.ndarray, None]


def read_header(source: LineSource) -> VariantHeaderInfo:
    """Consume header lines up to and including the ``#CHROM`` line."""
    n_meta = 0
    while True:
        line = source.readline()
        if line is None:
            raise VCFFormatError(
                "could not read header information from file",
                source=source.name,
                line_no=source.line_no,
            )

        if line.startswith("##"):
            n_meta += 1
            continue

        if line.startswith("#CHROM"):
            tokens = line.split()
            for i, (expected, got) in enumerate(zip(VCF_FIX_HEADERS, tokens)):
                if got != expected:
                    logger.warning("expected token %d to be %s but got '%s'", i, expected, got)
            if len(tokens) < N_FIX_HEADERS:
                raise VCFFormatError(
                    f"expected at least {N_FIX_HEADERS} column names in header line, "
                    f"got {len(tokens)}",
                    source=source.name,
                    line_no=source.line_no,
                )
            samples = tuple(tokens[N_FIX_HEADERS:])
            logger.debug("Read %d header lines; %d samples", n_meta + 1, len(samples))
            return VariantHeaderInfo(n_meta_lines=n_meta, n_samples=len(samples), samples=samples)

        raise VCFFormatError(
            "expected last line in header to start with #CHROM",
            source=source.name,
            line_no=source.line_no,
        )


def _truncate_allele(allele: str, max_len: int) -> str:
    if len(allele) <= max_len:
        return allele
    logger.warning("truncating long allele (%d bp) to %d bp", len(allele), max_len)
    return allele[:max_len]


def read_record(
    source: LineSource,
    *,
    max_allele_len: int = DEFAULT_MAX_ALLELE_LEN,
) -> Optional[VariantRecord]:
    """Parse the next data line, or return None at end of stream.

    Sample columns are left untokenized in ``VariantRecord.sample_text``.
    """
    line = source.readline()
    if line is None:
        return None

    parts = line.split(None, N_FIX_HEADERS)
    if len(parts) < N_FIX_HEADERS:
        raise VCFFormatError(
            f"expected at least {N_FIX_HEADERS} tokens per line, got {len(parts)}",
            source=source.name,
            line_no=source.line_no,
        )

    chrom, pos_str, var_id, ref, alt, qual, filt, info, fmt = parts[:N_FIX_HEADERS]
    try:
        pos = int(pos_str)
    except ValueError:
        raise VCFFormatError(
            f"could not parse position '{pos_str}' as an integer",
            source=source.name,
            line_no=source.line_no,
        ) from None

    sample_text = parts[N_FIX_HEADERS] if len(parts) > N_FIX_HEADERS else ""

    return VariantRecord(
        chrom=chrom,
        pos=pos,
        id=var_id,
        ref=_truncate_allele(ref, max_allele_len),
        alt=_truncate_allele(alt, max_allele_len),
        ref_len=len(ref),
        alt_len=len(alt),
        qual=qual,
        filter=filt,
        info=info,
        format=fmt,
        sample_text=sample_text,
        line_no=source.line_no,
    )


class VCFReader:
    """Streaming reader: header on construction, then one record per call.

    Parameters
    ----------
    source:
        Line source positioned at the start of the VCF.
    session:
        Decoder state (unphased warning flag). Readers sharing a session
        share the warning; by default each reader gets its own.
    max_allele_len:
        REF/ALT text longer than this is truncated on the record.
    """

    def __init__(
        self,
        source: LineSource,
        *,
        session: Optional[ParserSession] = None,
        max_allele_len: int = DEFAULT_MAX_ALLELE_LEN,
    ) -> None:
        if max_allele_len < 1:
            raise ValueError(f"max_allele_len must be positive, got {max_allele_len}")
        self.source = source
        self.session = session if session is not None else ParserSession()
        self.max_allele_len = max_allele_len
        self.header = read_header(source)

    @classmethod
    @contextmanager
    def open(cls, path: str | Path, **kwargs) -> Iterator["VCFReader"]:
        with LineSource.open(path) as source:
            yield cls(source, **kwargs)

    @property
    def n_samples(self) -> int:
        return self.header.n_samples

    def decode_record(
        self,
        record: VariantRecord,
        *,
        haplotypes: OutRequest = None,
        geno_probs: OutRequest = None,
    ) -> VariantLine:
        """Decode the requested sample data of an already parsed record.

        ``haplotypes`` / ``geno_probs`` may be ``True`` to allocate a new
        array, an existing array to fill in place, or None/False to skip.
        Decode errors carry the record's source name and line number.
        """
        haps_arr = None
        probs_arr = None
        try:
            if geno_probs is not None and geno_probs is not False:
                probs_arr = decode_geno_probs(
                    record.format,
                    record.sample_text,
                    self.n_samples,
                    out=None if geno_probs is True else geno_probs,
                )
            if haplotypes is not None and haplotypes is not False:
                haps_arr = decode_haplotypes(
                    record.format,
                    record.sample_text,
                    self.n_samples,
                    session=self.session,
                    out=None if haplotypes is True else haplotypes,
                )
        except VCFFormatError as err:
            if err.line_no is not None:
                raise
            raise VCFFormatError(err.message, source=self.source.name, line_no=record.line_no) from err

        return VariantLine(record=record, haplotypes=haps_arr, geno_probs=probs_arr)

    def read_line(
        self,
        *,
        haplotypes: OutRequest = None,
        geno_probs: OutRequest = None,
    ) -> Optional[VariantLine]:
        """Read the next record and decode the requested sample data.

        See :meth:`decode_record` for the meaning of ``haplotypes`` and
        ``geno_probs``. Returns None at end of stream.
        """
        record = read_record(self.source, max_allele_len=self.max_allele_len)
        if record is None:
            return None
        return self.decode_record(record, haplotypes=haplotypes, geno_probs=geno_probs)

    def __iter__(self) -> Iterator[VariantRecord]:
        while True:
            record = read_record(self.source, max_allele_len=self.max_allele_len)
            if record is None:
                return
            yield record
