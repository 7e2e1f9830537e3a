"""vcfgeno: streaming VCF parser for per-sample haplotypes and genotype probabilities.

Typical use reads the header once and then decodes records line by line::

    with VCFReader.open("calls.vcf.gz") as reader:
        for line in iter(lambda: reader.read_line(haplotypes=True, geno_probs=True), None):
            ...

The CLI wraps the same API:

    vcfgeno decode --vcf calls.vcf.gz --out decoded.tsv.gz --haplotypes --geno-probs

"""

from __future__ import annotations

__all__ = [
    "__version__",
    "GT_MISSING",
    "GL_MISSING",
    "ParserSession",
    "VariantHeaderInfo",
    "VariantLine",
    "VariantRecord",
    "VCFFormatError",
    "VCFReader",
    "decode_geno_probs",
    "decode_haplotypes",
    "get_format_index",
    "read_header",
    "read_record",
]

__version__ = "0.1.0"

from .errors import VCFFormatError
from .genotypes import ParserSession, decode_geno_probs, decode_haplotypes
from .models import GL_MISSING, GT_MISSING, VariantHeaderInfo, VariantLine, VariantRecord
from .vcf import VCFReader, get_format_index, read_header, read_record
