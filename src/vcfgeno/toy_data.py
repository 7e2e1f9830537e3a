from __future__ import annotations

import random
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pysam

from .utils import ensure_outdir, write_json

_TOY_SAMPLES = ["S1", "S2", "S3"]

Genotype = Tuple[Tuple[Optional[int], Optional[int]], bool]  # (alleles, phased)

# Includes unphased, missing and multi-allelic calls.
_TOY_RECORDS: List[Tuple[str, Tuple[str, ...], List[Genotype]]] = [
    ("A", ("G",), [((0, 0), True), ((0, 1), True), ((1, 1), True)]),
    ("C", ("T",), [((0, 1), True), ((1, 0), True), ((0, 0), True)]),
    ("T", ("C",), [((0, 1), False), ((0, 0), True), ((None, None), True)]),
    ("G", ("A", "T"), [((1, 1), True), ((1, 2), True), ((0, 1), True)]),
    ("G", ("GAT",), [((0, 0), True), ((0, 0), True), ((0, 1), True)]),
]


def _random_gl(
    rng: random.Random, alleles: Tuple[Optional[int], Optional[int]], n_alleles: int
) -> Optional[List[float]]:
    """GL values (Number=G) with the called genotype most likely."""
    if None in alleles:
        return None
    a, b = sorted(alleles)
    n_gl = n_alleles * (n_alleles + 1) // 2
    gl = [round(-rng.uniform(1.0, 5.0), 2) for _ in range(n_gl)]
    # VCF genotype ordering: index of (a, b) with a <= b is b*(b+1)/2 + a
    gl[b * (b + 1) // 2 + a] = round(-rng.uniform(0.0, 0.1), 2)
    return gl


def make_toy_data(*, outdir: str | Path, seed: int = 7) -> Dict[str, str]:
    """Write a tiny VCF with GT:GL:DP sample data for demos/tests.

    The outputs include:
    - toy.vcf (plain text)
    - toy.vcf.gz (+ .tbi)

    Returns
    -------
    dict
        Paths to the generated files.
    """
    outdir_p = ensure_outdir(outdir)
    rng = random.Random(seed)

    contig = "chr1"
    header = pysam.VariantHeader()
    header.add_meta("fileformat", "VCFv4.2")
    header.add_meta("source", "vcfgeno-toy")
    header.contigs.add(contig, length=10_000)
    header.formats.add("GT", number=1, type="String", description="Genotype")
    header.formats.add("GL", number="G", type="Float", description="Genotype likelihoods (log10)")
    header.formats.add("DP", number=1, type="Integer", description="Read depth")
    for name in _TOY_SAMPLES:
        header.add_sample(name)

    vcf_path = outdir_p / "toy.vcf"
    with pysam.VariantFile(str(vcf_path), "w", header=header) as vcf:
        for i, (ref, alts, genotypes) in enumerate(_TOY_RECORDS):
            pos0 = 100 * (i + 1) - 1
            rec = vcf.new_record(
                contig=contig,
                start=pos0,
                stop=pos0 + len(ref),
                alleles=(ref,) + alts,
                id=f"rs{i + 1}",
                qual=50,
                filter="PASS",
            )
            for name, (alleles, phased) in zip(_TOY_SAMPLES, genotypes):
                sample = rec.samples[name]
                sample["GT"] = alleles
                sample.phased = phased
                sample["GL"] = _random_gl(rng, alleles, 1 + len(alts))
                sample["DP"] = rng.randint(5, 60)
            vcf.write(rec)

    vcf_gz = outdir_p / "toy.vcf.gz"
    pysam.tabix_compress(str(vcf_path), str(vcf_gz), force=True)
    pysam.tabix_index(str(vcf_gz), preset="vcf", force=True)

    summary = {
        "vcf": str(vcf_path),
        "vcf_gz": str(vcf_gz),
        "outdir": str(outdir_p),
    }

    write_json(outdir_p / "toy_summary.json", summary)
    return summary
