from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, TextIO

import numpy as np
from tqdm import tqdm

from . import __version__
from .errors import VCFFormatError
from .models import DEFAULT_MAX_ALLELE_LEN, VariantHeaderInfo, VariantLine
from .plotting import plot_genotype_classes, plot_het_prob_hist
from .report import render_report
from .summary import summarize_vcf
from .toy_data import make_toy_data
from .utils import ensure_outdir, format_float, open_textmaybe_gzip, write_json
from .vcf import VCFReader


def _setup_logging(verbosity: int, *, logfile: Optional[Path] = None) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    log_fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    logging.basicConfig(level=level, format=log_fmt, stream=sys.stderr)

    if logfile is not None:
        logfile.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(logfile)
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(log_fmt))
        logging.getLogger().addHandler(fh)


def _path_exists(p: str) -> str:
    if not Path(p).exists():
        raise argparse.ArgumentTypeError(f"Path does not exist: {p}")
    return p


def _positive_int(s: str) -> int:
    try:
        v = int(s)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected an integer, got: {s}") from None
    if v < 1:
        raise argparse.ArgumentTypeError(f"Expected a positive integer, got: {s}")
    return v


def _log_path(outdir: Path, name: str) -> Path:
    return outdir / "logs" / name


def _handle_error(err: Exception, *, log_path: Optional[Path] = None) -> int:
    if isinstance(err, VCFFormatError):
        msg = f"Malformed VCF: {err}"
    else:
        msg = f"{err.__class__.__name__}: {err}"

    sys.stderr.write(msg + "\n")
    if log_path is not None:
        sys.stderr.write(f"See log: {log_path}\n")
    return 2


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="vcfgeno",
        description=(
            "vcfgeno: streaming VCF parser that decodes per-sample haplotypes (GT) "
            "and normalized genotype probabilities (GL)."
        ),
    )
    p.add_argument("--version", action="version", version=f"vcfgeno {__version__}")
    p.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase logging verbosity (-v INFO, -vv DEBUG).",
    )

    sub = p.add_subparsers(dest="cmd", required=True)

    # -----------------
    # header
    # -----------------
    h = sub.add_parser("header", help="Print header information (sample count, header lines) as JSON.")
    h.add_argument("--vcf", required=True, type=_path_exists, help="Input VCF (.vcf/.vcf.gz).")

    # -----------------
    # decode
    # -----------------
    d = sub.add_parser(
        "decode",
        help="Decode haplotypes and/or genotype probabilities for every record into a TSV.",
    )
    d.add_argument("--vcf", required=True, type=_path_exists, help="Input VCF (.vcf/.vcf.gz).")
    d.add_argument("--out", required=True, help="Output TSV (gzip-compressed if it ends in .gz).")
    d.add_argument(
        "--haplotypes",
        action="store_true",
        help="Decode GT into two allele indices per sample (0, 1, or -1 for missing).",
    )
    d.add_argument(
        "--geno-probs",
        action="store_true",
        help="Decode GL into P(hom-ref), P(het), P(hom-alt) per sample.",
    )
    d.add_argument(
        "--max-records",
        type=_positive_int,
        default=None,
        help="Stop after this many records.",
    )
    d.add_argument(
        "--max-allele-len",
        type=_positive_int,
        default=DEFAULT_MAX_ALLELE_LEN,
        help="Truncate REF/ALT text longer than this (a warning is logged).",
    )
    d.add_argument("--log", default=None, help="Also write log messages to this file.")
    d.add_argument("--progress", action="store_true", help="Show a progress bar.")

    # -----------------
    # summarize
    # -----------------
    s = sub.add_parser(
        "summarize",
        help="Summarize decoded genotypes and probabilities into JSON, plots and an HTML report.",
    )
    s.add_argument("--vcf", required=True, type=_path_exists, help="Input VCF (.vcf/.vcf.gz).")
    s.add_argument("--outdir", required=True, help="Output directory.")
    s.add_argument("--max-records", type=_positive_int, default=None, help="Stop after this many records.")
    s.add_argument(
        "--max-allele-len",
        type=_positive_int,
        default=DEFAULT_MAX_ALLELE_LEN,
        help="Truncate REF/ALT text longer than this (a warning is logged).",
    )
    s.add_argument("--progress", action="store_true", help="Show a progress bar.")

    # -----------------
    # make-toy-data
    # -----------------
    t = sub.add_parser("make-toy-data", help="Write a tiny GT:GL VCF for demos/tests.")
    t.add_argument("--outdir", required=True, help="Output directory for toy data.")

    return p


def cmd_header(args: argparse.Namespace) -> int:
    _setup_logging(args.verbose)
    try:
        with VCFReader.open(args.vcf) as reader:
            header = reader.header
        print(
            json.dumps(
                {
                    "vcf": args.vcf,
                    "n_header_lines": header.n_header_lines,
                    "n_meta_lines": header.n_meta_lines,
                    "n_samples": header.n_samples,
                    "samples": list(header.samples),
                },
                indent=2,
            )
        )
        return 0
    except Exception as e:
        return _handle_error(e)


def _decode_columns(header: VariantHeaderInfo, *, haplotypes: bool, geno_probs: bool) -> List[str]:
    cols = ["CHROM", "POS", "ID", "REF", "ALT"]
    if haplotypes:
        for name in header.samples:
            cols.extend([f"{name}.hap1", f"{name}.hap2"])
    if geno_probs:
        for name in header.samples:
            cols.extend([f"{name}.p_hom_ref", f"{name}.p_het", f"{name}.p_hom_alt"])
    return cols


def _write_decoded(out: TextIO, line: VariantLine) -> None:
    rec = line.record
    row = [rec.chrom, str(rec.pos), rec.id, rec.ref, rec.alt]
    if line.haplotypes is not None:
        row.extend(str(int(x)) for x in line.haplotypes)
    if line.geno_probs is not None:
        row.extend(format_float(float(x)) for x in line.geno_probs)
    out.write("\t".join(row) + "\n")


def cmd_decode(args: argparse.Namespace) -> int:
    log_path = Path(args.log) if args.log else None
    _setup_logging(args.verbose, logfile=log_path)
    logger = logging.getLogger("vcfgeno")

    if not (args.haplotypes or args.geno_probs):
        return _handle_error(ValueError("Nothing to decode: pass --haplotypes and/or --geno-probs"))

    out_path = Path(args.out)
    out_opened = False
    try:
        with VCFReader.open(args.vcf, max_allele_len=args.max_allele_len) as reader:
            n = reader.n_samples
            haps = np.empty(2 * n, dtype=np.int8) if args.haplotypes else None
            probs = np.empty(3 * n, dtype=np.float64) if args.geno_probs else None

            n_records = 0
            with open_textmaybe_gzip(args.out, "wt") as out, tqdm(
                unit="record", desc="Decoding records", disable=not args.progress
            ) as pbar:
                out_opened = True
                cols = _decode_columns(
                    reader.header, haplotypes=args.haplotypes, geno_probs=args.geno_probs
                )
                out.write("\t".join(cols) + "\n")
                while args.max_records is None or n_records < args.max_records:
                    line = reader.read_line(haplotypes=haps, geno_probs=probs)
                    if line is None:
                        break
                    _write_decoded(out, line)
                    n_records += 1
                    pbar.update(1)

        logger.info("Decoded %d records for %d samples -> %s", n_records, n, args.out)
        print(args.out)
        return 0
    except Exception as e:
        if out_opened and out_path.exists():
            out_path.unlink()
        return _handle_error(e, log_path=log_path)


def cmd_summarize(args: argparse.Namespace) -> int:
    outdir = ensure_outdir(Path(args.outdir).expanduser().resolve())
    log_path = _log_path(outdir, "summarize.log")
    _setup_logging(args.verbose, logfile=log_path)
    logger = logging.getLogger("vcfgeno")
    logger.info("vcfgeno %s", __version__)

    try:
        summary = summarize_vcf(
            args.vcf,
            max_records=args.max_records,
            max_allele_len=args.max_allele_len,
            progress=bool(args.progress),
        )
        write_json(outdir / "summary.json", summary)

        plots_dir = outdir / "plots"
        classes_png = plots_dir / "genotype_classes.png"
        het_png = plots_dir / "het_prob_hist.png"
        plot_genotype_classes(class_counts=summary["genotype_classes"], out_png=classes_png)
        plot_het_prob_hist(
            bin_edges=summary["het_prob_hist"]["bin_edges"],
            counts=summary["het_prob_hist"]["counts"],
            out_png=het_png,
        )

        report_path = render_report(
            outdir=outdir,
            version=__version__,
            summary=summary,
            plots={
                "genotype_classes": str(Path("plots") / classes_png.name),
                "het_prob_hist": str(Path("plots") / het_png.name),
            },
        )
        logger.info("Report written: %s", report_path)
        print(str(report_path))
        return 0
    except Exception as e:
        return _handle_error(e, log_path=log_path)


def cmd_make_toy_data(args: argparse.Namespace) -> int:
    _setup_logging(args.verbose)
    try:
        summary = make_toy_data(outdir=args.outdir)
    except Exception as e:
        return _handle_error(e)
    print(json.dumps(summary, indent=2))
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.cmd == "header":
        return cmd_header(args)
    if args.cmd == "decode":
        return cmd_decode(args)
    if args.cmd == "summarize":
        return cmd_summarize(args)
    if args.cmd == "make-toy-data":
        return cmd_make_toy_data(args)

    parser.error(f"Unknown command: {args.cmd}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
