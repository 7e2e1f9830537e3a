from __future__ import annotations

import datetime as _dt
import logging
from pathlib import Path
from typing import Any, Dict

from jinja2 import Template

logger = logging.getLogger(__name__)


_REPORT_TEMPLATE = Template(
    """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>vcfgeno Report</title>
  <style>
    body { font-family: Arial, Helvetica, sans-serif; margin: 24px; }
    code, pre { background: #f6f8fa; padding: 2px 4px; border-radius: 4px; }
    h1, h2, h3 { margin-top: 1.2em; }
    table { border-collapse: collapse; margin-top: 0.6em; }
    th, td { border: 1px solid #ddd; padding: 8px; }
    th { background: #f2f2f2; text-align: left; }
    .grid { display: grid; grid-template-columns: 1fr 1fr; gap: 16px; }
    .card { border: 1px solid #ddd; border-radius: 8px; padding: 12px; }
    .small { color: #666; font-size: 0.9em; }
    img { max-width: 100%; height: auto; border: 1px solid #eee; border-radius: 6px; }
  </style>
</head>
<body>

<h1>vcfgeno Report</h1>
<p class="small">Generated: {{ generated_at }}</p>

<h2>Input</h2>
<table>
  <tr><th>VCF</th><td><code>{{ summary.vcf }}</code></td></tr>
  <tr><th>Header lines</th><td>{{ summary.n_header_lines }}</td></tr>
  <tr><th>Samples</th><td>{{ summary.n_samples }}</td></tr>
</table>

<h2>Records</h2>
<table>
  <tr><th>Records read</th><td>{{ summary.counts.records_total }}</td></tr>
  <tr><th>With GT</th><td>{{ summary.counts.records_with_gt }}</td></tr>
  <tr><th>With GL</th><td>{{ summary.counts.records_with_gl }}</td></tr>
  <tr><th>Without GT or GL</th><td>{{ summary.counts.records_without_sample_data }}</td></tr>
  <tr><th>Truncated alleles</th><td>{{ summary.counts.alleles_truncated }}</td></tr>
  <tr><th>Unphased genotypes</th><td>{{ summary.unphased_genotypes }}</td></tr>
</table>

<h2>Genotypes</h2>
<table>
  <tr><th>Sample</th><th>Hom-ref</th><th>Het</th><th>Hom-alt</th><th>Missing</th></tr>
  {% for name, c in summary.per_sample.items() %}
  <tr><td><code>{{ name }}</code></td><td>{{ c.hom_ref }}</td><td>{{ c.het }}</td><td>{{ c.hom_alt }}</td><td>{{ c.missing }}</td></tr>
  {% endfor %}
</table>

{% if summary.mean_geno_probs %}
<h2>Genotype probabilities</h2>
<table>
  <tr><th>Mean P(hom-ref)</th><td>{{ "%.4f"|format(summary.mean_geno_probs.hom_ref) }}</td></tr>
  <tr><th>Mean P(het)</th><td>{{ "%.4f"|format(summary.mean_geno_probs.het) }}</td></tr>
  <tr><th>Mean P(hom-alt)</th><td>{{ "%.4f"|format(summary.mean_geno_probs.hom_alt) }}</td></tr>
</table>
{% endif %}

<h2>Plots</h2>
<div class="grid">
  <div class="card">
    <h3>Genotype classes</h3>
    <img src="{{ plots.genotype_classes }}" alt="genotype classes">
  </div>
  <div class="card">
    <h3>P(het) distribution</h3>
    <img src="{{ plots.het_prob_hist }}" alt="heterozygous probability histogram">
  </div>
</div>

<h2>Notes</h2>
<ul>
  <li>Genotypes with an allele other than 0 or 1 (multi-allelic, CNV) are counted as missing.</li>
  <li>Probabilities are GL likelihoods renormalized to sum to one (uniform prior); GL "." is 1/3 each.</li>
</ul>

<hr>
<p class="small">vcfgeno {{ version }}</p>
</body>
</html>"""
)


def render_report(
    *,
    outdir: str | Path,
    version: str,
    summary: Dict[str, Any],
    plots: Dict[str, str],
) -> Path:
    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)

    html = _REPORT_TEMPLATE.render(
        generated_at=_dt.datetime.now().isoformat(timespec="seconds"),
        version=version,
        summary=summary,
        plots=plots,
    )

    out_path = outdir / "report.html"
    out_path.write_text(html, encoding="utf-8")
    logger.debug("Wrote %s", out_path)
    return out_path
