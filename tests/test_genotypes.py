import logging
import math

import numpy as np
import pytest

from vcfgeno.errors import VCFFormatError
from vcfgeno.genotypes import (
    ParserSession,
    decode_geno_probs,
    decode_haplotypes,
    parse_genotype,
    parse_likelihoods,
)
from vcfgeno.models import GL_MISSING, GT_MISSING

UNPHASED_MSG = "some genotypes are unphased"


def _warnings(caplog, text):
    return [r for r in caplog.records if text in r.getMessage()]


@pytest.mark.parametrize("sep", ["|", "/"])
@pytest.mark.parametrize("a,b", [(0, 0), (0, 1), (1, 0), (1, 1)])
def test_biallelic_genotypes_decode_exactly(sep, a, b):
    haps = decode_haplotypes("GT", f"{a}{sep}{b}", 1, session=ParserSession())
    assert haps.tolist() == [a, b]


@pytest.mark.parametrize("gt", ["0|2", "2|1", "1/3", "0|12", "-2|0"])
def test_non_biallelic_genotypes_are_missing(gt):
    haps = decode_haplotypes("GT", gt, 1, session=ParserSession())
    assert haps.tolist() == [GT_MISSING, GT_MISSING]


def test_explicit_missing_allele_index_is_kept():
    haps = decode_haplotypes("GT", "-1|1", 1, session=ParserSession())
    assert haps.tolist() == [GT_MISSING, 1]


@pytest.mark.parametrize("gt", [".|.", "./.", ".", "0", "0|.", "A|B"])
def test_unparseable_genotype_warns_and_is_missing(gt, caplog):
    caplog.set_level(logging.WARNING, logger="vcfgeno")
    haps = decode_haplotypes("GT", gt, 1, session=ParserSession())
    assert haps.tolist() == [GT_MISSING, GT_MISSING]
    assert _warnings(caplog, "could not parse genotype string")


def test_scenario_phased_and_unphased(caplog):
    caplog.set_level(logging.WARNING, logger="vcfgeno")
    session = ParserSession()
    haps = decode_haplotypes("GT", "0|1\t1/1", 2, session=session)
    assert haps.tolist() == [0, 1, 1, 1]
    assert haps.dtype == np.int8
    assert len(_warnings(caplog, UNPHASED_MSG)) == 1
    assert session.warned_unphased
    assert session.unphased_seen == 1


def test_unphased_warning_only_once_per_session(caplog):
    caplog.set_level(logging.WARNING, logger="vcfgeno")
    session = ParserSession()
    decode_haplotypes("GT", "0/1 1/0 1/1", 3, session=session)
    haps = decode_haplotypes("GT", "0/0 0/1 1/1", 3, session=session)
    assert haps.tolist() == [0, 0, 0, 1, 1, 1]
    assert len(_warnings(caplog, UNPHASED_MSG)) == 1
    assert session.unphased_seen == 6


def test_unphased_warning_per_session_is_independent(caplog):
    caplog.set_level(logging.WARNING, logger="vcfgeno")
    decode_haplotypes("GT", "0/1", 1, session=ParserSession())
    decode_haplotypes("GT", "0/1", 1, session=ParserSession())
    assert len(_warnings(caplog, UNPHASED_MSG)) == 2


def test_parse_genotype_ignores_trailing_text():
    assert parse_genotype("0|1|1", ParserSession()) == (0, 1)


def test_gt_at_non_zero_index():
    haps = decode_haplotypes("DP:GL:GT", "10:.:1|0 3:.:0|0", 2, session=ParserSession())
    assert haps.tolist() == [1, 0, 0, 0]


def test_missing_gt_in_format_is_fatal():
    with pytest.raises(VCFFormatError, match="does not specify GT"):
        decode_haplotypes("GL:DP", "-1,-1,-1:4", 1)


def test_too_many_genotypes_is_fatal():
    with pytest.raises(VCFFormatError, match="more genotypes per line than expected"):
        decode_haplotypes("GT", "0|0 0|1 1|1", 2)


def test_too_few_genotypes_is_fatal():
    with pytest.raises(VCFFormatError, match="expected 4 genotype values per line, but got 2"):
        decode_haplotypes("GT", "0|0", 2)


def test_sample_without_gt_subfield_counts_short():
    with pytest.raises(VCFFormatError, match="but got 2"):
        decode_haplotypes("DP:GT", "5:0|1 7", 2)


def test_haplotypes_fill_caller_buffer():
    buf = np.full(4, 9, dtype=np.int8)
    result = decode_haplotypes("GT", "1|0 0|1", 2, out=buf)
    assert result is buf
    assert buf.tolist() == [1, 0, 0, 1]


def test_wrong_buffer_size_rejected():
    with pytest.raises(ValueError, match="length 4"):
        decode_haplotypes("GT", "1|0 0|1", 2, out=np.empty(3, dtype=np.int8))


def test_zero_samples():
    assert decode_haplotypes("GT", "", 0).size == 0
    assert decode_geno_probs("GL", "", 0).size == 0


def test_scenario_likelihood_normalization():
    probs = decode_geno_probs("GT:GL", "0|1:-0.5,-0.2,-1.0", 1)
    raw = np.array([10 ** -0.5, 10 ** -0.2, 10 ** -1.0])
    np.testing.assert_allclose(probs, raw / raw.sum(), rtol=1e-12)


@pytest.mark.parametrize(
    "gl",
    ["0,0,0", "-0.1,-2.5,-7", "0,-300,-300", "-12.5,-0.01,-4", "1.5,2.5,-3", "-0.477,-0.477,-0.477"],
)
def test_probabilities_sum_to_one(gl):
    probs = decode_geno_probs("GL", gl, 1)
    assert math.isclose(probs.sum(), 1.0, abs_tol=1e-6)
    assert (probs >= 0).all()
    assert (probs <= 1).all()


def test_missing_likelihood_is_uniform():
    assert parse_likelihoods(".") == (GL_MISSING, GL_MISSING, GL_MISSING)
    probs = decode_geno_probs("GT:GL", "0|1:. 1|1:-3,-1,0", 2)
    np.testing.assert_allclose(probs[:3], [1 / 3, 1 / 3, 1 / 3])
    assert math.isclose(probs[3:].sum(), 1.0, abs_tol=1e-9)


def test_extra_likelihood_values_use_first_three():
    probs = decode_geno_probs("GL", "0,-1,-2,-3,-4,-5", 1)
    raw = np.array([1.0, 0.1, 0.01])
    np.testing.assert_allclose(probs, raw / raw.sum())


@pytest.mark.parametrize("gl", ["-1,-1", "a,b,c", "", "..", "-1,.,-1"])
def test_unparseable_likelihood_is_fatal(gl):
    with pytest.raises(VCFFormatError, match="failed to parse genotype likelihoods"):
        decode_geno_probs("GT:GL", f"0|1:{gl}", 1)


def test_missing_gl_in_format_is_fatal():
    with pytest.raises(VCFFormatError, match="does not specify GL"):
        decode_geno_probs("GT:DP", "0|1:5", 1)


def test_likelihood_count_mismatch_is_fatal():
    with pytest.raises(VCFFormatError, match="more genotype likelihoods per line than expected"):
        decode_geno_probs("GL", "0,0,0 0,0,0", 1)
    with pytest.raises(VCFFormatError, match="expected 6 genotype likelihoods per line, but got 3"):
        decode_geno_probs("GL", "0,0,0", 2)


def test_degenerate_likelihoods_are_nan(caplog):
    caplog.set_level(logging.WARNING, logger="vcfgeno")
    probs = decode_geno_probs("GL", "-inf,-inf,-inf 0,-1,-1", 2)
    assert np.isnan(probs[:3]).all()
    assert math.isclose(probs[3:].sum(), 1.0)
    assert _warnings(caplog, "could not normalize genotype likelihoods for 1 sample")


def test_decoders_share_sample_text_in_any_order():
    fmt = "GT:GL"
    text = "0|1:-0.5,-0.2,-1.0 1|1:."
    probs_first = decode_geno_probs(fmt, text, 2)
    haps_second = decode_haplotypes(fmt, text, 2)
    haps_first = decode_haplotypes(fmt, text, 2)
    probs_second = decode_geno_probs(fmt, text, 2)
    assert haps_first.tolist() == haps_second.tolist() == [0, 1, 1, 1]
    np.testing.assert_array_equal(probs_first, probs_second)
    assert text == "0|1:-0.5,-0.2,-1.0 1|1:."


def test_probs_fill_float32_buffer():
    buf = np.zeros(3, dtype=np.float32)
    decode_geno_probs("GL", "-1,0,-1", 1, out=buf)
    assert buf.dtype == np.float32
    assert math.isclose(float(buf.sum()), 1.0, abs_tol=1e-6)


def test_unsigned_haplotype_buffer_rejected():
    with pytest.raises(ValueError, match="signedinteger"):
        decode_haplotypes("GT", ".|.", 1, out=np.zeros(2, dtype=np.uint8))


def test_haplotypes_fill_int16_buffer():
    buf = np.zeros(2, dtype=np.int16)
    decode_haplotypes("GT", ".|.", 1, out=buf)
    assert buf.tolist() == [GT_MISSING, GT_MISSING]


def test_integer_probability_buffer_rejected():
    with pytest.raises(ValueError, match="floating"):
        decode_geno_probs("GL", "-1,0,-1", 1, out=np.zeros(3, dtype=np.int64))
