import numpy as np
import pytest

from qtlhot.hotsize import hotsize_highlod


@pytest.fixture
def full_hots(small_hl):
    return hotsize_highlod(small_hl, lod_thr=3, window=5, quant_level=[3, 5])


def test_columns(full_hots):
    assert full_hots.columns == ["max.N", "max.N.window", "quant"]
    assert full_hots.chromosomes() == ["1"]


def test_max(full_hots):
    out = full_hots.max()
    assert len(out) == 1
    assert out.columns.get_level_values(0).unique().tolist() == ["max.N", "max.N.window", "quant"]
    assert out[("max.N", "chr")].iloc[0] == "1"
    assert out[("max.N", "pos")].iloc[0] == 10.0
    assert out[("max.N", "size")].iloc[0] == 2
    assert out[("max.N.window", "size")].iloc[0] == 2.0
    assert out[("quant", "size")].iloc[0] == 2


def test_max_raw_only(small_hl):
    out = hotsize_highlod(small_hl, lod_thr=3).max()
    assert out.columns.get_level_values(0).unique().tolist() == ["max.N"]


def test_summary(full_hots):
    text = full_hots.summary()
    assert "hotsize elements:  chr pos max.N max.N.window quant" in text
    assert "LOD threshold: 3" in text
    assert "smooth window: 5" in text
    assert "quantile level summary:" in text
    assert str(full_hots) == text


def test_summary_skips_chromosomes_without_counts(two_chr_hl):
    hots = hotsize_highlod(two_chr_hl, lod_thr=4)
    peaks = hots.peaks_by_chr()
    assert peaks["chr"].tolist() == ["1"]
    assert peaks["pos.max.N"].tolist() == [10.0]
    assert peaks["max.N"].tolist() == [2]


def test_plot_data(full_hots):
    data = full_hots.plot_data(columns=["quant"])
    assert data.columns.tolist() == ["chr", "pos", "column", "value"]
    assert data["value"].tolist() == [1, 2, 0]
    assert set(full_hots.plot_data()["column"]) == {"max.N", "max.N.window", "quant"}


def test_plot_data_by_chromosome(two_chr_hl):
    hots = hotsize_highlod(two_chr_hl, lod_thr=3)
    data = hots.plot_data(chrom="2")
    assert data["chr"].unique().tolist() == ["2"]
    assert data["value"].tolist() == [0, 0]


def test_plot_data_unknown_column(small_hl):
    hots = hotsize_highlod(small_hl, lod_thr=3)
    with pytest.raises(ValueError, match="Unknown hotsize columns"):
        hots.plot_data(columns=["quant"])


def test_quant_axis(greedy_hl):
    hots = hotsize_highlod(greedy_hl, lod_thr=3, quant_level=[6.004, 4.0, 3.0])
    axis = hots.quant_axis([0, 1, 2, 5])
    assert axis["size"].tolist() == [1, 2]
    np.testing.assert_allclose(axis["level"], [6.0, 4.0])


def test_quant_axis_default_ticks(greedy_hl):
    hots = hotsize_highlod(greedy_hl, lod_thr=3, quant_level=[6.0, 4.0, 3.0])
    axis = hots.quant_axis()
    assert axis["size"].min() >= 1
    assert axis["size"].max() <= 3


def test_quant_axis_without_levels(small_hl):
    assert hotsize_highlod(small_hl, lod_thr=3).quant_axis().empty
