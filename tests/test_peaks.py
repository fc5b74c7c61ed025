import numpy as np
import pandas as pd
import pytest

from qtlhot.peaks import extract_peaks


@pytest.fixture
def map_two_chr():
    return pd.DataFrame({
        "chr": ["1", "1", "1", "2", "2"],
        "pos": [0.0, 10.0, 20.0, 5.0, 15.0],
    })


def test_single_peak(highlod_df, chr_pos):
    peaks = extract_peaks(highlod_df, chr_pos)
    assert list(peaks.lod) == ["1"]
    assert peaks.lod["1"].to_dict() == {"A": 6.0, "B": 4.0}
    assert peaks.pos["1"].to_dict() == {"A": 10.0, "B": 10.0}
    assert len(peaks) == 2


def test_tied_maxima_use_median_position(map_two_chr):
    highlod = pd.DataFrame({"row": [0, 1, 2], "phenos": ["A"] * 3, "lod": [5.0, 7.0, 7.0]})
    peaks = extract_peaks(highlod, map_two_chr)
    assert peaks.lod["1"]["A"] == 7.0
    assert peaks.pos["1"]["A"] == 15.0


def test_nan_lod_counts_as_peak(map_two_chr):
    highlod = pd.DataFrame({"row": [0, 1, 2], "phenos": ["A"] * 3, "lod": [5.0, np.nan, 7.0]})
    peaks = extract_peaks(highlod, map_two_chr)
    assert peaks.lod["1"]["A"] == 7.0
    assert peaks.pos["1"]["A"] == 15.0


def test_phenotypes_in_first_seen_order(map_two_chr):
    highlod = pd.DataFrame({"row": [0, 1, 2], "phenos": ["Z", "A", "Z"], "lod": [4.0, 5.0, 6.0]})
    peaks = extract_peaks(highlod, map_two_chr)
    assert peaks.lod["1"].index.tolist() == ["Z", "A"]
    assert peaks.pos["1"].tolist() == [20.0, 10.0]


def test_chromosome_without_rows_is_empty(map_two_chr):
    highlod = pd.DataFrame({"row": [0], "phenos": ["A"], "lod": [4.0]})
    peaks = extract_peaks(highlod, map_two_chr)
    assert list(peaks.pos) == ["1", "2"]
    assert peaks.lod["2"].empty
    assert peaks.pos["2"].empty


def test_same_phenotype_on_two_chromosomes(map_two_chr):
    highlod = pd.DataFrame({"row": [1, 3, 4], "phenos": ["A"] * 3, "lod": [4.0, 3.5, 8.0]})
    peaks = extract_peaks(highlod, map_two_chr)
    assert peaks.pos["1"]["A"] == 10.0
    assert peaks.pos["2"]["A"] == 15.0
    assert peaks.lod["2"]["A"] == 8.0


def test_highlod_chr_column_preferred(map_two_chr):
    highlod = pd.DataFrame({"row": [1], "phenos": ["A"], "lod": [4.0], "chr": ["2"]})
    peaks = extract_peaks(highlod, map_two_chr)
    assert peaks.lod["1"].empty
    assert peaks.lod["2"]["A"] == 4.0
    assert peaks.pos["2"]["A"] == 10.0
