import logging

import numpy as np
import pandas as pd
import pytest

from qtlhot.highlod import HighLod
from qtlhot.log import logger


@pytest.fixture
def chr_pos():
    """Three markers on chromosome 1."""
    return pd.DataFrame(
        {"chr": ["1", "1", "1"], "pos": [0.0, 10.0, 20.0]},
        index=["m1", "m2", "m3"],
    )


@pytest.fixture
def highlod_df():
    return pd.DataFrame({
        "row": [0, 1, 1],
        "phenos": ["A", "A", "B"],
        "lod": [5.0, 6.0, 4.0],
    })


@pytest.fixture
def small_hl(highlod_df, chr_pos):
    return HighLod(highlod_df, chr_pos, lod_thr=3.0)


@pytest.fixture
def greedy_hl():
    """
    Five markers on one chromosome built for quant levels [6, 4, 3]:
    row 0 qualifies at size 3, row 1 at size 2, row 2 at size 1, row 3 never.
    """
    chr_pos = pd.DataFrame({"chr": ["1"] * 5, "pos": [0.0, 5.0, 10.0, 15.0, 20.0]})
    highlod = pd.DataFrame({
        "row": [0, 0, 0, 1, 1, 2, 2, 3],
        "phenos": ["a", "b", "c", "d", "e", "f", "g", "h"],
        "lod": [3.5, 3.2, 3.1, 4.5, 4.1, 7.0, 3.5, 3.3],
    })
    return HighLod(highlod, chr_pos, lod_thr=3.0)


@pytest.fixture
def two_chr_hl():
    chr_pos = pd.DataFrame({
        "chr": ["1", "1", "1", "2", "2"],
        "pos": [0.0, 10.0, 20.0, 0.0, 10.0],
    })
    highlod = pd.DataFrame({
        "row": [0, 1, 1, 2],
        "phenos": ["A", "A", "B", "C"],
        "lod": [5.0, 6.0, 4.0, 3.5],
    })
    return HighLod(highlod, chr_pos, lod_thr=3.0)


@pytest.fixture
def scan():
    return pd.DataFrame({
        "chr": ["1", "1", "1", "2", "2"],
        "pos": [0.0, 10.0, 20.0, 0.0, 10.0],
        "pheA": [1.0, 5.0, 2.0, 0.5, 0.2],
        "pheB": [4.5, 4.9, 0.1, 3.5, 1.0],
    })


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def log_messages(caplog):
    """INFO messages from the package logger, which does not propagate to root."""
    logger.addHandler(caplog.handler)
    try:
        with caplog.at_level(logging.INFO, logger=logger.name):
            yield lambda: [record.getMessage() for record in caplog.records]
    finally:
        logger.removeHandler(caplog.handler)
