from typing import Dict

import numpy as np
import pandas as pd

from qtlhot.log import logger
from qtlhot.peaks import extract_peaks


KERNELS = ("boxcar", "triangle")


def smooth_chr(peak_pos, pos, window: float, kernel: str = "boxcar") -> np.ndarray:
    """
    Count peaks within window of each marker position on one chromosome.

    boxcar: every peak with |peak - p| <= window counts 1.
    triangle: same support, weight 1 - |peak - p| / (window + 1).

    :param peak_pos: Peak positions on this chromosome
    :param pos: Marker positions on this chromosome
    :param window: Half-width of the window, in position units
    :param kernel: One of 'boxcar', 'triangle'
    """
    if kernel not in KERNELS:
        raise ValueError(f"Unknown kernel '{kernel}'; choose one of {KERNELS}.")
    pos = np.asarray(pos, dtype=float)
    peak_pos = np.asarray(peak_pos, dtype=float)
    peak_pos = np.sort(peak_pos[np.isfinite(peak_pos)])
    if peak_pos.size == 0:
        return np.zeros(pos.size, dtype=float)

    left_idx = np.searchsorted(peak_pos, pos - window, side="left")
    right_idx = np.searchsorted(peak_pos, pos + window, side="right")
    if kernel == "boxcar":
        return (right_idx - left_idx).astype(float)

    nqtl = np.zeros(pos.size, dtype=float)
    for idx, center in enumerate(pos):
        left = left_idx[idx]
        right = right_idx[idx]
        if right <= left:
            continue
        distances = np.abs(peak_pos[left:right] - center)
        nqtl[idx] = np.sum(1.0 - distances / (window + 1.0))
    return nqtl


def smooth_all(peak_pos: Dict[str, pd.Series], chr_pos: pd.DataFrame, window: float = 5,
               kernel: str = "boxcar") -> pd.DataFrame:
    """
    Smoothed peak counts at every marker.

    :param peak_pos: Peak positions keyed by chromosome
    :param chr_pos: DataFrame with columns chr and pos
    :param window: Half-width of the window
    :param kernel: One of 'boxcar', 'triangle'
    :return: DataFrame with columns chr, pos, nqtl indexed like chr_pos
    """
    chrom = chr_pos["chr"].astype(str).to_numpy()
    pos = chr_pos["pos"].to_numpy(dtype=float)
    nqtl = np.zeros(len(chr_pos), dtype=float)
    for chr_name in pd.unique(chrom):
        peaks = peak_pos.get(chr_name)
        if peaks is None or len(peaks) == 0:
            continue
        on_chr = chrom == chr_name
        nqtl[on_chr] = smooth_chr(peaks.to_numpy(dtype=float), pos[on_chr], window, kernel)

    return pd.DataFrame({"chr": chrom, "pos": pos, "nqtl": nqtl}, index=chr_pos.index)


def smooth_neqtl(highlod: pd.DataFrame, chr_pos: pd.DataFrame, lod_thr: float = 0.0,
                 window: float = 5, kernel: str = "boxcar") -> pd.DataFrame:
    """Smoothed count of per-chromosome phenotype peaks at or above lod_thr."""
    logger.info(f"Smoothing peak counts with window {window} ({kernel})...")
    peaks = extract_peaks(highlod, chr_pos)
    peak_pos = {
        chrom: pos[peaks.lod[chrom] >= lod_thr]
        for chrom, pos in peaks.pos.items()
    }
    smoothed = smooth_all(peak_pos, chr_pos, window=window, kernel=kernel)
    logger.info(f"Smoothed {sum(len(p) for p in peak_pos.values())} peaks onto {len(smoothed)} markers.")
    return smoothed
