"""Hotspot size routines.

Determine hotspot sizes from a highlod table: the raw count of LOD scores above
threshold per marker (max.N), the count of phenotype peaks smoothed over a
window (max.N.window), and the sliding quantile-threshold hotspot size (quant).
"""
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import matplotlib.ticker as ticker

from qtlhot.highlod import HighLod, highlod_from_scan, highlod_thr
from qtlhot.log import logger
from qtlhot.smooth import smooth_neqtl


COUNT_COLUMNS = ("max.N", "max.N.window", "quant")


@dataclass(frozen=True, eq=False)
class QuantLevel:
    """
    Permutation quantiles for sliding hotspot thresholds.

    :param max_N: Hotspot size thresholds, one row per base LOD threshold (index
        values are the LOD thresholds); the first column is used.
    :param max_lod_quant: LOD levels; the first column gives the LOD needed for
        hotspots of size 1, 2, ... in row order.
    """
    max_N: pd.DataFrame
    max_lod_quant: pd.DataFrame

    @property
    def lod_thrs(self) -> np.ndarray:
        return np.asarray(self.max_N.index, dtype=float)

    @property
    def levels(self) -> np.ndarray:
        return self.max_lod_quant.iloc[:, 0].to_numpy(dtype=float)

    def quant_thr(self, lod_thr: float) -> float:
        """Hotspot size threshold for the base threshold nearest lod_thr."""
        m = int(np.argmin(np.abs(lod_thr - self.lod_thrs)))
        return float(self.max_N.iloc[m, 0])


@dataclass(frozen=True, eq=False)
class HotSize:
    """
    Hotspot sizes at every marker.

    table holds chr, pos and max.N, plus max.N.window when smoothed and quant
    when quantile levels were supplied.
    """
    table: pd.DataFrame
    lod_thr: Optional[float] = None
    window: Optional[int] = None
    quant_level: Optional[np.ndarray] = None
    quant_thr: Optional[float] = None

    def __len__(self):
        return len(self.table)

    def __str__(self):
        return self.summary()

    @property
    def columns(self) -> List[str]:
        """Hotspot size columns present, in the order max.N, max.N.window, quant."""
        return [col for col in COUNT_COLUMNS if col in self.table.columns]

    def chromosomes(self) -> List[str]:
        return list(pd.unique(self.table["chr"]))

    def peaks_by_chr(self) -> pd.DataFrame:
        """Position and value of each column's maximum, per chromosome with max.N > 0."""
        records = []
        for chrom, sub in self.table.groupby("chr", sort=False):
            if sub["max.N"].max() <= 0:
                continue
            record = {"chr": chrom}
            for col in self.columns:
                i = int(np.argmax(sub[col].to_numpy()))
                record[f"pos.{col}"] = sub["pos"].iloc[i]
                record[col] = sub[col].iloc[i]
            records.append(record)
        return pd.DataFrame(records)

    def summary(self) -> str:
        lines = [f"hotsize elements:  {' '.join(map(str, self.table.columns))}"]
        if self.lod_thr is not None:
            lines.append(f"LOD threshold: {self.lod_thr:g}")
        if self.window is not None:
            lines.append(f"smooth window: {self.window}")
        if self.quant_level is not None:
            lines.append("quantile level summary:")
            lines.append(pd.Series(self.quant_level).describe().to_string())
        if self.quant_thr is not None:
            lines.append(f"hotspot size threshold: {self.quant_thr:g}")
        lines.append("")
        peaks = self.peaks_by_chr()
        if not peaks.empty:
            lines.append(peaks.to_string(index=False))
        return "\n".join(lines)

    def max(self) -> pd.DataFrame:
        """
        Genome-wide maximum of each hotspot size column.

        :return: One-row DataFrame; columns are (column, field) with fields chr, pos and size.
        """
        parts = []
        for col in self.columns:
            i = int(np.argmax(self.table[col].to_numpy()))
            parts.append(pd.DataFrame({
                "chr": [self.table["chr"].iloc[i]],
                "pos": [self.table["pos"].iloc[i]],
                "size": [self.table[col].iloc[i]],
            }))
        return pd.concat(parts, axis=1, keys=self.columns)

    def plot_data(self, columns: Optional[Sequence[str]] = None, chrom: Optional[str] = None) -> pd.DataFrame:
        """
        Long-format series for plotting.

        :param columns: Hotspot size columns to include (default: all present)
        :param chrom: Restrict to one chromosome
        :return: DataFrame with columns chr, pos, column, value
        """
        columns = self.columns if columns is None else list(columns)
        unknown = [col for col in columns if col not in self.columns]
        if unknown:
            raise ValueError(f"Unknown hotsize columns {unknown}; available: {self.columns}.")
        tbl = self.table
        if chrom is not None:
            tbl = tbl[tbl["chr"] == str(chrom)]
        return tbl.melt(id_vars=["chr", "pos"], value_vars=columns,
                        var_name="column", value_name="value")

    def quant_axis(self, ticks: Optional[Sequence[float]] = None) -> pd.DataFrame:
        """
        Hotspot sizes and the quantile LOD level that defines each, for a secondary axis.

        :param ticks: Hotspot sizes to label (default: integer ticks spanning max.N)
        :return: DataFrame with columns size and level (rounded to 2 decimals)
        """
        if self.quant_level is None:
            return pd.DataFrame({"size": pd.Series(dtype=int), "level": pd.Series(dtype=float)})
        if ticks is None:
            locator = ticker.MaxNLocator(integer=True)
            ticks = locator.tick_values(0, max(1, self.table["max.N"].max()))
        sizes = np.maximum(1, np.asarray(ticks, dtype=float).round().astype(int))
        sizes = pd.unique(sizes[sizes <= len(self.quant_level)])
        return pd.DataFrame({
            "size": sizes,
            "level": np.round(self.quant_level[sizes - 1], 2),
        })


def _resolve_lod_thr(lod_thr) -> Optional[float]:
    if lod_thr is None:
        return None
    values = np.atleast_1d(np.asarray(lod_thr, dtype=float))
    if values.size > 1:
        raise ValueError("hotsize only allows one lod_thr value")
    if values.size == 0:
        return None
    return float(values[0])


def _resolve_quant_level(quant_level: Optional[Sequence[float]], quant_perm: Optional[QuantLevel],
                         lod_thr: Optional[float]) -> Tuple[np.ndarray, Optional[float]]:
    quant_thr = None
    if quant_perm is not None:
        if quant_level is not None:
            raise ValueError("Pass either quant_level or quant_perm, not both.")
        if lod_thr is not None:
            quant_thr = quant_perm.quant_thr(lod_thr)
        levels = quant_perm.levels
    else:
        levels = np.asarray(quant_level, dtype=float).ravel()

    if lod_thr is not None:
        # levels below the base threshold are already covered by it
        levels = levels[(levels >= lod_thr) & ~np.isnan(levels)]
    return levels, quant_thr


def greedy_hot_size(rows: np.ndarray, lod: np.ndarray, quant_level: np.ndarray, n_rows: int) -> np.ndarray:
    """
    Sliding quantile hotspot size per marker.

    Work down from the largest hotspot size K to 1. At size k a marker with at
    least k active phenotypes having lod >= quant_level[k - 1] gets that count
    as its hotspot size, and all its highlod rows are masked out of later sizes.

    :param rows: Marker row of each highlod entry
    :param lod: LOD of each highlod entry
    :param quant_level: LOD level for hotspots of size 1..K
    :param n_rows: Number of markers
    """
    rows = np.asarray(rows, dtype=int)
    lod = np.asarray(lod, dtype=float)
    quant_level = np.asarray(quant_level, dtype=float)
    # with non-increasing levels an empty size means every smaller size is empty too
    can_stop_early = bool(np.all(np.diff(quant_level) <= 0))

    index = np.ones(len(rows), dtype=bool)
    hot_size = np.zeros(n_rows, dtype=int)
    for hot_crit in range(len(quant_level), 0, -1):
        above = index & (lod >= quant_level[hot_crit - 1])
        if not above.any():
            if can_stop_early:
                break
            continue
        counts = np.bincount(rows[above], minlength=n_rows)
        hot_rows = np.flatnonzero(counts >= hot_crit)
        if hot_rows.size:
            hot_size[hot_rows] = counts[hot_rows]
            index &= ~np.isin(rows, hot_rows)
        if not index.any():
            break
    logger.info(
        f"Sliding hotspot sizes over {len(quant_level)} quantile levels: "
        f"{np.count_nonzero(hot_size)} markers with a hotspot."
    )
    return hot_size


def hotsize_highlod(hl: HighLod, lod_thr=None, window: Optional[float] = None,
                    quant_level: Optional[Sequence[float]] = None,
                    kernel: str = "boxcar", quant_perm: Optional[QuantLevel] = None) -> Optional[HotSize]:
    """
    Hotspot sizes from a highlod table.

    :param hl: HighLod with LOD scores above threshold
    :param lod_thr: LOD threshold (a single value)
    :param window: Window width for smoothing hotspot size; not used if 0 or None
    :param quant_level: LOD levels for hotspots of size 1 up to len(quant_level)
    :param kernel: Smoothing kernel, 'boxcar' or 'triangle'
    :param quant_perm: QuantLevel from permutations, used in place of quant_level;
        also sets the hotspot size threshold matched to lod_thr
    :return: HotSize, or None when no LOD scores pass the threshold
    """
    lod_thr = _resolve_lod_thr(lod_thr)
    logger.info("Computing hotspot sizes...")

    hl = highlod_thr(hl, lod_thr)
    highlod = hl.highlod
    if highlod.empty:
        logger.warning("No LOD scores above threshold %s; no hotspots.", hl.lod_thr)
        return None

    table = hl.chr_pos.loc[:, ["chr", "pos"]].copy()
    table["chr"] = table["chr"].astype(str)
    rows = highlod["row"].to_numpy(dtype=int)
    lod = highlod["lod"].to_numpy(dtype=float)

    # Straight count of LODs above threshold. Includes shoulders and peaks.
    table["max.N"] = np.bincount(rows, minlength=len(table))

    # Smoothed count of peak LODs per chr, smoothed by window.
    window_used = None
    if window is not None:
        window = int(round(window))
        if window > 0:
            smoothed = smooth_neqtl(highlod, hl.chr_pos, window=window, kernel=kernel)
            table["max.N.window"] = smoothed["nqtl"].to_numpy()
            window_used = window
        else:
            logger.info("Smoothing window rounds to %d; skipping smoothing.", window)

    levels, quant_thr = None, None
    if quant_level is not None or quant_perm is not None:
        levels, quant_thr = _resolve_quant_level(quant_level, quant_perm, lod_thr)
        if len(levels):
            table["quant"] = greedy_hot_size(rows, lod, levels, len(table))
        else:
            logger.info("No quantile levels at or above the LOD threshold; skipping quant.")
            levels = None

    hots = HotSize(table, lod_thr=hl.lod_thr, window=window_used, quant_level=levels, quant_thr=quant_thr)
    logger.info(
        "Hotspot sizes computed for %d markers; largest raw count %d.",
        len(table), int(table["max.N"].max()),
    )
    return hots


def hotsize_scan(scan: pd.DataFrame, lod_thr=None, drop_lod: float = 1.5, **kwargs) -> Optional[HotSize]:
    """
    Hotspot sizes from a genome scan.

    :param scan: DataFrame with columns chr, pos and one LOD column per phenotype
    :param lod_thr: LOD threshold (a single value)
    :param drop_lod: LOD drop from maximum to keep for support intervals
    :param kwargs: window, quant_level, kernel and quant_perm, passed to hotsize_highlod
    """
    lod_thr = _resolve_lod_thr(lod_thr)
    hl = highlod_from_scan(scan, lod_thr=lod_thr, drop_lod=drop_lod)
    return hotsize_highlod(hl, lod_thr, **kwargs)
