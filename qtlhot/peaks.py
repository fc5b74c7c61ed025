from dataclasses import dataclass, field
from typing import Dict

import pandas as pd

from qtlhot.highlod import highlod_chr
from qtlhot.log import logger


@dataclass
class Peaks:
    """Per-chromosome peak LOD and peak position, each a Series indexed by phenotype."""
    lod: Dict[str, pd.Series] = field(default_factory=dict)
    pos: Dict[str, pd.Series] = field(default_factory=dict)

    def __len__(self):
        return sum(len(s) for s in self.lod.values())


def extract_peaks(highlod: pd.DataFrame, chr_pos: pd.DataFrame) -> Peaks:
    """
    Find the peak LOD and its position for each phenotype on each chromosome.

    Rows tying the phenotype's maximum LOD, or with NaN LOD, all count as the peak;
    the peak position is the median of their positions.

    :param highlod: DataFrame with columns row, phenos, lod (optional chr)
    :param chr_pos: DataFrame with columns chr and pos
    :return: Peaks with one entry per chromosome of chr_pos, in map order
    """
    chr_names = pd.unique(chr_pos["chr"].astype(str))
    hl_chr = highlod_chr(highlod, chr_pos)
    marker_pos = chr_pos["pos"].to_numpy(dtype=float)

    tbl = pd.DataFrame({
        "phenos": highlod["phenos"].to_numpy(),
        "lod": highlod["lod"].to_numpy(dtype=float),
        "pos": marker_pos[highlod["row"].to_numpy(dtype=int)],
    })

    peaks = Peaks()
    for chrom in chr_names:
        chr_tbl = tbl.loc[hl_chr == chrom]
        if chr_tbl.empty:
            peaks.lod[chrom] = pd.Series(dtype=float)
            peaks.pos[chrom] = pd.Series(dtype=float)
            continue

        # phenotype order of the full table, before shoulders are dropped
        order = pd.unique(chr_tbl["phenos"])
        # keep ties at the maximum; NaN always counts
        group_max = chr_tbl.groupby("phenos", sort=False)["lod"].transform("max")
        is_peak = chr_tbl["lod"].isna() | (chr_tbl["lod"] == group_max)
        by_pheno = chr_tbl.loc[is_peak].groupby("phenos", sort=False)

        peaks.lod[chrom] = by_pheno["lod"].max().reindex(order).fillna(0.0)
        peaks.pos[chrom] = by_pheno["pos"].median().reindex(order)

    logger.info(f"Found {len(peaks)} phenotype peaks on {len(chr_names)} chromosomes.")
    return peaks
