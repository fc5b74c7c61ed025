from dataclasses import dataclass, replace
from typing import Optional

import numpy as np
import pandas as pd

from qtlhot.log import logger


HIGHLOD_COLUMNS = ("row", "phenos", "lod")
CHR_POS_COLUMNS = ("chr", "pos")


@dataclass(frozen=True, eq=False)
class HighLod:
    """Sparse table of LOD scores above a base threshold.

    :param highlod: DataFrame with columns row (0-based position into chr_pos),
        phenos and lod. An optional chr column is used in place of chr_pos.chr[row].
    :param chr_pos: DataFrame with columns chr and pos, one row per marker.
    :param lod_thr: LOD threshold the table was built with, if known.
    :param drop_lod: LOD drop from the chromosome maximum kept for support intervals.
    """
    highlod: pd.DataFrame
    chr_pos: pd.DataFrame
    lod_thr: Optional[float] = None
    drop_lod: Optional[float] = None

    def __post_init__(self):
        _check_columns(self.chr_pos, CHR_POS_COLUMNS, "position table")
        _check_columns(self.highlod, HIGHLOD_COLUMNS, "highlod table")
        rows = self.highlod["row"].to_numpy()
        if len(rows) and (rows.min() < 0 or rows.max() >= len(self.chr_pos)):
            raise ValueError(
                f"highlod rows must lie in [0, {len(self.chr_pos)}); "
                f"found range [{rows.min()}, {rows.max()}]."
            )

    def __len__(self):
        return len(self.highlod)

    @property
    def chr(self) -> np.ndarray:
        """Chromosome of each highlod row."""
        return highlod_chr(self.highlod, self.chr_pos)


def highlod_chr(highlod: pd.DataFrame, chr_pos: pd.DataFrame) -> np.ndarray:
    """Chromosome of each highlod row, taken from highlod.chr when present."""
    if "chr" in highlod.columns:
        return highlod["chr"].astype(str).to_numpy()
    return chr_pos["chr"].astype(str).to_numpy()[highlod["row"].to_numpy(dtype=int)]


def _check_columns(df: pd.DataFrame, required, label: str):
    missing_columns = [col for col in required if col not in df.columns]
    if missing_columns:
        raise ValueError(
            f"The {label} is missing the following required columns: {missing_columns}. "
            f"Please ensure it contains columns: {list(required)}."
        )


def highlod_from_scan(scan: pd.DataFrame, lod_thr: Optional[float] = None, drop_lod: float = 1.5) -> HighLod:
    """
    Extract LOD scores above threshold from a genome scan.

    For each phenotype and chromosome, keep markers with LOD at or above lod_thr
    that are also within drop_lod of that chromosome's maximum.

    :param scan: DataFrame with columns chr, pos and one LOD column per phenotype
    :param lod_thr: LOD threshold, no floor if None
    :param drop_lod: LOD drop from maximum to keep for support intervals
    """
    _check_columns(scan, CHR_POS_COLUMNS, "scan")
    pheno_cols = [col for col in scan.columns if col not in CHR_POS_COLUMNS]
    logger.info(f"Extracting high LOD rows for {len(pheno_cols)} phenotypes...")

    chr_pos = scan.loc[:, ["chr", "pos"]].copy()
    chr_pos["chr"] = chr_pos["chr"].astype(str)
    chrom = chr_pos["chr"].to_numpy()

    rows, phenos, lods = [], [], []
    for pheno in pheno_cols:
        lod = scan[pheno].to_numpy(dtype=float)
        # per-chromosome maximum broadcast back onto markers
        chr_max = pd.Series(lod).groupby(chrom, sort=False).transform("max").to_numpy()
        keep = lod >= chr_max - drop_lod
        if lod_thr is not None:
            keep &= lod >= lod_thr
        idx = np.flatnonzero(keep)
        rows.append(idx)
        phenos.extend([pheno] * len(idx))
        lods.append(lod[idx])

    highlod = pd.DataFrame({
        "row": np.concatenate(rows) if rows else np.array([], dtype=int),
        "phenos": phenos,
        "lod": np.concatenate(lods) if lods else np.array([], dtype=float),
    })
    logger.info(f"Kept {len(highlod)} high LOD rows.")
    return HighLod(highlod, chr_pos, lod_thr=lod_thr, drop_lod=drop_lod)


def highlod_thr(hl: HighLod, lod_thr: Optional[float] = None) -> HighLod:
    """Restrict a HighLod to LOD scores at or above lod_thr."""
    if lod_thr is None:
        return hl
    if hl.lod_thr is not None and lod_thr < hl.lod_thr:
        logger.warning(
            "Requested lod_thr %.3g is below the %.3g used to build the highlod table; "
            "rows under %.3g are not available.", lod_thr, hl.lod_thr, hl.lod_thr,
        )
    keep = hl.highlod["lod"].to_numpy() >= lod_thr
    highlod = hl.highlod.loc[keep].reset_index(drop=True)
    return replace(hl, highlod=highlod, lod_thr=lod_thr)


# ------------------------
# readers
# ------------------------

def _infer_sep_from_ext(path: str) -> str:
    return "," if (path or "").lower().endswith(".csv") else "\t"


def read_table(path: str) -> pd.DataFrame:
    try:
        return pd.read_csv(path, sep=_infer_sep_from_ext(path))
    except (OSError, pd.errors.ParserError) as e:
        raise ValueError(f"Failed to read table: {path} ({e})") from e


def read_chr_pos(chr_pos_file: str) -> pd.DataFrame:
    """
    Read marker positions.

    :param chr_pos_file: CSV/TSV with columns chr and pos; an optional marker column becomes the index
    """
    logger.info(f"Loading position table: {chr_pos_file}")
    chr_pos = read_table(chr_pos_file)
    _check_columns(chr_pos, CHR_POS_COLUMNS, "position table")
    if "marker" in chr_pos.columns:
        chr_pos = chr_pos.set_index("marker")
    chr_pos = chr_pos.loc[:, ["chr", "pos"]].copy()
    chr_pos["chr"] = chr_pos["chr"].astype(str)
    logger.info(f"Loaded {len(chr_pos)} markers on {chr_pos['chr'].nunique()} chromosomes.")
    return chr_pos


def read_highlod(chr_pos_file: str, highlod_file: str, lod_thr: Optional[float] = None) -> HighLod:
    """
    Read a precomputed highlod table and its marker positions.

    :param chr_pos_file: CSV/TSV with columns chr and pos
    :param highlod_file: CSV/TSV with columns row (0-based), phenos and lod
    :param lod_thr: LOD threshold the table was built with, if known
    """
    chr_pos = read_chr_pos(chr_pos_file)
    logger.info(f"Loading highlod table: {highlod_file}")
    highlod = read_table(highlod_file)
    _check_columns(highlod, HIGHLOD_COLUMNS, "highlod table")
    highlod["row"] = highlod["row"].astype(int)
    highlod["lod"] = highlod["lod"].astype(float)
    if "chr" in highlod.columns:
        highlod["chr"] = highlod["chr"].astype(str)
    logger.info(f"Loaded {len(highlod)} high LOD rows for {highlod['phenos'].nunique()} phenotypes.")
    return HighLod(highlod, chr_pos, lod_thr=lod_thr)


def read_scan(scan_file: str) -> pd.DataFrame:
    """
    Read a genome scan with columns chr, pos and one LOD column per phenotype.

    :param scan_file: CSV/TSV scan file; an optional marker column becomes the index
    """
    logger.info(f"Loading scan: {scan_file}")
    scan = read_table(scan_file)
    _check_columns(scan, CHR_POS_COLUMNS, "scan")
    if "marker" in scan.columns:
        scan = scan.set_index("marker")
    scan["chr"] = scan["chr"].astype(str)
    logger.info(f"Loaded scan with {len(scan)} markers and {scan.shape[1] - 2} phenotypes.")
    return scan
