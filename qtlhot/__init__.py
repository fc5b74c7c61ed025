"""qtlhot package

Core modules:
- qtlhot.highlod: highlod tables of LOD scores above threshold
- qtlhot.peaks: per-chromosome phenotype peaks
- qtlhot.smooth: sliding window peak counts
- qtlhot.hotsize: hotspot size computation and summaries
- qtlhot.viz: Visualization utilities
- qtlhot.qtlhot: CLI entry point (main)
"""

__all__ = [
    "highlod",
    "peaks",
    "smooth",
    "hotsize",
    "viz",
    "qtlhot",
]
