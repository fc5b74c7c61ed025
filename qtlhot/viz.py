import matplotlib as mpl
mpl.use('Agg')
import matplotlib.pyplot as plt
from matplotlib import axes

from qtlhot.hotsize import HotSize
from qtlhot.log import logger
from typing import Optional, Sequence


COLUMN_LABELS = {
    "max.N": "raw",
    "max.N.window": "smoothed",
    "quant": "sliding",
}


class Visualizer:
    def __init__(self):
        pass

    def plot_hotsize(
            self,
            hots: HotSize,
            ax: axes.Axes = None,
            ylabel: str = "counts",
            quant_axis: Optional[Sequence[int]] = None,
            col: Sequence[str] = ("black", "red", "blue"),
            chrom: Optional[str] = None,
            chr_gap: float = 0,
            title: Optional[str] = None):
        """
        Plot hotspot sizes along the genome.

        :param hots: HotSize from hotsize_highlod or hotsize_scan
        :param ax: Matplotlib Axes object for plotting
        :param ylabel: Label for vertical axis
        :param quant_axis: Hotspot sizes to label on the right axis with their quantile LOD level
        :param col: Colors of raw, smoothed and sliding hotspot size
        :param chrom: Plot a single chromosome
        :param chr_gap: Gap between chromosomes, in position units
        :param title: Title of the plot
        :return: The right-hand quantile axis if drawn, otherwise ax
        """
        logger.info("Plotting hotspot sizes...")
        if ax is None:
            raise ValueError("Please provide a valid Matplotlib Axes object for plotting.")

        colors = dict(zip(("max.N", "max.N.window", "quant"), col))
        data = hots.plot_data(chrom=chrom)

        # Calculate cumulative positions for each chromosome
        chrom_start = {}
        chrom_center = {}
        current_pos = 0
        multi_chr = data["chr"].nunique() > 1
        for chr_name, group in data.groupby("chr", sort=False):
            chr_min = group["pos"].min() if multi_chr else 0
            chr_len = group["pos"].max() - chr_min
            chrom_start[chr_name] = current_pos - chr_min
            chrom_center[chr_name] = current_pos + chr_len / 2
            current_pos += chr_len + chr_gap

        for column in hots.columns:
            series = data[data["column"] == column]
            label = COLUMN_LABELS[column]
            for chr_name, group in series.groupby("chr", sort=False):
                ax.step(group["pos"] + chrom_start[chr_name], group["value"], where="mid",
                        color=colors[column], linewidth=1, label=label)
                # one legend entry per column
                label = None

        if hots.quant_thr is not None:
            ax.axhline(hots.quant_thr, color=colors["max.N.window"], linestyle="--", linewidth=2)

        if multi_chr:
            ax.set_xticks(list(chrom_center.values()), list(chrom_center.keys()))
            ax.set_xlabel("Chromosome")
        else:
            ax.set_xlabel(f"Chromosome {next(iter(chrom_center), '')} position")
        ax.set_ylabel(ylabel)
        if multi_chr:
            ax.set_xlim(0, current_pos)
        ax.set_ylim(0, max(1.0, ax.get_ylim()[1]))
        ax.spines[['top']].set_visible(False)
        ax.legend(loc="upper right", frameon=False)
        if title is not None:
            ax.set_title(title)

        # Add right axis for quantile LOD level.
        if hots.quant_level is None:
            return ax
        levels = hots.quant_axis(quant_axis)
        ax2 = ax.twinx()
        ax2.set_ylim(ax.get_ylim())
        ax2.set_yticks(levels["size"].to_numpy(), [f"{v:g}" for v in levels["level"]], fontsize=9)
        ax2.set_ylabel("sliding LOD thresholds")
        ax2.spines[['top']].set_visible(False)
        return ax2

    def plot_hotsize_by_chr(self, hots: HotSize, width: float = 8, height: float = 4, **kwargs):
        """
        One figure per chromosome with a positive raw count.

        :return: Dict of chromosome to Figure; callers save and close them
        """
        figures = {}
        peaks = hots.peaks_by_chr()
        chroms = peaks["chr"].tolist() if not peaks.empty else []
        for chr_name in chroms:
            fig = plt.figure(figsize=(width, height))
            ax = fig.add_subplot(111)
            kwargs.pop("chrom", None)
            kwargs.pop("title", None)
            self.plot_hotsize(hots, ax=ax, chrom=chr_name, title=f"chr {chr_name}", **kwargs)
            figures[chr_name] = fig
        return figures
