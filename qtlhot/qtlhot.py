from qtlhot.highlod import read_highlod, read_scan, read_table
from qtlhot.hotsize import QuantLevel, hotsize_highlod, hotsize_scan
from qtlhot.smooth import KERNELS
from qtlhot.viz import Visualizer
from qtlhot.log import logger

import argparse
import os

import matplotlib.pyplot as plt


def load_quant_level(quant_level_file, quant_max_N_file=None):
    """
    Read quantile LOD levels, optionally paired with per-threshold hotspot size thresholds.

    :return: (quant_level, quant_perm); flat levels when quant_max_N_file is None,
        otherwise a QuantLevel
    """
    if quant_level_file is None:
        if quant_max_N_file is not None:
            raise ValueError("--quant_level is required with --quant_max_N")
        return None, None
    logger.info(f"Loading quantile levels: {quant_level_file}")
    max_lod_quant = read_table(quant_level_file)
    if quant_max_N_file is None:
        return max_lod_quant.iloc[:, 0].to_numpy(dtype=float), None
    logger.info(f"Loading hotspot size thresholds: {quant_max_N_file}")
    max_N = read_table(quant_max_N_file)
    # first column holds the base LOD thresholds
    max_N = max_N.set_index(max_N.columns[0])
    return None, QuantLevel(max_N=max_N, max_lod_quant=max_lod_quant)


def compute_hotsize(args):
    quant_level, quant_perm = load_quant_level(args.quant_level, args.quant_max_N)
    if args.scan:
        scan = read_scan(args.scan)
        return hotsize_scan(scan, lod_thr=args.lod_thr, drop_lod=args.drop_lod, window=args.window,
                            quant_level=quant_level, quant_perm=quant_perm, kernel=args.kernel)
    if args.chr_pos is None:
        raise ValueError("--chr_pos is required with --highlod")
    hl = read_highlod(args.chr_pos, args.highlod)
    return hotsize_highlod(hl, lod_thr=args.lod_thr, window=args.window,
                           quant_level=quant_level, quant_perm=quant_perm, kernel=args.kernel)


def run_size(args):
    """Compute hotspot sizes and print summary"""

    logger.info("Starting size subcommand...")
    hots = compute_hotsize(args)
    if hots is None:
        print("No hotspots: no LOD scores above threshold.")
        return
    print(hots.summary())
    print()
    print(hots.max().to_string(index=False))
    logger.info("Done!")


def run_plot(args):
    """Hotspot size plot"""

    logger.info("Starting plot subcommand...")
    hots = compute_hotsize(args)
    if hots is None:
        logger.warning("No hotspots to plot.")
        return
    visualizer = Visualizer()
    plot_kwargs = dict(quant_axis=args.quant_axis, col=args.col, ylabel=args.ylabel)

    if args.by_chr:
        figures = visualizer.plot_hotsize_by_chr(hots, width=args.width, height=args.height, **plot_kwargs)
        for chr_name, fig in figures.items():
            out_file = os.path.join(args.out_dir, f"{args.out_name}.chr{chr_name}.{args.format}")
            fig.tight_layout()
            fig.savefig(out_file, dpi=300, bbox_inches="tight")
            plt.close(fig)
            logger.info(f"Saved {out_file}")

    fig = plt.figure(figsize=(args.width, args.height))
    ax = fig.add_subplot(111)
    visualizer.plot_hotsize(hots, ax=ax, title=args.title, **plot_kwargs)
    plt.tight_layout()
    out_file = os.path.join(args.out_dir, f"{args.out_name}.{args.format}")
    plt.savefig(out_file, dpi=300, bbox_inches="tight")
    plt.close()
    logger.info(f"Saved {out_file}")

    logger.info("Plotting completed!")


def add_input_arguments(parser):
    input_group = parser.add_mutually_exclusive_group(required=True)
    input_group.add_argument("--highlod", type=str, help="Path to highlod table (CSV/TSV). Required columns: row (0-based marker index), phenos, lod")
    input_group.add_argument("--scan", type=str, help="Path to genome scan (CSV/TSV). Columns: chr, pos, then one LOD column per phenotype")
    parser.add_argument("--chr_pos", type=str, help="Path to marker position table (CSV/TSV). Required columns: chr, pos. Required with --highlod")
    parser.add_argument("--lod_thr", type=float, default=None, help="LOD threshold (default: %(default)s)")
    parser.add_argument("--drop_lod", type=float, default=1.5, help="LOD drop from maximum to keep for support intervals, used with --scan (default: %(default)s)")
    parser.add_argument("--window", type=float, default=None, help="Window width for smoothing hotspot size; not used if 0 (default: %(default)s)")
    parser.add_argument("--kernel", type=str, default="boxcar", choices=KERNELS, help="Smoothing kernel (default: %(default)s)")
    parser.add_argument("--quant_level", type=str, default=None, help="Path to quantile LOD levels for hotspots of size 1 up to N (first column used)")
    parser.add_argument("--quant_max_N", type=str, default=None, help="Path to hotspot size thresholds by base LOD threshold (first column: LOD threshold); used with --quant_level")


def main(argv=None):
    description = """
    qtlhot: Hotspot sizes for multi-phenotype QTL scans.
    """

    epilog = """
    Example usage:
    qtlhot size --highlod highlod.csv --chr_pos chr_pos.csv --lod_thr 4 --window 5 --quant_level quant.csv
    """
    __version__ = "1.0.0"

    parser = argparse.ArgumentParser(
        description=description,
        epilog=epilog,
        formatter_class=argparse.RawDescriptionHelpFormatter  # Preserve formatting
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Subcommands")

    # size subcommand
    size_parser = subparsers.add_parser("size", help="Compute hotspot sizes and print summary")
    add_input_arguments(size_parser)
    size_parser.set_defaults(func=run_size)

    # plot subcommand
    plot_parser = subparsers.add_parser("plot", help="Plot hotspot sizes")
    add_input_arguments(plot_parser)
    plot_parser.add_argument("--by_chr", action="store_true", help="Also save one plot per chromosome (default: False)")
    plot_parser.add_argument("--quant_axis", type=int, nargs="+", default=None, help="Hotspot sizes labeled on the right axis (default: integer ticks over max.N)")
    plot_parser.add_argument("--col", type=str, nargs=3, default=["black", "red", "blue"], help="Colors of raw, smoothed and sliding hotspot size (default: %(default)s)")
    plot_parser.add_argument("--ylabel", type=str, default="counts", help="Label for vertical axis (default: %(default)s)")
    plot_parser.add_argument("--title", type=str, default=None, help="Plot title")
    plot_parser.add_argument("--width", type=float, default=10, help="Figure width (default: %(default)s)")
    plot_parser.add_argument("--height", type=float, default=4, help="Figure height (default: %(default)s)")
    plot_parser.add_argument("--format", type=str, default="png", help="Output format, e.g., pdf or png (default: %(default)s)")
    plot_parser.add_argument("--out_dir", type=str, default=".", help="Output directory (default: %(default)s)")
    plot_parser.add_argument("--out_name", type=str, default="hotsize", help="Output file name prefix (default: %(default)s)")
    plot_parser.set_defaults(func=run_plot)

    # Parse arguments and execute the corresponding subcommand
    args = parser.parse_args(argv)
    if args.command:
        # Create output directory if it doesn't exist
        if hasattr(args, "out_dir"):
            os.makedirs(args.out_dir, exist_ok=True)
        args.func(args)
    else:
        parser.print_help()

if __name__ == "__main__":
    main()
