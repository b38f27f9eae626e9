# Description: Filenames used in the qcdemux output tree.
from pathlib import Path

# Reads
FASTQ_SUFFIX = ".fastq"
FILTERED_READS = "calls.Qmin15.fq.gz"

# Quality control
NANOPLOT_DIR = "NanoPlot"

# Native barcode demultiplexing
DORADO_DEMUX_DIR = "DoradoDemux"

# Primer demultiplexing
MINIBAR_DEMUX_DIR = "MinibarDemux"
MINIBAR_WORKING_DIR = "minibar_tmp"
MINIBAR_OUTPUT_GLOB = "sample_*.fastq"


def demuxed_read_filename(barcode: str, marker: str) -> str:
    return f"{barcode}_{marker}.QC{FASTQ_SUFFIX}"


def oriented_read_filename(stem: str) -> str:
    return f"{stem}.oriented{FASTQ_SUFFIX}"


def barcode_from_filename(path: Path) -> str:
    # Dorado names its output files after the barcode (e.g. "SQK-NBD114-96_barcode01.fastq")
    return path.name.removesuffix(FASTQ_SUFFIX)


def barcode_from_renamed_filename(path: Path, marker: str) -> str:
    return path.name.removesuffix(demuxed_read_filename("", marker))


def fastq_stem(path: Path) -> str:
    return path.name.removesuffix(FASTQ_SUFFIX)
