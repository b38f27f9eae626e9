import gzip
import shutil
import subprocess

from qcdemux.constants import MAX_READ_LENGTH, MIN_READ_LENGTH, MIN_READ_QUALITY, NANOPLOT_PLOT_TYPE
from qcdemux.configuration import PipelineConfig
from qcdemux.exceptions import ExternalToolError
from qcdemux.logging_config import logger
from qcdemux.my_dataclasses import PipelineRun
from qcdemux.utils import run_command


def run_nanoplot(config: PipelineConfig, run: PipelineRun, dry_run: bool) -> None:
    cmd = [
        "NanoPlot",
        "-t",
        config.threads,
        "--fastq",
        config.raw_reads,
        "--plots",
        NANOPLOT_PLOT_TYPE,
        "--maxlength",
        MAX_READ_LENGTH,
        "--outdir",
        run.nanoplot_dir,
    ]

    # Visualisation only, a failing NanoPlot does not stop the pipeline
    try:
        res = run_command(cmd, dry_run=dry_run, check=False)
    except ExternalToolError as e:
        logger.warning("Could not run NanoPlot (%s). Continuing without QC plots.", e)
        return

    if res is not None and res.returncode != 0:
        logger.warning("NanoPlot exited with code %d. Continuing without QC plots.", res.returncode)


def get_chopper_command(config: PipelineConfig) -> list:
    return [
        "chopper",
        "--minlength",
        str(MIN_READ_LENGTH),
        "--maxlength",
        str(MAX_READ_LENGTH),
        "-q",
        str(MIN_READ_QUALITY),
        "-t",
        str(config.threads),
        str(config.raw_reads),
    ]


def run_chopper(config: PipelineConfig, run: PipelineRun, dry_run: bool) -> None:
    cmd = get_chopper_command(config)

    logger.info("Running: %s | gzip > %s", " ".join(cmd), run.filtered_reads)
    if dry_run:
        logger.info("Dry run. Skipping chopper.")
        return

    # Stream filtered reads through gzip
    run.filtered_reads.parent.mkdir(parents=True, exist_ok=True)
    try:
        with subprocess.Popen(cmd, stdout=subprocess.PIPE) as proc, gzip.open(run.filtered_reads, "wb") as out:
            shutil.copyfileobj(proc.stdout, out)
    except FileNotFoundError as e:
        logger.error("Could not find executable chopper")
        raise ExternalToolError("chopper", 127) from e

    if proc.returncode != 0:
        logger.error("chopper failed with exit code %d", proc.returncode)
        raise ExternalToolError("chopper", proc.returncode)

    logger.info("Filtered reads written to %s", run.filtered_reads)
