import re
from typing import List

from qcdemux.configuration import PipelineConfig
from qcdemux.constants import MARKERS, MIN_VSEARCH_VERSION
from qcdemux.exceptions import ExternalToolError
from qcdemux.logging_config import logger
from qcdemux.my_dataclasses import PipelineRun, ReadFile, Stage
from qcdemux.utils import run_command
import qcdemux.filenames as fn


def parse_vsearch_version(version_output: str) -> str | None:
    # e.g. "vsearch v2.22.1_linux_x86_64, 503.8GB RAM, 128 cores"
    match = re.search(r"vsearch v(\d+(?:\.\d+)*)", version_output)
    return match[1] if match else None


def is_version_older(version: str, minimum_version: str) -> bool:
    current_components = [int(x) for x in version.split(".")]
    minimum_components = [int(x) for x in minimum_version.split(".")]

    # Pad the shorter version with zeros
    while len(current_components) < len(minimum_components):
        current_components.append(0)
    while len(minimum_components) < len(current_components):
        minimum_components.append(0)

    return current_components < minimum_components


def check_vsearch_version(dry_run: bool) -> str | None:
    """
    Log the installed VSEARCH version. Informational only, never stops the pipeline.
    """
    try:
        res = run_command(["vsearch", "--version"], dry_run=dry_run, check=False, capture_output=True)
    except ExternalToolError as e:
        logger.warning("Could not determine VSEARCH version (%s)", e)
        return None

    if res is None:
        return None

    # vsearch prints its version to stderr
    version = parse_vsearch_version(f"{res.stdout}\n{res.stderr}")
    logger.info("VSEARCH version: %s", version)

    if version is None:
        logger.warning("If VSEARCH orienting throws an error, please check that your version is >=%s", MIN_VSEARCH_VERSION)
    elif is_version_older(version, MIN_VSEARCH_VERSION):
        logger.warning("VSEARCH %s is older than %s and may not support --orient", version, MIN_VSEARCH_VERSION)

    return version


def orient_marker_reads(config: PipelineConfig, run: PipelineRun, dry_run: bool) -> List[ReadFile]:
    oriented = []
    for marker in MARKERS:
        database = config.vsearch_dbs[marker]
        for read_file in run.get_renamed_read_files(marker):
            output_fastq = run.minibar_demux_dir / fn.oriented_read_filename(fn.fastq_stem(read_file.path))
            run_command(
                [
                    "vsearch",
                    "--orient",
                    read_file.path,
                    "--db",
                    database,
                    "--fastqout",
                    output_fastq,
                ],
                dry_run=dry_run,
            )
            oriented.append(read_file.moved_to(output_fastq, Stage.ORIENTED))

    logger.info("Oriented %d file(s)", len(oriented))

    return oriented
