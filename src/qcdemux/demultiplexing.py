from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

from qcdemux.configuration import PipelineConfig
from qcdemux.constants import BARCODING_KIT, MARKERS
from qcdemux.exceptions import MalformedFastqError
from qcdemux.logging_config import logger
from qcdemux.my_dataclasses import PipelineRun, ReadFile, Stage
from qcdemux.utils import count_fastq_records, run_command, tool_env
import qcdemux.filenames as fn


@dataclass
class RelocationResult:
    relocated: List[ReadFile] = field(default_factory=list)
    skipped: List[ReadFile] = field(default_factory=list)


def run_dorado_demux(config: PipelineConfig, run: PipelineRun, dry_run: bool) -> None:
    run_command(
        [
            "dorado",
            "demux",
            "--kit-name",
            BARCODING_KIT,
            "--output-dir",
            run.dorado_demux_dir,
            "--emit-fastq",
            run.filtered_reads,
        ],
        env=tool_env(config.dorado_bin_dir),
        dry_run=dry_run,
    )


def get_demuxed_read_files(run: PipelineRun) -> List[ReadFile]:
    return [ReadFile.from_demuxed_path(path) for path in run.get_demuxed_fastq_files()]


def report_read_counts(read_files: List[ReadFile]) -> Dict[Path, int]:
    # Read counts are informational only
    read_counts = {}
    for read_file in read_files:
        try:
            n_reads = count_fastq_records(read_file.path)
        except MalformedFastqError as e:
            logger.error("Could not count sequences in %s: %s", read_file.path, e)
            continue
        logger.info("File: %s - Number of sequences: %d", read_file.path, n_reads)
        read_counts[read_file.path] = n_reads
    return read_counts


def relocate_demuxed_read_files(
    run: PipelineRun,
    read_files: List[ReadFile],
    barcode_map: Dict[str, str],
) -> RelocationResult:
    """
    Move demultiplexed reads into [DoradoDemux]/[marker]/[barcode]_[marker].QC.fastq.

    Files whose barcode is not in the barcode map (or maps to an unknown marker)
    are left in place.
    """
    result = RelocationResult()

    for read_file in read_files:
        marker = barcode_map.get(read_file.barcode)

        if marker is None:
            logger.warning("Barcode %s not found in barcode map. Skipping...", read_file.barcode)
            result.skipped.append(read_file)
            continue

        if marker not in MARKERS:
            logger.warning("Barcode %s is mapped to unknown marker %s. Skipping...", read_file.barcode, marker)
            result.skipped.append(read_file)
            continue

        target = run.marker_dir(run.dorado_demux_dir, marker) / fn.demuxed_read_filename(read_file.barcode, marker)
        if target.exists():
            logger.warning("Overwriting existing file %s", target)

        target.parent.mkdir(parents=True, exist_ok=True)
        read_file.path.replace(target)
        logger.info("Moved %s to %s", read_file.path, target)

        result.relocated.append(read_file.moved_to(target, Stage.RENAMED, marker))

    logger.info("Relocated %d file(s), skipped %d file(s)", len(result.relocated), len(result.skipped))

    return result
