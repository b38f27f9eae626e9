import os
import shutil
import stat
import urllib.error
import urllib.request
from pathlib import Path
from typing import Callable, List

from qcdemux.configuration import PipelineConfig
from qcdemux.constants import (
    MARKERS,
    MINIBAR_EDIT_DISTANCE,
    MINIBAR_MIN_LENGTH,
    MINIBAR_PRIMER_EDIT_DISTANCE,
    MINIBAR_URL,
)
from qcdemux.exceptions import ChecksumMismatchError, DownloadError, ExternalToolError
from qcdemux.logging_config import logger
from qcdemux.my_dataclasses import PipelineRun, ReadFile, Stage
from qcdemux.utils import run_command, sha256sum
import qcdemux.filenames as fn

Fetcher = Callable[[str, Path], None]


def download_file(url: str, destination: Path) -> None:
    destination.parent.mkdir(parents=True, exist_ok=True)
    with urllib.request.urlopen(url, timeout=60) as response, open(destination, "wb") as f:
        shutil.copyfileobj(response, f)


def is_executable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


def make_executable(path: Path) -> None:
    mode = path.stat().st_mode
    path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


def verify_checksum(path: Path, expected_sha256: str) -> None:
    actual_sha256 = sha256sum(path)
    if actual_sha256 != expected_sha256.lower():
        raise ChecksumMismatchError(f"Checksum of {path} ({actual_sha256}) does not match expected checksum ({expected_sha256})")


def resolve_minibar(
    minibar_path: Path,
    expected_sha256: str | None = None,
    url: str = MINIBAR_URL,
    fetch: Fetcher = download_file,
    dry_run: bool = False,
) -> Path:
    """
    Make sure the minibar script is available at minibar_path.

    If the script is missing it is fetched from url. When expected_sha256 is
    given, the checksum of the script is verified and a mismatching download is
    removed again.
    """
    if is_executable(minibar_path):
        logger.info("Found minibar script at %s", minibar_path)
        if expected_sha256:
            verify_checksum(minibar_path, expected_sha256)
        return minibar_path

    logger.info("Minibar script not found at %s, downloading from %s", minibar_path, url)
    if dry_run:
        logger.info("Dry run. Skipping download of minibar.")
        return minibar_path

    try:
        fetch(url, minibar_path)
    except (urllib.error.URLError, OSError) as e:
        minibar_path.unlink(missing_ok=True)
        raise DownloadError(f"Could not download minibar from {url}: {e}") from e

    if expected_sha256:
        try:
            verify_checksum(minibar_path, expected_sha256)
        except ChecksumMismatchError:
            logger.error("Downloaded minibar script does not match the expected checksum. Removing %s", minibar_path)
            minibar_path.unlink()
            raise
    else:
        logger.warning("No checksum configured for minibar. Downloaded script is not verified.")

    make_executable(minibar_path)

    return minibar_path


def minibar_command(minibar_path: Path) -> List[str]:
    # Absolute path, minibar is run from its own working directory
    return [str(minibar_path.resolve())]


def check_demux_table(minibar_path: Path, demux_table: Path, dry_run: bool) -> None:
    # Prints the columns minibar detects in the table. Informational only.
    logger.info("Checking demux file %s", demux_table)
    try:
        res = run_command([*minibar_command(minibar_path), "-info", "cols", demux_table], dry_run=dry_run, check=False)
    except ExternalToolError as e:
        logger.warning("Could not check demux file %s (%s)", demux_table, e)
        return

    if res is not None and res.returncode != 0:
        logger.warning("minibar could not read demux file %s (exit code %d)", demux_table, res.returncode)


def collect_minibar_output(working_dir: Path, output_dir: Path, read_file: ReadFile) -> List[ReadFile]:
    collected = []
    for sample_fastq in sorted(working_dir.glob(fn.MINIBAR_OUTPUT_GLOB)):
        target = output_dir / sample_fastq.name
        if target.exists():
            logger.warning("Overwriting existing file %s", target)
        sample_fastq.replace(target)
        collected.append(read_file.moved_to(target, Stage.PRIMER_DEMUXED))
    return collected


def run_minibar(
    config: PipelineConfig,
    run: PipelineRun,
    minibar_path: Path,
    dry_run: bool,
) -> List[ReadFile]:

    for marker in MARKERS:
        check_demux_table(minibar_path, config.demux_tables[marker], dry_run)

    logger.info(
        "Demultiplexing primers with edit distance %d. Adjust the settings if your primers need a different edit distance.",
        MINIBAR_EDIT_DISTANCE,
    )

    primer_demuxed = []
    for marker in MARKERS:
        output_dir = run.marker_dir(run.minibar_demux_dir, marker)
        for read_file in run.get_renamed_read_files(marker):
            logger.info("Demultiplexing %s with minibar for %s...", read_file.path, marker)

            # minibar writes sample_*.fastq to its working directory
            run.minibar_working_dir.mkdir(parents=True, exist_ok=True)
            run_command(
                [
                    *minibar_command(minibar_path),
                    config.demux_tables[marker].resolve(),
                    "-e",
                    MINIBAR_EDIT_DISTANCE,
                    "-E",
                    MINIBAR_PRIMER_EDIT_DISTANCE,
                    "-l",
                    MINIBAR_MIN_LENGTH,
                    "-F",
                    read_file.path.resolve(),
                ],
                cwd=run.minibar_working_dir,
                dry_run=dry_run,
            )

            if not dry_run:
                primer_demuxed.extend(collect_minibar_output(run.minibar_working_dir, output_dir, read_file))

    logger.info("Collected %d primer demultiplexed file(s)", len(primer_demuxed))
    for marker in MARKERS:
        sample_files = run.get_primer_demuxed_fastq_files(marker)
        logger.info("%s: %d sample file(s) in %s", marker, len(sample_files), run.marker_dir(run.minibar_demux_dir, marker))

    return primer_demuxed
