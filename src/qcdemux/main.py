from pathlib import Path

import typer
from typing_extensions import Annotated, Optional

from qcdemux.configuration import PipelineConfig, get_template_config, load_barcode_map, validate_input_files
from qcdemux.constants import CONDA_CHANNEL, CONDA_PACKAGES
from qcdemux.demultiplexing import get_demuxed_read_files, relocate_demuxed_read_files, report_read_counts, run_dorado_demux
from qcdemux.environment import ensure_conda_environment
from qcdemux.exceptions import MissingInputFileError, QCDemuxError
from qcdemux.logging_config import get_log_file_handler, logger
from qcdemux.minibar import resolve_minibar, run_minibar
from qcdemux.my_dataclasses import PipelineRun
from qcdemux.orientation import check_vsearch_version, orient_marker_reads
from qcdemux.quality_control import run_chopper, run_nanoplot

# Set up the CLI
app = typer.Typer()

ConfigOption = Annotated[
    Path,
    typer.Option(
        "--config",
        "-c",
        help="Path to pipeline config file (.json)",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        resolve_path=True,
    ),
]
OutputDirOption = Annotated[
    Path,
    typer.Option(
        "--output-dir",
        "-o",
        help="Output directory",
        file_okay=False,
        dir_okay=True,
        resolve_path=True,
    ),
]
LogFileOption = Annotated[
    Optional[Path],
    typer.Option(
        "--log-file",
        "-l",
        help="Path to log file",
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
    ),
]


@app.command()
def run(
    config_file: ConfigOption,
    output_dir: OutputDirOption = Path("."),
    log_file: LogFileOption = None,
    skip_env_setup: Annotated[
        bool,
        typer.Option(
            "--skip-env-setup",
            help="Do not check or create the conda environment",
        ),
    ] = False,
    run_qc: Annotated[
        bool,
        typer.Option(
            "--run-qc",
            help="Run quality control (NanoPlot and chopper)",
        ),
    ] = False,
    run_demux: Annotated[
        bool,
        typer.Option(
            "--run-demux",
            help="Run Dorado demultiplexing and renaming",
        ),
    ] = False,
    run_orientation: Annotated[
        bool,
        typer.Option(
            "--run-orientation",
            help="Run VSEARCH orienting",
        ),
    ] = False,
    run_primer_demux: Annotated[
        bool,
        typer.Option(
            "--run-minibar",
            help="Run minibar primer demultiplexing",
        ),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            "-d",
            help="Dry run",
        ),
    ] = False,
) -> None:

    # Check if everything should be run (default behaviour if all options are False)
    if not any([run_qc, run_demux, run_orientation, run_primer_demux]):
        run_qc = True
        run_demux = True
        run_orientation = True
        run_primer_demux = True

    # Setup logging to file
    if log_file is not None:
        logger.addHandler(get_log_file_handler(log_file=log_file))

    # Welcome message
    logger.info("Running QC and demultiplexing...")

    try:
        config = PipelineConfig.load(config_file)
        process_pipeline(
            config=config,
            run=PipelineRun(output_dir),
            setup_environment=not skip_env_setup,
            run_qc=run_qc,
            run_demux=run_demux,
            run_orientation=run_orientation,
            run_primer_demux=run_primer_demux,
            dry_run=dry_run,
        )
    except QCDemuxError as e:
        logger.error("%s", e)
        raise typer.Exit(code=e.exit_code) from e

    logger.info("QC and demux finished. Please check output files for length and sequence/sample distributions.")


@app.command()
def rename(
    config_file: ConfigOption,
    output_dir: OutputDirOption = Path("."),
    log_file: LogFileOption = None,
) -> None:
    """
    Count reads and move Dorado output files into marker directories.
    """
    if log_file is not None:
        logger.addHandler(get_log_file_handler(log_file=log_file))

    try:
        config = PipelineConfig.load(config_file)
        if not config.barcode_file.is_file():
            raise MissingInputFileError(config.barcode_file)

        pipeline_run = PipelineRun(output_dir)
        pipeline_run.setup()
        rename_demuxed_reads(config, pipeline_run)
    except QCDemuxError as e:
        logger.error("%s", e)
        raise typer.Exit(code=e.exit_code) from e


@app.command()
def init_config(
    config_file: Annotated[
        Path,
        typer.Argument(
            help="Where to write the template config file (.json)",
            file_okay=True,
            dir_okay=False,
            resolve_path=True,
        ),
    ],
) -> None:
    """
    Write a template config file. Edit the paths before running the pipeline.
    """
    if config_file.exists():
        logger.error("Config file %s already exists", config_file)
        raise typer.Exit(code=1)

    get_template_config().save(config_file)
    logger.info("Wrote template config to %s. Please edit the paths before running.", config_file)


def rename_demuxed_reads(config: PipelineConfig, run: PipelineRun):
    read_files = get_demuxed_read_files(run)
    logger.info("Found %d demultiplexed file(s) in %s", len(read_files), run.dorado_demux_dir)

    # Check sequences per barcode
    report_read_counts(read_files)

    # Rename and move Dorado output files
    barcode_map = load_barcode_map(config.barcode_file)
    return relocate_demuxed_read_files(run, read_files, barcode_map)


def process_pipeline(
    config: PipelineConfig,
    run: PipelineRun,
    setup_environment: bool,
    run_qc: bool,
    run_demux: bool,
    run_orientation: bool,
    run_primer_demux: bool,
    dry_run: bool,
):
    # Check input files before anything is run or created
    logger.info("Checking input files")
    validate_input_files(config)

    # Environment
    if setup_environment:
        ensure_conda_environment(
            name=config.conda_env,
            channel=CONDA_CHANNEL,
            packages=CONDA_PACKAGES,
            dry_run=dry_run,
        )

    # Setup output directories
    logger.info("Setting up output directories in %s", run.output_dir)
    run.setup()

    # Quality control
    if run_qc:
        logger.info("Running quality control...")
        run_nanoplot(config, run, dry_run)
        run_chopper(config, run, dry_run)

    # Native barcode demultiplexing
    if run_demux:
        logger.info("Running Dorado demultiplexing...")
        run_dorado_demux(config, run, dry_run)
        if dry_run:
            logger.info("Dry run. Skipping renaming of Dorado output files.")
        else:
            rename_demuxed_reads(config, run)

    # Orientation
    if run_orientation:
        logger.info("Running VSEARCH orienting...")
        check_vsearch_version(dry_run)
        orient_marker_reads(config, run, dry_run)

    # Primer demultiplexing
    if run_primer_demux:
        logger.info("Running minibar demultiplexing...")
        minibar_path = resolve_minibar(
            config.minibar_path,
            expected_sha256=config.minibar_sha256,
            dry_run=dry_run,
        )
        run_minibar(config, run, minibar_path, dry_run)


if __name__ == "__main__":
    app()
