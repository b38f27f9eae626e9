import urllib.error
from types import SimpleNamespace

import pytest
from typer.testing import CliRunner

from conftest import write_fastq
from qcdemux import environment, main, minibar
from qcdemux.configuration import PipelineConfig
from qcdemux.exceptions import ExternalToolError, MissingInputFileError
from qcdemux.main import app, process_pipeline
from qcdemux.my_dataclasses import PipelineRun

runner = CliRunner()


def fake_dorado_demux(config, run, dry_run):
    # 400 reads across 5 barcodes
    for barcode in ["BC01", "BC02", "BC03", "BC04", "BC05"]:
        write_fastq(run.dorado_demux_dir / f"{barcode}.fastq", 80)


def test_help():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0


def test_init_config(tmp_path):
    # Arrange
    config_file = tmp_path / "config.json"

    # Act
    result = runner.invoke(app, ["init-config", str(config_file)])

    # Assert
    assert result.exit_code == 0
    assert PipelineConfig.load(config_file).barcode_file.name == "Dorado_BC_file.txt"

    # Existing config files are not overwritten
    assert runner.invoke(app, ["init-config", str(config_file)]).exit_code == 1


def test_run_missing_input_file_exits_before_any_tool(tmp_path, config, recorded_commands):
    # Arrange
    config_file = tmp_path / "config.json"
    config.save(config_file)
    config.vsearch_dbs["ITS"].unlink()
    output_dir = tmp_path / "output"

    # Act
    result = runner.invoke(app, ["run", "--config", str(config_file), "--output-dir", str(output_dir)])

    # Assert
    assert result.exit_code == 1
    assert recorded_commands.commands == []
    assert not output_dir.exists()


def test_run_tool_failure_exit_code(tmp_path, config, recorded_commands, monkeypatch):
    # Arrange
    config_file = tmp_path / "config.json"
    config.save(config_file)

    def failing_chopper(*args, **kwargs):
        raise ExternalToolError("chopper", 101)

    monkeypatch.setattr(main, "run_chopper", failing_chopper)
    monkeypatch.setattr(main, "run_dorado_demux", lambda *args, **kwargs: pytest.fail("Dorado should not run"))

    # Act
    result = runner.invoke(app, ["run", "--config", str(config_file), "--output-dir", str(tmp_path / "out"), "--skip-env-setup"])

    # Assert
    assert result.exit_code == 101


def test_run_minibar_download_failure_exit_code(tmp_path, config, recorded_commands, monkeypatch):
    # Arrange: minibar is not present and the network is unreachable
    config_file = tmp_path / "config.json"
    config.save(config_file)

    def unreachable(*args, **kwargs):
        raise urllib.error.URLError("network unreachable")

    monkeypatch.setattr(minibar.urllib.request, "urlopen", unreachable)

    # Act
    result = runner.invoke(
        app,
        ["run", "--config", str(config_file), "--output-dir", str(tmp_path / "out"), "--skip-env-setup", "--run-minibar"],
    )

    # Assert
    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert not config.minibar_path.exists()
    assert recorded_commands.commands == []


def test_process_pipeline_missing_file_has_no_side_effects(tmp_path, config, recorded_commands):
    # Arrange
    config.barcode_file.unlink()
    run = PipelineRun(tmp_path / "output")

    # Act
    with pytest.raises(MissingInputFileError):
        process_pipeline(
            config=config,
            run=run,
            setup_environment=True,
            run_qc=True,
            run_demux=True,
            run_orientation=True,
            run_primer_demux=True,
            dry_run=False,
        )

    # Assert
    assert recorded_commands.commands == []
    assert not run.output_dir.exists()


def test_process_pipeline_end_to_end(tmp_path, config, recorded_commands, monkeypatch):
    # Arrange
    config.barcode_file.write_text("BC01 16S\nBC02 16S\nBC03 ITS\n")
    config.minibar_path.write_text("#!/usr/bin/env python\n")
    config.minibar_path.chmod(0o755)
    run = PipelineRun(tmp_path / "output")

    monkeypatch.setattr(main, "run_chopper", lambda *args, **kwargs: None)
    monkeypatch.setattr(main, "run_dorado_demux", fake_dorado_demux)
    monkeypatch.setattr(
        environment,
        "run_command",
        lambda *args, **kwargs: SimpleNamespace(returncode=0, stdout="base * /opt/conda\nQCandDemux /opt/conda/envs/QCandDemux\n"),
    )

    # Act
    process_pipeline(
        config=config,
        run=run,
        setup_environment=True,
        run_qc=True,
        run_demux=True,
        run_orientation=True,
        run_primer_demux=True,
        dry_run=False,
    )

    # Assert
    demux_dir = run.dorado_demux_dir
    assert sorted(p.relative_to(demux_dir).as_posix() for p in demux_dir.glob("*/*.fastq")) == [
        "16S/BC01_16S.QC.fastq",
        "16S/BC02_16S.QC.fastq",
        "ITS/BC03_ITS.QC.fastq",
    ]
    assert sorted(p.name for p in demux_dir.glob("*.fastq")) == ["BC04.fastq", "BC05.fastq"]

    tools = recorded_commands.tools()
    assert tools.count("NanoPlot") == 1
    assert tools.count("vsearch") == 4  # --version + one per renamed file
    assert tools.count("minibar.py") == 5  # two table checks + one per renamed file


def test_rename_command(tmp_path, config):
    # Arrange
    config.barcode_file.write_text("BC01 16S\nBC02 16S\nBC03 ITS\n")
    config_file = tmp_path / "config.json"
    config.save(config_file)
    output_dir = tmp_path / "output"
    fake_dorado_demux(config, PipelineRun(output_dir), dry_run=False)

    # Act
    result = runner.invoke(app, ["rename", "--config", str(config_file), "--output-dir", str(output_dir)])

    # Assert
    assert result.exit_code == 0
    assert (output_dir / "DoradoDemux" / "ITS" / "BC03_ITS.QC.fastq").exists()
    assert (output_dir / "DoradoDemux" / "BC04.fastq").exists()
