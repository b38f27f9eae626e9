from pathlib import Path
from typing import List

import pytest

from qcdemux import demultiplexing, environment, minibar, orientation, quality_control
from qcdemux.configuration import PipelineConfig
from qcdemux.my_dataclasses import PipelineRun


def create_files(files):
    for file in files:
        file.parent.mkdir(parents=True, exist_ok=True)
        file.touch()


def write_fastq(path: Path, n_reads: int):
    path.parent.mkdir(parents=True, exist_ok=True)
    records = [f"@read{i}\nACGT\n+\nIIII\n" for i in range(n_reads)]
    path.write_text("".join(records))


class CommandRecorder:
    def __init__(self):
        self.commands: List[List[str]] = []
        self.kwargs: List[dict] = []

    def __call__(self, cmd, **kwargs):
        self.commands.append([str(x) for x in cmd])
        self.kwargs.append(kwargs)
        return None

    def tools(self) -> List[str]:
        return [Path(cmd[0]).name for cmd in self.commands]


@pytest.fixture
def recorded_commands(monkeypatch) -> CommandRecorder:
    recorder = CommandRecorder()
    for module in [demultiplexing, environment, minibar, orientation, quality_control]:
        monkeypatch.setattr(module, "run_command", recorder)
    return recorder


@pytest.fixture
def config(tmp_path) -> PipelineConfig:
    inputs_dir = tmp_path / "inputs"
    pipeline_config = PipelineConfig(
        raw_reads=inputs_dir / "calls.fastq",
        vsearch_dbs={"16S": inputs_dir / "VSEARCH_DB_16S.fasta", "ITS": inputs_dir / "VSEARCH_DB_ITS.fasta"},
        demux_tables={"16S": inputs_dir / "16S_demux_file.txt", "ITS": inputs_dir / "ITS_demux_file.txt"},
        barcode_file=inputs_dir / "Dorado_BC_file.txt",
        minibar_path=inputs_dir / "minibar.py",
    )
    create_files(pipeline_config.required_files())
    return pipeline_config


@pytest.fixture
def pipeline_run(tmp_path) -> PipelineRun:
    run = PipelineRun(tmp_path / "output")
    run.setup()
    return run
