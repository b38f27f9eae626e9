from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Dict, List

from qcdemux.constants import MARKERS
import qcdemux.filenames as fn


class Stage(str, Enum):
    DEMUXED = "demuxed"
    RENAMED = "renamed"
    ORIENTED = "oriented"
    PRIMER_DEMUXED = "primer_demuxed"


@dataclass(frozen=True)
class ReadFile:
    path: Path
    barcode: str
    stage: Stage
    marker: str | None = None

    @classmethod
    def from_demuxed_path(cls, path: Path) -> "ReadFile":
        return cls(path=path, barcode=fn.barcode_from_filename(path), stage=Stage.DEMUXED)

    @classmethod
    def from_renamed_path(cls, path: Path, marker: str) -> "ReadFile":
        return cls(path=path, barcode=fn.barcode_from_renamed_filename(path, marker), stage=Stage.RENAMED, marker=marker)

    def moved_to(self, path: Path, stage: Stage, marker: str | None = None) -> "ReadFile":
        return replace(self, path=path, stage=stage, marker=marker if marker is not None else self.marker)


@dataclass
class PipelineRun:
    # Input attributes
    output_dir: Path

    # Derived attributes
    # Quality control
    nanoplot_dir: Path = field(init=False)
    filtered_reads: Path = field(init=False)

    # Native barcode demultiplexing
    dorado_demux_dir: Path = field(init=False)

    # Primer demultiplexing
    minibar_demux_dir: Path = field(init=False)
    minibar_working_dir: Path = field(init=False)

    def __post_init__(self):
        # Quality control
        self.nanoplot_dir = self.output_dir / fn.NANOPLOT_DIR
        self.filtered_reads = self.output_dir / fn.FILTERED_READS

        # Native barcode demultiplexing
        self.dorado_demux_dir = self.output_dir / fn.DORADO_DEMUX_DIR

        # Primer demultiplexing
        self.minibar_demux_dir = self.output_dir / fn.MINIBAR_DEMUX_DIR
        self.minibar_working_dir = self.minibar_demux_dir / fn.MINIBAR_WORKING_DIR

    @property
    def stage_dirs(self) -> List[Path]:
        return [self.dorado_demux_dir, self.minibar_demux_dir]

    def marker_dir(self, stage_dir: Path, marker: str) -> Path:
        if marker not in MARKERS:
            raise ValueError(f"Unknown marker {marker}")
        return stage_dir / marker

    def marker_dirs(self) -> Dict[str, List[Path]]:
        return {marker: [self.marker_dir(stage_dir, marker) for stage_dir in self.stage_dirs] for marker in MARKERS}

    def setup(self):
        # Create [stage]/[marker] directories
        for dirs in self.marker_dirs().values():
            for marker_dir in dirs:
                marker_dir.mkdir(parents=True, exist_ok=True)

    def get_demuxed_fastq_files(self) -> List[Path]:
        return sorted(self.dorado_demux_dir.glob(f"*{fn.FASTQ_SUFFIX}"))

    def get_renamed_fastq_files(self, marker: str) -> List[Path]:
        return sorted(self.marker_dir(self.dorado_demux_dir, marker).glob(f"*{fn.FASTQ_SUFFIX}"))

    def get_primer_demuxed_fastq_files(self, marker: str) -> List[Path]:
        return sorted(self.marker_dir(self.minibar_demux_dir, marker).glob(fn.MINIBAR_OUTPUT_GLOB))

    def get_renamed_read_files(self, marker: str) -> List[ReadFile]:
        return [ReadFile.from_renamed_path(path, marker) for path in self.get_renamed_fastq_files(marker)]
