import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List

from qcdemux.constants import CONDA_ENV_NAME, MARKERS, THREADS
from qcdemux.exceptions import ConfigurationError, MissingInputFileError
from qcdemux.logging_config import logger
from qcdemux.utils import write_to_file

# Required keys in the configuration file
RAW_READS = "raw_reads"
VSEARCH_DBS = "vsearch_dbs"
DEMUX_TABLES = "demux_tables"
BARCODE_FILE = "barcode_file"
MINIBAR_PATH = "minibar_path"
REQUIRED_CONFIG_FIELDS = [RAW_READS, VSEARCH_DBS, DEMUX_TABLES, BARCODE_FILE, MINIBAR_PATH]


@dataclass
class PipelineConfig:
    raw_reads: Path
    vsearch_dbs: Dict[str, Path]  # Marker -> VSEARCH reference database
    demux_tables: Dict[str, Path]  # Marker -> minibar demultiplexing table
    barcode_file: Path  # Dorado barcode -> marker lookup table
    minibar_path: Path
    minibar_sha256: str | None = None  # None: Skip checksum verification
    dorado_bin_dir: Path | None = None  # None: Use dorado from PATH
    conda_env: str = CONDA_ENV_NAME
    threads: int = THREADS

    def __post_init__(self):
        for name, per_marker in [(VSEARCH_DBS, self.vsearch_dbs), (DEMUX_TABLES, self.demux_tables)]:
            missing_markers = [marker for marker in MARKERS if marker not in per_marker]
            if missing_markers:
                raise ConfigurationError(f"Field {name} is missing entries for marker(s) {missing_markers}")

        if self.threads < 1:
            raise ConfigurationError(f"Number of threads must be positive (not {self.threads})")

    def required_files(self) -> List[Path]:
        return [
            self.raw_reads,
            *[self.vsearch_dbs[marker] for marker in MARKERS],
            *[self.demux_tables[marker] for marker in MARKERS],
            self.barcode_file,
        ]

    def to_dict(self) -> dict:
        return {
            RAW_READS: str(self.raw_reads),
            VSEARCH_DBS: {marker: str(path) for marker, path in self.vsearch_dbs.items()},
            DEMUX_TABLES: {marker: str(path) for marker, path in self.demux_tables.items()},
            BARCODE_FILE: str(self.barcode_file),
            MINIBAR_PATH: str(self.minibar_path),
            "minibar_sha256": self.minibar_sha256,
            "dorado_bin_dir": str(self.dorado_bin_dir) if self.dorado_bin_dir is not None else None,
            "conda_env": self.conda_env,
            "threads": self.threads,
        }

    def save(self, path: Path):
        content = json.dumps(self.to_dict(), indent=4)
        write_to_file(path, content)

    @classmethod
    def load(cls, path: Path):
        with open(path, "r", encoding="utf-8") as f:
            try:
                config = json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigurationError(f"Config file {path} is not valid JSON: {e}") from e

        missing_fields = [key for key in REQUIRED_CONFIG_FIELDS if not config.get(key)]
        if missing_fields:
            raise ConfigurationError(f"Required fields {missing_fields} are missing in config file {path}")

        # Relative paths are resolved against the directory of the config file
        base_dir = path.parent

        def to_path(value: str) -> Path:
            return base_dir / Path(value).expanduser()

        dorado_bin_dir = config.get("dorado_bin_dir")

        return cls(
            raw_reads=to_path(config[RAW_READS]),
            vsearch_dbs={marker: to_path(p) for marker, p in config[VSEARCH_DBS].items()},
            demux_tables={marker: to_path(p) for marker, p in config[DEMUX_TABLES].items()},
            barcode_file=to_path(config[BARCODE_FILE]),
            minibar_path=to_path(config[MINIBAR_PATH]),
            minibar_sha256=config.get("minibar_sha256") or None,
            dorado_bin_dir=to_path(dorado_bin_dir) if dorado_bin_dir else None,
            conda_env=config.get("conda_env") or CONDA_ENV_NAME,
            threads=int(config.get("threads", THREADS)),
        )


def get_template_config() -> PipelineConfig:
    return PipelineConfig(
        raw_reads=Path("calls.fastq"),
        vsearch_dbs={"16S": Path("VSEARCH_DB_16S.fasta"), "ITS": Path("VSEARCH_DB_ITS.fasta")},
        demux_tables={"16S": Path("16S_demux_file.txt"), "ITS": Path("ITS_demux_file.txt")},
        barcode_file=Path("Dorado_BC_file.txt"),
        minibar_path=Path("minibar.py"),
        dorado_bin_dir=Path("/path/to/dorado/install/bin"),
    )


def validate_input_files(config: PipelineConfig) -> None:
    # Fail on first missing file
    for file in config.required_files():
        if not file.is_file():
            logger.error("Required file %s not found!", file)
            raise MissingInputFileError(file)


def load_barcode_map(barcode_file: Path) -> Dict[str, str]:
    """
    Load barcode -> marker lookup table.

    Each line holds a barcode and a marker separated by whitespace. Blank lines
    and lines starting with '#' are ignored. If a barcode occurs more than once,
    the first entry is used.
    """
    barcode_map: Dict[str, str] = {}
    with open(barcode_file, "r", encoding="utf-8") as f:
        for line_number, line in enumerate(f, start=1):
            fields = line.split()

            # Skip empty lines and comments
            if not fields or fields[0].startswith("#"):
                continue

            if len(fields) < 2:
                logger.warning("Line %d in %s has no marker. Skipping...", line_number, barcode_file)
                continue

            barcode, marker = fields[0], fields[1]
            if barcode in barcode_map:
                logger.warning("Duplicate barcode %s in %s. Using first entry (%s).", barcode, barcode_file, barcode_map[barcode])
                continue

            if marker not in MARKERS:
                logger.warning("Barcode %s is mapped to unknown marker %s (expected one of %s)", barcode, marker, list(MARKERS))

            barcode_map[barcode] = marker

    return barcode_map
