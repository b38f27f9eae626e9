import gzip
import hashlib
import os
import subprocess
from pathlib import Path
from typing import List, Sequence

from qcdemux.exceptions import ExternalToolError, MalformedFastqError
from qcdemux.logging_config import logger


def tool_env(extra_bin_dir: Path | None) -> dict[str, str] | None:
    # Prepend extra directory to the executable search path (e.g. a local dorado installation)
    if extra_bin_dir is None:
        return None

    env = os.environ.copy()
    env["PATH"] = f"{extra_bin_dir}{os.pathsep}{env.get('PATH', '')}"
    return env


def run_command(
    cmd: Sequence[str | Path],
    cwd: Path | None = None,
    env: dict[str, str] | None = None,
    dry_run: bool = False,
    check: bool = True,
    capture_output: bool = False,
) -> subprocess.CompletedProcess | None:
    """
    Run an external tool and wait for it to finish.

    Raises ExternalToolError if the tool exits with a non-zero code and check is True.
    Returns None on dry runs.
    """
    args: List[str] = [str(x) for x in cmd]
    tool = Path(args[0]).name

    logger.info("Running: %s", " ".join(args))
    if dry_run:
        logger.info("Dry run. Skipping %s.", tool)
        return None

    try:
        res = subprocess.run(
            args,
            cwd=cwd,
            env=env,
            check=False,
            capture_output=capture_output,
            text=capture_output,
        )
    except FileNotFoundError as e:
        # Executable not found on PATH: same exit code as the shell would give
        logger.error("Could not find executable %s", tool)
        raise ExternalToolError(tool, 127) from e

    if check and res.returncode != 0:
        logger.error("%s failed with exit code %d", tool, res.returncode)
        raise ExternalToolError(tool, res.returncode)

    return res


def open_fastq(path: Path):
    if path.suffix == ".gz":
        return gzip.open(path, "rt", encoding="utf-8")
    return open(path, "r", encoding="utf-8")


def count_fastq_records(path: Path) -> int:
    # FASTQ records span exactly four lines
    with open_fastq(path) as f:
        n_lines = sum(1 for _ in f)

    if n_lines % 4 != 0:
        raise MalformedFastqError(f"{path} has {n_lines} lines, which is not a multiple of 4")

    return n_lines // 4


def sha256sum(path: Path) -> str:
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            digest.update(chunk)
    return digest.hexdigest()


def write_to_file(file_path: Path, content: str):
    file_path.parent.mkdir(parents=True, exist_ok=True)
    with open(file_path, "w", encoding="utf-8") as f:
        f.write(content)
