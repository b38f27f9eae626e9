from typing import List

from qcdemux.logging_config import logger
from qcdemux.utils import run_command


def parse_conda_environment_names(conda_info_output: str) -> List[str]:
    # Output of `conda info --envs`: "# comment" lines, then "name [*] path" (unnamed envs only list a path)
    names = []
    for line in conda_info_output.splitlines():
        fields = line.split()
        if not fields or fields[0].startswith("#"):
            continue
        if len(fields) >= 2:
            names.append(fields[0])
    return names


def conda_environment_exists(name: str) -> bool:
    res = run_command(["conda", "info", "--envs"], capture_output=True)
    return name in parse_conda_environment_names(res.stdout)


def ensure_conda_environment(
    name: str,
    channel: str,
    packages: List[str],
    dry_run: bool,
) -> bool:
    """
    Create conda environment with the required packages if it does not exist.

    Returns True if the environment was created.
    """
    if conda_environment_exists(name):
        logger.info("Conda environment %s already exists", name)
        return False

    logger.info("Creating conda environment %s", name)
    run_command(["conda", "create", "-n", name, "-y"], dry_run=dry_run)
    run_command(["conda", "install", "-n", name, "-c", channel, "-y", *packages], dry_run=dry_run)

    return True
