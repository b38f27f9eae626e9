import pytest

from qcdemux.exceptions import ChecksumMismatchError, DownloadError, ExternalToolError, MissingInputFileError


@pytest.mark.parametrize(
    "returncode, expected",
    [
        pytest.param(1, 1, id="failure"),
        pytest.param(127, 127, id="not_installed"),
        pytest.param(-9, 137, id="killed_by_sigkill"),
        pytest.param(-15, 143, id="killed_by_sigterm"),
    ],
)
def test_external_tool_error_exit_code(returncode, expected):
    # Act
    error = ExternalToolError("dorado", returncode)

    # Assert
    assert error.exit_code == expected


@pytest.mark.parametrize(
    "error",
    [
        pytest.param(MissingInputFileError("calls.fastq"), id="missing_input"),
        pytest.param(DownloadError("network unreachable"), id="download"),
        pytest.param(ChecksumMismatchError("mismatch"), id="checksum"),
    ],
)
def test_pipeline_errors_exit_with_one(error):
    assert error.exit_code == 1
