"""Tests for compute capability resolution."""

import subprocess
from unittest.mock import patch

import pytest

from cudabind.build.capability import (
    list_gpu_codes,
    normalize_compute_cap,
    parse_gpu_codes,
    query_device_compute_cap,
    resolve_compute_cap,
    validate_compute_cap,
)
from cudabind.errors import ConfigurationError, ProcessLaunchError, UnsupportedArchitectureError

GPU_CODES = "sm_50\nsm_52\nsm_60\nsm_70\nsm_75\nsm_80\nsm_86\nsm_89\nsm_90\n"


def _completed(cmd, stdout="", returncode=0, stderr=""):
    return subprocess.CompletedProcess(cmd, returncode, stdout=stdout, stderr=stderr)


def _fake_tools(smi_output="compute_cap\n8.6\n", codes_output=GPU_CODES):
    def run(cmd, **kwargs):
        if cmd[0] == "nvidia-smi":
            return _completed(cmd, smi_output)
        if cmd[0] == "nvcc":
            return _completed(cmd, codes_output)
        raise AssertionError(f"unexpected command {cmd}")

    return run


class TestNormalize:
    @pytest.mark.parametrize("value", ["86", "8.6", 86, " 8.6\n"])
    def test_equivalent_forms(self, value):
        """Test the accepted spellings of a compute capability."""
        assert normalize_compute_cap(value) == 86

    @pytest.mark.parametrize("value", ["", "sm_86", "abc", 0, "0", "²", "８６"])
    def test_invalid_values(self, value):
        """Test that malformed compute capabilities raise ConfigurationError."""
        with pytest.raises(ConfigurationError):
            normalize_compute_cap(value)


class TestParseGpuCodes:
    def test_sorted_and_deduplicated(self):
        """Test that codes are sorted and deduplicated."""
        assert parse_gpu_codes("sm_90\nsm_52\nsm_90\n") == [52, 90]

    def test_ignores_non_sm_lines(self):
        """Test that compute_ and suffixed sm_ lines are skipped."""
        assert parse_gpu_codes("compute_90\nsm_90a\nsm_80\nwarning: foo\n") == [80]

    def test_empty_output(self):
        """Test parsing empty nvcc output."""
        assert parse_gpu_codes("") == []

    def test_ignores_non_ascii_digits(self):
        """Test that non-ASCII digits are not taken as gpu codes."""
        assert parse_gpu_codes("sm_²\nsm_86\n") == [86]


class TestDeviceQuery:
    @patch("cudabind.build.capability.safe_run")
    def test_reads_second_line(self, mock_run):
        """Test parsing the CSV value line."""
        mock_run.side_effect = _fake_tools(smi_output="compute_cap\n8.9\n")
        assert query_device_compute_cap() == 89
        cmd = mock_run.call_args[0][0]
        assert cmd == ["nvidia-smi", "--query-gpu=compute_cap", "--format=csv"]

    @patch("cudabind.build.capability.safe_run")
    def test_wrong_header_is_rejected(self, mock_run):
        """Test that an unexpected CSV header is rejected."""
        mock_run.side_effect = _fake_tools(smi_output="name\nRTX\n")
        with pytest.raises(ConfigurationError, match="expected header line 'compute_cap'"):
            query_device_compute_cap()

    @patch("cudabind.build.capability.safe_run")
    def test_missing_value_is_rejected(self, mock_run):
        """Test that a header without a value is rejected."""
        mock_run.side_effect = _fake_tools(smi_output="compute_cap\n")
        with pytest.raises(ConfigurationError, match="missing compute_cap value"):
            query_device_compute_cap()

    @patch("cudabind.build.capability.safe_run", side_effect=FileNotFoundError("nvidia-smi"))
    def test_missing_binary(self, _mock_run):
        """Test that a missing nvidia-smi raises ProcessLaunchError."""
        with pytest.raises(ProcessLaunchError) as exc_info:
            query_device_compute_cap()
        assert "nvidia-smi" in str(exc_info.value)
        assert exc_info.value.command[0] == "nvidia-smi"

    @patch("cudabind.build.capability.safe_run")
    def test_nonzero_exit(self, mock_run):
        """Test that a failing nvidia-smi raises with its stderr."""
        mock_run.return_value = _completed(["nvidia-smi"], "", returncode=9, stderr="No devices were found")
        with pytest.raises(ConfigurationError, match="No devices were found"):
            query_device_compute_cap()


class TestListGpuCodes:
    @patch("cudabind.build.capability.safe_run")
    def test_lists_codes(self, mock_run):
        """Test listing nvcc's supported codes."""
        mock_run.side_effect = _fake_tools()
        assert list_gpu_codes() == [50, 52, 60, 70, 75, 80, 86, 89, 90]

    @patch("cudabind.build.capability.safe_run")
    def test_no_codes_is_an_error(self, mock_run):
        """Test that output without sm codes is an error."""
        mock_run.side_effect = _fake_tools(codes_output="nothing here\n")
        with pytest.raises(ConfigurationError, match="No gpu codes parsed"):
            list_gpu_codes()


class TestValidate:
    def test_supported(self):
        """Test that a supported code passes validation."""
        assert validate_compute_cap(86, [75, 86, 90]) == 86

    def test_not_in_list(self):
        """Test that a code missing from nvcc's list is rejected."""
        with pytest.raises(UnsupportedArchitectureError) as exc_info:
            validate_compute_cap(87, [75, 86, 90])
        assert exc_info.value.compute_cap == 87
        assert "Available nvcc targets are [75, 86, 90]" in str(exc_info.value)

    def test_above_maximum(self):
        """Test that a code above nvcc's maximum is rejected.
test_all_jobs_succeed"""
        with pytest.raises(UnsupportedArchitectureError):
            validate_compute_cap(100, [75, 86, 90])


class TestResolve:
    @patch("cudabind.build.capability.safe_run")
    def test_override_skips_device_query(self, mock_run):
        """Test that an override does not query nvidia-smi."""
        mock_run.side_effect = _fake_tools()
        assert resolve_compute_cap("8.0") == 80
        commands = [c[0][0][0] for c in mock_run.call_args_list]
        assert commands == ["nvcc"]

    @patch("cudabind.build.capability.safe_run")
    def test_queries_device_without_override(self, mock_run):
        """Test that the device is queried when no override is set."""
        mock_run.side_effect = _fake_tools()
        assert resolve_compute_cap() == 86

    @patch("cudabind.build.capability.safe_run")
    def test_dotted_and_plain_overrides_agree(self, mock_run):
        """Test that "8.6", "86" and 86 resolve identically."""
        mock_run.side_effect = _fake_tools()
        assert resolve_compute_cap("8.6") == resolve_compute_cap("86") == resolve_compute_cap(86)

    @patch("cudabind.build.capability.safe_run")
    def test_resolution_is_idempotent(self, mock_run):
        """Test that resolving twice gives the same result."""
        mock_run.side_effect = _fake_tools()
        assert resolve_compute_cap() == resolve_compute_cap()

    @patch("cudabind.build.capability.safe_run")
    def test_unsupported_device(self, mock_run):
        """Test that an unsupported device architecture is rejected."""
        mock_run.side_effect = _fake_tools(smi_output="compute_cap\n12.0\n")
        with pytest.raises(UnsupportedArchitectureError):
            resolve_compute_cap()
