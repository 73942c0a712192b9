"""Tests for external tool discovery, execution and document conversion."""

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from markdown_workflow.config import ConverterConfig
from markdown_workflow.converters import PandocConverter, build_pandoc_command
from markdown_workflow.errors import ExternalToolError
from markdown_workflow.tools import ToolResult, check_tools_status, find_tool, get_tool_path, run_tool


class TestToolDiscovery:
    """Tests for get_tool_path and find_tool."""

    def test_system_path(self, _mock_shutil_which):
        """Test tools found on PATH."""
        assert get_tool_path("dot") == Path("/usr/bin/dot")
        assert get_tool_path("latex") is None

    def test_user_bin_first(self, tmp_path, _mock_shutil_which):
        """Test the user bin directory wins over PATH."""
        (tmp_path / "dot").write_text("#!/bin/sh\n")

        with patch("markdown_workflow.tools.USER_BIN_DIR", tmp_path):
            assert get_tool_path("dot") == tmp_path / "dot"

    def test_configured_absolute_path(self, tmp_path, _no_tools):
        """Test a configured path that exists is used as is."""
        custom = tmp_path / "my-dot"
        custom.write_text("")

        assert find_tool("dot", str(custom)) == custom

    def test_configured_missing_falls_back(self, _mock_shutil_which, caplog):
        """Test a bad configured path falls back to discovery with a warning."""
        assert find_tool("dot", "/opt/nothing/dot") == Path("/usr/bin/dot")
        assert "Configured dot not found" in caplog.text

    def test_not_found(self, _no_tools):
        """Test nothing found anywhere."""
        assert find_tool("mmdc") is None

    def test_check_tools_status(self, _mock_shutil_which):
        """Test status covers every external tool."""
        status = check_tools_status()

        assert set(status) == {"dot", "plantuml", "mmdc", "pandoc"}
        assert status["pandoc"] == Path("/usr/bin/pandoc")

    def test_check_tools_status_configured(self, tmp_path, _no_tools):
        """Test configured commands are reported even when nothing is on PATH."""
        pandoc = tmp_path / "pandoc-3"
        pandoc.write_text("")

        status = check_tools_status({"pandoc": str(pandoc), "dot": None})

        assert status["pandoc"] == pandoc
        assert status["dot"] is None
        assert status["mmdc"] is None


class TestRunTool:
    """Tests for run_tool."""

    def test_success(self, mock_subprocess):
        """Test output is captured."""
        mock_subprocess.return_value = MagicMock(returncode=0, stdout="ok", stderr="")

        result = run_tool(["dot", "-V"], timeout=5)

        assert result.success
        assert result.stdout == "ok"
        assert mock_subprocess.call_args.kwargs["timeout"] == 5
        assert mock_subprocess.call_args.kwargs["capture_output"] is True

    def test_non_zero_is_returned(self, mock_subprocess):
        """Test failures come back as results, not exceptions."""
        mock_subprocess.return_value = MagicMock(returncode=2, stdout="", stderr="warning\nError: bad input\n")

        result = run_tool(["dot"])

        assert not result.success
        assert result.message == "Error: bad input"

    def test_timeout(self, mock_subprocess):
        """Test a timeout raises ExternalToolError naming the tool."""
        mock_subprocess.side_effect = subprocess.TimeoutExpired(cmd="mmdc", timeout=30)

        with pytest.raises(ExternalToolError, match="mmdc timed out after 30s"):
            run_tool(["/usr/bin/mmdc", "-i", "x"], timeout=30)

    def test_cannot_start(self, mock_subprocess):
        """Test a missing executable raises ExternalToolError."""
        mock_subprocess.side_effect = FileNotFoundError("No such file")

        with pytest.raises(ExternalToolError, match="Cannot run"):
            run_tool(["missing-tool"])

    def test_message_without_output(self):
        """Test the exit code is used when the tool printed nothing."""
        assert ToolResult(exit_code=3, stdout="", stderr="").message == "exit code 3"


class TestPandocConverter:
    """Tests for pandoc command building and conversion."""

    def test_build_command_docx(self, tmp_path):
        """Test docx conversion with reference doc and resource paths."""
        cmd = build_pandoc_command(
            Path("/usr/bin/pandoc"),
            tmp_path / "in.md",
            tmp_path / "out.docx",
            "docx",
            reference_doc=tmp_path / "ref.docx",
            resource_paths=[tmp_path / "intermediate", tmp_path],
        )

        assert cmd[:5] == ["/usr/bin/pandoc", str(tmp_path / "in.md"), "-o", str(tmp_path / "out.docx"), "--from"]
        assert f"--reference-doc={tmp_path / 'ref.docx'}" in cmd
        assert any(arg.startswith("--resource-path=") for arg in cmd)
        assert "--standalone" not in cmd

    def test_build_command_html(self, tmp_path):
        """Test html output is standalone and ignores reference docs."""
        cmd = build_pandoc_command(
            Path("pandoc"), tmp_path / "in.md", tmp_path / "out.html", "html", reference_doc=tmp_path / "ref.docx"
        )

        assert "--standalone" in cmd
        assert not any(arg.startswith("--reference-doc") for arg in cmd)

    def test_convert_success(self, tmp_path, mock_subprocess, _mock_shutil_which):
        """Test a successful conversion."""
        source = tmp_path / "in.md"
        source.write_text("# Hi")

        result = PandocConverter().convert(source, tmp_path / "formatted" / "in.docx", "docx")

        assert result.success
        assert (tmp_path / "formatted").is_dir()
        assert mock_subprocess.call_args[0][0][0] == "/usr/bin/pandoc"

    def test_convert_without_pandoc(self, tmp_path, _no_tools):
        """Test a missing pandoc is reported in the result."""
        result = PandocConverter().convert(tmp_path / "in.md", tmp_path / "out.docx", "docx")

        assert not result.success
        assert result.error == "pandoc not found"

    def test_convert_failure(self, tmp_path, mock_subprocess, _mock_shutil_which):
        """Test pandoc errors are returned, not raised."""
        mock_subprocess.return_value = MagicMock(returncode=64, stdout="", stderr="pandoc: unknown format")

        result = PandocConverter().convert(tmp_path / "in.md", tmp_path / "out.docx", "docx")

        assert not result.success
        assert result.error == "pandoc: unknown format"

    def test_convert_timeout(self, tmp_path, mock_subprocess, _mock_shutil_which):
        """Test pandoc timeouts use the configured limit."""
        mock_subprocess.side_effect = subprocess.TimeoutExpired(cmd="pandoc", timeout=7)

        result = PandocConverter(ConverterConfig(timeout=7)).convert(tmp_path / "in.md", tmp_path / "out.docx", "docx")

        assert not result.success
        assert "timed out after 7s" in result.error
