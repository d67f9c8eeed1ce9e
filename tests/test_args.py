"""Tests for CLI argument parsing."""

import pytest

from args import parse_args


class TestRunArgParsing:
    """Tests for ``pkgrun [options] <tool> [args...]``."""

    def test_tool_only(self):
        ns = parse_args(["dotnet-ef"])
        assert ns.MODE == "run"
        assert ns.TOOL == "dotnet-ef"
        assert ns.TOOL_ARGS == []
        assert not ns.UPDATE
        assert not ns.NO_UPDATE
        assert not ns.VERBOSE

    def test_tool_args_passed_through(self):
        ns = parse_args(["my.tool@1.0.0", "migrate", "--verbose", "-x"])
        assert ns.TOOL == "my.tool@1.0.0"
        assert ns.TOOL_ARGS == ["migrate", "--verbose", "-x"]
        assert not ns.VERBOSE

    def test_options_before_tool(self):
        ns = parse_args(["--no-update", "--verbose", "my.tool", "--update"])
        assert ns.NO_UPDATE
        assert ns.VERBOSE
        assert not ns.UPDATE
        assert ns.TOOL_ARGS == ["--update"]

    def test_logfile(self):
        ns = parse_args(["--logfile", "run.log", "my.tool"])
        assert ns.LOG_FILE == "run.log"

    def test_update_flags_mutually_exclusive(self, capsys):
        with pytest.raises(SystemExit) as exc:
            parse_args(["--update", "--no-update", "my.tool"])
        assert exc.value.code == 1
        assert "Error:" in capsys.readouterr().err

    def test_no_arguments_exit_1(self, capsys):
        with pytest.raises(SystemExit) as exc:
            parse_args([])
        assert exc.value.code == 1
        assert "usage:" in capsys.readouterr().err

    def test_help_exit_0(self, capsys):
        with pytest.raises(SystemExit) as exc:
            parse_args(["--help"])
        assert exc.value.code == 0
        assert "pkgrun" in capsys.readouterr().out

    @pytest.mark.parametrize("flag", ["-v", "--version"])
    def test_version(self, flag, capsys):
        with pytest.raises(SystemExit) as exc:
            parse_args([flag])
        assert exc.value.code == 0
        assert capsys.readouterr().out.startswith("pkgrun ")

    def test_unknown_option_exit_1(self):
        with pytest.raises(SystemExit) as exc:
            parse_args(["--bogus", "my.tool"])
        assert exc.value.code == 1


class TestCacheArgParsing:
    """Tests for ``pkgrun cache ...``."""

    def test_list(self):
        ns = parse_args(["cache", "list"])
        assert ns.MODE == "cache"
        assert ns.CACHE_COMMAND == "list"
        assert ns.PACKAGE is None

    def test_add_with_version(self):
        ns = parse_args(["cache", "add", "my.tool@1.2.3"])
        assert ns.CACHE_COMMAND == "add"
        assert ns.PACKAGE == "my.tool@1.2.3"

    @pytest.mark.parametrize("flag", ["-y", "--yes"])
    def test_clear_yes(self, flag):
        ns = parse_args(["cache", "clear", flag])
        assert ns.YES

    def test_bare_cache(self):
        ns = parse_args(["cache"])
        assert ns.CACHE_COMMAND is None

    def test_tool_named_like_option_value(self):
        ns = parse_args(["cachetool"])
        assert ns.MODE == "run"
        assert ns.TOOL == "cachetool"
