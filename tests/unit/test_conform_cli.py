"""
Unit tests for CLI argument handling (no Spark or database required).
"""

import pytest

from salesdw.cli.conform_cli import build_parser, main


@pytest.mark.unit
class TestConformCli:

    def test_parses_run_arguments(self):
        args = build_parser().parse_args(
            ["run", "--source-dir", "datasets", "--db-schema", "silver_dev", "--metrics"]
        )

        assert args.command == "run"
        assert args.source_dir == "datasets"
        assert args.db_schema == "silver_dev"
        assert args.metrics is True

    def test_show_rejects_unknown_model(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["show", "orders"])

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "conformance" in capsys.readouterr().out

    def test_run_without_source_dir(self, monkeypatch):
        monkeypatch.delenv("SALESDW_SOURCE_DIR", raising=False)

        assert main(["run"]) == 1

    def test_run_rejects_wildcard_source(self):
        assert main(["run", "--source-dir", "/data/*"]) == 1

    def test_show_rejects_limit_out_of_range(self):
        assert main(["show", "sales", "--limit", "0"]) == 1

    @pytest.mark.parametrize("command", [
        ["run", "--source-dir", "datasets"],
        ["check"],
        ["show", "sales"],
    ])
    def test_invalid_schema_rejected_before_connecting(self, command, monkeypatch):
        def no_spark(*args, **kwargs):
            raise AssertionError("Spark session created for an invalid schema")

        monkeypatch.setattr("salesdw.cli.conform_cli.create_spark_session", no_spark)

        assert main(command + ["--db-schema", "silver; DROP TABLE x;"]) == 1
