import logging

import pytest
from click.testing import CliRunner

import manage

logger = logging.getLogger(__name__)


@pytest.fixture
def runner():
    yield CliRunner()


class TestCLIFast:
    def test_show_routes(self, runner):
        result = runner.invoke(manage.cli, ["routes"])
        assert result.exit_code == 0
        assert "/api/v1/health" in result.output
        assert "/api/v1/wells/{well_name}/status" in result.output

    @pytest.mark.parametrize(
        "group", ["run", "db", "test", "wells", "monitor"],
    )
    def test_help(self, runner, group):
        result = runner.invoke(manage.cli, [group, "--help"])
        assert result.exit_code == 0

    def test_rebuild_requires_target(self, runner):
        result = runner.invoke(manage.cli, ["wells", "rebuild"])
        assert result.exit_code == 1
        assert "Pass a well name or --all" in result.output

    def test_recreate_refused_outside_dev(self, runner, conf):
        assert conf.ENV == "test"
        result = runner.invoke(manage.cli, ["db", "recreate"])
        assert result.exit_code == 0

    def test_run_web(self, runner, monkeypatch):
        calls = []
        monkeypatch.setattr(manage.subprocess, "call", calls.append)
        runner.invoke(manage.cli, ["run", "web", "--port", "8001"])
        assert calls == [["uvicorn", "main:app", "--port", "8001"]]

    def test_run_worker(self, runner, monkeypatch):
        calls = []
        monkeypatch.setattr(manage.subprocess, "call", calls.append)
        runner.invoke(manage.cli, ["run", "worker", "-Q", "tankstats-pull"])
        cmd = calls[0]
        assert cmd[:4] == ["celery", "-A", "cq:celery_app", "worker"]
        assert cmd[-2:] == ["-Q", "tankstats-pull"]

    def test_run_cron(self, runner, monkeypatch):
        calls = []
        monkeypatch.setattr(manage.subprocess, "call", calls.append)
        runner.invoke(manage.cli, ["run", "cron"])
        assert calls == [["celery", "-A", "cq:celery_app", "beat"]]
