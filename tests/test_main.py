"""Tests for the command-line entry point."""

import json

import httpx
import pytest

import main
from conftest import make_fetcher
from fpl_proxy.service import build_service

BOOTSTRAP_URL = "https://fantasy.premierleague.com/api/bootstrap-static/"
BOOTSTRAP_PAYLOAD = {"events": [{"id": 1}], "teams": [], "elements": []}


class TestParseParams:
    def test_pairs(self):
        assert main._parse_params(["manager_id=1", "gw=7"]) == {"manager_id": "1", "gw": "7"}

    def test_empty(self):
        assert main._parse_params([]) == {}

    @pytest.mark.parametrize("pair", ["gw", "=7"])
    def test_rejects_malformed(self, pair):
        with pytest.raises(ValueError, match="name=value"):
            main._parse_params([pair])


class TestCommands:
    @pytest.fixture(autouse=True)
    def _no_logging_reconfig(self, monkeypatch):
        monkeypatch.setattr(main, "configure_logging", lambda *args, **kwargs: None)

    def test_resources_prints_table(self, capsys):
        main.main(["resources"])
        table = json.loads(capsys.readouterr().out)
        assert set(table) >= {"bootstrap-static", "live-event", "picks"}
        assert table["live-event"]["snapshot"] == "live-event"

    def test_no_command_exits(self):
        with pytest.raises(SystemExit):
            main.main([])

    def test_fetch_rejects_bad_param(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main.main(["fetch", "live-event", "gw=99"])
        assert exc_info.value.code == 1
        assert "Invalid gameweek" in capsys.readouterr().err

    def test_fetch_unknown_resource(self, capsys):
        with pytest.raises(SystemExit):
            main.main(["fetch", "nope"])
        assert "Unknown resource" in capsys.readouterr().err

    @pytest.fixture
    def fake_upstream(self, monkeypatch):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(str(request.url))
            if str(request.url) == BOOTSTRAP_URL:
                return httpx.Response(200, json=BOOTSTRAP_PAYLOAD)
            return httpx.Response(404)

        monkeypatch.setattr(
            main,
            "build_service",
            lambda settings: build_service(settings, fetcher=make_fetcher(handler)),
        )
        return calls

    def test_fetch_prints_payload(self, capsys, fake_upstream):
        main.main(["fetch", "bootstrap-static"])
        out = capsys.readouterr()
        assert json.loads(out.out) == BOOTSTRAP_PAYLOAD
        assert fake_upstream == [BOOTSTRAP_URL]

    def test_fetch_reports_source(self, capsys, fake_upstream):
        main.main(["fetch", "bootstrap-static", "--source"])
        out = capsys.readouterr()
        assert json.loads(out.out) == BOOTSTRAP_PAYLOAD
        assert out.err.strip() == "source: primary"
