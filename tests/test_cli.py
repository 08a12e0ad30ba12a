"""Tests for the command-line interface."""

import json

import pytest

from linkcrawler import cli


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("START_URL", "ALLOWED_DOMAINS", "MAX_CONCURRENCY", "CRAWL_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)


class TestCli:
    """Test cases for cli.main."""

    def test_text_report(self, site, capsys):
        assert cli.main([site.url + "/"]) == 0

        out = capsys.readouterr().out.splitlines()
        assert out[0] == site.url + "/"
        assert out[-1] == "Found 5 unique links"

    def test_details_and_env(self, site, capsys, monkeypatch):
        monkeypatch.setenv("START_URL", site.url + "/error")
        monkeypatch.setenv("ALLOWED_DOMAINS", "127.0.0.1")

        assert cli.main(["--details"]) == 0

        out = capsys.readouterr().out.splitlines()
        assert out == [site.url + "/error", "\tError detected: 500 status code", "Found 1 unique links"]

    def test_json_to_file(self, site, tmp_path):
        out_file = tmp_path / "out" / "links.json"
        assert cli.main([site.url + "/loop-a", "--json", "--out", str(out_file)]) == 0

        payload = json.loads(out_file.read_text(encoding="utf-8"))
        assert [item["url"] for item in payload] == [site.url + "/loop-a", site.url + "/loop-b"]

    def test_allowed_domain_flag_excludes_seed(self, site, capsys):
        assert cli.main([site.url + "/", "--allowed-domain", "example.com"]) == 0
        assert capsys.readouterr().out.splitlines() == ["Found 0 unique links"]

    def test_verbose_summary(self, site, capsys):
        assert cli.main([site.url + "/error", "--verbose"]) == 0
        assert "CRAWL SUMMARY" in capsys.readouterr().err

    def test_missing_start_url(self, capsys):
        assert cli.main([]) == 2
        assert "start URL is required" in capsys.readouterr().err
