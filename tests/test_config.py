"""Tests for configuration loading."""

import pytest

from linkcrawler.config import DEFAULT_MAX_CONCURRENCY, CrawlerConfig, split_domains
from linkcrawler.errors import ConfigError


class TestCrawlerConfig:
    """Test cases for CrawlerConfig."""

    def test_from_env(self):
        config = CrawlerConfig.from_env({
            "START_URL": " https://example.com/ ",
            "ALLOWED_DOMAINS": "example.com, cdn.example.org,,",
            "MAX_CONCURRENCY": "8",
            "CRAWL_TIMEOUT": "2.5",
        })
        assert config.start_url == "https://example.com/"
        assert config.allowed_domains == ("example.com", "cdn.example.org")
        assert config.max_concurrency == 8
        assert config.timeout == 2.5

    def test_from_env_defaults(self):
        config = CrawlerConfig.from_env({})
        assert config.start_url == ""
        assert config.allowed_domains == ()
        assert config.max_concurrency == DEFAULT_MAX_CONCURRENCY

    def test_from_env_bad_number(self):
        with pytest.raises(ConfigError, match="MAX_CONCURRENCY"):
            CrawlerConfig.from_env({"MAX_CONCURRENCY": "lots"})

    @pytest.mark.parametrize(
        "overrides",
        [
            {"start_url": ""},
            {"start_url": "ftp://example.com/"},
            {"start_url": "not a url"},
            {"max_concurrency": 0},
            {"timeout": 0},
        ],
    )
    def test_validate_rejects(self, overrides):
        config = CrawlerConfig(start_url="https://example.com/")
        for key, value in overrides.items():
            setattr(config, key, value)
        with pytest.raises(ConfigError):
            config.validate()

    def test_effective_domains(self):
        assert CrawlerConfig(start_url="https://Example.com/x").effective_domains() == ("example.com",)
        config = CrawlerConfig(start_url="https://example.com/", allowed_domains=("other.org",))
        assert config.effective_domains() == ("other.org",)


def test_split_domains():
    assert split_domains(["a.com,b.com", " c.com ", ""]) == ("a.com", "b.com", "c.com")
