"""
Unit tests for the command line interface.

Run with: pytest tests/unit/test_cli.py -v
"""

import json

import pytest
from click.testing import CliRunner

from cartographer import cli as cli_module
from cartographer.core.exceptions import EngineBootstrapError
from cartographer.models import CrawlResult, CrawlStatistics, DiscoveryMethod, Page, SecurityFindings


def sample_result(target_url, config):
    root = Page(
        url="https://example.com/",
        title="Home",
        is_directory=True,
        discovery_method=DiscoveryMethod.SITEMAP,
        children=["https://example.com/about/"],
    )
    about = Page(url="https://example.com/about/", title="About", depth=1, parent=root.url, is_directory=True)
    return CrawlResult(
        target_url="https://example.com",
        root_url=root.url,
        sitemap=(root, about),
        directories=(root.url, about.url),
        files={},
        forms=(),
        errors=(),
        statistics=CrawlStatistics(status_codes={200: 2}, content_types={"text/html": 2}),
        discovery_methods={"sitemap": 1, "robots": 0, "crawl": 1, "directory": 0},
        security=SecurityFindings(sensitive_files=["https://example.com/robots.txt"]),
    )


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    """Keep structlog bound to the real stderr instead of the runner's stream"""
    monkeypatch.setattr(cli_module, "configure_logging", lambda verbose=False: None)


class TestCli:
    """Test suite for the click commands"""

    def test_version_command(self):
        """Test version prints without error"""
        result = CliRunner().invoke(cli_module.cli, ["version"])

        assert result.exit_code == 0
        assert "Cartographer" in result.output

    def test_crawl_writes_json(self, monkeypatch, tmp_path):
        """Test crawl passes options through and saves the result"""
        captured = {}

        async def fake_crawl(target_url, config):
            captured["target"] = target_url
            captured["config"] = config
            return sample_result(target_url, config)

        monkeypatch.setattr(cli_module, "run_site_crawl", fake_crawl)
        output = tmp_path / "out" / "site.json"

        result = CliRunner().invoke(
            cli_module.cli,
            ["crawl", "example.com", "--max-depth", "2", "--mode", "http", "--output", str(output)],
        )

        assert result.exit_code == 0, result.output
        assert captured["target"] == "example.com"
        assert captured["config"].max_depth == 2
        assert captured["config"].fetch_mode.value == "http"

        saved = json.loads(output.read_text(encoding="utf-8"))
        assert saved["total_pages"] == 2
        assert saved["sitemap"][1]["parent"] == "https://example.com/"

    def test_config_file_overridden_by_options(self, monkeypatch, tmp_path):
        """Test command line options win over --config values"""
        captured = {}

        async def fake_crawl(target_url, config):
            captured["config"] = config
            return sample_result(target_url, config)

        monkeypatch.setattr(cli_module, "run_site_crawl", fake_crawl)
        config_file = tmp_path / "crawl.yaml"
        config_file.write_text("max_depth: 5\nmax_pages: 20\n", encoding="utf-8")

        result = CliRunner().invoke(
            cli_module.cli,
            ["crawl", "https://example.com", "--config", str(config_file), "--max-pages", "7", "--no-tree"],
        )

        assert result.exit_code == 0, result.output
        assert captured["config"].max_depth == 5
        assert captured["config"].max_pages == 7

    def test_invalid_delay_range_is_usage_error(self):
        """Test validation errors surface as click usage errors"""
        result = CliRunner().invoke(
            cli_module.cli,
            ["crawl", "https://example.com", "--min-delay", "2", "--max-delay", "1"],
        )

        assert result.exit_code == 2

    def test_fatal_error_exits_nonzero(self, monkeypatch):
        """Test an engine bootstrap failure exits with status 1"""

        async def failing_crawl(target_url, config):
            raise EngineBootstrapError("Fetch engine failed to start: no browser")

        monkeypatch.setattr(cli_module, "run_site_crawl", failing_crawl)

        result = CliRunner().invoke(cli_module.cli, ["crawl", "https://example.com"])

        assert result.exit_code == 1

    def test_malformed_config_file_is_usage_error(self, tmp_path):
        """Test a YAML syntax error is reported as a usage error, not a traceback"""
        config_file = tmp_path / "crawl.yaml"
        config_file.write_text("max_depth: [1, 2\n", encoding="utf-8")

        result = CliRunner().invoke(cli_module.cli, ["crawl", "https://example.com", "--config", str(config_file)])

        assert result.exit_code == 2
        assert "Traceback" not in result.output

    def test_interrupt_exits_cleanly(self, monkeypatch):
        """Test Ctrl-C during the crawl prints a notice and exits with status 1"""

        async def interrupted_crawl(target_url, config):
            raise KeyboardInterrupt

        monkeypatch.setattr(cli_module, "run_site_crawl", interrupted_crawl)

        result = CliRunner().invoke(cli_module.cli, ["crawl", "https://example.com"])

        assert result.exit_code == 1
        assert "interrupted" in result.output

    def test_build_tree(self):
        """Test the rich tree mirrors the page hierarchy"""
        tree = cli_module.build_tree(sample_result("https://example.com", None))

        assert tree is not None
        assert len(tree.children) == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
