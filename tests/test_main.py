"""Tests for the command line entry point."""

import logging
from logging.handlers import RotatingFileHandler

from webtop import main
from webtop.core.config import Config, LoggingConfig


class TestMain:
    """Tests for argument handling and startup."""

    def test_cli_overrides(self, tmp_path, monkeypatch):
        monkeypatch.delenv("WEBTOP_PORT", raising=False)
        args = main.parse_args(["-c", str(tmp_path / "none.yaml"), "-p", "9999", "--host", "127.0.0.1"])

        config = main.load_config(args)

        assert config.server.port == 9999
        assert config.server.host == "127.0.0.1"

    def test_generate_config(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        main.main(["--generate-config"])

        assert (tmp_path / "config" / "config.yaml").exists()

    def test_starts_server_with_config(self, tmp_path, monkeypatch):
        started = {}

        def fake_start(host, port, app_config):
            started.update(host=host, port=port, config=app_config)

        monkeypatch.setattr(main, "start_web_server", fake_start)
        monkeypatch.setattr(main, "setup_logging", lambda *a, **kw: None)
        monkeypatch.delenv("WEBTOP_PORT", raising=False)

        main.main(["-c", str(tmp_path / "none.yaml"), "-p", "3100"])

        assert started["port"] == 3100
        assert isinstance(started["config"], Config)

    def test_setup_logging_with_file(self, tmp_path):
        root = logging.getLogger()
        saved = root.handlers[:], root.level
        try:
            log_path = tmp_path / "logs" / "webtop.log"
            main.setup_logging(LoggingConfig(level="WARNING", file_path=str(log_path)))

            assert root.level == logging.WARNING
            assert any(isinstance(h, RotatingFileHandler) for h in root.handlers)
            assert log_path.parent.exists()
        finally:
            for handler in root.handlers:
                if handler not in saved[0]:
                    handler.close()
            root.handlers[:] = saved[0]
            root.setLevel(saved[1])
