"""Tests for the ``python -m photopager`` entry point."""

import os
from unittest.mock import patch

from photopager.__main__ import main


class TestMain:
    def test_runs_app_factory(self, monkeypatch):
        monkeypatch.delenv("PHOTOPAGER_DATABASE_URL", raising=False)
        monkeypatch.delenv("PHOTOPAGER_INIT_DB", raising=False)
        with patch("uvicorn.run") as run:
            main(["--port", "9001", "--database-url", "sqlite+aiosqlite://", "--init-db"])

        args, kwargs = run.call_args
        assert args == ("photopager.api:create_app",)
        assert kwargs["factory"] is True
        assert kwargs["port"] == 9001
        assert kwargs["host"] == "127.0.0.1"
        assert os.environ["PHOTOPAGER_DATABASE_URL"] == "sqlite+aiosqlite://"
        assert os.environ["PHOTOPAGER_INIT_DB"] == "1"

    def test_defaults_leave_environment_alone(self, monkeypatch):
        monkeypatch.delenv("PHOTOPAGER_INIT_DB", raising=False)
        monkeypatch.delenv("PHOTOPAGER_PORT", raising=False)
        with patch("uvicorn.run") as run:
            main([])
        assert run.call_args.kwargs["port"] == 8000
        assert "PHOTOPAGER_INIT_DB" not in os.environ


class TestLogging:
    def test_arguments_override_environment(self, monkeypatch):
        import logging

        from photopager.core.logging import setup_logging

        monkeypatch.setenv("PHOTOPAGER_LOG_LEVEL", "ERROR")
        setup_logging(level="debug", fmt="json")
        assert logging.getLogger("photopager").level == logging.DEBUG
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

        setup_logging()
        assert logging.getLogger("photopager").level == logging.ERROR
