import dataclasses
import logging

from ridehail import logging_config
from ridehail.logging_config import setup_logging
from ridehail.settings import settings


def test_setup_logging_adds_handlers_once(monkeypatch, tmp_path):
    root = logging.getLogger()
    monkeypatch.setattr(logging_config, "_LOGGING_INITIALIZED", False)
    monkeypatch.setattr(root, "level", root.level)
    before = list(root.handlers)
    cfg = dataclasses.replace(settings, LOG_DIR=str(tmp_path / "logs"), LOG_LEVEL="DEBUG")

    try:
        setup_logging(cfg)
        setup_logging(dataclasses.replace(cfg, LOG_LEVEL="WARNING"))

        added = [h for h in root.handlers if h not in before]
        assert len(added) == 2
        assert root.level == logging.WARNING
        assert not hasattr(root, "_ridehail_configured")
        assert (tmp_path / "logs" / "ridehail.log").exists()
    finally:
        for handler in root.handlers[:]:
            if handler not in before:
                root.removeHandler(handler)
                handler.close()
