import structlog

from pricefeed.logs import configure_logging


def test_json_renderer_is_last_processor():
    try:
        configure_logging(level="DEBUG", json=True)
        processors = structlog.get_config()['processors']
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)
        assert structlog.stdlib.add_log_level in processors
    finally:
        structlog.reset_defaults()


def test_console_renderer_when_json_disabled():
    try:
        configure_logging(level="info", json=False)
        processors = structlog.get_config()['processors']
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)
    finally:
        structlog.reset_defaults()
