import logging

from loguru import logger

from media_gateway.logging_config import configure_logging


def test_uvicorn_records_are_routed_into_loguru():
    configure_logging("DEBUG")
    messages = []
    sink_id = logger.add(lambda m: messages.append(m.record), format="{message}")
    try:
        logging.getLogger("uvicorn.error").warning("bind failed on port 80")
    finally:
        logger.remove(sink_id)

    assert [r["message"] for r in messages] == ["bind failed on port 80"]
    assert messages[0]["level"].name == "WARNING"


def test_uvicorn_loggers_have_no_own_handlers():
    configure_logging("INFO")

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        std_logger = logging.getLogger(name)
        assert std_logger.handlers == []
        assert std_logger.propagate is True
