import logging

import pytest

from scoreline.utils.logging_config import setup_logging

SERVICE_LOGGERS = ("scoreline.services.settlement", "scoreline.services.ledger")


@pytest.fixture
def file_logging_app(app, tmp_path):
    app.config.update(LOG_TO_FILE=True, LOG_DIR=str(tmp_path))
    yield app

    for name in SERVICE_LOGGERS:
        service_logger = logging.getLogger(name)
        for handler in service_logger.handlers[:]:
            service_logger.removeHandler(handler)
            handler.close()
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        if isinstance(handler, logging.FileHandler):
            root_logger.removeHandler(handler)
            handler.close()


def test_settlement_log_file_is_shared_by_services(file_logging_app, tmp_path):
    setup_logging(file_logging_app)

    settlement_handlers = logging.getLogger(SERVICE_LOGGERS[0]).handlers
    ledger_handlers = logging.getLogger(SERVICE_LOGGERS[1]).handlers

    assert len(settlement_handlers) == 1
    assert settlement_handlers == ledger_handlers
    assert (tmp_path / "settlement.log").exists()


def test_reconfiguring_closes_replaced_settlement_handler(file_logging_app):
    setup_logging(file_logging_app)
    replaced = logging.getLogger(SERVICE_LOGGERS[0]).handlers[0]

    setup_logging(file_logging_app)

    for name in SERVICE_LOGGERS:
        assert replaced not in logging.getLogger(name).handlers
    assert replaced.stream is None
