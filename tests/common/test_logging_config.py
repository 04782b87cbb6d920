import json
import logging

import pytest

from common.logging_config import (
    LOGGING_CONFIGS,
    JSONFormatter,
    log_performance,
    setup_service_logging,
)


def test_json_formatter_includes_extra_fields():
    formatter = JSONFormatter("module-installer")
    record = logging.LogRecord(
        name="installer.catalog",
        level=logging.WARNING,
        pathname=__file__,
        lineno=10,
        msg="Duplicate module id %s",
        args=(7,),
        exc_info=None,
    )
    record.module_id = 7

    entry = json.loads(formatter.format(record))

    assert entry["level"] == "WARNING"
    assert entry["service"] == "module-installer"
    assert entry["logger"] == "installer.catalog"
    assert entry["message"] == "Duplicate module id 7"
    assert entry["extra"] == {"module_id": 7}


def test_setup_service_logging_uses_environment_preset(mocker):
    mock_setup = mocker.patch("common.logging_config.setup_json_logging")

    setup_service_logging("module-installer", environment="testing")

    mock_setup.assert_called_once_with(
        service_name="module-installer",
        log_level=LOGGING_CONFIGS["testing"]["log_level"],
        enable_console=False,
        log_file_path=None,
    )


def test_setup_service_logging_unknown_environment_falls_back(mocker):
    mock_setup = mocker.patch("common.logging_config.setup_json_logging")

    setup_service_logging("module-installer", environment="staging")

    assert mock_setup.call_args.kwargs["log_level"] == "INFO"


def test_log_performance_passes_through(caplog):
    @log_performance
    def add(a, b):
        return a + b

    with caplog.at_level(logging.DEBUG):
        assert add(1, 2) == 3
    assert "Function add completed" in caplog.text


def test_log_performance_logs_and_reraises(caplog):
    @log_performance
    def boom():
        raise ValueError("bad")

    with pytest.raises(ValueError):
        boom()
    assert "Function boom failed" in caplog.text


def test_setup_service_logging_passes_log_file(mocker):
    mock_setup = mocker.patch("common.logging_config.setup_json_logging")

    setup_service_logging("module-installer", environment="development", log_file_path="run.log")

    assert mock_setup.call_args.kwargs == {
        "service_name": "module-installer",
        "log_level": "DEBUG",
        "enable_console": True,
        "log_file_path": "run.log",
    }
