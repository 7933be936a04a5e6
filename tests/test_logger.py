"""
Tests for the logging helpers.
"""

import logging
import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from deeprl.utils.logger import (
    ROOT_LOGGER_NAME, LogLevel, get_logger, log_model_event, log_training_metrics, setup_logging,
)


@pytest.fixture
def clean_root():
    root = logging.getLogger(ROOT_LOGGER_NAME)
    yield root
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()


class TestNamespace:
    """Test logger naming."""

    def test_module_names_are_prefixed(self):
        assert get_logger('trainer').name == 'deeprl.trainer'

    def test_package_names_kept(self):
        assert get_logger('deeprl.ai.brain').name == 'deeprl.ai.brain'

    def test_level_from_name(self):
        assert LogLevel.from_name('debug') is LogLevel.DEBUG
        with pytest.raises(ValueError):
            LogLevel.from_name('loud')


class TestSetup:
    """Test handler configuration."""

    def test_file_receives_debug(self, clean_root, tmp_path):
        path = setup_logging(log_dir=str(tmp_path), level=LogLevel.WARNING)
        get_logger('test').debug("quiet detail")
        for handler in clean_root.handlers:
            handler.flush()
        assert path.parent == tmp_path
        assert "quiet detail" in path.read_text(encoding='utf-8')

    def test_repeat_setup_replaces_handlers(self, clean_root, tmp_path):
        setup_logging(log_dir=str(tmp_path))
        setup_logging(log_dir=None)
        assert len(clean_root.handlers) == 1

    def test_no_log_dir_writes_no_file(self, clean_root, tmp_path):
        assert setup_logging(log_dir=None) is None
        assert list(tmp_path.iterdir()) == []


class TestMetricLines:
    """Test the formatted progress lines."""

    def test_training_metrics_line(self, caplog):
        with caplog.at_level(logging.INFO, logger=ROOT_LOGGER_NAME):
            log_training_metrics(epoch=3, clock=120, epsilon=0.5, loss=0.25,
                                 memory=40, scores=(2, 1), name='hero')
        assert caplog.records[-1].getMessage() == (
            "net=hero | epoch=3 | clock=120 | eps=0.5000 | loss=0.250000 | memory=40 | score=2:1"
        )

    def test_optional_fields_omitted(self, caplog):
        with caplog.at_level(logging.INFO, logger=ROOT_LOGGER_NAME):
            log_training_metrics(epoch=1, clock=10, epsilon=1.0)
        assert caplog.records[-1].getMessage() == "epoch=1 | clock=10 | eps=1.0000"

    def test_model_event_line(self, caplog):
        with caplog.at_level(logging.INFO, logger=ROOT_LOGGER_NAME):
            log_model_event('save', 'models/hero_final.pth', steps=7)
        assert caplog.records[-1].getMessage() == "SAVE | models/hero_final.pth | steps=7"
