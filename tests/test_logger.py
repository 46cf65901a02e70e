import logging

import pytest

from maskar.utils.logger import ROOT_NAME, get_logger, set_level


@pytest.fixture
def restore_level():
    root = logging.getLogger(ROOT_NAME)
    level = root.level
    yield root
    root.setLevel(level)


def test_component_loggers_share_one_handler():
    a = get_logger("Camera")
    b = get_logger("Renderer")
    root = logging.getLogger(ROOT_NAME)

    assert a.name == "maskar.Camera"
    assert a.parent is root and b.parent is root
    assert not a.handlers and not b.handlers
    assert len(root.handlers) == 1

    get_logger("Camera")
    assert len(root.handlers) == 1


def test_set_level_applies_to_every_component(restore_level):
    log = get_logger("FrameLoop")
    assert set_level("warning") == logging.WARNING
    assert not log.isEnabledFor(logging.INFO)
    assert log.isEnabledFor(logging.WARNING)

    set_level(logging.DEBUG)
    assert log.isEnabledFor(logging.DEBUG)
