"""Fixtures shared by the copy planning tests."""

from __future__ import annotations

import logging
import threading

import pytest

from BucketCopy.CopyPlanning.logging_utils import LOGGER_NAME
from BucketCopy.CopyPlanning.settings import CopyPlanningSettings
from BucketCopy.CopyPlanning.testing import FakeBackend

PIPELINE_THREAD_NAMES = ("copy-plan-generate", "copy-plan-filter")


def _live_pipeline_threads() -> list[str]:
    return [
        thread.name
        for thread in threading.enumerate()
        if thread.is_alive()
        and (thread.name in PIPELINE_THREAD_NAMES or thread.name.startswith("copy-plan-source"))
    ]


@pytest.fixture
def live_pipeline_threads():
    """Return a callable listing the names of live pipeline and fan-out threads."""

    return _live_pipeline_threads


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend(aliases=["play"])


@pytest.fixture
def fast_settings() -> CopyPlanningSettings:
    """Settings with short poll and join intervals for responsive tests."""

    return CopyPlanningSettings(poll_interval=0.01, join_timeout=5.0)


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """Undo handlers installed by ``setup_logging`` so caplog keeps working."""

    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if getattr(handler, "_bucketcopy_managed", False):
            logger.removeHandler(handler)
            handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
