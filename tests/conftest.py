import logging

import pytest

from flowsim import config
from flowsim.observability import clear_run_context
from flowsim.observability.logging import HumanReadableFormatter, StructuredFormatter


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Never read the developer's ~/.flowsim/configuration.json."""
    path = tmp_path / "configuration.json"
    monkeypatch.setattr(config, "FLOWSIM_CONFIG_FILE", path)
    return path


@pytest.fixture(autouse=True)
def reset_logging():
    root = logging.getLogger()
    level = root.level
    yield
    # Drop handlers installed by configure_logging
    for handler in list(root.handlers):
        if isinstance(handler.formatter, (StructuredFormatter, HumanReadableFormatter)):
            root.removeHandler(handler)
    root.setLevel(level)
    clear_run_context()
