import sys

from loguru import logger

from rep_period_toolkit.core.utils.core_utils import configure_logging
from rep_period_toolkit.core.utils.core_utils import timer


def test_timer(log_messages):
    @timer
    def add(a, b=1):
        """Adds two numbers."""
        return a + b

    assert add(2, b=3) == 5
    assert add.__name__ == "add"
    assert add.__doc__ == "Adds two numbers."
    assert any(message.startswith("Finished test_timer.<locals>.add in") for message in log_messages)


def test_configure_logging(tmp_path):
    log_file = tmp_path / "clustering.log"
    handler_ids = configure_logging(log_level="WARNING", log_file=str(log_file))
    try:
        assert len(handler_ids) == 2
        logger.debug("only in the file")
        for handler_id in handler_ids:
            logger.remove(handler_id)
        assert "only in the file" in log_file.read_text()
    finally:
        logger.add(sys.stderr)
