"""Tests for logging and file helpers."""

import logging

from colorama import Style

from utils.helpers import read_file_content, split_names
from utils.logger import ColoredFormatter, LOGGER_NAME, setup_logger


class TestColoredFormatter:
    def make_record(self):
        return logging.LogRecord(LOGGER_NAME, logging.WARNING, __file__, 1, "flow to %s", ("system",), None)

    def test_colours_the_output(self):
        output = ColoredFormatter("%(levelname)s %(message)s").format(self.make_record())

        assert "flow to system" in output
        assert Style.RESET_ALL in output

    def test_leaves_record_untouched(self):
        record = self.make_record()

        ColoredFormatter("%(levelname)s %(message)s").format(record)

        assert record.levelname == "WARNING"
        assert record.msg == "flow to %s"
        assert record.getMessage() == "flow to system"

    def test_other_handlers_see_plain_text(self, caplog):
        logger = setup_logger("INFO")

        with caplog.at_level(logging.WARNING, logger=LOGGER_NAME):
            logger.warning("tainted $%s", "q")

        assert caplog.records[-1].levelname == "WARNING"
        assert caplog.messages[-1] == "tainted $q"


class TestHelpers:
    def test_read_falls_back_to_latin1(self, tmp_path):
        path = tmp_path / "slice.json"
        path.write_bytes(b'{"value": "caf\xe9"}')

        assert read_file_content(str(path)) == '{"value": "café"}'

    def test_split_names(self):
        assert split_names(" a, b ,,c ") == ["a", "b", "c"]
        assert split_names(["x ", ""]) == ["x"]
        assert split_names(None) == []
