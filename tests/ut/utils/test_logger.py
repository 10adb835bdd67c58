"""日志配置测试"""

import io
import json
import logging

from lxl.utils.logger import reset_logging, setup_logging


class TestSetupLogging:
    def teardown_method(self) -> None:
        reset_logging()

    def test_json_output(self) -> None:
        buf = io.StringIO()
        setup_logging(level="INFO", json_output=True, stream=buf)
        logging.getLogger("lxl.test").info("订阅源不可用")
        entry = json.loads(buf.getvalue().strip())
        assert entry["level"] == "INFO"
        assert entry["logger"] == "lxl.test"
        assert entry["message"] == "订阅源不可用"

    def test_repeated_setup_single_handler(self) -> None:
        setup_logging(stream=io.StringIO())
        setup_logging(stream=io.StringIO())
        assert len(logging.getLogger().handlers) == 1

    def test_unknown_level_defaults_to_warning(self) -> None:
        setup_logging(level="chatty", stream=io.StringIO())
        assert logging.getLogger().level == logging.WARNING
