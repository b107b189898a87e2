"""Tests for logging setup."""
import logging
import unittest

from savings_fund.logging_config import get_logger, setup_logging


class TestLoggingConfig(unittest.TestCase):

    def tearDown(self):
        logger = logging.getLogger("savings_fund")
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
        logger.propagate = True
        logger.setLevel(logging.NOTSET)

    def test_setup_is_idempotent(self):
        setup_logging("debug")
        logger = setup_logging("warning")
        self.assertEqual(len(logger.handlers), 1)
        self.assertEqual(logger.level, logging.WARNING)
        self.assertFalse(logger.propagate)

    def test_module_loggers_share_namespace(self):
        self.assertEqual(get_logger("engine").name, "savings_fund.engine")
        self.assertEqual(get_logger("savings_fund.database").name, "savings_fund.database")
        self.assertEqual(get_logger().name, "savings_fund")


if __name__ == '__main__':
    unittest.main()
