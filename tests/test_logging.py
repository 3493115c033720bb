import json
import logging
import unittest

from support import ApiTestCase

from config.logging_config import JsonFormatter
from middleware.request_logging import REQUEST_ID_HEADER


class TestJsonFormatter(unittest.TestCase):
    def test_extra_fields_become_keys(self):
        record = logging.makeLogRecord(
            {"name": "x", "levelname": "INFO", "msg": "trade %s", "args": ("BUY",), "request_id": "abc"}
        )
        entry = json.loads(JsonFormatter().format(record))
        self.assertEqual(entry["message"], "trade BUY")
        self.assertEqual(entry["request_id"], "abc")
        self.assertEqual(entry["logger"], "x")
        self.assertNotIn("args", entry)


class TestRequestId(ApiTestCase):
    def test_request_id_is_echoed_or_generated(self):
        r = self.client.get("/health", headers={REQUEST_ID_HEADER: "req-1"})
        self.assertEqual(r.headers[REQUEST_ID_HEADER], "req-1")

        r = self.client.get("/health")
        self.assertEqual(len(r.headers[REQUEST_ID_HEADER]), 32)


if __name__ == "__main__":
    unittest.main()
