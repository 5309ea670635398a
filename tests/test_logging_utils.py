from __future__ import annotations

import json
import logging
import unittest

from app.logging_utils import JsonFormatter, bind_request_id, current_request_id, reset_request_id


def _record(message: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord("app.tasks", logging.INFO, __file__, 1, message, None, None)
    record.__dict__.update(extra)
    return record


class JsonFormatterTests(unittest.TestCase):
    def test_extra_keys_and_service_are_included(self) -> None:
        line = JsonFormatter(service="NewsroomDispatch").format(_record("task_created", task_id=7, newsroom="DJEČIJA"))
        payload = json.loads(line)

        self.assertEqual(payload["message"], "task_created")
        self.assertEqual(payload["logger"], "app.tasks")
        self.assertEqual(payload["service"], "NewsroomDispatch")
        self.assertEqual(payload["task_id"], 7)
        self.assertIn("DJEČIJA", line)
        self.assertNotIn("lineno", payload)

    def test_bound_request_id_is_attached(self) -> None:
        formatter = JsonFormatter()
        token = bind_request_id("req-1")
        try:
            self.assertEqual(json.loads(formatter.format(_record("inside")))["request_id"], "req-1")
            explicit = json.loads(formatter.format(_record("explicit", request_id="req-2")))
            self.assertEqual(explicit["request_id"], "req-2")
        finally:
            reset_request_id(token)

        self.assertIsNone(current_request_id())
        self.assertNotIn("request_id", json.loads(formatter.format(_record("outside"))))


if __name__ == "__main__":
    unittest.main()
