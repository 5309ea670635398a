from __future__ import annotations

import unittest
from types import SimpleNamespace
from unittest.mock import patch

from newsroom_testkit import ApiTestCase

from scripts import predeploy_guard


class PredeployGuardTests(ApiTestCase):
    def test_revision_ids_fit_version_column(self) -> None:
        result = predeploy_guard._check_revision_id_lengths()
        self.assertTrue(result.ok)
        self.assertGreaterEqual(result.details["total"], 1)

    def test_push_keys_must_come_in_pairs(self) -> None:
        half = SimpleNamespace(push_vapid_public_key="pub", push_vapid_private_key="")
        with patch.object(predeploy_guard, "get_settings", return_value=half):
            self.assertEqual(predeploy_guard._check_push_config().status, "fail")

        none = SimpleNamespace(push_vapid_public_key=None, push_vapid_private_key=None)
        with patch.object(predeploy_guard, "get_settings", return_value=none):
            self.assertEqual(predeploy_guard._check_push_config().status, "ok")

    def test_orphan_tasks_are_sampled(self) -> None:
        amra = self.add_person("Amra Novinarka")
        self.add_task("Uredan", journalist_ids=[amra.id])
        broken = self.add_task("Pokvaren", journalist_ids=[amra.id], cameraman_ids=[404])

        with self.engine.connect() as connection:
            self.assertEqual(predeploy_guard._orphan_task_ids(connection), [broken.id])


if __name__ == "__main__":
    unittest.main()
