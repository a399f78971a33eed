import tempfile
import unittest

from medi_remind.modules.store import SharedStore


class TestSharedStore(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.store = SharedStore(data_dir=self._tmp.name)

    def tearDown(self):
        self.store.stop_watching()
        self._tmp.cleanup()

    def test_put_get_remove(self):
        self.assertIsNone(self.store.get("medicines"))
        self.store.put("medicines", [{"id": "a"}])
        self.assertEqual(self.store.get("medicines"), [{"id": "a"}])
        self.store.remove("medicines")
        self.assertIsNone(self.store.get("medicines"))
        # Removing twice is harmless
        self.store.remove("medicines")

    def test_malformed_blob_reads_as_absent(self):
        (self.store.data_dir / "logs.json").write_text("[{", encoding="utf-8")
        self.assertIsNone(self.store.get("logs"))

    def test_update_uses_default(self):
        result = self.store.update("last_sms_time", lambda d: {**d, "m1": 5}, default={})
        self.assertEqual(result, {"m1": 5})
        self.assertEqual(self.store.get("last_sms_time"), {"m1": 5})

    def test_no_temp_files_left_behind(self):
        self.store.put("users", [])
        leftovers = [p.name for p in self.store.data_dir.iterdir() if p.name.endswith(".tmp")]
        self.assertEqual(leftovers, [])

    def test_external_change_notifies_subscribers(self):
        other = SharedStore(data_dir=self._tmp.name)
        calls = []
        self.store.subscribe("logs", calls.append)

        other.put("logs", [{"id": "x"}])
        self.assertEqual(self.store.check_external_changes(), ["logs"])
        self.assertEqual(calls, ["logs"])

        # Nothing new since the last check
        self.assertEqual(self.store.check_external_changes(), [])

    def test_own_writes_do_not_notify(self):
        calls = []
        self.store.subscribe("logs", calls.append)
        self.store.put("logs", [])
        self.assertEqual(self.store.check_external_changes(), [])
        self.assertEqual(calls, [])

    def test_external_remove_notifies(self):
        self.store.put("medicines", [])
        calls = []
        self.store.subscribe("medicines", calls.append)
        SharedStore(data_dir=self._tmp.name).remove("medicines")
        self.store.check_external_changes()
        self.assertEqual(calls, ["medicines"])

    def test_failing_callback_does_not_block_others(self):
        calls = []

        def broken(key):
            raise RuntimeError("nope")

        self.store.subscribe("users", broken)
        self.store.subscribe("users", calls.append)
        self.store.unsubscribe("users", lambda key: None)
        SharedStore(data_dir=self._tmp.name).put("users", [])
        self.store.check_external_changes()
        self.assertEqual(calls, ["users"])


if __name__ == '__main__':
    unittest.main()
