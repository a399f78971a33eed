import os
import sys
import tempfile
import unittest

from medi_remind.config import StoreConfig
from medi_remind.core.controller import ReminderController
from medi_remind.website.server import create_app

# make the shared helpers importable under plain unittest
HERE = os.path.dirname(os.path.abspath(__file__))
if HERE not in sys.path:
    sys.path.insert(0, HERE)

from helpers import FakeClock, FakeTransport, CARETAKER, PATIENT

MEDICINE = {
    "owner_id": CARETAKER,
    "name": "Dolo",
    "dosage_mg": 650,
    "pill_count": 1,
    "before_food": False,
    "days": ["Monday"],
    "time": "08:00",
}


class TestServer(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.transport = FakeTransport()
        self.controller = ReminderController(
            store_config=StoreConfig(data_dir=self._tmp.name),
            transport=self.transport,
            clock=FakeClock(),
            background_sends=False,
        )
        self.client = create_app(self.controller).test_client()

    def tearDown(self):
        self._tmp.cleanup()

    def _add(self, **overrides):
        body = dict(MEDICINE)
        body.update(overrides)
        return self.client.post("/api/medicines", json=body)

    def test_health(self):
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["status"], "ok")

    def test_add_and_list_medicines(self):
        response = self._add()
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.get_json()["schedule"], {"days": ["Monday"], "time": "08:00"})

        listed = self.client.get(f"/api/medicines?owner={CARETAKER}").get_json()
        self.assertEqual([m["name"] for m in listed], ["Dolo"])

    def test_add_rejects_bad_input(self):
        self.assertEqual(self._add(days=[]).status_code, 400)
        self.assertEqual(self._add(time="25:00").status_code, 400)
        self.assertEqual(self._add(dosage_mg="lots").status_code, 400)
        body = dict(MEDICINE)
        del body["name"]
        response = self.client.post("/api/medicines", json=body)
        self.assertEqual(response.status_code, 400)

    def test_add_rejects_loosely_typed_fields(self):
        self.assertEqual(self._add(before_food="false").status_code, 400)
        self.assertEqual(self._add(dosage_mg=12.7).status_code, 400)
        self.assertEqual(self._add(dosage_mg=True).status_code, 400)
        self.assertEqual(self._add(pill_count=True).status_code, 400)
        self.assertEqual(self.client.post("/api/medicines", json=[MEDICINE]).status_code, 400)
        self.assertEqual(self.client.get(f"/api/medicines?owner={CARETAKER}").get_json(), [])

    def test_add_accepts_numeric_strings(self):
        response = self._add(dosage_mg="500", pill_count="2")
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.get_json()["dosage_mg"], 500)
        self.assertEqual(response.get_json()["pill_count"], 2)
        self.assertIn("name", response.get_json()["error"])

    def test_owner_required(self):
        self.assertEqual(self.client.get("/api/logs").status_code, 400)

    def test_reminder_flow(self):
        self._add()
        self.assertEqual(self.client.get("/api/reminder").get_json()["state"], "idle")

        self.controller.scheduler.tick()
        state = self.client.get("/api/reminder").get_json()
        self.assertEqual(state["state"], "showing")
        self.assertEqual(state["medicine"]["name"], "Dolo")
        self.assertEqual(state["remaining_seconds"], 120)

        taken = self.client.post("/api/reminder/taken").get_json()
        self.assertEqual(taken["logged"]["status"], "taken")
        self.assertEqual(taken["reminder"]["state"], "idle")

        today = self.client.get(f"/api/today?owner={CARETAKER}").get_json()
        self.assertEqual(today[0]["status"], "taken")

        logs = self.client.get(f"/api/logs?owner={CARETAKER}").get_json()
        self.assertEqual(len(logs), 1)

        report = self.client.get(f"/api/report?owner={CARETAKER}").get_json()
        self.assertEqual(report[0], {"day": "Monday", "taken": 1, "missed": 0, "logs": logs})

    def test_today_pending(self):
        self._add()
        self._add(name="Tuesday only", days=["Tuesday"])
        today = self.client.get(f"/api/today?owner={CARETAKER}").get_json()
        self.assertEqual([(e["medicine"]["name"], e["status"]) for e in today], [("Dolo", "pending")])

    def test_manual_notify(self):
        med_id = self._add().get_json()["id"]
        self.assertEqual(self.client.post("/api/medicines/unknown/notify").status_code, 404)

        # No account registered yet
        self.assertEqual(self.client.post(f"/api/medicines/{med_id}/notify").status_code, 400)

        self.controller.accounts.register(CARETAKER, PATIENT)
        response = self.client.post(f"/api/medicines/{med_id}/notify")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.transport.sent[-1][0], PATIENT)

        self.transport.succeed = False
        response = self.client.post(f"/api/medicines/{med_id}/notify")
        self.assertEqual(response.status_code, 502)
        self.assertIn("Network Blocked", response.get_json()["error"])


if __name__ == '__main__':
    unittest.main()
