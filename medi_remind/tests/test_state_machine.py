import os
import sys
import tempfile
import unittest
from datetime import datetime

from medi_remind.core.dispatcher import Dispatcher
from medi_remind.core.ledger import AdherenceLedger
from medi_remind.core.models import DoseStatus
from medi_remind.core.reminder import ReminderEngine
from medi_remind.core.state_machine import StateMachine, ReminderState
from medi_remind.modules.records import CooldownRegistry
from medi_remind.modules.store import SharedStore

# make the shared helpers importable under plain unittest
HERE = os.path.dirname(os.path.abspath(__file__))
if HERE not in sys.path:
    sys.path.insert(0, HERE)

from helpers import FakeClock, FakeTransport, make_medicine, CARETAKER, PATIENT


class TestStateMachine(unittest.TestCase):
    def setUp(self):
        self.now = [100.0]
        self.sm = StateMachine(initial_state=ReminderState.IDLE, clock=lambda: self.now[0])
        self.sm.register_transition(ReminderState.IDLE, ReminderState.SHOWING, "show")
        self.sm.register_transition(ReminderState.SHOWING, ReminderState.TAKEN, "confirm")
        self.sm.register_transition(ReminderState.TAKEN, ReminderState.IDLE, "resolved")

    def test_initial_state(self):
        self.assertEqual(self.sm.current_state, ReminderState.IDLE)

    def test_invalid_transition(self):
        self.assertFalse(self.sm.trigger("confirm"))
        self.assertEqual(self.sm.current_state, ReminderState.IDLE)

    def test_full_flow(self):
        self.assertTrue(self.sm.trigger("show"))
        self.assertTrue(self.sm.trigger("confirm"))
        self.assertTrue(self.sm.trigger("resolved"))
        self.assertEqual(self.sm.current_state, ReminderState.IDLE)

    def test_failing_action_still_transitions(self):
        def boom():
            raise RuntimeError("boom")
        self.sm.register_transition(ReminderState.IDLE, ReminderState.TIMED_OUT, "explode", boom)
        self.assertTrue(self.sm.trigger("explode"))
        self.assertEqual(self.sm.current_state, ReminderState.TIMED_OUT)

    def test_time_in_state(self):
        self.sm.trigger("show")
        self.now[0] += 5
        self.assertEqual(self.sm.get_time_in_state(), 5)

    def test_duplicate_transition_rejected(self):
        with self.assertRaises(ValueError):
            self.sm.register_transition(ReminderState.IDLE, ReminderState.TAKEN, "show")

    def test_can_trigger_does_not_move(self):
        self.assertTrue(self.sm.can_trigger("show"))
        self.assertFalse(self.sm.can_trigger("confirm"))
        self.assertEqual(self.sm.current_state, ReminderState.IDLE)
        self.sm.trigger("show")
        self.assertEqual(self.sm.last_transition.condition, "show")


class TestReminderEngine(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        store = SharedStore(data_dir=self._tmp.name)
        self.clock = FakeClock()
        self.transport = FakeTransport()
        self.ledger = AdherenceLedger(store, clock=self.clock)
        self.dispatcher = Dispatcher(
            self.transport, CooldownRegistry(store),
            patient_recipient=lambda owner: PATIENT,
            caretaker_recipient=lambda owner: CARETAKER,
            clock=self.clock,
        )
        self.engine = ReminderEngine(self.ledger, self.dispatcher, clock=self.clock)
        self.med = make_medicine()

    def tearDown(self):
        self._tmp.cleanup()

    def _run_countdown(self, seconds):
        for _ in range(seconds):
            self.clock.advance(1)
            self.engine.tick_countdown()

    def test_single_slot(self):
        self.assertTrue(self.engine.offer(self.med))
        self.assertFalse(self.engine.offer(make_medicine("med-2", name="Other")))
        snap = self.engine.snapshot()
        self.assertEqual(snap.state, ReminderState.SHOWING)
        self.assertEqual(snap.medicine.id, "med-1")
        self.assertEqual(snap.remaining_seconds, 120)

    def test_confirm_logs_taken(self):
        self.engine.offer(self.med)
        self._run_countdown(90)
        log = self.engine.confirm_taken()
        self.assertEqual(log.status, DoseStatus.TAKEN)
        self.assertEqual(log.timestamp, datetime(2024, 1, 1, 8, 1, 30))
        self.assertEqual(self.engine.state, ReminderState.IDLE)
        self.assertIsNone(self.engine.active_medicine)
        self.assertEqual(self.transport.sent, [])

    def test_confirm_when_idle(self):
        self.assertIsNone(self.engine.confirm_taken())
        self.assertEqual(self.ledger.logs(), [])

    def test_timeout_after_countdown(self):
        self.engine.offer(self.med)
        self._run_countdown(119)
        self.assertEqual(self.engine.state, ReminderState.SHOWING)
        self.assertEqual(self.engine.snapshot().remaining_seconds, 1)

        self._run_countdown(1)
        self.assertEqual(self.engine.state, ReminderState.IDLE)
        logs = self.ledger.logs()
        self.assertEqual(len(logs), 1)
        self.assertEqual(logs[0].status, DoseStatus.MISSED)
        self.assertEqual(len(self.transport.sent), 1)
        phone, message = self.transport.sent[0]
        self.assertEqual(phone, CARETAKER)
        self.assertIn("MISSED", message)

    def test_missed_logged_even_if_sms_fails(self):
        self.transport.succeed = False
        self.engine.offer(self.med)
        self._run_countdown(120)
        self.assertEqual([l.status for l in self.ledger.logs()], [DoseStatus.MISSED])
        self.assertEqual(self.engine.state, ReminderState.IDLE)

    def test_resolved_elsewhere_is_not_logged_twice(self):
        self.engine.offer(self.med)
        self.ledger.record_taken(self.med.id, self.med.owner_id)
        self.assertIsNone(self.engine.confirm_taken())
        self.assertEqual(len(self.ledger.logs()), 1)
        self.assertEqual(self.engine.state, ReminderState.IDLE)

    def test_timeout_after_external_resolution_skips_escalation(self):
        self.engine.offer(self.med)
        self.ledger.record_taken(self.med.id, self.med.owner_id)
        self.assertIsNone(self.engine.on_countdown_expired())
        self.assertEqual(self.transport.sent, [])

    def test_dismiss_if_resolved(self):
        self.engine.offer(self.med)
        self.assertFalse(self.engine.dismiss_if_resolved(self.clock()))
        self.ledger.record_taken(self.med.id, self.med.owner_id)
        self.assertTrue(self.engine.dismiss_if_resolved(self.clock()))
        self.assertEqual(self.engine.state, ReminderState.IDLE)
        self.assertEqual(self.engine.snapshot().to_dict(), {"state": "idle", "medicine": None, "remaining_seconds": 0})

    def test_offer_refuses_dose_already_logged(self):
        # Confirmed from the web between the scheduler's check and its offer
        self.ledger.record_taken(self.med.id, self.med.owner_id)
        self.assertFalse(self.engine.offer(self.med))
        self.assertEqual(self.engine.state, ReminderState.IDLE)
        self.assertIsNone(self.engine.active_medicine)


if __name__ == '__main__':
    unittest.main()
