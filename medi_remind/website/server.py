"""Flask server exposing the reminder to a browser front end.

Routes:
  - GET  /health
  - GET  /api/reminder                 current reminder slot (idle / showing + countdown)
  - POST /api/reminder/taken           patient confirms the dose
  - GET  /api/medicines?owner=...      caretaker's medicines
  - POST /api/medicines                add a medicine
  - POST /api/medicines/<id>/notify    send the patient SMS now
  - GET  /api/logs?owner=...           dose history
  - GET  /api/today?owner=...          today's schedule with status
  - GET  /api/report?owner=...         seven-day adherence report

Run:
  python -m medi_remind.main
"""

from flask import Flask, request, jsonify

from medi_remind.core.controller import ReminderController
from medi_remind.core.dispatcher import DispatchOutcome


def _whole_number(value, field: str) -> int:
    """Accept 5 or "5"; reject booleans, fractions and other text."""
    if isinstance(value, bool):
        raise ValueError(f"{field} must be a whole number")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise ValueError(f"{field} must be a whole number")


def _flag(value, field: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ValueError(f"{field} must be true or false")


def create_app(controller: ReminderController) -> Flask:
    app = Flask(__name__)

    def _owner():
        owner = request.args.get("owner", "").strip()
        if not owner:
            return None, (jsonify({"error": "owner query parameter is required"}), 400)
        return owner, None

    # ── Health ────────────────────────────────────────────────
    @app.get("/health")
    def health():
        return jsonify({"status": "ok", "scheduler_running": controller.scheduler.is_running})

    # ── Reminder slot ─────────────────────────────────────────
    @app.get("/api/reminder")
    def reminder_state():
        return jsonify(controller.reminder_state().to_dict())

    @app.post("/api/reminder/taken")
    def reminder_taken():
        log = controller.confirm_taken()
        return jsonify({
            "logged": log.to_dict() if log else None,
            "reminder": controller.reminder_state().to_dict(),
        })

    # ── Medicines ─────────────────────────────────────────────
    @app.get("/api/medicines")
    def list_medicines():
        owner, error = _owner()
        if error:
            return error
        return jsonify([m.to_dict() for m in controller.medicines.for_owner(owner)])

    @app.post("/api/medicines")
    def add_medicine():
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            return jsonify({"error": "expected a JSON object"}), 400
        try:
            medicine = controller.add_medicine(
                str(body["owner_id"]),
                name=body["name"],
                dosage_mg=_whole_number(body["dosage_mg"], "dosage_mg"),
                pill_count=_whole_number(body.get("pill_count", 1), "pill_count"),
                before_food=_flag(body.get("before_food", False), "before_food"),
                days=body["days"],
                time=body["time"],
                image_ref=body.get("image_ref", ""),
                audio_ref=body.get("audio_ref", ""),
            )
        except KeyError as e:
            return jsonify({"error": f"missing field {e.args[0]}"}), 400
        except (TypeError, ValueError) as e:
            return jsonify({"error": str(e)}), 400
        return jsonify(medicine.to_dict()), 201

    @app.post("/api/medicines/<medicine_id>/notify")
    def notify_now(medicine_id):
        result = controller.send_reminder_now(medicine_id)
        if result is None:
            return jsonify({"error": "unknown medicine"}), 404
        if result.outcome is DispatchOutcome.NO_RECIPIENT:
            return jsonify({"error": result.error_message}), 400
        if not result.success:
            return jsonify({"error": f"SMS Failed: {result.error_message}"}), 502
        return jsonify({"status": "SMS Sent Successfully!"})

    # ── History ───────────────────────────────────────────────
    @app.get("/api/logs")
    def list_logs():
        owner, error = _owner()
        if error:
            return error
        return jsonify([log.to_dict() for log in controller.ledger.logs_for_owner(owner)])

    @app.get("/api/today")
    def today():
        owner, error = _owner()
        if error:
            return error
        return jsonify([
            {"medicine": entry["medicine"].to_dict(), "status": entry["status"]}
            for entry in controller.today_schedule(owner)
        ])

    @app.get("/api/report")
    def report():
        owner, error = _owner()
        if error:
            return error
        return jsonify([
            {
                "day": day["day"],
                "taken": day["taken"],
                "missed": day["missed"],
                "logs": [log.to_dict() for log in day["logs"]],
            }
            for day in controller.weekly_report(owner)
        ])

    return app
