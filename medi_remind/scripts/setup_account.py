"""Interactive account setup wizard.

Registers a caretaker/patient phone pair in the shared store and optionally
adds a first medicine. Run with `python -m medi_remind.scripts.setup_account`.
"""
from medi_remind.config import StoreConfig
from medi_remind.modules.records import AccountDirectory, MedicineCatalog
from medi_remind.modules.store import SharedStore


def prompt(prompt_text, default=""):
    v = input(f"{prompt_text} ")
    return v.strip() or default


def main():
    store = SharedStore(StoreConfig().data_dir)
    accounts = AccountDirectory(store)
    catalog = MedicineCatalog(store)
    print("Account setup: enter values or press Enter to accept defaults.")

    caretaker = prompt("Caretaker phone number:")
    patient = prompt("Patient phone number:")
    try:
        account = accounts.register(caretaker, patient)
    except ValueError as e:
        print(f"Could not register: {e}")
        return
    print(f"Registered account {account.id}")

    if prompt("Add a medicine now? (y/n)", "n").lower() != "y":
        return

    name = prompt("Medicine name:")
    dosage = prompt("Dosage (mg):", "500")
    pills = prompt("Number of pills:", "1")
    before_food = prompt("Before food? (y/n)", "n").lower() == "y"
    days = [d.strip().capitalize() for d in prompt("Days (comma separated):", "Monday").split(",")]
    time24 = prompt("Time (HH:MM, 24-hour):", "08:00")
    try:
        med = catalog.add_medicine(
            account.id, name=name, dosage_mg=int(dosage), pill_count=int(pills),
            before_food=before_food, days=days, time=time24,
        )
    except ValueError as e:
        print(f"Could not add medicine: {e}")
        return
    print(f"Added {med.name} at {med.schedule.time} on {', '.join(med.schedule.days)}")


if __name__ == '__main__':
    main()
