"""
Smoke test for the SOS flow with a throwaway SQLite database and simulated
SMS/email gateways. Runs a few calls against the FastAPI app using TestClient.
"""

import tempfile
from pathlib import Path
from typing import Dict

from fastapi.testclient import TestClient

from safeher.repositories import db


def run_smoke():
    with tempfile.TemporaryDirectory() as tmp:
        db.configure(f"sqlite:///{Path(tmp) / 'smoke.db'}")
        from safeher.main import app

        with TestClient(app) as client:
            resp = client.post(
                "/devices/register", json={"device_id": "dev-smoke", "name": "Asha", "phone": "9999999999"}
            )
            assert resp.status_code in (200, 201), resp.text

            resp = client.post(
                "/contacts", json={"device_id": "dev-smoke", "name": "Ravi", "phone": "8888888888"}
            )
            assert resp.status_code == 201, resp.text

            resp = client.post("/sos/trigger", json={"device_id": "dev-smoke", "latitude": 12.9716, "longitude": 77.5946})
            assert resp.status_code == 201, resp.text
            event: Dict = resp.json()
            assert event["status"] == "active"

            results = client.post(f"/sos/{event['event_id']}/notify")
            assert results.status_code == 200, results.text
            assert len(results.json()) == 1

            resolved = client.post(f"/sos/{event['event_id']}/resolve")
            assert resolved.json()["status"] == "resolved"
            print("Smoke OK: register, contact, trigger, notify, resolve")
        db.configure()


if __name__ == "__main__":
    run_smoke()
