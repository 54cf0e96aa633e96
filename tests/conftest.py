"""
Shared fixtures for all tests.

FakeRxServer stands in for the record / prescription API behind an
httpx.MockTransport, so every test runs the real ApiClient end to end.
"""
import asyncio
import json
from collections import defaultdict

import httpx
import pytest

from rx_workflow.services.api_client import ApiClient
from rx_workflow.services.cache import clear_all_caches


BASE_URL = "http://testserver"

DOCTOR_TOKEN = "doctor-token"
PHARMACIST_TOKEN = "pharmacist-token"

_NEXT = {"CREATED": "RECEIVED", "RECEIVED": "DISPENSING", "DISPENSING": "COMPLETED"}


# ---------------------------------------------------------------------------
# Fake API
# ---------------------------------------------------------------------------

class FakeRxServer:
    """In-memory record / prescription API with scripted failures and gates."""

    def __init__(self):
        self.users = {
            "doctor@example.com": ("secret", DOCTOR_TOKEN, "DOCTOR", "Dr. Kim"),
            "pharmacist@example.com": ("secret", PHARMACIST_TOKEN, "PHARMACIST", "Lee"),
        }
        self.tokens = {DOCTOR_TOKEN: "DOCTOR", PHARMACIST_TOKEN: "PHARMACIST"}
        self.pharmacies = {
            7: {"id": 7, "name": "Central Pharmacy", "address": "1 Main St"},
            8: {"id": 8, "name": "Riverside Drugs", "address": "22 River Rd",
                "hospitalId": 3, "hospitalName": "Riverside Hospital"},
            9: {"id": 9, "name": "Hilltop Pharmacy", "address": "9 Hill Ave"},
        }
        self.prescriptions = {}
        self.records = {}
        self.calls = []
        self.failures = {}
        self.gates = defaultdict(list)

    # --- seeding -----------------------------------------------------------

    def add_prescription(self, prescription_id, status="CREATED", pharmacy_id=None):
        if status != "CREATED" and pharmacy_id is None:
            pharmacy_id = 7
        self.prescriptions[prescription_id] = {
            "id": prescription_id,
            "record_id": 100 + prescription_id,
            "status": status,
            "pharmacy_id": pharmacy_id,
        }
        return self.prescriptions[prescription_id]

    def fail(self, method, path, status, body):
        """Make the next call to (method, path) fail with `status` and `body`."""
        self.failures[(method, path)] = (status, body)

    def gate(self, method, path):
        """Hold the next response to (method, path) until the event is set."""
        event = asyncio.Event()
        self.gates[(method, path)].append(event)
        return event

    def mutating_calls(self):
        return [call for call in self.calls if call[0] != "GET"]

    @property
    def transport(self):
        return httpx.MockTransport(self.handler)

    # --- payloads ----------------------------------------------------------

    def summary(self, p):
        return {
            "prescriptionId": p["id"],
            "medicalRecordId": p["record_id"],
            "issueDate": "2024-05-01",
            "status": p["status"],
            "diagnosis": "Acute bronchitis",
            "patient": {"id": 31, "name": "Park"},
            "doctor": {"id": 1, "name": "Dr. Kim", "hospitalName": "General Hospital",
                       "departmentName": "Internal Medicine"},
        }

    def detail(self, p):
        body = self.summary(p)
        if p["pharmacy_id"] is not None:
            body["pharmacy"] = self.pharmacies[p["pharmacy_id"]]
        body["medicines"] = [
            {"id": 501, "name": "Amoxicillin", "dosage": "500mg", "instruction": "3x daily"},
            {"name": "Dextromethorphan"},
        ]
        return body

    # --- routing -----------------------------------------------------------

    async def handler(self, request):
        key = (request.method, request.url.path)
        self.calls.append(key)
        response = self.route(request)
        if self.gates.get(key):
            await self.gates[key].pop(0).wait()
        return response

    def route(self, request):
        method, path = request.method, request.url.path
        if (method, path) in self.failures:
            status, body = self.failures.pop((method, path))
            if isinstance(body, str):
                return httpx.Response(status, text=body)
            if body is None:
                return httpx.Response(status)
            return httpx.Response(status, json=body)

        if (method, path) == ("POST", "/login"):
            return self.login(json.loads(request.content))

        auth = request.headers.get("Authorization", "")
        role = self.tokens.get(auth.removeprefix("Bearer "))
        if role is None:
            return httpx.Response(401, json={"message": "Authentication required"})

        parts = path.strip("/").split("/")
        if parts[0] == "prescriptions":
            return self.route_prescriptions(method, parts, request, role)
        if (method, path) == ("GET", "/pharmacies"):
            return self.search_pharmacies(request)
        if parts[0] == "medical-records":
            return self.route_records(method, parts, request)
        if (method, path) == ("GET", "/medicines"):
            return httpx.Response(200, json=[{"id": 501, "name": "Amoxicillin",
                                              "manufacturer": "Acme"}])
        return httpx.Response(404, json={"message": "Not found"})

    def login(self, body):
        user = self.users.get(body.get("email"))
        if user is None or user[0] != body.get("password"):
            return httpx.Response(401, json={"message": "Invalid email or password"})
        _, token, role, name = user
        payload = {"accessToken": token, "role": role, "name": name}
        if role == "DOCTOR":
            payload["doctorProfile"] = {"doctorId": 1, "hospitalId": 2,
                                        "hospitalName": "General Hospital"}
        return httpx.Response(200, json=payload)

    def route_prescriptions(self, method, parts, request, role):
        if len(parts) == 1 and method == "GET":
            visible = [
                p for p in self.prescriptions.values()
                if role == "DOCTOR" or p["status"] != "CREATED"
            ]
            return httpx.Response(200, json=[self.summary(p) for p in visible])

        prescription = self.prescriptions.get(int(parts[1]))
        if prescription is None:
            return httpx.Response(404, json={"message": "Prescription not found"})

        if len(parts) == 2 and method == "GET":
            return httpx.Response(200, json=self.detail(prescription))

        if parts[2:] == ["status"] and method == "PATCH":
            if role != "PHARMACIST":
                return httpx.Response(403, json={"message": "Pharmacists only"})
            target = json.loads(request.content)["status"]
            if prescription["status"] == "CREATED" or _NEXT.get(prescription["status"]) != target:
                return httpx.Response(409, json={"message": "Invalid status transition"})
            prescription["status"] = target
            return httpx.Response(204)

        if parts[2:] == ["dispatch"] and method == "POST":
            if role != "DOCTOR":
                return httpx.Response(403, json={"message": "Doctors only"})
            if prescription["status"] != "CREATED":
                return httpx.Response(409, json={"message": "already dispatched"})
            pharmacy_id = json.loads(request.content)["pharmacyId"]
            if pharmacy_id not in self.pharmacies:
                return httpx.Response(404, json={"message": "Pharmacy not found"})
            prescription["status"] = "RECEIVED"
            prescription["pharmacy_id"] = pharmacy_id
            return httpx.Response(200, json={"message": "dispatched"})

        return httpx.Response(405, json={"message": "Method not allowed"})

    def search_pharmacies(self, request):
        keyword = request.url.params.get("keyword", "").lower()
        size = int(request.url.params.get("size", "10"))
        matches = [
            p for p in self.pharmacies.values()
            if keyword in p["name"].lower() or keyword in p["address"].lower()
        ]
        return httpx.Response(200, json=matches[:size])

    def route_records(self, method, parts, request):
        if len(parts) == 1 and method == "GET":
            return httpx.Response(200, json=[self.record_summary(r) for r in self.records.values()])
        if len(parts) == 1 and method == "POST":
            body = json.loads(request.content)
            record_id = 100 + len(self.records) + 1
            record = {"recordId": record_id, "body": body, "prescription_id": None}
            if body.get("prescription"):
                prescription_id = max(self.prescriptions, default=0) + 1
                self.add_prescription(prescription_id)
                self.prescriptions[prescription_id]["record_id"] = record_id
                record["prescription_id"] = prescription_id
            self.records[record_id] = record
            return httpx.Response(201, json=self.record_detail(record))
        if parts[1] == "patients" and method == "GET":
            return httpx.Response(200, json=[{"id": 31, "name": "Park", "gender": "F",
                                              "birthDate": "1980-02-03"}])
        if parts[1] == "patient" and method == "GET":
            patient_id = int(parts[2])
            return httpx.Response(200, json=[
                self.record_summary(r) for r in self.records.values() if patient_id == 31
            ])
        record = self.records.get(int(parts[1]))
        if record is None:
            return httpx.Response(404, json={"message": "Record not found"})
        return httpx.Response(200, json=self.record_detail(record))

    def record_summary(self, record):
        body = record["body"]
        return {
            "recordId": record["recordId"],
            "visitDate": body["visitDate"],
            "diagnosis": body["diagnosis"],
            "patient": {"id": 31, "name": body["patient"]["name"]},
            "doctor": {"id": 1, "name": "Dr. Kim"},
        }

    def record_detail(self, record):
        body = record["body"]
        detail = {
            "recordId": record["recordId"],
            "visitDate": body["visitDate"],
            "diagnosis": body["diagnosis"],
            "patient": {"id": 31, "name": body["patient"]["name"]},
            "doctor": {"id": 1, "name": "Dr. Kim"},
            "symptoms": body.get("symptoms", []),
            "treatments": body.get("treatments", []),
        }
        if record["prescription_id"] is not None:
            p = self.prescriptions[record["prescription_id"]]
            detail["prescription"] = {
                "id": p["id"],
                "issueDate": "2024-05-01",
                "status": p["status"],
                "medicines": [
                    {"medicineId": m.get("medicineId") or 0, "name": m["name"],
                     "dosage": m.get("dosage")}
                    for m in body["prescription"]["medicines"]
                ],
            }
        return detail


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _fresh_caches():
    clear_all_caches()
    yield
    clear_all_caches()


@pytest.fixture
def server():
    fake = FakeRxServer()
    fake.add_prescription(12, "CREATED")
    return fake


@pytest.fixture
async def doctor_api(server):
    api = ApiClient(base_url=BASE_URL, token=DOCTOR_TOKEN, transport=server.transport)
    yield api
    await api.close()


@pytest.fixture
async def pharmacist_api(server):
    api = ApiClient(base_url=BASE_URL, token=PHARMACIST_TOKEN, transport=server.transport)
    yield api
    await api.close()
