# backend/client.py
import os
import uuid

import requests

API = os.getenv("API_URL", "http://localhost:8000/api/v1")

def register() -> str:
    payload = {
        "name": "Sam Rivera",
        "email": f"sam-{uuid.uuid4().hex[:8]}@acme.io",
        "password": "Str0ng!Pass",
        "contacts": [{"shortName": "Ali", "fullName": "Ali Benali"}],
    }
    r = requests.post(f"{API}/auth/register", json=payload)
    print("Register:", r.status_code, r.json())
    r.raise_for_status()
    return r.json()["token"]

def test_health():
    r = requests.get(f"{API}/health")
    print("Health:", r.status_code, r.json())

def test_parse(headers):
    text = "Ali should send the invoice tomorrow, urgent. Finish the quarterly report by Friday noon."
    r = requests.post(f"{API}/tasks/parse", json={"text": text}, headers=headers)
    print("Parse:", r.status_code, r.json())

def test_parse_and_create(headers):
    files = {"file": ("notes.txt", b"Book flights for the offsite next Monday, low priority.", "text/plain")}
    r = requests.post(f"{API}/tasks/parse-and-create", files=files, headers=headers)
    print("Parse & Save:", r.status_code, r.json())

def test_create_task(headers):
    payload = {"tasks": [{
        "taskName": "Finish FastAPI client",
        "assignee": "Sam Rivera",
        "dueDate": "2030-01-01T12:00:00Z",
        "priority": "P2",
    }]}
    r = requests.post(f"{API}/tasks", json=payload, headers=headers)
    print("Create task:", r.status_code, r.json())

def test_list_tasks(headers):
    r = requests.get(f"{API}/tasks", params={"sortBy": "priority"}, headers=headers)
    print("List tasks:", r.status_code, r.json())

def test_stats(headers):
    r = requests.get(f"{API}/tasks/stats", headers=headers)
    print("Stats:", r.status_code, r.json())

if __name__ == "__main__":
    print("--- Testing FastAPI backend ---")
    test_health()
    auth = {"Authorization": f"Bearer {register()}"}
    test_parse(auth)
    test_parse_and_create(auth)
    test_create_task(auth)
    test_list_tasks(auth)
    test_stats(auth)
