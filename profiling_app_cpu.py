import cProfile
import os

os.environ.setdefault("TESTING", "1")

from fastapi.testclient import TestClient

from directory_service.main import app
from directory_service.store import InMemoryRoomStore

client = TestClient(app)

BLOCKS = ["Block A", "Block B", "Block C", "Block D"]
DEPARTMENTS = [
    "Computer Science",
    "Electronics",
    "Mechanical Engineering",
    "Civil Engineering",
    "Physics",
]


def reset_store():
    app.state.store = InMemoryRoomStore()


def admin_headers() -> dict:
    token_resp = client.post(
        "/api/auth/admin-login",
        json={"adminId": "admin1", "password": "admin123"},
    )
    token_resp.raise_for_status()
    return {"Authorization": f"Bearer {token_resp.json()['token']}"}


def scenario_rooms():
    """
    Fill the directory with a few thousand rooms, then run a mix of searches.
    """
    headers = admin_headers()
    for i in range(3000):
        r = client.post(
            "/api/rooms",
            json={
                "blockName": BLOCKS[i % len(BLOCKS)],
                "floorNumber": i % 10,
                "roomNumber": f"{i % 10}{i:04d}",
                "departmentName": DEPARTMENTS[i % len(DEPARTMENTS)],
                "capacity": 20 + i % 30,
            },
            headers=headers,
        )
        if r.status_code != 201:
            raise RuntimeError(f"Unexpected status on create: {r.status_code}")

    for i in range(200):
        params = {"departmentName": "eng", "floorNumber": str(i % 10)}
        client.get("/api/rooms/search", params=params).raise_for_status()
        client.get("/api/rooms/search", params={"roomNumber": f"{i:02d}"}).raise_for_status()
    client.get("/api/rooms").raise_for_status()


def main():
    reset_store()
    scenario_rooms()


if __name__ == "__main__":
    # run cProfile and sort by cumulative time
    cProfile.run("main()", sort="cumtime")
