"""Tests for backup export and import."""
import io

from openpyxl import Workbook, load_workbook

from birthday_reminder.services.backup_service import EXCEL_HEADERS
from tests.conftest import create_test_birthday, create_test_user


def list_birthdays(client, user_id):
    return client.get("/api/birthdays/", params={"user_id": user_id}).json()


class TestExport:
    def test_json_shape(self, client):
        user = create_test_user(client)
        birthday = create_test_birthday(client, user["user_id"], notification_times=["09:00"])
        resp = client.get("/api/backup/export/json", params={"user_id": user["user_id"]})
        assert resp.status_code == 200
        data = resp.json()
        assert data["version"] == "1.0"
        assert data["exportDate"].startswith("2025-05-15")
        assert data["birthdays"][0]["id"] == birthday["id"]
        assert data["birthdays"][0]["birth_date"] == "1990-05-15"
        assert data["birthdays"][0]["notification_times"] == ["09:00:00"]

    def test_excel(self, client):
        user = create_test_user(client)
        create_test_birthday(
            client, user["user_id"], phone="+48 123", notification_time="09:30",
            notification_times=["08:00", "20:15"], timezone="Europe/Warsaw",
        )
        resp = client.get("/api/backup/export/excel", params={"user_id": user["user_id"]})
        assert resp.status_code == 200
        assert "attachment" in resp.headers["content-disposition"]
        rows = list(load_workbook(io.BytesIO(resp.content)).active.iter_rows(values_only=True))
        assert list(rows[0]) == EXCEL_HEADERS
        assert rows[1][:4] == ("Ivanova", "Anna", "15.05.1990", "+48 123")
        assert rows[1][5:] == ("09:30", "08:00, 20:15", "Europe/Warsaw", "Yes")

    def test_pdf(self, client):
        user = create_test_user(client)
        create_test_birthday(client, user["user_id"])
        resp = client.get("/api/backup/export/pdf", params={"user_id": user["user_id"]})
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "application/pdf"
        assert resp.content.startswith(b"%PDF")

    def test_unknown_user(self, client):
        assert client.get("/api/backup/export/json", params={"user_id": "missing"}).status_code == 404


class TestImport:
    def test_json_restore_updates_and_adds(self, client):
        user = create_test_user(client)
        existing = create_test_birthday(client, user["user_id"])
        backup = client.get("/api/backup/export/json", params={"user_id": user["user_id"]}).json()
        backup["birthdays"][0]["notes"] = "restored"
        backup["birthdays"].append({
            "first_name": "New",
            "last_name": "Person",
            "birth_date": "2001-07-07",
            "notification_times": ["8:00"],
        })

        resp = client.post("/api/backup/import/json", params={"user_id": user["user_id"]}, json=backup)
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "imported": 2}

        rows = {b["id"]: b for b in list_birthdays(client, user["user_id"])}
        assert len(rows) == 2
        assert rows[existing["id"]]["notes"] == "restored"
        added = [b for b in rows.values() if b["first_name"] == "New"][0]
        assert added["notification_times"] == ["08:00:00"]

    def test_json_ids_of_other_users_are_new_rows(self, client):
        alice = create_test_user(client, first_name="Alice")
        bob = create_test_user(client, first_name="Bob")
        create_test_birthday(client, alice["user_id"])
        backup = client.get("/api/backup/export/json", params={"user_id": alice["user_id"]}).json()
        client.post("/api/backup/import/json", params={"user_id": bob["user_id"]}, json=backup)
        assert len(list_birthdays(client, alice["user_id"])) == 1
        assert len(list_birthdays(client, bob["user_id"])) == 1

    def test_json_invalid_row(self, client):
        user = create_test_user(client)
        backup = {"birthdays": [{"first_name": "X", "last_name": "Y", "birth_date": "nope"}]}
        resp = client.post("/api/backup/import/json", params={"user_id": user["user_id"]}, json=backup)
        assert resp.status_code == 400
        assert resp.json()["detail"].startswith("Row 1:")

    def test_json_without_list(self, client):
        user = create_test_user(client)
        resp = client.post("/api/backup/import/json", params={"user_id": user["user_id"]}, json={"version": "1.0"})
        assert resp.status_code == 400

    def test_excel_round_trip(self, client):
        user = create_test_user(client)
        create_test_birthday(
            client, user["user_id"], notification_time="09:30",
            notification_times=["08:00", "20:15"], timezone="Asia/Tokyo",
        )
        exported = client.get("/api/backup/export/excel", params={"user_id": user["user_id"]}).content

        other = create_test_user(client, first_name="Other")
        resp = client.post(
            "/api/backup/import/excel",
            params={"user_id": other["user_id"]},
            files={"file": ("birthdays.xlsx", exported, "application/octet-stream")},
        )
        assert resp.status_code == 200
        assert resp.json()["imported"] == 1
        row = list_birthdays(client, other["user_id"])[0]
        assert row["birth_date"] == "1990-05-15"
        assert row["notification_time"] == "09:30:00"
        assert row["notification_times"] == ["08:00:00", "20:15:00"]
        assert row["timezone"] == "Asia/Tokyo"
        assert row["notification_enabled"] is True

    def test_excel_with_foreign_layout(self, client):
        user = create_test_user(client)
        wb = Workbook()
        wb.active.append(["Name", "Date"])
        wb.active.append(["Anna", "15.05.1990"])
        buf = io.BytesIO()
        wb.save(buf)
        resp = client.post(
            "/api/backup/import/excel",
            params={"user_id": user["user_id"]},
            files={"file": ("other.xlsx", buf.getvalue(), "application/octet-stream")},
        )
        assert resp.status_code == 400

    def test_unreadable_excel(self, client):
        user = create_test_user(client)
        resp = client.post(
            "/api/backup/import/excel",
            params={"user_id": user["user_id"]},
            files={"file": ("broken.xlsx", b"not a spreadsheet", "application/octet-stream")},
        )
        assert resp.status_code == 400
