"""
Pruebas del endpoint de registro de progreso y de autenticación.
"""
from datetime import datetime, timedelta, timezone

from app.crud.crud_watch_record import watch_records

URL = "/api/v1/video-progress"


def payload(**overrides):
    body = {
        "video_id": "intro-seguridad",
        "percent": 45,
        "full_duration": "00:10:00",
        "current_duration": "00:04:30",
        "session_id": "12",
        "session_name": "Inducción de seguridad",
        "source": "main",
    }
    body.update(overrides)
    return body


class TestAuth:
    def test_login_with_username(self, client, viewer):
        response = client.post("/api/v1/auth/token", data={"username": "viewer", "password": "viewer-pass"})
        assert response.status_code == 200
        assert response.json()["token_type"] == "bearer"

    def test_login_with_email(self, client, viewer):
        response = client.post(
            "/api/v1/auth/token", data={"username": "viewer@example.com", "password": "viewer-pass"}
        )
        assert response.status_code == 200

    def test_token_authenticates_requests(self, client, viewer):
        token = client.post(
            "/api/v1/auth/token", data={"username": "viewer", "password": "viewer-pass"}
        ).json()["access_token"]
        response = client.get(f"{URL}/mine", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200

    def test_wrong_password(self, client, viewer):
        response = client.post("/api/v1/auth/token", data={"username": "viewer", "password": "nope"})
        assert response.status_code == 401

    def test_progress_requires_token(self, client):
        assert client.post(URL, json=payload()).status_code == 401

    def test_invalid_token(self, client):
        response = client.post(URL, json=payload(), headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401


class TestSaveProgress:
    def test_scenario_a_new_record(self, client, content, viewer, viewer_headers, db):
        content.dates["12"] = datetime.now(timezone.utc) - timedelta(days=1)
        response = client.post(URL, json=payload(), headers=viewer_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["action"] == "insert"
        assert body["percent"] == 45
        assert body["status"] == 1
        assert body["status_label"] == "In Progress"

        record = watch_records.get(db, viewer.id, "intro-seguridad", "12")
        assert record.percent == 45
        assert record.session_name == "Inducción de seguridad"
        assert record.enrolment_date is not None

    def test_scenario_b_completion_is_overdue(self, client, content, viewer, viewer_headers, make_record, db):
        content.dates["12"] = datetime.now(timezone.utc) - timedelta(days=3)
        make_record(viewer, video_id="intro-seguridad", percent=90, status=1)

        body = client.post(URL, json=payload(percent=100), headers=viewer_headers).json()

        assert body["action"] == "update"
        assert body["status_label"] == "Overdue"
        db.expire_all()
        record = watch_records.get(db, viewer.id, "intro-seguridad", "12")
        assert (record.percent, record.status) == (100, 3)

    def test_scenario_c_stale_sample(self, client, viewer, viewer_headers, make_record, db):
        make_record(viewer, video_id="intro-seguridad", percent=50, status=1)

        response = client.post(URL, json=payload(percent=30), headers=viewer_headers)

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert response.json()["action"] == "stale"
        db.expire_all()
        assert watch_records.get(db, viewer.id, "intro-seguridad", "12").percent == 50

    def test_padded_session_id_is_the_same_session(self, client, viewer_headers, db):
        client.post(URL, json=payload(percent=20), headers=viewer_headers)
        body = client.post(URL, json=payload(percent=70, session_id=" 12 "), headers=viewer_headers).json()

        assert body["action"] == "update"
        assert watch_records.count(db) == 1

    def test_percent_is_clamped(self, client, viewer_headers):
        body = client.post(URL, json=payload(percent=130.7), headers=viewer_headers).json()
        assert body["percent"] == 100
        assert body["status_label"] == "Completed"

    def test_video_id_derived_from_source(self, client, viewer, viewer_headers, db):
        body = client.post(
            URL, json=payload(video_id=None, video_src="https://cdn.example.com/a"), headers=viewer_headers
        ).json()
        assert body["video_id"] == "a_1554"
        assert watch_records.get(db, viewer.id, "a_1554", "12") is not None

    def test_missing_video_identity(self, client, viewer_headers):
        response = client.post(URL, json=payload(video_id=None), headers=viewer_headers)
        assert response.status_code == 400
        assert "video_id" in response.json()["detail"]

    def test_missing_session(self, client, viewer_headers):
        response = client.post(URL, json=payload(session_id=None), headers=viewer_headers)
        assert response.status_code == 400
        assert "session_id" in response.json()["detail"]

    def test_blank_session_name(self, client, viewer_headers):
        response = client.post(URL, json=payload(session_name="  "), headers=viewer_headers)
        assert response.status_code == 400

    def test_malformed_duration(self, client, viewer_headers):
        response = client.post(URL, json=payload(current_duration="4:30"), headers=viewer_headers)
        assert response.status_code == 422

    def test_unknown_source(self, client, viewer_headers):
        response = client.post(URL, json=payload(source="popup"), headers=viewer_headers)
        assert response.status_code == 422

    def test_request_id_header(self, client, viewer_headers):
        response = client.post(URL, json=payload(), headers=viewer_headers)
        assert response.headers["X-Request-ID"]


class TestMyProgress:
    def test_lists_only_own_records(self, client, viewer, admin, viewer_headers, make_record):
        make_record(viewer, video_id="mine")
        make_record(admin, video_id="theirs")

        body = client.get(f"{URL}/mine", headers=viewer_headers).json()

        assert [item["video_id"] for item in body] == ["mine"]
        assert body[0]["user_login"] == "viewer"
        assert body[0]["status_label"] == "Not Started"
