import json
import os
import unittest
from uuid import UUID, uuid4

from fastapi.testclient import TestClient
from sqlalchemy import create_engine, delete
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("S3_ENDPOINT", "http://localhost:9000")
os.environ.setdefault("S3_ACCESS_KEY", "test")
os.environ.setdefault("S3_SECRET_KEY", "test")
os.environ.setdefault("S3_BUCKET", "test")

from app.db.session import get_db
from app.main import app
from app.models.application_field_upload import ApplicationFieldUpload
from app.models.scholarship import Scholarship
from app.models.scholarship_application import ScholarshipApplication
from app.services.form_fields import legacy_field_key


FORM = [
    {"type": "text", "label": "Full Name", "required": True},
    {"type": "dropdown", "label": "Year", "required": True, "options": ["1st", "2nd", "3rd", "4th"]},
    {"type": "file", "label": "Transcript", "required": True},
]


class ScholarshipApiTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.engine = create_engine(
            "sqlite+pysqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        cls.SessionLocal = sessionmaker(bind=cls.engine, autocommit=False, autoflush=False)
        Scholarship.__table__.create(bind=cls.engine)
        ScholarshipApplication.__table__.create(bind=cls.engine)
        ApplicationFieldUpload.__table__.create(bind=cls.engine)

    @classmethod
    def tearDownClass(cls):
        ApplicationFieldUpload.__table__.drop(bind=cls.engine)
        ScholarshipApplication.__table__.drop(bind=cls.engine)
        Scholarship.__table__.drop(bind=cls.engine)
        cls.engine.dispose()

    def setUp(self):
        with self.SessionLocal() as db:
            db.execute(delete(ApplicationFieldUpload))
            db.execute(delete(ScholarshipApplication))
            db.execute(delete(Scholarship))
            db.commit()

        def override_get_db():
            db = self.SessionLocal()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        self.client = TestClient(app)

    def tearDown(self):
        self.client.close()
        app.dependency_overrides.clear()

    def _create(self, custom_form_fields=FORM, **extra) -> dict:
        response = self.client.post(
            "/api/scholarships",
            json={"title": "STEM Grant", "custom_form_fields": custom_form_fields, **extra},
        )
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()

    def test_create_stores_canonical_definition_with_keys(self):
        body = self._create()
        fields = body["custom_form_fields"]
        self.assertEqual([f["label"] for f in fields], ["Full Name", "Year", "Transcript"])
        self.assertTrue(all(f["key"].startswith("f_") for f in fields))
        self.assertEqual(fields[1]["options"], ["1st", "2nd", "3rd", "4th"])
        self.assertNotIn("options", fields[0])
        self.assertEqual(body["status"], "active")

        with self.SessionLocal() as db:
            row = db.get(Scholarship, UUID(body["id"]))
            self.assertEqual(row.custom_form_fields, fields)

    def test_create_accepts_json_string_and_wrapped_shapes(self):
        as_string = self._create(json.dumps(FORM))
        wrapped = self._create({"fields": FORM})
        self.assertEqual(len(as_string["custom_form_fields"]), 3)
        self.assertEqual(len(wrapped["custom_form_fields"]), 3)

    def test_create_rejects_invalid_definition_with_all_problems(self):
        response = self.client.post(
            "/api/scholarships",
            json={
                "title": "Broken",
                "custom_form_fields": [
                    {"type": "dropdown", "label": "Year", "options": []},
                    {"type": "text", "label": "Year"},
                    {"type": "slider", "label": "Level"},
                ],
            },
        )
        self.assertEqual(response.status_code, 400)
        detail = response.json()["detail"]
        self.assertEqual(detail["message"], "Invalid custom_form_fields")
        self.assertEqual(
            detail["errors"],
            ['dropdown field "Year" must have at least one option', "Invalid field type: slider"],
        )

    def test_get_reads_legacy_stored_shapes(self):
        with self.SessionLocal() as db:
            row = Scholarship(
                title="Legacy",
                custom_form_fields='[{"type": "text", "label": "Full Name", "required": "true"}]',
            )
            db.add(row)
            db.commit()
            scholarship_id = str(row.id)

        response = self.client.get(f"/api/scholarships/{scholarship_id}")
        self.assertEqual(response.status_code, 200)
        fields = response.json()["custom_form_fields"]
        self.assertEqual(fields, [{"key": legacy_field_key("Full Name"), "type": "text", "label": "Full Name", "required": True}])

    def test_get_unknown_scholarship_is_404(self):
        response = self.client.get(f"/api/scholarships/{uuid4()}")
        self.assertEqual(response.status_code, 404)

    def test_form_endpoint_returns_controls(self):
        body = self._create()
        response = self.client.get(f"/api/scholarships/{body['id']}/form")
        self.assertEqual(response.status_code, 200)
        controls = response.json()["controls"]
        self.assertEqual([c["tag"] for c in controls], ["text-input", "select", "file-picker"])
        self.assertEqual(controls[1]["type_label"], "Dropdown (4 options)")

    def test_form_endpoint_reports_misconfigured_stored_form(self):
        with self.SessionLocal() as db:
            row = Scholarship(title="Old", custom_form_fields=[{"type": "checkbox", "label": "Pick", "options": []}])
            db.add(row)
            db.commit()
            scholarship_id = str(row.id)

        response = self.client.get(f"/api/scholarships/{scholarship_id}/form")
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["detail"]["message"], "Scholarship form is misconfigured")

    def test_patch_updates_definition_before_any_application(self):
        body = self._create()
        response = self.client.patch(
            f"/api/scholarships/{body['id']}",
            json={"custom_form_fields": [{"type": "email", "label": "Email", "required": True}], "status": "closed"},
        )
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual([f["label"] for f in response.json()["custom_form_fields"]], ["Email"])
        self.assertEqual(response.json()["status"], "closed")

    def test_patch_definition_is_frozen_once_students_applied(self):
        body = self._create()
        with self.SessionLocal() as db:
            db.add(
                ScholarshipApplication(
                    scholarship_id=UUID(body["id"]),
                    student_id=uuid4(),
                    custom_form_response=[],
                )
            )
            db.commit()

        response = self.client.patch(
            f"/api/scholarships/{body['id']}",
            json={"custom_form_fields": [{"type": "text", "label": "Other"}]},
        )
        self.assertEqual(response.status_code, 409)

        title_only = self.client.patch(f"/api/scholarships/{body['id']}", json={"title": "STEM Grant 2026"})
        self.assertEqual(title_only.status_code, 200)
        self.assertEqual(title_only.json()["title"], "STEM Grant 2026")

    def test_patch_rejects_empty_and_null_payloads(self):
        body = self._create()
        self.assertEqual(self.client.patch(f"/api/scholarships/{body['id']}", json={}).status_code, 400)
        null_fields = self.client.patch(f"/api/scholarships/{body['id']}", json={"custom_form_fields": None})
        self.assertEqual(null_fields.status_code, 400)


if __name__ == "__main__":
    unittest.main()
