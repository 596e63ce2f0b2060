import os
import unittest

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("S3_ENDPOINT", "http://localhost:9000")
os.environ.setdefault("S3_ACCESS_KEY", "test")
os.environ.setdefault("S3_SECRET_KEY", "test")
os.environ.setdefault("S3_BUCKET", "test")

from app.services.form_fields import FieldDefinition
from app.services.form_response import (
    PendingAttachment,
    assemble_form_response,
    check_required_files,
    group_pending_attachments,
    patch_form_response_files,
    response_values_by_label,
)


FIELDS = [
    FieldDefinition(type="text", label="Full Name", required=True, key="f_name"),
    FieldDefinition(type="checkbox", label="Interests", options=["Math", "Art"], key="f_interests"),
    FieldDefinition(type="number", label="GWA", key="f_gwa"),
    FieldDefinition(type="file", label="Transcript", required=True, key="f_transcript"),
    FieldDefinition(type="file", label="Portfolio", key="f_portfolio"),
]


def _pdf(name: str = "grades.pdf") -> PendingAttachment:
    return PendingAttachment(file_name=name, mime_type="application/pdf", content=b"%PDF-1.4")


class AssembleFormResponseTests(unittest.TestCase):
    def test_entries_follow_definition_order_with_file_placeholders(self):
        response = assemble_form_response(
            FIELDS,
            {"GWA": 1.5, "Full Name": "Ana Cruz", "Interests": ("Art",), "Extra": "ignored"},
        )
        self.assertEqual(
            response,
            [
                {"key": "f_name", "label": "Full Name", "value": "Ana Cruz"},
                {"key": "f_interests", "label": "Interests", "value": ["Art"]},
                {"key": "f_gwa", "label": "GWA", "value": "1.5"},
                {"key": "f_transcript", "label": "Transcript", "value": None},
                {"key": "f_portfolio", "label": "Portfolio", "value": None},
            ],
        )

    def test_missing_values_use_type_empty_value(self):
        response = assemble_form_response(FIELDS, None)
        self.assertEqual([entry["value"] for entry in response], ["", [], "", None, None])

    def test_boolean_values_are_stringified(self):
        fields = [FieldDefinition(type="text", label="Agree", key="f_agree")]
        self.assertEqual(assemble_form_response(fields, {"Agree": True})[0]["value"], "true")


class AttachmentTests(unittest.TestCase):
    def test_missing_required_file_is_reported(self):
        errors = check_required_files(FIELDS, {})
        self.assertEqual([e.message for e in errors], ["Transcript is required"])
        self.assertEqual(errors[0].key, "f_transcript")

    def test_required_file_satisfied(self):
        self.assertEqual(check_required_files(FIELDS, {"Transcript": [_pdf()]}), [])

    def test_grouping_ignores_non_file_fields_and_empty_lists(self):
        grouped = group_pending_attachments(
            FIELDS,
            {"Transcript": [_pdf(), "not an attachment"], "Portfolio": [], "Full Name": [_pdf()]},
        )
        self.assertEqual(list(grouped), ["Transcript"])
        self.assertEqual(len(grouped["Transcript"]), 1)
        self.assertEqual(grouped["Transcript"][0].size_bytes, 8)


class PatchFormResponseFilesTests(unittest.TestCase):
    def test_patch_matches_by_key(self):
        response = assemble_form_response(FIELDS, {"Full Name": "Ana"})
        urls = ["https://files.local/a.pdf", "https://files.local/b.pdf"]
        patched = patch_form_response_files(response, FIELDS[3], urls)
        self.assertEqual(patched[3]["value"], urls)
        self.assertIsNone(response[3]["value"])
        self.assertIsNone(patched[4]["value"])

    def test_patch_falls_back_to_label_for_legacy_entries(self):
        response = [{"label": "Transcript", "value": None}]
        patched = patch_form_response_files(response, FIELDS[3], ["https://files.local/a.pdf"])
        self.assertEqual(patched, [{"label": "Transcript", "value": ["https://files.local/a.pdf"]}])

    def test_patch_key_wins_over_renamed_label(self):
        response = [{"key": "f_transcript", "label": "Old Transcript", "value": None}]
        patched = patch_form_response_files(response, FIELDS[3], ["https://files.local/a.pdf"])
        self.assertEqual(patched[0]["value"], ["https://files.local/a.pdf"])

    def test_patch_without_matching_entry_raises(self):
        with self.assertRaises(LookupError):
            patch_form_response_files([{"key": "f_name", "label": "Full Name", "value": "Ana"}], FIELDS[3], [])

    def test_values_by_label(self):
        response = assemble_form_response(FIELDS, {"Full Name": "Ana"})
        self.assertEqual(response_values_by_label(response)["Full Name"], "Ana")
        self.assertEqual(response_values_by_label([None, {"value": 1}]), {})


if __name__ == "__main__":
    unittest.main()
