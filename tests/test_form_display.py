import os
import unittest

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("S3_ENDPOINT", "http://localhost:9000")
os.environ.setdefault("S3_ACCESS_KEY", "test")
os.environ.setdefault("S3_SECRET_KEY", "test")
os.environ.setdefault("S3_BUCKET", "test")

from app.services.form_display import (
    DISPLAY_FILES,
    DISPLAY_LIST,
    DISPLAY_SCALAR,
    EMPTY_DISPLAY,
    file_name_from_url,
    form_completeness,
    interpret_form_response,
    is_file_reference_list,
)
from app.services.form_fields import FieldDefinition


class InterpretFormResponseTests(unittest.TestCase):
    def test_file_list_is_shown_as_named_links(self):
        entries = interpret_form_response(
            [
                {
                    "label": "Transcript",
                    "value": [
                        "https://s3.local/bucket/applications/a/f/k-0-grades%20final.pdf?X-Amz-Signature=abc",
                        "https://s3.local/",
                    ],
                }
            ]
        )
        self.assertEqual(entries[0]["kind"], DISPLAY_FILES)
        self.assertEqual([f["name"] for f in entries[0]["files"]], ["k-0-grades final.pdf", "File 2"])
        self.assertEqual(entries[0]["text"], "k-0-grades final.pdf, File 2")

    def test_list_and_scalar_values(self):
        entries = interpret_form_response(
            [
                {"label": "Interests", "value": ["Math", "Art"]},
                {"label": "Clubs", "value": []},
                {"label": "Name", "value": "Ana"},
                {"label": "Transcript", "value": None},
                {"label": "Notes", "value": ""},
                "junk",
            ]
        )
        self.assertEqual(
            [(e["kind"], e["text"]) for e in entries],
            [
                (DISPLAY_LIST, "Math, Art"),
                (DISPLAY_LIST, EMPTY_DISPLAY),
                (DISPLAY_SCALAR, "Ana"),
                (DISPLAY_SCALAR, EMPTY_DISPLAY),
                (DISPLAY_SCALAR, EMPTY_DISPLAY),
            ],
        )

    def test_definition_adds_type_labels(self):
        fields = [FieldDefinition(type="dropdown", label="Year", options=["1st", "2nd"], key="f_year")]
        entries = interpret_form_response([{"key": "f_year", "label": "Year", "value": "1st"}], fields)
        self.assertEqual(entries[0]["type"], "dropdown")
        self.assertEqual(entries[0]["type_label"], "Dropdown (2 options)")

    def test_non_url_strings_are_not_files(self):
        self.assertFalse(is_file_reference_list(["Math"]))
        self.assertFalse(is_file_reference_list([]))
        self.assertTrue(is_file_reference_list(["http://x/y.pdf"]))
        self.assertEqual(file_name_from_url("", "File 1"), "File 1")


class FormCompletenessTests(unittest.TestCase):
    FIELDS = [
        FieldDefinition(type="text", label="Name", key="f_name"),
        FieldDefinition(type="checkbox", label="Pick", options=["A"], key="f_pick"),
        FieldDefinition(type="file", label="Transcript", key="f_transcript"),
        FieldDefinition(type="number", label="GWA", key="f_gwa"),
    ]

    def test_no_fields_is_complete(self):
        self.assertEqual(form_completeness([], []), 1.0)

    def test_counts_answered_fields_case_insensitively(self):
        response = [
            {"label": "name", "value": "Ana"},
            {"label": "Pick", "value": []},
            {"label": "Transcript", "value": ["https://s3.local/a.pdf"]},
            {"label": "GWA", "value": " "},
        ]
        self.assertEqual(form_completeness(self.FIELDS, response), 0.5)


if __name__ == "__main__":
    unittest.main()
