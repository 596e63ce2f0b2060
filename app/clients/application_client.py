"""Applicant-side submission flow for scholarship custom forms.

Submitting is two-phase: the text/choice response is stored first, then each
file field's attachments are uploaded and patched into the stored response.
Uploads only start after the application id is known, and run concurrently.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

import httpx

from app.core.config import settings
from app.services.form_definition import parse_form_definition
from app.services.form_fields import FieldDefinition
from app.services.form_response import (
    PendingAttachment,
    assemble_form_response,
    check_required_files,
    group_pending_attachments,
    patch_form_response_files,
)
from app.services.form_schema import FieldValidationError, compile_form_schema, summarize_validation_errors

logger = logging.getLogger("app.uploads")

OUTCOME_REJECTED = "REJECTED"
OUTCOME_SUBMITTED = "SUBMITTED"
OUTCOME_SUBMITTED_INCOMPLETE = "SUBMITTED_INCOMPLETE"

UPLOAD_UPLOADED = "UPLOADED"
UPLOAD_FAILED = "FAILED"


class ApplicationClientError(Exception):
    def __init__(self, message: str, *, status_code: int | None = None, detail: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


@dataclass
class FieldUploadReport:
    field_key: str
    field_label: str
    status: str
    file_urls: list[str] = field(default_factory=list)
    error: str | None = None


@dataclass
class SubmissionOutcome:
    status: str
    application_id: str | None = None
    errors: list[FieldValidationError] = field(default_factory=list)
    messages: list[str] = field(default_factory=list)
    uploads: list[FieldUploadReport] = field(default_factory=list)
    response: list[dict[str, Any]] = field(default_factory=list)

    @property
    def submitted(self) -> bool:
        return self.status in {OUTCOME_SUBMITTED, OUTCOME_SUBMITTED_INCOMPLETE}

    @property
    def failed_uploads(self) -> list[FieldUploadReport]:
        return [report for report in self.uploads if report.status != UPLOAD_UPLOADED]


def upload_request_key(application_id: str, field_key: str, attachments: list[PendingAttachment]) -> str:
    digest = hashlib.sha256()
    digest.update(f"{application_id}:{field_key}".encode("utf-8"))
    for attachment in attachments:
        digest.update(attachment.file_name.encode("utf-8"))
        digest.update(hashlib.sha256(attachment.content).digest())
    return digest.hexdigest()


def _detail_message(payload: Any, default: str) -> str:
    detail = payload.get("detail") if isinstance(payload, Mapping) else None
    if isinstance(detail, Mapping):
        return str(detail.get("message") or default)
    if isinstance(detail, str) and detail.strip():
        return detail
    return default


def _response_str(payload: Mapping[str, Any], name: str, default: str) -> str:
    value = payload.get(name)
    if not isinstance(value, str) or not value:
        raise ApplicationClientError(f"{default}: response has no {name}")
    return value


def _errors_from_detail(payload: Any) -> list[FieldValidationError]:
    detail = payload.get("detail") if isinstance(payload, Mapping) else None
    raw_errors = detail.get("errors") if isinstance(detail, Mapping) else None
    errors: list[FieldValidationError] = []
    for raw in raw_errors or []:
        if isinstance(raw, Mapping) and raw.get("message"):
            errors.append(
                FieldValidationError(
                    key=str(raw.get("key") or ""),
                    label=str(raw.get("label") or ""),
                    message=str(raw["message"]),
                )
            )
    return errors


def _report_or_failure(application_id: str, item: FieldDefinition, result: Any) -> FieldUploadReport:
    # The application row exists by now; an error in one field becomes that field's FAILED report.
    if isinstance(result, FieldUploadReport):
        return result
    if not isinstance(result, Exception):
        raise result
    logger.error(
        "field_upload_crashed application=%s field=%s",
        application_id,
        item.key,
        exc_info=(type(result), result, result.__traceback__),
    )
    return FieldUploadReport(field_key=item.key, field_label=item.label, status=UPLOAD_FAILED, error=str(result))


class ScholarshipApplicationClient:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = float(timeout or settings.CLIENT_TIMEOUT_SECONDS)
        self._transport = transport
        self._http: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "ScholarshipApplicationClient":
        self._http = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self._transport)
        return self

    async def __aexit__(self, *exc_info) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    @property
    def http(self) -> httpx.AsyncClient:
        if self._http is None:
            raise ApplicationClientError("Client is not open; use 'async with'")
        return self._http

    async def _json_or_raise(self, response: httpx.Response, default: str) -> Any:
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if response.status_code >= 400:
            raise ApplicationClientError(
                _detail_message(payload, default),
                status_code=response.status_code,
                detail=payload,
            )
        if not isinstance(payload, Mapping):
            raise ApplicationClientError(f"{default}: unexpected response", status_code=response.status_code)
        return payload

    async def fetch_form_definition(self, scholarship_id: str) -> list[FieldDefinition]:
        try:
            response = await self.http.get(f"/api/scholarships/{scholarship_id}")
        except httpx.HTTPError as exc:
            raise ApplicationClientError(f"Failed to load scholarship: {exc}") from exc
        payload = await self._json_or_raise(response, "Failed to load scholarship")
        return parse_form_definition((payload or {}).get("custom_form_fields"))

    async def submit_response(self, scholarship_id: str, student_id: str, response: list[dict[str, Any]]) -> dict:
        try:
            http_response = await self.http.post(
                "/api/applications",
                json={
                    "scholarship_id": str(scholarship_id),
                    "student_id": str(student_id),
                    "custom_form_response": response,
                },
            )
        except httpx.HTTPError as exc:
            raise ApplicationClientError(f"Failed to submit application: {exc}") from exc
        payload = await self._json_or_raise(http_response, "Failed to submit application")
        application = payload.get("application")
        if not isinstance(application, Mapping) or not application.get("id"):
            raise ApplicationClientError("Failed to submit application: unexpected response", detail=payload)
        return dict(application)

    async def _report_upload_failure(self, application_id: str, item: FieldDefinition, request_key: str, error: str) -> None:
        try:
            await self.http.post(
                f"/api/applications/{application_id}/fields/{item.key}/uploads/fail",
                json={"request_key": request_key, "error": error[:500]},
            )
        except httpx.HTTPError:
            logger.warning("upload_failure_not_recorded application=%s field=%s", application_id, item.key, exc_info=True)

    async def upload_field_files(
        self,
        application_id: str,
        item: FieldDefinition,
        attachments: list[PendingAttachment],
    ) -> FieldUploadReport:
        request_key = upload_request_key(application_id, item.key, attachments)
        base = f"/api/applications/{application_id}/fields/{item.key}/uploads"
        try:
            keys: list[str] = []
            for index, attachment in enumerate(attachments):
                init = await self._json_or_raise(
                    await self.http.post(
                        f"{base}/init",
                        json={
                            "request_key": request_key,
                            "index": index,
                            "file_name": attachment.file_name,
                            "mime_type": attachment.mime_type,
                            "size_bytes": attachment.size_bytes,
                        },
                    ),
                    "Failed to start upload",
                )
                put = await self.http.put(
                    _response_str(init, "presigned_url", "Failed to start upload"),
                    content=attachment.content,
                    headers={"Content-Type": attachment.mime_type},
                )
                if put.status_code >= 400:
                    raise ApplicationClientError(f"Storage rejected {attachment.file_name}", status_code=put.status_code)
                keys.append(_response_str(init, "key", "Failed to start upload"))
            done = await self._json_or_raise(
                await self.http.post(f"{base}/complete", json={"request_key": request_key, "keys": keys}),
                "Failed to complete upload",
            )
        except (ApplicationClientError, httpx.HTTPError) as exc:
            logger.warning("field_upload_failed application=%s field=%s error=%s", application_id, item.key, exc)
            await self._report_upload_failure(application_id, item, request_key, str(exc))
            return FieldUploadReport(field_key=item.key, field_label=item.label, status=UPLOAD_FAILED, error=str(exc))
        return FieldUploadReport(
            field_key=item.key,
            field_label=item.label,
            status=UPLOAD_UPLOADED,
            file_urls=list(done.get("file_urls") or []),
        )

    async def submit_application(
        self,
        scholarship_id: str,
        student_id: str,
        values: Mapping[str, Any],
        attachments: Mapping[str, list[PendingAttachment]] | None = None,
        *,
        fields: list[FieldDefinition] | None = None,
    ) -> SubmissionOutcome:
        if fields is None:
            fields = await self.fetch_form_definition(scholarship_id)

        errors = compile_form_schema(fields).validate(values)
        errors += check_required_files(fields, attachments)
        if errors:
            return SubmissionOutcome(
                status=OUTCOME_REJECTED,
                errors=errors,
                messages=summarize_validation_errors(errors),
            )

        response = assemble_form_response(fields, values)
        try:
            application = await self.submit_response(scholarship_id, student_id, response)
        except ApplicationClientError as exc:
            if exc.status_code != 422:
                raise
            server_errors = _errors_from_detail(exc.detail)
            return SubmissionOutcome(
                status=OUTCOME_REJECTED,
                errors=server_errors,
                messages=summarize_validation_errors(server_errors) or [str(exc)],
            )

        application_id = str(application["id"])
        grouped = group_pending_attachments(fields, attachments)
        upload_fields = [item for item in fields if item.is_file and item.label in grouped]
        results = await asyncio.gather(
            *(self.upload_field_files(application_id, item, grouped[item.label]) for item in upload_fields),
            return_exceptions=True,
        )
        reports = [
            _report_or_failure(application_id, item, result) for item, result in zip(upload_fields, results)
        ]

        by_key = {item.key: item for item in upload_fields}
        for report in reports:
            if report.status == UPLOAD_UPLOADED:
                response = patch_form_response_files(response, by_key[report.field_key], report.file_urls)

        incomplete = any(report.status != UPLOAD_UPLOADED for report in reports)
        outcome = SubmissionOutcome(
            status=OUTCOME_SUBMITTED_INCOMPLETE if incomplete else OUTCOME_SUBMITTED,
            application_id=application_id,
            uploads=reports,
            response=response,
        )
        if incomplete:
            outcome.messages = [
                "Your application was submitted but some files did not upload: "
                + ", ".join(report.field_label for report in outcome.failed_uploads)
            ]
        return outcome


def submit_application_sync(
    base_url: str,
    scholarship_id: str,
    student_id: str,
    values: Mapping[str, Any],
    attachments: Mapping[str, list[PendingAttachment]] | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> SubmissionOutcome:
    async def _run() -> SubmissionOutcome:
        async with ScholarshipApplicationClient(base_url, transport=transport) as client:
            return await client.submit_application(scholarship_id, student_id, values, attachments)

    return asyncio.run(_run())
