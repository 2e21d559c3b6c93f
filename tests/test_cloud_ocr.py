"""Tests for the OCR.space cloud OCR client."""

import httpx
import pytest

from resume_text.errors import (
    OCRTimeoutError,
    ProcessingError,
    ServiceUnavailableError,
    SizeExceededError,
)
from resume_text.ocr.cloud_ocr import OCRSpaceClient
from resume_text.utils.config import CloudOCRConfig


def _client(handler, **overrides) -> OCRSpaceClient:
    config = CloudOCRConfig(api_key="test-key", **overrides)
    return OCRSpaceClient(config, transport=httpx.MockTransport(handler))


def _json(payload: dict, status: int = 200):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json=payload)

    return handler


class TestOCRSpaceClient:
    """Tests for OCRSpaceClient.extract_text."""

    def test_success_joins_regions(self) -> None:
        client = _client(
            _json(
                {
                    "IsErroredOnProcessing": False,
                    "ParsedResults": [
                        {"ParsedText": "  Jane Doe\r\n"},
                        {"ParsedText": "Software Engineer  "},
                    ],
                }
            )
        )
        assert client.extract_text(b"%PDF-1.4") == "Jane Doe\r\n\nSoftware Engineer"

    def test_request_fields(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"ParsedResults": [{"ParsedText": "ok"}]})

        client = _client(handler, url="https://ocr.example.test/parse")
        client.extract_text(b"%PDF-data", filename="cv.pdf")

        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == "https://ocr.example.test/parse"
        assert request.headers["content-type"].startswith("multipart/form-data")
        body = request.read()
        assert b'name="apikey"' in body
        assert b"test-key" in body
        assert b'name="OCREngine"' in body
        assert b'name="language"' in body
        assert b'filename="cv.pdf"' in body
        assert b"%PDF-data" in body

    def test_http_error_status(self) -> None:
        client = _client(_json({}, status=500))
        with pytest.raises(ServiceUnavailableError, match="HTTP 500"):
            client.extract_text(b"data")

    def test_processing_error_list_message(self) -> None:
        client = _client(
            _json(
                {
                    "IsErroredOnProcessing": True,
                    "ErrorMessage": ["File failed validation", "Bad PDF"],
                }
            )
        )
        with pytest.raises(ProcessingError, match="File failed validation, Bad PDF"):
            client.extract_text(b"data")

    def test_processing_error_without_message(self) -> None:
        client = _client(_json({"IsErroredOnProcessing": True}))
        with pytest.raises(ProcessingError, match="OCR processing error"):
            client.extract_text(b"data")

    def test_empty_text(self) -> None:
        client = _client(_json({"ParsedResults": [{"ParsedText": "   "}]}))
        with pytest.raises(ProcessingError, match="empty text"):
            client.extract_text(b"data")

    def test_non_json_body(self) -> None:
        client = _client(lambda request: httpx.Response(200, text="<html>oops</html>"))
        with pytest.raises(ServiceUnavailableError, match="non-JSON"):
            client.extract_text(b"data")

    def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(OCRTimeoutError):
            _client(handler).extract_text(b"data")

    def test_network_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ServiceUnavailableError):
            _client(handler).extract_text(b"data")

    def test_missing_api_key(self) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={})

        client = OCRSpaceClient(
            CloudOCRConfig(api_key=None), transport=httpx.MockTransport(handler)
        )
        assert client.configured is False
        with pytest.raises(ServiceUnavailableError, match="OCR_SPACE_API_KEY"):
            client.extract_text(b"data")
        assert calls == []

    def test_size_limit_is_checked_before_sending(self) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={"ParsedResults": [{"ParsedText": "x"}]})

        client = _client(handler, max_bytes=100)

        with pytest.raises(SizeExceededError) as exc_info:
            client.extract_text(b"x" * 101)
        assert exc_info.value.size == 101
        assert exc_info.value.limit == 100
        assert calls == []

        assert client.extract_text(b"x" * 100) == "x"
        assert len(calls) == 1
