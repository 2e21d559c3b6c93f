"""Tests for the tiered PDF extraction coordinator."""

from unittest.mock import MagicMock, patch

import httpx
import numpy as np
import pytest
from conftest import build_pdf, image_xobject, text_content

from resume_text.errors import (
    EmptyResultError,
    LocalOCRUnavailableError,
    OCRTimeoutError,
    ServiceUnavailableError,
)
from resume_text.ocr.cloud_ocr import OCRSpaceClient
from resume_text.ocr.document_processor import (
    SCANNED_PDF_MESSAGE,
    Document,
    DocumentProcessor,
    PageText,
    TierOutcome,
)
from resume_text.ocr.surface import CapturedRaster
from resume_text.ocr.text_layer import TextLayerResult
from resume_text.utils.config import AppConfig, CloudOCRConfig, OCRConfig

WORKER = "resume_text.ocr.document_processor.TesseractWorker"


def _pdf_document(content: bytes, name: str = "resume.pdf") -> Document:
    return Document(content, "application/pdf", name)


@pytest.fixture
def mixed_pdf(rgb_pixels: np.ndarray) -> bytes:
    """Page 1 carries a text layer, page 2 is a scanned image."""
    scan = image_xobject(3, 2, rgb_pixels.tobytes())
    return build_pdf(
        [
            (text_content("Experience Engineer"), {}),
            (b"q 200 0 0 200 0 0 cm /Im1 Do Q", {"Im1": scan}),
        ]
    )


@pytest.fixture
def cloud_config(app_config: AppConfig) -> AppConfig:
    """Configuration with a cloud OCR key set."""
    return app_config.model_copy(
        update={"cloud_ocr": CloudOCRConfig(api_key="test-key")}
    )


class TestPageText:
    """Tests for per-page merging."""

    def test_longer_text_replaces(self) -> None:
        page = PageText(1, "ab", "text_layer")
        assert page.offer("  abc  ", "local_ocr") is True
        assert page.text == "abc"
        assert page.source == "local_ocr"

    def test_equal_or_shorter_text_is_ignored(self) -> None:
        page = PageText(1, "abc", "text_layer")
        assert page.offer("xyz", "local_ocr") is False
        assert page.offer("", "local_ocr") is False
        assert page.text == "abc"
        assert page.source == "text_layer"


class TestTierChain:
    """Tests for tier order and short-circuiting."""

    def test_tier_order(self, app_config: AppConfig) -> None:
        names = [name for name, _ in DocumentProcessor(app_config).tiers()]
        assert names == ["cloud_ocr", "text_layer", "local_ocr"]

    def test_cloud_success_short_circuits(
        self, cloud_config: AppConfig, text_pdf: bytes
    ) -> None:
        processor = DocumentProcessor(cloud_config)
        with (
            patch.object(
                processor.cloud_client, "extract_text", return_value="Jane Doe, Engineer"
            ),
            patch.object(processor.text_layer, "extract") as text_layer,
            patch(WORKER) as worker_cls,
        ):
            result = processor.process(_pdf_document(text_pdf))

        assert result.text == "Jane Doe, Engineer"
        assert result.method == "cloud_ocr"
        text_layer.assert_not_called()
        worker_cls.assert_not_called()

    def test_short_cloud_text_falls_through(
        self, cloud_config: AppConfig, text_pdf: bytes
    ) -> None:
        processor = DocumentProcessor(cloud_config)
        with (
            patch.object(processor.cloud_client, "extract_text", return_value="Jane"),
            patch(WORKER) as worker_cls,
        ):
            worker_cls.return_value.start.side_effect = LocalOCRUnavailableError("none")
            result = processor.process(_pdf_document(text_pdf))

        assert result.method == "text_layer"
        assert [o.tier for o in result.outcomes] == ["cloud_ocr", "text_layer", "local_ocr"]

    def test_sufficient_text_layer_skips_local_ocr(
        self, cloud_config: AppConfig
    ) -> None:
        pdf = build_pdf([(text_content("Experience Senior Engineer"), {})])
        processor = DocumentProcessor(cloud_config)
        with (
            patch.object(
                processor.cloud_client,
                "extract_text",
                side_effect=ServiceUnavailableError("down"),
            ),
            patch(WORKER) as worker_cls,
        ):
            result = processor.process(_pdf_document(pdf))

        assert result.text == "Experience Senior Engineer"
        assert result.method == "text_layer"
        worker_cls.assert_not_called()

    def test_unconfigured_cloud_is_skipped(self, app_config: AppConfig) -> None:
        pdf = build_pdf([(text_content("Experience Senior Engineer"), {})])
        processor = DocumentProcessor(app_config)
        with patch.object(processor.cloud_client, "extract_text") as cloud:
            result = processor.process(_pdf_document(pdf))

        cloud.assert_not_called()
        assert result.outcomes[0] == TierOutcome("cloud_ocr")

    def test_oversize_document_makes_no_cloud_request(
        self, text_pdf: bytes
    ) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={"ParsedResults": [{"ParsedText": "x" * 50}]})

        config = AppConfig(
            cloud_ocr=CloudOCRConfig(api_key="test-key", max_bytes=len(text_pdf) - 1)
        )
        processor = DocumentProcessor(config)
        processor.cloud_client = OCRSpaceClient(
            config.cloud_ocr, transport=httpx.MockTransport(handler)
        )
        with patch(WORKER) as worker_cls:
            worker_cls.return_value.start.side_effect = LocalOCRUnavailableError("none")
            result = processor.process(_pdf_document(text_pdf))

        assert calls == []
        assert result.method == "text_layer"
        assert result.text == "Experience Senior Engineer"


class TestLocalOCRTier:
    """Tests for the local OCR tier and per-page merging."""

    def test_end_to_end_two_page_resume(
        self, cloud_config: AppConfig, mixed_pdf: bytes
    ) -> None:
        processor = DocumentProcessor(cloud_config)
        layer = TextLayerResult(pages=["Experience\nEngineer", ""], needs_ocr=[2])
        with (
            patch.object(
                processor.cloud_client,
                "extract_text",
                side_effect=ServiceUnavailableError("down"),
            ),
            patch.object(processor.text_layer, "extract", return_value=layer),
            patch(WORKER) as worker_cls,
        ):
            worker = worker_cls.return_value
            worker.recognize.return_value = "Education\nMSc"
            result = processor.process(_pdf_document(mixed_pdf))

        assert result.text == "Experience\nEngineer\nEducation\nMSc"
        assert result.method == "local_ocr"
        worker.recognize.assert_called_once()
        bitmap = worker.recognize.call_args.args[0]
        assert bitmap[:2] == b"BM"
        worker.terminate.assert_called_once()

    def test_worker_settings_come_from_config(self, mixed_pdf: bytes) -> None:
        config = AppConfig(
            ocr=OCRConfig(tesseract_cmd="/usr/bin/tesseract", psm=6, timeout_s=3.0)
        )
        processor = DocumentProcessor(config)
        with patch(WORKER) as worker_cls:
            worker_cls.return_value.recognize.return_value = "Education MSc"
            processor.process(_pdf_document(mixed_pdf))

        worker_cls.assert_called_once_with(
            tesseract_cmd="/usr/bin/tesseract", lang="eng", psm=6, timeout=3.0
        )

    def test_timeout_keeps_text_layer_page(
        self, app_config: AppConfig, mixed_pdf: bytes
    ) -> None:
        processor = DocumentProcessor(app_config)
        layer = TextLayerResult(pages=["Experience\nEngineer", "ab"], needs_ocr=[2])
        with (
            patch.object(processor.text_layer, "extract", return_value=layer),
            patch(WORKER) as worker_cls,
        ):
            worker = worker_cls.return_value
            worker.recognize.side_effect = OCRTimeoutError("timed out")
            result = processor.process(_pdf_document(mixed_pdf))

        assert result.text == "Experience\nEngineer\nab"
        assert result.method == "text_layer"
        worker.terminate.assert_called_once()

    def test_shorter_ocr_text_does_not_replace_page(
        self, app_config: AppConfig, mixed_pdf: bytes
    ) -> None:
        processor = DocumentProcessor(app_config)
        layer = TextLayerResult(pages=["Experience\nEngineer", "Educ"], needs_ocr=[2])
        with (
            patch.object(processor.text_layer, "extract", return_value=layer),
            patch(WORKER) as worker_cls,
        ):
            worker_cls.return_value.recognize.return_value = "Ed"
            result = processor.process(_pdf_document(mixed_pdf))

        assert result.text == "Experience\nEngineer\nEduc"

    def test_worker_start_failure_returns_text_layer(
        self, app_config: AppConfig, text_pdf: bytes
    ) -> None:
        processor = DocumentProcessor(app_config)
        with patch(WORKER) as worker_cls:
            worker = worker_cls.return_value
            worker.start.side_effect = LocalOCRUnavailableError("no tesseract")
            result = processor.process(_pdf_document(text_pdf))

        assert result.text == "Experience Senior Engineer"
        assert result.method == "text_layer"
        worker.recognize.assert_not_called()

    def test_unusable_tesseract_version_falls_back(
        self, app_config: AppConfig, text_pdf: bytes
    ) -> None:
        processor = DocumentProcessor(app_config)
        with patch(
            "resume_text.ocr.tesseract_engine.pytesseract.get_tesseract_version",
            side_effect=SystemExit('Invalid tesseract version: "tesseract 3.02.02"'),
        ):
            result = processor.process(_pdf_document(text_pdf))

        assert result.method == "text_layer"
        assert result.outcomes[-1] == TierOutcome("local_ocr")

    def test_worker_terminated_when_tier_crashes(
        self, app_config: AppConfig, text_pdf: bytes
    ) -> None:
        processor = DocumentProcessor(app_config)
        with (
            patch(WORKER) as worker_cls,
            patch(
                "resume_text.ocr.document_processor.open_pdf_pages",
                side_effect=ValueError("corrupt"),
            ),
        ):
            result = processor.process(_pdf_document(text_pdf))

        worker_cls.return_value.terminate.assert_called_once()
        assert result.method == "text_layer"
        assert result.outcomes[-1] == TierOutcome("local_ocr")

    def test_raster_fallback_for_pages_without_images(
        self, app_config: AppConfig, text_pdf: bytes
    ) -> None:
        processor = DocumentProcessor(app_config)
        raster = CapturedRaster(2, 2, bytes([255] * 16))
        with (
            patch.object(processor.pdf_handler, "render_page", return_value=raster) as render,
            patch(WORKER) as worker_cls,
        ):
            worker_cls.return_value.recognize.return_value = "Education MSc"
            result = processor.process(_pdf_document(text_pdf))

        render.assert_called_once_with(text_pdf, 2)
        assert result.text == "Experience Senior Engineer\nEducation MSc"

    def test_raster_fallback_disabled(self, text_pdf: bytes) -> None:
        processor = DocumentProcessor(AppConfig(ocr=OCRConfig(raster_fallback=False)))
        with (
            patch.object(processor.pdf_handler, "render_page") as render,
            patch(WORKER) as worker_cls,
        ):
            result = processor.process(_pdf_document(text_pdf))

        render.assert_not_called()
        worker_cls.return_value.recognize.assert_not_called()
        assert result.text == "Experience Senior Engineer"

    def test_failed_page_does_not_stop_other_pages(self, app_config: AppConfig) -> None:
        pdf = build_pdf([(b"", {}), (b"", {}), (b"", {})])
        processor = DocumentProcessor(app_config)
        raster = CapturedRaster(1, 1, bytes(4))
        with (
            patch.object(processor.pdf_handler, "render_page", return_value=raster),
            patch(WORKER) as worker_cls,
        ):
            worker_cls.return_value.recognize.side_effect = [
                "Page one text",
                RuntimeError("engine crashed"),
                "Page three text",
            ]
            result = processor.process(_pdf_document(pdf))

        assert result.text == "Page one text\nPage three text"
        assert result.method == "local_ocr"


class TestResultSelection:
    """Tests for picking the final result."""

    def test_all_tiers_empty(self, app_config: AppConfig, scanned_pdf: bytes) -> None:
        processor = DocumentProcessor(app_config)
        with patch(WORKER) as worker_cls:
            worker_cls.return_value.recognize.return_value = ""
            with pytest.raises(EmptyResultError) as exc_info:
                processor.process(_pdf_document(scanned_pdf))

        assert exc_info.value.likely_scanned is True
        assert str(exc_info.value) == SCANNED_PDF_MESSAGE

    def test_longest_wins_and_ties_go_to_earlier_tier(
        self, app_config: AppConfig
    ) -> None:
        processor = DocumentProcessor(app_config)
        tiers = [
            ("first", lambda document, state: TierOutcome("first", "abcd")),
            ("second", lambda document, state: TierOutcome("second", "wxyz")),
            ("third", lambda document, state: TierOutcome("third", "abc")),
        ]
        with patch.object(processor, "tiers", return_value=tiers):
            result = processor.process(_pdf_document(b"%PDF"))

        assert result.method == "first"
        assert len(result.outcomes) == 3

    def test_crashing_tier_falls_through(self, app_config: AppConfig) -> None:
        processor = DocumentProcessor(app_config)

        def crash(document, state):
            raise KeyError("boom")

        tiers = [
            ("broken", crash),
            ("fallback", lambda document, state: TierOutcome("fallback", "text", ok=True)),
            ("unused", MagicMock()),
        ]
        with patch.object(processor, "tiers", return_value=tiers):
            result = processor.process(_pdf_document(b"%PDF"))

        assert result.text == "text"
        assert result.outcomes[0] == TierOutcome("broken")
        tiers[2][1].assert_not_called()
