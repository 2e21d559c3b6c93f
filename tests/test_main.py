"""Tests for the API server entry point."""

from unittest.mock import MagicMock, patch

from resume_text.main import main
from resume_text.utils.config import AppConfig, ServerConfig


class TestMain:
    """Tests for the main function."""

    @patch("resume_text.main.setup_logging")
    @patch("resume_text.main.uvicorn.run")
    @patch("resume_text.main.load_config")
    def test_serves_on_configured_address(
        self, mock_load: MagicMock, mock_run: MagicMock, mock_logging: MagicMock
    ) -> None:
        mock_load.return_value = AppConfig(
            server=ServerConfig(host="127.0.0.1", port=9100), log_level="DEBUG"
        )

        main()

        mock_logging.assert_called_once_with("DEBUG")
        kwargs = mock_run.call_args.kwargs
        assert kwargs["host"] == "127.0.0.1"
        assert kwargs["port"] == 9100

    @patch("resume_text.main.setup_logging")
    @patch("resume_text.main.uvicorn.run")
    @patch("resume_text.main.load_config", return_value=AppConfig())
    def test_default_address(
        self, mock_load: MagicMock, mock_run: MagicMock, mock_logging: MagicMock
    ) -> None:
        main()
        kwargs = mock_run.call_args.kwargs
        assert (kwargs["host"], kwargs["port"]) == ("0.0.0.0", 8000)
