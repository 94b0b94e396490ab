"""Tests for structured logging."""
from fastapi import FastAPI
from fastapi.testclient import TestClient

from clinic_scheduling.logging_config import (
    RequestIDMiddleware,
    generate_request_id,
    get_logger,
    setup_structured_logging,
)


class TestStructuredLogging:
    """Test structured logging with request IDs."""

    def test_setup_configures_structlog(self):
        """Should configure structlog processors."""
        setup_structured_logging(log_level="INFO")
        logger = get_logger(__name__)

        # Logger should be a structlog BoundLogger
        assert hasattr(logger, 'info')
        assert hasattr(logger, 'error')
        assert hasattr(logger, 'warning')

    def test_logger_methods_work(self):
        """Should accept event names with key/value context."""
        setup_structured_logging(log_level="INFO")
        logger = get_logger(__name__)

        # These should not raise
        logger.info("appointment_created", appointment_id="APPT-1001")
        logger.warning("slot_unavailable", start_time="09:00")
        logger.error("unexpected_error", error="boom")

    def test_generate_request_id_format(self):
        """Should generate request IDs with correct format."""
        request_id = generate_request_id()

        # Should start with "req-"
        assert request_id.startswith("req-")

        # Should have hex chars after prefix
        assert len(request_id) == 16  # "req-" (4) + 12 hex chars

        # Should be unique
        request_id2 = generate_request_id()
        assert request_id != request_id2

    def test_request_id_middleware_adds_header(self):
        """Should add X-Request-ID header to responses."""
        app = FastAPI()

        @app.get('/test')
        async def test_route():
            return {"ok": True}

        app.add_middleware(RequestIDMiddleware)

        with TestClient(app) as client:
            response = client.get('/test')

            # Should have request ID header
            assert 'X-Request-ID' in response.headers
            request_id = response.headers['X-Request-ID']

            # Should match format
            assert request_id.startswith('req-')
            assert len(request_id) == 16
