"""Tests for import chains and module integrity.

Ensures all public modules can be imported without errors and
that re-exports from __init__.py files work correctly.
"""


class TestSchemaImports:
    def test_import_business_schema(self):
        from storefront.schemas.business_schema import BookingMode, Business, Resource, Service
        assert BookingMode.SESSION == "session"

    def test_import_availability_schema(self):
        from storefront.schemas.availability_schema import AvailabilityMatrix
        assert AvailabilityMatrix().business_timezone == "UTC"

    def test_import_booking_schema(self):
        from storefront.schemas.booking_schema import BookingCreateRequest, BookingStatus
        assert BookingStatus.CANCELLED == "cancelled"


class TestBookingImports:
    def test_import_booking_package(self):
        from storefront.booking import (
            AvailabilityFetcher,
            BookingLookup,
            BookingSubmitter,
            SlotSelector,
            assign_resource,
        )
        assert callable(assign_resource)

    def test_import_timezone_formatter(self):
        from storefront.booking.timezone_formatter import LOCALES
        assert set(LOCALES) == {"en-US", "sq-AL"}

    def test_import_calendar_grid(self):
        from storefront.booking.calendar_grid import build_month
        assert callable(build_month)


class TestToolImports:
    def test_import_public_api(self):
        from storefront.tools.public_api import PublicApiClient
        assert PublicApiClient is not None


class TestLoggingContext:
    def test_session_logger_tags_records(self):
        import logging

        from storefront.logging_context import get_session_logger, new_session_id

        session_id = new_session_id()
        logger = get_session_logger("storefront.test")
        record = logger.makeRecord("storefront.test", logging.INFO, __file__, 1, "x", (), None)
        for f in logger.filters:
            f.filter(record)
        assert record.session_id == session_id
        assert session_id.startswith("SESSION-")

    def test_configured_format_shows_session_id(self):
        import io
        import logging

        from storefront.config import LOG_FORMAT
        from storefront.logging_context import attach_session_filter, set_session_id

        stream = io.StringIO()
        handler = logging.StreamHandler(stream)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        attach_session_filter(handler)
        attach_session_filter(handler)
        assert len(handler.filters) == 1

        # A plain logger, not one from get_session_logger().
        logger = logging.getLogger("thirdparty.test")
        logger.addHandler(handler)
        try:
            set_session_id("SESSION-feedbeef")
            logger.warning("slow response")
        finally:
            logger.removeHandler(handler)
        assert "WARNING [SESSION-feedbeef]: slow response" in stream.getvalue()


class TestCli:
    def test_parser_builds(self):
        from main import build_parser

        args = build_parser().parse_args(["lookup", "BK-1", "+15551234567"])
        assert args.command == "lookup"
        assert args.phone == "+15551234567"
