"""
Command-line storefront: browse availability, book, look up and cancel.

Drives the same selector, fetcher, submitter and lookup components the web
storefront uses, against the API configured by STOREFRONT_API_URL. Times are
always printed in the business's timezone.

Usage:
    python main.py availability la-terrazza svc-1 --date 2025-03-10 --party-size 4
    python main.py calendar la-terrazza svc-1 --month 2025-03 --ahead 1
    python main.py book la-terrazza svc-1 --date 2025-03-10 --time 12:00 \\
        --name "Jane Doe" --phone "+15551234567"
    python main.py lookup BK-123 +15551234567
    python main.py cancel BK-123 +15551234567
"""

import argparse
import asyncio
import calendar
import logging
import sys
from datetime import datetime
from typing import Optional

from storefront.booking import CalendarDay, build_month, shift_month
from storefront.booking.availability_fetcher import (
    AvailabilityFetcher,
    StorefrontContext,
    load_storefront,
)
from storefront.booking.booking_lookup import BookingLookup
from storefront.booking.booking_submitter import BookingSubmitter
from storefront.booking.slot_selector import SlotSelector
from storefront.booking.timezone_formatter import (
    format_datetime_in_timezone,
    format_local_date,
    format_time_in_timezone,
    local_today,
)
from storefront.config import settings
from storefront.logging_context import new_session_id
from storefront.schemas.booking_schema import Booking
from storefront.schemas.business_schema import Business
from storefront.tools.public_api import PublicApiClient
from storefront.utils import format_price

logger = logging.getLogger(__name__)

GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"


def _error(text: str) -> None:
    print(f"{RED}{text}{RESET}")


def _print_booking(booking: Booking, business_timezone: str, locale: str) -> None:
    when = format_datetime_in_timezone(booking.starts_at, business_timezone, locale)
    print(f"{BOLD}Booking {booking.id}{RESET} [{booking.status.value}]")
    print(f"  {when}, party of {booking.party_size}")
    if booking.service_name:
        print(f"  Service: {booking.service_name}")
    if booking.table_code:
        print(f"  Table: {booking.table_code}")
    print(f"  Name: {booking.customer_name}")


async def _booking_timezone(client: PublicApiClient, slug: Optional[str]) -> str:
    if not slug:
        return "UTC"
    business: Business = await client.get_business_details(slug)
    return business.timezone


async def _prepare_selection(
    client: PublicApiClient, args: argparse.Namespace
) -> Optional[tuple[AvailabilityFetcher, StorefrontContext]]:
    context = await load_storefront(client, args.slug, args.service_id)
    if not context.ok:
        _error(context.error or "Failed to load service")
        return None

    selector = SlotSelector(args.slug, args.service_id, party_size=args.party_size)
    fetcher = AvailabilityFetcher(client, selector)
    query = selector.select_date(args.date) if args.date else selector.start()
    if query is None:
        _error(f"Cannot show availability for {args.date}")
        return None
    await fetcher.run(query)
    return fetcher, context


async def cmd_availability(client: PublicApiClient, args: argparse.Namespace) -> int:
    prepared = await _prepare_selection(client, args)
    if prepared is None:
        return 1
    fetcher, context = prepared
    selector = fetcher.selector

    tz = selector.business_timezone
    service = context.service
    print(f"{BOLD}{context.business.name}{RESET}: {service.name} "
          f"({service.duration_min} min, {format_price(service.price_minor, context.business.currency)})")
    if selector.error:
        _error(selector.error)
        return 1

    day = format_local_date(selector.date, args.locale)
    print(f"{DIM}{day}, party of {selector.party_size}, times in {tz}{RESET}")
    if selector.assignment is not None and not selector.assignment.available:
        print(f"{YELLOW}{selector.assignment.message}{RESET}")
    if not selector.slots:
        print("No available times")
        return 0
    for slot, label in selector.slot_labels(args.locale):
        print(f"  {GREEN}{label}{RESET}  {DIM}{slot.available_tables} free{RESET}")
    return 0


WEEKDAY_HEADER = " Su  Mo  Tu  We  Th  Fr  Sa"
CALENDAR_LEGEND = "- past  * selected  + today  ~ closed"


def _calendar_cell(day: Optional[CalendarDay], color: bool) -> str:
    if day is None:
        return "    "
    if day.is_past:
        mark, style = "-", DIM
    elif day.is_selected:
        mark, style = "*", GREEN + BOLD
    elif day.is_today:
        mark, style = "+", BOLD
    elif not day.is_open:
        mark, style = "~", YELLOW
    else:
        mark, style = " ", ""
    text = f"{day.day:>3}{mark}"
    return f"{style}{text}{RESET}" if color and style else text


def render_month(
    year: int, month: int, weeks: list[list[Optional[CalendarDay]]], color: bool = True
) -> list[str]:
    """Lines of a month grid as printed by the ``calendar`` command."""
    lines = [f"{calendar.month_name[month]} {year}", WEEKDAY_HEADER]
    for week in weeks:
        lines.append("".join(_calendar_cell(day, color) for day in week).rstrip())
    lines.append(CALENDAR_LEGEND)
    return lines


async def cmd_calendar(client: PublicApiClient, args: argparse.Namespace) -> int:
    context = await load_storefront(client, args.slug, args.service_id)
    if not context.ok:
        _error(context.error or "Failed to load service")
        return 1

    today = local_today(settings.booking.viewer_timezone or None)
    if args.month:
        try:
            start = datetime.strptime(args.month, "%Y-%m")
        except ValueError:
            _error(f"Invalid month {args.month!r}, expected YYYY-MM")
            return 1
        year, month = start.year, start.month
    else:
        year, month = today.year, today.month
    year, month = shift_month(year, month, args.ahead)

    weeks = build_month(year, month, today, selected_date=args.date, service=context.service)
    print(f"{BOLD}{context.business.name}{RESET}: {context.service.name}")
    for line in render_month(year, month, weeks, color=sys.stdout.isatty()):
        print(line)
    return 0


async def cmd_book(client: PublicApiClient, args: argparse.Namespace) -> int:
    prepared = await _prepare_selection(client, args)
    if prepared is None:
        return 1
    fetcher, context = prepared
    selector = fetcher.selector
    if selector.error:
        _error(selector.error)
        return 1

    tz = selector.business_timezone
    slot = next(
        (s for s in selector.slots
         if format_time_in_timezone(s.starts_at, tz, hour12=False) == args.time),
        None,
    )
    if slot is None:
        _error(f"No available slot at {args.time} on {selector.date}")
        return 1
    selector.select_slot(slot)
    draft = selector.proceed_to_booking()

    submitter = BookingSubmitter(
        client, args.slug, draft, context.service, context.business,
        resources=selector.resources,
    )
    confirmation = await submitter.submit(args.name, args.phone, args.email or "")
    if confirmation is None:
        for issue in submitter.validation_errors.values():
            _error(issue.message)
        if submitter.error:
            _error(submitter.error)
        return 1

    print(f"{GREEN}{BOLD}Booking confirmed{RESET}")
    _print_booking(confirmation.booking, tz, args.locale)
    return 0


async def cmd_lookup(client: PublicApiClient, args: argparse.Namespace) -> int:
    lookup = BookingLookup(client)
    booking = await lookup.find(args.booking_id, args.phone)
    if booking is None:
        _error(lookup.error or "Booking not found")
        return 1
    tz = await _booking_timezone(client, args.slug)
    _print_booking(booking, tz, args.locale)
    state = "can be cancelled" if lookup.cancellable else "can no longer be cancelled"
    print(f"{DIM}  This booking {state}{RESET}")
    return 0


async def cmd_cancel(client: PublicApiClient, args: argparse.Namespace) -> int:
    lookup = BookingLookup(client)
    if await lookup.find(args.booking_id, args.phone) is None:
        _error(lookup.error or "Booking not found")
        return 1
    cancelled = await lookup.cancel()
    if cancelled is None:
        _error(lookup.error or "Failed to cancel booking")
        return 1
    tz = await _booking_timezone(client, args.slug)
    print(f"{GREEN}Cancelled{RESET}")
    _print_booking(cancelled, tz, args.locale)
    return 0


COMMANDS = {
    "availability": cmd_availability,
    "calendar": cmd_calendar,
    "book": cmd_book,
    "lookup": cmd_lookup,
    "cancel": cmd_cancel,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Reservation storefront client")
    parser.add_argument("--api-url", default=None, help="Override STOREFRONT_API_URL")
    parser.add_argument(
        "--locale", default=settings.booking.default_locale, choices=["en-US", "sq-AL"]
    )
    sub = parser.add_subparsers(dest="command", required=True)

    for name in ("availability", "book"):
        p = sub.add_parser(name)
        p.add_argument("slug", help="Business slug")
        p.add_argument("service_id")
        p.add_argument("--date", default=None, help="YYYY-MM-DD, defaults to today")
        p.add_argument("--party-size", type=int, default=None)

    month = sub.add_parser("calendar")
    month.add_argument("slug", help="Business slug")
    month.add_argument("service_id")
    month.add_argument("--month", default=None, help="YYYY-MM, defaults to this month")
    month.add_argument("--ahead", type=int, default=0, help="Months to move forward or back")
    month.add_argument("--date", default=None, help="YYYY-MM-DD to mark as selected")

    book = sub.choices["book"]
    book.add_argument("--time", required=True, help="Slot start in business time, HH:MM")
    book.add_argument("--name", required=True)
    book.add_argument("--phone", required=True)
    book.add_argument("--email", default=None)

    for name in ("lookup", "cancel"):
        p = sub.add_parser(name)
        p.add_argument("booking_id")
        p.add_argument("phone")
        p.add_argument("--slug", default=None, help="Business slug, to show local times")
    return parser


async def run(args: argparse.Namespace) -> int:
    session_id = new_session_id()
    logger.debug("Starting %s (%s)", args.command, session_id)
    async with PublicApiClient(base_url=args.api_url) as client:
        return await COMMANDS[args.command](client, args)


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
