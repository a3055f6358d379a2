"""
quote_workflow.py — Send / revise / accept workflow

Status transitions for a quote once it leaves the editor:

    draft ──send──▶ sent ──accept──▶ accepted
                     │  ▲
     request changes │  │ send (revision)
                     ▼  │
               pending-changes

    sent ──(past expires_at)──▶ expired

Each transition returns a new Quote; delivery of the e-mail itself and
persistence of the result belong to the caller.
"""

import copy
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Iterable, Optional

import pytz

from quotes import config
from quotes.models import (
    ChangeLogEntry,
    ExpirationTimeline,
    InvalidStatusTransitionError,
    Quote,
    QuoteError,
    QuoteStatus,
    QuoteView,
)
from quotes.revision_diff import generate_diff_summary

logger = logging.getLogger(__name__)

NO_CHANGES_PLACEHOLDER = "No changes were automatically detected. Please summarize your updates."
REVISION_SENT_PREFIX = "Revision Sent"
CHANGES_REQUESTED_PREFIX = "Changes Requested"

EXPIRATION_DAYS = {
    ExpirationTimeline.NEVER: None,
    ExpirationTimeline.DAYS_30: 30,
    ExpirationTimeline.DAYS_60: 60,
    ExpirationTimeline.DAYS_90: 90,
}


@dataclass(frozen=True)
class TimelineEvent:
    type: str          # sent | viewed | changes_requested | revision_sent | accepted
    timestamp: str
    description: str
    author: Optional[str] = None


def _now(now: Optional[datetime]) -> datetime:
    tz = config.business_timezone()
    if now is None:
        return datetime.now(tz)
    return now if now.tzinfo else tz.localize(now)


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored ISO timestamp; None when it is empty or unreadable."""
    if not value:
        return None
    try:
        ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (TypeError, ValueError):
        return None
    return ts if ts.tzinfo else pytz.utc.localize(ts)


def _require_status(quote: Quote, action: str, *allowed: QuoteStatus) -> None:
    if quote.status not in allowed:
        raise InvalidStatusTransitionError(
            f"Cannot {action} quote {quote.quote_number or quote.id} while it is {quote.status.value}"
        )


def compute_expires_at(timeline: ExpirationTimeline, now: datetime) -> Optional[datetime]:
    days = EXPIRATION_DAYS[ExpirationTimeline(timeline)]
    return now + timedelta(days=days) if days else None


def resend_change_description(quote: Quote) -> str:
    """Pre-filled change summary for a revision being sent back to the customer."""
    if quote.status != QuoteStatus.PENDING_CHANGES or not quote.original_options_for_diff:
        return ""
    return generate_diff_summary(quote.original_options_for_diff, quote.options, quote.revision_number)


def send_quote(
    quote: Quote,
    selected_option_ids: Iterable[str],
    author: Optional[str] = None,
    change_description: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Quote:
    """
    Mark a quote as sent with only the selected options.

    A first send stamps sent_at and expires_at. Sending a revision
    (status pending-changes) logs a "Revision Sent (Rev N)" entry carrying
    the change description instead.
    """
    _require_status(quote, "send", QuoteStatus.DRAFT, QuoteStatus.SENT, QuoteStatus.PENDING_CHANGES)
    selected = set(selected_option_ids)
    options = [o for o in quote.options if o.id in selected]
    if not options:
        raise QuoteError("Select at least one option to send")

    now = _now(now)
    is_resend = quote.status == QuoteStatus.PENDING_CHANGES
    updates = dict(options=options, status=QuoteStatus.SENT, original_options_for_diff=[])

    if is_resend:
        text = (change_description or "").strip()
        description = f"{REVISION_SENT_PREFIX} (Rev {quote.revision_number})"
        if text and text != NO_CHANGES_PLACEHOLDER:
            description += f":\n{text}"
        entry = ChangeLogEntry(
            timestamp=now.isoformat(), description=description, author=author or config.DEFAULT_AUTHOR
        )
        updates["change_log"] = [*quote.change_log, entry]
    else:
        expires_at = compute_expires_at(quote.expiration_timeline, now)
        updates["sent_at"] = now.isoformat()
        updates["expires_at"] = expires_at.isoformat() if expires_at else None

    logger.info(
        "Quote %s sent (%s, %d option(s))",
        quote.quote_number or quote.id,
        f"revision {quote.revision_number}" if is_resend else "first send",
        len(options),
    )
    return replace(quote, **updates)


def request_changes(
    quote: Quote, comments: str, author: Optional[str] = None, now: Optional[datetime] = None
) -> Quote:
    """Customer asked for changes: open a new revision and snapshot the options for diffing."""
    _require_status(quote, "request changes on", QuoteStatus.SENT)
    comments = (comments or "").strip()
    if not comments:
        raise QuoteError("Describe the requested changes")

    now = _now(now)
    entry = ChangeLogEntry(
        timestamp=now.isoformat(),
        description=f"{CHANGES_REQUESTED_PREFIX}: {comments}",
        author=author,
    )
    revision = (quote.revision_number or 0) + 1
    logger.info("Changes requested on quote %s (rev %d)", quote.quote_number or quote.id, revision)
    return replace(
        quote,
        status=QuoteStatus.PENDING_CHANGES,
        revision_number=revision,
        original_options_for_diff=copy.deepcopy(quote.options),
        change_log=[*quote.change_log, entry],
    )


def accept_quote(
    quote: Quote, option_id: str, signature: str, now: Optional[datetime] = None
) -> Quote:
    """Customer signed for one option."""
    _require_status(quote, "accept", QuoteStatus.SENT)
    quote.get_option(option_id)
    if not signature:
        raise QuoteError("A signature is required to accept a quote")
    now = _now(now)
    logger.info("Quote %s accepted (option %s)", quote.quote_number or quote.id, option_id)
    return replace(
        quote,
        status=QuoteStatus.ACCEPTED,
        accepted_at=now.isoformat(),
        accepted_option_id=option_id,
        signature=signature,
    )


def expire_if_due(quote: Quote, now: Optional[datetime] = None) -> Quote:
    if quote.status != QuoteStatus.SENT or not quote.expires_at:
        return quote
    expires_at = _parse_ts(quote.expires_at)
    if expires_at is None:
        logger.warning("Quote %s has unreadable expiresAt %r", quote.quote_number or quote.id, quote.expires_at)
        return quote
    if expires_at > _now(now):
        return quote
    logger.info("Quote %s expired", quote.quote_number or quote.id)
    return replace(quote, status=QuoteStatus.EXPIRED)


def record_view(quote: Quote, now: Optional[datetime] = None) -> Quote:
    return replace(quote, view_history=[*quote.view_history, QuoteView(timestamp=_now(now).isoformat())])


def activity_timeline(quote: Quote) -> list[TimelineEvent]:
    """Sent / viewed / change-log / accepted events, oldest first.

    Events whose timestamp is missing or unreadable are left out.
    """
    events = []
    if quote.sent_at:
        events.append(TimelineEvent("sent", quote.sent_at, "Quote sent to customer"))
    for view in quote.view_history:
        events.append(TimelineEvent("viewed", view.timestamp, "Quote viewed by customer"))
    for entry in quote.change_log:
        kind = "revision_sent" if entry.description.startswith(REVISION_SENT_PREFIX) else "changes_requested"
        events.append(TimelineEvent(kind, entry.timestamp, entry.description, entry.author))
    if quote.accepted_at:
        events.append(TimelineEvent("accepted", quote.accepted_at, "Quote accepted!"))
    dated = []
    for event in events:
        ts = _parse_ts(event.timestamp)
        if ts is None:
            logger.warning(
                "Quote %s: skipping %s event with timestamp %r",
                quote.quote_number or quote.id, event.type, event.timestamp,
            )
            continue
        dated.append((ts, event))
    dated.sort(key=lambda pair: pair[0])
    return [event for _, event in dated]
