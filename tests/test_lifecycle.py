from datetime import datetime, timedelta, timezone

import pytest

from auth.security import digest_item_password
from delivery import lifecycle
from delivery.lifecycle import AuthOutcome, ByteRange, RangeNotSatisfiable
from users.permissions import Permission, Principal

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _item(**fields):
    item = {"expires_at": None, "max_visits": None, "visits": 0, "password_hash": None, "creator": "owner"}
    item.update(fields)
    return item


def test_item_without_limits_never_expires():
    assert lifecycle.is_expired(_item(visits=10_000), NOW) is False


def test_expiry_by_date_is_strictly_after():
    assert lifecycle.is_expired(_item(expires_at=NOW), NOW) is False
    assert lifecycle.is_expired(_item(expires_at=NOW - timedelta(seconds=1)), NOW) is True


def test_naive_expiry_is_treated_as_utc():
    naive = (NOW - timedelta(minutes=1)).replace(tzinfo=None)
    assert lifecycle.is_expired(_item(expires_at=naive), NOW) is True


def test_expiry_by_visit_count():
    assert lifecycle.is_expired(_item(max_visits=3, visits=2), NOW) is False
    assert lifecycle.is_expired(_item(max_visits=3, visits=3), NOW) is True


def test_drop_deadline_is_one_week_out():
    assert lifecycle.drop_deadline(NOW) == NOW + timedelta(days=7)


def test_authorize_open_item():
    assert lifecycle.authorize(_item(), None, None) is AuthOutcome.OPEN


def test_authorize_password_paths():
    item = _item(password_hash=digest_item_password("hunter2"))
    assert lifecycle.authorize(item, None, None) is AuthOutcome.PROMPT
    assert lifecycle.authorize(item, None, "wrong") is AuthOutcome.DENIED
    assert lifecycle.authorize(item, None, "hunter2") is AuthOutcome.PASSWORD


def test_authorize_creator_and_admin_skip_password():
    item = _item(password_hash=digest_item_password("hunter2"))
    creator = Principal(user_id="owner", permissions=Permission.LINK)
    admin = Principal(user_id="root", is_admin=True)
    stranger = Principal(user_id="someone", permissions=Permission.all())

    assert lifecycle.authorize(item, creator, None) is AuthOutcome.SESSION
    assert lifecycle.authorize(item, admin, None) is AuthOutcome.SESSION
    # MANAGE alone does not unlock another user's protected item.
    assert lifecycle.authorize(item, stranger, None) is AuthOutcome.PROMPT


def test_guest_session_does_not_unlock_protected_item():
    item = _item(password_hash=digest_item_password("pw"), creator="guest-1")
    assert lifecycle.authorize(item, Principal.guest("guest-1"), None) is AuthOutcome.PROMPT


def test_outcome_granted():
    assert AuthOutcome.OPEN.granted
    assert AuthOutcome.PASSWORD.granted
    assert not AuthOutcome.PROMPT.granted
    assert not AuthOutcome.DENIED.granted


@pytest.mark.parametrize(
    "header, expected",
    [
        ("bytes=0-99", ByteRange(0, 99)),
        ("bytes=100-", ByteRange(100, 999)),
        ("bytes=900-5000", ByteRange(900, 999)),
        ("bytes=5000-6000", ByteRange(999, 999)),
        ("bytes=-100", ByteRange(900, 999)),
        ("bytes=x-10", ByteRange(0, 10)),
        ("bytes=0-9, 20-29", ByteRange(0, 9)),
    ],
)
def test_parse_range(header, expected):
    assert lifecycle.parse_range(header, 1000) == expected


def test_parse_range_ignores_missing_or_foreign_units():
    assert lifecycle.parse_range(None, 1000) is None
    assert lifecycle.parse_range("items=0-1", 1000) is None


def test_parse_range_rejects_inverted_and_empty():
    with pytest.raises(RangeNotSatisfiable):
        lifecycle.parse_range("bytes=500-100", 1000)
    with pytest.raises(RangeNotSatisfiable) as exc_info:
        lifecycle.parse_range("bytes=0-10", 0)
    assert exc_info.value.size == 0


def test_byte_range_headers():
    r = ByteRange(0, 99)
    assert r.length == 100
    assert r.content_range(1000) == "bytes 0-99/1000"


def test_content_disposition():
    assert lifecycle.content_disposition(None) == "inline"
    assert lifecycle.content_disposition("report.pdf") == 'attachment; filename="report.pdf"'
    header = lifecycle.content_disposition("résumé.pdf")
    assert header.startswith('attachment; filename="r?sum?.pdf"')
    assert "filename*=UTF-8''r%C3%A9sum%C3%A9.pdf" in header


def test_guess_media_type():
    assert lifecycle.guess_media_type(None, "abc.png") == "image/png"
    assert lifecycle.guess_media_type("notes.txt", "abc.bin").startswith("text/plain")
    assert lifecycle.guess_media_type(None, "no-extension") == "application/octet-stream"
