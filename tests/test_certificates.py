"""
Tests for 80G certificate numbering, formats and issuance.
"""
from datetime import date, datetime
from types import SimpleNamespace

import pytest

from kmwf.config import settings
from kmwf.models import ReceiptCounterModel
from kmwf.rules.certificates import (
    extract_financial_year_from_certificate,
    extract_sequence_from_certificate,
    format_certificate_number,
    get_financial_year,
    group_indian,
    is_valid_certificate_number,
    is_valid_pan,
    is_valid_pincode,
    number_to_words,
)
from kmwf.schemas.donation import CertificateData, CertificateNumber
from kmwf.services import certificates
from kmwf.services.documents import render_80g_certificate_html


class _BrokenSession:
    def __init__(self):
        self.rolled_back = False

    def get_bind(self):
        raise RuntimeError("database unavailable")

    def rollback(self):
        self.rolled_back = True


class _MySqlSession(_BrokenSession):
    def get_bind(self):
        return SimpleNamespace(dialect=SimpleNamespace(name="mysql"))


class TestFinancialYear:
    @pytest.mark.parametrize(
        "when, expected",
        [
            (date(2024, 4, 1), "2024-25"),
            (date(2025, 3, 31), "2024-25"),
            (date(2024, 3, 15), "2023-24"),
            (date(2024, 12, 31), "2024-25"),
            (date(2099, 6, 1), "2099-00"),
        ],
    )
    def test_boundaries(self, when, expected):
        assert get_financial_year(when) == expected

    def test_accepts_datetime(self):
        assert get_financial_year(datetime(2024, 7, 15, 10, 30)) == "2024-25"


class TestFormats:
    @pytest.mark.parametrize("pan", ["ABCDE1234F", "AABCK1234E"])
    def test_valid_pan(self, pan):
        assert is_valid_pan(pan)

    @pytest.mark.parametrize("pan", ["abcde1234f", "ABCD1234F", "ABCDE12345", "", None, "ABCDE1234FG"])
    def test_invalid_pan(self, pan):
        assert not is_valid_pan(pan)

    def test_pincode(self):
        assert is_valid_pincode("400003")
        assert not is_valid_pincode("40003")
        assert not is_valid_pincode("4000031")
        assert not is_valid_pincode("40000a")

    def test_format_and_extract(self):
        number = format_certificate_number("2024-25", 42)
        assert number == "KMWF-80G-2024-25-000042"
        assert is_valid_certificate_number(number)
        assert extract_financial_year_from_certificate(number) == "2024-25"
        assert extract_sequence_from_certificate(number) == 42

    @pytest.mark.parametrize(
        "value",
        ["KMWF-80G-2024-25-42", "KMWF-80G-24-25-000042", "XYZ-80G-2024-25-000042", ""],
    )
    def test_invalid_numbers(self, value):
        assert not is_valid_certificate_number(value)
        assert extract_financial_year_from_certificate(value) is None
        assert extract_sequence_from_certificate(value) is None


class TestAmountFormatting:
    @pytest.mark.parametrize(
        "amount, words",
        [
            (0, "Zero"),
            (7, "Seven"),
            (15, "Fifteen"),
            (101, "One Hundred One"),
            (5000, "Five Thousand"),
            (125000, "One Lakh Twenty Five Thousand"),
            (10000000, "One Crore"),
            (23456789, "Two Crore Thirty Four Lakh Fifty Six Thousand Seven Hundred Eighty Nine"),
        ],
    )
    def test_number_to_words(self, amount, words):
        assert number_to_words(amount) == words

    def test_words_ignore_paise(self):
        assert number_to_words(999.99) == "Nine Hundred Ninety Nine"

    @pytest.mark.parametrize(
        "amount, text",
        [(500, "500"), (5000, "5,000"), (1234567, "12,34,567"), (1234567.5, "12,34,567.50")],
    )
    def test_group_indian(self, amount, text):
        assert group_indian(amount) == text


class TestCertificateNumberGeneration:
    def test_sequence_increases(self, db):
        first = certificates.generate_certificate_number(db, "2024-25")
        second = certificates.generate_certificate_number(db, "2024-25")
        third = certificates.generate_certificate_number(db, "2024-25")
        assert [first.sequence_number, second.sequence_number, third.sequence_number] == [1, 2, 3]
        assert third.certificate_number == "KMWF-80G-2024-25-000003"

    def test_counters_are_per_financial_year(self, db):
        certificates.generate_certificate_number(db, "2024-25")
        certificates.generate_certificate_number(db, "2024-25")
        other = certificates.generate_certificate_number(db, "2025-26")
        assert other.sequence_number == 1
        assert db.query(ReceiptCounterModel).count() == 2

    def test_fallback_uses_donation_id(self):
        session = _BrokenSession()
        result = certificates.generate_certificate_number(session, "2024-25", "abcdef0123456789")
        assert session.rolled_back
        assert result.sequence_number == 0
        assert result.certificate_number == "KMWF-80G-2024-25-23456789"
        assert not is_valid_certificate_number(result.certificate_number)

    def test_fallback_without_donation_id(self):
        result = certificates.generate_certificate_number(_BrokenSession(), "2024-25")
        assert result.sequence_number == 0
        suffix = result.certificate_number.rsplit("-", 1)[1]
        assert result.certificate_number.startswith("KMWF-80G-2024-25-")
        assert len(suffix) == 6 and suffix.isdigit()

    def test_generated_number_round_trips(self, db):
        fy = get_financial_year(date(2024, 11, 2))
        number = certificates.generate_certificate_number(db, fy).certificate_number
        assert is_valid_certificate_number(number)
        assert extract_financial_year_from_certificate(number) == fy
        assert extract_sequence_from_certificate(number) == 1

    def test_configured_prefix_round_trips(self, db, monkeypatch):
        monkeypatch.setattr(settings, "CERTIFICATE_PREFIX", "KMWF-80G-TEST")
        number = certificates.generate_certificate_number(db, "2024-25").certificate_number
        assert number == "KMWF-80G-TEST-2024-25-000001"
        assert is_valid_certificate_number(number, "KMWF-80G-TEST")
        assert extract_financial_year_from_certificate(number, "KMWF-80G-TEST") == "2024-25"
        assert certificates.get_certificate_stats(db, "2024-25").total_issued == 1

    def test_unsupported_database_falls_back(self):
        session = _MySqlSession()
        with pytest.raises(certificates.CounterUnavailable):
            certificates._increment_counter(session, "2024-25", "KMWF-80G")
        result = certificates.generate_certificate_number(session, "2024-25", "abcdef0123456789")
        assert result.sequence_number == 0
        assert session.rolled_back

    def test_stats(self, db):
        assert certificates.get_certificate_stats(db, "2024-25").total_issued == 0
        for _ in range(3):
            certificates.generate_certificate_number(db, "2024-25")
        stats = certificates.get_certificate_stats(db, "2024-25")
        assert stats.total_issued == 3
        assert stats.current_sequence == 3
        assert stats.last_issued is not None


class TestProcess80G:
    def test_issues_once(self, db, make_donation):
        donation = make_donation()
        info = certificates.process_80g_certificate(db, donation)
        assert info.certificate_number == "KMWF-80G-2024-25-000001"
        assert info.financial_year == "2024-25"
        assert info.sequence_number == 1

        again = certificates.process_80g_certificate(db, donation)
        assert again.certificate_number == info.certificate_number
        assert certificates.get_certificate_stats(db, "2024-25").total_issued == 1

    def test_fallback_number_is_reissued(self, db, make_donation):
        donation = make_donation(
            certificate_number="KMWF-80G-2024-25-00000001",
            certificate_financial_year="2024-25",
            certificate_sequence=0,
            certificate_generated_at=datetime(2024, 7, 15, 10, 31),
        )
        info = certificates.process_80g_certificate(db, donation)
        assert info.certificate_number == "KMWF-80G-2024-25-000001"
        assert info.sequence_number == 1
        assert certificates.process_80g_certificate(db, donation).sequence_number == 1

    def test_fallback_kept_while_counter_down(self, db, make_donation, monkeypatch):
        donation = make_donation(
            certificate_number="KMWF-80G-2024-25-00000001",
            certificate_financial_year="2024-25",
            certificate_sequence=0,
        )
        monkeypatch.setattr(
            certificates,
            "generate_certificate_number",
            lambda db, fy, donation_id=None: CertificateNumber(
                certificate_number="KMWF-80G-2024-25-99999999", sequence_number=0
            ),
        )
        info = certificates.process_80g_certificate(db, donation)
        assert info.certificate_number == "KMWF-80G-2024-25-00000001"
        assert info.sequence_number == 0

    def test_not_requested(self, db, make_donation):
        donation = make_donation(wants_80g_receipt=False)
        with pytest.raises(certificates.CertificateError):
            certificates.process_80g_certificate(db, donation)

    def test_invalid_pan(self, db, make_donation):
        donation = make_donation(donor_pan="abcde1234f")
        with pytest.raises(certificates.CertificateError, match="PAN"):
            certificates.process_80g_certificate(db, donation)

    def test_incomplete_address(self, db, make_donation):
        donation = make_donation(donor_city=None)
        with pytest.raises(certificates.CertificateError, match="address"):
            certificates.process_80g_certificate(db, donation)

    def test_record_delivery(self, db, make_donation):
        donation = make_donation()
        certificates.process_80g_certificate(db, donation)
        certificates.record_delivery(db, donation, "email", True, "msg-1")
        certificates.record_delivery(db, donation, "sms", False, "gateway down")
        db.refresh(donation)
        methods = certificates.certificate_info(donation).delivery_methods
        assert [(m.method, m.success) for m in methods] == [("email", True), ("sms", False)]


class TestCertificateHtml:
    def _data(self, **overrides):
        values = dict(
            donation_id="d0nat10n0000000000000001",
            donor_name="Ayesha Khan",
            donor_pan="ABCDE1234F",
            donor_address="12 Mohammed Ali Road",
            donor_city="Mumbai",
            donor_state="Maharashtra",
            donor_pincode="400003",
            amount=125000,
            donation_date=datetime(2024, 7, 15),
            certificate_number="KMWF-80G-2024-25-000001",
            financial_year="2024-25",
        )
        values.update(overrides)
        return CertificateData(**values)

    def test_contains_certificate_details(self):
        html = render_80g_certificate_html(self._data(), issued_on=datetime(2024, 7, 16))
        assert "KMWF-80G-2024-25-000001" in html
        assert "One Lakh Twenty Five Thousand Rupees Only" in html
        assert "INR 1,25,000" in html
        assert "16/07/2024" in html
        assert "SECTION 80G" in html

    def test_escapes_donor_input(self):
        html = render_80g_certificate_html(self._data(donor_name="<script>alert(1)</script>"))
        assert "<script>alert(1)</script>" not in html
        assert "&lt;script&gt;" in html
