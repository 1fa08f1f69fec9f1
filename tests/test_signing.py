# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
"""
Test the signing core: canonical token order, nonces and HMAC-SHA512 signatures.
"""

import hashlib
import hmac
import re
from decimal import Decimal

import pytest

from dagpay_merchant import (
    CREATION_FIELDS,
    STATUS_FIELDS,
    MissingFieldError,
    generate_nonce,
    sign,
    tokens_for_creation,
    tokens_for_status,
    verify,
)
from dagpay_merchant.canonical import format_number, to_token


@pytest.fixture
def creation_record() -> dict:
    return {
        "userId": "user-1",
        "environmentId": "env-test",
        "currencyAmount": Decimal("0.1"),
        "currency": "DAG",
        "description": "iPhone X",
        "data": '{"sessionId": "foobar"}',
        "paymentId": "foobar",
        "date": "2018-05-29T12:00:00.000Z",
        "nonce": "A1B2C3D4E5F60718293A4B5C6D7E8F90",
    }


class TestTokenCanonicalizer:
    """Test canonical token sequences."""

    def test_creation_order(self, creation_record):
        assert tokens_for_creation(creation_record) == [
            "0.1",
            "DAG",
            "iPhone X",
            '{"sessionId": "foobar"}',
            "user-1",
            "foobar",
            "2018-05-29T12:00:00.000Z",
            "A1B2C3D4E5F60718293A4B5C6D7E8F90",
        ]

    def test_creation_ignores_environment_id(self, creation_record):
        before = tokens_for_creation(creation_record)
        creation_record["environmentId"] = "other"
        assert tokens_for_creation(creation_record) == before

    def test_status_order(self, sample_status):
        tokens = tokens_for_status(sample_status)
        assert len(tokens) == len(STATUS_FIELDS) == 22
        assert tokens[0] == sample_status["id"]
        assert tokens[3] == "12.3456"
        assert tokens[4] == "0.1"
        assert tokens[15] == "900"
        assert tokens[16] == "false"
        assert tokens[17] == "1"
        assert tokens[-2:] == [sample_status["date"], sample_status["nonce"]]

    def test_status_delivered_true(self, sample_status):
        sample_status["statusDelivered"] = True
        assert tokens_for_status(sample_status)[16] == "true"

    @pytest.mark.parametrize(
        "value,expected",
        [
            (1, "true"),
            ("yes", "true"),
            ("false", "true"),
            (0, "false"),
            (0.0, "false"),
            ("", "false"),
            (None, "false"),
        ],
    )
    def test_status_delivered_uses_truthiness(self, sample_status, value, expected):
        sample_status["statusDelivered"] = value
        assert tokens_for_status(sample_status)[STATUS_FIELDS.index("statusDelivered")] == expected

    def test_status_delivered_absent_is_false(self, sample_status):
        del sample_status["statusDelivered"]
        assert tokens_for_status(sample_status)[STATUS_FIELDS.index("statusDelivered")] == "false"

    def test_null_optional_field_is_empty_string(self, sample_status):
        with_date = tokens_for_status(sample_status)
        sample_status["statusLastAttemptDate"] = None
        without_date = tokens_for_status(sample_status)

        idx = STATUS_FIELDS.index("statusLastAttemptDate")
        assert without_date[idx] == ""
        assert with_date[idx] == "2018-05-29T12:00:05.000Z"
        assert "null" not in without_date
        diff = [i for i, (a, b) in enumerate(zip(with_date, without_date)) if a != b]
        assert diff == [idx]

    def test_absent_optional_field_is_empty_string(self, sample_status):
        del sample_status["statusDeliveredDate"]
        assert tokens_for_status(sample_status)[STATUS_FIELDS.index("statusDeliveredDate")] == ""

    @pytest.mark.parametrize("field", ["id", "state", "data", "nonce", "paymentUrl"])
    def test_missing_required_status_field(self, sample_status, field):
        del sample_status[field]
        with pytest.raises(MissingFieldError) as exc:
            tokens_for_status(sample_status)
        assert exc.value.field == field

    def test_null_required_field_is_missing(self, creation_record):
        creation_record["description"] = None
        with pytest.raises(MissingFieldError, match="description"):
            tokens_for_creation(creation_record)

    def test_empty_string_is_not_missing(self, creation_record):
        creation_record["data"] = ""
        assert tokens_for_creation(creation_record)[CREATION_FIELDS.index("data")] == ""

    def test_unsupported_type(self, creation_record):
        creation_record["data"] = {"sessionId": "foobar"}
        with pytest.raises(TypeError):
            tokens_for_creation(creation_record)

    @pytest.mark.parametrize(
        "value,expected",
        [
            (Decimal("0.1"), "0.1"),
            (Decimal("10.50"), "10.5"),
            (Decimal("100"), "100"),
            (Decimal("-2.50"), "-2.5"),
            (Decimal("0"), "0"),
            (Decimal("0.000001"), "0.000001"),
            (Decimal("1E-7"), "1e-7"),
            (Decimal("1E+21"), "1e+21"),
            (Decimal("123456.789"), "123456.789"),
        ],
    )
    def test_format_number(self, value, expected):
        assert format_number(value) == expected

    @pytest.mark.parametrize(
        "value,expected",
        [(1.0, "1"), (0.1, "0.1"), (12.3456, "12.3456"), (900, "900"), (True, "true"), (False, "false")],
    )
    def test_to_token(self, value, expected):
        assert to_token("x", value) == expected


class TestNonceGenerator:
    """Test nonce generation."""

    def test_format(self):
        nonce = generate_nonce(32)
        assert re.fullmatch(r"[0-9A-F]{32}", nonce)

    def test_default_length(self):
        assert len(generate_nonce()) == 32

    def test_consecutive_calls_differ(self):
        assert generate_nonce(32) != generate_nonce(32)

    @pytest.mark.parametrize("length", [1, 7, 15, 64])
    def test_exact_length(self, length):
        assert re.fullmatch(rf"[0-9A-F]{{{length}}}", generate_nonce(length))

    @pytest.mark.parametrize("length", [0, -1, True, "32", 3.0])
    def test_invalid_length(self, length):
        with pytest.raises(ValueError):
            generate_nonce(length)


class TestSignatureEngine:
    """Test HMAC-SHA512 signing and verification."""

    def test_matches_hmac_sha512_over_colon_join(self):
        tokens = ["0.1", "DAG", "iPhone X"]
        expected = hmac.new(b"topsecret", b"0.1:DAG:iPhone X", hashlib.sha512).hexdigest()
        assert sign(tokens, "topsecret") == expected

    def test_creation_known_answer(self, creation_record):
        # digest produced by the gateway's reference Node.js signer for the same record
        assert sign(tokens_for_creation(creation_record), "topsecret") == (
            "cf06c4fa743d038f483364aca432d6c881bed9dbed19bf59772ae8c3a6d7b9c0"
            "bd02622b09d948e68f036e5eace8e51fb3165d4768ce78ec7788456057255f62"
        )

    def test_status_known_answer(self, sample_status):
        assert sign(tokens_for_status(sample_status), "topsecret") == (
            "620cfeecf860b8388c69ef7763bf3faff232b3ec3725e0a78147305fa2f541b8"
            "09d1a4de42ac91e8b763a7ae98d0ab65b11f906351a19d1a2ea175da810418bf"
        )

    def test_digest_is_128_lowercase_hex(self, creation_record):
        signature = sign(tokens_for_creation(creation_record), "topsecret")
        assert re.fullmatch(r"[0-9a-f]{128}", signature)

    def test_round_trip(self, creation_record):
        tokens = tokens_for_creation(creation_record)
        assert verify(tokens, "topsecret", sign(tokens, "topsecret"))

    def test_wrong_secret(self, creation_record):
        tokens = tokens_for_creation(creation_record)
        assert not verify(tokens, "other", sign(tokens, "topsecret"))

    @pytest.mark.parametrize("provided", [None, "", 42, "abc", "é" * 128])
    def test_bad_provided_signature(self, creation_record, provided):
        assert not verify(tokens_for_creation(creation_record), "topsecret", provided)

    def test_truncated_signature_rejected(self, creation_record):
        tokens = tokens_for_creation(creation_record)
        assert not verify(tokens, "topsecret", sign(tokens, "topsecret")[:64])

    @pytest.mark.parametrize("field", CREATION_FIELDS)
    def test_single_field_change_changes_signature(self, creation_record, field):
        original = sign(tokens_for_creation(creation_record), "topsecret")
        value = creation_record[field]
        creation_record[field] = value + Decimal("0.01") if isinstance(value, Decimal) else value + "x"
        assert sign(tokens_for_creation(creation_record), "topsecret") != original

    def test_separator_is_not_escaped(self):
        assert sign(["a:b", "c"], "k") == sign(["a", "b:c"], "k")

    def test_utf8_secret_and_payload(self):
        expected = hmac.new("sécret".encode(), "Ünïcode:€".encode(), hashlib.sha512).hexdigest()
        assert sign(["Ünïcode", "€"], "sécret") == expected

    def test_empty_secret_refused(self):
        with pytest.raises(ValueError):
            sign(["a"], "")
