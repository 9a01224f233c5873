"""
Tests for the structural identity codec.

Covers encoding with padding rules, length-only decoding, strict validation
and prefix inspection.
"""

import pytest
import re
from datetime import datetime, timedelta, timezone

from app.exceptions import ValidationError
from app.services.identity_codec import (
    IDENTITY_LAYOUT,
    IDENTITY_LENGTH,
    LOCATION_PREFIX_LENGTH,
    bulk_validate,
    decode,
    encode,
    extract_sequence,
    format_display,
    generate_uid,
    location_prefix,
    location_prefix_info,
    timestamp_sequence,
    type_code_for,
    validate_identity_number,
    validate_location,
)
from tests.factories import location_descriptor


class TestLayout:
    """Tests for the fixed-width field table."""

    def test_total_length(self):
        """Test the layout spans 17 characters with a 10-character prefix."""
        assert IDENTITY_LENGTH == 17
        assert LOCATION_PREFIX_LENGTH == 10

    def test_fields_are_contiguous(self):
        """Test each field starts where the previous one ends."""
        offset = 0
        for field in IDENTITY_LAYOUT:
            assert field.offset == offset
            offset = field.end


class TestEncode:
    """Tests for building identity numbers."""

    def test_encode_residential(self):
        """Test KA/01/BANG/BG residential with sequence 7."""
        identity = encode(location_descriptor(), 7)

        assert identity.structural_identity_number == "KA01BANGBG0000701"
        assert identity.formatted_display == "KA-01-BANG-BG-00007-01"
        assert identity.components.structure_sequence == "00007"
        assert identity.components.type_name == "residential"

    def test_short_codes_are_padded(self):
        """Test city and location pad with X and district pads with 0."""
        identity = encode(
            location_descriptor(state_code="ka", district_code="7", city_code="my", location_code="a"),
            42,
        )
        assert identity.structural_identity_number == "KA07MYXXAX0004201"

    def test_type_codes(self):
        """Test every structure type maps to its two digit code."""
        assert type_code_for("residential") == "01"
        assert type_code_for("commercial") == "02"
        assert type_code_for("educational") == "03"
        assert type_code_for("hospital") == "04"
        assert type_code_for("industrial") == "05"

    def test_unknown_type(self):
        """Test an unknown structure type is rejected."""
        with pytest.raises(ValidationError):
            type_code_for("warehouse")

    @pytest.mark.parametrize("sequence", [-1, 100000])
    def test_sequence_out_of_range(self, sequence):
        """Test sequences outside 0..99999 are rejected."""
        with pytest.raises(ValidationError):
            encode(location_descriptor(), sequence)

    def test_generated_at(self):
        """Test the generation time is passed through."""
        now = datetime(2026, 2, 2, 8, 0)
        assert encode(location_descriptor(), 1, now=now).generated_at == now

    def test_location_prefix(self):
        """Test the prefix is the first ten characters of the number."""
        descriptor = location_descriptor()
        prefix = location_prefix(descriptor)

        assert prefix == "KA01BANGBG"
        assert encode(descriptor, 3).structural_identity_number.startswith(prefix)


class TestValidateLocation:
    """Tests for descriptor validation before numbering."""

    def test_valid(self):
        """Test a well-formed descriptor passes."""
        validate_location(location_descriptor())

    @pytest.mark.parametrize(
        "overrides",
        [
            {"state_code": "XX"},
            {"district_code": "1a"},
            {"city_code": "B4NG"},
            {"location_code": "B1"},
        ],
    )
    def test_invalid(self, overrides):
        """Test each malformed code is rejected."""
        with pytest.raises(ValidationError):
            validate_location(location_descriptor(**overrides))


class TestDecode:
    """Tests for slicing identity numbers."""

    def test_round_trip(self):
        """Test decode returns the components encode produced."""
        identity = encode(location_descriptor(type_of_structure="hospital"), 12345)

        assert decode(identity.structural_identity_number) == identity.components

    def test_wrong_length(self):
        """Test anything but 17 characters is rejected."""
        with pytest.raises(ValidationError):
            decode("TOO_SHORT")
        with pytest.raises(ValidationError):
            decode("KA01BANGBG00007011")

    def test_no_table_checks(self):
        """Test any 17 character string decodes positionally."""
        components = decode("ZZ99!!!!??ABCDEFG")

        assert components.state_code == "ZZ"
        assert components.district_code == "99"
        assert components.city_code == "!!!!"
        assert components.location_code == "??"
        assert components.structure_sequence == "ABCDE"
        assert components.type_code == "FG"
        assert components.type_name is None

    def test_extract_sequence(self):
        """Test the sequence field is read as an integer."""
        assert extract_sequence("KA01BANGBG0004201") == 42

    def test_format_display(self):
        """Test the dash separated rendering."""
        assert format_display("MH12PUNEKT0010002") == "MH-12-PUNE-KT-00100-02"


class TestValidateIdentityNumber:
    """Tests for strict identity number validation."""

    def test_valid(self):
        """Test a well-formed number with known codes passes."""
        assert validate_identity_number("KA01BANGBG0000701") is True

    @pytest.mark.parametrize(
        "number",
        [
            "ZZ01BANGBG0000701",
            "KA01BANGBG0000709",
            "ka01bangbg0000701",
            "KA01BANGBG00007",
            "KA0XBANGBG0000701",
        ],
    )
    def test_invalid(self, number):
        """Test unknown codes, lowercase and bad lengths are rejected."""
        assert validate_identity_number(number) is False

    def test_bulk_validate(self):
        """Test one result per number, in order, with parsed components for valid ones."""
        results = bulk_validate(["KA01BANGBG0000701", "ZZ01BANGBG0000701", "short"])

        assert [r.is_valid for r in results] == [True, False, False]
        assert results[0].parsed_components.city_code == "BANG"
        assert results[1].error == "Invalid state code: ZZ"
        assert results[2].parsed_components is None


class TestLocationPrefixInfo:
    """Tests for prefix inspection."""

    def test_district_prefix(self):
        """Test a 4 character prefix names a district."""
        info = location_prefix_info("KA01")

        assert info.level == "district"
        assert info.is_complete is False
        assert info.city_code == "XXXX"
        assert info.description == "State: KA, District: 01"

    def test_complete_prefix(self):
        """Test a 10 character prefix is a complete location."""
        info = location_prefix_info("KA01BANGBG")

        assert info.level == "location"
        assert info.is_complete is True
        assert info.description == "State: KA, District: 01, City: BANG, Location: BG"

    def test_too_short(self):
        """Test prefixes under 4 characters are rejected."""
        with pytest.raises(ValidationError):
            location_prefix_info("KA0")


class TestFallbacks:
    """Tests for the timestamp sequence and draft UIDs."""

    def test_timestamp_sequence(self):
        """Test the last five digits of the epoch milliseconds are used."""
        moment = datetime(2026, 1, 1, tzinfo=timezone.utc) + timedelta(seconds=87)
        assert timestamp_sequence(moment) == "87000"

    def test_timestamp_sequence_is_padded(self):
        """Test the pseudo-sequence is always five digits."""
        assert timestamp_sequence(datetime(2026, 1, 1, tzinfo=timezone.utc)) == "00000"

    def test_generate_uid(self):
        """Test draft UIDs carry the date and a three digit suffix."""
        uid = generate_uid(datetime(2026, 10, 18))
        assert re.match(r"^UID-20261018-\d{3}$", uid)
