"""
Tests for SDS encoding and decoding.
"""

import pytest
from tetrapy.parsers.sds import (
    get_tsi,
    get_issi,
    decode_lip,
    decode_state,
    decode_text_sds,
    decode_simple_text_sds,
    decode_ack_sds,
    text_sds_reference,
    create_ack_payload,
    create_text_payload,
    create_sds,
    create_raw_sds,
    create_cfm_sds,
)
from tetrapy.parsers.textcoding import (
    CODING_7BIT,
    GSM7_BASIC,
    GSM7_EXTENDED,
    decode_gsm7,
    decode_text,
    encode_text,
    gsm7_length,
    gsm7_septets,
    pack_septets,
    text_bits,
    unpack_septets,
)
from tetrapy.exceptions import PeiParseError, SdsError

# LIP report: 45.0 N, 45.0 E, reason "DMO ON"
LIP_45_45_DMO_ON = "0A02000002000000000080"


class TestTsi:
    """Tests for identity normalization."""

    def test_short_issi_gets_own_network(self):
        assert get_tsi("23404", "0901", "16383") == "09011638300023404"

    def test_full_tsi_unchanged(self):
        assert get_tsi("09011638300023404", "0901", "16383") == "09011638300023404"

    def test_three_digit_mcc(self):
        """Test a TSI whose MCC has no leading zero."""
        assert get_tsi("2621234500000042", "0901", "16383") == "02621234500000042"

    def test_not_numeric(self):
        with pytest.raises(PeiParseError):
            get_tsi("DL1ABC", "0901", "16383")

    def test_get_issi(self):
        assert get_issi("09011638300023404") == "23404"


class TestDecode:
    """Tests for payload decoders."""

    def test_decode_lip(self):
        lip = decode_lip(LIP_45_45_DMO_ON)

        assert lip.latitude == pytest.approx(45.0)
        assert lip.longitude == pytest.approx(45.0)
        assert lip.reason_for_sending == 8
        assert lip.pdu_type == 0

    def test_decode_lip_southern_western(self):
        """Test negative coordinates (two's complement fields)."""
        # longitude -45.0 = 0x1C00000 (25 bit), latitude -45.0 = 0xC00000 (24 bit)
        lon = 0x1C00000
        lat = 0xC00000
        bits = (lon << 51) | (lat << 27)
        payload = "0A" + f"{bits:020X}"

        lip = decode_lip(payload)

        assert lip.longitude == pytest.approx(-45.0)
        assert lip.latitude == pytest.approx(-45.0)

    def test_decode_lip_too_short(self):
        with pytest.raises(PeiParseError):
            decode_lip("0A0200")

    def test_decode_state(self):
        assert decode_state("8002") == 32770
        assert decode_state("FFFF") == 65535

    def test_decode_state_out_of_range(self):
        with pytest.raises(PeiParseError):
            decode_state("7FFF")

    def test_decode_text_sds(self):
        payload = "82040801476A61746A616A676A61"

        assert text_sds_reference(payload) == 8
        assert decode_text_sds(payload) == "Gjatjajgja"

    def test_decode_text_sds_without_text(self):
        assert decode_text_sds("82040801") == ""

    def test_decode_simple_text(self):
        assert decode_simple_text_sds("0201476A61") == "Gja"

    def test_decode_ack(self):
        assert decode_ack_sds("82100008") == 8

    def test_decode_ack_too_short(self):
        with pytest.raises(PeiParseError):
            decode_ack_sds("821000")


class TestEncode:
    """Tests for building +CMGS sequences."""

    def test_create_sds(self):
        cmd = create_sds("23404", "Hi", 1)

        assert cmd == "AT+CTSDS=12,0,0,0,0\r\nAT+CMGS=23404,48\r\n820401014869\x1a"

    def test_create_text_payload_reference_wraps(self):
        assert create_text_payload("A", 0x1FF) == "8204FF0141"

    def test_create_text_too_long(self):
        with pytest.raises(SdsError):
            create_sds("23404", "x" * 121, 1)

    def test_create_raw_sds(self):
        cmd = create_raw_sds("23404", "8204010148656c6c6f")

        assert cmd.endswith("8204010148656C6C6F\x1a")
        assert "AT+CMGS=23404,72\r\n" in cmd

    def test_create_raw_sds_not_hex(self):
        with pytest.raises(SdsError):
            create_raw_sds("23404", "hello")

    def test_create_cfm_sds(self):
        payload = create_ack_payload(8)
        assert payload == "82100008"

        cmd = create_cfm_sds("23404", payload)
        assert cmd == "AT+CTSDS=12,0,0,0,0\r\nAT+CMGS=23404,32\r\n82100008\x1a"

    def test_create_cfm_sds_rejects_text(self):
        with pytest.raises(SdsError):
            create_cfm_sds("23404", "8204010148")

    def test_invalid_destination(self):
        with pytest.raises(SdsError):
            create_sds("123456789", "Hi", 1)


class TestTextCoding:
    """Tests for text coding schemes."""

    def test_gsm7_known_vector(self):
        assert encode_text("hello", CODING_7BIT) == "E8329BFD06"
        assert decode_gsm7(bytes.fromhex("E8329BFD06")) == "hello"

    def test_gsm7_extended_character(self):
        assert gsm7_length("[1]") == 5
        encoded = encode_text("[1]", CODING_7BIT)
        assert decode_text(encoded, CODING_7BIT, text_bits("[1]", CODING_7BIT)) == "[1]"

    def test_gsm7_unsupported_character(self):
        with pytest.raises(SdsError):
            gsm7_septets("中")

    @pytest.mark.parametrize("length", range(1, 17))
    def test_gsm7_trailing_at_sign(self, length):
        """Test a final '@' (septet 0) survives when the bit length is known."""
        text = "A" * (length - 1) + "@"
        encoded = encode_text(text, CODING_7BIT)

        assert decode_text(encoded, CODING_7BIT, 7 * length) == text

    def test_gsm7_septet_count_checked(self):
        with pytest.raises(SdsError):
            decode_gsm7(bytes.fromhex("E8"), septets=2)

    def test_gsm7_whole_alphabet_round_trip(self):
        text = "".join(c for c in GSM7_BASIC if c != "\x1b") + "".join(GSM7_EXTENDED)
        encoded = encode_text(text, CODING_7BIT)

        assert decode_text(encoded, CODING_7BIT, text_bits(text, CODING_7BIT)) == text

    def test_latin1_whole_alphabet_round_trip(self):
        text = "".join(chr(i) for i in range(256))

        assert decode_text(encode_text(text)) == text

    def test_pack_septets(self):
        assert pack_septets([]) == b""
        assert unpack_septets(pack_septets([0x7F, 0, 0x55]), 3) == [0x7F, 0, 0x55]

    def test_latin1(self):
        assert encode_text("Bear:90°") == "426561723A3930B0"
        assert decode_text("426561723A3930B0") == "Bear:90°"

    def test_latin1_unsupported_character(self):
        with pytest.raises(SdsError):
            encode_text("€")

    def test_odd_hex_digit_ignored(self):
        assert decode_text("4869F") == "Hi"

    def test_not_hex(self):
        with pytest.raises(SdsError):
            decode_text("ZZ")

    def test_create_sds_7bit_exact_length(self):
        """Test 7-bit text is announced with its exact bit length."""
        cmd = create_sds("23404", "hello", 1, CODING_7BIT)
        assert cmd == "AT+CTSDS=12,0,0,0,0\r\nAT+CMGS=23404,67\r\n82040100E8329BFD06\x1a"

    def test_decode_text_sds_uses_header_length(self):
        payload = "82040100" + encode_text("ABCDEFG@", CODING_7BIT)

        assert decode_text_sds(payload, 32 + 56) == "ABCDEFG@"

    def test_decode_simple_text_sds_7bit(self):
        payload = "0200" + encode_text("hello", CODING_7BIT)

        assert decode_simple_text_sds(payload, 16 + 35) == "hello"
