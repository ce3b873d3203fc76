import re

from saverly.services.code_generator import (
    DISPLAY_CODE_ALPHABET, generate_codes, generate_display_code, generate_scan_code,
    generate_verification_code,
)

SCAN_CODE = re.compile(r"^SAV-[0-9A-Z]+-[0-9A-Z]{9}$")


def test_scan_code_format():
    for _ in range(50):
        assert SCAN_CODE.match(generate_scan_code())


def test_scan_code_embeds_timestamp_in_base36():
    code = generate_scan_code(1705312800000)
    assert int(code.split("-")[1], 36) == 1705312800000


def test_display_code_is_eight_uppercase_alphanumerics():
    for _ in range(50):
        code = generate_display_code()
        assert len(code) == 8
        assert all(ch in DISPLAY_CODE_ALPHABET for ch in code)


def test_verification_code_is_six_digits():
    for _ in range(200):
        code = generate_verification_code()
        assert code.isdigit()
        assert 100000 <= int(code) <= 999999


def test_codes_are_independent_per_call():
    codes = {generate_codes().qr_code for _ in range(100)}
    assert len(codes) == 100
