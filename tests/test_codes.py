"""Tests for verification and account code generation."""
import re

import pytest

from rollcall.services.codes import MAX_CODE_ATTEMPTS, generate_account_code, generate_code
from rollcall.services.exceptions import ConflictError


class TestGenerateCode:
    def test_exact_length_and_digits_only(self):
        for length in (1, 4, 6, 10):
            code = generate_code(length)
            assert len(code) == length
            assert code.isdigit()

    def test_rejects_non_positive_length(self):
        with pytest.raises(ValueError):
            generate_code(0)

    def test_codes_vary(self):
        codes = {generate_code(6) for _ in range(50)}
        assert len(codes) > 1


class TestGenerateAccountCode:
    def test_format_is_prefix_plus_fixed_width_number(self):
        code = generate_account_code("S", lambda c: False, digits=6)
        assert re.fullmatch(r"S[1-9]\d{5}", code)

    def test_retries_until_code_is_free(self):
        seen = []

        def exists(candidate):
            seen.append(candidate)
            return len(seen) < 4

        code = generate_account_code("U", exists)
        assert len(seen) == 4
        assert code == seen[-1]

    def test_gives_up_when_every_candidate_is_taken(self):
        calls = []

        def exists(candidate):
            calls.append(candidate)
            return True

        with pytest.raises(ConflictError):
            generate_account_code("P", exists)
        assert len(calls) == MAX_CODE_ATTEMPTS

    def test_never_returns_an_existing_code(self):
        taken = set()
        for _ in range(200):
            code = generate_account_code("U", taken.__contains__, digits=3)
            assert code not in taken
            taken.add(code)
