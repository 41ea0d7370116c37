"""Tests for the emergency access token lifecycle."""

import asyncio
from datetime import timedelta
from urllib.parse import parse_qs, urlparse

import pytest

from carevault.database import parse_timestamp, utcnow
from carevault.errors import AuthenticationRequired, PermissionDenied, ValidationFailure
from carevault.services.access_tokens import (
    access_url,
    generate_token,
    has_active_access,
    is_well_formed,
    use_token,
    validate_token,
)


class TestGenerateToken:
    async def test_issues_token_with_expiry(self, patient):
        before = utcnow()
        issued = await generate_token(patient)
        expires = parse_timestamp(issued.expires_at)
        assert is_well_formed(issued.token)
        assert before + timedelta(minutes=29) < expires <= utcnow() + timedelta(minutes=30)

    async def test_custom_ttl(self, patient):
        issued = await generate_token(patient, ttl_minutes=5)
        expires = parse_timestamp(issued.expires_at)
        assert expires <= utcnow() + timedelta(minutes=5)

    async def test_access_url_carries_token(self, patient):
        issued = await generate_token(patient)
        parsed = urlparse(issued.access_url)
        assert parsed.path == "/doctor-access"
        assert parse_qs(parsed.query)["token"] == [issued.token]
        assert issued.access_url == access_url(issued.token)

    async def test_tokens_are_unique(self, patient):
        tokens = {(await generate_token(patient)).token for _ in range(20)}
        assert len(tokens) == 20

    async def test_requires_authentication(self, db):
        with pytest.raises(AuthenticationRequired):
            await generate_token(None)

    async def test_doctor_cannot_issue(self, doctor):
        with pytest.raises(PermissionDenied):
            await generate_token(doctor)

    @pytest.mark.parametrize("ttl", [0, -5, 24 * 60 + 1])
    async def test_ttl_out_of_range(self, patient, ttl):
        with pytest.raises(ValidationFailure):
            await generate_token(patient, ttl_minutes=ttl)


class TestValidateToken:
    async def test_fresh_token_is_valid(self, patient):
        issued = await generate_token(patient)
        result = await validate_token(issued.token)
        assert result.valid
        assert result.patient_id == patient.user_id
        assert result.expires_at == issued.expires_at
        assert result.used_by is None

    async def test_expired_token(self, patient):
        issued = await generate_token(patient, ttl_minutes=1)
        later = utcnow() + timedelta(minutes=2)
        assert (await validate_token(issued.token, now=later)).valid is False

    async def test_unknown_token(self, db):
        assert (await validate_token("A" * 43)).valid is False

    @pytest.mark.parametrize("token", ["", "short", "has spaces in it and is long enough", "x" * 200, "abc$%^&*()" * 3])
    async def test_malformed_token(self, db, token):
        assert (await validate_token(token)).valid is False

    async def test_used_token_still_validates_until_expiry(self, patient, doctor):
        issued = await generate_token(patient)
        assert await use_token(issued.token, doctor)
        result = await validate_token(issued.token)
        assert result.valid
        assert result.used_by == doctor.user_id


class TestUseToken:
    async def test_first_use_succeeds(self, patient, doctor, db):
        issued = await generate_token(patient)
        assert await use_token(issued.token, doctor) is True
        row = await db.fetch_one(
            "SELECT used_by, used_at FROM access_tokens WHERE token = ?", (issued.token,)
        )
        assert row["used_by"] == doctor.user_id
        assert row["used_at"] is not None

    async def test_second_doctor_rejected(self, patient, doctor, other_doctor):
        issued = await generate_token(patient)
        assert await use_token(issued.token, doctor) is True
        assert await use_token(issued.token, other_doctor) is False

    async def test_same_doctor_can_reopen(self, patient, doctor, db):
        issued = await generate_token(patient)
        assert await use_token(issued.token, doctor)
        first = await db.fetch_one("SELECT used_at FROM access_tokens WHERE token = ?", (issued.token,))
        assert await use_token(issued.token, doctor)
        second = await db.fetch_one("SELECT used_at FROM access_tokens WHERE token = ?", (issued.token,))
        assert first["used_at"] == second["used_at"]

    async def test_concurrent_consumers_single_winner(self, patient, doctor, other_doctor):
        issued = await generate_token(patient)
        results = await asyncio.gather(
            use_token(issued.token, doctor),
            use_token(issued.token, other_doctor),
        )
        assert sorted(results) == [False, True]

    async def test_expired_token_cannot_be_used(self, patient, doctor):
        issued = await generate_token(patient, ttl_minutes=1)
        later = utcnow() + timedelta(minutes=2)
        assert await use_token(issued.token, doctor, now=later) is False

    async def test_unknown_token(self, doctor):
        assert await use_token("B" * 43, doctor) is False

    async def test_requires_authentication(self, patient):
        issued = await generate_token(patient)
        with pytest.raises(AuthenticationRequired):
            await use_token(issued.token, None)


class TestActiveAccess:
    async def test_granted_after_use(self, patient, doctor):
        issued = await generate_token(patient)
        assert await has_active_access(patient.user_id, doctor.user_id) is False
        await use_token(issued.token, doctor)
        assert await has_active_access(patient.user_id, doctor.user_id) is True

    async def test_only_for_consuming_doctor(self, patient, doctor, other_doctor):
        issued = await generate_token(patient)
        await use_token(issued.token, doctor)
        assert await has_active_access(patient.user_id, other_doctor.user_id) is False

    async def test_scoped_to_patient(self, patient, doctor):
        issued = await generate_token(patient)
        await use_token(issued.token, doctor)
        assert await has_active_access("patient-2", doctor.user_id) is False

    async def test_ends_at_expiry(self, patient, doctor):
        issued = await generate_token(patient, ttl_minutes=1)
        await use_token(issued.token, doctor)
        later = utcnow() + timedelta(minutes=2)
        assert await has_active_access(patient.user_id, doctor.user_id, now=later) is False
