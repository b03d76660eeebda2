"""
Unit test for JWT authentication
"""

import pytest
from datetime import timedelta
import uuid
from jose import jwt

from backoffice.core.auth import create_access_token, decode_access_token
from backoffice.core.config import get_settings
from backoffice.models.user import StructuralRole
from backoffice.schemas.token import TokenPayload
from backoffice.services.principal import principal_from_claims

settings = get_settings()


def test_create_access_token():
    """Test JWT token creation"""
    user_id = uuid.uuid4()
    tenant_id = uuid.uuid4()
    point_id = uuid.uuid4()

    token = create_access_token(
        user_id=user_id,
        tenant_id=tenant_id,
        point_id=point_id,
        expires_delta=timedelta(hours=24)
    )

    assert token is not None
    assert isinstance(token, str)

    payload = decode_access_token(token)
    assert payload is not None
    assert payload["sub"] == str(user_id)
    assert payload["tenant_id"] == str(tenant_id)
    assert payload["point_id"] == str(point_id)
    assert payload["is_platform_owner"] is False
    assert "exp" in payload


def test_platform_owner_token():
    token = create_access_token(user_id=uuid.uuid4(), is_platform_owner=True)

    payload = decode_access_token(token)

    assert payload["tenant_id"] is None
    assert payload["is_platform_owner"] is True


def test_decode_invalid_token():
    """Test decoding a malformed token"""
    assert decode_access_token("invalid.token.string.here") is None


def test_decode_token_with_wrong_secret():
    token = jwt.encode({"sub": str(uuid.uuid4())}, "not-the-secret", algorithm=settings.JWT_ALGORITHM)

    assert decode_access_token(token) is None


def test_expired_token():
    """Test that expired tokens are rejected"""
    token = create_access_token(
        user_id=uuid.uuid4(),
        tenant_id=uuid.uuid4(),
        expires_delta=timedelta(hours=-1)
    )

    assert decode_access_token(token) is None


def test_token_payload_schema():
    user_id = uuid.uuid4()
    token = create_access_token(user_id=user_id, tenant_id=uuid.uuid4())

    payload = TokenPayload(**decode_access_token(token))

    assert payload.sub == str(user_id)
    assert payload.point_id is None
    assert payload.is_platform_owner is False


@pytest.mark.parametrize("tenant, point, owner, expected", [
    (False, False, True, StructuralRole.PLATFORM_OWNER),
    (True, False, False, StructuralRole.PARTNER),
    (True, True, False, StructuralRole.POINT),
    (False, False, False, StructuralRole.EMPLOYEE),
])
def test_claims_round_trip_to_principal(tenant, point, owner, expected):
    """Token claims resolve to the same structural role as the stored user"""
    user_id = uuid.uuid4()
    token = create_access_token(
        user_id=user_id,
        tenant_id=uuid.uuid4() if tenant else None,
        point_id=uuid.uuid4() if point else None,
        is_platform_owner=owner,
    )

    principal = principal_from_claims(decode_access_token(token))

    assert principal.user_id == user_id
    assert principal.structural_role == expected
