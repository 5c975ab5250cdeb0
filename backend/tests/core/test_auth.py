from datetime import timedelta

import jwt
import pytest

from slotbook.auth import create_access_token, decode_access_token, principal_from_claims
from slotbook.core.enums import RoleName


def test_token_round_trips_subject_and_roles():
    token = create_access_token("01HUSER0000000000000000000", roles=["Provider", "client"])

    principal = principal_from_claims(decode_access_token(token))

    assert principal.id == "01HUSER0000000000000000000"
    assert principal.is_provider
    assert principal.has_role(RoleName.CLIENT)


def test_expired_token_is_rejected():
    token = create_access_token("01HUSER0000000000000000000", expires_delta=timedelta(seconds=-1))

    with pytest.raises(jwt.ExpiredSignatureError):
        decode_access_token(token)


@pytest.mark.parametrize("payload", [{}, {"sub": ""}, {"sub": 42}])
def test_claims_without_subject_give_no_principal(payload):
    assert principal_from_claims(payload) is None


def test_single_role_string_is_accepted():
    principal = principal_from_claims({"sub": "u1", "roles": "provider"})

    assert principal.roles == frozenset({"provider"})
