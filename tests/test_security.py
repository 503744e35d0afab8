import pytest

from heritage_realtime.domain.entities import Principal, TargetSpec
from heritage_realtime.infrastructure.security import (
    create_access_token,
    decode_access_token,
    principal_from_claims,
)


def test_token_round_trip_normalises_the_role():
    token = create_access_token(Principal("admin-1", " Museum_Admin ", "museum-1"))

    principal = principal_from_claims(decode_access_token(token))

    assert principal == Principal("admin-1", "museum_admin", "museum-1")
    assert principal.has_role("museum_admin")


@pytest.mark.parametrize(
    "claims",
    [
        {"role": "visitor"},
        {"sub": "visitor-1"},
        {"sub": "visitor-1", "role": "   "},
    ],
)
def test_claims_without_identity_are_rejected(claims):
    with pytest.raises(ValueError):
        principal_from_claims(claims)


def test_target_roles_are_normalised():
    target = TargetSpec.build(roles=["Museum_Admin", "museum_admin", " SUPER_ADMIN"])

    assert target.roles == ("museum_admin", "super_admin")
