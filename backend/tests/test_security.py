import uuid
from datetime import timedelta

from app.api.deps import user_id_from_token
from app.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)


def test_password_round_trip():
    hashed = hash_password("s3cret-pass")

    assert hashed != "s3cret-pass"
    assert verify_password("s3cret-pass", hashed)
    assert not verify_password("wrong-pass", hashed)


def test_verify_password_handles_garbage_hash():
    assert verify_password("anything", "not-an-argon2-hash") is False


def test_tokens_carry_their_type():
    user_id = uuid.uuid4()

    access = decode_token(create_access_token({"sub": str(user_id)}))
    refresh = decode_token(create_refresh_token({"sub": str(user_id)}))

    assert access["type"] == "access"
    assert refresh["type"] == "refresh"
    assert access["sub"] == str(user_id)


def test_expired_token_is_rejected():
    token = create_access_token({"sub": str(uuid.uuid4())}, expires_delta=timedelta(seconds=-1))
    assert decode_token(token) is None


def test_user_id_from_token_checks_type_and_subject():
    user_id = uuid.uuid4()

    assert user_id_from_token(create_access_token({"sub": str(user_id)})) == user_id
    assert user_id_from_token(create_refresh_token({"sub": str(user_id)})) is None
    assert user_id_from_token(create_access_token({"sub": "not-a-uuid"})) is None
    assert user_id_from_token("garbage") is None
