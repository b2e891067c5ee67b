from backend.app.security.hashing import check_password_policy, get_password_hash, verify_password
from backend.app.security.tokens import generate_session_token, hash_token


def test_password_hash_roundtrip():
    hashed = get_password_hash("password123", rounds=4)
    assert hashed != "password123"
    assert hashed.startswith("$2")
    assert verify_password("password123", hashed)
    assert not verify_password("password124", hashed)


def test_verify_password_with_malformed_hash():
    assert not verify_password("password123", "not-a-bcrypt-hash")


def test_password_policy():
    assert check_password_policy("password123", 8) == []
    assert len(check_password_policy("short", 8)) == 1
    assert len(check_password_policy(" " * 10, 8)) == 1
    assert len(check_password_policy("é" * 40, 8)) == 1


def test_session_tokens():
    token = generate_session_token()
    assert len(token) == 64
    assert token != generate_session_token()
    assert hash_token(token) == hash_token(token)
    assert hash_token(token) != token
    assert len(hash_token(token)) == 64
