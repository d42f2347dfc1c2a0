import importlib
import pathlib
import sys
from datetime import datetime, timezone

from jose import jwt

# Allow importing the familybank package
sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))


def test_access_token_expiration_respects_env(monkeypatch):
    monkeypatch.setenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1")
    import familybank.auth as auth
    importlib.reload(auth)

    token = auth.token_for("parent", 7)
    decoded = jwt.decode(token, auth.SECRET_KEY, algorithms=[auth.ALGORITHM])
    assert decoded["sub"] == "parent:7"
    exp = datetime.fromtimestamp(decoded["exp"], timezone.utc)
    delta = exp - datetime.now(timezone.utc)
    assert 45 <= delta.total_seconds() <= 75

    monkeypatch.delenv("ACCESS_TOKEN_EXPIRE_MINUTES", raising=False)
    importlib.reload(auth)


def test_password_hashing_round_trip():
    from familybank.auth import get_password_hash, verify_password

    hashed = get_password_hash("kidpass")
    assert hashed != "kidpass"
    assert verify_password("kidpass", hashed)
    assert not verify_password("wrong", hashed)
