import base64
import os

os.environ.setdefault("ENV", "test")
os.environ["HOSTNAME"] = "littr.test"
os.environ.pop("HTTPS", None)
os.environ.setdefault("SESSION_SECRET", "test-session-secret")

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import bcrypt
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi.testclient import TestClient

from database import get_db_session
from domain.account import Account
from domain.content import Content
from main import app

ACCOUNT_KEY = "e33c4ff5" + "0" * 48
ITEM_KEY = "a1b2c3d4" + "1" * 48
REPLY_KEY = "b2c3d4e5" + "2" * 48


def mock_result(rows):
    """A stand-in for the result of AsyncSession.execute."""
    result = MagicMock()
    result.mappings.return_value.all.return_value = rows
    return result


@pytest.fixture(scope="session")
def private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_pem(private_key):
    return private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


@pytest.fixture(scope="session")
def public_der(private_key):
    return private_key.public_key().public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


@pytest.fixture
def account(public_der):
    return Account.model_validate({
        "id": 1,
        "key": ACCOUNT_KEY,
        "handle": "jdoe",
        "email": "jdoe@littr.test",
        "score": 120000,
        "flags": 0,
        "created_at": datetime(2018, 3, 1, tzinfo=timezone.utc),
        "updated_at": datetime(2018, 3, 2, tzinfo=timezone.utc),
        "metadata": {
            "password": bcrypt.hashpw(b"hunter2", bcrypt.gensalt()).decode("utf-8"),
            "key": {
                "id": f"http://littr.test/api/accounts/{ACCOUNT_KEY[:8]}#main-key",
                "public": base64.b64encode(public_der).decode("ascii"),
            },
        },
    })


@pytest.fixture
def item():
    return Content(
        id=10,
        key=ITEM_KEY,
        title="Some link",
        mime_type="application/url",
        data=b"https://example.com/some/article",
        score=35000,
        submitted_at=datetime(2018, 3, 4, 12, 30, tzinfo=timezone.utc),
        submitted_by=1,
        handle="jdoe",
        path="",
    )


@pytest.fixture
def reply():
    return Content(
        id=11,
        key=REPLY_KEY,
        title="",
        mime_type="text/plain",
        data=b"I disagree",
        score=-20000,
        submitted_at=datetime(2018, 3, 5, 8, 0, tzinfo=timezone.utc),
        submitted_by=1,
        handle="jdoe",
        path=ITEM_KEY,
    )


@pytest.fixture
def db():
    session = MagicMock()
    session.execute = AsyncMock(return_value=mock_result([]))
    return session


@pytest.fixture
def client(db):
    async def override_db_session():
        yield db

    app.dependency_overrides[get_db_session] = override_db_session
    yield TestClient(app)
    app.dependency_overrides.clear()
