from typing import Any, Mapping, Sequence
from unittest.mock import MagicMock

import pytest

from app.core.auth import Principal
from app.core.config import Settings
from app.core.context import RequestContext
from app.core.errors import PermissionDeniedError, UnauthenticatedError
from app.core.logging import get_logger
from app.core.payment import PaymentRequest
from app.core.transaction import RequestTx


class FakeMailer:
    def __init__(self):
        self.sent = []

    def send(self, headers: Mapping[str, Sequence[str]], template: str, data: Mapping[str, Any], to: Sequence[str]) -> None:
        self.sent.append({"headers": headers, "template": template, "data": data, "to": list(to)})


class FakeGateway:
    def __init__(self):
        self.requests: list[PaymentRequest] = []

    def encrypt(self, request: PaymentRequest) -> tuple[str, str]:
        self.requests.append(request)
        return f"data-{request.order_id}", "key"


class FakeVerifier:
    """Accepts "good" (groups: primary) and "user" (no groups) tokens."""

    def __init__(self):
        self.calls = []

    def verify(self, token: str, groups: Sequence[str]) -> Principal:
        self.calls.append((token, list(groups)))
        if token == "good":
            principal = Principal(subject="admin", groups=("primary",))
        elif token == "user":
            principal = Principal(subject="user")
        else:
            raise UnauthenticatedError("Invalid token")
        if groups and not set(groups) & set(principal.groups):
            raise PermissionDeniedError("User not in allowed groups")
        return principal


@pytest.fixture
def settings():
    return Settings(
        database_url="postgresql://localhost/unused",
        shop_name="Test Shop",
        mail_from="shop@example.com",
        mail_to=["owner@example.com"],
    )


@pytest.fixture
def session():
    return MagicMock(name="session")


@pytest.fixture
def session_factory(session):
    return MagicMock(name="session_factory", return_value=session)


@pytest.fixture
def ctx():
    return RequestContext()


@pytest.fixture
def rt(session_factory, ctx):
    return RequestTx(session_factory, ctx, get_logger("tests"))


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def verifier():
    return FakeVerifier()
