from datetime import timedelta
from pathlib import Path

import pytest

from backend.src.services import config as config_module
from backend.src.services.auth import AuthError, AuthService


@pytest.fixture(autouse=True)
def restore_config_cache():
    config_module.reload_config()
    yield
    config_module.reload_config()


def test_auth_service_requires_secret(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.delenv("JWT_SECRET_KEY", raising=False)
    monkeypatch.delenv("ENVIRONMENT", raising=False)
    monkeypatch.setenv("DATA_DIR", str(tmp_path))

    cfg = config_module.reload_config()
    service = AuthService(config=cfg)

    with pytest.raises(AuthError) as excinfo:
        service.create_jwt("user-123")

    assert excinfo.value.error == "missing_jwt_secret"


def test_auth_service_signs_and_validates_with_secret(monkeypatch, tmp_path: Path) -> None:
    secret = "a-secure-secret-value-123"
    monkeypatch.setenv("JWT_SECRET_KEY", secret)
    monkeypatch.setenv("DATA_DIR", str(tmp_path))

    cfg = config_module.reload_config()
    service = AuthService(config=cfg)

    token = service.create_jwt("user-123")
    payload = service.validate_jwt(token)

    assert payload.sub == "user-123"
    assert payload.purpose is None


def test_expired_token_is_rejected(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("JWT_SECRET_KEY", "a-secure-secret-value-123")
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    service = AuthService(config=config_module.reload_config())

    token = service.create_jwt("user-123", expires_in=timedelta(seconds=-10))

    with pytest.raises(AuthError) as excinfo:
        service.validate_jwt(token)
    assert excinfo.value.error == "token_expired"


def test_confirmation_token_round_trip(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("JWT_SECRET_KEY", "a-secure-secret-value-123")
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    service = AuthService(config=config_module.reload_config())

    token = service.create_confirmation_token("user-123")

    assert service.verify_confirmation_token(token) == "user-123"


def test_confirmation_token_cannot_access_api(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("JWT_SECRET_KEY", "a-secure-secret-value-123")
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    service = AuthService(config=config_module.reload_config())

    token = service.create_confirmation_token("user-123")

    with pytest.raises(AuthError) as excinfo:
        service.validate_jwt(token)
    assert excinfo.value.error == "invalid_token"


def test_access_token_is_not_a_confirmation_token(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("JWT_SECRET_KEY", "a-secure-secret-value-123")
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    service = AuthService(config=config_module.reload_config())

    with pytest.raises(AuthError) as excinfo:
        service.verify_confirmation_token(service.create_jwt("user-123"))
    assert excinfo.value.status_code == 400
