"""
Tests for token handling and settings loading.
"""

import json

import jwt as pyjwt
import pytest
from pydantic import ValidationError as SettingsError

from assessly.common.auth import (
    ExpiredTokenError,
    InvalidTokenError,
    JWTConfig,
    create_access_token,
    get_jwt_config,
    set_jwt_config,
    validate_token,
)
from assessly.common.auth.jwt import token_roles
from assessly.config import load_settings


@pytest.fixture
def jwt_config():
    previous = get_jwt_config()
    config = JWTConfig(secret_key="unit-test-secret")
    set_jwt_config(config)
    yield config
    set_jwt_config(previous)


class TestTokens:
    def test_round_trip_claims(self, jwt_config):
        token = create_access_token("alice", roles=["student"], permissions=["test.take"])
        payload = validate_token(token)
        assert payload["sub"] == "alice"
        assert payload["roles"] == ["student"]
        assert payload["permissions"] == ["test.take"]
        assert payload["iss"] == jwt_config.token_issuer

    def test_expired(self, jwt_config):
        token = create_access_token("alice", expires_in=-1)
        with pytest.raises(ExpiredTokenError):
            validate_token(token)

    def test_wrong_secret(self, jwt_config):
        token = create_access_token("alice")
        set_jwt_config(JWTConfig(secret_key="another-secret"))
        with pytest.raises(InvalidTokenError):
            validate_token(token)

    def test_wrong_type(self, jwt_config):
        token = create_access_token("alice", additional_claims={"type": "refresh"})
        with pytest.raises(InvalidTokenError):
            validate_token(token)

    def test_missing_subject(self, jwt_config):
        token = pyjwt.encode({"type": "access"}, jwt_config.secret_key, algorithm=jwt_config.algorithm)
        with pytest.raises(InvalidTokenError):
            validate_token(token)

    @pytest.mark.parametrize("payload,expected", [
        ({"roles": ["a", "b"]}, ["a", "b"]),
        ({"roles": "a"}, ["a"]),
        ({"role": "instructor"}, ["instructor"]),
        ({}, []),
    ])
    def test_role_claims(self, payload, expected):
        assert token_roles(payload) == expected


class TestSettings:
    def test_defaults_and_overrides(self):
        settings = load_settings(STORAGE_BACKEND="SQL", LOG_LEVEL="debug")
        assert settings.STORAGE_BACKEND == "sql"
        assert settings.LOG_LEVEL == "DEBUG"
        assert settings.ATTEMPT_TOKEN_BYTES >= 16

    def test_yaml_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("API_PREFIX", raising=False)
        monkeypatch.setenv("PROJECT_NAME", "From env")
        path = tmp_path / "settings.yaml"
        path.write_text("API_PREFIX: /exam\nPROJECT_NAME: From file\n")

        settings = load_settings(str(path))
        assert settings.API_PREFIX == "/exam"
        assert settings.PROJECT_NAME == "From env"

    def test_json_file(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"ACCESS_TOKEN_EXPIRE_MINUTES": 5}))
        assert load_settings(str(path)).ACCESS_TOKEN_EXPIRE_MINUTES == 5

    def test_unsupported_file(self, tmp_path):
        path = tmp_path / "settings.ini"
        path.write_text("[x]")
        with pytest.raises(ValueError):
            load_settings(str(path))

    def test_missing_file_is_ignored(self, tmp_path):
        settings = load_settings(str(tmp_path / "absent.yaml"))
        assert settings.API_PREFIX

    @pytest.mark.parametrize("field,value", [
        ("ATTEMPT_TOKEN_BYTES", 8),
        ("STORAGE_BACKEND", "mongo"),
        ("LOG_LEVEL", "LOUD"),
    ])
    def test_invalid_values(self, field, value):
        with pytest.raises(SettingsError):
            load_settings(**{field: value})
