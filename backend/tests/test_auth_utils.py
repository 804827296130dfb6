import pytest
import jwt
from datetime import datetime, timedelta, timezone
from flask import jsonify

from backend.auth_service.utils import bearer_token, create_token, decode_token
from backend.auth_service.middleware import authorize, protect


@pytest.fixture(autouse=True)
def mock_jwt_secret(mocker):
    mocker.patch("backend.auth_service.utils.JWT_SECRET", "test_secret")


def test_create_token():
    token = create_token(123)

    assert isinstance(token, str)

    payload = jwt.decode(token, "test_secret", algorithms=["HS256"])
    assert payload["sub"] == "123"
    assert "exp" in payload
    assert "iat" in payload


def test_token_expires_after_seven_days():
    token = create_token(5)
    payload = jwt.decode(token, "test_secret", algorithms=["HS256"])

    lifetime = payload["exp"] - payload["iat"]
    assert lifetime == int(timedelta(days=7).total_seconds())


def test_decode_token():
    assert decode_token(create_token(456)) == 456


def test_decode_token_invalid():
    with pytest.raises(jwt.InvalidTokenError):
        decode_token("invalid.token.here")


def test_decode_token_wrong_secret():
    token = jwt.encode(
        {"sub": "1", "exp": datetime.now(timezone.utc) + timedelta(days=1)},
        "another_secret",
        algorithm="HS256",
    )
    with pytest.raises(jwt.InvalidSignatureError):
        decode_token(token)


def test_decode_token_expired():
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {"sub": "1", "iat": now - timedelta(days=8), "exp": now - timedelta(days=1)},
        "test_secret",
        algorithm="HS256",
    )
    with pytest.raises(jwt.ExpiredSignatureError):
        decode_token(token)


def test_decode_token_non_numeric_subject():
    token = jwt.encode(
        {"sub": "abc", "exp": datetime.now(timezone.utc) + timedelta(days=1)},
        "test_secret",
        algorithm="HS256",
    )
    with pytest.raises(jwt.InvalidTokenError):
        decode_token(token)


@pytest.mark.parametrize("header, expected", [
    ("Bearer abc.def.ghi", "abc.def.ghi"),
    ("Bearer ", None),
    ("InvalidFormat", None),
    ("", None),
    (None, None),
])
def test_bearer_token(header, expected):
    assert bearer_token(header) == expected


# --- MIDDLEWARE ---
def _protected_view():
    @protect
    def view():
        from flask import g
        return jsonify({"user_id": g.user["user_id"]}), 200

    return view


def test_protect_attaches_user(app, mock_db, mocker, current_user):
    mocker.patch("backend.models.user_model.find_user_by_id", return_value=current_user)
    token = create_token(current_user["user_id"])

    with app.test_request_context(headers={"Authorization": f"Bearer {token}"}):
        response, code = _protected_view()()
        assert code == 200
        assert response.json["user_id"] == 1


def test_protect_missing_header(app):
    with app.test_request_context():
        response, code = _protected_view()()
        assert code == 401
        assert response.json["error"] == "Not authorized, no token provided"


def test_protect_invalid_token(app):
    with app.test_request_context(headers={"Authorization": "Bearer nonsense"}):
        response, code = _protected_view()()
        assert code == 401
        assert response.json["error"] == "Not authorized, token failed"


def test_protect_expired_token(app):
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {"sub": "1", "iat": now - timedelta(days=8), "exp": now - timedelta(days=1)},
        "test_secret",
        algorithm="HS256",
    )
    with app.test_request_context(headers={"Authorization": f"Bearer {token}"}):
        response, code = _protected_view()()
        assert code == 401
        assert response.json["error"] == "Not authorized, token expired"


def test_protect_deleted_user(app, mock_db, mocker):
    mocker.patch("backend.models.user_model.find_user_by_id", return_value=None)
    token = create_token(99)

    with app.test_request_context(headers={"Authorization": f"Bearer {token}"}):
        response, code = _protected_view()()
        assert code == 401
        assert response.json["error"] == "User not found"


def test_authorize_wrong_role(app, mock_db, mocker, current_user):
    mocker.patch("backend.models.user_model.find_user_by_id", return_value=current_user)
    token = create_token(current_user["user_id"])

    @protect
    @authorize("admin")
    def admin_view():
        return jsonify({"ok": True}), 200

    with app.test_request_context(headers={"Authorization": f"Bearer {token}"}):
        response, code = admin_view()
        assert code == 403
        assert response.json["error"] == "User role 'user' is not authorized to access this route"


def test_authorize_allowed_role(app, mock_db, mocker, current_user):
    admin = dict(current_user, role="admin")
    mocker.patch("backend.models.user_model.find_user_by_id", return_value=admin)
    token = create_token(admin["user_id"])

    @protect
    @authorize("admin")
    def admin_view():
        return jsonify({"ok": True}), 200

    with app.test_request_context(headers={"Authorization": f"Bearer {token}"}):
        response, code = admin_view()
        assert code == 200
