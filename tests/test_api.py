"""API endpoint tests for users and general error handling."""

from src.models.user import User


def test_health_check(client):
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_unknown_route_returns_message(client):
    """Unmatched routes get a generic 404 with a message body."""
    response = client.get("/api/nothing-here")
    assert response.status_code == 404
    assert "message" in response.json()


def test_register_user(client):
    """Test user registration."""
    response = client.post(
        "/api/users/register",
        json={
            "name": "New User",
            "email": "NewUser@Example.com",
            "password": "password123",
            "password2": "password123",
        },
    )
    assert response.status_code == 201
    data = response.json()
    assert data["message"] == "New user registered"
    assert data["user"] == {"email": "newuser@example.com", "name": "New User"}


def test_register_duplicate_email(client, auth_headers, db):
    """Registering an existing email fails and creates no second record."""
    response = client.post(
        "/api/users/register",
        json={
            "name": "Duplicate",
            "email": auth_headers.email.upper(),
            "password": "password123",
            "password2": "password123",
        },
    )
    assert response.status_code == 422
    assert response.json()["message"] == "Email already exists."
    assert db.query(User).filter(User.email == auth_headers.email).count() == 1


def test_register_missing_fields(client):
    """Test registration with a missing field."""
    response = client.post(
        "/api/users/register",
        json={"name": "No Email", "password": "password123", "password2": "password123"},
    )
    assert response.status_code == 422
    assert "email" in response.json()["message"]


def test_register_invalid_email(client):
    """Test registration with a malformed email."""
    response = client.post(
        "/api/users/register",
        json={
            "name": "Bad",
            "email": "not-an-email",
            "password": "password123",
            "password2": "password123",
        },
    )
    assert response.status_code == 422


def test_register_short_password(client):
    """Test registration with a password under six characters."""
    response = client.post(
        "/api/users/register",
        json={"name": "Short", "email": "short@example.com", "password": "abc", "password2": "abc"},
    )
    assert response.status_code == 422
    assert "at least 6" in response.json()["message"]


def test_register_password_mismatch(client):
    """Test registration with non-matching passwords."""
    response = client.post(
        "/api/users/register",
        json={
            "name": "Mismatch",
            "email": "mismatch@example.com",
            "password": "password123",
            "password2": "password124",
        },
    )
    assert response.status_code == 422
    assert response.json()["message"] == "Passwords do not match"


def test_password_is_hashed(client, auth_headers, db):
    """Only a hash of the password is stored."""
    user = db.query(User).filter(User.id == auth_headers.user_id).first()
    assert user.password_hash != "testpass123"
    assert user.password_hash.startswith("$2")


def test_login(client, auth_headers):
    """Test user login."""
    response = client.post(
        "/api/users/login", json={"email": auth_headers.email, "password": "testpass123"}
    )
    assert response.status_code == 200
    data = response.json()
    assert data["token"]
    assert data["id"] == auth_headers.user_id
    assert data["name"] == "Test User"


def test_login_is_case_insensitive_on_email(client, auth_headers):
    """Test login with an upper-cased email."""
    response = client.post(
        "/api/users/login", json={"email": "TEST@example.com", "password": "testpass123"}
    )
    assert response.status_code == 200


def test_login_failures_are_indistinguishable(client, auth_headers):
    """Wrong password and unknown email give the same response."""
    wrong_password = client.post(
        "/api/users/login", json={"email": auth_headers.email, "password": "wrongpass"}
    )
    unknown_email = client.post(
        "/api/users/login", json={"email": "nobody@example.com", "password": "testpass123"}
    )
    assert wrong_password.status_code == 422
    assert unknown_email.status_code == 422
    assert wrong_password.json() == unknown_email.json()


def test_get_authors_hides_passwords(client, auth_headers, other_auth_headers):
    """Test listing users."""
    response = client.get("/api/users/")
    assert response.status_code == 200
    users = response.json()
    assert len(users) == 2
    for user in users:
        assert "password" not in user
        assert "password_hash" not in user
        assert user["posts"] == 0
        assert user["avatar"] is None


def test_get_user(client, auth_headers):
    """Test getting a single user."""
    response = client.get(f"/api/users/{auth_headers.user_id}")
    assert response.status_code == 200
    data = response.json()
    assert data["email"] == auth_headers.email
    assert "password_hash" not in data


def test_get_user_not_found(client):
    """Test getting a user that doesn't exist."""
    response = client.get("/api/users/99999")
    assert response.status_code == 404
    assert response.json()["message"] == "User not found"


def test_change_avatar(client, auth_headers, upload_dir):
    """Test uploading an avatar."""
    response = client.patch(
        "/api/users/change-avatar",
        headers=auth_headers,
        files={"avatar": ("me.jpg", b"avatar-bytes", "image/jpeg")},
    )
    assert response.status_code == 200
    filename = response.json()["avatar"]
    assert filename.startswith("me")
    assert filename.endswith(".jpg")
    assert (upload_dir / filename).read_bytes() == b"avatar-bytes"

    user = client.get(f"/api/users/{auth_headers.user_id}").json()
    assert user["avatar"] == filename


def test_change_avatar_replaces_previous_file(client, auth_headers, upload_dir):
    """The old avatar file is removed after a new one is saved."""
    first = client.patch(
        "/api/users/change-avatar",
        headers=auth_headers,
        files={"avatar": ("one.png", b"first", "image/png")},
    ).json()["avatar"]
    second = client.patch(
        "/api/users/change-avatar",
        headers=auth_headers,
        files={"avatar": ("two.png", b"second", "image/png")},
    ).json()["avatar"]

    assert not (upload_dir / first).exists()
    assert (upload_dir / second).exists()


def test_change_avatar_too_large(client, auth_headers, upload_dir):
    """Avatars over 500,000 bytes are rejected before anything is written."""
    response = client.patch(
        "/api/users/change-avatar",
        headers=auth_headers,
        files={"avatar": ("big.png", b"x" * 500_001, "image/png")},
    )
    assert response.status_code == 422
    assert list(upload_dir.iterdir()) == []


def test_change_avatar_without_file(client, auth_headers):
    """Test changing the avatar with no file attached."""
    response = client.patch(
        "/api/users/change-avatar", headers=auth_headers, data={"something": "else"}
    )
    assert response.status_code == 422


def test_change_avatar_requires_token(client):
    """Test changing the avatar without a token."""
    response = client.patch(
        "/api/users/change-avatar", files={"avatar": ("me.png", b"x", "image/png")}
    )
    assert response.status_code == 401


def test_edit_user(client, auth_headers):
    """Test editing profile details and password."""
    response = client.patch(
        "/api/users/edit-user",
        headers=auth_headers,
        json={
            "name": "Renamed",
            "email": "renamed@example.com",
            "currentPassword": "testpass123",
            "newPassword": "newpass456",
            "confirmNewPassword": "newpass456",
        },
    )
    assert response.status_code == 200
    assert response.json()["message"] == "User details updated successfully"

    old_login = client.post(
        "/api/users/login", json={"email": "renamed@example.com", "password": "testpass123"}
    )
    assert old_login.status_code == 422

    new_login = client.post(
        "/api/users/login", json={"email": "renamed@example.com", "password": "newpass456"}
    )
    assert new_login.status_code == 200
    assert new_login.json()["name"] == "Renamed"


def test_edit_user_wrong_current_password(client, auth_headers):
    """Test editing with an incorrect current password."""
    response = client.patch(
        "/api/users/edit-user",
        headers=auth_headers,
        json={
            "name": "Test User",
            "email": auth_headers.email,
            "currentPassword": "not-my-password",
            "newPassword": "newpass456",
            "confirmNewPassword": "newpass456",
        },
    )
    assert response.status_code == 422
    assert response.json()["message"] == "Current password is incorrect"


def test_edit_user_new_passwords_mismatch(client, auth_headers):
    """Test editing with non-matching new passwords."""
    response = client.patch(
        "/api/users/edit-user",
        headers=auth_headers,
        json={
            "name": "Test User",
            "email": auth_headers.email,
            "currentPassword": "testpass123",
            "newPassword": "newpass456",
            "confirmNewPassword": "newpass789",
        },
    )
    assert response.status_code == 422
    assert response.json()["message"] == "New passwords do not match"


def test_edit_user_email_taken(client, auth_headers, other_auth_headers):
    """Test editing the email to one owned by someone else."""
    response = client.patch(
        "/api/users/edit-user",
        headers=auth_headers,
        json={
            "name": "Test User",
            "email": other_auth_headers.email,
            "currentPassword": "testpass123",
            "newPassword": "newpass456",
            "confirmNewPassword": "newpass456",
        },
    )
    assert response.status_code == 422
    assert response.json()["message"] == "Email already in use"


def test_edit_user_missing_fields(client, auth_headers):
    """Test editing with fields left out."""
    response = client.patch(
        "/api/users/edit-user",
        headers=auth_headers,
        json={"name": "Test User", "email": auth_headers.email},
    )
    assert response.status_code == 422
