from useradmin.models import User
from useradmin.schemas import UserForm
from useradmin.security import hash_password


def _submission(**overrides):
    data = {
        "username": "bob",
        "firstName": "Bob",
        "lastName": "Builder",
        "email": "bob@example.com",
        "age": "41",
        "password": "pw1",
    }
    data.update(overrides)
    return data


def test_admin_page_lists_users_and_roles(admin_client, user_service, user_role):
    user_service.create_user(UserForm(username="bob", password="pw1", role_ids=[user_role.id]))

    response = admin_client.get("/admin")

    assert response.status_code == 200
    assert "bob" in response.text
    assert "root" in response.text
    assert "ADMIN" in response.text and "USER" in response.text


def test_admin_page_shows_not_found_error(admin_client):
    response = admin_client.get("/admin", params={"error": "user_not_found"})

    assert response.status_code == 200
    assert "does not exist" in response.text


def test_add_form_renders_roles(admin_client, admin_role, user_role):
    response = admin_client.get("/admin/add")

    assert response.status_code == 200
    assert 'name="roleIds"' in response.text
    assert f'value="{user_role.id}"' in response.text


def test_add_user_creates_and_redirects(admin_client, session, user_role):
    response = admin_client.post(
        "/admin/add",
        data=_submission(roleIds=[str(user_role.id)]),
        follow_redirects=False,
    )

    assert response.status_code == 303
    assert response.headers["location"] == "/admin"
    bob = session.query(User).filter(User.username == "bob").one()
    assert bob.first_name == "Bob"
    assert bob.age == 41
    assert bob.password == hash_password("pw1")
    assert bob.role_names == {"ROLE_USER"}


def test_add_user_without_age_or_roles(admin_client, session):
    response = admin_client.post(
        "/admin/add", data=_submission(age=""), follow_redirects=False
    )

    assert response.status_code == 303
    bob = session.query(User).filter(User.username == "bob").one()
    assert bob.age is None
    assert bob.roles == set()


def test_add_duplicate_username_is_a_generic_error(admin_client):
    response = admin_client.post(
        "/admin/add", data=_submission(username="root"), follow_redirects=False
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Username already exists: root"


def test_edit_form_prefilled_without_password(admin_client, user_service, user_role):
    bob = user_service.create_user(
        UserForm(username="bob", email="bob@example.com", password="pw1", role_ids=[user_role.id])
    )

    response = admin_client.get(f"/admin/edit/{bob.id}")

    assert response.status_code == 200
    assert 'value="bob@example.com"' in response.text
    assert f'name="userId" value="{bob.id}"' in response.text
    assert 'name="password" value=""' in response.text
    assert bob.password not in response.text


def test_edit_form_for_missing_user_redirects(admin_client):
    response = admin_client.get("/admin/edit/999", follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"] == "/admin?error=user_not_found"


def test_update_user(admin_client, session, user_service, admin_role, user_role):
    bob = user_service.create_user(
        UserForm(username="bob", password="pw1", role_ids=[admin_role.id, user_role.id])
    )
    original_hash = bob.password

    response = admin_client.post(
        "/admin/edit",
        data=_submission(
            userId=str(bob.id), username="robert", password="", roleIds=[str(user_role.id)]
        ),
        follow_redirects=False,
    )

    assert response.status_code == 303
    session.expire_all()
    robert = session.get(User, bob.id)
    assert robert.username == "robert"
    assert robert.password == original_hash
    assert robert.role_names == {"ROLE_USER"}


def test_update_missing_user_is_not_found(admin_client):
    response = admin_client.post(
        "/admin/edit", data=_submission(userId="999"), follow_redirects=False
    )

    assert response.status_code == 404


def test_delete_user(admin_client, session, user_service):
    bob = user_service.create_user(UserForm(username="bob", password="pw1"))

    response = admin_client.post(f"/admin/delete/{bob.id}", follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"] == "/admin"
    assert session.query(User).filter(User.username == "bob").count() == 0


def test_delete_missing_user_is_not_found(admin_client):
    response = admin_client.post("/admin/delete/999", follow_redirects=False)

    assert response.status_code == 404


def test_add_form_requires_password(admin_client):
    response = admin_client.get("/admin/add")

    assert 'name="password" value="" required' in response.text


def test_edit_form_password_is_optional(admin_client, user_service):
    bob = user_service.create_user(UserForm(username="bob", password="pw1"))

    response = admin_client.get(f"/admin/edit/{bob.id}")

    assert 'name="password" value="">' in response.text


def test_add_with_non_numeric_age_is_rejected(admin_client, session):
    response = admin_client.post(
        "/admin/add", data=_submission(age="abc"), follow_redirects=False
    )

    assert response.status_code == 422
    assert session.query(User).filter(User.username == "bob").count() == 0


def test_edit_with_non_numeric_age_is_rejected(admin_client, session, user_service):
    bob = user_service.create_user(UserForm(username="bob", password="pw1", age=41))

    response = admin_client.post(
        "/admin/edit",
        data=_submission(userId=str(bob.id), age="abc"),
        follow_redirects=False,
    )

    assert response.status_code == 422
    session.expire_all()
    assert session.get(User, bob.id).age == 41
