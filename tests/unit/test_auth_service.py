import types
from boutique.auth import service as svc
from boutique.auth import repository as repo


def test_determine_role():
    assert svc.determine_role({"role": "ADMIN"}) == "admin"
    assert svc.determine_role({"role": "user"}) == "user"
    assert svc.determine_role({"role": "scanner"}) == "user"
    assert svc.determine_role(None) == "user"

def test_get_user_from_token_normalizes(monkeypatch):
    monkeypatch.setattr(svc, "_repo_get_user_from_token", lambda token: {
        "id": "u1",
        "email": "a@b.c",
        "user_metadata": {"role": "admin", "full_name": "Ada"},
    })
    user = svc.get_user_from_token("jwt")
    assert user == {
        "id": "u1",
        "email": "a@b.c",
        "metadata": {"role": "admin", "full_name": "Ada"},
        "role": "admin",
        "token": "jwt",
    }

def test_repository_converts_supabase_user_object(monkeypatch):
    sb_user = types.SimpleNamespace(id="u2", email="x@y.z", user_metadata={"role": "user"})
    fake_client = types.SimpleNamespace(
        auth=types.SimpleNamespace(get_user=lambda token: types.SimpleNamespace(user=sb_user))
    )
    monkeypatch.setattr(repo, "get_supabase", lambda: fake_client)

    assert repo.get_user_from_access_token("jwt") == {"id": "u2", "email": "x@y.z", "user_metadata": {"role": "user"}}
