from decimal import Decimal

from conftest import auth_headers

API = "/api/v1/wallet"


class TestWalletRouter:
    """잔액/번들 API 테스트"""

    def test_my_balance(self, client, factory):
        factory.user("alice", wallet=Decimal("42"), shake_token=3)

        response = client.get(f"{API}/me", headers=auth_headers("alice"))

        assert response.status_code == 200
        assert Decimal(response.json()["wallet"]) == Decimal("42")
        assert response.json()["shake_token"] == 3

    def test_unknown_member(self, client):
        response = client.get(f"{API}/me", headers=auth_headers("ghost"))

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND_001"

    def test_buy_bundle(self, client, factory):
        factory.user("alice", wallet=Decimal("50"))

        response = client.post(
            f"{API}/bundles", json={"code": "protein_pack"}, headers=auth_headers("alice")
        )

        assert response.status_code == 200
        assert Decimal(response.json()["wallet"]) == Decimal("10")

    def test_list_bundles(self, client):
        response = client.get(f"{API}/bundles", headers=auth_headers("alice"))

        assert len(response.json()["bundles"]) == 8


class TestAdminWalletRouter:
    def test_update_sends_refill_mail(self, client, factory, notifier):
        # Given
        factory.user("alice", wallet=Decimal("10"))

        # When
        response = client.put(
            f"{API}/admin/users/alice",
            json={"wallet": "60", "tokens": {"public_token": 2}},
            headers=auth_headers("coach", role="admin"),
        )

        # Then
        assert response.status_code == 200
        assert Decimal(response.json()["wallet"]) == Decimal("60")
        assert response.json()["public_token"] == 2
        assert len(notifier.refills) == 1
        assert Decimal(notifier.refills[0]["credits_added"]) == Decimal("50")

    def test_negative_wallet_rejected(self, client, factory):
        factory.user("alice")

        response = client.put(
            f"{API}/admin/users/alice",
            json={"wallet": "-1"},
            headers=auth_headers("coach", role="admin"),
        )

        assert response.status_code == 422

    def test_member_cannot_edit_wallets(self, client, factory, notifier):
        factory.user("alice")

        response = client.put(
            f"{API}/admin/users/alice", json={"wallet": "999"}, headers=auth_headers("alice")
        )

        assert response.status_code == 403
        assert notifier.refills == []

    def test_toggle_free_status(self, client, factory):
        factory.user("alice")

        response = client.put(
            f"{API}/admin/users/alice/free",
            json={"is_free": True},
            headers=auth_headers("coach", role="admin"),
        )

        assert response.json()["is_free"] is True

    def test_register_member(self, client):
        admin = auth_headers("coach", role="admin")
        body = {"user_id": "new-member", "first_name": "Jo", "email": "jo@example.com"}

        created = client.post(f"{API}/admin/users", json=body, headers=admin)
        duplicate = client.post(f"{API}/admin/users", json=body, headers=admin)

        assert created.status_code == 201
        assert Decimal(created.json()["wallet"]) == Decimal("0")
        assert duplicate.status_code == 409

    def test_register_member_rejects_bad_email(self, client):
        response = client.post(
            f"{API}/admin/users",
            json={"user_id": "x", "email": "not-an-email"},
            headers=auth_headers("coach", role="admin"),
        )

        assert response.status_code == 422
