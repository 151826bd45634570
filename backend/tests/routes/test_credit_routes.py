# backend/tests/routes/test_credit_routes.py
from fitsaga.core.enums import RoleName
from fitsaga.models import CreditTransaction


def _adjust(client, headers, user_id, amount, pool="gym", **extra):
    return client.post(
        f"/api/v1/admin/credits/{user_id}/adjust",
        json={"amount": amount, "pool": pool, **extra},
        headers=headers,
    )


class TestBalance:
    def test_owner_reads_own_balance(self, client, make_user, auth_headers):
        member = make_user(gym=7, interval=2)

        response = client.get(f"/api/v1/credits/{member.id}", headers=auth_headers(member))

        assert response.status_code == 200
        body = response.json()
        assert (body["gym_credits"], body["interval_credits"], body["total_credits"]) == (7, 2, 9)
        assert body["next_refill_date"] is None

    def test_member_without_balance_row_reads_zero(self, client, make_user, auth_headers):
        member = make_user()

        body = client.get(f"/api/v1/credits/{member.id}", headers=auth_headers(member)).json()

        assert body["total_credits"] == 0

    def test_other_member_is_forbidden(self, client, make_user, auth_headers):
        member, nosy = make_user(gym=7), make_user(gym=1)

        response = client.get(f"/api/v1/credits/{member.id}", headers=auth_headers(nosy))

        assert response.status_code == 403
        assert response.json()["error"]["message"] == "You can only view your own credits"

    def test_admin_reads_any_balance(self, client, make_user, auth_headers):
        admin = make_user(RoleName.ADMIN)
        member = make_user(gym=7)

        response = client.get(f"/api/v1/credits/{member.id}", headers=auth_headers(admin))

        assert response.status_code == 200
        assert response.json()["gym_credits"] == 7


class TestTransactions:
    def test_history_is_newest_first_with_cursor(self, client, make_user, auth_headers):
        admin = make_user(RoleName.ADMIN)
        member = make_user()
        for amount in (1, 2, 3):
            _adjust(client, auth_headers(admin), member.id, amount)

        first_page = client.get(
            f"/api/v1/credits/{member.id}/transactions", params={"limit": 2}, headers=auth_headers(member)
        ).json()
        second_page = client.get(
            f"/api/v1/credits/{member.id}/transactions",
            params={"limit": 2, "before_sequence": first_page["next_cursor"]},
            headers=auth_headers(member),
        ).json()

        assert [t["amount"] for t in first_page["items"]] == [3, 2]
        assert first_page["next_cursor"] == 2
        assert [t["amount"] for t in second_page["items"]] == [1]
        assert second_page["next_cursor"] is None
        assert first_page["items"][0]["gym_balance_after"] == 6
        assert first_page["items"][0]["adjusted_by"] == admin.id

    def test_history_filters_by_category(self, client, make_user, make_session, auth_headers):
        admin = make_user(RoleName.ADMIN)
        member = make_user()
        _adjust(client, auth_headers(admin), member.id, 5)
        session = make_session(cost=2)
        client.post("/api/v1/bookings", json={"session_id": session.id}, headers=auth_headers(member))

        body = client.get(
            f"/api/v1/credits/{member.id}/transactions",
            params={"category": "booking"},
            headers=auth_headers(member),
        ).json()

        assert len(body["items"]) == 1
        assert body["items"][0]["amount"] == -2
        assert body["items"][0]["related_session_id"] == session.id

    def test_other_member_cannot_read_history(self, client, make_user, auth_headers):
        member, nosy = make_user(gym=1), make_user(gym=1)

        response = client.get(f"/api/v1/credits/{member.id}/transactions", headers=auth_headers(nosy))

        assert response.status_code == 403


class TestAdminRoutes:
    def test_adjust_credits(self, client, db, make_user, auth_headers):
        admin = make_user(RoleName.ADMIN)
        member = make_user(gym=1, interval=1)

        response = _adjust(client, auth_headers(admin), member.id, 4, pool="interval", reason="Referral bonus")

        assert response.status_code == 200
        body = response.json()
        assert body["balance"] == {"gym_credits": 1, "interval_credits": 5, "total_credits": 6}
        assert body["transaction"]["category"] == "admin_adjustment"
        assert body["transaction"]["description"] == "Referral bonus"
        assert db.query(CreditTransaction).filter(CreditTransaction.user_id == member.id).count() == 1

    def test_zero_adjustment_is_rejected(self, client, db, make_user, auth_headers):
        admin = make_user(RoleName.ADMIN)
        member = make_user(gym=1)

        response = _adjust(client, auth_headers(admin), member.id, 0)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_ADJUSTMENT"
        assert db.query(CreditTransaction).count() == 0

    def test_overdraw_adjustment_is_rejected(self, client, make_user, auth_headers):
        admin = make_user(RoleName.ADMIN)
        member = make_user(gym=1)

        response = _adjust(client, auth_headers(admin), member.id, -2)

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "INSUFFICIENT_CREDITS"

    def test_non_admin_cannot_adjust(self, client, make_user, auth_headers):
        member = make_user(gym=1)

        response = _adjust(client, auth_headers(member), member.id, 10)

        assert response.status_code == 403
        assert response.json()["error"]["message"] == "Only admins can manage credits"

    def test_unknown_user(self, client, make_user, auth_headers):
        admin = make_user(RoleName.ADMIN)

        response = _adjust(client, auth_headers(admin), "01HZZZZZZZZZZZZZZZZZZZZZZZ", 3)

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "USER_NOT_FOUND"

    def test_refill(self, client, make_user, auth_headers):
        admin = make_user(RoleName.ADMIN)
        member = make_user(gym=1, interval=0)

        response = client.post(f"/api/v1/admin/credits/{member.id}/refill", headers=auth_headers(admin))

        assert response.status_code == 200
        body = response.json()
        assert body["balance"] == {"gym_credits": 21, "interval_credits": 5, "total_credits": 26}
        assert [t["pool"] for t in body["transactions"]] == ["gym", "interval"]

    def test_audit(self, client, make_user, auth_headers):
        admin = make_user(RoleName.ADMIN)
        member = make_user()
        _adjust(client, auth_headers(admin), member.id, 3)

        body = client.get(f"/api/v1/admin/credits/{member.id}/audit", headers=auth_headers(admin)).json()

        assert body["consistent"] is True
        assert body["entry_count"] == 1
        assert body["replayed_balance"]["gym_credits"] == 3


def test_health(client):
    response = client.get("/api/v1/health")

    assert response.status_code == 200
    assert response.json()["database"] == "ok"


def test_prometheus_metrics_exposes_fitsaga_series(client, make_user, auth_headers):
    member = make_user(gym=1)
    client.get(f"/api/v1/credits/{member.id}", headers=auth_headers(member))

    response = client.get("/api/v1/metrics/prometheus")

    assert response.status_code == 200
    assert "fitsaga_service_operations_total" in response.text
