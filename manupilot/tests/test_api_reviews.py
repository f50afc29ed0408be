"""
API tests for partner reviews.
"""

import pytest

from conftest import OTHER_USER_ID, USER_ID

API = "/api/v1"


class TestPartnerReviews:

    def review(self, client, headers, partner_id, rating, **extra):
        return client.post(
            f"{API}/reviews",
            json={"partnerId": partner_id, "rating": rating, **extra},
            headers=headers,
        )

    def test_submit_updates_partner_rating(self, client, store, partners, auth_headers, other_auth_headers):
        pid = partners[1]["id"]

        first = self.review(client, auth_headers, pid, 5, reviewText="Great stitching")
        self.review(client, other_auth_headers, pid, 2)

        assert first.status_code == 200
        review = first.json()["review"]
        assert review["user_id"] == USER_ID
        assert review["review_text"] == "Great stitching"
        assert store._rows["partners"][pid]["rating"] == 3.5

    def test_second_review_replaces_first(self, client, store, partners, auth_headers):
        pid = partners[0]["id"]

        first = self.review(client, auth_headers, pid, 2).json()["review"]
        second = self.review(client, auth_headers, pid, 4, reviewText="Improved").json()["review"]

        assert second["id"] == first["id"]
        assert second["rating"] == 4
        assert len(store._rows["reviews"]) == 1
        assert store._rows["partners"][pid]["rating"] == 4.0

    def test_list_newest_first(self, client, partners, auth_headers, other_auth_headers):
        pid = partners[0]["id"]
        self.review(client, auth_headers, pid, 3)
        self.review(client, other_auth_headers, pid, 5)

        reviews = client.get(f"{API}/reviews", params={"partner_id": pid}, headers=auth_headers).json()["reviews"]

        assert [r["user_id"] for r in reviews] == [OTHER_USER_ID, USER_ID]

    def test_list_requires_partner(self, client, auth_headers):
        response = client.get(f"{API}/reviews", headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["detail"] == "Partner ID required"

    def test_my_review(self, client, partners, auth_headers, other_auth_headers):
        pid = partners[0]["id"]
        self.review(client, other_auth_headers, pid, 1)

        assert client.get(f"{API}/reviews/{pid}/mine", headers=auth_headers).json() == {"review": None}
        mine = client.get(f"{API}/reviews/{pid}/mine", headers=other_auth_headers).json()["review"]
        assert mine["rating"] == 1

    @pytest.mark.parametrize("rating, detail", [
        (0, "Partner ID and rating required"),
        (None, "Partner ID and rating required"),
        (6, "Rating must be between 1 and 5"),
        (-2, "Rating must be between 1 and 5"),
    ])
    def test_invalid_rating_is_400(self, client, store, partners, auth_headers, rating, detail):
        response = self.review(client, auth_headers, partners[0]["id"], rating)

        assert response.status_code == 400
        assert response.json()["detail"] == detail
        assert store._rows["reviews"] == {}

    def test_unknown_partner_is_404(self, client, auth_headers):
        response = self.review(client, auth_headers, "missing", 4)

        assert response.status_code == 404

    def test_requires_token(self, client, partners):
        response = client.post(f"{API}/reviews", json={"partnerId": partners[0]["id"], "rating": 4})

        assert response.status_code == 401
