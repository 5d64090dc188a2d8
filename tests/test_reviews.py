"""
============================================================================
FILE: test_reviews.py
LOCATION: tests/test_reviews.py
============================================================================

PURPOSE:
    Tests for anonymous peddler reviews and rating aggregation.

KEY COMPONENTS:
    - TestReviewService: Rating recomputation and paging
    - TestReviewEndpoints: Cookie identity, validation, ownership

DEPENDENCIES:
    - External: pytest, fastapi
    - Internal: api.reviews

USAGE:
    Run with: pytest tests/test_reviews.py -v
============================================================================
"""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from api.main import app
from api.reviews import (
    add_review,
    get_peddler_reviews,
    has_user_reviewed,
    update_peddler_rating,
)


PEDDLER_ID = "peddler-1"


@pytest.fixture
def peddler(db):
    db.collection("peddlers").document(PEDDLER_ID).set(
        {"name": "Bakso Pak Jono", "status": "active", "reviewCount": 0}
    )
    return PEDDLER_ID


def _peddler_doc(db):
    return db.collection("peddlers").document(PEDDLER_ID).get().to_dict()


class TestReviewService:
    def test_rating_average_to_one_decimal(self, db, peddler) -> None:
        for user, rating in [("a", 5), ("b", 4), ("c", 4)]:
            add_review(peddler, user, rating)

        doc = _peddler_doc(db)
        assert doc["rating"] == 4.3
        assert doc["reviewCount"] == 3

    def test_rating_change_drops_search_cache(self, peddler) -> None:
        with patch("api.reviews.invalidate_search_cache") as invalidate:
            add_review(peddler, "a", 5)

        invalidate.assert_called_once_with()

    def test_unknown_peddler_keeps_search_cache(self) -> None:
        with patch("api.reviews.invalidate_search_cache") as invalidate:
            update_peddler_rating("missing")

        invalidate.assert_not_called()

    def test_out_of_range_ratings_ignored(self, db, peddler) -> None:
        db.collection("reviews").add({"peddlerId": peddler, "userId": "x", "rating": 9})
        add_review(peddler, "a", 3)

        assert update_peddler_rating(peddler) == 3.0
        assert _peddler_doc(db)["reviewCount"] == 1

    def test_missing_peddler_is_not_created(self, db) -> None:
        assert update_peddler_rating("ghost") == 0.0
        assert not db.collection("peddlers").document("ghost").get().exists

    def test_has_user_reviewed(self, peddler) -> None:
        add_review(peddler, "a", 5)

        assert has_user_reviewed("a", peddler) is True
        assert has_user_reviewed("b", peddler) is False

    def test_newest_first_with_has_more(self, db, peddler) -> None:
        for i in range(3):
            db.collection("reviews").document(f"r{i}").set(
                {"peddlerId": peddler, "userId": f"u{i}", "rating": 5,
                 "createdAt": f"2025-01-0{i + 1}T00:00:00+00:00"}
            )

        first = get_peddler_reviews(peddler, limit=2)
        second = get_peddler_reviews(peddler, limit=2, last_review_id="r1")

        assert [r["id"] for r in first["reviews"]] == ["r2", "r1"]
        assert first["hasMore"] is True
        assert [r["id"] for r in second["reviews"]] == ["r0"]
        assert second["hasMore"] is False


class TestReviewEndpoints:
    def test_create_sets_reviewer_cookie(self, client, db, peddler) -> None:
        response = client.post(
            "/api/peddlers/reviews",
            json={"vendorId": peddler, "rating": 5, "comment": "Enak!"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["review"]["comment"] == "Enak!"
        assert response.cookies.get("user_id") == body["review"]["userId"]
        assert _peddler_doc(db)["rating"] == 5.0

    def test_accepts_peddler_id_alias(self, client, peddler) -> None:
        response = client.post(
            "/api/peddlers/reviews",
            json={"peddlerId": peddler, "rating": 4},
        )

        assert response.status_code == 200

    def test_one_review_per_reviewer(self, client, peddler) -> None:
        client.post("/api/peddlers/reviews", json={"vendorId": peddler, "rating": 5})

        response = client.post("/api/peddlers/reviews", json={"vendorId": peddler, "rating": 1})

        assert response.status_code == 400
        assert response.json() == {"error": "You have already reviewed this peddler"}

    @pytest.mark.parametrize(
        "body,message",
        [
            ({"rating": 5}, "Peddler ID is required"),
            ({"vendorId": PEDDLER_ID}, "Rating must be between 1 and 5"),
            ({"vendorId": PEDDLER_ID, "rating": 0}, "Rating must be between 1 and 5"),
            ({"vendorId": PEDDLER_ID, "rating": 6}, "Rating must be between 1 and 5"),
        ],
    )
    def test_create_validation(self, client, peddler, body, message) -> None:
        response = client.post("/api/peddlers/reviews", json=body)

        assert response.status_code == 400
        assert response.json() == {"error": message}

    def test_unknown_peddler(self, client) -> None:
        response = client.post("/api/peddlers/reviews", json={"vendorId": "ghost", "rating": 5})

        assert response.status_code == 404

    def test_list_requires_peddler(self, client) -> None:
        response = client.get("/api/peddlers/reviews")

        assert response.status_code == 400
        assert response.json() == {"error": "Peddler ID is required"}

    def test_list_reviews(self, client, peddler) -> None:
        client.post("/api/peddlers/reviews", json={"vendorId": peddler, "rating": 5})

        response = client.get("/api/peddlers/reviews", params={"vendorId": peddler})

        assert response.status_code == 200
        assert len(response.json()["reviews"]) == 1
        assert response.json()["hasMore"] is False

    def test_edit_own_review(self, client, db, peddler) -> None:
        review_id = client.post(
            "/api/peddlers/reviews", json={"vendorId": peddler, "rating": 5}
        ).json()["review"]["id"]

        response = client.patch(
            "/api/peddlers/reviews",
            json={"reviewId": review_id, "rating": 2, "comment": "Kuah dingin"},
        )

        assert response.status_code == 200
        assert _peddler_doc(db)["rating"] == 2.0

    def test_delete_own_review(self, client, db, peddler) -> None:
        review_id = client.post(
            "/api/peddlers/reviews", json={"vendorId": peddler, "rating": 5}
        ).json()["review"]["id"]

        response = client.delete("/api/peddlers/reviews", params={"reviewId": review_id})

        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert _peddler_doc(db)["reviewCount"] == 0

    def test_cannot_delete_someone_elses_review(self, client, db, peddler) -> None:
        review = add_review(peddler, "someone-else", 5)
        client.cookies.set("user_id", "me")

        response = client.delete("/api/peddlers/reviews", params={"reviewId": review["id"]})

        assert response.status_code == 403
        assert db.collection("reviews").document(review["id"]).get().exists

    def test_delete_requires_review_id(self, client) -> None:
        response = client.delete("/api/peddlers/reviews")

        assert response.status_code == 400
        assert response.json() == {"error": "Review ID is required"}

    def test_delete_unknown_review(self, client) -> None:
        response = client.delete("/api/peddlers/reviews", params={"reviewId": "nope"})

        assert response.status_code == 404

    def test_unexpected_failure_message(self, peddler) -> None:
        client = TestClient(app, raise_server_exceptions=False)

        with patch("api.reviews.add_review", side_effect=RuntimeError("boom")):
            response = client.post("/api/peddlers/reviews", json={"vendorId": peddler, "rating": 4})

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to create review"}
