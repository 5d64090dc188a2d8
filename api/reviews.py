# reviews.py
# Anonymous customer reviews of peddlers
#
# Reviewers are identified by a long-lived `user_id` cookie rather than an
# account. Every write recomputes the peddler's average rating and count.

# @see: api/accounts.py - Peddler documents carrying rating/reviewCount
# @see: api/nearby.py - Returns rating with each search result; a rating
#   change drops the cached search pages

import uuid
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request, Response

try:
    from cache import invalidate_search_cache
    from config import COOKIE_SECURE, get_db
    from errors import BadRequestError, ForbiddenError, NotFoundError, failure_message
    from limiter import rate_limit
    from logging_config import get_logger
    from models import ReviewInput, ReviewUpdateInput, utc_now_iso
except ImportError:
    from api.cache import invalidate_search_cache
    from api.config import COOKIE_SECURE, get_db
    from api.errors import BadRequestError, ForbiddenError, NotFoundError, failure_message
    from api.limiter import rate_limit
    from api.logging_config import get_logger
    from api.models import ReviewInput, ReviewUpdateInput, utc_now_iso


logger = get_logger("reviews")

REVIEWS_COLLECTION = "reviews"
PEDDLERS_COLLECTION = "peddlers"

REVIEWER_COOKIE = "user_id"
REVIEWER_COOKIE_MAX_AGE = 60 * 60 * 24 * 365


# ========== SERVICE ==========


def update_peddler_rating(peddler_id: str) -> float:
    """Recompute and store a peddler's average rating (one decimal)."""
    db = get_db()
    peddler_ref = db.collection(PEDDLERS_COLLECTION).document(peddler_id)
    if not peddler_ref.get().exists:
        return 0.0

    ratings = []
    for doc in db.collection(REVIEWS_COLLECTION).where("peddlerId", "==", peddler_id).stream():
        rating = (doc.to_dict() or {}).get("rating")
        if isinstance(rating, (int, float)) and 1 <= rating <= 5:
            ratings.append(rating)

    average = round(sum(ratings) / len(ratings), 1) if ratings else 0.0
    peddler_ref.update({"rating": average, "reviewCount": len(ratings)})
    invalidate_search_cache()
    return average


def add_review(peddler_id: str, user_id: str, rating: float, comment: str = "") -> Dict[str, Any]:
    review = {
        "peddlerId": peddler_id,
        "userId": user_id,
        "rating": rating,
        "comment": comment,
        "createdAt": utc_now_iso(),
    }
    _, review_ref = get_db().collection(REVIEWS_COLLECTION).add(review)
    update_peddler_rating(peddler_id)
    return {"id": review_ref.id, **review}


def get_peddler_reviews(
    peddler_id: str,
    limit: int = 10,
    last_review_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Newest-first page of reviews; fetches limit + 1 to compute hasMore."""
    db = get_db()
    query = (
        db.collection(REVIEWS_COLLECTION)
        .where("peddlerId", "==", peddler_id)
        .order_by("createdAt", direction="DESCENDING")
    )

    if last_review_id:
        last_doc = db.collection(REVIEWS_COLLECTION).document(last_review_id).get()
        if last_doc.exists:
            query = query.start_after(last_doc)

    docs = list(query.limit(limit + 1).stream())
    reviews = [{"id": doc.id, **(doc.to_dict() or {})} for doc in docs[:limit]]
    return {"reviews": reviews, "hasMore": len(docs) > limit}


def has_user_reviewed(user_id: str, peddler_id: str) -> bool:
    docs = (
        get_db()
        .collection(REVIEWS_COLLECTION)
        .where("userId", "==", user_id)
        .where("peddlerId", "==", peddler_id)
        .limit(1)
        .stream()
    )
    return any(True for _ in docs)


def _owned_review(review_id: str, user_id: Optional[str]):
    ref = get_db().collection(REVIEWS_COLLECTION).document(review_id)
    doc = ref.get()
    if not doc.exists:
        raise NotFoundError("Review not found")
    data = doc.to_dict() or {}
    if not user_id or data.get("userId") != user_id:
        raise ForbiddenError("You can only change your own review")
    return ref, data


def update_review(
    review_id: str,
    user_id: Optional[str],
    rating: Optional[float] = None,
    comment: Optional[str] = None,
) -> None:
    ref, data = _owned_review(review_id, user_id)

    updates: Dict[str, Any] = {"updatedAt": utc_now_iso()}
    if rating is not None:
        updates["rating"] = rating
    if comment is not None:
        updates["comment"] = comment
    ref.update(updates)

    if rating is not None:
        update_peddler_rating(data["peddlerId"])


def delete_review(review_id: str, user_id: Optional[str]) -> None:
    ref, data = _owned_review(review_id, user_id)
    ref.delete()
    update_peddler_rating(data["peddlerId"])


def _check_rating(rating: Optional[float]) -> None:
    if not rating or rating < 1 or rating > 5:
        raise BadRequestError("Rating must be between 1 and 5")


# ========== ENDPOINTS ==========


router = APIRouter(
    prefix="/api/peddlers/reviews",
    tags=["reviews"],
    dependencies=[Depends(rate_limit("default"))],
)


@router.get("")
@failure_message("Failed to fetch reviews")
async def list_reviews(
    vendorId: Optional[str] = Query(None),
    limit: int = Query(10, ge=1, le=50),
    lastReviewId: Optional[str] = Query(None),
):
    if not vendorId:
        raise BadRequestError("Peddler ID is required")
    return get_peddler_reviews(vendorId, limit, lastReviewId)


@router.post("")
@failure_message("Failed to create review")
async def create_review(payload: ReviewInput, request: Request, response: Response):
    """Create a review; issues the anonymous reviewer cookie when absent."""
    if not payload.vendorId:
        raise BadRequestError("Peddler ID is required")
    _check_rating(payload.rating)

    peddler = get_db().collection(PEDDLERS_COLLECTION).document(payload.vendorId).get()
    if not peddler.exists:
        raise NotFoundError("Peddler not found")

    user_id = request.cookies.get(REVIEWER_COOKIE)
    if not user_id:
        user_id = str(uuid.uuid4())
        response.set_cookie(
            REVIEWER_COOKIE,
            user_id,
            max_age=REVIEWER_COOKIE_MAX_AGE,
            path="/",
            httponly=True,
            secure=COOKIE_SECURE,
            samesite="lax",
        )
    elif has_user_reviewed(user_id, payload.vendorId):
        raise BadRequestError("You have already reviewed this peddler")

    review = add_review(payload.vendorId, user_id, payload.rating, payload.comment)
    logger.info(f"Review {review['id']} added for peddler {payload.vendorId}")
    return {"success": True, "review": review}


@router.patch("")
@failure_message("Failed to update review")
async def edit_review(payload: ReviewUpdateInput, request: Request):
    if not payload.reviewId:
        raise BadRequestError("Review ID is required")
    if payload.rating is not None:
        _check_rating(payload.rating)

    update_review(
        payload.reviewId,
        request.cookies.get(REVIEWER_COOKIE),
        rating=payload.rating,
        comment=payload.comment,
    )
    return {"success": True}


@router.delete("")
@failure_message("Failed to delete review")
async def remove_review(request: Request, reviewId: Optional[str] = Query(None)):
    if not reviewId:
        raise BadRequestError("Review ID is required")
    delete_review(reviewId, request.cookies.get(REVIEWER_COOKIE))
    return {"success": True}
