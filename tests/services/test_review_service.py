# tests/services/test_review_service.py
import pytest
from unittest.mock import AsyncMock, patch
from datetime import datetime, timedelta, timezone

from marketplace.core.config import settings
from marketplace.core.exceptions import (
    NotAuthorized,
    ResourceAlreadyExists,
    ResourceNotFound,
    ValidationError,
)
from marketplace.models.reaction_model import ReactionType
from marketplace.models.review_model import AdReview
from marketplace.schemas.review_schema import ReviewCreate, ReviewUpdate
from marketplace.services.cache_service import CacheKeys, cache_service
from marketplace.services.review_service import ReviewService
from tests.mocks.mock_review_repository import (
    FakeLookupRepository,
    FakeReactionRepository,
    FakeReviewRepository,
    build_ad,
    build_user,
)

# Mark all tests in this file as async
pytestmark = pytest.mark.asyncio

AUTHOR, OTHER, SELLER = 1, 2, 3
AD, SECOND_AD = 10, 11


@pytest.fixture
def review_service() -> ReviewService:
    """A ReviewService wired to fresh fake repositories for each test."""
    reactions = FakeReactionRepository()
    service = ReviewService()
    service.review_repository = FakeReviewRepository(reactions)
    service.reaction_repository = reactions
    service.user_repository = FakeLookupRepository(
        [build_user(AUTHOR, "author"), build_user(OTHER, "other"), build_user(SELLER, "seller")]
    )
    service.ad_repository = FakeLookupRepository(
        [
            build_ad(AD, SELLER, images=[{"url": "https://img.example.com/x.jpg"}]),
            build_ad(SECOND_AD, SELLER, images=["https://img.example.com/y.jpg"]),
        ]
    )
    return service


async def _review(service: ReviewService, author_id: int = AUTHOR, ad_id: int = AD, rating: int = 4, body: str = "Good"):
    return await service.create_review(
        None,
        author_id=author_id,
        ad_id=ad_id,
        review_data=ReviewCreate(rating=rating, body=body),
    )


# ==================== create_review TESTS ====================


async def test_create_review_success(review_service: ReviewService):
    review = await _review(review_service, rating=5, body="  Great   seller  ")

    assert review.id is not None
    assert review.rating == 5
    assert review.body == "Great seller"
    assert review.author.username == "author"
    assert review.helpful_count == 0
    assert review.created_at == review.updated_at


async def test_create_review_unknown_ad(review_service: ReviewService):
    with pytest.raises(ResourceNotFound):
        await _review(review_service, ad_id=999)


@pytest.mark.parametrize("rating", [0, 6, -1])
async def test_create_review_rating_out_of_bounds(review_service: ReviewService, rating: int):
    with pytest.raises(ValidationError) as exc_info:
        await _review(review_service, rating=rating)

    assert exc_info.value.detail == "Rating must be between 1 and 5"
    assert review_service.review_repository.reviews == []


async def test_create_review_twice_conflicts(review_service: ReviewService):
    await _review(review_service)

    with pytest.raises(ResourceAlreadyExists) as exc_info:
        await _review(review_service, rating=2)

    assert exc_info.value.status_code == 409
    assert len(review_service.review_repository.reviews) == 1


async def test_create_review_lost_race_conflicts(review_service: ReviewService):
    """The pre-check misses a concurrent insert; the store still refuses."""
    await _review(review_service)
    review_service.review_repository.get_by_user_and_ad = AsyncMock(return_value=None)
    review_service.review_repository.create = AsyncMock(return_value=None)

    with pytest.raises(ResourceAlreadyExists):
        await _review(review_service)


async def test_same_author_can_review_different_ads(review_service: ReviewService):
    await _review(review_service, ad_id=AD)
    await _review(review_service, ad_id=SECOND_AD)

    assert len(review_service.review_repository.reviews) == 2


# ==================== update/delete TESTS ====================


async def test_update_review_by_author(review_service: ReviewService):
    created = await _review(review_service, rating=3)

    updated = await review_service.update_review(
        None,
        review_id=created.id,
        author_id=AUTHOR,
        review_data=ReviewUpdate(rating=5),
    )

    assert updated.rating == 5
    assert updated.body == "Good"
    assert updated.updated_at >= created.updated_at


async def test_update_review_by_other_user_forbidden(review_service: ReviewService):
    created = await _review(review_service, rating=3)

    with pytest.raises(NotAuthorized):
        await review_service.update_review(
            None, review_id=created.id, author_id=OTHER, review_data=ReviewUpdate(rating=1)
        )

    stored = await review_service.review_repository.get(None, obj_id=created.id)
    assert stored.rating == 3


async def test_update_review_validates_rating(review_service: ReviewService):
    created = await _review(review_service)

    with pytest.raises(ValidationError):
        await review_service.update_review(
            None, review_id=created.id, author_id=AUTHOR, review_data=ReviewUpdate(rating=9)
        )


async def test_update_missing_review(review_service: ReviewService):
    with pytest.raises(ResourceNotFound):
        await review_service.update_review(
            None, review_id=404, author_id=AUTHOR, review_data=ReviewUpdate(body="x")
        )


async def test_delete_review_by_other_user_forbidden(review_service: ReviewService):
    created = await _review(review_service)

    with pytest.raises(NotAuthorized):
        await review_service.delete_review(None, review_id=created.id, author_id=OTHER)

    assert len(review_service.review_repository.reviews) == 1


async def test_delete_review_removes_its_reactions(review_service: ReviewService):
    created = await _review(review_service)
    await review_service.add_reaction(
        None, review_id=created.id, user_id=OTHER, reaction_type=ReactionType.HELPFUL
    )

    assert await review_service.delete_review(None, review_id=created.id, author_id=AUTHOR)

    assert review_service.reaction_repository.reactions == {}
    with pytest.raises(ResourceNotFound):
        await review_service.get_review(None, review_id=created.id)


async def test_author_can_review_again_after_delete(review_service: ReviewService):
    created = await _review(review_service)
    await review_service.delete_review(None, review_id=created.id, author_id=AUTHOR)

    again = await _review(review_service, rating=1)

    assert again.rating == 1


# ==================== read TESTS ====================


async def test_rating_for_ad_without_reviews(review_service: ReviewService):
    summary = await review_service.get_rating_for_ad(None, ad_id=AD)

    assert summary.average == 0
    assert summary.count == 0
    assert summary.distribution == {1: 0, 2: 0, 3: 0, 4: 0, 5: 0}


async def test_rating_for_ad_is_mean(review_service: ReviewService):
    await _review(review_service, author_id=AUTHOR, rating=5)
    await _review(review_service, author_id=OTHER, rating=4)

    summary = await review_service.get_rating_for_ad(None, ad_id=AD)

    assert summary.average == 4.5
    assert summary.count == 2
    assert summary.distribution[5] == 1
    assert summary.distribution[4] == 1


async def test_reviews_for_ad_newest_first(review_service: ReviewService):
    first = await _review(review_service, author_id=AUTHOR)
    second = await _review(review_service, author_id=OTHER)
    first_stored = await review_service.review_repository.get(None, obj_id=first.id)
    first_stored.created_at = datetime.now(timezone.utc) - timedelta(days=1)

    page = await review_service.get_reviews_for_ad(None, ad_id=AD, page=1, limit=10)

    assert page.total == 2
    assert [r.id for r in page.items] == [second.id, first.id]
    assert page.items[0].ad is None


async def test_reviews_for_unknown_ad(review_service: ReviewService):
    with pytest.raises(ResourceNotFound):
        await review_service.get_reviews_for_ad(None, ad_id=999)


async def test_reviews_by_user_include_ad_summary(review_service: ReviewService):
    await _review(review_service, ad_id=AD)
    await _review(review_service, ad_id=SECOND_AD)

    page = await review_service.get_reviews_by_user(None, user_id=AUTHOR)

    assert page.total == 2
    image_urls = {r.ad.id: r.ad.image_url for r in page.items}
    assert image_urls == {
        AD: "https://img.example.com/x.jpg",
        SECOND_AD: "https://img.example.com/y.jpg",
    }


async def test_get_my_review(review_service: ReviewService):
    created = await _review(review_service)

    mine = await review_service.get_my_review(None, author_id=AUTHOR, ad_id=AD)
    none = await review_service.get_my_review(None, author_id=OTHER, ad_id=AD)

    assert mine.id == created.id
    assert none is None


# ==================== reaction TESTS ====================


async def test_add_reaction_is_upsert(review_service: ReviewService):
    created = await _review(review_service)

    await review_service.add_reaction(
        None, review_id=created.id, user_id=OTHER, reaction_type=ReactionType.HELPFUL
    )
    reaction = await review_service.add_reaction(
        None, review_id=created.id, user_id=OTHER, reaction_type=ReactionType.NOT_HELPFUL
    )

    assert reaction.type == ReactionType.NOT_HELPFUL
    assert len(review_service.reaction_repository.reactions) == 1
    review = await review_service.get_review(None, review_id=created.id)
    assert (review.helpful_count, review.not_helpful_count) == (0, 1)


async def test_add_reaction_to_missing_review(review_service: ReviewService):
    with pytest.raises(ResourceNotFound):
        await review_service.add_reaction(
            None, review_id=404, user_id=OTHER, reaction_type=ReactionType.HELPFUL
        )


async def test_remove_reaction(review_service: ReviewService):
    created = await _review(review_service)
    await review_service.add_reaction(
        None, review_id=created.id, user_id=OTHER, reaction_type=ReactionType.HELPFUL
    )

    assert await review_service.remove_reaction(None, review_id=created.id, user_id=OTHER)
    assert not await review_service.remove_reaction(None, review_id=created.id, user_id=OTHER)


# ==================== cache TESTS ====================


async def test_create_review_invalidates_rating(review_service: ReviewService):
    with patch.object(cache_service, "invalidate", new_callable=AsyncMock) as invalidate:
        await _review(review_service)

    invalidate.assert_awaited_once_with(CacheKeys.ad_rating(AD))


async def test_delete_review_invalidates_review_and_rating(review_service: ReviewService):
    created = await _review(review_service)

    with patch.object(cache_service, "invalidate", new_callable=AsyncMock) as invalidate:
        await review_service.delete_review(None, review_id=created.id, author_id=AUTHOR)

    invalidate.assert_awaited_once_with(
        CacheKeys.model(AdReview, created.id), CacheKeys.ad_rating(AD)
    )


async def test_rating_cached_with_short_ttl(review_service: ReviewService):
    await _review(review_service, rating=4)

    with patch.object(cache_service, "set_json", new_callable=AsyncMock) as set_json:
        await review_service.get_rating_for_ad(None, ad_id=AD)

    key = set_json.await_args.args[0]
    assert key == CacheKeys.ad_rating(AD)
    assert set_json.await_args.kwargs == {"ttl": settings.AGGREGATE_CACHE_TTL}
