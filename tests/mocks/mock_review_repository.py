# tests/mocks/mock_review_repository.py
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from marketplace.models.ad_model import Ad
from marketplace.models.reaction_model import ReactionType, ReviewReaction
from marketplace.models.review_model import AdReview
from marketplace.models.user_model import User


class FakeReviewRepository:
    """
    A fake review repository that uses an in-memory list for testing.
    Reactions live in a shared FakeReactionRepository so counts and the
    delete cascade can be observed.
    """

    def __init__(self, reactions: "FakeReactionRepository" = None):
        self.reviews: List[AdReview] = []
        self.reactions = reactions or FakeReactionRepository()
        self._next_id = 1

    async def get(self, db, *, obj_id: int) -> Optional[AdReview]:
        for review in self.reviews:
            if review.id == obj_id:
                return review
        return None

    async def get_by_user_and_ad(self, db, *, user_id: int, ad_id: int) -> Optional[AdReview]:
        for review in self.reviews:
            if review.user_id == user_id and review.ad_id == ad_id:
                return review
        return None

    async def get_many(
        self,
        db,
        *,
        skip: int = 0,
        limit: int = 100,
        filters: Optional[Dict[str, Any]] = None,
        order_by: str = "created_at",
        order_desc: bool = True,
    ) -> Tuple[List[AdReview], int]:
        matches = self.reviews
        for key, value in (filters or {}).items():
            matches = [r for r in matches if getattr(r, key) == value]
        matches = sorted(
            matches, key=lambda r: (getattr(r, order_by), r.id), reverse=order_desc
        )
        return matches[skip : skip + limit], len(matches)

    async def get_rating_stats(self, db, *, ad_id: int):
        distribution: Dict[int, int] = {}
        for review in self.reviews:
            if review.ad_id == ad_id:
                distribution[review.rating] = distribution.get(review.rating, 0) + 1
        count = sum(distribution.values())
        if count == 0:
            return 0.0, 0, distribution
        return sum(r * n for r, n in distribution.items()) / count, count, distribution

    async def get_reaction_counts(self, db, *, review_ids: List[int]):
        counts: Dict[int, Dict[ReactionType, int]] = {}
        for reaction in self.reactions.reactions.values():
            if reaction.review_id in review_ids:
                per_review = counts.setdefault(reaction.review_id, {})
                per_review[reaction.type] = per_review.get(reaction.type, 0) + 1
        return counts

    async def create(self, db, *, obj_in: AdReview) -> Optional[AdReview]:
        if await self.get_by_user_and_ad(db, user_id=obj_in.user_id, ad_id=obj_in.ad_id):
            return None
        obj_in.id = self._next_id
        self._next_id += 1
        self.reviews.append(obj_in)
        return obj_in

    async def update(self, db, *, db_obj: AdReview, fields_to_update: Dict[str, Any]) -> AdReview:
        for field, value in fields_to_update.items():
            setattr(db_obj, field, value)
        db_obj.updated_at = datetime.now(timezone.utc)
        return db_obj

    async def delete(self, db, *, obj_id: int) -> bool:
        before = len(self.reviews)
        self.reviews = [r for r in self.reviews if r.id != obj_id]
        self.reactions.reactions = {
            key: r for key, r in self.reactions.reactions.items() if r.review_id != obj_id
        }
        return len(self.reviews) < before


class FakeReactionRepository:
    """In-memory reactions keyed by (review_id, user_id)."""

    def __init__(self):
        self.reactions: Dict[Tuple[int, int], ReviewReaction] = {}

    async def get(self, db, *, user_id: int, review_id: int) -> Optional[ReviewReaction]:
        return self.reactions.get((review_id, user_id))

    async def upsert(self, db, *, user_id: int, review_id: int, reaction_type: ReactionType):
        now = datetime.now(timezone.utc)
        existing = self.reactions.get((review_id, user_id))
        if existing is None:
            existing = ReviewReaction(
                review_id=review_id,
                user_id=user_id,
                type=reaction_type,
                created_at=now,
                updated_at=now,
            )
            self.reactions[(review_id, user_id)] = existing
        else:
            existing.type = reaction_type
            existing.updated_at = now
        return existing

    async def delete(self, db, *, user_id: int, review_id: int) -> bool:
        return self.reactions.pop((review_id, user_id), None) is not None


class FakeLookupRepository:
    """Read-only users or ads, the way the service looks them up."""

    def __init__(self, objects: List[Any] = None):
        self.objects = {o.id: o for o in objects or []}

    async def get(self, db, *, obj_id: int):
        return self.objects.get(obj_id)

    async def get_many_by_ids(self, db, *, ids):
        return {i: self.objects[i] for i in set(ids) if i in self.objects}


def build_user(user_id: int, username: str) -> User:
    return User(
        id=user_id,
        username=username,
        email=f"{username}@example.com",
        full_name=username.title(),
        created_at=datetime.now(timezone.utc),
    )


def build_ad(ad_id: int, seller_id: int, images: List[Any] = None) -> Ad:
    return Ad(
        id=ad_id,
        user_id=seller_id,
        title=f"Ad {ad_id}",
        price=100,
        images=images if images is not None else ["https://img.example.com/a.jpg"],
        created_at=datetime.now(timezone.utc),
    )
