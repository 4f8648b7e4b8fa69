# tests/mocks/mock_follow_repository.py
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from marketplace.models.follow_model import Follow
from marketplace.models.user_model import User


class FakeFollowRepository:
    """
    A fake follow repository backed by a dict of edges.
    It mimics the interface of the real FollowRepository.
    """

    def __init__(self, users: List[User] = None):
        self.users: Dict[int, User] = {u.id: u for u in users or []}
        self.edges: Dict[Tuple[int, int], Follow] = {}
        self.create_calls = 0

    async def get(self, db, *, follower_id: int, following_id: int) -> Optional[Follow]:
        return self.edges.get((follower_id, following_id))

    async def exists(self, db, *, follower_id: int, following_id: int) -> bool:
        return (follower_id, following_id) in self.edges

    async def create(self, db, *, follow: Follow) -> Optional[Follow]:
        """Like the unique key: a second insert of the same pair yields None."""
        self.create_calls += 1
        key = (follow.follower_id, follow.following_id)
        if key in self.edges:
            return None
        if follow.created_at is None:
            follow.created_at = datetime.now(timezone.utc)
        self.edges[key] = follow
        return follow

    async def delete(self, db, *, follower_id: int, following_id: int) -> bool:
        return self.edges.pop((follower_id, following_id), None) is not None

    async def get_followers(self, db, *, user_id: int, skip: int = 0, limit: int = 20):
        matches = [e for e in self.edges.values() if e.following_id == user_id]
        return self._page(matches, "follower_id", skip, limit)

    async def get_following(self, db, *, user_id: int, skip: int = 0, limit: int = 20):
        matches = [e for e in self.edges.values() if e.follower_id == user_id]
        return self._page(matches, "following_id", skip, limit)

    async def count(self, db, *, user_id: int) -> Tuple[int, int]:
        followers = sum(1 for e in self.edges.values() if e.following_id == user_id)
        following = sum(1 for e in self.edges.values() if e.follower_id == user_id)
        return followers, following

    def _page(self, edges: List[Follow], user_field: str, skip: int, limit: int):
        edges = sorted(
            edges,
            key=lambda e: (e.created_at, getattr(e, user_field)),
            reverse=True,
        )
        rows = [
            (self.users[getattr(e, user_field)], e.created_at)
            for e in edges[skip : skip + limit]
        ]
        return rows, len(edges)
