"""Optimistic like/follow mutations with rollback on failure.

Each mutable relation runs a small state machine:
``IDLE -> PENDING -> COMMITTED | ROLLED_BACK``. The local value flips as soon
as the mutation starts and is reverted if the backend call fails.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Awaitable, Callable, Iterable, Protocol

logger = logging.getLogger(__name__)

# notify(level, message) where level is "success" or "error"
Notifier = Callable[[str, str], None]


class MutationPhase(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class OptimisticToggle:
    """Boolean relation flipped locally before ``commit(new_value)`` confirms it."""

    def __init__(
        self,
        initial: bool,
        commit: Callable[[bool], Awaitable[None]],
        *,
        on_change: Callable[[bool], None] | None = None,
        notify: Notifier | None = None,
        messages: dict[tuple[bool, bool], str] | None = None,
    ) -> None:
        self.value = initial
        self.phase = MutationPhase.IDLE
        self.last_error: Exception | None = None
        self._commit = commit
        self._on_change = on_change
        self._notify = notify
        # (target value, succeeded) -> toast text
        self._messages = messages or {}

    @property
    def is_pending(self) -> bool:
        return self.phase is MutationPhase.PENDING

    def _toast(self, target: bool, succeeded: bool) -> None:
        message = self._messages.get((target, succeeded))
        if message and self._notify is not None:
            self._notify("success" if succeeded else "error", message)

    async def set(self, target: bool) -> bool:
        """Drive the relation to ``target``; ignored while a mutation is pending."""

        if self.is_pending or target == self.value:
            return self.value

        previous = self.value
        self.value = target
        self.phase = MutationPhase.PENDING
        self.last_error = None
        try:
            await self._commit(target)
        except Exception as exc:
            self.value = previous
            self.phase = MutationPhase.ROLLED_BACK
            self.last_error = exc
            logger.warning("Optimistic update to %s rolled back: %s", target, exc)
            self._toast(target, False)
            raise

        self.phase = MutationPhase.COMMITTED
        self._toast(target, True)
        if self._on_change is not None:
            self._on_change(target)
        return target

    async def toggle(self) -> bool:
        return await self.set(not self.value)


class LikeClient(Protocol):
    async def like_photo(self, photo_id: str, user_id: str) -> None: ...

    async def unlike_photo(self, photo_id: str, user_id: str) -> None: ...

    async def get_user_likes(self, user_id: str) -> list[str]: ...


class FollowClient(Protocol):
    async def follow_user(self, following_id: str, follower_id: str) -> None: ...

    async def unfollow_user(self, following_id: str, follower_id: str) -> None: ...


class LikeSet:
    """Photos liked by one user, with an optimistic toggle per photo."""

    def __init__(
        self,
        client: LikeClient,
        user_id: str,
        *,
        liked: Iterable[str] = (),
        notify: Notifier | None = None,
    ) -> None:
        self._client = client
        self.user_id = user_id
        self._notify = notify
        self._liked: set[str] = set(liked)
        self._relations: dict[str, OptimisticToggle] = {}

    async def load(self) -> set[str]:
        try:
            photo_ids = await self._client.get_user_likes(self.user_id)
        except Exception:
            if self._notify is not None:
                self._notify("error", "Failed to load your liked photos")
            raise
        self._liked = set(photo_ids)
        self._relations.clear()
        return set(self._liked)

    def _relation(self, photo_id: str) -> OptimisticToggle:
        relation = self._relations.get(photo_id)
        if relation is None:

            async def _commit(liked: bool) -> None:
                if liked:
                    await self._client.like_photo(photo_id, self.user_id)
                else:
                    await self._client.unlike_photo(photo_id, self.user_id)

            relation = OptimisticToggle(
                photo_id in self._liked,
                _commit,
                notify=self._notify,
                messages={(True, False): "Failed to like photo", (False, False): "Failed to unlike photo"},
            )
            self._relations[photo_id] = relation
        return relation

    def is_liked(self, photo_id: str) -> bool:
        relation = self._relations.get(photo_id)
        if relation is not None:
            return relation.value
        return photo_id in self._liked

    def phase(self, photo_id: str) -> MutationPhase:
        relation = self._relations.get(photo_id)
        return relation.phase if relation is not None else MutationPhase.IDLE

    @property
    def liked_photo_ids(self) -> set[str]:
        liked = {photo_id for photo_id in self._liked if self.is_liked(photo_id)}
        liked.update(photo_id for photo_id, relation in self._relations.items() if relation.value)
        return liked

    async def set_liked(self, photo_id: str, liked: bool) -> bool:
        return await self._relation(photo_id).set(liked)

    async def toggle(self, photo_id: str) -> bool:
        return await self._relation(photo_id).toggle()


class FollowToggle:
    """Follow button state for ``user_id`` as seen by ``current_user_id``."""

    def __init__(
        self,
        client: FollowClient,
        user_id: str,
        current_user_id: str,
        *,
        is_following: bool = False,
        on_follow_change: Callable[[bool], None] | None = None,
        notify: Notifier | None = None,
    ) -> None:
        self.user_id = user_id
        self.current_user_id = current_user_id

        async def _commit(follow: bool) -> None:
            if follow:
                await client.follow_user(user_id, current_user_id)
            else:
                await client.unfollow_user(user_id, current_user_id)

        self._relation = OptimisticToggle(
            is_following,
            _commit,
            on_change=on_follow_change,
            notify=notify,
            messages={
                (True, True): "Following user",
                (False, True): "Unfollowed successfully",
                (True, False): "Failed to follow user",
                (False, False): "Failed to unfollow user",
            },
        )

    @property
    def is_own_profile(self) -> bool:
        return self.user_id == self.current_user_id

    @property
    def is_following(self) -> bool:
        return self._relation.value

    @property
    def phase(self) -> MutationPhase:
        return self._relation.phase

    @property
    def is_pending(self) -> bool:
        return self._relation.is_pending

    async def toggle(self) -> bool:
        if self.is_own_profile:
            return self.is_following
        return await self._relation.toggle()


__all__ = [
    "FollowClient",
    "FollowToggle",
    "LikeClient",
    "LikeSet",
    "MutationPhase",
    "Notifier",
    "OptimisticToggle",
]
