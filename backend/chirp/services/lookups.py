"""
Chirp Backend — Batched User Lookups
======================================

What:  Resolves the user IDs referenced by posts, comments and
       notifications into UserSummary objects.
How:   One SELECT ... WHERE id IN (...) per response, never one per row.
"""

from typing import Dict, Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chirp.models.user import User
from chirp.schemas.user import UserSummary


async def load_summaries(db: AsyncSession, user_ids: Iterable[UUID]) -> Dict[UUID, UserSummary]:
    """Missing users are simply absent from the result."""
    wanted = {uid for uid in user_ids if uid is not None}
    if not wanted:
        return {}
    result = await db.execute(select(User).where(User.id.in_(wanted)))
    return {user.id: UserSummary.model_validate(user) for user in result.scalars()}
