"""Badge awarding: one row per user and badge, XP paid once."""

import pytest
from sqlalchemy import update

from fitjourney.db.models import BadgeDefinition
from fitjourney.gamification.badge_service import award_badge, count_badge_holders, get_badge_by_slug, get_user_badges


class TestAwardBadge:
    @pytest.mark.asyncio
    async def test_award_grants_badge_and_xp(self, db_session, user):
        assert await award_badge(db_session, None, user.id, "comments_10", {"source": "test"}) is True
        await db_session.commit()

        earned = await get_user_badges(db_session, user.id)
        assert [ub.badge.slug for ub in earned] == ["comments_10"]
        assert earned[0].badge_metadata == {"source": "test"}
        await db_session.refresh(user)
        assert user.xp == 50

    @pytest.mark.asyncio
    async def test_award_is_idempotent(self, db_session, user):
        assert await award_badge(db_session, None, user.id, "comments_10") is True
        assert await award_badge(db_session, None, user.id, "comments_10") is False
        await db_session.commit()

        assert len(await get_user_badges(db_session, user.id)) == 1
        await db_session.refresh(user)
        assert user.xp == 50

    @pytest.mark.asyncio
    async def test_unknown_badge(self, db_session, user):
        assert await award_badge(db_session, None, user.id, "no_such_badge") is False

    @pytest.mark.asyncio
    async def test_inactive_badge(self, db_session, user):
        await db_session.execute(
            update(BadgeDefinition).where(BadgeDefinition.slug == "plans_25").values(is_active=False)
        )
        await db_session.commit()

        assert await award_badge(db_session, None, user.id, "plans_25") is False

    @pytest.mark.asyncio
    async def test_shop_badges_carry_no_xp(self, db_session, user):
        assert await award_badge(db_session, None, user.id, "shop_zen") is True
        await db_session.commit()
        await db_session.refresh(user)
        assert user.xp == 0


class TestBadgeCatalog:
    @pytest.mark.asyncio
    async def test_holder_counts(self, db_session, make_user):
        a = await make_user()
        b = await make_user()
        await award_badge(db_session, None, a.id, "likes_10")
        await award_badge(db_session, None, b.id, "likes_10")
        await db_session.commit()

        badge = await get_badge_by_slug(db_session, "likes_10")
        assert (await count_badge_holders(db_session))[badge.id] == 2
