"""Shop helpers that need no database."""

import re

from fitjourney.db.models import Reward
from fitjourney.shop.reward_service import check_stock, generate_reward_code

CODE_RE = re.compile(r"^(DISC|GIFT)-\d{4}-[0-9A-Z]+-[0-9A-Z]{6}$")


class TestRewardCodes:
    def test_discount_code_format(self):
        code = generate_reward_code("DISCOUNT_CODE", 7)
        assert CODE_RE.match(code)
        assert code.startswith("DISC-0007-")

    def test_gift_card_prefix(self):
        assert generate_reward_code("GIFT_CARD", 12).startswith("GIFT-0012-")

    def test_codes_are_unique(self):
        codes = {generate_reward_code("DISCOUNT_CODE", 1) for _ in range(50)}
        assert len(codes) == 50


class TestCheckStock:
    def test_unlimited(self):
        assert check_stock(Reward(stock=None)) is True

    def test_in_stock(self):
        assert check_stock(Reward(stock=1)) is True

    def test_sold_out(self):
        assert check_stock(Reward(stock=0)) is False
