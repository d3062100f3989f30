"""
Advice Features
Daily tips, recipe of the day and the nutritionist chat. LLM failures are
masked here with fixed defaults so callers never see a raw error.
"""

import itertools
import logging
from typing import Optional

from advisor.llm import CompletionClient, LLMError
from advisor.models import ChatMessage, RecipeRecord, TipRecord
from advisor.parser import parse_recipe, parse_tips
from advisor.prompts import (
    TIPS_SYSTEM_PROMPT,
    TIPS_USER_PROMPT,
    RECIPE_SYSTEM_PROMPT,
    RECIPE_USER_PROMPT,
    RECIPE_OPTIMIZE_SYSTEM_PROMPT,
    RECIPE_OPTIMIZE_USER_PROMPT,
    CHAT_SYSTEM_PROMPT,
)


logger = logging.getLogger(__name__)


GREETING = "你好！我是你的营养健康顾问。请问有什么可以帮助你的吗？"
CHAT_APOLOGY = "抱歉，我现在无法回答，请稍后再试。"


def default_tips() -> list[TipRecord]:
    return [TipRecord(title="提示", content="获取今日营养建议失败，请稍后再试", emoji="⚠️")]


def default_recipe() -> RecipeRecord:
    return RecipeRecord(
        title="五彩时蔬炒菜",
        ingredients=[
            "西兰花 200g",
            "胡萝卜 1根",
            "玉米笋 100g",
            "木耳 50g",
            "蒜末 适量",
            "油盐 适量"
        ],
        nutrition="本菜品富含维生素C、膳食纤维和矿物质，热量适中，有助于维持健康的饮食结构。",
        description="1. 所有食材洗净切块\n2. 锅中加油烧热，爆香蒜末\n3. 加入所有食材翻炒\n4. 适时加盐调味即可"
    )


async def get_daily_tips(client: Optional[CompletionClient]) -> list[TipRecord]:
    """Today's tips, or a single warning tip when the LLM is unavailable"""
    if client is None:
        return default_tips()
    try:
        text = await client.complete(TIPS_USER_PROMPT, system=TIPS_SYSTEM_PROMPT)
    except LLMError as e:
        logger.warning("Fetching daily tips failed: %s", e)
        return default_tips()
    return parse_tips(text)


async def get_daily_recipe(client: Optional[CompletionClient]) -> RecipeRecord:
    """
    Recipe of the day.

    A first call proposes a dish, a second call completes and normalizes
    it. Any failure yields the fixed example recipe.
    """
    if client is None:
        return default_recipe()
    try:
        initial = await client.complete(RECIPE_USER_PROMPT, system=RECIPE_SYSTEM_PROMPT)
        optimized = await client.complete(
            RECIPE_OPTIMIZE_USER_PROMPT.format(recipe_text=initial),
            system=RECIPE_OPTIMIZE_SYSTEM_PROMPT
        )
    except LLMError as e:
        logger.warning("Fetching daily recipe failed: %s", e)
        return default_recipe()
    return parse_recipe(optimized)


class ChatSession:
    """
    Flat nutritionist chat transcript.

    Message ids come from a counter, so concurrent submissions never
    collide.
    """

    def __init__(self, messages: Optional[list[ChatMessage]] = None):
        if messages is None:
            messages = [ChatMessage(id=1, content=GREETING, is_user=False)]
        self.messages = list(messages)
        start = max((m.id for m in self.messages), default=0) + 1
        self._ids = itertools.count(start)

    def _append(self, content: str, is_user: bool) -> ChatMessage:
        message = ChatMessage(id=next(self._ids), content=content, is_user=is_user)
        self.messages.append(message)
        return message

    async def submit(self, client: Optional[CompletionClient], text: str) -> list[ChatMessage]:
        """Add the user's message and the reply; returns both"""
        text = text.strip()
        if not text:
            return []

        user_message = self._append(text, is_user=True)
        try:
            if client is None:
                raise LLMError("No completion client configured")
            reply = await client.complete(text, system=CHAT_SYSTEM_PROMPT)
        except LLMError as e:
            logger.warning("Chat reply failed: %s", e)
            reply = CHAT_APOLOGY
        return [user_message, self._append(reply, is_user=False)]
