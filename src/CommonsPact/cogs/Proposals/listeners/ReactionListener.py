import logging
from typing import Optional, Tuple

import discord
from discord.ext import commands

from CommonsPact.cogs.Proposals.Cog import Proposals
from CommonsPact.cogs.Proposals.dto.ProposalDto import ProposalDto
from CommonsPact.cogs.Proposals.ProposalErrors import ProposalLifecycleError
from CommonsPact.share.CommonsPactBot import CommonsPactBot

logger = logging.getLogger(__name__)


class ReactionListener(commands.Cog):
    """
    监听讨论频道与投票频道上的反应变化，并把对应的生命周期命令提交到命令队列。
    """

    def __init__(self, bot: CommonsPactBot, proposals_cog: Proposals):
        self.bot = bot
        self.logic = proposals_cog.logic

    def _is_self(self, user_id: int) -> bool:
        return self.bot.user is not None and user_id == self.bot.user.id

    @commands.Cog.listener()
    async def on_raw_reaction_add(self, payload: discord.RawReactionActionEvent):
        # 其他 Bot 的反应同样计入支持数，与重新拉取的消息计数一致
        await self.dispatch_reaction(payload)

    @commands.Cog.listener()
    async def on_raw_reaction_remove(self, payload: discord.RawReactionActionEvent):
        await self.dispatch_reaction(payload)

    async def dispatch_reaction(self, payload: discord.RawReactionActionEvent):
        """根据反应所在的频道和表情，决定提交哪一个生命周期命令。"""
        if payload.guild_id is None or self._is_self(payload.user_id):
            return

        settings = self.logic.settings
        emoji = str(payload.emoji)

        if settings.is_debate_channel(payload.channel_id) and emoji == settings.emojis.support:
            coro = self.on_support_changed(payload.channel_id, payload.message_id)
        elif settings.is_vote_channel(payload.channel_id) and emoji in (
            settings.emojis.yes,
            settings.emojis.no,
        ):
            coro = self.on_vote_changed(payload.channel_id, payload.message_id)
        else:
            return

        try:
            await self.bot.lifecycle_scheduler.submit(coro, priority=self.logic.COMMAND_PRIORITY)
        except Exception as e:
            logger.error(
                f"处理消息 {payload.message_id} 上的反应 {emoji} 时出错: {e}", exc_info=True
            )

    async def on_support_changed(self, channel_id: int, message_id: int) -> Optional[ProposalDto]:
        """
        在命令队列中执行: 重新拉取讨论消息，按当前支持数推进提案。
        """
        try:
            message = await self.logic.gateway.fetch_message(channel_id, message_id)
        except ProposalLifecycleError as e:
            logger.warning(f"无法获取讨论消息 {message_id}: {e}")
            return None

        support_count = message.reactions.count_without_self(self.logic.settings.emojis.support)
        return await self.logic.handle_support_reaction(message, support_count)

    async def on_vote_changed(self, channel_id: int, message_id: int) -> Optional[Tuple[int, int]]:
        """
        在命令队列中执行: 重新拉取投票消息，刷新实时票数。
        """
        try:
            message = await self.logic.gateway.fetch_message(channel_id, message_id)
        except ProposalLifecycleError as e:
            logger.warning(f"无法获取投票消息 {message_id}: {e}")
            return None

        return await self.logic.handle_vote_reaction(message)
