import asyncio
import logging
from typing import List

from discord.ext import commands, tasks

from CommonsPact.cogs.Proposals.Cog import Proposals
from CommonsPact.cogs.Proposals.dto.VoteOutcomeDto import VoteOutcomeDto
from CommonsPact.share.CommonsPactBot import CommonsPactBot

logger = logging.getLogger(__name__)


class VoteCloser(commands.Cog):
    """
    定时检查并结束已到期的投票。

    启动后的第一次检查会处理 Bot 离线期间到期的投票。
    tasks.loop 在一次检查结束后才开始计时下一次，因此两次检查不会重叠。
    """

    def __init__(self, bot: CommonsPactBot, proposals_cog: Proposals):
        self.bot = bot
        self.logic = proposals_cog.logic
        self.close_expired_votes.change_interval(
            seconds=self.logic.settings.scheduler.check_interval_seconds
        )

    async def cog_load(self):
        self.close_expired_votes.start()

    async def cog_unload(self):
        self.close_expired_votes.cancel()

    @tasks.loop(seconds=60)
    async def close_expired_votes(self):
        logger.debug("开始检查已到期的投票...")
        try:
            outcomes = await self.run_check()
            if outcomes:
                passed = sum(1 for o in outcomes if o.passed)
                logger.info(f"本次共结束 {len(outcomes)} 个投票，其中 {passed} 个通过。")
        except Exception as e:
            logger.error(f"检查到期投票时发生严重错误: {e}", exc_info=True)

    async def run_check(self) -> List[VoteOutcomeDto]:
        """把一次到期检查作为命令提交到生命周期命令队列，与反应事件依次执行。"""
        return await self.bot.lifecycle_scheduler.submit(
            self.logic.check_ended_votes(), priority=self.logic.COMMAND_PRIORITY
        )

    @close_expired_votes.before_loop
    async def before_close_expired_votes(self):
        await self.bot.wait_until_ready()
        await asyncio.sleep(self.logic.settings.scheduler.initial_delay_seconds)
