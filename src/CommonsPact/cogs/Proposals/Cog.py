import logging

from discord.ext import commands

from CommonsPact.cogs.Proposals.ProposalLogic import ProposalLogic
from CommonsPact.share.CommonsPactBot import CommonsPactBot

logger = logging.getLogger(__name__)


class Proposals(commands.Cog):
    """
    提案模块的核心 Cog，持有生命周期逻辑，供监听器与定时任务共享。
    """

    def __init__(self, bot: CommonsPactBot):
        self.bot = bot
        self.logic = ProposalLogic(bot)
        logger.info(f"已加载 {len(self.logic.settings.proposal_types)} 个提案类型配置")
