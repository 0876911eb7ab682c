import asyncio
import logging

from CommonsPact.share.CommonsPactBot import CommonsPactBot

from .Cog import Proposals
from .listeners.ReactionListener import ReactionListener
from .ProposalLogic import ProposalLogic
from .tasks.VoteCloser import VoteCloser

__all__ = [
    "Proposals",
    "ProposalLogic",
    "ReactionListener",
    "VoteCloser",
]

logger = logging.getLogger(__name__)


async def setup(bot: CommonsPactBot):
    """
    设置并加载所有与提案相关的 Cogs。
    """
    proposals_cog = Proposals(bot)

    cogs_to_load = [
        proposals_cog,
        ReactionListener(bot, proposals_cog),
        VoteCloser(bot, proposals_cog),
    ]

    await asyncio.gather(*[bot.add_cog(cog) for cog in cogs_to_load])
    logger.info(f"成功为 Proposals 模块加载了 {len(cogs_to_load)} 个 Cogs。")
