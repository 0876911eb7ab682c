from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from sqlmodel.ext.asyncio.session import AsyncSession

if TYPE_CHECKING:
    from CommonsPact.services.ProposalService import ProposalService
    from CommonsPact.share.DatabaseHandler import DatabaseHandler


logger = logging.getLogger(__name__)


class UnitOfWork:
    """
    一个实现了工作单元模式的异步上下文管理器。

    它封装了数据库会话和事务管理，并提供对提案存储服务的访问。
    单个业务操作中的所有数据库更改要么一起提交，要么一起回滚。

    用法:<br>
    async with UnitOfWork(bot.db_handler) as uow:<br>
        await uow.proposal.create_proposal(...)<br>
        await uow.commit()<br>
    """

    def __init__(self, db_handler: Optional["DatabaseHandler"]):
        self._db_handler = db_handler
        self._session: Optional[AsyncSession] = None
        self._committed = False

    async def __aenter__(self) -> "UnitOfWork":
        if self._db_handler is None:
            raise RuntimeError(
                "UnitOfWork 在没有有效 DatabaseHandler 的情况下被使用。"
                "请确保 bot.db_handler 已在 setup_hook 中正确初始化。"
            )
        self._session = self._db_handler.get_session()
        self._committed = False
        return self

    async def __aexit__(self, exc_type, exc_val, traceback):
        """
        在退出上下文时，根据是否发生异常来提交或回滚事务，并最终关闭会话。
        """
        if not self._session:
            return

        try:
            if exc_type:
                if not self._committed:
                    logger.warning(
                        f"UnitOfWork 检测到异常，正在回滚事务: {exc_type.__name__}: {exc_val}"
                    )
                    await self.rollback()
            elif not self._committed:
                await self.commit()
        finally:
            await self._session.close()
            self._session = None

    @property
    def session(self) -> AsyncSession:
        """获取当前的数据库会话。"""
        if self._session is None:
            raise RuntimeError("会话尚未初始化。请在 'async with' 块中使用 UnitOfWork。")
        return self._session

    async def commit(self):
        """提交当前事务。"""
        await self.session.commit()
        self._committed = True

    async def rollback(self):
        """回滚当前事务。"""
        await self.session.rollback()
        self._committed = True

    @property
    def proposal(self) -> "ProposalService":
        """获取提案存储服务实例。"""
        if not hasattr(self, "_proposal_service"):
            from CommonsPact.services.ProposalService import ProposalService

            self._proposal_service = ProposalService(self.session)
        return self._proposal_service
