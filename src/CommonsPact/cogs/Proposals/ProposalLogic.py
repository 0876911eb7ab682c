import logging
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from CommonsPact.cogs.Proposals.dto.MessageSnapshotDto import MessageSnapshotDto
from CommonsPact.cogs.Proposals.dto.PendingProposalDto import PendingProposalDto
from CommonsPact.cogs.Proposals.dto.ProposalDto import ProposalDto
from CommonsPact.cogs.Proposals.dto.ProposalSettingsDto import ProposalSettingsDto
from CommonsPact.cogs.Proposals.dto.ProposalStatsDto import ProposalStatsDto
from CommonsPact.cogs.Proposals.dto.ProposalTypeConfigDto import ProposalTypeConfigDto
from CommonsPact.cogs.Proposals.dto.ReactionSnapshotDto import ReactionSnapshotDto
from CommonsPact.cogs.Proposals.dto.VoteOutcomeDto import VoteOutcomeDto
from CommonsPact.cogs.Proposals.dto.WithdrawalTargetDto import WithdrawalTargetDto
from CommonsPact.cogs.Proposals.MessageGateway import DiscordMessageGateway, MessageGateway
from CommonsPact.cogs.Proposals.ModeratorActionExecutor import ModeratorActionExecutor
from CommonsPact.cogs.Proposals.ProposalClassifier import ProposalClassifier
from CommonsPact.cogs.Proposals.ProposalErrors import (
    ConfigurationMissing,
    ProposalLifecycleError,
    StoreConflict,
    TransportFailure,
    WithdrawalTargetNotFound,
)
from CommonsPact.cogs.Proposals.qo.CreateProposalQo import CreateProposalQo
from CommonsPact.cogs.Proposals.qo.FinalizeProposalQo import FinalizeProposalQo
from CommonsPact.cogs.Proposals.ResolutionPublisher import ResolutionPublisher
from CommonsPact.cogs.Proposals.views.ProposalMessageBuilder import (
    WITHDRAWAL_TARGET_NOT_FOUND_TEXT,
    ProposalMessageBuilder,
)
from CommonsPact.cogs.Proposals.WithdrawalResolver import WithdrawalResolver
from CommonsPact.share.CommonsPactBot import CommonsPactBot
from CommonsPact.share.enums.ProposalStatus import ProposalStatus
from CommonsPact.share.TimeUtils import TimeUtils
from CommonsPact.share.UnitOfWork import UnitOfWork

logger = logging.getLogger(__name__)

PENDING_SCAN_LIMIT = 50


class ProposalLogic:
    """
    提案与投票生命周期的核心业务逻辑。

    讨论中的提案收集支持反应，达到阈值后进入限时投票；投票到期后由定时任务
    计票并写入终态。通过的提案发布为决议，通过的撤回提案撤销目标决议，
    通过的版主任免提案直接修改成员的版主身份组。

    每个公开方法都在自身边界处捕获并记录错误，单个提案的失败不会影响其他提案。
    """

    # 提交到 bot.lifecycle_scheduler 的生命周期命令统一使用同一优先级，按提交顺序执行
    COMMAND_PRIORITY = 5

    def __init__(
        self,
        bot: CommonsPactBot,
        gateway: Optional[MessageGateway] = None,
        settings: Optional[ProposalSettingsDto] = None,
        clock: Callable[[], datetime] = TimeUtils.utc_now,
    ):
        self.bot = bot
        self.settings = settings or ProposalSettingsDto.from_config(bot.config)
        self.gateway: MessageGateway = gateway or DiscordMessageGateway(bot)
        self.clock = clock
        self.classifier = ProposalClassifier(self.settings.proposal_types)
        self.resolver = WithdrawalResolver(self.gateway, self.settings.withdrawal)
        self.publisher = ResolutionPublisher(self.gateway, self.settings)
        self.moderator_executor = ModeratorActionExecutor(self.gateway, self.settings)

    # -------------------------
    # 讨论 -> 投票
    # -------------------------

    async def handle_support_reaction(
        self, message: MessageSnapshotDto, current_support_count: int
    ) -> Optional[ProposalDto]:
        """
        讨论频道中某条消息的支持反应发生变化时调用。

        Returns:
            本次调用创建的投票中提案；未达到阈值、已被跟踪或不是有效提案时返回 None。
        """
        try:
            async with UnitOfWork(self.bot.db_handler) as uow:
                if await uow.proposal.is_tracked(message.guild_id, message.id):
                    logger.debug(f"消息 {message.id} 已被跟踪，跳过。")
                    return None

            match = self.classifier.classify(message.channel_id, message.content)
            if match is None:
                logger.debug(f"消息 {message.id} 不是该频道的有效提案。")
                return None

            required = match.config.support_threshold
            label = f"{match.proposal_type}{' 撤回' if match.is_withdrawal else ''}提案 {message.id}"
            if current_support_count < required:
                logger.debug(f"{label} 当前支持 {current_support_count}/{required}")
                return None

            logger.info(f"{label} 已获得 {current_support_count}/{required} 支持，进入投票阶段")
            return await self.move_to_vote(
                message, match.proposal_type, match.config, match.is_withdrawal
            )
        except Exception as e:
            logger.error(f"处理消息 {message.id} 的支持反应时出错: {e}", exc_info=True)
            return None

    async def move_to_vote(
        self,
        message: MessageSnapshotDto,
        proposal_type: str,
        config: ProposalTypeConfigDto,
        is_withdrawal: bool = False,
    ) -> Optional[ProposalDto]:
        """
        为达到阈值的提案创建投票。失败时不会留下任何提案记录。
        """
        try:
            return await self._move_to_vote(message, proposal_type, config, is_withdrawal)
        except ConfigurationMissing as e:
            logger.error(f"无法为 {proposal_type} 提案 {message.id} 创建投票: {e}")
        except WithdrawalTargetNotFound as e:
            logger.info(str(e))
        except StoreConflict as e:
            logger.info(f"提案 {message.id} 已由其他流程处理，丢弃本次操作: {e}")
        except TransportFailure as e:
            logger.error(f"为提案 {message.id} 创建投票时消息平台出错: {e}", exc_info=True)
        return None

    async def _move_to_vote(
        self,
        message: MessageSnapshotDto,
        proposal_type: str,
        config: ProposalTypeConfigDto,
        is_withdrawal: bool,
    ) -> ProposalDto:
        vote_channel_id = config.vote_channel_id
        if not await self.gateway.channel_exists(vote_channel_id):
            raise ConfigurationMissing(vote_channel_id, "投票")

        target: Optional[WithdrawalTargetDto] = None
        if is_withdrawal:
            target = await self.resolver.resolve(message.content, proposal_type, config)
            if target is None:
                await self._notify_target_not_found(message)
                raise WithdrawalTargetNotFound(message.id)

        start_time = self.clock()
        end_time = TimeUtils.get_utc_end_time(config.vote_duration_hours, start_time)
        emojis = self.settings.emojis

        vote_content = ProposalMessageBuilder.build_vote_message(
            proposal_type=proposal_type,
            author_tag=message.author_tag,
            content=message.content,
            end_time=end_time,
            emojis=emojis,
            is_withdrawal=is_withdrawal,
            target=target,
        )
        vote_message = await self.gateway.send_message(vote_channel_id, vote_content)

        try:
            for emoji in (emojis.yes, emojis.no):
                await self.gateway.add_reaction(vote_channel_id, vote_message.id, emoji)

            qo = CreateProposalQo(
                guild_id=message.guild_id,
                vote_message_id=vote_message.id,
                vote_channel_id=vote_channel_id,
                original_message_id=message.id,
                original_channel_id=message.channel_id,
                proposal_type=proposal_type,
                is_withdrawal=is_withdrawal,
                content=message.content,
                author_id=message.author_id,
                author_tag=message.author_tag,
                support_threshold=config.support_threshold,
                start_time=start_time,
                end_time=end_time,
                target_resolution=target,
            )
            async with UnitOfWork(self.bot.db_handler) as uow:
                proposal = await uow.proposal.create_proposal(qo)
                await uow.commit()
        except Exception:
            # 没有对应记录的投票消息不能留在频道里，无论失败来自消息平台还是数据库
            await self._discard_vote_message(vote_channel_id, vote_message.id)
            raise

        try:
            await self.gateway.edit_message(
                message.channel_id,
                message.id,
                ProposalMessageBuilder.build_moved_notice(
                    message.content, vote_channel_id, is_withdrawal
                ),
            )
        except ProposalLifecycleError as e:
            logger.warning(f"无法编辑原讨论消息 {message.id}: {e}")

        logger.info(
            f"{proposal_type} {'撤回' if is_withdrawal else ''}提案已进入投票: {vote_message.id}"
        )
        return proposal

    async def _notify_target_not_found(self, message: MessageSnapshotDto):
        try:
            await self.gateway.reply(
                message.channel_id, message.id, WITHDRAWAL_TARGET_NOT_FOUND_TEXT
            )
        except ProposalLifecycleError as e:
            logger.warning(f"无法通知提案人撤回目标不存在 (消息 {message.id}): {e}")

    async def _discard_vote_message(self, channel_id: int, message_id: int):
        try:
            await self.gateway.delete_message(channel_id, message_id)
        except ProposalLifecycleError as e:
            logger.warning(f"无法删除多余的投票消息 {message_id}: {e}")

    # -------------------------
    # 投票中
    # -------------------------

    async def update_vote_counts(
        self, proposal: ProposalDto, snapshot: ReactionSnapshotDto
    ) -> Tuple[int, int]:
        """
        根据反应快照重新计算票数并保存。每个选项都扣除 Bot 自己添加的一票。

        Returns:
            (赞成票, 反对票)
        """
        emojis = self.settings.emojis
        yes_votes = max(0, snapshot.count(emojis.yes) - 1)
        no_votes = max(0, snapshot.count(emojis.no) - 1)

        async with UnitOfWork(self.bot.db_handler) as uow:
            updated = await uow.proposal.update_vote_counts(
                proposal.guild_id, proposal.vote_message_id, yes_votes, no_votes
            )
            await uow.commit()

        if updated:
            logger.debug(
                f"投票 {proposal.vote_message_id} 票数已更新: 赞成={yes_votes}, 反对={no_votes}"
            )
        return yes_votes, no_votes

    async def handle_vote_reaction(self, message: MessageSnapshotDto) -> Optional[Tuple[int, int]]:
        """
        投票消息上的反应变化时刷新实时票数。投票截止后的反应不再计入。
        """
        try:
            async with UnitOfWork(self.bot.db_handler) as uow:
                proposal = await uow.proposal.get_proposal(message.guild_id, message.id)

            if proposal is None or proposal.status != ProposalStatus.VOTING:
                return None

            if self.clock() > proposal.end_time:
                logger.debug(f"投票 {message.id} 已截止，等待定时任务处理。")
                return None

            return await self.update_vote_counts(proposal, message.reactions)
        except Exception as e:
            logger.error(f"刷新投票 {message.id} 的票数时出错: {e}", exc_info=True)
            return None

    # -------------------------
    # 投票结束
    # -------------------------

    async def check_ended_votes(self) -> List[VoteOutcomeDto]:
        """
        检查所有投票中的提案，处理截止时间已过的投票。
        每次都从数据库重新获取到期列表，单个投票处理失败会在下一次检查时重试。
        """
        now = self.clock()
        expired: List[ProposalDto] = []
        try:
            async with UnitOfWork(self.bot.db_handler) as uow:
                guild_ids = await uow.proposal.get_guild_ids_with_status(ProposalStatus.VOTING)
                for guild_id in guild_ids:
                    expired.extend(await uow.proposal.get_expired_votes(guild_id, now))
        except Exception as e:
            logger.error(f"获取到期投票列表时发生严重错误: {e}", exc_info=True)
            return []

        if not expired:
            logger.debug("没有发现已到期的投票。")
            return []

        logger.info(f"发现 {len(expired)} 个已到期的投票，开始处理...")
        outcomes: List[VoteOutcomeDto] = []
        for proposal in expired:
            try:
                outcome = await self.process_ended_vote(proposal)
                if outcome is not None:
                    outcomes.append(outcome)
            except Exception as e:
                # 单个投票处理失败，记录日志并继续处理下一个
                logger.error(f"处理已到期投票 {proposal.vote_message_id} 时出错: {e}", exc_info=True)
        return outcomes

    async def process_ended_vote(self, proposal: ProposalDto) -> Optional[VoteOutcomeDto]:
        """
        对单个到期投票进行最终计票、写入终态并执行后续动作。

        Returns:
            投票结果；终态已被其他流程写入时返回 None。

        Raises:
            TransportFailure: 无法获取投票消息，提案保持投票中，等待下次检查。
        """
        vote_message = await self.gateway.fetch_message(
            proposal.vote_channel_id, proposal.vote_message_id
        )
        yes_votes, no_votes = await self.update_vote_counts(proposal, vote_message.reactions)
        passed = VoteOutcomeDto.decide(yes_votes, no_votes)
        status = ProposalStatus.PASSED if passed else ProposalStatus.FAILED
        completed_at = self.clock()

        async with UnitOfWork(self.bot.db_handler) as uow:
            won = await uow.proposal.finalize_proposal(
                FinalizeProposalQo(
                    guild_id=proposal.guild_id,
                    vote_message_id=proposal.vote_message_id,
                    status=status,
                    yes_votes=yes_votes,
                    no_votes=no_votes,
                    completed_at=completed_at,
                )
            )
            await uow.commit()

        if not won:
            logger.info(f"投票 {proposal.vote_message_id} 已被其他流程结束，跳过。")
            return None

        finalized = proposal.model_copy(
            update={
                "status": status,
                "yes_votes": yes_votes,
                "no_votes": no_votes,
                "completed_at": completed_at,
            }
        )

        try:
            await self.gateway.edit_message(
                proposal.vote_channel_id,
                proposal.vote_message_id,
                ProposalMessageBuilder.build_outcome_summary(
                    vote_message.content, finalized, passed, self.settings.emojis
                ),
            )
        except ProposalLifecycleError as e:
            logger.warning(f"无法更新投票消息 {proposal.vote_message_id} 的结果: {e}")

        if passed:
            if finalized.is_withdrawal:
                await self.execute_withdrawal(finalized)
            elif finalized.is_moderator_action:
                await self.execute_moderator_action(finalized)
            else:
                await self.move_to_resolutions(finalized)

        logger.info(
            f"投票 {proposal.vote_message_id} 已结束: {status.name} "
            f"(赞成 {yes_votes} / 反对 {no_votes})"
        )
        return VoteOutcomeDto(
            vote_message_id=proposal.vote_message_id,
            passed=passed,
            yes_votes=yes_votes,
            no_votes=no_votes,
        )

    async def move_to_resolutions(self, proposal: ProposalDto) -> Optional[int]:
        """
        将已通过的提案发布为永久决议。失败只记录日志，不抛出异常。

        Returns:
            决议消息ID，失败时返回 None。
        """
        try:
            return await self.publisher.publish_resolution(proposal)
        except ProposalLifecycleError as e:
            logger.error(f"发布提案 {proposal.vote_message_id} 的决议失败: {e}")
            return None

    async def execute_withdrawal(self, proposal: ProposalDto) -> Optional[int]:
        """
        撤销撤回提案所指向的决议并发布撤回公告。失败只记录日志，不抛出异常。
        """
        try:
            return await self.publisher.execute_withdrawal(proposal)
        except ProposalLifecycleError as e:
            logger.error(f"执行撤回提案 {proposal.vote_message_id} 失败: {e}")
            return None

    async def execute_moderator_action(self, proposal: ProposalDto) -> bool:
        """
        执行已通过的版主任免提案。失败只记录日志，不抛出异常。

        Returns:
            成员最终处于提案要求的状态时返回 True。
        """
        try:
            await self.moderator_executor.execute(proposal)
            return True
        except ProposalLifecycleError as e:
            logger.error(f"执行版主任免提案 {proposal.vote_message_id} 失败: {e}")
            return False

    # -------------------------
    # 查询
    # -------------------------

    async def list_pending_proposals(self, guild_id: int) -> List[PendingProposalDto]:
        """
        扫描各讨论频道最近的消息，列出已有支持但尚未达到阈值的提案，按支持数降序排列。
        """
        support_emoji = self.settings.emojis.support
        pending: List[PendingProposalDto] = []

        for proposal_type, config in self.settings.proposal_types.items():
            try:
                messages = await self.gateway.fetch_recent_messages(
                    config.debate_channel_id, PENDING_SCAN_LIMIT
                )
            except ProposalLifecycleError as e:
                logger.warning(f"扫描 {proposal_type} 讨论频道 {config.debate_channel_id} 失败: {e}")
                continue

            async with UnitOfWork(self.bot.db_handler) as uow:
                for message in messages:
                    match = self.classifier.classify(message.channel_id, message.content)
                    if match is None:
                        continue

                    support_count = message.reactions.count_without_self(support_emoji)
                    if not 0 < support_count < match.config.support_threshold:
                        continue

                    if await uow.proposal.is_tracked(guild_id, message.id):
                        continue

                    pending.append(
                        PendingProposalDto(
                            message_id=message.id,
                            channel_id=message.channel_id,
                            content=message.content,
                            author_id=message.author_id,
                            created_at=message.created_at,
                            support_count=support_count,
                            required_support=match.config.support_threshold,
                            proposal_type=match.proposal_type,
                            is_withdrawal=match.is_withdrawal,
                        )
                    )

        pending.sort(key=lambda p: p.support_count, reverse=True)
        logger.debug(f"发现 {len(pending)} 个待支持的提案")
        return pending

    async def get_proposal_stats(self, guild_id: int) -> ProposalStatsDto:
        """按状态和类型统计服务器内的提案。"""
        async with UnitOfWork(self.bot.db_handler) as uow:
            voting = await uow.proposal.query_by_status(guild_id, ProposalStatus.VOTING)
            passed = await uow.proposal.query_by_status(guild_id, ProposalStatus.PASSED)
            failed = await uow.proposal.query_by_status(guild_id, ProposalStatus.FAILED)
            by_type = {
                proposal_type: len(await uow.proposal.query_by_type(guild_id, proposal_type))
                for proposal_type in self.settings.proposal_types
            }

        return ProposalStatsDto(
            total=len(voting) + len(passed) + len(failed),
            voting=len(voting),
            passed=len(passed),
            failed=len(failed),
            by_type=by_type,
        )
