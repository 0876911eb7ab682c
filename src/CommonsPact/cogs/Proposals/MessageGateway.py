import logging
from typing import List, Optional, Protocol, Union, runtime_checkable

import discord

from CommonsPact.cogs.Proposals.dto.MessageSnapshotDto import MessageSnapshotDto
from CommonsPact.cogs.Proposals.dto.ReactionSnapshotDto import ReactionSnapshotDto
from CommonsPact.cogs.Proposals.ProposalErrors import (
    ConfigurationMissing,
    MemberNotFound,
    RoleNotFound,
    TransportFailure,
)
from CommonsPact.share.CommonsPactBot import CommonsPactBot

logger = logging.getLogger(__name__)

MessageableChannel = Union[discord.TextChannel, discord.Thread]


@runtime_checkable
class MessageGateway(Protocol):
    """
    生命周期逻辑所依赖的消息平台接口。
    所有方法在平台调用失败时抛出 TransportFailure，频道不存在时抛出 ConfigurationMissing。
    身份组相关方法在成员不存在时抛出 MemberNotFound，身份组不存在时抛出 RoleNotFound。
    """

    async def channel_exists(self, channel_id: int) -> bool: ...

    async def send_message(self, channel_id: int, content: str) -> MessageSnapshotDto: ...

    async def edit_message(self, channel_id: int, message_id: int, content: str) -> None: ...

    async def delete_message(self, channel_id: int, message_id: int) -> None: ...

    async def add_reaction(self, channel_id: int, message_id: int, emoji: str) -> None: ...

    async def reply(self, channel_id: int, message_id: int, content: str) -> None: ...

    async def fetch_message(self, channel_id: int, message_id: int) -> MessageSnapshotDto: ...

    async def fetch_recent_messages(
        self, channel_id: int, limit: int
    ) -> List[MessageSnapshotDto]: ...

    async def member_has_role(self, guild_id: int, user_id: int, role_id: int) -> bool: ...

    async def add_role(self, guild_id: int, user_id: int, role_id: int) -> None: ...

    async def remove_role(self, guild_id: int, user_id: int, role_id: int) -> None: ...


class DiscordMessageGateway:
    """
    基于 discord.py 的 MessageGateway 实现。
    所有 API 调用都通过 bot.api_scheduler 提交，以统一限流。
    """

    # 优先级: 投票相关的写操作高于后台扫描
    WRITE_PRIORITY = 3
    READ_PRIORITY = 5
    SCAN_PRIORITY = 7

    def __init__(self, bot: CommonsPactBot):
        self.bot = bot

    @staticmethod
    def to_snapshot(message: discord.Message) -> MessageSnapshotDto:
        """将 discord.Message 转换为与平台无关的快照。"""
        counts = {}
        me = []
        for reaction in message.reactions:
            emoji = str(reaction.emoji)
            counts[emoji] = reaction.count
            if reaction.me:
                me.append(emoji)

        return MessageSnapshotDto(
            id=message.id,
            channel_id=message.channel.id,
            guild_id=message.guild.id if message.guild else 0,
            author_id=message.author.id,
            author_tag=str(message.author),
            content=message.content,
            created_at=message.created_at.replace(tzinfo=None) if message.created_at else None,
            reactions=ReactionSnapshotDto(counts=counts, me=me),
        )

    async def _get_channel(self, channel_id: int) -> Optional[MessageableChannel]:
        channel = self.bot.get_channel(channel_id)
        if channel is None:
            try:
                channel = await self.bot.api_scheduler.submit(
                    self.bot.fetch_channel(channel_id), priority=self.READ_PRIORITY
                )
            except (discord.NotFound, discord.Forbidden):
                return None
            except discord.HTTPException as e:
                raise TransportFailure("fetch_channel", e) from e

        if not isinstance(channel, (discord.TextChannel, discord.Thread)):
            return None
        return channel

    async def _require_channel(self, channel_id: int) -> MessageableChannel:
        channel = await self._get_channel(channel_id)
        if channel is None:
            raise ConfigurationMissing(channel_id)
        return channel

    async def _fetch_raw(self, channel_id: int, message_id: int) -> discord.Message:
        channel = await self._require_channel(channel_id)
        try:
            return await self.bot.api_scheduler.submit(
                channel.fetch_message(message_id), priority=self.READ_PRIORITY
            )
        except discord.HTTPException as e:
            raise TransportFailure("fetch_message", e) from e

    async def channel_exists(self, channel_id: int) -> bool:
        return await self._get_channel(channel_id) is not None

    async def send_message(self, channel_id: int, content: str) -> MessageSnapshotDto:
        channel = await self._require_channel(channel_id)
        try:
            message = await self.bot.api_scheduler.submit(
                channel.send(content), priority=self.WRITE_PRIORITY
            )
        except discord.HTTPException as e:
            raise TransportFailure("send_message", e) from e
        return self.to_snapshot(message)

    async def edit_message(self, channel_id: int, message_id: int, content: str) -> None:
        message = await self._fetch_raw(channel_id, message_id)
        try:
            await self.bot.api_scheduler.submit(
                message.edit(content=content), priority=self.WRITE_PRIORITY
            )
        except discord.HTTPException as e:
            raise TransportFailure("edit_message", e) from e

    async def delete_message(self, channel_id: int, message_id: int) -> None:
        message = await self._fetch_raw(channel_id, message_id)
        try:
            await self.bot.api_scheduler.submit(message.delete(), priority=self.WRITE_PRIORITY)
        except discord.HTTPException as e:
            raise TransportFailure("delete_message", e) from e

    async def add_reaction(self, channel_id: int, message_id: int, emoji: str) -> None:
        message = await self._fetch_raw(channel_id, message_id)
        try:
            await self.bot.api_scheduler.submit(
                message.add_reaction(emoji), priority=self.WRITE_PRIORITY
            )
        except discord.HTTPException as e:
            raise TransportFailure("add_reaction", e) from e

    async def reply(self, channel_id: int, message_id: int, content: str) -> None:
        message = await self._fetch_raw(channel_id, message_id)
        try:
            await self.bot.api_scheduler.submit(
                message.reply(content), priority=self.WRITE_PRIORITY
            )
        except discord.HTTPException as e:
            raise TransportFailure("reply", e) from e

    async def fetch_message(self, channel_id: int, message_id: int) -> MessageSnapshotDto:
        return self.to_snapshot(await self._fetch_raw(channel_id, message_id))

    async def fetch_recent_messages(self, channel_id: int, limit: int) -> List[MessageSnapshotDto]:
        channel = await self._require_channel(channel_id)

        async def _collect() -> List[discord.Message]:
            return [message async for message in channel.history(limit=limit)]

        try:
            messages = await self.bot.api_scheduler.submit(_collect(), priority=self.SCAN_PRIORITY)
        except discord.HTTPException as e:
            raise TransportFailure("fetch_recent_messages", e) from e
        return [self.to_snapshot(m) for m in messages]

    async def _fetch_member(self, guild_id: int, user_id: int) -> discord.Member:
        guild = self.bot.get_guild(guild_id)
        if guild is None:
            raise MemberNotFound(user_id, guild_id)

        member = guild.get_member(user_id)
        if member is not None:
            return member
        try:
            return await self.bot.api_scheduler.submit(
                guild.fetch_member(user_id), priority=self.READ_PRIORITY
            )
        except discord.NotFound as e:
            raise MemberNotFound(user_id, guild_id) from e
        except discord.HTTPException as e:
            raise TransportFailure("fetch_member", e) from e

    @staticmethod
    def _require_role(member: discord.Member, role_id: int) -> discord.Role:
        role = member.guild.get_role(role_id)
        if role is None:
            raise RoleNotFound(role_id)
        return role

    async def member_has_role(self, guild_id: int, user_id: int, role_id: int) -> bool:
        member = await self._fetch_member(guild_id, user_id)
        self._require_role(member, role_id)
        return member.get_role(role_id) is not None

    async def add_role(self, guild_id: int, user_id: int, role_id: int) -> None:
        member = await self._fetch_member(guild_id, user_id)
        role = self._require_role(member, role_id)
        try:
            await self.bot.api_scheduler.submit(
                member.add_roles(role, reason="版主任免提案投票通过"),
                priority=self.WRITE_PRIORITY,
            )
        except discord.HTTPException as e:
            raise TransportFailure("add_role", e) from e

    async def remove_role(self, guild_id: int, user_id: int, role_id: int) -> None:
        member = await self._fetch_member(guild_id, user_id)
        role = self._require_role(member, role_id)
        try:
            await self.bot.api_scheduler.submit(
                member.remove_roles(role, reason="版主任免提案投票通过"),
                priority=self.WRITE_PRIORITY,
            )
        except discord.HTTPException as e:
            raise TransportFailure("remove_role", e) from e
