"""
测试共享的夹具。

- 每个测试使用独立的临时 SQLite 文件数据库
- FakeMessageGateway 在内存中模拟频道、消息与反应
- FakeClock 提供可以手动推进的时间
"""

from datetime import datetime, timedelta
from itertools import count
from types import SimpleNamespace
from typing import Dict, List, Optional, Set, Tuple

import pytest
import pytest_asyncio

import CommonsPact.models  # noqa: F401
from CommonsPact.cogs.Proposals.dto.MessageSnapshotDto import MessageSnapshotDto
from CommonsPact.cogs.Proposals.dto.ProposalSettingsDto import ProposalSettingsDto
from CommonsPact.cogs.Proposals.dto.ReactionSnapshotDto import ReactionSnapshotDto
from CommonsPact.cogs.Proposals.ProposalErrors import (
    ConfigurationMissing,
    MemberNotFound,
    RoleNotFound,
    TransportFailure,
)
from CommonsPact.cogs.Proposals.ProposalLogic import ProposalLogic
from CommonsPact.share.DatabaseHandler import DatabaseHandler

GUILD_ID = 555
BOT_USER_ID = 1
AUTHOR_ID = 42

DEBATE_CHANNEL_ID = 101
VOTE_CHANNEL_ID = 102
RESOLUTIONS_CHANNEL_ID = 103

TEST_CONFIG = {
    "emojis": {"support": "✅", "yes": "✅", "no": "❌"},
    "scheduler": {"checkIntervalSeconds": 60, "initialDelaySeconds": 0},
    "withdrawal": {"lookbackLimit": 100, "keywordOverlapRatio": 0.6, "minKeywordLength": 4},
    "proposalTypes": {
        "policy": {
            "debateChannelId": DEBATE_CHANNEL_ID,
            "voteChannelId": VOTE_CHANNEL_ID,
            "resolutionsChannelId": RESOLUTIONS_CHANNEL_ID,
            "supportThreshold": 3,
            "voteDurationHours": 72,
            "formats": ["Policy"],
        }
    },
}


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, hours: float):
        self.now = self.now + timedelta(hours=hours)


class FakeMessageGateway:
    """内存中的 MessageGateway 实现。"""

    def __init__(self, channel_ids: List[int]):
        self.channels: Dict[int, List[MessageSnapshotDto]] = {cid: [] for cid in channel_ids}
        self.missing_channels: Set[int] = set()
        self.failing_fetch: Set[int] = set()
        self.fail_reactions = False
        self.replies: List[Tuple[int, str]] = []
        self.deleted: List[int] = []
        self.guild_roles: Set[int] = set()
        self.member_roles: Dict[int, Set[int]] = {}
        self._ids = count(9000)

    # --- 测试辅助 ---

    def post(
        self,
        channel_id: int,
        content: str,
        author_id: int = AUTHOR_ID,
        author_tag: str = "alice",
        reactions: Optional[Dict[str, int]] = None,
    ) -> MessageSnapshotDto:
        message = MessageSnapshotDto(
            id=next(self._ids),
            channel_id=channel_id,
            guild_id=GUILD_ID,
            author_id=author_id,
            author_tag=author_tag,
            content=content,
            created_at=datetime(2024, 1, 1),
            reactions=ReactionSnapshotDto(counts=dict(reactions or {})),
        )
        self.channels.setdefault(channel_id, []).append(message)
        return message

    def stored(self, channel_id: int, message_id: int) -> MessageSnapshotDto:
        if channel_id not in self.channels or channel_id in self.missing_channels:
            raise ConfigurationMissing(channel_id)
        for message in self.channels[channel_id]:
            if message.id == message_id:
                return message
        raise TransportFailure("fetch_message")

    def set_reactions(self, channel_id: int, message_id: int, counts: Dict[str, int]):
        message = self.stored(channel_id, message_id)
        message.reactions = ReactionSnapshotDto(counts=counts, me=list(message.reactions.me))

    def messages_in(self, channel_id: int) -> List[MessageSnapshotDto]:
        return list(self.channels.get(channel_id, []))

    # --- MessageGateway ---

    async def channel_exists(self, channel_id: int) -> bool:
        return channel_id in self.channels and channel_id not in self.missing_channels

    async def send_message(self, channel_id: int, content: str) -> MessageSnapshotDto:
        if not await self.channel_exists(channel_id):
            raise ConfigurationMissing(channel_id)
        return self.post(channel_id, content, author_id=BOT_USER_ID, author_tag="CommonsPact")

    async def edit_message(self, channel_id: int, message_id: int, content: str) -> None:
        self.stored(channel_id, message_id).content = content

    async def delete_message(self, channel_id: int, message_id: int) -> None:
        message = self.stored(channel_id, message_id)
        self.channels[channel_id].remove(message)
        self.deleted.append(message_id)

    async def add_reaction(self, channel_id: int, message_id: int, emoji: str) -> None:
        if self.fail_reactions:
            raise TransportFailure("add_reaction")
        reactions = self.stored(channel_id, message_id).reactions
        reactions.counts[emoji] = reactions.counts.get(emoji, 0) + 1
        if emoji not in reactions.me:
            reactions.me.append(emoji)

    async def reply(self, channel_id: int, message_id: int, content: str) -> None:
        self.stored(channel_id, message_id)
        self.replies.append((message_id, content))

    async def fetch_message(self, channel_id: int, message_id: int) -> MessageSnapshotDto:
        if message_id in self.failing_fetch:
            raise TransportFailure("fetch_message")
        return self.stored(channel_id, message_id).model_copy(deep=True)

    async def fetch_recent_messages(self, channel_id: int, limit: int) -> List[MessageSnapshotDto]:
        if not await self.channel_exists(channel_id):
            raise ConfigurationMissing(channel_id)
        newest_first = list(reversed(self.channels[channel_id]))
        return [m.model_copy(deep=True) for m in newest_first[:limit]]

    def _roles_of(self, guild_id: int, user_id: int, role_id: int) -> Set[int]:
        if user_id not in self.member_roles:
            raise MemberNotFound(user_id, guild_id)
        if role_id not in self.guild_roles:
            raise RoleNotFound(role_id)
        return self.member_roles[user_id]

    async def member_has_role(self, guild_id: int, user_id: int, role_id: int) -> bool:
        return role_id in self._roles_of(guild_id, user_id, role_id)

    async def add_role(self, guild_id: int, user_id: int, role_id: int) -> None:
        self._roles_of(guild_id, user_id, role_id).add(role_id)

    async def remove_role(self, guild_id: int, user_id: int, role_id: int) -> None:
        self._roles_of(guild_id, user_id, role_id).discard(role_id)


@pytest_asyncio.fixture
async def db_handler(tmp_path):
    handler = DatabaseHandler()
    handler.initialize(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await handler.init_db()
    yield handler
    await handler.close()


@pytest.fixture
def settings() -> ProposalSettingsDto:
    return ProposalSettingsDto.from_config(TEST_CONFIG)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 1, 1, 12, 0, 0))


@pytest.fixture
def gateway() -> FakeMessageGateway:
    return FakeMessageGateway([DEBATE_CHANNEL_ID, VOTE_CHANNEL_ID, RESOLUTIONS_CHANNEL_ID])


@pytest.fixture
def bot(db_handler):
    return SimpleNamespace(
        db_handler=db_handler,
        config=TEST_CONFIG,
        user=SimpleNamespace(id=BOT_USER_ID),
    )


@pytest.fixture
def logic(bot, gateway, settings, clock) -> ProposalLogic:
    return ProposalLogic(bot, gateway=gateway, settings=settings, clock=clock)
