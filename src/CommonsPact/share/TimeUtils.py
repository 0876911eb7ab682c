import logging
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

logger = logging.getLogger("commons_pact.time_utils")


class TimeUtils:
    """
    一个用于处理时间相关操作的工具类。
    数据库中的时间统一为不含时区信息的 UTC datetime。
    """

    @staticmethod
    def utc_now() -> datetime:
        """返回当前的朴素 UTC 时间。"""
        return datetime.now(timezone.utc).replace(tzinfo=None)

    @staticmethod
    def get_utc_end_time(duration_hours: float, start_time: datetime | None = None) -> datetime:
        """
        根据持续小时数计算结束时间。

        Args:
            duration_hours: 持续的小时数，可以是小数。
            start_time: 起始时间 (朴素 UTC)。为 None 时使用当前时间。

        Returns:
            朴素的 UTC 结束时间。
        """
        start = start_time if start_time is not None else TimeUtils.utc_now()
        return start + timedelta(hours=duration_hours)

    @staticmethod
    def to_discord_timestamp(value: datetime, style: str = "F") -> str:
        """
        将朴素 UTC 时间格式化为 Discord 时间戳标记，例如 <t:1700000000:F>。
        """
        aware = value if value.tzinfo else value.replace(tzinfo=ZoneInfo("UTC"))
        return f"<t:{int(aware.timestamp())}:{style}>"

