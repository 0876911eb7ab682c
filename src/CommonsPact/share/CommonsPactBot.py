from typing import Any, Dict

from discord.ext import commands

from CommonsPact.share.ApiScheduler import APIScheduler
from CommonsPact.share.DatabaseHandler import DatabaseHandler


class CommonsPactBot(commands.Bot):
    """
    自定义 Bot 基类。
    为项目中挂载在 Bot 上的自定义属性提供集中定义，以便获得准确的类型提示。
    """

    api_scheduler: APIScheduler
    lifecycle_scheduler: APIScheduler
    db_handler: DatabaseHandler
    config: Dict[str, Any]
