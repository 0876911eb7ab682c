import logging
import os


class LoggingConfigurator:
    """
    集中配置项目日志记录器。
    项目代码、SQLAlchemy 与 discord.py 共用同一个流处理器和格式。
    """

    def __init__(self, rootLogLevel: str = "INFO"):
        """
        :param rootLogLevel: 从 .env 文件读取的项目日志级别字符串。
        """
        self.logLevel = getattr(logging, rootLogLevel.upper(), logging.INFO)
        self.formatter = logging.Formatter("%(asctime)s:%(levelname)s:%(name)s: %(message)s")
        self.streamHandler = logging.StreamHandler()
        self.streamHandler.setFormatter(self.formatter)

    def configure(self):
        """
        应用所有日志配置。
        """
        for name in ("CommonsPact", "commons_pact"):
            self._configureProjectLogger(name)
        self._configureSqlAlchemyLogger()
        self._configureDiscordLogger()
        logging.getLogger("commons_pact").info("日志记录器配置完成。")

    def _configureProjectLogger(self, name: str):
        # 模块级 logger 挂在包名 "CommonsPact" 下，基础设施 logger 挂在 "commons_pact" 下
        logger = logging.getLogger(name)
        logger.setLevel(self.logLevel)
        if not logger.handlers:
            logger.addHandler(self.streamHandler)
        logger.propagate = False

    def _configureSqlAlchemyLogger(self):
        """SQLAlchemy 的日志级别由 SQLALCHEMY_LOG_LEVEL 控制，默认为 WARNING。"""
        log_level_str = os.getenv("SQLALCHEMY_LOG_LEVEL", "WARNING").upper()
        log_level = getattr(logging, log_level_str, logging.WARNING)

        sql_logger = logging.getLogger("sqlalchemy.engine")
        sql_logger.setLevel(log_level)
        if not sql_logger.handlers:
            sql_logger.addHandler(self.streamHandler)
        sql_logger.propagate = False

    def _configureDiscordLogger(self):
        """discord.py 的日志级别由 DISCORD_LOG_LEVEL 控制，默认为 INFO。"""
        log_level_str = os.getenv("DISCORD_LOG_LEVEL", "INFO").upper()
        discord_logger = logging.getLogger("discord")
        discord_logger.setLevel(getattr(logging, log_level_str, logging.INFO))
        if not discord_logger.handlers:
            discord_logger.addHandler(self.streamHandler)
        discord_logger.propagate = False
