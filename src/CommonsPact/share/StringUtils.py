import re
from typing import List, Optional

# 决议中的核心字段，例如 "**Policy**: xxx" 或 "**Governance**: xxx"
LABELED_FIELD_PATTERN = re.compile(
    r"\*\*(?:Policy|Governance|Resolution)\*\*:\s*(.+?)(?:\n|$)", re.IGNORECASE
)
# 已发布决议中的 "**Resolution:**" 正文块
RESOLUTION_BLOCK_PATTERN = re.compile(r"\*\*Resolution:\*\*\s*(.+?)(?:\n\*|$)", re.DOTALL)
WITHDRAW_REFERENCE_PATTERN = re.compile(r"\*\*Withdraw\*\*:\s*(.+)", re.IGNORECASE)
# "**Add Moderator**: @用户" 或 "**Remove Moderator**: @用户"
MODERATOR_ACTION_PATTERN = re.compile(r"^\*\*(Add|Remove) Moderator\*\*:\s*(.+)", re.IGNORECASE)
USER_MENTION_PATTERN = re.compile(r"<@!?(\d{17,19})>")
RAW_USER_ID_PATTERN = re.compile(r"\b(\d{17,19})\b")


class StringUtils:
    """
    提供提案文本处理相关的静态工具方法
    """

    @staticmethod
    def build_label_pattern(labels: List[str]) -> re.Pattern:
        """
        构造提案开头格式的正则，例如 ^**(Policy|Withdraw)**:，大小写不敏感。
        """
        alternatives = "|".join(re.escape(label) for label in labels)
        return re.compile(rf"^\*\*({alternatives})\*\*:", re.IGNORECASE)

    @staticmethod
    def extract_withdraw_reference(content: str) -> Optional[str]:
        """
        提取 "**Withdraw**:" 之后的引用文本 (仅第一行)。格式不正确时返回 None。
        """
        match = WITHDRAW_REFERENCE_PATTERN.search(content)
        if not match:
            return None
        reference = match.group(1).strip()
        return reference or None

    @staticmethod
    def extract_user_id(text: str) -> Optional[int]:
        """
        从提及 (<@123> 或 <@!123>) 或纯数字ID中提取用户ID。
        """
        match = USER_MENTION_PATTERN.search(text) or RAW_USER_ID_PATTERN.search(text)
        return int(match.group(1)) if match else None

    @staticmethod
    def extract_labeled_field(content: str) -> Optional[str]:
        """
        提取决议中的核心字段内容，例如 "**Policy**: Ban spam bots" -> "Ban spam bots"。
        """
        match = LABELED_FIELD_PATTERN.search(content)
        if match:
            return match.group(1).strip()
        return None

    @staticmethod
    def extract_original_text(resolution_content: str) -> str:
        """
        从决议消息中提取原始提案文本。
        依次尝试核心字段、"**Resolution:**" 正文块，最后回退到完整内容。
        """
        field = StringUtils.extract_labeled_field(resolution_content)
        if field:
            return field

        block = RESOLUTION_BLOCK_PATTERN.search(resolution_content)
        if block:
            return block.group(1).strip()

        return resolution_content

    @staticmethod
    def truncate(content: str, limit: int = 50) -> str:
        """截断文本用于日志输出。"""
        return content if len(content) <= limit else f"{content[:limit]}..."
