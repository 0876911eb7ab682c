from typing import Literal

from CommonsPact.share.BaseDto import BaseDto


class ModeratorActionDto(BaseDto):
    """
    从版主任免提案中解析出的操作。
    """

    action: Literal["add", "remove"]
    user_id: int
    target_text: str
    """提案中填写的原始目标文本，例如 "<@123456789012345678>" """
