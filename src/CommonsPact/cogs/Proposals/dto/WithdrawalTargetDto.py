from CommonsPact.share.BaseDto import BaseDto


class WithdrawalTargetDto(BaseDto):
    """
    撤回提案所指向的已发布决议。进入投票时解析一次，之后不再重新解析。
    """

    resolution_id: int
    """决议消息ID"""
    channel_id: int
    """决议所在频道ID"""
    raw_content: str
    """决议消息全文"""
    extracted_original_text: str
    """从决议中提取出的原始提案文本"""
    matched_by: str = ""
    """命中的匹配策略: exact / labeled_field / keyword_overlap"""
