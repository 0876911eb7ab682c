import json
from typing import Any

from pydantic import BaseModel
from sqlalchemy import TEXT, TypeDecorator
from sqlalchemy.dialects.postgresql import JSONB


class JsonText(TypeDecorator):
    """
    以 JSON 文本形式存储结构化字段，例如撤回提案的 target_resolution。
    写入时接受 dict 或 pydantic 模型，读出时统一为 dict，由 DTO 负责再次校验。
    """

    impl = TEXT
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: Any) -> str | None:
        if value is None:
            return None
        if isinstance(value, BaseModel):
            value = value.model_dump(mode="json")
        return json.dumps(value, ensure_ascii=False)

    def process_result_value(self, value: str | None, dialect: Any) -> dict | None:
        return json.loads(value) if value else None


# PostgreSQL 使用原生 JSONB，其余数据库 (SQLite) 使用 JSON 文本
JSON_TYPE = JSONB().with_variant(JsonText(), "sqlite")
