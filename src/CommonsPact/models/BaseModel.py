from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel, text

from CommonsPact.share.TimeUtils import TimeUtils


class BaseModel(SQLModel):
    """
    所有数据表模型的基类。
    提供自增主键以及统一的创建/更新时间字段。
    """

    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: datetime = Field(
        default_factory=TimeUtils.utc_now,
        sa_type=DateTime(timezone=False),
        sa_column_kwargs={"server_default": text("CURRENT_TIMESTAMP")},
        description="创建时间",
    )
    updated_at: datetime = Field(
        default_factory=TimeUtils.utc_now,
        sa_type=DateTime(timezone=False),
        sa_column_kwargs={"server_default": text("CURRENT_TIMESTAMP")},
        description="最后更新时间",
    )
