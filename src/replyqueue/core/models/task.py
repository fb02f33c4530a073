"""Task Domain Model

任务文件的内容在创建后不再修改；free/claimed 状态只体现在文件名上。
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import TaskKind


class Task(BaseModel):
    """Task 数据模型 -- 一个可回复的会话事件"""

    id: str = Field(description="唯一标识，ULID 格式")
    account: str = Field(description="集成账户命名空间")
    chat_id: str = Field(description="会话标识")
    reply_text: str = Field(default="", description="建议回复内容，可为空")
    message_id: str | None = Field(default=None, description="来源事件 ID")
    item_id: str | None = Field(default=None, description="关联对象 ID")
    created_at: datetime = Field(description="创建时间")
    kind: TaskKind = Field(description="任务类型：apply / message")


class ClaimedTask(BaseModel):
    """claim 成功的返回值：任务内容 + 锁标识"""

    task: Task
    lock_id: str = Field(description="锁标识，即 free 文件名追加锁后缀")
    claimed_at: datetime = Field(description="认领时间（租约起点）")
