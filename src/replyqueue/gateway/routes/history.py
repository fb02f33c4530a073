"""聊天历史查询路由

GET /history/{account}/{chat_id}: 返回会话最近的消息（最新在前）。
"""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from ..deps import get_store_group

router = APIRouter()


class HistoryEntry(BaseModel):
    ts: str
    author_id: str | None
    type: str | None
    text: str
    item_id: str | None


class HistoryResponse(BaseModel):
    ok: bool
    count: int
    history: list[HistoryEntry]


@router.get("/history/{account}/{chat_id}", response_model=HistoryResponse)
async def read_history(
    account: str,
    chat_id: str,
    limit: int | None = Query(default=None, ge=1, description="返回条数上限"),
    store_group=Depends(get_store_group),
):
    items = await store_group.history_store.list_history(account, chat_id, limit)
    return HistoryResponse(
        ok=True,
        count=len(items),
        history=[
            HistoryEntry(
                ts=item.ts.isoformat(),
                author_id=item.author_id,
                type=item.type,
                text=item.text,
                item_id=item.item_id,
            )
            for item in items
        ],
    )
