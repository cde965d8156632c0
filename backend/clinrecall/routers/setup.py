import aiosqlite
from fastapi import APIRouter, Depends

from clinrecall.db.sqlite import get_all_settings, get_db, set_setting
from clinrecall.models.setup import SettingUpdate

router = APIRouter()


@router.get("/")
async def list_settings(db: aiosqlite.Connection = Depends(get_db)) -> dict[str, str]:
    return await get_all_settings(db)


@router.put("/")
async def update_setting(
    body: SettingUpdate, db: aiosqlite.Connection = Depends(get_db)
) -> dict[str, str]:
    await set_setting(db, body.key, body.value)
    return {"key": body.key, "value": body.value}
