from fastapi import APIRouter, Depends

from schemas.filters import SortState, SortOption
from dependencies import get_device_store
from utils.local_store import KeyValueStore
from utils.sorting import load_sort_state, save_sort_state, reset_random_sort

router = APIRouter()

@router.get("", response_model=SortState)
async def get_sort_state(store: KeyValueStore = Depends(get_device_store)):
    """
    取得裝置保存的排序狀態，沒有時為距離由近到遠
    """
    return load_sort_state(store)

@router.put("", response_model=SortState)
async def update_sort_state(
    sort_state: SortState,
    store: KeyValueStore = Depends(get_device_store),
):
    # 重新選擇隨機排序時換一組順序
    if sort_state.option == SortOption.RANDOM:
        reset_random_sort()
    save_sort_state(store, sort_state)
    return sort_state
