from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header, HTTPException

from notelinks_api.config import load_settings
from notelinks_api.domain.exceptions import NoteLookupError
from notelinks_api.linking.service import LinkService
from notelinks_api.vault import NoteStore, Vault


@lru_cache()
def get_settings():
    return load_settings()


@lru_cache()
def get_store():
    settings = get_settings()
    return NoteStore(settings.vault_dir)


def get_user_id(x_user_id: Optional[str] = Header(default=None)) -> Optional[str]:
    return x_user_id.strip() if x_user_id else None


def get_vault(
    user_id: Optional[str] = Depends(get_user_id),
    store: NoteStore = Depends(get_store),
) -> Vault:
    try:
        return store.for_user(user_id)
    except NoteLookupError as e:
        raise HTTPException(status_code=401, detail=e.reason) from e


def get_link_service(vault: Vault = Depends(get_vault)) -> LinkService:
    return LinkService(vault)


def clear_caches() -> None:
    get_store.cache_clear()
    get_settings.cache_clear()
